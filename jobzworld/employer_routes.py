# Company and job posting ENDPOINTS

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from . import employers
from .claiming import claim_company
from .config import settings
from .dependencies import PageNumber, ResourceId, get_auth_service, get_session, require_employer
from .models import User, WorkingModel, EmploymentType
from .ratelimit import conditional_limit
from .schemas import (
    MAX_DB_INT,
    ApiResponse,
    ClaimRequest,
    CompanyClaimResult,
    CompanyCreate,
    CompanyOut,
    CompanyUpdate,
    JobCreate,
    JobOut,
    JobUpdate,
    Paginated,
)
from .services import AuthService
from .utils import split_csv

router = APIRouter(prefix="/employers", tags=["employers"])
jobs_router = APIRouter(prefix="/jobs", tags=["jobs"])


# ============================================================================
# Public Endpoints
# ============================================================================

@router.get("/search", response_model=ApiResponse[Paginated[CompanyOut]])
@conditional_limit(settings.RATE_LIMIT_READ)
async def search_companies(
    request: Request,
    industries: str | None = Query(None, description="Comma-separated industries"),
    company_size: str | None = None,
    location: str | None = None,
    page: PageNumber = settings.DEFAULT_PAGE,
    limit: int = settings.DEFAULT_LIMIT,
    session: AsyncSession = Depends(get_session),
):
    result = await employers.search_companies(
        session,
        industries=split_csv(industries),
        company_size=company_size,
        location=location,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=result, message="Companies retrieved successfully")


# ============================================================================
# Onboarding (no account yet)
# ============================================================================

@router.post("/profile", response_model=ApiResponse[CompanyOut], status_code=201)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def create_guest_company(
    data: CompanyCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    company = await employers.create_guest_company(session, data)
    return ApiResponse(data=company, message="Company profile created successfully")


# ============================================================================
# Authenticated Employer Endpoints
# ============================================================================
# /profile/me routes are declared before /profile/{company_id} so "me" is not parsed as an id

@router.post("/profile/me", response_model=ApiResponse[CompanyOut], status_code=201)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def create_company(
    data: CompanyCreate,
    request: Request,
    current_user: User = Depends(require_employer),
    session: AsyncSession = Depends(get_session),
):
    company = await employers.create_company(session, current_user.id, data)
    return ApiResponse(data=company, message="Company profile created successfully")


@router.get("/profile/me", response_model=ApiResponse[CompanyOut])
@conditional_limit(settings.RATE_LIMIT_READ)
async def get_own_company(
    request: Request,
    current_user: User = Depends(require_employer),
    session: AsyncSession = Depends(get_session),
):
    company = await employers.get_own_company(session, current_user.id)
    return ApiResponse(data=company, message="Company profile retrieved successfully")


@router.put("/profile/me", response_model=ApiResponse[CompanyOut])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def update_own_company(
    data: CompanyUpdate,
    request: Request,
    current_user: User = Depends(require_employer),
    session: AsyncSession = Depends(get_session),
):
    company = await employers.update_own_company(session, current_user.id, data)
    return ApiResponse(data=company, message="Company profile updated successfully")


@router.delete("/profile", response_model=ApiResponse[None])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def delete_own_company(
    request: Request,
    current_user: User = Depends(require_employer),
    session: AsyncSession = Depends(get_session),
):
    await employers.delete_own_company(session, current_user.id)
    return ApiResponse(message="Company profile deleted successfully")


@router.get("/jobs", response_model=ApiResponse[list[JobOut]])
@conditional_limit(settings.RATE_LIMIT_READ)
async def list_own_jobs(
    request: Request,
    current_user: User = Depends(require_employer),
    session: AsyncSession = Depends(get_session),
):
    jobs = await employers.list_own_jobs(session, current_user.id)
    return ApiResponse(data=jobs, message="Jobs retrieved successfully")


@router.post("/jobs", response_model=ApiResponse[JobOut], status_code=201)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def create_job(
    data: JobCreate,
    request: Request,
    current_user: User = Depends(require_employer),
    session: AsyncSession = Depends(get_session),
):
    job = await employers.create_job(session, current_user.id, data)
    return ApiResponse(data=job, message="Job created successfully")


@router.put("/jobs/{job_id}", response_model=ApiResponse[JobOut])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def update_job(
    job_id: ResourceId,
    data: JobUpdate,
    request: Request,
    current_user: User = Depends(require_employer),
    session: AsyncSession = Depends(get_session),
):
    job = await employers.update_job(session, current_user.id, job_id, data)
    return ApiResponse(data=job, message="Job updated successfully")


@router.delete("/jobs/{job_id}", response_model=ApiResponse[None])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def delete_job(
    job_id: ResourceId,
    request: Request,
    current_user: User = Depends(require_employer),
    session: AsyncSession = Depends(get_session),
):
    await employers.delete_job(session, current_user.id, job_id)
    return ApiResponse(message="Job deleted successfully")


# ============================================================================
# Guest Company Onboarding by id
# ============================================================================

@router.put("/profile/{company_id}", response_model=ApiResponse[CompanyOut])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def update_guest_company(
    company_id: ResourceId,
    data: CompanyUpdate,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    company = await employers.update_guest_company(session, company_id, data)
    return ApiResponse(data=company, message="Company profile updated successfully")


@router.post("/profile/{company_id}/job", response_model=ApiResponse[JobOut], status_code=201)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def add_guest_job(
    company_id: ResourceId,
    data: JobCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    job = await employers.add_guest_job(session, company_id, data)
    return ApiResponse(data=job, message="Job created successfully")


@router.put("/profile/{company_id}/publish", response_model=ApiResponse[dict[str, int]])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def publish_guest_company(
    company_id: ResourceId,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    activated = await employers.publish_guest_company(session, company_id)
    return ApiResponse(data={"jobs_activated": activated}, message="Company profile published successfully")


@router.post("/profile/{company_id}/claim", response_model=ApiResponse[CompanyClaimResult])
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def claim_company_profile(
    company_id: int,
    data: ClaimRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    """Create an employer account and attach the guest company to it.

    Raises:
        404: Company does not exist or was already claimed
        409: Email already exists
    """
    result = await claim_company(auth, company_id, data.email, data.password, data.full_name)
    return ApiResponse(data=result, message="Company claimed and account created successfully")


@router.get("/{company_id}", response_model=ApiResponse[CompanyOut])
@conditional_limit(settings.RATE_LIMIT_READ)
async def get_company(
    company_id: ResourceId,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    company = await employers.get_company(session, company_id)
    return ApiResponse(data=company, message="Company retrieved successfully")


# ============================================================================
# Public Job Listing
# ============================================================================

@jobs_router.get("", response_model=ApiResponse[Paginated[JobOut]])
@conditional_limit(settings.RATE_LIMIT_READ)
async def list_jobs(
    request: Request,
    company_id: int | None = Query(None, ge=1, le=MAX_DB_INT),
    working_model: WorkingModel | None = None,
    employment_type: EmploymentType | None = None,
    location: str | None = None,
    page: PageNumber = settings.DEFAULT_PAGE,
    limit: int = settings.DEFAULT_LIMIT,
    session: AsyncSession = Depends(get_session),
):
    result = await employers.list_active_jobs(
        session,
        company_id=company_id,
        working_model=working_model.value if working_model else None,
        employment_type=employment_type.value if employment_type else None,
        location=location,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=result, message="Jobs retrieved successfully")


@jobs_router.get("/{job_id}", response_model=ApiResponse[JobOut])
@conditional_limit(settings.RATE_LIMIT_READ)
async def get_job(
    job_id: ResourceId,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    job = await employers.get_job(session, job_id)
    return ApiResponse(data=job, message="Job retrieved successfully")
