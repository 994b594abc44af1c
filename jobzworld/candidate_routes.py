# Candidate profile ENDPOINTS: onboarding (guest), owner CRUD, claim, search

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from . import candidates
from .claiming import claim_candidate_profile
from .config import settings
from .dependencies import PageNumber, ResourceId, get_auth_service, get_session, require_candidate
from .models import User, WorkingModel
from .ratelimit import conditional_limit
from .schemas import (
    MAX_DB_INT,
    ApiResponse,
    CandidateClaimResult,
    CandidateProfileCreate,
    CandidateProfileOut,
    CandidateProfileUpdate,
    ClaimRequest,
    Paginated,
)
from .services import AuthService
from .utils import split_csv

router = APIRouter(prefix="/candidates", tags=["candidates"])


# ============================================================================
# Public Endpoints
# ============================================================================

@router.get("/search", response_model=ApiResponse[Paginated[CandidateProfileOut]])
@conditional_limit(settings.RATE_LIMIT_READ)
async def search_profiles(
    request: Request,
    skills: str | None = Query(None, description="Comma-separated skill names"),
    languages: str | None = Query(None, description="Comma-separated languages"),
    industries: str | None = Query(None, description="Comma-separated industries"),
    experience_min: int | None = Query(None, ge=0, le=MAX_DB_INT),
    experience_max: int | None = Query(None, ge=0, le=MAX_DB_INT),
    working_model: WorkingModel | None = None,
    location: str | None = None,
    salary_min: int | None = Query(None, ge=0, le=MAX_DB_INT),
    salary_max: int | None = Query(None, ge=0, le=MAX_DB_INT),
    page: PageNumber = settings.DEFAULT_PAGE,
    limit: int = settings.DEFAULT_LIMIT,
    session: AsyncSession = Depends(get_session),
):
    result = await candidates.search_profiles(
        session,
        skills=split_csv(skills),
        languages=split_csv(languages),
        industries=split_csv(industries),
        experience_min=experience_min,
        experience_max=experience_max,
        working_model=working_model.value if working_model else None,
        location=location,
        salary_min=salary_min,
        salary_max=salary_max,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=result, message="Profiles retrieved successfully")


# ============================================================================
# Onboarding (no account yet)
# ============================================================================

@router.post("/guest-profile", response_model=ApiResponse[CandidateProfileOut], status_code=201)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def create_guest_profile(
    data: CandidateProfileCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    profile = await candidates.create_guest_profile(session, data)
    return ApiResponse(data=profile, message="Candidate profile created successfully")


@router.put("/profile/{profile_id}", response_model=ApiResponse[CandidateProfileOut])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def update_guest_profile(
    profile_id: ResourceId,
    data: CandidateProfileUpdate,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    profile = await candidates.update_guest_profile(session, profile_id, data)
    return ApiResponse(data=profile, message="Profile updated successfully")


@router.post("/profile/{profile_id}/claim", response_model=ApiResponse[CandidateClaimResult])
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def claim_profile(
    profile_id: int,
    data: ClaimRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    """Create an account and attach the guest profile to it.

    Raises:
        404: Profile does not exist or was already claimed
        409: Email already exists
    """
    result = await claim_candidate_profile(auth, profile_id, data.email, data.password, data.full_name)
    return ApiResponse(data=result, message="Profile claimed and account created successfully")


# ============================================================================
# Authenticated Candidate Endpoints
# ============================================================================

@router.post("/profile", response_model=ApiResponse[CandidateProfileOut], status_code=201)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def create_profile(
    data: CandidateProfileCreate,
    request: Request,
    current_user: User = Depends(require_candidate),
    session: AsyncSession = Depends(get_session),
):
    profile = await candidates.create_profile(session, current_user.id, data)
    return ApiResponse(data=profile, message="Candidate profile created successfully")


@router.get("/profile/me", response_model=ApiResponse[CandidateProfileOut])
@conditional_limit(settings.RATE_LIMIT_READ)
async def get_own_profile(
    request: Request,
    current_user: User = Depends(require_candidate),
    session: AsyncSession = Depends(get_session),
):
    profile = await candidates.get_own_profile(session, current_user.id)
    return ApiResponse(data=profile, message="Profile retrieved successfully")


@router.put("/profile", response_model=ApiResponse[CandidateProfileOut])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def update_own_profile(
    data: CandidateProfileUpdate,
    request: Request,
    current_user: User = Depends(require_candidate),
    session: AsyncSession = Depends(get_session),
):
    profile = await candidates.update_own_profile(session, current_user.id, data)
    return ApiResponse(data=profile, message="Profile updated successfully")


@router.delete("/profile", response_model=ApiResponse[None])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def delete_own_profile(
    request: Request,
    current_user: User = Depends(require_candidate),
    session: AsyncSession = Depends(get_session),
):
    await candidates.delete_own_profile(session, current_user.id)
    return ApiResponse(message="Profile deleted successfully")


@router.put("/profile/{profile_id}/complete", response_model=ApiResponse[CandidateProfileOut])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def complete_profile(
    profile_id: ResourceId,
    request: Request,
    current_user: User = Depends(require_candidate),
    session: AsyncSession = Depends(get_session),
):
    profile = await candidates.complete_profile(session, current_user.id, profile_id)
    return ApiResponse(data=profile, message="Profile marked as complete")


# Registered last so /candidates/search is not captured as an id
@router.get("/{profile_id}", response_model=ApiResponse[CandidateProfileOut])
@conditional_limit(settings.RATE_LIMIT_READ)
async def get_profile(
    profile_id: ResourceId,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    profile = await candidates.get_profile(session, profile_id)
    return ApiResponse(data=profile, message="Profile retrieved successfully")
