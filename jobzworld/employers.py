"""Companies and job postings: guest onboarding, owner management, public listing."""

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import Conflict, NotFound, NotFoundOrAlreadyClaimed
from .logger import logger
from .models import Company, JobPosting
from .schemas import (
    CompanyCreate,
    CompanyOut,
    CompanyUpdate,
    JobCreate,
    JobOut,
    JobUpdate,
    Paginated,
)
from .utils import apply_partial_update, escape_like, normalize_pagination, page_meta


# ==================== Helper Functions ====================


async def _save_company(session: AsyncSession, company: Company) -> CompanyOut:
    await session.commit()
    await session.refresh(company)
    return CompanyOut.model_validate(company)


async def _save_job(session: AsyncSession, job: JobPosting) -> JobOut:
    await session.commit()
    await session.refresh(job)
    return JobOut.model_validate(job)


async def _select_guest_company(session: AsyncSession, company_id: int) -> Company:
    company = await session.get(Company, company_id)
    if company is None or company.user_id is not None:
        raise NotFoundOrAlreadyClaimed("Company not found or already claimed")
    return company


async def _select_own_company(session: AsyncSession, user_id: int) -> Company:
    result = await session.execute(select(Company).where(Company.user_id == user_id))
    company = result.scalars().first()
    if company is None:
        raise NotFound("Company profile not found. Please create a company profile first.")
    return company


async def _select_own_job(session: AsyncSession, user_id: int, job_id: int) -> JobPosting:
    """A job that does not belong to the caller's company is reported as missing."""
    result = await session.execute(
        select(JobPosting)
        .join(Company, JobPosting.company_id == Company.id)
        .where(JobPosting.id == job_id, Company.user_id == user_id)
    )
    job = result.scalars().first()
    if job is None:
        raise NotFound("Job not found")
    return job


# ==================== Guest Onboarding ====================


async def create_guest_company(session: AsyncSession, data: CompanyCreate) -> CompanyOut:
    company = Company(user_id=None, **data.model_dump(mode="json"))
    session.add(company)
    out = await _save_company(session, company)
    logger.info(f"Guest company created: id={company.id}")
    return out


async def update_guest_company(session: AsyncSession, company_id: int, data: CompanyUpdate) -> CompanyOut:
    company = await _select_guest_company(session, company_id)
    apply_partial_update(company, data)
    return await _save_company(session, company)


async def add_guest_job(session: AsyncSession, company_id: int, data: JobCreate) -> JobOut:
    """Draft a job for a guest company; it stays inactive until the company is published."""
    await _select_guest_company(session, company_id)
    job = JobPosting(company_id=company_id, is_active=False, **data.model_dump(mode="json"))
    session.add(job)
    out = await _save_job(session, job)
    logger.info(f"Draft job created: id={job.id} company_id={company_id}")
    return out


async def publish_guest_company(session: AsyncSession, company_id: int) -> int:
    """Activate every job of a guest company. Returns the number of jobs activated."""
    await _select_guest_company(session, company_id)
    result = await session.execute(
        update(JobPosting).where(JobPosting.company_id == company_id).values(is_active=True)
    )
    await session.commit()
    logger.info(f"Company published: id={company_id} jobs_activated={result.rowcount}")
    return result.rowcount


# ==================== Owner: Company ====================


async def create_company(session: AsyncSession, user_id: int, data: CompanyCreate) -> CompanyOut:
    existing = await session.execute(select(Company.id).where(Company.user_id == user_id))
    if existing.first() is not None:
        raise Conflict("Company profile already exists")

    company = Company(user_id=user_id, **data.model_dump(mode="json"))
    session.add(company)
    try:
        out = await _save_company(session, company)
    except IntegrityError as e:
        await session.rollback()
        raise Conflict("Company profile already exists") from e
    logger.info(f"Company created: id={company.id} user_id={user_id}")
    return out


async def get_own_company(session: AsyncSession, user_id: int) -> CompanyOut:
    return CompanyOut.model_validate(await _select_own_company(session, user_id))


async def update_own_company(session: AsyncSession, user_id: int, data: CompanyUpdate) -> CompanyOut:
    company = await _select_own_company(session, user_id)
    apply_partial_update(company, data)
    return await _save_company(session, company)


async def delete_own_company(session: AsyncSession, user_id: int) -> None:
    """Delete the caller's company; its job postings go with it."""
    company = await _select_own_company(session, user_id)
    await session.delete(company)
    await session.commit()
    logger.info(f"Company deleted: id={company.id} user_id={user_id}")


# ==================== Owner: Jobs ====================


async def list_own_jobs(session: AsyncSession, user_id: int) -> list[JobOut]:
    result = await session.execute(
        select(JobPosting)
        .join(Company, JobPosting.company_id == Company.id)
        .where(Company.user_id == user_id)
        .order_by(JobPosting.created_at.desc(), JobPosting.id.desc())
    )
    return [JobOut.model_validate(job) for job in result.scalars().all()]


async def create_job(session: AsyncSession, user_id: int, data: JobCreate) -> JobOut:
    """Jobs posted by a registered employer are live immediately."""
    company = await _select_own_company(session, user_id)
    job = JobPosting(company_id=company.id, is_active=True, **data.model_dump(mode="json"))
    session.add(job)
    out = await _save_job(session, job)
    logger.info(f"Job created: id={job.id} company_id={company.id}")
    return out


async def update_job(session: AsyncSession, user_id: int, job_id: int, data: JobUpdate) -> JobOut:
    job = await _select_own_job(session, user_id, job_id)
    apply_partial_update(job, data)
    return await _save_job(session, job)


async def delete_job(session: AsyncSession, user_id: int, job_id: int) -> None:
    job = await _select_own_job(session, user_id, job_id)
    await session.delete(job)
    await session.commit()
    logger.info(f"Job deleted: id={job_id}")


# ==================== Public Read & Search ====================


async def get_company(session: AsyncSession, company_id: int) -> CompanyOut:
    company = await session.get(Company, company_id)
    if company is None:
        raise NotFound("Company not found")
    return CompanyOut.model_validate(company)


async def search_companies(
    session: AsyncSession,
    industries: list[str] | None = None,
    company_size: str | None = None,
    location: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> Paginated[CompanyOut]:
    """Search claimed companies; newest updates first."""
    page, limit, skip = normalize_pagination(page, limit)

    conditions = [Company.user_id.is_not(None)]
    if industries:
        conditions.append(Company.industry.in_(industries))
    if company_size:
        conditions.append(Company.company_size == company_size)
    if location:
        conditions.append(Company.location.ilike(f"%{escape_like(location)}%", escape="\\"))

    count_stmt = select(func.count()).select_from(Company).where(*conditions)
    total = (await session.execute(count_stmt)).scalar() or 0

    stmt = (
        select(Company)
        .where(*conditions)
        .order_by(Company.updated_at.desc(), Company.id.desc())
        .offset(skip)
        .limit(limit)
    )
    companies = (await session.execute(stmt)).scalars().all()
    logger.debug(f"Company search returned {len(companies)} of {total} companies")

    return Paginated[CompanyOut](
        items=[CompanyOut.model_validate(c) for c in companies],
        **page_meta(total, page, limit),
    )


async def get_job(session: AsyncSession, job_id: int) -> JobOut:
    """Public job lookup; drafts are not visible."""
    job = await session.get(JobPosting, job_id)
    if job is None or not job.is_active:
        raise NotFound("Job not found")
    return JobOut.model_validate(job)


async def list_active_jobs(
    session: AsyncSession,
    company_id: int | None = None,
    working_model: str | None = None,
    employment_type: str | None = None,
    location: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> Paginated[JobOut]:
    """Active postings, newest first."""
    page, limit, skip = normalize_pagination(page, limit)

    conditions = [JobPosting.is_active.is_(True)]
    if company_id is not None:
        conditions.append(JobPosting.company_id == company_id)
    if working_model:
        conditions.append(JobPosting.working_model == working_model)
    if employment_type:
        conditions.append(JobPosting.employment_type == employment_type)
    if location:
        conditions.append(JobPosting.location.ilike(f"%{escape_like(location)}%", escape="\\"))

    count_stmt = select(func.count()).select_from(JobPosting).where(*conditions)
    total = (await session.execute(count_stmt)).scalar() or 0

    stmt = (
        select(JobPosting)
        .where(*conditions)
        .order_by(JobPosting.created_at.desc(), JobPosting.id.desc())
        .offset(skip)
        .limit(limit)
    )
    jobs = (await session.execute(stmt)).scalars().all()

    return Paginated[JobOut](
        items=[JobOut.model_validate(j) for j in jobs],
        **page_meta(total, page, limit),
    )
