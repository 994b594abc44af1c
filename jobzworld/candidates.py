"""Candidate profiles: guest onboarding profiles, owner CRUD, and search."""

from sqlalchemy import select, func, or_, cast, String
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import Conflict, Forbidden, NotFound, NotFoundOrAlreadyClaimed
from .logger import logger
from .models import CandidateProfile
from .schemas import (
    CandidateProfileCreate,
    CandidateProfileOut,
    CandidateProfileUpdate,
    Paginated,
)
from .utils import apply_partial_update, escape_like, normalize_pagination, page_meta


# ==================== Helper Functions ====================


def _to_out(profile: CandidateProfile) -> CandidateProfileOut:
    return CandidateProfileOut.model_validate(profile)


async def _save(session: AsyncSession, profile: CandidateProfile) -> CandidateProfileOut:
    await session.commit()
    await session.refresh(profile)
    return _to_out(profile)


async def _select_own(session: AsyncSession, user_id: int) -> CandidateProfile:
    result = await session.execute(
        select(CandidateProfile).where(CandidateProfile.user_id == user_id)
    )
    profile = result.scalars().first()
    if profile is None:
        raise NotFound("Candidate profile not found")
    return profile


def _json_contains_any(column, values: list[str], key: str | None = None):
    """Match JSON arrays whose text contains any of the quoted values (case-insensitive).

    With ``key``, only object members named ``key`` are matched, so skill names
    are not confused with proficiency levels.
    """
    prefix = f'"{key}": ' if key else ""
    return or_(*[
        cast(column, String).ilike(f'%{prefix}"{escape_like(value)}"%', escape="\\")
        for value in values
    ])


# ==================== Guest Profiles ====================


async def create_guest_profile(session: AsyncSession, data: CandidateProfileCreate) -> CandidateProfileOut:
    """Create an unclaimed profile during onboarding (no account yet)."""
    profile = CandidateProfile(user_id=None, **data.model_dump(mode="json"))
    session.add(profile)
    out = await _save(session, profile)
    logger.info(f"Guest candidate profile created: id={profile.id}")
    return out


async def update_guest_profile(
    session: AsyncSession, profile_id: int, data: CandidateProfileUpdate
) -> CandidateProfileOut:
    """Update a guest profile by id; claimed profiles can only be edited by their owner."""
    profile = await session.get(CandidateProfile, profile_id)
    if profile is None or profile.user_id is not None:
        raise NotFoundOrAlreadyClaimed()
    apply_partial_update(profile, data)
    return await _save(session, profile)


# ==================== Owner Operations ====================


async def create_profile(
    session: AsyncSession, user_id: int, data: CandidateProfileCreate
) -> CandidateProfileOut:
    existing = await session.execute(
        select(CandidateProfile.id).where(CandidateProfile.user_id == user_id)
    )
    if existing.first() is not None:
        raise Conflict("Candidate profile already exists")

    profile = CandidateProfile(user_id=user_id, **data.model_dump(mode="json"))
    session.add(profile)
    try:
        out = await _save(session, profile)
    except IntegrityError as e:
        await session.rollback()
        raise Conflict("Candidate profile already exists") from e
    logger.info(f"Candidate profile created: id={profile.id} user_id={user_id}")
    return out


async def get_own_profile(session: AsyncSession, user_id: int) -> CandidateProfileOut:
    return _to_out(await _select_own(session, user_id))


async def update_own_profile(
    session: AsyncSession, user_id: int, data: CandidateProfileUpdate
) -> CandidateProfileOut:
    profile = await _select_own(session, user_id)
    apply_partial_update(profile, data)
    return await _save(session, profile)


async def delete_own_profile(session: AsyncSession, user_id: int) -> None:
    profile = await _select_own(session, user_id)
    await session.delete(profile)
    await session.commit()
    logger.info(f"Candidate profile deleted: id={profile.id} user_id={user_id}")


async def complete_profile(session: AsyncSession, user_id: int, profile_id: int) -> CandidateProfileOut:
    """Mark a profile complete, which makes it visible in search."""
    profile = await session.get(CandidateProfile, profile_id)
    if profile is None:
        raise NotFound("Candidate profile not found")
    if profile.user_id != user_id:
        raise Forbidden("You can only complete your own profile")
    profile.is_profile_complete = True
    return await _save(session, profile)


# ==================== Public Read & Search ====================


async def get_profile(session: AsyncSession, profile_id: int) -> CandidateProfileOut:
    profile = await session.get(CandidateProfile, profile_id)
    if profile is None:
        raise NotFound("Candidate profile not found")
    return _to_out(profile)


async def search_profiles(
    session: AsyncSession,
    skills: list[str] | None = None,
    languages: list[str] | None = None,
    industries: list[str] | None = None,
    experience_min: int | None = None,
    experience_max: int | None = None,
    working_model: str | None = None,
    location: str | None = None,
    salary_min: int | None = None,
    salary_max: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> Paginated[CandidateProfileOut]:
    """Search claimed, complete profiles; newest updates first."""
    page, limit, skip = normalize_pagination(page, limit)

    conditions = [
        CandidateProfile.is_profile_complete.is_(True),
        CandidateProfile.user_id.is_not(None),
    ]
    if skills:
        conditions.append(_json_contains_any(CandidateProfile.skills, skills, key="name"))
    if languages:
        conditions.append(_json_contains_any(CandidateProfile.languages, languages))
    if industries:
        conditions.append(_json_contains_any(CandidateProfile.preferred_industries, industries))
    if experience_min is not None:
        conditions.append(CandidateProfile.years_experience >= experience_min)
    if experience_max is not None:
        conditions.append(CandidateProfile.years_experience <= experience_max)
    if working_model:
        conditions.append(CandidateProfile.working_model == working_model)
    if location:
        conditions.append(CandidateProfile.location.ilike(f"%{escape_like(location)}%", escape="\\"))
    # Salary filters select overlapping ranges
    if salary_min is not None:
        conditions.append(CandidateProfile.salary_max >= salary_min)
    if salary_max is not None:
        conditions.append(CandidateProfile.salary_min <= salary_max)

    count_stmt = select(func.count()).select_from(CandidateProfile).where(*conditions)
    total = (await session.execute(count_stmt)).scalar() or 0

    stmt = (
        select(CandidateProfile)
        .where(*conditions)
        .order_by(CandidateProfile.updated_at.desc(), CandidateProfile.id.desc())
        .offset(skip)
        .limit(limit)
    )
    profiles = (await session.execute(stmt)).scalars().all()
    logger.debug(f"Candidate search returned {len(profiles)} of {total} profiles")

    return Paginated[CandidateProfileOut](
        items=[_to_out(p) for p in profiles],
        **page_meta(total, page, limit),
    )
