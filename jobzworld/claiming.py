"""Claiming guest profiles: turn an anonymous onboarding profile into an account.

A guest candidate profile or company is a row with ``user_id IS NULL``. Claiming
creates the account and links the row in one transaction; a row can be claimed
at most once, even under concurrent requests.
"""

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from .errors import NotFoundOrAlreadyClaimed
from .logger import logger
from .models import CandidateProfile, Company, UserRole
from .schemas import (
    MAX_DB_INT,
    CandidateClaimResult,
    CandidateProfileOut,
    CompanyClaimResult,
    CompanyOut,
    UserOut,
)
from .services import AuthService


async def _claim(auth: AuthService, model, row_id: int, role: UserRole, email: str, password: str, values: dict):
    """Lock the unclaimed row, create the account, and link them.

    Returns (user, tokens, row) after commit. Any failure leaves neither the
    account nor the link behind.
    """
    session = auth.session
    if not 1 <= row_id <= MAX_DB_INT:
        # No row can carry this id
        raise NotFoundOrAlreadyClaimed()

    result = await session.execute(
        select(model).where(model.id == row_id, model.user_id.is_(None)).with_for_update()
    )
    row = result.scalars().first()
    if row is None:
        logger.warning(f"Claim rejected - {model.__tablename__} id={row_id} missing or already claimed")
        raise NotFoundOrAlreadyClaimed()

    user, tokens = await auth.create_account(email, password, role)

    try:
        linked = await session.execute(
            update(model)
            .where(model.id == row_id, model.user_id.is_(None))
            .values(user_id=user.id, **values)
        )
    except IntegrityError as e:
        await session.rollback()
        raise NotFoundOrAlreadyClaimed() from e
    if linked.rowcount == 0:
        # Claimed by a concurrent request between the lock and the update
        await session.rollback()
        logger.warning(f"Claim lost race for {model.__tablename__} id={row_id}")
        raise NotFoundOrAlreadyClaimed()

    await session.commit()
    await session.refresh(user)
    await session.refresh(row)
    logger.info(f"{model.__tablename__} id={row_id} claimed by user id={user.id}")

    await auth.send_verification(user)
    return user, tokens, row


async def claim_candidate_profile(
    auth: AuthService, profile_id: int, email: str, password: str, full_name: str
) -> CandidateClaimResult:
    """Claim a guest candidate profile; the supplied name replaces the guest one."""
    user, tokens, profile = await _claim(
        auth, CandidateProfile, profile_id, UserRole.CANDIDATE, email, password,
        {"full_name": full_name},
    )
    return CandidateClaimResult(
        user=UserOut.model_validate(user),
        tokens=tokens,
        profile=CandidateProfileOut.model_validate(profile),
    )


async def claim_company(
    auth: AuthService, company_id: int, email: str, password: str, full_name: str
) -> CompanyClaimResult:
    """Claim a guest company; ``full_name`` belongs to the account owner and is not stored on the company."""
    user, tokens, company = await _claim(
        auth, Company, company_id, UserRole.EMPLOYER, email, password, {},
    )
    return CompanyClaimResult(
        user=UserOut.model_validate(user),
        tokens=tokens,
        company=CompanyOut.model_validate(company),
    )
