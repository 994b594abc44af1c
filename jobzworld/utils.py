"""Utility functions for common operations across the application."""

from datetime import datetime, timezone
from pydantic import BaseModel
from .config import settings
from .errors import BadRequest


def normalize_email(email: str) -> str:
    """Convert email to lowercase and strip whitespace."""
    return email.strip().lower()


def utcnow() -> datetime:
    """Default clock for token issuance and expiry checks."""
    return datetime.now(timezone.utc)


def page_count(total: int, limit: int) -> int:
    return (total + limit - 1) // limit


def normalize_pagination(page: int, limit: int) -> tuple[int, int, int]:
    """Validate and normalize pagination parameters.

    Returns:
        tuple: (page, limit, skip) normalized values
    """
    if page < 1:
        page = settings.DEFAULT_PAGE
    if limit < 1:
        limit = settings.DEFAULT_LIMIT
    if limit > settings.MAX_LIMIT:
        limit = settings.MAX_LIMIT
    skip = (page - 1) * limit
    return page, limit, skip


def page_meta(total: int, page: int, limit: int) -> dict:
    """Pagination metadata for a Paginated response."""
    pages = page_count(total, limit)
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": pages,
        "has_next": page < pages,
        "has_prev": page > 1,
    }


def escape_like(term: str) -> str:
    """Escape special LIKE characters (%, _, \\) to prevent unintended wildcards."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def split_csv(value: str | None) -> list[str]:
    """Parse a comma-separated query parameter into a list of non-empty values."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def apply_partial_update(instance, data: BaseModel) -> None:
    """Copy the fields present in a partial-update request onto an ORM instance.

    Explicit nulls are ignored for non-nullable columns. Raises BadRequest when
    nothing is left to update or the resulting salary range is inverted.
    """
    fields = data.model_dump(mode="json", exclude_unset=True)
    columns = type(instance).__table__.c
    fields = {
        name: value for name, value in fields.items()
        if value is not None or columns[name].nullable
    }
    if not fields:
        raise BadRequest("No valid fields to update")
    for name, value in fields.items():
        setattr(instance, name, value)

    # The request may carry only one side of the range
    salary_min = getattr(instance, "salary_min", None)
    salary_max = getattr(instance, "salary_max", None)
    if salary_min is not None and salary_max is not None and salary_min > salary_max:
        raise BadRequest("Minimum salary cannot be greater than maximum salary")
