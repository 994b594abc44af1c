"""Pydantic schemas for request/response validation and serialization."""

import re
from datetime import datetime
from typing import Generic, Literal, TypeVar
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)
from .config import settings
from .models import UserRole, WorkingModel, EmploymentType, VideoStatus

T = TypeVar("T")

PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&"

# Largest value an INTEGER column holds on PostgreSQL
MAX_DB_INT = 2_147_483_647


def validate_password_strength(password: str) -> str:
    """Minimum 8 characters with lower, upper, digit and special character."""
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")
    checks = [
        re.search(r"[a-z]", password),
        re.search(r"[A-Z]", password),
        re.search(r"\d", password),
        re.search(f"[{re.escape(PASSWORD_SPECIAL_CHARACTERS)}]", password),
    ]
    if not all(checks):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            f"one number, and one special character ({PASSWORD_SPECIAL_CHARACTERS})"
        )
    return password


# ==================== Envelope & Error Schemas ====================

class ApiResponse(BaseModel, Generic[T]):
    """Envelope wrapping every successful response."""
    success: bool = True
    data: T | None = None
    message: str | None = None


class ErrorResponse(BaseModel):
    """Standardized error envelope with code and message."""
    success: bool = False
    error: str
    message: str
    details: dict | list | None = None


class ErrorCode:
    """Centralized error codes for API responses."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_RESET_TOKEN = "INVALID_RESET_TOKEN"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_CLAIMED = "NOT_FOUND_OR_ALREADY_CLAIMED"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    CONFLICT = "CONFLICT"
    INVALID_REFERENCE = "INVALID_REFERENCE"
    RATE_LIMITED = "RATE_LIMITED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# ==================== User & Token Schemas ====================

class UserOut(BaseModel):
    """User output schema without password hash."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    role: UserRole
    is_verified: bool
    created_at: datetime
    updated_at: datetime


class TokenPair(BaseModel):
    """Access/refresh pair, serialized with camelCase keys."""
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class TokenPayload(BaseModel):
    """Identity carried inside both tokens of a pair."""
    user_id: int
    email: str
    role: UserRole


class AuthResult(BaseModel):
    user: UserOut
    tokens: TokenPair


class TokensOut(BaseModel):
    tokens: TokenPair


# ==================== Authentication Requests ====================

class UserRegister(BaseModel):
    """Schema for account registration."""
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr = Field(..., max_length=settings.EMAIL_MAX_LENGTH, description="Account email address")
    password: str = Field(..., max_length=128, description="Password meeting the strength policy")
    role: UserRole = Field(..., validation_alias=AliasChoices("role", "user_type"))
    full_name: str | None = Field(None, min_length=2, max_length=settings.FULL_NAME_MAX_LENGTH)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, v: str | None) -> str | None:
        """Validate name is not just whitespace."""
        if v is None:
            return v
        if not v.strip():
            raise ValueError("Full name cannot be empty or only whitespace")
        return v.strip()


class UserLogin(BaseModel):
    """Schema for login credentials."""
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., min_length=1)
    role: UserRole = Field(..., validation_alias=AliasChoices("role", "user_type"))


class RefreshTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("refreshToken", "refresh_token")
    )


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordReset(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., max_length=128)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


class ClaimRequest(BaseModel):
    """Credentials for the account created when a guest profile is claimed."""
    email: EmailStr = Field(..., max_length=settings.EMAIL_MAX_LENGTH)
    password: str = Field(..., max_length=128)
    full_name: str = Field(..., min_length=2, max_length=settings.FULL_NAME_MAX_LENGTH)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Full name cannot be empty or only whitespace")
        return v.strip()


# ==================== Pagination ====================

class Paginated(BaseModel, Generic[T]):
    """Paginated response with items and metadata."""
    items: list[T]
    total: int
    page: int
    limit: int
    pages: int
    has_next: bool
    has_prev: bool


class _SalaryRange(BaseModel):
    salary_min: int | None = Field(None, ge=0, le=MAX_DB_INT)
    salary_max: int | None = Field(None, ge=0, le=MAX_DB_INT)

    @model_validator(mode="after")
    def validate_salary_range(self):
        if (
            self.salary_min is not None
            and self.salary_max is not None
            and self.salary_min > self.salary_max
        ):
            raise ValueError("Minimum salary cannot be greater than maximum salary")
        return self


# ==================== Candidate Schemas ====================

class Skill(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    proficiency: Literal["beginner", "intermediate", "advanced", "expert"]


class CandidateProfileCreate(_SalaryRange):
    full_name: str = Field(..., min_length=2, max_length=settings.FULL_NAME_MAX_LENGTH)
    location: str | None = Field(None, max_length=100)
    has_work_authorization: bool = False
    languages: list[str] = Field(default_factory=list)
    years_experience: int = Field(0, ge=0, le=50)
    target_job_titles: list[str] = Field(default_factory=list)
    preferred_industries: list[str] = Field(default_factory=list)
    working_model: WorkingModel = WorkingModel.REMOTE
    salary_currency: str = Field("USD", min_length=3, max_length=3)
    is_willing_to_relocate: bool = False
    skills: list[Skill] = Field(default_factory=list)
    achievements: str = Field("", max_length=2000)
    has_consented_ai_analysis: bool = False


class CandidateProfileUpdate(_SalaryRange):
    """Partial update; only fields present in the request are written."""
    full_name: str | None = Field(None, min_length=2, max_length=settings.FULL_NAME_MAX_LENGTH)
    location: str | None = Field(None, max_length=100)
    has_work_authorization: bool | None = None
    languages: list[str] | None = None
    years_experience: int | None = Field(None, ge=0, le=50)
    target_job_titles: list[str] | None = None
    preferred_industries: list[str] | None = None
    working_model: WorkingModel | None = None
    salary_currency: str | None = Field(None, min_length=3, max_length=3)
    is_willing_to_relocate: bool | None = None
    skills: list[Skill] | None = None
    achievements: str | None = Field(None, max_length=2000)
    has_consented_ai_analysis: bool | None = None
    is_profile_complete: bool | None = None


class CandidateProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int | None
    full_name: str
    location: str | None
    has_work_authorization: bool
    languages: list[str]
    years_experience: int
    target_job_titles: list[str]
    preferred_industries: list[str]
    working_model: WorkingModel
    salary_min: int | None
    salary_max: int | None
    salary_currency: str
    is_willing_to_relocate: bool
    skills: list[Skill]
    achievements: str
    has_consented_ai_analysis: bool
    is_profile_complete: bool
    created_at: datetime
    updated_at: datetime


class CandidateClaimResult(BaseModel):
    user: UserOut
    tokens: TokenPair
    profile: CandidateProfileOut


# ==================== Company & Job Schemas ====================

class CompanyCreate(BaseModel):
    company_name: str = Field(..., min_length=2, max_length=200)
    industry: str | None = Field(None, max_length=100)
    company_size: str | None = Field(None, max_length=50)
    location: str | None = Field(None, max_length=100)
    website: str | None = Field(None, max_length=255)
    description: str = Field("", max_length=5000)
    company_values: list[str] = Field(default_factory=list)
    work_culture: str = Field("", max_length=2000)
    has_video_intro: bool = False
    video_intro_url: str | None = Field(None, max_length=500)


class CompanyUpdate(BaseModel):
    company_name: str | None = Field(None, min_length=2, max_length=200)
    industry: str | None = Field(None, max_length=100)
    company_size: str | None = Field(None, max_length=50)
    location: str | None = Field(None, max_length=100)
    website: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=5000)
    company_values: list[str] | None = None
    work_culture: str | None = Field(None, max_length=2000)
    has_video_intro: bool | None = None
    video_intro_url: str | None = Field(None, max_length=500)


class CompanyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int | None
    company_name: str
    industry: str | None
    company_size: str | None
    location: str | None
    website: str | None
    description: str
    company_values: list[str]
    work_culture: str
    has_video_intro: bool
    video_intro_url: str | None
    created_at: datetime
    updated_at: datetime


class CompanyClaimResult(BaseModel):
    user: UserOut
    tokens: TokenPair
    company: CompanyOut


class JobCreate(_SalaryRange):
    job_title: str = Field(..., min_length=2, max_length=200)
    department: str | None = Field(None, max_length=100)
    employment_type: EmploymentType = EmploymentType.FULL_TIME
    working_model: WorkingModel = WorkingModel.REMOTE
    location: str | None = Field(None, max_length=100)
    salary_currency: str = Field("USD", min_length=3, max_length=3)
    experience_level: str | None = Field(None, max_length=50)
    requirements: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)


class JobUpdate(_SalaryRange):
    job_title: str | None = Field(None, min_length=2, max_length=200)
    department: str | None = Field(None, max_length=100)
    employment_type: EmploymentType | None = None
    working_model: WorkingModel | None = None
    location: str | None = Field(None, max_length=100)
    salary_currency: str | None = Field(None, min_length=3, max_length=3)
    experience_level: str | None = Field(None, max_length=50)
    requirements: list[str] | None = None
    responsibilities: list[str] | None = None
    benefits: list[str] | None = None
    is_active: bool | None = None


class JobOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: int
    job_title: str
    department: str | None
    employment_type: EmploymentType
    working_model: WorkingModel
    location: str | None
    salary_min: int | None
    salary_max: int | None
    salary_currency: str
    experience_level: str | None
    requirements: list[str]
    responsibilities: list[str]
    benefits: list[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime


# ==================== Video Schemas ====================

class VideoUpload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    candidate_profile_id: int = Field(
        ..., gt=0, le=MAX_DB_INT, validation_alias=AliasChoices("candidate_profile_id", "candidateProfileId")
    )
    question_text: str = Field(
        ..., min_length=1, max_length=1000, validation_alias=AliasChoices("question_text", "questionText")
    )
    video_blob: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("video_blob", "videoBlob"),
        description="Base64-encoded WebM recording",
    )
    duration_seconds: int = Field(
        ..., ge=1, le=300, validation_alias=AliasChoices("duration_seconds", "durationSeconds")
    )
    response_order: int = Field(
        ..., ge=1, le=MAX_DB_INT, validation_alias=AliasChoices("response_order", "responseOrder")
    )


class VideoStatusUpdate(BaseModel):
    status: VideoStatus


class VideoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    candidate_profile_id: int
    question_text: str
    video_url: str | None
    duration_seconds: int
    status: VideoStatus
    response_order: int
    created_at: datetime
    updated_at: datetime
