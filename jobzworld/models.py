"""SQLAlchemy ORM models for database tables."""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    CheckConstraint,
)
from sqlalchemy.sql import func
from .db import Base
from .config import settings


class UserRole(str, enum.Enum):
    CANDIDATE = "candidate"
    EMPLOYER = "employer"


class WorkingModel(str, enum.Enum):
    REMOTE = "remote"
    HYBRID = "hybrid"
    ONSITE = "onsite"


class EmploymentType(str, enum.Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"


class VideoStatus(str, enum.Enum):
    PENDING = "pending"
    READY = "ready"
    PROCESSING = "processing"
    FAILED = "failed"


# ==================== Credentials ====================


class User(Base):
    """User account mapped to 'users' table."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('candidate', 'employer')", name="ck_users_role"),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(settings.EMAIL_MAX_LENGTH), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UserSession(Base):
    """Refresh-token record; the token itself is the primary key."""

    __tablename__ = "user_sessions"

    id = Column(String(1024), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class PasswordResetToken(Base):
    """Single-use password reset token."""

    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True)
    token = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# ==================== Profiles ====================


class CandidateProfile(Base):
    """Candidate profile; user_id is NULL while the profile is an unclaimed guest profile."""

    __tablename__ = "candidate_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, unique=True)
    full_name = Column(String(settings.FULL_NAME_MAX_LENGTH), nullable=False)
    location = Column(String(100), nullable=True)
    has_work_authorization = Column(Boolean, default=False, nullable=False)
    languages = Column(JSON, default=list, nullable=False)
    years_experience = Column(Integer, default=0, nullable=False)
    target_job_titles = Column(JSON, default=list, nullable=False)
    preferred_industries = Column(JSON, default=list, nullable=False)
    working_model = Column(String(20), default=WorkingModel.REMOTE.value, nullable=False)
    salary_min = Column(Integer, nullable=True)
    salary_max = Column(Integer, nullable=True)
    salary_currency = Column(String(3), default="USD", nullable=False)
    is_willing_to_relocate = Column(Boolean, default=False, nullable=False)
    skills = Column(JSON, default=list, nullable=False)
    achievements = Column(Text, default="", nullable=False)
    has_consented_ai_analysis = Column(Boolean, default=False, nullable=False)
    is_profile_complete = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class Company(Base):
    """Employer company; user_id is NULL while the company is an unclaimed guest profile."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, unique=True)
    company_name = Column(String(200), nullable=False)
    industry = Column(String(100), nullable=True)
    company_size = Column(String(50), nullable=True)
    location = Column(String(100), nullable=True)
    website = Column(String(255), nullable=True)
    description = Column(Text, default="", nullable=False)
    company_values = Column(JSON, default=list, nullable=False)
    work_culture = Column(Text, default="", nullable=False)
    has_video_intro = Column(Boolean, default=False, nullable=False)
    video_intro_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class JobPosting(Base):
    __tablename__ = "job_postings"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    job_title = Column(String(200), nullable=False)
    department = Column(String(100), nullable=True)
    employment_type = Column(String(20), default=EmploymentType.FULL_TIME.value, nullable=False)
    working_model = Column(String(20), default=WorkingModel.REMOTE.value, nullable=False)
    location = Column(String(100), nullable=True)
    salary_min = Column(Integer, nullable=True)
    salary_max = Column(Integer, nullable=True)
    salary_currency = Column(String(3), default="USD", nullable=False)
    experience_level = Column(String(50), nullable=True)
    requirements = Column(JSON, default=list, nullable=False)
    responsibilities = Column(JSON, default=list, nullable=False)
    benefits = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class VideoResponse(Base):
    """Recorded answer to an interview question, stored on disk."""

    __tablename__ = "video_responses"

    id = Column(Integer, primary_key=True, index=True)
    candidate_profile_id = Column(
        Integer, ForeignKey("candidate_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_text = Column(Text, nullable=False)
    video_url = Column(String(500), nullable=True)
    duration_seconds = Column(Integer, nullable=False)
    status = Column(String(20), default=VideoStatus.PENDING.value, nullable=False)
    response_order = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
