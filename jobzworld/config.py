"""Configuration management and validation using Pydantic."""

import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator


class Settings(BaseSettings):
    """Application configuration settings loaded from environment variables or .env files."""

    @staticmethod
    def get_env_file() -> str | None:
        """Determine which .env file to load based on environment variables.

        Returns:
            None if SKIP_ENV_FILE is set (Docker/direct env vars)
            .env.{APP_ENV} file path otherwise (defaults to .env.dev)
        """
        if os.getenv("SKIP_ENV_FILE"):
            return None
        env = os.getenv("APP_ENV", "dev")
        env_file = f".env.{env}"
        if not os.path.exists(env_file):
            raise FileNotFoundError(
                f"Environment file '{env_file}' not found. "
                f"Create it or set APP_ENV to 'dev' or 'production'."
            )
        return env_file

    model_config = SettingsConfigDict(
        env_file=get_env_file.__func__(),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # ==================== Application Settings ====================
    APP_NAME: str = "Jobzworld API"
    APP_ENV: str = "dev"
    DB_URL: str  # Required, defined in .env files
    FRONTEND_URL: str = "http://localhost:3000"

    # ==================== Database Connection Pooling ====================
    DB_POOL_SIZE: int = 20  # Persistent connections in pool
    DB_MAX_OVERFLOW: int = 10  # Additional connections beyond pool size
    DB_POOL_TIMEOUT: int = 10  # Seconds to wait for available connection
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour

    # ==================== Database Resilience ====================
    DB_RETRY_MAX_ATTEMPTS: int = 3  # Max retry attempts for failed queries
    DB_RETRY_BASE_DELAY: float = 0.5  # Base delay for exponential backoff (seconds)
    DB_QUERY_TIMEOUT: int = 60  # Query execution timeout (seconds)
    DB_CONNECT_TIMEOUT: int = 10  # Connection establishment timeout (seconds)

    # ==================== CORS Settings ====================
    CORS_ORIGINS: str = "http://localhost:3000"  # Comma-separated allowed origins

    # ==================== Pagination ====================
    DEFAULT_PAGE: int = 1
    DEFAULT_LIMIT: int = 20
    MAX_LIMIT: int = 100

    # ==================== Field Validation ====================
    EMAIL_MAX_LENGTH: int = 255
    FULL_NAME_MAX_LENGTH: int = 100

    # ==================== JWT Authentication ====================
    JWT_SECRET_KEY: str  # Required, signs access tokens
    JWT_REFRESH_SECRET_KEY: str  # Required, signs refresh tokens
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # ==================== Passwords ====================
    BCRYPT_ROUNDS: int = 12
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60

    # ==================== Email ====================
    EMAIL_BACKEND: str = "console"  # "console" logs messages, "smtp" delivers them
    EMAIL_FROM: str = "no-reply@jobzworld.com"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT: int = 10

    # ==================== Video Uploads ====================
    VIDEO_UPLOAD_DIR: str = "./uploads/videos"

    # ==================== Rate Limiting ====================
    RATE_LIMIT_AUTH: str = "5/15minutes"
    RATE_LIMIT_WRITE: str = "60/minute"
    RATE_LIMIT_READ: str = "100/minute"

    # ==================== Graceful Shutdown ====================
    GRACEFUL_SHUTDOWN_TIMEOUT: int = 30  # Max wait time for active requests (seconds)

    # ==================== Logging ====================
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FILE: str | None = "app.log"  # None to disable file logging
    LOG_FORMAT: str = "console"  # "console" for dev, "json" for production

    @field_validator('DB_URL')
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        """Validate that DB_URL is provided and uses an async driver."""
        if not v:
            raise ValueError("DB_URL is required but not provided in environment variables")
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError(
                "DB_URL must be an async connection string (postgresql+asyncpg:// or sqlite+aiosqlite://)"
            )
        return v

    @field_validator('JWT_SECRET_KEY', 'JWT_REFRESH_SECRET_KEY')
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Validate that JWT secrets are provided and sufficiently long."""
        if not v:
            raise ValueError("JWT secrets are required but not provided in environment variables")
        if len(v) < 32:
            raise ValueError("JWT secrets must be at least 32 characters long for security")
        return v

    @field_validator('EMAIL_BACKEND')
    @classmethod
    def validate_email_backend(cls, v: str) -> str:
        if v not in ("console", "smtp"):
            raise ValueError("EMAIL_BACKEND must be 'console' or 'smtp'")
        return v

    @model_validator(mode="after")
    def validate_distinct_secrets(self) -> "Settings":
        """Access and refresh tokens must be signed with different secrets."""
        if self.JWT_SECRET_KEY == self.JWT_REFRESH_SECRET_KEY:
            raise ValueError("JWT_SECRET_KEY and JWT_REFRESH_SECRET_KEY must differ")
        return self

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list of allowed origins."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

settings = Settings()
