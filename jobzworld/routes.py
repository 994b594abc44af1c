# API route definitions (HTTP layer)
# Service, health and authentication ENDPOINTS

from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse, Response
from .schemas import (
    ApiResponse,
    AuthResult,
    PasswordReset,
    PasswordResetRequest,
    RefreshTokenRequest,
    TokensOut,
    UserLogin,
    UserOut,
    UserRegister,
)
from .db import Database
from .models import User
from .dependencies import ResourceId, get_auth_service, get_current_user, get_database
from .services import AuthService
from .ratelimit import conditional_limit
from .config import settings


router = APIRouter()

@router.get("/")
def root():
    return {"app": settings.APP_NAME, "env": settings.APP_ENV}


@router.get("/health")
async def health_check(database: Database = Depends(get_database)):
    """Health check endpoint for load balancers and monitoring.

    Returns:
        - 200 OK if service and database are healthy
        - 503 Service Unavailable if the database is unreachable
    """
    health_status = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "environment": settings.APP_ENV,
    }

    # Check database connectivity with retry logic
    if await database.check_connection():
        health_status["database"] = "connected"
        return health_status

    health_status["status"] = "unhealthy"
    health_status["database"] = "disconnected"
    return JSONResponse(status_code=503, content=health_status)


@router.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)


# ============================================================================
# Authentication Endpoints
# ============================================================================

auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.post("/register", response_model=ApiResponse[AuthResult], status_code=201)
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def register(
    data: UserRegister,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    """Register a new account and start a session.

    Raises:
        400: Validation failed (weak password, bad email, unknown role)
        409: Email already exists
    """
    result = await auth.register(data.email, data.password, data.role, data.full_name)
    return ApiResponse(
        data=result,
        message="User registered successfully. Please check your email to verify your account.",
    )


@auth_router.post("/login", response_model=ApiResponse[AuthResult])
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def login(
    credentials: UserLogin,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    """Authenticate and return a fresh token pair.

    Raises:
        401: Invalid credentials (unknown email, wrong role, or wrong password)
    """
    result = await auth.login(credentials.email, credentials.password, credentials.role)
    return ApiResponse(data=result, message="Login successful")


@auth_router.post("/refresh-token", response_model=ApiResponse[TokensOut])
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def refresh_token(
    body: RefreshTokenRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    tokens = await auth.refresh(body.refresh_token)
    return ApiResponse(data=TokensOut(tokens=tokens), message="Token refreshed successfully")


@auth_router.post("/logout", response_model=ApiResponse[None])
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def logout(
    body: RefreshTokenRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    await auth.logout(body.refresh_token)
    return ApiResponse(message="Logout successful")


@auth_router.post("/verify-email/{user_id}", response_model=ApiResponse[None])
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def verify_email(
    user_id: ResourceId,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    await auth.verify_email(user_id)
    return ApiResponse(message="Email verified successfully")


@auth_router.post("/request-password-reset", response_model=ApiResponse[None])
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def request_password_reset(
    body: PasswordResetRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    """Always succeeds, whether or not the email belongs to an account."""
    await auth.request_password_reset(body.email)
    return ApiResponse(
        message="If an account with that email exists, a password reset link has been sent.",
    )


@auth_router.post("/reset-password", response_model=ApiResponse[None])
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def reset_password(
    body: PasswordReset,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    await auth.reset_password(body.token, body.password)
    return ApiResponse(message="Password reset successfully")


@auth_router.get("/profile", response_model=ApiResponse[dict[str, UserOut]])
@conditional_limit(settings.RATE_LIMIT_READ)
async def get_profile(
    request: Request,
    current_user: User = Depends(get_current_user),
):
    """Get the currently authenticated user's account.

    Requires:
        Authorization header with valid JWT Bearer token
    """
    return ApiResponse(
        data={"user": UserOut.model_validate(current_user)},
        message="Profile retrieved successfully",
    )
