from fastapi import APIRouter, Request
from starlette import status
from utils.deps import db_dependency, auth_service_dependency, user_dependency
from schemas.auth_schemas import (RegisterRequest, LoginRequest, GoogleLoginRequest,
RefreshTokenRequest, AuthResult)
from schemas.response import ApiResponse
from middleware.rate_limiter import limiter
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/register", status_code=status.HTTP_200_OK,
             response_model=ApiResponse[None], response_model_exclude_none=True)
@limiter.limit("3/minute")
def register(request: Request, body: RegisterRequest, db: db_dependency, auth: auth_service_dependency):
    """
    Create a password account. Tokens are not issued; log in afterwards.
    """
    auth.register(db, body)
    return ApiResponse.ok(message="User registered successfully. Please login.")


@router.post("/login", response_model=ApiResponse[AuthResult], response_model_exclude_none=True)
@limiter.limit("5/minute")
def login(request: Request, body: LoginRequest, db: db_dependency, auth: auth_service_dependency):
    result = auth.login(db, body.email, body.password)
    return ApiResponse.ok(data=result)


@router.post("/google", response_model=ApiResponse[AuthResult], response_model_exclude_none=True)
@limiter.limit("10/minute")
def google_login(request: Request, body: GoogleLoginRequest, db: db_dependency, auth: auth_service_dependency):
    """
    Exchange a Google ID token (from the frontend's Google sign-in) for our own token pair.
    First sign-in with a new Google account creates the user.
    """
    result = auth.google_login(db, body.id_token)
    return ApiResponse.ok(data=result)


@router.post("/refresh", response_model=ApiResponse[AuthResult], response_model_exclude_none=True)
@limiter.limit("10/minute")
def refresh_token(request: Request, body: RefreshTokenRequest, db: db_dependency, auth: auth_service_dependency):
    """
    Get a new access token (and, with rotation, a new refresh token).
    """
    result = auth.refresh(db, body.refresh_token)
    return ApiResponse.ok(data=result)


@router.post("/logout", response_model=ApiResponse[None], response_model_exclude_none=True)
@limiter.limit("10/minute")
def logout(request: Request, body: RefreshTokenRequest, db: db_dependency, auth: auth_service_dependency):
    """
    Revoke a refresh token. Logging out twice with the same token fails with 401.
    """
    auth.logout(db, body.refresh_token)
    return ApiResponse.ok(message="Logged out successfully")


@router.post("/logout-all", response_model=ApiResponse[None], response_model_exclude_none=True)
@limiter.limit("5/minute")
def logout_all(request: Request, user: user_dependency, db: db_dependency, auth: auth_service_dependency):
    """
    Revoke every refresh token of the current user (sign out on all devices).
    """
    count = auth.logout_all(db, user)
    return ApiResponse.ok(message=f"Logged out from {count} session(s)")
