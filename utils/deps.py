from core.database import SessionLocal
from core.config import settings
from core.exceptions import AuthenticationRequiredError, InvalidTokenError
from functools import lru_cache
from typing import Annotated
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from models.users import User
from services.auth_service import AuthService
from services.google_auth_service import GoogleTokenVerifier
from services.jwt_service import JwtService
from services.refresh_token_service import RefreshTokenService
from services.user_service import UserService
from utils.hashing import PasswordHasher


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


# Services are built once per process from settings. Tests replace them
# through app.dependency_overrides.

@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=settings.BCRYPT_ROUNDS)


@lru_cache
def get_jwt_service() -> JwtService:
    return JwtService.from_settings(settings)


@lru_cache
def get_refresh_token_service() -> RefreshTokenService:
    return RefreshTokenService.from_settings(settings)


@lru_cache
def get_google_verifier() -> GoogleTokenVerifier:
    # Holds the Google key cache, so it must live for the whole process
    return GoogleTokenVerifier.from_settings(settings)


def get_auth_service(
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    jwt_service: Annotated[JwtService, Depends(get_jwt_service)],
    refresh_tokens: Annotated[RefreshTokenService, Depends(get_refresh_token_service)],
    google_verifier: Annotated[GoogleTokenVerifier, Depends(get_google_verifier)],
) -> AuthService:
    return AuthService.from_settings(settings, hasher, jwt_service, refresh_tokens, google_verifier)

auth_service_dependency = Annotated[AuthService, Depends(get_auth_service)]
jwt_service_dependency = Annotated[JwtService, Depends(get_jwt_service)]


bearer_scheme = HTTPBearer(auto_error=False, description="Access token from /auth/login")


def get_current_user(
    request: Request,
    db: db_dependency,
    jwt_service: jwt_service_dependency,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> User:
    """
    Resolves the user behind the `Authorization: Bearer <token>` header.

    Raises:
        AuthenticationRequiredError: no bearer token was sent
        InvalidTokenError: bad signature, wrong issuer or type, unknown user
        AccessTokenExpiredError: the token has expired
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequiredError()

    token = credentials.credentials
    email = jwt_service.extract_username(token)

    user = UserService.get_by_email(db, email)
    if user is None or not jwt_service.is_token_valid(token, user):
        raise InvalidTokenError()

    request.state.user_id = user.id
    return user

user_dependency = Annotated[User, Depends(get_current_user)]
