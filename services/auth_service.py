from contextlib import contextmanager
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from core.config import Settings
from core.exceptions import ConflictError, InvalidCredentialsError, InvalidGoogleTokenError
from models.users import User
from schemas.auth_schemas import RegisterRequest, AuthResult
from services.jwt_service import JwtService
from services.refresh_token_service import RefreshTokenService
from services.google_auth_service import GoogleIdentity, GoogleTokenVerifier
from services.user_service import UserService
from utils.hashing import PasswordHasher
from utils.logger import get_logger

logger = get_logger(__name__)


@contextmanager
def transaction(db: Session):
    """Commit on success, roll back on any error."""
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


class AuthService:
    """
    Registration, login (password and Google), refresh and logout.

    Each public method is one transaction: either all its writes are
    committed or none are.
    """

    def __init__(self, hasher: PasswordHasher, jwt_service: JwtService,
                 refresh_tokens: RefreshTokenService, google_verifier: GoogleTokenVerifier,
                 rotation_enabled: bool = True, require_verified_google_email: bool = True):
        self.hasher = hasher
        self.jwt_service = jwt_service
        self.refresh_tokens = refresh_tokens
        self.google_verifier = google_verifier
        self.rotation_enabled = rotation_enabled
        self.require_verified_google_email = require_verified_google_email

    @classmethod
    def from_settings(cls, settings: Settings, hasher: PasswordHasher, jwt_service: JwtService,
                      refresh_tokens: RefreshTokenService,
                      google_verifier: GoogleTokenVerifier) -> "AuthService":
        return cls(
            hasher=hasher,
            jwt_service=jwt_service,
            refresh_tokens=refresh_tokens,
            google_verifier=google_verifier,
            rotation_enabled=settings.REFRESH_TOKEN_ROTATION_ENABLED,
            require_verified_google_email=settings.GOOGLE_REQUIRE_VERIFIED_EMAIL,
        )

    def register(self, db: Session, request: RegisterRequest) -> User:
        """
        Creates a password account. No tokens are issued; the user logs in
        separately.

        Raises:
            ConflictError: the email is already registered (any letter case)
        """
        if UserService.exists_by_email(db, request.email):
            logger.warning(
                "Registration attempt with existing email",
                extra={"email": request.email}
            )
            raise ConflictError()

        try:
            with transaction(db):
                user = UserService.create(
                    db,
                    email=request.email,
                    name=request.name,
                    hashed_password=self.hasher.hash(request.password),
                )
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email
            raise ConflictError()

        logger.info("User registered", extra={"user_id": user.id, "email": user.email})
        return user

    def login(self, db: Session, email: str, password: str) -> AuthResult:
        """
        Password login.

        Unknown email, Google-only account and wrong password all raise the
        same InvalidCredentialsError so the response cannot be used to discover
        which emails have accounts.
        """
        user = UserService.get_by_email(db, email)

        if not user:
            # Spend a bcrypt round anyway so unknown emails are not faster to reject
            self.hasher.dummy_verify()
            logger.warning("Login failed - user not found", extra={"email": email})
            raise InvalidCredentialsError()

        if user.hashed_password is None:
            # Google-only account: same cost as a wrong password
            self.hasher.dummy_verify()
            logger.warning(
                "Login failed - no password set",
                extra={"user_id": user.id, "email": email}
            )
            raise InvalidCredentialsError()

        if not self.hasher.verify(password, user.hashed_password):
            logger.warning(
                "Login failed - invalid password",
                extra={"user_id": user.id, "email": email}
            )
            raise InvalidCredentialsError()

        with transaction(db):
            result = self.issue_token_pair(db, user)

        logger.info("User logged in", extra={"user_id": user.id, "email": user.email})
        return result

    def google_login(self, db: Session, id_token: str) -> AuthResult:
        """
        Sign in with a Google ID token.

        The user is found by Google subject id; failing that, an existing
        account with the same email gets the Google id linked; failing that,
        a new Google-only account is created.

        Linking requires a verified email and an account that is not yet
        linked to a different Google id.
        """
        identity = self.google_verifier.verify(id_token)

        if self.require_verified_google_email and not identity.email_verified:
            logger.warning(
                "Google login rejected - email not verified",
                extra={"email": identity.email}
            )
            raise InvalidGoogleTokenError()

        with transaction(db):
            user = UserService.get_by_google_id(db, identity.subject)
            if user is None:
                user = UserService.get_by_email(db, identity.email)
                if user is not None:
                    self._check_can_link(user, identity)
                    UserService.link_google_account(db, user, identity.subject)
                else:
                    user = UserService.create(
                        db,
                        email=identity.email,
                        name=identity.name or identity.email.split("@")[0],
                        google_id=identity.subject,
                    )
                    logger.info("User created from Google sign-in", extra={"user_id": user.id})

            result = self.issue_token_pair(db, user)

        logger.info("Google user logged in", extra={"user_id": user.id, "email": user.email})
        return result

    @staticmethod
    def _check_can_link(user: User, identity: GoogleIdentity):
        if not identity.email_verified:
            logger.warning(
                "Google login rejected - unverified email matches an existing account",
                extra={"user_id": user.id}
            )
            raise InvalidGoogleTokenError()

        if user.google_id is not None and user.google_id != identity.subject:
            logger.warning(
                "Google login rejected - account is linked to another Google id",
                extra={"user_id": user.id}
            )
            raise InvalidGoogleTokenError()

    def issue_token_pair(self, db: Session, user: User) -> AuthResult:
        """Mints an access token and stores a new refresh token. Does not commit."""
        access_token = self.jwt_service.generate_access_token(user)
        refresh_token = self.jwt_service.generate_refresh_token()
        self.refresh_tokens.create(db, user, refresh_token)

        return AuthResult(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="Bearer",
            expires_in=self.jwt_service.access_token_ttl_seconds,
        )

    def refresh(self, db: Session, refresh_token: str) -> AuthResult:
        """
        Exchanges a refresh token for a new access token.

        With rotation enabled the presented token is consumed and a new one
        returned in the same transaction; using the old token again raises
        NotFoundError. With rotation disabled the same token is handed back.

        Raises:
            NotFoundError: unknown, revoked or already rotated token
            ExpiredError: token past its expiry (the row is removed)
        """
        stored = self.refresh_tokens.find_by_token(db, refresh_token)
        self.refresh_tokens.verify_expiration(db, stored)
        user = stored.user

        if not self.rotation_enabled:
            logger.info("Access token refreshed", extra={"user_id": user.id})
            return AuthResult(
                access_token=self.jwt_service.generate_access_token(user),
                refresh_token=refresh_token,
                token_type="Bearer",
                expires_in=self.jwt_service.access_token_ttl_seconds,
            )

        with transaction(db):
            self.refresh_tokens.consume(db, refresh_token)
            result = self.issue_token_pair(db, user)

        logger.info("Access token refreshed, refresh token rotated", extra={"user_id": user.id})
        return result

    def logout(self, db: Session, refresh_token: str) -> None:
        """
        Revokes one refresh token.

        Raises:
            NotFoundError: the token is unknown or was already revoked
        """
        stored = self.refresh_tokens.find_by_token(db, refresh_token)
        user_id = stored.user_id

        with transaction(db):
            self.refresh_tokens.consume(db, refresh_token)

        logger.info("User logged out", extra={"user_id": user_id})

    def logout_all(self, db: Session, user: User) -> int:
        """Revokes every refresh token of the user (sign out on all devices)."""
        with transaction(db):
            count = self.refresh_tokens.delete_by_user_id(db, user.id)

        logger.info("User logged out from all sessions", extra={"user_id": user.id, "count": count})
        return count
