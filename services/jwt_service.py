import secrets
from datetime import datetime, timezone, timedelta
from jose import jwt, JWTError, ExpiredSignatureError
from core.config import Settings
from core.exceptions import InvalidTokenError, AccessTokenExpiredError
from utils.logger import get_logger

logger = get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"

# 48 random bytes -> 64 url-safe characters, 384 bits of entropy
REFRESH_TOKEN_BYTES = 48


class JwtService:
    """
    Issues and validates the application's own tokens.

    Access tokens are HMAC-signed JWTs. Refresh tokens are opaque random
    strings; their validity lives in the refresh_tokens table, not in claims.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", issuer: str = "email-client-ai",
                 access_token_ttl: timedelta = timedelta(minutes=15), leeway_seconds: int = 5):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.issuer = issuer
        self.access_token_ttl = access_token_ttl
        self.leeway_seconds = leeway_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "JwtService":
        return cls(
            secret_key=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            issuer=settings.JWT_ISSUER,
            access_token_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            leeway_seconds=settings.JWT_CLOCK_SKEW_SECONDS,
        )

    @property
    def access_token_ttl_seconds(self) -> int:
        return int(self.access_token_ttl.total_seconds())

    def generate_access_token(self, user, expires_delta: timedelta | None = None) -> str:
        """
        Creates a signed access token for a user.

        Args:
            user: Anything with `email` and `id` attributes
            expires_delta: Override of the configured lifetime (tests use negative values)

        Returns:
            JWT string with sub, id, iss, iat, exp and type claims
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user.email,
            "id": user.id,
            "iss": self.issuer,
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self.access_token_ttl),
            "type": ACCESS_TOKEN_TYPE,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    @staticmethod
    def generate_refresh_token() -> str:
        return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)

    def decode(self, token: str) -> dict:
        """
        Verifies signature, issuer and expiry and returns the claims.

        Only the configured algorithm is accepted, so unsigned ("none") tokens
        and tokens signed with another algorithm fail here.

        Raises:
            AccessTokenExpiredError: the token is past its exp (beyond leeway)
            InvalidTokenError: anything else wrong with the token
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"leeway": self.leeway_seconds, "require_exp": True, "require_sub": True},
            )
        except ExpiredSignatureError:
            raise AccessTokenExpiredError()
        except JWTError as e:
            logger.debug("Access token rejected", extra={"reason": str(e)})
            raise InvalidTokenError()

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            logger.debug("Access token rejected", extra={"reason": "wrong token type"})
            raise InvalidTokenError()

        return payload

    def extract_username(self, token: str) -> str:
        return self.decode(token)["sub"]

    def is_token_valid(self, token: str, user) -> bool:
        try:
            return self.extract_username(token) == user.email
        except InvalidTokenError:
            return False
