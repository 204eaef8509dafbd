import hashlib
from datetime import datetime, timezone, timedelta
from sqlalchemy.orm import Session
from models.refresh_tokens import RefreshToken
from models.users import User
from core.config import Settings
from core.exceptions import NotFoundError, ExpiredError
from utils.logger import get_logger

logger = get_logger(__name__)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is written in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(token: RefreshToken, now: datetime | None = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return _as_utc(token.expires_at) <= now


class RefreshTokenService:
    """
    Persistence of refresh tokens.

    Methods flush but never commit: the caller (AuthService) owns the
    transaction so that multi-step operations such as rotation are atomic.
    The one exception is verify_expiration, whose cleanup must survive the
    error it raises.
    """

    def __init__(self, ttl: timedelta = timedelta(days=7), max_per_user: int = 5):
        self.ttl = ttl
        self.max_per_user = max_per_user

    @classmethod
    def from_settings(cls, settings: Settings) -> "RefreshTokenService":
        return cls(
            ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            max_per_user=settings.REFRESH_TOKEN_MAX_PER_USER,
        )

    def create(self, db: Session, user: User, token: str) -> RefreshToken:
        """
        Stores a new refresh token for the user.

        If the user already holds max_per_user tokens, the oldest ones are
        deleted first so the new token fits under the cap.
        """
        self._evict_oldest(db, user.id, keep=self.max_per_user - 1)

        db_token = RefreshToken(
            user_id=user.id,
            token_hash=hash_token(token),
            expires_at=datetime.now(timezone.utc) + self.ttl,
        )
        db.add(db_token)
        db.flush()
        return db_token

    def _evict_oldest(self, db: Session, user_id: int, keep: int):
        existing = (
            db.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id)
            .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
            .all()
        )
        evicted = existing[keep:]
        for token in evicted:
            db.delete(token)
        if evicted:
            db.flush()
            logger.info(
                "Evicted oldest refresh tokens",
                extra={"user_id": user_id, "count": len(evicted)}
            )

    def find_by_token(self, db: Session, token: str) -> RefreshToken:
        db_token = db.query(RefreshToken).filter(RefreshToken.token_hash == hash_token(token)).first()
        if not db_token:
            raise NotFoundError()
        return db_token

    def verify_expiration(self, db: Session, token: RefreshToken) -> RefreshToken:
        """
        Returns the token if it is still valid.

        An expired token is deleted (and committed) before ExpiredError is
        raised, so presenting it again yields NotFoundError.
        """
        if is_expired(token):
            user_id = token.user_id
            db.delete(token)
            db.commit()
            logger.info("Expired refresh token removed", extra={"user_id": user_id})
            raise ExpiredError()
        return token

    def consume(self, db: Session, token: str) -> None:
        """
        Deletes the token row, failing if it is already gone.

        The conditional DELETE is what makes concurrent refreshes with the
        same token safe: only one transaction can remove the row.
        """
        deleted = (
            db.query(RefreshToken)
            .filter(RefreshToken.token_hash == hash_token(token))
            .delete(synchronize_session="fetch")
        )
        if deleted != 1:
            raise NotFoundError()

    def delete_by_token(self, db: Session, token: str) -> int:
        return (
            db.query(RefreshToken)
            .filter(RefreshToken.token_hash == hash_token(token))
            .delete(synchronize_session="fetch")
        )

    def delete_by_user_id(self, db: Session, user_id: int) -> int:
        return (
            db.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id)
            .delete(synchronize_session="fetch")
        )

    def delete_expired_tokens(self, db: Session, now: datetime | None = None) -> int:
        """
        Removes every token whose expiry has passed and commits.

        Returns:
            Number of rows deleted (0 when run again immediately)
        """
        now = now or datetime.now(timezone.utc)
        deleted = (
            db.query(RefreshToken)
            .filter(RefreshToken.expires_at <= now)
            .delete(synchronize_session="fetch")
        )
        db.commit()
        logger.info("Deleted expired refresh tokens", extra={"count": deleted})
        return deleted
