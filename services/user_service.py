from sqlalchemy.orm import Session
from core.exceptions import ValidationError
from models.users import User
from utils.logger import get_logger

logger = get_logger(__name__)


class UserService:
    """
    Credential store: lookups and writes on the users table.

    Emails are compared lower-cased. Writes flush so the new id is available;
    committing is left to the caller.
    """

    @staticmethod
    def get_by_email(db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == email.strip().lower()).one_or_none()

    @staticmethod
    def get_by_google_id(db: Session, google_id: str) -> User | None:
        return db.query(User).filter(User.google_id == google_id).one_or_none()

    @staticmethod
    def get_by_id(db: Session, user_id: int) -> User | None:
        return db.query(User).filter(User.id == user_id).one_or_none()

    @staticmethod
    def exists_by_email(db: Session, email: str) -> bool:
        return db.query(User.id).filter(User.email == email.strip().lower()).first() is not None

    @staticmethod
    def create(db: Session, email: str, name: str, hashed_password: str | None = None,
               google_id: str | None = None) -> User:
        if hashed_password is None and google_id is None:
            raise ValidationError("A user needs a password or a Google account")

        user = User(
            email=email.strip().lower(),
            name=name,
            hashed_password=hashed_password,
            google_id=google_id,
        )
        db.add(user)
        db.flush()
        return user

    @staticmethod
    def link_google_account(db: Session, user: User, google_id: str) -> User:
        if user.google_id is not None and user.google_id != google_id:
            raise ValidationError("Account is already linked to another Google account")
        user.google_id = google_id
        db.flush()
        logger.info("Google account linked", extra={"user_id": user.id})
        return user

    @staticmethod
    def update_profile(db: Session, user: User, name: str) -> User:
        user.name = name
        db.commit()
        db.refresh(user)
        return user
