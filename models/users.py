from core.database import Base
from sqlalchemy import Column, Integer, String, CheckConstraint
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin, UpdatedAtMixin

class User(Base, CreatedAtMixin, UpdatedAtMixin):
    """
    An account that can sign in with a password, with Google, or both.
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "hashed_password IS NOT NULL OR google_id IS NOT NULL",
            name="ck_users_has_credential"
        ),
    )

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #relationships
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")
    mailboxes = relationship("Mailbox", back_populates="user", cascade="all, delete-orphan")

    # Stored lower-cased
    email = Column(String(255), unique=True, nullable=False, index=True)
    # Null for accounts created through Google sign-in
    hashed_password = Column(String(255), nullable=True)
    google_id = Column(String(255), unique=True, nullable=True, index=True)
    name = Column(String(255), nullable=False)
