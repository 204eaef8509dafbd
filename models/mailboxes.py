from core.database import Base
from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin

class Mailbox(Base, CreatedAtMixin):
    """
    A folder of emails owned by one user (Inbox, Sent, ...).
    """
    __tablename__ = "mailboxes"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_mailboxes_user_name"),
    )

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    #relationships
    user = relationship("User", back_populates="mailboxes")
    emails = relationship("Email", back_populates="mailbox", cascade="all, delete-orphan")

    name = Column(String(100), nullable=False)
    # SYSTEM or CUSTOM
    type = Column(String(20), nullable=False, default="SYSTEM")
