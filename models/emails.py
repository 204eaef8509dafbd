from core.database import Base
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin

class Email(Base, CreatedAtMixin):
    __tablename__ = "emails"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    mailbox_id = Column(Integer, ForeignKey("mailboxes.id", ondelete="CASCADE"), nullable=False, index=True)

    #relationships
    mailbox = relationship("Mailbox", back_populates="emails")

    sender = Column(String(255), nullable=False)
    recipient = Column(String(255), nullable=False)
    subject = Column(String(500))
    body = Column(Text)
    preview = Column(Text)
    sent_at = Column(DateTime(timezone=True), index=True)
    is_read = Column(Boolean, default=False, nullable=False)
    is_starred = Column(Boolean, default=False, nullable=False)
