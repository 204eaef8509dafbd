import math
from datetime import datetime
from typing import Generic, TypeVar
from schemas.auth_schemas import CamelModel

T = TypeVar("T")


class MailboxResponse(CamelModel):
    id: int
    name: str
    type: str
    unread_count: int = 0


class EmailPreviewResponse(CamelModel):
    id: int
    sender: str
    subject: str | None = None
    preview: str | None = None
    sent_at: datetime | None = None
    is_read: bool
    is_starred: bool

    @classmethod
    def from_model(cls, email) -> "EmailPreviewResponse":
        return cls(
            id=email.id,
            sender=email.sender,
            subject=email.subject,
            preview=email.preview,
            sent_at=email.sent_at,
            is_read=email.is_read,
            is_starred=email.is_starred,
        )


class EmailDetailResponse(CamelModel):
    id: int
    sender: str
    recipient: str
    subject: str | None = None
    body: str | None = None
    sent_at: datetime | None = None
    is_read: bool
    is_starred: bool

    @classmethod
    def from_model(cls, email) -> "EmailDetailResponse":
        return cls(
            id=email.id,
            sender=email.sender,
            recipient=email.recipient,
            subject=email.subject,
            body=email.body,
            sent_at=email.sent_at,
            is_read=email.is_read,
            is_starred=email.is_starred,
        )


class Page(CamelModel, Generic[T]):
    """One page of a listing; page numbers start at 0."""
    content: list[T]
    page: int
    size: int
    total_elements: int
    total_pages: int

    @classmethod
    def of(cls, content: list, page: int, size: int, total: int) -> "Page":
        return cls(
            content=content,
            page=page,
            size=size,
            total_elements=total,
            total_pages=math.ceil(total / size),
        )
