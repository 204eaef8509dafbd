from typing import Annotated
from fastapi import APIRouter, Query, Request
from starlette import status
from utils.deps import user_dependency, db_dependency
from schemas.mailbox_schemas import MailboxResponse, EmailPreviewResponse, EmailDetailResponse, Page
from schemas.response import ApiResponse
from services.mailbox_service import MailboxService
from middleware.rate_limiter import limiter
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    tags=["mailboxes"]
)


@router.get("/mailboxes", status_code=status.HTTP_200_OK,
            response_model=ApiResponse[list[MailboxResponse]], response_model_exclude_none=True)
@limiter.limit("60/minute")
def get_mailboxes(request: Request, user: user_dependency, db: db_dependency):
    """
    List the current user's mailboxes with unread counts.
    """
    mailboxes = [
        MailboxResponse(id=mailbox.id, name=mailbox.name, type=mailbox.type, unread_count=unread)
        for mailbox, unread in MailboxService.get_mailboxes(db, user)
    ]
    return ApiResponse.ok(data=mailboxes)


@router.post("/mailboxes/seed", status_code=status.HTTP_200_OK,
             response_model=ApiResponse[None], response_model_exclude_none=True)
@limiter.limit("5/minute")
def seed_mailboxes(request: Request, user: user_dependency, db: db_dependency):
    """
    Fill the current user's account with sample mailboxes and emails.
    """
    MailboxService.seed_sample_data(db, user)
    return ApiResponse.ok(message="Sample data seeded successfully")


@router.get("/mailboxes/{mailbox_id}/emails", status_code=status.HTTP_200_OK,
            response_model=ApiResponse[Page[EmailPreviewResponse]], response_model_exclude_none=True)
@limiter.limit("60/minute")
def get_emails(request: Request, mailbox_id: int, user: user_dependency, db: db_dependency,
               page: Annotated[int, Query(ge=0)] = 0,
               size: Annotated[int, Query(ge=1, le=100)] = 20):
    """
    One page of emails in a mailbox, newest first.
    """
    emails, total = MailboxService.get_emails(db, user, mailbox_id, page, size)
    content = [EmailPreviewResponse.from_model(email) for email in emails]
    return ApiResponse.ok(data=Page.of(content, page, size, total))


@router.get("/emails/{email_id}", status_code=status.HTTP_200_OK,
            response_model=ApiResponse[EmailDetailResponse], response_model_exclude_none=True)
@limiter.limit("60/minute")
def get_email(request: Request, email_id: int, user: user_dependency, db: db_dependency):
    email = MailboxService.get_email(db, user, email_id)
    return ApiResponse.ok(data=EmailDetailResponse.from_model(email))
