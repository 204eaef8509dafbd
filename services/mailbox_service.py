from datetime import datetime, timedelta, timezone
from sqlalchemy import func
from sqlalchemy.orm import Session
from core.exceptions import MailboxNotFoundError, EmailNotFoundError
from models.emails import Email
from models.mailboxes import Mailbox
from models.users import User
from utils.logger import get_logger

logger = get_logger(__name__)

SYSTEM_MAILBOXES = ("Inbox", "Sent", "Trash", "Drafts", "Starred")
PREVIEW_LENGTH = 50


def make_preview(body: str) -> str:
    if len(body) <= PREVIEW_LENGTH:
        return body
    return body[:PREVIEW_LENGTH] + "..."


class MailboxService:
    """
    Mailboxes and emails (sample data until real accounts are connected).

    Everything is scoped to the requesting user: a mailbox or email that
    belongs to someone else is reported as not found.
    """

    @staticmethod
    def get_mailboxes(db: Session, user: User) -> list[tuple[Mailbox, int]]:
        """Returns the user's mailboxes with their unread counts."""
        unread = (
            db.query(Email.mailbox_id, func.count(Email.id))
            .join(Mailbox, Email.mailbox_id == Mailbox.id)
            .filter(Mailbox.user_id == user.id, Email.is_read.is_(False))
            .group_by(Email.mailbox_id)
            .all()
        )
        counts = dict(unread)

        mailboxes = db.query(Mailbox).filter(Mailbox.user_id == user.id).order_by(Mailbox.id).all()
        return [(mailbox, counts.get(mailbox.id, 0)) for mailbox in mailboxes]

    @staticmethod
    def get_mailbox(db: Session, user: User, mailbox_id: int) -> Mailbox:
        mailbox = (
            db.query(Mailbox)
            .filter(Mailbox.id == mailbox_id, Mailbox.user_id == user.id)
            .one_or_none()
        )
        if mailbox is None:
            raise MailboxNotFoundError()
        return mailbox

    @staticmethod
    def get_emails(db: Session, user: User, mailbox_id: int, page: int = 0,
                   size: int = 20) -> tuple[list[Email], int]:
        """
        One page of a mailbox, newest first.

        Returns:
            (emails on the page, total number of emails in the mailbox)
        """
        mailbox = MailboxService.get_mailbox(db, user, mailbox_id)

        query = db.query(Email).filter(Email.mailbox_id == mailbox.id)
        total = query.count()
        emails = (
            query.order_by(Email.sent_at.desc(), Email.id.desc())
            .offset(page * size)
            .limit(size)
            .all()
        )
        return emails, total

    @staticmethod
    def get_email(db: Session, user: User, email_id: int) -> Email:
        email = (
            db.query(Email)
            .join(Mailbox, Email.mailbox_id == Mailbox.id)
            .filter(Email.id == email_id, Mailbox.user_id == user.id)
            .one_or_none()
        )
        if email is None:
            raise EmailNotFoundError()
        return email

    @staticmethod
    def seed_sample_data(db: Session, user: User) -> int:
        """
        Creates the system mailboxes and a few sample emails.

        Mailboxes the user already has are left alone and sample emails only
        go into mailboxes created by this call, so seeding twice adds nothing.

        Returns:
            Number of mailboxes created
        """
        existing = {
            mailbox.name
            for mailbox in db.query(Mailbox).filter(Mailbox.user_id == user.id)
        }

        created = {}
        for name in SYSTEM_MAILBOXES:
            if name not in existing:
                created[name] = Mailbox(user_id=user.id, name=name, type="SYSTEM")
                db.add(created[name])
        db.flush()

        now = datetime.now(timezone.utc)
        if "Inbox" in created:
            inbox = created["Inbox"]
            _add_email(db, inbox, "boss@company.com", user.email, "Meeting Update",
                       "Meeting moved to 3 PM", now - timedelta(hours=1), is_read=True)
            _add_email(db, inbox, "newsletter@tech.com", user.email, "Weekly Tech News",
                       "Here is the latest in tech: new releases, security advisories and more.",
                       now - timedelta(days=1))
        if "Sent" in created:
            _add_email(db, created["Sent"], user.email, "client@gmail.com", "Project Proposal",
                       "Attached is the proposal...", now - timedelta(hours=2),
                       is_read=True, is_starred=True)

        db.commit()
        logger.info("Sample mailboxes seeded", extra={"user_id": user.id, "count": len(created)})
        return len(created)


def _add_email(db: Session, mailbox: Mailbox, sender: str, recipient: str, subject: str,
               body: str, sent_at: datetime, is_read: bool = False, is_starred: bool = False):
    db.add(Email(
        mailbox_id=mailbox.id,
        sender=sender,
        recipient=recipient,
        subject=subject,
        body=body,
        preview=make_preview(body),
        sent_at=sent_at,
        is_read=is_read,
        is_starred=is_starred,
    ))
