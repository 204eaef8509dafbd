from models.users import User
from models.refresh_tokens import RefreshToken
from models.mailboxes import Mailbox
from models.emails import Email

__all__ = ["User", "RefreshToken", "Mailbox", "Email"]
