"""Gmail mail source for the email monitor."""
from .auth import GmailAuth
from .client import EmailMessage, GmailClient

__all__ = ["GmailAuth", "GmailClient", "EmailMessage"]
