"""Mailbox monitoring loop."""
from .email_monitor import EmailMonitor, MailSource

__all__ = ["EmailMonitor", "MailSource"]
