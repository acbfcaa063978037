"""Email deduplication: in-process cache plus a persisted-event guard."""
import logging
from datetime import datetime, timedelta
from typing import Optional

from src.gmail.client import EmailMessage
from src.persistence.models import EmailEvent
from src.tracking.job_store import DEFAULT_EVENT_WINDOW, JobStore

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"


class ProcessedEmailCache:
    """Keys of emails already handled by this process.

    Lives as long as the process and is never evicted. Restarts are covered
    by ``PersistedEventGuard``.
    """

    def __init__(self):
        self._keys: set[str] = set()

    @staticmethod
    def key_for(email: EmailMessage) -> str:
        """Identity of an email: message id, subject, sender and date."""
        return KEY_SEPARATOR.join([
            email.message_id or "",
            email.subject or "",
            email.from_header or "",
            email.date.isoformat() if email.date else "",
        ])

    def seen(self, key: str) -> bool:
        """Check if a key has been processed."""
        return key in self._keys

    def mark(self, key: str) -> None:
        """Mark a key as processed."""
        self._keys.add(key)

    def __len__(self) -> int:
        return len(self._keys)


class PersistedEventGuard:
    """Looks for an already stored event with the same subject and sender."""

    def __init__(self, store: JobStore, window: timedelta = DEFAULT_EVENT_WINDOW):
        self.store = store
        self.window = window

    def recently_seen(
        self,
        subject: str,
        from_: str,
        around: Optional[datetime] = None,
    ) -> Optional[EmailEvent]:
        """Return the existing event within the window, or None."""
        event = self.store.find_recent_email_event(subject, from_, around=around, window=self.window)
        if event:
            logger.debug("Event for %r from %s already stored (%s)", subject, from_, event.id)
        return event


class EmailDeduplicator:
    """Both dedup guards behind one object.

    The cache is checked before any classification work; the persisted guard
    is built per store (i.e. per session) and checked before an event insert.
    """

    def __init__(
        self,
        cache: Optional[ProcessedEmailCache] = None,
        window: timedelta = DEFAULT_EVENT_WINDOW,
    ):
        self.cache = cache or ProcessedEmailCache()
        self.window = window

    def is_duplicate(self, email: EmailMessage) -> bool:
        """Check if this process already handled the email."""
        return self.cache.seen(self.cache.key_for(email))

    def mark_seen(self, email: EmailMessage) -> None:
        """Record the email as handled by this process."""
        self.cache.mark(self.cache.key_for(email))

    def guard(self, store: JobStore) -> PersistedEventGuard:
        """Persisted-event guard bound to ``store``."""
        return PersistedEventGuard(store, window=self.window)
