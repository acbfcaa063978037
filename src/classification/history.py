"""Bounded in-memory record of recent classifications."""
from collections import Counter, OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from src.classification.types import ClassificationResult

MAX_ENTRIES = 1000
RECENT_LIMIT = 10


@dataclass
class HistoryEntry:
    """One classification, plus any feedback given on it later."""

    event_key: str
    subject: str
    sender_domain: str
    result: ClassificationResult
    classified_at: datetime
    feedback_type: Optional[str] = None
    feedback_notes: Optional[str] = None
    feedback_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "event_key": self.event_key,
            "subject": self.subject,
            "sender_domain": self.sender_domain,
            "type": self.result.type.value,
            "confidence": self.result.confidence,
            "classified_at": self.classified_at.isoformat(),
            "feedback_type": self.feedback_type,
        }


class ClassificationHistory:
    """Most recent classifications keyed by event key, oldest evicted first."""

    def __init__(self, max_entries: int = MAX_ENTRIES):
        self.max_entries = max_entries
        self._entries: OrderedDict[str, HistoryEntry] = OrderedDict()

    def add(self, event_key: str, subject: str, sender_domain: str, result: ClassificationResult) -> HistoryEntry:
        entry = HistoryEntry(
            event_key=event_key,
            subject=subject,
            sender_domain=sender_domain,
            result=result,
            classified_at=datetime.now(timezone.utc),
        )
        self._entries.pop(event_key, None)
        self._entries[event_key] = entry
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return entry

    def get(self, event_key: str) -> Optional[HistoryEntry]:
        return self._entries.get(event_key)

    def annotate(self, event_key: str, correct_type: str, notes: Optional[str] = None) -> bool:
        """Attach feedback to an entry. The stored result itself is untouched."""
        entry = self._entries.get(event_key)
        if not entry:
            return False
        entry.feedback_type = correct_type
        entry.feedback_notes = notes
        entry.feedback_at = datetime.now(timezone.utc)
        return True

    def stats(self) -> dict:
        """
        Summarize the retained history.

        Returns:
            Dict with total, counts by type and by sender domain, average
            confidence, and the most recent classifications (newest first)
        """
        entries = list(self._entries.values())
        by_type = Counter(e.result.type.value for e in entries)
        by_domain = Counter(e.sender_domain or "unknown" for e in entries)
        avg_confidence = (
            round(sum(e.result.confidence for e in entries) / len(entries), 1) if entries else 0.0
        )

        return {
            "total": len(entries),
            "by_type": dict(by_type),
            "by_domain": dict(by_domain),
            "average_confidence": avg_confidence,
            "feedback_count": sum(1 for e in entries if e.feedback_type),
            "recent": [e.to_dict() for e in reversed(entries[-RECENT_LIMIT:])],
        }

    def __len__(self) -> int:
        return len(self._entries)
