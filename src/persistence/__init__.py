"""Database persistence layer."""
from .database import get_session, init_db
from .models import Base, ClassificationFeedback, EmailEvent, TrackedJob

__all__ = [
    "Base",
    "TrackedJob",
    "EmailEvent",
    "ClassificationFeedback",
    "init_db",
    "get_session",
]
