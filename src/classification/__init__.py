"""Email classification engine."""
from .classifier import EmailClassifier
from .combiner import ACCEPTANCE_THRESHOLD, is_accepted
from .history import ClassificationHistory
from .types import ClassificationResult, EmailType, SenderType

__all__ = [
    "EmailClassifier",
    "ClassificationHistory",
    "ClassificationResult",
    "EmailType",
    "SenderType",
    "ACCEPTANCE_THRESHOLD",
    "is_accepted",
]
