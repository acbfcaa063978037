"""Email classifier: prefilter, three analyzers, evidence combiner."""
import logging
from typing import Optional

from src.classification.combiner import EvidenceCombiner
from src.classification.context import ContextAnalyzer
from src.classification.history import ClassificationHistory
from src.classification.patterns import PatternClassifier
from src.classification.prefilter import ExclusionPrefilter
from src.classification.rules import RuleTable, load_rule_table
from src.classification.sender import SenderAnalyzer
from src.classification.types import ClassificationResult, EmailType
from src.dedup.deduplicator import ProcessedEmailCache
from src.gmail.client import EmailMessage
from src.tracking.job_store import JobStore

logger = logging.getLogger(__name__)


class EmailClassifier:
    """Classify emails into job-lifecycle events.

    ``classify`` is deterministic for a given email and rule table. The only
    state kept is the history used for stats and feedback, which never
    influences a classification.
    """

    def __init__(
        self,
        rules: Optional[RuleTable] = None,
        history: Optional[ClassificationHistory] = None,
    ):
        """
        Initialize classifier.

        Args:
            rules: Rule table (defaults to config/email_rules.yaml)
            history: History to record classifications in (a fresh one by default)
        """
        rules = rules or load_rule_table()
        self.prefilter = ExclusionPrefilter(rules)
        self.patterns = PatternClassifier(rules)
        self.context = ContextAnalyzer()
        self.sender = SenderAnalyzer()
        self.combiner = EvidenceCombiner()
        self.history = history if history is not None else ClassificationHistory()

    def classify(self, email: EmailMessage) -> Optional[ClassificationResult]:
        """
        Classify an email.

        Returns:
            ClassificationResult, or None if the email is excluded or nothing
            job-like was found. Callers apply the acceptance gate themselves.
        """
        if self.prefilter.is_excluded(email):
            return None

        pattern = self.patterns.classify(email)
        if pattern is None:
            logger.debug("No job pattern in %r", email.subject)
            return None

        result = self.combiner.combine(
            pattern,
            self.context.analyze(email),
            self.sender.analyze(email),
        )

        self.history.add(
            ProcessedEmailCache.key_for(email),
            email.subject,
            result.sender_analysis.domain,
            result,
        )
        logger.debug(
            "Classified %r as %s (confidence %.1f, pattern %d, context %d, sender %d)",
            email.subject,
            result.type.value,
            result.confidence,
            result.pattern_confidence,
            result.context_analysis.score,
            result.sender_analysis.score,
        )
        return result

    def record_feedback(
        self,
        event_key: str,
        correct_type: str,
        notes: Optional[str] = None,
        store: Optional[JobStore] = None,
        original_type: Optional[str] = None,
    ) -> bool:
        """
        Record a user correction for a classification.

        Annotates the history entry (if still retained) and, given a store,
        persists a ClassificationFeedback row. Stored events and jobs are
        never changed.

        Returns:
            True if the feedback was recorded anywhere
        """
        EmailType(correct_type)  # raises ValueError on an unknown type

        entry = self.history.get(event_key)
        if entry and original_type is None:
            original_type = entry.result.type.value
        annotated = self.history.annotate(event_key, correct_type, notes)

        if store is not None:
            store.record_feedback(
                event_key,
                correct_type,
                original_type=original_type,
                notes=notes,
            )

        recorded = annotated or store is not None
        if recorded:
            logger.info("Feedback for %s: %s -> %s", event_key, original_type, correct_type)
        else:
            logger.warning("No classification found for %s; feedback dropped", event_key)
        return recorded

    def stats(self) -> dict:
        """Classification statistics over the retained history."""
        return self.history.stats()
