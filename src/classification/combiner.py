"""Evidence combiner: blend pattern, context and sender evidence into one result."""
from typing import Optional

from src.classification.types import (
    ClassificationResult,
    ContextAnalysis,
    PatternMatch,
    SenderAnalysis,
)

PATTERN_WEIGHT = 0.4
CONTEXT_WEIGHT = 0.3
SENDER_WEIGHT = 0.3

RECRUITING_SENDER_BONUS = 10
PERSONALIZED_BONUS = 5

# Pre-bonus blend needed to call an email job-related
RELATEDNESS_THRESHOLD = 50

# Final confidence needed before a result is acted on
ACCEPTANCE_THRESHOLD = 70


class EvidenceCombiner:
    """Weighted blend of the three analyses.

    The combiner never filters on confidence; applying
    ``ACCEPTANCE_THRESHOLD`` is the caller's job (see ``is_accepted``).
    """

    def combine(
        self,
        pattern: Optional[PatternMatch],
        context: ContextAnalysis,
        sender: SenderAnalysis,
    ) -> Optional[ClassificationResult]:
        if pattern is None:
            return None

        blended = (
            PATTERN_WEIGHT * pattern.confidence
            + CONTEXT_WEIGHT * context.score
            + SENDER_WEIGHT * sender.score
        )

        confidence = blended
        if sender.is_recruiting_related:
            confidence += RECRUITING_SENDER_BONUS
        if context.is_personalized:
            confidence += PERSONALIZED_BONUS
        confidence = round(min(100.0, max(0.0, confidence)), 1)

        return ClassificationResult(
            type=pattern.type,
            confidence=confidence,
            is_job_related=blended >= RELATEDNESS_THRESHOLD,
            next_steps=pattern.next_steps,
            summary=pattern.summary,
            sender_analysis=sender,
            context_analysis=context,
            pattern_confidence=pattern.confidence,
            company=pattern.company,
            job_title=pattern.job_title,
            deadline=pattern.deadline,
            assessment_link=pattern.assessment_link,
        )


def is_accepted(result: Optional[ClassificationResult]) -> bool:
    """True if a result is job-related and confident enough to act on."""
    return (
        result is not None
        and result.is_job_related
        and result.confidence >= ACCEPTANCE_THRESHOLD
    )
