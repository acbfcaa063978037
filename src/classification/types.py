"""Result types produced by the email classification pipeline."""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class EmailType(Enum):
    """Job-lifecycle event type of an email."""

    REJECTION = "rejection"
    INTERVIEW_INVITE = "interview_invite"
    ASSESSMENT = "assessment"
    OFFER = "offer"
    APPLICATION_CONFIRMATION = "application_confirmation"
    FOLLOWUP_REQUEST = "followup_request"
    SCREENING_CALL = "screening_call"
    OTHER = "other"
    NOT_JOB_RELATED = "not_job_related"

    @property
    def label(self) -> str:
        """Human-readable name, e.g. 'interview invite'."""
        return self.value.replace("_", " ")


class SenderType(Enum):
    """Credibility tier of an email sender."""

    ATS_PLATFORM = "ats_platform"
    HR_TEAM = "hr_team"
    RECRUITER = "recruiter"
    COMPANY_EMAIL = "company_email"
    GENERIC = "generic"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SenderAnalysis:
    """How credible the sender is as a hiring contact."""

    score: int
    type: SenderType
    domain: str
    is_recruiting_related: bool


@dataclass(frozen=True)
class ContextIndicators:
    """Independent indicators the context analyzer checked in an email."""

    personalized_content: bool
    has_job_title: bool
    has_company_name: bool
    has_application_reference: bool
    has_action_items: bool
    has_signature: bool
    email_length: int


@dataclass(frozen=True)
class ContextAnalysis:
    """How personalized (vs. bulk/automated) an email looks."""

    score: int
    indicators: ContextIndicators
    is_personalized: bool


@dataclass(frozen=True)
class PatternMatch:
    """Output of the pattern classifier, before evidence is combined."""

    type: EmailType
    confidence: int
    next_steps: str
    company: Optional[str] = None
    job_title: Optional[str] = None
    deadline: Optional[date] = None
    assessment_link: Optional[str] = None
    from_domain: str = ""

    @property
    def summary(self) -> str:
        if self.type == EmailType.OTHER:
            return "Job-related email but specific type unclear"
        return f"Pattern-matched as {self.type.label}"


@dataclass(frozen=True)
class ClassificationResult:
    """Final, immutable classification of one email."""

    type: EmailType
    confidence: float
    is_job_related: bool
    next_steps: str
    summary: str
    sender_analysis: SenderAnalysis
    context_analysis: ContextAnalysis
    pattern_confidence: int
    company: Optional[str] = None
    job_title: Optional[str] = None
    deadline: Optional[date] = None
    assessment_link: Optional[str] = None

    def to_metadata(self, message_id: Optional[str] = None) -> dict:
        """JSON-safe metadata stored alongside an EmailEvent."""
        return {
            "confidence": self.confidence,
            "next_steps": self.next_steps,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "assessment_link": self.assessment_link,
            "message_id": message_id,
            "company": self.company,
            "job_title": self.job_title,
            "sender_type": self.sender_analysis.type.value,
            "sender_score": self.sender_analysis.score,
            "context_score": self.context_analysis.score,
            "pattern_confidence": self.pattern_confidence,
        }
