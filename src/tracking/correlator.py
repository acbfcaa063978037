"""Correlate classified emails with tracked jobs and apply status transitions."""
import logging
from datetime import datetime, timezone
from typing import Optional

from src.classification.types import ClassificationResult, EmailType
from src.dedup.deduplicator import PersistedEventGuard, ProcessedEmailCache
from src.gmail.client import EmailMessage
from src.persistence.models import EmailEvent, TrackedJob
from src.tracking.job_store import JobStore

logger = logging.getLogger(__name__)

# Email type -> job status. Unlisted types leave the status alone.
STATUS_MAP = {
    EmailType.REJECTION: "rejected",
    EmailType.ASSESSMENT: "assessment",
    EmailType.INTERVIEW_INVITE: "interviewing",
    EmailType.OFFER: "offer",
}

# Only these create a job when nothing matches; other types become orphan events
JOB_CREATING_TYPES = {
    EmailType.INTERVIEW_INVITE: "interviewing",
    EmailType.ASSESSMENT: "assessment",
}

UNKNOWN_COMPANY = "Unknown Company"
DEFAULT_JOB_TITLE = "Position from Email"
EMAIL_PLATFORM = "email"
EXCERPT_LENGTH = 2000


def _fuzzy_match(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive substring match in either direction."""
    if not a or not b:
        return False
    a, b = a.lower(), b.lower()
    return a in b or b in a


def synthetic_job_url(company: str) -> str:
    """Stable placeholder URL for jobs first seen in email: 'mailto:acmecorp-job'."""
    return f"mailto:{''.join(company.lower().split())}-job"


def audit_note(result: ClassificationResult, when: Optional[datetime] = None) -> str:
    """Timestamped audit block appended to a job's notes."""
    when = when or datetime.now(timezone.utc)
    return (
        f"\n--- Email Update ({when.isoformat()}) ---\n"
        f"Type: {result.type.value}\n"
        f"Summary: {result.summary}\n"
        f"Next Steps: {result.next_steps or ''}"
    )


class JobCorrelator:
    """Tie a classification to a tracked job and record the email event."""

    def __init__(self, store: JobStore, guard: Optional[PersistedEventGuard] = None):
        """
        Initialize correlator.

        Args:
            store: Job store bound to the current session
            guard: Persisted duplicate guard (defaults to one over ``store``)
        """
        self.store = store
        self.guard = guard or PersistedEventGuard(store)

    def find_matching_job(self, result: ClassificationResult) -> Optional[TrackedJob]:
        """First tracked job whose company (and title, if known) fuzzy-matches."""
        if not result.company:
            return None

        for job in self.store.list_jobs():
            if not _fuzzy_match(job.company_name, result.company):
                continue
            if result.job_title and not _fuzzy_match(job.job_title, result.job_title):
                continue
            return job
        return None

    def correlate(self, result: ClassificationResult, email: EmailMessage) -> EmailEvent:
        """
        Apply a classification to the job store.

        Returns:
            The stored EmailEvent, or the already existing one if the same
            subject and sender were recorded within the dedup window
        """
        existing = self.guard.recently_seen(email.subject, email.from_header, around=email.date)
        if existing:
            logger.info("Duplicate email %r from %s, keeping event %s", email.subject, email.from_header, existing.id)
            return existing

        job = self.find_matching_job(result)
        if job:
            self._update_job(job, result)
        elif result.type in JOB_CREATING_TYPES:
            job = self._create_job(result)
        else:
            logger.info("No tracked job for %s email %r, storing orphan event", result.type.value, email.subject)

        return self._store_event(result, email, job.id if job else None)

    def _update_job(self, job: TrackedJob, result: ClassificationResult) -> None:
        new_status = STATUS_MAP.get(result.type)
        current = job.application_status

        if new_status and new_status != current:
            if current in TrackedJob.TERMINAL_STATUSES and new_status not in TrackedJob.TERMINAL_STATUSES:
                logger.info(
                    "Job %s is %s; not moving it back to %s", job.id, current, new_status
                )
            else:
                self.store.update_job_status(job.job_url, new_status)
                logger.info("Job %s (%s): %s -> %s", job.id, job.company_name, current, new_status)

        if result.type == EmailType.ASSESSMENT:
            fields = {}
            if result.assessment_link:
                fields["assessment_link"] = result.assessment_link
            if result.deadline:
                fields["assessment_deadline"] = result.deadline
            if fields:
                self.store.update_job_fields(job.id, **fields)

        self.store.append_note(job.id, audit_note(result))

    def _create_job(self, result: ClassificationResult) -> TrackedJob:
        company = result.company or UNKNOWN_COMPANY
        existing = self.store.get_job_by_url(synthetic_job_url(company))
        if existing:
            # Placeholder from an earlier email whose title did not match
            self._update_job(existing, result)
            return existing

        data = {
            "job_title": result.job_title or DEFAULT_JOB_TITLE,
            "company_name": company,
            "job_url": synthetic_job_url(company),
            "platform": EMAIL_PLATFORM,
            "application_status": JOB_CREATING_TYPES[result.type],
        }
        if result.type == EmailType.ASSESSMENT:
            data["assessment_link"] = result.assessment_link
            data["assessment_deadline"] = result.deadline

        job = self.store.upsert_job(data)
        self.store.append_note(job.id, audit_note(result))
        return job

    def _store_event(self, result: ClassificationResult, email: EmailMessage, job_id: Optional[str]) -> EmailEvent:
        metadata = result.to_metadata(message_id=email.message_id)
        metadata["event_key"] = ProcessedEmailCache.key_for(email)

        received_at = email.date.astimezone(timezone.utc) if email.date else None
        return self.store.insert_email_event({
            "job_id": job_id,
            "email_type": result.type.value,
            "email_subject": email.subject,
            "email_from": email.from_header,
            "email_content": (email.body_text or "")[:EXCERPT_LENGTH],
            "event_metadata": metadata,
            "received_at": received_at,
        })
