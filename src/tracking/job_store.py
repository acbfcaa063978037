"""SQL-backed job-tracking store."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.persistence.models import ClassificationFeedback, EmailEvent, TrackedJob

logger = logging.getLogger(__name__)

# Columns callers may set through update_job_fields/upsert_job
JOB_FIELDS = (
    "job_title",
    "company_name",
    "job_url",
    "platform",
    "location",
    "posted_date",
    "application_status",
    "applied_date",
    "assessment_link",
    "assessment_deadline",
    "notes",
)

EMAIL_EVENT_FIELDS = (
    "job_id",
    "email_type",
    "email_subject",
    "email_from",
    "email_content",
    "event_metadata",
    "received_at",
    "processed_at",
)

DEFAULT_EVENT_WINDOW = timedelta(hours=1)


class JobStore:
    """Store for tracked jobs, email events and classification feedback.

    Writes are flushed, not committed: the caller owns the transaction
    (normally one ``get_session()`` block per processed email).
    """

    def __init__(self, session: Session):
        """
        Initialize job store.

        Args:
            session: Database session
        """
        self.session = session

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def list_jobs(self, status: Optional[str] = None) -> list[TrackedJob]:
        """List tracked jobs, oldest first, optionally filtered by status."""
        stmt = select(TrackedJob).order_by(TrackedJob.created_at, TrackedJob.id)
        if status:
            stmt = stmt.where(TrackedJob.application_status == status)
        return list(self.session.execute(stmt).scalars().all())

    def get_job(self, job_id: str) -> Optional[TrackedJob]:
        """Get a job by ID."""
        return self.session.get(TrackedJob, job_id)

    def get_job_by_url(self, job_url: str) -> Optional[TrackedJob]:
        """Get a job by its unique URL."""
        stmt = select(TrackedJob).where(TrackedJob.job_url == job_url)
        return self.session.execute(stmt).scalar_one_or_none()

    def update_job_status(self, job_url: str, status: str) -> Optional[TrackedJob]:
        """
        Set the application status of the job with the given URL.

        Returns:
            The updated job, or None if no job has that URL
        """
        _validate_status(status)
        job = self.get_job_by_url(job_url)
        if not job:
            return None
        job.application_status = status
        self.session.flush()
        return job

    def update_job_fields(self, job_id: str, **fields) -> Optional[TrackedJob]:
        """
        Update arbitrary job columns.

        Raises:
            ValueError: If a field is not a job column or a status is invalid
        """
        _validate_fields(fields)
        job = self.get_job(job_id)
        if not job:
            return None
        for name, value in fields.items():
            setattr(job, name, value)
        self.session.flush()
        return job

    def append_note(self, job_id: str, text: str) -> Optional[TrackedJob]:
        """Append text to a job's notes. Existing notes are never rewritten."""
        job = self.get_job(job_id)
        if not job:
            return None
        job.notes = (job.notes or "") + text
        self.session.flush()
        return job

    def upsert_job(self, data: dict) -> TrackedJob:
        """Create a job, or update the one that already has ``data['job_url']``."""
        if not data.get("job_url"):
            raise ValueError("job_url is required")
        _validate_fields(data)

        job = self.get_job_by_url(data["job_url"])
        if job:
            for name, value in data.items():
                if value is not None:
                    setattr(job, name, value)
        else:
            job = TrackedJob(**data)
            self.session.add(job)
            logger.info("Created job %s at %s", job.job_title, job.company_name)

        self.session.flush()
        return job

    # ------------------------------------------------------------------
    # Email events
    # ------------------------------------------------------------------

    def find_recent_email_event(
        self,
        subject: str,
        from_: str,
        around: Optional[datetime] = None,
        window: timedelta = DEFAULT_EVENT_WINDOW,
    ) -> Optional[EmailEvent]:
        """
        Find an event with the same subject and sender near ``around``.

        Args:
            subject: Email subject
            from_: Raw From header
            around: Date of the incoming email, matched against the stored
                events' ``received_at``. Without it, events processed within
                the window of now are matched instead.
            window: Half-width of the matching window

        Returns:
            The most recent matching event, or None
        """
        if around is not None:
            # Stored datetimes are naive UTC
            around = around.astimezone(timezone.utc) if around.tzinfo else around
            column = EmailEvent.received_at
        else:
            around = datetime.now(timezone.utc)
            column = EmailEvent.processed_at

        stmt = (
            select(EmailEvent)
            .where(
                EmailEvent.email_subject == subject,
                EmailEvent.email_from == from_,
                column >= around - window,
                column <= around + window,
            )
            .order_by(EmailEvent.processed_at.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def insert_email_event(self, data: dict) -> EmailEvent:
        """Insert an email event. Events are append-only."""
        unknown = set(data) - set(EMAIL_EVENT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown email event fields: {sorted(unknown)}")

        event = EmailEvent(**data)
        self.session.add(event)
        self.session.flush()
        return event

    def get_email_event(self, event_id: str) -> Optional[EmailEvent]:
        """Get an email event by ID."""
        return self.session.get(EmailEvent, event_id)

    def list_email_events(
        self,
        job_id: Optional[str] = None,
        email_type: Optional[str] = None,
        limit: Optional[int] = 50,
    ) -> list[EmailEvent]:
        """List email events, newest first."""
        stmt = select(EmailEvent).order_by(EmailEvent.processed_at.desc())
        if job_id:
            stmt = stmt.where(EmailEvent.job_id == job_id)
        if email_type:
            stmt = stmt.where(EmailEvent.email_type == email_type)
        if limit:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def record_feedback(
        self,
        event_key: str,
        correct_type: str,
        original_type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ClassificationFeedback:
        """Persist a user correction of a classification."""
        feedback = ClassificationFeedback(
            event_key=event_key,
            original_type=original_type,
            correct_type=correct_type,
            notes=notes,
        )
        self.session.add(feedback)
        self.session.flush()
        return feedback

    def list_feedback(self, event_key: Optional[str] = None) -> list[ClassificationFeedback]:
        """List recorded feedback, oldest first."""
        stmt = select(ClassificationFeedback).order_by(ClassificationFeedback.created_at)
        if event_key:
            stmt = stmt.where(ClassificationFeedback.event_key == event_key)
        return list(self.session.execute(stmt).scalars().all())


def _validate_status(status: str) -> None:
    if status not in TrackedJob.STATUSES:
        raise ValueError(f"Invalid status '{status}'. Must be one of: {', '.join(TrackedJob.STATUSES)}")


def _validate_fields(fields: dict) -> None:
    unknown = set(fields) - set(JOB_FIELDS)
    if unknown:
        raise ValueError(f"Unknown job fields: {sorted(unknown)}")
    if fields.get("application_status") is not None:
        _validate_status(fields["application_status"])
