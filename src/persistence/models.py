"""SQLAlchemy models for Job Inbox."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TrackedJob(Base):
    """A job the user is tracking through the hiring pipeline."""

    __tablename__ = "jobs"

    # Statuses: viewed, applied, assessment, interviewing, offer, rejected
    STATUSES = ("viewed", "applied", "assessment", "interviewing", "offer", "rejected")
    TERMINAL_STATUSES = ("rejected", "offer")

    id = Column(String, primary_key=True, default=generate_uuid)
    job_title = Column(String, nullable=False)
    company_name = Column(String, nullable=False)
    job_url = Column(String, unique=True, nullable=False)
    platform = Column(String)  # linkedin, indeed, email, ...
    location = Column(String)
    posted_date = Column(Date)

    application_status = Column(String, nullable=False, default="viewed")
    applied_date = Column(Date)

    # Assessment tracking
    assessment_link = Column(String)
    assessment_deadline = Column(Date)

    # Append-only audit log
    notes = Column(Text)

    created_at = Column(DateTime, default=utcnow)
    last_seen_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    email_events = relationship("EmailEvent", back_populates="job")

    def __repr__(self) -> str:
        return f"<TrackedJob {self.company_name} - {self.job_title} ({self.application_status})>"


class EmailEvent(Base):
    """One row per uniquely processed job-related email."""

    __tablename__ = "email_events"
    __table_args__ = (
        Index("ix_email_events_subject_from", "email_subject", "email_from"),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    job_id = Column(String, ForeignKey("jobs.id"), nullable=True)  # Null for orphan events
    email_type = Column(String, nullable=False)
    email_subject = Column(String)
    email_from = Column(String)
    email_content = Column(Text)  # Excerpt, not the full body
    event_metadata = Column("metadata", JSON)  # confidence, next_steps, deadline, ...
    received_at = Column(DateTime)
    processed_at = Column(DateTime, default=utcnow, index=True)

    job = relationship("TrackedJob", back_populates="email_events")

    def __repr__(self) -> str:
        return f"<EmailEvent {self.email_type}: {self.email_subject}>"


class ClassificationFeedback(Base):
    """User correction of a classification, kept for future rule tuning."""

    __tablename__ = "classification_feedback"

    id = Column(String, primary_key=True, default=generate_uuid)
    event_key = Column(String, nullable=False, index=True)
    original_type = Column(String)
    correct_type = Column(String, nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<ClassificationFeedback {self.original_type} -> {self.correct_type}>"
