"""Pytest fixtures for Job Inbox tests."""
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from email.utils import parseaddr
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.classification.rules import load_rule_table
from src.errors import ParseFailure, TransportFailure
from src.gmail.client import EmailMessage
from src.persistence.models import Base, TrackedJob


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def test_db():
    """Create a fresh in-memory database for each test."""
    # One shared connection: the monitor runs store work in worker threads
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def session_factory(test_db):
    """A get_session() stand-in bound to the in-memory database."""

    @contextmanager
    def _session():
        try:
            yield test_db
            test_db.commit()
        except Exception:
            test_db.rollback()
            raise

    return _session


@pytest.fixture
def job_factory(test_db):
    """
    Factory fixture to create tracked jobs.

    Usage:
        job = job_factory("Acme", "Software Engineer", status="applied")
    """

    def _create_job(company: str, title: str, status: str = "applied", url: str | None = None):
        job = TrackedJob(
            company_name=company,
            job_title=title,
            job_url=url or f"https://jobs.example.com/{company.lower().replace(' ', '-')}/{title.lower().replace(' ', '-')}",
            platform="linkedin",
            application_status=status,
        )
        test_db.add(job)
        test_db.commit()
        return job

    return _create_job


# =============================================================================
# EMAIL FIXTURES
# =============================================================================

RECEIVED_AT = datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)  # a Monday


@pytest.fixture
def rules():
    """The shipped rule table."""
    return load_rule_table()


@pytest.fixture
def make_email():
    """
    Factory fixture to build EmailMessage objects.

    Usage:
        email = make_email("Subject", "Body", from_header="Jane <jane@acme.com>")
    """
    counter = {"n": 0}

    def _make_email(
        subject: str,
        body: str,
        from_header: str = "Jordan Lee <jordan.lee@acme.com>",
        date: datetime = RECEIVED_AT,
        message_id: str | None = None,
        id: str | None = None,
    ) -> EmailMessage:
        counter["n"] += 1
        n = counter["n"]
        from_name, from_address = parseaddr(from_header)
        return EmailMessage(
            id=id or f"msg-{n}",
            thread_id=f"thread-{n}",
            subject=subject,
            from_header=from_header,
            from_address=from_address or from_header,
            from_name=from_name,
            date=date,
            body_text=body,
            message_id=message_id or f"<msg-{n}@mail.example.com>",
        )

    return _make_email


REJECTION_BODY = """Dear Alex,

Thank you for your application for the Software Engineer position at Acme. We have reviewed your background carefully.

After much deliberation, we have decided to move forward with other candidates whose experience more closely matches our needs.

Please feel free to apply for future openings.

Best regards,
Jordan Lee
Acme Recruiting
"""

ASSESSMENT_BODY = """Hi Alex,

Thank you for your application for the Senior Developer role at Blue Ridge. As the next step in our hiring process, please complete the coding assessment below:

https://app.codility.com/test/abc123

You will have 48 hours to complete the test once you start. Reply to this email if you have any questions.

Best regards,
Sam Carter
Blue Ridge Recruiting
"""

INTERVIEW_BODY = """Hi Alex,

Thanks again for your application for the Data Analyst position at Northwind. The team enjoyed reading your background and we would like to schedule a video interview with you next week.

Please pick a slot here: https://calendly.com/northwind-recruiting/interview

Kind regards,
Priya Shah
Northwind Talent
"""

NEWSLETTER_BODY = """This month at Acme: we shipped three features and we're hiring a Software Engineer and a Recruiter!

Read the full story on our blog.

You're receiving this email because you signed up at acme.com. Click here to unsubscribe.
"""


@pytest.fixture
def rejection_email(make_email):
    """Personalized rejection from an HR role account."""
    return make_email(
        "Thank you for your interest - Software Engineer Position",
        REJECTION_BODY,
        from_header="Acme Recruiting <hr@acme.com>",
    )


@pytest.fixture
def assessment_email(make_email):
    """Coding assessment invitation with a Codility link."""
    return make_email(
        "Next Steps: Technical Assessment - Senior Developer Role",
        ASSESSMENT_BODY,
        from_header="Blue Ridge Recruiting <recruiting@blueridge.io>",
    )


@pytest.fixture
def interview_email(make_email):
    """Interview invitation from a talent team."""
    return make_email(
        "Interview invitation - Data Analyst",
        INTERVIEW_BODY,
        from_header="Northwind Talent <talent@northwind.com>",
    )


@pytest.fixture
def newsletter_email(make_email):
    """Company newsletter that mentions open roles."""
    return make_email(
        "Acme Monthly Newsletter - March",
        NEWSLETTER_BODY,
        from_header="Acme <news@acme.com>",
    )


# =============================================================================
# MOCK FIXTURES (For external services)
# =============================================================================


class FakeMailSource:
    """In-memory mail source with switchable failures."""

    def __init__(self, emails=None):
        self.emails = {email.id: email for email in emails or []}
        self.broken_ids: set[str] = set()
        self.fail_search = False
        self.fail_fetch = False
        self.search_calls: list[datetime] = []
        self.search_before: list[datetime | None] = []
        self.fetch_calls: list[str] = []
        self.reconnects = 0

    def add(self, email: EmailMessage) -> None:
        self.emails[email.id] = email

    def search_unseen(self, since, max_results=100, label=None, before=None):
        self.search_calls.append(since)
        self.search_before.append(before)
        if self.fail_search:
            raise TransportFailure("search", "connection reset by peer")
        emails = [e for e in self.emails.values() if before is None or e.date < before]
        # Newest first, like Gmail; ties keep insertion order
        emails.sort(key=lambda e: e.date, reverse=True)
        return [e.id for e in emails][:max_results]

    def fetch(self, message_id):
        self.fetch_calls.append(message_id)
        if self.fail_fetch:
            raise TransportFailure("fetch", "connection reset by peer")
        if message_id in self.broken_ids:
            raise ParseFailure(message_id, "payload missing")
        return self.emails[message_id]

    def reconnect(self):
        self.reconnects += 1


@pytest.fixture
def mail_source():
    """Empty fake mail source."""
    return FakeMailSource()
