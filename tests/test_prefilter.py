"""Tests for the exclusion prefilter."""
import pytest

from src.classification.prefilter import ExclusionPrefilter


@pytest.fixture
def prefilter(rules):
    """Create a prefilter over the shipped rule table."""
    return ExclusionPrefilter(rules)


class TestExclusionPrefilter:
    """Tests for ExclusionPrefilter."""

    def test_newsletter_excluded_despite_job_content(self, prefilter, newsletter_email):
        """A newsletter is excluded even when it mentions open roles."""
        assert prefilter.is_excluded(newsletter_email)
        assert prefilter.match_reason(newsletter_email).startswith("newsletter")

    @pytest.mark.parametrize(
        "subject,body",
        [
            ("Spring sale", "Everything is 30% off this weekend. Shop now!"),
            ("Live session", "Join our free webinar on system design interviews."),
            ("We value your opinion", "Please take our short survey about your recent purchase."),
            ("Jobs you may like", "5 new jobs matching your search: Software Engineer at Acme"),
            ("Big news", "Read our press release about the Series C funding round."),
            ("Save the date", "You're invited to our career fair. Register now for free entry."),
            ("Your job alert for Software Engineer", "Here are today's matches."),
            ("Weekly job alerts", "Senior Engineer at Globex, Data Analyst at Initech"),
            ("Product update: faster dashboards", "Dashboards now load twice as fast."),
        ],
    )
    def test_strong_signals_excluded(self, prefilter, make_email, subject, body):
        """Each exclusion theme catches its typical email."""
        assert prefilter.is_excluded(make_email(subject, body))

    def test_bulk_relay_sender_excluded(self, prefilter, make_email):
        """Mail relayed through a bulk sender domain is excluded."""
        email = make_email(
            "Application update",
            "Your application status changed.",
            from_header="Careers <bounce@em1234.sendgrid.net>",
        )
        assert prefilter.is_excluded(email)
        assert "sendgrid.net" in prefilter.match_reason(email)

    def test_real_job_mail_passes(self, prefilter, rejection_email, assessment_email, interview_email):
        """Personal recruiting mail is never excluded."""
        for email in (rejection_email, assessment_email, interview_email):
            assert not prefilter.is_excluded(email)
            assert prefilter.match_reason(email) is None

    def test_product_launch_in_interview_passes(self, prefilter, make_email):
        """A product launch mentioned in passing is not an announcement."""
        email = make_email(
            "Interview for the Product Manager role",
            "We'd like to schedule an interview to hear about the product launch you led at Initech.",
        )
        assert not prefilter.is_excluded(email)

    def test_job_alert_footer_passes(self, prefilter, make_email):
        """ATS footers that mention job alerts do not exclude a confirmation."""
        email = make_email(
            "Thank you for applying to Acme",
            "We have received your application for the Product Manager position.\n\n"
            "You can manage job alerts from your candidate profile.",
            from_header="Acme <noreply@greenhouse.io>",
        )
        assert not prefilter.is_excluded(email)

    def test_interview_with_word_offer_passes(self, prefilter, make_email):
        """Ordinary words like 'offer' or 'invite' alone do not exclude."""
        email = make_email(
            "Interview for the Backend Engineer role",
            "We'd like to invite you to a final interview. We can offer Tuesday or Wednesday.",
        )
        assert not prefilter.is_excluded(email)
