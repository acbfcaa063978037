"""Tests for the EmailClassifier facade, history and feedback."""
import pytest

from src.classification.classifier import EmailClassifier
from src.classification.combiner import is_accepted
from src.classification.history import ClassificationHistory
from src.classification.types import EmailType, SenderType
from src.dedup.deduplicator import ProcessedEmailCache
from src.persistence.models import ClassificationFeedback
from src.tracking.job_store import JobStore


@pytest.fixture
def classifier(rules):
    """Create a classifier over the shipped rule table."""
    return EmailClassifier(rules)


class TestScenarios:
    """End-to-end classification of representative emails."""

    def test_rejection(self, classifier, rejection_email):
        result = classifier.classify(rejection_email)

        assert result.type == EmailType.REJECTION
        assert result.confidence > 80
        assert result.is_job_related
        assert is_accepted(result)
        assert result.company == "Acme"
        assert result.job_title == "Software Engineer"

    def test_assessment(self, classifier, assessment_email):
        result = classifier.classify(assessment_email)

        assert result.type == EmailType.ASSESSMENT
        assert result.confidence > 80
        assert "codility.com" in result.assessment_link
        assert result.deadline is not None

    def test_combined_assessment_from_recruiting_team(self, classifier, make_email):
        """All three analyses agree on a recruiter-sent assessment."""
        email = make_email(
            "Technical Assessment - ML Engineer Position",
            "Dear Venkatesh,\n\n"
            "Thank you for your application for the Machine Learning Engineer position at AICompany.\n\n"
            "We would like you to complete a technical assessment to evaluate your coding skills. "
            "Please use the link below to access the test:\n\n"
            "https://hackerrank.com/test/xyz123\n\n"
            "You have 3 days to complete the assessment. Please let me know if you have any questions.\n\n"
            "Best regards,\nAlex Thompson\nTechnical Recruiter\nAICompany",
            from_header="recruiting@aicompany.com",
        )
        result = classifier.classify(email)

        assert result.type == EmailType.ASSESSMENT
        assert result.confidence > 85
        assert result.is_job_related
        assert result.sender_analysis.is_recruiting_related
        assert result.context_analysis.is_personalized
        assert result.assessment_link == "https://hackerrank.com/test/xyz123"

    def test_ats_confirmation(self, classifier, make_email):
        email = make_email(
            "Thank you for applying to Acme",
            "Hi Alex, thank you for applying to the Product Manager position at Acme. We have "
            "received your application and our team will review it shortly.\n\nBest,\nAcme Recruiting",
            from_header="Acme <noreply@greenhouse.io>",
        )
        result = classifier.classify(email)

        assert result.type == EmailType.APPLICATION_CONFIRMATION
        assert result.sender_analysis.type == SenderType.ATS_PLATFORM
        assert result.sender_analysis.score > 80
        assert is_accepted(result)

    def test_newsletter_excluded(self, classifier, newsletter_email):
        assert classifier.classify(newsletter_email) is None
        assert len(classifier.history) == 0

    def test_nothing_job_like(self, classifier, make_email):
        email = make_email("Lunch?", "Are you free for lunch on Thursday? The new place on 5th is good.")
        assert classifier.classify(email) is None

    def test_low_confidence_not_accepted(self, classifier, make_email):
        """Vague job mail from a free-mail sender stays below the gate."""
        email = make_email(
            "Quick question",
            "Are you still looking at new job opportunities?",
            from_header="friend@gmail.com",
        )
        result = classifier.classify(email)

        assert result.type == EmailType.OTHER
        assert 0 <= result.confidence <= 100
        assert not is_accepted(result)

    def test_deterministic(self, classifier, rejection_email, assessment_email):
        for email in (rejection_email, assessment_email):
            first = classifier.classify(email)
            second = classifier.classify(email)
            assert first.type == second.type
            assert first.confidence == second.confidence
            assert first == second


class TestHistoryAndFeedback:
    """Tests for classification history and feedback."""

    def test_history_records_classifications(self, classifier, rejection_email, assessment_email):
        classifier.classify(rejection_email)
        classifier.classify(assessment_email)

        stats = classifier.stats()
        assert stats["total"] == 2
        assert stats["by_type"] == {"rejection": 1, "assessment": 1}
        assert stats["by_domain"] == {"acme.com": 1, "blueridge.io": 1}
        assert stats["recent"][0]["type"] == "assessment"
        assert stats["average_confidence"] > 80

    def test_feedback_annotates_without_rewriting(self, classifier, rejection_email):
        result = classifier.classify(rejection_email)
        key = ProcessedEmailCache.key_for(rejection_email)

        assert classifier.record_feedback(key, "other", notes="Actually a referral thank-you")

        entry = classifier.history.get(key)
        assert entry.feedback_type == "other"
        assert entry.feedback_notes == "Actually a referral thank-you"
        assert entry.result is result
        assert entry.result.type == EmailType.REJECTION
        assert classifier.stats()["feedback_count"] == 1

    def test_feedback_persisted(self, classifier, rejection_email, test_db):
        classifier.classify(rejection_email)
        key = ProcessedEmailCache.key_for(rejection_email)

        classifier.record_feedback(key, "followup_request", store=JobStore(test_db))
        test_db.commit()

        row = test_db.query(ClassificationFeedback).one()
        assert row.event_key == key
        assert row.original_type == "rejection"
        assert row.correct_type == "followup_request"

    def test_feedback_for_unknown_key(self, classifier):
        assert not classifier.record_feedback("nope", "other")

    def test_feedback_rejects_unknown_type(self, classifier):
        with pytest.raises(ValueError):
            classifier.record_feedback("key", "spam")


class TestClassificationHistory:
    """Tests for ClassificationHistory bounds."""

    def test_bounded(self, classifier, make_email):
        history = ClassificationHistory(max_entries=3)
        result = classifier.classify(
            make_email("Quick question", "Are you still looking at new job opportunities?")
        )
        for i in range(5):
            history.add(f"key-{i}", f"subject {i}", "acme.com", result)

        assert len(history) == 3
        assert history.get("key-0") is None
        assert history.get("key-4") is not None
        assert [r["event_key"] for r in history.stats()["recent"]] == ["key-4", "key-3", "key-2"]

    def test_default_bound(self):
        assert ClassificationHistory().max_entries == 1000

    def test_empty_stats(self):
        stats = ClassificationHistory().stats()
        assert stats["total"] == 0
        assert stats["average_confidence"] == 0.0
        assert stats["recent"] == []
