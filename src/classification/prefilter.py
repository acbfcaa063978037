"""Fast rule-based rejection of mail that is clearly not about a job application."""
import logging
from typing import Optional

from src.classification.domains import domain_matches, extract_domain
from src.classification.rules import RuleTable, load_rule_table
from src.gmail.client import EmailMessage

logger = logging.getLogger(__name__)


class ExclusionPrefilter:
    """Exclude newsletters, marketing, surveys, job-board digests and bulk relays.

    Only strong, low-ambiguity signals belong here: letting a newsletter
    through is cheap (the context analyzer penalizes it later), dropping a
    real recruiter email is not.
    """

    def __init__(self, rules: Optional[RuleTable] = None):
        self.rules = rules or load_rule_table()

    def match_reason(self, email: EmailMessage) -> Optional[str]:
        """Return a short reason if the email is excluded, else None."""
        domain = extract_domain(email.from_header)
        if domain and domain_matches(domain, self.rules.bulk_sender_domains):
            return f"bulk sender domain {domain}"

        content = f"{email.subject}\n{email.body_text}"
        for theme, patterns in self.rules.exclusions.items():
            for pattern in patterns:
                if pattern.search(content):
                    return f"{theme} pattern '{pattern.pattern}'"

        return None

    def is_excluded(self, email: EmailMessage) -> bool:
        """True if the email is definitely not job-related."""
        reason = self.match_reason(email)
        if reason:
            logger.debug("Excluded %r: %s", email.subject, reason)
            return True
        return False
