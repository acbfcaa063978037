"""Pattern classifier: decides the job-lifecycle event type of an email."""
from typing import Optional

from src.classification.domains import extract_domain
from src.classification.extractors import (
    extract_company,
    extract_deadline,
    extract_job_title,
    extract_links,
)
from src.classification.rules import RuleTable, load_rule_table
from src.classification.types import EmailType, PatternMatch
from src.gmail.client import EmailMessage


class PatternClassifier:
    """Match an email against the ordered rule table.

    A pure function of (email, rule table): the first rule that matches wins.
    """

    def __init__(self, rules: Optional[RuleTable] = None):
        self.rules = rules or load_rule_table()

    def classify(self, email: EmailMessage) -> Optional[PatternMatch]:
        """
        Classify an email by pattern.

        Returns:
            PatternMatch for the first matching rule, an ``other`` match with
            the fallback confidence if only generic job vocabulary is present,
            or None if nothing job-like was found.
        """
        content = f"{email.subject}\n{email.body_text}"
        domain = extract_domain(email.from_header)

        for rule in self.rules.rules:
            if rule.matches(content):
                return self._build_match(email, rule.type, rule.confidence, rule.next_steps, domain)

        if self.rules.has_job_vocabulary(content) or self.rules.has_job_vocabulary(domain):
            return self._build_match(
                email,
                self.rules.fallback_type,
                self.rules.fallback_confidence,
                self.rules.fallback_next_steps,
                domain,
            )

        return None

    def _build_match(
        self,
        email: EmailMessage,
        email_type: EmailType,
        confidence: int,
        next_steps: str,
        domain: str,
    ) -> PatternMatch:
        assessment_link = None
        if email_type == EmailType.ASSESSMENT:
            links = extract_links(email.body_text)
            assessment_link = links[0] if links else None

        return PatternMatch(
            type=email_type,
            confidence=confidence,
            next_steps=next_steps,
            company=extract_company(email),
            job_title=extract_job_title(email),
            deadline=extract_deadline(email.body_text, email.date),
            assessment_link=assessment_link,
            from_domain=domain,
        )
