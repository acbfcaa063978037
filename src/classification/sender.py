"""Sender analyzer: credibility of the From address as a hiring contact."""
import re

from src.classification.domains import (
    ATS_DOMAINS,
    domain_matches,
    extract_domain,
    is_generic_domain,
    local_part,
)
from src.classification.types import SenderAnalysis, SenderType
from src.gmail.client import EmailMessage

# Tier scores
ATS_PLATFORM_SCORE = 90
HR_TEAM_SCORE = 85
RECRUITER_SCORE = 80
COMPANY_EMAIL_SCORE = 60
GENERIC_SCORE = 20
UNKNOWN_SCORE = 0

RECRUITING_RELATED_THRESHOLD = 60

# Role accounts run by a hiring team: hr@, talent-acquisition@, careers.team@
HR_ROLE_ACCOUNTS = frozenset({
    "hr", "recruiting", "talent", "careers", "jobs", "hiring", "people", "staffing",
})
RECRUITER_MARKERS = ("recruiter", "recruitment", "talent")

_LOCAL_PART_SEPARATORS = re.compile(r"[.\-_+]+")


class SenderAnalyzer:
    """Place a sender in one of the credibility tiers, first match wins."""

    def analyze(self, email: EmailMessage) -> SenderAnalysis:
        domain = extract_domain(email.from_header)
        local = local_part(email.from_header)

        if not domain or not local:
            return SenderAnalysis(
                score=UNKNOWN_SCORE,
                type=SenderType.UNKNOWN,
                domain=domain,
                is_recruiting_related=False,
            )

        sender_type, score = self._tier(domain, local)
        return SenderAnalysis(
            score=score,
            type=sender_type,
            domain=domain,
            is_recruiting_related=score >= RECRUITING_RELATED_THRESHOLD,
        )

    @staticmethod
    def _tier(domain: str, local: str) -> tuple[SenderType, int]:
        if domain_matches(domain, ATS_DOMAINS):
            return SenderType.ATS_PLATFORM, ATS_PLATFORM_SCORE

        tokens = [t for t in _LOCAL_PART_SEPARATORS.split(local) if t]
        if tokens and tokens[0] in HR_ROLE_ACCOUNTS:
            return SenderType.HR_TEAM, HR_TEAM_SCORE

        if any(marker in local for marker in RECRUITER_MARKERS):
            return SenderType.RECRUITER, RECRUITER_SCORE

        if not is_generic_domain(domain):
            return SenderType.COMPANY_EMAIL, COMPANY_EMAIL_SCORE

        return SenderType.GENERIC, GENERIC_SCORE
