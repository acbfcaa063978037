"""Context analyzer: how personalized (vs. bulk/automated) an email looks."""
import re

from src.classification.types import ContextAnalysis, ContextIndicators
from src.gmail.client import EmailMessage

# Indicator weights
PERSONALIZED_WEIGHT = 20
JOB_TITLE_WEIGHT = 15
COMPANY_NAME_WEIGHT = 10
APPLICATION_REFERENCE_WEIGHT = 25
ACTION_ITEMS_WEIGHT = 15
SIGNATURE_WEIGHT = 10

# One-line pings and digest walls of text both look automated
MIN_BODY_LENGTH = 100
MAX_BODY_LENGTH = 5000
LENGTH_PENALTY = 20

PERSONALIZED_THRESHOLD = 40

PERSONALIZED_PATTERNS = [
    re.compile(r"\b(?:dear|hi|hello|hey)\s+[A-Z][a-z]+", re.IGNORECASE),
    re.compile(r"thank you for your (?:application|interest|time|patience)", re.IGNORECASE),
    re.compile(r"we(?:'ve| have)? reviewed your", re.IGNORECASE),
    re.compile(r"\byour (?:application|candidacy|resume|background|profile|experience)\b", re.IGNORECASE),
]
JOB_TITLE_PATTERN = re.compile(
    r"\b(?:engineer|developer|manager|analyst|specialist|designer|architect|"
    r"director|coordinator|scientist|consultant|intern|programmer)s?\b",
    re.IGNORECASE,
)
COMPANY_NAME_PATTERN = re.compile(
    r"\b(?:at|with|from|join)\s+[A-Z][\w&-]+|"
    r"\b[A-Z][\w&-]+(?:[ \t]+[A-Z][\w&-]+)*[ \t]+(?:Inc|LLC|Ltd|Corp|Team|Recruiting)\b"
)
APPLICATION_REFERENCE_PATTERN = re.compile(
    r"\b(?:your application|application for|applied for|application id|"
    r"requisition|job id|reference number|candidate id|the position|the role)\b",
    re.IGNORECASE,
)
ACTION_ITEMS_PATTERN = re.compile(
    r"\b(?:please|complete|schedule|click|submit|reply|respond|confirm|book|select)\b",
    re.IGNORECASE,
)
SIGNATURE_PATTERN = re.compile(
    r"\b(?:best regards|kind regards|warm regards|regards|sincerely|best wishes|cheers|thanks|best),?[ \t]*\n",
    re.IGNORECASE,
)


class ContextAnalyzer:
    """Score an email's personalization from independent indicator checks."""

    def analyze(self, email: EmailMessage) -> ContextAnalysis:
        body = email.body_text or ""
        content = f"{email.subject}\n{body}"

        indicators = ContextIndicators(
            personalized_content=any(p.search(content) for p in PERSONALIZED_PATTERNS),
            has_job_title=bool(JOB_TITLE_PATTERN.search(content)),
            has_company_name=bool(COMPANY_NAME_PATTERN.search(content)),
            has_application_reference=bool(APPLICATION_REFERENCE_PATTERN.search(content)),
            has_action_items=bool(ACTION_ITEMS_PATTERN.search(content)),
            has_signature=bool(SIGNATURE_PATTERN.search(body)),
            email_length=len(body),
        )

        score = self.score(indicators)
        return ContextAnalysis(
            score=score,
            indicators=indicators,
            is_personalized=score >= PERSONALIZED_THRESHOLD,
        )

    @staticmethod
    def score(indicators: ContextIndicators) -> int:
        """Weighted indicator sum, length penalty applied, clamped at zero."""
        score = 0
        if indicators.personalized_content:
            score += PERSONALIZED_WEIGHT
        if indicators.has_job_title:
            score += JOB_TITLE_WEIGHT
        if indicators.has_company_name:
            score += COMPANY_NAME_WEIGHT
        if indicators.has_application_reference:
            score += APPLICATION_REFERENCE_WEIGHT
        if indicators.has_action_items:
            score += ACTION_ITEMS_WEIGHT
        if indicators.has_signature:
            score += SIGNATURE_WEIGHT

        if indicators.email_length < MIN_BODY_LENGTH or indicators.email_length > MAX_BODY_LENGTH:
            score -= LENGTH_PENALTY

        return max(0, score)
