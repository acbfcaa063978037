"""Best-effort field extraction from job emails.

Every function here returns ``None`` (or an empty list) when it cannot find
what it is looking for. None of them raise on odd input.
"""
import re
from datetime import date, datetime, timedelta
from typing import Optional

from dateutil import parser as dateutil_parser
from dateutil.relativedelta import relativedelta

from src.classification.domains import (
    ATS_DOMAINS,
    domain_matches,
    extract_domain,
    is_generic_domain,
    organisation_label,
)
from src.gmail.client import EmailMessage

# A run of up to four capitalised words: "Acme", "Blue Ridge Labs"
_NAME = r"[A-Z][\w&\-]*(?:[ \t]+[A-Z][\w&\-]*){0,3}"

COMPANY_PHRASE_PATTERNS = [
    re.compile(rf"\b({_NAME})\s+(?i:team|recruiting|talent|hr|careers)\b"),
    re.compile(rf"\b(?i:join|at)\s+({_NAME})"),
    re.compile(rf"\b({_NAME})\s+(?i:is hiring)\b"),
]

SIGNATURE_PATTERNS = [
    re.compile(rf"\b({_NAME}),?\s+(?:Inc|Corp|Corporation|Ltd|LLC|GmbH)\b"),
    re.compile(
        rf"(?i:best regards|kind regards|regards|sincerely|cheers),?[ \t]*\n+"
        rf"[ \t]*[^\n]+\n+[ \t]*({_NAME})[ \t]*$",
        re.MULTILINE,
    ),
]

# First words that show a capitalised run is prose, not a company
_NOT_A_COMPANY = {
    "dear", "hi", "hello", "hey", "thank", "thanks", "best", "kind", "regards",
    "sincerely", "we", "our", "your", "you", "i", "please", "next", "this",
    "the", "a", "an", "position", "role", "application", "interview",
    "unfortunately", "congratulations", "monday", "tuesday", "wednesday",
    "thursday", "friday", "saturday", "sunday", "talent", "recruiting",
    "hiring", "hr", "careers", "people", "team",
}
_LEADING_NOISE = re.compile(r"^(?:the|team|at|from|with|joining)\s+", re.IGNORECASE)
_TRAILING_NOISE = re.compile(
    r"[\s,]+(?:team|recruiting|talent|hr|careers|inc|llc|corp|ltd|gmbh)\.?$",
    re.IGNORECASE,
)

ROLE_NOUNS = (
    "Engineer|Developer|Manager|Analyst|Specialist|Designer|Architect|Lead|"
    "Director|Coordinator|Associate|Intern|Scientist|Consultant|Administrator|"
    "Programmer|Recruiter"
)
_TITLE = rf"(?:[A-Z][\w+#/\-]*[ \t]+){{0,4}}(?:{ROLE_NOUNS})s?\b"

JOB_TITLE_PATTERNS = [
    re.compile(
        rf"(?i:application|applying|applied|interview|candidacy)\s+(?i:for|to)\s+"
        rf"(?:(?i:the|our|a|an)\s+)?({_TITLE})"
    ),
    re.compile(rf"({_TITLE})\s+(?i:position|role|opening|job)\b"),
    re.compile(rf"(?i:position|role|opening)\s*(?:of|as|:|-)\s*({_TITLE})"),
    re.compile(
        r"\b((?:senior |junior |lead |staff |principal )?"
        r"(?:full[- ]?stack|front[- ]?end|back[- ]?end|software|web|mobile|data|devops|"
        r"ml|ai|machine learning|platform|site reliability)\s+(?:engineer|developer))\b",
        re.IGNORECASE,
    ),
]

_MONTH = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"
_DATE = (
    r"(\d{4}-\d{1,2}-\d{1,2}"
    r"|\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}"
    rf"|{_MONTH}\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?"
    rf"|\d{{1,2}}(?:st|nd|rd|th)?\s+(?:of\s+)?{_MONTH}(?:,?\s+\d{{4}})?)"
)
EXPLICIT_DEADLINE_PATTERN = re.compile(
    r"\b(?:deadline|due|complete[d]?\s+by|submit(?:ted)?\s+by|finish(?:ed)?\s+by|no later than)"
    rf"[^\n]{{0,40}}?{_DATE}",
    re.IGNORECASE,
)
RELATIVE_DEADLINE_PATTERNS = [
    re.compile(r"within\s+(\d{1,3})\s+(business days?|days?|hours?)", re.IGNORECASE),
    re.compile(r"(\d{1,3})\s+(business days?|days?|hours?)\s+to\s+(?:complete|submit|finish)", re.IGNORECASE),
]

URL_PATTERN = re.compile(r"https?://[^\s<>\"'()\[\]]+")


def clean_company_name(name: str) -> Optional[str]:
    """Strip noise around a candidate company name; None if nothing sensible is left."""
    if not name:
        return None

    name = " ".join(name.split())
    previous = None
    while previous != name:
        previous = name
        name = _LEADING_NOISE.sub("", name)
        name = _TRAILING_NOISE.sub("", name)
        name = name.strip(" .,;:!-")

    if not 2 <= len(name) <= 50:
        return None
    if name.split()[0].lower() in _NOT_A_COMPANY:
        return None
    return name


def company_from_domain(domain: str) -> Optional[str]:
    """'careers.blue-ridge.com' -> 'Blue Ridge'; None for ATS/free-mail/relay domains."""
    if not domain or is_generic_domain(domain) or domain_matches(domain, ATS_DOMAINS):
        return None
    label = organisation_label(domain)
    name = " ".join(word.capitalize() for word in re.split(r"[-_]+", label) if word)
    return name if len(name) > 2 else None


def _first_company(pattern: re.Pattern, text: str) -> Optional[str]:
    for match in pattern.finditer(text or ""):
        company = clean_company_name(match.group(1))
        if company:
            return company
    return None


def extract_company(email: EmailMessage) -> Optional[str]:
    """Company name from phrases, then the sender domain, then the signature."""
    for pattern in COMPANY_PHRASE_PATTERNS:
        for source in (email.subject, email.body_text):
            company = _first_company(pattern, source)
            if company:
                return company

    company = company_from_domain(extract_domain(email.from_header))
    if company:
        return company

    for pattern in SIGNATURE_PATTERNS:
        company = _first_company(pattern, email.body_text)
        if company:
            return company

    return None


def _clean_title(title: str) -> Optional[str]:
    title = " ".join(title.split())
    title = re.sub(r"^(?:the|our|a|an)\s+", "", title, flags=re.IGNORECASE)
    if not 4 <= len(title) <= 100:
        return None
    if title.islower():
        title = title.title()
    return title


def extract_job_title(email: EmailMessage) -> Optional[str]:
    """Job title from role-noun phrasing in the subject, then the start of the body."""
    body_start = (email.body_text or "")[:1000]
    for pattern in JOB_TITLE_PATTERNS:
        for source in (email.subject or "", body_start):
            match = pattern.search(source)
            if match:
                title = _clean_title(match.group(1))
                if title:
                    return title
    return None


def _parse_explicit_date(text: str, received: datetime) -> Optional[date]:
    default = datetime(received.year, received.month, received.day)
    try:
        parsed = dateutil_parser.parse(text, default=default, fuzzy=True).date()
    except (ValueError, OverflowError):
        return None

    # "March 3" written in December means next year
    has_year = re.search(r"\d{4}|\d{1,2}[/\-]\d{1,2}[/\-]\d{2}", text)
    if not has_year and parsed < received.date():
        parsed += relativedelta(years=1)
    return parsed


def extract_deadline(text: str, received: datetime) -> Optional[date]:
    """Deadline from an explicit date phrase or 'within N days/hours' phrasing."""
    if not text:
        return None

    match = EXPLICIT_DEADLINE_PATTERN.search(text)
    if match:
        deadline = _parse_explicit_date(match.group(1), received)
        if deadline:
            return deadline

    for pattern in RELATIVE_DEADLINE_PATTERNS:
        match = pattern.search(text)
        if match:
            amount = int(match.group(1))
            unit = match.group(2).lower()
            if unit.startswith("hour"):
                return (received + timedelta(hours=amount)).date()
            if unit.startswith("business"):
                return _add_business_days(received.date(), amount)
            return received.date() + timedelta(days=amount)

    return None


def _add_business_days(start: date, days: int) -> date:
    current = start
    while days > 0:
        current += timedelta(days=1)
        if current.weekday() < 5:
            days -= 1
    return current


def extract_links(text: str) -> list[str]:
    """All http(s) URLs in order of appearance, trailing punctuation removed."""
    return [url.rstrip(".,;:!?") for url in URL_PATTERN.findall(text or "")]
