"""Sender address helpers and well-known domain lists."""
import re
from email.utils import parseaddr

# Applicant tracking systems and recruiting platforms
ATS_DOMAINS = frozenset({
    "greenhouse.io",
    "greenhouse-mail.io",
    "lever.co",
    "hire.lever.co",
    "workday.com",
    "myworkday.com",
    "myworkdayjobs.com",
    "icims.com",
    "jobvite.com",
    "smartrecruiters.com",
    "ashbyhq.com",
    "workablemail.com",
    "workable.com",
    "breezy.hr",
    "recruitee.com",
    "bamboohr.com",
    "jazzhr.com",
    "applytojob.com",
    "taleo.net",
    "successfactors.com",
    "brassring.com",
    "teamtailor.com",
    "personio.com",
    "rippling.com",
    "dover.com",
    "dover.io",
    "gem.com",
    "hirevue.com",
    "hackerrank.com",
    "codility.com",
    "codesignal.com",
    "candidatecare.com",
})

# Consumer mailbox providers: the domain says nothing about the employer
FREE_MAIL_DOMAINS = frozenset({
    "gmail.com",
    "googlemail.com",
    "yahoo.com",
    "outlook.com",
    "hotmail.com",
    "live.com",
    "msn.com",
    "aol.com",
    "icloud.com",
    "me.com",
    "protonmail.com",
    "proton.me",
    "gmx.com",
    "mail.com",
    "zoho.com",
    "yandex.com",
})

# Substrings that mark a domain as a notification/transactional relay
TRANSACTIONAL_MARKERS = ("noreply", "no-reply", "donotreply", "notifications", "mailer")

# Second-level labels used under country code TLDs (acme.co.uk)
_SECOND_LEVEL_LABELS = {"co", "com", "org", "net", "ac", "gov", "edu"}

_ADDRESS_RE = re.compile(r"[\w.+'-]+@([\w-]+(?:\.[\w-]+)+)")


def sender_address(from_header: str) -> str:
    """Return the bare lower-cased address from a From header."""
    _, address = parseaddr(from_header or "")
    if "@" not in address:
        match = _ADDRESS_RE.search(from_header or "")
        address = match.group(0) if match else ""
    return address.strip().lower()


def extract_domain(from_header: str) -> str:
    """Return the lower-cased domain of the sender, or '' if there is none."""
    address = sender_address(from_header)
    return address.rsplit("@", 1)[-1] if "@" in address else ""


def local_part(from_header: str) -> str:
    """Return the lower-cased local part of the sender address."""
    address = sender_address(from_header)
    return address.rsplit("@", 1)[0] if "@" in address else ""


def domain_matches(domain: str, candidates) -> bool:
    """True if ``domain`` equals or is a subdomain of any candidate."""
    return any(domain == c or domain.endswith("." + c) for c in candidates)


def is_generic_domain(domain: str) -> bool:
    """True for consumer mailboxes and transactional relays."""
    if not domain:
        return True
    if domain_matches(domain, FREE_MAIL_DOMAINS):
        return True
    return any(marker in domain for marker in TRANSACTIONAL_MARKERS)


def organisation_label(domain: str) -> str:
    """Pick the label naming the organisation: 'careers.acme.co.uk' -> 'acme'."""
    labels = [label for label in domain.split(".") if label]
    if len(labels) < 2:
        return labels[0] if labels else ""

    labels = labels[:-1]  # drop TLD
    if len(labels) >= 2 and labels[-1] in _SECOND_LEVEL_LABELS:
        labels = labels[:-1]
    return labels[-1]
