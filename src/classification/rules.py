"""Declarative rule table for pattern classification and exclusion.

The table lives in ``config/email_rules.yaml`` and is compiled once per
path. Everything downstream receives an immutable :class:`RuleTable`.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml

from config.settings import settings
from src.classification.types import EmailType

# Patterns may span the subject/body boundary and line breaks
REGEX_FLAGS = re.IGNORECASE | re.DOTALL

MIN_RULE_CONFIDENCE = 70
MAX_RULE_CONFIDENCE = 95


def _compile_all(patterns: list[str]) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, REGEX_FLAGS) for p in patterns or [])


def _compile_terms(terms: list[str]) -> tuple[re.Pattern, ...]:
    """Compile plain vocabulary terms to match at a word start."""
    return tuple(re.compile(r"\b" + re.escape(t), re.IGNORECASE) for t in terms or [])


@dataclass(frozen=True)
class ClassificationRule:
    """One row of the taxonomy: how to recognise a single email type."""

    type: EmailType
    confidence: int
    next_steps: str
    patterns: tuple[re.Pattern, ...]
    required_context: tuple[re.Pattern, ...] = ()
    exclude_patterns: tuple[re.Pattern, ...] = ()

    def matches(self, content: str) -> bool:
        """True if a pattern fires, context is satisfied and nothing vetoes it."""
        if not any(p.search(content) for p in self.patterns):
            return False
        if self.required_context and not any(t.search(content) for t in self.required_context):
            return False
        return not any(p.search(content) for p in self.exclude_patterns)


@dataclass(frozen=True)
class RuleTable:
    """Compiled rule table."""

    rules: tuple[ClassificationRule, ...]
    fallback_type: EmailType
    fallback_confidence: int
    fallback_next_steps: str
    job_vocabulary: tuple[re.Pattern, ...]
    exclusions: dict[str, tuple[re.Pattern, ...]]
    bulk_sender_domains: frozenset[str]

    def rule_for(self, email_type: EmailType) -> Optional[ClassificationRule]:
        for rule in self.rules:
            if rule.type == email_type:
                return rule
        return None

    def has_job_vocabulary(self, text: str) -> bool:
        return any(term.search(text) for term in self.job_vocabulary)


def _build_rule(raw: dict) -> ClassificationRule:
    email_type = EmailType(raw["type"])
    confidence = int(raw["confidence"])
    if not MIN_RULE_CONFIDENCE <= confidence <= MAX_RULE_CONFIDENCE:
        raise ValueError(
            f"Rule {email_type.value}: confidence {confidence} outside "
            f"{MIN_RULE_CONFIDENCE}-{MAX_RULE_CONFIDENCE}"
        )
    if not raw.get("patterns"):
        raise ValueError(f"Rule {email_type.value} has no patterns")

    return ClassificationRule(
        type=email_type,
        confidence=confidence,
        next_steps=raw.get("next_steps", ""),
        patterns=_compile_all(raw["patterns"]),
        required_context=_compile_terms(raw.get("required_context")),
        exclude_patterns=_compile_all(raw.get("exclude_patterns")),
    )


def parse_rule_table(data: dict) -> RuleTable:
    """Build a RuleTable from already-loaded YAML data."""
    rules = tuple(_build_rule(raw) for raw in data.get("rules", []))

    seen: set[EmailType] = set()
    for rule in rules:
        if rule.type in seen:
            raise ValueError(f"Duplicate rule for {rule.type.value}")
        seen.add(rule.type)

    fallback = data.get("fallback", {})
    exclusions = {
        theme: _compile_all(patterns)
        for theme, patterns in (data.get("exclusions") or {}).items()
    }

    return RuleTable(
        rules=rules,
        fallback_type=EmailType(fallback.get("type", "other")),
        fallback_confidence=int(fallback.get("confidence", 60)),
        fallback_next_steps=fallback.get("next_steps", ""),
        job_vocabulary=_compile_terms(fallback.get("job_vocabulary")),
        exclusions=exclusions,
        bulk_sender_domains=frozenset(d.lower() for d in data.get("bulk_sender_domains", [])),
    )


@lru_cache(maxsize=None)
def load_rule_table(path: Optional[Path] = None) -> RuleTable:
    """Load and compile the rule table (cached per path)."""
    path = Path(path) if path else settings.rules_path
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return parse_rule_table(data)
