"""
Test-data classifier.

Decides, for a single Account, Project or Lead, whether it looks like data
left behind by testing. Two tiers:

1. Explicit patterns (names, emails, phones): unconditional matches.
2. Stale heuristic: a record older than the age gate whose name or email
   contains one of a smaller set of tell-tale words.

Age alone never marks a record as test data. Classification is pure: the
same record, rules and reference time always yield the same verdict.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ..models.entities import ClassifiableRecord, ClassifiableText
from ..models.rules import ClassificationRules


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _contains_any(text: str, patterns: tuple[str, ...], case_sensitive: bool = False) -> bool:
    if not text:
        return False
    if case_sensitive:
        return any(pattern and pattern in text for pattern in patterns)
    return any(pattern and pattern.lower() in text for pattern in patterns)


def _is_stale(created_at: datetime | None, older_than_days: int, now: datetime) -> bool:
    if created_at is None:
        return False
    cutoff = _as_utc(now) - timedelta(days=older_than_days)
    return _as_utc(created_at) < cutoff


def looks_like_test_data(text: ClassifiableText, rules: ClassificationRules) -> bool:
    """Secondary heuristic used only for records past the age gate."""
    return _contains_any(text.name, rules.stale_name_patterns) or _contains_any(
        text.email, rules.stale_email_patterns
    )


def classify_text(
    text: ClassifiableText,
    rules: ClassificationRules,
    now: datetime | None = None,
) -> bool:
    """Classify an already-projected record."""
    if _contains_any(text.name_text, rules.name_patterns):
        return True
    if _contains_any(text.email, rules.email_patterns):
        return True
    if _contains_any(text.phone, rules.phone_patterns, case_sensitive=True):
        return True

    reference = now or datetime.now(timezone.utc)
    return _is_stale(text.created_at, rules.older_than_days, reference) and looks_like_test_data(
        text, rules
    )


def classify(
    record: ClassifiableRecord,
    rules: ClassificationRules,
    now: datetime | None = None,
) -> bool:
    """
    Decide whether a record is test data.

    Args:
        record: Account, Project or Lead
        rules: Pattern rules and age gate
        now: Reference time for the age gate (defaults to current UTC time)

    Returns:
        True if the record should be treated as test data
    """
    projector = getattr(record, 'classifiable_text', None)
    if projector is None:
        return False
    return classify_text(projector(), rules, now)


class TestDataClassifier:
    """
    Classifier bound to a rule set and a fixed reference time.

    Fixing `now` once per run keeps every verdict in a run consistent even
    if the run straddles the age cutoff.
    """

    # Keep pytest from collecting this as a test class
    __test__ = False

    def __init__(self, rules: ClassificationRules | None = None, now: datetime | None = None):
        self.rules = rules or ClassificationRules()
        self.now = now or datetime.now(timezone.utc)

    def __call__(self, record: ClassifiableRecord) -> bool:
        return classify(record, self.rules, self.now)
