"""
Classification rules for identifying test data.

Defaults mirror the patterns QA and integration runs leave behind in the
CRM database. Override them with a JSON rules file.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_NAME_PATTERNS: tuple[str, ...] = (
    'test',
    'demo',
    'sample',
    'TDD',
    'Quick Test',
    'Integration Test',
    'Auth Fix Test',
    'Automated test',
    'Test Client for',
    'Test Project',
    'Real Estate Project',  # seeded by the onboarding fixtures
    'Website Redesign',
    'alpha',
    'debug',
)

DEFAULT_EMAIL_PATTERNS: tuple[str, ...] = (
    'test@',
    'demo@',
    'sample@',
    '@example.com',
    '@test.com',
    '@demo.com',
    'testlead@',
    'testclient@',
)

DEFAULT_PHONE_PATTERNS: tuple[str, ...] = (
    '+1234567890',
    '+1555555555',
    '+1-555-TEST',
)

# Secondary heuristic, only consulted for records older than older_than_days
DEFAULT_STALE_NAME_PATTERNS: tuple[str, ...] = ('test', 'demo', 'sample')
DEFAULT_STALE_EMAIL_PATTERNS: tuple[str, ...] = ('test', 'demo', 'example')


class ClassificationRules(BaseModel):
    """
    Pattern rules deciding whether a record is test data.

    Name and email patterns match case-insensitively; phone patterns are
    exact substrings because phone formats are rigid.
    """

    model_config = ConfigDict(frozen=True, extra='forbid')

    name_patterns: tuple[str, ...] = Field(default=DEFAULT_NAME_PATTERNS)
    email_patterns: tuple[str, ...] = Field(default=DEFAULT_EMAIL_PATTERNS)
    phone_patterns: tuple[str, ...] = Field(default=DEFAULT_PHONE_PATTERNS)
    older_than_days: int = Field(default=7, ge=0, description='Age gate for the stale heuristic')
    stale_name_patterns: tuple[str, ...] = Field(default=DEFAULT_STALE_NAME_PATTERNS)
    stale_email_patterns: tuple[str, ...] = Field(default=DEFAULT_STALE_EMAIL_PATTERNS)

    @classmethod
    def from_file(cls, path: str | Path) -> 'ClassificationRules':
        """Load rules from a JSON file; omitted keys keep their defaults."""
        return cls.model_validate_json(Path(path).read_text(encoding='utf-8'))
