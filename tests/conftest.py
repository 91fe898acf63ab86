"""
Pytest configuration and shared fixtures.

Key fixtures:
- now: Fixed reference time for classification
- rules: Default classification rules
- fake_repository: In-memory stand-in for CleanupRepository that records
  every delete call in order
- seeded_repository: fake_repository pre-loaded with a small mixed dataset
- database_url: Supabase Postgres URL for live tests (skips when unset)
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Sequence

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

# Load environment variables
from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)

from crm_cleanup.errors import DeleteError, FetchError
from crm_cleanup.models.entities import (
    Account,
    Conversation,
    EntityKind,
    Lead,
    Membership,
    MembershipVariant,
    Project,
)
from crm_cleanup.models.rules import ClassificationRules
from crm_cleanup.pipeline.graph_builder import MembershipFetch

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeRepository:
    """
    In-memory repository with the same async surface as CleanupRepository.

    Attributes:
        delete_calls: (table, ids) tuples in call order
        fail_deletes: tables whose delete raises DeleteError
        fail_fetches: primary kinds whose list_* raises FetchError
        missing_tables: membership variants whose table "does not exist"
        membership_reads: calls to list_all_memberships
    """

    def __init__(self):
        self.accounts: list[Account] = []
        self.projects: list[Project] = []
        self.leads: list[Lead] = []
        self.conversations: list[Conversation] = []
        self.memberships: dict[MembershipVariant, list[Membership]] = {
            variant: [] for variant in MembershipVariant
        }
        self.delete_calls: list[tuple[str, list[str]]] = []
        self.fail_deletes: set[str] = set()
        self.fail_fetches: set[EntityKind] = set()
        self.missing_tables: set[MembershipVariant] = set()
        self.membership_reads = 0

    def _check_fetch(self, kind: EntityKind) -> None:
        if kind in self.fail_fetches:
            raise FetchError(f"Failed to fetch {kind.value}", context={'table': kind.table})

    async def list_accounts(self) -> list[Account]:
        self._check_fetch(EntityKind.ACCOUNTS)
        return list(self.accounts)

    async def list_projects(self) -> list[Project]:
        self._check_fetch(EntityKind.PROJECTS)
        return list(self.projects)

    async def list_leads(self) -> list[Lead]:
        self._check_fetch(EntityKind.LEADS)
        return list(self.leads)

    async def list_conversations(self) -> list[Conversation]:
        self._check_fetch(EntityKind.CONVERSATIONS)
        return list(self.conversations)

    async def list_memberships(self, variant: MembershipVariant) -> MembershipFetch:
        if variant in self.missing_tables:
            return MembershipFetch(
                variant=variant,
                error=FetchError(f'relation "public.{variant.table}" does not exist'),
            )
        return MembershipFetch(variant=variant, records=tuple(self.memberships[variant]))

    async def list_all_memberships(self) -> dict[MembershipVariant, MembershipFetch]:
        self.membership_reads += 1
        return {variant: await self.list_memberships(variant) for variant in MembershipVariant}

    async def delete_by_ids(
        self,
        kind: EntityKind,
        ids: Sequence[str],
        variant: MembershipVariant | None = None,
    ) -> int:
        table = variant.table if variant is not None else kind.table
        self.delete_calls.append((table, list(ids)))
        if table in self.fail_deletes:
            raise DeleteError(f"permission denied for table {table}", context={'table': table})

        wanted = set(ids)
        if kind is EntityKind.MEMBERSHIPS:
            rows = self.memberships[variant]
            self.memberships[variant] = [m for m in rows if m.id not in wanted]
            return len(rows) - len(self.memberships[variant])

        rows = getattr(self, kind.value)
        kept = [r for r in rows if r.id not in wanted]
        setattr(self, kind.value, kept)
        return len(rows) - len(kept)

    @property
    def called_tables(self) -> list[str]:
        return [table for table, _ in self.delete_calls]


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return NOW


@pytest.fixture
def rules() -> ClassificationRules:
    """Default classification rules."""
    return ClassificationRules()


@pytest.fixture
def fake_repository() -> FakeRepository:
    """Empty in-memory repository."""
    return FakeRepository()


@pytest.fixture
def seeded_repository() -> FakeRepository:
    """
    Mixed dataset:
    - a1 "Test Client" (test) owns p1, which owns l1, which has c1
    - a2 "Acme Realty" (real) owns p2 "Downtown Towers" (real) with l2 "Dana Levi" (real)
    - l3 has a test email but hangs off the real project p2
    - one membership row of each variant, pointing at test rows, plus a
      client_members row for the real account
    """
    repo = FakeRepository()
    recent = NOW - timedelta(days=1)

    repo.accounts = [
        Account(id='a1', name='Test Client', email='owner@acme.io', created_at=recent),
        Account(id='a2', name='Acme Realty', email='ops@acmerealty.com', created_at=recent),
    ]
    repo.projects = [
        Project(id='p1', name='Real Estate Project', account_id='a1', created_at=recent),
        Project(id='p2', name='Downtown Towers', account_id='a2', created_at=recent),
    ]
    repo.leads = [
        Lead(id='l1', first_name='John', last_name='Doe', project_id='p1', created_at=recent),
        Lead(id='l2', first_name='Dana', last_name='Levi', project_id='p2', account_id='a2', created_at=recent),
        Lead(id='l3', first_name='Noa', last_name='Cohen', email='testlead@gmail.com', project_id='p2', created_at=recent),
    ]
    repo.conversations = [
        Conversation(id='c1', lead_id='l1', project_id='p1', created_at=recent),
        Conversation(id='c2', lead_id='l2', project_id='p2', created_at=recent),
        Conversation(id='c3', lead_id='l3', project_id='p2', created_at=recent),
    ]
    repo.memberships[MembershipVariant.ACCOUNT] = [
        Membership(id='m-a1', variant=MembershipVariant.ACCOUNT, parent_id='a1'),
        Membership(id='m-a2', variant=MembershipVariant.ACCOUNT, parent_id='a2'),
    ]
    repo.memberships[MembershipVariant.PROJECT] = [
        Membership(id='m-p1', variant=MembershipVariant.PROJECT, parent_id='p1'),
    ]
    repo.memberships[MembershipVariant.LEAD] = [
        Membership(id='m-l3', variant=MembershipVariant.LEAD, parent_id='l3'),
    ]
    repo.memberships[MembershipVariant.CONVERSATION] = [
        Membership(id='m-c1', variant=MembershipVariant.CONVERSATION, parent_id='c1'),
    ]
    return repo


@pytest.fixture
def database_url() -> str:
    """Get the Supabase Postgres URL from environment."""
    url = os.getenv('DATABASE_URL') or os.getenv('SUPABASE_DB_URL')
    if not url:
        pytest.skip('DATABASE_URL or SUPABASE_DB_URL not set')
    return url
