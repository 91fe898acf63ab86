"""
Tests for CleanupRepository.

The PostgresClient is replaced by an AsyncMock; these tests cover the
row-to-model mapping and error translation, not SQL.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import UUID

import pytest

from crm_cleanup.errors import DeleteError, FetchError, StoreConnectionError
from crm_cleanup.models.entities import EntityKind, MembershipVariant
from crm_cleanup.repository import CleanupRepository

ACCOUNT_UUID = UUID('550e8400-e29b-41d4-a716-446655440000')
PROJECT_UUID = UUID('6ba7b810-9dad-11d1-80b4-00c04fd430c8')


@pytest.fixture
def client():
    pg = AsyncMock()
    pg.fetch_all = AsyncMock(return_value=[])
    pg.delete_ids = AsyncMock(return_value=0)
    return pg


@pytest.fixture
def repo(client):
    return CleanupRepository(client)


class TestReads:
    """Typed listing."""

    @pytest.mark.asyncio
    async def test_list_accounts_reads_clients_table(self, repo, client):
        """Accounts live in 'clients'; UUID ids become strings."""
        client.fetch_all.return_value = [
            {
                'id': ACCOUNT_UUID,
                'name': 'Test Client',
                'email': None,
                'phone': None,
                'created_at': datetime(2026, 1, 1, tzinfo=timezone.utc),
                'updated_at': None,
            }
        ]

        accounts = await repo.list_accounts()

        table, columns = client.fetch_all.await_args.args
        assert table == 'clients'
        assert 'email' in columns
        assert accounts[0].id == str(ACCOUNT_UUID)
        assert accounts[0].name == 'Test Client'

    @pytest.mark.asyncio
    async def test_list_projects_maps_client_id(self, repo, client):
        """projects.client_id becomes Project.account_id."""
        client.fetch_all.return_value = [
            {'id': PROJECT_UUID, 'name': 'Test Project', 'description': None, 'client_id': ACCOUNT_UUID}
        ]

        projects = await repo.list_projects()

        assert projects[0].account_id == str(ACCOUNT_UUID)
        assert projects[0].id == str(PROJECT_UUID)

    @pytest.mark.asyncio
    async def test_list_leads_maps_client_id(self, repo, client):
        """leads.client_id becomes Lead.account_id alongside project_id."""
        client.fetch_all.return_value = [
            {'id': 'l1', 'first_name': 'John', 'last_name': 'Doe', 'project_id': 'p1', 'client_id': 'a1'}
        ]

        leads = await repo.list_leads()

        assert client.fetch_all.await_args.args[0] == 'leads'
        assert leads[0].project_id == 'p1'
        assert leads[0].account_id == 'a1'

    @pytest.mark.asyncio
    async def test_list_conversations(self, repo, client):
        client.fetch_all.return_value = [{'id': 'c1', 'lead_id': 'l1', 'project_id': None}]

        conversations = await repo.list_conversations()

        assert conversations[0].lead_id == 'l1'

    @pytest.mark.asyncio
    async def test_fetch_failure_is_wrapped(self, repo, client):
        """Driver errors surface as FetchError with the table in context."""
        client.fetch_all.side_effect = Exception('permission denied for table leads')

        with pytest.raises(FetchError) as exc_info:
            await repo.list_leads()

        assert exc_info.value.context['table'] == 'leads'

    @pytest.mark.asyncio
    async def test_connection_failure_is_wrapped(self, repo, client):
        """Connectivity errors surface as StoreConnectionError."""
        client.fetch_all.side_effect = OSError('Connection refused')

        with pytest.raises(StoreConnectionError):
            await repo.list_accounts()


class TestMembershipReads:
    """Junction tables never raise."""

    @pytest.mark.asyncio
    async def test_parent_column_becomes_parent_id(self, repo, client):
        client.fetch_all.return_value = [{'id': 'm1', 'project_id': 'p1', 'created_at': None}]

        fetch = await repo.list_memberships(MembershipVariant.PROJECT)

        table, columns = client.fetch_all.await_args.args
        assert table == 'project_members'
        assert tuple(columns) == ('id', 'project_id', 'created_at')
        assert fetch.ok
        assert fetch.records[0].parent_id == 'p1'
        assert fetch.records[0].variant is MembershipVariant.PROJECT

    @pytest.mark.asyncio
    async def test_missing_table_returns_error(self, repo, client):
        """A missing table comes back as an errored fetch."""
        client.fetch_all.side_effect = Exception('relation "public.lead_members" does not exist')

        fetch = await repo.list_memberships(MembershipVariant.LEAD)

        assert not fetch.ok
        assert fetch.records == ()
        assert isinstance(fetch.error, FetchError)

    @pytest.mark.asyncio
    async def test_list_all_memberships(self, repo, client):
        """All four tables are read, in variant order."""
        fetches = await repo.list_all_memberships()

        assert list(fetches) == list(MembershipVariant)
        assert [call.args[0] for call in client.fetch_all.await_args_list] == [
            'client_members',
            'project_members',
            'lead_members',
            'conversation_members',
        ]


class TestDeletes:
    """Delete by id."""

    @pytest.mark.asyncio
    async def test_delete_accounts_targets_clients(self, repo, client):
        client.delete_ids.return_value = 2

        deleted = await repo.delete_by_ids(EntityKind.ACCOUNTS, ['a1', 'a2'])

        client.delete_ids.assert_awaited_once_with('clients', ['a1', 'a2'])
        assert deleted == 2

    @pytest.mark.asyncio
    async def test_delete_memberships_targets_variant_table(self, repo, client):
        await repo.delete_by_ids(EntityKind.MEMBERSHIPS, ['m1'], variant=MembershipVariant.CONVERSATION)

        client.delete_ids.assert_awaited_once_with('conversation_members', ['m1'])

    @pytest.mark.asyncio
    async def test_delete_memberships_requires_variant(self, repo):
        with pytest.raises(ValueError):
            await repo.delete_by_ids(EntityKind.MEMBERSHIPS, ['m1'])

    @pytest.mark.asyncio
    async def test_delete_failure_is_wrapped(self, repo, client):
        """Driver errors surface as DeleteError with table and id count."""
        client.delete_ids.side_effect = Exception('violates foreign key constraint')

        with pytest.raises(DeleteError) as exc_info:
            await repo.delete_by_ids(EntityKind.PROJECTS, ['p1', 'p2'])

        assert exc_info.value.context['table'] == 'projects'
        assert exc_info.value.context['ids'] == 2
