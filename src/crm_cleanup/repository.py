"""
Cleanup repository: typed reads and deletes over the CRM tables.

Provides:
- Listing each entity kind as typed records (client_id columns become account_id)
- Reading each membership table into a MembershipFetch result
- Batched delete by id per entity kind / membership table
- Translation of driver errors into FetchError / DeleteError
"""

from typing import Any, Sequence

from .clients.postgres_client import PostgresClient
from .errors import StoreError, wrap_store_error
from .logging import get_logger
from .models.entities import (
    Account,
    Conversation,
    EntityKind,
    Lead,
    Membership,
    MembershipVariant,
    Project,
)
from .pipeline.graph_builder import MembershipFetch

logger = get_logger(__name__)

# Columns read per table; only what classification and the FK walk need
_COLUMNS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.ACCOUNTS: ('id', 'name', 'email', 'phone', 'created_at', 'updated_at'),
    EntityKind.PROJECTS: ('id', 'name', 'description', 'client_id', 'created_at', 'updated_at'),
    EntityKind.LEADS: (
        'id', 'first_name', 'last_name', 'email', 'phone',
        'project_id', 'client_id', 'created_at', 'updated_at',
    ),
    EntityKind.CONVERSATIONS: ('id', 'lead_id', 'project_id', 'created_at', 'updated_at'),
}


def _rename_client_id(row: dict[str, Any]) -> dict[str, Any]:
    """The database calls accounts 'clients'; map the FK column accordingly."""
    if 'client_id' in row:
        row = dict(row)
        row['account_id'] = row.pop('client_id')
    return row


class CleanupRepository:
    """
    Typed persistence operations for the cleanup pipeline.

    Read operations raise FetchError; delete operations raise DeleteError;
    an unreachable database raises StoreConnectionError. Nothing here
    retries.
    """

    def __init__(self, client: PostgresClient):
        """
        Initialize the repository.

        Args:
            client: Connected PostgresClient
        """
        self.client = client

    # =========================================================================
    # Reads
    # =========================================================================

    async def _fetch(self, table: str, columns: Sequence[str]) -> list[dict[str, Any]]:
        try:
            return await self.client.fetch_all(table, columns)
        except Exception as e:
            raise wrap_store_error(e, 'fetch', context={'table': table}) from e

    async def list_accounts(self) -> list[Account]:
        rows = await self._fetch('clients', _COLUMNS[EntityKind.ACCOUNTS])
        return [Account.model_validate(row) for row in rows]

    async def list_projects(self) -> list[Project]:
        rows = await self._fetch('projects', _COLUMNS[EntityKind.PROJECTS])
        return [Project.model_validate(_rename_client_id(row)) for row in rows]

    async def list_leads(self) -> list[Lead]:
        rows = await self._fetch('leads', _COLUMNS[EntityKind.LEADS])
        return [Lead.model_validate(_rename_client_id(row)) for row in rows]

    async def list_conversations(self) -> list[Conversation]:
        rows = await self._fetch('conversations', _COLUMNS[EntityKind.CONVERSATIONS])
        return [Conversation.model_validate(row) for row in rows]

    async def list_memberships(self, variant: MembershipVariant) -> MembershipFetch:
        """
        Read one membership table.

        Junction tables are optional in some deployments, so failures are
        returned in the result instead of raised.
        """
        try:
            rows = await self._fetch(variant.table, ('id', variant.parent_column, 'created_at'))
        except StoreError as e:
            logger.warning('repository.membership_fetch_failed', table=variant.table, error=e.message)
            return MembershipFetch(variant=variant, error=e)

        records = tuple(
            Membership(
                id=row['id'],
                variant=variant,
                parent_id=row.get(variant.parent_column),
                created_at=row.get('created_at'),
            )
            for row in rows
        )
        return MembershipFetch(variant=variant, records=records)

    async def list_all_memberships(self) -> dict[MembershipVariant, MembershipFetch]:
        """Read the four membership tables one after another."""
        return {variant: await self.list_memberships(variant) for variant in MembershipVariant}

    # =========================================================================
    # Deletes
    # =========================================================================

    async def delete_by_ids(
        self,
        kind: EntityKind,
        ids: Sequence[str],
        variant: MembershipVariant | None = None,
    ) -> int:
        """
        Delete rows of one kind (or one membership table) by id.

        Args:
            kind: Entity kind being deleted
            ids: Row identifiers
            variant: Required when kind is MEMBERSHIPS

        Returns:
            Number of rows deleted
        """
        if kind is EntityKind.MEMBERSHIPS:
            if variant is None:
                raise ValueError('variant is required when deleting memberships')
            table = variant.table
        else:
            table = kind.table

        try:
            return await self.client.delete_ids(table, ids)
        except Exception as e:
            raise wrap_store_error(e, 'delete', context={'table': table, 'ids': len(ids)}) from e

