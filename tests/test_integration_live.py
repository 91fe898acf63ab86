"""
Live read-only tests against a real Supabase database.

Only plan and dry-run paths are exercised; nothing here deletes rows.

Run with: DATABASE_URL=... pytest tests/test_integration_live.py -v
"""

import pytest

from crm_cleanup.clients.postgres_client import PostgresClient
from crm_cleanup.models.entities import EntityKind
from crm_cleanup.pipeline.pipeline import CleanupPipeline
from crm_cleanup.repository import CleanupRepository


class TestLiveDatabase:
    """Read paths against the real schema."""

    @pytest.mark.asyncio
    async def test_connectivity_and_primary_reads(self, database_url: str):
        """Every primary table is readable and maps onto the models."""
        client = PostgresClient(database_url)

        try:
            await client.connect()
            await client.verify_connectivity()

            repo = CleanupRepository(client)
            accounts = await repo.list_accounts()
            projects = await repo.list_projects()
            leads = await repo.list_leads()
            conversations = await repo.list_conversations()

            print(
                f"\nRead {len(accounts)} clients, {len(projects)} projects, "
                f"{len(leads)} leads, {len(conversations)} conversations"
            )
            assert all(isinstance(a.id, str) for a in accounts)
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_dry_run_plan(self, database_url: str):
        """A dry run produces a consistent summary and no report."""
        client = PostgresClient(database_url)

        try:
            await client.connect()
            result = await CleanupPipeline(CleanupRepository(client)).run(dry_run=True)

            for kind in EntityKind:
                kind_summary = result.summary.for_kind(kind)
                assert len(kind_summary.examples) <= 5
                assert kind_summary.remaining >= 0
            for warning in result.summary.warnings:
                print(f"\nWarning: {warning}")
            assert result.report is None
        finally:
            await client.close()
