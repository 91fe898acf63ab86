"""
Postgres client for the Supabase database behind the CRM.

Uses SQLAlchemy 2.0 async engine + asyncpg for raw SQL execution against
the Supabase connection string (direct or pooler). Only two data
operations exist: read selected columns of a whole table, and delete rows
by primary key.

Table and column names are interpolated into SQL, so they must come from
the fixed mapping in `crm_cleanup.repository`, never from user input.
"""

from __future__ import annotations

from typing import Any, Sequence
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from tenacity import retry, stop_after_attempt, wait_exponential

logger = structlog.get_logger(__name__)


def _sanitize_url(url: str) -> str:
    """Remove URL query params that asyncpg does not understand.

    Supabase and other libpq-style URLs carry ``sslmode=require`` and
    sometimes ``channel_binding=require``; asyncpg rejects unknown
    connection params. SSL is passed via ``connect_args`` instead.
    """
    _STRIP_PARAMS = {'channel_binding', 'sslmode'}
    parsed = urlparse(url)
    if not parsed.query:
        return url
    params = parse_qs(parsed.query)
    filtered = {k: v for k, v in params.items() if k not in _STRIP_PARAMS}
    new_query = urlencode(filtered, doseq=True)
    return urlunparse(parsed._replace(query=new_query))


def _normalise_driver(url: str) -> str:
    """Force the asyncpg driver prefix."""
    if url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql+asyncpg://', 1)
    if url.startswith('postgresql://') and '+asyncpg' not in url:
        return url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    return url


def _quote_ident(name: str) -> str:
    """Double-quote a SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


class PostgresClient:
    """
    Async Postgres client used by the cleanup repository.

    Callers are expected to translate driver exceptions; this class lets
    them propagate unchanged.
    """

    def __init__(self, database_url: str | None = None, ssl: str | None = 'require'):
        """
        Initialize with a Supabase/Postgres connection URL.

        Args:
            database_url: Postgres connection URL. 'postgres://' and
                          'postgresql://' URLs are converted to use asyncpg.
            ssl: asyncpg ssl mode; None disables SSL (local Supabase CLI stack)
        """
        self._engine: AsyncEngine | None = None
        self._database_url = database_url
        self._ssl = ssl

    async def connect(self, database_url: str | None = None) -> None:
        """
        Create the async engine. Idempotent; no-op if already connected.

        Args:
            database_url: Override the URL from __init__.
        """
        if self._engine is not None:
            return

        url = database_url or self._database_url
        if not url:
            raise ValueError('database_url is required')

        url = _normalise_driver(_sanitize_url(url))

        connect_args: dict[str, Any] = {
            # Supabase's transaction pooler (Supavisor) doesn't support prepared statements
            'prepared_statement_cache_size': 0,
            'statement_cache_size': 0,
        }
        if self._ssl:
            connect_args['ssl'] = self._ssl

        self._engine = create_async_engine(
            url,
            pool_size=2,
            max_overflow=0,
            pool_pre_ping=True,
            pool_timeout=30,
            connect_args=connect_args,
        )
        logger.info('postgres_client.connected')

    async def close(self) -> None:
        """Dispose of the engine and connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info('postgres_client.closed')

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError('PostgresClient not connected, call connect() first')
        return self._engine

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def verify_connectivity(self) -> None:
        """Run ``SELECT 1``; raises the driver error after three failed attempts."""
        async with self.engine.connect() as conn:
            await conn.execute(text('SELECT 1'))

    async def fetch_all(self, table: str, columns: Sequence[str]) -> list[dict[str, Any]]:
        """
        Read the given columns of every row in a table.

        Args:
            table: Table name from the fixed mapping
            columns: Column names from the fixed mapping

        Returns:
            Rows as plain dicts, newest first when the table has created_at
        """
        column_sql = ', '.join(_quote_ident(c) for c in columns)
        order_sql = ' ORDER BY "created_at" DESC' if 'created_at' in columns else ''
        sql = text(f'SELECT {column_sql} FROM {_quote_ident(table)}{order_sql}')

        async with self.engine.connect() as conn:
            result = await conn.execute(sql)
            rows = [dict(row) for row in result.mappings().all()]

        logger.debug('postgres_client.fetch_all', table=table, rows=len(rows))
        return rows

    async def delete_ids(self, table: str, ids: Sequence[str]) -> int:
        """
        Delete rows by primary key in a single statement.

        Args:
            table: Table name from the fixed mapping
            ids: Primary key values

        Returns:
            Number of rows deleted
        """
        if not ids:
            return 0

        # CRM tables key on uuid; cast the parameter, not the column, to keep the pk index
        sql = text(f'DELETE FROM {_quote_ident(table)} WHERE "id" = ANY(CAST(:ids AS uuid[]))')

        async with self.engine.begin() as conn:
            result = await conn.execute(sql, {'ids': [str(i) for i in ids]})

        deleted = result.rowcount if result.rowcount is not None and result.rowcount >= 0 else len(ids)
        logger.debug('postgres_client.delete_ids', table=table, requested=len(ids), deleted=deleted)
        return deleted
