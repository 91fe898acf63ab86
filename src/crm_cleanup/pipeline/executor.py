"""
Leaves-first deletion executor.

Runs five fixed stages, one per entity kind:

    memberships -> conversations -> leads -> projects -> accounts

Each stage is failure-isolated: an error is logged and recorded against
that stage, and the executor moves on to the next one. There is no rollback
and no cancellation once the first stage starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..logging import get_logger
from ..models.entities import DELETION_ORDER, AnyRecord, EntityKind, MembershipVariant
from .graph_builder import DeletionSet

if TYPE_CHECKING:
    from ..repository import CleanupRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class StageOutcome:
    """Result of deleting one table's worth of planned rows."""

    kind: EntityKind
    table: str
    attempted: int
    deleted_count: int
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            'kind': self.kind.value,
            'table': self.table,
            'attempted': self.attempted,
            'deleted_count': self.deleted_count,
            'error': self.error,
        }


@dataclass(frozen=True)
class ExecutionReport:
    """Immutable record of what the executor deleted, in call order."""

    outcomes: tuple[StageOutcome, ...] = ()

    def deleted_count(self, kind: EntityKind) -> int:
        return sum(o.deleted_count for o in self.outcomes if o.kind is kind)

    def error(self, kind: EntityKind) -> str | None:
        """All error messages for a kind joined together, or None."""
        errors = [f"{o.table}: {o.error}" for o in self.outcomes if o.kind is kind and o.error]
        return '; '.join(errors) if errors else None

    @property
    def total_deleted(self) -> int:
        return sum(o.deleted_count for o in self.outcomes)

    @property
    def has_errors(self) -> bool:
        return any(o.error for o in self.outcomes)

    @property
    def call_order(self) -> list[str]:
        return [o.table for o in self.outcomes]

    def to_dict(self) -> dict[str, Any]:
        return {
            'total_deleted': self.total_deleted,
            'has_errors': self.has_errors,
            'kinds': {
                kind.value: {
                    'deleted_count': self.deleted_count(kind),
                    'error': self.error(kind),
                }
                for kind in DELETION_ORDER
            },
            'outcomes': [o.to_dict() for o in self.outcomes],
        }


def _chunks(ids: list[str], size: int) -> list[list[str]]:
    if size <= 0 or len(ids) <= size:
        return [ids]
    return [ids[i:i + size] for i in range(0, len(ids), size)]


class DeletionExecutor:
    """
    Deletes a DeletionSet in dependency order.

    Usage:
        executor = DeletionExecutor(repository)
        report = await executor.execute(deletion_set)
    """

    def __init__(self, repository: CleanupRepository, batch_size: int = 0):
        """
        Args:
            repository: Store exposing `delete_by_ids(kind, ids, variant=None)`
            batch_size: Max ids per DELETE; 0 sends one request per table
        """
        self.repository = repository
        self.batch_size = batch_size

    async def execute(self, deletion_set: DeletionSet) -> ExecutionReport:
        outcomes: list[StageOutcome] = []

        for kind in DELETION_ORDER:
            if deletion_set.count(kind) == 0:
                continue

            if kind is EntityKind.MEMBERSHIPS:
                # Each variant lives in its own table
                for variant, rows in deletion_set.memberships_by_variant().items():
                    outcomes.append(await self._delete_stage(kind, rows, variant))
            else:
                outcomes.append(await self._delete_stage(kind, deletion_set.records(kind)))

        report = ExecutionReport(outcomes=tuple(outcomes))
        logger.info(
            'executor.complete',
            total_deleted=report.total_deleted,
            has_errors=report.has_errors,
        )
        return report

    async def _delete_stage(
        self,
        kind: EntityKind,
        records: tuple[AnyRecord, ...],
        variant: MembershipVariant | None = None,
    ) -> StageOutcome:
        table = variant.table if variant is not None else kind.table
        ids = [r.id for r in records]
        deleted = 0
        errors: list[str] = []

        logger.info('executor.stage_started', kind=kind.value, table=table, count=len(ids))

        for batch in _chunks(ids, self.batch_size):
            try:
                deleted += await self.repository.delete_by_ids(kind, batch, variant=variant)
            except Exception as e:
                logger.exception(
                    'executor.stage_failed',
                    kind=kind.value,
                    table=table,
                    batch_size=len(batch),
                )
                errors.append(getattr(e, 'message', None) or str(e))

        logger.info(
            'executor.stage_complete',
            kind=kind.value,
            table=table,
            deleted=deleted,
            failed=bool(errors),
        )

        return StageOutcome(
            kind=kind,
            table=table,
            attempted=len(ids),
            deleted_count=deleted,
            error='; '.join(errors) if errors else None,
        )
