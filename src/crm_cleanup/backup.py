"""
Pre-deletion backup of planned rows.

Writes every record in a DeletionSet to a single JSON file, grouped by
table, so a mistaken cleanup can be reconstructed by hand.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .errors import BackupError
from .logging import get_logger
from .models.entities import EntityKind

if TYPE_CHECKING:
    from .pipeline.graph_builder import DeletionSet

logger = get_logger(__name__)


def backup_payload(deletion_set: DeletionSet, taken_at: datetime) -> dict[str, Any]:
    """Build the JSON-serialisable backup document."""
    tables: dict[str, list[dict[str, Any]]] = {}
    for kind in EntityKind:
        for record in deletion_set.records(kind):
            table = record.table if kind is EntityKind.MEMBERSHIPS else kind.table
            tables.setdefault(table, []).append(record.model_dump(mode='json'))

    return {
        'taken_at': taken_at.isoformat(),
        'total': deletion_set.total,
        'tables': tables,
    }


def write_backup(
    deletion_set: DeletionSet,
    backup_dir: str | Path,
    taken_at: datetime | None = None,
) -> Path:
    """
    Write the deletion set to ``<backup_dir>/cleanup-backup-<timestamp>.json``.

    Raises:
        BackupError: If the directory or file cannot be written
    """
    taken_at = taken_at or datetime.now(timezone.utc)
    path = Path(backup_dir) / f"cleanup-backup-{taken_at.strftime('%Y%m%dT%H%M%SZ')}.json"

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(backup_payload(deletion_set, taken_at), indent=2),
            encoding='utf-8',
        )
    except OSError as e:
        raise BackupError(
            f"Could not write backup: {e}",
            context={'path': str(path)},
        ) from e

    logger.info('backup.written', path=str(path), rows=deletion_set.total)
    return path
