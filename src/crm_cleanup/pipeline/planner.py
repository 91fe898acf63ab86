"""
Deletion plan summary.

Turns a DeletionSet into counts and a few example names per entity kind,
for the operator to review before anything is deleted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..models.entities import EntityKind
from .graph_builder import DeletionSet

SAMPLE_SIZE = 5


@dataclass(frozen=True)
class KindSummary:
    """Count and sample display names for one entity kind."""

    kind: EntityKind
    count: int
    examples: tuple[str, ...] = ()

    @property
    def remaining(self) -> int:
        """How many rows the examples leave out ("and N more")."""
        return self.count - len(self.examples)

    def to_dict(self) -> dict[str, Any]:
        return {
            'kind': self.kind.value,
            'count': self.count,
            'examples': list(self.examples),
            'remaining': self.remaining,
        }


@dataclass(frozen=True)
class Summary:
    """Operator-facing view of a deletion plan."""

    kinds: tuple[KindSummary, ...]
    warnings: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return sum(k.count for k in self.kinds)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def for_kind(self, kind: EntityKind) -> KindSummary:
        for kind_summary in self.kinds:
            if kind_summary.kind is kind:
                return kind_summary
        raise KeyError(kind)

    def to_dict(self) -> dict[str, Any]:
        return {
            'total': self.total,
            'kinds': [k.to_dict() for k in self.kinds],
            'warnings': list(self.warnings),
        }


def summarize(deletion_set: DeletionSet, sample_size: int = SAMPLE_SIZE) -> Summary:
    """Summarize a deletion set without touching any data."""
    kinds = []
    for kind in EntityKind:
        records = deletion_set.records(kind)
        kinds.append(
            KindSummary(
                kind=kind,
                count=len(records),
                examples=tuple(r.display_name for r in records[:sample_size]),
            )
        )
    return Summary(kinds=tuple(kinds), warnings=deletion_set.warnings)
