"""
Deletion-set builder.

Walks the foreign keys forward from classified roots to collect every row
that must go with them:

    accounts -> projects -> leads -> conversations -> memberships

The dependency graph is acyclic and each kind is processed after all of its
parents, so a single pass per kind reaches the full closure.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from ..errors import StoreError
from ..logging import get_logger
from ..models.entities import (
    Account,
    AnyRecord,
    ClassifiableRecord,
    Conversation,
    EntityKind,
    Lead,
    Membership,
    MembershipVariant,
    Project,
)

logger = get_logger(__name__)

Classifier = Callable[[ClassifiableRecord], bool]


@dataclass(frozen=True)
class MembershipFetch:
    """Outcome of reading one membership table: rows, or the error that stopped it."""

    variant: MembershipVariant
    records: tuple[Membership, ...] = ()
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class DeletionSet:
    """
    The rows slated for removal, partitioned by entity kind.

    Records keep the order they were read in; membership in the set is
    what matters, see `ids()`.
    """

    accounts: tuple[Account, ...] = ()
    projects: tuple[Project, ...] = ()
    leads: tuple[Lead, ...] = ()
    conversations: tuple[Conversation, ...] = ()
    memberships: tuple[Membership, ...] = ()
    warnings: tuple[str, ...] = field(default=())

    def records(self, kind: EntityKind) -> tuple[AnyRecord, ...]:
        return getattr(self, kind.value)

    def ids(self, kind: EntityKind) -> frozenset[str]:
        return frozenset(record.id for record in self.records(kind))

    def count(self, kind: EntityKind) -> int:
        return len(self.records(kind))

    @property
    def total(self) -> int:
        return sum(self.count(kind) for kind in EntityKind)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def memberships_by_variant(self) -> dict[MembershipVariant, tuple[Membership, ...]]:
        """Group membership rows by the table they live in, skipping empty groups."""
        grouped: dict[MembershipVariant, list[Membership]] = {}
        for membership in self.memberships:
            grouped.setdefault(membership.variant, []).append(membership)
        return {variant: tuple(rows) for variant, rows in grouped.items()}


def _record_key(record: AnyRecord) -> tuple[str, str]:
    # Junction tables each have their own id space
    table = record.table if isinstance(record, Membership) else type(record).__name__
    return table, record.id


def _unique(records: Iterable[AnyRecord]) -> tuple:
    seen: set[tuple[str, str]] = set()
    unique = []
    for record in records:
        key = _record_key(record)
        if key not in seen:
            seen.add(key)
            unique.append(record)
    return tuple(unique)


def build_deletion_set(
    accounts: Sequence[Account],
    projects: Sequence[Project],
    leads: Sequence[Lead],
    conversations: Sequence[Conversation],
    memberships: Mapping[MembershipVariant, MembershipFetch],
    classifier: Classifier,
) -> DeletionSet:
    """
    Compute every row that is test data or hangs off test data.

    Args:
        accounts: All account rows
        projects: All project rows
        leads: All lead rows
        conversations: All conversation rows
        memberships: Per-variant fetch outcome; failed tables count as empty
        classifier: Verdict function for accounts, projects and leads

    Returns:
        DeletionSet closed under the foreign-key walk
    """
    test_accounts = _unique(a for a in accounts if classifier(a))
    account_ids = {a.id for a in test_accounts}

    test_projects = _unique(
        p for p in projects if p.account_id in account_ids or classifier(p)
    )
    project_ids = {p.id for p in test_projects}

    test_leads = _unique(
        lead
        for lead in leads
        if lead.project_id in project_ids
        or lead.account_id in account_ids
        or classifier(lead)
    )
    lead_ids = {lead.id for lead in test_leads}

    # Conversations carry no text worth classifying; inclusion is relational only
    test_conversations = _unique(
        c for c in conversations if c.lead_id in lead_ids or c.project_id in project_ids
    )
    conversation_ids = {c.id for c in test_conversations}

    parent_ids = {
        EntityKind.ACCOUNTS: account_ids,
        EntityKind.PROJECTS: project_ids,
        EntityKind.LEADS: lead_ids,
        EntityKind.CONVERSATIONS: conversation_ids,
    }

    warnings: list[str] = []
    test_memberships: list[Membership] = []
    for variant in MembershipVariant:
        fetch = memberships.get(variant)
        if fetch is None:
            continue
        if not fetch.ok:
            message = f"{variant.table} unavailable, treated as empty: {fetch.error}"
            logger.warning(
                'graph_builder.membership_table_unavailable',
                table=variant.table,
                error=str(fetch.error),
            )
            warnings.append(message)
            continue
        wanted = parent_ids[variant.parent_kind]
        test_memberships.extend(m for m in fetch.records if m.parent_id in wanted)

    deletion_set = DeletionSet(
        accounts=test_accounts,
        projects=test_projects,
        leads=test_leads,
        conversations=test_conversations,
        memberships=_unique(test_memberships),
        warnings=tuple(warnings),
    )

    logger.info(
        'graph_builder.complete',
        accounts=len(test_accounts),
        projects=len(test_projects),
        leads=len(test_leads),
        conversations=len(test_conversations),
        memberships=len(deletion_set.memberships),
    )

    return deletion_set
