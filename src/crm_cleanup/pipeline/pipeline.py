"""
Main pipeline orchestrator for test-data cleanup.

Provides end-to-end processing:
1. Read a snapshot of every table (sequentially)
2. Classify accounts, projects and leads
3. Build the deletion set along foreign keys
4. Summarize the plan
5. Stop for dry runs; otherwise ask for confirmation unless forced
6. Optionally back up the planned rows
7. Delete leaves-first and return the execution report
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..backup import write_backup
from ..logging import PipelineTimer, get_logger, logging_context
from ..models.entities import Account, Conversation, Lead, MembershipVariant, Project
from ..models.rules import ClassificationRules
from .classifier import TestDataClassifier
from .executor import DeletionExecutor, ExecutionReport
from .graph_builder import DeletionSet, MembershipFetch, build_deletion_set
from .planner import Summary, summarize

if TYPE_CHECKING:
    from ..repository import CleanupRepository

logger = get_logger(__name__)

# Receives the plan, returns True to go ahead with deletion
ConfirmationPort = Callable[[Summary], bool]


@dataclass(frozen=True)
class Snapshot:
    """Every row the pipeline reads, captured once per run."""

    accounts: list[Account]
    projects: list[Project]
    leads: list[Lead]
    conversations: list[Conversation]
    memberships: dict[MembershipVariant, MembershipFetch]


@dataclass(frozen=True)
class CleanupPlan:
    """Deletion set plus its summary; produced without mutating anything."""

    deletion_set: DeletionSet
    summary: Summary


@dataclass
class CleanupResult:
    """Outcome of one cleanup run."""

    run_id: str
    summary: Summary
    report: ExecutionReport | None = None
    dry_run: bool = False
    cancelled: bool = False
    backup_path: Path | None = None

    # Timing
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    processing_time_ms: int | None = None
    stage_timings: dict[str, float] = field(default_factory=dict)

    @property
    def executed(self) -> bool:
        return self.report is not None

    @property
    def status(self) -> str:
        if self.dry_run:
            return 'DRY_RUN'
        if self.cancelled:
            return 'CANCELLED'
        if self.report is not None and self.report.has_errors:
            return 'PARTIAL_FAILURE'
        return 'SUCCESS'

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'run_id': self.run_id,
            'status': self.status,
            'dry_run': self.dry_run,
            'cancelled': self.cancelled,
            'summary': self.summary.to_dict(),
            'report': self.report.to_dict() if self.report is not None else None,
            'backup_path': str(self.backup_path) if self.backup_path else None,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'processing_time_ms': self.processing_time_ms,
            'stage_timings': self.stage_timings,
        }


class CleanupPipeline:
    """
    End-to-end pipeline for finding and deleting CRM test data.

    Orchestrates:
    - TestDataClassifier: verdict per account, project and lead
    - build_deletion_set: foreign-key closure of the verdicts
    - summarize: operator-facing plan
    - DeletionExecutor: leaves-first delete with per-stage isolation

    Usage:
        pipeline = CleanupPipeline(repository, rules)
        result = await pipeline.run(dry_run=True)
    """

    def __init__(
        self,
        repository: CleanupRepository,
        rules: ClassificationRules | None = None,
        batch_size: int = 0,
        backup_dir: str | Path | None = None,
        now: datetime | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            repository: Store for reads and deletes
            rules: Classification rules (defaults to the built-in patterns)
            batch_size: Max ids per DELETE; 0 sends one request per table
            backup_dir: Write planned rows here before deleting, if set
            now: Reference time for the age gate (defaults to run start)
        """
        self.repository = repository
        self.rules = rules or ClassificationRules()
        self.backup_dir = backup_dir
        self.now = now
        self.executor = DeletionExecutor(repository, batch_size=batch_size)

    async def fetch_snapshot(self) -> Snapshot:
        """
        Read every table one after another.

        Raises:
            FetchError: If any primary table cannot be read. Membership
                tables never raise; their errors ride along in the snapshot.
        """
        accounts = await self.repository.list_accounts()
        projects = await self.repository.list_projects()
        leads = await self.repository.list_leads()
        conversations = await self.repository.list_conversations()
        memberships = await self.repository.list_all_memberships()

        logger.info(
            'snapshot_fetched',
            accounts=len(accounts),
            projects=len(projects),
            leads=len(leads),
            conversations=len(conversations),
            memberships=sum(len(m.records) for m in memberships.values()),
        )
        return Snapshot(accounts, projects, leads, conversations, memberships)

    def build_plan(self, snapshot: Snapshot) -> CleanupPlan:
        """Classify and walk a snapshot. Pure computation."""
        classifier = TestDataClassifier(self.rules, now=self.now)
        deletion_set = build_deletion_set(
            snapshot.accounts,
            snapshot.projects,
            snapshot.leads,
            snapshot.conversations,
            snapshot.memberships,
            classifier,
        )
        return CleanupPlan(deletion_set=deletion_set, summary=summarize(deletion_set))

    async def plan(self) -> CleanupPlan:
        """Fetch a snapshot and build the plan without deleting anything."""
        return self.build_plan(await self.fetch_snapshot())

    async def run(
        self,
        dry_run: bool = False,
        force: bool = False,
        confirm: ConfirmationPort | None = None,
    ) -> CleanupResult:
        """
        Run the cleanup.

        Args:
            dry_run: Plan and summarize only; never deletes
            force: Skip the confirmation gate
            confirm: Called with the summary when neither dry_run nor force
                is set; a missing port declines

        Returns:
            CleanupResult; `report` is None unless deletion ran

        Raises:
            FetchError: If a primary table cannot be read
            BackupError: If the backup cannot be written (nothing is deleted)
        """
        run_id = uuid.uuid4().hex[:12]
        mode = 'dry_run' if dry_run else ('force' if force else 'interactive')
        timer = PipelineTimer()

        with logging_context(run_id=run_id, mode=mode):
            logger.info('cleanup_started')

            with timer.stage('fetch'):
                snapshot = await self.fetch_snapshot()

            with timer.stage('plan'):
                plan = self.build_plan(snapshot)

            result = CleanupResult(run_id=run_id, summary=plan.summary, dry_run=dry_run)
            logger.info('plan_ready', total=plan.summary.total, warnings=len(plan.summary.warnings))

            if dry_run:
                logger.info('dry_run_complete')
                return self._finish(result, timer)

            if plan.deletion_set.is_empty:
                logger.info('nothing_to_delete')
                return self._finish(result, timer)

            if not force:
                approved = confirm(plan.summary) if confirm is not None else False
                if not approved:
                    logger.info('cleanup_cancelled')
                    result.cancelled = True
                    return self._finish(result, timer)

            if self.backup_dir is not None:
                with timer.stage('backup'):
                    result.backup_path = write_backup(plan.deletion_set, self.backup_dir)

            with timer.stage('execute'):
                result.report = await self.executor.execute(plan.deletion_set)

            return self._finish(result, timer)

    def _finish(self, result: CleanupResult, timer: PipelineTimer) -> CleanupResult:
        result.completed_at = datetime.now(timezone.utc)
        result.processing_time_ms = int(timer.total_ms)
        result.stage_timings = timer.stages.copy()
        logger.info('cleanup_complete', status=result.status, **timer.summary())
        return result
