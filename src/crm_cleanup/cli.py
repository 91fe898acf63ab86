"""
Command-line entry point for the CRM test-data cleanup.

Usage:
    crm-cleanup --dry-run
    crm-cleanup --force --backup-dir backups/
    python -m crm_cleanup --rules rules.json --older-than-days 14

Exit codes: 0 when the run completes (including per-table delete errors
and an operator declining), 1 on fatal errors, 2 on bad arguments.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Callable, TextIO

from pydantic import ValidationError as PydanticValidationError

from .clients.postgres_client import PostgresClient
from .config import CleanupSettings, get_settings
from .errors import CleanupError, ConfigurationError, StoreConnectionError
from .logging import configure_logging, get_logger
from .models.entities import DELETION_ORDER, EntityKind
from .models.rules import ClassificationRules
from .pipeline.executor import ExecutionReport
from .pipeline.pipeline import CleanupPipeline, CleanupResult
from .pipeline.planner import Summary
from .repository import CleanupRepository

logger = get_logger(__name__)

_LABELS = {
    EntityKind.ACCOUNTS: 'Clients',
    EntityKind.PROJECTS: 'Projects',
    EntityKind.LEADS: 'Leads',
    EntityKind.CONVERSATIONS: 'Conversations',
    EntityKind.MEMBERSHIPS: 'Memberships',
}


# ANSI colors for terminal output
class Colors:
    HEADER = '\033[95m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


class Console:
    """Writes the operator-facing report; colors only on a TTY."""

    def __init__(self, stream: TextIO | None = None, color: bool | None = None):
        self.stream = stream or sys.stdout
        self.color = self.stream.isatty() if color is None else color

    def _paint(self, text: str, *codes: str) -> str:
        if not self.color:
            return text
        return ''.join(codes) + text + Colors.ENDC

    def line(self, text: str = '') -> None:
        print(text, file=self.stream)

    def header(self, text: str) -> None:
        self.line()
        self.line(self._paint(text, Colors.HEADER, Colors.BOLD))
        self.line(self._paint('=' * len(text), Colors.HEADER, Colors.BOLD))

    def success(self, text: str) -> None:
        self.line(self._paint(f"✓ {text}", Colors.GREEN))

    def warning(self, text: str) -> None:
        self.line(self._paint(f"⚠ {text}", Colors.YELLOW))

    def error(self, text: str) -> None:
        self.line(self._paint(f"✗ {text}", Colors.RED))


def render_summary(summary: Summary, console: Console) -> None:
    """Print counts and up to five examples per kind."""
    console.header('Test Data Summary')
    for kind_summary in summary.kinds:
        console.line(f"{_LABELS[kind_summary.kind]}: {kind_summary.count}")
        for example in kind_summary.examples:
            console.line(f"   - {example}")
        if kind_summary.remaining > 0:
            console.line(f"   ... and {kind_summary.remaining} more")

    for warning in summary.warnings:
        console.warning(warning)

    console.line()
    console.line(f"Total items to clean: {summary.total}")


def render_report(report: ExecutionReport, console: Console) -> None:
    """Print per-kind deleted counts with any errors inline."""
    console.header('Cleanup Results')
    for kind in reversed(DELETION_ORDER):
        deleted = report.deleted_count(kind)
        error = report.error(kind)
        if error:
            console.error(f"{_LABELS[kind]} deleted: {deleted}, error: {error}")
        else:
            console.line(f"{_LABELS[kind]} deleted: {deleted}")

    console.line()
    console.line(f"Total items cleaned: {report.total_deleted}")


def prompt_confirmation(reader: Callable[[str], str] = input) -> Callable[[Summary], bool]:
    """Build a confirmation port that asks on the terminal."""

    def confirm(summary: Summary) -> bool:
        try:
            answer = reader('\nProceed with deletion? (y/N): ')
        except EOFError:
            return False
        return answer.strip().lower() in ('y', 'yes')

    return confirm


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='crm-cleanup',
        description='Find and delete test data (clients, projects, leads, conversations, memberships)',
    )
    parser.add_argument(
        '--dry-run', '-n',
        action='store_true',
        help='Show what would be deleted without deleting anything',
    )
    parser.add_argument(
        '--force', '-f',
        action='store_true',
        help='Delete without asking for confirmation',
    )
    parser.add_argument(
        '--rules',
        type=Path,
        help='JSON file overriding the classification patterns',
    )
    parser.add_argument(
        '--older-than-days',
        type=int,
        help='Age gate for the stale-record heuristic',
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        help='Max ids per DELETE statement (0 = one statement per table)',
    )
    parser.add_argument(
        '--backup-dir',
        type=Path,
        help='Write planned rows to a JSON backup here before deleting',
    )
    parser.add_argument(
        '--report-file',
        type=Path,
        help='Write the run result as JSON to this file',
    )
    parser.add_argument(
        '--json-logs',
        action='store_true',
        help='Emit JSON logs on stderr',
    )
    parser.add_argument(
        '--log-level',
        help='Log level (defaults to LOG_LEVEL)',
    )
    return parser


def load_rules(args: argparse.Namespace, default_older_than_days: int) -> ClassificationRules:
    """Resolve rules from the rules file, settings and flags, flags winning."""
    try:
        rules = ClassificationRules.from_file(args.rules) if args.rules else None
    except (OSError, PydanticValidationError) as e:
        raise ConfigurationError(f"Invalid rules file: {e}", context={'path': str(args.rules)}) from e

    if rules is None:
        rules = ClassificationRules(older_than_days=default_older_than_days)
    if args.older_than_days is not None:
        # model_copy does not validate
        try:
            rules = ClassificationRules.model_validate(
                {**rules.model_dump(), 'older_than_days': args.older_than_days}
            )
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid --older-than-days: {args.older_than_days}",
                context={'older_than_days': args.older_than_days},
            ) from e
    return rules


def load_settings() -> CleanupSettings:
    """Read settings, turning a malformed environment into a ConfigurationError."""
    try:
        return get_settings()
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def write_report_file(result: CleanupResult, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(result.to_dict(), indent=2), encoding='utf-8')


async def run_cleanup(
    args: argparse.Namespace,
    console: Console,
    client: PostgresClient | None = None,
    reader: Callable[[str], str] = input,
) -> CleanupResult:
    """Wire settings, client, repository and pipeline, then run once."""
    settings = load_settings()

    if client is None:
        missing = settings.validate_required()
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
        client = PostgresClient(settings.DATABASE_URL)

    rules = load_rules(args, settings.OLDER_THAN_DAYS)
    batch_size = args.batch_size if args.batch_size is not None else settings.DELETE_BATCH_SIZE
    backup_dir = args.backup_dir or settings.BACKUP_DIR

    if batch_size < 0:
        raise ConfigurationError('--batch-size must be >= 0')

    console.header('Test Data Cleanup Tool')
    if args.dry_run:
        console.warning('DRY RUN MODE - No data will be deleted')
    elif args.force:
        console.warning('FORCE MODE - Will delete without confirmation')

    try:
        await client.connect()
        try:
            await client.verify_connectivity()
        except Exception as e:
            raise StoreConnectionError(f"Cannot reach database: {e}") from e

        pipeline = CleanupPipeline(
            CleanupRepository(client),
            rules=rules,
            batch_size=batch_size,
            backup_dir=backup_dir,
        )

        def confirm(summary: Summary) -> bool:
            render_summary(summary, console)
            return prompt_confirmation(reader)(summary)

        result = await pipeline.run(dry_run=args.dry_run, force=args.force, confirm=confirm)
    finally:
        await client.close()

    # The interactive path already showed the summary before prompting
    if args.dry_run or args.force or result.summary.is_empty:
        render_summary(result.summary, console)

    if result.cancelled:
        console.error('Cleanup cancelled by user')
    if result.backup_path is not None:
        console.success(f"Backup written to {result.backup_path}")
    if result.report is not None:
        render_report(result.report, console)
    if result.dry_run:
        console.line()
        console.warning('This was a dry run. No data was deleted. Run without --dry-run to delete.')

    if args.report_file:
        write_report_file(result, args.report_file)
        console.success(f"Report written to {args.report_file}")

    return result


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    console = Console()

    try:
        settings = load_settings()
        configure_logging(
            json_output=args.json_logs or settings.LOG_JSON,
            log_level=args.log_level or settings.LOG_LEVEL,
        )
        asyncio.run(run_cleanup(args, console))
    except CleanupError as e:
        logger.error('cleanup_failed', error=e.message, error_type=type(e).__name__, context=e.context)
        console.error(f"Cleanup failed: {e.message}")
        return 1
    except KeyboardInterrupt:
        console.error('Interrupted')
        return 130

    return 0


if __name__ == '__main__':
    sys.exit(main())
