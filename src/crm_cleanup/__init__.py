"""
CRM Test-Data Cleanup

Finds test data in the WhatsApp CRM's Supabase database (clients, projects,
leads, conversations and their membership rows), shows what would go, and
deletes it leaves-first with per-table failure isolation.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .pipeline import (
    CleanupPipeline,
    CleanupPlan,
    CleanupResult,
    DeletionExecutor,
    DeletionSet,
    ExecutionReport,
    Summary,
    TestDataClassifier,
    build_deletion_set,
    classify,
    summarize,
)
from .repository import CleanupRepository
from .models import ClassificationRules, EntityKind, MembershipVariant
from .logging import (
    configure_logging,
    get_logger,
    logging_context,
    PipelineTimer,
)
from .errors import (
    CleanupError,
    ConfigurationError,
    StoreError,
    StoreConnectionError,
    FetchError,
    DeleteError,
    PipelineError,
    BackupError,
)

__all__ = [
    # Version
    '__version__',
    # Main Pipeline
    'CleanupPipeline',
    'CleanupPlan',
    'CleanupResult',
    # Components
    'TestDataClassifier',
    'classify',
    'build_deletion_set',
    'DeletionSet',
    'summarize',
    'Summary',
    'DeletionExecutor',
    'ExecutionReport',
    # Models
    'ClassificationRules',
    'EntityKind',
    'MembershipVariant',
    # Repository
    'CleanupRepository',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'PipelineTimer',
    # Errors
    'CleanupError',
    'ConfigurationError',
    'StoreError',
    'StoreConnectionError',
    'FetchError',
    'DeleteError',
    'PipelineError',
    'BackupError',
]
