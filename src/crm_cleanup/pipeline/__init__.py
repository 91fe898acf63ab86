"""
Pipeline components for test-data classification, planning and deletion.
"""

from .classifier import TestDataClassifier, classify, classify_text, looks_like_test_data
from .graph_builder import DeletionSet, MembershipFetch, build_deletion_set
from .planner import KindSummary, Summary, summarize
from .executor import DeletionExecutor, ExecutionReport, StageOutcome
from .pipeline import (
    CleanupPipeline,
    CleanupPlan,
    CleanupResult,
    ConfirmationPort,
    Snapshot,
)

__all__ = [
    # Main Pipeline
    'CleanupPipeline',
    'CleanupPlan',
    'CleanupResult',
    'ConfirmationPort',
    'Snapshot',
    # Classification
    'TestDataClassifier',
    'classify',
    'classify_text',
    'looks_like_test_data',
    # Graph building
    'DeletionSet',
    'MembershipFetch',
    'build_deletion_set',
    # Planning
    'KindSummary',
    'Summary',
    'summarize',
    # Execution
    'DeletionExecutor',
    'ExecutionReport',
    'StageOutcome',
]
