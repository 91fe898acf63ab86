"""
Custom exceptions and error handling for the CRM test-data cleanup.

Provides:
- Typed exception hierarchy for different failure modes
- Error context preservation for debugging
- Mapping of database driver errors onto the hierarchy
"""

from typing import Any


class CleanupError(Exception):
    """Base exception for all cleanup errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class ConfigurationError(CleanupError):
    """Required configuration is missing or malformed."""

    pass


# =============================================================================
# Store Errors
# =============================================================================


class StoreError(CleanupError):
    """Base class for persistence layer errors."""

    pass


class StoreConnectionError(StoreError):
    """Failed to reach the database at all."""

    pass


class FetchError(StoreError):
    """Listing the rows of a table failed."""

    pass


class DeleteError(StoreError):
    """Deleting a batch of rows failed."""

    pass


# =============================================================================
# Pipeline Errors
# =============================================================================


class PipelineError(CleanupError):
    """A pipeline stage failed in a way that aborts the run."""

    pass


class BackupError(PipelineError):
    """Writing the pre-deletion backup failed."""

    pass


# =============================================================================
# Error Handling Utilities
# =============================================================================


_CONNECTION_MARKERS = ('connection', 'connect', 'timeout', 'could not translate host')


def wrap_store_error(
    exc: Exception,
    operation: str,
    context: dict[str, Any] | None = None,
) -> StoreError:
    """
    Wrap a database driver exception in our typed error hierarchy.

    Args:
        exc: The original exception
        operation: 'fetch' or 'delete'
        context: Additional context for debugging (table, id count, ...)

    Returns:
        StoreConnectionError for connectivity failures, otherwise
        FetchError or DeleteError depending on the operation
    """
    if isinstance(exc, StoreError):
        return exc

    error_str = str(exc).lower()
    ctx = dict(context or {})
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    if any(marker in error_str for marker in _CONNECTION_MARKERS):
        return StoreConnectionError(f"Database connection failed: {exc}", context=ctx)
    if operation == 'delete':
        return DeleteError(f"Delete failed: {exc}", context=ctx)
    return FetchError(f"Fetch failed: {exc}", context=ctx)
