"""
errors.py — exception hierarchy shared by the pipeline and CLI.

Only ConfigurationError and errors escaping the orchestrator are run-fatal;
FeedError and ReconcileError are caught and recorded where they occur.
"""

from __future__ import annotations


class TenantSyncError(Exception):
    """Base class for all tenantsync errors."""


class ConfigurationError(TenantSyncError):
    """A required setting is missing or invalid."""


class FeedError(TenantSyncError):
    """An upstream feed page could not be fetched or parsed."""

    def __init__(self, message: str, *, page: int, status_code: int | None = None) -> None:
        super().__init__(message)
        self.page = page
        self.status_code = status_code


class ReconcileError(TenantSyncError):
    """A single record could not be reconciled into the catalog."""

    def __init__(self, message: str, *, unique_id: str | None = None) -> None:
        super().__init__(message)
        self.unique_id = unique_id


class StoreError(TenantSyncError):
    """The catalog store returned an unexpected response."""
