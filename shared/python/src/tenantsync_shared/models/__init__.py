"""
tenantsync_shared.models — Pydantic models for the feed and the catalog store.

These models are used by:
- sources/: validate upstream feed pages and records
- loaders/: build explicit store payloads before every write

Table-backed models provide:
  .from_db_row(row: dict) -> Model
  .to_insert_dict() -> dict
"""

from tenantsync_shared.models.catalog import (
    CanonicalCategory,
    CanonicalFloor,
    CatalogEntityPayload,
    CategoryRelation,
    EntityStatus,
    EntityType,
    LocaleEntry,
    OpeningHours,
)
from tenantsync_shared.models.feed import FeedPage, UpstreamRecord
from tenantsync_shared.models.sync import (
    PerformanceMetrics,
    ProcessingError,
    SyncRun,
    SyncStatus,
    UnresolvedCategory,
    ValidationIssue,
)

__all__ = [
    "UpstreamRecord",
    "FeedPage",
    "EntityType",
    "EntityStatus",
    "CanonicalFloor",
    "CanonicalCategory",
    "OpeningHours",
    "CatalogEntityPayload",
    "LocaleEntry",
    "CategoryRelation",
    "SyncStatus",
    "SyncRun",
    "ValidationIssue",
    "ProcessingError",
    "UnresolvedCategory",
    "PerformanceMetrics",
]
