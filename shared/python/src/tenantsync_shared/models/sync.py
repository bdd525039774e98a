"""
models/sync.py — Pydantic models for sync run auditing.

SyncRun matches the api_sync_logs row; ValidationIssue and ProcessingError
are the append-only diagnostics written to their own tables at run end.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncStatus(StrEnum):
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class ValidationIssue(BaseModel):
    """A non-fatal problem with an upstream record's content."""

    model_config = ConfigDict(frozen=True)

    record_unique_id: str
    description: str

    def to_insert_dict(self, sync_log_id: Any) -> dict[str, Any]:
        return {"parent_id": sync_log_id, **self.model_dump()}


class ProcessingError(BaseModel):
    """A failed page fetch or record reconciliation."""

    timestamp: datetime = Field(default_factory=_utcnow)
    record_unique_id: str
    error_message: str
    error_stack: str = ""

    @classmethod
    def from_exception(cls, record_unique_id: str, exc: BaseException, stack: str = "") -> "ProcessingError":
        return cls(
            record_unique_id=record_unique_id,
            error_message=str(exc) or type(exc).__name__,
            error_stack=stack,
        )

    def to_insert_dict(self, sync_log_id: Any) -> dict[str, Any]:
        return {
            "parent_id": sync_log_id,
            "timestamp": self.timestamp.isoformat(),
            "record_unique_id": self.record_unique_id,
            "error_message": self.error_message,
            "error_stack": self.error_stack[:8000],
        }


class UnresolvedCategory(BaseModel):
    """A category label that matched no canonical category of its type."""

    model_config = ConfigDict(frozen=True)

    category_name: str
    type: str
    english_name: str = ""
    thai_name: str = ""


class PerformanceMetrics(BaseModel):
    avg_time_per_record_ms: int = 0
    api_response_time_avg_ms: int = 0
    memory_usage_mb: int = 0


class SyncRun(BaseModel):
    """Matches the api_sync_logs table row."""

    id: Any = None
    sync_id: str
    status: SyncStatus = SyncStatus.RUNNING
    external_api_url: str = ""
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None

    total_records_fetched: int = 0
    total_pages: int = 0
    last_page_processed: int = 0

    records_processed: int = 0
    records_created: int = 0
    records_updated: int = 0
    records_failed: int = 0
    shops_processed: int = 0
    dinings_processed: int = 0

    metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    notes: str | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "SyncRun":
        return cls(
            id=row.get("id"),
            sync_id=row["sync_id"],
            status=row.get("status", SyncStatus.RUNNING),
            external_api_url=row.get("external_api_url") or "",
            started_at=row.get("started_at") or _utcnow(),
            completed_at=row.get("completed_at"),
            total_records_fetched=row.get("api_response_summary_total_records_fetched") or 0,
            total_pages=row.get("api_response_summary_total_pages") or 0,
            last_page_processed=row.get("api_response_summary_last_page_processed") or 0,
            records_processed=row.get("processing_summary_records_processed") or 0,
            records_created=row.get("processing_summary_records_created") or 0,
            records_updated=row.get("processing_summary_records_updated") or 0,
            records_failed=row.get("processing_summary_records_failed") or 0,
            shops_processed=row.get("processing_summary_shops_processed") or 0,
            dinings_processed=row.get("processing_summary_dinings_processed") or 0,
            metrics=PerformanceMetrics(
                avg_time_per_record_ms=row.get("performance_metrics_avg_time_per_record") or 0,
                api_response_time_avg_ms=row.get("performance_metrics_api_response_time_avg") or 0,
                memory_usage_mb=row.get("performance_metrics_memory_usage_mb") or 0,
            ),
            notes=row.get("notes"),
        )

    def counters_dict(self) -> dict[str, Any]:
        """Summary columns of the api_sync_logs row."""
        return {
            "api_response_summary_total_records_fetched": self.total_records_fetched,
            "api_response_summary_total_pages": self.total_pages,
            "api_response_summary_last_page_processed": self.last_page_processed,
            "processing_summary_records_processed": self.records_processed,
            "processing_summary_records_created": self.records_created,
            "processing_summary_records_updated": self.records_updated,
            "processing_summary_records_failed": self.records_failed,
            "processing_summary_shops_processed": self.shops_processed,
            "processing_summary_dinings_processed": self.dinings_processed,
        }

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "sync_id": self.sync_id,
            "status": self.status.value,
            "external_api_url": self.external_api_url,
            "started_at": self.started_at.isoformat(),
            **self.counters_dict(),
        }

    def to_terminal_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "completed_at": (self.completed_at or _utcnow()).isoformat(),
            **self.counters_dict(),
            "performance_metrics_avg_time_per_record": self.metrics.avg_time_per_record_ms,
            "performance_metrics_memory_usage_mb": self.metrics.memory_usage_mb,
            "performance_metrics_api_response_time_avg": self.metrics.api_response_time_avg_ms,
            "notes": self.notes,
        }
