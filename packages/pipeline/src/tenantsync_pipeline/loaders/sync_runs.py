"""
loaders/sync_runs.py — api_sync_logs bookkeeping for one sync run.

Lifecycle:

    tracker = SyncRunTracker(store)
    run = await tracker.start(url)                  # RUNNING, zeroed counters
    try:
        ...
        await tracker.complete(run, fetch=summary, totals=totals, context=ctx)
    except Exception as exc:
        await tracker.fail(run, exc, ctx)           # FAILED
        raise

A run with failed records ends PARTIAL, otherwise COMPLETED. Validation
issues and processing errors gathered on the RunContext are written to
their own tables, keyed by the api_sync_logs row id.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from tenantsync_shared.constants import SYNC_ERRORS_TABLE, SYNC_ISSUES_TABLE
from tenantsync_shared.models import PerformanceMetrics, SyncRun, SyncStatus
from tenantsync_pipeline.loaders.supabase_loader import SupabaseCatalogStore
from tenantsync_pipeline.utils.run_context import RunContext

if TYPE_CHECKING:
    from tenantsync_pipeline.pipelines.orchestrator import RunTotals
    from tenantsync_pipeline.sources.directory import FetchSummary

log = structlog.get_logger(__name__)


class SyncRunTracker:
    """Creates and finalizes api_sync_logs rows."""

    def __init__(self, store: SupabaseCatalogStore) -> None:
        self._store = store

    async def start(self, external_api_url: str, *, context: RunContext | None = None) -> SyncRun:
        """Insert a RUNNING row with zeroed counters and return it with its id."""
        ctx = context if context is not None else RunContext()
        run = SyncRun(sync_id=ctx.sync_id, external_api_url=external_api_url)
        row = await self._store.insert_sync_run(run.to_insert_dict())
        run = run.model_copy(update={"id": row.get("id")})
        log.info("sync_run_started", sync_id=run.sync_id, run_id=run.id)
        return run

    async def complete(
        self,
        run: SyncRun,
        *,
        fetch: FetchSummary,
        totals: RunTotals,
        context: RunContext,
        metrics: PerformanceMetrics | None = None,
    ) -> SyncRun:
        """Write the terminal COMPLETED / PARTIAL row and the run diagnostics."""
        finished = run.model_copy(
            update={
                "status": SyncStatus.PARTIAL if totals.failed else SyncStatus.COMPLETED,
                "completed_at": datetime.now(timezone.utc),
                "total_records_fetched": fetch.total_records,
                "total_pages": fetch.total_pages,
                "last_page_processed": fetch.last_page_processed,
                "records_processed": totals.processed,
                "records_created": totals.created,
                "records_updated": totals.updated,
                "records_failed": totals.failed,
                "shops_processed": totals.shops,
                "dinings_processed": totals.dinings,
                "metrics": metrics or context.performance_metrics(),
                "notes": (
                    f"Sync completed with {totals.succeeded} successful, "
                    f"{totals.failed} failed records."
                ),
            }
        )
        await self._store.update_sync_run(finished.id, finished.to_terminal_dict())
        await self._write_diagnostics(finished, context)
        log.info(
            "sync_run_finished",
            sync_id=finished.sync_id,
            status=finished.status.value,
            records_processed=finished.records_processed,
            records_failed=finished.records_failed,
        )
        return finished

    async def complete_empty(
        self,
        run: SyncRun,
        fetch: FetchSummary | None = None,
        *,
        context: RunContext | None = None,
    ) -> SyncRun:
        """Finish a run whose feed returned no records: COMPLETED, zero counters."""
        finished = run.model_copy(
            update={
                "status": SyncStatus.COMPLETED,
                "completed_at": datetime.now(timezone.utc),
                "total_pages": fetch.total_pages if fetch else 0,
                "last_page_processed": fetch.last_page_processed if fetch else 0,
                "notes": "No records found from external API.",
            }
        )
        await self._store.update_sync_run(finished.id, finished.to_terminal_dict())
        if context is not None:
            await self._write_diagnostics(finished, context)
        log.info("sync_run_finished", sync_id=finished.sync_id, status=finished.status.value, records_processed=0)
        return finished

    async def fail(self, run: SyncRun, exc: BaseException, context: RunContext | None = None) -> SyncRun:
        """Mark the run FAILED; diagnostics collected so far are still written."""
        failed = run.model_copy(
            update={
                "status": SyncStatus.FAILED,
                "completed_at": datetime.now(timezone.utc),
                "notes": f"Sync failed due to critical error: {exc}",
            }
        )
        await self._store.update_sync_run(
            failed.id,
            {
                "status": failed.status.value,
                "completed_at": failed.completed_at.isoformat(),
                "notes": failed.notes,
            },
        )
        if context is not None:
            await self._write_diagnostics(failed, context)
        log.error("sync_run_failed", sync_id=failed.sync_id, error=str(exc))
        return failed

    async def _write_diagnostics(self, run: SyncRun, context: RunContext) -> None:
        if context.validation_issues:
            await self._store.insert_rows(
                SYNC_ISSUES_TABLE,
                [issue.to_insert_dict(run.id) for issue in context.validation_issues],
            )
        if context.errors:
            await self._store.insert_rows(
                SYNC_ERRORS_TABLE,
                [error.to_insert_dict(run.id) for error in context.errors],
            )
