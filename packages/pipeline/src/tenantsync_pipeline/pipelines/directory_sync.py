"""
pipelines/directory_sync.py — Mall tenant directory → catalog sync.

Steps:
  1. Open the sync run (api_sync_logs, RUNNING)
  2. Fetch every feed page (DirectoryFeedSource)
  3. Load canonical floors/categories into the EntityResolver cache
  4. Reconcile all records in chunks (BatchOrchestrator)
  5. Close the run COMPLETED / PARTIAL and write its diagnostics

Any exception escaping steps 2-5 marks the run FAILED and is re-raised.
Cancellation leaves the run RUNNING.

Usage:
    from tenantsync_pipeline.pipelines.directory_sync import run
    sync_run = await run()
"""

from __future__ import annotations

from pathlib import Path

import httpx
import structlog

from tenantsync_shared.config import settings
from tenantsync_shared.models import SyncRun
from tenantsync_pipeline.loaders.reconciler import Reconciler
from tenantsync_pipeline.loaders.supabase_loader import SupabaseCatalogStore
from tenantsync_pipeline.loaders.sync_runs import SyncRunTracker
from tenantsync_pipeline.pipelines.orchestrator import BatchOrchestrator
from tenantsync_pipeline.sources.directory import DirectoryFeedSource
from tenantsync_pipeline.transforms.entities import EntityResolver
from tenantsync_pipeline.utils.logging import configure_logging, get_logger
from tenantsync_pipeline.utils.run_context import RunContext

log = get_logger(__name__, pipeline="directory_sync")


def _log_summary(sync_run: SyncRun, ctx: RunContext) -> None:
    """Log the run totals followed by every recorded diagnostic."""
    log.info(
        "sync_summary",
        status=sync_run.status.value,
        succeeded=sync_run.records_processed - sync_run.records_failed,
        created=sync_run.records_created,
        updated=sync_run.records_updated,
        failed=sync_run.records_failed,
        records_fetched=sync_run.total_records_fetched,
        shops=sync_run.shops_processed,
        dinings=sync_run.dinings_processed,
        avg_time_per_record_ms=sync_run.metrics.avg_time_per_record_ms,
        api_response_time_avg_ms=sync_run.metrics.api_response_time_avg_ms,
        memory_usage_mb=sync_run.metrics.memory_usage_mb,
    )
    for error in ctx.errors:
        log.error("sync_error", unique_id=error.record_unique_id, error=error.error_message)
    for issue in ctx.validation_issues:
        log.warning("sync_validation_issue", unique_id=issue.record_unique_id, issue=issue.description)
    for label in sorted(ctx.unresolved_floors):
        log.warning("sync_unresolved_floor", label=label)
    for category in sorted(ctx.unresolved_categories, key=lambda c: (c.type, c.category_name)):
        log.warning("sync_unresolved_category", label=category.category_name, entity_type=category.type)


async def run(
    *,
    store: SupabaseCatalogStore | None = None,
    context: RunContext | None = None,
    batch_size: int | None = None,
    alias_file: str | Path | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SyncRun:
    """
    Run one full directory sync.

    Args:
        store:      Catalog store (default: service-role Supabase store,
                    closed when the run ends).
        context:    Run-scoped accumulators (default: a fresh RunContext).
        batch_size: Records reconciled concurrently (default SYNC_BATCH_SIZE).
        alias_file: JSON alias overrides (default TENANTSYNC_ALIAS_FILE).
        transport:  httpx transport for the feed client (tests).

    Returns:
        The terminal SyncRun.
    """
    configure_logging()
    ctx = context if context is not None else RunContext()
    owns_store = store is None
    if store is None:
        store = await SupabaseCatalogStore.connect()

    structlog.contextvars.bind_contextvars(sync_id=ctx.sync_id)
    log.info("directory_sync_start", external_api_url=settings.external_api_url)

    tracker = SyncRunTracker(store)
    try:
        sync_run = await tracker.start(settings.external_api_url, context=ctx)
        try:
            source = DirectoryFeedSource(settings.require_feed(), context=ctx, transport=transport)
            records, summary = await source.fetch_records()

            if not records:
                log.warning("directory_feed_empty")
                finished = await tracker.complete_empty(sync_run, summary, context=ctx)
                _log_summary(finished, ctx)
                return finished

            resolver = await EntityResolver.from_store(
                store,
                context=ctx,
                alias_file=alias_file or settings.tenantsync_alias_file,
            )
            orchestrator = BatchOrchestrator(
                Reconciler(store, resolver, ctx),
                resolver,
                ctx,
                batch_size=batch_size or settings.sync_batch_size,
            )
            totals = await orchestrator.run(records)

            finished = await tracker.complete(
                sync_run, fetch=summary, totals=totals, context=ctx
            )
            _log_summary(finished, ctx)
            return finished

        except Exception as exc:
            log.error("directory_sync_failed", error=str(exc), exc_info=True)
            await tracker.fail(sync_run, exc, ctx)
            raise
    finally:
        structlog.contextvars.unbind_contextvars("sync_id")
        if owns_store:
            await store.close()
