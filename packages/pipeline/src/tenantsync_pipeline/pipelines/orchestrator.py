"""
pipelines/orchestrator.py — Chunked concurrent reconciliation of feed records.

Records are processed in chunks of ``batch_size``. Within a chunk every
record runs as its own task under asyncio.gather; chunks run one after the
other. A record task never raises: each reconciliation's failure is recorded
on the RunContext and returned as a failed outcome, so one bad record never
cancels its siblings.

Totals are folded in after each chunk's gather returns, on the event loop
thread, so no counter is shared between running tasks.

Usage:
    orchestrator = BatchOrchestrator(reconciler, resolver, ctx, batch_size=10)
    totals = await orchestrator.run(records)
"""

from __future__ import annotations

import asyncio
import time
import traceback
from dataclasses import dataclass

import structlog

from tenantsync_shared.models import CanonicalFloor, EntityType, ProcessingError, UpstreamRecord
from tenantsync_pipeline.loaders.reconciler import ReconcileResult, Reconciler
from tenantsync_pipeline.transforms.entities import EntityResolver
from tenantsync_pipeline.transforms.floors import split_floors_resolved
from tenantsync_pipeline.utils.run_context import RunContext

log = structlog.get_logger(__name__)

DEFAULT_BATCH_SIZE = 10


@dataclass
class RunTotals:
    """Aggregate counters of one orchestrated run."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    created: int = 0
    updated: int = 0
    shops: int = 0
    dinings: int = 0

    def add(self, outcome: ReconcileResult | None) -> None:
        """Fold one reconciliation outcome (None = failed) into the totals."""
        self.processed += 1
        if outcome is None:
            self.failed += 1
            return
        self.succeeded += 1
        if outcome.was_created:
            self.created += 1
        else:
            self.updated += 1
        if outcome.entity_type is EntityType.DININGS:
            self.dinings += 1
        else:
            self.shops += 1


class BatchOrchestrator:
    """Runs the Reconciler over all records with bounded concurrency."""

    def __init__(
        self,
        reconciler: Reconciler,
        resolver: EntityResolver,
        context: RunContext,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._reconciler = reconciler
        self._resolver = resolver
        self.context = context
        self.batch_size = batch_size

    async def _reconcile_one(
        self, record: UpstreamRecord, floor: CanonicalFloor | None
    ) -> ReconcileResult | None:
        """One timed reconciliation; failures are recorded and yield None."""
        t0 = time.monotonic()
        try:
            return await self._reconciler.reconcile(record, floor=floor, resolve_floor=False)
        except Exception as exc:
            unique_id = record.unique_id or "unknown"
            log.error(
                "record_failed",
                unique_id=unique_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            self.context.add_error(
                ProcessingError.from_exception(unique_id, exc, traceback.format_exc())
            )
            return None
        finally:
            self.context.record_processing((time.monotonic() - t0) * 1000)

    async def _process_record(self, record: UpstreamRecord) -> list[ReconcileResult | None]:
        """Split a record by floor and reconcile each derived record in order."""
        try:
            derived = split_floors_resolved(record, self._resolver)
        except Exception as exc:
            unique_id = record.unique_id or "unknown"
            log.error("record_split_failed", unique_id=unique_id, error=str(exc))
            self.context.add_error(
                ProcessingError.from_exception(unique_id, exc, traceback.format_exc())
            )
            return [None]

        outcomes: list[ReconcileResult | None] = []
        for item, floor in derived:
            outcomes.append(await self._reconcile_one(item, floor))
        return outcomes

    async def run(self, records: list[UpstreamRecord]) -> RunTotals:
        totals = RunTotals()
        if not records:
            return totals

        chunk_count = (len(records) + self.batch_size - 1) // self.batch_size
        log.info(
            "orchestration_start",
            records=len(records),
            batch_size=self.batch_size,
            chunks=chunk_count,
        )

        for index in range(chunk_count):
            chunk = records[index * self.batch_size : (index + 1) * self.batch_size]
            results = await asyncio.gather(*(self._process_record(r) for r in chunk))

            for outcomes in results:
                for outcome in outcomes:
                    totals.add(outcome)

            log.info(
                "chunk_complete",
                chunk=index + 1,
                chunks=chunk_count,
                processed=totals.processed,
                failed=totals.failed,
            )

        log.info(
            "orchestration_complete",
            processed=totals.processed,
            succeeded=totals.succeeded,
            failed=totals.failed,
            created=totals.created,
            updated=totals.updated,
        )
        return totals
