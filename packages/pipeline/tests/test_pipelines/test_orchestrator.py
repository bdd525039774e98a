"""
tests/test_pipelines/test_orchestrator.py — Unit tests for BatchOrchestrator.

Tests cover:
  - Per-record failure isolation within a chunk
  - Bounded concurrency (chunk size) and sequential chunks
  - Multi-floor records counted per derived record
  - Idempotent re-run: everything updated, nothing created
"""

from __future__ import annotations

import asyncio

import pytest

from tenantsync_shared.models import EntityType
from tenantsync_pipeline.loaders.reconciler import ReconcileResult, Reconciler
from tenantsync_pipeline.pipelines.orchestrator import BatchOrchestrator, RunTotals


def _orchestrator(fake_store, resolver, run_context, batch_size=10) -> BatchOrchestrator:
    return BatchOrchestrator(
        Reconciler(fake_store, resolver, run_context),
        resolver,
        run_context,
        batch_size=batch_size,
    )


class _OverlapTracker:
    """Reconciler stand-in that tracks how many reconciliations overlap."""

    def __init__(self) -> None:
        self.active = 0
        self.peak = 0
        self.order: list[str] = []

    async def reconcile(self, record, **kwargs) -> ReconcileResult:
        self.active += 1
        self.peak = max(self.peak, self.active)
        await asyncio.sleep(0.001)
        self.order.append(record.unique_id)
        self.active -= 1
        return ReconcileResult(
            unique_id=record.unique_id,
            entity_type=EntityType.SHOPS,
            was_created=True,
            entity_id=1,
        )


class TestRunTotals:
    def test_processed_is_succeeded_plus_failed(self):
        totals = RunTotals()
        totals.add(ReconcileResult("a", EntityType.SHOPS, True, 1))
        totals.add(ReconcileResult("b", EntityType.DININGS, False, 2))
        totals.add(None)

        assert totals.processed == 3
        assert totals.succeeded == 2
        assert totals.failed == 1
        assert (totals.created, totals.updated) == (1, 1)
        assert (totals.shops, totals.dinings) == (1, 1)


class TestBatchOrchestrator:
    @pytest.mark.asyncio
    async def test_failure_isolated_to_its_record(self, fake_store, resolver, run_context, make_record):
        fake_store.failing_unique_ids = {"U-2"}
        records = [make_record(uniqueId=f"U-{i}") for i in (1, 2, 3)]

        totals = await _orchestrator(fake_store, resolver, run_context).run(records)

        assert totals.processed == 3
        assert totals.succeeded == 2
        assert totals.failed == 1
        assert set(fake_store.entities[EntityType.SHOPS]) == {"U-1", "U-3"}
        (error,) = run_context.errors
        assert error.record_unique_id == "U-2"
        assert "simulated store failure" in error.error_message
        assert "StoreError" in error.error_stack

    @pytest.mark.asyncio
    async def test_concurrency_bounded_by_batch_size(self, resolver, run_context, make_record):
        tracker = _OverlapTracker()
        orchestrator = BatchOrchestrator(tracker, resolver, run_context, batch_size=2)
        records = [make_record(uniqueId=f"U-{i}", floor="") for i in range(5)]

        totals = await orchestrator.run(records)

        assert totals.processed == 5
        assert tracker.peak == 2
        # Chunks are sequential: the last chunk starts after the first two finish
        assert tracker.order[-1] == "U-4"
        assert set(tracker.order[:2]) == {"U-0", "U-1"}

    @pytest.mark.asyncio
    async def test_multi_floor_record_counts_each_floor(self, fake_store, resolver, run_context, make_record):
        totals = await _orchestrator(fake_store, resolver, run_context).run(
            [make_record(uniqueId="U-9", floor="2,3")]
        )

        assert totals.processed == 2
        assert totals.created == 2
        assert set(fake_store.entities[EntityType.SHOPS]) == {"U-9-2F", "U-9-3F"}
        assert run_context.record_processing_count == 2

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, fake_store, resolver, run_context, make_record):
        records = [
            make_record(uniqueId="S-1"),
            make_record(uniqueId="D-1", categoryNameEn="Restaurant"),
        ]
        orchestrator = _orchestrator(fake_store, resolver, run_context, batch_size=1)

        first = await orchestrator.run(records)
        second = await orchestrator.run(records)

        assert (first.created, first.updated) == (2, 0)
        assert (second.created, second.updated) == (0, 2)
        assert (second.shops, second.dinings) == (1, 1)
        assert len(fake_store.entities[EntityType.SHOPS]) == 1
        assert len(fake_store.entities[EntityType.DININGS]) == 1

    @pytest.mark.asyncio
    async def test_each_floor_token_resolved_once(
        self, fake_store, resolver, run_context, make_record, monkeypatch
    ):
        labels: list[str] = []
        resolve_floor = resolver.resolve_floor

        def counting_resolve_floor(label):
            labels.append(label)
            return resolve_floor(label)

        monkeypatch.setattr(resolver, "resolve_floor", counting_resolve_floor)
        records = [
            make_record(uniqueId="U-1", floor="Sky Deck"),
            make_record(uniqueId="U-2", floor="2,3"),
        ]

        totals = await _orchestrator(fake_store, resolver, run_context).run(records)

        assert totals.succeeded == 3
        assert sorted(labels) == ["2", "3", "Sky Deck"]
        assert run_context.unresolved_floors == {"Sky Deck"}
        assert fake_store.entity(EntityType.SHOPS, "U-1")["floor_id"] is None
        assert fake_store.entity(EntityType.SHOPS, "U-2-3F")["floor_id"] == 5

    @pytest.mark.asyncio
    async def test_duplicate_unique_id_in_one_chunk(
        self, fake_store, resolver, run_context, make_record, monkeypatch
    ):
        # Slow creates let the losing task's locale upserts land first
        create_locale = fake_store.create_locale

        async def slow_create_locale(entity_type, entry):
            await asyncio.sleep(0.01)
            await create_locale(entity_type, entry)

        monkeypatch.setattr(fake_store, "create_locale", slow_create_locale)
        records = [make_record(uniqueId="DUP"), make_record(uniqueId="DUP")]

        totals = await _orchestrator(fake_store, resolver, run_context).run(records)

        assert totals.processed == 2
        assert totals.failed == 0
        assert (totals.created, totals.updated) == (1, 1)
        assert run_context.errors == []
        assert list(fake_store.entities[EntityType.SHOPS]) == ["DUP"]
        assert len(fake_store.locales[EntityType.SHOPS]) == 3
        assert len(fake_store.relations[EntityType.SHOPS]) == 1

    @pytest.mark.asyncio
    async def test_missing_unique_id_counted_as_failure(self, fake_store, resolver, run_context, make_record):
        totals = await _orchestrator(fake_store, resolver, run_context).run(
            [make_record(uniqueId=""), make_record(uniqueId="U-1")]
        )

        assert totals.failed == 1
        assert totals.succeeded == 1
        assert run_context.errors[0].record_unique_id == "unknown"

    @pytest.mark.asyncio
    async def test_no_records(self, fake_store, resolver, run_context):
        totals = await _orchestrator(fake_store, resolver, run_context).run([])
        assert totals == RunTotals()

    def test_batch_size_must_be_positive(self, fake_store, resolver, run_context):
        with pytest.raises(ValueError):
            _orchestrator(fake_store, resolver, run_context, batch_size=0)
