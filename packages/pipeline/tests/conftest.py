"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  FakeCatalogStore    — in-memory stand-in for SupabaseCatalogStore
  canonical_floors    — floors as loaded from the store
  canonical_categories — shop and dining categories
  fake_store()        — FakeCatalogStore seeded with the canonical rows
  resolver()          — EntityResolver over the canonical rows
  feed_row()          — camelCase feed row factory
  make_record()       — UpstreamRecord factory with sensible defaults
  mock_supabase_client() — MagicMock of the async Supabase client chain
"""

from __future__ import annotations

import asyncio
import itertools
from collections import defaultdict
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from tenantsync_shared.errors import StoreError
from tenantsync_shared.models import (
    CanonicalCategory,
    CanonicalFloor,
    CatalogEntityPayload,
    CategoryRelation,
    EntityType,
    LocaleEntry,
    UpstreamRecord,
)
from tenantsync_pipeline.transforms.entities import EntityResolver
from tenantsync_pipeline.utils.run_context import RunContext


# ---------------------------------------------------------------------------
# In-memory catalog store
# ---------------------------------------------------------------------------

class FakeCatalogStore:
    """
    Implements the SupabaseCatalogStore interface over plain dicts.

    Uniqueness mirrors the database constraints: one entity per
    (collection, unique_id), one locale per (parent_id, locale), one
    relation per (parent_id, categories_id).

    Entity and locale calls yield to the event loop first, the way a network
    round trip would, so tasks of one chunk interleave between store calls.
    """

    def __init__(
        self,
        floors: list[CanonicalFloor] | None = None,
        categories: list[CanonicalCategory] | None = None,
    ) -> None:
        self.floors = list(floors or [])
        self.categories = list(categories or [])
        self.entities: dict[EntityType, dict[str, dict[str, Any]]] = {t: {} for t in EntityType}
        self.locales: dict[EntityType, dict[tuple[int, str], dict[str, Any]]] = {t: {} for t in EntityType}
        self.relations: dict[EntityType, list[dict[str, Any]]] = {t: [] for t in EntityType}
        self.sync_runs: dict[int, dict[str, Any]] = {}
        self.rows: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.failing_unique_ids: set[str] = set()
        self.closed = False
        self._ids = itertools.count(1)

    # -- canonical --------------------------------------------------------

    async def load_floors(self) -> list[CanonicalFloor]:
        return list(self.floors)

    async def load_categories(self) -> list[CanonicalCategory]:
        return list(self.categories)

    # -- entities ---------------------------------------------------------

    async def find_entity(self, entity_type: EntityType, unique_id: str) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        if unique_id in self.failing_unique_ids:
            raise StoreError(f"simulated store failure for {unique_id}")
        row = self.entities[entity_type].get(unique_id)
        return dict(row) if row else None

    async def insert_entity_if_absent(
        self, entity_type: EntityType, payload: CatalogEntityPayload
    ) -> tuple[dict[str, Any], bool]:
        await asyncio.sleep(0)
        existing = self.entities[entity_type].get(payload.unique_id)
        if existing is not None:
            return dict(existing), False
        row = {"id": next(self._ids), **payload.to_insert_dict()}
        self.entities[entity_type][payload.unique_id] = row
        return dict(row), True

    async def update_entity(
        self, entity_type: EntityType, entity_id: int, payload: CatalogEntityPayload
    ) -> None:
        await asyncio.sleep(0)
        for row in self.entities[entity_type].values():
            if row["id"] == entity_id:
                row.update(payload.to_update_dict())

    # -- relations and locales ---------------------------------------------

    async def ensure_relation(self, entity_type: EntityType, relation: CategoryRelation) -> bool:
        await asyncio.sleep(0)
        for row in self.relations[entity_type]:
            if (row["parent_id"], row["categories_id"]) == (relation.parent_id, relation.categories_id):
                return False
        self.relations[entity_type].append(relation.to_insert_dict())
        return True

    async def create_locale(self, entity_type: EntityType, entry: LocaleEntry) -> None:
        await asyncio.sleep(0)
        self.locales[entity_type].setdefault((entry.parent_id, entry.locale), entry.to_insert_dict())

    async def upsert_locale(self, entity_type: EntityType, entry: LocaleEntry) -> None:
        await asyncio.sleep(0)
        self.locales[entity_type][(entry.parent_id, entry.locale)] = entry.to_insert_dict()

    # -- sync runs ----------------------------------------------------------

    async def insert_sync_run(self, row: dict[str, Any]) -> dict[str, Any]:
        run_id = next(self._ids)
        self.sync_runs[run_id] = {"id": run_id, **row}
        return dict(self.sync_runs[run_id])

    async def update_sync_run(self, run_id: Any, row: dict[str, Any]) -> None:
        self.sync_runs[run_id].update(row)

    async def insert_rows(self, table: str, rows: list[dict[str, Any]], *, batch_size: int = 500) -> int:
        self.rows[table].extend(rows)
        return len(rows)

    async def recent_sync_runs(self, limit: int = 20) -> list[dict[str, Any]]:
        return list(self.sync_runs.values())[-limit:][::-1]

    async def close(self) -> None:
        self.closed = True

    # -- test helpers -------------------------------------------------------

    def entity(self, entity_type: EntityType, unique_id: str) -> dict[str, Any]:
        return self.entities[entity_type][unique_id]

    def locale(self, entity_type: EntityType, unique_id: str, locale: str) -> dict[str, Any]:
        parent_id = self.entity(entity_type, unique_id)["id"]
        return self.locales[entity_type][(parent_id, locale)]


# ---------------------------------------------------------------------------
# Canonical rows
# ---------------------------------------------------------------------------

@pytest.fixture
def canonical_floors() -> list[CanonicalFloor]:
    return [
        CanonicalFloor(id=1, name="B1"),
        CanonicalFloor(id=2, name="GF"),
        CanonicalFloor(id=3, name="1F"),
        CanonicalFloor(id=4, name="2F"),
        CanonicalFloor(id=5, name="3F"),
        CanonicalFloor(id=6, name="MF"),
    ]


@pytest.fixture
def canonical_categories() -> list[CanonicalCategory]:
    return [
        CanonicalCategory(id=10, name="FASHION", type=EntityType.SHOPS),
        CanonicalCategory(id=11, name="LUXURY", type=EntityType.SHOPS),
        CanonicalCategory(id=12, name="BEAUTY", type=EntityType.SHOPS),
        CanonicalCategory(id=13, name="GENERAL", type=EntityType.SHOPS),
        CanonicalCategory(id=20, name="RESTAURANT", type=EntityType.DININGS),
        CanonicalCategory(id=21, name="CAFE", type=EntityType.DININGS),
        CanonicalCategory(id=22, name="CAFE & BAKERY", type=EntityType.DININGS),
    ]


@pytest.fixture
def fake_store(canonical_floors, canonical_categories) -> FakeCatalogStore:
    return FakeCatalogStore(canonical_floors, canonical_categories)


@pytest.fixture
def run_context() -> RunContext:
    return RunContext()


@pytest.fixture
def resolver(canonical_floors, canonical_categories, run_context) -> EntityResolver:
    return EntityResolver(canonical_floors, canonical_categories, context=run_context)


# ---------------------------------------------------------------------------
# Feed records
# ---------------------------------------------------------------------------

def _feed_row(**overrides: Any) -> dict[str, Any]:
    """One feed row in the upstream camelCase shape."""
    row = {
        "uniqueId": "U-001",
        "tenantId": "T001",
        "brandNameEn": "Zara",
        "brandNameTh": "ซาร่า",
        "shopNameEnglish": "Zara",
        "shopNameThai": "ซาร่า",
        "categoryNameEn": "Fashion",
        "categoryNameTh": "แฟชั่น",
        "zone": "North",
        "floor": "1F",
        "floorRevised": "",
        "openingHours": "10.00-22.00",
        "descriptionEn": "Spanish fashion",
        "descriptionTh": "แฟชั่นสเปน",
        "status": True,
    }
    row.update(overrides)
    return row


@pytest.fixture
def feed_row() -> Callable[..., dict[str, Any]]:
    return _feed_row


@pytest.fixture
def make_record() -> Callable[..., UpstreamRecord]:
    def _make(**overrides: Any) -> UpstreamRecord:
        return UpstreamRecord.from_feed(_feed_row(**overrides))

    return _make


# ---------------------------------------------------------------------------
# Supabase client mock
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_supabase_client() -> MagicMock:
    """
    A MagicMock that simulates the async supabase client query chain.

    Every ``.execute()`` is an AsyncMock returning empty data by default.
    Override in individual tests, e.g.
    ``client.table.return_value.upsert.return_value.execute.return_value.data = [...]``.
    """
    client = MagicMock()
    table = client.table.return_value

    def _result() -> MagicMock:
        result = MagicMock()
        result.data = []
        return result

    table.select.return_value.execute = AsyncMock(return_value=_result())
    table.select.return_value.eq.return_value.limit.return_value.execute = AsyncMock(
        return_value=_result()
    )
    table.select.return_value.eq.return_value.eq.return_value.limit.return_value.execute = AsyncMock(
        return_value=_result()
    )
    table.select.return_value.order.return_value.limit.return_value.execute = AsyncMock(
        return_value=_result()
    )
    table.upsert.return_value.execute = AsyncMock(return_value=_result())
    table.insert.return_value.execute = AsyncMock(return_value=_result())
    table.update.return_value.eq.return_value.execute = AsyncMock(return_value=_result())
    return client
