"""
loaders/supabase_loader.py — Catalog store access over the async Supabase client.

Every write the sync makes funnels through SupabaseCatalogStore. The store
is deliberately thin: it knows table names, conflict keys and row shapes,
and leaves create-vs-update decisions to the Reconciler.

Uniqueness is enforced by the database and used through PostgREST
insert-if-absent (``upsert(..., ignore_duplicates=True)``), which returns
only the rows it actually inserted. Required unique constraints:

  shops(unique_id), dinings(unique_id)
  shops_locales(locale, parent_id), dinings_locales(locale, parent_id)
  shops_rels(parent_id, categories_id), dinings_rels(parent_id, categories_id)

Usage:
    from tenantsync_pipeline.loaders.supabase_loader import SupabaseCatalogStore

    store = await SupabaseCatalogStore.connect()
    try:
        floors = await store.load_floors()
        row, created = await store.insert_entity_if_absent(EntityType.SHOPS, payload)
    finally:
        await store.close()
"""

from __future__ import annotations

from typing import Any

import structlog
from supabase import AsyncClient

from tenantsync_shared.constants import (
    CATEGORIES_TABLE,
    CATEGORY_LOCALES_TABLE,
    FLOORS_TABLE,
    SYNC_LOG_TABLE,
)
from tenantsync_shared.db import close_supabase_client, get_supabase_client
from tenantsync_shared.errors import StoreError
from tenantsync_shared.models import (
    CanonicalCategory,
    CanonicalFloor,
    CatalogEntityPayload,
    CategoryRelation,
    EntityType,
    LocaleEntry,
)

log = structlog.get_logger(__name__)

ENTITY_COLUMNS = "id, unique_id, slug, status, floor_id"


class SupabaseCatalogStore:
    """
    Handles all catalog reads and writes for the sync.

    Uses the service role key so RLS is bypassed for sync writes.
    """

    def __init__(self, client: AsyncClient, *, owns_client: bool = False) -> None:
        self._client = client
        self._owns_client = owns_client

    @classmethod
    async def connect(cls) -> "SupabaseCatalogStore":
        """Open a store over the process-wide service-role client."""
        return cls(await get_supabase_client(), owns_client=True)

    async def close(self) -> None:
        if self._owns_client:
            await close_supabase_client()
            self._owns_client = False

    # ------------------------------------------------------------------
    # Canonical lookups (read-only)
    # ------------------------------------------------------------------

    async def load_floors(self) -> list[CanonicalFloor]:
        result = await self._client.table(FLOORS_TABLE).select("id, name").execute()
        return [
            CanonicalFloor.from_db_row(row)
            for row in (result.data or [])
            if row.get("name")
        ]

    async def load_categories(self) -> list[CanonicalCategory]:
        result = (
            await self._client.table(CATEGORIES_TABLE)
            .select(f"id, type, {CATEGORY_LOCALES_TABLE}(name, locale)")
            .execute()
        )
        categories = []
        for row in result.data or []:
            if row.get("type") not in {t.value for t in EntityType}:
                continue
            category = CanonicalCategory.from_db_row(row)
            if category is not None:
                categories.append(category)
        return categories

    # ------------------------------------------------------------------
    # Catalog entities
    # ------------------------------------------------------------------

    async def find_entity(self, entity_type: EntityType, unique_id: str) -> dict[str, Any] | None:
        """Return the entity row keyed by ``unique_id``, or None."""
        result = (
            await self._client.table(entity_type.value)
            .select(ENTITY_COLUMNS)
            .eq("unique_id", unique_id)
            .limit(1)
            .execute()
        )
        rows = result.data or []
        return rows[0] if rows else None

    async def insert_entity_if_absent(
        self,
        entity_type: EntityType,
        payload: CatalogEntityPayload,
    ) -> tuple[dict[str, Any], bool]:
        """
        Insert a new entity unless one with the same unique_id exists.

        Returns:
            (row, created). ``created`` is False when a concurrent writer
            inserted the same unique_id first; ``row`` is then the winner's.
        """
        result = (
            await self._client.table(entity_type.value)
            .upsert(
                payload.to_insert_dict(),
                on_conflict="unique_id",
                ignore_duplicates=True,
            )
            .execute()
        )
        if result.data:
            return result.data[0], True

        existing = await self.find_entity(entity_type, payload.unique_id)
        if existing is None:
            raise StoreError(
                f"{entity_type.value}: insert of {payload.unique_id!r} returned no row"
            )
        log.info("entity_insert_lost_race", entity_type=entity_type.value, unique_id=payload.unique_id)
        return existing, False

    async def update_entity(
        self,
        entity_type: EntityType,
        entity_id: int,
        payload: CatalogEntityPayload,
    ) -> None:
        await (
            self._client.table(entity_type.value)
            .update(payload.to_update_dict())
            .eq("id", entity_id)
            .execute()
        )

    # ------------------------------------------------------------------
    # Relations and locales
    # ------------------------------------------------------------------

    async def ensure_relation(self, entity_type: EntityType, relation: CategoryRelation) -> bool:
        """
        Create the category relation iff it does not exist yet.

        Returns True when a row was inserted. Existing relations, including
        ones to categories the feed no longer reports, are never removed.
        """
        table = self._client.table(entity_type.rels_table)
        existing = (
            await table.select("id")
            .eq("parent_id", relation.parent_id)
            .eq("categories_id", relation.categories_id)
            .limit(1)
            .execute()
        )
        if existing.data:
            return False

        result = (
            await self._client.table(entity_type.rels_table)
            .upsert(
                relation.to_insert_dict(),
                on_conflict="parent_id,categories_id",
                ignore_duplicates=True,
            )
            .execute()
        )
        return bool(result.data)

    async def create_locale(self, entity_type: EntityType, entry: LocaleEntry) -> None:
        """
        Insert a locale row for a freshly created entity unless it exists.

        A concurrent update of the same unique_id may have written the
        (parent_id, locale) row first; that row is kept.
        """
        await (
            self._client.table(entity_type.locales_table)
            .upsert(
                entry.to_insert_dict(),
                on_conflict="locale,parent_id",
                ignore_duplicates=True,
            )
            .execute()
        )

    async def upsert_locale(self, entity_type: EntityType, entry: LocaleEntry) -> None:
        """Insert or overwrite the (parent_id, locale) row."""
        await (
            self._client.table(entity_type.locales_table)
            .upsert(entry.to_insert_dict(), on_conflict="locale,parent_id")
            .execute()
        )

    # ------------------------------------------------------------------
    # Sync run log
    # ------------------------------------------------------------------

    async def insert_sync_run(self, row: dict[str, Any]) -> dict[str, Any]:
        result = await self._client.table(SYNC_LOG_TABLE).insert(row).execute()
        if not result.data:
            raise StoreError(f"{SYNC_LOG_TABLE}: insert returned no row")
        return result.data[0]

    async def update_sync_run(self, run_id: Any, row: dict[str, Any]) -> None:
        await self._client.table(SYNC_LOG_TABLE).update(row).eq("id", run_id).execute()

    async def insert_rows(self, table: str, rows: list[dict[str, Any]], *, batch_size: int = 500) -> int:
        """Bulk insert diagnostic rows in batches; returns rows written."""
        written = 0
        for start in range(0, len(rows), batch_size):
            batch = rows[start : start + batch_size]
            await self._client.table(table).insert(batch).execute()
            written += len(batch)
        return written

    async def recent_sync_runs(self, limit: int = 20) -> list[dict[str, Any]]:
        result = (
            await self._client.table(SYNC_LOG_TABLE)
            .select("*")
            .order("started_at", desc=True)
            .limit(limit)
            .execute()
        )
        return result.data or []
