"""
loaders/reconciler.py — Idempotent create-or-update of one feed record.

A record is keyed by (collection, unique_id). Reconciling the same record
twice leaves the catalog unchanged the second time:

  - absent  → create the entity INACTIVE with a fresh slug, its category
              relation and all three locale rows
  - present → update the feed-owned columns, add the category relation if
              missing and upsert non-empty locale rows; slug, status and
              featuring chosen by editors are left alone

Floor and category misses never fail a record; the entity is written
without the reference and the label is reported at run end.

Usage:
    reconciler = Reconciler(store, resolver, ctx)
    result = await reconciler.reconcile(record)
    result.was_created, result.entity_type, result.entity_id
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from tenantsync_shared.constants import LOCALES
from tenantsync_shared.errors import ReconcileError
from tenantsync_shared.models import (
    CanonicalFloor,
    CatalogEntityPayload,
    CategoryRelation,
    EntityStatus,
    EntityType,
    LocaleEntry,
    UpstreamRecord,
    ValidationIssue,
)
from tenantsync_pipeline.loaders.supabase_loader import SupabaseCatalogStore
from tenantsync_pipeline.transforms.classify import classify_record
from tenantsync_pipeline.transforms.entities import EntityResolver
from tenantsync_pipeline.transforms.normalize import (
    decode_optional,
    generate_slug,
    parse_opening_hours,
)
from tenantsync_pipeline.utils.run_context import RunContext

log = structlog.get_logger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of reconciling one (possibly floor-split) record."""

    unique_id: str
    entity_type: EntityType
    was_created: bool
    entity_id: int
    validation_issues: list[ValidationIssue] = field(default_factory=list)


def validate_record(record: UpstreamRecord) -> list[ValidationIssue]:
    """Return the content problems of a record; none of them stop processing."""
    key = record.unique_id or "unknown"
    issues = []
    if not record.unique_id:
        issues.append(ValidationIssue(record_unique_id=key, description="Missing unique ID"))
    if not record.has_any_name:
        issues.append(
            ValidationIssue(record_unique_id=key, description="No name found in any language")
        )
    if not record.tenant_id:
        issues.append(ValidationIssue(record_unique_id=key, description="Missing tenant ID"))
    return issues


def build_locales(record: UpstreamRecord) -> dict[str, LocaleEntry]:
    """
    Locale rows for a record, keyed by locale code.

    en: English brand/shop name, Thai shop name as subtitle
    th: Thai brand/shop name, English shop name as subtitle
    zh: the feed has no Chinese text, so it mirrors en
    """
    en = LocaleEntry(
        locale="en",
        title=decode_optional(record.brand_name_en or record.shop_name_english),
        subtitle=decode_optional(record.shop_name_thai),
        description=decode_optional(record.description_en),
        meta_title=decode_optional(record.brand_name_en),
        meta_description=decode_optional(record.description_en),
    )
    th = LocaleEntry(
        locale="th",
        title=decode_optional(record.brand_name_th or record.shop_name_thai),
        subtitle=decode_optional(record.shop_name_english),
        description=decode_optional(record.description_th),
        meta_title=decode_optional(record.brand_name_th),
        meta_description=decode_optional(record.description_th),
    )
    zh = en.model_copy(update={"locale": "zh"})
    locales = {"en": en, "th": th, "zh": zh}
    return {code: locales[code] for code in LOCALES}


class Reconciler:
    """Writes one feed record into the catalog store."""

    def __init__(
        self,
        store: SupabaseCatalogStore,
        resolver: EntityResolver,
        context: RunContext | None = None,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self.context = context if context is not None else resolver.context

    def _build_payload(self, record: UpstreamRecord, floor_id: int | None) -> CatalogEntityPayload:
        return CatalogEntityPayload(
            unique_id=record.unique_id,
            slug=generate_slug(
                decode_optional(record.display_name),
                record.tenant_id or record.unique_id,
            ),
            status=EntityStatus.INACTIVE,
            location_zone=record.zone or None,
            opening_hours=parse_opening_hours(record.opening_hours),
            floor_id=floor_id,
        )

    async def reconcile(
        self,
        record: UpstreamRecord,
        *,
        floor: CanonicalFloor | None = None,
        resolve_floor: bool = True,
    ) -> ReconcileResult:
        """
        Create or update the catalog entity for ``record``.

        With ``resolve_floor=False`` the caller has already resolved the
        record's floor and ``floor`` is used as given (None = unresolved).

        Raises:
            ReconcileError: the record has no unique id to key it by.
            Any store error, unchanged; the orchestrator counts it as a
            failed record.
        """
        issues = validate_record(record)
        if issues:
            self.context.add_validation_issues(issues)
            log.warning(
                "record_validation_issues",
                unique_id=record.unique_id or "unknown",
                issues=[i.description for i in issues],
            )
        if not record.unique_id:
            raise ReconcileError("Record has no unique ID", unique_id=None)

        entity_type = classify_record(record)
        if resolve_floor:
            floor = self._resolver.resolve_floor(record.effective_floor)
        category = self._resolver.resolve_category(
            record.category_name_en, record.category_name_th, entity_type
        )
        payload = self._build_payload(record, floor.id if floor else None)
        locales = build_locales(record)

        existing = await self._store.find_entity(entity_type, record.unique_id)
        if existing is None:
            row, was_created = await self._store.insert_entity_if_absent(entity_type, payload)
        else:
            row, was_created = existing, False

        entity_id = int(row["id"])
        if was_created:
            if category is not None:
                await self._store.ensure_relation(
                    entity_type,
                    CategoryRelation(parent_id=entity_id, categories_id=category.id),
                )
            for entry in locales.values():
                await self._store.create_locale(entity_type, entry.for_parent(entity_id))
            log.info(
                "record_created",
                unique_id=record.unique_id,
                entity_type=entity_type.value,
                entity_id=entity_id,
                slug=payload.slug,
            )
        else:
            await self._store.update_entity(entity_type, entity_id, payload)
            if category is not None:
                await self._store.ensure_relation(
                    entity_type,
                    CategoryRelation(parent_id=entity_id, categories_id=category.id),
                )
            for entry in locales.values():
                if entry.is_empty:
                    continue
                await self._store.upsert_locale(entity_type, entry.for_parent(entity_id))
            log.info(
                "record_updated",
                unique_id=record.unique_id,
                entity_type=entity_type.value,
                entity_id=entity_id,
            )

        return ReconcileResult(
            unique_id=record.unique_id,
            entity_type=entity_type,
            was_created=was_created,
            entity_id=entity_id,
            validation_issues=issues,
        )
