"""
transforms/entities.py — Floor and category resolution against the catalog.

Floor and category labels in the directory feed are free text: "Ground
Floor", "Fl. 2", "2", "health & beauty", "Food & Beverage". This module maps
them onto canonical floors / categories already present in the store so that
"GF", "G" and "ground floor" all land on the same floor row.

Canonical rows are loaded once per run into an in-memory cache; every lookup
after that is a dict lookup or a linear scan, with no store round-trip per
record.

Usage:
    from tenantsync_pipeline.transforms.entities import EntityResolver

    resolver = await EntityResolver.from_store(store, context=ctx)
    floor = resolver.resolve_floor("Ground Floor")        # CanonicalFloor | None
    category = resolver.resolve_category("Fashion", "", EntityType.SHOPS)
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Literal, TypeVar

import structlog

from tenantsync_shared.constants import CATEGORY_ALIASES, FLOOR_ALIASES
from tenantsync_shared.errors import ConfigurationError
from tenantsync_shared.models import (
    CanonicalCategory,
    CanonicalFloor,
    EntityType,
    UnresolvedCategory,
)
from tenantsync_pipeline.utils.run_context import RunContext

if TYPE_CHECKING:
    from tenantsync_pipeline.loaders.supabase_loader import SupabaseCatalogStore

log = structlog.get_logger(__name__)

MatchTier = Literal["exact", "alias", "partial"]
_C = TypeVar("_C", CanonicalFloor, CanonicalCategory)


def freeze_aliases(aliases: Mapping[str, str]) -> Mapping[str, str]:
    """Return a read-only copy of an alias table with lower-cased, trimmed keys."""
    return MappingProxyType(
        {key.strip().lower(): value.strip() for key, value in aliases.items()}
    )


def load_alias_file(path: str | Path) -> tuple[dict[str, str], dict[str, str]]:
    """
    Read floor and category alias tables from a JSON file.

    Expected shape::

        {"floors": {"ground floor": "GF", ...},
         "categories": {"health & beauty": "BEAUTY", ...}}

    A missing section falls back to the built-in table.

    Raises:
        ConfigurationError: file is missing or not a JSON object of objects.
    """
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read alias file {path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigurationError(f"Alias file {path} must contain a JSON object")

    floors = payload.get("floors", FLOOR_ALIASES)
    categories = payload.get("categories", CATEGORY_ALIASES)
    for section, table in (("floors", floors), ("categories", categories)):
        if not isinstance(table, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in table.items()
        ):
            raise ConfigurationError(
                f"Alias file {path}: '{section}' must map strings to strings"
            )
    return dict(floors), dict(categories)


def _index_by_name(candidates: Iterable[_C]) -> dict[str, _C]:
    """Lower-cased name → row; duplicate names keep the lowest id."""
    index: dict[str, _C] = {}
    for row in sorted(candidates, key=lambda c: c.id):
        index.setdefault(row.name.strip().lower(), row)
    return index


class EntityResolver:
    """
    Resolves feed floor / category labels to canonical catalog rows.

    Tiers, tried in order (first hit wins):
    1. exact    — case-insensitive equality with a canonical name
    2. alias    — alias table maps the label to a canonical name, which is
                  then looked up exactly
    3. partial  — the label is a case-insensitive substring of a canonical
                  name; with several candidates the shortest name wins, then
                  the lowest id, and the ambiguity is logged

    A label that misses every tier is recorded on the RunContext and
    resolves to None; callers continue without the reference.
    """

    def __init__(
        self,
        floors: Iterable[CanonicalFloor] = (),
        categories: Iterable[CanonicalCategory] = (),
        *,
        floor_aliases: Mapping[str, str] | None = None,
        category_aliases: Mapping[str, str] | None = None,
        context: RunContext | None = None,
    ) -> None:
        self._floor_aliases = freeze_aliases(
            FLOOR_ALIASES if floor_aliases is None else floor_aliases
        )
        self._category_aliases = freeze_aliases(
            CATEGORY_ALIASES if category_aliases is None else category_aliases
        )
        self.context = context if context is not None else RunContext()
        self._set_canonical(floors, categories)

    # ------------------------------------------------------------------
    # Cache loading
    # ------------------------------------------------------------------

    def _set_canonical(
        self,
        floors: Iterable[CanonicalFloor],
        categories: Iterable[CanonicalCategory],
    ) -> None:
        self._floors: tuple[CanonicalFloor, ...] = tuple(floors)
        self._floors_by_name = _index_by_name(self._floors)

        grouped: dict[EntityType, list[CanonicalCategory]] = {t: [] for t in EntityType}
        for category in categories:
            grouped[category.type].append(category)
        self._categories: dict[EntityType, tuple[CanonicalCategory, ...]] = {
            t: tuple(rows) for t, rows in grouped.items()
        }
        self._categories_by_name = {
            t: _index_by_name(rows) for t, rows in self._categories.items()
        }

    async def load_canonical_cache(self, store: SupabaseCatalogStore) -> None:
        """Fetch all floors and categories from the store into the cache."""
        log.info("loading_canonical_cache")
        floors = await store.load_floors()
        categories = await store.load_categories()
        self._set_canonical(floors, categories)
        log.info(
            "canonical_cache_loaded",
            floors=len(self._floors),
            shop_categories=len(self._categories[EntityType.SHOPS]),
            dining_categories=len(self._categories[EntityType.DININGS]),
        )

    @classmethod
    async def from_store(
        cls,
        store: SupabaseCatalogStore,
        *,
        context: RunContext | None = None,
        alias_file: str | Path | None = None,
    ) -> "EntityResolver":
        """Build a resolver with its cache loaded and optional alias overrides."""
        floor_aliases: Mapping[str, str] | None = None
        category_aliases: Mapping[str, str] | None = None
        if alias_file:
            floor_aliases, category_aliases = load_alias_file(alias_file)
            log.info("alias_file_loaded", path=str(alias_file))
        resolver = cls(
            floor_aliases=floor_aliases,
            category_aliases=category_aliases,
            context=context,
        )
        await resolver.load_canonical_cache(store)
        return resolver

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @staticmethod
    def _match(
        key: str,
        by_name: Mapping[str, _C],
        candidates: tuple[_C, ...],
        aliases: Mapping[str, str],
    ) -> tuple[_C | None, MatchTier | None]:
        exact = by_name.get(key)
        if exact is not None:
            return exact, "exact"

        mapped = aliases.get(key)
        if mapped:
            aliased = by_name.get(mapped.lower())
            if aliased is not None:
                return aliased, "alias"

        partial = [c for c in candidates if key in c.name.lower()]
        if not partial:
            return None, None
        partial.sort(key=lambda c: (len(c.name), c.id))
        if len(partial) > 1:
            log.warning(
                "resolution_ambiguous",
                label=key,
                chosen=partial[0].name,
                candidates=[c.name for c in partial],
            )
        return partial[0], "partial"

    def match_floor(self, label: str | None) -> tuple[CanonicalFloor | None, MatchTier | None]:
        """Look up a floor label and the tier that matched, recording nothing."""
        text = (label or "").strip()
        if not text:
            return None, None
        return self._match(text.lower(), self._floors_by_name, self._floors, self._floor_aliases)

    def resolve_floor(self, label: str | None) -> CanonicalFloor | None:
        """Resolve a single floor label (one token, not a comma list)."""
        text = (label or "").strip()
        if not text:
            return None

        floor, tier = self.match_floor(text)
        if floor is None:
            log.warning("floor_unresolved", label=text)
            self.context.add_unresolved_floor(text)
            return None

        log.debug("floor_resolved", label=text, floor=floor.name, tier=tier)
        return floor

    def resolve_category(
        self,
        name_en: str | None,
        name_th: str | None,
        entity_type: EntityType,
    ) -> CanonicalCategory | None:
        """
        Resolve a category among the canonical categories of ``entity_type``.

        The English name is used when present, otherwise the Thai name.
        """
        search = (name_en or "").strip().lower() or (name_th or "").strip().lower()
        if not search:
            return None

        category, tier = self._match(
            search,
            self._categories_by_name[entity_type],
            self._categories[entity_type],
            self._category_aliases,
        )
        if category is None:
            log.warning("category_unresolved", label=search, entity_type=entity_type.value)
            self.context.add_unresolved_category(
                UnresolvedCategory(
                    category_name=search,
                    type=entity_type.value,
                    english_name=name_en or "",
                    thai_name=name_th or "",
                )
            )
            return None

        log.debug(
            "category_resolved",
            label=search,
            category=category.name,
            entity_type=entity_type.value,
            tier=tier,
        )
        return category
