"""
models/catalog.py — Pydantic models for the catalog store tables.

Canonical floors and categories are read-only resolution targets. Shops and
dinings share one payload shape and differ only in the collection they are
written to (``shops`` / ``dinings`` and their ``_locales`` / ``_rels``
tables).
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tenantsync_shared.constants import LOCALES_SUFFIX, RELS_SUFFIX, Locale


class EntityType(StrEnum):
    """Catalog collection a record is written to."""

    SHOPS = "shops"
    DININGS = "dinings"

    @property
    def locales_table(self) -> str:
        return f"{self.value}{LOCALES_SUFFIX}"

    @property
    def rels_table(self) -> str:
        return f"{self.value}{RELS_SUFFIX}"


class EntityStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class CanonicalFloor(BaseModel):
    """Matches the floors table row."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "CanonicalFloor":
        return cls(id=row["id"], name=row["name"])


class CanonicalCategory(BaseModel):
    """A categories row joined with its English categories_locales name."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    type: EntityType

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "CanonicalCategory | None":
        """
        Build from a ``categories`` row with embedded ``categories_locales``.

        Returns None when the row has no English name to match against.
        """
        names = [
            loc.get("name")
            for loc in row.get("categories_locales") or []
            if loc.get("locale") == "en" and loc.get("name")
        ]
        if not names:
            return None
        return cls(id=row["id"], name=names[0], type=row["type"])


class OpeningHours(BaseModel):
    """Opening-hours group of a catalog entity."""

    same_hours_every_day: bool = True
    open: str = ""
    close: str = ""
    per_day: list[dict[str, Any]] = Field(default_factory=list)


class CatalogEntityPayload(BaseModel):
    """
    Column values for a shops / dinings row.

    ``to_insert_dict()`` is used on creation; ``to_update_dict()`` carries
    only the fields the feed owns, so slug, status and featuring set by
    editors survive every later sync.
    """

    unique_id: str = Field(min_length=1)
    slug: str = ""
    status: EntityStatus = EntityStatus.INACTIVE
    location_zone: str | None = None
    opening_hours: OpeningHours = Field(default_factory=OpeningHours)
    floor_id: int | None = None
    sort_order: float = 0
    is_featured: bool = False

    def _feed_columns(self) -> dict[str, Any]:
        return {
            "location_zone": self.location_zone,
            "opening_hours_same_hours_every_day": self.opening_hours.same_hours_every_day,
            "opening_hours_open": self.opening_hours.open,
            "opening_hours_close": self.opening_hours.close,
            "sort_order": self.sort_order,
        }

    def to_insert_dict(self) -> dict[str, Any]:
        if not self.slug:
            raise ValueError("slug is required to create a catalog entity")
        return {
            "unique_id": self.unique_id,
            "slug": self.slug,
            "status": self.status.value,
            "is_featured": self.is_featured,
            "floor_id": self.floor_id,
            **self._feed_columns(),
        }

    def to_update_dict(self) -> dict[str, Any]:
        update = self._feed_columns()
        # An unresolved floor leaves the stored floor in place
        if self.floor_id is not None:
            update["floor_id"] = self.floor_id
        return update


class LocaleEntry(BaseModel):
    """Matches a shops_locales / dinings_locales row."""

    parent_id: int | None = None
    locale: Locale
    title: str | None = None
    subtitle: str | None = None
    description: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.subtitle or self.description)

    def for_parent(self, parent_id: int) -> "LocaleEntry":
        return self.model_copy(update={"parent_id": parent_id})

    def to_insert_dict(self) -> dict[str, Any]:
        if self.parent_id is None:
            raise ValueError("parent_id must be set before writing a locale row")
        return self.model_dump()


class CategoryRelation(BaseModel):
    """Matches a shops_rels / dinings_rels row."""

    parent_id: int
    categories_id: int
    path: str = "/"
    order: int = 0

    def to_insert_dict(self) -> dict[str, Any]:
        return self.model_dump()
