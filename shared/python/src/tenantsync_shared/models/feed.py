"""
models/feed.py — Pydantic models for the upstream tenant directory feed.

The feed returns camelCase JSON; models accept either the feed alias or the
snake_case field name. Records are frozen: the floor splitter derives copies
with ``model_copy(update=...)`` instead of mutating the fetched record.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_TEXT_FIELDS = (
    "unique_id",
    "tenant_id",
    "source_system",
    "record_type_name",
    "brand_name_en",
    "brand_name_th",
    "building_name",
    "building_code",
    "shop_name_english",
    "shop_name_thai",
    "status_revised",
    "category_name_en",
    "category_name_th",
    "sub_category_en",
    "sub_category_th",
    "zone",
    "floor",
    "floor_revised",
    "opening_hours",
    "last_order",
    "unit",
    "tel",
    "website",
    "description_en",
    "description_th",
    "logo",
    "tenant_last_update",
    "job_sync_date",
)


class UpstreamRecord(BaseModel):
    """One tenant row from the directory feed (immutable)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    unique_id: str = ""
    tenant_id: str = ""
    source_system: str = ""
    record_type_name: str = ""
    brand_name_en: str = ""
    brand_name_th: str = ""
    building_name: str = ""
    building_code: str = ""
    shop_name_english: str = ""
    shop_name_thai: str = ""
    status: bool | None = None
    status_revised: str = ""
    category_name_en: str = ""
    category_name_th: str = ""
    sub_category_en: str = ""
    sub_category_th: str = ""
    zone: str = ""
    floor: str = ""
    floor_revised: str = ""
    opening_hours: str = ""
    last_order: str = ""
    unit: str = ""
    tel: str = ""
    website: str = ""
    description_en: str = ""
    description_th: str = ""
    logo: str = ""
    tenant_last_update: str = ""
    job_sync_date: str = ""

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> Any:
        # Unrecognised text is treated as "not reported" rather than rejected
        if isinstance(v, str):
            text = v.strip().lower()
            if text in {"true", "1", "yes", "y"}:
                return True
            if text in {"false", "0", "no", "n"}:
                return False
            return None
        return v

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def effective_floor(self) -> str:
        """The revised floor label when present, else the original one."""
        return self.floor_revised.strip() or self.floor.strip()

    @property
    def display_name(self) -> str:
        """Primary English name, used for slugs and log lines."""
        return self.brand_name_en or self.shop_name_english

    @property
    def has_any_name(self) -> bool:
        return any(
            (
                self.brand_name_en,
                self.shop_name_english,
                self.brand_name_th,
                self.shop_name_thai,
            )
        )

    @classmethod
    def from_feed(cls, row: dict[str, Any]) -> "UpstreamRecord":
        return cls.model_validate(row)


class FeedPage(BaseModel):
    """One page of the paginated directory response."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_record: int = 0
    page: int = 1
    limit: int = 0
    total_pages: int = 1
    data: list[dict[str, Any]] = Field(default_factory=list)
