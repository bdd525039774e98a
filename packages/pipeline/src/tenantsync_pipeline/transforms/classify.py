"""
transforms/classify.py — Shop vs dining classification of feed records.

The feed has no explicit type column; dining tenants are recognised by
keywords in their English category name.
"""

from __future__ import annotations

from tenantsync_shared.constants import DINING_KEYWORDS
from tenantsync_shared.models import EntityType, UpstreamRecord


def classify_category(category_name_en: str | None) -> EntityType:
    """Dining when the lower-cased category contains a dining keyword, else shop."""
    name = (category_name_en or "").lower()
    if any(keyword in name for keyword in DINING_KEYWORDS):
        return EntityType.DININGS
    return EntityType.SHOPS


def classify_record(record: UpstreamRecord) -> EntityType:
    return classify_category(record.category_name_en)
