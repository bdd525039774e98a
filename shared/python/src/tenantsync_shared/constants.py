"""
constants.py — shared constants used across the pipeline and CLI.

Alias tables, classifier keywords, locale codes and store table names are
defined here so they stay in sync between modules. The alias tables are the
built-in defaults; EntityResolver copies them into read-only mappings at
construction and a JSON file can replace them per deployment.
"""

from __future__ import annotations

from typing import Final, Literal

# ---------------------------------------------------------------------------
# Floor aliases: upstream spelling -> canonical floor name
# ---------------------------------------------------------------------------
FLOOR_ALIASES: Final[dict[str, str]] = {
    # Direct matches
    "B1": "B1",
    "B2": "B2",
    "GF": "GF",
    "UG": "UG",
    "MF": "MF",
    "1F": "1F",
    "2F": "2F",
    "3F": "3F",
    "4F": "4F",
    "5F": "5F",
    "6F": "6F",
    "7F": "7F",
    "8F": "8F",
    # Spelled out
    "basement 1": "B1",
    "basement 2": "B2",
    "ground floor": "GF",
    "upper ground": "UG",
    "mezzanine floor": "MF",
    "mezzanine": "MF",
    "first floor": "1F",
    "second floor": "2F",
    "third floor": "3F",
    "fourth floor": "4F",
    "fifth floor": "5F",
    "sixth floor": "6F",
    "seventh floor": "7F",
    "eighth floor": "8F",
    # Short codes
    "M": "MF",
    "G": "GF",
    "GA": "GF",
    "BM": "BM",
    "BM1": "B1",
    "BM2": "B2",
    "1": "1F",
    "2": "2F",
    "3": "3F",
    "4": "4F",
    "5": "5F",
    "6": "6F",
    "7": "7F",
    "8": "8F",
    "7A": "7F",
    # "<code> Floor"
    "B1 Floor": "B1",
    "B2 Floor": "B2",
    "GF Floor": "GF",
    "UG Floor": "UG",
    "MF Floor": "MF",
    "1F Floor": "1F",
    "2F Floor": "2F",
    "3F Floor": "3F",
    "4F Floor": "4F",
    "5F Floor": "5F",
    "6F Floor": "6F",
    "7F Floor": "7F",
    "8F Floor": "8F",
    # "Fl. <code>"
    "Fl. 1": "1F",
    "Fl. 2": "2F",
    "Fl. 3": "3F",
    "Fl. 4": "4F",
    "Fl. 5": "5F",
    "Fl. 6": "6F",
    "Fl. 7": "7F",
    "Fl. G": "GF",
    "Fl. GA": "GF",
    "Fl. M": "MF",
    "Fl. U": "UG",
    "Fl. B1": "B1",
    "Fl. B2": "B2",
    "Fl. BM1": "BM1",
    "Fl. BF": "BF",
    # Whole multi-floor labels seen when a record is not split
    ",1": "1F",
    "2,3": "2F",
    "7,8": "7F",
    "7,7A,8A": "7F",
    "Fl. BM1,G": "BM1",
}

# ---------------------------------------------------------------------------
# Category aliases: upstream category text -> canonical English category name
# ---------------------------------------------------------------------------
CATEGORY_ALIASES: Final[dict[str, str]] = {
    "international luxury": "LUXURY",
    "international luxury brands": "LUXURY",
    "luxury international": "LUXURY",
    "premium luxury": "LUXURY",
    "high-end luxury": "LUXURY",
    "luxury brands": "LUXURY",
    "luxury fashion": "LUXURY",
    "fashion & accessories": "FASHION",
    "fashion&accessories": "FASHION",
    "fashion accessories": "FASHION",
    "international fashion": "FASHION",
    "premium fashion": "FASHION",
    "high-end fashion": "FASHION",
    "fashion brands": "FASHION",
    "health & beauty": "BEAUTY",
    "health beauty": "BEAUTY",
    "health&beauty": "BEAUTY",
    "beauty & wellness": "BEAUTY",
    "international beauty": "BEAUTY",
    "premium beauty": "BEAUTY",
    "beauty brands": "BEAUTY",
    "international cosmetics": "BEAUTY",
    "premium cosmetics": "BEAUTY",
    "mobile, gadget, electronics": "GADGET",
    "mobile gadget electronics": "GADGET",
    "electronics & gadgets": "GADGET",
    "gadget electronics": "GADGET",
    "mobile electronics": "GADGET",
    "food & beverage": "RESTAURANT",
    "food beverage": "RESTAURANT",
    "food and beverage": "RESTAURANT",
    "grocery, lifestyle & department store": "HOME & LIVING",
    "grocery lifestyle department store": "HOME & LIVING",
    "lifestyle department store": "HOME & LIVING",
    "grocery lifestyle": "HOME & LIVING",
    "leisure and entertainment": "CLUB & LOUNGE",
    "leisure entertainment": "CLUB & LOUNGE",
    "entertainment leisure": "CLUB & LOUNGE",
    "service": "GENERAL",
    "services": "GENERAL",
    "specialty": "GENERAL",
    "specialty items": "COSMETIC & FRAGRANCE",
    "cosmetic & fragrance": "COSMETIC & FRAGRANCE",
    "cosmetic fragrance": "COSMETIC & FRAGRANCE",
    "cosmetic & fragrances": "COSMETIC & FRAGRANCE",
    "cosmetic fragrances": "COSMETIC & FRAGRANCE",
    "cosmetics & fragrance": "COSMETIC & FRAGRANCE",
    "cosmetics fragrance": "COSMETIC & FRAGRANCE",
}

# ---------------------------------------------------------------------------
# Record classification
# ---------------------------------------------------------------------------
DINING_KEYWORDS: Final[tuple[str, ...]] = (
    "food",
    "beverage",
    "restaurant",
    "cafe",
    "bar",
    "take home",
)

# ---------------------------------------------------------------------------
# Locales written for every catalog entity
# ---------------------------------------------------------------------------
Locale = Literal["en", "th", "zh"]
LOCALES: Final[tuple[Locale, ...]] = ("en", "th", "zh")

# ---------------------------------------------------------------------------
# Store tables
# ---------------------------------------------------------------------------
FLOORS_TABLE: Final[str] = "floors"
CATEGORIES_TABLE: Final[str] = "categories"
CATEGORY_LOCALES_TABLE: Final[str] = "categories_locales"
SYNC_LOG_TABLE: Final[str] = "api_sync_logs"
SYNC_ISSUES_TABLE: Final[str] = "api_sync_logs_validation_issues"
SYNC_ERRORS_TABLE: Final[str] = "api_sync_logs_errors"

# Dining / shop collections share the same shape; these suffixes name the
# per-collection locale and relation tables ("shops_locales", "dinings_rels").
LOCALES_SUFFIX: Final[str] = "_locales"
RELS_SUFFIX: Final[str] = "_rels"
