"""
transforms/normalize.py — Text, opening-hours and slug normalization.

Feed text arrives HTML-escaped (sometimes more than once: "&amp;amp;") and
with literal ``\\uXXXX`` escapes. Opening hours are free text. These helpers
turn both into the values written to the catalog, plus the slug used for
newly created entities.

Usage:
    from tenantsync_pipeline.transforms.normalize import (
        decode_text, generate_slug, parse_opening_hours,
    )

    decode_text("Tom &amp;amp; Jerry")     # "Tom & Jerry"
    parse_opening_hours("10.00-22.00")     # open="10:00", close="22:00"
    generate_slug("Louis Vuitton!", "T123")  # "louis-vuitton-T123"
"""

from __future__ import annotations

import re

import polars as pl

from tenantsync_shared.models import OpeningHours

# ---------------------------------------------------------------------------
# Text decoding
# ---------------------------------------------------------------------------

_HTML_ENTITIES: dict[str, str] = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#039;": "'",
    "&apos;": "'",
    "&nbsp;": " ",
}

_ENTITY = re.compile(r"&[a-zA-Z0-9#]+;")
_NUMERIC_REF = re.compile(r"&#(\d+);")
_UNICODE_ESCAPE = re.compile(r"\\u([0-9a-fA-F]{4})")

_HIGH_SURROGATES = range(0xD800, 0xDC00)
_LOW_SURROGATES = range(0xDC00, 0xE000)


def _decode_code_points(text: str, pattern: re.Pattern[str], base: int) -> str:
    """
    Replace the escaped code points matched by ``pattern`` with characters.

    Adjacent high/low surrogate escapes ("\\ud83d\\ude00") are joined into a
    single character. Unpaired surrogates and out-of-range code points keep
    their original escape text; neither can be written as UTF-8.
    """
    matches = list(pattern.finditer(text))
    parts: list[str] = []
    pos = 0
    i = 0
    while i < len(matches):
        match = matches[i]
        parts.append(text[pos:match.start()])
        pos = match.end()
        i += 1
        code = int(match.group(1), base)

        if code in _HIGH_SURROGATES and i < len(matches) and matches[i].start() == match.end():
            low = int(matches[i].group(1), base)
            if low in _LOW_SURROGATES:
                parts.append(chr(0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00)))
                pos = matches[i].end()
                i += 1
                continue

        if code > 0x10FFFF or code in _HIGH_SURROGATES or code in _LOW_SURROGATES:
            parts.append(match.group(0))
        else:
            parts.append(chr(code))
    parts.append(text[pos:])
    return "".join(parts)


def decode_text(text: str | None) -> str:
    """
    Decode HTML entities and unicode escapes in a feed text field.

    Steps:
    1. Replace known named entities repeatedly until nothing changes, so
       multiply-escaped text ("&amp;amp;") collapses fully.
    2. Decode numeric character references (``&#3585;``).
    3. Decode literal ``\\uXXXX`` escapes.

    Surrogate pairs in either escape form become one character. Unknown
    entities and unpaired surrogates are kept verbatim. Returns "" for None/empty input.
    """
    if not text:
        return ""

    decoded = text
    while True:
        previous = decoded
        decoded = _ENTITY.sub(lambda m: _HTML_ENTITIES.get(m.group(0), m.group(0)), previous)
        if decoded == previous:
            break

    decoded = _decode_code_points(decoded, _NUMERIC_REF, 10)
    return _decode_code_points(decoded, _UNICODE_ESCAPE, 16)


def decode_optional(text: str | None) -> str | None:
    """decode_text() that maps empty results to None (nullable locale columns)."""
    return decode_text(text) or None


# ---------------------------------------------------------------------------
# Opening hours
# ---------------------------------------------------------------------------

_HOURS_RANGE = re.compile(r"^(\d{1,2}[.:]\d{2})\s*-\s*(\d{1,2}[.:]\d{2})$")


def parse_opening_hours(opening_hours: str | None) -> OpeningHours:
    """
    Parse the feed's free-text opening hours.

    - "" / None                → all empty
    - "HH:MM-HH:MM" or "HH.MM-HH.MM" → open/close normalized to "HH:MM"
    - anything else            → open = text verbatim, close = ""

    The feed carries no per-weekday schedule, so same_hours_every_day is
    always True and per_day is always empty.
    """
    text = (opening_hours or "").strip()
    if not text:
        return OpeningHours()

    match = _HOURS_RANGE.match(text)
    if match:
        return OpeningHours(
            open=match.group(1).replace(".", ":"),
            close=match.group(2).replace(".", ":"),
        )

    return OpeningHours(open=opening_hours or "")


# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------

_SLUG_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def generate_slug(name: str | None, suffix: str) -> str:
    """
    Build a URL slug from a brand/shop name and a disambiguating suffix.

    The name is lower-cased, stripped of anything but ASCII letters, digits,
    whitespace and hyphens, whitespace runs become single hyphens and
    leading/trailing hyphens are trimmed. ``suffix`` (the tenant id) is
    appended verbatim. Names with nothing slug-safe left fall back to
    ``shop-{suffix}``.
    """
    base = _SLUG_DISALLOWED.sub("", (name or "").lower())
    base = _WHITESPACE.sub("-", base.strip())
    base = _HYPHENS.sub("-", base).strip("-")
    if not base:
        return f"shop-{suffix}"
    return f"{base}-{suffix}"


# ---------------------------------------------------------------------------
# DataFrame helpers (feed pages)
# ---------------------------------------------------------------------------


def clean_string_columns(df: pl.DataFrame) -> pl.DataFrame:
    """Strip surrounding whitespace from all String columns."""
    return df.with_columns(
        [
            pl.col(c).str.strip_chars()
            for c in df.columns
            if df[c].dtype == pl.String
        ]
    )


def fill_null_strings(df: pl.DataFrame) -> pl.DataFrame:
    """Replace nulls in String columns with "" so every text field is present."""
    return df.with_columns(
        [
            pl.col(c).fill_null("")
            for c in df.columns
            if df[c].dtype == pl.String
        ]
    )
