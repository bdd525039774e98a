"""
sources/directory.py — Mall tenant directory feed source.

The directory API is a paginated JSON endpoint:

  GET {EXTERNAL_API_URL}?page=1&limit=100
  → {"totalRecord": 245, "page": 1, "limit": 100, "totalPages": 3,
     "data": [{"uniqueId": "...", "tenantId": "...", "brandNameEn": ...}, ...]}

Pages are fetched strictly in order with a short pause between them. A page
that fails (non-2xx, transport error, unparseable body) stops pagination:
pages already fetched are kept and the failure is recorded on the run
context as ``page_{n}``. There are no retries.

Usage:
    source = DirectoryFeedSource(context=ctx)
    records, summary = await source.fetch_records()
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import httpx
import polars as pl
import structlog
from pydantic import ValidationError

from tenantsync_shared.config import settings
from tenantsync_shared.errors import FeedError
from tenantsync_shared.models import FeedPage, ProcessingError, UpstreamRecord
from tenantsync_pipeline.sources.base import BaseSource
from tenantsync_pipeline.transforms.normalize import clean_string_columns, fill_null_strings
from tenantsync_pipeline.utils.run_context import RunContext

log = structlog.get_logger(__name__)


@dataclass
class FetchSummary:
    """Pagination outcome of one feed fetch."""

    total_records: int = 0
    total_pages: int = 0
    last_page_processed: int = 0
    failed_page: int | None = None


def _as_text(value: Any) -> str | None:
    """Render a scalar feed value as text so every column shares one dtype."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class DirectoryFeedSource(BaseSource):
    """Pulls all tenant rows from the paginated directory feed."""

    name = "DirectoryFeed"

    def __init__(
        self,
        url: str | None = None,
        *,
        context: RunContext | None = None,
        page_limit: int | None = None,
        page_delay: float | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self.url = url or settings.require_feed()
        self.context = context if context is not None else RunContext()
        self._page_limit = page_limit or settings.feed_page_limit
        self._page_delay = settings.feed_page_delay_seconds if page_delay is None else page_delay
        self._timeout = timeout or settings.feed_timeout_seconds
        self._transport = transport
        self.summary = FetchSummary()

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if settings.x_apig_appcode:
            headers["X-Apig-AppCode"] = settings.x_apig_appcode
        # Session cookies are only valid against the production gateway
        if settings.is_production and settings.external_api_cookies:
            headers["Cookie"] = settings.external_api_cookies
        return headers

    async def _fetch_page(self, client: httpx.AsyncClient, page: int) -> FeedPage:
        """Fetch and validate one page; timing is recorded on the context."""
        params = {"page": page, "limit": self._page_limit}
        self._log.debug("feed_page_fetch", page=page, limit=self._page_limit)

        t0 = time.monotonic()
        try:
            r = await client.get(self.url, params=params)
        except httpx.HTTPError as exc:
            raise FeedError(f"Request for page {page} failed: {exc}", page=page) from exc
        finally:
            self.context.record_api_response((time.monotonic() - t0) * 1000)

        if r.is_error:
            raise FeedError(
                f"HTTP {r.status_code}: {r.reason_phrase}",
                page=page,
                status_code=r.status_code,
            )
        try:
            return FeedPage.model_validate(r.json())
        except (ValueError, ValidationError) as exc:
            raise FeedError(f"Malformed response for page {page}: {exc}", page=page) from exc

    # ------------------------------------------------------------------
    # BaseSource interface
    # ------------------------------------------------------------------

    async def extract(self, **kwargs: Any) -> pl.DataFrame:
        """
        Fetch every page of the feed in order.

        Returns:
            Raw polars DataFrame, one String column per feed field seen.
        """
        self.summary = FetchSummary()
        rows: list[dict[str, Any]] = []
        page = 1
        total_pages = 1

        async with httpx.AsyncClient(
            headers=self._headers(),
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            while page <= total_pages:
                try:
                    payload = await self._fetch_page(client, page)
                except FeedError as exc:
                    self._log.error("feed_page_failed", page=page, error=str(exc))
                    self.context.add_error(
                        ProcessingError.from_exception(f"page_{page}", exc)
                    )
                    self.summary.failed_page = page
                    break

                rows.extend(payload.data)
                total_pages = payload.total_pages
                self.summary.total_pages = total_pages
                self.summary.last_page_processed = page
                self._log.info(
                    "feed_page_fetched",
                    page=page,
                    total_pages=total_pages,
                    records=len(payload.data),
                )

                page += 1
                if page <= total_pages and self._page_delay:
                    await asyncio.sleep(self._page_delay)

        self.summary.total_records = len(rows)
        if not rows:
            return pl.DataFrame()

        columns: dict[str, None] = {}
        for row in rows:
            columns.update(dict.fromkeys(row))
        return pl.from_dicts(
            [{k: _as_text(v) for k, v in row.items()} for row in rows],
            schema={col: pl.String for col in columns},
        )

    def transform(self, raw: pl.DataFrame) -> pl.DataFrame:
        """
        Normalize feed columns to the UpstreamRecord field names.

        Output: snake_case String columns, whitespace-stripped, nulls as "".
        Rows are kept even when blank; the reconciler reports them.
        """
        if raw.is_empty():
            return raw
        df = self._normalize_columns(raw)
        df = clean_string_columns(df)
        return fill_null_strings(df)

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "url": self.url,
            "record_count": self.summary.total_records,
            "total_pages": self.summary.total_pages,
            "last_page_processed": self.summary.last_page_processed,
        }

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    @staticmethod
    def to_records(df: pl.DataFrame) -> list[UpstreamRecord]:
        """Convert a transformed DataFrame to immutable feed records."""
        if df.is_empty():
            return []
        return [UpstreamRecord.model_validate(row) for row in df.to_dicts()]

    async def fetch_records(self) -> tuple[list[UpstreamRecord], FetchSummary]:
        """Fetch, normalize and validate the whole feed."""
        df = await self.run()
        records = self.to_records(df)
        self._log.info(
            "feed_fetch_complete",
            records=len(records),
            pages=self.summary.last_page_processed,
            total_pages=self.summary.total_pages,
        )
        return records, self.summary
