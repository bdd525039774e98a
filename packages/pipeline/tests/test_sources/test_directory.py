"""
tests/test_sources/test_directory.py — Unit tests for DirectoryFeedSource.

Tests cover:
  - Sequential pagination up to totalPages
  - Request headers (app code, production-only cookie)
  - Page failures: stop paginating, keep fetched pages, record page_{n}
  - Column normalization and conversion to UpstreamRecord
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest
import respx

from tenantsync_shared.config import settings
from tenantsync_shared.errors import ConfigurationError
from tenantsync_pipeline.sources.directory import DirectoryFeedSource
from tenantsync_pipeline.utils.run_context import RunContext

FEED_URL = "https://feed.test/api/tenants"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _page(rows: list[dict[str, Any]], page: int, total_pages: int) -> dict[str, Any]:
    return {
        "totalRecord": 999,
        "page": page,
        "limit": 100,
        "totalPages": total_pages,
        "data": rows,
    }


def _responder(pages: dict[int, Any]):
    """Serve page bodies keyed by the ``page`` query param; ints are status codes."""

    def _respond(request: httpx.Request) -> httpx.Response:
        body = pages[int(request.url.params["page"])]
        if isinstance(body, int):
            return httpx.Response(body)
        return httpx.Response(200, json=body)

    return _respond


def _source(ctx: RunContext | None = None) -> DirectoryFeedSource:
    return DirectoryFeedSource(FEED_URL, context=ctx or RunContext(), page_delay=0)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

class TestPagination:
    @pytest.mark.asyncio
    async def test_fetches_every_page(self, feed_row):
        pages = {
            1: _page([feed_row(uniqueId="A"), feed_row(uniqueId="B")], 1, 2),
            2: _page([feed_row(uniqueId="C")], 2, 2),
        }
        ctx = RunContext()
        with respx.mock() as router:
            route = router.get(FEED_URL).mock(side_effect=_responder(pages))
            records, summary = await _source(ctx).fetch_records()

        assert [r.unique_id for r in records] == ["A", "B", "C"]
        assert route.call_count == 2
        assert summary.total_records == 3
        assert summary.total_pages == 2
        assert summary.last_page_processed == 2
        assert summary.failed_page is None
        assert ctx.api_request_count == 2
        assert ctx.errors == []

    @pytest.mark.asyncio
    async def test_sends_page_and_limit(self, feed_row):
        with respx.mock() as router:
            route = router.get(FEED_URL).mock(
                side_effect=_responder({1: _page([feed_row()], 1, 1)})
            )
            await DirectoryFeedSource(
                FEED_URL, context=RunContext(), page_limit=25, page_delay=0
            ).fetch_records()

        params = route.calls.last.request.url.params
        assert params["page"] == "1"
        assert params["limit"] == "25"

    @pytest.mark.asyncio
    async def test_empty_feed(self):
        with respx.mock() as router:
            router.get(FEED_URL).mock(side_effect=_responder({1: _page([], 1, 0)}))
            records, summary = await _source().fetch_records()

        assert records == []
        assert summary.total_records == 0
        assert summary.last_page_processed == 1


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestPageFailures:
    @pytest.mark.asyncio
    async def test_http_error_stops_and_keeps_earlier_pages(self, feed_row):
        pages = {
            1: _page([feed_row(uniqueId="A")], 1, 3),
            2: 500,
            3: _page([feed_row(uniqueId="C")], 3, 3),
        }
        ctx = RunContext()
        with respx.mock() as router:
            route = router.get(FEED_URL).mock(side_effect=_responder(pages))
            records, summary = await _source(ctx).fetch_records()

        assert [r.unique_id for r in records] == ["A"]
        assert route.call_count == 2
        assert summary.failed_page == 2
        assert summary.last_page_processed == 1
        assert [e.record_unique_id for e in ctx.errors] == ["page_2"]
        assert "500" in ctx.errors[0].error_message

    @pytest.mark.asyncio
    async def test_transport_error_on_first_page(self):
        ctx = RunContext()
        with respx.mock() as router:
            router.get(FEED_URL).mock(side_effect=httpx.ConnectError("refused"))
            records, summary = await _source(ctx).fetch_records()

        assert records == []
        assert summary.failed_page == 1
        assert [e.record_unique_id for e in ctx.errors] == ["page_1"]
        # Failed requests still count towards the response-time average
        assert ctx.api_request_count == 1

    @pytest.mark.asyncio
    async def test_malformed_body_is_a_page_error(self):
        ctx = RunContext()
        with respx.mock() as router:
            router.get(FEED_URL).mock(return_value=httpx.Response(200, text="<html>"))
            records, _ = await _source(ctx).fetch_records()

        assert records == []
        assert ctx.errors[0].record_unique_id == "page_1"

    def test_missing_url_is_a_configuration_error(self, monkeypatch):
        monkeypatch.setattr(settings, "external_api_url", "")
        with pytest.raises(ConfigurationError):
            DirectoryFeedSource(context=RunContext())


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------

class TestHeaders:
    @pytest.mark.asyncio
    async def test_app_code_sent_cookie_withheld_outside_production(self, monkeypatch, feed_row):
        monkeypatch.setattr(settings, "x_apig_appcode", "app-code-1")
        monkeypatch.setattr(settings, "external_api_cookies", "sid=abc")
        monkeypatch.setattr(settings, "app_env", "development")

        with respx.mock() as router:
            route = router.get(FEED_URL).mock(side_effect=_responder({1: _page([feed_row()], 1, 1)}))
            await _source().fetch_records()

        headers = route.calls.last.request.headers
        assert headers["X-Apig-AppCode"] == "app-code-1"
        assert headers["Content-Type"] == "application/json"
        assert "Cookie" not in headers

    @pytest.mark.asyncio
    async def test_cookie_sent_in_production(self, monkeypatch, feed_row):
        monkeypatch.setattr(settings, "external_api_cookies", "sid=abc")
        monkeypatch.setattr(settings, "app_env", "production")

        with respx.mock() as router:
            route = router.get(FEED_URL).mock(side_effect=_responder({1: _page([feed_row()], 1, 1)}))
            await _source().fetch_records()

        assert route.calls.last.request.headers["Cookie"] == "sid=abc"


# ---------------------------------------------------------------------------
# Transform / records
# ---------------------------------------------------------------------------

class TestTransform:
    @pytest.mark.asyncio
    async def test_rows_become_upstream_records(self, feed_row):
        rows = [
            feed_row(uniqueId=" A ", floorRevised=None, status=False),
            {"uniqueId": "B", "tenantId": 42, "brandNameEn": "Uniqlo"},
        ]
        with respx.mock() as router:
            router.get(FEED_URL).mock(side_effect=_responder({1: _page(rows, 1, 1)}))
            records, _ = await _source().fetch_records()

        first, second = records
        assert first.unique_id == "A"
        assert first.floor_revised == ""
        assert first.status is False
        assert first.brand_name_en == "Zara"
        assert second.tenant_id == "42"
        assert second.floor == ""
        assert second.status is None

    @pytest.mark.asyncio
    async def test_metadata(self, feed_row):
        source = _source()
        with respx.mock() as router:
            router.get(FEED_URL).mock(side_effect=_responder({1: _page([feed_row()], 1, 1)}))
            await source.fetch_records()

        meta = await source.get_metadata()
        assert meta["source_name"] == "DirectoryFeed"
        assert meta["record_count"] == 1
        assert meta["url"] == FEED_URL
