"""
db.py — async Supabase client singleton for the catalog store.

Usage:
    from tenantsync_shared.db import get_supabase_client, close_supabase_client

    client = await get_supabase_client()   # service key (pipeline writes)
    ...
    await close_supabase_client()
"""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog
from supabase import AsyncClient, acreate_client

from tenantsync_shared.config import settings
from tenantsync_shared.errors import ConfigurationError

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Supabase: one service-role client per process
# ---------------------------------------------------------------------------
_supabase_lock = asyncio.Lock()
_supabase_service: Optional[AsyncClient] = None


async def get_supabase_client() -> AsyncClient:
    """
    Return the singleton async Supabase client.

    Uses the service role key so RLS is bypassed for sync writes.

    Raises:
        ConfigurationError: SUPABASE_SERVICE_KEY is not set.
    """
    global _supabase_service

    async with _supabase_lock:
        if _supabase_service is None:
            if not settings.supabase_service_key:
                raise ConfigurationError(
                    "SUPABASE_SERVICE_KEY is not set. "
                    "Set it in .env before running a sync."
                )
            _supabase_service = await acreate_client(
                settings.supabase_url,
                settings.supabase_service_key,
            )
            logger.info("supabase_client_created", role="service_role")
        return _supabase_service


async def close_supabase_client() -> None:
    """Close the PostgREST session and drop the singleton."""
    global _supabase_service

    async with _supabase_lock:
        if _supabase_service is not None:
            await _supabase_service.postgrest.aclose()
            _supabase_service = None
            logger.info("supabase_client_closed")

