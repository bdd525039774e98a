"""
tenantsync_pipeline — mall tenant directory → catalog sync worker.

Architecture:
  sources/     — paginated directory feed adapter (httpx)
  transforms/  — text normalization, floor/category resolution,
                 shop/dining classification, multi-floor splitting
  loaders/     — catalog store access, idempotent reconciler, sync run log
  pipelines/   — chunked orchestration and the end-to-end run()
  utils/       — structlog configuration, run-scoped context

Quick start:
    from tenantsync_pipeline.pipelines.directory_sync import run
    import asyncio
    sync_run = asyncio.run(run())

CLI:
    tenantsync run
    tenantsync status

Shared code from tenantsync_shared:
    from tenantsync_shared.config import settings
    from tenantsync_shared.db import get_supabase_client
    from tenantsync_shared.models import UpstreamRecord, SyncRun
    from tenantsync_shared.constants import FLOOR_ALIASES, CATEGORY_ALIASES
"""

__version__ = "0.1.0"
