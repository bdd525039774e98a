"""
cli.py — Click CLI entrypoint for the directory sync.

Usage:
    tenantsync run
    tenantsync status

Exit codes for ``run``: 0 after a COMPLETED or PARTIAL run and after
SIGINT/SIGTERM, 1 when the run raised.
"""

from __future__ import annotations

import asyncio
import signal
import sys

import click
import structlog

from tenantsync_shared.models import SyncRun, SyncStatus
from tenantsync_pipeline.utils.logging import configure_logging

log = structlog.get_logger(__name__)

_STATUS_MARKS = {
    SyncStatus.COMPLETED: "✓",
    SyncStatus.PARTIAL: "⚠",
    SyncStatus.FAILED: "✗",
    SyncStatus.RUNNING: "⟳",
}


async def _run_until_signalled() -> SyncRun | None:
    """Run one sync; SIGINT/SIGTERM cancel it and yield None."""
    from tenantsync_pipeline.pipelines import directory_sync

    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(directory_sync.run())

    def _interrupt(sig: signal.Signals) -> None:
        log.warning("sync_signal_received", signal=sig.name)
        task.cancel()

    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _interrupt, sig)
            installed.append(sig)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    try:
        return await task
    except asyncio.CancelledError:
        if not task.cancelled():
            raise
        log.warning("sync_interrupted")
        return None
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


@click.group()
def main() -> None:
    """tenantsync directory sync worker."""
    configure_logging()


@main.command()
def run() -> None:
    """Run one full directory sync."""
    try:
        sync_run = asyncio.run(_run_until_signalled())
    except Exception as exc:
        log.error("sync_aborted", error=str(exc), error_type=type(exc).__name__)
        sys.exit(1)

    if sync_run is None:
        click.echo("Sync interrupted; run left RUNNING.")
        return
    click.echo(
        f"Sync {sync_run.sync_id} {sync_run.status.value}: "
        f"{sync_run.records_processed} processed, "
        f"{sync_run.records_created} created, "
        f"{sync_run.records_updated} updated, "
        f"{sync_run.records_failed} failed"
    )


async def _recent_runs(limit: int) -> list[SyncRun]:
    from tenantsync_pipeline.loaders.supabase_loader import SupabaseCatalogStore

    store = await SupabaseCatalogStore.connect()
    try:
        rows = await store.recent_sync_runs(limit)
    finally:
        await store.close()
    return [SyncRun.from_db_row(row) for row in rows]


@main.command()
def status() -> None:
    """Show the most recent sync runs."""
    click.echo("Sync runs:")
    try:
        runs = asyncio.run(_recent_runs(20))
    except Exception as exc:
        click.echo(f"  Error fetching status: {exc}", err=True)
        sys.exit(1)

    if not runs:
        click.echo("  No sync runs found.")
        return
    for sync_run in runs:
        click.echo(
            f"  {_STATUS_MARKS.get(sync_run.status, '?')} {sync_run.sync_id:32s} "
            f"{sync_run.status.value:10s} "
            f"{sync_run.records_processed} processed  "
            f"{sync_run.records_failed} failed  "
            f"{sync_run.started_at.isoformat()[:19]}"
        )


if __name__ == "__main__":
    main()
