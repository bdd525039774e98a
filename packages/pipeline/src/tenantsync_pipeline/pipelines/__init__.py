"""
tenantsync_pipeline.pipelines — End-to-end sync orchestration.

    from tenantsync_pipeline.pipelines import directory_sync

    sync_run = await directory_sync.run()

orchestrator holds the chunked, failure-isolated reconciliation loop that
directory_sync wires between the feed source and the sync run tracker.
"""
