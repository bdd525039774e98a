"""
tenantsync_pipeline.sources — upstream feed adapters.

  DirectoryFeedSource — paginated mall tenant directory JSON API
"""

from tenantsync_pipeline.sources.directory import DirectoryFeedSource, FetchSummary

__all__ = [
    "DirectoryFeedSource",
    "FetchSummary",
]
