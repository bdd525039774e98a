"""
tenantsync_shared — shared configuration, store client, constants and models
for the tenant directory sync.

Usage:
    from tenantsync_shared.config import settings
    from tenantsync_shared.db import get_supabase_client
    from tenantsync_shared.models import UpstreamRecord, EntityType
    from tenantsync_shared.constants import FLOOR_ALIASES, CATEGORY_ALIASES
"""

__version__ = "0.1.0"
