"""
Campaign persistence.

Upserts crawled campaigns into the campaigns table keyed by
(source_site, campaign_id).
"""

from .db_insert import CampaignUpsert, generate_campaign_id

__version__ = "0.1.0"

__all__ = ["CampaignUpsert", "generate_campaign_id"]
