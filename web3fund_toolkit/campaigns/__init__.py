"""Campaign reading module for the Web3Fund toolkit."""

from .models import CampaignRecord, MilestoneView
from .service import CampaignService

__all__ = [
    "CampaignRecord",
    "CampaignService",
    "MilestoneView",
]
