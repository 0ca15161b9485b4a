"""Core data models for the crowdfund campaign core."""

from crowdfund.models.campaign import (
    Campaign,
    CampaignError,
    CampaignPhase,
    ErrorCode,
    Proposal,
)

__all__ = [
    "Campaign",
    "CampaignError",
    "CampaignPhase",
    "ErrorCode",
    "Proposal",
]
