"""Campaign phase: derived from clock arithmetic, never stored.

    PRE_START    campaign not initialized
    FUNDRAISING  height < start_time + duration_fundraise
    VOTING       height >= start_time + duration_fundraise

Progression is one-way because the clock never decreases. Keeping the
phase as a pure function of (campaign, height) means there is no stored
field that could drift out of sync with the clock.
"""

from __future__ import annotations

from crowdfund.models.campaign import Campaign, CampaignPhase


def campaign_phase(campaign: Campaign, height: int) -> CampaignPhase:
    """Classify ``height`` relative to the campaign's windows."""
    if campaign.start_time is None:
        return CampaignPhase.PRE_START
    if height < campaign.start_time + campaign.duration_fundraise:
        return CampaignPhase.FUNDRAISING
    return CampaignPhase.VOTING


def voting_open(campaign: Campaign, height: int) -> bool:
    return campaign_phase(campaign, height) == CampaignPhase.VOTING


def blocks_until_voting(campaign: Campaign, height: int) -> int | None:
    """Blocks left before voting opens (0 once open, None if uninitialized)."""
    if campaign.fundraise_end is None:
        return None
    return max(campaign.fundraise_end - height, 0)
