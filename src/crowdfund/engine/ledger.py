"""Contribution ledger: contributor identity → cumulative deposited amount.

Entries are created on first contribution and only ever incremented.
There is no withdrawal and no phase gate: deposits are accepted at any
height, before or after initialization.
"""

from __future__ import annotations

from crowdfund.models.campaign import Campaign, CampaignError, ErrorCode


class ContributionLedger:
    """Records contributions against a campaign."""

    @staticmethod
    def validate(amount: int) -> None:
        if amount <= 0:
            raise CampaignError(
                ErrorCode.INVALID_AMOUNT,
                f"Contribution amount must be positive, got {amount}",
            )

    @staticmethod
    def contribute(campaign: Campaign, contributor_id: str, amount: int) -> int:
        """Add ``amount`` to the contributor's entry. Returns the new total."""
        ContributionLedger.validate(amount)
        total = campaign.contributions.get(contributor_id, 0) + amount
        campaign.contributions[contributor_id] = total
        return total

    @staticmethod
    def get_contribution(campaign: Campaign, contributor_id: str) -> int:
        return campaign.contributions.get(contributor_id, 0)
