"""Campaign initializer: one-shot configuration of a campaign.

Preconditions are checked in a fixed order and the first failure wins:
1. Already initialized      → CAMPAIGN_ALREADY_INITIALIZED
2. goal <= 0                → INVALID_GOAL
3. either duration <= 0     → INVALID_DURATION
4. escrow not a principal   → INVALID_ESCROW
5. distributor not a principal → INVALID_DISTRIBUTOR

All checks run before any field is written, so a failure leaves the
campaign untouched. Repeated calls after a success always fail.
"""

from __future__ import annotations

from crowdfund.engine.principals import PrincipalRegistry
from crowdfund.models.campaign import Campaign, CampaignError, ErrorCode
from crowdfund.policy.resolver import PolicyResolver


class CampaignInitializer:
    """Applies the one-shot campaign configuration.

    Usage:
        initializer = CampaignInitializer(resolver)
        initializer.initialize(
            campaign, goal=1_000_000, fundraise_duration=3600,
            vote_duration=3600, theme="Health", escrow="ST1...",
            distributor="ST2...", height=clock(),
        )
    """

    def __init__(self, resolver: PolicyResolver) -> None:
        self._principals = PrincipalRegistry(resolver)

    def validate(
        self,
        campaign: Campaign,
        goal: int,
        fundraise_duration: int,
        vote_duration: int,
        escrow: str,
        distributor: str,
    ) -> None:
        """Run the ordered precondition checks. Raises CampaignError."""
        if campaign.is_initialized:
            raise CampaignError(
                ErrorCode.CAMPAIGN_ALREADY_INITIALIZED,
                f"Campaign already initialized at height {campaign.start_time}",
            )
        if goal <= 0:
            raise CampaignError(
                ErrorCode.INVALID_GOAL, f"Goal must be positive, got {goal}"
            )
        if fundraise_duration <= 0 or vote_duration <= 0:
            raise CampaignError(
                ErrorCode.INVALID_DURATION,
                f"Durations must be positive, got fundraise={fundraise_duration} "
                f"vote={vote_duration}",
            )
        self._principals.validate_escrow(escrow)
        self._principals.validate_distributor(distributor)

    def initialize(
        self,
        campaign: Campaign,
        goal: int,
        fundraise_duration: int,
        vote_duration: int,
        theme: str,
        escrow: str,
        distributor: str,
        height: int,
    ) -> Campaign:
        """Validate, then set every campaign field and fix start_time."""
        self.validate(
            campaign, goal, fundraise_duration, vote_duration, escrow, distributor
        )
        campaign.goal_amount = goal
        campaign.duration_fundraise = fundraise_duration
        campaign.duration_vote = vote_duration
        campaign.theme = theme
        campaign.escrow = escrow
        campaign.distributor = distributor
        campaign.start_time = height
        return campaign
