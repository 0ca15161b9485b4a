"""Vote tally: proposal id → accumulated vote weight, gated to VOTING.

Checks, in order:
1. Voting not yet open (fundraising still running, or the campaign is
   not initialized)  → CAMPAIGN_NOT_STARTED
2. Unknown proposal   → PROPOSAL_NOT_FOUND

Weight is not capped and is not checked against contributions; that is
the caller's concern. Voting never closes: duration_vote is nominal.
Unrevealed proposals can be voted on. An uninitialized campaign reports
CAMPAIGN_NOT_STARTED even though its zeroed windows would satisfy the
bare height >= start_time + duration_fundraise comparison.
"""

from __future__ import annotations

from crowdfund.engine.phase import campaign_phase, voting_open
from crowdfund.engine.proposals import ProposalRegistry
from crowdfund.models.campaign import Campaign, CampaignError, ErrorCode


class VoteTally:
    """Applies weighted votes to a campaign's tally."""

    @staticmethod
    def validate(campaign: Campaign, proposal_id: int, height: int) -> None:
        if not voting_open(campaign, height):
            raise CampaignError(
                ErrorCode.CAMPAIGN_NOT_STARTED,
                f"Voting not started at height {height} "
                f"(phase: {campaign_phase(campaign, height).value}, "
                f"opens at {campaign.fundraise_end})",
            )
        ProposalRegistry.get(campaign, proposal_id)

    @staticmethod
    def cast_vote(
        campaign: Campaign, proposal_id: int, weight: int, height: int,
    ) -> int:
        """Add ``weight`` to the proposal's tally. Returns the new tally."""
        VoteTally.validate(campaign, proposal_id, height)
        tally = campaign.proposal_votes.get(proposal_id, 0) + weight
        campaign.proposal_votes[proposal_id] = tally
        return tally

    @staticmethod
    def get_vote_count(campaign: Campaign, proposal_id: int) -> int:
        return campaign.proposal_votes.get(proposal_id, 0)
