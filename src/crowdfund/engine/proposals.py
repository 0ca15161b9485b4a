"""Proposal registry: commit-reveal registry of spending proposals.

Commit: a proposer submits only a hash commitment and a budget. The
commit step is deliberately unconstrained so proposal content stays
hidden until reveal; budget feasibility against the goal is a concern
for the distributor downstream.

Reveal: the proposer discloses the description. The registry does not
check it against the commitment (see crowdfund.crypto.commitment for
callers that want to). Revealing twice overwrites the description.

Ids are assigned sequentially from 0 and proposals are never deleted.
"""

from __future__ import annotations

from crowdfund.models.campaign import Campaign, CampaignError, ErrorCode, Proposal


class ProposalRegistry:
    """Commit-reveal lifecycle over a campaign's proposals."""

    @staticmethod
    def submit_hash(
        campaign: Campaign,
        proposal_hash: str,
        budget: int,
        submitter_id: str,
    ) -> Proposal:
        """Register a commitment. Always succeeds; returns the new proposal."""
        proposal = Proposal(
            proposal_id=campaign.next_id,
            hash=proposal_hash,
            budget=budget,
            submitter=submitter_id,
        )
        campaign.proposals[proposal.proposal_id] = proposal
        campaign.next_id += 1
        return proposal

    @staticmethod
    def get(campaign: Campaign, proposal_id: int) -> Proposal:
        proposal = campaign.proposals.get(proposal_id)
        if proposal is None:
            raise CampaignError(
                ErrorCode.PROPOSAL_NOT_FOUND,
                f"Proposal not found: {proposal_id}",
            )
        return proposal

    @staticmethod
    def reveal(campaign: Campaign, proposal_id: int, description: str) -> Proposal:
        """Disclose a proposal's description.

        Transitions: unrevealed → revealed (repeat reveals overwrite).
        """
        proposal = ProposalRegistry.get(campaign, proposal_id)
        proposal.revealed = True
        proposal.description = description
        return proposal
