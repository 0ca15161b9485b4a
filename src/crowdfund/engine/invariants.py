"""Campaign invariant checks.

Every operation must leave a campaign satisfying these. The checker is
read-only and returns a list of violations; an empty list is healthy.
"""

from __future__ import annotations

from crowdfund.engine.principals import is_valid_principal
from crowdfund.models.campaign import Campaign


def check_campaign_invariants(campaign: Campaign, prefix: str) -> list[str]:
    errors: list[str] = []

    if campaign.is_initialized:
        if campaign.goal_amount <= 0:
            errors.append(f"goal_amount must be > 0, got {campaign.goal_amount}")
        if campaign.duration_fundraise <= 0:
            errors.append(
                f"duration_fundraise must be > 0, got {campaign.duration_fundraise}"
            )
        if campaign.duration_vote <= 0:
            errors.append(f"duration_vote must be > 0, got {campaign.duration_vote}")
        if not is_valid_principal(campaign.escrow, prefix):
            errors.append(f"escrow is not a principal: {campaign.escrow!r}")
        if not is_valid_principal(campaign.distributor, prefix):
            errors.append(f"distributor is not a principal: {campaign.distributor!r}")

    # Proposal ids are exactly [0, next_id)
    if set(campaign.proposals) != set(range(campaign.next_id)):
        errors.append(
            f"proposal ids {sorted(campaign.proposals)} do not match "
            f"range(0, {campaign.next_id})"
        )
    for pid, proposal in campaign.proposals.items():
        if proposal.proposal_id != pid:
            errors.append(f"proposal keyed {pid} carries id {proposal.proposal_id}")
        if (proposal.description is not None) != proposal.revealed:
            errors.append(
                f"proposal {pid}: description set={proposal.description is not None} "
                f"but revealed={proposal.revealed}"
            )

    for contributor, amount in campaign.contributions.items():
        if amount < 0:
            errors.append(f"negative contribution for {contributor}: {amount}")
    for pid, tally in campaign.proposal_votes.items():
        if tally < 0:
            errors.append(f"negative vote tally for proposal {pid}: {tally}")
        if pid not in campaign.proposals:
            errors.append(f"vote tally for unknown proposal {pid}")

    return errors
