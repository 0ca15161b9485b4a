"""Campaign engines: initializer, ledger, proposals, votes, principals."""

from crowdfund.engine.initializer import CampaignInitializer
from crowdfund.engine.invariants import check_campaign_invariants
from crowdfund.engine.ledger import ContributionLedger
from crowdfund.engine.phase import campaign_phase, voting_open
from crowdfund.engine.principals import PrincipalRegistry, is_valid_principal
from crowdfund.engine.proposals import ProposalRegistry
from crowdfund.engine.votes import VoteTally

__all__ = [
    "CampaignInitializer",
    "ContributionLedger",
    "PrincipalRegistry",
    "ProposalRegistry",
    "VoteTally",
    "campaign_phase",
    "check_campaign_invariants",
    "is_valid_principal",
    "voting_open",
]
