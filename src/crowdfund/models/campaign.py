"""Campaign data models: the single state record shared by every engine.

A campaign is one explicit, owned object. Engines receive it by reference
and mutate it in place; nothing lives in module-level storage, so any
number of independent campaigns can exist side by side.

Invariants enforced through these models and the engines:
- start_time is None until initialization, then never changes.
- Proposal ids are exactly range(next_id).
- A proposal's description is set iff it has been revealed.
- Contribution and vote amounts only ever increase.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Optional


class ErrorCode(enum.IntEnum):
    """Closed set of typed failure codes.

    The numeric values are stable and part of the external contract.
    """
    CAMPAIGN_NOT_STARTED = 100
    CAMPAIGN_ALREADY_INITIALIZED = 103
    PROPOSAL_NOT_FOUND = 106
    INVALID_GOAL = 108
    INVALID_DURATION = 109
    INVALID_ESCROW = 110
    INVALID_DISTRIBUTOR = 111
    INVALID_AMOUNT = 200


class CampaignError(Exception):
    """Raised by an engine when an operation's precondition fails."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class CampaignPhase(str, enum.Enum):
    """Derived lifecycle phase. Never stored, always computed from the clock.

    Progression:
        PRE_START → FUNDRAISING → VOTING
    """
    PRE_START = "pre_start"  # not yet initialized
    FUNDRAISING = "fundraising"
    VOTING = "voting"  # never closes


@dataclass
class Proposal:
    """A spending proposal registered through commit-reveal.

    Mutable: transitions once from unrevealed to revealed. Never deleted.
    """
    proposal_id: int
    hash: str
    budget: int
    submitter: str
    revealed: bool = False
    description: Optional[str] = None


@dataclass
class Campaign:
    """State record for one crowdfunding campaign.

    Usage:
        campaign = Campaign(creator="ST1CREATOR")
        CampaignInitializer(resolver).initialize(campaign, ..., height=10)
    """
    creator: str
    goal_amount: int = 0
    start_time: Optional[int] = None
    duration_fundraise: int = 0
    duration_vote: int = 0
    theme: str = ""
    is_canceled: bool = False
    escrow: Optional[str] = None
    distributor: Optional[str] = None
    next_id: int = 0
    contributions: Dict[str, int] = field(default_factory=dict)
    proposals: Dict[int, Proposal] = field(default_factory=dict)
    proposal_votes: Dict[int, int] = field(default_factory=dict)

    @property
    def is_initialized(self) -> bool:
        return self.start_time is not None

    @property
    def fundraise_end(self) -> Optional[int]:
        """Height at which voting opens, or None before initialization."""
        if self.start_time is None:
            return None
        return self.start_time + self.duration_fundraise

    @property
    def vote_end(self) -> Optional[int]:
        """Nominal end of the voting window. Informational only."""
        if self.start_time is None:
            return None
        return self.start_time + self.duration_fundraise + self.duration_vote

    @property
    def total_raised(self) -> int:
        return sum(self.contributions.values())
