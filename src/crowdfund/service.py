"""Campaign service: unified facade over one crowdfunding campaign.

This is the primary interface for programmatic access. It owns one
Campaign record and orchestrates the engines over it:
- Initialization (one-shot goal, windows, theme, principals)
- Contributions (cumulative ledger)
- Proposals (commit-reveal registry)
- Votes (weighted tally, gated on the fundraising window)
- Principals (escrow / distributor references)

Every mutating operation returns an OperationResult carrying either a
value or one stable ErrorCode. Each call is one atomic
read-clock → validate → audit → mutate → return transaction under a
per-instance lock. Failed operations never touch state and never reach
the audit trail.

Passing the wrong type (a str where an int amount is expected, None
where an identity is expected) is a programming error and raises
TypeError rather than returning a result.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from crowdfund.clock import Clock, ManualClock
from crowdfund.crypto.commitment import matches_commitment
from crowdfund.engine.initializer import CampaignInitializer
from crowdfund.engine.invariants import check_campaign_invariants
from crowdfund.engine.ledger import ContributionLedger
from crowdfund.engine.phase import blocks_until_voting, campaign_phase
from crowdfund.engine.principals import PrincipalRegistry
from crowdfund.engine.proposals import ProposalRegistry
from crowdfund.engine.votes import VoteTally
from crowdfund.models.campaign import (
    Campaign,
    CampaignError,
    CampaignPhase,
    ErrorCode,
    Proposal,
)
from crowdfund.persistence.event_log import EventKind, EventLog, EventRecord
from crowdfund.policy.resolver import PolicyResolver


logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class OperationResult:
    """Result of a campaign operation.

    success=True carries ``value``; success=False carries ``error_code``
    and a human-readable message in ``errors``.
    """
    success: bool
    value: Any = None
    error_code: Optional[ErrorCode] = None
    errors: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, value: Any = True) -> OperationResult:
        return cls(success=True, value=value)

    @classmethod
    def failed(cls, error: CampaignError) -> OperationResult:
        return cls(success=False, error_code=error.code, errors=[error.message])


def _require_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")


def _require_str(name: str, value: Any) -> None:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")


def _require_non_negative(name: str, value: int) -> None:
    _require_int(name, value)
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


class CampaignService:
    """Facade over one campaign instance.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        clock = ManualClock()
        service = CampaignService(resolver, clock)

        service.init_campaign(1_000_000, 3600, 3600, "Health", "ST1...", "ST2...")
        service.contribute("ST1ALICE", 500_000)
        pid = service.submit_proposal_hash("sha256:...", 500_000, "ST1BOB").value
        service.reveal_proposal(pid, "Build a clinic")

        clock.advance(3700)
        service.cast_vote(pid, 10)
        service.get_proposal_vote_count(pid)  # 10

    Audit trail (optional):
        service = CampaignService(resolver, clock, event_log=EventLog(path))
        # Every successful mutation is appended to the log.
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        clock: Clock,
        creator: Optional[str] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._resolver = resolver
        self._clock = clock
        self._campaign = Campaign(creator=creator or resolver.default_creator())

        self._initializer = CampaignInitializer(resolver)
        self._principals = PrincipalRegistry(resolver)

        self._event_log = event_log
        # Continue numbering after any events already in the log
        self._event_counter = event_log.count if event_log is not None else 0

        self._lock = threading.RLock()

    @classmethod
    def from_event_log(
        cls,
        resolver: PolicyResolver,
        event_log: EventLog,
        clock: Clock,
        creator: Optional[str] = None,
    ) -> CampaignService:
        """Rebuild a campaign by replaying a recorded event log.

        Each event is re-applied at its recorded height. An event that no
        longer applies cleanly means the log does not describe a valid
        history and raises ValueError, as does a payload with missing or
        mistyped fields.
        """
        replay_clock = ManualClock()
        service = cls(resolver, replay_clock, creator=creator)
        for event in event_log.events():
            try:
                replay_clock.set_height(event.height)
                result = service._replay(event)
            except (KeyError, TypeError) as e:
                raise ValueError(
                    f"Malformed event {event.event_id} "
                    f"({event.event_kind.value}): bad field {e}"
                ) from e
            except ValueError as e:
                raise ValueError(f"Replay failed at {event.event_id}: {e}") from e
            if not result.success:
                raise ValueError(
                    f"Replay failed at {event.event_id} "
                    f"({event.event_kind.value}): {'; '.join(result.errors)}"
                )
        service._clock = clock
        service._event_log = event_log
        service._event_counter = event_log.count
        return service

    # ------------------------------------------------------------------
    # Initializer
    # ------------------------------------------------------------------

    def init_campaign(
        self,
        goal: int,
        fundraise_duration: int,
        vote_duration: int,
        theme: str,
        escrow: str,
        distributor: str,
    ) -> OperationResult:
        """Configure the campaign. Succeeds exactly once."""
        _require_int("goal", goal)
        _require_int("fundraise_duration", fundraise_duration)
        _require_int("vote_duration", vote_duration)
        _require_str("theme", theme)
        _require_str("escrow", escrow)
        _require_str("distributor", distributor)

        with self._lock:
            height = self._clock()
            try:
                self._initializer.validate(
                    self._campaign, goal, fundraise_duration, vote_duration,
                    escrow, distributor,
                )
            except CampaignError as e:
                return self._rejected("init_campaign", e)

            self._record(
                EventKind.CAMPAIGN_INITIALIZED,
                self._campaign.creator,
                {
                    "height": height,
                    "goal": goal,
                    "fundraise_duration": fundraise_duration,
                    "vote_duration": vote_duration,
                    "theme": theme,
                    "escrow": escrow,
                    "distributor": distributor,
                },
            )
            self._initializer.initialize(
                self._campaign, goal, fundraise_duration, vote_duration,
                theme, escrow, distributor, height,
            )
            logger.info(
                "Campaign initialized at height %d: goal=%d fundraise=%d vote=%d",
                height, goal, fundraise_duration, vote_duration,
            )
            return OperationResult.ok(True)

    # ------------------------------------------------------------------
    # Contribution ledger
    # ------------------------------------------------------------------

    def contribute(self, contributor_id: str, amount: int) -> OperationResult:
        """Add a positive amount to the contributor's running total."""
        _require_str("contributor_id", contributor_id)
        _require_int("amount", amount)

        with self._lock:
            height = self._clock()
            try:
                ContributionLedger.validate(amount)
            except CampaignError as e:
                return self._rejected("contribute", e)

            self._record(
                EventKind.CONTRIBUTION_RECORDED,
                contributor_id,
                {"height": height, "contributor_id": contributor_id, "amount": amount},
            )
            ContributionLedger.contribute(self._campaign, contributor_id, amount)
            return OperationResult.ok(True)

    def get_contribution(self, contributor_id: str) -> int:
        """Cumulative contribution, 0 for unknown identities."""
        with self._lock:
            return ContributionLedger.get_contribution(self._campaign, contributor_id)

    # ------------------------------------------------------------------
    # Proposal registry
    # ------------------------------------------------------------------

    def submit_proposal_hash(
        self,
        proposal_hash: str,
        budget: int,
        submitter_id: str,
    ) -> OperationResult:
        """Commit to a proposal. Always succeeds; value is the new id."""
        _require_str("proposal_hash", proposal_hash)
        _require_int("budget", budget)
        _require_str("submitter_id", submitter_id)

        with self._lock:
            height = self._clock()
            self._record(
                EventKind.PROPOSAL_COMMITTED,
                submitter_id,
                {
                    "height": height,
                    "proposal_id": self._campaign.next_id,
                    "hash": proposal_hash,
                    "budget": budget,
                    "submitter_id": submitter_id,
                },
            )
            proposal = ProposalRegistry.submit_hash(
                self._campaign, proposal_hash, budget, submitter_id
            )
            return OperationResult.ok(proposal.proposal_id)

    def reveal_proposal(
        self,
        proposal_id: int,
        description: str,
        caller_id: Optional[str] = None,
    ) -> OperationResult:
        """Disclose a proposal's description. Repeat reveals overwrite.

        ``caller_id`` only attributes the audit event.
        """
        _require_int("proposal_id", proposal_id)
        _require_str("description", description)

        with self._lock:
            height = self._clock()
            try:
                ProposalRegistry.get(self._campaign, proposal_id)
            except CampaignError as e:
                return self._rejected("reveal_proposal", e)

            self._record(
                EventKind.PROPOSAL_REVEALED,
                caller_id or SYSTEM_ACTOR,
                {"height": height, "proposal_id": proposal_id, "description": description},
            )
            ProposalRegistry.reveal(self._campaign, proposal_id, description)
            return OperationResult.ok(True)

    def get_proposal(self, proposal_id: int) -> Optional[Proposal]:
        """A copy of the proposal, or None."""
        with self._lock:
            proposal = self._campaign.proposals.get(proposal_id)
            return dataclasses.replace(proposal) if proposal is not None else None

    def proposal_matches_commitment(self, proposal_id: int, salt: str = "") -> bool:
        """Whether a revealed proposal's description hashes to its commitment."""
        with self._lock:
            proposal = self._campaign.proposals.get(proposal_id)
            return proposal is not None and matches_commitment(proposal, salt)

    # ------------------------------------------------------------------
    # Vote tally
    # ------------------------------------------------------------------

    def cast_vote(
        self,
        proposal_id: int,
        weight: int,
        caller_id: Optional[str] = None,
    ) -> OperationResult:
        """Add vote weight to a proposal once fundraising has ended.

        ``caller_id`` only attributes the audit event.
        """
        _require_int("proposal_id", proposal_id)
        _require_non_negative("weight", weight)

        with self._lock:
            height = self._clock()
            try:
                VoteTally.validate(self._campaign, proposal_id, height)
            except CampaignError as e:
                return self._rejected("cast_vote", e)

            self._record(
                EventKind.VOTE_CAST,
                caller_id or SYSTEM_ACTOR,
                {"height": height, "proposal_id": proposal_id, "weight": weight},
            )
            VoteTally.cast_vote(self._campaign, proposal_id, weight, height)
            return OperationResult.ok(True)

    def get_proposal_vote_count(self, proposal_id: int) -> int:
        """Accumulated vote weight, 0 for proposals without votes."""
        with self._lock:
            return VoteTally.get_vote_count(self._campaign, proposal_id)

    # ------------------------------------------------------------------
    # Principal registry
    # ------------------------------------------------------------------

    def update_escrow(
        self, principal: str, caller_id: Optional[str] = None,
    ) -> OperationResult:
        """Replace the escrow principal. No authorization check."""
        _require_str("principal", principal)

        with self._lock:
            height = self._clock()
            try:
                self._principals.validate_escrow(principal)
            except CampaignError as e:
                return self._rejected("update_escrow", e)

            self._record(
                EventKind.ESCROW_UPDATED,
                caller_id or SYSTEM_ACTOR,
                {
                    "height": height,
                    "previous": self._campaign.escrow,
                    "escrow": principal,
                },
            )
            self._principals.update_escrow(self._campaign, principal)
            return OperationResult.ok(True)

    def update_distributor(
        self, principal: str, caller_id: Optional[str] = None,
    ) -> OperationResult:
        """Replace the distributor principal. No authorization check."""
        _require_str("principal", principal)

        with self._lock:
            height = self._clock()
            try:
                self._principals.validate_distributor(principal)
            except CampaignError as e:
                return self._rejected("update_distributor", e)

            self._record(
                EventKind.DISTRIBUTOR_UPDATED,
                caller_id or SYSTEM_ACTOR,
                {
                    "height": height,
                    "previous": self._campaign.distributor,
                    "distributor": principal,
                },
            )
            self._principals.update_distributor(self._campaign, principal)
            return OperationResult.ok(True)

    # ------------------------------------------------------------------
    # Status and queries
    # ------------------------------------------------------------------

    @property
    def campaign(self) -> Campaign:
        """A deep copy of the current campaign record."""
        with self._lock:
            return copy.deepcopy(self._campaign)

    @property
    def escrow(self) -> Optional[str]:
        with self._lock:
            return self._campaign.escrow

    @property
    def distributor(self) -> Optional[str]:
        with self._lock:
            return self._campaign.distributor

    def phase(self) -> CampaignPhase:
        with self._lock:
            return campaign_phase(self._campaign, self._clock())

    def check_invariants(self) -> list[str]:
        with self._lock:
            return check_campaign_invariants(
                self._campaign, self._resolver.principal_prefix()
            )

    def status(self) -> dict[str, Any]:
        """Return a campaign status summary."""
        with self._lock:
            c = self._campaign
            height = self._clock()
            revealed = sum(1 for p in c.proposals.values() if p.revealed)
            return {
                "creator": c.creator,
                "initialized": c.is_initialized,
                "height": height,
                "phase": campaign_phase(c, height).value,
                "theme": c.theme,
                "goal_amount": c.goal_amount,
                "total_raised": c.total_raised,
                "goal_reached": c.is_initialized and c.total_raised >= c.goal_amount,
                "contributors": len(c.contributions),
                "proposals": {
                    "total": len(c.proposals),
                    "revealed": revealed,
                    "unrevealed": len(c.proposals) - revealed,
                },
                "start_time": c.start_time,
                "voting_opens_at": c.fundraise_end,
                "nominal_vote_end": c.vote_end,
                "blocks_until_voting": blocks_until_voting(c, height),
                "is_canceled": c.is_canceled,
                "escrow": c.escrow,
                "distributor": c.distributor,
            }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record(self, kind: EventKind, actor_id: str, payload: dict[str, Any]) -> None:
        """Append an audit event before the mutation it describes.

        A failed append (OSError, duplicate id) propagates and the
        mutation never happens.
        """
        if self._event_log is None:
            return
        event = EventRecord.create(
            event_id=self._next_event_id(),
            event_kind=kind,
            actor_id=actor_id,
            payload=payload,
        )
        self._event_log.append(event)

    def _rejected(self, operation: str, error: CampaignError) -> OperationResult:
        logger.debug(
            "%s rejected: [%d %s] %s",
            operation, error.code.value, error.code.name, error.message,
        )
        return OperationResult.failed(error)

    def _replay(self, event: EventRecord) -> OperationResult:
        """Re-apply one recorded event through the public operations."""
        p = event.payload
        kind = event.event_kind
        if kind == EventKind.CAMPAIGN_INITIALIZED:
            return self.init_campaign(
                p["goal"], p["fundraise_duration"], p["vote_duration"],
                p["theme"], p["escrow"], p["distributor"],
            )
        if kind == EventKind.CONTRIBUTION_RECORDED:
            return self.contribute(p["contributor_id"], p["amount"])
        if kind == EventKind.PROPOSAL_COMMITTED:
            result = self.submit_proposal_hash(p["hash"], p["budget"], p["submitter_id"])
            if result.value != p["proposal_id"]:
                return OperationResult(
                    success=False,
                    errors=[f"proposal id {result.value} != recorded {p['proposal_id']}"],
                )
            return result
        if kind == EventKind.PROPOSAL_REVEALED:
            return self.reveal_proposal(p["proposal_id"], p["description"])
        if kind == EventKind.VOTE_CAST:
            return self.cast_vote(p["proposal_id"], p["weight"])
        if kind == EventKind.ESCROW_UPDATED:
            return self.update_escrow(p["escrow"])
        if kind == EventKind.DISTRIBUTOR_UPDATED:
            return self.update_distributor(p["distributor"])
        return OperationResult(success=False, errors=[f"Unknown event kind: {kind}"])
