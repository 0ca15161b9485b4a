"""Tests for CampaignService: proves the facade enforces the campaign lifecycle."""

import logging
import threading
import pytest
from pathlib import Path

from crowdfund.clock import ManualClock
from crowdfund.crypto.commitment import proposal_commitment
from crowdfund.models.campaign import CampaignPhase, ErrorCode
from crowdfund.persistence.event_log import EventKind, EventLog, EventRecord
from crowdfund.policy.resolver import PolicyResolver
from crowdfund.service import CampaignService, OperationResult


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"

PRINCIPAL = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def service(resolver: PolicyResolver, clock: ManualClock) -> CampaignService:
    return CampaignService(resolver, clock)


def _init(service: CampaignService) -> OperationResult:
    return service.init_campaign(
        1_000_000, 3600, 3600, "Health campaign", PRINCIPAL, PRINCIPAL,
    )


class TestInitCampaign:
    def test_valid_params(self, service: CampaignService) -> None:
        result = _init(service)
        assert result == OperationResult(success=True, value=True)
        assert service.campaign.goal_amount == 1_000_000

    def test_start_time_is_current_height(self, service, clock) -> None:
        clock.advance(250)
        _init(service)
        assert service.campaign.start_time == 250

    def test_default_creator_from_policy(self, service) -> None:
        assert service.campaign.creator == "ST1CREATOR"

    def test_explicit_creator(self, resolver, clock) -> None:
        service = CampaignService(resolver, clock, creator="ST1OWNER")
        _init(service)
        assert service.campaign.creator == "ST1OWNER"

    def test_one_shot(self, service, clock) -> None:
        _init(service)
        before = service.campaign
        clock.advance(10)
        result = service.init_campaign(5, 1, 1, "Other", "ST1A", "ST1B")
        assert not result.success
        assert result.error_code == ErrorCode.CAMPAIGN_ALREADY_INITIALIZED
        assert service.campaign == before

    def test_validation_ordering(self, service) -> None:
        result = service.init_campaign(0, -1, -1, "x", "bad", "bad")
        assert result.error_code == ErrorCode.INVALID_GOAL
        assert result.errors
        assert not service.campaign.is_initialized

    def test_error_codes_are_stable_numbers(self, service) -> None:
        assert int(service.init_campaign(1, 0, 1, "", PRINCIPAL, PRINCIPAL).error_code) == 109
        assert int(service.init_campaign(1, 1, 1, "", "bad", PRINCIPAL).error_code) == 110
        assert int(service.init_campaign(1, 1, 1, "", PRINCIPAL, "bad").error_code) == 111

    def test_wrong_types_raise(self, service) -> None:
        with pytest.raises(TypeError):
            service.init_campaign("1000", 1, 1, "", PRINCIPAL, PRINCIPAL)
        with pytest.raises(TypeError):
            service.init_campaign(1000, 1, 1, "", None, PRINCIPAL)
        assert not service.campaign.is_initialized


class TestContribute:
    def test_contribution_recorded(self, service) -> None:
        _init(service)
        result = service.contribute("STX-ADDR", 500_000)
        assert result == OperationResult(success=True, value=True)
        assert service.get_contribution("STX-ADDR") == 500_000

    def test_sum_of_contributions(self, service) -> None:
        amounts = [3, 5, 8, 13]
        for amount in amounts:
            service.contribute("ST1ALICE", amount)
        assert service.get_contribution("ST1ALICE") == sum(amounts)

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_rejected(self, service, amount: int) -> None:
        _init(service)
        service.contribute("ST1ALICE", 7)
        result = service.contribute("ST1ALICE", amount)
        assert not result.success
        assert result.error_code == ErrorCode.INVALID_AMOUNT
        assert int(result.error_code) == 200
        assert service.get_contribution("ST1ALICE") == 7

    def test_accepted_after_fundraising_window(self, service, clock) -> None:
        _init(service)
        clock.advance(10_000)
        assert service.contribute("ST1ALICE", 1).success

    def test_unknown_identity_reads_zero(self, service) -> None:
        assert service.get_contribution("ST1NOBODY") == 0

    def test_bool_amount_is_a_type_error(self, service) -> None:
        with pytest.raises(TypeError):
            service.contribute("ST1ALICE", True)


class TestProposals:
    def test_sequential_ids(self, service) -> None:
        _init(service)
        ids = [service.submit_proposal_hash("h", 500_000, "ST1BOB").value for _ in range(3)]
        assert ids == [0, 1, 2]

    def test_first_submission_returns_zero(self, service) -> None:
        _init(service)
        assert service.submit_proposal_hash("abc123hash", 500_000, "ST1BOB") == OperationResult(
            success=True, value=0,
        )

    def test_reveal_lifecycle(self, service) -> None:
        service.submit_proposal_hash("h", 1, "ST1BOB")
        assert service.get_proposal(0).revealed is False
        assert service.reveal_proposal(0, "Clinic").success
        proposal = service.get_proposal(0)
        assert proposal.revealed is True
        assert proposal.description == "Clinic"

    def test_reveal_unknown(self, service) -> None:
        result = service.reveal_proposal(5, "nothing")
        assert result.error_code == ErrorCode.PROPOSAL_NOT_FOUND

    def test_re_reveal_overwrites(self, service) -> None:
        service.submit_proposal_hash("h", 1, "ST1BOB")
        service.reveal_proposal(0, "first")
        assert service.reveal_proposal(0, "second").success
        assert service.get_proposal(0).description == "second"

    def test_get_proposal_returns_copy(self, service) -> None:
        service.submit_proposal_hash("h", 1, "ST1BOB")
        copy = service.get_proposal(0)
        copy.description = "tampered"
        assert service.get_proposal(0).description is None
        assert service.get_proposal(9) is None

    def test_commitment_check(self, service) -> None:
        service.submit_proposal_hash(proposal_commitment("Clinic", "pepper"), 1, "ST1BOB")
        assert not service.proposal_matches_commitment(0, "pepper")
        service.reveal_proposal(0, "Clinic")
        assert service.proposal_matches_commitment(0, "pepper")
        assert not service.proposal_matches_commitment(0)
        assert not service.proposal_matches_commitment(3)

    def test_negative_budget_is_stored(self, service) -> None:
        result = service.submit_proposal_hash("h", -1, "ST1BOB")
        assert result.success
        assert result.value == 0
        assert service.get_proposal(0).budget == -1
        assert service.submit_proposal_hash("h2", 5, "ST1BOB").value == 1

    def test_budget_must_be_an_int(self, service) -> None:
        with pytest.raises(TypeError):
            service.submit_proposal_hash("h", "100", "ST1BOB")
        assert service.campaign.next_id == 0


class TestVoting:
    def test_rejected_during_fundraising(self, service) -> None:
        _init(service)
        service.submit_proposal_hash("abc123hash", 500_000, "ST1BOB")
        result = service.cast_vote(0, 10)
        assert not result.success
        assert result.error_code == ErrorCode.CAMPAIGN_NOT_STARTED
        assert int(result.error_code) == 100

    def test_allowed_during_vote_phase(self, service, clock) -> None:
        _init(service)
        service.submit_proposal_hash("abc123hash", 500_000, "ST1BOB")
        clock.advance(3700)
        assert service.cast_vote(0, 10) == OperationResult(success=True, value=True)
        assert service.get_proposal_vote_count(0) == 10

    def test_unknown_proposal(self, service, clock) -> None:
        _init(service)
        clock.advance(3700)
        result = service.cast_vote(99, 10)
        assert result.error_code == ErrorCode.PROPOSAL_NOT_FOUND
        assert int(result.error_code) == 106

    def test_uninitialized_campaign(self, service, clock) -> None:
        service.submit_proposal_hash("h", 1, "ST1BOB")
        clock.advance(10_000)
        assert service.cast_vote(0, 1).error_code == ErrorCode.CAMPAIGN_NOT_STARTED

    def test_unknown_count_is_zero(self, service) -> None:
        assert service.get_proposal_vote_count(42) == 0

    def test_negative_weight_is_a_contract_violation(self, service, clock) -> None:
        _init(service)
        service.submit_proposal_hash("h", 1, "ST1BOB")
        clock.advance(3700)
        with pytest.raises(ValueError):
            service.cast_vote(0, -3)
        assert service.get_proposal_vote_count(0) == 0


class TestPrincipals:
    def test_invalid_escrow_update(self, service) -> None:
        _init(service)
        result = service.update_escrow("not-a-principal")
        assert result.error_code == ErrorCode.INVALID_ESCROW
        assert service.escrow == PRINCIPAL

    def test_invalid_distributor_update(self, service) -> None:
        _init(service)
        result = service.update_distributor("not-a-principal")
        assert result.error_code == ErrorCode.INVALID_DISTRIBUTOR
        assert service.distributor == PRINCIPAL

    def test_valid_updates_visible_immediately(self, service) -> None:
        _init(service)
        assert service.update_escrow("ST2ESCROW").success
        assert service.update_distributor("ST2DIST").success
        assert service.escrow == "ST2ESCROW"
        assert service.distributor == "ST2DIST"
        assert service.status()["escrow"] == "ST2ESCROW"


class TestStatus:
    def test_phase_progression(self, service, clock) -> None:
        assert service.phase() == CampaignPhase.PRE_START
        _init(service)
        assert service.phase() == CampaignPhase.FUNDRAISING
        clock.advance(3600)
        assert service.phase() == CampaignPhase.VOTING

    def test_status_summary(self, service, clock) -> None:
        clock.advance(100)
        _init(service)
        service.contribute("ST1ALICE", 400_000)
        service.contribute("ST1BOB", 600_000)
        service.submit_proposal_hash("h", 1, "ST1BOB")
        service.reveal_proposal(0, "desc")
        service.submit_proposal_hash("h2", 1, "ST1BOB")
        status = service.status()
        assert status["initialized"] is True
        assert status["phase"] == "fundraising"
        assert status["total_raised"] == 1_000_000
        assert status["goal_reached"] is True
        assert status["contributors"] == 2
        assert status["proposals"] == {"total": 2, "revealed": 1, "unrevealed": 1}
        assert status["voting_opens_at"] == 3700
        assert status["nominal_vote_end"] == 7300
        assert status["blocks_until_voting"] == 3600
        assert status["is_canceled"] is False

    def test_invariants_hold_through_lifecycle(self, service, clock) -> None:
        assert service.check_invariants() == []
        _init(service)
        service.contribute("ST1ALICE", 10)
        service.submit_proposal_hash("h", 1, "ST1BOB")
        service.reveal_proposal(0, "d")
        clock.advance(3600)
        service.cast_vote(0, 4)
        service.update_escrow("ST9ESCROW")
        assert service.check_invariants() == []

    def test_campaign_property_is_a_copy(self, service) -> None:
        snapshot = service.campaign
        snapshot.contributions["ST1ALICE"] = 999
        assert service.get_contribution("ST1ALICE") == 0


class TestAuditTrail:
    def test_successes_are_logged(self, resolver, clock) -> None:
        log = EventLog()
        service = CampaignService(resolver, clock, event_log=log)
        _init(service)
        service.contribute("ST1ALICE", 10)
        service.submit_proposal_hash("h", 1, "ST1BOB")
        service.reveal_proposal(0, "d", caller_id="ST1BOB")
        clock.advance(3600)
        service.cast_vote(0, 2, caller_id="ST1ALICE")
        service.update_escrow("ST2ESCROW")
        service.update_distributor("ST2DIST")
        kinds = [e.event_kind for e in log.events()]
        assert kinds == [
            EventKind.CAMPAIGN_INITIALIZED,
            EventKind.CONTRIBUTION_RECORDED,
            EventKind.PROPOSAL_COMMITTED,
            EventKind.PROPOSAL_REVEALED,
            EventKind.VOTE_CAST,
            EventKind.ESCROW_UPDATED,
            EventKind.DISTRIBUTOR_UPDATED,
        ]
        assert [e.event_id for e in log.events()][:2] == ["EVT-00000001", "EVT-00000002"]
        vote = log.events(EventKind.VOTE_CAST)[0]
        assert vote.actor_id == "ST1ALICE"
        assert vote.height == 3600
        assert log.events(EventKind.CAMPAIGN_INITIALIZED)[0].actor_id == "ST1CREATOR"

    def test_failures_are_not_logged(self, resolver, clock) -> None:
        log = EventLog()
        service = CampaignService(resolver, clock, event_log=log)
        service.contribute("ST1ALICE", 0)
        service.reveal_proposal(3, "x")
        service.update_escrow("bad")
        service.cast_vote(0, 1)
        assert log.count == 0

    def test_failures_logged_at_debug(self, service, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="crowdfund.service"):
            service.contribute("ST1ALICE", 0)
        assert "contribute rejected" in caplog.text
        assert "INVALID_AMOUNT" in caplog.text

    def test_failed_append_leaves_state_unchanged(self, resolver, clock) -> None:
        log = EventLog()
        service = CampaignService(resolver, clock, event_log=log)
        service.contribute("ST1ALICE", 10)
        # Force the next generated id to collide with the first event
        service._event_counter = 0
        with pytest.raises(ValueError, match="Duplicate"):
            service.contribute("ST1ALICE", 5)
        assert service.get_contribution("ST1ALICE") == 10


class TestReplay:
    def _record_history(self, resolver, clock, log) -> CampaignService:
        service = CampaignService(resolver, clock, event_log=log)
        clock.advance(10)
        _init(service)
        service.contribute("ST1ALICE", 300)
        service.contribute("ST1ALICE", 200)
        service.submit_proposal_hash("h0", 50, "ST1BOB")
        service.submit_proposal_hash("h1", 70, "ST1CAROL")
        service.reveal_proposal(1, "School")
        clock.advance(3600)
        service.cast_vote(1, 9)
        service.update_escrow("ST2ESCROW")
        return service

    def test_replay_rebuilds_state(self, resolver, clock) -> None:
        log = EventLog()
        original = self._record_history(resolver, clock, log)
        rebuilt = CampaignService.from_event_log(resolver, log, ManualClock(clock()))
        assert rebuilt.campaign == original.campaign
        assert rebuilt.check_invariants() == []

    def test_replay_from_file(self, resolver, clock, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        original = self._record_history(resolver, clock, EventLog(storage_path=path))
        rebuilt = CampaignService.from_event_log(
            resolver, EventLog(storage_path=path), ManualClock(clock()),
        )
        assert rebuilt.campaign == original.campaign

    def test_replayed_service_keeps_logging(self, resolver, clock) -> None:
        log = EventLog()
        self._record_history(resolver, clock, log)
        count = log.count
        rebuilt = CampaignService.from_event_log(resolver, log, ManualClock(clock()))
        assert rebuilt.contribute("ST1DAVE", 1).success
        assert log.count == count + 1
        assert log.last_event.event_id == f"EVT-{count + 1:08d}"

    def test_replay_rejects_invalid_history(self, resolver, clock) -> None:
        log = EventLog()
        service = CampaignService(resolver, clock, event_log=log)
        service.submit_proposal_hash("h", 1, "ST1BOB")
        # Forged: a vote recorded while fundraising was still open
        log.append(EventRecord.create(
            "EVT-00000099", EventKind.VOTE_CAST, "system",
            {"height": 0, "proposal_id": 0, "weight": 1},
        ))
        with pytest.raises(ValueError, match="Replay failed"):
            CampaignService.from_event_log(resolver, log, ManualClock())

    def test_replay_rejects_malformed_payload(self, resolver) -> None:
        log = EventLog()
        log.append(EventRecord.create(
            "EVT-00000001", EventKind.CONTRIBUTION_RECORDED, "ST1ALICE",
            {"height": 0, "amount": 5},
        ))
        with pytest.raises(ValueError, match="Malformed event EVT-00000001"):
            CampaignService.from_event_log(resolver, log, ManualClock())

    def test_replay_rejects_mistyped_payload(self, resolver) -> None:
        log = EventLog()
        log.append(EventRecord.create(
            "EVT-00000001", EventKind.CONTRIBUTION_RECORDED, "ST1ALICE",
            {"height": 0, "contributor_id": "ST1ALICE", "amount": "5"},
        ))
        with pytest.raises(ValueError, match="Malformed event"):
            CampaignService.from_event_log(resolver, log, ManualClock())


class TestConcurrency:
    THREADS = 8
    CALLS = 50

    def test_concurrent_callers_are_serialized(self, resolver, clock) -> None:
        log = EventLog()
        service = CampaignService(resolver, clock, event_log=log)
        _init(service)
        service.submit_proposal_hash("h", 1, "ST1BOB")
        clock.advance(3600)
        barrier = threading.Barrier(self.THREADS)
        failures: list[OperationResult] = []

        def worker() -> None:
            barrier.wait()
            for _ in range(self.CALLS):
                for result in (
                    service.contribute("ST1A", 1),
                    service.cast_vote(0, 1, caller_id="ST1A"),
                ):
                    if not result.success:
                        failures.append(result)

        threads = [threading.Thread(target=worker) for _ in range(self.THREADS)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        total = self.THREADS * self.CALLS
        assert failures == []
        assert service.get_contribution("ST1A") == total
        assert service.get_proposal_vote_count(0) == total
        assert service.check_invariants() == []
        ids = [e.event_id for e in log.events()]
        assert ids == [f"EVT-{n:08d}" for n in range(1, 2 * total + 3)]
