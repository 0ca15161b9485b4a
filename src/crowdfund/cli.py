"""Crowdfund CLI: command-line interface for a campaign.

State is the audit log in <data>/events.jsonl; every invocation
rebuilds the campaign by replay, runs one operation, and appends the
resulting event. The host supplies the block height with --height.

Usage:
    python -m crowdfund.cli status
    python -m crowdfund.cli init-campaign --goal 1000000 --fundraise-duration 3600 \\
        --vote-duration 3600 --theme "Health" --escrow ST1ESCROW --distributor ST1DIST
    python -m crowdfund.cli contribute --caller ST1ALICE --amount 500000 --height 10
    python -m crowdfund.cli submit-proposal --caller ST1BOB --budget 500000 --description "Clinic"
    python -m crowdfund.cli reveal-proposal --id 0 --description "Clinic"
    python -m crowdfund.cli vote --id 0 --weight 10 --height 3700
    python -m crowdfund.cli check-invariants

Environment (also read from .env):
    CROWDFUND_CONFIG_DIR, CROWDFUND_DATA_DIR, CROWDFUND_CREATOR
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from crowdfund.clock import ManualClock
from crowdfund.crypto.commitment import proposal_commitment
from crowdfund.persistence.event_log import EventLog
from crowdfund.policy.resolver import PolicyResolver
from crowdfund.service import CampaignService, OperationResult


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_DATA = ROOT / "data"


def _make_service(args: argparse.Namespace) -> CampaignService:
    """Rebuild the campaign from the data directory at the requested height."""
    data_dir: Path = args.data
    data_dir.mkdir(parents=True, exist_ok=True)
    resolver = PolicyResolver.from_config_dir(args.config)
    event_log = EventLog(storage_path=data_dir / "events.jsonl")
    clock = ManualClock(event_log.last_height or 0)
    height = getattr(args, "height", None)
    if height is not None:
        clock.set_height(height)
    return CampaignService.from_event_log(
        resolver, event_log, clock, creator=args.creator,
    )


def _report(result: OperationResult, message: str) -> int:
    if result.success:
        print(message)
        return 0
    print(
        f"Failed [{int(result.error_code)} {result.error_code.name}]: "
        f"{'; '.join(result.errors)}",
        file=sys.stderr,
    )
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_init_campaign(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.init_campaign(
        goal=args.goal,
        fundraise_duration=args.fundraise_duration,
        vote_duration=args.vote_duration,
        theme=args.theme,
        escrow=args.escrow,
        distributor=args.distributor,
    )
    return _report(result, f"Initialized campaign (phase: {service.phase().value})")


def cmd_contribute(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.contribute(args.caller, args.amount)
    return _report(
        result,
        f"Contributed {args.amount} (total for {args.caller}: "
        f"{service.get_contribution(args.caller)})",
    )


def cmd_contribution(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(service.get_contribution(args.caller))
    return 0


def cmd_submit_proposal(args: argparse.Namespace) -> int:
    if args.hash is None and args.description is None:
        print("Failed: one of --hash or --description is required", file=sys.stderr)
        return 1
    proposal_hash = args.hash or proposal_commitment(args.description, args.salt)
    service = _make_service(args)
    result = service.submit_proposal_hash(proposal_hash, args.budget, args.caller)
    return _report(result, f"Submitted proposal {result.value} ({proposal_hash})")


def cmd_reveal_proposal(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.reveal_proposal(args.id, args.description, caller_id=args.caller)
    matched = service.proposal_matches_commitment(args.id, args.salt)
    return _report(
        result,
        f"Revealed proposal {args.id} (matches commitment: {str(matched).lower()})",
    )


def cmd_vote(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.cast_vote(args.id, args.weight, caller_id=args.caller)
    return _report(
        result,
        f"Voted {args.weight} on proposal {args.id} "
        f"(tally: {service.get_proposal_vote_count(args.id)})",
    )


def cmd_votes(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(service.get_proposal_vote_count(args.id))
    return 0


def cmd_update_escrow(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.update_escrow(args.principal, caller_id=args.caller)
    return _report(result, f"Escrow set to {args.principal}")


def cmd_update_distributor(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.update_distributor(args.principal, caller_id=args.caller)
    return _report(result, f"Distributor set to {args.principal}")


def cmd_commitment(args: argparse.Namespace) -> int:
    print(proposal_commitment(args.description, args.salt))
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Run campaign invariant checks against the replayed state."""
    service = _make_service(args)
    errors = service.check_invariants()
    if errors:
        for error in errors:
            print(f"FAIL: {error}", file=sys.stderr)
        return 1
    print("All campaign invariants hold.")
    return 0


def _add_height(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--height", type=int,
        help="Current block height (default: last recorded height)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crowdfund",
        description="Crowdfund campaign core CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(os.getenv("CROWDFUND_CONFIG_DIR", DEFAULT_CONFIG)),
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=Path(os.getenv("CROWDFUND_DATA_DIR", DEFAULT_DATA)),
        help="Path to data directory holding events.jsonl (default: data/)",
    )
    parser.add_argument(
        "--creator",
        default=os.getenv("CROWDFUND_CREATOR"),
        help="Campaign creator principal (default: policy default_creator)",
    )
    sub = parser.add_subparsers(dest="command")

    # status
    p_status = sub.add_parser("status", help="Show campaign status")
    _add_height(p_status)

    # init-campaign
    p_init = sub.add_parser("init-campaign", help="Initialize the campaign (once)")
    p_init.add_argument("--goal", type=int, required=True, help="Funding goal")
    p_init.add_argument("--fundraise-duration", type=int, required=True, help="Fundraising window (blocks)")
    p_init.add_argument("--vote-duration", type=int, required=True, help="Voting window (blocks)")
    p_init.add_argument("--theme", default="", help="Campaign theme")
    p_init.add_argument("--escrow", required=True, help="Escrow principal")
    p_init.add_argument("--distributor", required=True, help="Distributor principal")
    _add_height(p_init)

    # contribute
    p_contrib = sub.add_parser("contribute", help="Record a contribution")
    p_contrib.add_argument("--caller", required=True, help="Contributor principal")
    p_contrib.add_argument("--amount", type=int, required=True, help="Amount")
    _add_height(p_contrib)

    # contribution
    p_get = sub.add_parser("contribution", help="Show a contributor's total")
    p_get.add_argument("--caller", required=True, help="Contributor principal")

    # submit-proposal
    p_submit = sub.add_parser("submit-proposal", help="Commit to a proposal")
    p_submit.add_argument("--caller", required=True, help="Submitter principal")
    p_submit.add_argument("--budget", type=int, required=True, help="Requested budget")
    p_submit.add_argument("--hash", help="Precomputed commitment hash")
    p_submit.add_argument("--description", help="Description to commit to (hashed locally)")
    p_submit.add_argument("--salt", default="", help="Commitment salt")
    _add_height(p_submit)

    # reveal-proposal
    p_reveal = sub.add_parser("reveal-proposal", help="Reveal a proposal")
    p_reveal.add_argument("--id", type=int, required=True, help="Proposal ID")
    p_reveal.add_argument("--description", required=True, help="Proposal description")
    p_reveal.add_argument("--salt", default="", help="Commitment salt")
    p_reveal.add_argument("--caller", help="Caller principal (audit only)")
    _add_height(p_reveal)

    # vote
    p_vote = sub.add_parser("vote", help="Cast a weighted vote")
    p_vote.add_argument("--id", type=int, required=True, help="Proposal ID")
    p_vote.add_argument("--weight", type=int, required=True, help="Vote weight")
    p_vote.add_argument("--caller", help="Caller principal (audit only)")
    _add_height(p_vote)

    # votes
    p_votes = sub.add_parser("votes", help="Show a proposal's vote tally")
    p_votes.add_argument("--id", type=int, required=True, help="Proposal ID")

    # update-escrow / update-distributor
    for name, label in (("update-escrow", "escrow"), ("update-distributor", "distributor")):
        p_upd = sub.add_parser(name, help=f"Replace the {label} principal")
        p_upd.add_argument("--principal", required=True, help=f"New {label} principal")
        p_upd.add_argument("--caller", help="Caller principal (audit only)")
        _add_height(p_upd)

    # commitment
    p_commit = sub.add_parser("commitment", help="Compute a proposal commitment hash")
    p_commit.add_argument("--description", required=True, help="Proposal description")
    p_commit.add_argument("--salt", default="", help="Commitment salt")

    # check-invariants
    sub.add_parser("check-invariants", help="Run campaign invariant checks")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv(ROOT / ".env")
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "init-campaign": cmd_init_campaign,
        "contribute": cmd_contribute,
        "contribution": cmd_contribution,
        "submit-proposal": cmd_submit_proposal,
        "reveal-proposal": cmd_reveal_proposal,
        "vote": cmd_vote,
        "votes": cmd_votes,
        "update-escrow": cmd_update_escrow,
        "update-distributor": cmd_update_distributor,
        "commitment": cmd_commitment,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except ValueError as e:
        # Backwards clock, or an unreadable log or policy file
        print(f"Failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
