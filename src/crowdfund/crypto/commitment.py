"""Proposal commitments: hashing helpers for commit-reveal.

The registry stores whatever hash a proposer submits and never checks a
reveal against it. These helpers give proposers and reviewers one
canonical way to build a commitment and to check a revealed proposal.

Format: "sha256:" + hex digest of the canonical JSON of
{"description": ..., "salt": ...}.
"""

from __future__ import annotations

import hashlib
import json

from crowdfund.models.campaign import Proposal


def proposal_commitment(description: str, salt: str = "") -> str:
    """Deterministic commitment over a description and optional salt."""
    canonical = json.dumps(
        {"description": description, "salt": salt},
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


def matches_commitment(proposal: Proposal, salt: str = "") -> bool:
    """True iff the proposal is revealed and its description hashes to its commitment."""
    if not proposal.revealed or proposal.description is None:
        return False
    return proposal_commitment(proposal.description, salt) == proposal.hash
