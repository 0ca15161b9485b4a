"""Cryptographic helpers: proposal commitments."""

from crowdfund.crypto.commitment import matches_commitment, proposal_commitment

__all__ = ["matches_commitment", "proposal_commitment"]
