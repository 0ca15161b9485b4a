"""Principal registry: mutable escrow and distributor references.

Validation is purely syntactic: a principal is any string that starts
with the chain's address prefix. No cryptographic verification happens
here.

There is no authorization check: any caller may update either
reference. This mirrors the reference system and is not a defect to
fix silently; access control is a scope extension.
"""

from __future__ import annotations

from typing import Any, Optional

from crowdfund.models.campaign import Campaign, CampaignError, ErrorCode
from crowdfund.policy.resolver import PolicyResolver


def is_valid_principal(value: Any, prefix: str) -> bool:
    """Syntactic principal predicate: a string carrying the address prefix."""
    return isinstance(value, str) and value.startswith(prefix)


class PrincipalRegistry:
    """Validates and applies escrow / distributor updates.

    Fails without mutation when the new value is not a principal.
    """

    def __init__(self, resolver: PolicyResolver) -> None:
        self._resolver = resolver

    def is_valid(self, value: Any) -> bool:
        return is_valid_principal(value, self._resolver.principal_prefix())

    def validate_escrow(self, principal: Any) -> None:
        if not self.is_valid(principal):
            raise CampaignError(
                ErrorCode.INVALID_ESCROW,
                f"Invalid escrow principal: {principal!r}",
            )

    def validate_distributor(self, principal: Any) -> None:
        if not self.is_valid(principal):
            raise CampaignError(
                ErrorCode.INVALID_DISTRIBUTOR,
                f"Invalid distributor principal: {principal!r}",
            )

    def update_escrow(self, campaign: Campaign, principal: str) -> Optional[str]:
        """Replace the escrow reference. Returns the previous value."""
        self.validate_escrow(principal)
        previous = campaign.escrow
        campaign.escrow = principal
        return previous

    def update_distributor(self, campaign: Campaign, principal: str) -> Optional[str]:
        """Replace the distributor reference. Returns the previous value."""
        self.validate_distributor(principal)
        previous = campaign.distributor
        campaign.distributor = principal
        return previous
