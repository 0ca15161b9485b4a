"""Campaign policy configuration."""

from crowdfund.policy.resolver import PolicyResolver

__all__ = ["PolicyResolver"]
