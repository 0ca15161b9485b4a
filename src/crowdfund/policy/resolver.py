"""Policy resolver: loads campaign policy from the config directory.

The policy is an executable artifact: engines never hard-code the
principal prefix or the default creator, they ask the resolver.
Fail-closed: a missing file or key is a load-time error, never a
silent default.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


POLICY_FILENAME = "campaign_policy.json"


class PolicyResolver:
    """Resolves campaign policy values.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        resolver.principal_prefix()  # "ST"
    """

    def __init__(self, policy: dict[str, Any]) -> None:
        self._policy = policy
        self._validate()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load policy from ``campaign_policy.json`` in config_dir."""
        path = Path(config_dir) / POLICY_FILENAME
        if not path.exists():
            raise ValueError(f"Policy file not found: {path}")
        with path.open("r", encoding="utf-8") as handle:
            return cls(json.load(handle))

    def principal_prefix(self) -> str:
        return self._policy["principal"]["prefix"]

    def default_creator(self) -> str:
        return self._policy["campaign"]["default_creator"]

    def _validate(self) -> None:
        try:
            prefix = self._policy["principal"]["prefix"]
            creator = self._policy["campaign"]["default_creator"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Campaign policy missing required key: {e}") from e
        if not isinstance(prefix, str) or not prefix:
            raise ValueError("principal.prefix must be a non-empty string")
        if not isinstance(creator, str) or not creator:
            raise ValueError("campaign.default_creator must be a non-empty string")
