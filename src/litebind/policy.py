"""Policy configuration and enforcement helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from litebind.errors import PolicyError, ValidationError

NetworkMode = Literal["online", "offline"]


@dataclass(frozen=True, slots=True)
class Policy:
    require_integrity: bool = True
    network_mode: NetworkMode = "online"


def ensure_network_allowed(*, policy: Policy, operation: str) -> None:
    if policy.network_mode == "offline":
        raise PolicyError(
            "Network operations are disabled by policy.",
            hint="Switch policy.network_mode to 'online' or pre-populate the build cache.",
            context={"operation": operation},
        )


def ensure_integrity_required(*, policy: Policy, operation: str) -> None:
    if not policy.require_integrity:
        raise ValidationError(
            "Pinned releases are always hash-verified.",
            hint="Remove require_integrity=False from the policy.",
            context={"operation": operation},
        )
