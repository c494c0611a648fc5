"""Cache key derivation."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class CacheInput:
    stage: str
    version: str
    source_hash: str
    target: str = ""
    fingerprints: tuple[str, ...] = ()
    flags: tuple[str, ...] = ()


def cache_key(inputs: CacheInput) -> str:
    canonical = json.dumps(_to_payload(inputs), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def fingerprint(*parts: str | bytes) -> str:
    """Stable digest over an ordered sequence of text or byte chunks."""
    digest = hashlib.sha256()
    for part in parts:
        chunk = part.encode("utf-8") if isinstance(part, str) else part
        digest.update(len(chunk).to_bytes(8, "big"))
        digest.update(chunk)
    return digest.hexdigest()


def _to_payload(inputs: CacheInput) -> dict[str, Any]:
    return {
        "stage": inputs.stage,
        "version": inputs.version,
        "source_hash": inputs.source_hash,
        "target": inputs.target,
        "fingerprints": list(inputs.fingerprints),
        "flags": list(inputs.flags),
    }
