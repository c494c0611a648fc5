"""Typed interfaces for native library builders."""

from __future__ import annotations

from typing import Protocol

from litebind.cache import BuildCache
from litebind.models import BuildTarget, NativeArtifact, WorkingTree


class Builder(Protocol):
    def build(self, tree: WorkingTree, target: BuildTarget, *, cache: BuildCache) -> NativeArtifact:
        """Compile the working tree for *target* and return the stable artifact."""
