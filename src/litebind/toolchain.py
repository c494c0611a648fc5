"""Compiler settings shared by the binding parser and the shim compiler.

Both consumers must see the same language standard, defines and include
paths; a mismatch produces bindings whose layout differs from the compiled
code, which only shows up as memory corruption at call time.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from litebind.cache import fingerprint
from litebind.models import WorkingTree


@dataclass(frozen=True, slots=True)
class Toolchain:
    cxx: str = "c++"
    libclang: str | None = None
    std: str = "c++11"
    defines: tuple[str, ...] = ("GEMMLOWP_ALLOW_SLOW_SCALAR_FALLBACK",)

    def include_dirs(self, tree: WorkingTree) -> tuple[Path, ...]:
        return (tree.root, tree.flatbuffers_include)

    def common_flags(self, tree: WorkingTree) -> list[str]:
        flags = [f"-std={self.std}"]
        flags.extend(f"-D{define}" for define in self.defines)
        flags.extend(f"-I{path}" for path in self.include_dirs(tree))
        return flags

    def parser_args(self, tree: WorkingTree) -> list[str]:
        # -fms-extensions works around a flatbuffers issue when cross-compiling to aarch64
        return ["-x", "c++", *self.common_flags(tree), "-fms-extensions"]

    def fingerprint(self) -> str:
        return fingerprint(self.std, *self.defines)
