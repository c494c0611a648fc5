"""Build configuration read from the environment."""

from __future__ import annotations

import os
import platform
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from litebind.errors import ValidationError
from litebind.models import DEFAULT_PARALLELISM, BuildTarget
from litebind.policy import Policy
from litebind.toolchain import Toolchain

OUT_DIR_VARS = ("LITEBIND_OUT_DIR", "OUT_DIR")
TARGET_OS_VAR = "LITEBIND_TARGET_OS"
TARGET_ARCH_VAR = "LITEBIND_TARGET_ARCH"
PARALLELISM_VAR = "LITEBIND_MAKE_PARALLELISM"
DEBUG_VAR = "LITEBIND_DEBUG_TFLITE"
OFFLINE_VAR = "LITEBIND_OFFLINE"
LIBCLANG_VAR = "LITEBIND_LIBCLANG"

_ARCH_ALIASES = {"amd64": "x86_64", "x64": "x86_64", "arm64": "aarch64"}
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class BuildConfig:
    out_dir: Path
    target_os: str
    target_arch: str
    parallelism: int = DEFAULT_PARALLELISM
    debug: bool = False
    offline: bool = False
    cxx: str = "c++"
    libclang: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> BuildConfig:
        env = os.environ if env is None else env
        out_dir = next((env[name] for name in OUT_DIR_VARS if env.get(name)), None)
        if out_dir is None:
            raise ValidationError(
                "No build-output directory configured.",
                hint=f"Set {OUT_DIR_VARS[0]} or pass --out-dir.",
                context={"operation": "config"},
            )
        return cls(
            out_dir=Path(out_dir),
            target_os=env.get(TARGET_OS_VAR) or host_os(),
            target_arch=normalize_arch(env.get(TARGET_ARCH_VAR) or platform.machine()),
            parallelism=parse_parallelism(env.get(PARALLELISM_VAR)),
            debug=parse_flag(env.get(DEBUG_VAR)),
            offline=parse_flag(env.get(OFFLINE_VAR)),
            cxx=env.get("CXX") or "c++",
            libclang=env.get(LIBCLANG_VAR) or None,
        )

    def target(self) -> BuildTarget:
        return BuildTarget(os=self.target_os, arch=self.target_arch, parallelism=self.parallelism)

    def policy(self) -> Policy:
        return Policy(network_mode="offline" if self.offline else "online")

    def toolchain(self) -> Toolchain:
        return Toolchain(cxx=self.cxx, libclang=self.libclang)


def host_os() -> str:
    return platform.system().lower()


def normalize_arch(arch: str) -> str:
    arch = arch.lower()
    return _ARCH_ALIASES.get(arch, arch)


def parse_parallelism(raw: str | None) -> int:
    if raw is None or raw == "":
        return DEFAULT_PARALLELISM
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(
            "Make parallelism must be an integer.",
            context={"operation": "config", "variable": PARALLELISM_VAR, "value": raw},
        ) from exc
    if value < 1:
        raise ValidationError(
            "Make parallelism must be at least 1.",
            context={"operation": "config", "variable": PARALLELISM_VAR, "value": raw},
        )
    return value


def parse_flag(raw: str | None) -> bool:
    return raw is not None and raw.strip().lower() in _TRUTHY
