"""Target-specific patching of a freshly extracted source tree."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path

from litebind.cache import fingerprint
from litebind.errors import ExternalToolError, PatchError
from litebind.models import LITE_DIR, MAKE_DIR, BuildTarget, WorkingTree
from litebind.observability import StructuredLogger
from litebind.tools import CommandRunner, require_success


@dataclass(frozen=True, slots=True)
class FileOverride:
    """Replace *destination* with a packaged data file when the target matches."""

    resource: str
    destination: str
    os: str | None = None
    arch: str | None = None

    def applies_to(self, target: BuildTarget) -> bool:
        if self.os is not None and target.os != self.os:
            return False
        if self.arch is not None and target.arch != self.arch:
            return False
        return True


@dataclass(frozen=True, slots=True)
class FlagOverride:
    """Rewrite one variable assignment at a known line of a makefile.

    ``versions`` lists the pinned versions whose makefile has been checked to
    carry the assignment at ``line``.
    """

    path: str
    variable: str
    value: str
    line: int
    versions: tuple[str, ...]

    def render(self) -> str:
        return f"{self.variable} := {self.value}\n"


@dataclass(frozen=True, slots=True)
class PatchSet:
    dependency_script: str
    overrides: tuple[FileOverride, ...] = ()
    removals: tuple[str, ...] = ()
    debug_flags: tuple[FlagOverride, ...] = field(default=())

    def select(self, target: BuildTarget) -> tuple[FileOverride, ...]:
        return tuple(item for item in self.overrides if item.applies_to(target))

    def fingerprint(self, target: BuildTarget, *, debug: bool) -> str:
        parts: list[str | bytes] = [self.dependency_script]
        for item in self.select(target):
            parts.extend((item.destination, read_resource(item.resource)))
        parts.extend(f"rm:{path}" for path in self.removals)
        if debug:
            parts.extend(f"{f.path}:{f.line}:{f.render()}" for f in self.debug_flags)
        return fingerprint(*parts)


TFLITE_PATCHES = PatchSet(
    dependency_script=f"{MAKE_DIR}/download_dependencies.sh",
    overrides=(
        # -fPIC for the C sources
        FileOverride(
            resource="linux_makefile.inc",
            destination=f"{MAKE_DIR}/targets/linux_makefile.inc",
            os="linux",
        ),
        # cross-compiling with TARGET=linux TARGET_ARCH=aarch64
        FileOverride(
            resource="aarch64_makefile.inc",
            destination=f"{MAKE_DIR}/targets/aarch64_makefile.inc",
            arch="aarch64",
        ),
    ),
    removals=(
        # the shim links its own equivalents of these
        f"{LITE_DIR}/mmap_allocation_disabled.cc",
        f"{LITE_DIR}/nnapi_delegate.cc",
    ),
    debug_flags=(
        FlagOverride(
            path=f"{MAKE_DIR}/Makefile",
            variable="CXXFLAGS",
            value="-O0 -g -fno-inline",
            line=54,
            versions=("1.12.2",),
        ),
        FlagOverride(
            path=f"{MAKE_DIR}/Makefile",
            variable="CFLAGS",
            value="-O0 -g -fno-inline",
            line=57,
            versions=("1.12.2",),
        ),
    ),
)


def patch(
    tree: WorkingTree,
    target: BuildTarget,
    *,
    runner: CommandRunner,
    patch_set: PatchSet = TFLITE_PATCHES,
    debug: bool = False,
    logger: StructuredLogger | None = None,
) -> None:
    """Prepare a fresh working tree for *target*. Must run once per tree."""
    fetch_dependencies(tree, runner=runner, patch_set=patch_set)
    _log(logger, target, "downloaded native dependencies")

    for item in patch_set.select(target):
        apply_override(tree, item)
        _log(logger, target, f"replaced {item.destination}")

    for rel in patch_set.removals:
        remove_source(tree, rel)
        _log(logger, target, f"removed {rel}")

    if debug:
        for flag in patch_set.debug_flags:
            apply_flag_override(tree, flag)
            _log(logger, target, f"set {flag.variable} for debugging")


def fetch_dependencies(tree: WorkingTree, *, runner: CommandRunner, patch_set: PatchSet) -> None:
    script = tree.root / patch_set.dependency_script
    if not script.is_file():
        raise ExternalToolError(
            "Native dependency download script is missing.",
            hint="The pinned source layout does not match the expected one.",
            context={"operation": "patch", "path": str(script)},
        )
    result = runner.run([str(script)], cwd=tree.root)
    require_success(
        result,
        error=ExternalToolError,
        message="Failed to download native library dependencies.",
        hint="The dependency script fetches from the network; check connectivity.",
        operation="patch",
    )


def apply_override(tree: WorkingTree, item: FileOverride) -> Path:
    destination = tree.root / item.destination
    if not destination.parent.is_dir():
        raise PatchError(
            "Override destination directory does not exist.",
            context={"operation": "patch", "path": str(destination.parent)},
        )
    try:
        payload = read_resource(item.resource)
    except FileNotFoundError as exc:
        raise PatchError(
            "Packaged override file is missing.",
            hint="Reinstall litebind; its data files are incomplete.",
            context={"operation": "patch", "resource": item.resource},
        ) from exc
    destination.write_bytes(payload)
    return destination


def remove_source(tree: WorkingTree, rel: str) -> None:
    path = tree.root / rel
    try:
        path.unlink()
    except FileNotFoundError as exc:
        raise PatchError(
            "Source file scheduled for removal does not exist.",
            hint="Without this removal the link would pick up duplicate symbols.",
            context={"operation": "patch", "path": str(path)},
        ) from exc


def apply_flag_override(tree: WorkingTree, flag: FlagOverride) -> None:
    if tree.release.version not in flag.versions:
        raise PatchError(
            "Debug flag override was not checked against this pinned version.",
            hint="Re-verify the makefile line numbers and extend FlagOverride.versions.",
            context={
                "operation": "patch",
                "version": tree.release.version,
                "supported": ", ".join(flag.versions),
            },
        )
    path = tree.root / flag.path
    try:
        lines = path.read_text(encoding="utf-8").splitlines(keepends=True)
    except FileNotFoundError as exc:
        raise PatchError(
            "Makefile for debug flag override is missing.",
            context={"operation": "patch", "path": str(path)},
        ) from exc

    assignment = re.compile(rf"^\s*{re.escape(flag.variable)}\s*(?::=|\+=|\?=|=)")
    index = flag.line - 1
    if index >= len(lines) or not assignment.match(lines[index]):
        raise PatchError(
            "Makefile line does not assign the expected variable.",
            hint="The makefile layout changed; re-verify the line numbers.",
            context={
                "operation": "patch",
                "path": str(path),
                "line": str(flag.line),
                "variable": flag.variable,
            },
        )
    lines[index] = flag.render()
    path.write_text("".join(lines), encoding="utf-8")


def read_resource(name: str) -> bytes:
    return resources.files("litebind").joinpath("data", name).read_bytes()


def _log(logger: StructuredLogger | None, target: BuildTarget, message: str) -> None:
    if logger is None:
        return
    logger.log(operation="patch", stage="patch", target=target.label, message=message)
