"""External tool invocation."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from litebind.errors import LitebindError


@dataclass(frozen=True, slots=True)
class ToolResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> ToolResult:
        """Run *argv* to completion and return its exit status and output."""


@dataclass(slots=True)
class SubprocessRunner:
    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> ToolResult:
        merged_env = None
        if env:
            merged_env = {**os.environ, **env}
        try:
            completed = subprocess.run(
                list(argv),
                cwd=str(cwd),
                env=merged_env,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            # missing or non-executable tool
            return ToolResult(argv=tuple(argv), returncode=127, stderr=str(exc))
        return ToolResult(
            argv=tuple(argv),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )


def require_success(
    result: ToolResult,
    *,
    error: Callable[..., LitebindError],
    message: str,
    hint: str | None = None,
    operation: str,
) -> ToolResult:
    """Raise *error* carrying the tool's verbatim output unless it exited 0."""
    if result.ok:
        return result
    raise error(
        message,
        hint=hint,
        context={
            "operation": operation,
            "command": " ".join(result.argv),
            "returncode": str(result.returncode),
            "stdout": result.stdout,
            "stderr": result.stderr,
        },
    )
