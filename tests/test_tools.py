from pathlib import Path

import pytest

from litebind.errors import ExternalToolError
from litebind.tools import SubprocessRunner, ToolResult, require_success


def test_subprocess_runner_captures_output(tmp_path: Path) -> None:
    result = SubprocessRunner().run(
        ["sh", "-c", "echo out; echo err >&2; exit 3"], cwd=tmp_path
    )

    assert result.returncode == 3
    assert result.stdout == "out\n"
    assert result.stderr == "err\n"
    assert not result.ok


def test_subprocess_runner_merges_environment(tmp_path: Path) -> None:
    result = SubprocessRunner().run(
        ["sh", "-c", 'printf "%s" "$LITEBIND_PROBE"'], cwd=tmp_path, env={"LITEBIND_PROBE": "yes"}
    )

    assert result.ok
    assert result.stdout == "yes"


def test_missing_tool_is_reported_as_failure(tmp_path: Path) -> None:
    result = SubprocessRunner().run(["litebind-no-such-tool"], cwd=tmp_path)

    assert result.returncode == 127
    assert result.stderr


def test_require_success_raises_with_verbatim_output() -> None:
    result = ToolResult(argv=("make", "-j", "3"), returncode=2, stdout="o", stderr="e")

    with pytest.raises(ExternalToolError) as excinfo:
        require_success(result, error=ExternalToolError, message="failed", operation="build")

    assert excinfo.value.context == {
        "operation": "build",
        "command": "make -j 3",
        "returncode": "2",
        "stdout": "o",
        "stderr": "e",
    }
    assert require_success(
        ToolResult(argv=("true",), returncode=0), error=ExternalToolError, message="x", operation="y"
    ).ok
