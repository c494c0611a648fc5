import pytest

from conftest import FakeRunner
from litebind.builders import MakeBuilder
from litebind.cache import BuildCache
from litebind.errors import ExternalToolError
from litebind.models import BuildTarget, WorkingTree
from litebind.observability import StructuredLogger


def test_make_command_passes_target_and_parallelism() -> None:
    builder = MakeBuilder()
    command = builder.command(BuildTarget(os="linux", arch="aarch64", parallelism=8))

    assert command == (
        "make",
        "-j",
        "8",
        "-f",
        "tensorflow/contrib/lite/tools/make/Makefile",
        "TARGET=linux",
        "TARGET_ARCH=aarch64",
    )


def test_build_copies_library_to_stable_location(
    working_tree: WorkingTree, cache: BuildCache, runner: FakeRunner, linux_x86_64: BuildTarget
) -> None:
    logger = StructuredLogger()
    artifact = MakeBuilder(runner=runner, logger=logger).build(
        working_tree, linux_x86_64, cache=cache
    )

    assert artifact.path == cache.artifact_path()
    assert artifact.cached is False
    assert artifact.path.read_bytes() == b"!<arch>\nlinux_x86_64"
    assert runner.calls[0][1] == working_tree.root
    assert logger.records_for_stage("build")


def test_second_build_is_cache_hit_without_running_make(
    working_tree: WorkingTree, cache: BuildCache, runner: FakeRunner, linux_x86_64: BuildTarget
) -> None:
    builder = MakeBuilder(runner=runner)
    builder.build(working_tree, linux_x86_64, cache=cache)
    again = builder.build(working_tree, linux_x86_64, cache=cache)

    assert again.cached is True
    assert runner.programs() == ["make"]


def test_changed_target_rebuilds(
    working_tree: WorkingTree, cache: BuildCache, runner: FakeRunner, linux_x86_64: BuildTarget
) -> None:
    builder = MakeBuilder(runner=runner)
    builder.build(working_tree, linux_x86_64, cache=cache)
    rebuilt = builder.build(working_tree, BuildTarget(os="linux", arch="aarch64"), cache=cache)

    assert rebuilt.cached is False
    assert rebuilt.path.read_bytes().endswith(b"linux_aarch64")
    assert runner.programs() == ["make", "make"]


def test_make_failure_surfaces_tool_output(
    working_tree: WorkingTree, cache: BuildCache, linux_x86_64: BuildTarget
) -> None:
    builder = MakeBuilder(runner=FakeRunner(fail={"make"}))

    with pytest.raises(ExternalToolError) as excinfo:
        builder.build(working_tree, linux_x86_64, cache=cache)

    assert excinfo.value.context["stderr"] == "make: boom"
    assert excinfo.value.context["stdout"] == "partial"
    assert not cache.artifact_path().exists()


def test_missing_library_after_success_is_layout_error(
    working_tree: WorkingTree, cache: BuildCache, linux_x86_64: BuildTarget
) -> None:
    with pytest.raises(ExternalToolError) as excinfo:
        builder = MakeBuilder(runner=FakeRunner(produce_outputs=False))
        builder.build(working_tree, linux_x86_64, cache=cache)

    assert excinfo.value.context["expected"].endswith("gen/linux_x86_64/lib/libtensorflow-lite.a")
