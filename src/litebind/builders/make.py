"""Builder driving TensorFlow Lite's own Makefile."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field

from litebind.cache import BuildCache, CacheInput, cache_key
from litebind.errors import ExternalToolError
from litebind.models import MAKE_DIR, BuildTarget, NativeArtifact, WorkingTree
from litebind.observability import StructuredLogger
from litebind.tools import CommandRunner, SubprocessRunner, require_success


@dataclass(slots=True)
class MakeBuilder:
    tool: str = "make"
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    patch_fingerprint: str = ""
    logger: StructuredLogger | None = None

    def command(self, target: BuildTarget) -> tuple[str, ...]:
        return (
            self.tool,
            "-j",
            str(target.parallelism),
            "-f",
            f"{MAKE_DIR}/Makefile",
            f"TARGET={target.os}",
            f"TARGET_ARCH={target.arch}",
        )

    def cache_input(self, tree: WorkingTree, target: BuildTarget) -> CacheInput:
        # parallelism does not change the output
        return CacheInput(
            stage="native_library",
            version=tree.release.version,
            source_hash=tree.release.sha256,
            target=target.label,
            fingerprints=(self.patch_fingerprint,),
        )

    def build(self, tree: WorkingTree, target: BuildTarget, *, cache: BuildCache) -> NativeArtifact:
        artifact_path = cache.artifact_path()
        inputs = self.cache_input(tree, target)
        if cache.lookup(artifact_path, inputs=inputs):
            self._log(target, "static library found in cache")
            return NativeArtifact(
                path=artifact_path, target=target, cached=True, key=cache_key(inputs)
            )

        command = self.command(target)
        self._log(target, f"running {' '.join(command)}")
        result = self.runner.run(command, cwd=tree.root)
        require_success(
            result,
            error=ExternalToolError,
            message="Native library build failed.",
            hint="The output above comes straight from the native build.",
            operation="build",
        )

        produced = tree.library_output(target)
        if not produced.is_file():
            raise ExternalToolError(
                "Native build reported success but the static library is missing.",
                hint="The Makefile output layout does not match TARGET/TARGET_ARCH.",
                context={"operation": "build", "expected": str(produced)},
            )

        artifact_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = artifact_path.with_name(artifact_path.name + ".tmp")
        shutil.copy2(produced, temp_path)
        os.replace(temp_path, artifact_path)
        key = cache.stamp(artifact_path, inputs=inputs)
        self._log(target, f"copied {produced.name} to {artifact_path}")
        return NativeArtifact(path=artifact_path, target=target, cached=False, key=key)

    def _log(self, target: BuildTarget, message: str) -> None:
        if self.logger is None:
            return
        self.logger.log(operation="build", stage="build", target=target.label, message=message)
