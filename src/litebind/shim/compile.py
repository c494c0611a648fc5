"""Compile the C ABI shim against the built static library."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path

from litebind.cache import BuildCache, CacheInput, fingerprint
from litebind.errors import ShimCompileError
from litebind.models import (
    LIBRARY_NAME,
    BuildTarget,
    LinkDirective,
    NativeArtifact,
    ShimArtifact,
    WorkingTree,
)
from litebind.observability import StructuredLogger
from litebind.toolchain import Toolchain
from litebind.tools import CommandRunner, SubprocessRunner, require_success

SHIM_SOURCES = ("tflite_wrapper.cpp", "tflite_wrapper.hpp")
SHIM_FLAGS = ("-shared", "-fPIC", "-Wno-sign-compare", "-g", "-O2")


def link_directives(artifact: NativeArtifact) -> tuple[LinkDirective, ...]:
    return (
        LinkDirective(kind="static", name=LIBRARY_NAME, search_path=artifact.path.parent),
        LinkDirective(kind="dylib", name="pthread"),
        LinkDirective(kind="dylib", name="dl"),
    )


@dataclass(slots=True)
class ShimCompiler:
    toolchain: Toolchain = field(default_factory=Toolchain)
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    logger: StructuredLogger | None = None

    def command(
        self, tree: WorkingTree, artifact: NativeArtifact, *, csrc: Path, output: Path
    ) -> list[str]:
        command = [
            self.toolchain.cxx,
            *SHIM_FLAGS,
            *self.toolchain.common_flags(tree),
            f"-I{csrc}",
            str(csrc / SHIM_SOURCES[0]),
            "-o",
            str(output),
        ]
        for directive in link_directives(artifact):
            if directive.search_path is not None:
                command.append(f"-L{directive.search_path}")
            command.append(directive.as_flag())
        return command

    def cache_input(self, tree: WorkingTree, artifact: NativeArtifact) -> CacheInput:
        sources = resources.files("litebind").joinpath("csrc")
        digest = fingerprint(*(sources.joinpath(name).read_bytes() for name in SHIM_SOURCES))
        return CacheInput(
            stage="shim",
            version=tree.release.version,
            source_hash=tree.release.sha256,
            target=artifact.target.label,
            fingerprints=(digest, self.toolchain.fingerprint(), artifact.key),
            flags=SHIM_FLAGS,
        )

    def compile(
        self, tree: WorkingTree, artifact: NativeArtifact, *, cache: BuildCache
    ) -> ShimArtifact:
        output = cache.shim_path()
        link = link_directives(artifact)
        inputs = self.cache_input(tree, artifact)
        if cache.lookup(output, inputs=inputs):
            self._log(artifact.target, "shim found in cache")
            return ShimArtifact(path=output, link=link, cached=True)

        temp_output = output.with_name(output.name + ".tmp")
        with resources.as_file(resources.files("litebind").joinpath("csrc")) as csrc:
            command = self.command(tree, artifact, csrc=csrc, output=temp_output)
            self._log(artifact.target, f"running {' '.join(command)}")
            result = self.runner.run(command, cwd=tree.root)
        require_success(
            result,
            error=ShimCompileError,
            message="Shim compilation failed.",
            hint="Compiler diagnostics are reproduced verbatim in `stderr`.",
            operation="compile_shim",
        )
        if not temp_output.is_file():
            raise ShimCompileError(
                "Compiler reported success but produced no shim library.",
                context={"operation": "compile_shim", "expected": str(temp_output)},
            )
        os.replace(temp_output, output)
        cache.stamp(output, inputs=inputs)
        return ShimArtifact(path=output, link=link, cached=False)

    def _log(self, target: BuildTarget, message: str) -> None:
        if self.logger is None:
            return
        self.logger.log(operation="compile_shim", stage="shim", target=target.label, message=message)


def compile_shim(
    tree: WorkingTree,
    artifact: NativeArtifact,
    *,
    cache: BuildCache,
    toolchain: Toolchain | None = None,
    runner: CommandRunner | None = None,
    logger: StructuredLogger | None = None,
) -> ShimArtifact:
    compiler = ShimCompiler(
        toolchain=toolchain or Toolchain(),
        runner=runner or SubprocessRunner(),
        logger=logger,
    )
    return compiler.compile(tree, artifact, cache=cache)
