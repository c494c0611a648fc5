"""Sequential acquire/extract/patch/build/bind/shim pipeline.

Every stage checks the build cache first and fails the whole run on error.
A second run against a populated cache only performs existence checks.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from litebind.bindings import TFLITE_MANIFEST, BindingManifest, write_bindings
from litebind.builders import MakeBuilder
from litebind.cache import BuildCache, CacheInput
from litebind.config import BuildConfig
from litebind.fetch import ensure_source
from litebind.models import (
    TFLITE_RELEASE,
    BuildTarget,
    LinkDirective,
    PinnedRelease,
    PipelineResult,
    WorkingTree,
)
from litebind.observability import BuildReport, StructuredLogger
from litebind.policy import Policy
from litebind.shim import ShimCompiler
from litebind.source import TFLITE_PATCHES, PatchSet, extract, patch
from litebind.toolchain import Toolchain
from litebind.tools import CommandRunner, SubprocessRunner


@dataclass(slots=True)
class Pipeline:
    cache: BuildCache
    target: BuildTarget
    release: PinnedRelease = TFLITE_RELEASE
    patch_set: PatchSet = TFLITE_PATCHES
    manifest: BindingManifest = TFLITE_MANIFEST
    toolchain: Toolchain = field(default_factory=Toolchain)
    policy: Policy = field(default_factory=Policy)
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    debug: bool = False

    @classmethod
    def from_config(cls, config: BuildConfig, **overrides: object) -> Pipeline:
        params: dict[str, object] = {
            "cache": BuildCache(config.out_dir),
            "target": config.target(),
            "toolchain": config.toolchain(),
            "policy": config.policy(),
            "debug": config.debug,
        }
        params.update(overrides)
        return cls(**params)  # type: ignore[arg-type]

    def run(self) -> PipelineResult:
        tree = self.prepare_source()
        builder = MakeBuilder(
            runner=self.runner,
            patch_fingerprint=self.patch_fingerprint(),
            logger=self.logger,
        )
        artifact = builder.build(tree, self.target, cache=self.cache)
        bindings = write_bindings(
            tree,
            cache=self.cache,
            manifest=self.manifest,
            toolchain=self.toolchain,
            logger=self.logger,
        )
        shim = ShimCompiler(
            toolchain=self.toolchain,
            runner=self.runner,
            logger=self.logger,
        ).compile(tree, artifact, cache=self.cache)

        report_path = self.cache.report_path()
        if not (artifact.cached and bindings.cached and shim.cached and report_path.exists()):
            report_path = self.write_report(
                outputs={"artifact": artifact.path, "bindings": bindings.path, "shim": shim.path},
                link=shim.link,
            )
        return PipelineResult(
            working_tree=tree,
            artifact=artifact,
            bindings=bindings,
            shim=shim,
            report_path=report_path,
        )

    def prepare_source(self) -> WorkingTree:
        archive = ensure_source(
            self.release, cache=self.cache, policy=self.policy, logger=self.logger
        )
        tree_path = self.cache.working_tree_path(self.release)
        inputs = CacheInput(
            stage="source",
            version=self.release.version,
            source_hash=self.release.sha256,
            target=self.target.label,
            fingerprints=(self.patch_fingerprint(),),
        )
        if self.cache.lookup(tree_path, inputs=inputs):
            self._log("extract", "working tree found in cache")
            return WorkingTree(root=tree_path, release=self.release)
        if tree_path.exists():
            # patched for another target or debug setting
            self._log("extract", f"discarding {tree_path.name} patched with other settings")
            shutil.rmtree(tree_path)

        def prepare(staged: Path) -> None:
            patch(
                WorkingTree(root=staged, release=self.release),
                self.target,
                runner=self.runner,
                patch_set=self.patch_set,
                debug=self.debug,
                logger=self.logger,
            )

        root = extract(
            archive,
            self.cache.source_dir,
            root_name=self.release.root_name,
            prepare=prepare,
        )
        self.cache.stamp(root, inputs=inputs)
        self._log("extract", f"extracted and patched {root.name}")
        return WorkingTree(root=root, release=self.release)

    def patch_fingerprint(self) -> str:
        return self.patch_set.fingerprint(self.target, debug=self.debug)

    def write_report(
        self, *, outputs: dict[str, Path], link: tuple[LinkDirective, ...]
    ) -> Path:
        report = BuildReport.collect(
            release=self.release,
            target=self.target,
            outputs=outputs,
            link=link,
            logger=self.logger,
        )
        path = self.cache.report_path()
        report.to_json(path)
        return path

    def _log(self, stage: str, message: str) -> None:
        self.logger.log(operation="run", stage=stage, target=self.target.label, message=message)


def run_pipeline(config: BuildConfig | None = None) -> PipelineResult:
    return Pipeline.from_config(config or BuildConfig.from_env()).run()
