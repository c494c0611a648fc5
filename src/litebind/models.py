"""Core typed dataclasses for pinned releases, targets, and build outputs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

LinkKind = Literal["static", "dylib"]

LITE_DIR = "tensorflow/contrib/lite"
MAKE_DIR = f"{LITE_DIR}/tools/make"
LIBRARY_NAME = "tensorflow-lite"
LIBRARY_FILE = f"lib{LIBRARY_NAME}.a"
DEFAULT_PARALLELISM = 3


@dataclass(frozen=True, slots=True)
class PinnedRelease:
    version: str
    sha256: str
    url_template: str

    def url(self) -> str:
        return self.url_template.format(version=self.version)

    @property
    def archive_name(self) -> str:
        return f"v{self.version}.tar.gz"

    @property
    def root_name(self) -> str:
        """Name of the top-level directory the archive unpacks to."""
        return f"tensorflow-{self.version}"


TFLITE_RELEASE = PinnedRelease(
    version="1.12.2",
    sha256="90ffc7cf1df5e4b8385c9108db18d5d5034ec423547c0e167d44f5746a20d06b",
    url_template="https://codeload.github.com/tensorflow/tensorflow/tar.gz/v{version}",
)


@dataclass(frozen=True, slots=True)
class BuildTarget:
    os: str
    arch: str
    parallelism: int = DEFAULT_PARALLELISM

    @property
    def label(self) -> str:
        return f"{self.os}_{self.arch}"


@dataclass(frozen=True, slots=True)
class WorkingTree:
    """Extracted and patched source directory for one pinned release."""

    root: Path
    release: PinnedRelease

    @property
    def make_dir(self) -> Path:
        return self.root / MAKE_DIR

    @property
    def makefile(self) -> Path:
        return self.make_dir / "Makefile"

    @property
    def dependency_script(self) -> Path:
        return self.make_dir / "download_dependencies.sh"

    @property
    def flatbuffers_include(self) -> Path:
        return self.make_dir / "downloads" / "flatbuffers" / "include"

    def library_output(self, target: BuildTarget) -> Path:
        """Where the native Makefile leaves the static library for *target*."""
        return self.make_dir / "gen" / target.label / "lib" / LIBRARY_FILE


@dataclass(frozen=True, slots=True)
class NativeArtifact:
    path: Path
    target: BuildTarget
    cached: bool = False
    key: str = ""


@dataclass(frozen=True, slots=True)
class GeneratedBindings:
    path: Path
    entries: tuple[str, ...]
    cached: bool = False


@dataclass(frozen=True, slots=True)
class LinkDirective:
    kind: LinkKind
    name: str
    search_path: Path | None = None

    def as_flag(self) -> str:
        return f"-l{self.name}"


@dataclass(frozen=True, slots=True)
class ShimArtifact:
    path: Path
    link: tuple[LinkDirective, ...]
    cached: bool = False


@dataclass(frozen=True, slots=True)
class PipelineResult:
    working_tree: WorkingTree
    artifact: NativeArtifact
    bindings: GeneratedBindings
    shim: ShimArtifact
    report_path: Path | None = None
