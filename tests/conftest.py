"""Shared test fixtures."""

from __future__ import annotations

import hashlib
import io
import tarfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from litebind.cache import BuildCache
from litebind.models import LITE_DIR, MAKE_DIR, BuildTarget, PinnedRelease, WorkingTree
from litebind.source import extract
from litebind.tools import ToolResult

VERSION = "1.12.2"
ROOT_NAME = f"tensorflow-{VERSION}"


def makefile_text() -> str:
    lines = [f"# makefile line {number}" for number in range(1, 61)]
    lines[53] = "CXXFLAGS := -O3 -DNDEBUG"
    lines[56] = "CFLAGS := -O3 -DNDEBUG"
    return "\n".join(lines) + "\n"


SOURCE_FILES: dict[str, str] = {
    f"{MAKE_DIR}/download_dependencies.sh": "#!/bin/sh\nexit 0\n",
    f"{MAKE_DIR}/Makefile": makefile_text(),
    f"{MAKE_DIR}/targets/linux_makefile.inc": "# upstream linux settings\n",
    f"{MAKE_DIR}/targets/aarch64_makefile.inc": "# upstream aarch64 settings\n",
    f"{LITE_DIR}/mmap_allocation_disabled.cc": "// mmap stub\n",
    f"{LITE_DIR}/nnapi_delegate.cc": "// nnapi delegate\n",
    f"{LITE_DIR}/context.h": "typedef int TfLiteStatus;\n",
}


def write_source_archive(path: Path, files: Mapping[str, str] = SOURCE_FILES) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, mode="w:gz") as archive:
        for rel, text in sorted(files.items()):
            payload = text.encode("utf-8")
            info = tarfile.TarInfo(f"{ROOT_NAME}/{rel}")
            info.size = len(payload)
            info.mode = 0o755 if rel.endswith(".sh") else 0o644
            archive.addfile(info, io.BytesIO(payload))
    return path


@dataclass
class FakeRunner:
    """Command runner that records calls and fakes the outputs of known tools."""

    fail: set[str] = field(default_factory=set)
    produce_outputs: bool = True
    calls: list[tuple[tuple[str, ...], Path]] = field(default_factory=list)

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> ToolResult:
        argv = tuple(argv)
        self.calls.append((argv, cwd))
        program = Path(argv[0]).name
        if program in self.fail:
            return ToolResult(argv=argv, returncode=2, stdout="partial", stderr=f"{program}: boom")
        if not self.produce_outputs:
            return ToolResult(argv=argv, returncode=0)

        if program == "download_dependencies.sh":
            (cwd / MAKE_DIR / "downloads" / "flatbuffers" / "include").mkdir(parents=True)
        elif program == "make":
            settings = dict(arg.split("=", 1) for arg in argv if "=" in arg)
            label = f"{settings['TARGET']}_{settings['TARGET_ARCH']}"
            output = cwd / MAKE_DIR / "gen" / label / "lib" / "libtensorflow-lite.a"
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_bytes(b"!<arch>\n" + label.encode("utf-8"))
        elif "-o" in argv:
            Path(argv[argv.index("-o") + 1]).write_bytes(b"\x7fELF shim")
        return ToolResult(argv=argv, returncode=0)

    def programs(self) -> list[str]:
        return [Path(argv[0]).name for argv, _ in self.calls]


@pytest.fixture
def source_archive(tmp_path: Path) -> Path:
    return write_source_archive(tmp_path / "upstream" / f"{ROOT_NAME}.tar.gz")


@pytest.fixture
def release(source_archive: Path) -> PinnedRelease:
    digest = hashlib.sha256(source_archive.read_bytes()).hexdigest()
    return PinnedRelease(version=VERSION, sha256=digest, url_template=source_archive.as_uri())


@pytest.fixture
def cache(tmp_path: Path) -> BuildCache:
    return BuildCache(tmp_path / "out")


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def linux_x86_64() -> BuildTarget:
    return BuildTarget(os="linux", arch="x86_64")


@pytest.fixture
def working_tree(tmp_path: Path, source_archive: Path, release: PinnedRelease) -> WorkingTree:
    root = extract(source_archive, tmp_path / "trees", root_name=ROOT_NAME)
    return WorkingTree(root=root, release=release)
