"""Build-output directory handle with stamp-based cache lookups.

A ``BuildCache`` owns one build-output root and its layout.  Outputs are
considered valid when present on disk; a stamp recorded next to each output
lets a later run notice that the output was produced from different inputs
(another pinned version, target or patch set) and rebuild it.  Outputs are
never re-hashed on lookup.

Concurrent pipelines must not share a root.
"""

from __future__ import annotations

import json
import os
import warnings
from pathlib import Path

from litebind.cache.keys import CacheInput, cache_key
from litebind.errors import StaleArtifactWarning
from litebind.models import LIBRARY_FILE, PinnedRelease

BINDINGS_FILE = "tflite_types.py"
SHIM_FILE = "libtflite_shim.so"
REPORT_FILE = "litebind-report.json"


class BuildCache:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    @property
    def source_dir(self) -> Path:
        return self.root / "tensorflow"

    @property
    def stamp_dir(self) -> Path:
        return self.root / ".stamps"

    def archive_path(self, release: PinnedRelease) -> Path:
        return self.source_dir / release.archive_name

    def working_tree_path(self, release: PinnedRelease) -> Path:
        return self.source_dir / release.root_name

    def artifact_path(self) -> Path:
        return self.root / LIBRARY_FILE

    def bindings_path(self) -> Path:
        return self.root / BINDINGS_FILE

    def shim_path(self) -> Path:
        return self.root / SHIM_FILE

    def report_path(self) -> Path:
        return self.root / REPORT_FILE

    def layout(self, release: PinnedRelease) -> dict[str, Path]:
        return {
            "archive": self.archive_path(release),
            "working_tree": self.working_tree_path(release),
            "artifact": self.artifact_path(),
            "bindings": self.bindings_path(),
            "shim": self.shim_path(),
            "report": self.report_path(),
        }

    def lookup(self, path: Path, *, inputs: CacheInput) -> bool:
        """Return True when *path* can be reused for *inputs*."""
        if not path.exists():
            return False
        recorded = self._read_stamp(path)
        if recorded is None:
            warnings.warn(
                f"Reusing `{path.name}` without a recorded cache key; "
                "its inputs cannot be confirmed.",
                StaleArtifactWarning,
                stacklevel=2,
            )
            return True
        return recorded == cache_key(inputs)

    def stamp(self, path: Path, *, inputs: CacheInput) -> str:
        key = cache_key(inputs)
        self.stamp_dir.mkdir(parents=True, exist_ok=True)
        payload = {"key": key, "output": path.name, "stage": inputs.stage}
        stamp_path = self._stamp_path(path)
        temp_path = stamp_path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        os.replace(temp_path, stamp_path)
        return key

    def _stamp_path(self, path: Path) -> Path:
        return self.stamp_dir / f"{path.name}.json"

    def _read_stamp(self, path: Path) -> str | None:
        stamp_path = self._stamp_path(path)
        if not stamp_path.exists():
            return None
        try:
            parsed = json.loads(stamp_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            # unreadable stamp, treated as a key mismatch
            return ""
        if not isinstance(parsed, dict) or not isinstance(parsed.get("key"), str):
            return ""
        return parsed["key"]
