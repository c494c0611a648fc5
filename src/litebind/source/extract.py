"""Streaming gzip/tar extraction of a verified source archive.

The archive is unpacked into a staging directory next to the final location
and only renamed into place once unpacking (and the optional ``prepare``
step, used for patching) has succeeded, so an existing working tree is
always a complete one.
"""

from __future__ import annotations

import os
import shutil
import tarfile
import tempfile
from collections.abc import Callable
from pathlib import Path

from litebind.errors import ExtractionError


def extract(
    archive_path: str | Path,
    destination: str | Path,
    *,
    root_name: str,
    prepare: Callable[[Path], None] | None = None,
) -> Path:
    """Unpack *archive_path* into *destination* unless ``destination/root_name`` exists."""
    destination = Path(destination)
    tree = destination / root_name
    if tree.exists():
        return tree

    destination.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{root_name}.", dir=destination))
    try:
        _unpack(Path(archive_path), staging)
        staged_tree = staging / root_name
        if not staged_tree.is_dir():
            raise ExtractionError(
                "Archive did not contain the expected source root.",
                context={
                    "operation": "extract",
                    "archive": str(archive_path),
                    "expected": root_name,
                },
            )
        if prepare is not None:
            prepare(staged_tree)
        os.replace(staged_tree, tree)
    finally:
        shutil.rmtree(staging, ignore_errors=True)
    return tree


def _unpack(archive_path: Path, destination: Path) -> None:
    try:
        with tarfile.open(archive_path, mode="r|gz") as archive:
            archive.extractall(destination, filter="tar")
    except (tarfile.TarError, OSError, EOFError) as exc:
        raise ExtractionError(
            "Failed to unpack verified source archive.",
            hint="The archive passed verification; check free disk space and permissions.",
            context={
                "operation": "extract",
                "archive": str(archive_path),
                "destination": str(destination),
                "cause": str(exc),
            },
        ) from exc
