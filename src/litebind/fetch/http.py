"""Integrity-enforced HTTP fetch of the pinned source archive."""

from __future__ import annotations

import hashlib
import http.client
import os
from pathlib import Path
from urllib.error import URLError
from urllib.request import urlopen

from litebind.cache import BuildCache
from litebind.errors import IntegrityError, TransportError
from litebind.models import PinnedRelease
from litebind.observability import StructuredLogger
from litebind.policy import Policy, ensure_integrity_required, ensure_network_allowed

_CHUNK_SIZE = 1 << 20


def ensure_source(
    release: PinnedRelease,
    *,
    cache: BuildCache,
    policy: Policy | None = None,
    logger: StructuredLogger | None = None,
) -> Path:
    """Return the path of a verified archive for *release*, fetching it at most once."""
    if policy is not None:
        ensure_integrity_required(policy=policy, operation="ensure_source")
    archive_path = cache.archive_path(release)
    if archive_path.exists() and verify_archive(archive_path, sha256=release.sha256):
        _log(logger, message="archive verified from cache", path=archive_path)
        return archive_path

    if policy is not None:
        ensure_network_allowed(policy=policy, operation="ensure_source")
    url = release.url()
    _log(logger, message=f"fetching {url}", path=archive_path)
    download(url, archive_path)

    actual_sha256 = sha256_file(archive_path)
    if actual_sha256 != release.sha256.lower():
        raise IntegrityError(
            "Fetched archive hash mismatch.",
            hint="The pinned hash and the upstream archive disagree; do not bypass this check.",
            context={
                "operation": "ensure_source",
                "url": url,
                "path": str(archive_path),
                "expected": release.sha256.lower(),
                "actual": actual_sha256,
            },
        )
    _log(logger, message="archive fetched and verified", path=archive_path)
    return archive_path


def download(url: str, destination: Path) -> Path:
    """Full-body GET of *url*, written atomically to *destination*."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    try:
        with urlopen(url) as response:  # noqa: S310 - integrity check is mandatory in the caller
            payload = response.read()
    except (URLError, OSError, http.client.HTTPException) as exc:
        raise TransportError(
            "Failed to fetch source archive.",
            hint="Check network connectivity or pre-populate the build cache.",
            context={"operation": "download", "url": url, "cause": str(exc)},
        ) from exc

    temp_path = destination.with_name(destination.name + ".tmp")
    temp_path.write_bytes(payload)
    os.replace(temp_path, destination)
    return destination


def verify_archive(path: Path, *, sha256: str) -> bool:
    return sha256_file(path) == sha256.lower()


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _log(logger: StructuredLogger | None, *, message: str, path: Path) -> None:
    if logger is None:
        return
    logger.log(
        operation="ensure_source",
        stage="acquire",
        target=None,
        message=message,
        extra={"path": str(path)},
    )
