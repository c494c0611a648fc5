import hashlib
from pathlib import Path
from typing import Any
from urllib.request import urlopen as real_urlopen

import pytest

from litebind.cache import BuildCache
from litebind.errors import IntegrityError, PolicyError, TransportError, ValidationError
from litebind.fetch import download, ensure_source, verify_archive
from litebind.fetch import http as fetch_http
from litebind.models import PinnedRelease
from litebind.observability import StructuredLogger
from litebind.policy import Policy


class CountingUrlopen:
    def __init__(self) -> None:
        self.urls: list[str] = []

    def __call__(self, url: str, *args: Any, **kwargs: Any) -> Any:
        self.urls.append(url)
        return real_urlopen(url, *args, **kwargs)


@pytest.fixture
def counting_urlopen(monkeypatch: pytest.MonkeyPatch) -> CountingUrlopen:
    counter = CountingUrlopen()
    monkeypatch.setattr(fetch_http, "urlopen", counter)
    return counter


def test_ensure_source_fetches_and_verifies(
    release: PinnedRelease, cache: BuildCache, counting_urlopen: CountingUrlopen
) -> None:
    logger = StructuredLogger()
    path = ensure_source(release, cache=cache, logger=logger)

    assert path == cache.archive_path(release)
    assert verify_archive(path, sha256=release.sha256)
    assert counting_urlopen.urls == [release.url()]
    assert logger.records_for_stage("acquire")


def test_ensure_source_reuses_verified_archive_without_network(
    release: PinnedRelease, cache: BuildCache, counting_urlopen: CountingUrlopen
) -> None:
    ensure_source(release, cache=cache)
    second = ensure_source(release, cache=cache, policy=Policy(network_mode="offline"))

    assert second.exists()
    assert len(counting_urlopen.urls) == 1


def test_ensure_source_refetches_corrupt_archive(
    release: PinnedRelease, cache: BuildCache, counting_urlopen: CountingUrlopen
) -> None:
    archive = cache.archive_path(release)
    archive.parent.mkdir(parents=True)
    archive.write_bytes(b"truncated")

    path = ensure_source(release, cache=cache)

    assert verify_archive(path, sha256=release.sha256)
    assert len(counting_urlopen.urls) == 1


def test_ensure_source_raises_on_hash_mismatch_and_keeps_file(
    source_archive: Path, cache: BuildCache
) -> None:
    release = PinnedRelease(version="1.12.2", sha256="0" * 64, url_template=source_archive.as_uri())

    with pytest.raises(IntegrityError) as excinfo:
        ensure_source(release, cache=cache)

    actual = hashlib.sha256(source_archive.read_bytes()).hexdigest()
    assert excinfo.value.context["expected"] == "0" * 64
    assert excinfo.value.context["actual"] == actual
    assert cache.archive_path(release).exists()


def test_ensure_source_offline_without_archive_is_policy_error(
    release: PinnedRelease, cache: BuildCache
) -> None:
    with pytest.raises(PolicyError):
        ensure_source(release, cache=cache, policy=Policy(network_mode="offline"))


def test_ensure_source_refuses_to_skip_integrity(release: PinnedRelease, cache: BuildCache) -> None:
    with pytest.raises(ValidationError):
        ensure_source(release, cache=cache, policy=Policy(require_integrity=False))


def test_download_reports_transport_failure(tmp_path: Path) -> None:
    missing = (tmp_path / "missing.tar.gz").as_uri()

    with pytest.raises(TransportError) as excinfo:
        download(missing, tmp_path / "out" / "archive.tar.gz")

    assert excinfo.value.context["url"] == missing
    assert not (tmp_path / "out" / "archive.tar.gz").exists()


def test_mismatching_cached_archive_is_refetched_once_then_rejected(
    source_archive: Path, cache: BuildCache, counting_urlopen: CountingUrlopen
) -> None:
    release = PinnedRelease(version="1.12.2", sha256="0" * 64, url_template=source_archive.as_uri())
    archive = cache.archive_path(release)
    archive.parent.mkdir(parents=True)
    archive.write_bytes(b"stale archive from an earlier pin")

    with pytest.raises(IntegrityError):
        ensure_source(release, cache=cache)

    assert len(counting_urlopen.urls) == 1
    assert archive.exists()
    assert archive.read_bytes() == source_archive.read_bytes()
