"""Integrity-checked source acquisition."""

from litebind.fetch.http import download, ensure_source, sha256_file, verify_archive

__all__ = ["download", "ensure_source", "sha256_file", "verify_archive"]
