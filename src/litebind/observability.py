"""Structured logging and build report helpers."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import cbor2

from litebind.models import BuildTarget, LinkDirective, PinnedRelease


@dataclass(slots=True)
class StructuredLogger:
    records: list[dict[str, Any]] = field(default_factory=list)

    def log(
        self,
        *,
        operation: str,
        stage: str,
        target: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "stage": stage,
            "target": target,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)

    def records_for_stage(self, stage: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("stage") == stage]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path


@dataclass(frozen=True, slots=True)
class BuildReport:
    release: PinnedRelease
    target: BuildTarget
    artifact_digests: dict[str, str] = field(default_factory=dict)
    link: tuple[LinkDirective, ...] = ()
    logs: tuple[dict[str, Any], ...] = ()
    schema_version: int = 1

    @classmethod
    def collect(
        cls,
        *,
        release: PinnedRelease,
        target: BuildTarget,
        outputs: dict[str, Path],
        link: tuple[LinkDirective, ...],
        logger: StructuredLogger,
    ) -> BuildReport:
        digests = {
            name: hashlib.sha256(path.read_bytes()).hexdigest()
            for name, path in sorted(outputs.items())
            if path.exists()
        }
        return cls(
            release=release,
            target=target,
            artifact_digests=digests,
            link=link,
            logs=tuple(logger.records),
        )

    def to_json(self, path: str | Path | None = None) -> str:
        encoded = json.dumps(self._payload(), indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        encoded = cbor2.dumps(self._payload(), canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def _payload(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "release": {"version": self.release.version, "sha256": self.release.sha256},
            "target": {
                "os": self.target.os,
                "arch": self.target.arch,
                "parallelism": self.target.parallelism,
            },
            "artifact_digests": dict(self.artifact_digests),
            "link": [
                {
                    "kind": item.kind,
                    "name": item.name,
                    "search_path": str(item.search_path) if item.search_path else None,
                }
                for item in self.link
            ],
            "logs": list(self.logs),
        }
