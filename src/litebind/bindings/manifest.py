"""Curated allow/deny list of native names exposed to Python."""

from __future__ import annotations

from dataclasses import dataclass

from litebind.cache import fingerprint
from litebind.errors import ValidationError


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    name: str
    opaque: bool = False

    @property
    def python_name(self) -> str:
        return self.name.rsplit("::", 1)[-1]


@dataclass(frozen=True, slots=True)
class BindingManifest:
    entries: tuple[ManifestEntry, ...]
    blocklist: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for entry in self.entries:
            if entry.name in seen:
                raise ValidationError(
                    "Binding manifest lists a name twice.",
                    context={"operation": "manifest", "name": entry.name},
                )
            seen.add(entry.name)
            if self.is_blocked(entry.name):
                raise ValidationError(
                    "Binding manifest allows a blocked name.",
                    context={"operation": "manifest", "name": entry.name},
                )

    def names(self) -> tuple[str, ...]:
        return tuple(entry.name for entry in self.entries)

    def get(self, name: str) -> ManifestEntry | None:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def is_blocked(self, name: str) -> bool:
        return any(name == blocked or name.startswith(f"{blocked}::") for blocked in self.blocklist)

    def fingerprint(self) -> str:
        parts = [f"{'opaque' if e.opaque else 'concrete'}:{e.name}" for e in self.entries]
        parts.extend(f"block:{name}" for name in self.blocklist)
        return fingerprint(*parts)


def opaque(name: str) -> ManifestEntry:
    return ManifestEntry(name=name, opaque=True)


def concrete(name: str) -> ManifestEntry:
    return ManifestEntry(name=name, opaque=False)


TFLITE_MANIFEST = BindingManifest(
    entries=(
        opaque("tflite::FlatBufferModel"),
        opaque("tflite::InterpreterBuilder"),
        opaque("tflite::Interpreter"),
        opaque("tflite::ops::builtin::BuiltinOpResolver"),
        opaque("tflite::OpResolver"),
        concrete("TfLiteTensor"),
        concrete("TfLiteType"),
        concrete("TfLitePtrUnion"),
        concrete("TfLiteIntArray"),
        concrete("TfLiteQuantizationParams"),
        concrete("TfLiteAllocationType"),
        opaque("TfLiteDelegate"),
        concrete("TfLiteBufferHandle"),
        concrete("TfLiteComplex64"),
        concrete("TfLiteStatus"),
    ),
    blocklist=(
        "std",
        "tflite::Interpreter_TfLiteDelegatePtr",
        "tflite::Interpreter_State",
    ),
)
