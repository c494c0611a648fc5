"""Source tree extraction and patching."""

from litebind.source.extract import extract
from litebind.source.patch import (
    TFLITE_PATCHES,
    FileOverride,
    FlagOverride,
    PatchSet,
    apply_flag_override,
    patch,
)

__all__ = [
    "FileOverride",
    "FlagOverride",
    "PatchSet",
    "TFLITE_PATCHES",
    "apply_flag_override",
    "extract",
    "patch",
]
