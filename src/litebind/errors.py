"""Typed build error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers, one per pipeline failure class."""

    VALIDATION = "E_VALIDATION"
    POLICY = "E_POLICY"
    INTEGRITY = "E_INTEGRITY"
    TRANSPORT = "E_TRANSPORT"
    EXTRACTION = "E_EXTRACTION"
    PATCH = "E_PATCH"
    EXTERNAL_TOOL = "E_EXTERNAL_TOOL"
    BINDING_GENERATION = "E_BINDING_GENERATION"
    SHIM_COMPILE = "E_SHIM_COMPILE"


class LitebindError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class _CodedError(LitebindError):
    error_code: ErrorCode

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=self.error_code, hint=hint, context=context)


class ValidationError(_CodedError):
    error_code = ErrorCode.VALIDATION


class PolicyError(_CodedError):
    error_code = ErrorCode.POLICY


class IntegrityError(_CodedError):
    """Archive content does not match the pinned hash, even after a re-fetch."""

    error_code = ErrorCode.INTEGRITY


class TransportError(_CodedError):
    error_code = ErrorCode.TRANSPORT


class ExtractionError(_CodedError):
    """A verified archive could not be unpacked; points at the environment."""

    error_code = ErrorCode.EXTRACTION


class PatchError(_CodedError):
    error_code = ErrorCode.PATCH


class ExternalToolError(_CodedError):
    """A native tool exited non-zero or left its output somewhere unexpected."""

    error_code = ErrorCode.EXTERNAL_TOOL


class BindingGenerationError(_CodedError):
    error_code = ErrorCode.BINDING_GENERATION


class ShimCompileError(_CodedError):
    error_code = ErrorCode.SHIM_COMPILE


class StaleArtifactWarning(UserWarning):
    """Warning raised when a cached output is reused without a recorded cache key."""


__all__ = [
    "BindingGenerationError",
    "ErrorCode",
    "ExternalToolError",
    "ExtractionError",
    "IntegrityError",
    "LitebindError",
    "PatchError",
    "PolicyError",
    "ShimCompileError",
    "StaleArtifactWarning",
    "TransportError",
    "ValidationError",
]
