"""Build TensorFlow Lite from a pinned source release and bind it with ctypes."""

from .cache import BuildCache
from .config import BuildConfig
from .errors import (
    BindingGenerationError,
    ExternalToolError,
    ExtractionError,
    IntegrityError,
    LitebindError,
    PatchError,
    PolicyError,
    ShimCompileError,
    StaleArtifactWarning,
    TransportError,
    ValidationError,
)
from .models import (
    TFLITE_RELEASE,
    BuildTarget,
    GeneratedBindings,
    LinkDirective,
    NativeArtifact,
    PinnedRelease,
    PipelineResult,
    ShimArtifact,
    WorkingTree,
)
from .pipeline import Pipeline, run_pipeline
from .policy import Policy

__all__ = [
    "BindingGenerationError",
    "BuildCache",
    "BuildConfig",
    "BuildTarget",
    "ExternalToolError",
    "ExtractionError",
    "GeneratedBindings",
    "IntegrityError",
    "LinkDirective",
    "LitebindError",
    "NativeArtifact",
    "PatchError",
    "PinnedRelease",
    "Pipeline",
    "PipelineResult",
    "Policy",
    "PolicyError",
    "ShimArtifact",
    "ShimCompileError",
    "StaleArtifactWarning",
    "TFLITE_RELEASE",
    "TransportError",
    "ValidationError",
    "WorkingTree",
    "run_pipeline",
]
