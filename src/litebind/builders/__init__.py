"""Native library builder contracts."""

from .base import Builder
from .make import MakeBuilder

__all__ = ["Builder", "MakeBuilder"]
