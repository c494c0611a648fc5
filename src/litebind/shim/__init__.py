"""Native C ABI shim compilation."""

from .compile import ShimCompiler, compile_shim, link_directives

__all__ = ["ShimCompiler", "compile_shim", "link_directives"]
