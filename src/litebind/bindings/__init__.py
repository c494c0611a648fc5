"""ctypes binding generation for the curated TensorFlow Lite surface.

libclang parses the packaged wrapper header against the working tree; only
names listed in the :class:`BindingManifest` (plus anonymous records they
embed) are emitted.  Output depends on nothing but the header tree, the
manifest and the toolchain flags.
"""

from __future__ import annotations

import os
from importlib import resources

from litebind.bindings.codegen import render_module
from litebind.bindings.ir import DeclIndex
from litebind.bindings.manifest import TFLITE_MANIFEST, BindingManifest, ManifestEntry
from litebind.bindings.parser import parse_header
from litebind.cache import BuildCache, CacheInput
from litebind.models import GeneratedBindings, WorkingTree
from litebind.observability import StructuredLogger
from litebind.toolchain import Toolchain

WRAPPER_HEADER = "tflite_wrapper.hpp"


def generate_bindings(
    tree: WorkingTree,
    manifest: BindingManifest = TFLITE_MANIFEST,
    *,
    toolchain: Toolchain | None = None,
) -> str:
    """Return the generated module source for *manifest*."""
    toolchain = toolchain or Toolchain()
    header = resources.files("litebind").joinpath("csrc", WRAPPER_HEADER)
    with resources.as_file(header) as header_path:
        index = parse_header(
            header_path,
            args=toolchain.parser_args(tree),
            manifest=manifest,
            library_file=toolchain.libclang,
        )
    return render_module(index, manifest, tree.release)


def bindings_cache_input(
    tree: WorkingTree, manifest: BindingManifest, toolchain: Toolchain
) -> CacheInput:
    return CacheInput(
        stage="bindings",
        version=tree.release.version,
        source_hash=tree.release.sha256,
        fingerprints=(manifest.fingerprint(), toolchain.fingerprint()),
    )


def write_bindings(
    tree: WorkingTree,
    *,
    cache: BuildCache,
    manifest: BindingManifest = TFLITE_MANIFEST,
    toolchain: Toolchain | None = None,
    logger: StructuredLogger | None = None,
) -> GeneratedBindings:
    toolchain = toolchain or Toolchain()
    path = cache.bindings_path()
    inputs = bindings_cache_input(tree, manifest, toolchain)
    if cache.lookup(path, inputs=inputs):
        _log(logger, "bindings found in cache")
        return GeneratedBindings(path=path, entries=manifest.names(), cached=True)

    source = generate_bindings(tree, manifest, toolchain=toolchain)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + ".tmp")
    temp_path.write_text(source, encoding="utf-8")
    os.replace(temp_path, path)
    cache.stamp(path, inputs=inputs)
    _log(logger, f"wrote {len(manifest.entries)} declarations to {path.name}")
    return GeneratedBindings(path=path, entries=manifest.names(), cached=False)


def _log(logger: StructuredLogger | None, message: str) -> None:
    if logger is None:
        return
    logger.log(operation="generate_bindings", stage="bindings", target=None, message=message)


__all__ = [
    "BindingManifest",
    "DeclIndex",
    "ManifestEntry",
    "TFLITE_MANIFEST",
    "generate_bindings",
    "render_module",
    "write_bindings",
]
