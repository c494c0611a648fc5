"""Command line entry point.

Usage:
    litebind build [--out-dir DIR] [--target-os OS] [--target-arch ARCH] [-j N]
    litebind paths [--out-dir DIR]
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from litebind.cache import BuildCache
from litebind.config import (
    DEBUG_VAR,
    OFFLINE_VAR,
    OUT_DIR_VARS,
    PARALLELISM_VAR,
    TARGET_ARCH_VAR,
    TARGET_OS_VAR,
    BuildConfig,
)
from litebind.errors import LitebindError
from litebind.models import TFLITE_RELEASE
from litebind.pipeline import Pipeline


def load_config(args: argparse.Namespace) -> BuildConfig:
    env = dict(os.environ)
    if args.out_dir is not None:
        env[OUT_DIR_VARS[0]] = str(args.out_dir)
    if getattr(args, "target_os", None):
        env[TARGET_OS_VAR] = args.target_os
    if getattr(args, "target_arch", None):
        env[TARGET_ARCH_VAR] = args.target_arch
    if getattr(args, "jobs", None) is not None:
        env[PARALLELISM_VAR] = str(args.jobs)
    if getattr(args, "debug_tflite", False):
        env[DEBUG_VAR] = "1"
    if getattr(args, "offline", False):
        env[OFFLINE_VAR] = "1"
    return BuildConfig.from_env(env)


def cmd_build(args: argparse.Namespace) -> None:
    config = load_config(args)
    result = Pipeline.from_config(config).run()
    print(f"library:  {result.artifact.path}")
    print(f"bindings: {result.bindings.path}")
    print(f"shim:     {result.shim.path}")
    print("link:     " + " ".join(item.as_flag() for item in result.shim.link))
    print(f"report:   {result.report_path}")


def cmd_paths(args: argparse.Namespace) -> None:
    config = load_config(args)
    layout = BuildCache(config.out_dir).layout(TFLITE_RELEASE)
    print(json.dumps({name: str(path) for name, path in layout.items()}, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="litebind", description="Build TensorFlow Lite and its ctypes bindings"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    build_p = sub.add_parser("build", help="Fetch, patch, build and bind TensorFlow Lite")
    build_p.add_argument("--out-dir", type=Path, help="Build output directory")
    build_p.add_argument("--target-os", help="Target operating system (default: host)")
    build_p.add_argument("--target-arch", help="Target architecture (default: host)")
    build_p.add_argument("-j", "--jobs", type=int, help="Parallel make jobs")
    build_p.add_argument(
        "--debug-tflite", action="store_true", help="Build the library with debug flags"
    )
    build_p.add_argument(
        "--offline", action="store_true", help="Fail instead of downloading the source archive"
    )

    paths_p = sub.add_parser("paths", help="Print the build output layout")
    paths_p.add_argument("--out-dir", type=Path, help="Build output directory")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "build":
            cmd_build(args)
        elif args.command == "paths":
            cmd_paths(args)
    except LitebindError as exc:
        print(f"error[{exc.code}]: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
