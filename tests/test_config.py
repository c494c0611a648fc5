from pathlib import Path

import pytest

from litebind.config import BuildConfig, normalize_arch, parse_flag
from litebind.errors import ValidationError


def test_from_env_reads_all_settings(tmp_path: Path) -> None:
    config = BuildConfig.from_env(
        {
            "LITEBIND_OUT_DIR": str(tmp_path),
            "LITEBIND_TARGET_OS": "linux",
            "LITEBIND_TARGET_ARCH": "arm64",
            "LITEBIND_MAKE_PARALLELISM": "8",
            "LITEBIND_DEBUG_TFLITE": "1",
            "LITEBIND_OFFLINE": "yes",
            "CXX": "clang++",
            "LITEBIND_LIBCLANG": "/usr/lib/libclang.so",
        }
    )

    assert config.out_dir == tmp_path
    assert config.target().label == "linux_aarch64"
    assert config.target().parallelism == 8
    assert config.debug is True
    assert config.policy().network_mode == "offline"
    assert config.toolchain().cxx == "clang++"
    assert config.toolchain().libclang == "/usr/lib/libclang.so"


def test_from_env_defaults(tmp_path: Path) -> None:
    config = BuildConfig.from_env({"OUT_DIR": str(tmp_path)})

    assert config.parallelism == 3
    assert config.debug is False
    assert config.offline is False
    assert config.target_os
    assert config.target_arch


def test_missing_out_dir_is_validation_error() -> None:
    with pytest.raises(ValidationError):
        BuildConfig.from_env({})


@pytest.mark.parametrize("raw", ["zero", "0", "-2"])
def test_invalid_parallelism(tmp_path: Path, raw: str) -> None:
    with pytest.raises(ValidationError):
        BuildConfig.from_env({"OUT_DIR": str(tmp_path), "LITEBIND_MAKE_PARALLELISM": raw})


def test_arch_aliases() -> None:
    assert normalize_arch("AMD64") == "x86_64"
    assert normalize_arch("arm64") == "aarch64"
    assert normalize_arch("riscv64") == "riscv64"


def test_parse_flag() -> None:
    assert parse_flag("TRUE")
    assert not parse_flag("0")
    assert not parse_flag(None)
