from pathlib import Path

from litebind.errors import (
    ErrorCode,
    ExternalToolError,
    IntegrityError,
    LitebindError,
    PolicyError,
    ShimCompileError,
    ValidationError,
)
from litebind.models import TFLITE_RELEASE, BuildTarget, LinkDirective, WorkingTree


def test_pinned_release_url_and_names() -> None:
    assert TFLITE_RELEASE.version == "1.12.2"
    assert TFLITE_RELEASE.url() == "https://codeload.github.com/tensorflow/tensorflow/tar.gz/v1.12.2"
    assert TFLITE_RELEASE.archive_name == "v1.12.2.tar.gz"
    assert TFLITE_RELEASE.root_name == "tensorflow-1.12.2"
    assert len(TFLITE_RELEASE.sha256) == 64


def test_working_tree_library_output_follows_target_label() -> None:
    tree = WorkingTree(root=Path("/src/tensorflow-1.12.2"), release=TFLITE_RELEASE)
    target = BuildTarget(os="linux", arch="aarch64")

    assert target.label == "linux_aarch64"
    assert tree.library_output(target) == Path(
        "/src/tensorflow-1.12.2/tensorflow/contrib/lite/tools/make/gen/linux_aarch64/lib/"
        "libtensorflow-lite.a"
    )
    assert tree.flatbuffers_include.parts[-3:] == ("downloads", "flatbuffers", "include")


def test_link_directive_renders_linker_flag() -> None:
    assert LinkDirective(kind="static", name="tensorflow-lite").as_flag() == "-ltensorflow-lite"


def test_errors_carry_stable_codes() -> None:
    assert ValidationError("x").code == ErrorCode.VALIDATION.value
    assert PolicyError("x").code == "E_POLICY"
    assert IntegrityError("x").code == "E_INTEGRITY"
    assert ExternalToolError("x").code == "E_EXTERNAL_TOOL"
    assert ShimCompileError("x").code == "E_SHIM_COMPILE"
    assert isinstance(ShimCompileError("x"), LitebindError)


def test_error_to_dict_includes_hint_and_context() -> None:
    error = ExternalToolError(
        "Native library build failed.",
        hint="look at stderr",
        context={"operation": "build", "stderr": "undefined reference"},
    )
    payload = error.to_dict()

    assert payload["code"] == "E_EXTERNAL_TOOL"
    assert payload["hint"] == "look at stderr"
    assert payload["context"] == {"operation": "build", "stderr": "undefined reference"}
    assert "undefined reference" in str(error)


def test_error_without_hint_omits_key() -> None:
    assert "hint" not in ValidationError("bad").to_dict()
