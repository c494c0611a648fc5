"""Render a ``ctypes`` module from extracted declarations."""

from __future__ import annotations

from typing import Any

from litebind.bindings.ir import AliasInfo, DeclIndex, EnumInfo, RecordInfo, TypeRef
from litebind.bindings.manifest import BindingManifest
from litebind.errors import BindingGenerationError
from litebind.models import PinnedRelease

PRELUDE = '''\
import ctypes
import enum


class _Record:
    def __repr__(self):
        fields = ", ".join(
            f"{name}={getattr(self, name)!r}"
            for name, *_ in getattr(type(self), "_fields_", ())
            if not name.startswith("_")
        )
        return f"{type(self).__name__}({fields})"


class _Struct(_Record, ctypes.Structure):
    pass


class _Union(_Record, ctypes.Union):
    pass


class _Opaque(ctypes.Structure):
    """Handle type without accessible layout; use through ctypes.POINTER only."""

    def __repr__(self):
        return f"<opaque {type(self).__name__}>"
'''

CHECK_LAYOUT = '''\
def check_layout():
    """Return the records whose ctypes layout differs from the parsed one."""
    mismatches = []
    for name, (size, align) in LAYOUT.items():
        record = globals()[name]
        if ctypes.sizeof(record) != size or ctypes.alignment(record) != align:
            mismatches.append(name)
    return mismatches
'''


class ModuleWriter:
    def __init__(self, index: DeclIndex, manifest: BindingManifest, release: PinnedRelease) -> None:
        self.index = index
        self.manifest = manifest
        self.release = release
        self.python_names: dict[str, str] = {}
        for entry in manifest.entries:
            python_name = entry.python_name
            if python_name in self.python_names.values() or python_name.startswith("_"):
                raise BindingGenerationError(
                    "Two manifest names map to the same Python name.",
                    context={"operation": "generate_bindings", "name": entry.name},
                )
            self.python_names[entry.name] = python_name
        for name in sorted(index.anonymous):
            self.python_names[name] = name

    def render(self) -> str:
        out: list[str] = [
            f"# Generated by litebind for tensorflow-lite {self.release.version}. Do not edit.",
            '"""ctypes declarations for the TensorFlow Lite ABI surface."""',
            "",
            PRELUDE.rstrip("\n"),
        ]
        out.extend(self._enums())
        out.extend(self._record_stubs())
        out.extend(self._aliases())
        out.extend(self._record_fields())
        out.extend(self._tables())
        return "\n".join(out).rstrip("\n") + "\n"

    def _enums(self) -> list[str]:
        lines: list[str] = []
        for name, decl in self._manifest_decls(EnumInfo):
            lines.extend(["", "", f"class {self.python_names[name]}(enum.IntEnum):"])
            if not decl.items:
                lines.append("    pass")
            lines.extend(f"    {item.name} = {item.value}" for item in decl.items)
            lines.append("")
            lines.extend(
                f"{item.name} = {self.python_names[name]}.{item.name}" for item in decl.items
            )
        return lines

    def _aliases(self) -> list[str]:
        lines: list[str] = []
        for name, decl in self._manifest_decls(AliasInfo):
            lines.append(f"{self.python_names[name]} = {self._ctype(decl.target, owner=name)}")
        if lines:
            lines.insert(0, "")
            lines.insert(0, "")
        return lines

    def _record_stubs(self) -> list[str]:
        lines: list[str] = []
        for entry in self.manifest.entries:
            decl = self.index.decls[entry.name]
            if entry.opaque:
                lines.extend(
                    [
                        "",
                        "",
                        f"class {self.python_names[entry.name]}(_Opaque):",
                        f'    """Opaque ``{entry.name}``."""',
                    ]
                )
            elif isinstance(decl, RecordInfo):
                lines.extend(self._stub(entry.name, decl))
        for name in sorted(self.index.anonymous):
            lines.extend(self._stub(name, self._record(name)))
        return lines

    def _stub(self, name: str, decl: RecordInfo) -> list[str]:
        base = "_Union" if decl.kind == "union" else "_Struct"
        return ["", "", f"class {self.python_names[name]}({base}):", "    pass"]

    def _record_fields(self) -> list[str]:
        lines: list[str] = [""]
        for name in self._field_order():
            decl = self._record(name)
            python_name = self.python_names[name]
            lines.append("")
            anonymous = [f.name for f in decl.fields if f.anonymous]
            if anonymous:
                lines.append(f"{python_name}._anonymous_ = {tuple(anonymous)!r}")
            if not decl.fields:
                lines.append(f"{python_name}._fields_ = []")
                continue
            lines.append(f"{python_name}._fields_ = [")
            for field in decl.fields:
                ctype = self._ctype(field.type, owner=name)
                if field.bits is not None:
                    lines.append(f'    ("{field.name}", {ctype}, {field.bits}),')
                else:
                    lines.append(f'    ("{field.name}", {ctype}),')
            lines.append("]")
        return lines

    def _tables(self) -> list[str]:
        lines = ["", "", "QUALIFIED_NAMES = {"]
        lines.extend(
            f'    "{entry.name}": "{self.python_names[entry.name]}",'
            for entry in self.manifest.entries
        )
        lines.append("}")

        lines.extend(["", "LAYOUT = {"])
        for name in self._field_order():
            decl = self._record(name)
            if decl.size >= 0 and decl.align > 0:
                lines.append(f'    "{self.python_names[name]}": ({decl.size}, {decl.align}),')
        lines.extend(["}", "", "", CHECK_LAYOUT])

        exported = sorted(self.python_names[entry.name] for entry in self.manifest.entries)
        lines.append("__all__ = [")
        lines.extend(f'    "{name}",' for name in exported)
        lines.append("]")
        return lines

    def _field_order(self) -> list[str]:
        """Concrete records ordered so by-value members are complete before use."""
        order: list[str] = []
        visiting: set[str] = set()

        def visit(name: str) -> None:
            if name in order:
                return
            if name in visiting:
                raise BindingGenerationError(
                    "Records contain each other by value.",
                    context={"operation": "generate_bindings", "name": name},
                )
            visiting.add(name)
            for field in self._record(name).fields:
                for dependency in _by_value_names(field.type):
                    if isinstance(self.index.get(dependency), RecordInfo) and not self._is_opaque(
                        dependency
                    ):
                        visit(dependency)
            visiting.discard(name)
            order.append(name)

        for entry in self.manifest.entries:
            if not entry.opaque and isinstance(self.index.decls[entry.name], RecordInfo):
                visit(entry.name)
        for name in sorted(self.index.anonymous):
            visit(name)
        return order

    def _ctype(self, ref: TypeRef, *, owner: str) -> str:
        if ref.kind == "builtin":
            return f"ctypes.{ref.name}"
        if ref.kind in ("void", "funcptr"):
            return "ctypes.c_void_p"
        if ref.kind == "cstring":
            return "ctypes.c_char_p"
        if ref.kind == "array":
            element = _element(ref, owner)
            return f"({self._ctype(element, owner=owner)} * {ref.length})"
        if ref.kind == "pointer":
            element = _element(ref, owner)
            if element.kind == "named":
                if not self._is_emitted(element.name):
                    return "ctypes.c_void_p"
                if self._is_opaque(element.name):
                    return f"ctypes.POINTER({self.python_names[element.name]})"
            return f"ctypes.POINTER({self._ctype(element, owner=owner)})"

        if not self._is_emitted(ref.name):
            raise BindingGenerationError(
                "Record uses a type outside the binding manifest by value.",
                hint="Add the type to the manifest or keep it behind a pointer.",
                context={"operation": "generate_bindings", "owner": owner, "type": ref.name},
            )
        if self._is_opaque(ref.name):
            raise BindingGenerationError(
                "Record embeds an opaque type by value.",
                context={"operation": "generate_bindings", "owner": owner, "type": ref.name},
            )
        decl = self.index.get(ref.name)
        if isinstance(decl, EnumInfo):
            return f"ctypes.{decl.underlying}"
        return self.python_names[ref.name]

    def _record(self, name: str) -> RecordInfo:
        decl = self.index.get(name)
        if not isinstance(decl, RecordInfo):
            raise BindingGenerationError(
                "Expected a record declaration.",
                context={"operation": "generate_bindings", "name": name},
            )
        return decl

    def _is_emitted(self, name: str) -> bool:
        return name in self.python_names and not self.manifest.is_blocked(name)

    def _is_opaque(self, name: str) -> bool:
        entry = self.manifest.get(name)
        return entry is not None and entry.opaque

    def _manifest_decls(self, kind: type) -> list[tuple[str, Any]]:
        return [
            (entry.name, self.index.decls[entry.name])
            for entry in self.manifest.entries
            if not entry.opaque and isinstance(self.index.decls[entry.name], kind)
        ]


def _element(ref: TypeRef, owner: str) -> TypeRef:
    if ref.element is None:
        raise BindingGenerationError(
            f"Malformed {ref.kind} type without an element type.",
            context={"operation": "generate_bindings", "owner": owner},
        )
    return ref.element


def _by_value_names(ref: TypeRef) -> list[str]:
    if ref.kind == "named":
        return [ref.name]
    if ref.kind == "array" and ref.element is not None:
        return _by_value_names(ref.element)
    return []


def render_module(index: DeclIndex, manifest: BindingManifest, release: PinnedRelease) -> str:
    return ModuleWriter(index, manifest, release).render()
