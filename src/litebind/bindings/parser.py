"""Extract manifest declarations from C++ headers with libclang."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from clang.cindex import (
    Config,
    Cursor,
    CursorKind,
    Diagnostic,
    Index,
    LibclangError,
    TranslationUnit,
    TranslationUnitLoadError,
    Type,
    TypeKind,
)

from litebind.bindings.ir import (
    C_STRING,
    FUNC_PTR,
    VOID_PTR,
    AliasInfo,
    DeclIndex,
    EnumInfo,
    EnumItem,
    FieldInfo,
    RecordInfo,
    TypeRef,
)
from litebind.bindings.manifest import BindingManifest, ManifestEntry
from litebind.errors import BindingGenerationError

_BUILTINS: dict[TypeKind, str] = {
    TypeKind.BOOL: "c_bool",
    TypeKind.CHAR_S: "c_char",
    TypeKind.CHAR_U: "c_char",
    TypeKind.SCHAR: "c_byte",
    TypeKind.UCHAR: "c_ubyte",
    TypeKind.SHORT: "c_short",
    TypeKind.USHORT: "c_ushort",
    TypeKind.INT: "c_int",
    TypeKind.UINT: "c_uint",
    TypeKind.LONG: "c_long",
    TypeKind.ULONG: "c_ulong",
    TypeKind.LONGLONG: "c_longlong",
    TypeKind.ULONGLONG: "c_ulonglong",
    TypeKind.FLOAT: "c_float",
    TypeKind.DOUBLE: "c_double",
    TypeKind.LONGDOUBLE: "c_longdouble",
    TypeKind.WCHAR: "c_wchar",
    TypeKind.CHAR16: "c_uint16",
    TypeKind.CHAR32: "c_uint32",
}

# Platform typedefs kept by name instead of being desugared.
_FIXED_WIDTH: dict[str, str] = {
    "size_t": "c_size_t",
    "ssize_t": "c_ssize_t",
    "ptrdiff_t": "c_ssize_t",
    "intptr_t": "c_ssize_t",
    "uintptr_t": "c_size_t",
    "int8_t": "c_int8",
    "int16_t": "c_int16",
    "int32_t": "c_int32",
    "int64_t": "c_int64",
    "uint8_t": "c_uint8",
    "uint16_t": "c_uint16",
    "uint32_t": "c_uint32",
    "uint64_t": "c_uint64",
}

_RECORD_KINDS = {
    CursorKind.STRUCT_DECL: "struct",
    CursorKind.CLASS_DECL: "struct",
    CursorKind.UNION_DECL: "union",
}
_TYPEDEF_KINDS = (CursorKind.TYPEDEF_DECL, CursorKind.TYPE_ALIAS_DECL)
_TRANSPARENT_SCOPES = ("LINKAGE_SPEC", "UNEXPOSED_DECL")


def load_libclang(library_file: str | None) -> Index:
    if library_file and not Config.loaded:
        Config.set_library_file(library_file)
    try:
        return Index.create()
    except LibclangError as exc:
        raise BindingGenerationError(
            "libclang could not be loaded.",
            hint="Install the libclang wheel or set LITEBIND_LIBCLANG to libclang's path.",
            context={"operation": "generate_bindings", "cause": str(exc)},
        ) from exc


def parse_header(
    header: Path,
    *,
    args: Sequence[str],
    manifest: BindingManifest,
    library_file: str | None = None,
) -> DeclIndex:
    """Parse *header* and return the manifest's declarations."""
    index = load_libclang(library_file)
    try:
        unit = index.parse(
            str(header),
            args=list(args),
            options=TranslationUnit.PARSE_SKIP_FUNCTION_BODIES,
        )
    except TranslationUnitLoadError as exc:
        raise BindingGenerationError(
            "libclang failed to parse the binding header.",
            context={"operation": "generate_bindings", "header": str(header), "cause": str(exc)},
        ) from exc

    errors = [diag for diag in unit.diagnostics if diag.severity >= Diagnostic.Error]
    if errors:
        raise BindingGenerationError(
            "Binding header does not compile.",
            hint="Check that the working tree and its downloaded dependencies are complete.",
            context={
                "operation": "generate_bindings",
                "header": str(header),
                "diagnostics": "\n".join(str(diag) for diag in errors),
            },
        )
    return DeclExtractor(collect_declarations(unit.cursor), manifest).run()


def collect_declarations(root: Cursor) -> dict[str, Cursor]:
    """Index named records, enums and typedefs by qualified name."""
    found: dict[str, Cursor] = {}

    def visit(cursor: Cursor, scope: str, in_record: bool) -> None:
        for child in cursor.get_children():
            kind = child.kind
            if kind == CursorKind.NAMESPACE:
                visit(child, qualify(scope, child.spelling, False), False)
            elif kind.name in _TRANSPARENT_SCOPES:
                visit(child, scope, in_record)
            elif kind in _RECORD_KINDS or kind == CursorKind.ENUM_DECL or kind in _TYPEDEF_KINDS:
                if is_unnamed(child):
                    continue
                name = qualify(scope, child.spelling, in_record)
                if _rank(child) > _rank(found.get(name)):
                    found[name] = child
                if kind in _RECORD_KINDS and child.is_definition():
                    visit(child, name, True)

    visit(root, "", False)
    return found


def qualify(scope: str, name: str, in_record: bool) -> str:
    if not scope:
        return name
    if not name:
        return scope
    return f"{scope}_{name}" if in_record else f"{scope}::{name}"


def qualified_name(cursor: Cursor) -> str:
    """Name *cursor* the way ``collect_declarations`` keys it."""
    chain: list[Cursor] = []
    current = cursor
    while current is not None and current.kind != CursorKind.TRANSLATION_UNIT:
        if current.kind.name not in _TRANSPARENT_SCOPES:
            chain.append(current)
        current = current.semantic_parent
    name = ""
    in_record = False
    for node in reversed(chain):
        name = qualify(name, node.spelling, in_record)
        in_record = node.kind in _RECORD_KINDS
    return name


def is_unnamed(cursor: Cursor) -> bool:
    # libclang spells unnamed tags as "" or "(unnamed struct at ...)" depending on version
    spelling = cursor.spelling
    return not spelling or "(unnamed" in spelling or "(anonymous" in spelling


def _rank(cursor: Cursor | None) -> int:
    if cursor is None:
        return 0
    if cursor.kind in _TYPEDEF_KINDS:
        return 2
    return 3 if cursor.is_definition() else 1


class DeclExtractor:
    def __init__(self, cursors: dict[str, Cursor], manifest: BindingManifest) -> None:
        self.cursors = cursors
        self.manifest = manifest
        self.index = DeclIndex()
        self.tag_names = self._tag_names()

    def run(self) -> DeclIndex:
        for entry in self.manifest.entries:
            cursor = self.cursors.get(entry.name)
            if cursor is None:
                raise BindingGenerationError(
                    "Manifest name not found in the parsed headers.",
                    hint="Check the name's namespace against the pinned headers.",
                    context={"operation": "generate_bindings", "name": entry.name},
                )
            self.index.decls[entry.name] = self._extract(entry, cursor)
        return self.index

    def _tag_names(self) -> dict[str, str]:
        """Map tags such as ``_TfLiteDelegate`` to the manifest typedef naming them."""
        names: dict[str, str] = {}
        for entry in self.manifest.entries:
            cursor = self.cursors.get(entry.name)
            if cursor is None or cursor.kind not in _TYPEDEF_KINDS:
                continue
            declared = cursor.underlying_typedef_type.get_canonical().get_declaration()
            if declared.kind in _RECORD_KINDS or declared.kind == CursorKind.ENUM_DECL:
                if not is_unnamed(declared):
                    names.setdefault(qualified_name(declared), entry.name)
        return names

    def _extract(self, entry: ManifestEntry, cursor: Cursor) -> RecordInfo | EnumInfo | AliasInfo:
        target = cursor
        if cursor.kind in _TYPEDEF_KINDS:
            declared = cursor.underlying_typedef_type.get_canonical().get_declaration()
            if declared.kind in _RECORD_KINDS or declared.kind == CursorKind.ENUM_DECL:
                target = declared
            elif entry.opaque:
                return RecordInfo(name=entry.name, complete=False)
            else:
                underlying = cursor.underlying_typedef_type
                return AliasInfo(
                    name=entry.name,
                    target=self._type_ref(underlying, owner=entry.python_name),
                )

        if entry.opaque:
            definition = target.get_definition()
            return RecordInfo(
                name=entry.name,
                kind=_RECORD_KINDS.get(target.kind, "struct"),
                complete=definition is not None,
            )
        if target.kind == CursorKind.ENUM_DECL:
            return self._enum(entry.name, target)
        return self._record(entry.name, target, owner=entry.python_name)

    def _enum(self, name: str, cursor: Cursor) -> EnumInfo:
        cursor = cursor.get_definition() or cursor
        items = [
            EnumItem(name=child.spelling, value=child.enum_value)
            for child in cursor.get_children()
            if child.kind == CursorKind.ENUM_CONSTANT_DECL
        ]
        underlying = _BUILTINS.get(cursor.enum_type.get_canonical().kind, "c_int")
        return EnumInfo(name=name, items=items, underlying=underlying)

    def _record(self, name: str, cursor: Cursor, *, owner: str) -> RecordInfo:
        definition = cursor.get_definition()
        if definition is None:
            raise BindingGenerationError(
                "Concrete manifest entry has no definition in the parsed headers.",
                hint="Mark the entry opaque or include the header that defines it.",
                context={"operation": "generate_bindings", "name": name},
            )
        info = RecordInfo(
            name=name,
            kind=_RECORD_KINDS[definition.kind],
            size=definition.type.get_size(),
            align=definition.type.get_align(),
        )

        children = list(definition.get_children())
        unnamed = [c for c in children if c.kind in _RECORD_KINDS and is_unnamed(c)]
        consumed = [
            c
            for c in unnamed
            for field in children
            if field.kind == CursorKind.FIELD_DECL
            and field.type.get_canonical().get_declaration() == c
        ]
        anonymous_count = 0
        for child in children:
            if child.kind == CursorKind.FIELD_DECL and child.spelling:
                ref = self._type_ref(child.type, owner=f"{owner}_{child.spelling}")
                bits = child.get_bitfield_width() if child.is_bitfield() else None
                info.fields.append(FieldInfo(name=child.spelling, type=ref, bits=bits))
                continue
            if child.kind == CursorKind.FIELD_DECL:
                record = child.type.get_canonical().get_declaration()
            elif child in unnamed and child not in consumed:
                record = child
            else:
                continue
            # anonymous struct/union member, flattened through ctypes' _anonymous_
            member = f"_anon{anonymous_count}"
            anonymous_count += 1
            anon_name = self._anonymous_record(record, f"{owner}_{member}")
            info.fields.append(FieldInfo(name=member, type=TypeRef.named(anon_name), anonymous=True))
        return info

    def _anonymous_record(self, cursor: Cursor, name: str) -> str:
        if name not in self.index.anonymous:
            self.index.anonymous[name] = self._record(name, cursor, owner=name)
        return name

    def _type_ref(self, ctype: Type, *, owner: str) -> TypeRef:
        kind = ctype.kind
        if kind == TypeKind.ELABORATED:
            return self._type_ref(ctype.get_named_type(), owner=owner)
        if kind == TypeKind.TYPEDEF:
            decl = ctype.get_declaration()
            name = qualified_name(decl)
            if self.manifest.get(name) is not None or self.manifest.is_blocked(name):
                return TypeRef.named(name)
            if decl.spelling in _FIXED_WIDTH:
                return TypeRef.builtin(_FIXED_WIDTH[decl.spelling])
            return self._type_ref(ctype.get_canonical(), owner=owner)
        if kind in _BUILTINS:
            return TypeRef.builtin(_BUILTINS[kind])
        if kind in (TypeKind.POINTER, TypeKind.LVALUEREFERENCE, TypeKind.RVALUEREFERENCE):
            pointee = ctype.get_pointee()
            canonical = pointee.get_canonical()
            if canonical.kind in (TypeKind.FUNCTIONPROTO, TypeKind.FUNCTIONNOPROTO):
                return FUNC_PTR
            if canonical.kind == TypeKind.VOID:
                return VOID_PTR
            if canonical.kind in (TypeKind.CHAR_S, TypeKind.CHAR_U) and pointee.is_const_qualified():
                return C_STRING
            return TypeRef.pointer(self._type_ref(pointee, owner=owner))
        if kind == TypeKind.CONSTANTARRAY:
            return TypeRef.array(self._type_ref(ctype.element_type, owner=owner), ctype.element_count)
        if kind == TypeKind.INCOMPLETEARRAY:
            return TypeRef.array(self._type_ref(ctype.element_type, owner=owner), 0)
        if kind in (TypeKind.RECORD, TypeKind.ENUM):
            decl = ctype.get_declaration()
            if is_unnamed(decl):
                if kind == TypeKind.ENUM:
                    return TypeRef.builtin(_BUILTINS.get(decl.enum_type.get_canonical().kind, "c_int"))
                return TypeRef.named(self._anonymous_record(decl, owner))
            name = qualified_name(decl)
            return TypeRef.named(self.tag_names.get(name, name))
        raise BindingGenerationError(
            "Unsupported type at the binding boundary.",
            context={"operation": "generate_bindings", "type": ctype.spelling, "owner": owner},
        )
