"""Intermediate representation of the declarations selected for generation.

The parser fills these from libclang; the code generator only ever sees
this model, so it can be exercised without a native toolchain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

TypeKind = Literal["builtin", "named", "pointer", "array", "void", "funcptr", "cstring"]
RecordKind = Literal["struct", "union"]


@dataclass(frozen=True, slots=True)
class TypeRef:
    kind: TypeKind
    name: str = ""
    element: TypeRef | None = None
    length: int = 0

    @classmethod
    def builtin(cls, name: str) -> TypeRef:
        return cls(kind="builtin", name=name)

    @classmethod
    def named(cls, name: str) -> TypeRef:
        return cls(kind="named", name=name)

    @classmethod
    def pointer(cls, element: TypeRef) -> TypeRef:
        return cls(kind="pointer", element=element)

    @classmethod
    def array(cls, element: TypeRef, length: int) -> TypeRef:
        return cls(kind="array", element=element, length=length)


VOID_PTR = TypeRef(kind="void")
FUNC_PTR = TypeRef(kind="funcptr")
C_STRING = TypeRef(kind="cstring")


@dataclass(frozen=True, slots=True)
class FieldInfo:
    name: str
    type: TypeRef
    bits: int | None = None
    anonymous: bool = False


@dataclass(slots=True)
class RecordInfo:
    name: str
    kind: RecordKind = "struct"
    fields: list[FieldInfo] = field(default_factory=list)
    size: int = -1
    align: int = -1
    complete: bool = True


@dataclass(frozen=True, slots=True)
class EnumItem:
    name: str
    value: int


@dataclass(slots=True)
class EnumInfo:
    name: str
    items: list[EnumItem] = field(default_factory=list)
    underlying: str = "c_int"


@dataclass(frozen=True, slots=True)
class AliasInfo:
    name: str
    target: TypeRef


Decl = RecordInfo | EnumInfo | AliasInfo


@dataclass(slots=True)
class DeclIndex:
    """Declarations keyed by qualified name, plus generated anonymous records."""

    decls: dict[str, Decl] = field(default_factory=dict)
    anonymous: dict[str, RecordInfo] = field(default_factory=dict)

    def get(self, name: str) -> Decl | None:
        if name in self.decls:
            return self.decls[name]
        return self.anonymous.get(name)
