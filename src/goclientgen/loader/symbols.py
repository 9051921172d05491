from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PackageRef:
    path: str
    name: str


@dataclass(frozen=True)
class GoType:
    kind: str  # basic, named, pointer, slice, array, map, chan, func, struct, interface, typeparam
    name: str = ""
    id: str = ""  # named only: fully qualified identity including type arguments
    pkg: PackageRef | None = None
    underlying: str = ""  # named only: kind of the underlying type
    args: list["GoType"] = field(default_factory=list)
    elem: "GoType | None" = None
    key: "GoType | None" = None
    length: int = 0
    dir: str = "both"  # chan only: both, send, recv
    params: list["GoType"] = field(default_factory=list)
    results: list["GoType"] = field(default_factory=list)
    variadic: bool = False
    fields: list["FieldDecl"] = field(default_factory=list)
    methods: list["MethodDecl"] = field(default_factory=list)
    embeddeds: list["GoType"] = field(default_factory=list)

    def deref(self) -> "GoType":
        if self.kind == "pointer" and self.elem is not None:
            return self.elem
        return self

    def underlying_kind(self) -> str:
        if self.kind == "named":
            return self.underlying
        return self.kind


@dataclass(frozen=True)
class FieldDecl:
    name: str
    type: GoType
    embedded: bool = False


@dataclass(frozen=True)
class MethodDecl:
    name: str
    params: list[GoType]
    results: list[GoType]
    pointer: bool = False  # declared on a *T receiver
    variadic: bool = False
    doc: str = ""  # raw comment text, `//` markers included
    pos: str = ""  # file:line:col of the method name


@dataclass(frozen=True)
class TypeDecl:
    id: str
    pkg: PackageRef
    name: str
    kind: str  # kind of the underlying type
    fields: list[FieldDecl]
    methods: list[MethodDecl]


@dataclass(frozen=True)
class PackageSnapshot:
    pkg: PackageRef
    # top-level name -> object kind (type, func, var, const)
    objects: dict[str, str]
    # type id -> declaration, for package types and everything reachable by embedding
    types: dict[str, TypeDecl]

    def type_id(self, name: str) -> str:
        return f"{self.pkg.path}.{name}"


@dataclass(frozen=True)
class LoadResult:
    local: PackageRef
    server: PackageSnapshot
