from __future__ import annotations

from dataclasses import dataclass

from .errors import NotATypeError, NotFoundError
from .loader.symbols import MethodDecl, PackageSnapshot, TypeDecl


@dataclass(frozen=True)
class Selection:
    method: MethodDecl
    recv: str  # id of the type declaring the method
    index: tuple[int, ...]  # embedded field indices from the outer type to recv


def lookup_type(snapshot: PackageSnapshot, name: str) -> TypeDecl:
    kind = snapshot.objects.get(name)
    if kind is None:
        raise NotFoundError(f"type {name} not found in {snapshot.pkg.path}")
    if kind != "type":
        raise NotATypeError(f"{name} is not a type")
    decl = snapshot.types.get(snapshot.type_id(name))
    if decl is None:
        raise NotFoundError(f"type {name} not found in {snapshot.pkg.path}")
    return decl


def declared_methods(decl: TypeDecl) -> dict[str, MethodDecl]:
    """Methods declared on T and *T, pointer receivers winning on name clashes."""
    out: dict[str, MethodDecl] = {}
    for m in decl.methods:
        if not m.pointer:
            out[m.name] = m
    for m in decl.methods:
        if m.pointer:
            out[m.name] = m
    return out


def pointer_method_set(snapshot: PackageSnapshot, decl: TypeDecl) -> list[Selection]:
    """Compute the method set of *T, ordered by method name.

    Embedded fields are expanded breadth-first. At each depth, methods and
    fields seen at a shallower depth win; a name found twice at the same depth
    (two methods, or a method and a field) is ambiguous and hides the name at
    every deeper level too. The same embedded type reached through more than one
    path at the same depth only contributes ambiguities, and so does everything
    it embeds.
    """
    if decl.kind == "interface":
        # A pointer to an interface has no methods.
        return []

    base: dict[str, Selection | None] = {}
    seen: set[str] = set()
    # (type, embedding path, reached through more than one path)
    current: list[tuple[TypeDecl, tuple[int, ...], bool]] = [(decl, (), False)]

    while current:
        entries: dict[str, tuple[TypeDecl, tuple[int, ...], bool]] = {}
        for d, index, multiple in current:
            if d.id in entries:
                first, first_index, _ = entries[d.id]
                entries[d.id] = (first, first_index, True)
            else:
                entries[d.id] = (d, index, multiple)

        methods: dict[str, Selection | None] = {}
        fields: set[str] = set()
        following: list[tuple[TypeDecl, tuple[int, ...], bool]] = []

        for d, index, multiple in entries.values():
            if d.id in seen:
                continue
            seen.add(d.id)

            for name, m in declared_methods(d).items():
                if name in methods or multiple:
                    methods[name] = None
                else:
                    methods[name] = Selection(method=m, recv=d.id, index=index)

            if d.kind != "struct":
                continue
            for i, f in enumerate(d.fields):
                fields.add(f.name)
                if not f.embedded:
                    continue
                t = f.type.deref()
                if t.kind == "named" and t.id in snapshot.types:
                    following.append((snapshot.types[t.id], index + (i,), multiple))

        for name, sel in methods.items():
            if name not in base:
                base[name] = None if name in fields else sel
        for name in fields:
            base.setdefault(name, None)
        current = following

    return [sel for _, sel in sorted(base.items()) if sel is not None]
