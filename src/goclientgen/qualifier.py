from __future__ import annotations

import logging
from typing import Callable

from .errors import AliasCollisionError
from .loader.symbols import GoType, PackageRef

logger = logging.getLogger(__name__)

Qualifier = Callable[[PackageRef], str]


def type_string(t: GoType, qualify: Qualifier) -> str:
    """Render `t` as Go source, naming packages with `qualify`.

    The output matches go/types.TypeString: an empty qualifier result leaves the
    type name unqualified, and packages are qualified outermost first.
    """
    k = t.kind
    if k in {"basic", "typeparam"}:
        return t.name
    if k == "named":
        s = t.name
        if t.pkg is not None:
            q = qualify(t.pkg)
            if q:
                s = f"{q}.{s}"
        if t.args:
            s += "[" + ", ".join(type_string(a, qualify) for a in t.args) + "]"
        return s
    if k == "pointer":
        return "*" + _elem(t, qualify)
    if k == "slice":
        return "[]" + _elem(t, qualify)
    if k == "array":
        return f"[{t.length}]" + _elem(t, qualify)
    if k == "map":
        assert t.key is not None
        return f"map[{type_string(t.key, qualify)}]" + _elem(t, qualify)
    if k == "chan":
        if t.dir == "send":
            prefix = "chan<- "
        elif t.dir == "recv":
            prefix = "<-chan "
        else:
            prefix = "chan "
        elem = _elem(t, qualify)
        # `chan (<-chan T)` needs parentheses to stay unambiguous.
        if t.dir == "both" and t.elem is not None and t.elem.kind == "chan" and t.elem.dir == "recv":
            elem = f"({elem})"
        return prefix + elem
    if k == "func":
        return "func" + _signature(t.params, t.results, t.variadic, qualify)
    if k == "struct":
        items = []
        for f in t.fields:
            ft = type_string(f.type, qualify)
            items.append(ft if f.embedded else f"{f.name} {ft}")
        return "struct{" + "; ".join(items) + "}"
    if k == "interface":
        items = [m.name + _signature(m.params, m.results, m.variadic, qualify) for m in t.methods]
        items.extend(type_string(e, qualify) for e in t.embeddeds)
        return "interface{" + "; ".join(items) + "}"
    return t.name


def _elem(t: GoType, qualify: Qualifier) -> str:
    assert t.elem is not None
    return type_string(t.elem, qualify)


def _signature(params: list[GoType], results: list[GoType], variadic: bool, qualify: Qualifier) -> str:
    ps: list[str] = []
    for i, p in enumerate(params):
        if variadic and i == len(params) - 1 and p.kind == "slice" and p.elem is not None:
            ps.append("..." + type_string(p.elem, qualify))
        else:
            ps.append(type_string(p, qualify))
    s = "(" + ", ".join(ps) + ")"
    if not results:
        return s
    if len(results) == 1:
        return s + " " + type_string(results[0], qualify)
    return s + " (" + ", ".join(type_string(r, qualify) for r in results) + ")"


class ImportTable:
    """Injective map from import path to the identifier used in generated code.

    The first package to claim an identifier keeps it. A second package with the
    same name is an error rather than being renamed.
    """

    def __init__(self, *, local_path: str, seeds: dict[str, str] | None = None):
        self._aliases: dict[str, str] = {}
        for path, alias in (seeds or {}).items():
            self._assign(path, alias)
        # The generated file lives in the local package: its types stay unqualified.
        self._aliases[local_path] = ""
        self._local_path = local_path

    def qualify(self, pkg: PackageRef) -> str:
        alias = self._aliases.get(pkg.path)
        if alias is not None:
            return alias
        self._assign(pkg.path, pkg.name)
        logger.debug("importing %s as %s", pkg.path, pkg.name)
        return pkg.name

    def _assign(self, path: str, alias: str) -> None:
        for old_path, old_alias in self._aliases.items():
            if old_alias == alias and old_path != path:
                raise AliasCollisionError(f"duplicate package name {path} vs {old_path}")
        self._aliases[path] = alias

    def type_str(self, t: GoType | None) -> str:
        if t is None:
            return ""
        return type_string(t, self.qualify)

    def imports(self) -> list[tuple[str, str]]:
        """Return (path, alias) pairs to import, sorted by path, without the local package."""
        return sorted((p, a) for p, a in self._aliases.items() if p != self._local_path)
