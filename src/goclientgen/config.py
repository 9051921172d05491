from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

DEFAULT_TRANSPORT_PACKAGE = "gopkg.in/httprequest.v1"
DEFAULT_CONTEXT_PACKAGE = "context"


def default_transport_package() -> str:
    """Return the import path of the RPC transport package.

    Override with `GOCLIENTGEN_TRANSPORT_PACKAGE`.
    """
    return os.environ.get("GOCLIENTGEN_TRANSPORT_PACKAGE") or DEFAULT_TRANSPORT_PACKAGE


def default_context_package() -> str:
    """Return the import path of the context package. Override with `GOCLIENTGEN_CONTEXT_PACKAGE`."""
    return os.environ.get("GOCLIENTGEN_CONTEXT_PACKAGE") or DEFAULT_CONTEXT_PACKAGE


def default_go() -> str:
    return os.environ.get("GOCLIENTGEN_GO") or "go"


def default_gofmt() -> str:
    return os.environ.get("GOCLIENTGEN_GOFMT") or "gofmt"


_MAJOR_SUFFIX_RE = re.compile(r"^v[0-9]+$")
_GOPKG_IN_RE = re.compile(r"\.v[0-9]+$")


def package_name_from_path(path: str) -> str:
    """Guess the package name Go code would use for `path`.

    `gopkg.in/httprequest.v1` -> `httprequest`, `example.com/foo/v2` -> `foo`.
    """
    parts = [p for p in path.split("/") if p]
    if not parts:
        return ""
    last = parts[-1]
    if _MAJOR_SUFFIX_RE.match(last) and len(parts) > 1:
        last = parts[-2]
    last = _GOPKG_IN_RE.sub("", last)
    return last.replace("-", "_").replace(".", "_")


@dataclass(frozen=True)
class GenerateOptions:
    transport_package: str = field(default_factory=default_transport_package)
    context_package: str = field(default_factory=default_context_package)
    go: str = field(default_factory=default_go)
    gofmt: str = field(default_factory=default_gofmt)
    format: bool = True

    @property
    def transport_name(self) -> str:
        return package_name_from_path(self.transport_package)

    @property
    def context_name(self) -> str:
        return package_name_from_path(self.context_package)
