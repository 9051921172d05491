from __future__ import annotations

from pathlib import Path

from ..errors import LoadError


def find_module_root(start: Path) -> Path:
    """Return the nearest directory at or above `start` that contains go.mod.

    The generated client is written into the package in `start`, so that
    directory must belong to a module.
    """
    p = start
    while True:
        if (p / "go.mod").exists():
            return p
        if p.parent == p:
            break
        p = p.parent
    raise LoadError(f"go.mod not found in {start} or any parent directory")
