from __future__ import annotations

import logging

from .methodset import Selection

logger = logging.getLogger(__name__)

# Closing the server is a lifecycle operation, not a remote call.
CLOSE_METHOD = "Close"


def is_exported(name: str) -> bool:
    return name[:1].isupper()


def service_methods(selections: list[Selection]) -> list[Selection]:
    """Keep the exported methods that make up the server's RPC surface."""
    out: list[Selection] = []
    for sel in selections:
        name = sel.method.name
        if not is_exported(name):
            logger.debug("skipping unexported method %s", name)
            continue
        if name == CLOSE_METHOD:
            logger.debug("skipping lifecycle method %s", name)
            continue
        out.append(sel)
    return out
