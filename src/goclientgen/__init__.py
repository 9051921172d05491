"""goclientgen: generate Go RPC client types from server method sets."""

from __future__ import annotations

from . import errors
from .config import GenerateOptions
from .generator import generate, generate_source, server_methods
from .loader.scan import load_package

__all__ = [
    "GenerateOptions",
    "errors",
    "generate",
    "generate_source",
    "load_package",
    "server_methods",
]
