"""Domain-specific errors for goclientgen."""

from __future__ import annotations


class GoClientGenError(Exception):
    """Base error for goclientgen."""


class LoadError(GoClientGenError):
    """Raised when a Go package cannot be loaded or type-checked."""


class NotFoundError(GoClientGenError):
    """Raised when the server type name is not declared in the package."""


class NotATypeError(GoClientGenError):
    """Raised when the server type name refers to something other than a type."""


class SignatureError(GoClientGenError):
    """Raised when a method signature does not follow the RPC calling convention."""


class AliasCollisionError(GoClientGenError):
    """Raised when two import paths would be imported under the same name."""


class GenerateError(GoClientGenError):
    """Raised when the client source cannot be rendered or formatted."""
