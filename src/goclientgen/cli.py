from __future__ import annotations

import argparse
import importlib.metadata
import logging
from pathlib import Path

from .errors import GoClientGenError


def _version() -> str:
    try:
        return importlib.metadata.version("goclientgen")
    except importlib.metadata.PackageNotFoundError:
        # Running from a source checkout.
        return "0.0.0"


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="goclientgen",
        description=(
            "Generate a Go client type whose methods forward to the RPC methods "
            "of a server type. Run it from the package the client should live in."
        ),
    )
    parser.add_argument("server_package", metavar="server-package", help="Import path of the server package.")
    parser.add_argument("server_type", metavar="server-type", help="Name of the server type.")
    parser.add_argument("client_type", metavar="client-type", help="Name of the client type to generate.")
    parser.add_argument(
        "--out",
        default=None,
        help="Output file (default: <client-type lowercased>_generated.go in the current directory).",
    )
    parser.add_argument(
        "--transport-package",
        default=None,
        help=(
            "Import path of the RPC transport package (default: GOCLIENTGEN_TRANSPORT_PACKAGE or "
            "gopkg.in/httprequest.v1). Its package name is assumed to be the last path element, "
            "without a /vN or .vN version suffix."
        ),
    )
    parser.add_argument(
        "--context-package",
        default=None,
        help=(
            "Import path of the context package (default: GOCLIENTGEN_CONTEXT_PACKAGE or context). "
            "Its package name is derived the same way as for --transport-package."
        ),
    )
    parser.add_argument("--no-format", action="store_true", help="Do not run gofmt on the generated source.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    from .config import GenerateOptions
    from .generator import generate

    overrides: dict[str, object] = {}
    if args.transport_package:
        overrides["transport_package"] = args.transport_package
    if args.context_package:
        overrides["context_package"] = args.context_package
    if args.no_format:
        overrides["format"] = False
    opts = GenerateOptions(**overrides)  # type: ignore[arg-type]

    try:
        generate(
            server_pkg=args.server_package,
            server_type=args.server_type,
            client_type=args.client_type,
            out_file=Path(args.out) if args.out else None,
            opts=opts,
        )
    except GoClientGenError as e:
        raise SystemExit(f"error: {e}") from None
