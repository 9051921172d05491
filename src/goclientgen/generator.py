from __future__ import annotations

import logging
from pathlib import Path

from .api import service_methods
from .config import GenerateOptions
from .emitter import ClientMethod, format_source, render_client
from .errors import SignatureError
from .loader.scan import load_package
from .loader.symbols import LoadResult, PackageRef, PackageSnapshot
from .methodset import lookup_type, pointer_method_set
from .qualifier import ImportTable
from .signature import parse_method_type

logger = logging.getLogger(__name__)


def output_filename(client_type: str) -> str:
    return client_type.lower() + "_generated.go"


def new_import_table(*, local: PackageRef, opts: GenerateOptions) -> ImportTable:
    return ImportTable(
        local_path=local.path,
        seeds={
            opts.transport_package: opts.transport_name,
            opts.context_package: opts.context_name,
        },
    )


def server_methods(snapshot: PackageSnapshot, server_type: str, *, table: ImportTable) -> list[ClientMethod]:
    """Return the client methods for the RPC methods of `server_type`.

    Methods whose signature does not fit the calling convention are skipped
    with a warning. Every package referenced by a request or response type is
    registered in `table`, in method order.
    """
    decl = lookup_type(snapshot, server_type)
    methods: list[ClientMethod] = []
    for sel in service_methods(pointer_method_set(snapshot, decl)):
        name = sel.method.name
        try:
            ptype, rtype = parse_method_type(sel.method)
        except SignatureError as e:
            logger.warning("ignoring method %s: %s", name, e)
            continue
        methods.append(
            ClientMethod(
                name=name,
                doc=sel.method.doc,
                param_type=table.type_str(ptype),
                resp_type=table.type_str(rtype),
            )
        )
    return methods


def generate_source(
    loaded: LoadResult,
    *,
    server_type: str,
    client_type: str,
    opts: GenerateOptions,
) -> str:
    table = new_import_table(local=loaded.local, opts=opts)
    methods = server_methods(loaded.server, server_type, table=table)
    imports = table.imports()
    if not methods:
        # Only the method stubs refer to the context package.
        imports = [(p, a) for p, a in imports if p != opts.context_package]
    src = render_client(
        pkg_name=loaded.local.name,
        imports=imports,
        client_type=client_type,
        methods=methods,
        transport=table.qualify(PackageRef(path=opts.transport_package, name=opts.transport_name)),
        context=table.qualify(PackageRef(path=opts.context_package, name=opts.context_name)),
    )
    if opts.format:
        src = format_source(src, gofmt=opts.gofmt)
    return src


def generate(
    *,
    server_pkg: str,
    server_type: str,
    client_type: str,
    work_dir: Path | None = None,
    out_file: Path | None = None,
    opts: GenerateOptions | None = None,
) -> Path:
    """Generate `client_type` for the server type `server_pkg.server_type`.

    The client is written into the Go package in `work_dir` (default: the
    current directory) as `<client_type lowercased>_generated.go`, replacing any
    existing file. Nothing is written when generation fails.
    """
    opts = opts or GenerateOptions()
    work_dir = Path(work_dir) if work_dir is not None else Path.cwd()
    loaded = load_package(import_path=server_pkg, work_dir=work_dir, go=opts.go)
    src = generate_source(loaded, server_type=server_type, client_type=client_type, opts=opts)

    out = Path(out_file) if out_file is not None else work_dir / output_filename(client_type)
    out.write_text(src, encoding="utf-8")
    logger.info("wrote %s", out)
    return out
