from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest

from _gojson import LOCAL, SERVER, basic, decl, error_t, field, loader_output, method, named, ptr


def _module(tmp_path: Path) -> Path:
    mod_dir = tmp_path / "gomod"
    mod_dir.mkdir()
    (mod_dir / "go.mod").write_text("module example.com/client\n\ngo 1.22\n", encoding="utf-8")
    (mod_dir / "client.go").write_text("package client\n", encoding="utf-8")
    return mod_dir


def _server_output() -> dict:
    return loader_output(
        [
            decl(
                "Server",
                fields=[field("db", ptr(basic("int")))],
                methods=[
                    method(
                        "Get",
                        [ptr(named("GetRequest"))],
                        [named("GetResponse"), error_t()],
                        doc="// Get fetches a thing.",
                    )
                ],
            ),
            decl("GetRequest"),
            decl("GetResponse"),
        ],
        objects={"Server": "type", "GetRequest": "type", "GetResponse": "type", "New": "func"},
    )


def test_parse_load_output_builds_snapshot():
    from goclientgen.loader.scan import parse_load_output

    r = parse_load_output(_server_output(), import_path=SERVER["path"])
    assert r.local.path == LOCAL["path"]
    assert r.local.name == "client"
    assert r.server.pkg.name == "server"
    assert r.server.objects["New"] == "func"

    server = r.server.types["example.com/server.Server"]
    assert server.kind == "struct"
    assert server.fields[0].name == "db"
    assert server.fields[0].type.kind == "pointer"
    (get,) = server.methods
    assert get.pointer
    assert get.doc == "// Get fetches a thing."
    assert get.params[0].elem.underlying == "struct"
    assert get.results[1].pkg is None
    assert get.results[1].name == "error"


def test_parse_load_output_rejects_broken_local_package():
    from goclientgen.errors import LoadError
    from goclientgen.loader.scan import parse_load_output

    obj = _server_output()
    obj["local"] = {"path": "", "name": "", "error": "no Go files in /tmp/x"}
    with pytest.raises(LoadError, match=r"cannot open package in current directory: no Go files"):
        parse_load_output(obj, import_path=SERVER["path"])


@pytest.mark.parametrize("count", [0, 2])
def test_parse_load_output_requires_exactly_one_package(count):
    from goclientgen.errors import LoadError
    from goclientgen.loader.scan import parse_load_output

    obj = _server_output()
    obj["packages"] = [dict(SERVER) for _ in range(count)]
    with pytest.raises(LoadError, match=rf"go list returned {count} packages, not 1"):
        parse_load_output(obj, import_path="example.com/...")


def test_parse_load_output_reports_unresolvable_package():
    from goclientgen.errors import LoadError
    from goclientgen.loader.scan import parse_load_output

    obj = _server_output()
    obj["packages"] = [{"path": "example.com/nope", "name": "", "error": "cannot find module"}]
    with pytest.raises(LoadError, match=r"cannot load 'example.com/nope': cannot find module"):
        parse_load_output(obj, import_path="example.com/nope")


def test_parse_load_output_reports_type_errors():
    from goclientgen.errors import LoadError
    from goclientgen.loader.scan import parse_load_output

    obj = _server_output()
    obj["errors"] = ["server.go:3:9: undefined: Foo"]
    with pytest.raises(LoadError, match=r"does not type-check") as ei:
        parse_load_output(obj, import_path=SERVER["path"])
    assert "undefined: Foo" in str(ei.value)


def test_parse_type_rejects_malformed_descriptor():
    from goclientgen.errors import LoadError
    from goclientgen.loader.scan import parse_type

    with pytest.raises(LoadError, match=r"malformed type descriptor"):
        parse_type({"name": "int"})


def test_load_package_runs_go_loader(monkeypatch, tmp_path: Path):
    from goclientgen.loader.scan import load_package

    mod_dir = _module(tmp_path)
    payload = b"go: downloading nothing\n" + json.dumps(_server_output()).encode("utf-8")
    seen: list[list[str]] = []

    def fake_run(cmd, **kwargs):  # noqa: ANN001
        seen.append(cmd)
        assert (Path(kwargs["cwd"]) / "main.go").exists()
        return subprocess.CompletedProcess(args=cmd, returncode=0, stdout=payload, stderr=b"")

    monkeypatch.setattr(subprocess, "run", fake_run)
    r = load_package(import_path=SERVER["path"], work_dir=mod_dir)
    assert "example.com/server.Server" in r.server.types
    assert seen[0][:3] == ["go", "run", "."]
    assert seen[0][-2:] == ["--pkg", SERVER["path"]]
    assert str(mod_dir.resolve()) in seen[0]


def test_load_package_missing_go_raises_load_error(monkeypatch, tmp_path: Path):
    from goclientgen.errors import LoadError
    from goclientgen.loader.scan import load_package

    mod_dir = _module(tmp_path)

    def fake_run(*args, **kwargs):  # noqa: ANN001
        raise FileNotFoundError("go")

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(LoadError, match=r"Go toolchain not found"):
        load_package(import_path=SERVER["path"], work_dir=mod_dir)


def test_load_package_loader_failure_raises_load_error(monkeypatch, tmp_path: Path):
    from goclientgen.errors import LoadError
    from goclientgen.loader.scan import load_package

    mod_dir = _module(tmp_path)

    def fake_run(cmd, **kwargs):  # noqa: ANN001
        return subprocess.CompletedProcess(args=cmd, returncode=1, stdout=b"", stderr=b"go list . failed")

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(LoadError, match=r"go package loader failed\ngo list . failed"):
        load_package(import_path=SERVER["path"], work_dir=mod_dir)


def test_load_package_outside_module_raises_load_error(tmp_path: Path):
    from goclientgen.errors import LoadError
    from goclientgen.loader.scan import load_package

    with pytest.raises(LoadError, match=r"go.mod not found"):
        load_package(import_path=SERVER["path"], work_dir=tmp_path)
