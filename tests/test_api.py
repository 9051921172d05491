from __future__ import annotations

from _gojson import decl, method


def test_service_methods_keeps_exported_non_close_methods():
    from goclientgen.api import service_methods
    from goclientgen.methodset import lookup_type, pointer_method_set

    from _gojson import snapshot

    snap = snapshot(
        [
            decl(
                "Server",
                methods=[
                    method("Close", [], []),
                    method("Get", [], []),
                    method("helper", [], []),
                    method("Put", [], [], pointer=False),
                ],
            )
        ]
    )
    sels = service_methods(pointer_method_set(snap, lookup_type(snap, "Server")))
    assert [s.method.name for s in sels] == ["Get", "Put"]


def test_is_exported():
    from goclientgen.api import is_exported

    assert is_exported("Get")
    assert is_exported("Ärger")
    assert not is_exported("get")
    assert not is_exported("_Get")
    assert not is_exported("")
