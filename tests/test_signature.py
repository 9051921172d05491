from __future__ import annotations

import pytest

from _gojson import OTHER_PKG, basic, ctx_t, error_t, named, ptr, slice


def _method(params, results):
    from goclientgen.loader.scan import _parse_method  # noqa: SLF001

    return _parse_method({"name": "M", "params": params, "results": results})


@pytest.mark.parametrize(
    "params",
    [
        [],
        [ctx_t(), basic("int"), ptr(named("Req"))],
    ],
)
def test_wrong_argument_count(params):
    from goclientgen.errors import SignatureError
    from goclientgen.signature import parse_method_type

    with pytest.raises(SignatureError, match=r"^wrong argument count$"):
        parse_method_type(_method(params, [error_t()]))


def test_parameter_not_a_pointer():
    from goclientgen.errors import SignatureError
    from goclientgen.signature import parse_method_type

    with pytest.raises(SignatureError, match=r"^parameter is not a pointer$"):
        parse_method_type(_method([ctx_t(), named("Req")], [error_t()]))


def test_variadic_parameter_is_not_a_pointer():
    from goclientgen.errors import SignatureError
    from goclientgen.signature import parse_method_type

    with pytest.raises(SignatureError, match=r"not a pointer"):
        parse_method_type(_method([slice(ptr(named("Req")))], []))


def test_parameter_not_a_pointer_to_struct():
    from goclientgen.errors import SignatureError
    from goclientgen.signature import parse_method_type

    with pytest.raises(SignatureError) as ei:
        parse_method_type(_method([ptr(named("ID", underlying="basic"))], [error_t()]))
    assert str(ei.value) == "parameter is example.com/server.ID, not a pointer to struct"
    assert "not a pointer to struct" in str(ei.value)


def test_pointer_to_basic_is_not_a_pointer_to_struct():
    from goclientgen.errors import SignatureError
    from goclientgen.signature import parse_method_type

    with pytest.raises(SignatureError, match=r"parameter is string, not a pointer to struct"):
        parse_method_type(_method([ptr(basic("string"))], []))


def test_wrong_result_count():
    from goclientgen.errors import SignatureError
    from goclientgen.signature import parse_method_type

    with pytest.raises(SignatureError, match=r"^wrong result count$"):
        parse_method_type(_method([ptr(named("Req"))], [basic("int"), basic("int"), error_t()]))


@pytest.mark.parametrize("results", [[], [error_t()]])
def test_no_response_type(results):
    from goclientgen.signature import parse_method_type

    ptype, rtype = parse_method_type(_method([ctx_t(), ptr(named("Req"))], results))
    assert ptype.name == "Req"
    assert rtype is None


def test_response_type_is_first_of_two_results():
    from goclientgen.signature import parse_method_type

    ptype, rtype = parse_method_type(
        _method([ptr(named("Req", pkg=OTHER_PKG))], [slice(named("Item")), error_t()])
    )
    assert ptype.pkg is not None and ptype.pkg.path == OTHER_PKG["path"]
    assert rtype is not None
    assert rtype.kind == "slice"


def test_pointer_to_struct_literal_is_accepted():
    from goclientgen.signature import parse_method_type

    ptype, _ = parse_method_type(_method([ptr({"kind": "struct", "fields": []})], []))
    assert ptype.kind == "struct"
