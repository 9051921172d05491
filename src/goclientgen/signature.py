from __future__ import annotations

from .errors import SignatureError
from .loader.symbols import GoType, MethodDecl
from .qualifier import type_string


def parse_method_type(m: MethodDecl) -> tuple[GoType, GoType | None]:
    """Split a server method signature into its request and response types.

    Server methods look like one of

        func (s *S) M([ctx context.Context,] p *Req) error
        func (s *S) M([ctx context.Context,] p *Req) (Resp, error)
        func (s *S) M([ctx context.Context,] p *Req)

    The request type is the struct pointed to by the last parameter. The
    response type is the first of two results, or None.
    """
    params = m.params
    if len(params) != 1 and len(params) != 2:
        raise SignatureError("wrong argument count")
    last = params[-1]
    if last.kind != "pointer" or last.elem is None:
        raise SignatureError("parameter is not a pointer")
    ptype = last.elem
    if ptype.underlying_kind() != "struct":
        raise SignatureError(
            f"parameter is {type_string(ptype, lambda p: p.path)}, not a pointer to struct"
        )

    results = m.results
    if len(results) > 2:
        raise SignatureError("wrong result count")
    rtype = results[0] if len(results) == 2 else None
    return ptype, rtype
