"""Versioned, field-tagged JSON form of expressions.

Every node becomes a dict whose "type" field names the node class; the document wraps the root
as {"format": "symcore", "version": 1, "expr": ...}. Integers are written as decimal strings so
that big values survive readers with 64-bit number types.
"""

from __future__ import annotations
from fractions import Fraction
from typing import Any, Dict, Optional
import json

from errors import InvalidInput
from expression import (
    Add, Complex, Const, Derivative, Expr, Func, Integral, Interval, Limit, Matrix, MethodCall, Mul,
    Num, Piecewise, Pow, Product, RelKind, Relation, Set, Sum, Sym, cast,
)
from symbol import Commutativity

FORMAT = "symcore"
VERSION = 1


def _number(n) -> Dict[str, Any]:
    if n.is_float():
        return {"type": "Num", "float": repr(n.to_float())}
    f = n.to_fraction()
    if f.denominator == 1:
        return {"type": "Num", "int": str(f.numerator)}
    return {"type": "Num", "num": str(f.numerator), "den": str(f.denominator)}


def _bounded(e, tag: str) -> Dict[str, Any]:
    out = {"type": tag, "expr": to_dict(e.expr), "var": to_dict(e.var)}
    if e.is_definite():
        out["lower"] = to_dict(e.lower)
        out["upper"] = to_dict(e.upper)
    return out


def to_dict(expr) -> Dict[str, Any]:
    """Plain-data form of one expression tree."""
    e = cast(expr)
    if isinstance(e, Num):
        return _number(e.value)
    if isinstance(e, Sym):
        out = {"type": "Sym", "name": e.name}
        if e.symbol.commutativity is not Commutativity.COMMUTATIVE:
            out["commutativity"] = e.symbol.commutativity.value
        return out
    if isinstance(e, Const):
        return {"type": "Const", "name": e.name}
    if isinstance(e, (Add, Mul, Set)):
        return {"type": type(e).__name__, "args": [to_dict(c) for c in e.children]}
    if isinstance(e, Pow):
        return {"type": "Pow", "base": to_dict(e.base), "exp": to_dict(e.exp)}
    if isinstance(e, Func):
        return {"type": "Func", "name": e.name, "args": [to_dict(c) for c in e.children]}
    if isinstance(e, Complex):
        return {"type": "Complex", "real": to_dict(e.real), "imag": to_dict(e.imag)}
    if isinstance(e, Matrix):
        return {"type": "Matrix", "rows": [[to_dict(x) for x in row] for row in e.rows]}
    if isinstance(e, Relation):
        return {"type": "Relation", "kind": e.kind.name, "left": to_dict(e.left), "right": to_dict(e.right)}
    if isinstance(e, Interval):
        return {
            "type": "Interval",
            "lo": to_dict(e.lo),
            "hi": to_dict(e.hi),
            "left_open": e.left_open,
            "right_open": e.right_open,
        }
    if isinstance(e, Piecewise):
        out = {"type": "Piecewise", "pieces": [[to_dict(x), to_dict(c)] for x, c in e.pieces]}
        if e.otherwise is not None:
            out["otherwise"] = to_dict(e.otherwise)
        return out
    if isinstance(e, Derivative):
        return {"type": "Derivative", "expr": to_dict(e.expr), "var": to_dict(e.var), "order": e.order}
    if isinstance(e, (Integral, Sum, Product)):
        return _bounded(e, type(e).__name__)
    if isinstance(e, Limit):
        return {
            "type": "Limit",
            "expr": to_dict(e.expr),
            "var": to_dict(e.var),
            "point": to_dict(e.point),
            "direction": e.direction,
        }
    if isinstance(e, MethodCall):
        return {
            "type": "MethodCall",
            "target": to_dict(e.target),
            "method": e.method,
            "args": [to_dict(a) for a in e.arguments],
        }
    raise InvalidInput(f"cannot serialise {type(e).__name__}")


def _field(data: Dict[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise InvalidInput(f"{data.get('type', '?')} node is missing field {key!r}") from None


def _optional(data: Dict[str, Any], key: str) -> Optional[Expr]:
    return from_dict(data[key]) if key in data else None


def from_dict(data: Dict[str, Any]) -> Expr:
    """Inverse of to_dict; InvalidInput on unknown or malformed nodes."""
    if not isinstance(data, dict):
        raise InvalidInput(f"expected a node object, got {type(data).__name__}")
    tag = _field(data, "type")
    if tag == "Num":
        if "int" in data:
            return Num(int(data["int"]))
        if "float" in data:
            return Num(float(data["float"]))
        return Num(Fraction(int(_field(data, "num")), int(_field(data, "den"))))
    if tag == "Sym":
        kind = Commutativity(data.get("commutativity", Commutativity.COMMUTATIVE.value))
        return Sym(_field(data, "name"), kind)
    if tag == "Const":
        return Const(_field(data, "name"))
    if tag in ("Add", "Mul"):
        args = [from_dict(a) for a in _field(data, "args")]
        return (Add if tag == "Add" else Mul)(*args)
    if tag == "Set":
        return Set(*(from_dict(a) for a in _field(data, "args")))
    if tag == "Pow":
        return Pow(from_dict(_field(data, "base")), from_dict(_field(data, "exp")))
    if tag == "Func":
        return Func(_field(data, "name"), *(from_dict(a) for a in _field(data, "args")))
    if tag == "Complex":
        return Complex(from_dict(_field(data, "real")), from_dict(_field(data, "imag")))
    if tag == "Matrix":
        return Matrix([[from_dict(x) for x in row] for row in _field(data, "rows")])
    if tag == "Relation":
        return Relation(from_dict(_field(data, "left")), from_dict(_field(data, "right")), RelKind[_field(data, "kind")])
    if tag == "Interval":
        return Interval(
            from_dict(_field(data, "lo")),
            from_dict(_field(data, "hi")),
            bool(data.get("left_open", False)),
            bool(data.get("right_open", False)),
        )
    if tag == "Piecewise":
        pieces = [(from_dict(x), from_dict(c)) for x, c in _field(data, "pieces")]
        return Piecewise(*pieces, otherwise=_optional(data, "otherwise"))
    if tag == "Derivative":
        return Derivative(from_dict(_field(data, "expr")), from_dict(_field(data, "var")), int(data.get("order", 1)))
    if tag in ("Integral", "Sum", "Product"):
        cls = {"Integral": Integral, "Sum": Sum, "Product": Product}[tag]
        return cls(
            from_dict(_field(data, "expr")),
            from_dict(_field(data, "var")),
            _optional(data, "lower"),
            _optional(data, "upper"),
        )
    if tag == "Limit":
        return Limit(
            from_dict(_field(data, "expr")),
            from_dict(_field(data, "var")),
            from_dict(_field(data, "point")),
            data.get("direction", "+-"),
        )
    if tag == "MethodCall":
        return MethodCall(
            from_dict(_field(data, "target")),
            _field(data, "method"),
            *(from_dict(a) for a in data.get("args", [])),
        )
    raise InvalidInput(f"unknown node type {tag!r}")


def to_json(expr, indent: Optional[int] = None) -> str:
    """Serialise to a versioned JSON document."""
    return json.dumps({"format": FORMAT, "version": VERSION, "expr": to_dict(expr)}, indent=indent)


def from_json(text: str) -> Expr:
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidInput(f"not valid JSON: {exc}") from exc
    if not isinstance(doc, dict) or doc.get("format") != FORMAT:
        raise InvalidInput("not a symcore document")
    version = doc.get("version")
    if not isinstance(version, int) or version > VERSION:
        raise InvalidInput(f"unsupported document version {version!r}")
    return from_dict(_field(doc, "expr"))
