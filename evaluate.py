from __future__ import annotations
from typing import Any, Dict, Mapping, Optional
import math

import numpy as np

from errors import DivisionByZero, DomainError, InvalidInput, NumericOverflow
from expression import (
    UNDEFINED, Add, Complex, Const, Derivative, Expr, Func, Integral, Limit, Mul, Num, Piecewise, Pow,
    Product, Relation, RelKind, Sum, Sym, cast,
)
from functions import REGISTRY
from simplify import simplify

CONSTANT_VALUES = {
    "pi": math.pi,
    "e": math.e,
    "euler_gamma": 0.5772156649015329,
    "phi": (1.0 + math.sqrt(5.0)) / 2.0,
    "oo": math.inf,
}

_QUADRATURE_POINTS = 2001


def _normalize_env(env: Optional[Mapping[Any, Any]]) -> Dict[Expr, Expr]:
    return {cast(k): cast(v) for k, v in (env or {}).items()}


def evaluate(expr, env: Optional[Mapping[Any, Any]] = None, strict: bool = False) -> Expr:
    """Substitute env and simplify; stays exact when the inputs are exact."""
    e = cast(expr)
    if env:
        try:
            e = e.substitute(_normalize_env(env))
        except DivisionByZero:
            # Pow(0, -k) is rejected while the tree is rebuilt
            if strict:
                raise
            return UNDEFINED
    return simplify(e, strict=strict)


def evalf(expr, env: Optional[Mapping[Any, Any]] = None) -> float:
    """Floating-point value of expr; every free symbol must be bound by env."""
    table = {k: float(evalf(v)) if not isinstance(v, Num) else v.value.to_float()
             for k, v in _normalize_env(env).items()}
    return _evalf(cast(expr), table)


def _evalf(e: Expr, env: Dict[Expr, float]) -> float:
    if isinstance(e, Num):
        return e.value.to_float()
    if isinstance(e, Sym):
        if e not in env:
            raise InvalidInput(f"no value for symbol {e.name}")
        return env[e]
    if isinstance(e, Const):
        if e.name == "i":
            raise DomainError("i has no real value")
        return CONSTANT_VALUES[e.name]
    if isinstance(e, Add):
        return _finite(math.fsum(_evalf(c, env) for c in e.children))
    if isinstance(e, Mul):
        out = 1.0
        for c in e.children:
            out *= _evalf(c, env)
        return _finite(out)
    if isinstance(e, Pow):
        b, x = _evalf(e.base, env), _evalf(e.exp, env)
        if b == 0.0 and x < 0:
            raise DivisionByZero("0 raised to a negative power")
        if b < 0 and not float(x).is_integer():
            raise DomainError(f"{b}^{x} is not real")
        try:
            return _finite(b ** x)
        except OverflowError as exc:
            raise NumericOverflow(f"{b}^{x} overflows") from exc
    if isinstance(e, Func):
        if e.name == "undefined":
            raise DomainError("undefined has no value")
        info = REGISTRY.get(e.name)
        if info is None:
            raise InvalidInput(f"unknown function {e.name}")
        return _finite(info.evalf(*(_evalf(c, env) for c in e.children)))
    if isinstance(e, Complex):
        if _evalf(e.imag, env) != 0.0:
            raise DomainError("complex value has a non-zero imaginary part")
        return _evalf(e.real, env)
    if isinstance(e, Piecewise):
        for expr, cond in e.pieces:
            if _truth(cond, env):
                return _evalf(expr, env)
        if e.otherwise is None:
            raise DomainError("no piece of the piecewise expression applies")
        return _evalf(e.otherwise, env)
    if isinstance(e, (Sum, Product)) and e.is_definite():
        lo, hi = _evalf(e.lower, env), _evalf(e.upper, env)
        if not (float(lo).is_integer() and float(hi).is_integer()):
            raise DomainError("summation bounds must be integers")
        vals = [_evalf(e.expr, {**env, e.var: float(k)}) for k in range(int(lo), int(hi) + 1)]
        return math.fsum(vals) if isinstance(e, Sum) else float(np.prod(vals)) if vals else 1.0
    if isinstance(e, Integral) and e.is_definite():
        return _quadrature(e, env)
    if isinstance(e, (Derivative, Limit, Integral, Sum, Product)):
        from calculus import doit
        done = doit(e)
        if done == e:
            raise DomainError(f"cannot evaluate {type(e).__name__} numerically")
        return _evalf(done, env)
    raise InvalidInput(f"cannot evaluate {type(e).__name__} to a float")


def _truth(cond: Expr, env: Dict[Expr, float]) -> bool:
    if not isinstance(cond, Relation):
        return bool(_evalf(cond, env))
    l, r = _evalf(cond.left, env), _evalf(cond.right, env)
    return {
        RelKind.EQ: l == r,
        RelKind.EQUIV: l == r,
        RelKind.APPROX: math.isclose(l, r, rel_tol=1e-9),
        RelKind.NE: l != r,
        RelKind.LT: l < r,
        RelKind.LE: l <= r,
        RelKind.GT: l > r,
        RelKind.GE: l >= r,
    }[cond.kind]


def _finite(x: float) -> float:
    if isinstance(x, complex):
        raise DomainError("result is not real")
    if math.isnan(x):
        raise DomainError("result is not a number")
    return x


def _quadrature(e: Integral, env: Dict[Expr, float]) -> float:
    """Composite Simpson rule over the compiled integrand."""
    from edag import ExpressionDAG
    lo, hi = _evalf(e.lower, env), _evalf(e.upper, env)
    if math.isinf(lo) or math.isinf(hi):
        raise DomainError("numeric quadrature needs finite bounds")
    dag = ExpressionDAG.from_expr(e.expr)
    xs = np.linspace(lo, hi, _QUADRATURE_POINTS)
    ys = dag.eval_array(e.var, xs, {k: v for k, v in env.items() if k != e.var})
    h = (hi - lo) / (_QUADRATURE_POINTS - 1)
    return float(h / 3.0 * (ys[0] + ys[-1] + 4.0 * ys[1:-1:2].sum() + 2.0 * ys[2:-1:2].sum()))
