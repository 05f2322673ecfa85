"""Classification of expressions and equations, used to pick an engine."""

from __future__ import annotations
from enum import Enum
from functools import lru_cache
from typing import Optional, Tuple
import logging

from errors import NotPolynomial
from expression import (
    ONE, Add, Const, Derivative, Expr, Func, Integral, Limit, Matrix, Mul, Num, Pow, Product,
    Relation, Sum, Sym, cast, make_mul,
)
from simplify import simplify

logger = logging.getLogger(__name__)


class EquationType(Enum):
    CONSTANT = "constant"
    LINEAR = "linear"
    QUADRATIC = "quadratic"
    CUBIC = "cubic"
    QUARTIC = "quartic"
    POLYNOMIAL = "polynomial"
    RATIONAL = "rational"
    TRANSCENDENTAL = "transcendental"
    NUMERICAL = "numerical"
    ODE = "ode"
    PDE = "pde"
    MATRIX = "matrix"


class ExprKind(Enum):
    NUMBER = "number"
    SYMBOL = "symbol"
    CONSTANT = "constant"
    POLYNOMIAL = "polynomial"
    RATIONAL = "rational"
    TRANSCENDENTAL = "transcendental"
    MATRIX = "matrix"
    RELATION = "relation"
    CALCULUS = "calculus"
    OTHER = "other"


_BY_DEGREE = {
    0: EquationType.CONSTANT,
    1: EquationType.LINEAR,
    2: EquationType.QUADRATIC,
    3: EquationType.CUBIC,
    4: EquationType.QUARTIC,
}


@lru_cache(maxsize=1024)
def _degree(expr: Expr, var: Sym) -> Optional[int]:
    from expand import coefficients
    try:
        cs = coefficients(expr, var)
    except NotPolynomial:
        return None
    return max(cs) if cs else 0


def polynomial_degree(expr, var) -> Optional[int]:
    """Degree of expr in var, or None when expr is not a polynomial in var."""
    return _degree(simplify(expr), cast(var))


def is_polynomial(expr, *variables) -> bool:
    e = simplify(expr)
    if not variables:
        variables = tuple(sorted(e.free_symbols(), key=lambda s: s.sort_key()))
    return all(polynomial_degree(e, v) is not None for v in variables)


def as_numer_denom(e: Expr) -> Tuple[Expr, Expr]:
    """(n, d) with e == n/d; sums are brought over a common denominator."""
    e = cast(e)
    if isinstance(e, Num):
        v = e.value
        if v.is_rational() and not v.is_int():
            f = v.to_fraction()
            return Num(f.numerator), Num(f.denominator)
        return e, ONE
    if isinstance(e, Pow) and isinstance(e.exp, Num) and e.exp.value.is_int():
        k = e.exp.value.to_int()
        bn, bd = as_numer_denom(e.base)
        if k < 0:
            bn, bd, k = bd, bn, -k
        return simplify(Pow(bn, Num(k))), simplify(Pow(bd, Num(k)))
    if isinstance(e, Mul):
        nums, dens = [], []
        for f in e.children:
            n, d = as_numer_denom(f)
            nums.append(n)
            dens.append(d)
        return simplify(make_mul(nums)), simplify(make_mul(dens))
    if isinstance(e, Add):
        parts = [as_numer_denom(t) for t in e.children]
        num: Expr = parts[0][0]
        den: Expr = parts[0][1]
        for n, d in parts[1:]:
            if d == den:
                num = Add(num, n)
            else:
                num = Add(Mul(num, d), Mul(n, den))
                den = Mul(den, d)
        return simplify(num), simplify(den)
    return e, ONE


def _derivative_vars(e: Expr) -> set:
    out = set()
    for node in e.walk():
        if isinstance(node, Derivative):
            out.add(node.var)
    return out


def _mixed_partial(e: Expr) -> bool:
    for node in e.walk():
        if isinstance(node, Derivative):
            inner = node.expr
            if isinstance(inner, Derivative) and inner.var != node.var:
                return True
    return False


def _only_in_transcendental(e: Expr, var: Sym) -> bool:
    """True when every occurrence of var sits inside a function or an exponent."""
    if not e.contains(var):
        return True
    if e == var:
        return False
    if isinstance(e, Func):
        return True
    if isinstance(e, Pow):
        if e.exp.contains(var):
            return True
        return _only_in_transcendental(e.base, var)
    return all(_only_in_transcendental(c, var) for c in e.children)


def default_variable(e: Expr) -> Optional[Sym]:
    syms = sorted(e.free_symbols(), key=lambda s: s.sort_key())
    for preferred in ("x", "y", "z", "t"):
        for s in syms:
            if s.name == preferred:
                return s
    return syms[0] if syms else None


def classify_equation(expr, var=None) -> EquationType:
    """Type of the equation expr = 0 (or left = right for a relation) in var."""
    e = cast(expr)
    if isinstance(e, Relation):
        if isinstance(e.left, Matrix) or isinstance(e.right, Matrix):
            return EquationType.MATRIX
        e = e.lhs_minus_rhs()
    if e.has_type(Matrix):
        return EquationType.MATRIX
    if e.has_type(Derivative):
        if len(_derivative_vars(e)) >= 2 or _mixed_partial(e):
            return EquationType.PDE
        return EquationType.ODE
    e = simplify(e)
    v = cast(var) if var is not None else default_variable(e)
    if v is None or not e.contains(v):
        return EquationType.CONSTANT
    deg = polynomial_degree(e, v)
    if deg is not None:
        kind = _BY_DEGREE.get(deg, EquationType.POLYNOMIAL)
        logger.debug("classified %s as %s in %s", e, kind.value, v)
        return kind
    num, den = as_numer_denom(e)
    if den.contains(v) and polynomial_degree(num, v) is not None and polynomial_degree(den, v) is not None:
        return EquationType.RATIONAL
    if _only_in_transcendental(e, v):
        return EquationType.TRANSCENDENTAL
    return EquationType.NUMERICAL


def classify_expression(expr) -> ExprKind:
    e = cast(expr)
    if isinstance(e, Num):
        return ExprKind.NUMBER
    if isinstance(e, Sym):
        return ExprKind.SYMBOL
    if isinstance(e, Const):
        return ExprKind.CONSTANT
    if isinstance(e, Matrix):
        return ExprKind.MATRIX
    if isinstance(e, Relation):
        return ExprKind.RELATION
    if isinstance(e, (Derivative, Integral, Sum, Product, Limit)):
        return ExprKind.CALCULUS
    e = simplify(e)
    if is_polynomial(e):
        return ExprKind.POLYNOMIAL
    num, den = as_numer_denom(e)
    if is_polynomial(num) and is_polynomial(den):
        return ExprKind.RATIONAL
    if e.has_type(Func) or any(isinstance(n, Pow) and n.exp.free_symbols() for n in e.walk()):
        return ExprKind.TRANSCENDENTAL
    return ExprKind.OTHER
