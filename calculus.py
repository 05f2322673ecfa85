"""Differentiation, limits, Taylor series, finite sums and products.

`diff` is total: anything it cannot differentiate (unknown functions, unevaluated calculus nodes)
comes back as a `Derivative` node. `limit` tries direct substitution, cancellation and a bounded
number of L'Hôpital steps before giving up with an unevaluated `Limit`.
"""

from __future__ import annotations
from fractions import Fraction
from math import comb, factorial as math_factorial
from typing import List, Optional, Sequence, Tuple
import logging

from config import DEFAULT_CONFIG, CASConfig
from errors import DomainError, NotPolynomial
from evaluate import evalf, evaluate
from expression import (
    NEG_ONE, NEG_OO, ONE, OO, UNDEFINED, ZERO,
    Add, Derivative, Expr, Func, Integral, Limit, Matrix, Mul, Num, Piecewise, Pow, Product,
    Relation, Sum, Sym, cast, is_undefined, make_add, make_mul,
)
from functions import REGISTRY, factorial, ln
from number import Number
from simplify import simplify

logger = logging.getLogger(__name__)

EXPLICIT_SUM_LIMIT = 10_000
_PROBE = 1e-7


# -----------------
# Differentiation
# -----------------
def diff(expr, var, order: int = 1) -> Expr:
    """order-th derivative of expr with respect to var, simplified."""
    e = cast(expr)
    v = cast(var)
    if order < 0:
        raise ValueError("derivative order must be non-negative")
    for _ in range(order):
        e = simplify(_d(simplify(e), v))
    return simplify(e)


def _d(e: Expr, v: Sym) -> Expr:
    if not e.contains(v):
        return ZERO
    if e == v:
        return ONE
    if isinstance(e, Add):
        return make_add([_d(t, v) for t in e.children])
    if isinstance(e, Mul):
        factors = list(e.children)
        terms = []
        for i, f in enumerate(factors):
            df = _d(f, v)
            if df == ZERO:
                continue
            terms.append(make_mul(factors[:i] + [df] + factors[i + 1:]))
        return make_add(terms)
    if isinstance(e, Pow):
        return _d_pow(e, v)
    if isinstance(e, Func):
        return _d_func(e, v)
    if isinstance(e, Matrix):
        return e.with_children([_d(x, v) for x in e.children])
    if isinstance(e, Relation):
        return e.with_children([_d(e.left, v), _d(e.right, v)])
    if isinstance(e, Piecewise):
        pieces = [(_d(x, v), c) for x, c in e.pieces]
        other = _d(e.otherwise, v) if e.otherwise is not None else None
        return Piecewise(*pieces, otherwise=other)
    if isinstance(e, Integral) and not e.is_definite() and e.var == v:
        return e.expr
    if isinstance(e, Derivative) and e.var == v:
        return Derivative(e.expr, v, e.order + 1)
    return Derivative(e, v)


def _d_pow(e: Pow, v: Sym) -> Expr:
    b, x = e.base, e.exp
    if not x.contains(v):
        # power rule with chain rule
        return make_mul([x, Pow(b, Add(x, NEG_ONE)), _d(b, v)])
    if not b.contains(v):
        return make_mul([e, ln(b), _d(x, v)])
    # b^x = exp(x ln b)
    inner = Add(Mul(_d(x, v), ln(b)), Mul(x, _d(b, v), Pow(b, NEG_ONE)))
    return make_mul([e, inner])


def _d_func(e: Func, v: Sym) -> Expr:
    args = e.children
    if e.name == "log" and len(args) == 2:
        x, base = args
        return _d(Mul(ln(x), Pow(ln(base), NEG_ONE)), v)
    info = REGISTRY.get(e.name)
    if info is None or info.derivative is None or len(args) != 1:
        return Derivative(e, v)
    u = args[0]
    return make_mul([info.derivative(u), _d(u, v)])


def partial(expr, *variables) -> Expr:
    """Mixed partial derivative, differentiating in the order given."""
    e = cast(expr)
    for var in variables:
        e = diff(e, var)
    return e


def gradient(expr, variables: Sequence) -> Tuple[Expr, ...]:
    return tuple(diff(expr, v) for v in variables)


def hessian(expr, variables: Sequence) -> Matrix:
    vs = [cast(v) for v in variables]
    first = [diff(expr, v) for v in vs]
    return Matrix([[diff(first[i], vs[j]) for j in range(len(vs))] for i in range(len(vs))])


def jacobian(exprs: Sequence, variables: Sequence) -> Matrix:
    return Matrix([[diff(f, v) for v in variables] for f in exprs])


# -----------------
# Limits
# -----------------
def _fresh(e: Expr, stem: str) -> Sym:
    taken = {s.name for s in e.free_symbols()}
    name = stem
    k = 0
    while name in taken:
        k += 1
        name = f"{stem}{k}"
    return Sym(name)


def _is_finite(e: Expr) -> bool:
    return not is_undefined(e) and not e.has(OO)


def _is_infinite(e: Expr) -> bool:
    return e == OO or e == NEG_OO


def _side_value(e: Expr, v: Sym, point: float, side: int) -> Optional[float]:
    try:
        return evalf(e, {v: point + side * _PROBE})
    except (ValueError, ArithmeticError):
        return None


def _infinite_sign(e: Expr, v: Sym, point: Expr, direction: str) -> Expr:
    """oo, -oo or undefined for a quotient blowing up at point, by probing each side."""
    try:
        p = evalf(point)
    except (ValueError, ArithmeticError):
        return UNDEFINED
    sides = {"+": (1,), "-": (-1,), "+-": (1, -1)}[direction]
    signs = set()
    for s in sides:
        val = _side_value(e, v, p, s)
        if val is None or val == 0.0:
            return UNDEFINED
        signs.add(val > 0)
    if len(signs) != 1:
        return UNDEFINED
    return OO if signs.pop() else NEG_OO


def limit(expr, var, point, direction: str = "+-", config: CASConfig = DEFAULT_CONFIG) -> Expr:
    """Limit of expr as var -> point; returns an unevaluated Limit when no rule applies."""
    e = simplify(expr)
    v = cast(var)
    p = simplify(point)
    out = _limit(e, v, p, direction, 0, config)
    if out is None:
        logger.debug("limit of %s at %s left unevaluated", e, p)
        return Limit(e, v, p, direction)
    return out


def _limit(e: Expr, v: Sym, p: Expr, direction: str, depth: int, config: CASConfig) -> Optional[Expr]:
    from classify import as_numer_denom

    if not e.contains(v):
        return e
    if _is_infinite(p):
        t = _fresh(e, "t")
        inv = Pow(t, NEG_ONE) if p == OO else Mul(NEG_ONE, Pow(t, NEG_ONE))
        return _limit(_cancelled(e.substitute({v: inv})), t, ZERO, "+", depth, config)
    direct = evaluate(e, {v: p})
    if _is_finite(direct):
        return direct
    reduced = _cancelled(e)
    if reduced != e:
        direct = evaluate(reduced, {v: p})
        if _is_finite(direct):
            return direct
    num, den = as_numer_denom(reduced)
    if den == ONE:
        return direct if _is_infinite(direct) else None
    n0 = evaluate(num, {v: p})
    d0 = evaluate(den, {v: p})
    indeterminate = (n0 == ZERO and d0 == ZERO) or (_is_infinite(n0) and _is_infinite(d0))
    if indeterminate:
        if depth >= config.limit_max_lhopital:
            logger.debug("l'Hopital depth %d reached", depth)
            return None
        quotient = simplify(Mul(diff(num, v), Pow(diff(den, v), NEG_ONE)))
        return _limit(quotient, v, p, direction, depth + 1, config)
    if d0 == ZERO and _is_finite(n0):
        return _infinite_sign(reduced, v, p, direction)
    if _is_finite(n0) and _is_infinite(d0):
        return ZERO
    return None


def _cancelled(e: Expr) -> Expr:
    from dispatch import cancel
    try:
        return cancel(e)
    except (NotPolynomial, ArithmeticError):
        return e


# -----------------
# Sums and products
# -----------------
def bernoulli(n: int) -> Fraction:
    """Bernoulli number B_n with B_1 = +1/2."""
    b = [Fraction(0)] * (n + 1)
    for m in range(n + 1):
        b[m] = Fraction(1, m + 1)
        for j in range(m, 0, -1):
            b[j - 1] = j * (b[j - 1] - b[j])
    return b[0]


def power_sum(p: int, n: Expr) -> Expr:
    """sum_{k=1}^{n} k^p in closed form (Faulhaber)."""
    terms = []
    for j in range(p + 1):
        c = Fraction(comb(p + 1, j)) * bernoulli(j) / (p + 1)
        if c:
            terms.append(Mul(Num(Number(c)), Pow(n, Num(p + 1 - j))))
    return simplify(make_add(terms))


def _is_int_num(e: Expr) -> bool:
    return isinstance(e, Num) and e.value.is_int()


def summation(expr, var, lower, upper) -> Expr:
    """sum of expr for var from lower to upper inclusive."""
    from expand import coefficients

    e, v = simplify(expr), cast(var)
    a, b = simplify(lower), simplify(upper)
    if _is_int_num(a) and _is_int_num(b):
        lo, hi = a.value.to_int(), b.value.to_int()
        if hi < lo:
            return ZERO
        if hi - lo <= EXPLICIT_SUM_LIMIT:
            return simplify(make_add([e.substitute({v: Num(k)}) for k in range(lo, hi + 1)]))
    if not e.contains(v):
        return simplify(Mul(e, Add(b, Mul(NEG_ONE, a), ONE)))
    try:
        cs = coefficients(e, v)
    except NotPolynomial:
        cs = None
    if cs is not None:
        total = []
        below = Add(a, NEG_ONE)
        for k, c in cs.items():
            if k == 0:
                total.append(Mul(c, Add(b, Mul(NEG_ONE, a), ONE)))
            else:
                total.append(Mul(c, Add(power_sum(k, b), Mul(NEG_ONE, power_sum(k, below)))))
        return simplify(make_add(total))
    geometric = _geometric(e, v)
    if geometric is not None:
        c, r = geometric
        num = Add(Pow(r, Add(b, ONE)), Mul(NEG_ONE, Pow(r, a)))
        return simplify(Mul(c, num, Pow(Add(r, NEG_ONE), NEG_ONE)))
    return Sum(e, v, a, b)


def _geometric(e: Expr, v: Sym) -> Optional[Tuple[Expr, Expr]]:
    """(c, r) with e == c * r**v and neither c nor r depending on v."""
    factors = list(e.children) if isinstance(e, Mul) else [e]
    ratio = None
    rest = []
    for f in factors:
        if isinstance(f, Pow) and f.exp == v and not f.base.contains(v):
            if ratio is not None:
                return None
            ratio = f.base
        elif isinstance(f, Func) and f.name == "exp" and f.children[0] == v:
            from expression import E
            ratio = E
        elif f.contains(v):
            return None
        else:
            rest.append(f)
    if ratio is None:
        return None
    return make_mul(rest) if rest else ONE, ratio


def product(expr, var, lower, upper) -> Expr:
    """Product of expr for var from lower to upper inclusive."""
    e, v = simplify(expr), cast(var)
    a, b = simplify(lower), simplify(upper)
    if _is_int_num(a) and _is_int_num(b):
        lo, hi = a.value.to_int(), b.value.to_int()
        if hi < lo:
            return ONE
        if hi - lo <= EXPLICIT_SUM_LIMIT:
            return simplify(make_mul([e.substitute({v: Num(k)}) for k in range(lo, hi + 1)]))
    if not e.contains(v):
        return simplify(Pow(e, Add(b, Mul(NEG_ONE, a), ONE)))
    if e == v and a == ONE:
        return factorial(b)
    return Product(e, v, a, b)


# -----------------
# Series
# -----------------
def taylor_coefficients(expr, var, point=0, n: int = 6, config: CASConfig = DEFAULT_CONFIG) -> List[Expr]:
    """[f(a), f'(a), f''(a)/2!, ...]: the first n Taylor coefficients of expr about var = a.

    A derivative that cannot be evaluated at the point is taken as a limit there; a pole raises
    DomainError.
    """
    e = simplify(expr)
    v = cast(var)
    a = simplify(point)
    if n < 0:
        raise ValueError("series order must be non-negative")
    out: List[Expr] = []
    d = e
    for k in range(n):
        value = evaluate(d, {v: a})
        if not _is_finite(value):
            value = limit(d, v, a, config=config)
            if isinstance(value, Limit) or not _is_finite(value):
                raise DomainError(f"{e} has no Taylor expansion in {v} at {a}")
        out.append(simplify(Mul(value, Num(Fraction(1, math_factorial(k))))))
        if k + 1 < n:
            d = diff(d, v)
    return out


def series(expr, var, point=0, n: int = 6, config: CASConfig = DEFAULT_CONFIG) -> Expr:
    """Taylor polynomial of expr about var = point, dropping (var - point)**n and higher."""
    v = cast(var)
    a = simplify(point)
    shift = v if a == ZERO else simplify(Add(v, Mul(NEG_ONE, a)))
    terms = []
    for k, c in enumerate(taylor_coefficients(expr, v, a, n, config)):
        if c == ZERO:
            continue
        terms.append(c if k == 0 else Mul(c, Pow(shift, Num(k))))
    return simplify(make_add(terms))


# -----------------
# Evaluation of unevaluated calculus nodes
# -----------------
def doit(expr) -> Expr:
    """Evaluate every Derivative, Integral, Limit, Sum and Product node, innermost first."""
    e = cast(expr)
    if not e.children:
        return e
    kids = [doit(c) for c in e.children]
    node = e.with_children(kids)
    if isinstance(node, Derivative):
        return diff(node.expr, node.var, node.order)
    if isinstance(node, Integral):
        from integrate import integrate
        return integrate(node.expr, node.var, node.lower, node.upper)
    if isinstance(node, Limit):
        return limit(node.expr, node.var, node.point, node.direction)
    if isinstance(node, Sum) and node.is_definite():
        return summation(node.expr, node.var, node.lower, node.upper)
    if isinstance(node, Product) and node.is_definite():
        return product(node.expr, node.var, node.lower, node.upper)
    return simplify(node)

