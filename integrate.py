"""Symbolic integration.

Strategies are tried in a fixed order: table lookup, linearity, substitution, integration by
parts, partial fractions, trigonometric reduction and finally the Risch procedures for rational
functions and polynomial-times-exponential integrands. Each strategy returns an antiderivative or
None; when every strategy declines the integral is returned unevaluated.
"""

from __future__ import annotations
from fractions import Fraction
from typing import Callable, Optional, Tuple
import logging

from config import DEFAULT_CONFIG, CASConfig
from errors import NotImplementedMath, NotPolynomial
from evaluate import evaluate
from expression import (
    HALF, NEG_ONE, ONE, OO, TWO, ZERO,
    Add, Expr, Func, Integral, Matrix, Mul, Num, Pow, Sym, cast, is_undefined, make_add, make_mul,
)
from functions import REGISTRY, arcsin, arctan, cos, cot, ln, sin, tan
from pattern import Computed, PFunc, PMul, PPow, Rest, Rule, Wildcard, bottom_up
from simplify import simplify

logger = logging.getLogger(__name__)

Strategy = Callable[[Expr, Sym, int, CASConfig], Optional[Expr]]


def integrate(expr, var, lower=None, upper=None, strict: bool = False, config: CASConfig = DEFAULT_CONFIG) -> Expr:
    """Antiderivative (or definite integral when both bounds are given).

    Without strict an integral that no strategy can do comes back as an unevaluated `Integral`;
    with strict it raises NotImplementedMath.
    """
    e = simplify(expr)
    v = cast(var)
    if isinstance(e, Matrix):
        return e.with_children([integrate(x, v, lower, upper, strict, config) for x in e.children])
    F = antiderivative(e, v, config)
    if F is None:
        if strict:
            raise NotImplementedMath(f"no antiderivative found for {e}")
        logger.debug("integral of %s left unevaluated", e)
        return Integral(e, v, lower, upper) if lower is not None else Integral(e, v)
    if lower is None and upper is None:
        return F
    a, b = simplify(lower), simplify(upper)
    hi = _value_at(F, v, b, "-")
    lo = _value_at(F, v, a, "+")
    if hi is None or lo is None:
        if strict:
            raise NotImplementedMath(f"cannot evaluate the antiderivative of {e} at the bounds")
        return Integral(e, v, a, b)
    return simplify(Add(hi, Mul(NEG_ONE, lo)))


def _value_at(F: Expr, v: Sym, point: Expr, side: str) -> Optional[Expr]:
    from calculus import limit
    from expression import Limit
    if not point.has(OO):
        val = evaluate(F, {v: point})
        if not is_undefined(val):
            return val
    val = limit(F, v, point, side)
    if isinstance(val, Limit) or is_undefined(val):
        return None
    return val


def antiderivative(expr, var, config: CASConfig = DEFAULT_CONFIG, depth: int = 0) -> Optional[Expr]:
    """First strategy result, simplified, or None."""
    e = simplify(expr)
    v = cast(var)
    if depth > config.integration_max_depth:
        return None
    for name, strategy in STRATEGIES:
        out = strategy(e, v, depth, config)
        if out is not None:
            logger.debug("integrated %s by %s at depth %d", e, name, depth)
            return simplify(out)
    return None


# -----------------
# Helpers
# -----------------
def _linear(u: Expr, v: Sym) -> Optional[Expr]:
    """Slope a when u == a*v + b with a, b free of v and a != 0."""
    from expand import coefficients
    try:
        cs = coefficients(u, v)
    except NotPolynomial:
        return None
    if set(cs) - {0, 1} or 1 not in cs:
        return None
    return cs[1]


def _over(e: Expr, d: Expr) -> Expr:
    return Mul(e, Pow(d, NEG_ONE))


def _rational_parts(e: Expr, v: Sym):
    from classify import as_numer_denom
    from dispatch import to_poly
    num, den = as_numer_denom(e)
    try:
        return to_poly(num, v), to_poly(den, v)
    except NotPolynomial:
        return None


# -----------------
# Strategies
# -----------------
def _table(e: Expr, v: Sym, depth: int, config: CASConfig) -> Optional[Expr]:
    if not e.contains(v):
        return Mul(e, v)
    if e == v:
        return Mul(HALF, Pow(v, TWO))
    if isinstance(e, Pow):
        b, n = e.base, e.exp
        if not n.contains(v):
            if n == NEG_ONE and b == simplify(Add(ONE, Pow(v, TWO))):
                return arctan(v)
            if n == Num(Fraction(-1, 2)) and b == simplify(Add(ONE, Mul(NEG_ONE, Pow(v, TWO)))):
                return arcsin(v)
            if n == TWO and isinstance(b, Func) and b.name in ("sec", "csc"):
                a = _linear(b.children[0], v)
                if a is not None:
                    u = b.children[0]
                    prim = tan(u) if b.name == "sec" else Mul(NEG_ONE, cot(u))
                    return _over(prim, a)
            a = _linear(b, v)
            if a is not None:
                if n == NEG_ONE:
                    return _over(ln(b), a)
                m = simplify(Add(n, ONE))
                return _over(Pow(b, m), Mul(a, m))
        elif not b.contains(v):
            a = _linear(n, v)
            if a is not None:
                return _over(e, Mul(a, ln(b)))
        return None
    if isinstance(e, Func):
        args = e.children
        if e.name == "log" and len(args) == 2 and not args[1].contains(v):
            inner = antiderivative(ln(args[0]), v, config, depth + 1)
            return _over(inner, ln(args[1])) if inner is not None else None
        info = REGISTRY.get(e.name)
        if info is None or info.antiderivative is None or len(args) != 1:
            return None
        a = _linear(args[0], v)
        if a is None:
            return None
        return _over(info.antiderivative(args[0]), a)
    return None


def _linearity(e: Expr, v: Sym, depth: int, config: CASConfig) -> Optional[Expr]:
    from expand import expand
    if isinstance(e, Add):
        parts = []
        for t in e.children:
            F = antiderivative(t, v, config, depth + 1)
            if F is None:
                return None
            parts.append(F)
        return make_add(parts)
    if isinstance(e, Mul):
        const = [f for f in e.children if not f.contains(v)]
        rest = [f for f in e.children if f.contains(v)]
        if const and rest:
            F = antiderivative(make_mul(rest), v, config, depth + 1)
            return make_mul(const + [F]) if F is not None else None
    if isinstance(e, (Mul, Pow)):
        expanded = expand(e)
        if isinstance(expanded, Add):
            return _linearity(expanded, v, depth, config)
    return None


def _candidates(e: Expr, v: Sym):
    seen = []
    for node in e.walk():
        if isinstance(node, Func):
            found = list(node.children) + [node]
        elif isinstance(node, Pow):
            found = [node.base, node.exp]
        else:
            continue
        for c in found:
            if c.contains(v) and c != v and c not in seen:
                seen.append(c)
    return seen


def _substitution(e: Expr, v: Sym, depth: int, config: CASConfig) -> Optional[Expr]:
    from calculus import _fresh, diff
    u = _fresh(e, "u")
    for g in _candidates(e, v):
        dg = diff(g, v)
        if dg == ZERO or is_undefined(dg):
            continue
        q = simplify(_over(e, dg))
        r = simplify(q.substitute({g: u}))
        if r.contains(v) or r == e:
            continue
        F = antiderivative(r, u, config, depth + 1)
        if F is not None:
            logger.debug("substituted %s = %s", u, g)
            return F.substitute({u: g})
    return None


_LIATE = {
    "ln": 0, "log": 0,
    "arcsin": 1, "arccos": 1, "arctan": 1,
    "sin": 3, "cos": 3, "tan": 3, "sec": 3, "csc": 3, "cot": 3, "sinh": 3, "cosh": 3,
    "exp": 4,
}


def _rank(f: Expr, v: Sym) -> Optional[int]:
    from classify import polynomial_degree
    if isinstance(f, Func):
        return _LIATE.get(f.name)
    if isinstance(f, Pow) and isinstance(f.base, Func) and isinstance(f.exp, Num):
        return _LIATE.get(f.base.name)
    if polynomial_degree(f, v) is not None:
        return 2
    return None


def _by_parts(e: Expr, v: Sym, depth: int, config: CASConfig) -> Optional[Expr]:
    from calculus import diff
    factors = [f for f in (e.children if isinstance(e, Mul) else (e,)) if f.contains(v)]
    ranks = [_rank(f, v) for f in factors]
    if any(r is None for r in ranks) or all(r == 2 for r in ranks):
        return None
    if len(factors) == 1:
        if ranks[0] > 1:
            return None
        u, dv = e, ONE
    else:
        i = min(range(len(factors)), key=lambda k: ranks[k])
        u = factors[i]
        dv = simplify(_over(e, u))
    V = antiderivative(dv, v, config, depth + 1)
    if V is None:
        return None
    rest = antiderivative(simplify(Mul(V, diff(u, v))), v, config, depth + 1)
    if rest is None:
        return None
    return Add(Mul(u, V), Mul(NEG_ONE, rest))


def _partial_fractions(e: Expr, v: Sym, depth: int, config: CASConfig) -> Optional[Expr]:
    from risch import integrate_simple_fraction, partial_fractions
    parts = _rational_parts(e, v)
    if parts is None:
        return None
    A, D = parts
    A, D = A.to_field(), D.to_field()
    poly, rem = A.div_rem(D)
    out = []
    if not poly.is_zero():
        out.append(_integrate_poly(poly, v))
    if not rem.is_zero():
        for c, f, k in partial_fractions(rem, D):
            t = integrate_simple_fraction(c, f, k, v)
            if t is None:
                return None
            out.append(t)
    return make_add(out)


def _integrate_poly(p, v: Sym) -> Expr:
    from dispatch import from_poly
    from univariate import Poly
    ints = [Fraction(0)] + [Fraction(c) / (i + 1) for i, c in enumerate(p.coeffs)]
    return from_poly(Poly(ints, p.domain), v)


_U = Wildcard("u")

TRIG_REDUCTION = (
    Rule(
        "sin^2",
        PPow(PFunc("sin", _U), 2),
        Computed(lambda b: Mul(HALF, Add(ONE, Mul(NEG_ONE, cos(Mul(TWO, b["u"])))))),
    ),
    Rule(
        "cos^2",
        PPow(PFunc("cos", _U), 2),
        Computed(lambda b: Mul(HALF, Add(ONE, cos(Mul(TWO, b["u"]))))),
    ),
    Rule(
        "tan^2",
        PPow(PFunc("tan", _U), 2),
        Computed(lambda b: Add(Pow(Func("sec", b["u"]), TWO), NEG_ONE)),
    ),
    Rule(
        "sin*cos",
        PMul(PFunc("sin", _U), PFunc("cos", _U), Rest("r")),
        Computed(lambda b: Mul(HALF, sin(Mul(TWO, b["u"])), *b["r"])),
    ),
)


def _trigonometric(e: Expr, v: Sym, depth: int, config: CASConfig) -> Optional[Expr]:
    from expand import expand
    if not any(isinstance(n, Func) and n.name in ("sin", "cos", "tan") for n in e.walk()):
        return None
    reduced = expand(bottom_up(e, TRIG_REDUCTION, post=simplify))
    if reduced == e:
        return None
    return antiderivative(reduced, v, config, depth + 1)


def _split_exp(e: Expr, v: Sym) -> Optional[Tuple[Expr, Expr]]:
    """(p, f) with e == p * exp(f)."""
    factors = e.children if isinstance(e, Mul) else (e,)
    exps = [f for f in factors if isinstance(f, Func) and f.name == "exp"]
    if len(exps) != 1:
        return None
    rest = [f for f in factors if f is not exps[0]]
    return make_mul(rest) if rest else ONE, exps[0].children[0]


def _risch(e: Expr, v: Sym, depth: int, config: CASConfig) -> Optional[Expr]:
    from dispatch import to_poly
    from risch import integrate_poly_exp, integrate_rational
    parts = _rational_parts(e, v)
    if parts is not None:
        return integrate_rational(parts[0], parts[1], v)
    split = _split_exp(e, v)
    if split is None:
        return None
    try:
        p, f = to_poly(split[0], v), to_poly(split[1], v)
    except NotPolynomial:
        return None
    return integrate_poly_exp(p, f, v)


STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("table", _table),
    ("linearity", _linearity),
    ("substitution", _substitution),
    ("parts", _by_parts),
    ("partial_fractions", _partial_fractions),
    ("trigonometric", _trigonometric),
    ("risch", _risch),
)
