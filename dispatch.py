"""Polynomial operations on expressions.

Expressions are lowered to `Poly` (one variable, integer or rational coefficients) or to
`MultiPoly` (several variables, integer coefficients times a rational scale), the kernel does the
work, and the result is lifted back and simplified.
"""

from __future__ import annotations
from fractions import Fraction
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import math

from classify import as_numer_denom
from domains import QQ, ZZ
from errors import DivisionByZero, NotPolynomial
from expand import coefficients, expand
from expression import (
    ONE, ZERO, Add, Expr, Mul, Num, Pow, Sym, cast, make_add, make_mul,
)
from factor import factor_list
from groebner import groebner
from multivariate import MultiPoly
from number import Number
from simplify import as_coeff_term, simplify
from univariate import Poly
from zippel import lcm as multi_lcm, zippel_gcd

logger = logging.getLogger(__name__)


# -----------------
# Lowering and lifting
# -----------------
def _sorted_symbols(*exprs: Expr) -> Tuple[Sym, ...]:
    syms = set()
    for e in exprs:
        syms |= e.free_symbols()
    return tuple(sorted(syms, key=lambda s: s.sort_key()))


def _exact(c: Expr, expr: Expr, variables) -> Fraction:
    if not isinstance(c, Num) or not c.value.is_exact():
        raise NotPolynomial(expr, tuple(variables))
    return c.value.to_fraction()


def to_poly(expr, var) -> Poly:
    """Dense polynomial of expr in var, over ZZ when every coefficient is an integer, else QQ."""
    v = cast(var)
    e = cast(expr)
    cs = coefficients(e, v)
    values = {k: _exact(c, e, (v,)) for k, c in cs.items()}
    if not values:
        return Poly.zero(ZZ)
    dense = [values.get(k, Fraction(0)) for k in range(max(values) + 1)]
    if all(c.denominator == 1 for c in dense):
        return Poly([c.numerator for c in dense], ZZ)
    return Poly(dense, QQ)


def _power(var: Expr, k: int) -> Expr:
    if k == 0:
        return ONE
    return var if k == 1 else Pow(var, Num(k))


def from_poly(p: Poly, var) -> Expr:
    v = cast(var)
    terms = []
    for k, c in enumerate(p.coeffs):
        if p.domain.is_zero(c):
            continue
        terms.append(Mul(Num(p.domain.to_number(c)), _power(v, k)))
    return simplify(make_add(terms))


def _monomial(term: Expr, gens: Sequence[Sym], expr: Expr) -> Tuple[Fraction, Tuple[int, ...]]:
    coeff, rest = as_coeff_term(term)
    if not coeff.is_exact():
        raise NotPolynomial(expr, tuple(gens))
    exps = [0] * len(gens)
    index = {g: i for i, g in enumerate(gens)}
    factors = list(rest.children) if isinstance(rest, Mul) else ([] if rest == ONE else [rest])
    for f in factors:
        base, k = f, 1
        if isinstance(f, Pow):
            if not (isinstance(f.exp, Num) and f.exp.value.is_int() and f.exp.value.to_int() > 0):
                raise NotPolynomial(expr, tuple(gens))
            base, k = f.base, f.exp.value.to_int()
        i = index.get(base)
        if i is None:
            raise NotPolynomial(expr, tuple(gens))
        exps[i] += k
    return coeff.to_fraction(), tuple(exps)


def to_multipoly(expr, gens: Optional[Sequence] = None) -> Tuple[Fraction, MultiPoly]:
    """(scale, P) with expr == scale * P and P an integer polynomial in gens."""
    e = cast(expr)
    gens = tuple(cast(g) for g in gens) if gens is not None else _sorted_symbols(e)
    names = tuple(g.name for g in gens)
    expanded = expand(e)
    terms: Dict[Tuple[int, ...], Fraction] = {}
    for t in (expanded.children if isinstance(expanded, Add) else (expanded,)):
        if t == ZERO:
            continue
        c, m = _monomial(t, gens, e)
        terms[m] = terms.get(m, Fraction(0)) + c
    den = 1
    for c in terms.values():
        den = den * c.denominator // math.gcd(den, c.denominator)
    ints = {m: int(c * den) for m, c in terms.items() if c}
    return Fraction(1, den), MultiPoly(ints, names)


def from_multipoly(p: MultiPoly, scale=1) -> Expr:
    gens = [Sym(g) for g in p.gens]
    terms = []
    for m, c in p.terms.items():
        factors: List[Expr] = [Num(Number(Fraction(c) * Fraction(scale)))]
        factors.extend(_power(g, k) for g, k in zip(gens, m) if k)
        terms.append(Mul(*factors))
    return simplify(make_add(terms))


# -----------------
# Division
# -----------------
def _numeric_coeffs(cs: Dict[int, Expr]) -> bool:
    return all(isinstance(c, Num) and c.value.is_exact() for c in cs.values())


def poly_div(f, g, var=None) -> Tuple[Expr, Expr]:
    """(quotient, remainder) of f by g as polynomials in var.

    Numeric coefficients go through the dense kernel over QQ; symbolic coefficients use long
    division with each quotient coefficient cancelled.
    """
    f, g = simplify(f), simplify(g)
    if var is None:
        syms = _sorted_symbols(f, g)
        if not syms:
            if g == ZERO:
                raise DivisionByZero("polynomial division by zero")
            return simplify(Mul(f, Pow(g, Num(-1)))), ZERO
        var = syms[0]
    v = cast(var)
    cf, cg = coefficients(f, v), coefficients(g, v)
    if not cg:
        raise DivisionByZero("polynomial division by zero")
    if _numeric_coeffs(cf) and _numeric_coeffs(cg):
        q, r = to_poly(f, v).to_field().div_rem(to_poly(g, v).to_field())
        return from_poly(q, v), from_poly(r, v)
    dg = max(cg)
    lead = cg[dg]
    rem = dict(cf)
    quot: Dict[int, Expr] = {}
    while rem and max(rem) >= dg:
        k = max(rem)
        c = cancel(Mul(rem[k], Pow(lead, Num(-1))))
        quot[k - dg] = c
        for j, b in cg.items():
            acc = simplify(Add(rem.get(j + k - dg, ZERO), Mul(Num(-1), c, b)))
            if acc == ZERO:
                rem.pop(j + k - dg, None)
            else:
                rem[j + k - dg] = acc
        rem.pop(k, None)
    q = simplify(make_add([Mul(c, _power(v, k)) for k, c in quot.items()]))
    r = simplify(make_add([Mul(c, _power(v, k)) for k, c in rem.items()]))
    return q, r


def divides(g, f, var=None) -> bool:
    return poly_div(f, g, var)[1] == ZERO


# -----------------
# gcd / lcm
# -----------------
def _rational_gcd(a: Fraction, b: Fraction) -> Fraction:
    num = math.gcd(a.numerator, b.numerator)
    den = a.denominator * b.denominator // math.gcd(a.denominator, b.denominator)
    return Fraction(num, den)


def gcd(f, g) -> Expr:
    """gcd of two polynomial expressions over ZZ (positive leading coefficient)."""
    f, g = simplify(f), simplify(g)
    gens = _sorted_symbols(f, g)
    if not gens:
        a, b = _exact(f, f, ()), _exact(g, g, ())
        return Num(Number(_rational_gcd(a, b)))
    sf, pf = to_multipoly(f, gens)
    sg, pg = to_multipoly(g, gens)
    h = zippel_gcd(pf, pg)
    scale = Fraction(1, math.lcm(sf.denominator, sg.denominator))
    logger.debug("gcd over %s: %s", pf.gens, h)
    return from_multipoly(h, scale)


def lcm(f, g) -> Expr:
    f, g = simplify(f), simplify(g)
    gens = _sorted_symbols(f, g)
    if not gens:
        a, b = _exact(f, f, ()), _exact(g, g, ())
        if a == 0 or b == 0:
            return ZERO
        return Num(Number(abs(a * b) / _rational_gcd(a, b)))
    sf, pf = to_multipoly(f, gens)
    sg, pg = to_multipoly(g, gens)
    scale = Fraction(1, math.gcd(sf.denominator, sg.denominator))
    return from_multipoly(multi_lcm(pf, pg), scale)


# -----------------
# Factorisation
# -----------------
def _product(content: Fraction, factors: List[Tuple[Expr, int]]) -> Expr:
    parts: List[Expr] = []
    if content != 1 or not factors:
        parts.append(Num(Number(content)))
    for base, k in factors:
        parts.append(base if k == 1 else Pow(base, Num(k)))
    return make_mul(parts) if len(parts) > 1 else parts[0]


def _monomial_content(p: MultiPoly) -> Tuple[Tuple[int, ...], MultiPoly]:
    if not p.terms:
        return tuple(0 for _ in p.gens), p
    low = tuple(min(m[i] for m in p.terms) for i in range(p.nvars))
    if not any(low):
        return low, p
    shifted = {tuple(e - l for e, l in zip(m, low)): c for m, c in p.terms.items()}
    return low, MultiPoly(shifted, p.gens)


def _active(p: MultiPoly) -> List[int]:
    return [i for i in range(p.nvars) if p.degree(i) > 0]


def _yun(p: MultiPoly, i: int) -> List[Tuple[MultiPoly, int]]:
    """Square-free decomposition in gens[i]; the product of the parts times the leftover is p."""
    g = zippel_gcd(p, p.derivative(i))
    h = p.exact_div(g)
    out: List[Tuple[MultiPoly, int]] = []
    k = 1
    while not h.is_constant():
        s = zippel_gcd(g, h)
        part = h.exact_div(s)
        if not part.is_constant():
            out.append((part, k))
        g = g.exact_div(s)
        h = s
        k += 1
    return out


def _factor_multipoly(p: MultiPoly) -> Tuple[int, List[Tuple[MultiPoly, int]]]:
    active = _active(p)
    if not active:
        return p.constant_value(), []
    if len(active) == 1:
        i = active[0]
        content, facs = factor_list(p.to_poly(i))
        return int(content), [(MultiPoly.from_poly(f, i, p.gens), k) for f, k in facs]
    parts = _yun(p, active[0])
    if parts == [(p, 1)]:
        return 1, [(p, 1)]
    rest = p
    for part, k in parts:
        rest = rest.exact_div(part ** k)
    unit = 1
    out: List[Tuple[MultiPoly, int]] = []
    for part, k in parts:
        c, sub = _factor_multipoly(part)
        unit *= c ** k
        out.extend((f, j * k) for f, j in sub)
    if rest.is_constant():
        unit *= rest.constant_value()
    else:
        c, sub = _factor_multipoly(rest) if _active(rest) != active else (1, [(rest, 1)])
        unit *= c
        out.extend(sub)
    return unit, out


def factor(expr) -> Expr:
    """Product of irreducible factors (univariate over ZZ); multivariate input is split into
    content, monomial and square-free parts, with univariate parts fully factored."""
    e = simplify(expr)
    gens = _sorted_symbols(e)
    if not gens:
        return e
    num, den = as_numer_denom(e)
    if den != ONE:
        return simplify(Mul(factor(num), Pow(factor(den), Num(-1))))
    try:
        scale, p = to_multipoly(e, gens)
    except NotPolynomial:
        return e
    if p.is_zero():
        return ZERO
    content, prim = p.primitive()
    low, prim = _monomial_content(prim)
    unit, facs = _factor_multipoly(prim)
    factors: List[Tuple[Expr, int]] = [(g, k) for g, k in zip(gens, low) if k]
    factors.extend((from_multipoly(f), k) for f, k in facs)
    return simplify(_product(scale * content * unit, factors))


def factor_terms(expr) -> List[Tuple[Expr, int]]:
    """factor(expr) as a list of (factor, multiplicity), numeric content first."""
    f = factor(expr)
    items = f.children if isinstance(f, Mul) else (f,)
    out = []
    for item in items:
        if isinstance(item, Pow) and isinstance(item.exp, Num) and item.exp.value.is_int():
            out.append((item.base, item.exp.value.to_int()))
        else:
            out.append((item, 1))
    return out


def square_free(expr, var=None) -> List[Tuple[Expr, int]]:
    """Yun's decomposition [(f_i, i)] of a polynomial expression with prod(f_i**i) == expr.

    A numeric content other than one, and for multivariate input the part free of the
    decomposition variable, lead the list with multiplicity one.
    """
    e = simplify(expr)
    gens = _sorted_symbols(e)
    if not gens:
        return []
    if len(gens) == 1:
        v = cast(var) if var is not None else gens[0]
        return [(from_poly(f, v), k) for f, k in to_poly(e, v).square_free()]
    scale, p = to_multipoly(e, gens)
    content, prim = p.primitive()
    i = gens.index(cast(var)) if var is not None else _active(prim)[0]
    parts = _yun(prim, i)
    rest = prim
    for part, k in parts:
        rest = rest.exact_div(part ** k)
    unit = scale * content
    out = [(from_multipoly(f), k) for f, k in parts]
    if not rest.is_constant():
        return [(from_multipoly(rest, unit), 1)] + out
    unit *= rest.constant_value()
    if unit != 1:
        out.insert(0, (Num(Number(unit)), 1))
    return out


def groebner_basis(exprs: Sequence, gens: Optional[Sequence] = None, order: str = 'grevlex') -> List[Expr]:
    """Reduced Gröbner basis of the ideal generated by polynomial expressions.

    Variables default to every free symbol in sorted order; earlier variables rank higher under
    the lex orders. Each element has integer coefficients with no common factor.
    """
    es = [simplify(e) for e in exprs]
    gens = tuple(cast(g) for g in gens) if gens is not None else _sorted_symbols(*es)
    if not gens:
        return [ONE] if any(e != ZERO for e in es) else []
    polys = [to_multipoly(e, gens)[1] for e in es]
    return [from_multipoly(p) for p in groebner(polys, order)]


# -----------------
# Rational functions
# -----------------
def cancel(expr) -> Expr:
    """Reduce a rational function to n/d with gcd(n, d) = 1 and a positive leading denominator."""
    e = simplify(expr)
    gens = _sorted_symbols(e)
    if not gens:
        return e
    num, den = as_numer_denom(e)
    if den == ONE:
        return e
    try:
        sn, pn = to_multipoly(num, gens)
        sd, pd = to_multipoly(den, gens)
    except NotPolynomial:
        return e
    if pd.is_zero():
        raise DivisionByZero("rational function with zero denominator")
    h = zippel_gcd(pn, pd)
    pn, pd = pn.exact_div(h), pd.exact_div(h)
    cd, pd = pd.primitive()
    scale = sn / sd / cd
    n_expr = from_multipoly(pn, scale)
    if pd.is_one():
        return n_expr
    return simplify(Mul(n_expr, Pow(from_multipoly(pd), Num(-1))))


def apart_terms(expr, var) -> Tuple[Expr, Expr, Expr]:
    """(polynomial part, numerator, denominator) of a proper split of a rational function."""
    v = cast(var)
    num, den = as_numer_denom(cancel(expr))
    q, r = poly_div(num, den, v)
    return q, r, den


# -----------------
# Polynomial extras on expressions
# -----------------
def resultant(f, g, var) -> Expr:
    v = cast(var)
    a, b = to_poly(f, v).to_field(), to_poly(g, v).to_field()
    return Num(Number(a.resultant(b)))


def discriminant(f, var) -> Expr:
    v = cast(var)
    return Num(Number(to_poly(f, v).to_field().discriminant()))


def ext_gcd(f, g, var) -> Tuple[Expr, Expr, Expr]:
    """(h, s, t) with s*f + t*g = h, h monic, as expressions in var."""
    v = cast(var)
    h, s, t = to_poly(f, v).ext_gcd(to_poly(g, v))
    return from_poly(h, v), from_poly(s, v), from_poly(t, v)
