"""Integration of rational functions and of polynomial-times-exponential integrands.

Rational functions A/D go through Hermite reduction (rational part) and Rothstein-Trager (log
part); when the log part needs algebraic constants the square-free denominator is split into
irreducible factors and quadratic factors are integrated with arctan. Integrands p(x)*exp(f(x))
with polynomial p and f reduce to the Risch differential equation q' + f'q = p, which has a
polynomial solution or no elementary antiderivative at all.
"""

from __future__ import annotations
from fractions import Fraction
from typing import List, Optional, Sequence, Tuple
import logging

from domains import QQ
from errors import DivisionNotExact
from expression import NEG_ONE, Expr, Mul, Num, Pow, Sym, make_add
from factor import factor_list
from functions import arctan, exp, ln, sqrt
from number import Number
from simplify import simplify
from univariate import Poly

logger = logging.getLogger(__name__)


def _expr(p: Poly, x: Sym) -> Expr:
    from dispatch import from_poly
    return from_poly(p, x)


def _num(c) -> Expr:
    return Num(Number(Fraction(c)))


# -----------------
# Polynomial helpers
# -----------------
def extended_euclidean(a: Poly, b: Poly, c: Poly) -> Tuple[Poly, Poly]:
    """(s, t) with s*a + t*b = c and deg s < deg b; DivisionNotExact if gcd(a, b) does not divide c."""
    g, s0, t0 = a.ext_gcd(b)
    q, r = c.to_field().div_rem(g)
    if not r.is_zero():
        raise DivisionNotExact("c is not in the ideal generated by a and b")
    s, t = s0 * q, t0 * q
    if b.degree() is not None and b.degree() > 0:
        qq, s = s.div_rem(b.to_field())
        t = t + qq * a.to_field()
    return s, t


def interpolate(xs: Sequence[Fraction], ys: Sequence[Fraction]) -> Poly:
    """Lagrange interpolation over QQ."""
    out = Poly.zero(QQ)
    for k, (xk, yk) in enumerate(zip(xs, ys)):
        if yk == 0:
            continue
        basis = Poly.one(QQ)
        denom = Fraction(1)
        for j, xj in enumerate(xs):
            if j != k:
                basis = basis * Poly([-xj, 1], QQ)
                denom *= xk - xj
        out = out + basis.scalar_mul(Fraction(yk) / denom)
    return out


# -----------------
# Rational part
# -----------------
def hermite_reduce(A: Poly, D: Poly) -> Tuple[List[Tuple[Poly, Poly]], Poly, Poly]:
    """Mack's linear Hermite reduction of a proper fraction A/D.

    Returns (parts, H, S) with  integral(A/D) = sum(B/E for B, E in parts) + integral(H/S)
    and S square-free.
    """
    A, D = A.to_field(), D.to_field()
    parts: List[Tuple[Poly, Poly]] = []
    dm = D.gcd(D.derivative())
    ds = D.exact_div(dm)
    while dm.degree() > 0:
        dm2 = dm.gcd(dm.derivative())
        dms = dm.exact_div(dm2)
        lhs = (-(ds * dm.derivative())).exact_div(dm)
        B, C = extended_euclidean(lhs, dms, A)
        A = C - B.derivative() * ds.exact_div(dms)
        parts.append((B, dm))
        dm = dm2
    return parts, A, ds


# -----------------
# Log part
# -----------------
def rothstein_trager(A: Poly, D: Poly) -> Optional[List[Tuple[Fraction, Poly]]]:
    """[(c, v)] with integral(A/D) = sum(c * ln(v)) for square-free D and deg A < deg D.

    The resultant R(z) = res_x(D, A - z D') is recovered by interpolation; None when some root of
    R is irrational.
    """
    A, D = A.to_field(), D.to_field()
    n = D.degree()
    dD = D.derivative()
    zs = [Fraction(k) for k in range(n + 1)]
    values = [Fraction(D.resultant(A - dD.scalar_mul(z))) for z in zs]
    R = interpolate(zs, values)
    if R.is_constant():
        return []
    _, facs = factor_list(R)
    out: List[Tuple[Fraction, Poly]] = []
    for f, _ in facs:
        if f.degree() != 1:
            logger.debug("Rothstein-Trager resultant has an irreducible factor of degree %d", f.degree())
            return None
        c = Fraction(-f.coeff(0), f.coeff(1))
        v = D.gcd(A - dD.scalar_mul(c))
        out.append((c, v))
    return out


def partial_fractions(A: Poly, D: Poly) -> List[Tuple[Poly, Poly, int]]:
    """Full decomposition of a proper A/D into [(numerator, irreducible factor, power)].

    Each numerator has degree below its factor's degree and every factor is monic.
    """
    A, D = A.to_field(), D.to_field()
    lead = D.lc()
    _, facs = factor_list(D)
    out: List[Tuple[Poly, Poly, int]] = []
    monic = [(f.to_field().monic(), k) for f, k in facs]
    whole = Poly.one(QQ)
    for f, k in monic:
        whole = whole * f ** k
    A = A.scalar_mul(Fraction(1) / lead)
    for f, k in monic:
        P = f ** k
        Q = whole.exact_div(P)
        B = (A * Q.invert_mod(P)) % P
        for j in range(k, 0, -1):
            B, c = B.div_rem(f)
            if not c.is_zero():
                out.append((c, f, j))
    return out


def integrate_simple_fraction(c: Poly, f: Poly, k: int, x: Sym) -> Optional[Expr]:
    """integral of c/f**k for monic f of degree 1 or 2 and deg c < deg f."""
    if f.degree() == 1:
        fe = _expr(f, x)
        a = c.coeff(0)
        if k == 1:
            return Mul(_num(a), ln(fe))
        return Mul(_num(Fraction(a) / (1 - k)), Pow(fe, Num(1 - k)))
    if f.degree() == 2 and k == 1:
        b, q = f.coeff(1), f.coeff(0)
        p1, p0 = c.coeff(1), c.coeff(0)
        disc = 4 * q - b * b
        if disc <= 0:
            return None
        root = sqrt(_num(disc))
        log_term = Mul(_num(Fraction(p1) / 2), ln(_expr(f, x)))
        rest = Fraction(p0) - Fraction(p1) * Fraction(b) / 2
        arg = Mul(make_add([Mul(Num(2), x), _num(b)]), Pow(root, NEG_ONE))
        atan_term = Mul(_num(2 * rest), Pow(root, NEG_ONE), arctan(arg))
        return make_add([log_term, atan_term])
    return None


def _log_part(A: Poly, D: Poly, x: Sym) -> Optional[Expr]:
    logs = rothstein_trager(A, D)
    if logs is not None:
        return make_add([Mul(_num(c), ln(_expr(v, x))) for c, v in logs])
    terms = []
    for c, f, k in partial_fractions(A, D):
        t = integrate_simple_fraction(c, f, k, x)
        if t is None:
            piece = rothstein_trager(c, f ** k)
            if piece is None:
                return None
            t = make_add([Mul(_num(a), ln(_expr(v, x))) for a, v in piece])
        terms.append(t)
    return make_add(terms)


def integrate_rational(A: Poly, D: Poly, x: Sym) -> Optional[Expr]:
    """Antiderivative of A/D, or None when the log part needs algebraic numbers."""
    A, D = A.to_field(), D.to_field()
    poly, rem = A.div_rem(D)
    out: List[Expr] = []
    if not poly.is_zero():
        ints = [Fraction(0)] + [Fraction(c) / (i + 1) for i, c in enumerate(poly.coeffs)]
        out.append(_expr(Poly(ints, QQ), x))
    if rem.is_zero():
        return simplify(make_add(out))
    parts, H, S = hermite_reduce(rem, D)
    for B, E in parts:
        if not B.is_zero():
            out.append(Mul(_expr(B, x), Pow(_expr(E, x), NEG_ONE)))
    if not H.is_zero():
        q, H = H.div_rem(S)
        if not q.is_zero():
            ints = [Fraction(0)] + [Fraction(c) / (i + 1) for i, c in enumerate(q.coeffs)]
            out.append(_expr(Poly(ints, QQ), x))
        if not H.is_zero():
            logs = _log_part(H, S, x)
            if logs is None:
                return None
            out.append(logs)
    return simplify(make_add(out))


# -----------------
# Polynomial times exponential
# -----------------
def poly_rde(p: Poly, df: Poly) -> Optional[Poly]:
    """Polynomial q with q' + df*q = p, or None when there is none."""
    p, df = p.to_field(), df.to_field()
    if p.is_zero():
        return Poly.zero(QQ)
    if df.is_zero():
        return None
    m = df.degree()
    n = p.degree() - m
    if n < 0:
        return None
    q = Poly.zero(QQ)
    r = p
    for k in range(n, -1, -1):
        c = r.coeff(k + m) / df.lc()
        term = Poly.monomial(c, k, QQ)
        q = q + term
        r = r - term * df - term.derivative()
    if not r.is_zero():
        return None
    return q


def integrate_poly_exp(p: Poly, f: Poly, x: Sym) -> Optional[Expr]:
    """integral of p(x)*exp(f(x)); None when it is not elementary."""
    q = poly_rde(p, f.derivative())
    if q is None:
        logger.debug("no polynomial solution of the Risch equation for degree %s", f.degree())
        return None
    return simplify(Mul(_expr(q, x), exp(_expr(f, x))))

