"""Gröbner bases of integer polynomial ideals by Buchberger's algorithm.

Coefficients stay integral: each reduction step scales by leading coefficients instead of
dividing, and results are made primitive. The basis returned is therefore a reduced Gröbner
basis over QQ whose elements are primitive integer polynomials with positive leading
coefficient (the integral analogue of monic).
"""

from __future__ import annotations
from typing import List, Sequence, Tuple
import logging
import math

from errors import DomainError
from monomial import monom_div, monom_divides, monom_gcd, monom_lcm, monom_one, order_key
from multivariate import MultiPoly

logger = logging.getLogger(__name__)


def _normalize(p: MultiPoly, order: str) -> MultiPoly:
    if p.is_zero():
        return p
    c = p.content()
    if p.leading_coefficient(order) < 0:
        c = -c
    return p.exact_div_int(c)


def _leading_monom(p: MultiPoly, order: str):
    return p.leading_term(order)[0]


def s_polynomial(f: MultiPoly, g: MultiPoly, order: str = 'grevlex') -> MultiPoly:
    """Integer combination of f and g cancelling their leading terms at lcm(LM(f), LM(g))."""
    fm, fc = f.leading_term(order)
    gm, gc = g.leading_term(order)
    lcm = monom_lcm(fm, gm)
    k = math.gcd(fc, gc)
    return f.mul_monom(monom_div(lcm, fm), gc // k) - g.mul_monom(monom_div(lcm, gm), fc // k)


def reduce(f: MultiPoly, basis: Sequence[MultiPoly], order: str = 'grevlex') -> MultiPoly:
    """Normal form of f modulo basis, made primitive.

    Full reduction: every term of the result is free of the basis' leading monomials. The
    normal form over QQ is the result times a non-zero rational.
    """
    divisors = [(g, g.leading_term(order)) for g in basis if not g.is_zero()]
    p = f
    r = MultiPoly.zero(f.gens)
    while not p.is_zero():
        pm, pc = p.leading_term(order)
        for g, (gm, gc) in divisors:
            mono = monom_div(pm, gm)
            if mono is None:
                continue
            k = math.gcd(pc, gc)
            scale = gc // k
            p = p.scalar_mul(scale) - g.mul_monom(mono, pc // k)
            r = r.scalar_mul(scale)
            break
        else:
            lead = MultiPoly({pm: pc}, f.gens)
            r = r + lead
            p = p - lead
        common = math.gcd(p.content(), r.content())
        if common > 1:
            p, r = p.exact_div_int(common), r.exact_div_int(common)
    return _normalize(r, order)


def _check_gens(polys: Sequence[MultiPoly]) -> Tuple[str, ...]:
    gens = polys[0].gens
    for p in polys[1:]:
        if p.gens != gens:
            raise DomainError(f"polynomials over {gens} and {p.gens} do not mix")
    return gens


def groebner(polys: Sequence[MultiPoly], order: str = 'grevlex') -> List[MultiPoly]:
    """Reduced Gröbner basis of the ideal generated by polys, sorted by descending leading
    monomial. The zero ideal gives [] and the unit ideal gives [1]."""
    key = order_key(order)
    if not polys:
        return []
    gens = _check_gens(list(polys))
    basis = [_normalize(p, order) for p in polys if not p.is_zero()]
    if any(p.is_constant() for p in basis):
        return [MultiPoly.one(gens)]
    pairs = [(i, j) for j in range(len(basis)) for i in range(j)]
    steps = 0
    while pairs:
        # normal selection strategy: smallest lcm first
        pairs.sort(key=lambda ij: key(monom_lcm(
            _leading_monom(basis[ij[0]], order), _leading_monom(basis[ij[1]], order))))
        i, j = pairs.pop(0)
        fm = _leading_monom(basis[i], order)
        gm = _leading_monom(basis[j], order)
        if monom_gcd(fm, gm) == monom_one(len(gens)):
            continue
        steps += 1
        h = reduce(s_polynomial(basis[i], basis[j], order), basis, order)
        if h.is_zero():
            continue
        if h.is_constant():
            logger.debug("unit ideal after %d S-polynomials", steps)
            return [MultiPoly.one(gens)]
        basis.append(h)
        pairs.extend((k, len(basis) - 1) for k in range(len(basis) - 1))
    logger.debug("Buchberger finished: %d S-polynomials, %d generators", steps, len(basis))
    return _reduce_basis(basis, order)


def _reduce_basis(basis: List[MultiPoly], order: str) -> List[MultiPoly]:
    key = order_key(order)
    minimal: List[MultiPoly] = []
    for g in sorted(basis, key=lambda p: key(_leading_monom(p, order))):
        gm = _leading_monom(g, order)
        if not any(monom_divides(_leading_monom(h, order), gm) for h in minimal):
            minimal.append(g)
    out = [reduce(g, minimal[:i] + minimal[i + 1:], order) for i, g in enumerate(minimal)]
    return sorted(out, key=lambda p: key(_leading_monom(p, order)), reverse=True)


def is_groebner(basis: Sequence[MultiPoly], order: str = 'grevlex') -> bool:
    """Buchberger's criterion: every S-polynomial reduces to zero."""
    basis = [g for g in basis if not g.is_zero()]
    for j in range(len(basis)):
        for i in range(j):
            if not reduce(s_polynomial(basis[i], basis[j], order), basis, order).is_zero():
                return False
    return True


def in_ideal(f: MultiPoly, polys: Sequence[MultiPoly], order: str = 'grevlex') -> bool:
    """Ideal membership: f reduces to zero modulo a Gröbner basis of polys."""
    if f.is_zero():
        return True
    return reduce(f, groebner(polys, order), order).is_zero()
