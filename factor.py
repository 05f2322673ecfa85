"""Factorisation of integer polynomials.

Square-free decomposition (Yun), then for each square-free part: choose a prime that keeps the
part square-free, factor it there with Berlekamp, lift the modular factors with Hensel's lemma
past the Mignotte bound and recombine them by Zassenhaus subset search with trial division.
"""

from __future__ import annotations
from fractions import Fraction
from itertools import combinations
from typing import List, Optional, Tuple
import logging
import math

from domains import QQ, ZZ, GF
from errors import DivisionNotExact, DomainError
from finite_field import PolyZp
from number import mod_inverse, next_prime, symmetric_mod
from univariate import Poly

logger = logging.getLogger(__name__)

PRIME_CANDIDATES = 5
MAX_PRIME_SEARCH = 200


def _trunc(f: Poly, m: int) -> Poly:
    """Coefficients reduced to symmetric residues mod m."""
    return Poly([symmetric_mod(c, m) for c in f.coeffs], ZZ)


def _to_zp(f: Poly, p: int) -> PolyZp:
    return PolyZp(f.coeffs, p)


def _from_zp(f: PolyZp) -> Poly:
    return Poly(f.symmetric_coeffs(), ZZ)


def mignotte_bound(f: Poly) -> int:
    n = f.degree()
    norm = max(abs(c) for c in f.coeffs)
    return (math.isqrt(n + 1) + 1) * (1 << n) * norm * abs(f.lc())


def _div_monic(a: Poly, b: Poly, m: int) -> Tuple[Poly, Poly]:
    q, r = a.div_rem(b)
    return _trunc(q, m), _trunc(r, m)


def hensel_step(m: int, f: Poly, g: Poly, h: Poly, s: Poly, t: Poly) -> Tuple[Poly, Poly, Poly, Poly]:
    """One quadratic lifting step from f = g*h (mod m) with s*g + t*h = 1 (mod m) to modulus m**2.

    h must be monic.
    """
    M = m * m
    e = _trunc(f - g * h, M)
    q, r = _div_monic(_trunc(s * e, M), h, M)
    u = _trunc(t * e + q * g, M)
    G = _trunc(g + u, M)
    H = _trunc(h + r, M)
    b = _trunc(s * G + t * H - Poly.one(ZZ), M)
    c, d = _div_monic(_trunc(s * b, M), H, M)
    S = _trunc(s - d, M)
    T = _trunc(t - t * b - c * G, M)
    return G, H, S, T


def hensel_lift(p: int, f: Poly, factors: List[Poly], l: int) -> List[Poly]:
    """Lift monic factors of f mod p to monic factors mod p**l."""
    r = len(factors)
    lc = f.lc()
    pl = p ** l
    if r == 1:
        return [_trunc(f.scalar_mul(mod_inverse(lc, pl)), pl)]
    k = r // 2
    d = max(1, math.ceil(math.log2(l)))
    g = _to_zp(Poly([lc], ZZ), p)
    for fi in factors[:k]:
        g = g * _to_zp(fi, p)
    h = PolyZp.one(p)
    for fi in factors[k:]:
        h = h * _to_zp(fi, p)
    _, s, t = g.ext_gcd(h)
    G, H, S, T = _from_zp(g), _from_zp(h), _from_zp(s), _from_zp(t)
    m = p
    for _ in range(d):
        G, H, S, T = hensel_step(m, f, G, H, S, T)
        m = m * m
    return hensel_lift(p, G, factors[:k], l) + hensel_lift(p, H, factors[k:], l)


def _choose_prime(f: Poly) -> Tuple[int, List[PolyZp]]:
    """Prime with the fewest modular factors among the first few that keep f square-free."""
    best: Optional[Tuple[int, List[PolyZp]]] = None
    seen = 0
    p = 2
    for _ in range(MAX_PRIME_SEARCH):
        p = next_prime(p)
        if f.lc() % p == 0:
            continue
        fp = _to_zp(f, p)
        if not fp.is_square_free():
            continue
        facs = fp.berlekamp()
        if best is None or len(facs) < len(best[1]):
            best = (p, facs)
        seen += 1
        if len(facs) == 1 or seen >= PRIME_CANDIDATES:
            break
    if best is None:
        raise DomainError("no suitable prime for modular factorisation")
    return best


def zassenhaus(f: Poly) -> List[Poly]:
    """Irreducible factors of a primitive square-free f with positive leading coefficient."""
    n = f.degree()
    if n <= 1:
        return [f]
    p, modular = _choose_prime(f)
    if len(modular) == 1:
        return [f]
    bound = 2 * mignotte_bound(f) + 1
    l = 1
    while p ** l <= bound:
        l += 1
    pl = p ** l
    logger.debug("zassenhaus: degree %d, %d factors mod %d, lifting to %d^%d", n, len(modular), p, p, l)
    lifted = hensel_lift(p, f, [_from_zp(g) for g in modular], l)
    out: List[Poly] = []
    remaining = list(range(len(lifted)))
    s = 1
    while 2 * s <= len(remaining):
        for subset in combinations(remaining, s):
            b = f.lc()
            G = Poly([b], ZZ)
            for i in subset:
                G = _trunc(G * lifted[i], pl)
            G = G.primitive_part()
            if G.is_constant():
                continue
            try:
                q = f.exact_div(G)
            except DivisionNotExact:
                continue
            out.append(G)
            f = q.primitive_part()
            remaining = [i for i in remaining if i not in subset]
            break
        else:
            s += 1
    out.append(f)
    return out


def factor_square_free(f: Poly) -> List[Poly]:
    if f.degree() == 1:
        return [f]
    if f.coeff(0) == 0:
        x = Poly.x(ZZ)
        return [x] + factor_square_free(f.exact_div(x))
    return zassenhaus(f)


def factor_list(f: Poly) -> Tuple[Fraction, List[Tuple[Poly, int]]]:
    """(unit content, [(irreducible factor, multiplicity)]) with f = content * prod(f_i**k_i).

    Works over ZZ and QQ; factors are primitive integer polynomials with positive leading
    coefficient, sorted by degree then coefficients.
    """
    if f.domain == QQ:
        d, fz = f.clear_denominators()
        c, facs = factor_list(fz)
        return Fraction(c) / d, facs
    if f.domain != ZZ:
        if f.domain.characteristic:
            lead, facs = PolyZp([c.value for c in f.coeffs], f.domain.characteristic).factor()
            return Fraction(lead), [(Poly(g.coeffs, f.domain), k) for g, k in facs]
        raise DomainError(f"cannot factor over {f.domain}")
    if f.is_zero():
        return Fraction(0), []
    content, prim = f.primitive()
    if prim.is_constant():
        return Fraction(content), []
    out: List[Tuple[Poly, int]] = []
    for part, k in prim.square_free():
        for g in factor_square_free(part):
            out.append((g.primitive_part(), k))
    out.sort(key=lambda t: (t[0].degree(), [abs(c) for c in reversed(t[0].coeffs)], t[1]))
    return Fraction(content), out


def factor_mod(f: Poly, p: int) -> Tuple[int, List[Tuple[Poly, int]]]:
    lead, facs = _to_zp(f, p).factor()
    dom = GF(p)
    return lead, [(Poly(g.coeffs, dom), k) for g, k in facs]


def is_irreducible(f: Poly) -> bool:
    _, facs = factor_list(f)
    return len(facs) == 1 and facs[0][1] == 1
