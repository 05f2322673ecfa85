"""Multivariate integer gcd.

`zippel_gcd` extracts integer content, orders variables by estimated gcd degree, tries the
heuristic evaluation gcd for small inputs and otherwise builds modular images: a dense image
(Brown style Newton interpolation, one variable at a time) fixes the monomial skeleton, later
primes are filled in by sparse interpolation (Zippel) and combined by CRT. Every candidate is
checked by trial division; when the caps are exhausted `GCDFailed` is raised internally and the
classical recursive algorithm answers instead.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import math
import random

from config import DEFAULT_CONFIG, CASConfig
from errors import GCDFailed
from finite_field import PolyZp
from monomial import Monom
from multivariate import MultiPoly, recursive_gcd
from number import crt_pair, is_prime, mod_inverse

logger = logging.getLogger(__name__)


def _prime_pool(count: int) -> List[int]:
    out = []
    c = (1 << 31) - 1
    while len(out) < count:
        if is_prime(c):
            out.append(c)
        c -= 2
    return out


PRIME_POOL: Tuple[int, ...] = tuple(_prime_pool(32))


class _Unlucky(Exception):
    pass


class _Restart(Exception):
    pass


def _normalize(p: MultiPoly) -> MultiPoly:
    return -p if p.terms and p.leading_coefficient() < 0 else p


# -----------------
# Heuristic gcd
# -----------------
def _max_norm(p: MultiPoly) -> int:
    return max((abs(c) for c in p.terms.values()), default=0)


def _interpolate_xi(h: MultiPoly, xi: int, gens: Tuple[str, ...]) -> MultiPoly:
    """Recover a polynomial in gens[0] from its value at gens[0] = xi (symmetric base-xi digits)."""
    coeffs: Dict[int, MultiPoly] = {}
    k = 0
    while not h.is_zero():
        digit = h.symmetric_mod(xi)
        if not digit.is_zero():
            coeffs[k] = digit
        h = (h - digit).exact_div_int(xi)
        k += 1
    return MultiPoly.from_coeffs_in(0, coeffs, gens)


def _heu(f: MultiPoly, g: MultiPoly, retries: int) -> MultiPoly:
    if f.is_zero():
        return _normalize(g)
    if g.is_zero():
        return _normalize(f)
    if f.nvars == 0:
        return MultiPoly.constant(math.gcd(f.constant_value(), g.constant_value()), f.gens)
    cf, f1 = f.primitive()
    cg, g1 = g.primitive()
    c = math.gcd(cf, cg)
    if f1.is_constant() or g1.is_constant():
        return MultiPoly.constant(c, f.gens)
    b = min(_max_norm(f1), _max_norm(g1))
    lf, lg = abs(f1.leading_coefficient()), abs(g1.leading_coefficient())
    xi = max(min(b, 99 * math.isqrt(b)), 2 * min(_max_norm(f1) // lf, _max_norm(g1) // lg) + 2)
    for _ in range(retries):
        ff, gg = f1.evaluate(0, xi), g1.evaluate(0, xi)
        if not ff.is_zero() and not gg.is_zero():
            try:
                h = _heu(ff, gg, retries)
            except GCDFailed:
                h = None
            if h is not None:
                cand = _interpolate_xi(h, xi, f1.gens)
                if not cand.is_zero():
                    cand = _normalize(cand.primitive()[1])
                    if cand.divides(f1) and cand.divides(g1):
                        return cand.scalar_mul(c)
        xi = 73794 * xi * math.isqrt(math.isqrt(xi)) // 27011
    raise GCDFailed("heuristic gcd did not converge")


def heuristic_gcd(f: MultiPoly, g: MultiPoly, config: CASConfig = DEFAULT_CONFIG) -> MultiPoly:
    """Evaluation/interpolation gcd; GCDFailed after `config.heuristic_gcd_retries` points."""
    return _heu(f, g, config.heuristic_gcd_retries)


# -----------------
# Modular images
# -----------------
def _eval_y(f: MultiPoly, point: Sequence[int], p: int) -> PolyZp:
    """f(x, y=point) mod p as a univariate polynomial in the first variable."""
    cs: Dict[int, int] = {}
    for m, c in f.terms.items():
        t = c
        for v, e in zip(point, m[1:]):
            if e:
                t = t * pow(v, e, p) % p
        cs[m[0]] = (cs.get(m[0], 0) + t) % p
    n = max(cs, default=-1) + 1
    return PolyZp([cs.get(i, 0) for i in range(n)], p)


def _interp_univariate(points: Sequence[int], values: Sequence[int], p: int) -> List[int]:
    """Coefficients (ascending) of the polynomial through (points, values) mod p (Newton form)."""
    n = len(points)
    coef = [v % p for v in values]
    for j in range(1, n):
        for i in range(n - 1, j - 1, -1):
            num = (coef[i] - coef[i - 1]) % p
            coef[i] = num * mod_inverse(points[i] - points[i - j], p) % p
    out = [0] * n
    for i in range(n - 1, -1, -1):
        # out = out * (y - points[i]) + coef[i]
        nxt = [0] * n
        for k in range(n - 1):
            nxt[k + 1] = (nxt[k + 1] + out[k]) % p
        for k in range(n):
            nxt[k] = (nxt[k] - points[i] * out[k]) % p
        nxt[0] = (nxt[0] + coef[i]) % p
        out = nxt
    return out


class _ModularGCD:
    def __init__(self, f: MultiPoly, g: MultiPoly, gamma: MultiPoly, config: CASConfig, rng: random.Random):
        self.f = f
        self.g = g
        self.gamma = gamma
        self.k = f.nvars - 1
        self.config = config
        self.rng = rng
        self.dfx = f.degree(0)
        self.dgx = g.degree(0)
        self.bounds = [
            min(f.degree(j), g.degree(j)) + max(gamma.degree(j - 1), 0) for j in range(1, f.nvars)
        ]
        self.xdeg: Optional[int] = None

    def _image_at(self, point: Sequence[int], p: int) -> Optional[PolyZp]:
        """gamma(point) * monic gcd of the specialised inputs, or None for a bad point."""
        gam = self.gamma.evaluate_all(point) % p
        if gam == 0:
            return None
        fp, gp = _eval_y(self.f, point, p), _eval_y(self.g, point, p)
        if fp.deg() != self.dfx or gp.deg() != self.dgx:
            return None
        h = fp.gcd(gp)
        if self.xdeg is None or h.deg() < self.xdeg:
            restart = self.xdeg is not None
            self.xdeg = h.deg()
            if restart:
                raise _Restart()
        elif h.deg() > self.xdeg:
            raise _Unlucky()
        return h.scale(gam)

    def _random_point(self, p: int) -> List[int]:
        return [self.rng.randrange(1, p) for _ in range(self.k)]

    def dense(self, p: int) -> Dict[Monom, int]:
        """Dense image of gamma/lc * gcd mod p by Newton interpolation in each y variable."""
        for _ in range(self.config.zippel_max_eval_points):
            try:
                return self._dense_level(self.k, [], p)
            except _Restart:
                logger.debug("zippel: lower x-degree found mod %d, restarting", p)
                continue
        raise GCDFailed(f"no stable dense image modulo {p}")

    def _dense_level(self, level: int, fixed: List[int], p: int) -> Dict[Monom, int]:
        if level == 0:
            img = self._image_at(fixed, p)
            if img is None:
                raise _Unlucky()
            return {(i,): c for i, c in enumerate(img.coeffs) if c}
        need = self.bounds[level - 1] + 1
        points: List[int] = []
        images: List[Dict[Monom, int]] = []
        tries = 0
        while len(points) < need:
            tries += 1
            if tries > need + self.config.zippel_max_eval_points:
                raise GCDFailed("too many unlucky evaluation points")
            b = self.rng.randrange(1, p)
            if b in points:
                continue
            try:
                img = self._dense_level(level - 1, [b] + fixed, p)
            except _Unlucky:
                continue
            points.append(b)
            images.append(img)
        monoms = set()
        for img in images:
            monoms.update(img)
        out: Dict[Monom, int] = {}
        for m in monoms:
            cs = _interp_univariate(points, [img.get(m, 0) for img in images], p)
            for e, c in enumerate(cs):
                if c:
                    # variables are laid out (x, y_1, ..., y_level)
                    out[m + (e,)] = c
        return out

    def sparse(self, skeleton: Dict[int, List[Monom]], p: int) -> Optional[Dict[Monom, int]]:
        """Image mod p with the monomial support of `skeleton`; None if it does not fit."""
        t = max(len(ms) for ms in skeleton.values())
        for _ in range(self.config.zippel_max_eval_points):
            alpha = self._random_point(p)
            roots = {x: [_monom_value(m, alpha, p) for m in ms] for x, ms in skeleton.items()}
            if any(len(set(r)) != len(r) for r in roots.values()):
                continue
            vals: List[PolyZp] = []
            ok = True
            for j in range(t + 1):
                pt = [pow(a, j + 1, p) for a in alpha]
                try:
                    img = self._image_at(pt, p)
                except _Unlucky:
                    img = None
                except _Restart:
                    return None
                if img is None:
                    ok = False
                    break
                vals.append(img)
            if not ok:
                continue
            out: Dict[Monom, int] = {}
            for x, ms in skeleton.items():
                r = roots[x]
                rhs = [v.coeff(x) for v in vals]
                sol = _solve_vandermonde(r, rhs[: len(r)], p)
                check = sum(c * pow(ri, len(r) + 1, p) for c, ri in zip(sol, r)) % p
                if len(r) < len(rhs) and check != rhs[len(r)] % p:
                    return None
                for m, c in zip(ms, sol):
                    if c:
                        out[(x,) + m] = c
            extra = set(range(max(v.deg() for v in vals) + 1)) - set(skeleton)
            if any(v.coeff(x) for v in vals for x in extra):
                return None
            return out
        return None


def _monom_value(m: Monom, alpha: Sequence[int], p: int) -> int:
    out = 1
    for a, e in zip(alpha, m):
        if e:
            out = out * pow(a, e, p) % p
    return out


def _solve_vandermonde(r: Sequence[int], rhs: Sequence[int], p: int) -> List[int]:
    """c with sum_i c_i * r_i**(j+1) = rhs_j mod p, j = 0..len(r)-1."""
    n = len(r)
    rows = [[pow(ri, j + 1, p) for ri in r] + [rhs[j] % p] for j in range(n)]
    for col in range(n):
        piv = next(i for i in range(col, n) if rows[i][col])
        rows[col], rows[piv] = rows[piv], rows[col]
        inv = mod_inverse(rows[col][col], p)
        rows[col] = [v * inv % p for v in rows[col]]
        for i in range(n):
            if i != col and rows[i][col]:
                fct = rows[i][col]
                rows[i] = [(a - fct * b) % p for a, b in zip(rows[i], rows[col])]
    return [rows[i][n] for i in range(n)]


def _skeleton(image: Dict[Monom, int]) -> Dict[int, List[Monom]]:
    out: Dict[int, List[Monom]] = {}
    for m in sorted(image):
        out.setdefault(m[0], []).append(m[1:])
    return out


def _combine(acc: Optional[Dict[Monom, int]], mod: int, image: Dict[Monom, int], p: int) -> Dict[Monom, int]:
    if acc is None:
        return {m: (c if c <= p // 2 else c - p) for m, c in image.items()}
    out = {}
    for m in set(acc) | set(image):
        v = crt_pair(acc.get(m, 0), mod, image.get(m, 0), p)
        if v:
            out[m] = v
    return out


def modular_gcd(f: MultiPoly, g: MultiPoly, config: CASConfig = DEFAULT_CONFIG) -> MultiPoly:
    """gcd of primitive f, g with at least two variables by modular images and sparse interpolation."""
    gens = f.gens
    cfx, f = f.primitive_in(0)
    cgx, g = g.primitive_in(0)
    base = zippel_gcd(cfx, cgx, config).lift(0, gens[0])
    if f.degree(0) == 0 or g.degree(0) == 0:
        return base
    gamma = zippel_gcd(f.leading_coeff_in(0), g.leading_coeff_in(0), config)
    rng = random.Random(len(f.terms) * 7919 + len(g.terms) * 104729 + f.nvars)
    solver = _ModularGCD(f, g, gamma, config, rng)
    skeleton: Optional[Dict[int, List[Monom]]] = None
    acc: Optional[Dict[Monom, int]] = None
    mod = 1
    previous: Optional[Dict[Monom, int]] = None
    for p in PRIME_POOL[: config.zippel_max_primes]:
        if skeleton is None:
            try:
                image = solver.dense(p)
            except GCDFailed:
                continue
            skeleton = _skeleton(image)
        else:
            image = solver.sparse(skeleton, p)
            if image is None:
                logger.debug("zippel: skeleton rejected modulo %d; rebuilding", p)
                skeleton, acc, mod, previous = None, None, 1, None
                continue
        if solver.xdeg == 0:
            return base
        acc = _combine(acc, mod, image, p)
        mod *= p
        if acc == previous:
            cand = MultiPoly._raw(dict(acc), gens)
            cand = cand.primitive_in(0)[1]
            cand = _normalize(cand.primitive()[1])
            if cand.divides(f) and cand.divides(g):
                return _normalize(base * cand)
            logger.debug("zippel: candidate failed trial division after %d primes", mod.bit_length() // 31)
        previous = dict(acc)
    raise GCDFailed("modular gcd exhausted its prime budget")


# -----------------
# Driver
# -----------------
def zippel_gcd(f: MultiPoly, g: MultiPoly, config: CASConfig = DEFAULT_CONFIG) -> MultiPoly:
    """gcd over Z[x_1..x_n] with positive lex-leading coefficient.

    gcd(0, g) = g, gcd(f, 0) = f and gcd(f, c) = gcd(content(f), c) for a constant c.
    """
    f._check(g)
    if f.is_zero():
        return _normalize(g)
    if g.is_zero():
        return _normalize(f)
    gens = f.gens
    if f.is_constant() or g.is_constant():
        return MultiPoly.constant(math.gcd(f.content(), g.content()), gens)
    cf, pf = f.primitive()
    cg, pg = g.primitive()
    c = math.gcd(cf, cg)
    if pf.nvars == 1:
        return MultiPoly.from_poly(pf.to_poly(0).gcd(pg.to_poly(0)), 0, gens).scalar_mul(c)
    est = [min(pf.degree(i), pg.degree(i)) for i in range(pf.nvars)]
    order = sorted(range(pf.nvars), key=lambda i: (est[i], i))
    inverse = [order.index(i) for i in range(len(order))]
    rf, rg = pf.reorder(order), pg.reorder(order)
    h: Optional[MultiPoly] = None
    if len(rf.terms) + len(rg.terms) <= config.heuristic_gcd_max_terms:
        try:
            h = heuristic_gcd(rf, rg, config)
        except GCDFailed:
            logger.debug("heuristic gcd failed; trying modular images")
    if h is None:
        try:
            h = modular_gcd(rf, rg, config)
        except GCDFailed:
            logger.info("modular gcd failed; falling back to the recursive algorithm")
            h = recursive_gcd(rf, rg)
    h = _normalize(h.reorder(inverse))
    return h.scalar_mul(c)


def gcd_cofactors(f: MultiPoly, g: MultiPoly, config: CASConfig = DEFAULT_CONFIG) -> Tuple[MultiPoly, MultiPoly, MultiPoly]:
    """(h, f/h, g/h) with h = zippel_gcd(f, g)."""
    h = zippel_gcd(f, g, config)
    if h.is_zero():
        return h, f, g
    return h, f.exact_div(h), g.exact_div(h)


def trial_division(candidate: MultiPoly, *polys: MultiPoly) -> bool:
    return all(candidate.divides(p) for p in polys)


def lcm(f: MultiPoly, g: MultiPoly, config: CASConfig = DEFAULT_CONFIG) -> MultiPoly:
    if f.is_zero() or g.is_zero():
        return MultiPoly.zero(f.gens)
    return _normalize((f * g).exact_div(zippel_gcd(f, g, config)))
