from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import math

from domains import ZZ
from errors import DivisionByZero, DivisionNotExact, DomainError
from monomial import (
    Monom, monom_div, monom_drop, monom_insert, monom_mul, monom_one, monom_permute,
    monom_to_string, order_key,
)
from number import integer_gcd_list, symmetric_mod
from univariate import Poly


@dataclass(eq=False)
class MultiPoly:
    """Sparse polynomial over the integers: exponent vector -> non-zero coefficient.

    All exponent vectors have length len(gens); zero coefficients are never stored.
    """

    terms: Dict[Monom, int] = field(default_factory=dict)
    gens: Tuple[str, ...] = ()

    def __post_init__(self):
        self.gens = tuple(self.gens)
        self.normalize()

    def normalize(self) -> None:
        n = len(self.gens)
        acc: Dict[Monom, int] = {}
        for m, c in self.terms.items():
            if len(m) != n:
                raise DomainError(f"exponent vector {m} does not match {n} variables")
            if c:
                acc[m] = c
        self.terms = acc

    @classmethod
    def _raw(cls, terms: Dict[Monom, int], gens: Tuple[str, ...]) -> MultiPoly:
        p = object.__new__(cls)
        p.terms = {m: c for m, c in terms.items() if c}
        p.gens = gens
        return p

    # -----------------
    # Construction
    # -----------------
    @staticmethod
    def zero(gens: Sequence[str]) -> MultiPoly:
        return MultiPoly._raw({}, tuple(gens))

    @staticmethod
    def constant(c: int, gens: Sequence[str]) -> MultiPoly:
        return MultiPoly._raw({monom_one(len(gens)): int(c)}, tuple(gens))

    @staticmethod
    def one(gens: Sequence[str]) -> MultiPoly:
        return MultiPoly.constant(1, gens)

    @staticmethod
    def variable(name: str, gens: Sequence[str]) -> MultiPoly:
        gens = tuple(gens)
        i = gens.index(name)
        m = tuple(1 if j == i else 0 for j in range(len(gens)))
        return MultiPoly._raw({m: 1}, gens)

    @staticmethod
    def from_poly(p: Poly, i: int, gens: Sequence[str]) -> MultiPoly:
        """Embed a univariate integer Poly as a polynomial in gens[i]."""
        gens = tuple(gens)
        n = len(gens)
        out = {}
        for k, c in enumerate(p.coeffs):
            if c:
                out[tuple(k if j == i else 0 for j in range(n))] = int(c)
        return MultiPoly._raw(out, gens)

    def _new(self, terms: Dict[Monom, int]) -> MultiPoly:
        return MultiPoly._raw(terms, self.gens)

    # -----------------
    # Queries
    # -----------------
    @property
    def nvars(self) -> int:
        return len(self.gens)

    def is_zero(self) -> bool:
        return not self.terms

    def is_constant(self) -> bool:
        return all(not any(m) for m in self.terms)

    def is_one(self) -> bool:
        return self.terms == {monom_one(self.nvars): 1}

    def constant_value(self) -> int:
        return self.terms.get(monom_one(self.nvars), 0)

    def total_degree(self) -> int:
        return max((sum(m) for m in self.terms), default=-1)

    def degree(self, i: int = 0) -> int:
        """Degree in gens[i]; -1 for the zero polynomial."""
        return max((m[i] for m in self.terms), default=-1)

    def degrees(self) -> Tuple[int, ...]:
        return tuple(self.degree(i) for i in range(self.nvars))

    def ordered_terms(self, order: str = 'lex') -> List[Tuple[Monom, int]]:
        key = order_key(order)
        return sorted(self.terms.items(), key=lambda t: key(t[0]), reverse=True)

    def leading_term(self, order: str = 'lex') -> Tuple[Monom, int]:
        if not self.terms:
            return monom_one(self.nvars), 0
        key = order_key(order)
        m = max(self.terms, key=key)
        return m, self.terms[m]

    def leading_coefficient(self, order: str = 'lex') -> int:
        return self.leading_term(order)[1]

    def content(self) -> int:
        """gcd of all coefficients (non-negative)."""
        return integer_gcd_list(self.terms.values())

    def primitive(self) -> Tuple[int, MultiPoly]:
        """(content, primitive part) with the primitive part's lex-leading coefficient positive."""
        if not self.terms:
            return 0, self
        c = self.content()
        if self.leading_coefficient() < 0:
            c = -c
        return c, self.exact_div_int(c)

    def is_univariate_in(self, i: int) -> bool:
        return all(all(e == 0 for j, e in enumerate(m) if j != i) for m in self.terms)

    # -----------------
    # Arithmetic
    # -----------------
    def _check(self, other: MultiPoly) -> None:
        if self.gens != other.gens:
            raise DomainError(f"polynomials over {self.gens} and {other.gens} do not mix")

    def _coerce(self, other) -> MultiPoly:
        if isinstance(other, MultiPoly):
            self._check(other)
            return other
        return MultiPoly.constant(int(other), self.gens)

    def __add__(self, rhs) -> MultiPoly:
        rhs = self._coerce(rhs)
        out = dict(self.terms)
        for m, c in rhs.terms.items():
            out[m] = out.get(m, 0) + c
        return self._new(out)

    __radd__ = __add__

    def __sub__(self, rhs) -> MultiPoly:
        rhs = self._coerce(rhs)
        out = dict(self.terms)
        for m, c in rhs.terms.items():
            out[m] = out.get(m, 0) - c
        return self._new(out)

    def __rsub__(self, lhs) -> MultiPoly:
        return self._coerce(lhs) - self

    def __neg__(self) -> MultiPoly:
        return self._new({m: -c for m, c in self.terms.items()})

    def __mul__(self, rhs) -> MultiPoly:
        if not isinstance(rhs, MultiPoly):
            return self.scalar_mul(int(rhs))
        self._check(rhs)
        out: Dict[Monom, int] = {}
        for ma, ca in self.terms.items():
            for mb, cb in rhs.terms.items():
                m = monom_mul(ma, mb)
                out[m] = out.get(m, 0) + ca * cb
        return self._new(out)

    def __rmul__(self, lhs) -> MultiPoly:
        return self.scalar_mul(int(lhs))

    def scalar_mul(self, c: int) -> MultiPoly:
        return self._new({m: v * c for m, v in self.terms.items()})

    def mul_monom(self, mono: Monom, c: int = 1) -> MultiPoly:
        return self._new({monom_mul(m, mono): v * c for m, v in self.terms.items()})

    def __pow__(self, exp: int) -> MultiPoly:
        if exp < 0:
            raise DomainError("negative polynomial power")
        result = MultiPoly.one(self.gens)
        base = self
        while exp:
            if exp & 1:
                result = result * base
            exp >>= 1
            if exp:
                base = base * base
        return result

    def exact_div_int(self, c: int) -> MultiPoly:
        if c == 0:
            raise DivisionByZero("division of a polynomial by 0")
        out = {}
        for m, v in self.terms.items():
            q, r = divmod(v, c)
            if r:
                raise DivisionNotExact(f"{c} does not divide the coefficient {v}")
            out[m] = q
        return self._new(out)

    def div_rem(self, divisor: MultiPoly, order: str = 'lex') -> Tuple[MultiPoly, MultiPoly]:
        """Multivariate division by one divisor; terms that cannot be divided go to the remainder."""
        self._check(divisor)
        if divisor.is_zero():
            raise DivisionByZero("polynomial division by zero")
        lm, lc = divisor.leading_term(order)
        q: Dict[Monom, int] = {}
        r: Dict[Monom, int] = {}
        p = self
        while not p.is_zero():
            pm, pc = p.leading_term(order)
            mono = monom_div(pm, lm)
            if mono is not None and pc % lc == 0:
                c = pc // lc
                q[mono] = q.get(mono, 0) + c
                p = p - divisor.mul_monom(mono, c)
            else:
                r[pm] = r.get(pm, 0) + pc
                p = p._new({m: v for m, v in p.terms.items() if m != pm})
        return self._new(q), self._new(r)

    def exact_div(self, divisor: MultiPoly) -> MultiPoly:
        """Quotient of an exact division; DivisionNotExact otherwise."""
        q, r = self.div_rem(divisor)
        if not r.is_zero():
            raise DivisionNotExact(f"{divisor} does not divide {self}")
        return q

    def divides(self, other: MultiPoly) -> bool:
        if self.is_zero():
            return other.is_zero()
        return other.div_rem(self)[1].is_zero()

    # -----------------
    # Structure in one variable
    # -----------------
    def coeffs_in(self, i: int) -> Dict[int, MultiPoly]:
        """Coefficients of self viewed as a polynomial in gens[i], over the other variables."""
        rest = monom_drop(self.gens, i)
        acc: Dict[int, Dict[Monom, int]] = {}
        for m, c in self.terms.items():
            acc.setdefault(m[i], {})[monom_drop(m, i)] = c
        return {k: MultiPoly._raw(t, rest) for k, t in acc.items()}

    @staticmethod
    def from_coeffs_in(i: int, coeffs: Mapping[int, MultiPoly], gens: Sequence[str]) -> MultiPoly:
        out: Dict[Monom, int] = {}
        for k, c in coeffs.items():
            for m, v in c.terms.items():
                out[monom_insert(m, i, k)] = v
        return MultiPoly._raw(out, tuple(gens))

    def lift(self, i: int, name: str) -> MultiPoly:
        """Embed into a ring with an extra variable `name` inserted at position i."""
        gens = monom_insert(self.gens, i, name)
        return MultiPoly._raw({monom_insert(m, i, 0): c for m, c in self.terms.items()}, gens)

    def leading_coeff_in(self, i: int) -> MultiPoly:
        d = self.degree(i)
        return self.coeffs_in(i).get(d, MultiPoly.zero(monom_drop(self.gens, i)))

    def evaluate(self, i: int, value: int) -> MultiPoly:
        """Substitute an integer for gens[i], removing that variable."""
        out: Dict[Monom, int] = {}
        for m, c in self.terms.items():
            k = monom_drop(m, i)
            out[k] = out.get(k, 0) + c * value ** m[i]
        return MultiPoly._raw(out, monom_drop(self.gens, i))

    def evaluate_mod(self, i: int, value: int, p: int) -> MultiPoly:
        out: Dict[Monom, int] = {}
        for m, c in self.terms.items():
            k = monom_drop(m, i)
            out[k] = (out.get(k, 0) + c * pow(value, m[i], p)) % p
        return MultiPoly._raw(out, monom_drop(self.gens, i))

    def evaluate_all(self, values: Sequence[int]) -> int:
        total = 0
        for m, c in self.terms.items():
            t = c
            for v, e in zip(values, m):
                t *= v ** e
            total += t
        return total

    def to_poly(self, i: int = 0) -> Poly:
        if not self.is_univariate_in(i):
            raise DomainError(f"polynomial is not univariate in {self.gens[i]}")
        d = self.degree(i)
        cs = [0] * (d + 1)
        for m, c in self.terms.items():
            cs[m[i]] = c
        return Poly(cs, ZZ)

    def reorder(self, order: Sequence[int]) -> MultiPoly:
        """Permute variables: new gens[k] is old gens[order[k]]."""
        gens = tuple(self.gens[j] for j in order)
        return MultiPoly._raw({monom_permute(m, order): c for m, c in self.terms.items()}, gens)

    def derivative(self, i: int) -> MultiPoly:
        out: Dict[Monom, int] = {}
        for m, c in self.terms.items():
            if m[i]:
                k = m[:i] + (m[i] - 1,) + m[i + 1:]
                out[k] = c * m[i]
        return self._new(out)

    # -----------------
    # Modular helpers
    # -----------------
    def reduce_mod(self, p: int) -> MultiPoly:
        """Coefficients reduced into [0, p)."""
        return self._new({m: c % p for m, c in self.terms.items()})

    def symmetric_mod(self, p: int) -> MultiPoly:
        return self._new({m: symmetric_mod(c, p) for m, c in self.terms.items()})

    def mul_mod(self, other: MultiPoly, p: int) -> MultiPoly:
        return (self * other).reduce_mod(p)

    # -----------------
    # gcd
    # -----------------
    def pseudo_rem(self, other: MultiPoly, i: int = 0) -> MultiPoly:
        """Pseudo-remainder in gens[i]: lc(other)**k * self mod other with k = deg - deg + 1."""
        db = other.degree(i)
        if db < 0:
            raise DivisionByZero("pseudo-division by zero")
        lcb = other.leading_coeff_in(i).lift(i, self.gens[i])
        r = self
        steps = max(self.degree(i) - db + 1, 0)
        while not r.is_zero() and r.degree(i) >= db:
            dr = r.degree(i)
            lcr = r.leading_coeff_in(i).lift(i, self.gens[i])
            shift = tuple(dr - db if j == i else 0 for j in range(self.nvars))
            r = r * lcb - (lcr * other).mul_monom(shift)
            steps -= 1
        return r * lcb ** steps

    def content_in(self, i: int) -> MultiPoly:
        """gcd of the coefficients in gens[i], as a polynomial in the remaining variables."""
        g: Optional[MultiPoly] = None
        for c in self.coeffs_in(i).values():
            g = c if g is None else recursive_gcd(g, c)
            if g.is_one():
                break
        return g if g is not None else MultiPoly.zero(monom_drop(self.gens, i))

    def primitive_in(self, i: int) -> Tuple[MultiPoly, MultiPoly]:
        c = self.content_in(i)
        if c.is_zero():
            return c, self
        return c, self.exact_div(c.lift(i, self.gens[i]))

    def gcd(self, other: MultiPoly) -> MultiPoly:
        from zippel import zippel_gcd
        return zippel_gcd(self, other)

    # -----------------
    # Comparison / printing
    # -----------------
    def __eq__(self, other: object) -> bool:
        if isinstance(other, MultiPoly):
            return self.gens == other.gens and self.terms == other.terms
        if isinstance(other, int):
            return self.terms == ({} if other == 0 else {monom_one(self.nvars): other})
        return NotImplemented

    def __hash__(self) -> int:
        return hash((frozenset(self.terms.items()), self.gens))

    def to_string(self, order: str = 'grevlex') -> str:
        if not self.terms:
            return "0"
        parts: List[str] = []
        for idx, (m, c) in enumerate(self.ordered_terms(order)):
            mono = monom_to_string(m, self.gens)
            mag = abs(c)
            if mono == "1":
                body = str(mag)
            else:
                body = mono if mag == 1 else f"{mag}*{mono}"
            if idx == 0:
                parts.append(f"-{body}" if c < 0 else body)
            else:
                parts.append(f" - {body}" if c < 0 else f" + {body}")
        return "".join(parts)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"MultiPoly({self.terms!r}, {self.gens!r})"


def _normalize_sign(p: MultiPoly) -> MultiPoly:
    return -p if p.terms and p.leading_coefficient() < 0 else p


def recursive_gcd(f: MultiPoly, g: MultiPoly) -> MultiPoly:
    """Classical gcd over Z[x_1..x_n]: content recursion plus primitive PRS in the first variable."""
    f._check(g)
    if f.is_zero():
        return _normalize_sign(g)
    if g.is_zero():
        return _normalize_sign(f)
    if f.nvars == 0 or (f.is_constant() and g.is_constant()):
        return MultiPoly.constant(math.gcd(f.constant_value(), g.constant_value()), f.gens)
    if f.is_constant() or g.is_constant():
        c = math.gcd(f.content(), g.content())
        return MultiPoly.constant(c, f.gens)
    if f.nvars == 1:
        h = f.to_poly(0).gcd(g.to_poly(0))
        return MultiPoly.from_poly(h, 0, f.gens)
    cf, pf = f.primitive_in(0)
    cg, pg = g.primitive_in(0)
    c = recursive_gcd(cf, cg).lift(0, f.gens[0])
    a, b = (pf, pg) if pf.degree(0) >= pg.degree(0) else (pg, pf)
    while True:
        if b.degree(0) == 0:
            h = MultiPoly.one(f.gens)
            break
        r = a.pseudo_rem(b, 0)
        if r.is_zero():
            h = b.primitive_in(0)[1]
            break
        if r.degree(0) == 0:
            h = MultiPoly.one(f.gens)
            break
        a, b = b, r.primitive_in(0)[1]
    return _normalize_sign(c * _normalize_sign(h))
