from __future__ import annotations
from fractions import Fraction
from typing import Any, Iterable, List, Optional, Sequence, Tuple
import math

from config import DEFAULT_CONFIG
from domains import QQ, ZZ, Domain, FiniteField
from errors import DivisionByZero, DivisionNotExact, DomainError
from ntt import convolve_integers
from number import integer_gcd_list


class Poly:
    """Dense univariate polynomial over a coefficient domain.

    Coefficients are stored ascending (`coeffs[i]` multiplies x**i) and trailing zeros are
    trimmed after every operation, so the zero polynomial has no coefficients and every other
    polynomial has a non-zero leading coefficient.
    """

    __slots__ = ("coeffs", "domain")

    def __init__(self, coeffs: Iterable[Any] = (), domain: Domain = ZZ) -> None:
        cs = [domain.convert(c) for c in coeffs]
        while cs and domain.is_zero(cs[-1]):
            cs.pop()
        self.coeffs = cs
        self.domain = domain

    @classmethod
    def _raw(cls, coeffs: List[Any], domain: Domain) -> Poly:
        p = object.__new__(cls)
        while coeffs and domain.is_zero(coeffs[-1]):
            coeffs.pop()
        p.coeffs = coeffs
        p.domain = domain
        return p

    @classmethod
    def zero(cls, domain: Domain = ZZ) -> Poly:
        return cls._raw([], domain)

    @classmethod
    def one(cls, domain: Domain = ZZ) -> Poly:
        return cls._raw([domain.one], domain)

    @classmethod
    def constant(cls, c: Any, domain: Domain = ZZ) -> Poly:
        return cls([c], domain)

    @classmethod
    def monomial(cls, c: Any, n: int, domain: Domain = ZZ) -> Poly:
        return cls([0] * n + [c], domain)

    @classmethod
    def x(cls, domain: Domain = ZZ) -> Poly:
        return cls([0, 1], domain)

    @classmethod
    def from_roots(cls, roots: Sequence[Any], domain: Domain = ZZ) -> Poly:
        out = cls.one(domain)
        for r in roots:
            out = out * cls([-domain.convert(r), 1], domain)
        return out

    def _new(self, coeffs: List[Any]) -> Poly:
        return Poly._raw(coeffs, self.domain)

    # -----------------
    # Queries
    # -----------------
    def degree(self) -> Optional[int]:
        """Degree, or None for the zero polynomial."""
        return len(self.coeffs) - 1 if self.coeffs else None

    def leading_coefficient(self) -> Any:
        return self.coeffs[-1] if self.coeffs else self.domain.zero

    lc = leading_coefficient

    def coeff(self, i: int) -> Any:
        return self.coeffs[i] if 0 <= i < len(self.coeffs) else self.domain.zero

    def is_zero(self) -> bool:
        return not self.coeffs

    def is_one(self) -> bool:
        return len(self.coeffs) == 1 and self.domain.is_one(self.coeffs[0])

    def is_constant(self) -> bool:
        return len(self.coeffs) <= 1

    def is_monic(self) -> bool:
        return bool(self.coeffs) and self.domain.is_one(self.coeffs[-1])

    def __len__(self) -> int:
        return len(self.coeffs)

    # -----------------
    # Ring arithmetic
    # -----------------
    def _check(self, other: Poly) -> None:
        if self.domain != other.domain:
            raise DomainError(f"cannot combine polynomials over {self.domain} and {other.domain}")

    def _coerce(self, other: Any) -> Poly:
        if isinstance(other, Poly):
            self._check(other)
            return other
        return Poly([other], self.domain)

    def __add__(self, other: Any) -> Poly:
        other = self._coerce(other)
        n = max(len(self.coeffs), len(other.coeffs))
        return self._new([self.coeff(i) + other.coeff(i) for i in range(n)])

    __radd__ = __add__

    def __sub__(self, other: Any) -> Poly:
        other = self._coerce(other)
        n = max(len(self.coeffs), len(other.coeffs))
        return self._new([self.coeff(i) - other.coeff(i) for i in range(n)])

    def __rsub__(self, other: Any) -> Poly:
        return self._coerce(other) - self

    def __neg__(self) -> Poly:
        return self._new([-c for c in self.coeffs])

    def __mul__(self, other: Any) -> Poly:
        if not isinstance(other, Poly):
            return self.scalar_mul(other)
        self._check(other)
        a, b = self.coeffs, other.coeffs
        if not a or not b:
            return Poly.zero(self.domain)
        if self.domain == ZZ and min(len(a), len(b)) >= DEFAULT_CONFIG.ntt_threshold:
            return self._new(convolve_integers(a, b))
        out = [self.domain.zero] * (len(a) + len(b) - 1)
        for i, x in enumerate(a):
            if self.domain.is_zero(x):
                continue
            for j, y in enumerate(b):
                out[i + j] = out[i + j] + x * y
        return self._new(out)

    def __rmul__(self, other: Any) -> Poly:
        return self.scalar_mul(other)

    def scalar_mul(self, c: Any) -> Poly:
        c = self.domain.convert(c)
        return self._new([x * c for x in self.coeffs])

    def __pow__(self, n: int) -> Poly:
        if n < 0:
            raise DomainError("negative polynomial power")
        result = Poly.one(self.domain)
        base = self
        while n:
            if n & 1:
                result = result * base
            n >>= 1
            if n:
                base = base * base
        return result

    def derivative(self) -> Poly:
        return self._new([c * i for i, c in enumerate(self.coeffs) if i])

    def evaluate(self, x: Any) -> Any:
        """Horner evaluation; x may be any value that mixes with the coefficients."""
        acc = self.domain.zero
        for c in reversed(self.coeffs):
            acc = acc * x + c
        return acc

    __call__ = evaluate

    def compose(self, other: Poly) -> Poly:
        """self(other(x))."""
        self._check(other)
        acc = Poly.zero(self.domain)
        for c in reversed(self.coeffs):
            acc = acc * other + c
        return acc

    def shift(self, n: int) -> Poly:
        """Multiply by x**n."""
        if not self.coeffs:
            return self
        return self._new([self.domain.zero] * n + list(self.coeffs))

    def to_domain(self, domain: Domain) -> Poly:
        if domain == self.domain:
            return self
        if isinstance(self.domain, FiniteField):
            return Poly([self.domain.to_number(c) for c in self.coeffs], domain)
        return Poly(self.coeffs, domain)

    def to_field(self) -> Poly:
        return self.to_domain(QQ) if self.domain == ZZ else self

    def clear_denominators(self) -> Tuple[int, Poly]:
        """(d, p) with p = d * self over ZZ, for self over QQ."""
        if self.domain != QQ:
            return 1, self
        d = 1
        for c in self.coeffs:
            d = d * c.denominator // math.gcd(d, c.denominator)
        return d, Poly([c * d for c in self.coeffs], ZZ)

    # -----------------
    # Division
    # -----------------
    def div_rem(self, other: Poly) -> Tuple[Poly, Poly]:
        """Classical long division; every step must divide the leading coefficient exactly.

        Over ZZ a non-monic divisor raises DivisionNotExact once a step would leave the ring;
        use `pseudo_div_rem` or work over QQ in that case.
        """
        self._check(other)
        if other.is_zero():
            raise DivisionByZero("polynomial division by zero")
        dom = self.domain
        r = list(self.coeffs)
        dv = other.coeffs
        dd = len(dv) - 1
        if len(r) - 1 < dd:
            return Poly.zero(dom), self
        lead = dv[-1]
        q = [dom.zero] * (len(r) - dd)
        for k in range(len(r) - 1, dd - 1, -1):
            if dom.is_zero(r[k]):
                continue
            c = dom.exact_div(r[k], lead)
            q[k - dd] = c
            for j in range(dd + 1):
                r[k - dd + j] = r[k - dd + j] - c * dv[j]
        return self._new(q), self._new(r[:dd])

    def __floordiv__(self, other: Poly) -> Poly:
        return self.div_rem(other)[0]

    def __mod__(self, other: Poly) -> Poly:
        return self.div_rem(other)[1]

    def __divmod__(self, other: Poly) -> Tuple[Poly, Poly]:
        return self.div_rem(other)

    def exact_div(self, other: Poly) -> Poly:
        """Quotient of an exact division; DivisionNotExact if the remainder is non-zero."""
        q, r = self.div_rem(other)
        if not r.is_zero():
            raise DivisionNotExact(f"{other} does not divide {self}")
        return q

    def divides(self, other: Poly) -> bool:
        """True when self divides other."""
        if self.is_zero():
            return other.is_zero()
        try:
            other.exact_div(self)
        except DivisionNotExact:
            return False
        return True

    def pseudo_div_rem(self, other: Poly) -> Tuple[Poly, Poly]:
        """(q, r) with lc(other)**(deg self - deg other + 1) * self = q * other + r."""
        self._check(other)
        if other.is_zero():
            raise DivisionByZero("polynomial division by zero")
        dom = self.domain
        m, n = len(self.coeffs) - 1, len(other.coeffs) - 1
        if m < n:
            return Poly.zero(dom), self
        lead = other.coeffs[-1]
        q = Poly.zero(dom)
        r = self
        steps = m - n + 1
        while not r.is_zero() and r.degree() >= n:
            t = Poly.monomial(r.lc(), r.degree() - n, dom)
            q = q.scalar_mul(lead) + t
            r = r.scalar_mul(lead) - t * other
            steps -= 1
        scale = lead ** steps
        return q.scalar_mul(scale), r.scalar_mul(scale)

    def pseudo_rem(self, other: Poly) -> Poly:
        return self.pseudo_div_rem(other)[1]

    def exact_div_scalar(self, c: Any) -> Poly:
        return self._new([self.domain.exact_div(x, c) for x in self.coeffs])

    # -----------------
    # Content and gcd
    # -----------------
    def content(self) -> Any:
        """gcd of the coefficients, carrying the sign of the leading coefficient over ZZ."""
        if not self.coeffs:
            return self.domain.zero
        if self.domain == ZZ:
            g = integer_gcd_list(self.coeffs)
            return -g if self.coeffs[-1] < 0 else g
        if self.domain == QQ:
            num = integer_gcd_list(c.numerator for c in self.coeffs)
            den = 1
            for c in self.coeffs:
                den = den * c.denominator // math.gcd(den, c.denominator)
            g = Fraction(num, den)
            return -g if self.coeffs[-1] < 0 else g
        return self.coeffs[-1]

    def primitive(self) -> Tuple[Any, Poly]:
        """(content, primitive part); the primitive part has a positive leading coefficient."""
        c = self.content()
        if self.is_zero():
            return c, self
        return c, self.exact_div_scalar(c)

    def primitive_part(self) -> Poly:
        return self.primitive()[1]

    def monic(self) -> Poly:
        if self.is_zero():
            return self
        if not self.domain.is_field:
            raise DomainError(f"monic normalisation needs a field, not {self.domain}")
        return self.exact_div_scalar(self.lc())

    def _normalize_unit(self) -> Poly:
        if self.is_zero():
            return self
        if self.domain.is_field:
            return self.monic()
        return -self if self.lc() < 0 else self

    def gcd(self, other: Poly, method: str = "auto") -> Poly:
        """Greatest common divisor, normalised: monic over a field, positive lc over ZZ.

        `method` picks the remainder sequence: "euclid" (fields only), "primitive" or
        "subresultant". "auto" uses Euclid over a field and primitive PRS over ZZ.
        """
        self._check(other)
        if self.is_zero():
            return other._normalize_unit()
        if other.is_zero():
            return self._normalize_unit()
        if method == "auto":
            method = "euclid" if self.domain.is_field else "primitive"
        if method == "euclid":
            if not self.domain.is_field:
                raise DomainError(f"Euclid's algorithm needs a field, not {self.domain}")
            a, b = self, other
            while not b.is_zero():
                a, b = b, a % b
            return a.monic()
        if self.domain.is_field:
            a, b = self.clear_denominators()[1], other.clear_denominators()[1]
            return a.gcd(b, method).to_domain(self.domain).monic()
        ca, pa = self.primitive()
        cb, pb = other.primitive()
        c = math.gcd(ca, cb)
        if method == "subresultant":
            a, b = (pa, pb) if pa.degree() >= pb.degree() else (pb, pa)
            g = subresultant_prs(a, b)[-1].primitive_part()
        elif method == "primitive":
            g = primitive_prs(pa, pb)[-1].primitive_part()
        else:
            raise ValueError(f"unknown gcd method {method!r}")
        return g.scalar_mul(c)

    def lcm(self, other: Poly) -> Poly:
        if self.is_zero() or other.is_zero():
            return Poly.zero(self.domain)
        return (self * other).exact_div(self.gcd(other))._normalize_unit()

    def ext_gcd(self, other: Poly) -> Tuple[Poly, Poly, Poly]:
        """(g, s, t) with s*self + t*other = g and g monic; computed over the fraction field."""
        a, b = self.to_field(), other.to_field()
        dom = a.domain
        r0, r1 = a, b
        s0, s1 = Poly.one(dom), Poly.zero(dom)
        t0, t1 = Poly.zero(dom), Poly.one(dom)
        while not r1.is_zero():
            q, r = r0.div_rem(r1)
            r0, r1 = r1, r
            s0, s1 = s1, s0 - q * s1
            t0, t1 = t1, t0 - q * t1
        if r0.is_zero():
            return r0, s0, t0
        lead = r0.lc()
        return r0.exact_div_scalar(lead), s0.exact_div_scalar(lead), t0.exact_div_scalar(lead)

    def invert_mod(self, modulus: Poly) -> Poly:
        """s with s*self = 1 mod modulus; DivisionByZero when they share a factor."""
        g, s, _ = self.ext_gcd(modulus)
        if not g.is_one():
            raise DivisionByZero("polynomial is not invertible modulo the given modulus")
        return s % modulus.to_field()

    def resultant(self, other: Poly) -> Any:
        """Resultant by the Euclidean recurrence over the fraction field."""
        self._check(other)
        a, b = self.to_field(), other.to_field()
        if a.is_zero() or b.is_zero():
            return self.domain.zero
        res = a.domain.one
        while True:
            da, db = a.degree(), b.degree()
            if db == 0:
                res = res * b.lc() ** da
                break
            r = a % b
            if r.is_zero():
                res = a.domain.zero
                break
            if (da * db) % 2:
                res = -res
            res = res * b.lc() ** (da - r.degree())
            a, b = b, r
        if self.domain == ZZ:
            return int(res)
        return res

    def discriminant(self) -> Any:
        n = self.degree()
        if n is None or n < 1:
            raise DomainError("discriminant of a constant polynomial")
        res = self.resultant(self.derivative())
        sign = -1 if (n * (n - 1) // 2) % 2 else 1
        return self.domain.exact_div(res * sign, self.lc())

    # -----------------
    # Square-free decomposition
    # -----------------
    def square_free_list(self) -> Tuple[Any, List[Tuple[Poly, int]]]:
        """Yun's decomposition as (unit, [(f_i, i)]): f_i square-free and pairwise coprime,
        unit * prod(f_i**i) == self. The unit is the signed content over ZZ and the leading
        coefficient over a field."""
        if self.is_constant():
            return (self.coeffs[0] if self.coeffs else self.domain.zero), []
        if isinstance(self.domain, FiniteField):
            from finite_field import PolyZp
            p = self.domain.p
            zp = PolyZp([c.value for c in self.coeffs], p)
            return self.lc(), [(Poly(g.coeffs, self.domain), m) for g, m in zp.square_free()]
        if self.domain.is_field:
            unit, f = self.lc(), self.monic()
        else:
            unit, f = self.primitive()
        g = f.gcd(f.derivative())
        h = f.exact_div(g)
        out: List[Tuple[Poly, int]] = []
        k = 1
        while not h.is_constant():
            s = g.gcd(h)
            part = h.exact_div(s)
            if not part.is_constant():
                out.append((part._normalize_unit(), k))
            g = g.exact_div(s)
            h = s
            k += 1
        return unit, out

    def square_free(self) -> List[Tuple[Poly, int]]:
        """[(f_i, i)] with prod(f_i**i) == self; a unit other than one leads as (c, 1)."""
        unit, parts = self.square_free_list()
        if not parts or self.domain.is_one(unit):
            return parts
        return [(Poly.constant(unit, self.domain), 1)] + parts

    def square_free_part(self) -> Poly:
        out = Poly.one(self.domain)
        for f, _ in self.square_free_list()[1]:
            out = out * f
        return out

    def is_square_free(self) -> bool:
        return all(k == 1 for _, k in self.square_free_list()[1])

    # -----------------
    # Comparison / printing
    # -----------------
    def __eq__(self, other: object) -> bool:
        if isinstance(other, Poly):
            return self.domain == other.domain and self.coeffs == other.coeffs
        if isinstance(other, (int, Fraction)):
            return self.coeffs == ([] if other == 0 else [other])
        return NotImplemented

    def __hash__(self) -> int:
        return hash((tuple(self.coeffs), repr(self.domain)))

    def to_string(self, var: str = "x") -> str:
        if not self.coeffs:
            return "0"
        parts: List[str] = []
        for i in range(len(self.coeffs) - 1, -1, -1):
            c = self.coeffs[i]
            if self.domain.is_zero(c):
                continue
            neg = not isinstance(self.domain, FiniteField) and c < 0
            mag = -c if neg else c
            mono = "" if i == 0 else (var if i == 1 else f"{var}^{i}")
            if not mono:
                body = str(mag)
            elif self.domain.is_one(mag):
                body = mono
            else:
                body = f"{mag}*{mono}"
            if not parts:
                parts.append(f"-{body}" if neg else body)
            else:
                parts.append(f" - {body}" if neg else f" + {body}")
        return "".join(parts)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Poly({self.coeffs!r}, {self.domain!r})"


def primitive_prs(f: Poly, g: Poly) -> List[Poly]:
    """Primitive polynomial remainder sequence of f and g over ZZ."""
    a, b = (f, g) if (f.degree() or 0) >= (g.degree() or 0) else (g, f)
    seq = [a, b]
    while not b.is_zero():
        r = a.pseudo_rem(b)
        if r.is_zero():
            break
        r = r.primitive_part()
        seq.append(r)
        a, b = b, r
    return seq


def subresultant_prs(f: Poly, g: Poly) -> List[Poly]:
    """Subresultant remainder sequence; deg f >= deg g. Coefficient growth stays polynomial."""
    dom = f.domain
    seq = [f, g]
    if g.is_zero():
        return seq
    d = f.degree() - g.degree()
    b = (-1) ** (d + 1)
    h = f.pseudo_rem(g).scalar_mul(b)
    lead = g.lc()
    c = -(lead ** d)
    while not h.is_zero():
        seq.append(h)
        f, g = g, h
        d = f.degree() - g.degree()
        b = -lead * c ** d
        h = f.pseudo_rem(g)
        if not h.is_zero():
            h = h.exact_div_scalar(dom.convert(b))
        lead = g.lc()
        if d > 1:
            c = dom.exact_div((-lead) ** d, c ** (d - 1))
        else:
            c = -lead
    return seq
