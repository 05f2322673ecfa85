"""Coefficient domains for dense polynomials.

A domain names the ring its elements live in and knows how to convert into it. Elements are
plain Python values (`int`, `Fraction`, `Zp`) so polynomial code uses the usual operators; the
domain supplies what the operators cannot: zero/one, exact division and gcd.
"""

from __future__ import annotations
from fractions import Fraction
from typing import Any, Dict
import math

from errors import DivisionByZero, DivisionNotExact, DomainError
from finite_field import Zp
from number import Number, is_prime


class Domain:
    name = "?"
    is_field = False
    characteristic = 0

    @property
    def zero(self) -> Any:
        raise NotImplementedError

    @property
    def one(self) -> Any:
        raise NotImplementedError

    def convert(self, x: Any) -> Any:
        raise NotImplementedError

    def is_zero(self, a: Any) -> bool:
        return a == self.zero

    def is_one(self, a: Any) -> bool:
        return a == self.one

    def exact_div(self, a: Any, b: Any) -> Any:
        raise NotImplementedError

    def divides(self, b: Any, a: Any) -> bool:
        """True when b divides a in this domain."""
        if self.is_zero(b):
            return self.is_zero(a)
        if self.is_field:
            return True
        try:
            self.exact_div(a, b)
        except DivisionNotExact:
            return False
        return True

    def gcd(self, a: Any, b: Any) -> Any:
        raise NotImplementedError

    def to_number(self, a: Any) -> Number:
        raise NotImplementedError

    def __repr__(self) -> str:
        return self.name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Domain) and repr(self) == repr(other)

    def __hash__(self) -> int:
        return hash(repr(self))


class IntegerRing(Domain):
    name = "ZZ"

    @property
    def zero(self) -> int:
        return 0

    @property
    def one(self) -> int:
        return 1

    def convert(self, x: Any) -> int:
        if isinstance(x, Number):
            if not x.is_int():
                raise DomainError(f"{x} is not an integer")
            return x.to_int()
        if isinstance(x, Fraction):
            if x.denominator != 1:
                raise DomainError(f"{x} is not an integer")
            return x.numerator
        if isinstance(x, bool) or not isinstance(x, int):
            if isinstance(x, float) and x.is_integer():
                return int(x)
            raise DomainError(f"{x!r} is not an integer")
        return x

    def exact_div(self, a: int, b: int) -> int:
        if b == 0:
            raise DivisionByZero("division by zero in ZZ")
        q, r = divmod(a, b)
        if r:
            raise DivisionNotExact(f"{a} is not divisible by {b}")
        return q

    def gcd(self, a: int, b: int) -> int:
        return math.gcd(a, b)

    def to_number(self, a: int) -> Number:
        return Number(a)


class RationalField(Domain):
    name = "QQ"
    is_field = True

    @property
    def zero(self) -> Fraction:
        return Fraction(0)

    @property
    def one(self) -> Fraction:
        return Fraction(1)

    def convert(self, x: Any) -> Fraction:
        if isinstance(x, Number):
            if x.is_float():
                raise DomainError(f"{x} is not exact")
            return x.to_fraction()
        if isinstance(x, float):
            raise DomainError(f"{x} is not exact")
        return Fraction(x)

    def exact_div(self, a: Fraction, b: Fraction) -> Fraction:
        if b == 0:
            raise DivisionByZero("division by zero in QQ")
        return a / b

    def gcd(self, a: Fraction, b: Fraction) -> Fraction:
        if a == 0 and b == 0:
            return Fraction(0)
        return Fraction(1)

    def to_number(self, a: Fraction) -> Number:
        return Number(a)


class FiniteField(Domain):
    is_field = True

    def __init__(self, p: int) -> None:
        if not is_prime(p):
            raise DomainError(f"{p} is not prime")
        self.p = p
        self.characteristic = p
        self.name = f"GF({p})"

    @property
    def zero(self) -> Zp:
        return Zp(0, self.p)

    @property
    def one(self) -> Zp:
        return Zp(1, self.p)

    def convert(self, x: Any) -> Zp:
        if isinstance(x, Zp):
            if x.p != self.p:
                raise DomainError(f"element of GF({x.p}) used in GF({self.p})")
            return x
        if isinstance(x, Number):
            x = x.to_fraction()
        if isinstance(x, Fraction):
            return Zp(x.numerator, self.p) / Zp(x.denominator, self.p)
        return Zp(int(x), self.p)

    def exact_div(self, a: Zp, b: Zp) -> Zp:
        return a / b

    def gcd(self, a: Zp, b: Zp) -> Zp:
        return self.zero if a.value == 0 and b.value == 0 else self.one

    def to_number(self, a: Zp) -> Number:
        return Number(a.symmetric())


ZZ = IntegerRing()
QQ = RationalField()
_GF_CACHE: Dict[int, FiniteField] = {}


def GF(p: int) -> FiniteField:
    dom = _GF_CACHE.get(p)
    if dom is None:
        dom = FiniteField(p)
        _GF_CACHE[p] = dom
    return dom
