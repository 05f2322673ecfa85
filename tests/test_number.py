"""Tests for the exact-or-float Number tower and integer helpers."""

import pytest
from fractions import Fraction

from errors import DivisionByZero, DomainError, NumericOverflow
from number import (
    Number, crt, crt_pair, divisors, extended_gcd, factorial, iroot_exact, is_prime,
    isqrt_exact, mod_inverse, next_prime, symmetric_mod,
)


class TestConstruction:
    """Tests for building and classifying numbers."""

    def test_small_integer_kind(self):
        """Machine-sized integers are small."""
        assert Number(42).kind == "small"

    def test_big_integer_kind(self):
        """Integers beyond 64 bits are big."""
        assert Number(2 ** 70).kind == "big"

    def test_rational_is_reduced(self):
        """A rational is stored in lowest terms."""
        n = Number(6, 4)
        assert n.kind == "rational"
        assert n.value == Fraction(3, 2)

    def test_integral_rational_becomes_integer(self):
        """A fraction with denominator 1 is an integer."""
        n = Number(8, 4)
        assert n.kind == "small"
        assert n.value == 2

    def test_zero_denominator(self):
        """A zero denominator is rejected."""
        with pytest.raises(DivisionByZero):
            Number(1, 0)

    def test_float_kind(self):
        """Floats stay floats."""
        n = Number(0.25)
        assert n.is_float()
        assert not n.is_exact()

    def test_from_small_integer_range(self):
        """Values outside the 64-bit range overflow."""
        assert Number.from_small_integer(5) == 5
        with pytest.raises(NumericOverflow):
            Number.from_small_integer(2 ** 64)


class TestArithmetic:
    """Tests for exact and float arithmetic."""

    def test_exact_addition(self):
        """Rational addition is exact."""
        assert Number(1, 3) + Number(1, 6) == Number(1, 2)

    def test_cancellation_to_zero(self):
        """4 + (-4) is exactly zero."""
        assert (Number(4) + Number(-4)).is_zero()

    def test_integer_division_is_exact(self):
        """Dividing integers yields a rational, not a float."""
        r = Number(1) / Number(3)
        assert r.is_exact()
        assert r.value == Fraction(1, 3)

    def test_division_by_zero(self):
        """Division by zero raises."""
        with pytest.raises(DivisionByZero):
            Number(5) / Number(0)

    def test_float_contaminates(self):
        """Mixing a float makes the result a float."""
        assert (Number(1, 2) + Number(0.5)).is_float()

    def test_big_integer_multiplication(self):
        """Products above 64 bits are exact."""
        big = Number(2 ** 64) * Number(2 ** 64)
        assert big.value == 2 ** 128
        assert big.kind == "big"

    def test_negative_power(self):
        """A negative integer power gives a rational."""
        assert Number(2).pow(-3) == Number(1, 8)

    def test_zero_to_negative_power(self):
        """0 raised to a non-positive power raises."""
        with pytest.raises(DivisionByZero):
            Number(0).pow(-1)

    def test_huge_power_overflows(self):
        """Results beyond the exponent bit limit overflow."""
        with pytest.raises(NumericOverflow):
            Number(3).pow(10 ** 7)

    def test_exact_root(self):
        """Perfect powers have exact roots."""
        assert Number(27, 8).exact_root(3) == Number(3, 2)
        assert Number(-8).exact_root(3) == -2
        assert Number(2).exact_root(2) is None
        assert Number(-4).exact_root(2) is None

    def test_rational_gcd(self):
        """gcd of rationals divides both."""
        assert Number(1, 2).gcd(Number(1, 3)) == Number(1, 6)
        assert Number(12).gcd(Number(18)) == 6


class TestEquality:
    """Tests for cross-variant comparison."""

    def test_float_zero_equals_integer_zero(self):
        """Zero is canonical across variants."""
        assert Number(0.0) == Number(0)
        assert Number(1.0) == Number(1)

    def test_float_is_not_an_exact_value(self):
        """Other floats differ from exact values."""
        assert Number(2.0) != Number(2)

    def test_ordering(self):
        """Comparison works across kinds."""
        assert Number(1, 3) < Number(0.5)
        assert Number(-2) < Number(1, 2)

    def test_string_form(self):
        """Rationals print as a/b."""
        assert str(Number(-3, 4)) == "-3/4"
        assert str(Number(7)) == "7"


class TestIntegerHelpers:
    """Tests for modular and number-theoretic helpers."""

    def test_extended_gcd(self):
        """Bezout coefficients satisfy s*a + t*b = g."""
        g, s, t = extended_gcd(240, 46)
        assert g == 2
        assert s * 240 + t * 46 == 2

    def test_mod_inverse(self):
        """The modular inverse multiplies to one."""
        assert (mod_inverse(3, 11) * 3) % 11 == 1
        with pytest.raises(DivisionByZero):
            mod_inverse(4, 8)

    def test_crt(self):
        """Chinese remaindering recovers the residue."""
        x, m = crt([2, 3, 2], [3, 5, 7])
        assert m == 105
        assert x == 23

    def test_crt_pair_symmetric(self):
        """The combined residue is symmetric."""
        assert crt_pair(-1 % 7, 7, -1 % 11, 11) == -1

    def test_symmetric_mod(self):
        """Representatives lie in (-m/2, m/2]."""
        assert symmetric_mod(6, 7) == -1
        assert symmetric_mod(3, 7) == 3

    def test_roots(self):
        """Exact integer roots."""
        assert isqrt_exact(144) == 12
        assert isqrt_exact(145) is None
        assert iroot_exact(3 ** 20, 5) == 81

    def test_primes(self):
        """Primality and next prime."""
        assert is_prime(998244353)
        assert not is_prime(561)
        assert next_prime(14) == 17

    def test_factorial(self):
        """Factorial with guards."""
        assert factorial(5) == 120
        with pytest.raises(DomainError):
            factorial(-1)
        with pytest.raises(NumericOverflow):
            factorial(2000, limit=1000)

    def test_divisors(self):
        """Divisors are ascending and positive."""
        assert divisors(-12) == [1, 2, 3, 4, 6, 12]
