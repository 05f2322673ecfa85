"""Tests for coefficient domains."""

import pytest
from fractions import Fraction

from domains import GF, QQ, ZZ
from errors import DivisionByZero, DivisionNotExact, DomainError
from finite_field import Zp
from number import Number


class TestIntegers:
    """Tests for ZZ."""

    def test_convert(self):
        """Integral values convert, fractions do not."""
        assert ZZ.convert(Fraction(4, 2)) == 2
        assert ZZ.convert(Number(7)) == 7
        with pytest.raises(DomainError):
            ZZ.convert(Fraction(1, 2))

    def test_exact_div(self):
        """Division must be exact."""
        assert ZZ.exact_div(6, 3) == 2
        with pytest.raises(DivisionNotExact):
            ZZ.exact_div(7, 2)
        with pytest.raises(DivisionByZero):
            ZZ.exact_div(6, 0)

    def test_divides(self):
        """Divisibility in ZZ."""
        assert ZZ.divides(2, 6)
        assert not ZZ.divides(4, 6)


class TestRationals:
    """Tests for QQ."""

    def test_convert(self):
        """Exact values only."""
        assert QQ.convert(1) == Fraction(1)
        with pytest.raises(DomainError):
            QQ.convert(0.5)

    def test_field(self):
        """Every non-zero element divides."""
        assert QQ.is_field
        assert QQ.divides(3, 5)
        assert QQ.exact_div(Fraction(1), Fraction(3)) == Fraction(1, 3)


class TestFiniteFields:
    """Tests for GF(p)."""

    def test_prime_required(self):
        """GF(4) is not a prime field."""
        with pytest.raises(DomainError):
            GF(4)

    def test_cached(self):
        """GF(p) is built once."""
        assert GF(7) is GF(7)
        assert repr(GF(7)) == "GF(7)"

    def test_convert_fraction(self):
        """1/2 is the inverse of 2 mod 7."""
        assert GF(7).convert(Fraction(1, 2)) == Zp(4, 7)

    def test_symmetric_lift(self):
        """Elements lift to the symmetric range."""
        assert GF(5).to_number(Zp(4, 5)) == Number(-1)

    def test_equality(self):
        """Domains compare by name."""
        assert ZZ == ZZ
        assert ZZ != QQ
        assert GF(5) != GF(7)
