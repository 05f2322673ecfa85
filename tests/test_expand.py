"""Tests for expansion and coefficient extraction."""

import pytest

from errors import NotPolynomial
from expand import coefficient, coefficients, collect, degree, expand, power_of
from expression import Add, Mul, Num, Pow, symbols
from functions import sin
from simplify import simplify

x, y, a, b = symbols("x y a b")


class TestExpand:
    """Tests for distributing products and powers."""

    def test_scalar_distributes(self):
        """2(x + 3) is 2x + 6."""
        assert expand(Mul(2, Add(x, 3))) == simplify(Add(Mul(2, x), 6))

    def test_difference_of_squares(self):
        """(x + 1)(x - 1) is x^2 - 1."""
        assert expand(Mul(Add(x, 1), Add(x, -1))) == simplify(Add(Pow(x, 2), Num(-1)))

    def test_square(self):
        """(x + 1)^2 is x^2 + 2x + 1."""
        assert expand(Pow(Add(x, 1), 2)) == simplify(Add(Pow(x, 2), Mul(2, x), 1))

    def test_cube_coefficients(self):
        """(x + 1)^3 has binomial coefficients."""
        assert coefficients(Pow(Add(x, 1), 3), x) == {3: 1, 2: 3, 1: 3, 0: 1}

    def test_two_variables(self):
        """(x + y)^2 has a cross term 2xy."""
        assert expand(Pow(Add(x, y), 2)) == simplify(Add(Pow(x, 2), Mul(2, x, y), Pow(y, 2)))

    def test_negative_power(self):
        """(x + 1)^-2 expands its denominator."""
        expected = simplify(Pow(expand(Pow(Add(x, 1), 2)), -1))
        assert expand(Pow(Add(x, 1), -2)) == expected

    def test_inside_function(self):
        """Arguments of functions are expanded too."""
        assert expand(sin(Mul(2, Add(x, 1)))) == sin(simplify(Add(Mul(2, x), 2)))

    def test_already_expanded(self):
        """A sum of monomials is unchanged."""
        e = simplify(Add(Pow(x, 2), x))
        assert expand(e) == e


class TestCoefficients:
    """Tests for coefficient extraction."""

    def test_numeric_coefficients(self):
        """3x^2 + 2x + 1."""
        e = Add(Mul(3, Pow(x, 2)), Mul(2, x), 1)
        assert coefficients(e, x) == {2: 3, 1: 2, 0: 1}

    def test_symbolic_coefficients(self):
        """ax^2 + bx has coefficients a and b."""
        assert coefficients(Add(Mul(a, Pow(x, 2)), Mul(b, x)), x) == {2: a, 1: b}

    def test_not_polynomial(self):
        """sin(x) + x is not a polynomial in x."""
        with pytest.raises(NotPolynomial):
            coefficients(Add(sin(x), x), x)

    def test_negative_power_not_polynomial(self):
        """1/x is not a polynomial in x."""
        with pytest.raises(NotPolynomial):
            coefficients(Pow(x, -1), x)

    def test_single_coefficient(self):
        """coefficient ignores non-polynomial terms."""
        assert coefficient(Add(Pow(x, 2), sin(x)), x, 2) == 1

    def test_missing_coefficient(self):
        """A missing power has coefficient 0."""
        assert coefficient(Add(Pow(x, 2), 1), x, 1) == 0

    def test_power_of(self):
        """power_of splits c * x^k."""
        assert power_of(Mul(3, Pow(x, 4)), x) == (4, Num(3))

    def test_power_of_rejects(self):
        """power_of returns None when x sits inside a function."""
        assert power_of(sin(x), x) is None


class TestDegreeAndCollect:
    """Tests for degree and collect."""

    def test_degree(self):
        """x^3 + x has degree 3."""
        assert degree(Add(Pow(x, 3), x), x) == 3

    def test_degree_constant(self):
        """A non-zero constant has degree 0."""
        assert degree(Num(5), x) == 0

    def test_degree_zero(self):
        """The zero polynomial has degree -1."""
        assert degree(Num(0), x) == -1

    def test_degree_after_expansion(self):
        """Degree is read off the expanded form."""
        assert degree(Mul(Add(x, 1), Add(x, -1)), x) == 2

    def test_collect_groups_terms(self):
        """xy + x + 2 collects into (y + 1)x + 2."""
        e = Add(Mul(x, y), x, 2)
        out = collect(e, x)
        assert isinstance(out, Add)
        assert len(out.children) == 2
        assert expand(out) == expand(e)

    def test_collect_keeps_other_terms(self):
        """Terms that are not polynomial in x survive collect."""
        out = collect(Add(Mul(2, x), sin(x), x), x)
        assert sin(x) in out.children
        assert Mul(3, x) in out.children
