"""Tests for polynomial operations on expressions."""

import pytest
from fractions import Fraction

from dispatch import (
    apart_terms, cancel, discriminant, divides, ext_gcd, factor, factor_terms, from_poly, gcd,
    groebner_basis, lcm, poly_div, resultant, square_free, to_multipoly, to_poly,
)
from domains import QQ, ZZ
from errors import DivisionByZero, NotPolynomial
from expand import expand
from expression import Add, Mul, Num, Pow, symbols
from functions import sin
from simplify import simplify

x, y = symbols("x y")


def s(e):
    return simplify(e)


class TestLowering:
    """Tests for conversion between expressions and polynomials."""

    def test_integer_coefficients(self):
        """Integer coefficients give a ZZ polynomial."""
        p = to_poly(Add(Pow(x, 2), Mul(3, x), 2), x)
        assert p.domain == ZZ
        assert p.coeffs == [2, 3, 1]

    def test_rational_coefficients(self):
        """A fractional coefficient moves the polynomial to QQ."""
        p = to_poly(Add(Mul(Num(1, 2), x), 1), x)
        assert p.domain == QQ

    def test_not_polynomial(self):
        """sin(x) is not a polynomial in x."""
        with pytest.raises(NotPolynomial):
            to_poly(sin(x), x)

    def test_round_trip(self):
        """Lifting a lowered polynomial gives the simplified input."""
        e = Add(Pow(x, 3), Mul(-2, x), 5)
        assert from_poly(to_poly(e, x), x) == s(e)

    def test_multipoly_scale(self):
        """x/2 + y/3 is 1/6 times 3x + 2y."""
        scale, p = to_multipoly(Add(Mul(Num(1, 2), x), Mul(Num(1, 3), y)), [x, y])
        assert scale == Fraction(1, 6)
        assert p.terms == {(1, 0): 3, (0, 1): 2}


class TestDivision:
    """Tests for polynomial division."""

    def test_exact(self):
        """(x^2 - 1) / (x - 1) is x + 1 with no remainder."""
        q, r = poly_div(Add(Pow(x, 2), -1), Add(x, -1), x)
        assert q == s(Add(x, 1))
        assert r == 0

    def test_remainder(self):
        """x^2 + 1 divided by x - 1 leaves 2."""
        q, r = poly_div(Add(Pow(x, 2), 1), Add(x, -1), x)
        assert q == s(Add(x, 1))
        assert r == 2

    def test_symbolic_coefficients(self):
        """Division in x with y in the coefficients."""
        q, r = poly_div(Add(Pow(x, 2), Mul(-1, Pow(y, 2))), Add(x, y), x)
        assert s(q) == s(Add(x, Mul(-1, y)))
        assert r == 0

    def test_division_by_zero(self):
        """Dividing by the zero polynomial raises."""
        with pytest.raises(DivisionByZero):
            poly_div(x, 0, x)

    def test_divides(self):
        """x + 1 divides x^2 + 2x + 1 but not x^2 + 1."""
        assert divides(Add(x, 1), Add(Pow(x, 2), Mul(2, x), 1), x)
        assert not divides(Add(x, 1), Add(Pow(x, 2), 1), x)


class TestGcd:
    """Tests for gcd and lcm."""

    def test_univariate(self):
        """gcd(x^2 - 1, x^2 + 2x + 1) is x + 1."""
        assert gcd(Add(Pow(x, 2), -1), Add(Pow(x, 2), Mul(2, x), 1)) == s(Add(x, 1))

    def test_coprime(self):
        """Coprime polynomials have gcd 1."""
        assert gcd(Add(x, 1), Add(x, 2)) == 1

    def test_numbers(self):
        """gcd of two integers."""
        assert gcd(12, 18) == 6

    def test_multivariate(self):
        """gcd(x^2 - y^2, x^2 + 2xy + y^2) is x + y."""
        f = Add(Pow(x, 2), Mul(-1, Pow(y, 2)))
        g = Add(Pow(x, 2), Mul(2, x, y), Pow(y, 2))
        assert gcd(f, g) == s(Add(x, y))

    def test_lcm(self):
        """lcm(x^2 - 1, x - 1) is x^2 - 1."""
        assert lcm(Add(Pow(x, 2), -1), Add(x, -1)) == s(Add(Pow(x, 2), -1))

    def test_lcm_numbers(self):
        """lcm of two integers."""
        assert lcm(4, 6) == 12


class TestFactor:
    """Tests for factorisation."""

    def test_difference_of_squares(self):
        """x^2 - 1 is (x - 1)(x + 1)."""
        assert factor(Add(Pow(x, 2), -1)) == s(Mul(Add(x, -1), Add(x, 1)))

    def test_multiplicities(self):
        """(x + 1)^2 (x - 2) expanded factors back with multiplicities."""
        e = Add(Pow(x, 3), Mul(-3, x), -2)
        terms = dict(factor_terms(e))
        assert terms == {s(Add(x, 1)): 2, s(Add(x, -2)): 1}

    def test_content(self):
        """2x + 4 keeps the numeric content."""
        assert factor(Add(Mul(2, x), 4)) == s(Mul(2, Add(x, 2)))

    def test_monomial_content(self):
        """x^2 y + x y^2 is x y (x + y)."""
        e = Add(Mul(Pow(x, 2), y), Mul(x, Pow(y, 2)))
        assert factor(e) == s(Mul(x, y, Add(x, y)))

    def test_non_polynomial_unchanged(self):
        """Non-polynomial input is returned simplified."""
        assert factor(sin(x)) == sin(x)

    def test_square_free(self):
        """(x - 1)^2 (x + 1) is split by multiplicity."""
        e = Mul(Pow(Add(x, -1), 2), Add(x, 1))
        parts = dict(square_free(e, x))
        assert parts == {s(Add(x, 1)): 1, s(Add(x, -1)): 2}

    def test_square_free_content(self):
        """2 (x - 1)^2 keeps the factor 2."""
        parts = square_free(Mul(2, Pow(Add(x, -1), 2)), x)
        assert parts[0] == (Num(2), 1)
        assert parts[1:] == [(s(Add(x, -1)), 2)]

    def test_square_free_multivariate_content(self):
        """3 y^2 (x + 1)^2 in x keeps 3 y^2 as a leading factor."""
        e = Mul(3, Pow(y, 2), Pow(Add(x, 1), 2))
        parts = square_free(e, x)
        assert parts[0] == (s(Mul(3, Pow(y, 2))), 1)
        assert parts[1:] == [(s(Add(x, 1)), 2)]

    @pytest.mark.parametrize("e", [
        Mul(2, Pow(x, 2)),
        Mul(6, Pow(Add(x, 1), 2)),
        Mul(-1, Pow(Add(x, -1), 2), Add(x, 2)),
        Mul(Fraction(1, 2), Pow(Add(x, 3), 3)),
        Mul(4, Pow(Add(x, y), 2), Add(x, -1)),
        Mul(-2, Pow(y, 3), Pow(Add(x, 1), 2)),
    ])
    def test_square_free_product_law(self, e):
        """prod(f_i**i) expands to the input."""
        parts = square_free(e, x)
        prod = Mul(*(Pow(f, k) for f, k in parts))
        assert expand(prod) == expand(e)


class TestRationalFunctions:
    """Tests for cancel and partial splits."""

    def test_cancel(self):
        """(x^2 - 1)/(x - 1) is x + 1."""
        assert cancel(Mul(Add(Pow(x, 2), -1), Pow(Add(x, -1), -1))) == s(Add(x, 1))

    def test_cancel_polynomial_unchanged(self):
        """A polynomial has nothing to cancel."""
        e = s(Add(x, 1))
        assert cancel(e) == e

    def test_cancel_keeps_remaining_denominator(self):
        """x/(x^2 + x) is 1/(x + 1)."""
        e = Mul(x, Pow(Add(Pow(x, 2), x), -1))
        assert cancel(e) == s(Pow(Add(x, 1), -1))

    def test_apart_terms(self):
        """(x^2 + 1)/(x - 1) splits into x + 1 and 2/(x - 1)."""
        q, r, den = apart_terms(Mul(Add(Pow(x, 2), 1), Pow(Add(x, -1), -1)), x)
        assert q == s(Add(x, 1))
        assert r == 2
        assert den == s(Add(x, -1))


class TestExtras:
    """Tests for resultants, discriminants and the extended gcd."""

    def test_discriminant(self):
        """The discriminant of x^2 + x + 1 is -3."""
        assert discriminant(Add(Pow(x, 2), x, 1), x) == -3

    def test_resultant_common_root(self):
        """Polynomials with a common root have resultant 0."""
        assert resultant(Add(Pow(x, 2), -1), Add(x, -1), x) == 0

    def test_resultant_coprime(self):
        """Coprime polynomials have a non-zero resultant."""
        assert resultant(Add(x, -1), Add(x, -2), x) != 0

    def test_ext_gcd_identity(self):
        """s*f + t*g equals the gcd."""
        f, g = Add(Pow(x, 2), -1), Add(x, -1)
        h, a, b = ext_gcd(f, g, x)
        assert s(expand(Add(Mul(a, f), Mul(b, g)))) == h


class TestGroebnerBasis:
    """Tests for Gröbner bases of expressions."""

    def test_lex(self):
        """x^2 + y^2 = 1, x = y under lex."""
        basis = groebner_basis([Add(Pow(x, 2), Pow(y, 2), -1), Add(x, Mul(-1, y))], order="lex")
        assert basis == [s(Add(x, Mul(-1, y))), s(Add(Mul(2, Pow(y, 2)), -1))]

    def test_rational_coefficients(self):
        """x/2 - 1/3 becomes 3x - 2."""
        assert groebner_basis([Add(Mul(Num(1, 2), x), Num(-1, 3))]) == [s(Add(Mul(3, x), -2))]

    def test_explicit_gens(self):
        """Listing y first makes it the lex leader."""
        basis = groebner_basis([Add(x, Mul(-1, y))], gens=[y, x], order="lex")
        assert basis == [s(Add(y, Mul(-1, x)))]

    def test_constants(self):
        """A non-zero constant generates the unit ideal."""
        assert groebner_basis([Num(5)]) == [1]
        assert groebner_basis([Num(0)]) == []
