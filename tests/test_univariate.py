"""Tests for dense univariate polynomials."""

import pytest
from fractions import Fraction

from domains import GF, QQ, ZZ
from errors import DivisionByZero, DivisionNotExact, DomainError
from univariate import Poly


def x_minus(a):
    return Poly([-a, 1])


class TestConstruction:
    """Tests for building polynomials."""

    def test_trailing_zeros_trimmed(self):
        """The leading coefficient is never zero."""
        p = Poly([1, 2, 0, 0])
        assert p.coeffs == [1, 2]
        assert p.degree() == 1

    def test_zero_polynomial(self):
        """The zero polynomial has no degree."""
        assert Poly([0, 0]).is_zero()
        assert Poly.zero().degree() is None

    def test_from_roots(self):
        """(x - 1)(x - 2) = x^2 - 3x + 2."""
        assert Poly.from_roots([1, 2]) == Poly([2, -3, 1])

    def test_named_constructors(self):
        """x, one and monomials."""
        assert Poly.x() == Poly([0, 1])
        assert Poly.one() == 1
        assert Poly.monomial(3, 2) == Poly([0, 0, 3])

    def test_rational_coefficients_need_qq(self):
        """ZZ refuses fractions."""
        with pytest.raises(DomainError):
            Poly([Fraction(1, 2)], ZZ)
        assert Poly([Fraction(1, 2)], QQ).lc() == Fraction(1, 2)


class TestArithmetic:
    """Tests for ring operations."""

    def test_product(self):
        """(x + 1)(x - 1) = x^2 - 1."""
        assert Poly([1, 1]) * Poly([-1, 1]) == Poly([-1, 0, 1])

    def test_power(self):
        """(x + 1)^3."""
        assert Poly([1, 1]) ** 3 == Poly([1, 3, 3, 1])

    def test_sum_cancels(self):
        """Cancelling leading terms lowers the degree."""
        assert (Poly([1, 1]) - Poly([0, 1])) == 1

    def test_derivative_and_evaluate(self):
        """Derivative and Horner evaluation."""
        p = Poly([2, -3, 1])
        assert p.derivative() == Poly([-3, 2])
        assert p(1) == 0
        assert p(3) == 2

    def test_compose(self):
        """x^2 composed with x + 1."""
        assert Poly([0, 0, 1]).compose(Poly([1, 1])) == Poly([1, 2, 1])

    def test_mixed_domains_rejected(self):
        """Polynomials over different domains do not combine."""
        with pytest.raises(DomainError):
            Poly([1], ZZ) + Poly([1], QQ)

    def test_long_product_matches_schoolbook(self):
        """Large products agree whichever multiplication path is used."""
        a = Poly(list(range(1, 80)))
        b = Poly(list(range(-40, 40)))
        expected = [0] * (len(a.coeffs) + len(b.coeffs) - 1)
        for i, u in enumerate(a.coeffs):
            for j, v in enumerate(b.coeffs):
                expected[i + j] += u * v
        assert (a * b).coeffs == Poly(expected).coeffs


class TestDivision:
    """Tests for division with remainder."""

    def test_exact_division(self):
        """x^2 - 1 divided by x - 1."""
        q, r = Poly([-1, 0, 1]).div_rem(x_minus(1))
        assert q == Poly([1, 1])
        assert r.is_zero()

    def test_remainder(self):
        """x^2 + 1 leaves remainder 2 on division by x - 1."""
        q, r = divmod(Poly([1, 0, 1]), x_minus(1))
        assert q == Poly([1, 1])
        assert r == 2

    def test_non_monic_over_integers(self):
        """A step that leaves ZZ is an error."""
        with pytest.raises(DivisionNotExact):
            Poly([1, 0, 1]).div_rem(Poly([0, 2]))

    def test_non_monic_over_rationals(self):
        """QQ division always succeeds."""
        q, r = Poly([1, 0, 1], QQ).div_rem(Poly([0, 2], QQ))
        assert q == Poly([0, Fraction(1, 2)], QQ)
        assert r == 1

    def test_division_by_zero(self):
        """Dividing by the zero polynomial."""
        with pytest.raises(DivisionByZero):
            Poly([1, 1]).div_rem(Poly.zero())

    def test_exact_div_and_divides(self):
        """exact_div insists on a zero remainder."""
        with pytest.raises(DivisionNotExact):
            Poly([1, 0, 1]).exact_div(x_minus(1))
        assert x_minus(1).divides(Poly([-1, 0, 1]))
        assert not x_minus(2).divides(Poly([-1, 0, 1]))

    def test_pseudo_division(self):
        """lc(g)^(m-n+1) f = q g + r."""
        f, g = Poly([1, 0, 1]), Poly([1, 2])
        q, r = f.pseudo_div_rem(g)
        assert q * g + r == f.scalar_mul(4)
        assert r == 5


class TestGcd:
    """Tests for gcd and friends."""

    @pytest.mark.parametrize("method", ["auto", "primitive", "subresultant"])
    def test_integer_gcd(self, method):
        """Every remainder sequence finds x - 1."""
        f = Poly.from_roots([1, 2, 3])
        g = Poly.from_roots([1, 5])
        assert f.gcd(g, method) == x_minus(1)

    def test_euclid_needs_a_field(self):
        """Euclid over ZZ is refused."""
        with pytest.raises(DomainError):
            Poly([-1, 0, 1]).gcd(x_minus(1), "euclid")

    def test_euclid_over_rationals(self):
        """Field gcds are monic."""
        f = Poly([-2, 0, 2], QQ)
        g = Poly([-3, 3], QQ)
        assert f.gcd(g, "euclid") == Poly([-1, 1], QQ)

    def test_positive_leading_coefficient(self):
        """Integer gcds are normalised to a positive leading coefficient."""
        g = Poly([2, -2]).gcd(Poly([-1, 0, 1]))
        assert g == x_minus(1)

    def test_lcm(self):
        """lcm(x - 1, x + 1) = x^2 - 1."""
        assert x_minus(1).lcm(Poly([1, 1])) == Poly([-1, 0, 1])

    def test_ext_gcd(self):
        """Bezout coefficients reproduce the gcd."""
        f, g = Poly([-1, 0, 1]), Poly([1, 2, 1])
        h, s, t = f.ext_gcd(g)
        assert h == Poly([1, 1], QQ)
        assert s * f.to_field() + t * g.to_field() == h

    def test_invert_mod(self):
        """(x + 1) is invertible modulo x^2 + 1."""
        m = Poly([1, 0, 1])
        s = Poly([1, 1]).invert_mod(m)
        assert (s * Poly([1, 1], QQ)) % m.to_field() == 1

    def test_invert_mod_shared_factor(self):
        """No inverse when the gcd is not 1."""
        with pytest.raises(DivisionByZero):
            x_minus(1).invert_mod(Poly([-1, 0, 1]))


GCD_PAIRS = [
    (Poly.from_roots([1, 2, 3]), Poly.from_roots([1, 5])),
    (Poly([-6, 0, 6]), Poly([4, 4])),
    (Poly([0, 1, 0, -1]), Poly([0, 0, 1])),
    (Poly([1, 0, 1]) * Poly([-1, 2]), Poly([1, 0, 1]) * Poly([3, 1])),
    (Poly([1, 0, 0, 0, 1]), Poly([1, 0, 1])),
    (Poly([5]), Poly([0, 10])),
]


class TestGcdLaws:
    """Tests for gcd symmetry and divisibility over several pairs."""

    @pytest.mark.parametrize("method", ["auto", "primitive", "subresultant"])
    @pytest.mark.parametrize("f, g", GCD_PAIRS)
    def test_symmetric(self, f, g, method):
        """gcd(f, g) = gcd(g, f)."""
        assert f.gcd(g, method) == g.gcd(f, method)

    @pytest.mark.parametrize("f, g", GCD_PAIRS)
    def test_symmetric_over_rationals(self, f, g):
        """Euclid's algorithm over QQ is symmetric too."""
        a, b = f.to_field(), g.to_field()
        assert a.gcd(b, "euclid") == b.gcd(a, "euclid")

    @pytest.mark.parametrize("f, g", GCD_PAIRS)
    def test_divides_both(self, f, g):
        """The gcd divides each operand."""
        h = f.gcd(g)
        assert h.divides(f)
        assert h.divides(g)

    @pytest.mark.parametrize("f, g", GCD_PAIRS)
    def test_zero_operand(self, f, g):
        """gcd(f, 0) is f with a positive leading coefficient."""
        z = Poly.zero()
        assert f.gcd(z) == z.gcd(f)
        assert f.gcd(z).lc() > 0


class TestResultants:
    """Tests for resultants and discriminants."""

    def test_common_root(self):
        """A shared root gives a zero resultant."""
        assert Poly([-1, 0, 1]).resultant(x_minus(1)) == 0

    def test_linear_resultant(self):
        """res(x - 1, x + 1) = 2."""
        assert x_minus(1).resultant(Poly([1, 1])) == 2

    def test_discriminant(self):
        """disc(x^2 - 4) = 16."""
        assert Poly([-4, 0, 1]).discriminant() == 16

    def test_discriminant_of_constant(self):
        """Constants have no discriminant."""
        with pytest.raises(DomainError):
            Poly([5]).discriminant()


class TestSquareFree:
    """Tests for square-free decomposition."""

    def test_repeated_root(self):
        """x^3 - x^2 - x + 1 = (x + 1)(x - 1)^2."""
        parts = Poly([1, -1, -1, 1]).square_free()
        assert parts == [(Poly([1, 1]), 1), (x_minus(1), 2)]

    def test_is_square_free(self):
        """Distinct roots versus a double root."""
        assert Poly([-1, 0, 1]).is_square_free()
        assert not Poly([1, -2, 1]).is_square_free()

    def test_finite_field(self):
        """x^2 + 1 = (x + 1)^2 over GF(2)."""
        F = GF(2)
        assert Poly([1, 0, 1], F).square_free() == [(Poly([1, 1], F), 2)]

    def test_content_kept(self):
        """2x^2 keeps its content: [(2, 1), (x, 2)]."""
        assert Poly([0, 0, 2]).square_free() == [(Poly([2]), 1), (Poly([0, 1]), 2)]

    def test_content_and_square(self):
        """6x^2 + 12x + 6 = 6 (x + 1)^2."""
        assert Poly([6, 12, 6]).square_free_list() == (6, [(Poly([1, 1]), 2)])

    def test_negative_unit(self):
        """-x^2 leads with the unit -1."""
        assert Poly([0, 0, -1]).square_free()[0] == (Poly([-1]), 1)

    def test_rational_leading_coefficient(self):
        """(x + 1)^2 / 2 has unit 1/2 and a monic square."""
        f = Poly([Fraction(1, 2), 1, Fraction(1, 2)], QQ)
        assert f.square_free_list() == (Fraction(1, 2), [(Poly([1, 1], QQ), 2)])

    def test_square_free_part_ignores_content(self):
        """The square-free part of 4(x - 1)^2 (x + 1) is x^2 - 1."""
        f = Poly([4]) * x_minus(1) ** 2 * Poly([1, 1])
        assert f.square_free_part() == Poly([-1, 0, 1])

    @pytest.mark.parametrize("f", [
        Poly([0, 0, 2]),
        Poly([6, 12, 6]),
        Poly([0, 0, -3]),
        Poly([1, -1, -1, 1]),
        Poly([-4, 0, 4]) * Poly([1, 1]) ** 3,
        Poly([2, 3, 1]) * x_minus(5) ** 2 * Poly([1, 0, 1]) ** 3,
        Poly([Fraction(1, 3), Fraction(2, 3), Fraction(1, 3)], QQ) * Poly([0, 1], QQ),
        Poly([7, 0, 0, 0, 1]),
    ])
    def test_product_law(self, f):
        """prod(f_i**i) reproduces the input exactly."""
        out = Poly.one(f.domain)
        for g, k in f.square_free():
            out = out * g ** k
        assert out == f

    @pytest.mark.parametrize("f", [
        Poly([0, 0, 2]),
        Poly([-4, 0, 4]) * Poly([1, 1]) ** 3,
        Poly([2, 3, 1]) * x_minus(5) ** 2 * Poly([1, 0, 1]) ** 3,
    ])
    def test_parts_square_free_and_coprime(self, f):
        """Each non-constant part is square-free and the parts are pairwise coprime."""
        parts = [g for g, _ in f.square_free_list()[1]]
        assert all(g.gcd(g.derivative()).is_constant() for g in parts)
        for i, a in enumerate(parts):
            for b in parts[i + 1:]:
                assert a.gcd(b).is_constant()


class TestPrinting:
    """Tests for the text form."""

    def test_to_string(self):
        """Descending powers with signs folded in."""
        assert Poly([-1, 0, 1]).to_string() == "x^2 - 1"
        assert str(Poly([2, -3, 1])) == "x^2 - 3*x + 2"
        assert Poly.zero().to_string() == "0"
