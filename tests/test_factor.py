"""Tests for integer polynomial factorisation."""

from fractions import Fraction

from domains import QQ, ZZ
from factor import factor_list, factor_mod, is_irreducible, mignotte_bound, zassenhaus
from univariate import Poly


def zz(*coeffs):
    """Integer polynomial from ascending coefficients."""
    return Poly(list(coeffs), ZZ)


def coeff_lists(facs):
    return sorted((f.coeffs, k) for f, k in facs)


class TestFactorList:
    """Tests for factor_list over ZZ and QQ."""

    def test_difference_of_squares(self):
        """x^2 - 1 = (x - 1)(x + 1)."""
        content, facs = factor_list(zz(-1, 0, 1))
        assert content == 1
        assert coeff_lists(facs) == [([-1, 1], 1), ([1, 1], 1)]

    def test_content(self):
        """6x^2 - 6 has content 6."""
        content, facs = factor_list(zz(-6, 0, 6))
        assert content == 6
        assert len(facs) == 2

    def test_negative_leading_coefficient(self):
        """The sign goes into the content."""
        content, facs = factor_list(zz(1, 0, -1))
        assert content == -1
        assert all(f.lc() > 0 for f, _ in facs)

    def test_multiplicity(self):
        """(x + 1)^2 (x - 2) has a double factor."""
        content, facs = factor_list(zz(-2, -3, 0, 1))
        assert coeff_lists(facs) == [([-2, 1], 1), ([1, 1], 2)]

    def test_x_to_the_fourth_minus_one(self):
        """x^4 - 1 = (x - 1)(x + 1)(x^2 + 1)."""
        _, facs = factor_list(zz(-1, 0, 0, 0, 1))
        assert coeff_lists(facs) == [([-1, 1], 1), ([1, 0, 1], 1), ([1, 1], 1)]

    def test_factor_x(self):
        """x^3 - x has the factor x."""
        _, facs = factor_list(zz(0, -1, 0, 1))
        assert ([0, 1], 1) in coeff_lists(facs)

    def test_rational_content(self):
        """x^2/2 - 1/2 has content 1/2."""
        content, facs = factor_list(Poly([Fraction(-1, 2), 0, Fraction(1, 2)], QQ))
        assert content == Fraction(1, 2)
        assert coeff_lists(facs) == [([-1, 1], 1), ([1, 1], 1)]

    def test_constant(self):
        """A constant has no factors."""
        assert factor_list(zz(7)) == (Fraction(7), [])

    def test_product_reconstructs(self):
        """content * prod(f_i^k_i) is the input."""
        f = zz(6, -5, -2, 1) * zz(1, 0, 1)
        content, facs = factor_list(f)
        out = zz(int(content))
        for g, k in facs:
            out = out * g ** k
        assert out == f


class TestZassenhaus:
    """Tests for modular factorisation and recombination."""

    def test_swinnerton_dyer(self):
        """x^4 + 1 is irreducible over ZZ though it splits mod every prime."""
        assert zassenhaus(zz(1, 0, 0, 0, 1)) == [zz(1, 0, 0, 0, 1)]

    def test_splits_quadratics(self):
        """(x^2 + 1)(x^2 + 2) splits into two quadratics."""
        f = zz(1, 0, 1) * zz(2, 0, 1)
        assert sorted(g.coeffs for g in zassenhaus(f)) == [[1, 0, 1], [2, 0, 1]]

    def test_non_monic(self):
        """(2x + 1)(3x - 1) recombines non-monic factors."""
        f = zz(1, 2) * zz(-1, 3)
        assert sorted(g.coeffs for g in zassenhaus(f)) == [[-1, 3], [1, 2]]

    def test_mignotte_bound_positive(self):
        """The coefficient bound exceeds every coefficient."""
        f = zz(-6, 11, -6, 1)
        assert mignotte_bound(f) > 11


class TestIrreducibility:
    """Tests for is_irreducible and factor_mod."""

    def test_irreducible(self):
        """x^2 + 1 is irreducible over ZZ."""
        assert is_irreducible(zz(1, 0, 1))

    def test_reducible(self):
        """x^2 - 1 is not."""
        assert not is_irreducible(zz(-1, 0, 1))

    def test_square_is_reducible(self):
        """(x + 1)^2 is not irreducible."""
        assert not is_irreducible(zz(1, 2, 1))

    def test_factor_mod(self):
        """x^2 + 1 splits mod 5."""
        lead, facs = factor_mod(zz(1, 0, 1), 5)
        assert lead == 1
        assert len(facs) == 2
        assert all(f.degree() == 1 for f, _ in facs)

    def test_factor_mod_irreducible(self):
        """x^2 + 1 stays irreducible mod 3."""
        _, facs = factor_mod(zz(1, 0, 1), 3)
        assert len(facs) == 1
