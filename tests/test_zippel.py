"""Tests for the multivariate integer gcd."""

import pytest

from config import CASConfig
from errors import GCDFailed
from multivariate import MultiPoly
from zippel import (
    PRIME_POOL, gcd_cofactors, heuristic_gcd, lcm, trial_division, zippel_gcd,
)
from number import is_prime

G = ("x", "y", "z")
X = MultiPoly.variable("x", G)
Y = MultiPoly.variable("y", G)
Z = MultiPoly.variable("z", G)

MODULAR_ONLY = CASConfig(heuristic_gcd_max_terms=0)
RECURSIVE_ONLY = CASConfig(heuristic_gcd_max_terms=0, zippel_max_primes=0)


class TestZippelGcd:
    """Tests for the gcd driver."""

    def test_common_linear_factor(self):
        """gcd((x + y)(x - z), (x + y)(y + z)) is x + y."""
        h = X + Y
        assert zippel_gcd(h * (X - Z), h * (Y + Z)) == h

    def test_common_quadratic_factor(self):
        """A shared x^2 + y z + 1 is recovered."""
        h = X ** 2 + Y * Z + 1
        f = h * (X + 2 * Y)
        g = h * (X * Z - 3)
        assert zippel_gcd(f, g) == h

    def test_coprime(self):
        """Coprime polynomials give 1."""
        assert zippel_gcd(X + Y, X + Z) == 1

    def test_integer_content(self):
        """Integer content joins the gcd."""
        assert zippel_gcd(6 * (X + Y), 4 * (X + Y) * Z) == 2 * (X + Y)

    def test_leading_sign(self):
        """The result has a positive leading coefficient."""
        assert zippel_gcd(-(X + Y), X ** 2 - Y ** 2) == X + Y

    def test_zero_operand(self):
        """gcd(0, g) is g normalised."""
        assert zippel_gcd(MultiPoly.zero(G), -Y) == Y

    def test_constant_operand(self):
        """gcd(f, c) is gcd(content(f), c)."""
        assert zippel_gcd(4 * X + 6 * Y, MultiPoly.constant(10, G)) == 2

    def test_modular_path(self):
        """The modular path alone finds the gcd."""
        h = X * Y + Z + 2
        assert zippel_gcd(h * (X + 1), h * (Y - Z), MODULAR_ONLY) == h

    def test_recursive_fallback(self):
        """With no primes the classical algorithm answers."""
        h = X + Y + Z
        assert zippel_gcd(h * (X - 1), h * (Y + 2), RECURSIVE_ONLY) == h

    def test_method_on_multipoly(self):
        """MultiPoly.gcd delegates here."""
        assert (X ** 2 - Y ** 2).gcd(X + Y) == X + Y


class TestHelpers:
    """Tests for the heuristic, modular and cofactor helpers."""

    def test_prime_pool(self):
        """The pool holds large distinct primes."""
        assert len(set(PRIME_POOL)) == len(PRIME_POOL)
        assert all(is_prime(p) and p > 2 ** 30 for p in PRIME_POOL)

    def test_heuristic(self):
        """The heuristic gcd finds small gcds."""
        assert heuristic_gcd(X ** 2 - Y ** 2, X ** 2 + 2 * X * Y + Y ** 2) == X + Y

    def test_heuristic_gives_up(self):
        """With no retries the heuristic raises GCDFailed."""
        with pytest.raises(GCDFailed):
            heuristic_gcd(X ** 2 - Y ** 2, X + Y, CASConfig(heuristic_gcd_retries=0))

    def test_cofactors(self):
        """f = h * cf and g = h * cg."""
        f, g = (X + Y) * (X - Y), (X + Y) * Z
        h, cf, cg = gcd_cofactors(f, g)
        assert h == X + Y
        assert h * cf == f
        assert h * cg == g

    def test_trial_division(self):
        """x + y divides both inputs but not x + z."""
        assert trial_division(X + Y, X ** 2 - Y ** 2, (X + Y) * Z)
        assert not trial_division(X + Y, X ** 2 - Y ** 2, X + Z)

    def test_lcm(self):
        """lcm((x + y) z, (x + y) y) is (x + y) y z."""
        assert lcm((X + Y) * Z, (X + Y) * Y) == (X + Y) * Y * Z

    def test_lcm_zero(self):
        """lcm with zero is zero."""
        assert lcm(MultiPoly.zero(G), X).is_zero()


PAIRS = [
    ((X + Y) * (X - Z), (X + Y) * (Y + Z)),
    ((X ** 2 + Y * Z + 1) * (X + 2 * Y), (X ** 2 + Y * Z + 1) * (X * Z - 3)),
    (6 * (X + Y), 4 * (X + Y) * Z),
    (-(X + Y), X ** 2 - Y ** 2),
    (X + Y, X + Z),
    (4 * X + 6 * Y, MultiPoly.constant(10, G)),
]


class TestGcdLaws:
    """Tests for symmetry and divisibility across the gcd paths."""

    @pytest.mark.parametrize("config", [CASConfig(), RECURSIVE_ONLY], ids=["default", "recursive"])
    @pytest.mark.parametrize("f, g", PAIRS)
    def test_symmetric(self, f, g, config):
        """gcd(f, g) = gcd(g, f)."""
        assert zippel_gcd(f, g, config) == zippel_gcd(g, f, config)

    def test_symmetric_modular(self):
        """The modular path is symmetric as well."""
        h = X * Y + Z + 2
        f, g = h * (X + 1), h * (Y - Z)
        assert zippel_gcd(f, g, MODULAR_ONLY) == zippel_gcd(g, f, MODULAR_ONLY) == h

    @pytest.mark.parametrize("f, g", PAIRS)
    def test_divides_both(self, f, g):
        """The gcd divides each operand."""
        h = zippel_gcd(f, g)
        assert h.divides(f)
        assert h.divides(g)
