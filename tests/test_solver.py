"""Tests for equation solving and root finding."""

import math
import pytest
from fractions import Fraction

from classify import EquationType
from errors import InvalidInput, NotImplementedMath
from expression import I, Add, Derivative, Eq, Func, Matrix, Mul, Num, Pow, symbols
from functions import cos, exp, ln, sin
from simplify import simplify
from solver import (
    SolveStatus, SymbolicSolver, brent, find_roots, newton_roots, solve, solve_linear_system,
)

x, y = symbols("x y")


def poly(*coeffs):
    """sum(c * x^k) from ascending coefficients."""
    return Add(*(Mul(c, Pow(x, k)) for k, c in enumerate(coeffs)))


class TestPolynomial:
    """Tests for polynomial equations."""

    def test_linear(self):
        """2x + 1 = 0 gives x = -1/2."""
        result = solve(Add(Mul(2, x), 1), x)
        assert result.status is SolveStatus.SOLVED
        assert result.values() == [Num(-1, 2)]
        assert result.equation_type is EquationType.LINEAR

    def test_quadratic(self):
        """x^2 - 4 = 0 gives -2 and 2."""
        result = solve(Add(Pow(x, 2), -4), x)
        assert result.values() == [-2, 2]
        assert str(result) == "x = -2, x = 2"

    def test_relation(self):
        """x^2 = 4 is solved through its difference."""
        assert solve(Eq(Pow(x, 2), 4), x).values() == [-2, 2]

    def test_double_root(self):
        """(x - 1)^2 = 0 has 1 with multiplicity 2."""
        result = solve(poly(1, -2, 1), x)
        assert result.values() == [1]
        assert result.multiset() == [1, 1]

    def test_complex_roots(self):
        """x^2 + 1 = 0 gives i and -i."""
        values = solve(Add(Pow(x, 2), 1), x).values()
        assert I in values
        assert simplify(Mul(-1, I)) in values

    def test_irrational_roots(self):
        """x^2 - 2 = 0 gives the two square roots of 2."""
        values = solve(Add(Pow(x, 2), -2), x).values()
        assert len(values) == 2
        assert simplify(Pow(2, Num(1, 2))) in values

    def test_cubic_rational_roots(self):
        """x^3 - 6x^2 + 11x - 6 has roots 1, 2, 3."""
        assert solve(poly(-6, 11, -6, 1), x).values() == [1, 2, 3]

    def test_quartic_rational_roots(self):
        """x^4 - 5x^2 + 4 has roots -2, -1, 1, 2."""
        assert solve(poly(4, 0, -5, 0, 1), x).values() == [-2, -1, 1, 2]

    def test_quintic_numeric(self):
        """x^5 - x - 1 falls back to numerics."""
        result = solve(poly(-1, -1, 0, 0, 0, 1), x)
        reals = [s.value.value.to_float() for s in result if isinstance(s.value, Num)]
        assert all(not s.exact for s in result)
        assert reals == pytest.approx([1.1673039782614187])

    def test_symbolic_coefficients(self):
        """a x + b = 0 gives x = -b/a."""
        a, b = symbols("a b")
        result = solve(Add(Mul(a, x), b), x)
        assert result.values() == [simplify(Mul(-1, b, Pow(a, -1)))]


class TestOtherEquations:
    """Tests for rational, transcendental and degenerate equations."""

    def test_rational(self):
        """1/x - 2 = 0 gives x = 1/2."""
        result = solve(Add(Pow(x, -1), -2), x)
        assert result.equation_type is EquationType.RATIONAL
        assert result.values() == [Num(1, 2)]

    def test_rational_excludes_pole(self):
        """(x^2 - 1)/(x - 1) = 0 only has x = -1."""
        e = Mul(Add(Pow(x, 2), -1), Pow(Add(x, -1), -1))
        assert solve(e, x).values() == [-1]

    def test_exponential(self):
        """exp(x) = 2 gives ln(2)."""
        result = solve(Add(exp(x), -2), x)
        assert result.values() == [ln(2)]
        assert result.equation_type is EquationType.TRANSCENDENTAL

    def test_numerical(self):
        """x = cos(x) is solved numerically."""
        result = solve(Add(x, Mul(-1, cos(x))), x)
        assert result.equation_type is EquationType.NUMERICAL
        assert [s.value.value.to_float() for s in result] == pytest.approx([0.7390851332151607])

    def test_all_values(self):
        """0 = 0 holds for every x."""
        assert solve(Num(0), x).status is SolveStatus.ALL_VALUES

    def test_no_solution(self):
        """3 = 0 has no solution."""
        result = solve(Num(3), x)
        assert result.status is SolveStatus.NO_SOLUTION
        assert str(result) == "No solution"

    def test_differential_unknown(self):
        """Differential equations are not solved."""
        f = Func("f", x)
        assert solve(Add(Derivative(f, x), 1), x).status is SolveStatus.UNKNOWN

    def test_strict(self):
        """strict raises instead of returning UNKNOWN."""
        f = Func("f", x)
        with pytest.raises(NotImplementedMath):
            solve(Add(Derivative(f, x), 1), x, strict=True)

    def test_matrix_rejected(self):
        """Matrix equations go through solve_linear_system."""
        with pytest.raises(InvalidInput):
            solve(Eq(Matrix([[x]]), Matrix([[1]])), x)


class TestSymbolicSolver:
    """Tests for the coefficient-list solver."""

    def test_rational_root_theorem(self):
        """2x^2 - 3x + 1 has roots 1/2 and 1."""
        roots = SymbolicSolver().find_rational_roots([Fraction(1), Fraction(-3), Fraction(2)])
        assert sorted(roots) == [Fraction(1, 2), 1]

    def test_zero_root(self):
        """x^2 - x has root 0."""
        assert 0 in SymbolicSolver().find_rational_roots([Fraction(0), Fraction(-1), Fraction(1)])

    def test_synthetic_divide(self):
        """(x^2 - 3x + 2)/(x - 1) is x - 2."""
        assert SymbolicSolver().synthetic_divide([Fraction(2), Fraction(-3), Fraction(1)], Fraction(1)) == [-2, 1]

    def test_zero_polynomial(self):
        """All coefficients zero means every value solves it."""
        assert SymbolicSolver().solve([0, 0], x).status is SolveStatus.ALL_VALUES

    def test_float_coefficients(self):
        """Float coefficients give inexact roots."""
        result = SymbolicSolver().solve([-2.0, 0.0, 1.0], x)
        floats = sorted(s.value.value.to_float() for s in result)
        assert floats == pytest.approx([-math.sqrt(2), math.sqrt(2)])


class TestNumerics:
    """Tests for Newton, Brent and the sampling root finder."""

    def test_newton_roots(self):
        """x^2 - 2 has roots -sqrt(2) and sqrt(2)."""
        roots = newton_roots([-2.0, 0.0, 1.0])
        assert [z.real for z in roots] == pytest.approx([-math.sqrt(2), math.sqrt(2)])

    def test_brent(self):
        """Brent finds sqrt(2) in [0, 2]."""
        assert brent(lambda t: t * t - 2, 0.0, 2.0) == pytest.approx(math.sqrt(2))

    def test_brent_no_sign_change(self):
        """Brent needs a bracket."""
        assert brent(lambda t: t * t + 1, -1.0, 1.0) is None

    def test_find_roots(self):
        """sin(x) on [-1, 4] has roots 0 and pi."""
        assert find_roots(sin(x), x, -1, 4) == pytest.approx([0.0, math.pi], abs=1e-9)

    def test_pole_rejected(self):
        """The sign change of 1/x at its pole is not a root."""
        assert find_roots(Pow(x, -1), x, -1, 1.0025) == []


class TestLinearSystem:
    """Tests for Gauss-Jordan elimination."""

    def test_unique_solution(self):
        """x + y = 3, x - y = 1 gives x = 2, y = 1."""
        result = solve_linear_system([Eq(Add(x, y), 3), Eq(Add(x, Mul(-1, y)), 1)], [x, y])
        assert result.status is SolveStatus.SOLVED
        assert result.values == {x: 2, y: 1}

    def test_inconsistent(self):
        """x + y = 1 and x + y = 2 have no solution."""
        result = solve_linear_system([Add(x, y, -1), Add(x, y, -2)], [x, y])
        assert result.status is SolveStatus.NO_SOLUTION

    def test_underdetermined(self):
        """x + y = 1 leaves y free."""
        result = solve_linear_system([Add(x, y, -1)], [x, y])
        assert result.free == (y,)
        assert result.values[x] == simplify(Add(1, Mul(-1, y)))

    def test_nonlinear_rejected(self):
        """xy = 1 is not linear."""
        with pytest.raises(InvalidInput):
            solve_linear_system([Add(Mul(x, y), -1)], [x, y])

    def test_square_term_rejected(self):
        """x^2 + y = 1 has no x coefficient but is still not linear."""
        with pytest.raises(InvalidInput):
            solve_linear_system([Add(Pow(x, 2), y, -1)], [x, y])

    def test_scaled_equations(self):
        """2x + 3y = 7, x - y = 1 gives x = 2, y = 1."""
        eqs = [Eq(Add(Mul(2, x), Mul(3, y)), 7), Eq(Add(x, Mul(-1, y)), 1)]
        result = solve_linear_system(eqs, [x, y])
        assert result.status is SolveStatus.SOLVED
        assert result.values == {x: 2, y: 1}

    def test_symbolic_coefficient(self):
        """a x = b gives x = b/a."""
        a, b = symbols("a b")
        result = solve_linear_system([Eq(Mul(a, x), b)], [x])
        assert result.values[x] == simplify(Mul(b, Pow(a, -1)))
