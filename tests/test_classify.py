"""Tests for expression and equation classification."""

from classify import (
    EquationType, ExprKind, as_numer_denom, classify_equation, classify_expression,
    default_variable, is_polynomial, polynomial_degree,
)
from expression import PI, Add, Derivative, Eq, Func, Matrix, Mul, Num, Pow, symbols
from functions import cos, sin
from parser import parse

x, y, a, b = symbols("x y a b")


class TestEquationType:
    """Tests for classify_equation."""

    def test_constant(self):
        """An equation without the variable is constant."""
        assert classify_equation(Num(5), x) == EquationType.CONSTANT

    def test_linear(self):
        """2x + 1 is linear."""
        assert classify_equation(Add(Mul(2, x), 1)) == EquationType.LINEAR

    def test_quadratic(self):
        """x^2 - 4 is quadratic."""
        assert classify_equation(Add(Pow(x, 2), -4), x) == EquationType.QUADRATIC

    def test_cubic(self):
        """x^3 is cubic."""
        assert classify_equation(Pow(x, 3), x) == EquationType.CUBIC

    def test_quartic(self):
        """x^4 + x is quartic."""
        assert classify_equation(Add(Pow(x, 4), x), x) == EquationType.QUARTIC

    def test_higher_degree(self):
        """x^5 + 1 is a general polynomial."""
        assert classify_equation(Add(Pow(x, 5), 1), x) == EquationType.POLYNOMIAL

    def test_relation(self):
        """x^2 = 4 is classified by its difference."""
        assert classify_equation(Eq(Pow(x, 2), 4), x) == EquationType.QUADRATIC

    def test_rational(self):
        """1/x - 2 is rational."""
        assert classify_equation(parse("1/x - 2"), x) == EquationType.RATIONAL

    def test_transcendental(self):
        """sin(x) - 1/2 is transcendental."""
        assert classify_equation(parse("sin(x) - 1/2"), x) == EquationType.TRANSCENDENTAL

    def test_numerical(self):
        """x - cos(x) mixes x inside and outside a function."""
        assert classify_equation(parse("x - cos(x)"), x) == EquationType.NUMERICAL

    def test_ode(self):
        """A derivative in one variable makes an ODE."""
        f = Func("f", x)
        assert classify_equation(Add(Derivative(f, x), f)) == EquationType.ODE

    def test_pde(self):
        """Derivatives in two variables make a PDE."""
        u = Func("u", x, y)
        assert classify_equation(Add(Derivative(u, x), Derivative(u, y))) == EquationType.PDE

    def test_matrix(self):
        """A matrix equation is classified as such."""
        assert classify_equation(Eq(Matrix([[x, 1], [0, x]]), Matrix([[1, 1], [0, 1]]))) == EquationType.MATRIX

    def test_default_variable(self):
        """x is preferred over other symbols."""
        assert classify_equation(Add(Mul(a, x), b)) == EquationType.LINEAR


class TestHelpers:
    """Tests for the degree and numerator/denominator helpers."""

    def test_polynomial_degree(self):
        """x^3 + x has degree 3."""
        assert polynomial_degree(Add(Pow(x, 3), x), x) == 3

    def test_polynomial_degree_none(self):
        """sin(x) has no polynomial degree."""
        assert polynomial_degree(sin(x), x) is None

    def test_is_polynomial(self):
        """xy + 1 is polynomial in every variable."""
        assert is_polynomial(Add(Mul(x, y), 1))

    def test_is_not_polynomial(self):
        """1/x is not polynomial."""
        assert not is_polynomial(Pow(x, -1))

    def test_numer_denom_fraction(self):
        """3/4 splits into 3 and 4."""
        assert as_numer_denom(Num(3, 4)) == (Num(3), Num(4))

    def test_numer_denom_quotient(self):
        """x/y splits into x and y."""
        assert as_numer_denom(Mul(x, Pow(y, -1))) == (x, y)

    def test_default_variable_prefers_x(self):
        """x wins over y."""
        assert default_variable(Add(x, y)) == x

    def test_default_variable_fallback(self):
        """Without a preferred name the first symbol is used."""
        assert default_variable(Add(a, b)) == a

    def test_default_variable_none(self):
        """A constant has no variable."""
        assert default_variable(Num(5)) is None


class TestExprKind:
    """Tests for classify_expression."""

    def test_atoms(self):
        """Numbers, symbols and constants."""
        assert classify_expression(Num(2)) == ExprKind.NUMBER
        assert classify_expression(x) == ExprKind.SYMBOL
        assert classify_expression(PI) == ExprKind.CONSTANT

    def test_polynomial(self):
        """x^2 + 1 is a polynomial."""
        assert classify_expression(Add(Pow(x, 2), 1)) == ExprKind.POLYNOMIAL

    def test_rational(self):
        """1/(x + 1) is rational."""
        assert classify_expression(Pow(Add(x, 1), -1)) == ExprKind.RATIONAL

    def test_transcendental(self):
        """cos(x) is transcendental."""
        assert classify_expression(cos(x)) == ExprKind.TRANSCENDENTAL

    def test_structures(self):
        """Relations, matrices and calculus nodes."""
        assert classify_expression(Eq(x, 1)) == ExprKind.RELATION
        assert classify_expression(Matrix([[1]])) == ExprKind.MATRIX
        assert classify_expression(Derivative(x, x)) == ExprKind.CALCULUS
