"""Tests for exact and floating-point evaluation."""

import math
import pytest

from errors import DivisionByZero, DomainError, InvalidInput
from evaluate import evalf, evaluate
from expression import (
    I, PI, UNDEFINED, Add, Derivative, Integral, Mul, Num, Piecewise, Pow, Product, RelKind,
    Relation, Sum, symbols,
)
from functions import ln, sin
from simplify import simplify

x, y, k = symbols("x y k")


class TestEvaluate:
    """Tests for exact substitution."""

    def test_substitute_integer(self):
        """x^2 + 1 at x = 2 is 5."""
        assert evaluate(Add(Pow(x, 2), 1), {"x": 2}) == 5

    def test_partial_substitution(self):
        """Unbound symbols stay symbolic."""
        assert evaluate(Add(x, y), {x: 1}) == simplify(Add(y, 1))

    def test_exact_fractions(self):
        """x + 1/2 at x = 1/3 is 5/6."""
        assert evaluate(Add(x, Num(1, 2)), {x: Num(1, 3)}) == Num(5, 6)

    def test_no_env_simplifies(self):
        """Without an environment evaluate simplifies."""
        assert evaluate(Add(x, x)) == Mul(2, x)

    def test_division_by_zero_is_undefined(self):
        """1/x at x = 0 is undefined."""
        assert evaluate(Pow(x, -1), {x: 0}) == UNDEFINED

    def test_division_by_zero_strict(self):
        """1/x at x = 0 raises in strict mode."""
        with pytest.raises(DivisionByZero):
            evaluate(Pow(x, -1), {x: 0}, strict=True)

    def test_domain_error_is_undefined(self):
        """ln(x) at x = 0 is undefined."""
        assert evaluate(ln(x), {x: 0}) == UNDEFINED


class TestEvalf:
    """Tests for floating-point evaluation."""

    def test_polynomial(self):
        """x^2 at 3 is 9.0."""
        assert evalf(Pow(x, 2), {x: 3}) == 9.0

    def test_constant(self):
        """pi evaluates to math.pi."""
        assert evalf(PI) == pytest.approx(math.pi)

    def test_function(self):
        """sin(pi/6) is 0.5."""
        assert evalf(sin(Mul(Num(1, 6), PI))) == pytest.approx(0.5)

    def test_expression_in_env(self):
        """Environment values may themselves be expressions."""
        assert evalf(x, {x: PI}) == pytest.approx(math.pi)

    def test_missing_symbol(self):
        """An unbound symbol raises InvalidInput."""
        with pytest.raises(InvalidInput):
            evalf(Add(x, 1))

    def test_log_of_negative(self):
        """ln(-1) has no real value."""
        with pytest.raises(DomainError):
            evalf(ln(-1))

    def test_negative_square_root(self):
        """(-1)^(1/2) has no real value."""
        with pytest.raises(DomainError):
            evalf(Pow(-1, Num(1, 2)))

    def test_imaginary_unit(self):
        """i has no real value."""
        with pytest.raises(DomainError):
            evalf(I)

    def test_zero_to_negative_power(self):
        """1/x at x = 0 raises DivisionByZero."""
        with pytest.raises(DivisionByZero):
            evalf(Pow(x, -1), {x: 0})

    def test_piecewise(self):
        """The first piece whose condition holds is used."""
        pw = Piecewise((x, Relation(x, 0, RelKind.GT)), otherwise=Mul(-1, x))
        assert evalf(pw, {x: -2}) == 2.0
        assert evalf(pw, {x: 3}) == 3.0

    def test_piecewise_without_match(self):
        """No matching piece and no default raises DomainError."""
        pw = Piecewise((x, Relation(x, 0, RelKind.GT)))
        with pytest.raises(DomainError):
            evalf(pw, {x: -1})

    def test_sum(self):
        """sum of k for k = 1..10 is 55."""
        assert evalf(Sum(k, k, 1, 10)) == 55.0

    def test_product(self):
        """product of k for k = 1..5 is 120."""
        assert evalf(Product(k, k, 1, 5)) == 120.0

    def test_definite_integral(self):
        """integral of x^2 over [0, 1] is 1/3 by quadrature."""
        assert evalf(Integral(Pow(x, 2), x, 0, 1)) == pytest.approx(1.0 / 3.0)

    def test_derivative(self):
        """A derivative node is evaluated before substitution."""
        assert evalf(Derivative(Pow(x, 2), x), {x: 3}) == pytest.approx(6.0)
