"""Tests for the elementary function registry and its special values."""

import math
import pytest
from fractions import Fraction

from errors import DivisionByZero, DomainError
from expression import E, HALF, PI, UNDEFINED, Func, Mul, Num, Pow, symbols
from functions import (
    ALIASES, LATEX_NAMES, REGISTRY, WOLFRAM_NAMES, Abs, apply_special, arcsin, arctan, ceiling,
    cos, cosh, exp, factorial, floor, gamma, ln, log, sign, sin, sinh, sqrt, tan,
)
from simplify import simplify

x, y = symbols("x y")


class TestRegistry:
    """Tests for the lookup tables."""

    def test_core_names_present(self):
        """The trigonometric and exponential families are registered."""
        for name in ("sin", "cos", "tan", "arcsin", "exp", "ln", "log", "abs", "gamma"):
            assert name in REGISTRY

    def test_registry_is_read_only(self):
        """The registry cannot be modified after import."""
        with pytest.raises(TypeError):
            REGISTRY["foo"] = REGISTRY["sin"]

    def test_wolfram_names(self):
        """Wolfram heads map back to registry names."""
        assert WOLFRAM_NAMES["Sin"] == "sin"
        assert WOLFRAM_NAMES["Log"] == "ln"

    def test_latex_names(self):
        """LaTeX commands map back to registry names."""
        assert LATEX_NAMES[r"\cos"] == "cos"

    def test_aliases(self):
        """Common alternative spellings are accepted."""
        assert ALIASES["log"] == "ln"
        assert ALIASES["asin"] == "arcsin"

    def test_unknown_function_has_no_special_value(self):
        """apply_special leaves user functions alone."""
        assert apply_special(Func("f", x)) is None

    def test_derivative_rule(self):
        """The registered derivative of sin is cos."""
        assert REGISTRY["sin"].derivative(x) == cos(x)

    def test_float_evaluator_domain(self):
        """Float evaluation outside the domain raises DomainError."""
        with pytest.raises(DomainError):
            REGISTRY["ln"].evalf(-1.0)

    def test_float_evaluator(self):
        """Float evaluators agree with math."""
        assert REGISTRY["cos"].evalf(0.3) == pytest.approx(math.cos(0.3))


class TestTrigonometric:
    """Tests for exact trigonometric values."""

    def test_sin_zero(self):
        """sin(0) is 0."""
        assert simplify(sin(0)) == 0

    def test_sin_pi(self):
        """sin(pi) is 0."""
        assert simplify(sin(PI)) == 0

    def test_cos_pi(self):
        """cos(pi) is -1."""
        assert simplify(cos(PI)) == -1

    def test_sin_pi_sixth(self):
        """sin(pi/6) is 1/2."""
        assert simplify(sin(Mul(Num(1, 6), PI))) == Num(1, 2)

    def test_tan_pole(self):
        """tan(pi/2) is undefined."""
        assert simplify(tan(Mul(HALF, PI))) == UNDEFINED

    def test_tan_pole_strict(self):
        """tan(pi/2) raises in strict mode."""
        with pytest.raises(DivisionByZero):
            simplify(tan(Mul(HALF, PI)), strict=True)

    def test_odd_symmetry(self):
        """sin(-x) is -sin(x)."""
        assert simplify(sin(Mul(-1, x))) == simplify(Mul(-1, sin(x)))

    def test_even_symmetry(self):
        """cos(-x) is cos(x)."""
        assert simplify(cos(Mul(-1, x))) == cos(x)

    def test_arcsin_half(self):
        """arcsin(1/2) is pi/6."""
        assert simplify(arcsin(Num(1, 2))) == simplify(Mul(Num(1, 6), PI))

    def test_arctan_one(self):
        """arctan(1) is pi/4."""
        assert simplify(arctan(1)) == simplify(Mul(Num(1, 4), PI))

    def test_sin_of_arcsin(self):
        """sin(arcsin(x)) is x."""
        assert simplify(sin(arcsin(x))) == x

    def test_float_argument_evaluates(self):
        """A float argument is evaluated numerically."""
        out = simplify(sin(Num(0.5)))
        assert isinstance(out, Num)
        assert out.value.to_float() == pytest.approx(math.sin(0.5))

    def test_hyperbolic_zero(self):
        """sinh(0) is 0 and cosh(0) is 1."""
        assert simplify(sinh(0)) == 0
        assert simplify(cosh(0)) == 1


class TestExpLog:
    """Tests for exp, ln and log."""

    def test_exp_zero(self):
        """exp(0) is 1."""
        assert simplify(exp(0)) == 1

    def test_exp_one(self):
        """exp(1) is e."""
        assert simplify(exp(1)) == E

    def test_exp_ln(self):
        """exp(ln(x)) is x."""
        assert simplify(exp(ln(x))) == x

    def test_ln_e(self):
        """ln(e) is 1."""
        assert simplify(ln(E)) == 1

    def test_ln_one(self):
        """ln(1) is 0."""
        assert simplify(ln(1)) == 0

    def test_ln_exp(self):
        """ln(exp(x)) is x."""
        assert simplify(ln(exp(x))) == x

    def test_ln_zero_undefined(self):
        """ln(0) is undefined."""
        assert simplify(ln(0)) == UNDEFINED

    def test_ln_zero_strict(self):
        """ln(0) raises DomainError in strict mode."""
        with pytest.raises(DomainError):
            simplify(ln(0), strict=True)

    def test_log_integer(self):
        """log base 2 of 8 is 3."""
        assert simplify(log(8, 2)) == 3

    def test_log_same_base(self):
        """log base x of x is 1."""
        assert simplify(log(x, x)) == 1

    def test_log_without_base_is_ln(self):
        """log with one argument is the natural logarithm."""
        assert log(x) == ln(x)

    def test_log_change_of_base(self):
        """An unresolved log becomes a quotient of natural logs."""
        assert simplify(log(x, 3)) == simplify(Mul(ln(x), Pow(ln(3), -1)))


class TestOtherFunctions:
    """Tests for abs, sign, factorial, gamma, floor and ceiling."""

    def test_abs_number(self):
        """abs(-3) is 3."""
        assert simplify(Abs(-3)) == 3

    def test_abs_leading_negative(self):
        """abs(-2x) is abs(2x)."""
        assert simplify(Abs(Mul(-2, x))) == simplify(Abs(Mul(2, x)))

    def test_abs_even_power(self):
        """abs(x^2) is x^2."""
        assert simplify(Abs(Pow(x, 2))) == Pow(x, 2)

    def test_sign(self):
        """sign of a number is -1, 0 or 1."""
        assert simplify(sign(-5)) == -1
        assert simplify(sign(0)) == 0
        assert simplify(sign(Num(1, 3))) == 1

    def test_factorial(self):
        """5! is 120."""
        assert simplify(factorial(5)) == 120

    def test_factorial_negative(self):
        """The factorial of a negative integer raises in strict mode."""
        with pytest.raises(DomainError):
            simplify(factorial(-1), strict=True)

    def test_gamma_integer(self):
        """gamma(5) is 4!."""
        assert simplify(gamma(5)) == 24

    def test_gamma_half(self):
        """gamma(1/2) is sqrt(pi)."""
        assert simplify(gamma(HALF)) == simplify(Pow(PI, HALF))

    def test_gamma_pole(self):
        """gamma has a pole at 0."""
        assert simplify(gamma(0)) == UNDEFINED

    def test_floor_ceiling(self):
        """floor and ceiling of 7/2."""
        assert simplify(floor(Num(Fraction(7, 2)))) == 3
        assert simplify(ceiling(Num(Fraction(7, 2)))) == 4

    def test_sqrt_perfect_square(self):
        """sqrt(4) is 2."""
        assert simplify(sqrt(4)) == 2

    def test_symbolic_stays(self):
        """Functions of a plain symbol are left alone."""
        assert simplify(sin(y)) == sin(y)
