"""Tests for expression nodes and their structural invariants."""

import pytest
from fractions import Fraction

from errors import DivisionByZero
from expression import (
    Add, Const, Derivative, Eq, Func, Integral, Interval, Limit, Matrix, MethodCall, Mul, Num,
    Piecewise, Pow, RelKind, Relation, Set, Sum, Sym, UNDEFINED, cast, is_undefined, negate,
    symbols,
)
from symbol import Commutativity, Symbol

x, y, z = symbols("x y z")


class TestSymbols:
    """Tests for interned symbols."""

    def test_interning(self):
        """Same name and tag give the same Symbol object."""
        assert Symbol("x") is Symbol("x")
        assert Sym("x") == x

    def test_commutativity_tag_distinguishes(self):
        """A matrix symbol differs from the scalar of the same name."""
        a = Sym("A", Commutativity.MATRIX)
        assert a != Sym("A")
        assert not a.is_commutative()

    def test_empty_name_rejected(self):
        """Symbols need a name."""
        with pytest.raises(ValueError):
            Symbol("")


class TestConstructors:
    """Tests for constructor-level normalisation."""

    def test_empty_add_is_zero(self):
        """Add() is 0."""
        assert Add() == 0

    def test_empty_mul_is_one(self):
        """Mul() is 1."""
        assert Mul() == 1

    def test_singleton_collapses(self):
        """A single child is returned unchanged."""
        assert Add(x) is x
        assert Mul(x) is x

    def test_mul_folds_numbers(self):
        """Numeric factors are multiplied into one leading factor."""
        e = Mul(2, x, 3)
        assert isinstance(e, Mul)
        assert e.children[0] == 6
        assert e.children[1] == x

    def test_mul_drops_unit_coefficient(self):
        """A coefficient of 1 disappears."""
        assert Mul(1, x) is x

    def test_pow_identities(self):
        """b^0 = 1, b^1 = b, 0^n = 0."""
        assert Pow(x, 0) == 1
        assert Pow(x, 1) is x
        assert Pow(0, 3) == 0

    def test_zero_to_negative_power(self):
        """0^-1 raises."""
        with pytest.raises(DivisionByZero):
            Pow(0, -1)

    def test_add_does_not_fold(self):
        """Addition of numbers is left to the simplifier."""
        e = Add(1, 2)
        assert isinstance(e, Add)

    def test_unknown_constant(self):
        """Only the known constants exist."""
        with pytest.raises(ValueError):
            Const("tau")

    def test_negate(self):
        """Negating a number flips its sign; anything else gains a -1 factor."""
        assert negate(Num(3)) == -3
        assert negate(x) == Mul(-1, x)


class TestEquality:
    """Tests for structural equality and hashing."""

    def test_structural_equality(self):
        """Equal trees compare and hash equal."""
        a = Add(x, Pow(y, 2))
        b = Add(Sym("x"), Pow(Sym("y"), Num(2)))
        assert a == b
        assert hash(a) == hash(b)

    def test_order_matters_before_simplify(self):
        """Raw sums keep their child order."""
        assert Add(x, y) != Add(y, x)

    def test_compare_with_python_numbers(self):
        """Nodes compare against int and Fraction."""
        assert Num(3) == 3
        assert Num(1, 2) == Fraction(1, 2)

    def test_cast(self):
        """Strings become symbols and numbers become Num."""
        assert cast("q") == Sym("q")
        assert cast(5) == Num(5)
        with pytest.raises(TypeError):
            cast(object())


class TestQueries:
    """Tests for traversal helpers."""

    def test_free_symbols(self):
        """All symbols are collected."""
        e = Add(Mul(x, y), Func("sin", z))
        assert e.free_symbols() == frozenset({x, y, z})

    def test_bound_variable_is_not_free(self):
        """The variable of a definite integral is bound."""
        e = Integral(Mul(x, y), x, 0, 1)
        assert e.free_symbols() == frozenset({y})

    def test_has(self):
        """has finds any sub-expression."""
        e = Func("sin", Pow(x, 2))
        assert e.has(Pow(x, 2))
        assert not e.has(y)

    def test_size_and_depth(self):
        """Node count and height."""
        e = Add(x, Pow(y, 2))
        assert e.size() == 5
        assert e.depth() == 3

    def test_substitute(self):
        """Substitution is structural and unsimplified."""
        e = Add(x, y).substitute({"x": 2})
        assert e == Add(Num(2), y)

    def test_substitute_respects_bound_variable(self):
        """The summation variable is not replaced."""
        k, n = symbols("k n")
        s = Sum(k, k, 1, n)
        assert s.substitute({k: 5}) == s


class TestStructures:
    """Tests for the non-arithmetic nodes."""

    def test_matrix_shape(self):
        """Matrices know their shape and entries."""
        m = Matrix([[1, 2, 3], [4, 5, 6]])
        assert m.shape == (2, 3)
        assert m.entry(1, 2) == 6

    def test_ragged_matrix(self):
        """Rows must have equal length."""
        with pytest.raises(ValueError):
            Matrix([[1, 2], [3]])

    def test_relation(self):
        """Relations keep both sides and their kind."""
        r = Relation(x, 3, RelKind.LT)
        assert r.kind is RelKind.LT
        assert Eq(x, 3).lhs_minus_rhs() == Add(x, Num(-3))

    def test_interval(self):
        """Numeric intervals answer membership."""
        iv = Interval.Ropen(0, 1)
        assert iv.contains_value(0.0)
        assert not iv.contains_value(1.0)
        assert Interval.open(2, 2).is_empty()
        assert not Interval.closed(2, 2).is_empty()

    def test_set_is_unique_and_sorted(self):
        """Duplicates collapse."""
        s = Set(3, 1, 3, 2)
        assert len(s) == 3
        assert list(s.elements) == [1, 2, 3]
        assert 2 in s

    def test_piecewise(self):
        """Piecewise stores pieces and a fallback."""
        p = Piecewise((x, Relation(x, 0, RelKind.GT)), otherwise=negate(x))
        assert len(p.pieces) == 1
        assert p.otherwise == Mul(-1, x)

    def test_bounds_must_pair(self):
        """Only one bound is an error."""
        with pytest.raises(ValueError):
            Integral(x, x, 0, None)

    def test_limit_direction(self):
        """Direction is validated."""
        with pytest.raises(ValueError):
            Limit(x, x, 0, "left")

    def test_derivative_node(self):
        """Derivative records its order."""
        d = Derivative(Func("f", x), x, 2)
        assert d.order == 2
        assert d.var == x

    def test_method_call(self):
        """Method calls keep their target and arguments."""
        m = MethodCall(x, "subs", y, 2)
        assert m.target == x
        assert m.method == "subs"
        assert m.arguments == (y, Num(2))

    def test_undefined(self):
        """The undefined marker is recognised."""
        assert is_undefined(UNDEFINED)
        assert not is_undefined(Func("f", x))


class TestOperators:
    """Tests for Python operator overloads."""

    def test_operators_build_trees(self):
        """Operators build raw nodes."""
        assert x + 1 == Add(x, Num(1))
        assert 2 * x == Mul(2, x)
        assert x ** 2 == Pow(x, 2)
        assert x / y == Mul(x, Pow(y, -1))
        assert -x == Mul(-1, x)
