"""Tests for the shared-node expression DAG."""

import math

import numpy as np
import pytest

from edag import ExpressionDAG, compile_expr
from errors import DomainError, InvalidInput
from expression import HALF, Add, Derivative, Func, Mul, Num, Pow, symbols
from printing import to_plain
from simplify import simplify

x, y = symbols("x y")


class TestStructure:
    """Tests for construction and sharing."""

    def test_size_and_depth(self):
        """x + y^2 has five nodes and depth three."""
        dag = ExpressionDAG.from_expr(Add(x, Pow(y, 2)))
        assert dag.size() == 5
        assert dag.depth() == 3

    def test_sharing(self):
        """A repeated sub-expression is stored once."""
        inner = Add(x, 1)
        dag = compile_expr(Add(Pow(inner, 2), Func("sin", inner)))
        assert dag.size() == 7
        assert dag.shared_subexpressions() == [inner]

    def test_to_expr(self):
        """The tree comes back from the graph."""
        e = Add(Pow(x, 2), Mul(3, x))
        assert simplify(compile_expr(e).to_expr()) == simplify(e)

    def test_to_string(self):
        """Printing goes through the plain formatter."""
        e = simplify(Add(Pow(x, 2), Mul(3, x)))
        assert compile_expr(e).to_string() == to_plain(e)

    def test_uncompilable(self):
        """Unevaluated calculus nodes cannot be compiled."""
        with pytest.raises(InvalidInput):
            compile_expr(Derivative(x, x))


class TestEvaluation:
    """Tests for numeric evaluation."""

    def test_eval(self):
        """x^2 + 1 at 3."""
        assert compile_expr(Add(Pow(x, 2), 1)).eval({"x": 3}) == 10.0

    def test_functions(self):
        """Functions use numpy ufuncs."""
        assert compile_expr(Func("sin", x)).eval({"x": 0.0}) == 0.0
        assert compile_expr(Func("factorial", x)).eval({"x": 4}) == pytest.approx(24.0)

    def test_unbound_variable(self):
        """Every variable needs a value."""
        with pytest.raises(InvalidInput):
            compile_expr(Add(x, y)).eval({"x": 1})

    def test_outside_domain(self):
        """A NaN result is a domain error."""
        with pytest.raises(DomainError):
            compile_expr(Func("ln", x)).eval({"x": -1})

    def test_eval_array(self):
        """Vector evaluation marks domain failures with NaN."""
        out = compile_expr(Pow(x, HALF)).eval_array(x, np.array([1.0, 4.0, -1.0]))
        assert out[0] == 1.0
        assert out[1] == 2.0
        assert math.isnan(out[2])

    def test_eval_array_with_env(self):
        """Other variables are held fixed."""
        out = compile_expr(Mul(x, y)).eval_array(x, [1.0, 2.0], {y: 3.0})
        assert out.tolist() == [3.0, 6.0]

    def test_constant_broadcast(self):
        """A constant expression fills the grid."""
        out = compile_expr(Num(2)).eval_array(x, [0.0, 1.0, 2.0])
        assert out.tolist() == [2.0, 2.0, 2.0]
