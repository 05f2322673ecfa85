"""Tests for pattern matching and rule rewriting."""

import pytest

from config import CASConfig
from errors import PatternError
from expression import Add, Func, Mul, Num, Pow, make_mul, symbols
from pattern import (
    Bindings, Computed, Exact, NoMatch, PAdd, PFunc, PMul, PPow, Rest, Rule, bottom_up,
    instantiate, match, match_all, replace, rewrite, wild, wild_free, wild_integer, wild_number,
)

x, y = symbols("x y")


class TestMatch:
    """Tests for single matches."""

    def test_power(self):
        """?a^2 binds the base."""
        b = match(PPow(wild("a"), 2), Pow(x, 2))
        assert b
        assert b["a"] == x

    def test_failure_is_falsy(self):
        """A failed match is NoMatch."""
        result = match(PPow(wild("a"), 2), Pow(x, 3))
        assert not result
        assert result is NoMatch

    def test_predicates(self):
        """Number and integer wildcards."""
        b = match(PMul(wild_number("c"), wild("r")), Mul(3, x))
        assert b["c"] == Num(3)
        assert b["r"] == x
        assert not match(PPow(x, wild_integer("n")), Pow(x, Num(1, 2)))

    def test_free_of(self):
        """wild_free rejects expressions containing the variable."""
        pat = PMul(wild_free("c", x), x)
        assert match(pat, Mul(y, x))["c"] == y
        assert not match(PFunc("sin", wild_free("c", x)), Func("sin", x))

    def test_repeated_wildcard(self):
        """A bound wildcard must see an equal expression again."""
        pat = PFunc("log", wild("a"), wild("a"))
        assert match(pat, Func("log", x, x))
        assert not match(pat, Func("log", x, y))

    def test_exact(self):
        """Exact compares structurally."""
        assert match(Exact(Pow(x, 2)), Pow(x, 2)) == {}
        assert not match(Exact(Pow(x, 2)), Pow(y, 2))

    def test_rest(self):
        """Rest collects the unmatched terms of a sum."""
        e = Add(Pow(Func("sin", x), 2), x, 1)
        b = match(PAdd(PPow(PFunc("sin", wild("t")), 2), Rest("r")), e)
        assert b["t"] == x
        assert set(b["r"]) == {x, Num(1)}

    def test_rest_outside_structure(self):
        """A bare Rest is not a pattern."""
        with pytest.raises(PatternError):
            match(Rest("r"), x)

    def test_single_rest(self):
        """Only one Rest per structural pattern."""
        with pytest.raises(PatternError):
            PAdd(Rest("a"), Rest("b"))

    def test_match_all(self):
        """A commutative pattern can match in several ways."""
        results = list(match_all(PAdd(wild("a"), wild("b")), Add(x, y)))
        assert len(results) == 2
        assert {r["a"] for r in results} == {x, y}


class TestInstantiate:
    """Tests for building replacements."""

    def test_skeleton(self):
        """Wildcards are filled from the bindings."""
        assert instantiate(PPow(wild("a"), 3), Bindings({"a": x})) == Pow(x, 3)

    def test_computed(self):
        """Computed calls back with the bindings."""
        skel = Computed(lambda b: b["n"].value.to_int() + 1)
        assert instantiate(skel, Bindings({"n": Num(4)})) == Num(5)

    def test_unbound(self):
        """An unbound wildcard in a replacement is an error."""
        with pytest.raises(PatternError):
            instantiate(wild("z"), Bindings())


class TestRules:
    """Tests for rules and traversal strategies."""

    def test_rule_apply(self):
        """A rule rewrites at the root or returns None."""
        rule = Rule("square", PPow(wild("a"), 2), PMul(wild("a"), wild("a")))
        assert rule.apply(Pow(x, 2)) == make_mul([x, x])
        assert rule.apply(Pow(x, 3)) is None

    def test_guard(self):
        """Guards veto a match."""
        rule = Rule(
            "big-power",
            PPow(wild("a"), wild_integer("n")),
            Num(1),
            guard=lambda b: b["n"].value.to_int() > 2,
        )
        assert rule.apply(Pow(x, 2)) is None
        assert rule.apply(Pow(x, 3)) == Num(1)

    def test_replace_nested(self):
        """replace finds a match below the root."""
        e = Add(Func("sin", Pow(x, 2)), y)
        out = replace(e, PPow(wild("a"), 2), PFunc("abs", wild("a")))
        assert out.has(Func("abs", x))
        assert not out.has(Pow(x, 2))

    def test_replace_no_match(self):
        """Without a match the input comes back."""
        e = Add(x, y)
        assert replace(e, PPow(wild("a"), 2), wild("a")) is e

    def test_rewrite_fixpoint(self):
        """Rules apply until nothing changes."""
        rule = Rule(
            "log-product",
            PFunc("ln", PMul(wild("a"), wild("b"))),
            PAdd(PFunc("ln", wild("a")), PFunc("ln", wild("b"))),
        )
        out = rewrite(Func("ln", Mul(x, y)), [rule])
        assert isinstance(out, Add)
        assert out.has(Func("ln", x))
        assert out.has(Func("ln", y))

    def test_rewrite_cap(self):
        """A rule that always fires stops at the iteration cap."""
        rule = Rule("wrap", PFunc("g", wild("a")), PFunc("g", PFunc("g", wild("a"))))
        out = rewrite(Func("g", x), [rule], config=CASConfig(rewrite_max_iterations=5))
        assert out.depth() == 7

    def test_bottom_up(self):
        """One innermost-first sweep rewrites every level."""
        rule = Rule("sin-to-cos", PFunc("sin", wild("a")), PFunc("cos", wild("a")))
        assert bottom_up(Func("sin", Func("sin", x)), [rule]) == Func("cos", Func("cos", x))
