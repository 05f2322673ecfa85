"""Formatters for the three text dialects: plain, LaTeX and Wolfram.

Each printer returns `(text, precedence)` from its `_print_<Node>` methods; the caller wraps the
text in parentheses when the child binds looser than the context requires. Everything printed
here parses back with `parser.parse` in the same dialect.
"""

from __future__ import annotations
from fractions import Fraction
from typing import List, Tuple

from expression import (
    I, Add, Complex, Const, Derivative, Expr, Func, Integral, Interval, Limit,
    Matrix, MethodCall, Mul, Num, Piecewise, Pow, Product, Relation, RelKind, Set, Sum, Sym,
    make_add, make_mul,
)
from functions import REGISTRY
from number import Number

PREC_REL = 0
PREC_ADD = 10
PREC_MUL = 20
PREC_NEG = 20
PREC_POW = 30
PREC_POSTFIX = 40
PREC_ATOM = 100

GREEK = (
    "alpha", "beta", "delta", "epsilon", "zeta", "eta", "theta", "iota", "kappa", "lambda",
    "mu", "nu", "xi", "rho", "sigma", "tau", "upsilon", "chi", "psi", "omega",
)


def _is_negative(e: Expr) -> bool:
    if isinstance(e, Num):
        return e.value.is_negative()
    if isinstance(e, Mul) and isinstance(e.children[0], Num):
        return e.children[0].value.is_negative()
    return False


def _degree(e: Expr) -> Fraction:
    """Total polynomial degree used to order printed sums; non-polynomial parts count as 0."""
    if isinstance(e, Sym):
        return Fraction(1)
    if isinstance(e, Pow) and isinstance(e.exp, Num) and e.exp.value.is_exact():
        return _degree(e.base) * e.exp.value.to_fraction()
    if isinstance(e, Mul):
        return sum((_degree(c) for c in e.children), Fraction(0))
    return Fraction(0)


def ordered_terms(e: Add) -> List[Expr]:
    """Terms of a sum by descending degree, numbers last."""
    terms = list(e.children)
    return sorted(terms, key=lambda t: (isinstance(t, Num), -_degree(t)))


def _split_product(factors) -> Tuple[bool, Number, List[Expr], List[Expr]]:
    """(negative, |coefficient|, numerator factors, denominator factors)."""
    coeff = Number(1)
    num: List[Expr] = []
    den: List[Expr] = []
    for f in factors:
        if isinstance(f, Num):
            coeff = coeff.mul(f.value)
        elif isinstance(f, Pow) and isinstance(f.exp, Num) and f.exp.value.is_exact() and f.exp.value.is_negative():
            den.append(Pow(f.base, Num(f.exp.value.neg())))
        else:
            num.append(f)
    negative = coeff.is_negative()
    return negative, coeff.abs(), num, den


class Printer:
    """Plain dialect; the other dialects override the node methods that differ."""

    dialect = "plain"
    mul_sep = "*"
    rel_ops = {
        RelKind.EQ: "=", RelKind.NE: "!=", RelKind.LT: "<", RelKind.LE: "<=",
        RelKind.GT: ">", RelKind.GE: ">=", RelKind.APPROX: "~", RelKind.EQUIV: "===",
    }
    constants = {"pi": "pi", "e": "e", "i": "i", "oo": "oo", "euler_gamma": "euler_gamma", "phi": "phi"}
    undefined = "undefined"

    def doprint(self, e: Expr) -> str:
        return self._print(e, PREC_REL)

    def _print(self, e: Expr, prec: int) -> str:
        method = getattr(self, "_print_" + type(e).__name__)
        text, own = method(e)
        return self.paren(text) if own < prec else text

    def paren(self, text: str) -> str:
        return f"({text})"

    def join(self, items) -> str:
        return ", ".join(self._print(x, PREC_REL) for x in items)

    # -----------------
    # Atoms
    # -----------------
    def _print_Num(self, e: Num) -> Tuple[str, int]:
        v = e.value
        if v.is_negative():
            text, _ = self._print_Num(Num(v.neg()))
            return "-" + text, PREC_NEG
        if v.is_rational() and not v.is_int():
            return self.fraction(str(v.numerator()), str(v.denominator())), PREC_MUL
        return v.to_string(), PREC_ATOM

    def fraction(self, num: str, den: str) -> str:
        return f"{num}/{den}"

    def _print_Sym(self, e: Sym) -> Tuple[str, int]:
        return e.name, PREC_ATOM

    def _print_Const(self, e: Const) -> Tuple[str, int]:
        return self.constants[e.name], PREC_ATOM

    # -----------------
    # Arithmetic
    # -----------------
    def _print_Add(self, e: Add) -> Tuple[str, int]:
        terms = ordered_terms(e)
        out = self._print(terms[0], PREC_ADD)
        for t in terms[1:]:
            text = self._print(t, PREC_ADD + 1)
            if _is_negative(t) and text.startswith("-"):
                out += " - " + text[1:]
            else:
                out += " + " + text
        return out, PREC_ADD

    def _print_Mul(self, e: Mul) -> Tuple[str, int]:
        return self.product(e.children)

    def product(self, factors) -> Tuple[str, int]:
        negative, coeff, num, den = _split_product(factors)
        if coeff.is_rational() and not coeff.is_int():
            top_c, bottom_c = Num(coeff.numerator()), Num(coeff.denominator())
        else:
            top_c, bottom_c = Num(coeff), None
        top = [self._print(f, PREC_MUL) for f in num]
        if not coeff.is_one() or not top:
            top.insert(0, self._print(top_c, PREC_MUL))
        bottom = [self._print(f, PREC_MUL + 1) for f in den]
        if bottom_c is not None:
            bottom.insert(0, self._print(bottom_c, PREC_MUL))
        text = self.quotient(top, bottom)
        return ("-" + text if negative else text), PREC_MUL

    def quotient(self, top: List[str], bottom: List[str]) -> str:
        if top[0] == "1" and len(top) > 1:
            top = top[1:]
        text = self.mul_sep.join(top)
        if not bottom:
            return text
        den = self.mul_sep.join(bottom)
        if len(bottom) > 1:
            den = self.paren(den)
        return f"{text}/{den}"

    def _print_Pow(self, e: Pow) -> Tuple[str, int]:
        b, x = e.base, e.exp
        if isinstance(x, Num) and x.value.is_exact():
            q = x.value.to_fraction()
            if q < 0:
                return self.product([e])
            if q == Fraction(1, 2):
                return self.sqrt(b), PREC_ATOM
        return self.power(self._print(b, PREC_POW + 1), self.exponent(x)), PREC_POW

    def sqrt(self, b: Expr) -> str:
        return f"sqrt({self._print(b, PREC_REL)})"

    def exponent(self, x: Expr) -> str:
        if isinstance(x, (Sym, Const)) or isinstance(x, Num) and x.value.is_int() and not x.value.is_negative():
            return self._print(x, PREC_ATOM)
        return self.paren(self._print(x, PREC_REL))

    def power(self, base: str, exp: str) -> str:
        return f"{base}^{exp}"

    def _print_Complex(self, e: Complex) -> Tuple[str, int]:
        if e.real == 0:
            return self.product([e.imag, I])
        return self._print_Add(make_add([e.real, make_mul([e.imag, I])]))

    # -----------------
    # Functions
    # -----------------
    def _print_Func(self, e: Func) -> Tuple[str, int]:
        if e.name == "undefined" and not e.children:
            return self.undefined, PREC_ATOM
        return f"{e.name}({self.join(e.children)})", PREC_ATOM

    def _print_MethodCall(self, e: MethodCall) -> Tuple[str, int]:
        target, method, args = e.args[0], e.args[1], e.args[2:]
        return f"{self._print(target, PREC_ATOM)}.{method}({self.join(args)})", PREC_ATOM

    # -----------------
    # Structures
    # -----------------
    def _print_Relation(self, e: Relation) -> Tuple[str, int]:
        op = self.rel_ops[e.kind]
        return f"{self._print(e.left, PREC_ADD)} {op} {self._print(e.right, PREC_ADD)}", PREC_REL

    def _print_Matrix(self, e: Matrix) -> Tuple[str, int]:
        rows = ", ".join(f"[{self.join(r)}]" for r in e.rows)
        return f"matrix({rows})", PREC_ATOM

    def _print_Set(self, e: Set) -> Tuple[str, int]:
        return "{" + self.join(e.elements) + "}", PREC_ATOM

    def _print_Interval(self, e: Interval) -> Tuple[str, int]:
        args = self.join([e.lo, e.hi])
        if e.left_open or e.right_open:
            args += f", {int(e.left_open)}, {int(e.right_open)}"
        return f"interval({args})", PREC_ATOM

    def _print_Piecewise(self, e: Piecewise) -> Tuple[str, int]:
        parts = [f"[{self.join(p)}]" for p in e.pieces]
        if e.otherwise is not None:
            parts.append(self._print(e.otherwise, PREC_REL))
        return f"piecewise({', '.join(parts)})", PREC_ATOM

    def _print_Derivative(self, e: Derivative) -> Tuple[str, int]:
        args = [e.expr, e.var] + ([Num(e.order)] if e.order != 1 else [])
        return f"diff({self.join(args)})", PREC_ATOM

    def _bounded(self, name: str, e) -> Tuple[str, int]:
        args = [e.expr, e.var] + ([e.lower, e.upper] if e.is_definite() else [])
        return f"{name}({self.join(args)})", PREC_ATOM

    def _print_Integral(self, e: Integral) -> Tuple[str, int]:
        return self._bounded("integrate", e)

    def _print_Sum(self, e: Sum) -> Tuple[str, int]:
        return self._bounded("sum", e)

    def _print_Product(self, e: Product) -> Tuple[str, int]:
        return self._bounded("product", e)

    def _print_Limit(self, e: Limit) -> Tuple[str, int]:
        args = [e.expr, e.var, e.point]
        if e.direction != "+-":
            args.append(Num(1 if e.direction == "+" else -1))
        return f"limit({self.join(args)})", PREC_ATOM


class LatexPrinter(Printer):
    dialect = "latex"
    mul_sep = " \\cdot "
    rel_ops = {
        RelKind.EQ: "=", RelKind.NE: "\\neq", RelKind.LT: "<", RelKind.LE: "\\leq",
        RelKind.GT: ">", RelKind.GE: "\\geq", RelKind.APPROX: "\\approx", RelKind.EQUIV: "\\equiv",
    }
    constants = {"pi": "\\pi", "e": "e", "i": "i", "oo": "\\infty", "euler_gamma": "\\gamma", "phi": "\\phi"}
    undefined = "\\mathrm{undefined}"

    def paren(self, text: str) -> str:
        return f"\\left({text}\\right)"

    def fraction(self, num: str, den: str) -> str:
        return f"\\frac{{{num}}}{{{den}}}"

    def _print_Sym(self, e: Sym) -> Tuple[str, int]:
        name = e.name
        base, _, sub = name.partition("_")
        if base in GREEK:
            base = "\\" + base
        elif len(base) > 1:
            base = f"\\mathrm{{{base}}}"
        return (f"{base}_{{{sub}}}" if sub else base), PREC_ATOM

    def quotient(self, top: List[str], bottom: List[str]) -> str:
        if top[0] == "1" and len(top) > 1:
            top = top[1:]
        text = self.mul_sep.join(top)
        if not bottom:
            return text
        return self.fraction(text, self.mul_sep.join(bottom))

    def product(self, factors) -> Tuple[str, int]:
        negative, coeff, num, den = _split_product(factors)
        if not den and not (coeff.is_rational() and not coeff.is_int()):
            return super().product(factors)
        top = [self._print(f, PREC_MUL) for f in num]
        bottom = [self._print(f, PREC_MUL) for f in den]
        if coeff.is_rational() and not coeff.is_int():
            if coeff.numerator() != 1 or not top:
                top.insert(0, str(coeff.numerator()))
            bottom.insert(0, str(coeff.denominator()))
        elif not coeff.is_one() or not top:
            top.insert(0, self._print(Num(coeff), PREC_MUL))
        # inside \frac the grouping is explicit
        text = self.fraction(" \\cdot ".join(top), " \\cdot ".join(bottom))
        return ("-" + text if negative else text), PREC_MUL

    def sqrt(self, b: Expr) -> str:
        return f"\\sqrt{{{self._print(b, PREC_REL)}}}"

    def _print_Pow(self, e: Pow) -> Tuple[str, int]:
        b, x = e.base, e.exp
        if isinstance(x, Num) and x.value.is_rational() and not x.value.is_int():
            q = x.value.to_fraction()
            if q.numerator == 1 and q.denominator > 2:
                return f"\\sqrt[{q.denominator}]{{{self._print(b, PREC_REL)}}}", PREC_ATOM
        return super()._print_Pow(e)

    def exponent(self, x: Expr) -> str:
        return self._print(x, PREC_REL)

    def power(self, base: str, exp: str) -> str:
        return f"{base}^{{{exp}}}"

    def _print_Func(self, e: Func) -> Tuple[str, int]:
        name, args = e.name, e.children
        if name == "undefined" and not args:
            return self.undefined, PREC_ATOM
        if name == "abs":
            return f"\\left|{self.join(args)}\\right|", PREC_ATOM
        if name == "floor":
            return f"\\left\\lfloor {self.join(args)} \\right\\rfloor", PREC_ATOM
        if name == "ceiling":
            return f"\\left\\lceil {self.join(args)} \\right\\rceil", PREC_ATOM
        if name == "factorial":
            return f"{self._print(args[0], PREC_POSTFIX + 1)}!", PREC_POSTFIX
        if name == "exp":
            return f"e^{{{self._print(args[0], PREC_REL)}}}", PREC_POW
        if name == "log":
            return f"\\log_{{{self._print(args[1], PREC_REL)}}}{self.paren(self._print(args[0], PREC_REL))}", PREC_ATOM
        info = REGISTRY.get(name)
        head = info.latex if info is not None and info.latex else f"\\operatorname{{{name}}}"
        return f"{head}{self.paren(self.join(args))}", PREC_ATOM

    def _print_MethodCall(self, e: MethodCall) -> Tuple[str, int]:
        target, method, args = e.args[0], e.args[1], e.args[2:]
        return f"{self._print(target, PREC_ATOM)}.\\operatorname{{{method}}}{self.paren(self.join(args))}", PREC_ATOM

    def _print_Matrix(self, e: Matrix) -> Tuple[str, int]:
        rows = " \\\\ ".join(" & ".join(self._print(x, PREC_REL) for x in r) for r in e.rows)
        return f"\\begin{{pmatrix}} {rows} \\end{{pmatrix}}", PREC_ATOM

    def _print_Set(self, e: Set) -> Tuple[str, int]:
        return f"\\left\\{{{self.join(e.elements)}\\right\\}}", PREC_ATOM

    def _print_Interval(self, e: Interval) -> Tuple[str, int]:
        left = "(" if e.left_open else "["
        right = ")" if e.right_open else "]"
        return f"\\left{left}{self.join([e.lo, e.hi])}\\right{right}", PREC_ATOM

    def _print_Piecewise(self, e: Piecewise) -> Tuple[str, int]:
        rows = [f"{self._print(v, PREC_REL)} & {self._print(c, PREC_REL)}" for v, c in e.pieces]
        if e.otherwise is not None:
            rows.append(f"{self._print(e.otherwise, PREC_REL)} & \\text{{otherwise}}")
        body = " \\\\ ".join(rows)
        return f"\\begin{{cases}} {body} \\end{{cases}}", PREC_ATOM

    def _print_Derivative(self, e: Derivative) -> Tuple[str, int]:
        var = self._print(e.var, PREC_ATOM)
        body = self.paren(self._print(e.expr, PREC_REL))
        if e.order == 1:
            return f"\\frac{{d}}{{d{var}}}{body}", PREC_ATOM
        return f"\\frac{{d^{{{e.order}}}}}{{d{var}^{{{e.order}}}}}{body}", PREC_ATOM

    def _big(self, head: str, e, index: str) -> Tuple[str, int]:
        body = self.paren(self._print(e.expr, PREC_REL))
        if e.is_definite():
            return f"{head}_{{{index}}}^{{{self._print(e.upper, PREC_REL)}}} {body}", PREC_ADD
        return f"{head}_{{{index}}} {body}", PREC_ADD

    def _print_Integral(self, e: Integral) -> Tuple[str, int]:
        var = self._print(e.var, PREC_ATOM)
        body = self.paren(self._print(e.expr, PREC_REL))
        if e.is_definite():
            lo, hi = self._print(e.lower, PREC_REL), self._print(e.upper, PREC_REL)
            return f"\\int_{{{lo}}}^{{{hi}}} {body} \\, d{var}", PREC_ADD
        return f"\\int {body} \\, d{var}", PREC_ADD

    def _sum_index(self, e) -> str:
        var = self._print(e.var, PREC_ATOM)
        return f"{var}={self._print(e.lower, PREC_REL)}" if e.is_definite() else var

    def _print_Sum(self, e: Sum) -> Tuple[str, int]:
        return self._big("\\sum", e, self._sum_index(e))

    def _print_Product(self, e: Product) -> Tuple[str, int]:
        return self._big("\\prod", e, self._sum_index(e))

    def _print_Limit(self, e: Limit) -> Tuple[str, int]:
        point = self._print(e.point, PREC_REL)
        if e.direction != "+-":
            point = f"{point}^{{{e.direction}}}"
        body = self.paren(self._print(e.expr, PREC_REL))
        return f"\\lim_{{{self._print(e.var, PREC_ATOM)} \\to {point}}} {body}", PREC_ADD


class WolframPrinter(Printer):
    dialect = "wolfram"
    rel_ops = dict(Printer.rel_ops)
    rel_ops[RelKind.EQ] = "=="
    constants = {
        "pi": "Pi", "e": "E", "i": "I", "oo": "Infinity",
        "euler_gamma": "EulerGamma", "phi": "GoldenRatio",
    }
    undefined = "Indeterminate"

    def sqrt(self, b: Expr) -> str:
        return f"Sqrt[{self._print(b, PREC_REL)}]"

    def _print_Func(self, e: Func) -> Tuple[str, int]:
        name, args = e.name, e.children
        if name == "undefined" and not args:
            return self.undefined, PREC_ATOM
        if name == "log":
            return f"Log[{self.join([args[1], args[0]])}]", PREC_ATOM
        info = REGISTRY.get(name)
        head = info.wolfram if info is not None and info.wolfram else name
        return f"{head}[{self.join(args)}]", PREC_ATOM

    def _print_MethodCall(self, e: MethodCall) -> Tuple[str, int]:
        target, method, args = e.args[0], e.args[1], e.args[2:]
        return f"{self._print(target, PREC_ATOM)}.{method}[{self.join(args)}]", PREC_ATOM

    def _list(self, items) -> str:
        return "{" + self.join(items) + "}"

    def _print_Matrix(self, e: Matrix) -> Tuple[str, int]:
        return "{" + ", ".join(self._list(r) for r in e.rows) + "}", PREC_ATOM

    def _print_Set(self, e: Set) -> Tuple[str, int]:
        return self._list(e.elements), PREC_ATOM

    def _print_Interval(self, e: Interval) -> Tuple[str, int]:
        text = f"Interval[{self._list([e.lo, e.hi])}"
        if e.left_open or e.right_open:
            text += f", {{{int(e.left_open)}, {int(e.right_open)}}}"
        return text + "]", PREC_ATOM

    def _print_Piecewise(self, e: Piecewise) -> Tuple[str, int]:
        pieces = "{" + ", ".join(self._list(p) for p in e.pieces) + "}"
        if e.otherwise is not None:
            return f"Piecewise[{pieces}, {self._print(e.otherwise, PREC_REL)}]", PREC_ATOM
        return f"Piecewise[{pieces}]", PREC_ATOM

    def _print_Derivative(self, e: Derivative) -> Tuple[str, int]:
        var = self._print(e.var, PREC_REL)
        if e.order != 1:
            var = f"{{{var}, {e.order}}}"
        return f"D[{self._print(e.expr, PREC_REL)}, {var}]", PREC_ATOM

    def _bounded(self, name: str, e) -> Tuple[str, int]:
        bounds = self._print(e.var, PREC_REL)
        if e.is_definite():
            bounds = self._list([e.var, e.lower, e.upper])
        return f"{name}[{self._print(e.expr, PREC_REL)}, {bounds}]", PREC_ATOM

    def _print_Integral(self, e: Integral) -> Tuple[str, int]:
        return self._bounded("Integrate", e)

    def _print_Sum(self, e: Sum) -> Tuple[str, int]:
        return self._bounded("Sum", e)

    def _print_Product(self, e: Product) -> Tuple[str, int]:
        return self._bounded("Product", e)

    def _print_Limit(self, e: Limit) -> Tuple[str, int]:
        text = f"Limit[{self._print(e.expr, PREC_REL)}, {self._print(e.var, PREC_REL)} -> {self._print(e.point, PREC_REL)}"
        if e.direction != "+-":
            # Mathematica: Direction -> -1 approaches from above
            text += f", Direction -> {-1 if e.direction == '+' else 1}"
        return text + "]", PREC_ATOM


_PRINTERS = {"plain": Printer(), "latex": LatexPrinter(), "wolfram": WolframPrinter()}


def to_string(expr, dialect: str = "plain") -> str:
    try:
        printer = _PRINTERS[dialect]
    except KeyError:
        raise ValueError(f"unknown dialect {dialect!r}") from None
    return printer.doprint(expr)


def to_plain(expr) -> str:
    return _PRINTERS["plain"].doprint(expr)


def to_latex(expr) -> str:
    return _PRINTERS["latex"].doprint(expr)


def to_wolfram(expr) -> str:
    return _PRINTERS["wolfram"].doprint(expr)
