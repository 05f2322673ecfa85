"""
Equation Solver Module

This module provides equation solving on expressions.
Polynomials of degree up to four are solved in closed form after a rational-root pretest;
higher degrees and non-polynomial equations fall back to numerical root finding. Linear
systems are solved by exact Gaussian elimination.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import logging
import math

import numpy as np

from classify import EquationType, as_numer_denom, classify_equation, default_variable
from config import DEFAULT_CONFIG, CASConfig
from errors import CASError, InvalidInput, NotImplementedMath
from evaluate import evalf, evaluate
from expression import (
    I, NEG_ONE, ONE, PI, TWO, ZERO,
    Add, Expr, Func, Matrix, Mul, Num, Pow, Relation, Sym, cast, is_undefined, make_add,
)
from functions import arccos, cos, exp, ln, sqrt
from number import divisors
from simplify import simplify

logger = logging.getLogger(__name__)


class SolveStatus(Enum):
    SOLVED = "solved"
    NO_SOLUTION = "no_solution"
    ALL_VALUES = "all_values"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Solution:
    """Represents one root of an equation."""
    variable: Sym
    value: Expr
    multiplicity: int = 1
    exact: bool = True

    def __str__(self) -> str:
        from printing import to_plain
        text = f"{self.variable} = {to_plain(self.value)}"
        if self.multiplicity > 1:
            text += f" (multiplicity {self.multiplicity})"
        return text


@dataclass
class SolveResult:
    """Outcome of solving one equation for one variable."""
    variable: Optional[Sym]
    status: SolveStatus
    solutions: List[Solution] = field(default_factory=list)
    equation_type: Optional[EquationType] = None

    @staticmethod
    def all_values(var: Optional[Sym], kind: Optional[EquationType] = None) -> "SolveResult":
        return SolveResult(var, SolveStatus.ALL_VALUES, [], kind)

    @staticmethod
    def no_solution(var: Optional[Sym], kind: Optional[EquationType] = None) -> "SolveResult":
        return SolveResult(var, SolveStatus.NO_SOLUTION, [], kind)

    @staticmethod
    def unknown(var: Optional[Sym], kind: Optional[EquationType] = None) -> "SolveResult":
        return SolveResult(var, SolveStatus.UNKNOWN, [], kind)

    def values(self) -> List[Expr]:
        """Distinct roots in order."""
        return [s.value for s in self.solutions]

    def multiset(self) -> List[Expr]:
        """Roots repeated by multiplicity."""
        return [s.value for s in self.solutions for _ in range(s.multiplicity)]

    def __iter__(self):
        return iter(self.solutions)

    def __len__(self) -> int:
        return len(self.solutions)

    def __str__(self) -> str:
        if self.status is SolveStatus.ALL_VALUES:
            return f"{self.variable} can be any value"
        if self.status is SolveStatus.NO_SOLUTION:
            return "No solution"
        if self.status is SolveStatus.UNKNOWN:
            return f"{self.variable} = ?"
        return ", ".join(str(s) for s in self.solutions)


@dataclass
class SystemResult:
    """Solution of a linear system; free variables parametrise the values."""
    status: SolveStatus
    values: Dict[Sym, Expr] = field(default_factory=dict)
    free: Tuple[Sym, ...] = ()


HALF_SQRT3 = Mul(Num(Fraction(1, 2)), sqrt(Num(3)))


def _num(c) -> Expr:
    return Num(Fraction(c)) if not isinstance(c, float) else Num(c)


def _quadratic_exprs(a: Expr, b: Expr, c: Expr) -> List[Tuple[Expr, int]]:
    """Roots of a*t^2 + b*t + c with multiplicities; coefficients may be symbolic."""
    disc = simplify(Add(Pow(b, TWO), Mul(Num(-4), a, c)))
    den = Pow(Mul(TWO, a), NEG_ONE)
    if disc == ZERO:
        return [(simplify(Mul(NEG_ONE, b, den)), 2)]
    root = sqrt(disc)
    return [
        (simplify(Mul(Add(Mul(NEG_ONE, b), root), den)), 1),
        (simplify(Mul(Add(Mul(NEG_ONE, b), Mul(NEG_ONE, root)), den)), 1),
    ]


def _real_cbrt(e: Expr) -> Expr:
    e = simplify(e)
    if evalf(e) < 0:
        return simplify(Mul(NEG_ONE, Pow(Mul(NEG_ONE, e), Num(Fraction(1, 3)))))
    return simplify(Pow(e, Num(Fraction(1, 3))))


def _sort_key(s: Solution):
    if isinstance(s.value, Num):
        return (0, s.value.value.to_float(), "")
    return (1, 0.0, str(s.value))


class SymbolicSolver:
    """Polynomial solver over exact rational coefficients, ascending order [a0, a1, ..., an]."""

    def __init__(self, config: CASConfig = DEFAULT_CONFIG) -> None:
        self.config = config

    def solve(self, coeffs: Sequence, var) -> SolveResult:
        """
        Solve a0 + a1*x + ... + an*x^n = 0.

        Args:
            coeffs: Coefficients [a0, a1, ..., an] as ints, Fractions or floats
            var: Variable to solve for

        Returns:
            SolveResult with every root, exact where a closed form exists
        """
        v = cast(var)
        coeffs = list(coeffs)
        while coeffs and coeffs[-1] == 0:
            coeffs.pop()
        if not coeffs:
            return SolveResult.all_values(v)
        if len(coeffs) == 1:
            return SolveResult.no_solution(v)
        if any(isinstance(c, float) for c in coeffs):
            sols = self.numeric_roots([float(c) for c in coeffs], v)
        else:
            sols = self.solve_polynomial([Fraction(c) for c in coeffs], v)
        return SolveResult(v, SolveStatus.SOLVED, sorted(sols, key=_sort_key))

    def solve_polynomial(self, coeffs: List[Fraction], var: Sym) -> List[Solution]:
        """Rational roots first, then closed forms for what is left, then numerics."""
        degree = len(coeffs) - 1
        if degree <= 0:
            return []
        if degree == 1:
            return self.solve_linear(coeffs, var)
        if degree == 2:
            return self.solve_quadratic(coeffs, var)

        solutions: List[Solution] = []
        remaining = coeffs[:]
        for root in self.find_rational_roots(coeffs):
            multiplicity = 0
            while len(remaining) > 1 and self.evaluate_polynomial(remaining, root) == 0:
                multiplicity += 1
                remaining = self.synthetic_divide(remaining, root)
            if multiplicity:
                solutions.append(Solution(var, _num(root), multiplicity))
        if len(remaining) < len(coeffs):
            return solutions + self.solve_polynomial(remaining, var)

        if degree == 3:
            return self.solve_cubic(coeffs, var)
        if degree == 4:
            found = self.solve_quartic(coeffs, var)
            if found is not None:
                return found
        logger.debug("no closed form for degree %d, using Newton iteration", degree)
        return self.numeric_roots([float(c) for c in coeffs], var)

    def solve_linear(self, coeffs: List[Fraction], var: Sym) -> List[Solution]:
        """a*x + b = 0 gives x = -b/a."""
        b, a = coeffs
        return [Solution(var, _num(-b / a))]

    def solve_quadratic(self, coeffs: List[Fraction], var: Sym) -> List[Solution]:
        """
        Solve a*x^2 + b*x + c = 0 by the quadratic formula.

        A perfect-square discriminant gives rational roots; otherwise the roots carry a square
        root, which is imaginary for a negative discriminant.
        """
        c, b, a = coeffs
        discriminant = b * b - 4 * a * c
        if discriminant == 0:
            return [Solution(var, _num(-b / (2 * a)), 2)]
        exact = self.sqrt_rational(discriminant)
        if exact is not None:
            return [
                Solution(var, _num((-b + exact) / (2 * a))),
                Solution(var, _num((-b - exact) / (2 * a))),
            ]
        return [Solution(var, r, k) for r, k in _quadratic_exprs(_num(a), _num(b), _num(c))]

    def solve_cubic(self, coeffs: List[Fraction], var: Sym) -> List[Solution]:
        """
        Solve a*x^3 + b*x^2 + c*x + d = 0 through the depressed cubic t^3 + p*t + q.

        One real root and a complex pair use Cardano's formula; three real roots use the
        trigonometric form.
        """
        d, c, b, a = coeffs
        shift = b / (3 * a)
        p = (3 * a * c - b * b) / (3 * a * a)
        q = (2 * b ** 3 - 9 * a * b * c + 27 * a * a * d) / (27 * a ** 3)
        discriminant = (q / 2) ** 2 + (p / 3) ** 3

        if p == 0 and q == 0:
            return [Solution(var, _num(-shift), 3)]
        if discriminant == 0:
            return [
                Solution(var, _num(3 * q / p - shift)),
                Solution(var, _num(-3 * q / (2 * p) - shift), 2),
            ]
        back = _num(-shift)
        if discriminant > 0:
            root = sqrt(_num(discriminant))
            u = _real_cbrt(Add(_num(-q / 2), root))
            w = _real_cbrt(Add(_num(-q / 2), Mul(NEG_ONE, root)))
            real = simplify(Add(u, w, back))
            half = Mul(Num(Fraction(-1, 2)), Add(u, w))
            imag = Mul(HALF_SQRT3, Add(u, Mul(NEG_ONE, w)), I)
            return [
                Solution(var, real),
                Solution(var, simplify(Add(half, imag, back))),
                Solution(var, simplify(Add(half, Mul(NEG_ONE, imag), back))),
            ]
        r = Mul(TWO, sqrt(_num(-p / 3)))
        angle = Mul(
            Num(Fraction(1, 3)),
            arccos(Mul(_num(3 * q / (2 * p)), sqrt(_num(Fraction(-3) / p)))),
        )
        out = []
        for k in range(3):
            t = Mul(r, cos(Add(angle, Mul(Num(Fraction(-2 * k, 3)), PI))))
            out.append(Solution(var, simplify(Add(t, back))))
        return out

    def solve_quartic(self, coeffs: List[Fraction], var: Sym) -> Optional[List[Solution]]:
        """
        Solve a*x^4 + b*x^3 + c*x^2 + d*x + e = 0 by Ferrari's method.

        Returns None when the resolvent cubic has no rational root.
        """
        e, d, c, b, a = coeffs
        shift = b / (4 * a)
        p = (8 * a * c - 3 * b * b) / (8 * a * a)
        q = (b ** 3 - 4 * a * b * c + 8 * a * a * d) / (8 * a ** 3)
        r = (-3 * b ** 4 + 256 * a ** 3 * e - 64 * a * a * b * d + 16 * a * b * b * c) / (256 * a ** 4)
        back = _num(-shift)

        roots: List[Tuple[Expr, int]] = []
        if q == 0:
            for s, k in _quadratic_exprs(ONE, _num(p), _num(r)):
                t = sqrt(s)
                roots.extend([(t, k), (simplify(Mul(NEG_ONE, t)), k)])
        else:
            resolvent = [-q * q, 2 * p * p - 8 * r, 8 * p, Fraction(8)]
            ms = [m for m in self.find_rational_roots(resolvent) if m > 0]
            if not ms:
                return None
            m = ms[0]
            s = sqrt(_num(2 * m))
            k = Mul(_num(q / 2), Pow(s, NEG_ONE))
            base = _num(p / 2 + m)
            roots.extend(_quadratic_exprs(ONE, Mul(NEG_ONE, s), Add(base, k)))
            roots.extend(_quadratic_exprs(ONE, s, Add(base, Mul(NEG_ONE, k))))

        merged: Dict[Expr, int] = {}
        for t, k in roots:
            x = simplify(Add(t, back))
            merged[x] = merged.get(x, 0) + k
        return [Solution(var, x, k) for x, k in merged.items()]

    def numeric_roots(self, coeffs: List[float], var: Sym) -> List[Solution]:
        """Approximate roots by Newton iteration with deflation, tagged as floats."""
        out: Dict[Expr, int] = {}
        for z in newton_roots(coeffs, self.config):
            if abs(z.imag) <= 1e-9 * max(1.0, abs(z)):
                value = Num(float(z.real))
            else:
                value = simplify(Add(Num(float(z.real)), Mul(Num(float(z.imag)), I)))
            out[value] = out.get(value, 0) + 1
        return [Solution(var, x, k, exact=False) for x, k in out.items()]

    def sqrt_rational(self, r: Fraction) -> Optional[Fraction]:
        """Rational square root of r, or None."""
        if r < 0:
            return None
        n, d = math.isqrt(r.numerator), math.isqrt(r.denominator)
        if n * n == r.numerator and d * d == r.denominator:
            return Fraction(n, d)
        return None

    def find_rational_roots(self, coeffs: List[Fraction]) -> List[Fraction]:
        """
        Find rational roots using the Rational Root Theorem.

        If p/q is a root of the integer polynomial, p divides the constant term and q divides
        the leading coefficient.
        """
        if len(coeffs) < 2:
            return []
        scale = math.lcm(*(Fraction(c).denominator for c in coeffs))
        ints = [int(Fraction(c) * scale) for c in coeffs]
        roots: List[Fraction] = []
        low = 0
        while ints[low] == 0:
            low += 1
        if low:
            roots.append(Fraction(0))
        ints = ints[low:]
        if len(ints) < 2 or max(abs(ints[0]), abs(ints[-1])).bit_length() > 48:
            return roots
        for p in divisors(ints[0]):
            for q in divisors(ints[-1]):
                for candidate in (Fraction(p, q), Fraction(-p, q)):
                    if candidate not in roots and self.evaluate_polynomial(ints, candidate) == 0:
                        roots.append(candidate)
        return roots

    def evaluate_polynomial(self, coeffs: Sequence, x: Fraction) -> Fraction:
        """Evaluate polynomial at x using Horner's method."""
        result = Fraction(0)
        for c in reversed(coeffs):
            result = result * x + c
        return result

    def synthetic_divide(self, coeffs: List[Fraction], root: Fraction) -> List[Fraction]:
        """Coefficients of the quotient by (x - root)."""
        result: List[Fraction] = []
        carry = Fraction(0)
        for c in reversed(coeffs[1:]):
            carry = c + carry * root
            result.append(carry)
        result.reverse()
        return result


# -----------------
# Numerical root finding
# -----------------
def _newton(p: np.ndarray, z: complex, config: CASConfig) -> complex:
    dp = np.polyder(p)
    for _ in range(config.newton_max_iterations):
        fz = np.polyval(p, z)
        dz = np.polyval(dp, z)
        if dz == 0:
            z += complex(1e-3, 1e-3)
            continue
        step = fz / dz
        z -= step
        if abs(step) <= config.newton_tolerance * max(1.0, abs(z)):
            break
    return complex(z)


def newton_roots(coeffs: Sequence[float], config: CASConfig = DEFAULT_CONFIG) -> List[complex]:
    """All complex roots of sum(coeffs[k] * x**k): Newton's method, deflation, then polishing."""
    p = np.trim_zeros(np.array(list(reversed(coeffs)), dtype=complex), "f")
    if len(p) < 2:
        return []
    work = p.copy()
    roots: List[complex] = []
    while len(work) > 2:
        z = _newton(work, complex(0.4, 0.9), config)
        z = _newton(p, z, config)
        roots.append(z)
        work, _ = np.polydiv(work, np.array([1.0, -z]))
    roots.append(_newton(p, complex(-work[1] / work[0]), config))
    return sorted(roots, key=lambda z: (round(z.real, 9), round(z.imag, 9)))


def brent(f: Callable[[float], float], a: float, b: float, tol: float = 1e-12, max_iter: int = 200) -> Optional[float]:
    """Root of f in [a, b] by Brent's method; None unless f(a) and f(b) differ in sign."""
    fa, fb = f(a), f(b)
    if fa == 0:
        return a
    if fb == 0:
        return b
    if fa * fb > 0:
        return None
    if abs(fa) < abs(fb):
        a, b, fa, fb = b, a, fb, fa
    c, fc = a, fa
    d = e = b - a
    for _ in range(max_iter):
        if fb == 0:
            return b
        if fa * fb > 0:
            a, fa = c, fc
            d = e = b - a
        if abs(fa) < abs(fb):
            c, fc = b, fb
            b, fb = a, fa
            a, fa = c, fc
        m = (a - b) / 2
        t = 2 * 2.220446049250313e-16 * abs(b) + tol / 2
        if abs(m) <= t:
            return b
        if abs(e) >= t and abs(fc) > abs(fb):
            s = fb / fc
            if a == c:
                p, q = 2 * m * s, 1 - s
            else:
                q, r = fc / fa, fb / fa
                p = s * (2 * m * q * (q - r) - (b - c) * (r - 1))
                q = (q - 1) * (r - 1) * (s - 1)
            if p > 0:
                q = -q
            else:
                p = -p
            if 2 * p < min(3 * m * q - abs(t * q), abs(e * q)):
                e, d = d, p / q
            else:
                d = e = m
        else:
            d = e = m
        c, fc = b, fb
        b += d if abs(d) > t else (t if m > 0 else -t)
        fb = f(b)
    logger.debug("Brent iteration stopped at the cap (%d)", max_iter)
    return b


def find_roots(
    expr,
    var,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
    env: Optional[Dict] = None,
    config: CASConfig = DEFAULT_CONFIG,
) -> List[float]:
    """
    Real roots of expr = 0 in [lower, upper].

    The expression is compiled to a DAG and sampled on a grid; every sign change becomes a
    bracket for Brent's method. Points where the expression is undefined are skipped, and a
    sign change across a pole is rejected because the root does not evaluate near zero.
    """
    from edag import ExpressionDAG
    e = simplify(expr)
    v = cast(var)
    lo = config.root_search_lower if lower is None else float(lower)
    hi = config.root_search_upper if upper is None else float(upper)
    if lo >= hi:
        return []
    dag = ExpressionDAG.from_expr(e)
    xs = np.linspace(lo, hi, config.root_search_samples + 1)
    ys = dag.eval_array(v, xs, env)

    def f(x: float) -> float:
        return float(dag.eval_array(v, np.array([x]), env)[0])

    roots: List[float] = []
    for k in range(len(xs) - 1):
        y0, y1 = ys[k], ys[k + 1]
        if not (np.isfinite(y0) and np.isfinite(y1)):
            continue
        if y0 == 0:
            roots.append(float(xs[k]))
            continue
        if y0 * y1 < 0:
            r = brent(f, float(xs[k]), float(xs[k + 1]), config.newton_tolerance, config.newton_max_iterations)
            if r is not None and np.isfinite(f(r)) and abs(f(r)) < 1e-6:
                roots.append(r)
    if np.isfinite(ys[-1]) and ys[-1] == 0:
        roots.append(float(xs[-1]))

    unique: List[float] = []
    for r in sorted(roots):
        if not unique or abs(r - unique[-1]) > 1e-9 * max(1.0, abs(r)):
            unique.append(r)
    return unique


# -----------------
# Linear systems
# -----------------
def solve_linear_system(equations: Sequence, variables: Sequence) -> SystemResult:
    """
    Exact Gauss-Jordan elimination.

    Each equation is a Relation or an expression equal to zero and must be linear in the
    variables. Underdetermined systems express the pivot variables in terms of the free ones.
    """
    from dispatch import cancel
    from expand import coefficient, expand
    vs = [cast(v) for v in variables]
    rows: List[List[Expr]] = []
    for eq in equations:
        e = cast(eq)
        e = simplify(e.lhs_minus_rhs() if isinstance(e, Relation) else e)
        row = []
        for v in vs:
            c = coefficient(e, v, 1)
            if any(c.contains(w) for w in vs):
                raise InvalidInput(f"equation {e} is not linear in {', '.join(map(str, vs))}")
            row.append(c)
        constant = evaluate(e, {v: ZERO for v in vs})
        rest = expand(Add(e, Mul(NEG_ONE, make_add([Mul(c, v) for c, v in zip(row, vs)])), Mul(NEG_ONE, constant)))
        if rest != ZERO:
            raise InvalidInput(f"equation {e} is not linear in {', '.join(map(str, vs))}")
        row.append(simplify(Mul(NEG_ONE, constant)))
        rows.append(row)

    n = len(vs)
    pivots: List[int] = []
    r = 0
    for col in range(n):
        pivot = next((i for i in range(r, len(rows)) if rows[i][col] != ZERO), None)
        if pivot is None:
            continue
        rows[r], rows[pivot] = rows[pivot], rows[r]
        inv = Pow(rows[r][col], NEG_ONE)
        rows[r] = [cancel(Mul(x, inv)) for x in rows[r]]
        for i in range(len(rows)):
            if i != r and rows[i][col] != ZERO:
                f = rows[i][col]
                rows[i] = [cancel(Add(x, Mul(NEG_ONE, f, y))) for x, y in zip(rows[i], rows[r])]
        pivots.append(col)
        r += 1

    for row in rows[r:]:
        if row[n] != ZERO:
            logger.debug("inconsistent linear system")
            return SystemResult(SolveStatus.NO_SOLUTION)
    free = tuple(vs[j] for j in range(n) if j not in pivots)
    values: Dict[Sym, Expr] = {}
    for k, col in enumerate(pivots):
        terms = [rows[k][n]] + [Mul(NEG_ONE, rows[k][j], vs[j]) for j in range(n) if j not in pivots]
        values[vs[col]] = simplify(make_add(terms))
    return SystemResult(SolveStatus.SOLVED, values, free)


# -----------------
# Dispatch
# -----------------
_INVERSES = {
    "exp": ln,
    "ln": exp,
}


def _isolate(e: Expr, v: Sym) -> Optional[Expr]:
    """For f(g(v)) - c with invertible f and c free of v, the equation g(v) = f^-1(c)."""
    terms = e.children if isinstance(e, Add) else (e,)
    inner = [t for t in terms if t.contains(v)]
    if len(inner) != 1:
        return None
    const = simplify(Mul(NEG_ONE, make_add([t for t in terms if not t.contains(v)])))
    t = inner[0]
    coeff = ONE
    if isinstance(t, Mul):
        consts = [f for f in t.children if not f.contains(v)]
        rest = [f for f in t.children if f.contains(v)]
        if len(rest) != 1:
            return None
        coeff = simplify(Mul(*consts)) if consts else ONE
        t = rest[0]
    if not isinstance(t, Func) or t.name not in _INVERSES or len(t.children) != 1:
        return None
    target = simplify(Mul(const, Pow(coeff, NEG_ONE)))
    return simplify(Add(t.children[0], Mul(NEG_ONE, _INVERSES[t.name](target))))


def _symbolic_polynomial(cs: Dict[int, Expr], v: Sym) -> Optional[List[Solution]]:
    deg = max(cs)
    if deg == 1:
        return [Solution(v, simplify(Mul(NEG_ONE, cs.get(0, ZERO), Pow(cs[1], NEG_ONE))))]
    if deg == 2:
        return [Solution(v, r, k) for r, k in _quadratic_exprs(cs[2], cs.get(1, ZERO), cs.get(0, ZERO))]
    return None


def _numeric(e: Expr, v: Sym, kind: EquationType, config: CASConfig) -> SolveResult:
    try:
        roots = find_roots(e, v, config=config)
    except CASError:
        return SolveResult.unknown(v, kind)
    if not roots:
        return SolveResult.unknown(v, kind)
    return SolveResult(v, SolveStatus.SOLVED, [Solution(v, Num(r), exact=False) for r in roots], kind)


def solve(equation, var=None, strict: bool = False, config: CASConfig = DEFAULT_CONFIG) -> SolveResult:
    """
    Solve equation = 0 (or left = right) for var.

    Unsolved cases come back with status UNKNOWN; with strict they raise NotImplementedMath.
    """
    from expand import coefficients
    eq = cast(equation)
    kind = classify_equation(eq, var)
    e = simplify(eq.lhs_minus_rhs() if isinstance(eq, Relation) else eq)
    v = cast(var) if var is not None else default_variable(e)
    logger.debug("solving %s for %s as %s", e, v, kind.value)

    if kind is EquationType.MATRIX or isinstance(e, Matrix):
        raise InvalidInput("matrix equations are solved with solve_linear_system")
    if kind in (EquationType.ODE, EquationType.PDE):
        result = SolveResult.unknown(v, kind)
    elif kind is EquationType.CONSTANT:
        if is_undefined(e):
            result = SolveResult.unknown(v, kind)
        elif e == ZERO:
            result = SolveResult.all_values(v, kind)
        else:
            result = SolveResult.no_solution(v, kind)
    elif kind is EquationType.RATIONAL:
        num, den = as_numer_denom(e)
        inner = solve(num, v, False, config)
        kept = [s for s in inner.solutions if simplify(den.substitute({v: s.value})) != ZERO]
        if inner.status is SolveStatus.SOLVED and not kept:
            result = SolveResult.no_solution(v, kind)
        else:
            result = SolveResult(v, inner.status, kept, kind)
    elif kind in (EquationType.TRANSCENDENTAL, EquationType.NUMERICAL):
        reduced = _isolate(e, v)
        if reduced is not None:
            result = solve(reduced, v, False, config)
            result.equation_type = kind
        else:
            result = _numeric(e, v, kind, config)
    else:
        cs = coefficients(e, v)
        if all(isinstance(c, Num) for c in cs.values()):
            dense = [cs.get(k, ZERO).value for k in range(max(cs) + 1)]
            values = [c.to_float() if c.is_float() else c.to_fraction() for c in dense]
            result = SymbolicSolver(config).solve(values, v)
            result.equation_type = kind
        else:
            sols = _symbolic_polynomial(cs, v)
            result = SolveResult(v, SolveStatus.SOLVED, sols, kind) if sols is not None else SolveResult.unknown(v, kind)

    if strict and result.status is SolveStatus.UNKNOWN:
        raise NotImplementedMath(f"cannot solve {e} for {v}")
    return result
