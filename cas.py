from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence, Union
from fractions import Fraction

import calculus
import dispatch
import integrate as integration
import solver
from config import DEFAULT_CONFIG, CASConfig
from edag import ExpressionDAG
from evaluate import evaluate, evalf
from expand import collect, expand
from expression import Expr, Sym, cast
from parser import parse
from printing import to_string
from serialize import from_json, to_json
from simplify import simplify

NumberLike = Union[int, float, Fraction]


class CAS:
    """Entry point combining the parser, the engines and the formatters."""

    def __init__(self, config: CASConfig = DEFAULT_CONFIG, dialect: Optional[str] = None) -> None:
        self.config = config
        self.dialect = dialect

    def _wrap(self, obj: Any) -> "CAS.ExprResult":
        if isinstance(obj, CAS.ExprResult):
            return obj
        if isinstance(obj, str):
            return self.parse(obj)
        if isinstance(obj, ExpressionDAG):
            return CAS.ExprResult(obj.to_expr(), self)
        if isinstance(obj, (Expr, int, float, Fraction)):
            return CAS.ExprResult(cast(obj), self)
        raise TypeError(f"Unsupported object for wrapping: {type(obj).__name__}")

    def parse(self, text: str, dialect: Optional[str] = None) -> "CAS.ExprResult":
        """Parse text; the dialect is detected from the input when not given."""
        return CAS.ExprResult(parse(text, dialect or self.dialect), self)

    def from_json(self, text: str) -> "CAS.ExprResult":
        return CAS.ExprResult(from_json(text), self)

    class ExprResult:
        """A parsed expression with the engines attached as methods."""

        def __init__(self, expr: Expr, cas: Optional["CAS"] = None) -> None:
            self._expr = expr
            self._cas = cas or CAS()

        @property
        def expr(self) -> Expr:
            return self._expr

        @property
        def config(self) -> CASConfig:
            return self._cas.config

        def _new(self, expr: Expr) -> "CAS.ExprResult":
            return CAS.ExprResult(expr, self._cas)

        def __eq__(self, other: object) -> bool:
            if isinstance(other, CAS.ExprResult):
                return self._expr == other._expr
            return self._expr == other

        def __hash__(self) -> int:
            return hash(self._expr)

        def __repr__(self) -> str:
            return f"ExprResult({self._expr!r})"

        def __str__(self) -> str:
            return to_string(self._expr, "plain")

        # -----------------
        # Output
        # -----------------
        def format(self, dialect: str = "plain") -> str:
            return to_string(self._expr, dialect)

        def to_latex(self) -> str:
            return to_string(self._expr, "latex")

        def to_wolfram(self) -> str:
            return to_string(self._expr, "wolfram")

        def to_json(self, indent: Optional[int] = None) -> str:
            return to_json(self._expr, indent)

        def to_dag(self) -> ExpressionDAG:
            return ExpressionDAG.from_expr(self._expr)

        # -----------------
        # Evaluation
        # -----------------
        def eval(self, env: Dict[str, Any] | None = None, strict: bool = False) -> "CAS.ExprResult":
            """Exact evaluation under env; unknown symbols stay symbolic."""
            return self._new(evaluate(self._expr, env, strict))

        def evalf(self, env: Dict[str, Any] | None = None) -> float:
            return evalf(self._expr, env)

        def _eval_float(self, var: str, x: float) -> float:
            return evalf(self._expr, {var: x})

        def substitute(self, mapping: Dict[Any, Any]) -> "CAS.ExprResult":
            return self._new(evaluate(self._expr, mapping))

        # -----------------
        # Algebra
        # -----------------
        def simplify(self) -> "CAS.ExprResult":
            return self._new(simplify(self._expr))

        def expand(self) -> "CAS.ExprResult":
            return self._new(expand(self._expr))

        def collect(self, var: str) -> "CAS.ExprResult":
            return self._new(collect(self._expr, var))

        def factor(self) -> "CAS.ExprResult":
            return self._new(dispatch.factor(self._expr))

        def cancel(self) -> "CAS.ExprResult":
            return self._new(dispatch.cancel(self._expr))

        # -----------------
        # Calculus
        # -----------------
        def diff(self, var: str, order: int = 1) -> "CAS.ExprResult":
            return self._new(calculus.diff(self._expr, var, order))

        def integrate(self, var: str, lower: Any = None, upper: Any = None, strict: bool = False) -> "CAS.ExprResult":
            return self._new(integration.integrate(self._expr, var, lower, upper, strict, self.config))

        def limit(self, var: str, point: Any, direction: str = "+-") -> "CAS.ExprResult":
            return self._new(calculus.limit(self._expr, var, point, direction, self.config))

        def series(self, var: str, point: Any = 0, n: int = 6) -> "CAS.ExprResult":
            return self._new(calculus.series(self._expr, var, point, n, self.config))

        def doit(self) -> "CAS.ExprResult":
            return self._new(calculus.doit(self._expr))

        # -----------------
        # Equations
        # -----------------
        def solve(self, var: Optional[str] = None, strict: bool = False) -> solver.SolveResult:
            """Solve self = 0 (or the relation it holds) for var.

            For example solve(x^2 - 4, x) has the solutions x = -2 and x = 2.
            """
            return solver.solve(self._expr, var, strict, self.config)

        def find_root(self, var: str, lower: float, upper: float) -> Optional[float]:
            """Root of self = 0 in [lower, upper] by Brent's method; None without a sign change."""
            return solver.brent(
                lambda x: self._eval_float(var, x),
                float(lower),
                float(upper),
                self.config.newton_tolerance,
                self.config.newton_max_iterations,
            )

        def find_all_roots(self, var: str, lower: Optional[float] = None, upper: Optional[float] = None) -> List[float]:
            """Every sign-change root between the bounds (defaults from the config)."""
            return solver.find_roots(self._expr, var, lower, upper, config=self.config)

    # -----------------
    # Facade helpers taking text or parsed input
    # -----------------
    def eval(self, expr: Any, env: Dict[str, NumberLike] | None = None) -> Expr:
        return self._wrap(expr).eval(env).expr

    def evalf(self, expr: Any, env: Dict[str, NumberLike] | None = None) -> float:
        return self._wrap(expr).evalf(env)

    def simplify(self, expr: Any) -> str:
        return str(self._wrap(expr).simplify())

    def differentiate(self, expr: Any, var: str, order: int = 1) -> "CAS.ExprResult":
        return self._wrap(expr).diff(var, order)

    def integrate(self, expr: Any, var: str, lower: Any = None, upper: Any = None) -> "CAS.ExprResult":
        return self._wrap(expr).integrate(var, lower, upper)

    def limit(self, expr: Any, var: str, point: Any, direction: str = "+-") -> "CAS.ExprResult":
        return self._wrap(expr).limit(var, point, direction)

    def series(self, expr: Any, var: str, point: Any = 0, n: int = 6) -> "CAS.ExprResult":
        return self._wrap(expr).series(var, point, n)

    def factor(self, expr: Any) -> "CAS.ExprResult":
        return self._wrap(expr).factor()

    def gcd(self, f: Any, g: Any) -> "CAS.ExprResult":
        return CAS.ExprResult(dispatch.gcd(self._wrap(f).expr, self._wrap(g).expr), self)

    def divide(self, f: Any, g: Any, var: Optional[str] = None):
        """(quotient, remainder) of polynomial division."""
        q, r = dispatch.poly_div(self._wrap(f).expr, self._wrap(g).expr, var)
        return CAS.ExprResult(q, self), CAS.ExprResult(r, self)

    def groebner(self, exprs: Sequence[Any], gens: Optional[Sequence[str]] = None, order: str = "grevlex") -> List["CAS.ExprResult"]:
        """Reduced Gröbner basis of the ideal the polynomials generate."""
        basis = dispatch.groebner_basis([self._wrap(e).expr for e in exprs], gens, order)
        return [CAS.ExprResult(b, self) for b in basis]

    def solve(self, expr: Any, var: Optional[str] = None) -> solver.SolveResult:
        """Solve the equation expr = 0 (or a parsed relation) for var."""
        return self._wrap(expr).solve(var)

    def solve_system(self, equations: Sequence[Any], variables: Sequence[str]) -> solver.SystemResult:
        eqs = [self._wrap(e).expr for e in equations]
        return solver.solve_linear_system(eqs, [Sym(v) for v in variables])

    def format(self, expr: Any, dialect: str = "plain") -> str:
        return self._wrap(expr).format(dialect)
