from __future__ import annotations
from typing import Any, Sequence


class CASError(Exception):
    "Base exception for all symbolic engine errors."
    pass


class DivisionByZero(CASError, ZeroDivisionError):
    "Division, modular inverse or a zero base raised to a non-positive power."
    pass


class NumericOverflow(CASError, OverflowError):
    "An exact result would be too large, or a float result is not finite."
    pass


class DomainError(CASError, ValueError):
    "An operation was applied outside of its valid domain."
    pass


class NotPolynomial(CASError, ValueError):
    "A polynomial operation was requested on a non-polynomial expression."

    def __init__(self, expr: Any = None, variables: Sequence[Any] = (), message: str | None = None) -> None:
        self.expr = expr
        self.variables = tuple(variables)
        if message is None:
            names = ", ".join(str(v) for v in self.variables)
            message = f"{expr} is not a polynomial in ({names})"
        super().__init__(message)


class DivisionNotExact(CASError, ArithmeticError):
    "Exact division was requested but the remainder is non-zero."
    pass


class InvalidInput(CASError, ValueError):
    "Malformed input rejected by the parser or a solver."
    pass


class NotImplementedMath(CASError, NotImplementedError):
    "The input is well formed but no algorithm handles it."
    pass


class GCDFailed(CASError):
    "A modular or heuristic gcd exhausted its iteration caps."
    pass


class PatternError(CASError):
    "A rewrite rule is malformed, e.g. its replacement uses an unbound wildcard."
    pass
