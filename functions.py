"""Registry of elementary functions.

Each entry knows its exact special values, a float evaluator, a derivative rule in terms of its
argument and, when elementary, an antiderivative of f(x). The registry is built once at import
and is read-only.
"""

from __future__ import annotations
from dataclasses import dataclass
from fractions import Fraction
from types import MappingProxyType
from typing import Callable, Optional, Tuple
import math

from errors import DomainError, DivisionByZero
from expression import (
    E, HALF, I, NEG_ONE, ONE, OO, PI, TWO, UNDEFINED, ZERO,
    Add, Const, Expr, Func, Mul, Num, Pow, cast, negate,
)
from number import factorial as int_factorial


@dataclass(frozen=True)
class FunctionSpec:
    name: str
    nargs: Tuple[int, ...]
    evalf: Callable[..., float]
    special: Optional[Callable[..., Optional[Expr]]] = None
    derivative: Optional[Callable[[Expr], Expr]] = None
    antiderivative: Optional[Callable[[Expr], Expr]] = None
    latex: str = ""
    wolfram: str = ""
    odd: bool = False
    even: bool = False


# -----------------
# Constructors
# -----------------
def sin(x) -> Expr:
    return Func("sin", x)


def cos(x) -> Expr:
    return Func("cos", x)


def tan(x) -> Expr:
    return Func("tan", x)


def cot(x) -> Expr:
    return Func("cot", x)


def sec(x) -> Expr:
    return Func("sec", x)


def csc(x) -> Expr:
    return Func("csc", x)


def arcsin(x) -> Expr:
    return Func("arcsin", x)


def arccos(x) -> Expr:
    return Func("arccos", x)


def arctan(x) -> Expr:
    return Func("arctan", x)


def sinh(x) -> Expr:
    return Func("sinh", x)


def cosh(x) -> Expr:
    return Func("cosh", x)


def tanh(x) -> Expr:
    return Func("tanh", x)


def exp(x) -> Expr:
    return Func("exp", x)


def ln(x) -> Expr:
    return Func("ln", x)


def log(x, base=None) -> Expr:
    if base is None:
        return Func("ln", x)
    return Func("log", x, base)


def sqrt(x) -> Expr:
    return Pow(cast(x), HALF)


def root(x, n) -> Expr:
    return Pow(cast(x), Pow(cast(n), NEG_ONE))


def Abs(x) -> Expr:
    return Func("abs", x)


def sign(x) -> Expr:
    return Func("sign", x)


def factorial(x) -> Expr:
    return Func("factorial", x)


def gamma(x) -> Expr:
    return Func("gamma", x)


def floor(x) -> Expr:
    return Func("floor", x)


def ceiling(x) -> Expr:
    return Func("ceiling", x)


# -----------------
# Special values
# -----------------
def pi_coefficient(arg: Expr) -> Optional[Fraction]:
    """k if arg is k*pi with k rational, else None."""
    if arg == PI:
        return Fraction(1)
    if isinstance(arg, Num) and arg.is_zero():
        return Fraction(0)
    if isinstance(arg, Mul) and len(arg.children) == 2:
        c, rest = arg.children
        if rest == PI and isinstance(c, Num) and c.value.is_exact():
            return c.value.to_fraction()
    return None


def _sqrt_num(n: int) -> Expr:
    return Pow(Num(n), HALF)


# sin(k*pi) for k in [0, 1/2]; the rest follows by symmetry
_SIN_TABLE = {
    Fraction(0): ZERO,
    Fraction(1, 6): HALF,
    Fraction(1, 4): Mul(HALF, _sqrt_num(2)),
    Fraction(1, 3): Mul(HALF, _sqrt_num(3)),
    Fraction(1, 2): ONE,
}


def _sin_pi_multiple(k: Fraction) -> Optional[Expr]:
    k = k % 2
    sgn = 1
    if k > 1:
        k -= 1
        sgn = -1
    if k > Fraction(1, 2):
        k = 1 - k
    val = _SIN_TABLE.get(k)
    if val is None:
        return None
    return val if sgn == 1 else negate(val)


def _leading_negative(arg: Expr) -> bool:
    if isinstance(arg, Num):
        return arg.is_negative()
    if isinstance(arg, Mul):
        first = arg.children[0]
        return isinstance(first, Num) and first.is_negative()
    return False


def _sin_special(x: Expr) -> Optional[Expr]:
    k = pi_coefficient(x)
    if k is not None:
        return _sin_pi_multiple(k)
    if isinstance(x, Func) and x.name == "arcsin":
        return x.children[0]
    return None


def _cos_special(x: Expr) -> Optional[Expr]:
    k = pi_coefficient(x)
    if k is not None:
        return _sin_pi_multiple(k + Fraction(1, 2))
    if isinstance(x, Func) and x.name == "arccos":
        return x.children[0]
    return None


def _tan_special(x: Expr) -> Optional[Expr]:
    k = pi_coefficient(x)
    if k is not None:
        s, c = _sin_pi_multiple(k), _sin_pi_multiple(k + Fraction(1, 2))
        if s is None or c is None:
            return None
        if c == ZERO:
            raise DivisionByZero("tan is undefined at odd multiples of pi/2")
        return Mul(s, Pow(c, NEG_ONE))
    if isinstance(x, Func) and x.name == "arctan":
        return x.children[0]
    return None


def _reciprocal_special(base: Callable[[Expr], Optional[Expr]], what: str) -> Callable[[Expr], Optional[Expr]]:
    def special(x: Expr) -> Optional[Expr]:
        v = base(x)
        if v is None:
            return None
        if v == ZERO:
            raise DivisionByZero(f"{what} has a pole here")
        return Pow(v, NEG_ONE)
    return special


_ARCSIN_TABLE = {
    Fraction(0): ZERO,
    Fraction(1, 2): Mul(Num(Fraction(1, 6)), PI),
    Fraction(1): Mul(HALF, PI),
}


def _arcsin_special(x: Expr) -> Optional[Expr]:
    if isinstance(x, Num) and x.value.is_exact():
        v = x.value.to_fraction()
        if abs(v) > 1:
            return None
        hit = _ARCSIN_TABLE.get(abs(v))
        if hit is not None:
            return hit if v >= 0 else negate(hit)
    return None


def _arccos_special(x: Expr) -> Optional[Expr]:
    s = _arcsin_special(x)
    if s is None:
        return None
    return Add(Mul(HALF, PI), negate(s))


def _arctan_special(x: Expr) -> Optional[Expr]:
    if isinstance(x, Num) and x.value.is_exact():
        v = x.value.to_fraction()
        if v == 0:
            return ZERO
        if abs(v) == 1:
            return Mul(Num(Fraction(v.numerator, 4)), PI)
    if x == OO:
        return Mul(HALF, PI)
    return None


def _zero_special(value_at_zero: Expr) -> Callable[[Expr], Optional[Expr]]:
    def special(x: Expr) -> Optional[Expr]:
        if isinstance(x, Num) and x.is_zero():
            return value_at_zero
        return None
    return special


def _exp_special(x: Expr) -> Optional[Expr]:
    if isinstance(x, Num) and x.is_zero():
        return ONE
    if isinstance(x, Num) and x.is_one():
        return E
    if isinstance(x, Func) and x.name == "ln":
        return x.children[0]
    # exp(k*ln(a)) = a^k
    if isinstance(x, Mul) and len(x.children) == 2:
        c, rest = x.children
        if isinstance(c, Num) and isinstance(rest, Func) and rest.name == "ln":
            return Pow(rest.children[0], c)
    # exp(k*i*pi) for integer/half-integer k
    if isinstance(x, Mul) and I in x.children:
        rest = [f for f in x.children if f != I]
        k = pi_coefficient(Mul(*rest))
        if k is not None:
            c, s = _sin_pi_multiple(k + Fraction(1, 2)), _sin_pi_multiple(k)
            if c is not None and s is not None:
                return Add(c, Mul(s, I))
    return None


def _ln_special(x: Expr) -> Optional[Expr]:
    if isinstance(x, Num):
        if x.is_one():
            return ZERO
        if x.is_zero():
            raise DomainError("ln(0) is undefined")
    if x == E:
        return ONE
    if isinstance(x, Func) and x.name == "exp":
        return x.children[0]
    if isinstance(x, Pow) and x.base == E:
        return x.exp
    return None


def _log_special(x: Expr, base: Expr) -> Optional[Expr]:
    if x == base:
        return ONE
    if isinstance(x, Num) and x.is_one():
        return ZERO
    if isinstance(x, Pow) and x.base == base:
        return x.exp
    # integer logs of integers: log(8, 2) = 3
    if isinstance(x, Num) and isinstance(base, Num) and x.value.is_int() and base.value.is_int():
        a, b = x.value.to_int(), base.value.to_int()
        if a > 0 and b > 1:
            k, p = 0, 1
            while p < a:
                p *= b
                k += 1
            if p == a:
                return Num(k)
    return Mul(Func("ln", x), Pow(Func("ln", base), NEG_ONE))


def _abs_special(x: Expr) -> Optional[Expr]:
    if isinstance(x, Num):
        return Num(x.value.abs())
    if isinstance(x, Const) and x.name in ("pi", "e", "oo", "euler_gamma", "phi"):
        return x
    if x == I:
        return ONE
    if isinstance(x, Func) and x.name == "abs":
        return x
    if _leading_negative(x):
        return Func("abs", negate(x))
    if isinstance(x, Pow) and isinstance(x.exp, Num) and x.exp.value.is_int() and x.exp.value.to_int() % 2 == 0:
        return x
    return None


def _sign_special(x: Expr) -> Optional[Expr]:
    if isinstance(x, Num):
        v = x.value
        return Num(0 if v.is_zero() else (1 if v.is_positive() else -1))
    if isinstance(x, Const) and x.name in ("pi", "e", "oo", "euler_gamma", "phi"):
        return ONE
    return None


def _factorial_special(x: Expr) -> Optional[Expr]:
    from config import DEFAULT_CONFIG
    if isinstance(x, Num) and x.value.is_int():
        n = x.value.to_int()
        if n < 0:
            raise DomainError("factorial of a negative integer")
        if n <= DEFAULT_CONFIG.factorial_limit:
            return Num(int_factorial(n, DEFAULT_CONFIG.factorial_limit))
    return None


def _gamma_special(x: Expr) -> Optional[Expr]:
    if isinstance(x, Num) and x.value.is_int():
        n = x.value.to_int()
        if n <= 0:
            raise DomainError("gamma has poles at non-positive integers")
        return _factorial_special(Num(n - 1))
    if x == HALF:
        return Pow(PI, HALF)
    return None


def _floor_special(x: Expr) -> Optional[Expr]:
    if isinstance(x, Num):
        return Num(math.floor(x.value.value))
    return None


def _ceiling_special(x: Expr) -> Optional[Expr]:
    if isinstance(x, Num):
        return Num(math.ceil(x.value.value))
    return None


# -----------------
# Float evaluators
# -----------------
def _checked(fn: Callable[..., float], name: str) -> Callable[..., float]:
    def run(*xs: float) -> float:
        try:
            return fn(*xs)
        except ValueError as exc:
            raise DomainError(f"{name} is undefined at {xs}") from exc
        except ZeroDivisionError as exc:
            raise DivisionByZero(f"{name} has a pole at {xs}") from exc
    return run


def _sign_float(x: float) -> float:
    return 0.0 if x == 0 else math.copysign(1.0, x)


# -----------------
# Derivatives, as expressions in the inner argument u
# -----------------
def _neg(e: Expr) -> Expr:
    return negate(e)


def _inv(e: Expr) -> Expr:
    return Pow(e, NEG_ONE)


_DERIVATIVES = {
    "sin": lambda u: cos(u),
    "cos": lambda u: _neg(sin(u)),
    "tan": lambda u: Pow(cos(u), Num(-2)),
    "cot": lambda u: _neg(Pow(sin(u), Num(-2))),
    "sec": lambda u: Mul(sec(u), tan(u)),
    "csc": lambda u: _neg(Mul(csc(u), cot(u))),
    "arcsin": lambda u: Pow(Add(ONE, _neg(Pow(u, TWO))), Num(Fraction(-1, 2))),
    "arccos": lambda u: _neg(Pow(Add(ONE, _neg(Pow(u, TWO))), Num(Fraction(-1, 2)))),
    "arctan": lambda u: _inv(Add(ONE, Pow(u, TWO))),
    "sinh": lambda u: cosh(u),
    "cosh": lambda u: sinh(u),
    "tanh": lambda u: Pow(cosh(u), Num(-2)),
    "exp": lambda u: exp(u),
    "ln": lambda u: _inv(u),
    "abs": lambda u: sign(u),
    "sign": lambda u: ZERO,
    "floor": lambda u: ZERO,
    "ceiling": lambda u: ZERO,
}

# Antiderivatives of f(x) with respect to x
_ANTIDERIVATIVES = {
    "sin": lambda x: _neg(cos(x)),
    "cos": lambda x: sin(x),
    "tan": lambda x: _neg(ln(cos(x))),
    "cot": lambda x: ln(sin(x)),
    "sec": lambda x: ln(Add(sec(x), tan(x))),
    "csc": lambda x: _neg(ln(Add(csc(x), cot(x)))),
    "arcsin": lambda x: Add(Mul(x, arcsin(x)), sqrt(Add(ONE, _neg(Pow(x, TWO))))),
    "arccos": lambda x: Add(Mul(x, arccos(x)), _neg(sqrt(Add(ONE, _neg(Pow(x, TWO)))))),
    "arctan": lambda x: Add(Mul(x, arctan(x)), Mul(Num(Fraction(-1, 2)), ln(Add(ONE, Pow(x, TWO))))),
    "sinh": lambda x: cosh(x),
    "cosh": lambda x: sinh(x),
    "tanh": lambda x: ln(cosh(x)),
    "exp": lambda x: exp(x),
    "ln": lambda x: Add(Mul(x, ln(x)), _neg(x)),
}


def _spec(name, nargs, fn, special=None, latex="", wolfram="", odd=False, even=False) -> FunctionSpec:
    return FunctionSpec(
        name=name,
        nargs=nargs,
        evalf=_checked(fn, name),
        special=special,
        derivative=_DERIVATIVES.get(name),
        antiderivative=_ANTIDERIVATIVES.get(name),
        latex=latex,
        wolfram=wolfram,
        odd=odd,
        even=even,
    )


_REGISTRY = {
    s.name: s
    for s in (
        _spec("sin", (1,), math.sin, _sin_special, r"\sin", "Sin", odd=True),
        _spec("cos", (1,), math.cos, _cos_special, r"\cos", "Cos", even=True),
        _spec("tan", (1,), math.tan, _tan_special, r"\tan", "Tan", odd=True),
        _spec("cot", (1,), lambda x: 1.0 / math.tan(x), _reciprocal_special(_tan_special, "cot"), r"\cot", "Cot", odd=True),
        _spec("sec", (1,), lambda x: 1.0 / math.cos(x), _reciprocal_special(_cos_special, "sec"), r"\sec", "Sec", even=True),
        _spec("csc", (1,), lambda x: 1.0 / math.sin(x), _reciprocal_special(_sin_special, "csc"), r"\csc", "Csc", odd=True),
        _spec("arcsin", (1,), math.asin, _arcsin_special, r"\arcsin", "ArcSin", odd=True),
        _spec("arccos", (1,), math.acos, _arccos_special, r"\arccos", "ArcCos"),
        _spec("arctan", (1,), math.atan, _arctan_special, r"\arctan", "ArcTan", odd=True),
        _spec("sinh", (1,), math.sinh, _zero_special(ZERO), r"\sinh", "Sinh", odd=True),
        _spec("cosh", (1,), math.cosh, _zero_special(ONE), r"\cosh", "Cosh", even=True),
        _spec("tanh", (1,), math.tanh, _zero_special(ZERO), r"\tanh", "Tanh", odd=True),
        _spec("exp", (1,), math.exp, _exp_special, r"\exp", "Exp"),
        _spec("ln", (1,), math.log, _ln_special, r"\ln", "Log"),
        _spec("log", (2,), lambda x, b: math.log(x) / math.log(b), _log_special, r"\log", "Log"),
        _spec("abs", (1,), abs, _abs_special, "", "Abs"),
        _spec("sign", (1,), _sign_float, _sign_special, r"\operatorname{sign}", "Sign"),
        _spec("factorial", (1,), lambda x: math.gamma(x + 1.0), _factorial_special, "", "Factorial"),
        _spec("gamma", (1,), math.gamma, _gamma_special, r"\Gamma", "Gamma"),
        _spec("floor", (1,), lambda x: float(math.floor(x)), _floor_special, "", "Floor"),
        _spec("ceiling", (1,), lambda x: float(math.ceil(x)), _ceiling_special, "", "Ceiling"),
    )
}

REGISTRY = MappingProxyType(_REGISTRY)

# wolfram name -> registry name ("Log" maps to ln for one argument)
WOLFRAM_NAMES = MappingProxyType({s.wolfram: s.name for s in _REGISTRY.values() if s.name != "log"})
LATEX_NAMES = MappingProxyType({s.latex: s.name for s in _REGISTRY.values() if s.latex})

# aliases accepted by the parsers
ALIASES = MappingProxyType({
    "asin": "arcsin",
    "acos": "arccos",
    "atan": "arctan",
    "log": "ln",
    "ceil": "ceiling",
    "fact": "factorial",
})


def lookup(name: str) -> Optional[FunctionSpec]:
    return REGISTRY.get(name)


def apply_special(f: Func) -> Optional[Expr]:
    """Exact value of f at a special point, None when there is none.

    Raises DivisionByZero / DomainError at poles and outside the domain; the simplifier turns
    those into `undefined`.
    """
    info = REGISTRY.get(f.name)
    if info is None or info.special is None:
        return None
    if len(f.children) not in info.nargs:
        return None
    args = f.children
    if info.odd and len(args) == 1 and _leading_negative(args[0]):
        inner = Func(f.name, negate(args[0]))
        return negate(inner)
    if info.even and len(args) == 1 and _leading_negative(args[0]):
        return Func(f.name, negate(args[0]))
    return info.special(*args)


def function_names() -> Tuple[str, ...]:
    return tuple(REGISTRY)


def is_undefined_value(e: Expr) -> bool:
    return e == UNDEFINED
