"""Expression tree.

Every node keeps its payload in one immutable tuple (`_args`) and caches its hash, so nodes are
cheap to share and compare. Constructors enforce the structural invariants:

- `Add()` is 0 and `Mul()` is 1; a single child collapses to that child.
- `Pow(b, 0)` is 1, `Pow(b, 1)` is b, `Pow(0, n>0)` is 0 and `Pow(0, n<0)` raises DivisionByZero.
- numeric factors of a `Mul` are multiplied into one leading factor.

Anything beyond that (flattening, like terms, ordering) is the simplifier's job.
"""

from __future__ import annotations
from enum import Enum
from fractions import Fraction
from typing import Any, Callable, Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple, Union

from errors import DivisionByZero
from number import Number
from symbol import Commutativity, Symbol


class Expr:
    """Base class for all expression nodes."""

    __slots__ = ("_args", "_hash")
    _order = 99

    def _init(self, args: tuple) -> None:
        self._args = args
        self._hash = None

    @property
    def args(self) -> tuple:
        return self._args

    @property
    def children(self) -> Tuple["Expr", ...]:
        """Sub-expressions, in order."""
        return ()

    def with_children(self, children) -> "Expr":
        """Rebuild a node of the same kind from new children."""
        return self

    def is_atom(self) -> bool:
        return not self.children

    # -----------------
    # Structural equality
    # -----------------
    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if isinstance(other, (int, Fraction, float, Number)) and not isinstance(other, bool):
            other = Num(other)
        if not isinstance(other, Expr):
            return NotImplemented
        if type(self) is not type(other) or hash(self) != hash(other):
            return False
        return self._args == other._args

    def __ne__(self, other: object) -> bool:
        r = self.__eq__(other)
        return r if r is NotImplemented else not r

    def __hash__(self) -> int:
        h = self._hash
        if h is None:
            h = hash((type(self).__name__, self._args))
            self._hash = h
        return h

    def sort_key(self) -> tuple:
        """Total structural order used to canonicalise commutative sums and products."""
        return (self._order, tuple(c.sort_key() for c in self.children))

    # -----------------
    # Queries
    # -----------------
    def walk(self) -> Iterator["Expr"]:
        """Pre-order traversal."""
        stack = [self]
        while stack:
            e = stack.pop()
            yield e
            stack.extend(reversed(e.children))

    def postorder(self) -> Iterator["Expr"]:
        for c in self.children:
            yield from c.postorder()
        yield self

    def size(self) -> int:
        return sum(1 for _ in self.walk())

    def depth(self) -> int:
        if not self.children:
            return 1
        return 1 + max(c.depth() for c in self.children)

    def free_symbols(self) -> FrozenSet["Sym"]:
        out = set()
        for c in self.children:
            out |= c.free_symbols()
        return frozenset(out)

    def has(self, *targets: "Expr") -> bool:
        targets = tuple(cast(t) for t in targets)
        return any(node in targets for node in self.walk())

    def has_type(self, *kinds: type) -> bool:
        return any(isinstance(node, kinds) for node in self.walk())

    def contains(self, var: Union["Sym", str]) -> bool:
        return cast(var) in self.free_symbols()

    def is_constant_in(self, var: Union["Sym", str]) -> bool:
        return not self.contains(var)

    def is_commutative(self) -> bool:
        return all(s.symbol.is_commutative for s in self.free_symbols()) and not self.has_type(Matrix)

    def map(self, fn: Callable[["Expr"], "Expr"]) -> "Expr":
        """Apply `fn` to every child and rebuild."""
        if not self.children:
            return self
        return self.with_children([fn(c) for c in self.children])

    def substitute(self, mapping: Mapping[Any, Any]) -> "Expr":
        """Structural replacement of sub-expressions; the result is not simplified."""
        table = {cast(k): cast(v) for k, v in mapping.items()}
        return _substitute(self, table)

    subs = substitute

    # -----------------
    # Convenience hooks into the engines
    # -----------------
    def simplify(self) -> "Expr":
        from simplify import simplify
        return simplify(self)

    def expand(self) -> "Expr":
        from expand import expand
        return expand(self)

    def diff(self, var, order: int = 1) -> "Expr":
        from calculus import diff
        return diff(self, var, order)

    def integrate(self, var, lower=None, upper=None) -> "Expr":
        from integrate import integrate
        return integrate(self, var, lower, upper)

    def evalf(self, env: Optional[Mapping[Any, Any]] = None) -> float:
        from evaluate import evalf
        return evalf(self, env)

    def coeff(self, var, n: int = 1) -> "Expr":
        """Coefficient of var**n after expansion."""
        from expand import coefficient
        return coefficient(self, var, n)

    # -----------------
    # Operators (raw construction, simplify explicitly)
    # -----------------
    def __add__(self, other) -> "Expr":
        return Add(self, cast(other))

    def __radd__(self, other) -> "Expr":
        return Add(cast(other), self)

    def __sub__(self, other) -> "Expr":
        return Add(self, negate(cast(other)))

    def __rsub__(self, other) -> "Expr":
        return Add(cast(other), negate(self))

    def __mul__(self, other) -> "Expr":
        return Mul(self, cast(other))

    def __rmul__(self, other) -> "Expr":
        return Mul(cast(other), self)

    def __truediv__(self, other) -> "Expr":
        return Mul(self, Pow(cast(other), NEG_ONE))

    def __rtruediv__(self, other) -> "Expr":
        return Mul(cast(other), Pow(self, NEG_ONE))

    def __pow__(self, other) -> "Expr":
        return Pow(self, cast(other))

    def __rpow__(self, other) -> "Expr":
        return Pow(cast(other), self)

    def __neg__(self) -> "Expr":
        return negate(self)

    def __pos__(self) -> "Expr":
        return self

    def __str__(self) -> str:
        from printing import to_plain
        return to_plain(self)

    def __repr__(self) -> str:
        inner = ", ".join(repr(a) for a in self._args)
        return f"{type(self).__name__}({inner})"


# -----------------
# Atoms
# -----------------
class Num(Expr):
    __slots__ = ()
    _order = 0

    def __init__(self, value: Union[int, Fraction, float, Number], den: Optional[int] = None) -> None:
        self._init((Number(value, den) if den is not None else Number.coerce(value),))

    @property
    def value(self) -> Number:
        return self._args[0]

    def __hash__(self) -> int:
        h = self._hash
        if h is None:
            h = hash(self._args[0])
            self._hash = h
        return h

    def sort_key(self) -> tuple:
        v = self.value
        return (0, v.value, 0 if v.is_exact() else 1)

    def is_zero(self) -> bool:
        return self.value.is_zero()

    def is_one(self) -> bool:
        return self.value.is_one()

    def is_negative(self) -> bool:
        return self.value.is_negative()

    def __repr__(self) -> str:
        return f"Num({self.value.to_string()})"


class Sym(Expr):
    """Expression wrapper around an interned `Symbol`."""

    __slots__ = ()
    _order = 2

    def __init__(self, name: Union[str, Symbol], commutativity: Commutativity = Commutativity.COMMUTATIVE) -> None:
        sym = name if isinstance(name, Symbol) else Symbol(name, commutativity)
        self._init((sym,))

    @property
    def symbol(self) -> Symbol:
        return self._args[0]

    @property
    def name(self) -> str:
        return self._args[0].name

    def __hash__(self) -> int:
        h = self._hash
        if h is None:
            h = hash(("Sym",) + self._args[0].sort_key())
            self._hash = h
        return h

    def sort_key(self) -> tuple:
        return (2,) + self.symbol.sort_key()

    def free_symbols(self) -> FrozenSet["Sym"]:
        return frozenset((self,))

    def __repr__(self) -> str:
        return f"Sym({self.name!r})"


CONSTANT_NAMES = ("pi", "e", "i", "oo", "euler_gamma", "phi")


class Const(Expr):
    """Named mathematical constant: pi, e, i, oo, euler_gamma, phi."""

    __slots__ = ()
    _order = 1

    def __init__(self, name: str) -> None:
        if name not in CONSTANT_NAMES:
            raise ValueError(f"unknown constant {name!r}")
        self._init((name,))

    @property
    def name(self) -> str:
        return self._args[0]

    def sort_key(self) -> tuple:
        return (1, self.name)

    def __repr__(self) -> str:
        return f"Const({self.name!r})"


# -----------------
# Arithmetic nodes
# -----------------
class Add(Expr):
    __slots__ = ()
    _order = 5

    def __new__(cls, *terms):
        terms = tuple(cast(t) for t in terms)
        if not terms:
            return ZERO
        if len(terms) == 1:
            return terms[0]
        obj = object.__new__(cls)
        obj._init(terms)
        return obj

    def __init__(self, *terms) -> None:
        pass

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self._args

    def with_children(self, children) -> Expr:
        return Add(*children)

    def sort_key(self) -> tuple:
        return (5, tuple(c.sort_key() for c in self._args))


class Mul(Expr):
    __slots__ = ()
    _order = 4

    def __new__(cls, *factors):
        factors = [cast(f) for f in factors]
        coeff = None
        rest = []
        for f in factors:
            if isinstance(f, Num):
                coeff = f.value if coeff is None else coeff.mul(f.value)
            else:
                rest.append(f)
        if coeff is not None and (not coeff.is_one() or not rest):
            rest.insert(0, Num(coeff))
        if not rest:
            return ONE
        if len(rest) == 1:
            return rest[0]
        obj = object.__new__(cls)
        obj._init(tuple(rest))
        return obj

    def __init__(self, *factors) -> None:
        pass

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self._args

    def with_children(self, children) -> Expr:
        return Mul(*children)

    def sort_key(self) -> tuple:
        return (4, tuple(c.sort_key() for c in self._args))

    def as_coeff_rest(self) -> Tuple[Number, Expr]:
        first = self._args[0]
        if isinstance(first, Num):
            rest = self._args[1:]
            return first.value, (rest[0] if len(rest) == 1 else _raw_mul(rest))
        return Number(1), self


class Pow(Expr):
    __slots__ = ()
    _order = 3

    def __new__(cls, base, exp):
        base, exp = cast(base), cast(exp)
        if isinstance(exp, Num):
            if exp.is_zero():
                return ONE
            if exp.is_one():
                return base
            if isinstance(base, Num) and base.is_zero():
                if exp.is_negative():
                    raise DivisionByZero("0 raised to a negative power")
                return ZERO
        obj = object.__new__(cls)
        obj._init((base, exp))
        return obj

    def __init__(self, base, exp) -> None:
        pass

    @property
    def base(self) -> Expr:
        return self._args[0]

    @property
    def exp(self) -> Expr:
        return self._args[1]

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self._args

    def with_children(self, children) -> Expr:
        return Pow(*children)

    def sort_key(self) -> tuple:
        return (3, self.base.sort_key(), self.exp.sort_key())


class Func(Expr):
    """Symbolic function application `name(args...)`."""

    __slots__ = ()
    _order = 6

    def __init__(self, name: str, *args) -> None:
        self._init((name,) + tuple(cast(a) for a in args))

    @property
    def name(self) -> str:
        return self._args[0]

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self._args[1:]

    def with_children(self, children) -> Expr:
        return Func(self.name, *children)

    def sort_key(self) -> tuple:
        return (6, self.name, tuple(c.sort_key() for c in self.children))

    def __repr__(self) -> str:
        inner = ", ".join(repr(a) for a in self.children)
        return f"Func({self.name!r}{', ' if inner else ''}{inner})"


class Complex(Expr):
    """real + imag*i; the simplifier rewrites it as a sum with the constant i."""

    __slots__ = ()
    _order = 7

    def __init__(self, real, imag) -> None:
        self._init((cast(real), cast(imag)))

    @property
    def real(self) -> Expr:
        return self._args[0]

    @property
    def imag(self) -> Expr:
        return self._args[1]

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self._args

    def with_children(self, children) -> Expr:
        return Complex(*children)


class Matrix(Expr):
    __slots__ = ()
    _order = 9

    def __init__(self, rows) -> None:
        rows = tuple(tuple(cast(x) for x in row) for row in rows)
        if rows and any(len(r) != len(rows[0]) for r in rows):
            raise ValueError("matrix rows must have equal length")
        self._init(rows)

    @property
    def rows(self) -> Tuple[Tuple[Expr, ...], ...]:
        return self._args

    @property
    def shape(self) -> Tuple[int, int]:
        return (len(self._args), len(self._args[0]) if self._args else 0)

    def entry(self, i: int, j: int) -> Expr:
        return self._args[i][j]

    @property
    def children(self) -> Tuple[Expr, ...]:
        return tuple(x for row in self._args for x in row)

    def with_children(self, children) -> Expr:
        n, m = self.shape
        children = list(children)
        return Matrix([children[i * m:(i + 1) * m] for i in range(n)])

    def sort_key(self) -> tuple:
        return (9, self.shape, tuple(c.sort_key() for c in self.children))

    def is_commutative(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"Matrix({[list(r) for r in self._args]!r})"


class RelKind(Enum):
    EQ = "="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    APPROX = "~"
    EQUIV = "==="


class Relation(Expr):
    __slots__ = ()
    _order = 8

    def __init__(self, left, right, kind: RelKind = RelKind.EQ) -> None:
        self._init((cast(left), cast(right), kind))

    @property
    def left(self) -> Expr:
        return self._args[0]

    @property
    def right(self) -> Expr:
        return self._args[1]

    @property
    def kind(self) -> RelKind:
        return self._args[2]

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self._args[:2]

    def with_children(self, children) -> Expr:
        left, right = children
        return Relation(left, right, self.kind)

    def sort_key(self) -> tuple:
        return (8, self.kind.value, self.left.sort_key(), self.right.sort_key())

    def lhs_minus_rhs(self) -> Expr:
        return Add(self.left, negate(self.right))


def Eq(left, right) -> Relation:
    return Relation(left, right, RelKind.EQ)


class Interval(Expr):
    """Real interval between two expressions, each end open or closed."""

    __slots__ = ()
    _order = 10

    def __init__(self, lo, hi, left_open: bool = False, right_open: bool = False) -> None:
        self._init((cast(lo), cast(hi), bool(left_open), bool(right_open)))

    @staticmethod
    def closed(lo, hi) -> "Interval":
        return Interval(lo, hi, False, False)

    @staticmethod
    def open(lo, hi) -> "Interval":
        return Interval(lo, hi, True, True)

    @staticmethod
    def Lopen(lo, hi) -> "Interval":
        return Interval(lo, hi, True, False)

    @staticmethod
    def Ropen(lo, hi) -> "Interval":
        return Interval(lo, hi, False, True)

    @staticmethod
    def reals() -> "Interval":
        return Interval(NEG_OO, OO, True, True)

    @property
    def lo(self) -> Expr:
        return self._args[0]

    @property
    def hi(self) -> Expr:
        return self._args[1]

    @property
    def left_open(self) -> bool:
        return self._args[2]

    @property
    def right_open(self) -> bool:
        return self._args[3]

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self._args[:2]

    def with_children(self, children) -> Expr:
        lo, hi = children
        return Interval(lo, hi, self.left_open, self.right_open)

    def sort_key(self) -> tuple:
        return (10, self.lo.sort_key(), self.hi.sort_key(), self.left_open, self.right_open)

    def _bounds(self) -> Optional[Tuple[float, float]]:
        from evaluate import evalf
        try:
            return evalf(self.lo), evalf(self.hi)
        except (ValueError, TypeError, ArithmeticError):
            return None

    def is_empty(self) -> Optional[bool]:
        """True/False when the ends are numeric, None otherwise."""
        b = self._bounds()
        if b is None:
            return None
        lo, hi = b
        if lo > hi:
            return True
        if lo == hi:
            return self.left_open or self.right_open
        return False

    def contains_value(self, x: float) -> Optional[bool]:
        b = self._bounds()
        if b is None:
            return None
        lo, hi = b
        above = x > lo if self.left_open else x >= lo
        below = x < hi if self.right_open else x <= hi
        return above and below


class Set(Expr):
    """Finite set; elements are kept unique and in canonical order."""

    __slots__ = ()
    _order = 11

    def __init__(self, *elements) -> None:
        uniq = {}
        for e in elements:
            e = cast(e)
            uniq.setdefault(e, e)
        self._init(tuple(sorted(uniq.values(), key=lambda e: e.sort_key())))

    @property
    def elements(self) -> Tuple[Expr, ...]:
        return self._args

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self._args

    def with_children(self, children) -> Expr:
        return Set(*children)

    def __len__(self) -> int:
        return len(self._args)

    def __contains__(self, item) -> bool:
        return cast(item) in self._args


class Piecewise(Expr):
    """Piecewise((expr, cond), ..., otherwise=...); the first true condition wins."""

    __slots__ = ()
    _order = 12

    def __init__(self, *pieces, otherwise=None) -> None:
        pairs = tuple((cast(e), cast(c)) for e, c in pieces)
        self._init((pairs, cast(otherwise) if otherwise is not None else None))

    @property
    def pieces(self) -> Tuple[Tuple[Expr, Expr], ...]:
        return self._args[0]

    @property
    def otherwise(self) -> Optional[Expr]:
        return self._args[1]

    @property
    def children(self) -> Tuple[Expr, ...]:
        out = [x for pair in self.pieces for x in pair]
        if self.otherwise is not None:
            out.append(self.otherwise)
        return tuple(out)

    def with_children(self, children) -> Expr:
        children = list(children)
        n = len(self.pieces)
        pairs = [(children[2 * k], children[2 * k + 1]) for k in range(n)]
        other = children[2 * n] if self.otherwise is not None else None
        return Piecewise(*pairs, otherwise=other)


# -----------------
# Calculus nodes (unevaluated)
# -----------------
class Derivative(Expr):
    __slots__ = ()
    _order = 13

    def __init__(self, expr, var, order: int = 1) -> None:
        self._init((cast(expr), cast(var), int(order)))

    @property
    def expr(self) -> Expr:
        return self._args[0]

    @property
    def var(self) -> "Sym":
        return self._args[1]

    @property
    def order(self) -> int:
        return self._args[2]

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self._args[:2]

    def with_children(self, children) -> Expr:
        expr, var = children
        return Derivative(expr, var, self.order)

    def sort_key(self) -> tuple:
        return (13, self.expr.sort_key(), self.var.sort_key(), self.order)


class _Bounded(Expr):
    """Shared shape of Integral, Sum and Product: (expr, var, lower, upper)."""

    __slots__ = ()

    def __init__(self, expr, var, lower=None, upper=None) -> None:
        if (lower is None) != (upper is None):
            raise ValueError("both bounds or neither must be given")
        lower = cast(lower) if lower is not None else None
        upper = cast(upper) if upper is not None else None
        self._init((cast(expr), cast(var), lower, upper))

    @property
    def expr(self) -> Expr:
        return self._args[0]

    @property
    def var(self) -> "Sym":
        return self._args[1]

    @property
    def lower(self) -> Optional[Expr]:
        return self._args[2]

    @property
    def upper(self) -> Optional[Expr]:
        return self._args[3]

    def is_definite(self) -> bool:
        return self.lower is not None

    @property
    def children(self) -> Tuple[Expr, ...]:
        return tuple(a for a in self._args if a is not None)

    def with_children(self, children) -> Expr:
        if self.is_definite():
            expr, var, lo, hi = children
            return type(self)(expr, var, lo, hi)
        expr, var = children
        return type(self)(expr, var)

    def free_symbols(self) -> FrozenSet["Sym"]:
        inner = self.expr.free_symbols()
        if self.is_definite():
            inner = (inner - {self.var}) | self.lower.free_symbols() | self.upper.free_symbols()
        return inner


class Integral(_Bounded):
    __slots__ = ()
    _order = 14


class Sum(_Bounded):
    __slots__ = ()
    _order = 15


class Product(_Bounded):
    __slots__ = ()
    _order = 16


class Limit(Expr):
    __slots__ = ()
    _order = 17

    def __init__(self, expr, var, point, direction: str = "+-") -> None:
        if direction not in ("+", "-", "+-"):
            raise ValueError("direction must be '+', '-' or '+-'")
        self._init((cast(expr), cast(var), cast(point), direction))

    @property
    def expr(self) -> Expr:
        return self._args[0]

    @property
    def var(self) -> "Sym":
        return self._args[1]

    @property
    def point(self) -> Expr:
        return self._args[2]

    @property
    def direction(self) -> str:
        return self._args[3]

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self._args[:3]

    def with_children(self, children) -> Expr:
        expr, var, point = children
        return Limit(expr, var, point, self.direction)

    def free_symbols(self) -> FrozenSet["Sym"]:
        return (self.expr.free_symbols() - {self.var}) | self.point.free_symbols()


class MethodCall(Expr):
    """Reserved: `target.method(args...)`, kept inert by every engine."""

    __slots__ = ()
    _order = 18

    def __init__(self, target, method: str, *args) -> None:
        self._init((cast(target), method) + tuple(cast(a) for a in args))

    @property
    def target(self) -> Expr:
        return self._args[0]

    @property
    def method(self) -> str:
        return self._args[1]

    @property
    def arguments(self) -> Tuple[Expr, ...]:
        return self._args[2:]

    @property
    def children(self) -> Tuple[Expr, ...]:
        return (self._args[0],) + self._args[2:]

    def with_children(self, children) -> Expr:
        children = list(children)
        return MethodCall(children[0], self._args[1], *children[1:])


# -----------------
# Helpers
# -----------------
def _raw_mul(factors) -> Expr:
    obj = object.__new__(Mul)
    obj._init(tuple(factors))
    return obj


def _raw_add(terms) -> Expr:
    obj = object.__new__(Add)
    obj._init(tuple(terms))
    return obj


def make_add(terms) -> Expr:
    """Build an Add from already-canonical terms without re-running the constructor checks."""
    terms = list(terms)
    if not terms:
        return ZERO
    if len(terms) == 1:
        return terms[0]
    return _raw_add(terms)


def make_mul(factors) -> Expr:
    factors = list(factors)
    if not factors:
        return ONE
    if len(factors) == 1:
        return factors[0]
    return _raw_mul(factors)


def negate(e: Expr) -> Expr:
    if isinstance(e, Num):
        return Num(e.value.neg())
    return Mul(NEG_ONE, e)


def cast(x: Any) -> Expr:
    """Coerce Python numbers, numeric strings and names to expressions."""
    if isinstance(x, Expr):
        return x
    if isinstance(x, bool):
        return Num(int(x))
    if isinstance(x, (int, Fraction, float, Number)):
        return Num(x)
    if isinstance(x, Symbol):
        return Sym(x)
    if isinstance(x, str):
        return Sym(x)
    raise TypeError(f"cannot convert {type(x).__name__} to an expression")


def symbols(names: str) -> Tuple[Sym, ...]:
    """symbols("x y z") -> (Sym('x'), Sym('y'), Sym('z'))"""
    parts = names.replace(",", " ").split()
    return tuple(Sym(p) for p in parts)


def _substitute(e: Expr, table: Dict[Expr, Expr]) -> Expr:
    hit = table.get(e)
    if hit is not None:
        return hit
    if not e.children:
        return e
    if isinstance(e, _Bounded) and e.is_definite() and e.var in table:
        # the summation/integration variable is bound
        inner = {k: v for k, v in table.items() if k != e.var}
        return e.with_children([e.expr, e.var, _substitute(e.lower, inner), _substitute(e.upper, inner)])
    return e.with_children([_substitute(c, table) for c in e.children])


def sort_terms(items: List[Expr]) -> List[Expr]:
    return sorted(items, key=lambda e: e.sort_key())


def is_integer(e: Expr) -> bool:
    return isinstance(e, Num) and e.value.is_int()


def is_rational(e: Expr) -> bool:
    return isinstance(e, Num) and e.value.is_rational()


def is_undefined(e: Expr) -> bool:
    return isinstance(e, Func) and e.name == "undefined" and not e.children


ZERO = Num(0)
ONE = Num(1)
TWO = Num(2)
NEG_ONE = Num(-1)
HALF = Num(Fraction(1, 2))
PI = Const("pi")
E = Const("e")
I = Const("i")
OO = Const("oo")
NEG_OO = _raw_mul((NEG_ONE, OO))
EULER_GAMMA = Const("euler_gamma")
PHI = Const("phi")
UNDEFINED = Func("undefined")
