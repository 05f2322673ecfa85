"""Pattern matching and rewriting over expressions.

Patterns mirror the expression constructors:

    Wildcard("a")            - match any expression
    Wildcard("c", num_only)  - match when the predicate holds
    Rest("r")                - inside PAdd/PMul: bind the unmatched children
    Exact(expr)              - match a structurally equal expression
    PAdd / PMul / PPow / PFunc - structural constructors

A plain `Expr` inside a pattern behaves like `Exact`. Replacement skeletons use the same
classes; `Computed(fn)` calls `fn(bindings)` to build a value.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union
import logging

from config import DEFAULT_CONFIG, CASConfig
from errors import PatternError
from expression import Add, Expr, Func, Mul, Num, Pow, cast, make_add, make_mul

logger = logging.getLogger(__name__)


# ============================================================
# Bindings
# ============================================================

class Bindings:
    """
    Dict-like, immutable result of a successful match.

        if b := match(PPow(Wildcard("x"), 2), expr):
            b["x"]
    """

    __slots__ = ("_dict",)

    def __init__(self, pairs: Optional[Dict[str, Any]] = None):
        self._dict = dict(pairs or {})

    def __bool__(self) -> bool:
        return True

    def __getitem__(self, key: str):
        return self._dict[key]

    def get(self, key: str, default=None):
        return self._dict.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._dict

    def keys(self):
        return self._dict.keys()

    def items(self):
        return self._dict.items()

    def __iter__(self):
        return iter(self._dict)

    def __len__(self) -> int:
        return len(self._dict)

    def __repr__(self) -> str:
        return f"Bindings({self._dict!r})"

    def __eq__(self, other):
        if isinstance(other, Bindings):
            return self._dict == other._dict
        if isinstance(other, dict):
            return self._dict == other
        return NotImplemented

    def extend(self, name: str, value: Any) -> Union["Bindings", "_NoMatch"]:
        """New bindings with name -> value; NoMatch on a conflicting earlier binding."""
        if name in self._dict:
            return self if self._dict[name] == value else NoMatch
        d = dict(self._dict)
        d[name] = value
        return Bindings(d)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._dict)


class _NoMatch:
    """Falsy singleton for a failed match."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NoMatch"

    def __len__(self) -> int:
        return 0


NoMatch = _NoMatch()
MatchResult = Union[Bindings, _NoMatch]


# ============================================================
# Pattern nodes
# ============================================================

class Pattern:
    """Base class of pattern nodes."""

    def children(self) -> Sequence[Any]:
        return ()


@dataclass(frozen=True)
class Wildcard(Pattern):
    name: str
    predicate: Optional[Callable[[Expr], bool]] = None

    def __repr__(self) -> str:
        return f"?{self.name}"


@dataclass(frozen=True)
class Rest(Pattern):
    name: str

    def __repr__(self) -> str:
        return f"?...{self.name}"


@dataclass(frozen=True)
class Exact(Pattern):
    expr: Expr


@dataclass(frozen=True)
class Computed(Pattern):
    fn: Callable[[Bindings], Any]


class _Structural(Pattern):
    head: type = Expr

    def __init__(self, *items: Any) -> None:
        self.items = tuple(items)
        rests = [p for p in self.items if isinstance(p, Rest)]
        if len(rests) > 1:
            raise PatternError("at most one Rest per pattern")

    def children(self) -> Sequence[Any]:
        return self.items

    def __repr__(self) -> str:
        inner = ", ".join(repr(p) for p in self.items)
        return f"{type(self).__name__}({inner})"


class PAdd(_Structural):
    head = Add


class PMul(_Structural):
    head = Mul


class PPow(Pattern):
    def __init__(self, base: Any, exp: Any) -> None:
        self.base = base
        self.exp = exp

    def children(self) -> Sequence[Any]:
        return (self.base, self.exp)

    def __repr__(self) -> str:
        return f"PPow({self.base!r}, {self.exp!r})"


class PFunc(Pattern):
    def __init__(self, name: str, *args: Any) -> None:
        self.name = name
        self.args = tuple(args)

    def children(self) -> Sequence[Any]:
        return self.args

    def __repr__(self) -> str:
        inner = ", ".join(repr(p) for p in self.args)
        return f"PFunc({self.name!r}, {inner})"


# Wildcard helpers, the usual predicates

def wild(name: str) -> Wildcard:
    return Wildcard(name)


def wild_number(name: str) -> Wildcard:
    return Wildcard(name, lambda e: isinstance(e, Num))


def wild_integer(name: str) -> Wildcard:
    return Wildcard(name, lambda e: isinstance(e, Num) and e.value.is_int())


def wild_free(name: str, var: Any) -> Wildcard:
    """Match any expression that does not contain var."""
    v = cast(var)
    return Wildcard(name, lambda e: not e.contains(v))


# ============================================================
# Matching
# ============================================================

def match(pat: Any, exp: Expr, bindings: Optional[Bindings] = None) -> MatchResult:
    """
    Match a pattern against an expression.

    Returns Bindings on success (possibly empty) and NoMatch on failure. A wildcard that is
    already bound only matches an expression structurally equal to its binding.
    """
    b = bindings if bindings is not None else Bindings()
    for result in _match(pat, exp, b):
        return result
    return NoMatch


def match_all(pat: Any, exp: Expr, bindings: Optional[Bindings] = None) -> Iterator[Bindings]:
    """Every way the pattern matches (commutative patterns may match several ways)."""
    yield from _match(pat, exp, bindings if bindings is not None else Bindings())


def _match(pat: Any, exp: Expr, b: Bindings) -> Iterator[Bindings]:
    if isinstance(pat, Wildcard):
        if pat.predicate is not None and not pat.predicate(exp):
            return
        r = b.extend(pat.name, exp)
        if r:
            yield r
        return
    if isinstance(pat, Exact):
        if pat.expr == exp:
            yield b
        return
    if isinstance(pat, (Expr, int)):
        if cast(pat) == exp:
            yield b
        return
    if isinstance(pat, PPow):
        if not isinstance(exp, Pow):
            return
        for b1 in _match(pat.base, exp.base, b):
            yield from _match(pat.exp, exp.exp, b1)
        return
    if isinstance(pat, PFunc):
        if not isinstance(exp, Func) or exp.name != pat.name or len(exp.children) != len(pat.args):
            return
        yield from _match_sequence(list(pat.args), list(exp.children), b)
        return
    if isinstance(pat, _Structural):
        if not isinstance(exp, pat.head):
            return
        fixed = [p for p in pat.items if not isinstance(p, Rest)]
        rest = next((p for p in pat.items if isinstance(p, Rest)), None)
        children = list(exp.children)
        if exp.is_commutative():
            yield from _match_multiset(fixed, children, rest, b)
        else:
            yield from _match_prefix(fixed, children, rest, b)
        return
    if isinstance(pat, Rest):
        raise PatternError("Rest is only allowed inside PAdd/PMul")
    raise PatternError(f"not a pattern: {pat!r}")


def _match_sequence(pats: List[Any], exps: List[Expr], b: Bindings) -> Iterator[Bindings]:
    if not pats:
        yield b
        return
    for b1 in _match(pats[0], exps[0], b):
        yield from _match_sequence(pats[1:], exps[1:], b1)


def _match_multiset(pats: List[Any], exps: List[Expr], rest: Optional[Rest], b: Bindings) -> Iterator[Bindings]:
    if not pats:
        if rest is None:
            if not exps:
                yield b
            return
        r = b.extend(rest.name, tuple(exps))
        if r:
            yield r
        return
    if len(exps) < len(pats):
        return
    head, tail = pats[0], pats[1:]
    for i, e in enumerate(exps):
        for b1 in _match(head, e, b):
            yield from _match_multiset(tail, exps[:i] + exps[i + 1:], rest, b1)


def _match_prefix(pats: List[Any], exps: List[Expr], rest: Optional[Rest], b: Bindings) -> Iterator[Bindings]:
    n = len(pats)
    if len(exps) < n or (rest is None and len(exps) != n):
        return
    for b1 in _match_sequence(pats, exps[:n], b):
        if rest is None:
            yield b1
        else:
            r = b1.extend(rest.name, tuple(exps[n:]))
            if r:
                yield r


# ============================================================
# Instantiation
# ============================================================

def instantiate(skeleton: Any, bindings: Bindings) -> Expr:
    """
    Build the replacement for a skeleton.

    A wildcard without a binding means the rule is malformed and raises PatternError.
    """
    if isinstance(skeleton, Wildcard):
        if skeleton.name not in bindings:
            raise PatternError(f"unbound wildcard ?{skeleton.name} in replacement")
        return bindings[skeleton.name]
    if isinstance(skeleton, Exact):
        return skeleton.expr
    if isinstance(skeleton, Computed):
        return cast(skeleton.fn(bindings))
    if isinstance(skeleton, (Expr, int)):
        return cast(skeleton)
    if isinstance(skeleton, PPow):
        return Pow(instantiate(skeleton.base, bindings), instantiate(skeleton.exp, bindings))
    if isinstance(skeleton, PFunc):
        return Func(skeleton.name, *(instantiate(a, bindings) for a in skeleton.args))
    if isinstance(skeleton, _Structural):
        items: List[Expr] = []
        for p in skeleton.items:
            if isinstance(p, Rest):
                if p.name not in bindings:
                    raise PatternError(f"unbound rest ?...{p.name} in replacement")
                items.extend(bindings[p.name])
            else:
                items.append(instantiate(p, bindings))
        return make_add(items) if skeleton.head is Add else make_mul(items)
    if isinstance(skeleton, Rest):
        if skeleton.name not in bindings:
            raise PatternError(f"unbound rest ?...{skeleton.name} in replacement")
        return make_add(bindings[skeleton.name])
    raise PatternError(f"not a skeleton: {skeleton!r}")


# ============================================================
# Rules and traversal
# ============================================================

@dataclass(frozen=True)
class Rule:
    name: str
    pattern: Any
    replacement: Any
    guard: Optional[Callable[[Bindings], bool]] = None

    def apply(self, exp: Expr) -> Optional[Expr]:
        """Rewrite exp at its root, or None when the rule does not apply."""
        for b in match_all(self.pattern, exp):
            if self.guard is None or self.guard(b):
                return instantiate(self.replacement, b)
        return None


def _apply_first(rules: Iterable[Rule], exp: Expr) -> Optional[Tuple[Rule, Expr]]:
    for rule in rules:
        out = rule.apply(exp)
        if out is not None:
            return rule, out
    return None


def replace(exp: Expr, pattern: Any, replacement: Any) -> Expr:
    """Single outermost-first rewrite; returns exp unchanged when nothing matches."""
    out = replace_first(exp, [Rule("replace", pattern, replacement)])
    return exp if out is None else out


def replace_first(exp: Expr, rules: Sequence[Rule]) -> Optional[Expr]:
    """Rewrite the outermost, leftmost matching position once; None if no rule matches."""
    hit = _apply_first(rules, exp)
    if hit is not None:
        logger.debug("rule %s fired", hit[0].name)
        return hit[1]
    children = exp.children
    for i, c in enumerate(children):
        new = replace_first(c, rules)
        if new is not None:
            items = list(children)
            items[i] = new
            return exp.with_children(items)
    return None


def rewrite(
    exp: Expr,
    rules: Sequence[Rule],
    post: Optional[Callable[[Expr], Expr]] = None,
    config: CASConfig = DEFAULT_CONFIG,
) -> Expr:
    """Rewrite outermost-first until no rule applies or the iteration cap is reached."""
    cur = exp
    for _ in range(config.rewrite_max_iterations):
        new = replace_first(cur, rules)
        if new is None:
            return cur
        if post is not None:
            new = post(new)
        if new == cur:
            return cur
        cur = new
    logger.debug("rewrite stopped at the iteration cap (%d)", config.rewrite_max_iterations)
    return cur


def bottom_up(exp: Expr, rules: Sequence[Rule], post: Optional[Callable[[Expr], Expr]] = None) -> Expr:
    """One innermost-first sweep: rewrite children, then try the rules at the node."""
    node = exp.map(lambda c: bottom_up(c, rules, post))
    hit = _apply_first(rules, node)
    if hit is None:
        return node
    out = hit[1]
    return post(out) if post is not None else out
