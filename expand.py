from __future__ import annotations
from itertools import product
from typing import Dict, List, Optional, Tuple

from errors import NotPolynomial
from expression import ONE, ZERO, Add, Expr, Mul, Num, Pow, Sym, cast, make_add, make_mul
from simplify import simplify


def _terms(e: Expr) -> List[Expr]:
    return list(e.children) if isinstance(e, Add) else [e]


def _distribute(factors: List[Expr]) -> Expr:
    """Multiply out a product of (already expanded) factors."""
    term_lists = [_terms(f) for f in factors]
    if all(len(t) == 1 for t in term_lists):
        return simplify(make_mul(factors))
    out = [make_mul(list(combo)) for combo in product(*term_lists)]
    return simplify(make_add(out))


def _expand_power(base: Expr, n: int) -> Expr:
    """base**n for n >= 2 by repeated squaring of expanded sums."""
    result: Optional[Expr] = None
    square = base
    while n:
        if n & 1:
            result = square if result is None else _distribute([result, square])
        n >>= 1
        if n:
            square = _distribute([square, square])
    return result


def expand(expr) -> Expr:
    """Distribute products over sums and expand integer powers of sums."""
    e = simplify(cast(expr))
    return simplify(_expand(e))


def _expand(e: Expr) -> Expr:
    if not e.children:
        return e
    kids = [_expand(c) for c in e.children]
    if isinstance(e, Mul):
        return _distribute(kids)
    if isinstance(e, Pow):
        base, exp = kids
        if isinstance(exp, Num) and exp.value.is_int():
            n = exp.value.to_int()
            if isinstance(base, Add) and n >= 2:
                return _expand_power(base, n)
            if isinstance(base, Add) and n <= -2:
                return simplify(Pow(_expand_power(base, -n), Num(-1)))
            if isinstance(base, Mul):
                return simplify(make_mul([Pow(f, exp) for f in base.children]))
        return simplify(Pow(base, exp))
    if isinstance(e, Add):
        return simplify(make_add(kids))
    return simplify(e.with_children(kids))


def power_of(term: Expr, var: Sym) -> Optional[Tuple[int, Expr]]:
    """(k, c) with term == c * var**k and c free of var; None if var appears otherwise."""
    factors = list(term.children) if isinstance(term, Mul) else [term]
    k = 0
    rest: List[Expr] = []
    for f in factors:
        if f == var:
            k += 1
        elif isinstance(f, Pow) and f.base == var and isinstance(f.exp, Num) and f.exp.value.is_int() and f.exp.value.to_int() > 0:
            k += f.exp.value.to_int()
        elif f.contains(var):
            return None
        else:
            rest.append(f)
    return k, make_mul(rest) if rest else ONE


def coefficients(expr, var) -> Dict[int, Expr]:
    """Map degree -> coefficient of expr as a polynomial in var.

    Raises NotPolynomial if var occurs in a non-polynomial position.
    """
    v = cast(var)
    e = expand(expr)
    acc: Dict[int, List[Expr]] = {}
    for t in _terms(e):
        hit = power_of(t, v)
        if hit is None:
            raise NotPolynomial(expr, (v,))
        k, c = hit
        acc.setdefault(k, []).append(c)
    out = {}
    for k, cs in acc.items():
        c = simplify(make_add(cs))
        if c != ZERO:
            out[k] = c
    return out


def coefficient(expr, var, n: int = 1) -> Expr:
    """Coefficient of var**n; terms that are not polynomial in var are ignored."""
    v = cast(var)
    acc: List[Expr] = []
    for t in _terms(expand(expr)):
        hit = power_of(t, v)
        if hit is not None and hit[0] == n:
            acc.append(hit[1])
    return simplify(make_add(acc))


def collect(expr, var) -> Expr:
    """Group the expanded expression by powers of var: sum(c_k * var**k) + rest."""
    v = cast(var)
    groups: Dict[int, List[Expr]] = {}
    other: List[Expr] = []
    for t in _terms(expand(expr)):
        hit = power_of(t, v)
        if hit is None:
            other.append(t)
        else:
            groups.setdefault(hit[0], []).append(hit[1])
    out: List[Expr] = []
    for k in sorted(groups, reverse=True):
        c = simplify(make_add(groups[k]))
        if c == ZERO:
            continue
        p = ONE if k == 0 else (v if k == 1 else Pow(v, Num(k)))
        # keep the grouped coefficient as a single factor
        out.append(make_mul([c, p]) if p != ONE and c != ONE else (p if c == ONE else c))
    return make_add(out + other)


def degree(expr, var) -> int:
    """Degree in var; -1 for the zero polynomial."""
    cs = coefficients(expr, var)
    return max(cs) if cs else -1
