"""Canonical simplification.

`simplify` rewrites bottom-up, canonicalising each node kind, and repeats until the result stops
changing. It never raises in its default flavour: arithmetic failures inside a sub-expression turn
that sub-expression into `undefined`.
"""

from __future__ import annotations
from fractions import Fraction
from typing import Dict, List, Optional, Tuple
import logging

from config import DEFAULT_CONFIG, CASConfig
from errors import DivisionByZero, DomainError, NumericOverflow
from expression import (
    E, I, NEG_ONE, ONE, OO, UNDEFINED, ZERO,
    Add, Complex, Const, Derivative, Expr, Func, Integral, Interval, Limit, Matrix, MethodCall,
    Mul, Num, Piecewise, Pow, Product, Relation, RelKind, Set, Sum, Sym,
    cast, is_undefined, make_add, make_mul,
)
from functions import REGISTRY, apply_special
from number import Number
from pattern import PAdd, PFunc, PMul, PPow, Rest, Rule, Wildcard, rewrite

logger = logging.getLogger(__name__)

_ROOT_TRIAL_LIMIT = 10_000


def simplify(expr, strict: bool = False, config: CASConfig = DEFAULT_CONFIG) -> Expr:
    """Canonical form of expr.

    With strict=True arithmetic errors (division by zero, domain violations, overflow) raise
    instead of becoming `undefined`.
    """
    cur = cast(expr)
    s = _Simplifier(strict, config)
    for _ in range(config.simplify_max_passes):
        new = s.run(cur)
        if new == cur:
            return new
        cur = new
    logger.debug("simplify reached the pass cap (%d)", config.simplify_max_passes)
    return cur


def simplify_checked(expr, config: CASConfig = DEFAULT_CONFIG) -> Expr:
    return simplify(expr, strict=True, config=config)


# -----------------
# Term / factor decomposition
# -----------------
def as_coeff_term(e: Expr) -> Tuple[Number, Expr]:
    """Split a canonical term into (numeric coefficient, rest)."""
    if isinstance(e, Num):
        return e.value, ONE
    if isinstance(e, Mul):
        first = e.children[0]
        if isinstance(first, Num):
            rest = e.children[1:]
            return first.value, rest[0] if len(rest) == 1 else make_mul(rest)
    return Number(1), e


def as_base_exp(e: Expr) -> Tuple[Expr, Expr]:
    if isinstance(e, Pow):
        return e.base, e.exp
    return e, ONE


def term_from(coeff: Number, rest: Expr) -> Expr:
    if rest == ONE:
        return Num(coeff)
    if coeff.is_one():
        return rest
    if isinstance(rest, Mul):
        return make_mul([Num(coeff)] + list(rest.children))
    return make_mul([Num(coeff), rest])


def _factor_key(e: Expr) -> tuple:
    b, x = as_base_exp(e)
    return (b.sort_key(), x.sort_key())


def _term_key(e: Expr) -> tuple:
    c, rest = as_coeff_term(e)
    return (rest.sort_key(), Num(c).sort_key())


def relation_truth(rel: Relation) -> Optional[bool]:
    """Truth value of a relation between two exact numbers, None otherwise."""
    l, r = rel.left, rel.right
    if not (isinstance(l, Num) and isinstance(r, Num)):
        return None
    c = l.value.compare(r.value)
    return {
        RelKind.EQ: c == 0,
        RelKind.EQUIV: c == 0,
        RelKind.APPROX: abs(l.value.to_float() - r.value.to_float()) <= 1e-9 * max(1.0, abs(r.value.to_float())),
        RelKind.NE: c != 0,
        RelKind.LT: c < 0,
        RelKind.LE: c <= 0,
        RelKind.GT: c > 0,
        RelKind.GE: c >= 0,
    }[rel.kind]


def _extract_root(n: int, q: int) -> Tuple[int, int]:
    """n = out**q * inside with `inside` free of q-th powers of small primes (n > 0)."""
    out, inside = 1, n
    p = 2
    while p <= _ROOT_TRIAL_LIMIT and p ** q <= inside:
        pq = p ** q
        while inside % pq == 0:
            inside //= pq
            out *= p
        p += 1 if p == 2 else 2
    return out, inside


_U = Wildcard("u")
_C = Wildcard("c")

TRIG_RULES = (
    Rule(
        "sin^2+cos^2",
        PAdd(PPow(PFunc("sin", _U), 2), PPow(PFunc("cos", _U), 2), Rest("r")),
        PAdd(ONE, Rest("r")),
    ),
    Rule(
        "c*sin^2+c*cos^2",
        PAdd(PMul(_C, PPow(PFunc("sin", _U), 2)), PMul(_C, PPow(PFunc("cos", _U), 2)), Rest("r")),
        PAdd(_C, Rest("r")),
    ),
    Rule(
        "cosh^2-sinh^2",
        PAdd(PPow(PFunc("cosh", _U), 2), PMul(NEG_ONE, PPow(PFunc("sinh", _U), 2)), Rest("r")),
        PAdd(ONE, Rest("r")),
    ),
)


class _Simplifier:
    def __init__(self, strict: bool, config: CASConfig) -> None:
        self.strict = strict
        self.config = config
        self.memo: Dict[Expr, Expr] = {}

    def run(self, e: Expr) -> Expr:
        out = self.simp(e)
        if isinstance(out, Add) and out.has_type(Func):
            out = rewrite(out, TRIG_RULES, post=self.simp, config=self.config)
        return out

    def simp(self, e: Expr) -> Expr:
        hit = self.memo.get(e)
        if hit is not None:
            return hit
        out = self._node(e)
        self.memo[e] = out
        return out

    def _node(self, e: Expr) -> Expr:
        if isinstance(e, (Num, Sym, Const)) or isinstance(e, MethodCall):
            return e
        kids = [self.simp(c) for c in e.children]
        try:
            if isinstance(e, Add):
                return self.add(kids)
            if isinstance(e, Mul):
                return self.mul(kids)
            if isinstance(e, Pow):
                return self.pow(kids[0], kids[1])
            if isinstance(e, Func):
                return self.func(e.name, kids)
            if isinstance(e, Complex):
                return self.add([kids[0], self.mul([kids[1], I])])
            if isinstance(e, Matrix):
                return e.with_children(kids)
            if isinstance(e, Relation):
                if any(is_undefined(k) for k in kids):
                    return UNDEFINED
                return e.with_children(kids)
            if isinstance(e, Piecewise):
                return self.piecewise(e.with_children(kids))
            if isinstance(e, (Interval, Set, Derivative, Integral, Sum, Product, Limit)):
                return e.with_children(kids)
            return e.with_children(kids)
        except (DivisionByZero, DomainError) as exc:
            if self.strict:
                raise
            logger.debug("absorbed %s in %r", type(exc).__name__, e)
            return UNDEFINED
        except NumericOverflow:
            if self.strict:
                raise
            logger.debug("left %r unevaluated after overflow", e)
            return e.with_children(kids)

    # -----------------
    # Add
    # -----------------
    def add(self, terms: List[Expr]) -> Expr:
        flat: List[Expr] = []
        for t in terms:
            if isinstance(t, Add):
                flat.extend(t.children)
            else:
                flat.append(t)
        if any(is_undefined(t) for t in flat):
            return UNDEFINED
        commutative = all(t.is_commutative() for t in flat)

        matrices = [t for t in flat if isinstance(t, Matrix)]
        if len(matrices) > 1:
            from matrix import matrix_add
            total = matrices[0]
            for m in matrices[1:]:
                total = matrix_add(total, m)
            idx = flat.index(matrices[0])
            flat = [t for t in flat if not isinstance(t, Matrix)]
            flat.insert(idx, total)

        number = Number(0)
        has_number = False
        groups: Dict[Expr, List[Number]] = {}
        order: List[Expr] = []
        for t in flat:
            c, rest = as_coeff_term(t)
            if rest == ONE:
                number = number.add(c)
                has_number = True
                continue
            if rest not in groups:
                groups[rest] = []
                order.append(rest)
            groups[rest].append(c)

        out: List[Expr] = []
        if OO in groups:
            signs = {c.compare(0) for c in groups.pop(OO)}
            order.remove(OO)
            if len(signs) > 1:
                return UNDEFINED
            # oo absorbs every finite term
            return OO if signs == {1} else self.mul([NEG_ONE, OO])
        for rest in order:
            coeff = Number(0)
            for c in groups[rest]:
                coeff = coeff.add(c)
            if coeff.is_zero():
                if coeff.is_float():
                    has_number = True
                    number = number.add(coeff)
                continue
            out.append(term_from(coeff, rest))
        if has_number and (not number.is_zero() or number.is_float() and not out):
            out.append(Num(number))
        if commutative:
            out.sort(key=_term_key)
        return make_add(out)

    # -----------------
    # Mul
    # -----------------
    def mul(self, factors: List[Expr]) -> Expr:
        flat: List[Expr] = []
        stack = list(reversed(factors))
        while stack:
            f = stack.pop()
            if isinstance(f, Mul):
                stack.extend(reversed(f.children))
            else:
                flat.append(f)
        if any(is_undefined(f) for f in flat):
            return UNDEFINED

        coeff = Number(1)
        rest: List[Expr] = []
        for f in flat:
            if isinstance(f, Num):
                coeff = coeff.mul(f.value)
            else:
                rest.append(f)

        if OO in rest:
            if coeff.is_zero():
                return UNDEFINED
            coeff = Number(1 if coeff.is_positive() else -1)
        if coeff.is_zero() and not any(isinstance(f, Matrix) for f in rest):
            return Num(coeff) if coeff.is_float() else ZERO

        if all(f.is_commutative() for f in rest):
            coeff, out = self._mul_commutative(coeff, rest)
        else:
            coeff, out = self._mul_ordered(coeff, rest)
        if coeff.is_zero() and not any(isinstance(f, Matrix) for f in out):
            return ZERO
        if len(out) == 1 and isinstance(out[0], Matrix) and not coeff.is_one():
            from matrix import matrix_scale
            return matrix_scale(out[0], Num(coeff))
        if not coeff.is_one() or not out:
            out.insert(0, Num(coeff))
        return make_mul(out)

    def _mul_commutative(self, coeff: Number, factors: List[Expr]) -> Tuple[Number, List[Expr]]:
        groups: Dict[Expr, List[Expr]] = {}
        order: List[Expr] = []
        exp_args: List[Expr] = []
        present = {as_base_exp(f)[0] for f in factors}
        spread: List[Expr] = []
        for f in factors:
            # (a*b)^n next to a power of a: spread it so the powers can combine
            if isinstance(f, Pow) and isinstance(f.base, Mul) and isinstance(f.exp, Num) and f.exp.value.is_int():
                if any(as_base_exp(g)[0] in present for g in f.base.children):
                    for g in f.base.children:
                        p = self.pow(g, f.exp)
                        spread.extend(p.children if isinstance(p, Mul) else [p])
                    continue
            spread.append(f)
        for f in spread:
            if isinstance(f, Num):
                coeff = coeff.mul(f.value)
                continue
            b, x = as_base_exp(f)
            if isinstance(b, Func) and b.name == "exp":
                exp_args.append(self.mul([x, b.children[0]]))
                continue
            if b not in groups:
                groups[b] = []
                order.append(b)
            groups[b].append(x)
        out: List[Expr] = []
        if exp_args:
            order.append(None)
        for b in order:
            if b is None:
                p = self.func("exp", [self.add(exp_args)])
            else:
                xs = groups[b]
                x = xs[0] if len(xs) == 1 else self.add(xs)
                p = self.pow(b, x)
            if isinstance(p, Num):
                coeff = coeff.mul(p.value)
            elif isinstance(p, Mul):
                for c in p.children:
                    if isinstance(c, Num):
                        coeff = coeff.mul(c.value)
                    else:
                        out.append(c)
            else:
                out.append(p)
        out.sort(key=_factor_key)
        return coeff, out

    def _mul_ordered(self, coeff: Number, factors: List[Expr]) -> Tuple[Number, List[Expr]]:
        scalars = [f for f in factors if f.is_commutative()]
        ordered = [f for f in factors if not f.is_commutative()]
        coeff, scal = self._mul_commutative(coeff, scalars) if scalars else (coeff, [])
        out: List[Expr] = []
        for f in ordered:
            if out:
                prev = out[-1]
                if isinstance(prev, Matrix) and isinstance(f, Matrix):
                    from matrix import matmul
                    out[-1] = matmul(prev, f)
                    continue
                pb, px = as_base_exp(prev)
                fb, fx = as_base_exp(f)
                if pb == fb:
                    out.pop()
                    p = self.pow(pb, self.add([px, fx]))
                    if isinstance(p, Num):
                        coeff = coeff.mul(p.value)
                    elif p != ONE:
                        out.append(p)
                    continue
            out.append(f)
        return coeff, scal + out

    # -----------------
    # Pow
    # -----------------
    def pow(self, base: Expr, exp: Expr) -> Expr:
        if is_undefined(base) or is_undefined(exp):
            return UNDEFINED
        if isinstance(exp, Num):
            if exp.is_zero():
                return ONE
            if exp.is_one():
                return base
        if isinstance(base, Num):
            if base.is_one():
                return ONE
            if base.is_zero():
                if isinstance(exp, Num):
                    if exp.is_negative():
                        raise DivisionByZero("0 raised to a negative power")
                    return ZERO
                return Pow(base, exp)
            if isinstance(exp, Num):
                return self._pow_numbers(base.value, exp.value)
            return Pow(base, exp)
        if base == E:
            return self.func("exp", [exp])
        if base == OO and isinstance(exp, Num):
            return ZERO if exp.is_negative() else OO
        if base == I and isinstance(exp, Num) and exp.value.is_int():
            return (ONE, I, NEG_ONE, self.mul([NEG_ONE, I]))[exp.value.to_int() % 4]
        if isinstance(base, Pow):
            inner = base.exp
            if isinstance(exp, Num) and exp.value.is_int() or (
                isinstance(inner, Num) and inner.value.is_exact() and -1 < inner.value.to_fraction() <= 1
                and isinstance(exp, Num)
            ):
                return self.pow(base.base, self.mul([inner, exp]))
        if isinstance(base, Func) and base.name == "exp" and isinstance(exp, Num) and exp.value.is_int():
            return self.func("exp", [self.mul([base.children[0], exp])])
        if isinstance(base, Mul) and isinstance(exp, Num) and base.is_commutative():
            dist = self._distribute_pow(base, exp)
            if dist is not None:
                return dist
        if isinstance(base, Matrix) and isinstance(exp, Num) and exp.value.is_int():
            from matrix import matrix_power
            return matrix_power(base, exp.value.to_int())
        return Pow(base, exp)

    def _distribute_pow(self, base: Mul, exp: Num) -> Optional[Expr]:
        c, rest = as_coeff_term(base)
        if exp.value.is_int():
            candidate = self.mul([self.pow(f, exp) for f in base.children])
            original = Pow(base, exp)
            if exp.value.is_positive():
                return candidate if candidate.size() < original.size() else None
            if candidate.size() <= original.size():
                return candidate
            if not c.is_one():
                # reciprocals keep the numeric coefficient outside
                return self.mul([self.pow(Num(c), exp), Pow(rest, exp)])
            return None
        if c.is_positive() and not c.is_one():
            return self.mul([self.pow(Num(c), exp), self.pow(rest, exp)])
        return None

    def _pow_numbers(self, b: Number, x: Number) -> Expr:
        if x.is_int() or b.is_float() or x.is_float():
            try:
                return Num(b.pow(x))
            except DomainError:
                if not (b.is_float() or x.is_float()):
                    raise
                return Pow(Num(b), Num(x))
        # exact base, rational exponent p/q
        frac = x.to_fraction()
        p, q = frac.numerator, frac.denominator
        whole, r = divmod(p, q)
        prefix = b.pow(Number(whole)) if whole else Number(1)
        if b.is_negative():
            if q == 2:
                # (-a)^(r/2) with r == 1: sqrt(a) * i
                pos = self._pow_numbers(b.neg(), Number(Fraction(r, q)))
                return self.mul([Num(prefix), pos, I])
            if q % 2 == 1:
                pos = self._pow_numbers(b.neg(), Number(Fraction(r, q)))
                sign = NEG_ONE if r % 2 == 1 else ONE
                return self.mul([Num(prefix), sign, pos])
            return self.mul([Num(prefix), Pow(Num(b), Num(Fraction(r, q)))])
        bf = b.to_fraction()
        out_n, in_n = _extract_root(bf.numerator, q)
        out_d, in_d = _extract_root(bf.denominator, q)
        coeff = prefix.mul(Number(Fraction(out_n, out_d)).pow(Number(r)))
        parts: List[Expr] = []
        if in_n != 1:
            parts.append(Pow(Num(in_n), Num(Fraction(r, q))))
        if in_d != 1:
            # rationalise: d^(-r/q) = d^(-1) * d^((q-r)/q)
            coeff = coeff.div(Number(in_d))
            parts.append(Pow(Num(in_d), Num(Fraction(q - r, q))))
        if not coeff.is_one() or not parts:
            parts.insert(0, Num(coeff))
        return make_mul(parts)

    # -----------------
    # Functions
    # -----------------
    def func(self, name: str, args: List[Expr]) -> Expr:
        if any(is_undefined(a) for a in args):
            return UNDEFINED
        if name == "undefined":
            return UNDEFINED
        f = Func(name, *args)
        special = apply_special(f)
        if special is not None:
            return self.simp(special)
        info = REGISTRY.get(name)
        if info is not None and args and all(isinstance(a, Num) for a in args) and any(a.value.is_float() for a in args):
            return Num(info.evalf(*(a.value.to_float() for a in args)))
        return f

    # -----------------
    # Piecewise
    # -----------------
    def piecewise(self, pw: Piecewise) -> Expr:
        kept = []
        for expr, cond in pw.pieces:
            truth = relation_truth(cond) if isinstance(cond, Relation) else None
            if truth is False:
                continue
            if truth is True and not kept:
                return expr
            kept.append((expr, cond))
        if not kept:
            return pw.otherwise if pw.otherwise is not None else UNDEFINED
        return Piecewise(*kept, otherwise=pw.otherwise)
