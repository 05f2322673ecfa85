from __future__ import annotations
from typing import List, Sequence

from errors import DivisionByZero, DomainError
from expression import ONE, ZERO, Expr, Matrix, Mul, Num, Pow, cast, make_add, make_mul, negate
from simplify import simplify


def _s(e: Expr) -> Expr:
    return simplify(e)


def _rows(m: Matrix) -> List[List[Expr]]:
    return [list(r) for r in m.rows]


def identity(n: int) -> Matrix:
    return Matrix([[ONE if i == j else ZERO for j in range(n)] for i in range(n)])


def zeros(n: int, m: int = None) -> Matrix:
    return Matrix([[ZERO] * (n if m is None else m) for _ in range(n)])


def matrix_add(a: Matrix, b: Matrix) -> Matrix:
    if a.shape != b.shape:
        raise DomainError(f"cannot add matrices of shape {a.shape} and {b.shape}")
    return Matrix([[_s(make_add([x, y])) for x, y in zip(ra, rb)] for ra, rb in zip(a.rows, b.rows)])


def matrix_scale(m: Matrix, c) -> Matrix:
    c = cast(c)
    return Matrix([[_s(make_mul([c, x])) for x in row] for row in m.rows])


def matmul(a: Matrix, b: Matrix) -> Matrix:
    (n, k), (k2, m) = a.shape, b.shape
    if k != k2:
        raise DomainError(f"cannot multiply matrices of shape {a.shape} and {b.shape}")
    out = []
    for i in range(n):
        row = []
        for j in range(m):
            row.append(_s(make_add([make_mul([a.entry(i, t), b.entry(t, j)]) for t in range(k)])))
        out.append(row)
    return Matrix(out)


def transpose(m: Matrix) -> Matrix:
    n, k = m.shape
    return Matrix([[m.entry(i, j) for i in range(n)] for j in range(k)])


def trace(m: Matrix) -> Expr:
    _square(m)
    return _s(make_add([m.entry(i, i) for i in range(m.shape[0])]))


def _square(m: Matrix) -> int:
    n, k = m.shape
    if n != k:
        raise DomainError(f"matrix of shape {m.shape} is not square")
    return n


def _exact_quotient(num: Expr, den: Expr) -> Expr:
    from dispatch import cancel
    return cancel(Mul(num, Pow(den, Num(-1))))


def determinant(m: Matrix) -> Expr:
    """Fraction-free Bareiss elimination; every intermediate division is exact."""
    n = _square(m)
    if n == 0:
        return ONE
    a = _rows(m)
    sign = 1
    prev: Expr = ONE
    for k in range(n - 1):
        if _s(a[k][k]) == ZERO:
            swap = next((i for i in range(k + 1, n) if _s(a[i][k]) != ZERO), None)
            if swap is None:
                return ZERO
            a[k], a[swap] = a[swap], a[k]
            sign = -sign
        for i in range(k + 1, n):
            for j in range(k + 1, n):
                num = _s(make_add([make_mul([a[k][k], a[i][j]]), negate(make_mul([a[i][k], a[k][j]]))]))
                a[i][j] = num if prev == ONE else _exact_quotient(num, prev)
        prev = a[k][k]
    det = _s(a[n - 1][n - 1])
    return det if sign == 1 else _s(negate(det))


def inverse(m: Matrix) -> Matrix:
    """Gauss-Jordan inverse; DivisionByZero for a singular matrix."""
    n = _square(m)
    a = [row + [ONE if i == j else ZERO for j in range(n)] for i, row in enumerate(_rows(m))]
    for c in range(n):
        piv = next((i for i in range(c, n) if _s(a[i][c]) != ZERO), None)
        if piv is None:
            raise DivisionByZero("matrix is singular")
        a[c], a[piv] = a[piv], a[c]
        inv = _s(Pow(a[c][c], Num(-1)))
        a[c] = [_s(make_mul([inv, x])) for x in a[c]]
        for i in range(n):
            if i != c and a[i][c] != ZERO:
                f = a[i][c]
                a[i] = [_s(make_add([x, negate(make_mul([f, y]))])) for x, y in zip(a[i], a[c])]
    return Matrix([[_exact_entry(x) for x in row[n:]] for row in a])


def _exact_entry(e: Expr) -> Expr:
    if e.free_symbols():
        from dispatch import cancel
        return cancel(e)
    return e


def matrix_power(m: Matrix, n: int) -> Matrix:
    size = _square(m)
    if n < 0:
        return matrix_power(inverse(m), -n)
    result = identity(size)
    base = m
    while n:
        if n & 1:
            result = matmul(result, base)
        n >>= 1
        if n:
            base = matmul(base, base)
    return result


def is_zero_matrix(m: Matrix) -> bool:
    return all(_s(x) == ZERO for x in m.children)


def is_identity(m: Matrix) -> bool:
    n, k = m.shape
    if n != k:
        return False
    return all(_s(m.entry(i, j)) == (ONE if i == j else ZERO) for i in range(n) for j in range(n))


def from_lists(rows: Sequence[Sequence]) -> Matrix:
    return Matrix([[cast(x) for x in row] for row in rows])
