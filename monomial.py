from __future__ import annotations
from typing import Callable, Dict, Iterable, Sequence, Tuple

# A monomial is an exponent vector: (e_1, ..., e_n) over a fixed variable ordering.
Monom = Tuple[int, ...]

def monom_one(n: int) -> Monom:
	return (0,) * n
def monom_degree(m: Monom) -> int:
	return sum(m)
def monom_mul(a: Monom, b: Monom) -> Monom:
	return tuple(x + y for x, y in zip(a, b))
def monom_div(a: Monom, b: Monom) -> Monom | None:
	"""a / b, or None when b does not divide a."""
	out = tuple(x - y for x, y in zip(a, b))
	if any(e < 0 for e in out):
		return None
	return out
def monom_divides(b: Monom, a: Monom) -> bool:
	return all(y <= x for x, y in zip(a, b))
def monom_pow(a: Monom, k: int) -> Monom:
	return tuple(e * k for e in a)
def monom_gcd(a: Monom, b: Monom) -> Monom:
	return tuple(min(x, y) for x, y in zip(a, b))
def monom_lcm(a: Monom, b: Monom) -> Monom:
	return tuple(max(x, y) for x, y in zip(a, b))
def monom_drop(m: Monom, i: int) -> Monom:
	return m[:i] + m[i + 1:]
def monom_insert(m: Monom, i: int, e: int) -> Monom:
	return m[:i] + (e,) + m[i:]
def monom_permute(m: Monom, order: Sequence[int]) -> Monom:
	return tuple(m[i] for i in order)

# -----------------
# Orders: each maps a monomial to a sort key, larger key = larger monomial
# -----------------
def lex_key(m: Monom) -> Tuple:
	return m
def grlex_key(m: Monom) -> Tuple:
	return (sum(m), m)
def grevlex_key(m: Monom) -> Tuple:
	# total degree first; ties broken by the smallest exponent in the last variable
	return (sum(m), tuple(-e for e in reversed(m)))

ORDERS: Dict[str, Callable[[Monom], Tuple]] = {
	'lex': lex_key,
	'grlex': grlex_key,
	'grevlex': grevlex_key,
}

def order_key(name: str) -> Callable[[Monom], Tuple]:
	if name not in ORDERS:
		raise ValueError(f"unknown monomial order {name!r}")
	return ORDERS[name]

def monom_to_string(m: Monom, names: Sequence[str]) -> str:
	parts = []
	for name, e in zip(names, m):
		if e == 0:
			continue
		parts.append(name if e == 1 else f"{name}^{e}")
	return "*".join(parts) if parts else "1"

def monoms_sorted(monoms: Iterable[Monom], order: str = 'lex', reverse: bool = True) -> list:
	return sorted(monoms, key=order_key(order), reverse=reverse)
