from __future__ import annotations
from typing import Iterable, List, Optional, Sequence, Tuple
import logging
import random

from errors import DivisionByZero, DivisionNotExact, DomainError
from ntt import convolve_integers, is_ntt_prime, ntt_multiply
from number import is_prime, mod_inverse, symmetric_mod

logger = logging.getLogger(__name__)

BERLEKAMP_ENUMERATION_LIMIT = 1 << 10


class Zp:
	"""Element of the prime field Z/pZ, stored in [0, p)."""
	__slots__ = ("value", "p")

	def __init__(self, value: int, p: int) -> None:
		self.value = int(value) % p
		self.p = p

	def _other(self, other) -> int:
		if isinstance(other, Zp):
			if other.p != self.p:
				raise DomainError(f"cannot mix GF({self.p}) and GF({other.p})")
			return other.value
		if isinstance(other, int):
			return other % self.p
		return NotImplemented

	def __add__(self, other) -> Zp:
		o = self._other(other)
		if o is NotImplemented:
			return NotImplemented
		return Zp(self.value + o, self.p)

	__radd__ = __add__

	def __sub__(self, other) -> Zp:
		o = self._other(other)
		if o is NotImplemented:
			return NotImplemented
		return Zp(self.value - o, self.p)

	def __rsub__(self, other) -> Zp:
		o = self._other(other)
		if o is NotImplemented:
			return NotImplemented
		return Zp(o - self.value, self.p)

	def __mul__(self, other) -> Zp:
		o = self._other(other)
		if o is NotImplemented:
			return NotImplemented
		return Zp(self.value * o, self.p)

	__rmul__ = __mul__

	def inverse(self) -> Zp:
		if self.value == 0:
			raise DivisionByZero(f"0 has no inverse in GF({self.p})")
		return Zp(mod_inverse(self.value, self.p), self.p)

	def __truediv__(self, other) -> Zp:
		o = self._other(other)
		if o is NotImplemented:
			return NotImplemented
		return self * Zp(o, self.p).inverse()

	def __rtruediv__(self, other) -> Zp:
		o = self._other(other)
		if o is NotImplemented:
			return NotImplemented
		return Zp(o, self.p) * self.inverse()

	def __neg__(self) -> Zp:
		return Zp(-self.value, self.p)

	def __pow__(self, e: int) -> Zp:
		if e < 0:
			return self.inverse() ** (-e)
		return Zp(pow(self.value, e, self.p), self.p)

	def __eq__(self, other: object) -> bool:
		if isinstance(other, Zp):
			return self.p == other.p and self.value == other.value
		if isinstance(other, int):
			return self.value == other % self.p
		return NotImplemented

	def __hash__(self) -> int:
		return hash((self.value, self.p))

	def __bool__(self) -> bool:
		return self.value != 0

	def __int__(self) -> int:
		return self.value

	def symmetric(self) -> int:
		return symmetric_mod(self.value, self.p)

	def __repr__(self) -> str:
		return f"Zp({self.value}, {self.p})"

	def __str__(self) -> str:
		return str(self.value)


class PolyZp:
	"""Dense polynomial over GF(p); coefficients ascending, trailing zeros trimmed."""
	__slots__ = ("coeffs", "p")

	def __init__(self, coeffs: Iterable[int], p: int) -> None:
		cs = [int(c) % p for c in coeffs]
		while cs and cs[-1] == 0:
			cs.pop()
		self.coeffs = cs
		self.p = p

	# -----------------
	# Construction
	# -----------------
	@classmethod
	def zero(cls, p: int) -> PolyZp:
		return cls([], p)

	@classmethod
	def one(cls, p: int) -> PolyZp:
		return cls([1], p)

	@classmethod
	def x(cls, p: int) -> PolyZp:
		return cls([0, 1], p)

	@classmethod
	def from_ints(cls, coeffs: Iterable[int], p: int) -> PolyZp:
		return cls(coeffs, p)

	def _new(self, coeffs: Iterable[int]) -> PolyZp:
		return PolyZp(coeffs, self.p)

	# -----------------
	# Queries
	# -----------------
	def degree(self) -> Optional[int]:
		return len(self.coeffs) - 1 if self.coeffs else None

	def deg(self) -> int:
		return len(self.coeffs) - 1

	def lc(self) -> int:
		return self.coeffs[-1] if self.coeffs else 0

	def is_zero(self) -> bool:
		return not self.coeffs

	def is_one(self) -> bool:
		return self.coeffs == [1]

	def is_constant(self) -> bool:
		return len(self.coeffs) <= 1

	def is_monic(self) -> bool:
		return self.lc() == 1

	def coeff(self, i: int) -> int:
		return self.coeffs[i] if 0 <= i < len(self.coeffs) else 0

	def symmetric_coeffs(self) -> List[int]:
		return [symmetric_mod(c, self.p) for c in self.coeffs]

	# -----------------
	# Arithmetic
	# -----------------
	def __add__(self, other: PolyZp) -> PolyZp:
		n = max(len(self.coeffs), len(other.coeffs))
		return self._new(self.coeff(i) + other.coeff(i) for i in range(n))

	def __sub__(self, other: PolyZp) -> PolyZp:
		n = max(len(self.coeffs), len(other.coeffs))
		return self._new(self.coeff(i) - other.coeff(i) for i in range(n))

	def __neg__(self) -> PolyZp:
		return self._new(-c for c in self.coeffs)

	def __mul__(self, other) -> PolyZp:
		if isinstance(other, int):
			return self.scale(other)
		if self.is_zero() or other.is_zero():
			return PolyZp.zero(self.p)
		if is_ntt_prime(self.p):
			return self._new(ntt_multiply(self.coeffs, other.coeffs, self.p))
		return self._new(convolve_integers(self.coeffs, other.coeffs))

	__rmul__ = __mul__

	def scale(self, c: int) -> PolyZp:
		c %= self.p
		return self._new(a * c for a in self.coeffs)

	def monic(self) -> PolyZp:
		if self.is_zero():
			return self
		return self.scale(mod_inverse(self.lc(), self.p))

	def div_rem(self, other: PolyZp) -> Tuple[PolyZp, PolyZp]:
		if other.is_zero():
			raise DivisionByZero("polynomial division by zero")
		r = list(self.coeffs)
		dv = other.coeffs
		dd = len(dv) - 1
		if len(r) - 1 < dd:
			return PolyZp.zero(self.p), self
		inv = mod_inverse(dv[-1], self.p)
		q = [0] * (len(r) - dd)
		for k in range(len(r) - 1, dd - 1, -1):
			c = r[k] * inv % self.p
			if c == 0:
				continue
			q[k - dd] = c
			for j in range(dd + 1):
				r[k - dd + j] = (r[k - dd + j] - c * dv[j]) % self.p
		return self._new(q), self._new(r[:dd])

	def __mod__(self, other: PolyZp) -> PolyZp:
		return self.div_rem(other)[1]

	def __floordiv__(self, other: PolyZp) -> PolyZp:
		return self.div_rem(other)[0]

	def exact_div(self, other: PolyZp) -> PolyZp:
		q, r = self.div_rem(other)
		if not r.is_zero():
			raise DivisionNotExact("remainder is not zero")
		return q

	def __pow__(self, e: int) -> PolyZp:
		result = PolyZp.one(self.p)
		base = self
		while e:
			if e & 1:
				result = result * base
			e >>= 1
			if e:
				base = base * base
		return result

	def pow_mod(self, e: int, modulus: PolyZp) -> PolyZp:
		"""self**e reduced modulo `modulus` by square and multiply."""
		result = PolyZp.one(self.p) % modulus
		base = self % modulus
		while e:
			if e & 1:
				result = (result * base) % modulus
			e >>= 1
			if e:
				base = (base * base) % modulus
		return result

	def gcd(self, other: PolyZp) -> PolyZp:
		"""Monic gcd; gcd(0, 0) is 0."""
		a, b = self, other
		while not b.is_zero():
			a, b = b, a % b
		return a.monic()

	def ext_gcd(self, other: PolyZp) -> Tuple[PolyZp, PolyZp, PolyZp]:
		"""(g, s, t) with s*self + t*other = g monic."""
		p = self.p
		r0, r1 = self, other
		s0, s1 = PolyZp.one(p), PolyZp.zero(p)
		t0, t1 = PolyZp.zero(p), PolyZp.one(p)
		while not r1.is_zero():
			q, r = r0.div_rem(r1)
			r0, r1 = r1, r
			s0, s1 = s1, s0 - q * s1
			t0, t1 = t1, t0 - q * t1
		if r0.is_zero():
			return r0, s0, t0
		inv = mod_inverse(r0.lc(), p)
		return r0.scale(inv), s0.scale(inv), t0.scale(inv)

	def derivative(self) -> PolyZp:
		return self._new(i * c for i, c in enumerate(self.coeffs) if i)

	def evaluate(self, x: int) -> int:
		acc = 0
		for c in reversed(self.coeffs):
			acc = (acc * x + c) % self.p
		return acc

	__call__ = evaluate

	def compose(self, other: PolyZp) -> PolyZp:
		acc = PolyZp.zero(self.p)
		for c in reversed(self.coeffs):
			acc = acc * other + PolyZp([c], self.p)
		return acc

	def pth_root(self) -> PolyZp:
		"""g with g**p == self, for self whose derivative vanishes."""
		return self._new(self.coeffs[:: self.p])

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, PolyZp):
			return NotImplemented
		return self.p == other.p and self.coeffs == other.coeffs

	def __hash__(self) -> int:
		return hash((tuple(self.coeffs), self.p))

	def __repr__(self) -> str:
		return f"PolyZp({self.coeffs}, {self.p})"

	def __str__(self) -> str:
		if not self.coeffs:
			return "0"
		parts = []
		for i in range(len(self.coeffs) - 1, -1, -1):
			c = self.coeffs[i]
			if c == 0:
				continue
			mono = "" if i == 0 else ("x" if i == 1 else f"x^{i}")
			if not mono:
				parts.append(str(c))
			else:
				parts.append(mono if c == 1 else f"{c}*{mono}")
		return " + ".join(parts) + f" (mod {self.p})"

	# -----------------
	# Factorisation
	# -----------------
	def is_square_free(self) -> bool:
		if self.is_constant():
			return True
		return self.gcd(self.derivative()).is_one()

	def square_free(self) -> List[Tuple[PolyZp, int]]:
		"""Square-free decomposition of the monic part, valid in characteristic p."""
		f = self.monic()
		if f.is_constant():
			return []
		out: List[Tuple[PolyZp, int]] = []
		d = f.derivative()
		if d.is_zero():
			return [(g, m * self.p) for g, m in f.pth_root().square_free()]
		c = f.gcd(d)
		w = f.exact_div(c)
		i = 1
		while not w.is_one():
			y = w.gcd(c)
			z = w.exact_div(y)
			if not z.is_constant():
				out.append((z, i))
			i += 1
			w = y
			c = c.exact_div(y)
		if not c.is_constant():
			out.extend((g, m * self.p) for g, m in c.pth_root().square_free())
		return out

	def distinct_degree(self) -> List[Tuple[PolyZp, int]]:
		"""Split a square-free monic polynomial into products of equal-degree irreducibles."""
		f = self.monic()
		out: List[Tuple[PolyZp, int]] = []
		x = PolyZp.x(self.p)
		h = x % f if not f.is_constant() else x
		i = 1
		while f.deg() >= 2 * i:
			h = h.pow_mod(self.p, f)
			g = f.gcd(h - x)
			if not g.is_one():
				out.append((g, i))
				f = f.exact_div(g)
				h = h % f
			i += 1
		if not f.is_constant():
			out.append((f, f.deg()))
		return out

	def equal_degree(self, d: int, rng: Optional[random.Random] = None) -> List[PolyZp]:
		"""Cantor-Zassenhaus split of a product of irreducibles of degree d (p odd)."""
		f = self.monic()
		if f.deg() <= d:
			return [f]
		if self.p == 2:
			return f.berlekamp()
		rng = rng or random.Random(f.deg() * 7919 + self.p)
		e = (self.p ** d - 1) // 2
		while True:
			a = PolyZp([rng.randrange(self.p) for _ in range(f.deg())], self.p)
			if a.is_constant():
				continue
			g = f.gcd(a)
			if g.is_one():
				g = f.gcd(a.pow_mod(e, f) - PolyZp.one(self.p))
			if not g.is_one() and g != f:
				return g.equal_degree(d, rng) + f.exact_div(g).equal_degree(d, rng)

	def _berlekamp_basis(self) -> List[List[int]]:
		"""Basis of {v : v**p = v mod self} as coefficient vectors."""
		n = self.deg()
		p = self.p
		xp = PolyZp.x(p).pow_mod(p, self)
		rows: List[List[int]] = []
		cur = PolyZp.one(p)
		for _ in range(n):
			rows.append([cur.coeff(j) for j in range(n)])
			cur = (cur * xp) % self
		# null space of (Q - I)^T
		m = [[(rows[j][i] - (1 if i == j else 0)) % p for j in range(n)] for i in range(n)]
		return _nullspace_mod(m, p)

	def berlekamp(self) -> List[PolyZp]:
		"""Monic irreducible factors of a square-free polynomial."""
		f = self.monic()
		if f.deg() <= 1:
			return [f] if not f.is_constant() else []
		basis = f._berlekamp_basis()
		k = len(basis)
		if k == 1:
			return [f]
		logger.debug("berlekamp: degree %d splits into %d factors mod %d", f.deg(), k, self.p)
		factors = [f]
		vs = [PolyZp(v, self.p) for v in basis if PolyZp(v, self.p).deg() > 0]
		if self.p <= BERLEKAMP_ENUMERATION_LIMIT:
			for v in vs:
				for s in range(self.p):
					shifted = v - PolyZp([s], self.p)
					nxt = []
					for u in factors:
						if u.deg() <= 1:
							nxt.append(u)
							continue
						g = u.gcd(shifted)
						if g.is_one() or g == u:
							nxt.append(u)
						else:
							nxt.extend([g, u.exact_div(g)])
					factors = nxt
					if len(factors) == k:
						return sorted(factors, key=_poly_key)
			return sorted(factors, key=_poly_key)
		rng = random.Random(f.deg() * 104729 + self.p)
		e = (self.p - 1) // 2
		while len(factors) < k:
			a = PolyZp.zero(self.p)
			for v in vs:
				a = a + v.scale(rng.randrange(self.p))
			nxt = []
			for u in factors:
				if u.deg() <= 1:
					nxt.append(u)
					continue
				g = u.gcd(a.pow_mod(e, u) - PolyZp.one(self.p))
				if g.is_one() or g == u:
					nxt.append(u)
				else:
					nxt.extend([g, u.exact_div(g)])
			factors = nxt
		return sorted(factors, key=_poly_key)

	def factor(self) -> Tuple[int, List[Tuple[PolyZp, int]]]:
		"""(leading coefficient, [(monic irreducible, multiplicity)])."""
		if self.is_zero():
			return 0, []
		out = []
		for g, m in self.square_free():
			out.extend((h, m) for h in g.berlekamp())
		return self.lc(), sorted(out, key=lambda t: (_poly_key(t[0]), t[1]))

	def is_irreducible(self) -> bool:
		if self.deg() < 1:
			return False
		if not self.is_square_free():
			return False
		return len(self.monic()._berlekamp_basis()) == 1


def _poly_key(f: PolyZp) -> Tuple[int, List[int]]:
	return f.deg(), list(reversed(f.coeffs))


def _nullspace_mod(m: List[List[int]], p: int) -> List[List[int]]:
	rows = [list(r) for r in m]
	n_rows = len(rows)
	n_cols = len(rows[0]) if rows else 0
	pivots: List[int] = []
	r = 0
	for c in range(n_cols):
		piv = next((i for i in range(r, n_rows) if rows[i][c] % p), None)
		if piv is None:
			continue
		rows[r], rows[piv] = rows[piv], rows[r]
		inv = mod_inverse(rows[r][c], p)
		rows[r] = [v * inv % p for v in rows[r]]
		for i in range(n_rows):
			if i != r and rows[i][c]:
				f = rows[i][c]
				rows[i] = [(a - f * b) % p for a, b in zip(rows[i], rows[r])]
		pivots.append(c)
		r += 1
		if r == n_rows:
			break
	free = [c for c in range(n_cols) if c not in pivots]
	basis = []
	for fc in free:
		v = [0] * n_cols
		v[fc] = 1
		for i, pc in enumerate(pivots):
			v[pc] = (-rows[i][fc]) % p
		basis.append(v)
	return basis


def factor_mod_p(coeffs: Sequence[int], p: int) -> Tuple[int, List[Tuple[PolyZp, int]]]:
	if not is_prime(p):
		raise DomainError(f"{p} is not prime")
	return PolyZp(coeffs, p).factor()
