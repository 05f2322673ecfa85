from __future__ import annotations
from fractions import Fraction
from typing import Iterable, List, Optional, Tuple, Union
import math
import struct

from config import DEFAULT_CONFIG
from errors import DivisionByZero, DomainError, NumericOverflow

I64_MIN = -(1 << 63)
I64_MAX = (1 << 63) - 1

MAX_EXPONENT_BITS = DEFAULT_CONFIG.max_exponent_bits

NumberLike = Union[int, Fraction, float, "Number"]


def _normalize(v):
	if isinstance(v, bool):
		return int(v)
	if isinstance(v, Fraction):
		return v.numerator if v.denominator == 1 else v
	return v


def _float_bits(f: float) -> int:
	return struct.unpack("<q", struct.pack("<d", f))[0]


class Number:
	"""Exact-or-float scalar: small integer, big integer, reduced rational or float.

	The payload is a Python int, a Fraction with denominator > 1, or a float. A Fraction
	with denominator 1 is always stored as an int, so `kind` is canonical.
	"""
	__slots__ = ("_v",)

	def __init__(self, num: NumberLike, den: int | None = None) -> None:
		if isinstance(num, Number):
			if den is not None:
				raise TypeError("denominator not allowed with a Number numerator")
			self._v = num._v
			return
		if den is not None:
			if den == 0:
				raise DivisionByZero("zero denominator")
			self._v = _normalize(Fraction(num, den))
			return
		if isinstance(num, float):
			self._v = num
		elif isinstance(num, (int, Fraction)):
			self._v = _normalize(num)
		else:
			raise TypeError(f"cannot build a Number from {type(num).__name__}")

	@staticmethod
	def from_small_integer(n: int) -> Number:
		if not I64_MIN <= n <= I64_MAX:
			raise NumericOverflow(f"{n} does not fit a 64-bit integer")
		return Number(n)

	@staticmethod
	def coerce(x: NumberLike) -> Number:
		return x if isinstance(x, Number) else Number(x)

	# -----------------
	# Inspection
	# -----------------
	@property
	def value(self) -> Union[int, Fraction, float]:
		return self._v

	@property
	def kind(self) -> str:
		v = self._v
		if isinstance(v, float):
			return "float"
		if isinstance(v, Fraction):
			return "rational"
		return "small" if I64_MIN <= v <= I64_MAX else "big"

	def is_zero(self) -> bool:
		return self._v == 0

	def is_one(self) -> bool:
		return self._v == 1

	def is_minus_one(self) -> bool:
		return self._v == -1

	def is_int(self) -> bool:
		return isinstance(self._v, int)

	def is_rational(self) -> bool:
		return not isinstance(self._v, float)

	def is_float(self) -> bool:
		return isinstance(self._v, float)

	def is_exact(self) -> bool:
		return not isinstance(self._v, float)

	def is_negative(self) -> bool:
		return self._v < 0

	def is_positive(self) -> bool:
		return self._v > 0

	def to_int(self) -> int:
		if isinstance(self._v, int):
			return self._v
		return math.floor(self._v)

	def numerator(self) -> int:
		if isinstance(self._v, float):
			return Fraction(self._v).numerator
		return self._v if isinstance(self._v, int) else self._v.numerator

	def denominator(self) -> int:
		if isinstance(self._v, float):
			return Fraction(self._v).denominator
		return 1 if isinstance(self._v, int) else self._v.denominator

	def to_fraction(self) -> Fraction:
		return Fraction(self._v)

	def to_float(self) -> float:
		try:
			return float(self._v)
		except OverflowError as exc:
			raise NumericOverflow(f"{self} does not fit a float") from exc

	def __float__(self) -> float:
		return self.to_float()

	def __int__(self) -> int:
		return int(self._v)

	def __bool__(self) -> bool:
		return self._v != 0

	# -----------------
	# Arithmetic
	# -----------------
	def _pair(self, other: NumberLike):
		o = other._v if isinstance(other, Number) else _normalize(other)
		a = self._v
		if isinstance(a, float) or isinstance(o, float):
			return float(a), float(o), True
		return a, o, False

	def _checked_float(self, r: float) -> Number:
		if math.isnan(r) or math.isinf(r):
			raise NumericOverflow("float result is not finite")
		return Number(r)

	def add(self, other: NumberLike) -> Number:
		a, b, is_f = self._pair(other)
		return self._checked_float(a + b) if is_f else Number(a + b)

	def sub(self, other: NumberLike) -> Number:
		a, b, is_f = self._pair(other)
		return self._checked_float(a - b) if is_f else Number(a - b)

	def mul(self, other: NumberLike) -> Number:
		a, b, is_f = self._pair(other)
		return self._checked_float(a * b) if is_f else Number(a * b)

	def div(self, other: NumberLike) -> Number:
		a, b, is_f = self._pair(other)
		if b == 0:
			raise DivisionByZero("division by zero")
		if is_f:
			return self._checked_float(a / b)
		return Number(Fraction(a) / Fraction(b))

	def floordiv(self, other: NumberLike) -> Number:
		a, b, is_f = self._pair(other)
		if b == 0:
			raise DivisionByZero("division by zero")
		return Number(float(a // b)) if is_f else Number(math.floor(Fraction(a) / Fraction(b)))

	def mod(self, other: NumberLike) -> Number:
		a, b, is_f = self._pair(other)
		if b == 0:
			raise DivisionByZero("modulo by zero")
		return self._checked_float(a % b) if is_f else Number(a % b)

	def neg(self) -> Number:
		return Number(-self._v)

	def abs(self) -> Number:
		return Number(abs(self._v))

	def pow(self, exp: NumberLike) -> Number:
		e = exp._v if isinstance(exp, Number) else _normalize(exp)
		b = self._v
		if isinstance(e, int) and not isinstance(b, float):
			if b == 0:
				if e <= 0:
					raise DivisionByZero("zero raised to a non-positive power")
				return Number(0)
			if b == 1:
				return Number(1)
			if b == -1:
				return Number(1 if e % 2 == 0 else -1)
			frac = Fraction(b)
			bits = max(abs(frac.numerator).bit_length(), frac.denominator.bit_length())
			if bits * abs(e) > MAX_EXPONENT_BITS:
				raise NumericOverflow(f"{self}^{e} exceeds {MAX_EXPONENT_BITS} bits")
			if e >= 0:
				return Number(_pow_by_squaring(frac, e))
			return Number(1 / _pow_by_squaring(frac, -e))
		fb, fe = float(b), float(e)
		if fb == 0.0 and fe <= 0:
			raise DivisionByZero("zero raised to a non-positive power")
		try:
			r = fb ** fe
		except OverflowError as exc:
			raise NumericOverflow(f"{self}^{exp} overflows a float") from exc
		if isinstance(r, complex):
			raise DomainError(f"{self}^{exp} is not real")
		return self._checked_float(r)

	def exact_root(self, n: int) -> Optional[Number]:
		"""Return the exact real n-th root if one exists, else None."""
		if not self.is_exact() or n <= 0:
			return None
		frac = self.to_fraction()
		sign = 1
		if frac < 0:
			if n % 2 == 0:
				return None
			sign = -1
			frac = -frac
		num = iroot_exact(frac.numerator, n)
		den = iroot_exact(frac.denominator, n)
		if num is None or den is None:
			return None
		return Number(Fraction(sign * num, den))

	def gcd(self, other: Number) -> Number:
		"""gcd of two exact numbers; for rationals gcd(a/b, c/d) = gcd(a, c)/lcm(b, d)."""
		if not (self.is_exact() and other.is_exact()):
			return Number(1)
		a, b = self.to_fraction(), other.to_fraction()
		num = math.gcd(a.numerator, b.numerator)
		den = a.denominator * b.denominator // math.gcd(a.denominator, b.denominator)
		return Number(Fraction(num, den))

	def compare(self, other: NumberLike) -> int:
		a, b, _ = self._pair(other)
		if a < b:
			return -1
		if a > b:
			return 1
		return 0

	__add__ = add
	__sub__ = sub
	__mul__ = mul
	__truediv__ = div
	__floordiv__ = floordiv
	__mod__ = mod
	__neg__ = neg
	__abs__ = abs
	__pow__ = pow

	def __radd__(self, other: NumberLike) -> Number:
		return Number.coerce(other).add(self)

	def __rsub__(self, other: NumberLike) -> Number:
		return Number.coerce(other).sub(self)

	def __rmul__(self, other: NumberLike) -> Number:
		return Number.coerce(other).mul(self)

	def __rtruediv__(self, other: NumberLike) -> Number:
		return Number.coerce(other).div(self)

	def __eq__(self, other: object) -> bool:
		if isinstance(other, (int, Fraction, float)) and not isinstance(other, bool):
			other = Number(other)
		if not isinstance(other, Number):
			return NotImplemented
		a, b = self._v, other._v
		af, bf = isinstance(a, float), isinstance(b, float)
		if af and bf:
			if a == 0.0 and b == 0.0:
				return True
			return _float_bits(a) == _float_bits(b)
		if af or bf:
			# zero and one are canonical across variants
			return a == b and a in (0, 1)
		return a == b

	def __hash__(self) -> int:
		v = self._v
		if isinstance(v, float):
			if v == 0.0 or v == 1.0:
				return hash(int(v))
			return hash(("f", _float_bits(v)))
		return hash(v)

	def __lt__(self, other: NumberLike) -> bool:
		return self.compare(other) < 0

	def __le__(self, other: NumberLike) -> bool:
		return self.compare(other) <= 0

	def __gt__(self, other: NumberLike) -> bool:
		return self.compare(other) > 0

	def __ge__(self, other: NumberLike) -> bool:
		return self.compare(other) >= 0

	def to_string(self) -> str:
		v = self._v
		if isinstance(v, Fraction):
			return f"{v.numerator}/{v.denominator}"
		if isinstance(v, float):
			return repr(v)
		return str(v)

	def __str__(self) -> str:
		return self.to_string()

	def __repr__(self) -> str:
		return f"Number({self.to_string()})"


def _pow_by_squaring(base: Fraction, e: int) -> Fraction:
	result = Fraction(1)
	while e:
		if e & 1:
			result *= base
		e >>= 1
		if e:
			base *= base
	return result


# -----------------
# Integer helpers shared by the modular layers
# -----------------

def isqrt_exact(a: int) -> Optional[int]:
	"""Exact integer square root of a >= 0, or None."""
	return iroot_exact(a, 2)


def iroot_exact(a: int, n: int) -> Optional[int]:
	"""Exact integer n-th root of a >= 0, or None."""
	if a < 0:
		return None
	if a < 2:
		return a
	if n == 1:
		return a
	if n == 2:
		r = math.isqrt(a)
		return r if r * r == a else None
	# Newton iteration from above
	x = 1 << ((a.bit_length() + n - 1) // n)
	while True:
		y = ((n - 1) * x + a // x ** (n - 1)) // n
		if y >= x:
			break
		x = y
	return x if x ** n == a else None


def extended_gcd(a: int, b: int) -> Tuple[int, int, int]:
	"""Return (g, s, t) with s*a + t*b = g = gcd(a, b) >= 0."""
	old_r, r = a, b
	old_s, s = 1, 0
	old_t, t = 0, 1
	while r:
		q = old_r // r
		old_r, r = r, old_r - q * r
		old_s, s = s, old_s - q * s
		old_t, t = t, old_t - q * t
	if old_r < 0:
		old_r, old_s, old_t = -old_r, -old_s, -old_t
	return old_r, old_s, old_t


def mod_inverse(a: int, m: int) -> int:
	g, s, _ = extended_gcd(a % m, m)
	if g != 1:
		raise DivisionByZero(f"{a} is not invertible modulo {m}")
	return s % m


def mod_pow(base: int, exp: int, m: int) -> int:
	if exp < 0:
		return pow(mod_inverse(base, m), -exp, m)
	return pow(base, exp, m)


def symmetric_mod(a: int, m: int) -> int:
	"""Representative of a mod m in (-m/2, m/2]."""
	r = a % m
	return r - m if r > m // 2 else r


def crt(residues: Iterable[int], moduli: Iterable[int]) -> Tuple[int, int]:
	"""Chinese remaindering for pairwise coprime moduli; returns (x, M) with 0 <= x < M."""
	x, m = 0, 1
	for r, n in zip(residues, moduli):
		inv = mod_inverse(m % n, n)
		x = x + m * (((r - x) * inv) % n)
		m *= n
		x %= m
	return x, m


def crt_pair(a: int, m: int, b: int, n: int) -> int:
	"""Combine x = a (mod m), x = b (mod n) into the symmetric residue mod m*n."""
	x, mn = crt([a, b], [m, n])
	return symmetric_mod(x, mn)


_MR_BASES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37)


def is_prime(n: int) -> bool:
	"""Deterministic Miller-Rabin for n < 3.3e24."""
	if n < 2:
		return False
	for p in _MR_BASES:
		if n % p == 0:
			return n == p
	d, s = n - 1, 0
	while d % 2 == 0:
		d //= 2
		s += 1
	for a in _MR_BASES:
		x = pow(a, d, n)
		if x in (1, n - 1):
			continue
		for _ in range(s - 1):
			x = x * x % n
			if x == n - 1:
				break
		else:
			return False
	return True


def next_prime(n: int) -> int:
	c = max(2, n + 1)
	while not is_prime(c):
		c += 1
	return c


def integer_gcd_list(values: Iterable[int]) -> int:
	g = 0
	for v in values:
		g = math.gcd(g, v)
		if g == 1:
			break
	return g


def factorial(n: int, limit: int = 1000) -> int:
	if n < 0:
		raise DomainError("factorial of a negative integer")
	if n > limit:
		raise NumericOverflow(f"{n}! exceeds the factorial limit {limit}")
	return math.factorial(n)


def divisors(n: int) -> List[int]:
	"""Positive divisors of |n| (n != 0), ascending."""
	n = abs(n)
	small, large = [], []
	i = 1
	while i * i <= n:
		if n % i == 0:
			small.append(i)
			if i * i != n:
				large.append(n // i)
		i += 1
	return small + large[::-1]
