"""Number theoretic transform over word-sized primes of the form k*2^n + 1.

Butterflies run on numpy int64 arrays: every prime in the table is below 2^31, so a product
of two residues fits in a signed 64-bit word before reduction.
"""

from __future__ import annotations
from typing import Dict, List, Sequence, Tuple
import logging

import numpy as np

from config import DEFAULT_CONFIG
from errors import DomainError
from number import crt, mod_pow, symmetric_mod

logger = logging.getLogger(__name__)

# prime -> (primitive root, largest n with 2^n | p - 1)
NTT_PRIMES: Dict[int, Tuple[int, int]] = {
	998244353: (3, 23),
	469762049: (3, 26),
	2013265921: (31, 27),
}

DEFAULT_THRESHOLD = DEFAULT_CONFIG.ntt_threshold


def is_ntt_prime(p: int) -> bool:
	return p in NTT_PRIMES


def _bit_reverse(n: int) -> np.ndarray:
	bits = n.bit_length() - 1
	idx = np.arange(n, dtype=np.int64)
	rev = np.zeros(n, dtype=np.int64)
	for b in range(bits):
		rev |= ((idx >> b) & 1) << (bits - 1 - b)
	return rev


def _root_table(w: int, count: int, p: int) -> np.ndarray:
	table = np.empty(max(count, 1), dtype=np.int64)
	acc = 1
	for k in range(count):
		table[k] = acc
		acc = acc * w % p
	return table[:count]


def ntt(values: Sequence[int], p: int, invert: bool = False) -> np.ndarray:
	"""In-order NTT of values (length a power of two) modulo an NTT prime."""
	if p not in NTT_PRIMES:
		raise DomainError(f"{p} is not an NTT-friendly prime")
	g, max_log = NTT_PRIMES[p]
	a = np.asarray(values, dtype=np.int64) % p
	n = len(a)
	if n & (n - 1):
		raise ValueError("NTT length must be a power of two")
	if n.bit_length() - 1 > max_log:
		raise DomainError(f"length {n} exceeds the 2-adic order of {p} - 1")
	if n == 1:
		return a.copy()
	a = a[_bit_reverse(n)]
	w_n = mod_pow(g, (p - 1) // n, p)
	if invert:
		w_n = mod_pow(w_n, p - 2, p)
	table = _root_table(w_n, n // 2, p)
	length = 2
	while length <= n:
		half = length // 2
		tw = table[:: n // length][:half]
		blocks = a.reshape(-1, length)
		u = blocks[:, :half]
		v = blocks[:, half:] * tw % p
		a = np.concatenate(((u + v) % p, (u - v) % p), axis=1).reshape(-1)
		length <<= 1
	if invert:
		a = a * mod_pow(n, p - 2, p) % p
	return a


def _schoolbook_mod(a: Sequence[int], b: Sequence[int], p: int) -> List[int]:
	out = [0] * (len(a) + len(b) - 1)
	for i, x in enumerate(a):
		if x == 0:
			continue
		for j, y in enumerate(b):
			out[i + j] = (out[i + j] + x * y) % p
	return out


def ntt_multiply(a: Sequence[int], b: Sequence[int], p: int, threshold: int = DEFAULT_THRESHOLD) -> List[int]:
	"""Product of two coefficient lists (ascending) modulo p.

	Uses the transform when p is in the prime table and both inputs reach `threshold` terms;
	schoolbook otherwise.
	"""
	if not a or not b:
		return []
	if p not in NTT_PRIMES or min(len(a), len(b)) < threshold:
		return _schoolbook_mod(a, b, p)
	size = len(a) + len(b) - 1
	n = 1 << (size - 1).bit_length()
	fa = ntt(list(a) + [0] * (n - len(a)), p)
	fb = ntt(list(b) + [0] * (n - len(b)), p)
	prod = ntt(fa * fb % p, p, invert=True)
	return [int(c) for c in prod[:size]]


def convolve_integers(a: Sequence[int], b: Sequence[int], threshold: int = DEFAULT_THRESHOLD) -> List[int]:
	"""Exact integer product of two coefficient lists via multi-prime NTT and CRT."""
	if not a or not b:
		return []
	if min(len(a), len(b)) < threshold:
		out = [0] * (len(a) + len(b) - 1)
		for i, x in enumerate(a):
			if x:
				for j, y in enumerate(b):
					out[i + j] += x * y
		return out
	bound = 2 * max(abs(x) for x in a) * max(abs(y) for y in b) * min(len(a), len(b)) + 1
	primes: List[int] = []
	modulus = 1
	for p in sorted(NTT_PRIMES, reverse=True):
		if modulus > bound:
			break
		primes.append(p)
		modulus *= p
	if modulus <= bound:
		logger.debug("coefficients too large for the NTT prime table; multiplying directly")
		return convolve_integers(a, b, threshold=len(a) + len(b) + 1)
	images = [ntt_multiply([x % p for x in a], [y % p for y in b], p, threshold=0) for p in primes]
	out = []
	for k in range(len(a) + len(b) - 1):
		x, m = crt([img[k] for img in images], primes)
		out.append(symmetric_mod(x, m))
	return out
