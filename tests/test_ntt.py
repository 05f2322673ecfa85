"""Tests for the number theoretic transform."""

import pytest
import numpy as np

from errors import DomainError
from ntt import NTT_PRIMES, convolve_integers, ntt, ntt_multiply

P = 998244353


class TestTransform:
    """Tests for the raw transform."""

    def test_prime_table(self):
        """The three word-sized primes."""
        assert set(NTT_PRIMES) == {998244353, 469762049, 2013265921}

    def test_inverse_round_trip(self):
        """Forward then inverse restores the input."""
        values = [5, 1, 4, 1, 5, 9, 2, 6]
        back = ntt(ntt(values, P), P, invert=True)
        assert isinstance(back, np.ndarray)
        assert back.tolist() == values

    def test_constant_transform(self):
        """A unit impulse transforms to all ones."""
        assert ntt([1, 0, 0, 0], P).tolist() == [1, 1, 1, 1]

    def test_unsupported_prime(self):
        """Only table primes are accepted."""
        with pytest.raises(DomainError):
            ntt([1, 2], 7)

    def test_length_power_of_two(self):
        """Lengths must be powers of two."""
        with pytest.raises(ValueError):
            ntt([1, 2, 3], P)


class TestMultiplication:
    """Tests for convolution."""

    def test_small_product(self):
        """(1 + 2x)(3 + 4x) = 3 + 10x + 8x^2."""
        assert ntt_multiply([1, 2], [3, 4], P, threshold=0) == [3, 10, 8]

    def test_schoolbook_agrees(self):
        """Both paths give the same residues."""
        a, b = list(range(1, 20)), list(range(7, 30))
        assert ntt_multiply(a, b, P, threshold=0) == ntt_multiply(a, b, P, threshold=10 ** 6)

    def test_exact_integers(self):
        """Negative and large coefficients survive the CRT lift."""
        a = [-3, 10 ** 12, 7, -(10 ** 9)]
        b = [2, -5, 10 ** 11]
        expected = [0] * 6
        for i, u in enumerate(a):
            for j, v in enumerate(b):
                expected[i + j] += u * v
        assert convolve_integers(a, b, threshold=0) == expected

    def test_empty(self):
        """An empty factor gives an empty product."""
        assert convolve_integers([], [1, 2]) == []
