"""
Tridiagonal matrices and their LU solve

A tridiagonal matrix is stored as its three diagonals:

    | d0  c0                 |
    | s0  d1  c1             |
    |     s1  d2  c2         |
    |         ..  ..  ..     |
    |             s_n-2 d_n-1|

with s the subdiagonal (length n-1), d the diagonal (length n) and c the
superdiagonal (length n-1). Solving A x = b factors A = L U with L unit lower
bidiagonal and U upper bidiagonal (the Thomas algorithm), then runs a forward
and a backward substitution. Everything is O(n).

This module also holds small vector helpers for assembling right-hand sides.
"""

import math

import numpy as np
from typing import Sequence, Tuple, Union

from pricing_errors import ErrorKind, PricingError

ArrayLike = Union[Sequence[float], np.ndarray]


def _as_vector(v: ArrayLike) -> np.ndarray:
    return np.asarray(v, dtype=float).reshape(-1)


def _check_pivot(pivot: float, index: int):
    if pivot == 0.0 or not math.isfinite(pivot):
        raise PricingError(ErrorKind.SINGULAR_MATRIX, "pivot", float(pivot),
                           f"at row {index}")


class LowerBidiagonal:
    """Lower triangular matrix with a diagonal and one subdiagonal"""

    def __init__(self, subdiag: ArrayLike, diag: ArrayLike):
        self.subdiag = _as_vector(subdiag)
        self.diag = _as_vector(diag)
        if self.subdiag.size != max(self.diag.size - 1, 0):
            raise PricingError(ErrorKind.DIMENSION_MISMATCH, "subdiag",
                               self.subdiag.size,
                               f"expected {self.diag.size - 1} entries")

    def solve(self, b: ArrayLike) -> np.ndarray:
        """Forward substitution"""
        b = _as_vector(b)
        n = self.diag.size
        if b.size != n:
            raise PricingError(ErrorKind.DIMENSION_MISMATCH, "b", b.size,
                               f"expected {n} entries")
        if n == 0:
            return np.empty(0)
        d = self.diag.tolist()
        s = self.subdiag.tolist()
        rhs = b.tolist()
        x = [0.0] * n
        _check_pivot(d[0], 0)
        x[0] = rhs[0] / d[0]
        for i in range(1, n):
            _check_pivot(d[i], i)
            x[i] = (rhs[i] - s[i - 1] * x[i - 1]) / d[i]
        return np.array(x)


class UpperBidiagonal:
    """Upper triangular matrix with a diagonal and one superdiagonal"""

    def __init__(self, diag: ArrayLike, superdiag: ArrayLike):
        self.diag = _as_vector(diag)
        self.superdiag = _as_vector(superdiag)
        if self.superdiag.size != max(self.diag.size - 1, 0):
            raise PricingError(ErrorKind.DIMENSION_MISMATCH, "superdiag",
                               self.superdiag.size,
                               f"expected {self.diag.size - 1} entries")

    def solve(self, b: ArrayLike) -> np.ndarray:
        """Backward substitution"""
        b = _as_vector(b)
        n = self.diag.size
        if b.size != n:
            raise PricingError(ErrorKind.DIMENSION_MISMATCH, "b", b.size,
                               f"expected {n} entries")
        if n == 0:
            return np.empty(0)
        d = self.diag.tolist()
        c = self.superdiag.tolist()
        rhs = b.tolist()
        x = [0.0] * n
        _check_pivot(d[n - 1], n - 1)
        x[n - 1] = rhs[n - 1] / d[n - 1]
        for i in range(n - 2, -1, -1):
            _check_pivot(d[i], i)
            x[i] = (rhs[i] - c[i] * x[i + 1]) / d[i]
        return np.array(x)


class TridiagonalMatrix:
    """n x n matrix with nonzero entries on three diagonals only"""

    def __init__(self, subdiag: ArrayLike, diag: ArrayLike, superdiag: ArrayLike):
        """
        Parameters:
        -----------
        subdiag : array-like
            Entries A[i+1, i], length n-1
        diag : array-like
            Entries A[i, i], length n
        superdiag : array-like
            Entries A[i, i+1], length n-1
        """
        self.subdiag = _as_vector(subdiag)
        self.diag = _as_vector(diag)
        self.superdiag = _as_vector(superdiag)

        expected = max(self.diag.size - 1, 0)
        if self.subdiag.size != expected:
            raise PricingError(ErrorKind.DIMENSION_MISMATCH, "subdiag",
                               self.subdiag.size, f"expected {expected} entries")
        if self.superdiag.size != expected:
            raise PricingError(ErrorKind.DIMENSION_MISMATCH, "superdiag",
                               self.superdiag.size, f"expected {expected} entries")

    @property
    def size(self) -> int:
        return self.diag.size

    def __len__(self) -> int:
        return self.size

    def multiply(self, x: ArrayLike) -> np.ndarray:
        """Matrix-vector product A x"""
        x = _as_vector(x)
        if x.size != self.size:
            raise PricingError(ErrorKind.DIMENSION_MISMATCH, "x", x.size,
                               f"expected {self.size} entries")
        b = self.diag * x
        if self.size > 1:
            b[:-1] += self.superdiag * x[1:]
            b[1:] += self.subdiag * x[:-1]
        return b

    def __matmul__(self, x: ArrayLike) -> np.ndarray:
        return self.multiply(x)

    def decompose(self) -> Tuple[LowerBidiagonal, UpperBidiagonal]:
        """
        LU factors of the matrix

        l_i = s_i / v_i and v_{i+1} = d_{i+1} - l_i c_i, with v_0 = d_0.
        L has a unit diagonal and l below it; U has v on the diagonal and the
        matrix superdiagonal above it.
        """
        n = self.size
        d = self.diag.tolist()
        s = self.subdiag.tolist()
        c = self.superdiag.tolist()
        l = [0.0] * max(n - 1, 0)
        v = d[:1]
        for i in range(n - 1):
            _check_pivot(v[i], i)
            l[i] = s[i] / v[i]
            v.append(d[i + 1] - l[i] * c[i])
        return LowerBidiagonal(l, np.ones(n)), UpperBidiagonal(v, self.superdiag)

    def solve(self, b: ArrayLike) -> np.ndarray:
        """Solve A x = b"""
        b = _as_vector(b)
        if b.size != self.size:
            raise PricingError(ErrorKind.DIMENSION_MISMATCH, "b", b.size,
                               f"expected {self.size} entries")
        lower, upper = self.decompose()
        y = lower.solve(b)
        return upper.solve(y)

    def to_dense(self) -> np.ndarray:
        return (np.diag(self.diag)
                + np.diag(self.subdiag, k=-1)
                + np.diag(self.superdiag, k=1))

    def display(self, precision: int = 2, width: int = 8) -> str:
        """Formatted dense view of the matrix"""
        rows = []
        for row in self.to_dense():
            rows.append(" ".join(f"{value:{width}.{precision}f}" for value in row))
        return "\n".join(rows)

    def __repr__(self) -> str:
        return f"TridiagonalMatrix(size={self.size})"


def scale(k: float, v: ArrayLike) -> np.ndarray:
    """k * v as a new vector"""
    return k * _as_vector(v)


def add_boundary(v: ArrayLike, lower: float = 0.0, upper: float = 0.0) -> np.ndarray:
    """
    Inject boundary contributions into a right-hand side

    `lower` is added to the first entry and `upper` to the last one.
    """
    out = _as_vector(v).copy()
    if out.size == 0:
        return out
    out[0] += lower
    out[-1] += upper
    return out


def elementwise_subtract(v1: ArrayLike, v2: ArrayLike) -> np.ndarray:
    v1 = _as_vector(v1)
    v2 = _as_vector(v2)
    if v1.size != v2.size:
        raise PricingError(ErrorKind.DIMENSION_MISMATCH, "v2", v2.size,
                           f"expected {v1.size} entries")
    return v1 - v2
