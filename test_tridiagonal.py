"""
Unit tests for the tridiagonal matrix and its LU solve
"""

import unittest
import numpy as np
import numpy.testing as npt
from scipy.linalg import solve_banded

from pricing_errors import ErrorKind, PricingError
from tridiagonal import (
    LowerBidiagonal,
    UpperBidiagonal,
    TridiagonalMatrix,
    scale,
    add_boundary,
    elementwise_subtract
)


def random_dominant_system(n, seed=0):
    """Random strictly diagonally dominant tridiagonal matrix"""
    rng = np.random.default_rng(seed)
    sub = rng.uniform(-1, 1, n - 1)
    sup = rng.uniform(-1, 1, n - 1)
    diag = rng.uniform(2.5, 4.0, n) * rng.choice([-1, 1], n)
    return TridiagonalMatrix(sub, diag, sup)


class TestTridiagonalConstruction(unittest.TestCase):
    """Test diagonal length checks"""

    def test_valid_lengths(self):
        A = TridiagonalMatrix([1, 2], [3, 4, 5], [6, 7])
        self.assertEqual(A.size, 3)
        self.assertEqual(len(A), 3)

    def test_mismatched_lengths(self):
        with self.assertRaises(PricingError) as ctx:
            TridiagonalMatrix([1, 2, 3], [3, 4, 5], [6, 7])
        self.assertIs(ctx.exception.kind, ErrorKind.DIMENSION_MISMATCH)
        with self.assertRaises(PricingError):
            TridiagonalMatrix([1, 2], [3, 4, 5], [6])

    def test_to_dense(self):
        A = TridiagonalMatrix([1, 2], [3, 4, 5], [6, 7])
        expected = np.array([[3, 6, 0],
                             [1, 4, 7],
                             [0, 2, 5]], dtype=float)
        npt.assert_array_equal(A.to_dense(), expected)

    def test_display(self):
        A = TridiagonalMatrix([1], [2, 3], [4])
        lines = A.display().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertEqual(lines[0].split(), ['2.00', '4.00'])
        self.assertEqual(lines[1].split(), ['1.00', '3.00'])


class TestTridiagonalMultiply(unittest.TestCase):
    """Test the matrix-vector product"""

    def test_matches_dense_product(self):
        A = random_dominant_system(12, seed=1)
        x = np.linspace(-1, 2, 12)
        npt.assert_allclose(A.multiply(x), A.to_dense() @ x, rtol=1e-14)
        npt.assert_allclose(A @ x, A.to_dense() @ x, rtol=1e-14)

    def test_one_by_one(self):
        A = TridiagonalMatrix([], [2.0], [])
        npt.assert_array_equal(A.multiply([3.0]), [6.0])

    def test_length_mismatch(self):
        A = TridiagonalMatrix([1, 2], [3, 4, 5], [6, 7])
        with self.assertRaises(PricingError) as ctx:
            A.multiply([1.0, 2.0])
        self.assertIs(ctx.exception.kind, ErrorKind.DIMENSION_MISMATCH)


class TestTridiagonalSolve(unittest.TestCase):
    """Test the LU solve"""

    def test_round_trip(self):
        for n, seed in [(2, 3), (7, 4), (50, 5), (400, 6)]:
            A = random_dominant_system(n, seed)
            x = np.random.default_rng(seed).normal(size=n)
            npt.assert_allclose(A.solve(A.multiply(x)), x, rtol=1e-10, atol=1e-12)

    def test_matches_banded_solver(self):
        A = random_dominant_system(30, seed=7)
        b = np.arange(30, dtype=float)
        ab = np.zeros((3, 30))
        ab[0, 1:] = A.superdiag
        ab[1, :] = A.diag
        ab[2, :-1] = A.subdiag
        npt.assert_allclose(A.solve(b), solve_banded((1, 1), ab, b), rtol=1e-10)

    def test_decompose_reproduces_matrix(self):
        A = random_dominant_system(8, seed=8)
        lower, upper = A.decompose()
        L = np.diag(lower.diag) + np.diag(lower.subdiag, k=-1)
        U = np.diag(upper.diag) + np.diag(upper.superdiag, k=1)
        npt.assert_array_equal(lower.diag, np.ones(8))
        npt.assert_allclose(L @ U, A.to_dense(), atol=1e-12)

    def test_one_by_one(self):
        A = TridiagonalMatrix([], [4.0], [])
        npt.assert_array_equal(A.solve([2.0]), [0.5])

    def test_zero_pivot_raises(self):
        A = TridiagonalMatrix([1.0], [0.0, 1.0], [1.0])
        with self.assertRaises(PricingError) as ctx:
            A.solve([1.0, 1.0])
        self.assertIs(ctx.exception.kind, ErrorKind.SINGULAR_MATRIX)

    def test_pivot_vanishing_during_elimination(self):
        # v1 = 1 - (1/1) * 1 = 0
        A = TridiagonalMatrix([1.0, 1.0], [1.0, 1.0, 1.0], [1.0, 1.0])
        with self.assertRaises(PricingError) as ctx:
            A.solve([1.0, 2.0, 3.0])
        self.assertIs(ctx.exception.kind, ErrorKind.SINGULAR_MATRIX)

    def test_rhs_length_mismatch(self):
        A = random_dominant_system(4)
        with self.assertRaises(PricingError) as ctx:
            A.solve([1.0, 2.0])
        self.assertIs(ctx.exception.kind, ErrorKind.DIMENSION_MISMATCH)


class TestBidiagonalSolves(unittest.TestCase):
    """Test the triangular helpers"""

    def test_lower_forward_substitution(self):
        L = LowerBidiagonal([0.5, -1.0], [1.0, 2.0, 4.0])
        x = np.array([1.0, -2.0, 3.0])
        dense = np.diag([1.0, 2.0, 4.0]) + np.diag([0.5, -1.0], k=-1)
        npt.assert_allclose(L.solve(dense @ x), x)

    def test_upper_backward_substitution(self):
        U = UpperBidiagonal([2.0, 3.0, 5.0], [1.0, -1.0])
        x = np.array([0.5, 1.5, -2.0])
        dense = np.diag([2.0, 3.0, 5.0]) + np.diag([1.0, -1.0], k=1)
        npt.assert_allclose(U.solve(dense @ x), x)

    def test_bad_shapes(self):
        with self.assertRaises(PricingError):
            LowerBidiagonal([1.0, 2.0], [1.0, 1.0])
        with self.assertRaises(PricingError):
            UpperBidiagonal([1.0, 1.0], [])


class TestVectorHelpers(unittest.TestCase):
    """Test the right-hand side helpers"""

    def test_scale(self):
        npt.assert_array_equal(scale(-1.0, [1.0, -2.0]), [-1.0, 2.0])

    def test_add_boundary(self):
        v = np.array([1.0, 2.0, 3.0])
        out = add_boundary(v, 0.5, -1.0)
        npt.assert_array_equal(out, [1.5, 2.0, 2.0])
        npt.assert_array_equal(v, [1.0, 2.0, 3.0])

    def test_add_boundary_single_entry(self):
        npt.assert_array_equal(add_boundary([1.0], 0.5, 0.25), [1.75])

    def test_elementwise_subtract(self):
        npt.assert_array_equal(elementwise_subtract([3.0, 2.0], [1.0, 5.0]), [2.0, -3.0])
        with self.assertRaises(PricingError):
            elementwise_subtract([1.0], [1.0, 2.0])


if __name__ == '__main__':
    unittest.main(verbosity=2)
