"""
Unit tests for the reference pricers
"""

import unittest
import numpy as np

from reference_pricers import analytical_black_scholes, reference_american_put


class TestAnalyticalBlackScholes(unittest.TestCase):
    """Test the closed-form price"""

    def test_known_values(self):
        self.assertAlmostEqual(analytical_black_scholes(100, 100, 1.0, 0.05, 0.2, 'call'),
                               10.4506, places=4)
        self.assertAlmostEqual(analytical_black_scholes(100, 100, 1.0, 0.05, 0.2, 'put'),
                               5.5735, places=4)

    def test_put_call_parity(self):
        S, T, r, sigma = 50.0, 0.75, 0.03, 0.25
        for K in (40.0, 50.0, 65.0):
            call = analytical_black_scholes(S, K, T, r, sigma, 'call')
            put = analytical_black_scholes(S, K, T, r, sigma, 'Put')
            self.assertAlmostEqual(call - put, S - K * np.exp(-r * T), places=12)

    def test_degenerate_inputs(self):
        self.assertEqual(analytical_black_scholes(110, 100, 0.0, 0.05, 0.2, 'call'), 10.0)
        self.assertEqual(analytical_black_scholes(110, 100, 0.0, 0.05, 0.2, 'put'), 0.0)
        self.assertAlmostEqual(analytical_black_scholes(90, 100, 1.0, 0.05, 0.0, 'put'),
                               100 * np.exp(-0.05) - 90, places=12)

    def test_invalid_option_type(self):
        with self.assertRaises(ValueError):
            analytical_black_scholes(100, 100, 1.0, 0.05, 0.2, 'straddle')


class TestReferenceAmericanPut(unittest.TestCase):
    """Test the constant-rate American put"""

    def test_early_exercise_premium(self):
        for K in (90.0, 100.0, 110.0):
            american = reference_american_put(100.0, K, 1.0, 0.2, 0.05)
            european = analytical_black_scholes(100.0, K, 1.0, 0.05, 0.2, 'put')
            self.assertGreater(american, european)
            self.assertGreaterEqual(american, max(K - 100.0, 0.0))

    def test_known_value(self):
        self.assertAlmostEqual(reference_american_put(100.0, 100.0, 1.0, 0.2, 0.05),
                               6.09, delta=0.05)

    def test_interpolates_between_nodes(self):
        low = reference_american_put(99.0, 100.0, 1.0, 0.2, 0.05)
        high = reference_american_put(101.0, 100.0, 1.0, 0.2, 0.05)
        middle = reference_american_put(100.0, 100.0, 1.0, 0.2, 0.05)
        self.assertGreater(low, middle)
        self.assertGreater(middle, high)

    def test_invalid_inputs(self):
        with self.assertRaises(ValueError):
            reference_american_put(-1.0, 100.0, 1.0, 0.2, 0.05)
        with self.assertRaises(ValueError):
            reference_american_put(100.0, 100.0, 1.0, 0.2, 0.05, spot_steps=1)
        with self.assertRaises(ValueError):
            reference_american_put(300.0, 100.0, 1.0, 0.2, 0.05)


if __name__ == '__main__':
    unittest.main(verbosity=2)
