#!/usr/bin/env python3
"""
Example script demonstrating the grid solver

This script prices options on a term-structured rate curve, prints their
Greeks and compares the grid prices with the closed-form Black-Scholes price
and with an independent American put pricer.
"""

import argparse
import logging

import numpy as np
import matplotlib.pyplot as plt

from discount_curve import DiscountCurve
from grid_display import display_grid, plot_results
from grid_solver import GridSolver
from pricing_errors import PricingError
from reference_pricers import analytical_black_scholes, reference_american_put


def example_1_price_and_greeks():
    """Example 1: European call on an upward sloping curve"""
    print("=" * 60)
    print("EXAMPLE 1: Price and Greeks")
    print("=" * 60)

    curve = [(0.0, 0.0), (1.0, 0.0212)]
    solver = GridSolver.from_parameters(
        contract_type=1,   # call -> 1, put -> -1
        exercise_type=1,   # european -> 1, american -> 0
        T=1.0,
        K=40.0,
        T0=0.0,
        time_steps=500,
        spot_steps=500,
        S0=50.0,
        curve=curve,
        volatility=0.1
    )

    average_rate = DiscountCurve(curve).integral(0.0, 1.0)
    analytical_price = analytical_black_scholes(50.0, 40.0, 1.0, average_rate, 0.1, 'call')

    for name, value in solver.greeks().items():
        print(f"  {name.title():<6} {value:10.5f}")
    print(f"  Analytical price (average rate {average_rate:.4f}): {analytical_price:.5f}")

    return solver


def example_2_european_vs_analytical():
    """Example 2: European grid prices against Black-Scholes"""
    print("\n" + "=" * 60)
    print("EXAMPLE 2: European Prices vs Analytical")
    print("=" * 60)

    r = 0.03
    S0 = 100.0
    print(f"{'Type':<6}{'K':>8}{'Grid':>12}{'Analytical':>12}{'Error':>10}")
    for option_type in ('call', 'put'):
        for K in (80.0, 100.0, 120.0):
            solver = GridSolver.from_parameters(
                option_type, 'european', 1.0, K, 0.0, 200, 200, S0,
                DiscountCurve.flat(r, 1.0), 0.2
            )
            grid_price = solver.price()
            exact = analytical_black_scholes(S0, K, 1.0, r, 0.2, option_type)
            print(f"{option_type:<6}{K:8.1f}{grid_price:12.5f}{exact:12.5f}"
                  f"{abs(grid_price - exact):10.5f}")


def example_3_american_put():
    """Example 3: American put against the reference pricer"""
    print("\n" + "=" * 60)
    print("EXAMPLE 3: American Put vs Reference Pricer")
    print("=" * 60)

    r = 0.05
    S0 = 100.0
    for K in (90.0, 100.0, 110.0):
        american = GridSolver.from_parameters(
            'put', 'american', 1.0, K, 0.0, 200, 200, S0,
            DiscountCurve.flat(r, 1.0), 0.2, tol=1e-6
        )
        european = GridSolver.from_parameters(
            'put', 'european', 1.0, K, 0.0, 200, 200, S0,
            DiscountCurve.flat(r, 1.0), 0.2
        )
        reference = reference_american_put(S0, K, 1.0, 0.2, r)
        print(f"K={K:6.1f}  American={american.price():9.5f}  "
              f"European={european.price():9.5f}  Reference={reference:9.5f}  "
              f"premium={american.price() - european.price():8.5f}")


def example_4_convergence():
    """Example 4: Refining the mesh"""
    print("\n" + "=" * 60)
    print("EXAMPLE 4: Convergence with Mesh Refinement")
    print("=" * 60)

    exact = analytical_black_scholes(100.0, 100.0, 1.0, 0.05, 0.2, 'call')
    meshes = [25, 50, 100, 200, 400]
    errors = []
    for m in meshes:
        solver = GridSolver.from_parameters(
            'call', 'european', 1.0, 100.0, 0.0, m, m, 100.0,
            DiscountCurve.flat(0.05, 1.0), 0.2
        )
        errors.append(abs(solver.price() - exact))
        print(f"  N = M = {m:4d}: price = {solver.price():.6f}, error = {errors[-1]:.2e}")

    plt.figure(figsize=(8, 6))
    plt.loglog(meshes, errors, 'bo-', linewidth=2)
    plt.xlabel('Mesh size (N = M)')
    plt.ylabel('Absolute error')
    plt.title('Convergence to the Black-Scholes price')
    plt.grid(True, alpha=0.3)
    plt.show()
    return np.array(errors)


def main():
    parser = argparse.ArgumentParser(description="Grid solver demonstrations")
    parser.add_argument("--plot", action="store_true", help="Plot the example grid")
    parser.add_argument("--dump", action="store_true", help="Print a small grid")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")

    try:
        solver = example_1_price_and_greeks()
        example_2_european_vs_analytical()
        example_3_american_put()
        if args.plot:
            plot_results(solver)
            example_4_convergence()
        if args.dump:
            small = GridSolver.from_parameters('put', 'american', 1.0, 40.0, 0.0,
                                               5, 10, 40.0, [(0.0, 0.02), (1.0, 0.03)], 0.3)
            display_grid(small)
    except PricingError as e:
        print(f"Exception -> {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
