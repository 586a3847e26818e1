"""
Independent reference prices used to cross-check the grid solver

- analytical_black_scholes: closed-form European price under a constant rate
- reference_american_put: a constant-rate Crank-Nicolson / projected SOR
  American put on a [0, 3K] grid, read off by linear interpolation in spot

Neither is used by the solver itself; the comparison scripts and the tests
bound the solver's prices with them.
"""

import logging
import math

import numpy as np
from scipy.stats import norm

logger = logging.getLogger(__name__)


def analytical_black_scholes(S: float, K: float, T: float, r: float, sigma: float,
                             option_type: str = 'call') -> float:
    """
    Calculate the analytical Black-Scholes option price

    Parameters:
    -----------
    S : float
        Current stock price
    K : float
        Strike price
    T : float
        Time to expiration
    r : float
        Constant risk-free rate
    sigma : float
        Volatility
    option_type : str
        'call' or 'put'

    Returns:
    --------
    float
        Option price
    """
    option_type = option_type.lower()
    if option_type not in ('call', 'put'):
        raise ValueError("option_type must be 'call' or 'put'")

    discounted_strike = K * np.exp(-r * T)
    if T <= 0 or sigma <= 0:
        forward_intrinsic = S - discounted_strike
        if option_type == 'call':
            return float(max(forward_intrinsic, 0.0))
        return float(max(-forward_intrinsic, 0.0))

    d1 = (np.log(S / K) + (r + 0.5 * sigma**2) * T) / (sigma * np.sqrt(T))
    d2 = d1 - sigma * np.sqrt(T)

    if option_type == 'call':
        price = S * norm.cdf(d1) - discounted_strike * norm.cdf(d2)
    else:
        price = discounted_strike * norm.cdf(-d2) - S * norm.cdf(-d1)

    return float(price)


def reference_american_put(S: float, K: float, T: float, sigma: float, r: float,
                           spot_steps: int = 120, dt: float = 0.005,
                           omega: float = 1.5, tol: float = 1e-8,
                           max_iterations: int = 100) -> float:
    """
    American put by Crank-Nicolson with projected SOR at a constant rate

    The grid spans [0, 3K] with `spot_steps` intervals; the time step is
    adjusted so that it divides T. Each SOR sweep is capped at
    `max_iterations`; hitting the cap is logged, not raised.
    """
    if S <= 0 or K <= 0 or T <= 0 or sigma <= 0:
        raise ValueError("S, K, T and sigma must be positive")
    if spot_steps < 2:
        raise ValueError("spot_steps must be at least 2")

    I = spot_steps
    dS = 3 * K / I
    i_star = int(math.floor(S / dS))
    if i_star + 1 > I:
        raise ValueError("spot price must lie below 3K")
    weight = (S - i_star * dS) / dS

    J = max(int(math.ceil(T / dt)), 1)
    dt = T / J

    i = np.arange(I + 1, dtype=float)
    payoff = np.maximum(K - i * dS, 0.0)
    a = dt / 4 * (sigma**2 * i**2 - r * i)
    b = 1 - dt / 2 * (r + sigma**2 * i**2)
    c = dt / 4 * (sigma**2 * i**2 + r * i)
    B = 1 + dt / 2 * (r + sigma**2 * i**2)

    V = payoff.copy()
    V[0], V[I] = K, 0.0
    for _ in range(J):
        predictor = np.zeros(I + 1)
        predictor[1:I] = a[1:I] * V[:-2] + b[1:I] * V[1:I] + c[1:I] * V[2:]

        current = V.tolist()
        for k in range(1, max_iterations + 1):
            error = 0.0
            for n in range(1, I):
                target = (predictor[n] + a[n] * current[n - 1] + c[n] * current[n + 1]) / B[n]
                updated = max(payoff[n], current[n] + omega * (target - current[n]))
                error += (updated - current[n]) ** 2
                current[n] = updated
            if error <= tol:
                break
        else:
            logger.warning("Reference PSOR hit %d sweeps (error %.3e)",
                           max_iterations, error)
        V = np.array(current)

    return float((1 - weight) * V[i_star] + weight * V[i_star + 1])
