"""
Black-Scholes PDE Solver with a Term-Structured Rate using Crank-Nicolson

This module prices European and American vanilla options by solving the
Black-Scholes partial differential equation on a spot x time grid:

∂V/∂t + (1/2)σ²S²∂²V/∂S² + r(t)S∂V/∂S - r(t)V = 0

Where:
- V(S,t) is the option value
- S is the underlying asset price, discretised as S_j = j·dS, j = 0..M
- t is time, discretised as t_i = T0 + i·dT, i = 0..N
- σ is volatility
- r(t) is the risk-free rate read from a piecewise-linear DiscountCurve

With Crank-Nicolson weighting the step from t_i back to t_{i-1} reads

    C(i-1) F^{i-1} = D(i) F^{i} + K

where, for interior nodes j = 1..M-1,

    a_j = dT/4 (σ²j² - r j),  b_j = -dT/2 (σ²j² + r),  c_j = dT/4 (σ²j² + r j)
    C = Tridiag(-a, 1-b, -c),  D = Tridiag(a, 1+b, c)

and K carries the boundary values at both ends. European steps are solved
directly with the tridiagonal LU solve; American steps run a projected SOR
iteration enforcing V >= payoff.
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Dict, Sequence, Tuple, Union

import numpy as np

from discount_curve import DiscountCurve
from grid_display import format_grid
from pricing_errors import ErrorKind, PricingError
from tridiagonal import TridiagonalMatrix, add_boundary, elementwise_subtract

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.01
DEFAULT_OMEGA = 1.2
DEFAULT_MAX_ITERATIONS = 10_000
DEFAULT_SPOT_MULTIPLE = 5.0

CurveLike = Union[DiscountCurve, Sequence[Tuple[float, float]]]


class ContractType(IntEnum):
    CALL = 1
    PUT = -1


class ExerciseType(IntEnum):
    AMERICAN = 0
    EUROPEAN = 1


def _contract_type(value) -> ContractType:
    if isinstance(value, str):
        key = value.strip().lower()
        if key == 'call':
            return ContractType.CALL
        if key == 'put':
            return ContractType.PUT
    elif not isinstance(value, bool):
        try:
            return ContractType(value)
        except (ValueError, TypeError):
            pass
    raise PricingError(ErrorKind.INVALID_CONTRACT_TYPE, "contract_type", value)


def _exercise_type(value) -> ExerciseType:
    if isinstance(value, str):
        key = value.strip().lower()
        if key == 'european':
            return ExerciseType.EUROPEAN
        if key == 'american':
            return ExerciseType.AMERICAN
    else:
        try:
            return ExerciseType(value)
        except (ValueError, TypeError):
            pass
    raise PricingError(ErrorKind.INVALID_EXERCISE_TYPE, "exercise_type", value)


def _is_positive_int(value) -> bool:
    return (isinstance(value, (int, np.integer)) and not isinstance(value, bool)
            and value > 0)


@dataclass(frozen=True)
class OptionRequest:
    """Validated parameters of one pricing request"""
    contract_type: ContractType
    exercise_type: ExerciseType
    maturity: float
    strike: float
    valuation_time: float
    time_steps: int
    spot_steps: int
    spot: float
    curve: CurveLike
    volatility: float
    tolerance: float = DEFAULT_TOLERANCE
    omega: float = DEFAULT_OMEGA
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    spot_multiple: float = DEFAULT_SPOT_MULTIPLE

    def __post_init__(self):
        object.__setattr__(self, 'contract_type', _contract_type(self.contract_type))
        object.__setattr__(self, 'exercise_type', _exercise_type(self.exercise_type))

        if not (self.maturity >= self.valuation_time >= 0):
            raise PricingError(ErrorKind.INVALID_MATURITY, "maturity",
                               (self.valuation_time, self.maturity),
                               "expected T >= T0 >= 0")
        if not self.strike > 0:
            raise PricingError(ErrorKind.INVALID_STRIKE, "strike", self.strike)
        if not _is_positive_int(self.time_steps):
            raise PricingError(ErrorKind.INVALID_TIME_MESH, "time_steps", self.time_steps)
        if not _is_positive_int(self.spot_steps):
            raise PricingError(ErrorKind.INVALID_SPOT_MESH, "spot_steps", self.spot_steps)
        if not self.spot > 0:
            raise PricingError(ErrorKind.INVALID_SPOT, "spot", self.spot)
        if not self.volatility > 0:
            raise PricingError(ErrorKind.INVALID_VOLATILITY, "volatility", self.volatility)
        if not self.tolerance > 0:
            raise PricingError(ErrorKind.INVALID_TOLERANCE, "tolerance", self.tolerance)
        if not 0 < self.omega < 2:
            raise PricingError(ErrorKind.INVALID_RELAXATION, "omega", self.omega)
        if not _is_positive_int(self.max_iterations):
            raise PricingError(ErrorKind.INVALID_ITERATIONS, "max_iterations",
                               self.max_iterations)
        if not self.spot_multiple > 1:
            raise PricingError(ErrorKind.INVALID_SPOT_MULTIPLE, "spot_multiple",
                               self.spot_multiple)

        curve = self.curve
        if not isinstance(curve, DiscountCurve):
            curve = DiscountCurve(curve)
            object.__setattr__(self, 'curve', curve)
        if not curve.covers(self.valuation_time, self.maturity):
            raise PricingError(ErrorKind.CURVE_DOMAIN, "curve", curve.knots,
                               f"curve must cover [{self.valuation_time}, {self.maturity}]")

    @property
    def is_call(self) -> bool:
        return self.contract_type is ContractType.CALL

    @property
    def is_american(self) -> bool:
        return self.exercise_type is ExerciseType.AMERICAN

    def bumped(self, **changes) -> "OptionRequest":
        """Sibling request with some parameters replaced, validated again"""
        return replace(self, **changes)


def payoff_function(S: np.ndarray, K: float, contract_type: int) -> np.ndarray:
    """
    Intrinsic value max(sign·(S - K), 0)

    Parameters:
    -----------
    S : np.ndarray
        Array of stock prices
    K : float
        Strike price
    contract_type : int
        1 for a call, -1 for a put
    """
    sign = int(_contract_type(contract_type))
    return np.maximum(sign * (np.asarray(S, dtype=float) - K), 0.0)


class GridSolver:
    """
    Finite-difference pricer owning the spot x time grid of one request

    grid[j, i] is the option value at spot S_j = j·dS and time t_i = T0 + i·dT.
    The last column holds the payoff, rows 0 and M the boundary values and,
    once solve() has run, column 0 holds today's values.
    """

    def __init__(self, request: OptionRequest):
        self.request = request
        self.curve: DiscountCurve = request.curve
        self.sign = int(request.contract_type)
        self.M = request.spot_steps
        self.N = request.time_steps
        self.S_max = request.spot_multiple * request.spot

        self.dT = (request.maturity - request.valuation_time) / self.N
        self.dS = self.S_max / self.M

        self.spot_grid = np.arange(self.M + 1) * self.dS
        self.time_grid = np.linspace(request.valuation_time, request.maturity, self.N + 1)

        self._rates = np.asarray(self.curve.rate(self.time_grid), dtype=float)
        self._discount = np.array([
            self.curve.discount_factor(t, request.maturity) for t in self.time_grid
        ])
        self._payoff = payoff_function(self.spot_grid, request.strike, self.sign)

        self.grid = np.zeros((self.M + 1, self.N + 1))
        self.iterations = np.zeros(self.N + 1, dtype=int)
        self._solved = False
        self._set_terminal_condition()

    @classmethod
    def from_parameters(cls,
                        contract_type,
                        exercise_type,
                        T: float,
                        K: float,
                        T0: float,
                        time_steps: int,
                        spot_steps: int,
                        S0: float,
                        curve: CurveLike,
                        volatility: float,
                        tol: float = DEFAULT_TOLERANCE,
                        omega: float = DEFAULT_OMEGA,
                        **options) -> "GridSolver":
        """
        Validate the parameters and solve the grid immediately

        Parameters:
        -----------
        contract_type : int or str
            1 / 'call' or -1 / 'put'
        exercise_type : int or str
            1 / 'european' or 0 / 'american'
        T, K, T0 : float
            Maturity, strike and valuation time
        time_steps, spot_steps : int
            Number of time steps N and spot steps M
        S0 : float
            Spot price
        curve : DiscountCurve or sequence of (time, rate)
            Interest rate curve covering [T0, T]
        volatility : float
            Volatility σ
        tol, omega : float
            PSOR stopping tolerance and relaxation factor
        """
        request = OptionRequest(
            contract_type=contract_type,
            exercise_type=exercise_type,
            maturity=T,
            strike=K,
            valuation_time=T0,
            time_steps=time_steps,
            spot_steps=spot_steps,
            spot=S0,
            curve=curve,
            volatility=volatility,
            tolerance=tol,
            omega=omega,
            **options
        )
        return cls(request).solve()

    # ------------------------------------------------------------------ #
    #  Grid set-up
    # ------------------------------------------------------------------ #

    def _set_terminal_condition(self):
        self.grid[:, self.N] = self._payoff
        self.grid[0, self.N], self.grid[self.M, self.N] = self.boundary_values(self.N)

    def boundary_values(self, i: int) -> Tuple[float, float]:
        """
        Option value at S = 0 and S = S_max at time index i

        European values are the discounted limits, call: 0 and S_max - K·DF,
        put: K·DF and 0, with DF = exp(-∫_{t_i}^T r). American values are
        floored at the payoff.
        """
        K_df = self.request.strike * self._discount[i]
        lower = max(self.sign * (0.0 - K_df), 0.0)
        upper = max(self.sign * (self.S_max - K_df), 0.0)
        if self.request.is_american:
            lower = max(lower, self._payoff[0])
            upper = max(upper, self._payoff[-1])
        return lower, upper

    def coefficients(self, i: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """PDE coefficients a, b, c at time index i for interior nodes j = 1..M-1"""
        j = np.arange(1, self.M, dtype=float)
        sig2 = self.request.volatility ** 2
        r = self._rates[i]
        a = (self.dT / 4) * (sig2 * j * j - r * j)
        b = -(self.dT / 2) * (sig2 * j * j + r)
        c = (self.dT / 4) * (sig2 * j * j + r * j)
        return a, b, c

    @staticmethod
    def implicit_operator(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> TridiagonalMatrix:
        """C = Tridiag(-a, 1 - b, -c)"""
        return TridiagonalMatrix(-a[1:], 1.0 - b, -c[:-1])

    @staticmethod
    def explicit_operator(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> TridiagonalMatrix:
        """D = Tridiag(a, 1 + b, c)"""
        return TridiagonalMatrix(a[1:], 1.0 + b, c[:-1])

    def _edge_coefficients(self, i: int) -> Tuple[float, float]:
        """a_1 and c_{M-1} at time index i"""
        sig2 = self.request.volatility ** 2
        r = self._rates[i]
        m = self.M - 1
        a_1 = (self.dT / 4) * (sig2 - r)
        c_m = (self.dT / 4) * (sig2 * m * m + r * m)
        return a_1, c_m

    def boundary_terms(self, i: int) -> Tuple[float, float]:
        """Contributions of the boundary values to the first and last RHS entries
        for the step from time index i to i-1"""
        if self.M < 2:
            return 0.0, 0.0
        a_cur, c_cur = self._edge_coefficients(i)
        a_prev, c_prev = self._edge_coefficients(i - 1)
        F0_cur, FM_cur = self.boundary_values(i)
        F0_prev, FM_prev = self.boundary_values(i - 1)
        lower = a_cur * F0_cur + a_prev * F0_prev
        upper = c_cur * FM_cur + c_prev * FM_prev
        return lower, upper

    # ------------------------------------------------------------------ #
    #  Backward sweep
    # ------------------------------------------------------------------ #

    def solve(self) -> "GridSolver":
        """Run the backward recursion from maturity to the valuation time"""
        if self._solved:
            return self

        method = 'projected SOR' if self.request.is_american else 'tridiagonal LU'
        logger.debug("Solving %s %s option on a %dx%d grid using %s",
                     self.request.exercise_type.name.lower(),
                     self.request.contract_type.name.lower(),
                     self.M + 1, self.N + 1, method)

        M, N = self.M, self.N
        F = self.grid[1:M, N].copy()
        floor = self._payoff[1:M]
        report_every = max(N // 10, 1)

        for i in range(N, 0, -1):
            a_cur, b_cur, c_cur = self.coefficients(i)
            a_prev, b_prev, c_prev = self.coefficients(i - 1)
            D = self.explicit_operator(a_cur, b_cur, c_cur)
            lower, upper = self.boundary_terms(i)
            rhs = add_boundary(D @ F, lower, upper)

            if self.request.is_american:
                F, sweeps = self._projected_sor(F, rhs, a_prev, b_prev, c_prev, floor, i)
                self.iterations[i - 1] = sweeps
            else:
                C = self.implicit_operator(a_prev, b_prev, c_prev)
                F = C.solve(rhs)

            self.grid[1:M, i - 1] = F
            self.grid[0, i - 1], self.grid[M, i - 1] = self.boundary_values(i - 1)

            if i % report_every == 0:
                logger.debug("Progress: %.1f%% (time = %.4f)",
                             (N - i + 1) / N * 100, self.time_grid[i - 1])

        self._solved = True
        return self

    def _projected_sor(self, F: np.ndarray, rhs: np.ndarray,
                       a: np.ndarray, b: np.ndarray, c: np.ndarray,
                       floor: np.ndarray, step: int) -> Tuple[np.ndarray, int]:
        """
        Solve C x = rhs subject to x >= floor by projected SOR

        Nodes are swept in increasing j so that the lower neighbour is already
        updated (Gauss-Seidel ordering). Stops when the Euclidean norm of the
        change between two sweeps falls to the tolerance.
        """
        n = F.size
        omega = self.request.omega
        tol = self.request.tolerance
        pivot = (1.0 - b).tolist()
        lower = a.tolist()
        upper = c.tolist()
        target = rhs.tolist()
        bound = floor.tolist()
        x = F.tolist()

        error = math.inf
        for sweep in range(1, self.request.max_iterations + 1):
            x_new = [0.0] * n
            for j in range(n):
                residual = target[j] - pivot[j] * x[j]
                if j > 0:
                    residual += lower[j] * x_new[j - 1]
                if j < n - 1:
                    residual += upper[j] * x[j + 1]
                x_new[j] = max(bound[j], x[j] + omega / pivot[j] * residual)
            error = float(np.linalg.norm(elementwise_subtract(x_new, x)))
            x = x_new
            if error <= tol:
                return np.array(x), sweep

        logger.error("Projected SOR stopped after %d sweeps at time index %d "
                     "(last change %.3e, tolerance %.3e)",
                     self.request.max_iterations, step, error, tol)
        raise PricingError(ErrorKind.CONVERGENCE, "tolerance", tol,
                           f"{self.request.max_iterations} sweeps at time index "
                           f"{step}, last change {error:.3e}")

    # ------------------------------------------------------------------ #
    #  Results
    # ------------------------------------------------------------------ #

    @property
    def is_solved(self) -> bool:
        return self._solved

    @property
    def spot_index(self) -> int:
        """Grid row nearest to the spot price"""
        return int(math.floor(self.request.spot / self.dS + 0.5))

    def price(self) -> float:
        """Value today at the grid node nearest to S0"""
        self.solve()
        return float(self.grid[self.spot_index, 0])

    def _neighbours(self, name: str) -> int:
        i0 = self.spot_index
        if i0 - 1 < 0 or i0 + 1 > self.M:
            raise PricingError(ErrorKind.GRID_BOUNDS, "spot_index", i0,
                               f"{name} needs rows {i0 - 1} and {i0 + 1} of 0..{self.M}")
        return i0

    def delta(self) -> float:
        """Central difference ∂V/∂S at the spot node"""
        self.solve()
        i0 = self._neighbours("delta")
        return float((self.grid[i0 + 1, 0] - self.grid[i0 - 1, 0]) / (2 * self.dS))

    def gamma(self) -> float:
        """Second difference ∂²V/∂S² at the spot node"""
        self.solve()
        i0 = self._neighbours("gamma")
        V = self.grid[:, 0]
        return float((V[i0 + 1] + V[i0 - 1] - 2 * V[i0]) / self.dS ** 2)

    def theta(self) -> float:
        """Forward difference ∂V/∂t at the spot node"""
        self.solve()
        if self.dT == 0:
            raise PricingError(ErrorKind.GRID_BOUNDS, "dT", self.dT,
                               "theta needs a positive time step")
        i0 = self.spot_index
        return float((self.grid[i0, 1] - self.grid[i0, 0]) / self.dT)

    def vega(self, h: float = 0.01) -> float:
        """(price(σ + h) - price(σ)) / h from a re-solved sibling grid"""
        bumped = self.request.bumped(volatility=self.request.volatility + h)
        return (GridSolver(bumped).price() - self.price()) / h

    def rho(self, h: float = 1e-4) -> float:
        """(price(r + h) - price(r)) / h, shifting the whole curve by h"""
        bumped = self.request.bumped(curve=self.curve.shift(h))
        return (GridSolver(bumped).price() - self.price()) / h

    def greeks(self) -> Dict[str, float]:
        return {
            'price': self.price(),
            'delta': self.delta(),
            'gamma': self.gamma(),
            'theta': self.theta(),
            'vega': self.vega(),
            'rho': self.rho(),
        }

    def exercise_boundary(self, atol: float = 1e-6) -> np.ndarray:
        """
        Early-exercise frontier at every time node

        For puts the highest spot where the value equals a positive payoff,
        for calls the lowest one; NaN where no node is exercised.
        """
        self.solve()
        boundary = np.full(self.N + 1, np.nan)
        for i in range(self.N + 1):
            exercised = np.where((self._payoff > 0)
                                 & (np.abs(self.grid[:, i] - self._payoff) < atol))[0]
            if len(exercised) > 0:
                idx = exercised[-1] if self.sign < 0 else exercised[0]
                boundary[i] = self.spot_grid[idx]
        return boundary

    def display_grid(self, precision: int = 3, width: int = 8) -> str:
        """Fixed-point dump of the grid, rows = spot index, columns = time index"""
        return format_grid(self.grid, precision=precision, width=width)

    def __repr__(self) -> str:
        r = self.request
        return (f"GridSolver({r.exercise_type.name.lower()} "
                f"{r.contract_type.name.lower()}, K={r.strike}, T={r.maturity}, "
                f"S0={r.spot}, M={self.M}, N={self.N}, solved={self._solved})")
