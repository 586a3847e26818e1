"""
Piecewise-linear interest rate curve

The curve is given as (time, rate) knots and interpolated linearly between
them. It provides the instantaneous rate r(t) used in the PDE coefficients and
the integral of r over an interval, used to discount the boundary values:

    DF(t0, t1) = exp(-∫_{t0}^{t1} r(u) du)

The curve is only defined between its first and last knot. Evaluating it
outside that range raises instead of extrapolating.
"""

import numpy as np
from scipy.integrate import simpson
from typing import Iterable, List, Optional, Tuple, Union

from pricing_errors import ErrorKind, PricingError


def _segment_area(t1: float, r1: float, t2: float, r2: float) -> float:
    """Signed area under the straight line (t1, r1) -> (t2, r2)"""
    if r1 * r2 >= 0:
        return 0.5 * (r1 + r2) * (t2 - t1)
    # the rate changes sign: split at the zero crossing
    x = (t1 * r2 - t2 * r1) / (r2 - r1)
    return 0.5 * r1 * (x - t1) + 0.5 * r2 * (t2 - x)


class DiscountCurve:
    """Time-dependent risk-free rate defined by linear interpolation of knots"""

    def __init__(self, knots: Iterable[Tuple[float, float]]):
        """
        Parameters:
        -----------
        knots : iterable of (time, rate)
            Curve knots; times must be strictly increasing and there must be
            at least two of them
        """
        pairs = [tuple(k) for k in knots]
        if len(pairs) < 2:
            raise PricingError(ErrorKind.INVALID_CURVE, "knots", pairs,
                               "at least two knots are required")
        if any(len(p) != 2 for p in pairs):
            raise PricingError(ErrorKind.INVALID_CURVE, "knots", pairs,
                               "knots must be (time, rate) pairs")

        times = np.array([p[0] for p in pairs], dtype=float)
        rates = np.array([p[1] for p in pairs], dtype=float)
        if not (np.all(np.isfinite(times)) and np.all(np.isfinite(rates))):
            raise PricingError(ErrorKind.INVALID_CURVE, "knots", pairs,
                               "knots must be finite")
        if np.any(np.diff(times) <= 0):
            raise PricingError(ErrorKind.INVALID_CURVE, "knots", pairs,
                               "knot times must be strictly increasing")

        times.setflags(write=False)
        rates.setflags(write=False)
        self._times = times
        self._rates = rates

    @classmethod
    def flat(cls, rate: float, t_max: float, t_min: float = 0.0) -> "DiscountCurve":
        """Constant rate between t_min and t_max"""
        return cls([(t_min, rate), (t_max, rate)])

    @property
    def times(self) -> np.ndarray:
        return self._times

    @property
    def rates(self) -> np.ndarray:
        return self._rates

    @property
    def knots(self) -> List[Tuple[float, float]]:
        return [(float(t), float(r)) for t, r in zip(self._times, self._rates)]

    @property
    def t_min(self) -> float:
        return float(self._times[0])

    @property
    def t_max(self) -> float:
        return float(self._times[-1])

    def covers(self, t0: float, t1: float) -> bool:
        """True if [t0, t1] lies within the knot range"""
        return self.t_min <= min(t0, t1) and max(t0, t1) <= self.t_max

    def _check_domain(self, t, field: str = "t"):
        t_arr = np.asarray(t, dtype=float)
        if np.any(t_arr < self._times[0]) or np.any(t_arr > self._times[-1]) \
                or np.any(np.isnan(t_arr)):
            raise PricingError(ErrorKind.CURVE_DOMAIN, field, t,
                               f"curve is defined on [{self.t_min}, {self.t_max}]")
        return t_arr

    def rate(self, t: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """
        Instantaneous rate at time t

        Linear interpolation between the two knots bracketing t. Accepts a
        scalar or an array of times.
        """
        t_arr = self._check_domain(t)
        r = np.interp(t_arr, self._times, self._rates)
        if r.ndim == 0:
            return float(r)
        return r

    __call__ = rate

    def integral(self, t0: float, t1: Optional[float] = None) -> float:
        """
        Exact integral of the rate

        integral(t) is ∫_0^t r(u) du, integral(t0, t1) is ∫_{t0}^{t1} r(u) du.
        Each linear piece contributes its signed trapezoid, so the result is
        exact for the piecewise-linear curve.
        """
        if t1 is None:
            t0, t1 = 0.0, t0
        self._check_domain(t0, "t0")
        self._check_domain(t1, "t1")
        if t1 < t0:
            return -self.integral(t1, t0)

        total = 0.0
        for k in range(len(self._times) - 1):
            lo = max(t0, self._times[k])
            hi = min(t1, self._times[k + 1])
            if hi <= lo:
                continue
            r_lo = np.interp(lo, self._times, self._rates)
            r_hi = np.interp(hi, self._times, self._rates)
            total += _segment_area(lo, r_lo, hi, r_hi)
        return float(total)

    def integral_simpson(self, t0: float, t1: float, intervals: int = 100) -> float:
        """
        Simpson's rule approximation of ∫_{t0}^{t1} r(u) du

        `intervals` must be a positive even number of sub-intervals.
        """
        if not isinstance(intervals, (int, np.integer)) or intervals <= 0 \
                or intervals % 2 != 0:
            raise PricingError(ErrorKind.INVALID_INTERVALS, "intervals", intervals)
        self._check_domain(t0, "t0")
        self._check_domain(t1, "t1")
        if t0 == t1:
            return 0.0
        u = np.linspace(t0, t1, intervals + 1)
        return float(simpson(self.rate(u), x=u))

    def discount_factor(self, t0: float, t1: float) -> float:
        """exp(-∫_{t0}^{t1} r), the value at t0 of one unit paid at t1"""
        return float(np.exp(-self.integral(t0, t1)))

    def shift(self, amount: float) -> "DiscountCurve":
        """Copy of the curve with `amount` added to every knot rate"""
        return DiscountCurve(zip(self._times, self._rates + amount))

    def __add__(self, amount: float) -> "DiscountCurve":
        return self.shift(amount)

    def __sub__(self, amount: float) -> "DiscountCurve":
        return self.shift(-amount)

    def __len__(self) -> int:
        return len(self._times)

    def __eq__(self, other) -> bool:
        if not isinstance(other, DiscountCurve):
            return NotImplemented
        return (np.array_equal(self._times, other._times)
                and np.array_equal(self._rates, other._rates))

    def __hash__(self):
        return hash((self._times.tobytes(), self._rates.tobytes()))

    def __repr__(self) -> str:
        return f"DiscountCurve({self.knots})"
