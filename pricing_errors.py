"""
Error types for the finite-difference option pricer

Every failure raised by the pricer is a PricingError tagged with an ErrorKind.
The kind says what went wrong, `field` names the offending input (when there
is one) and `value` carries the value received.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    """Discriminates the failures the pricer can report"""

    # request validation
    INVALID_CONTRACT_TYPE = "contract type must be 1 (call) or -1 (put)"
    INVALID_EXERCISE_TYPE = "exercise type must be European or American"
    INVALID_MATURITY = "maturity must satisfy T >= T0 >= 0"
    INVALID_STRIKE = "strike must be positive"
    INVALID_TIME_MESH = "time mesh must be a positive integer"
    INVALID_SPOT_MESH = "spot mesh must be a positive integer"
    INVALID_SPOT = "spot price must be positive"
    INVALID_VOLATILITY = "volatility must be positive"
    INVALID_TOLERANCE = "SOR tolerance must be positive"
    INVALID_RELAXATION = "SOR relaxation factor must lie in (0, 2)"
    INVALID_ITERATIONS = "SOR iteration cap must be a positive integer"
    INVALID_SPOT_MULTIPLE = "spot truncation multiple must be greater than 1"

    # curve
    INVALID_CURVE = "invalid interest rate curve"
    INVALID_INTERVALS = "number of Simpson intervals must be a positive even integer"
    CURVE_DOMAIN = "time outside the interest rate curve"

    # numerics
    DIMENSION_MISMATCH = "vector and matrix dimensions do not match"
    SINGULAR_MATRIX = "zero pivot in tridiagonal solve"
    CONVERGENCE = "projected SOR did not converge"
    GRID_BOUNDS = "finite difference stencil leaves the grid"

    @property
    def is_validation(self) -> bool:
        return self.name.startswith("INVALID_")


class PricingError(ValueError):
    """Raised for invalid inputs and numerical failures of the pricer"""

    def __init__(self, kind: ErrorKind, field: Optional[str] = None,
                 value: Any = None, detail: Optional[str] = None):
        self.kind = kind
        self.field = field
        self.value = value
        self.detail = detail
        super().__init__(self._format())

    def _format(self) -> str:
        msg = self.kind.value
        if self.field is not None:
            msg = f"{msg} ({self.field}={self.value!r})"
        if self.detail:
            msg = f"{msg}: {self.detail}"
        return msg
