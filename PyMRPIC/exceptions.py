# Exceptions raised by the space-charge initialization.
# Neither is recoverable: both invalidate the physical result of the step.


class UnsupportedGeometryError(RuntimeError):
    """Raised when space-charge initialization is requested in a geometry that is not implemented."""


class SolverDivergenceError(RuntimeError):
    """Raised when the Poisson solve does not reach the requested tolerance."""
