"""
Exception hierarchy.

Every failure raised by the package derives from OrbitPointingError so that
callers can catch the whole family at once, while still being able to react to
a specific kind:

    OrbitPointingError
    ├── AttitudeFailureError        attitude could not be computed
    │   └── GeometryMissError       pointing line does not reach the body
    ├── RootNotFoundError           event root isolation did not converge
    └── InvalidConfigurationError   rejected at construction time
"""

from __future__ import annotations


class OrbitPointingError(Exception):
    """Base class for all package errors."""


class AttitudeFailureError(OrbitPointingError):
    """An attitude provider could not produce an attitude."""


class GeometryMissError(AttitudeFailureError):
    """The pointing line misses the body shape, or hits it behind the satellite.

    Attributes:
        epoch_mjd_tt: Epoch of the failing evaluation.
    """

    def __init__(self, message: str, epoch_mjd_tt: float = None):
        super().__init__(message)
        self.epoch_mjd_tt = epoch_mjd_tt


class RootNotFoundError(OrbitPointingError):
    """Event root isolation exceeded its iteration budget.

    Attributes:
        detector: The event detector whose root could not be isolated.
        bracket_s: (start, end) of the bracketing interval [seconds since
            propagation start].
        iterations: Number of iterations performed.
    """

    def __init__(self, message: str, detector=None,
                 bracket_s: tuple[float, float] = None, iterations: int = 0):
        super().__init__(message)
        self.detector = detector
        self.bracket_s = bracket_s
        self.iterations = iterations


class InvalidConfigurationError(OrbitPointingError, ValueError):
    """A parameter is physically or numerically invalid."""
