"""
Event detectors.

An event is the zero-crossing of a continuous scalar function g(state). The
propagator samples g at most every `max_check_interval` seconds, isolates the
root of any sign change to within `threshold` seconds using at most
`max_iteration_count` iterations, then asks the detector what to do.

Detectors:
    - EventDetector: abstract capability
    - AbstractDetector: stores and validates the convergence parameters
    - DateDetector: fires at a fixed epoch
    - ApsideDetector: fires at perigee and apogee
"""

from __future__ import annotations

import numpy as np
from abc import ABC, abstractmethod

from ..core.config import EventDetectionConfig
from ..core.constants import SECONDS_PER_DAY
from ..core.errors import InvalidConfigurationError
from ..core.types import EventAction, SpacecraftState
from .orbits import EquinoctialOrbit


class EventDetector(ABC):
    """Capability: scalar switching function plus the reaction to its roots."""

    @property
    @abstractmethod
    def max_check_interval(self) -> float:
        """Maximal time between two g samples [s]."""

    @property
    @abstractmethod
    def max_iteration_count(self) -> int:
        """Root isolation iteration budget."""

    @property
    @abstractmethod
    def threshold(self) -> float:
        """Convergence threshold on the event time [s]."""

    @abstractmethod
    def g(self, state: SpacecraftState) -> float:
        """Switching function; events are its zero-crossings."""

    @abstractmethod
    def event_occurred(self, state: SpacecraftState) -> EventAction:
        """Reaction once a root has been isolated.

        Args:
            state: State at the event epoch.

        Returns:
            CONTINUE, STOP or RESET_STATE.
        """

    def reset_state(self, old_state: SpacecraftState) -> SpacecraftState:
        """New state to continue from after a RESET_STATE action.

        Must not modify `old_state`. Default: no change.
        """
        return old_state


class AbstractDetector(EventDetector):
    """Detector owning its convergence parameters."""

    def __init__(self, max_check_interval: float = None,
                 threshold: float = None,
                 max_iteration_count: int = None,
                 action: EventAction = EventAction.STOP,
                 config: EventDetectionConfig = None):
        """Initialize and validate convergence parameters.

        Args:
            max_check_interval: Maximal sampling interval [s].
            threshold: Root convergence threshold [s].
            max_iteration_count: Root isolation iteration budget.
            action: Action returned by event_occurred.
            config: Defaults for the unset parameters. Defaults to
                EventDetectionConfig().
        """
        defaults = config or EventDetectionConfig()
        if max_check_interval is None:
            max_check_interval = defaults.max_check_interval_s
        if threshold is None:
            threshold = defaults.threshold_s
        if max_iteration_count is None:
            max_iteration_count = defaults.max_iteration_count

        if not np.isfinite(max_check_interval) or max_check_interval <= 0.0:
            raise InvalidConfigurationError(
                f"max check interval must be positive, got {max_check_interval}")
        if not np.isfinite(threshold) or threshold <= 0.0:
            raise InvalidConfigurationError(f"threshold must be positive, got {threshold}")
        if int(max_iteration_count) != max_iteration_count or max_iteration_count <= 0:
            raise InvalidConfigurationError(
                f"max iteration count must be a positive integer, got {max_iteration_count}")

        self._max_check_interval = float(max_check_interval)
        self._threshold = float(threshold)
        self._max_iteration_count = int(max_iteration_count)
        self._action = action

    @property
    def max_check_interval(self) -> float:
        return self._max_check_interval

    @property
    def max_iteration_count(self) -> int:
        return self._max_iteration_count

    @property
    def threshold(self) -> float:
        return self._threshold

    def event_occurred(self, state: SpacecraftState) -> EventAction:
        return self._action


class DateDetector(AbstractDetector):
    """Fires when the propagation reaches a given epoch.

    g = (epoch - target) in seconds, increasing through zero.
    """

    def __init__(self, target_epoch_mjd_tt: float, **kwargs):
        super().__init__(**kwargs)
        self.target_epoch_mjd_tt = target_epoch_mjd_tt

    def g(self, state: SpacecraftState) -> float:
        return (state.epoch_mjd_tt - self.target_epoch_mjd_tt) * SECONDS_PER_DAY


class ApsideDetector(AbstractDetector):
    """Fires at perigee (g increasing) and apogee (g decreasing).

    g = r · v, which vanishes where the radial velocity vanishes. The
    sampling interval defaults to a third of the orbital period and the
    threshold to 1e-13 of it.
    """

    def __init__(self, orbit: EquinoctialOrbit, **kwargs):
        period = orbit.period
        kwargs.setdefault("max_check_interval", period / 3.0)
        kwargs.setdefault("threshold", period * 1e-13)
        super().__init__(**kwargs)

    def g(self, state: SpacecraftState) -> float:
        pv = state.pv
        return float(np.dot(pv.position, pv.velocity))
