"""
Simulation configuration.

Central configuration objects for event detection, ground pointing and the
propagator's attitude failure policy.
"""

from dataclasses import dataclass, field


@dataclass
class EventDetectionConfig:
    """Default convergence parameters for event detectors.

    Composite events never hold their own copy of these values: they
    delegate to the detector they wrap.

    Attributes:
        max_check_interval_s: Maximal time between two g-function samples [s].
        max_iteration_count: Root isolation iteration budget.
        threshold_s: Convergence threshold on the event time [s].
    """
    max_check_interval_s: float = 600.0
    max_iteration_count: int = 100
    threshold_s: float = 1e-6


@dataclass
class GroundPointingConfig:
    """Ground-pointing engine settings.

    Attributes:
        finite_difference_step_s: Step h of the four-point centered
            difference used for the intersection point velocity [s].
    """
    finite_difference_step_s: float = 0.05


@dataclass
class PropagatorConfig:
    """Propagator behaviour.

    Attributes:
        degrade_on_attitude_failure: When True, a failing attitude provider
            yields states without attitude (and a warning) instead of raising.
    """
    degrade_on_attitude_failure: bool = False


@dataclass
class SimConfig:
    """Top-level configuration."""
    events: EventDetectionConfig = field(default_factory=EventDetectionConfig)
    ground_pointing: GroundPointingConfig = field(default_factory=GroundPointingConfig)
    propagator: PropagatorConfig = field(default_factory=PropagatorConfig)

    def describe(self) -> str:
        """Human-readable one-line summary."""
        parts = [
            f"events(max_check={self.events.max_check_interval_s:g}s, "
            f"threshold={self.events.threshold_s:g}s, "
            f"max_iter={self.events.max_iteration_count})",
            f"fd_step={self.ground_pointing.finite_difference_step_s:g}s",
        ]
        if self.propagator.degrade_on_attitude_failure:
            parts.append("degraded attitude allowed")
        return " + ".join(parts)
