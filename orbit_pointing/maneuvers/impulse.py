"""
Impulsive maneuver triggered by another event.

The maneuver wraps a trigger detector (a date, an apside, ...) and only
changes what happens when that trigger fires: detection itself (g function,
sampling interval, iteration budget, threshold) is the trigger's, unchanged.

At the event the velocity increment, given in satellite frame, is rotated into
the inertial frame through the current attitude, added to the velocity, and
the propellant consumption follows the rocket equation:

    m_new = m_old · exp(-|Δv| / (g0 · Isp))

Typical use is a tangential burn: a VVLH-aligned attitude law for
propagation and a Δv along the +X satellite axis.
"""

from __future__ import annotations

import logging
import numpy as np

from ..astrodynamics.events import EventDetector
from ..astrodynamics.orbits import EquinoctialOrbit
from ..core.constants import G0, MIN_ISP_S
from ..core.errors import AttitudeFailureError, InvalidConfigurationError
from ..core.frames import get_transform
from ..core.types import EventAction, FrameType, PVCoordinates, SpacecraftState

logger = logging.getLogger(__name__)


class ImpulseManeuver(EventDetector):
    """Impulse maneuver as a discrete event.

    Attributes:
        trigger: Wrapped triggering event.
        delta_v_sat: Velocity increment in satellite frame [km/s], shape (3,).
        isp_s: Engine specific impulse [s].
        v_exhaust: Engine exhaust velocity [km/s].
        mass_ratio: Final over initial mass, exp(-|Δv| / v_exhaust).
    """

    def __init__(self, trigger: EventDetector, delta_v_sat: np.ndarray, isp_s: float):
        """Initialize the maneuver.

        Args:
            trigger: Event that triggers the maneuver.
            delta_v_sat: Velocity increment in satellite frame [km/s].
            isp_s: Specific impulse [s].

        Raises:
            InvalidConfigurationError: For a non-finite Δv, an Isp that is
                not finite or below MIN_ISP_S, or a Δv so large that the mass
                ratio exp(-|Δv| / v_exhaust) underflows.
        """
        dv = np.array(delta_v_sat, dtype=float).reshape(-1)
        if dv.shape != (3,) or not np.all(np.isfinite(dv)):
            raise InvalidConfigurationError("velocity increment must be a finite 3-vector")
        if not np.isfinite(isp_s) or isp_s < MIN_ISP_S:
            raise InvalidConfigurationError(f"specific impulse must be positive, got {isp_s}")
        dv.setflags(write=False)

        self._trigger = trigger
        self.delta_v_sat = dv
        self.isp_s = float(isp_s)
        # G0 in m/s², velocities in km/s
        self.v_exhaust = G0 * self.isp_s / 1000.0
        self.mass_ratio = float(np.exp(-np.linalg.norm(dv) / self.v_exhaust))
        if self.mass_ratio < np.finfo(float).tiny:
            raise InvalidConfigurationError(
                f"velocity increment of {np.linalg.norm(dv):g} km/s at Isp {isp_s:g} s "
                "leaves no representable final mass")

    @property
    def trigger(self) -> EventDetector:
        return self._trigger

    # -----------------------------------------------------------------------
    # Detection: forwarded to the trigger
    # -----------------------------------------------------------------------

    @property
    def max_check_interval(self) -> float:
        return self._trigger.max_check_interval

    @property
    def max_iteration_count(self) -> int:
        return self._trigger.max_iteration_count

    @property
    def threshold(self) -> float:
        return self._trigger.threshold

    def g(self, state: SpacecraftState) -> float:
        return self._trigger.g(state)

    # -----------------------------------------------------------------------
    # Reaction
    # -----------------------------------------------------------------------

    def event_occurred(self, state: SpacecraftState) -> EventAction:
        return EventAction.RESET_STATE

    def reset_state(self, old_state: SpacecraftState) -> SpacecraftState:
        """Apply the impulse.

        Args:
            old_state: State at the maneuver epoch, attitude required.

        Returns:
            New state: same epoch, position and attitude; incremented
            velocity; reduced mass.

        Raises:
            AttitudeFailureError: If `old_state` carries no attitude.
        """
        attitude = old_state.attitude
        if attitude is None:
            raise AttitudeFailureError(
                f"impulse maneuver at MJD {old_state.epoch_mjd_tt:.9f} needs an attitude")

        inertial = FrameType.ECI_J2000
        epoch = old_state.epoch_mjd_tt

        # Satellite -> attitude reference frame -> inertial
        ref_to_inertial = get_transform(attitude.reference_frame, inertial, epoch).rotation
        sat_to_inertial = ref_to_inertial @ attitude.rotation_matrix.T
        delta_v = sat_to_inertial @ self.delta_v_sat

        old_pv = old_state.pv_in(inertial)
        new_pv = PVCoordinates(old_pv.position, old_pv.velocity + delta_v)

        new_mass = old_state.mass * self.mass_ratio

        logger.info("Impulse maneuver at MJD %.9f: |dv|=%.6f km/s, mass %.3f -> %.3f kg",
                    epoch, np.linalg.norm(delta_v), old_state.mass, new_mass)

        return SpacecraftState(
            epoch_mjd_tt=epoch,
            orbit=EquinoctialOrbit.from_pv(new_pv, old_state.mu, inertial),
            mass=new_mass,
            attitude=attitude,
        )
