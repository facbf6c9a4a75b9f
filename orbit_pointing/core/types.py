"""
Foundational data types.

State values are immutable: every propagation step, attitude query or event
reset produces new instances rather than modifying existing ones.

Convention:
    - Distances: km
    - Time: seconds (offsets), MJD TT (epochs)
    - Velocity: km/s
    - Mass: kg
    - Angles: radians
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Optional, TYPE_CHECKING

from .errors import InvalidConfigurationError
from ..attitude.quaternion import q_to_dcm, q_normalize

if TYPE_CHECKING:
    from ..astrodynamics.events import EventDetector
    from ..astrodynamics.orbits import EquinoctialOrbit


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class FrameType(Enum):
    """Reference frame identifiers."""
    ECI_J2000 = auto()
    ECEF_ITRF = auto()

    @property
    def is_inertial(self) -> bool:
        return self is FrameType.ECI_J2000


class LOFType(Enum):
    """Local orbital frame conventions.

    QSW:  X radial outward, Y along-track, Z orbit normal (RSW).
    VVLH: X along-track, Y opposite to orbit normal, Z nadir.
    """
    QSW = auto()
    VVLH = auto()


class EventAction(Enum):
    """What the propagator does once an event root has been isolated."""
    CONTINUE = auto()       # record and ignore
    STOP = auto()           # halt propagation at the event epoch
    RESET_STATE = auto()    # substitute the detector's reset state and go on


# ---------------------------------------------------------------------------
# Kinematic primitives
# ---------------------------------------------------------------------------

def _as_vector(v, name: str) -> np.ndarray:
    arr = np.array(v, dtype=float).reshape(-1)
    if arr.shape != (3,):
        raise InvalidConfigurationError(f"{name} must be a 3-vector, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class PVCoordinates:
    """Position and velocity pair.

    Attributes:
        position: Position vector [km], shape (3,).
        velocity: Velocity vector [km/s], shape (3,).
    """
    position: np.ndarray
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        object.__setattr__(self, "position", _as_vector(self.position, "position"))
        object.__setattr__(self, "velocity", _as_vector(self.velocity, "velocity"))

    def shifted_by(self, dt_s: float) -> PVCoordinates:
        """Constant-velocity extrapolation by dt_s seconds."""
        return PVCoordinates(self.position + dt_s * self.velocity, self.velocity)


@dataclass(frozen=True, eq=False)
class Line:
    """Oriented line through an origin point.

    Attributes:
        origin: A point on the line [km], shape (3,).
        direction: Unit direction vector, shape (3,).
    """
    origin: np.ndarray
    direction: np.ndarray

    def __post_init__(self):
        origin = _as_vector(self.origin, "origin")
        direction = np.array(self.direction, dtype=float).reshape(-1)
        norm = np.linalg.norm(direction)
        if direction.shape != (3,) or not np.isfinite(norm) or norm < 1e-15:
            raise InvalidConfigurationError("line direction must be a non-zero 3-vector")
        object.__setattr__(self, "origin", origin)
        object.__setattr__(self, "direction", _as_vector(direction / norm, "direction"))

    def point_at(self, abscissa: float) -> np.ndarray:
        """Point located at signed distance `abscissa` from the origin."""
        return self.origin + abscissa * self.direction

    def abscissa(self, point: np.ndarray) -> float:
        """Signed distance from the origin to the projection of `point`."""
        return float(np.dot(np.asarray(point) - self.origin, self.direction))


# ---------------------------------------------------------------------------
# Attitude
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class Attitude:
    """Spacecraft attitude at a given epoch.

    Convention: quaternion q = [q1, q2, q3, q4] with q4 as scalar.
    Represents the rotation from the reference frame to the body frame.

    Attributes:
        epoch_mjd_tt: Epoch.
        reference_frame: Frame the rotation is expressed from.
        quaternion: Reference-to-body quaternion, shape (4,).
        angular_velocity_body: Angular velocity in body frame [rad/s], shape (3,).
    """
    epoch_mjd_tt: float
    reference_frame: FrameType
    quaternion: np.ndarray
    angular_velocity_body: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        q = q_normalize(np.array(self.quaternion, dtype=float).reshape(4))
        q.setflags(write=False)
        object.__setattr__(self, "quaternion", q)
        object.__setattr__(self, "angular_velocity_body",
                           _as_vector(self.angular_velocity_body, "angular_velocity_body"))

    @property
    def rotation_matrix(self) -> np.ndarray:
        """DCM such that v_body = R @ v_ref."""
        return q_to_dcm(self.quaternion)

    def to_body(self, v_ref: np.ndarray) -> np.ndarray:
        """Express a reference-frame vector in the body frame."""
        return self.rotation_matrix @ np.asarray(v_ref, dtype=float)

    def to_reference(self, v_body: np.ndarray) -> np.ndarray:
        """Express a body-frame vector in the reference frame."""
        return self.rotation_matrix.T @ np.asarray(v_body, dtype=float)


# ---------------------------------------------------------------------------
# Orbital Elements
# ---------------------------------------------------------------------------

@dataclass
class OrbitalElements:
    """Classical Keplerian orbital elements.

    Attributes:
        a: Semi-major axis [km].
        e: Eccentricity.
        i: Inclination [rad].
        raan: Right ascension of ascending node [rad].
        aop: Argument of perigee [rad].
        ta: True anomaly [rad].
    """
    a: float
    e: float
    i: float
    raan: float
    aop: float
    ta: float


# ---------------------------------------------------------------------------
# Spacecraft State
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class SpacecraftState:
    """Complete spacecraft state at a given epoch.

    Attributes:
        epoch_mjd_tt: Modified Julian Date in Terrestrial Time.
        orbit: Orbit at that epoch.
        mass: Spacecraft mass [kg], strictly positive.
        attitude: Attitude at that epoch, or None when unavailable.
    """
    epoch_mjd_tt: float
    orbit: EquinoctialOrbit
    mass: float = 1000.0
    attitude: Optional[Attitude] = None

    def __post_init__(self):
        if not np.isfinite(self.mass) or self.mass <= 0.0:
            raise InvalidConfigurationError(f"mass must be positive, got {self.mass}")

    @property
    def pv(self) -> PVCoordinates:
        """Position/velocity in the orbit frame."""
        return self.orbit.pv()

    @property
    def position(self) -> np.ndarray:
        return self.pv.position

    @property
    def velocity(self) -> np.ndarray:
        return self.pv.velocity

    @property
    def frame(self) -> FrameType:
        return self.orbit.frame

    @property
    def mu(self) -> float:
        return self.orbit.mu

    def pv_in(self, frame: FrameType) -> PVCoordinates:
        """Position/velocity expressed in another frame."""
        from .frames import get_transform
        return get_transform(self.orbit.frame, frame, self.epoch_mjd_tt).transform_pv(self.pv)

    def with_attitude(self, attitude: Optional[Attitude]) -> SpacecraftState:
        return replace(self, attitude=attitude)


# ---------------------------------------------------------------------------
# Propagation Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class StateQuery:
    """Outcome of an analytic state query.

    Either a full state with attitude, or the state without attitude together
    with the typed failure that prevented computing it.

    Attributes:
        state: Propagated state (attitude is None when `failure` is set).
        failure: Attitude provider failure, if any.
    """
    state: SpacecraftState
    failure: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(frozen=True, eq=False)
class EventOccurrence:
    """One handled event.

    Attributes:
        epoch_mjd_tt: Isolated event epoch.
        detector: The detector that fired.
        action: Action it returned.
        state_before: State at the event epoch before any reset.
        state_after: State propagation continued from (equal to
            `state_before` unless the action was RESET_STATE).
    """
    epoch_mjd_tt: float
    detector: EventDetector
    action: EventAction
    state_before: SpacecraftState
    state_after: SpacecraftState


@dataclass(eq=False)
class PropagationResult:
    """Output of an event-driven propagation.

    Attributes:
        state: Final state (target epoch, or stop epoch).
        events: Handled events in firing order.
    """
    state: SpacecraftState
    events: list[EventOccurrence] = field(default_factory=list)

    @property
    def stop_event(self) -> Optional[EventOccurrence]:
        """Occurrence that halted propagation, if any."""
        if self.events and self.events[-1].action is EventAction.STOP:
            return self.events[-1]
        return None

    @property
    def stopped(self) -> bool:
        return self.stop_event is not None
