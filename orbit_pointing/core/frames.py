"""
Reference frame transformations.

Provides rotations and their time derivatives for conversions between:
    - ECI (J2000/GCRF)
    - ECEF (ITRF, simplified)
    - local orbital frames (QSW / VVLH) built from an inertial state

CRITICAL: velocity transformations must account for frame rotation.

All frames handled here share the Earth center as origin, so a transform is a
pure rotation R (v_dst = R · v_src) plus its time derivative dR.
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass

from .constants import OMEGA_EARTH, MJD_J2000, DAYS_PER_CENTURY, TWO_PI
from .errors import InvalidConfigurationError
from .types import FrameType, LOFType, PVCoordinates


# ---------------------------------------------------------------------------
# Transform
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class Transform:
    """Time-dependent rotation between two Earth-centered frames.

    Attributes:
        rotation: 3x3 matrix, v_dst = rotation · v_src.
        rotation_rate: 3x3 time derivative of `rotation` [1/s].
    """
    rotation: np.ndarray
    rotation_rate: np.ndarray

    def transform_vector(self, v: np.ndarray) -> np.ndarray:
        """Rotate a free vector (direction, increment)."""
        return self.rotation @ np.asarray(v, dtype=float)

    def transform_position(self, p: np.ndarray) -> np.ndarray:
        """Transform a position (frames share their origin)."""
        return self.rotation @ np.asarray(p, dtype=float)

    def transform_pv(self, pv: PVCoordinates) -> PVCoordinates:
        """Transform position and velocity, including the transport term.

        v_dst = R · v_src + dR · r_src
        """
        return PVCoordinates(
            self.rotation @ pv.position,
            self.rotation @ pv.velocity + self.rotation_rate @ pv.position
        )

    def inverse(self) -> Transform:
        # d(R^T)/dt = (dR/dt)^T
        return Transform(self.rotation.T, self.rotation_rate.T)


IDENTITY = Transform(np.eye(3), np.zeros((3, 3)))


# ---------------------------------------------------------------------------
# Earth rotation
# ---------------------------------------------------------------------------

def gmst_from_mjd_tt(mjd_tt: float) -> float:
    """Greenwich Mean Sidereal Time from MJD in Terrestrial Time.

    Simplified IAU expression. Accuracy ~0.1 arcsec.

    Args:
        mjd_tt: Modified Julian Date in TT.

    Returns:
        GMST in radians, wrapped to [0, 2π).
    """
    # Julian centuries from J2000.0
    T = (mjd_tt - MJD_J2000) / DAYS_PER_CENTURY

    # GMST in seconds of time (UT1-UTC ignored)
    gmst_sec = (67310.54841
                + (876600.0 * 3600.0 + 8640184.812866) * T
                + 0.093104 * T**2
                - 6.2e-6 * T**3)

    gmst_rad = (gmst_sec / 86400.0) * TWO_PI
    return gmst_rad % TWO_PI


def eci_to_ecef(mjd_tt: float, dt_s: float = 0.0) -> Transform:
    """ECI (J2000) to ECEF rotation and its time derivative.

    Simplified model using only Earth rotation (no precession/nutation).

    The optional offset `dt_s` is applied as a rotation increment
    OMEGA_EARTH · dt_s on top of the angle at `mjd_tt`. Sub-second offsets
    therefore keep full double precision instead of being rounded into the
    MJD value.

    Args:
        mjd_tt: Epoch in MJD TT.
        dt_s: Time offset from that epoch [s].

    Returns:
        Transform with ECEF = R · ECI.
    """
    theta = gmst_from_mjd_tt(mjd_tt) + OMEGA_EARTH * dt_s
    c, s = np.cos(theta), np.sin(theta)

    R = np.array([
        [c,  s, 0.],
        [-s, c, 0.],
        [0., 0., 1.]
    ])

    # dR/dt = ω_earth × R expressed as matrix
    dR = OMEGA_EARTH * np.array([
        [-s, c, 0.],
        [-c, -s, 0.],
        [0., 0., 0.]
    ])

    return Transform(R, dR)


def get_transform(src: FrameType, dst: FrameType,
                  mjd_tt: float, dt_s: float = 0.0) -> Transform:
    """Transform from `src` to `dst` valid at mjd_tt + dt_s.

    Args:
        src: Source frame.
        dst: Destination frame.
        mjd_tt: Epoch in MJD TT.
        dt_s: Time offset from that epoch [s].

    Returns:
        Transform such that v_dst = R · v_src.
    """
    if src is dst:
        return IDENTITY
    if src is FrameType.ECI_J2000 and dst is FrameType.ECEF_ITRF:
        return eci_to_ecef(mjd_tt, dt_s)
    if src is FrameType.ECEF_ITRF and dst is FrameType.ECI_J2000:
        return eci_to_ecef(mjd_tt, dt_s).inverse()
    raise InvalidConfigurationError(f"no transform from {src.name} to {dst.name}")


# ---------------------------------------------------------------------------
# Local orbital frames
# ---------------------------------------------------------------------------

def local_orbital_frame(r: np.ndarray, v: np.ndarray,
                        lof_type: LOFType = LOFType.QSW
                        ) -> tuple[np.ndarray, np.ndarray]:
    """Construct a local orbital frame rotation matrix from a state.

    Frame definitions:
        QSW:  X = r-hat (radial outward), Z = h-hat (orbit normal),
              Y = Z × X (approximately along-track).
        VVLH: Z = -r-hat (nadir), Y = -h-hat, X = Y × Z
              (approximately along-track).

    Args:
        r: Position vector [km], shape (3,).
        v: Velocity vector [km/s], shape (3,).
        lof_type: Local orbital frame convention.

    Returns:
        R_lof: 3x3 rotation matrix, v_LOF = R_lof · v, rows are the LOF
            unit vectors expressed in the input frame.
        omega: Angular velocity of the LOF in the input frame [rad/s],
            shape (3,).
    """
    r_mag = np.linalg.norm(r)
    h = np.cross(r, v)
    h_mag = np.linalg.norm(h)
    if r_mag < 1e-10 or h_mag < 1e-10:
        raise InvalidConfigurationError("local orbital frame undefined for rectilinear motion")

    r_hat = r / r_mag
    h_hat = h / h_mag

    if lof_type is LOFType.QSW:
        x_hat = r_hat
        z_hat = h_hat
        y_hat = np.cross(z_hat, x_hat)
    else:
        z_hat = -r_hat
        y_hat = -h_hat
        x_hat = np.cross(y_hat, z_hat)

    R_lof = np.array([x_hat, y_hat, z_hat])

    # Orbital angular velocity ω = h / r² (dominant term, exact for circular)
    omega = h / r_mag**2

    return R_lof, omega
