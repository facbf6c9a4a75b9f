"""
Equinoctial orbit representation.

Non-singular element set used by the Keplerian propagator:
    a   semi-major axis [km]
    ex  e·cos(ω + Ω)
    ey  e·sin(ω + Ω)
    hx  tan(i/2)·cos(Ω)
    hy  tan(i/2)·sin(Ω)
    lm  mean longitude argument M + ω + Ω [rad]

Singular only for i = π (retrograde equatorial), which is rejected.

References:
    Broucke & Cefola, "On the equinoctial orbit elements", 1972
    Vallado, "Fundamentals of Astrodynamics and Applications", Ch. 2
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass, replace

from ..core.constants import TWO_PI, KEPLER_TOLERANCE, KEPLER_MAX_ITER
from ..core.errors import InvalidConfigurationError
from ..core.types import FrameType, OrbitalElements, PVCoordinates


def _check_mu(mu: float):
    if not np.isfinite(mu) or mu <= 0.0:
        raise InvalidConfigurationError(f"gravitational parameter must be positive, got {mu}")


@dataclass(frozen=True)
class EquinoctialOrbit:
    """Bound two-body orbit in equinoctial elements.

    Attributes:
        a: Semi-major axis [km], > 0.
        ex, ey: Eccentricity vector components, ex² + ey² < 1.
        hx, hy: Inclination vector components.
        lm: Mean longitude argument [rad].
        frame: Inertial frame the elements are expressed in.
        mu: Central body gravitational parameter [km³/s²], > 0.
    """
    a: float
    ex: float
    ey: float
    hx: float
    hy: float
    lm: float
    frame: FrameType
    mu: float

    def __post_init__(self):
        _check_mu(self.mu)
        values = (self.a, self.ex, self.ey, self.hx, self.hy, self.lm)
        if not all(np.isfinite(values)):
            raise InvalidConfigurationError(f"non-finite orbital elements {values}")
        if self.a <= 0.0:
            raise InvalidConfigurationError(f"semi-major axis must be positive, got {self.a}")
        if self.ex**2 + self.ey**2 >= 1.0:
            raise InvalidConfigurationError("only bound (elliptic) orbits are supported")
        if not self.frame.is_inertial:
            raise InvalidConfigurationError(f"orbit frame {self.frame.name} is not inertial")

    # -----------------------------------------------------------------------
    # Construction
    # -----------------------------------------------------------------------

    @classmethod
    def from_pv(cls, pv: PVCoordinates, mu: float,
                frame: FrameType = FrameType.ECI_J2000) -> EquinoctialOrbit:
        """Build from inertial position/velocity.

        Args:
            pv: Position [km] and velocity [km/s] in `frame`.
            mu: Gravitational parameter [km³/s²].
            frame: Inertial frame of `pv`.

        Returns:
            Orbit osculating to the given state.
        """
        _check_mu(mu)
        p, v = pv.position, pv.velocity
        r = np.linalg.norm(p)
        v2 = np.dot(v, v)
        r_v2_on_mu = r * v2 / mu
        if r_v2_on_mu >= 2.0:
            raise InvalidConfigurationError("state is not on a bound orbit")
        a = r / (2.0 - r_v2_on_mu)

        # Inclination vector from the momentum direction
        w = np.cross(p, v)
        w = w / np.linalg.norm(w)
        if 1.0 + w[2] < 1e-12:
            raise InvalidConfigurationError("retrograde equatorial orbits are not supported")
        d = 1.0 / (1.0 + w[2])
        hx = -d * w[1]
        hy = d * w[0]

        # True longitude argument
        c_lv = (p[0] - d * p[2] * w[0]) / r
        s_lv = (p[1] - d * p[2] * w[1]) / r
        lv = np.arctan2(s_lv, c_lv)

        # Eccentricity vector
        e_se = np.dot(p, v) / np.sqrt(mu * a)
        e_ce = r_v2_on_mu - 1.0
        e2 = e_ce**2 + e_se**2
        f = e_ce - e2
        g = np.sqrt(1.0 - e2) * e_se
        ex = a * (f * c_lv + g * s_lv) / r
        ey = a * (f * s_lv - g * c_lv) / r

        lm = _mean_from_eccentric(_eccentric_from_true(lv, ex, ey), ex, ey)
        return cls(a, ex, ey, hx, hy, lm, frame, mu)

    @classmethod
    def from_keplerian(cls, elements: OrbitalElements, mu: float,
                       frame: FrameType = FrameType.ECI_J2000) -> EquinoctialOrbit:
        """Build from classical elements."""
        pa_raan = elements.aop + elements.raan
        tan_half_i = np.tan(elements.i / 2.0)
        ex = elements.e * np.cos(pa_raan)
        ey = elements.e * np.sin(pa_raan)
        lv = elements.ta + pa_raan
        lm = _mean_from_eccentric(_eccentric_from_true(lv, ex, ey), ex, ey)
        return cls(
            a=elements.a,
            ex=ex, ey=ey,
            hx=tan_half_i * np.cos(elements.raan),
            hy=tan_half_i * np.sin(elements.raan),
            lm=lm,
            frame=frame,
            mu=mu,
        )

    def with_mu(self, mu: float) -> EquinoctialOrbit:
        """Same elements attached to another gravitational parameter."""
        return replace(self, mu=mu)

    # -----------------------------------------------------------------------
    # Derived quantities
    # -----------------------------------------------------------------------

    @property
    def e(self) -> float:
        return float(np.hypot(self.ex, self.ey))

    @property
    def i(self) -> float:
        return float(2.0 * np.arctan(np.hypot(self.hx, self.hy)))

    @property
    def mean_motion(self) -> float:
        """Keplerian mean motion n = sqrt(mu/a)/a [rad/s]."""
        return np.sqrt(self.mu / self.a) / self.a

    @property
    def period(self) -> float:
        """Keplerian period [s]."""
        return TWO_PI / self.mean_motion

    @property
    def le(self) -> float:
        """Eccentric longitude argument [rad]."""
        return _eccentric_from_mean(self.lm, self.ex, self.ey)

    @property
    def lv(self) -> float:
        """True longitude argument [rad]."""
        return _true_from_eccentric(self.le, self.ex, self.ey)

    def shifted_by(self, dt_s: float) -> EquinoctialOrbit:
        """Two-body extrapolation: only the mean longitude moves."""
        return replace(self, lm=self.lm + self.mean_motion * dt_s)

    def pv(self) -> PVCoordinates:
        """Position/velocity in the orbit frame."""
        hx2 = self.hx * self.hx
        hy2 = self.hy * self.hy
        fact_h = 1.0 / (1.0 + hx2 + hy2)

        # Orbital plane axes
        u = fact_h * np.array([1.0 + hx2 - hy2, 2.0 * self.hx * self.hy, -2.0 * self.hy])
        v = fact_h * np.array([2.0 * self.hx * self.hy, 1.0 - hx2 + hy2, 2.0 * self.hx])

        ex, ey = self.ex, self.ey
        ex2, ey2, exey = ex * ex, ey * ey, ex * ey
        beta = 1.0 / (1.0 + np.sqrt(1.0 - ex2 - ey2))

        le = self.le
        c_le, s_le = np.cos(le), np.sin(le)
        ex_c_ey_s = ex * c_le + ey * s_le

        # In-plane coordinates
        x = self.a * ((1.0 - beta * ey2) * c_le + beta * exey * s_le - ex)
        y = self.a * ((1.0 - beta * ex2) * s_le + beta * exey * c_le - ey)
        factor = np.sqrt(self.mu / self.a) / (1.0 - ex_c_ey_s)
        xdot = factor * (-s_le + beta * ey * ex_c_ey_s)
        ydot = factor * (c_le - beta * ex * ex_c_ey_s)

        return PVCoordinates(x * u + y * v, xdot * u + ydot * v)


# ---------------------------------------------------------------------------
# Longitude argument conversions
# ---------------------------------------------------------------------------

def _eccentric_from_true(lv: float, ex: float, ey: float) -> float:
    epsilon = np.sqrt(1.0 - ex * ex - ey * ey)
    c_lv, s_lv = np.cos(lv), np.sin(lv)
    num = ey * c_lv - ex * s_lv
    den = epsilon + 1.0 + ex * c_lv + ey * s_lv
    return lv + 2.0 * np.arctan(num / den)


def _true_from_eccentric(le: float, ex: float, ey: float) -> float:
    epsilon = np.sqrt(1.0 - ex * ex - ey * ey)
    c_le, s_le = np.cos(le), np.sin(le)
    num = ex * s_le - ey * c_le
    den = epsilon + 1.0 - ex * c_le - ey * s_le
    return le + 2.0 * np.arctan(num / den)


def _mean_from_eccentric(le: float, ex: float, ey: float) -> float:
    return le - ex * np.sin(le) + ey * np.cos(le)


def _eccentric_from_mean(lm: float, ex: float, ey: float) -> float:
    """Solve the equinoctial Kepler equation lm = le - ex·sin(le) + ey·cos(le).

    Newton iteration started at le = lm; converges in a handful of
    iterations for e < 0.9.
    """
    le = lm
    for _ in range(KEPLER_MAX_ITER):
        c_le, s_le = np.cos(le), np.sin(le)
        f = le - ex * s_le + ey * c_le - lm
        fp = 1.0 - ex * c_le - ey * s_le
        delta = f / fp
        le -= delta
        if abs(delta) < KEPLER_TOLERANCE:
            break
    return le
