"""
Central body shape.

Oblate ellipsoid of revolution about the body-frame Z axis. Only the
line-intersection contract is provided: the ground-pointing engine needs the
point where a line of sight meets the surface and nothing else.

A zero flattening gives a sphere.
"""

from __future__ import annotations

import numpy as np
from typing import Optional

from ..core.constants import R_EARTH, F_EARTH
from ..core.errors import InvalidConfigurationError
from ..core.frames import get_transform
from ..core.types import FrameType, Line


class OneAxisEllipsoid:
    """Ellipsoid with equatorial radius ae and polar radius ae·(1 - f).

    Attributes:
        equatorial_radius: ae [km].
        flattening: f, in [0, 1).
        body_frame: Body-fixed frame the shape is attached to.
    """

    def __init__(self, equatorial_radius: float = R_EARTH,
                 flattening: float = F_EARTH,
                 body_frame: FrameType = FrameType.ECEF_ITRF):
        """Initialize the shape.

        Args:
            equatorial_radius: Equatorial radius [km], > 0.
            flattening: Flattening, 0 <= f < 1.
            body_frame: Frame rigidly attached to the body.
        """
        if not np.isfinite(equatorial_radius) or equatorial_radius <= 0.0:
            raise InvalidConfigurationError(
                f"equatorial radius must be positive, got {equatorial_radius}")
        if not 0.0 <= flattening < 1.0:
            raise InvalidConfigurationError(f"flattening must be in [0, 1), got {flattening}")
        self.equatorial_radius = equatorial_radius
        self.flattening = flattening
        self.body_frame = body_frame

    @classmethod
    def sphere(cls, radius: float, body_frame: FrameType = FrameType.ECEF_ITRF
               ) -> OneAxisEllipsoid:
        return cls(radius, 0.0, body_frame)

    @property
    def polar_radius(self) -> float:
        return self.equatorial_radius * (1.0 - self.flattening)

    def intersection_point(self, line: Line, close: np.ndarray,
                           frame: FrameType, epoch_mjd_tt: float,
                           dt_s: float = 0.0) -> Optional[np.ndarray]:
        """Intersection of a line with the surface closest to a reference point.

        Args:
            line: Line expressed in `frame`.
            close: Reference point in `frame` [km]; among the (up to two)
                intersections, the one nearest to it is returned.
            frame: Frame of `line` and `close`.
            epoch_mjd_tt: Epoch of the frame transform.
            dt_s: Offset from that epoch [s].

        Returns:
            Intersection point in `frame` [km], or None if the line misses.
        """
        to_body = get_transform(frame, self.body_frame, epoch_mjd_tt, dt_s)
        origin = to_body.transform_position(line.origin)
        direction = to_body.transform_vector(line.direction)
        close_body = to_body.transform_position(close)

        # Scale Z so the ellipsoid becomes a sphere of radius ae
        scale = np.array([1.0, 1.0, self.equatorial_radius / self.polar_radius])
        o = origin * scale
        d = direction * scale

        # |o + k·d|² = ae²
        qa = np.dot(d, d)
        qb = np.dot(o, d)
        qc = np.dot(o, o) - self.equatorial_radius**2
        disc = qb * qb - qa * qc
        if disc < 0.0:
            return None

        sqrt_disc = np.sqrt(disc)
        k1 = (-qb - sqrt_disc) / qa
        k2 = (-qb + sqrt_disc) / qa
        p1 = origin + k1 * direction
        p2 = origin + k2 * direction
        if np.linalg.norm(p1 - close_body) <= np.linalg.norm(p2 - close_body):
            point = p1
        else:
            point = p2

        return to_body.inverse().transform_position(point)
