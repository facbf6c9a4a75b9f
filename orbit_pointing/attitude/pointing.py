"""
Ground-pointing geometry.

Answers "which ground point is the satellite axis looking at, and how fast is
that point moving?":
    - Rotates a satellite-frame pointing axis through the current attitude
      into the body-fixed frame
    - Intersects the resulting line of sight with the body shape
    - Estimates the intersection point velocity with a four-point centered
      finite difference

The engine reads its collaborators (attitude law, body shape) but never
mutates them, and keeps no cache.
"""

from __future__ import annotations

import logging
import numpy as np
from abc import abstractmethod

from ..astrodynamics.bodies import OneAxisEllipsoid
from ..core.config import SimConfig
from ..core.constants import SECONDS_PER_DAY
from ..core.errors import GeometryMissError, InvalidConfigurationError
from ..core.frames import get_transform
from ..core.types import Attitude, FrameType, Line, PVCoordinates
from .providers import AttitudeProvider, AttitudeProviderModifier

logger = logging.getLogger(__name__)


class GroundPointing(AttitudeProvider):
    """Base class for attitude laws aimed at a point on the body surface.

    Attributes:
        shape: Body shape hosting the ground point.
    """

    def __init__(self, shape: OneAxisEllipsoid):
        self.shape = shape

    @property
    def body_frame(self) -> FrameType:
        return self.shape.body_frame

    @abstractmethod
    def observed_ground_point(self, epoch_mjd_tt: float, pv: PVCoordinates,
                              frame: FrameType) -> PVCoordinates:
        """Observed ground point position/velocity in `frame`.

        Raises:
            GeometryMissError: If the line of sight does not reach the body.
        """

    def target_in_body_frame(self, epoch_mjd_tt: float, pv: PVCoordinates,
                             frame: FrameType) -> PVCoordinates:
        """Observed ground point expressed in the body frame.

        The velocity includes the transport term of the frame rotation, so
        for a ground point fixed on a rotating body it is zero.
        """
        ground_point = self.observed_ground_point(epoch_mjd_tt, pv, frame)
        t = get_transform(frame, self.body_frame, epoch_mjd_tt)
        return t.transform_pv(ground_point)


class LofOffsetPointing(GroundPointing, AttitudeProviderModifier):
    """Ground pointing seen through a local-orbital-frame attitude law.

    The satellite attitude itself comes from the wrapped attitude law; this
    class only adds the geometry of where a chosen satellite axis hits the
    ground.

    Attributes:
        attitude_law: Wrapped attitude provider (typically a LofOffset).
        sat_pointing_vector: Pointing axis in satellite frame, unit, shape (3,).
        fd_step_s: Finite-difference step h [s].
    """

    def __init__(self, shape: OneAxisEllipsoid, attitude_law: AttitudeProvider,
                 sat_pointing_vector: np.ndarray,
                 config: SimConfig = None):
        """Initialize the pointing law.

        Args:
            shape: Body shape.
            attitude_law: Provider of the satellite attitude.
            sat_pointing_vector: Satellite axis defining the line of sight.
            config: Simulation settings; the finite-difference step is read
                from `config.ground_pointing`. Defaults to SimConfig().
        """
        super().__init__(shape)
        step_s = (config or SimConfig()).ground_pointing.finite_difference_step_s

        axis = np.asarray(sat_pointing_vector, dtype=float).reshape(-1)
        norm = np.linalg.norm(axis)
        if axis.shape != (3,) or not np.isfinite(norm) or norm < 1e-15:
            raise InvalidConfigurationError("pointing vector must be a non-zero 3-vector")
        if not np.isfinite(step_s) or step_s <= 0.0:
            raise InvalidConfigurationError(
                f"finite-difference step must be positive, got {step_s}")

        self.attitude_law = attitude_law
        self.sat_pointing_vector = axis / norm
        self.fd_step_s = step_s

    @property
    def underlying_attitude_provider(self) -> AttitudeProvider:
        return self.attitude_law

    def get_attitude(self, epoch_mjd_tt: float, pv: PVCoordinates,
                     frame: FrameType) -> Attitude:
        return self.attitude_law.get_attitude(epoch_mjd_tt, pv, frame)

    def observed_ground_point(self, epoch_mjd_tt: float, pv: PVCoordinates,
                              frame: FrameType) -> PVCoordinates:
        """Intersection point position and velocity in `frame`.

        Velocity by four-point centered differences:
            V = [P(-2h) - 8·P(-h) + 8·P(+h) - P(+2h)] / (12h)
        which is fourth-order accurate in h.

        Args:
            epoch_mjd_tt: Epoch.
            pv: Satellite position/velocity in `frame`.
            frame: Frame of `pv` and of the result.

        Returns:
            Ground point position [km] and velocity [km/s] in `frame`.

        Raises:
            GeometryMissError: If any of the five line-of-sight evaluations
                misses the body.
        """
        p_0 = self._intersection_point(epoch_mjd_tt, pv, frame, 0.0)

        h = self.fd_step_s
        s2 = 1.0 / (12.0 * h)
        s1 = 8.0 * s2
        p_p2h = self._intersection_point(epoch_mjd_tt, pv, frame, 2.0 * h)
        p_m2h = self._intersection_point(epoch_mjd_tt, pv, frame, -2.0 * h)
        p_p1h = self._intersection_point(epoch_mjd_tt, pv, frame, h)
        p_m1h = self._intersection_point(epoch_mjd_tt, pv, frame, -h)
        v_0 = -s2 * p_p2h + s2 * p_m2h + s1 * p_p1h - s1 * p_m1h

        return PVCoordinates(p_0, v_0)

    def _intersection_point(self, epoch_mjd_tt: float, pv: PVCoordinates,
                            frame: FrameType, dt_s: float) -> np.ndarray:
        """Line-of-sight / shape intersection at epoch + dt_s.

        The satellite state is shifted linearly by dt_s; the frame transforms
        are evaluated at the same shifted instant.

        Args:
            epoch_mjd_tt: Reference epoch.
            pv: Satellite position/velocity at the reference epoch, in `frame`.
            frame: Frame of `pv` and of the returned point.
            dt_s: Offset from the reference epoch [s].

        Returns:
            Intersection point in `frame` [km], shape (3,).
        """
        shifted_pv = pv.shifted_by(dt_s)
        shifted_epoch = epoch_mjd_tt + dt_s / SECONDS_PER_DAY

        # Attitude failures propagate unchanged to the caller
        attitude = self.attitude_law.get_attitude(shifted_epoch, shifted_pv, frame)

        # Pointing axis: satellite -> attitude reference frame -> body frame
        pointing_ref = attitude.to_reference(self.sat_pointing_vector)
        ref_to_body = get_transform(attitude.reference_frame, self.body_frame, epoch_mjd_tt, dt_s)
        pointing_body = ref_to_body.transform_vector(pointing_ref)

        frame_to_body = get_transform(frame, self.body_frame, epoch_mjd_tt, dt_s)
        p_body = frame_to_body.transform_position(shifted_pv.position)

        line = Line(p_body, pointing_body)
        intersection = self.shape.intersection_point(
            line, p_body, self.body_frame, epoch_mjd_tt, dt_s)

        # The intersection must exist and lie ahead of the satellite
        if intersection is None or np.dot(intersection - p_body, pointing_body) < 0.0:
            logger.debug("Line of sight misses ground at MJD %.9f%+.3fs", epoch_mjd_tt, dt_s)
            raise GeometryMissError("attitude pointing law misses ground",
                                    epoch_mjd_tt=shifted_epoch)

        return frame_to_body.inverse().transform_position(intersection)
