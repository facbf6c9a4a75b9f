"""
Attitude providers.

An attitude provider answers one question: given an epoch and the satellite
position/velocity in some frame, what is the satellite attitude? Propagators,
the ground-pointing engine and maneuvers all consume this capability.

Providers are stateless after construction, so a single instance can be
shared by several independent propagation runs.

Providers:
    - IdentityAttitude: satellite axes aligned with the reference frame
    - LofOffset: local orbital frame plus a fixed offset rotation
    - AttitudeProviderModifier: wrapper contract around another provider
"""

from __future__ import annotations

import numpy as np
from abc import ABC, abstractmethod

from ..core.frames import local_orbital_frame
from ..core.types import Attitude, FrameType, LOFType, PVCoordinates
from .quaternion import Q_IDENTITY, dcm_to_q, q_from_axis_angle, q_multiply, q_to_dcm


class AttitudeProvider(ABC):
    """Capability: attitude as a function of epoch and orbital state."""

    @abstractmethod
    def get_attitude(self, epoch_mjd_tt: float, pv: PVCoordinates,
                     frame: FrameType) -> Attitude:
        """Compute the attitude at an epoch.

        Args:
            epoch_mjd_tt: Epoch.
            pv: Satellite position/velocity in `frame`.
            frame: Frame of `pv`.

        Returns:
            Attitude at epoch.

        Raises:
            AttitudeFailureError: If the attitude cannot be computed.
        """


class AttitudeProviderModifier(AttitudeProvider):
    """Provider that wraps another provider.

    Implementations expose the wrapped provider and forward every operation
    they do not modify to it explicitly.
    """

    @property
    @abstractmethod
    def underlying_attitude_provider(self) -> AttitudeProvider:
        """The wrapped provider."""


class IdentityAttitude(AttitudeProvider):
    """Satellite frame aligned with the reference frame, no rotation rate."""

    def get_attitude(self, epoch_mjd_tt: float, pv: PVCoordinates,
                     frame: FrameType) -> Attitude:
        return Attitude(epoch_mjd_tt, frame, Q_IDENTITY)


class LofOffset(AttitudeProvider):
    """Attitude tied to a local orbital frame with a constant offset.

    With an identity offset the satellite axes coincide with the local
    orbital frame axes (e.g. VVLH: +Z toward nadir, +X roughly along the
    velocity).

    Attributes:
        lof_type: Local orbital frame convention.
        offset: LOF-to-satellite quaternion, shape (4,).
    """

    def __init__(self, lof_type: LOFType = LOFType.VVLH, offset: np.ndarray = None):
        """Initialize the attitude law.

        Args:
            lof_type: Local orbital frame convention.
            offset: LOF-to-satellite quaternion [q1,q2,q3, q4_scalar].
                Defaults to identity.
        """
        self.lof_type = lof_type
        self.offset = Q_IDENTITY.copy() if offset is None else np.asarray(offset, dtype=float)

    @classmethod
    def from_axis_angle(cls, lof_type: LOFType, axis: np.ndarray, angle: float) -> LofOffset:
        """Satellite frame obtained by turning the LOF by `angle` about `axis`."""
        return cls(lof_type, q_from_axis_angle(axis, angle))

    def get_attitude(self, epoch_mjd_tt: float, pv: PVCoordinates,
                     frame: FrameType) -> Attitude:
        R_lof, omega = local_orbital_frame(pv.position, pv.velocity, self.lof_type)

        # frame -> LOF -> satellite
        q_frame_to_sat = q_multiply(self.offset, dcm_to_q(R_lof))

        # LOF rotates at the orbital rate; offset is constant
        spin_body = q_to_dcm(q_frame_to_sat) @ omega

        return Attitude(epoch_mjd_tt, frame, q_frame_to_sat, spin_body)
