import numpy as np
import pytest

from orbit_pointing.astrodynamics.orbits import EquinoctialOrbit
from orbit_pointing.attitude.providers import AttitudeProvider
from orbit_pointing.core.constants import MJD_J2000, MU_EARTH
from orbit_pointing.core.errors import AttitudeFailureError
from orbit_pointing.core.types import FrameType, OrbitalElements, SpacecraftState

EPOCH = MJD_J2000


class FailingAttitude(AttitudeProvider):
    """Attitude provider that always fails."""

    def get_attitude(self, epoch_mjd_tt, pv, frame):
        raise AttitudeFailureError("attitude unavailable")


@pytest.fixture
def circular_orbit():
    return EquinoctialOrbit(7000.0, 0.0, 0.0, 0.0, 0.0, 0.0, FrameType.ECI_J2000, MU_EARTH)


@pytest.fixture
def circular_state(circular_orbit):
    return SpacecraftState(EPOCH, circular_orbit, mass=1000.0)


@pytest.fixture
def eccentric_orbit():
    elements = OrbitalElements(a=8000.0, e=0.1, i=0.5, raan=0.3, aop=1.0, ta=0.2)
    return EquinoctialOrbit.from_keplerian(elements, MU_EARTH)


@pytest.fixture
def eccentric_state(eccentric_orbit):
    return SpacecraftState(EPOCH, eccentric_orbit, mass=500.0)


@pytest.fixture
def failing_attitude():
    return FailingAttitude()


def half_period_s(orbit):
    return 0.5 * 2.0 * np.pi / orbit.mean_motion


@pytest.fixture
def pre_apogee_state():
    """Eccentric orbit a little over two minutes before apogee."""
    elements = OrbitalElements(a=8000.0, e=0.1, i=0.5, raan=0.3, aop=1.0, ta=np.pi - 0.1)
    orbit = EquinoctialOrbit.from_keplerian(elements, MU_EARTH)
    return SpacecraftState(EPOCH, orbit, mass=500.0)
