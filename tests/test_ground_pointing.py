import numpy as np
import pytest

from conftest import EPOCH
from orbit_pointing.astrodynamics.bodies import OneAxisEllipsoid
from orbit_pointing.astrodynamics.propagator import KeplerianPropagator
from orbit_pointing.attitude.pointing import LofOffsetPointing
from orbit_pointing.attitude.providers import LofOffset
from orbit_pointing.core.config import GroundPointingConfig, SimConfig
from orbit_pointing.core.constants import DEG2RAD, R_EARTH
from orbit_pointing.core.errors import (
    AttitudeFailureError, GeometryMissError, InvalidConfigurationError
)
from orbit_pointing.core.types import FrameType, LOFType, Line, PVCoordinates

ECI = FrameType.ECI_J2000
NADIR = [0.0, 0.0, 1.0]


@pytest.fixture
def earth():
    return OneAxisEllipsoid()


@pytest.fixture
def polar_pv():
    """Satellite above the north pole, heading along +X."""
    return PVCoordinates([0.0, 0.0, 7000.0], [7.5, 0.0, 0.0])


@pytest.fixture
def equatorial_pv():
    return PVCoordinates([7000.0, 0.0, 0.0], [0.0, 7.5, 0.0])


def _inertial_sphere_pointing(step_s=None, offset_law=None):
    shape = OneAxisEllipsoid.sphere(6378.0, ECI)
    law = offset_law or LofOffset(LOFType.VVLH)
    config = SimConfig(ground_pointing=GroundPointingConfig(step_s)) if step_s else None
    return LofOffsetPointing(shape, law, NADIR, config)


# ---------------------------------------------------------------------------
# Body shape
# ---------------------------------------------------------------------------

def test_ellipsoid_intersection_picks_closest_point(earth):
    line = Line([0.0, 0.0, 10000.0], [0.0, 0.0, -1.0])
    point = earth.intersection_point(line, line.origin, FrameType.ECEF_ITRF, EPOCH)
    assert np.allclose(point, [0.0, 0.0, earth.polar_radius], atol=1e-9)


def test_ellipsoid_equator_intersection(earth):
    line = Line([0.0, -9000.0, 0.0], [0.0, 1.0, 0.0])
    point = earth.intersection_point(line, line.origin, FrameType.ECEF_ITRF, EPOCH)
    assert np.allclose(point, [0.0, -R_EARTH, 0.0], atol=1e-9)


def test_line_missing_shape_returns_none(earth):
    line = Line([0.0, 0.0, 10000.0], [1.0, 0.0, 0.0])
    assert earth.intersection_point(line, line.origin, FrameType.ECEF_ITRF, EPOCH) is None


@pytest.mark.parametrize("radius, flattening", [(0.0, 0.0), (-1.0, 0.0), (6378.0, 1.0)])
def test_invalid_shape_rejected(radius, flattening):
    with pytest.raises(InvalidConfigurationError):
        OneAxisEllipsoid(radius, flattening)


# ---------------------------------------------------------------------------
# Ground point
# ---------------------------------------------------------------------------

def test_nadir_over_pole_hits_polar_radius(earth, polar_pv):
    pointing = LofOffsetPointing(earth, LofOffset(LOFType.VVLH), NADIR)

    ground = pointing.observed_ground_point(EPOCH, polar_pv, ECI)

    assert np.allclose(ground.position, [0.0, 0.0, earth.polar_radius], atol=1e-6)
    expected_speed = earth.polar_radius * 7.5 / 7000.0
    assert ground.velocity[0] == pytest.approx(expected_speed, rel=1e-6)
    assert abs(ground.velocity[1]) < 1e-6


def test_target_in_body_frame_over_pole(earth, polar_pv):
    pointing = LofOffsetPointing(earth, LofOffset(LOFType.VVLH), NADIR)

    target = pointing.target_in_body_frame(EPOCH, polar_pv, ECI)

    assert np.allclose(target.position, [0.0, 0.0, earth.polar_radius], atol=1e-6)
    expected_speed = earth.polar_radius * 7.5 / 7000.0
    assert np.linalg.norm(target.velocity) == pytest.approx(expected_speed, rel=1e-6)


def test_off_nadir_pointing(equatorial_pv):
    law = LofOffset.from_axis_angle(LOFType.VVLH, [1.0, 0.0, 0.0], 30.0 * DEG2RAD)
    pointing = _inertial_sphere_pointing(offset_law=law)

    ground = pointing.observed_ground_point(EPOCH, equatorial_pv, ECI)

    assert np.linalg.norm(ground.position) == pytest.approx(6378.0, rel=1e-12)
    los = ground.position - equatorial_pv.position
    nadir = -equatorial_pv.position / np.linalg.norm(equatorial_pv.position)
    angle = np.arccos(np.dot(los, nadir) / np.linalg.norm(los))
    assert angle == pytest.approx(30.0 * DEG2RAD, abs=1e-10)


def test_pointing_away_from_body_misses(polar_pv):
    law = LofOffset.from_axis_angle(LOFType.VVLH, [0.0, 1.0, 0.0], 100.0 * DEG2RAD)
    pointing = LofOffsetPointing(OneAxisEllipsoid.sphere(1000.0), law, NADIR)

    with pytest.raises(GeometryMissError) as excinfo:
        pointing.observed_ground_point(EPOCH, polar_pv, ECI)

    assert "misses ground" in str(excinfo.value)


def test_intersection_behind_satellite_is_a_miss(earth, polar_pv):
    pointing = LofOffsetPointing(earth, LofOffset(LOFType.VVLH), [0.0, 0.0, -1.0])

    with pytest.raises(GeometryMissError):
        pointing.observed_ground_point(EPOCH, polar_pv, ECI)


def test_geometry_miss_is_an_attitude_failure():
    assert issubclass(GeometryMissError, AttitudeFailureError)


def test_attitude_law_failure_propagates(earth, polar_pv, failing_attitude):
    pointing = LofOffsetPointing(earth, failing_attitude, NADIR)

    with pytest.raises(AttitudeFailureError) as excinfo:
        pointing.observed_ground_point(EPOCH, polar_pv, ECI)

    assert not isinstance(excinfo.value, GeometryMissError)


# ---------------------------------------------------------------------------
# Finite-difference velocity
# ---------------------------------------------------------------------------

def test_ground_velocity_default_step_is_accurate(equatorial_pv):
    ground = _inertial_sphere_pointing().observed_ground_point(EPOCH, equatorial_pv, ECI)
    exact = np.array([0.0, 6378.0 * 7.5 / 7000.0, 0.0])
    assert np.allclose(ground.velocity, exact, atol=1e-8)


def test_ground_velocity_is_fourth_order(equatorial_pv):
    exact = np.array([0.0, 6378.0 * 7.5 / 7000.0, 0.0])

    errors = []
    for step in (20.0, 40.0):
        ground = _inertial_sphere_pointing(step).observed_ground_point(EPOCH, equatorial_pv, ECI)
        errors.append(np.linalg.norm(ground.velocity - exact))

    # Halving h divides the error by 2^4
    assert 12.0 < errors[1] / errors[0] < 20.0


# ---------------------------------------------------------------------------
# Attitude provider contract
# ---------------------------------------------------------------------------

def test_attitude_forwarded_to_underlying_law(earth, polar_pv):
    law = LofOffset(LOFType.VVLH)
    pointing = LofOffsetPointing(earth, law, NADIR)

    assert pointing.underlying_attitude_provider is law
    assert pointing.body_frame is FrameType.ECEF_ITRF
    assert np.allclose(pointing.get_attitude(EPOCH, polar_pv, ECI).quaternion,
                       law.get_attitude(EPOCH, polar_pv, ECI).quaternion)


def test_pointing_law_drives_propagator(earth, circular_state):
    law = LofOffset(LOFType.VVLH)
    prop = KeplerianPropagator(circular_state,
                               attitude_provider=LofOffsetPointing(earth, law, NADIR))

    state = prop.get_state(EPOCH)

    expected = law.get_attitude(EPOCH, state.pv, ECI)
    assert np.allclose(state.attitude.quaternion, expected.quaternion)


@pytest.mark.parametrize("vector, step", [([0.0, 0.0, 0.0], 0.05), (NADIR, 0.0), (NADIR, -1.0)])
def test_invalid_pointing_configuration(earth, vector, step):
    with pytest.raises(InvalidConfigurationError):
        LofOffsetPointing(earth, LofOffset(), vector,
                          SimConfig(ground_pointing=GroundPointingConfig(step)))
