import logging

import numpy as np
import pytest

from conftest import EPOCH, half_period_s
from orbit_pointing.astrodynamics.events import AbstractDetector, ApsideDetector, DateDetector
from orbit_pointing.astrodynamics.propagator import KeplerianPropagator
from orbit_pointing.attitude.providers import IdentityAttitude, LofOffset
from orbit_pointing.core.config import EventDetectionConfig, PropagatorConfig, SimConfig
from orbit_pointing.core.constants import MU_EARTH, SECONDS_PER_DAY
from orbit_pointing.core.errors import (
    AttitudeFailureError, InvalidConfigurationError, RootNotFoundError
)
from orbit_pointing.core.types import EventAction, FrameType, LOFType


def _epoch(t_s):
    return EPOCH + t_s / SECONDS_PER_DAY


class RecordingDetector(AbstractDetector):
    """Date-like detector that counts its firings."""

    def __init__(self, target_epoch_mjd_tt, **kwargs):
        super().__init__(**kwargs)
        self.target_epoch_mjd_tt = target_epoch_mjd_tt
        self.fired = 0

    def g(self, state):
        return (state.epoch_mjd_tt - self.target_epoch_mjd_tt) * SECONDS_PER_DAY

    def event_occurred(self, state):
        self.fired += 1
        return super().event_occurred(state)


# ---------------------------------------------------------------------------
# Analytic propagation
# ---------------------------------------------------------------------------

def test_state_at_initial_epoch_is_initial_state(eccentric_state):
    prop = KeplerianPropagator(eccentric_state)
    state = prop.get_state(EPOCH)
    assert np.allclose(state.position, eccentric_state.position, atol=1e-9)
    assert np.allclose(state.velocity, eccentric_state.velocity, atol=1e-12)
    assert state.mass == eccentric_state.mass


def test_quarter_period_circular(circular_state):
    prop = KeplerianPropagator(circular_state)
    quarter = 0.5 * half_period_s(circular_state.orbit)
    state = prop.get_state(_epoch(quarter))
    assert np.allclose(state.position, [0.0, 7000.0, 0.0], atol=1e-6)


def test_forward_then_backward_returns_to_start(eccentric_state):
    dt = 5000.0
    forward = KeplerianPropagator(eccentric_state).propagate(_epoch(dt)).state
    back = KeplerianPropagator(forward).propagate(EPOCH).state

    assert np.allclose(back.position, eccentric_state.position, atol=1e-4)
    assert np.allclose(back.velocity, eccentric_state.velocity, atol=1e-8)


def test_only_mean_longitude_changes(eccentric_state):
    orbit = KeplerianPropagator(eccentric_state).get_state(_epoch(1234.5)).orbit
    initial = eccentric_state.orbit
    assert (orbit.a, orbit.ex, orbit.ey, orbit.hx, orbit.hy) == \
        (initial.a, initial.ex, initial.ey, initial.hx, initial.hy)
    assert orbit.lm == pytest.approx(initial.lm + initial.mean_motion * 1234.5, abs=1e-8)


def test_custom_mu_changes_mean_motion(circular_state):
    prop = KeplerianPropagator(circular_state, mu=2.0 * MU_EARTH)
    assert prop.mean_motion == pytest.approx(np.sqrt(2.0) * circular_state.orbit.mean_motion)


def test_invalid_mu_rejected(circular_state):
    with pytest.raises(InvalidConfigurationError):
        KeplerianPropagator(circular_state, mu=-1.0)


def test_pv_coordinates_in_ecef(circular_state):
    prop = KeplerianPropagator(circular_state)
    pv = prop.get_pv_coordinates(_epoch(60.0), FrameType.ECEF_ITRF)
    assert np.linalg.norm(pv.position) == pytest.approx(7000.0, rel=1e-12)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

def test_date_detector_stops_propagation(circular_state):
    prop = KeplerianPropagator(circular_state)
    prop.add_event_detector(DateDetector(_epoch(1000.0)))

    result = prop.propagate(_epoch(3000.0))

    assert result.stopped
    assert len(result.events) == 1
    assert abs(result.state.epoch_mjd_tt - _epoch(1000.0)) * SECONDS_PER_DAY < 1e-5
    expected = prop.get_state(result.state.epoch_mjd_tt)
    assert np.allclose(result.state.position, expected.position, atol=1e-5)


def test_continue_detector_reaches_target(circular_state):
    prop = KeplerianPropagator(circular_state)
    detector = RecordingDetector(_epoch(1000.0), action=EventAction.CONTINUE)
    prop.add_event_detector(detector)

    result = prop.propagate(_epoch(3000.0))

    assert not result.stopped
    assert detector.fired == 1
    assert result.events[0].state_after is result.events[0].state_before
    assert result.state.epoch_mjd_tt == pytest.approx(_epoch(3000.0), abs=1e-12)


def test_earliest_event_fires_first(circular_state):
    prop = KeplerianPropagator(circular_state)
    late = DateDetector(_epoch(400.0), action=EventAction.CONTINUE)
    early = DateDetector(_epoch(100.0), action=EventAction.CONTINUE)
    prop.add_event_detector(late)
    prop.add_event_detector(early)

    result = prop.propagate(_epoch(1000.0))

    assert [occ.detector for occ in result.events] == [early, late]


def test_simultaneous_events_fire_in_registration_order(circular_state):
    prop = KeplerianPropagator(circular_state)
    first = DateDetector(_epoch(250.0), action=EventAction.CONTINUE)
    second = DateDetector(_epoch(250.0), action=EventAction.STOP)
    third = DateDetector(_epoch(250.0), action=EventAction.CONTINUE)
    for detector in (first, second, third):
        prop.add_event_detector(detector)

    result = prop.propagate(_epoch(1000.0))

    # Stop on the second one: the third never gets a chance
    assert [occ.detector for occ in result.events] == [first, second]
    assert result.stop_event.detector is second


def test_event_does_not_retrigger(circular_state):
    prop = KeplerianPropagator(circular_state)
    detector = RecordingDetector(_epoch(300.0), max_check_interval=60.0,
                                 action=EventAction.CONTINUE)
    prop.add_event_detector(detector)

    prop.propagate(_epoch(3000.0))

    assert detector.fired == 1


def test_backward_propagation_detects_events(circular_state):
    prop = KeplerianPropagator(circular_state)
    prop.add_event_detector(DateDetector(_epoch(-700.0)))

    result = prop.propagate(_epoch(-2000.0))

    assert result.stopped
    assert abs(result.state.epoch_mjd_tt - _epoch(-700.0)) * SECONDS_PER_DAY < 1e-5


def test_event_beyond_target_is_ignored(circular_state):
    prop = KeplerianPropagator(circular_state)
    prop.add_event_detector(DateDetector(_epoch(5000.0)))

    result = prop.propagate(_epoch(1000.0))

    assert not result.events
    assert not result.stopped


def test_root_not_found_with_exhausted_budget(circular_state):
    prop = KeplerianPropagator(circular_state)
    prop.add_event_detector(DateDetector(_epoch(123.4), max_iteration_count=1))

    with pytest.raises(RootNotFoundError) as excinfo:
        prop.propagate(_epoch(1000.0))

    assert excinfo.value.iterations == 1


@pytest.mark.parametrize("kwargs", [
    dict(max_check_interval=0.0),
    dict(threshold=-1e-6),
    dict(max_iteration_count=0),
])
def test_invalid_detector_parameters(kwargs):
    with pytest.raises(InvalidConfigurationError):
        DateDetector(EPOCH, **kwargs)


def test_detector_defaults_from_config():
    config = EventDetectionConfig(max_check_interval_s=42.0, max_iteration_count=7,
                                  threshold_s=1e-3)

    detector = DateDetector(EPOCH, config=config)
    override = DateDetector(EPOCH, threshold=1e-5, config=config)

    assert detector.max_check_interval == 42.0
    assert detector.max_iteration_count == 7
    assert detector.threshold == 1e-3
    assert override.threshold == 1e-5
    assert override.max_check_interval == 42.0


def test_invalid_config_values_rejected():
    with pytest.raises(InvalidConfigurationError):
        DateDetector(EPOCH, config=EventDetectionConfig(max_check_interval_s=-5.0))


def test_apside_detector_stops_at_apsis(eccentric_state):
    orbit = eccentric_state.orbit
    prop = KeplerianPropagator(eccentric_state)
    prop.add_event_detector(ApsideDetector(orbit))

    result = prop.propagate(_epoch(orbit.period))

    assert result.stopped
    r = np.linalg.norm(result.state.position)
    perigee, apogee = orbit.a * (1.0 - orbit.e), orbit.a * (1.0 + orbit.e)
    assert min(abs(r - perigee), abs(r - apogee)) < 1e-6


def test_propagate_leaves_propagator_untouched(circular_state):
    prop = KeplerianPropagator(circular_state)
    prop.add_event_detector(DateDetector(_epoch(100.0), action=EventAction.CONTINUE))

    prop.propagate(_epoch(1000.0))

    assert prop.initial_state is circular_state
    assert len(prop.event_detectors) == 1


def test_clear_event_detectors(circular_state):
    prop = KeplerianPropagator(circular_state)
    prop.add_event_detector(DateDetector(_epoch(100.0)))
    prop.clear_event_detectors()

    assert not prop.propagate(_epoch(1000.0)).events


# ---------------------------------------------------------------------------
# Attitude
# ---------------------------------------------------------------------------

def test_default_attitude_is_identity(circular_state):
    state = KeplerianPropagator(circular_state).get_state(_epoch(10.0))
    assert isinstance(KeplerianPropagator(circular_state).attitude_provider, IdentityAttitude)
    assert np.allclose(state.attitude.rotation_matrix, np.eye(3))


def test_with_attitude_provider_returns_new_propagator(circular_state):
    prop = KeplerianPropagator(circular_state)
    detector = DateDetector(_epoch(100.0))
    prop.add_event_detector(detector)
    law = LofOffset(LOFType.VVLH)

    other = prop.with_attitude_provider(law)

    assert other is not prop
    assert other.attitude_provider is law
    assert isinstance(prop.attitude_provider, IdentityAttitude)
    assert other.event_detectors == (detector,)
    state = other.get_state(EPOCH)
    # +Z satellite axis looks at the center of the Earth
    nadir = state.attitude.to_reference([0.0, 0.0, 1.0])
    assert np.allclose(nadir, -state.position / np.linalg.norm(state.position))


def test_attitude_failure_raises_by_default(circular_state, failing_attitude):
    prop = KeplerianPropagator(circular_state, attitude_provider=failing_attitude)

    with pytest.raises(AttitudeFailureError):
        prop.get_state(_epoch(10.0))


def test_attitude_failure_reported_by_query(circular_state, failing_attitude):
    prop = KeplerianPropagator(circular_state, attitude_provider=failing_attitude)

    query = prop.query(_epoch(10.0))

    assert not query.ok
    assert isinstance(query.failure, AttitudeFailureError)
    assert query.state.attitude is None


def test_attitude_failure_degrades_when_allowed(circular_state, failing_attitude, caplog):
    config = SimConfig(propagator=PropagatorConfig(degrade_on_attitude_failure=True))
    prop = KeplerianPropagator(circular_state, attitude_provider=failing_attitude,
                               config=config)

    with caplog.at_level(logging.WARNING, logger="orbit_pointing"):
        state = prop.get_state(_epoch(10.0))

    assert state.attitude is None
    assert "state returned without attitude" in caplog.text


def test_with_attitude_provider_keeps_config(circular_state):
    config = SimConfig(propagator=PropagatorConfig(degrade_on_attitude_failure=True))
    prop = KeplerianPropagator(circular_state, config=config)

    assert prop.with_attitude_provider(LofOffset()).config is config


# ---------------------------------------------------------------------------
# Repeated crossings
# ---------------------------------------------------------------------------

def test_apside_detector_alternates_over_revolutions(eccentric_state):
    orbit = eccentric_state.orbit
    prop = KeplerianPropagator(eccentric_state)
    prop.add_event_detector(ApsideDetector(orbit, action=EventAction.CONTINUE))

    result = prop.propagate(_epoch(2.2 * orbit.period))

    # Starts just past perigee: apogee, perigee, apogee, perigee
    assert len(result.events) == 4
    perigee, apogee = orbit.a * (1.0 - orbit.e), orbit.a * (1.0 + orbit.e)
    radii = [np.linalg.norm(occ.state_before.position) for occ in result.events]
    for r, expected in zip(radii, [apogee, perigee, apogee, perigee]):
        assert r == pytest.approx(expected, abs=1e-6)

    epochs = [occ.epoch_mjd_tt for occ in result.events]
    gaps = [(b - a) * SECONDS_PER_DAY for a, b in zip(epochs, epochs[1:])]
    assert gaps == pytest.approx([0.5 * orbit.period] * 3, abs=1e-4)
    assert not result.stopped
