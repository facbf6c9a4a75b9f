"""
Keplerian orbit propagator with event detection.

Pure two-body extrapolation: the mean longitude argument advances at the
constant mean motion n = sqrt(mu/a)/a fixed at construction, every other
equinoctial element is held.

On top of the analytic model runs the event loop:
    - g functions sampled at most every max_check_interval seconds
    - sign changes isolated with Brent's method (scipy.optimize.brentq)
    - earliest root first; roots within threshold of it in registration order
    - RESET_STATE re-anchors the analytic arc on the detector's reset state
    - STOP halts propagation at the event epoch
"""

from __future__ import annotations

import logging
import numpy as np
from scipy.optimize import brentq

from ..attitude.providers import AttitudeProvider, IdentityAttitude
from ..core.config import SimConfig
from ..core.constants import SECONDS_PER_DAY
from ..core.errors import AttitudeFailureError, InvalidConfigurationError, RootNotFoundError
from ..core.types import (
    EventAction, EventOccurrence, FrameType, PropagationResult,
    PVCoordinates, SpacecraftState, StateQuery
)
from .events import EventDetector
from .orbits import EquinoctialOrbit

logger = logging.getLogger(__name__)

# g within this many thresholds' worth of slope of zero still counts as the root
ROOT_TOLERANCE_FACTOR = 10.0


class _KeplerianArc:
    """Two-body arc anchored on one state.

    Attributes:
        anchor: State the arc starts from.
        orbit: Anchor orbit expressed with the propagator's mu.
        offset_s: Time of the anchor [seconds since propagation start].
    """

    def __init__(self, anchor: SpacecraftState, mu: float, offset_s: float = 0.0):
        self.anchor = anchor
        self.orbit = anchor.orbit if anchor.orbit.mu == mu else anchor.orbit.with_mu(mu)
        self.offset_s = offset_s

    def orbit_at(self, t_s: float) -> EquinoctialOrbit:
        return self.orbit.shifted_by(t_s - self.offset_s)


class KeplerianPropagator:
    """Analytic Keplerian propagator with event handling.

    Attributes:
        config: Simulation configuration.
    """

    def __init__(self, initial_state: SpacecraftState, mu: float = None,
                 attitude_provider: AttitudeProvider = None,
                 config: SimConfig = None):
        """Initialize the propagator.

        Args:
            initial_state: State at the reference epoch.
            mu: Central attraction coefficient [km³/s²]. Defaults to the
                initial orbit's.
            attitude_provider: Attitude law attached to propagated states.
                Defaults to IdentityAttitude.
            config: Simulation settings; the attitude failure policy is read
                from `config.propagator`. Defaults to SimConfig().

        Raises:
            InvalidConfigurationError: For a non-positive mu.
        """
        mu = initial_state.mu if mu is None else mu
        if not np.isfinite(mu) or mu <= 0.0:
            raise InvalidConfigurationError(f"gravitational parameter must be positive, got {mu}")

        self.config = config or SimConfig()
        self._mu = float(mu)
        self._arc = _KeplerianArc(initial_state, self._mu)
        self._attitude_provider = attitude_provider or IdentityAttitude()
        self._detectors: list[EventDetector] = []

        logger.debug("Keplerian propagator from MJD %.9f, a=%.3f km, n=%.6e rad/s",
                     initial_state.epoch_mjd_tt, self._arc.orbit.a, self.mean_motion)

    # -----------------------------------------------------------------------
    # Configuration
    # -----------------------------------------------------------------------

    @property
    def initial_state(self) -> SpacecraftState:
        return self._arc.anchor

    @property
    def mu(self) -> float:
        return self._mu

    @property
    def mean_motion(self) -> float:
        """Constant mean motion [rad/s]."""
        return self._arc.orbit.mean_motion

    @property
    def attitude_provider(self) -> AttitudeProvider:
        return self._attitude_provider

    def with_attitude_provider(self, attitude_provider: AttitudeProvider) -> KeplerianPropagator:
        """New propagator sharing this one's state and detectors."""
        other = KeplerianPropagator(self.initial_state, self._mu, attitude_provider, self.config)
        other._detectors = list(self._detectors)
        return other

    @property
    def event_detectors(self) -> tuple[EventDetector, ...]:
        return tuple(self._detectors)

    def add_event_detector(self, detector: EventDetector):
        """Register a detector; registration order breaks simultaneous roots."""
        self._detectors.append(detector)

    def clear_event_detectors(self):
        self._detectors.clear()

    # -----------------------------------------------------------------------
    # Analytic queries
    # -----------------------------------------------------------------------

    def query(self, epoch_mjd_tt: float) -> StateQuery:
        """Analytic state at an epoch, ignoring events.

        An attitude provider failure does not raise here: it is returned in
        the StateQuery next to the state without attitude.

        Args:
            epoch_mjd_tt: Target epoch.

        Returns:
            StateQuery with the propagated state.
        """
        t_s = (epoch_mjd_tt - self._arc.anchor.epoch_mjd_tt) * SECONDS_PER_DAY
        return self._query_on_arc(self._arc, epoch_mjd_tt, t_s)

    def get_state(self, epoch_mjd_tt: float) -> SpacecraftState:
        """Analytic state with attitude at an epoch, ignoring events.

        Raises:
            AttitudeFailureError: If the attitude provider fails and the
                configuration does not allow degraded states.
        """
        return self._resolve(self.query(epoch_mjd_tt))

    def get_pv_coordinates(self, epoch_mjd_tt: float,
                           frame: FrameType = FrameType.ECI_J2000) -> PVCoordinates:
        """Position/velocity at an epoch in the requested frame."""
        return self.query(epoch_mjd_tt).state.pv_in(frame)

    def _query_on_arc(self, arc: _KeplerianArc, epoch_mjd_tt: float, t_s: float) -> StateQuery:
        orbit = arc.orbit_at(t_s)
        bare = SpacecraftState(epoch_mjd_tt, orbit, arc.anchor.mass)
        try:
            attitude = self._attitude_provider.get_attitude(epoch_mjd_tt, orbit.pv(), orbit.frame)
        except AttitudeFailureError as exc:
            return StateQuery(bare, exc)
        return StateQuery(bare.with_attitude(attitude))

    def _resolve(self, query: StateQuery) -> SpacecraftState:
        if query.ok:
            return query.state
        if self.config.propagator.degrade_on_attitude_failure:
            logger.warning("Attitude unavailable at MJD %.9f (%s); state returned without attitude",
                           query.state.epoch_mjd_tt, query.failure)
            return query.state
        raise query.failure

    # -----------------------------------------------------------------------
    # Event-driven propagation
    # -----------------------------------------------------------------------

    def propagate(self, target_epoch_mjd_tt: float) -> PropagationResult:
        """Propagate to a target epoch, handling registered events.

        Works forward and backward in time. The propagator itself is left
        untouched: resets only affect this run.

        Args:
            target_epoch_mjd_tt: Target epoch.

        Returns:
            PropagationResult with the final state and the handled events.

        Raises:
            RootNotFoundError: If an event root cannot be isolated within the
                detector's iteration budget.
            AttitudeFailureError: If an attitude is required and unavailable.
        """
        if not self._detectors:
            return PropagationResult(self.get_state(target_epoch_mjd_tt))

        detectors = list(self._detectors)
        arc = self._arc
        start_epoch = arc.anchor.epoch_mjd_tt
        duration = (target_epoch_mjd_tt - start_epoch) * SECONDS_PER_DAY
        direction = 1.0 if duration >= 0.0 else -1.0
        max_step = min(d.max_check_interval for d in detectors)

        t = 0.0
        state = self._state_on_arc(arc, start_epoch, t)
        g_values = [d.g(state) for d in detectors]
        signs = [np.sign(g) for g in g_values]
        events: list[EventOccurrence] = []

        while direction * (duration - t) > 0.0:
            if abs(duration - t) <= max_step:
                t_next = duration
            else:
                t_next = t + direction * max_step
            state_next = self._state_on_arc(arc, start_epoch, t_next)
            g_next = [d.g(state_next) for d in detectors]

            roots = []
            for i, detector in enumerate(detectors):
                if signs[i] == 0.0 or signs[i] * g_next[i] > 0.0:
                    continue
                if g_values[i] * g_next[i] > 0.0:
                    # Crossing already consumed at the interval start
                    logger.debug("No bracket for %s in [%.6f, %.6f] s",
                                 type(detector).__name__, t, t_next)
                    continue
                t_root = self._locate_root(detector, arc, start_epoch,
                                           t, t_next, g_values[i], g_next[i])
                # Mean |dg/dt| over the bracket, scales the root tolerance on g
                rate = abs(g_next[i] - g_values[i]) / abs(t_next - t)
                roots.append((t_root, i, rate))

            if not roots:
                t, state, g_values = t_next, state_next, g_next
                signs = [np.sign(g) if g != 0.0 else s for g, s in zip(g_next, signs)]
                continue

            t_event = min(roots, key=lambda r: direction * r[0])[0]
            fired = sorted(i for t_root, i, _ in roots
                           if abs(t_root - t_event) <= detectors[i].threshold)
            rates = {i: rate for _, i, rate in roots}

            event_state = self._state_on_arc(arc, start_epoch, t_event)
            reset = False
            for i in fired:
                detector = detectors[i]
                before = event_state
                action = detector.event_occurred(before)
                if action is EventAction.RESET_STATE:
                    event_state = detector.reset_state(before)
                    reset = True
                events.append(EventOccurrence(before.epoch_mjd_tt, detector, action,
                                              before, event_state))
                logger.info("Event %s at MJD %.9f (t=%.6f s): %s",
                            type(detector).__name__, before.epoch_mjd_tt, t_event, action.name)
                if action is EventAction.STOP:
                    return PropagationResult(event_state, events)

            if reset:
                arc = _KeplerianArc(event_state, self._mu, t_event)

            g_event = [d.g(event_state) for d in detectors]
            signs = self._signs_after_event(detectors, fired, rates, reset, signs, g_event)
            t, state, g_values = t_event, event_state, g_event

        return PropagationResult(state, events)

    @staticmethod
    def _signs_after_event(detectors: list[EventDetector], fired: list[int],
                           rates: dict[int, float], reset: bool,
                           signs: list[float], g_event: list[float]) -> list[float]:
        """g signs to resume the sampling with after handled events.

        A fired detector is past its crossing: its sign is flipped, so the
        residual g of the isolated root cannot fire the same crossing again.
        After a reset, a fired detector whose g now lies farther from zero
        than its root tolerance takes the sign of that g instead: the reset
        moved it and its next crossing must be detected.

        Args:
            detectors: Registered detectors.
            fired: Indices of the detectors handled at this event.
            rates: Mean |dg/dt| over the bracket of each located root.
            reset: Whether one of the fired detectors reset the state.
            signs: Signs tracked before the event.
            g_event: g values at the state the propagation resumes from.

        Returns:
            Signs to track from the event onward.
        """
        new_signs = list(signs)
        for i, g in enumerate(g_event):
            if i in fired:
                g_tolerance = ROOT_TOLERANCE_FACTOR * rates[i] * detectors[i].threshold
                if reset and abs(g) > g_tolerance:
                    new_signs[i] = np.sign(g)
                else:
                    new_signs[i] = -signs[i]
            elif g != 0.0:
                new_signs[i] = np.sign(g)
        return new_signs

    def _state_on_arc(self, arc: _KeplerianArc, start_epoch: float, t_s: float) -> SpacecraftState:
        epoch = start_epoch + t_s / SECONDS_PER_DAY
        return self._resolve(self._query_on_arc(arc, epoch, t_s))

    def _locate_root(self, detector: EventDetector, arc: _KeplerianArc, start_epoch: float,
                     t_a: float, t_b: float, g_a: float, g_b: float) -> float:
        """Isolate the g root bracketed by [t_a, t_b].

        Args:
            detector: Detector whose g changes sign.
            arc: Analytic arc valid over the bracket.
            start_epoch: Epoch of t = 0.
            t_a, t_b: Bracket ends [seconds since start], in propagation order.
            g_a, g_b: g values at the bracket ends.

        Returns:
            Root time [seconds since start].

        Raises:
            RootNotFoundError: If brentq does not converge within the
                detector's max_iteration_count.
        """
        if g_b == 0.0:
            return t_b

        def g_of_t(t_s: float) -> float:
            return detector.g(self._state_on_arc(arc, start_epoch, t_s))

        lo, hi = min(t_a, t_b), max(t_a, t_b)
        root, info = brentq(g_of_t, lo, hi,
                            xtol=detector.threshold,
                            maxiter=detector.max_iteration_count,
                            full_output=True, disp=False)
        if not info.converged:
            raise RootNotFoundError(
                f"{type(detector).__name__} root not isolated in [{lo:.6f}, {hi:.6f}] s "
                f"after {info.iterations} iterations",
                detector=detector, bracket_s=(lo, hi), iterations=info.iterations)

        logger.debug("%s root at t=%.9f s (%d iterations)",
                     type(detector).__name__, root, info.iterations)
        return root
