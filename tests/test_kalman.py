#!/usr/bin/env python3
"""
SkyShield - Constant-Acceleration Kalman Filter Tests
=====================================================

Run with: pytest tests/test_kalman.py -v
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_equal
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from skyshield.ballistics import GRAVITY, ballistic_position, ballistic_velocity
from skyshield.config import KalmanConfig
from skyshield.kalman import (
    make_ca_transition, make_acceleration_noise, measurement_matrix, invert_3x3,
    initialize_kalman_state, kalman_predict, kalman_update, get_position_uncertainty,
    predict_future_position, process_noise_for, KalmanFilterCA, KalmanState,
)
from skyshield.models import ThreatCategory


@pytest.fixture
def falling_state():
    return initialize_kalman_state([0.0, 100.0, 0.0], [50.0, 20.0, 0.0],
                                   [0.0, -9.81, 0.0])


# =============================================================================
# MATRICES
# =============================================================================

class TestMatrices:
    """Model matrices and 3×3 inverse."""

    def test_transition_structure(self):
        F = make_ca_transition(2.0)
        assert F.shape == (9, 9)
        assert F[0, 3] == 2.0 and F[0, 6] == 2.0
        assert F[3, 6] == 2.0
        assert_array_equal(np.diag(F), np.ones(9))

    def test_noise_only_on_acceleration(self):
        Q = make_acceleration_noise(0.5)
        assert_array_equal(np.diag(Q), [0, 0, 0, 0, 0, 0, 0.5, 0.5, 0.5])
        assert np.count_nonzero(Q) == 3

    def test_measurement_extracts_position(self):
        x = np.arange(9.0)
        assert_array_equal(measurement_matrix() @ x, [0.0, 1.0, 2.0])

    def test_inverse_matches_numpy(self):
        rng = np.random.default_rng(3)
        A = rng.normal(size=(3, 3))
        S = A @ A.T + np.eye(3)
        assert_allclose(invert_3x3(S), np.linalg.inv(S), rtol=1e-10)

    def test_singular_inverse_is_identity(self):
        S = np.array([[1.0, 2.0, 3.0], [2.0, 4.0, 6.0], [0.0, 1.0, 1.0]])
        assert_array_equal(invert_3x3(S), np.eye(3))


# =============================================================================
# FUNCTIONAL API
# =============================================================================

class TestFunctionalFilter:
    """initialize / predict / update over immutable states."""

    def test_one_second_prediction(self, falling_state):
        s = kalman_predict(falling_state, 1.0, process_noise=1.0)
        assert_allclose(s.position, [50.0, 115.095, 0.0])
        assert_allclose(s.velocity, [50.0, 10.19, 0.0])
        assert_allclose(s.acceleration, [0.0, -9.81, 0.0])

    def test_predict_does_not_mutate(self, falling_state):
        x_before = falling_state.x.copy()
        kalman_predict(falling_state, 1.0)
        assert_array_equal(falling_state.x, x_before)

    def test_agrees_with_ballistic_projection(self):
        p0, v0 = [120.0, 800.0, -40.0], [-90.0, 35.0, 12.0]
        s = initialize_kalman_state(p0, v0)
        for _ in range(25):
            s = kalman_predict(s, 0.1, process_noise=0.0)
        assert_allclose(s.position, ballistic_position(p0, v0, 2.5), rtol=1e-12, atol=1e-9)
        assert_allclose(s.velocity, ballistic_velocity(v0, 2.5), rtol=1e-12, atol=1e-9)

    def test_default_acceleration_is_gravity(self):
        s = initialize_kalman_state([0, 0, 0], [0, 0, 0])
        assert_array_equal(s.acceleration, [0.0, -GRAVITY, 0.0])

    def test_initial_uncertainty(self, falling_state):
        assert_array_equal(falling_state.P, np.eye(9) * 100.0)
        assert get_position_uncertainty(falling_state) == pytest.approx(10.0)

    def test_process_noise_grows_acceleration_variance(self, falling_state):
        s = kalman_predict(falling_state, 0.1, process_noise=2.0)
        assert s.P[6, 6] == pytest.approx(102.0)

    def test_update_moves_toward_measurement(self, falling_state):
        z = np.array([10.0, 110.0, -5.0])
        s = kalman_update(falling_state, z, measurement_noise=5.0)
        # Gain 100 / 105 on each position component
        assert_allclose(s.position, np.array([0, 100, 0]) + (z - [0, 100, 0]) * 100.0 / 105.0)
        assert get_position_uncertainty(s) < get_position_uncertainty(falling_state)

    def test_covariance_stays_symmetric(self, falling_state):
        s = falling_state
        for z in ([1, 101, 0], [52, 114, 1], [99, 119, -1]):
            s = kalman_predict(s, 1.0, 0.5)
            s = kalman_update(s, z)
        assert_array_equal(s.P, s.P.T)

    def test_future_uncertainty_grows_with_horizon(self, falling_state):
        s = kalman_update(kalman_predict(falling_state, 0.5, 0.5), [25, 108, 0])
        uncertainties = [predict_future_position(s, t)[1] for t in (0.0, 0.5, 1.0, 2.0, 5.0)]
        assert all(a < b for a, b in zip(uncertainties, uncertainties[1:]))

    def test_future_position_is_kinematic(self, falling_state):
        position, _ = predict_future_position(falling_state, 1.0)
        assert_allclose(position, [50.0, 115.095, 0.0])

    def test_deterministic(self, falling_state):
        a = kalman_update(kalman_predict(falling_state, 0.3, 5.0), [16, 104, 1])
        b = kalman_update(kalman_predict(falling_state, 0.3, 5.0), [16, 104, 1])
        assert_array_equal(a.x, b.x)
        assert_array_equal(a.P, b.P)


# =============================================================================
# STATEFUL FILTER
# =============================================================================

class TestKalmanFilterCA:
    """Per-track filter."""

    def test_process_noise_by_category(self):
        assert process_noise_for(ThreatCategory.BALLISTIC) == 0.5
        assert process_noise_for(ThreatCategory.CRUISE) == 2.0
        assert process_noise_for(ThreatCategory.DRONE) == 5.0
        assert process_noise_for(None) == 1.0
        assert process_noise_for("drone") == 5.0

    def test_custom_noise_table(self):
        cfg = KalmanConfig(process_noise={"drone": 9.0}, default_process_noise=3.0)
        assert process_noise_for(ThreatCategory.DRONE, cfg) == 9.0
        assert process_noise_for(ThreatCategory.CRUISE, cfg) == 3.0

    def test_scenario_prediction(self):
        kf = KalmanFilterCA()
        kf.initialize_from_threat([0, 100, 0], [50, 20, 0], ThreatCategory.BALLISTIC,
                                  acceleration=[0, -9.81, 0])
        position, velocity = kf.predict(1.0)
        assert_allclose(position, [50.0, 115.095, 0.0])
        assert_allclose(velocity, [50.0, 10.19, 0.0])

    def test_drone_starts_without_acceleration(self):
        kf = KalmanFilterCA()
        kf.initialize_from_threat([0, 100, 0], [20, 0, 0], ThreatCategory.DRONE)
        assert_array_equal(kf.acceleration, np.zeros(3))
        assert kf.Q[6, 6] == 5.0

    def test_ballistic_starts_in_free_fall(self):
        kf = KalmanFilterCA()
        kf.initialize_from_threat([0, 100, 0], [20, 0, 0], ThreatCategory.BALLISTIC)
        assert_array_equal(kf.acceleration, [0.0, -GRAVITY, 0.0])

    def test_matches_functional_api(self):
        kf = KalmanFilterCA()
        kf.initialize_from_threat([0, 100, 0], [50, 20, 0], ThreatCategory.CRUISE)
        kf.predict(0.5)
        kf.update([26, 108, 1])

        s = initialize_kalman_state([0, 100, 0], [50, 20, 0], [0, 0, 0])
        s = kalman_update(kalman_predict(s, 0.5, 2.0), [26, 108, 1], 5.0)
        assert_allclose(kf.state.x, s.x)
        assert_allclose(kf.state.P, s.P)
        assert kf.position_uncertainty == pytest.approx(get_position_uncertainty(s))

    def test_update_returns_innovation(self):
        kf = KalmanFilterCA()
        kf.initialize_from_threat([0, 100, 0], [0, 0, 0], ThreatCategory.DRONE)
        assert_allclose(kf.update([3, 104, 0]), [3.0, 4.0, 0.0])

    def test_state_is_a_copy(self):
        kf = KalmanFilterCA()
        kf.initialize_from_threat([0, 100, 0], [0, 0, 0], ThreatCategory.DRONE)
        snapshot = kf.state
        kf.predict(1.0)
        assert isinstance(snapshot, KalmanState)
        assert snapshot.P[0, 0] == 100.0
