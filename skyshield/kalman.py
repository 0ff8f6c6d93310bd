"""
SkyShield State Estimator
=========================
9-state constant-acceleration Kalman filter, position-only measurements.

State:  x = [x, y, z, vx, vy, vz, ax, ay, az]
Model:  p += v·dt + ½·a·dt²,  v += a·dt,  a held constant
Noise:  Q injects process noise on the acceleration diagonal only.
        R = r·I₃ on the measured position.

Two front-ends share the same matrix builders:
  - functional: initialize_kalman_state / kalman_predict / kalman_update
    over an immutable KalmanState
  - stateful:   KalmanFilterCA (one instance per track)

References:
  - Bar-Shalom, Li, Kirubarajan (2001), "Estimation with Applications to
    Tracking and Navigation", Ch. 6
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from .ballistics import GRAVITY, UP_AXIS, as_vector
from .config import KalmanConfig
from .models import ThreatCategory

STATE_DIM = 9
MEAS_DIM = 3
SINGULAR_EPS = 1e-10


# ===== MATRIX BUILDERS =====

def make_ca_transition(dt: float) -> np.ndarray:
    """F (9×9) for constant acceleration over dt."""
    dt2 = 0.5 * dt * dt
    F = np.eye(STATE_DIM)
    F[0, 3] = dt; F[1, 4] = dt; F[2, 5] = dt
    F[0, 6] = dt2; F[1, 7] = dt2; F[2, 8] = dt2
    F[3, 6] = dt; F[4, 7] = dt; F[5, 8] = dt
    return F


def make_acceleration_noise(q: float) -> np.ndarray:
    """Q (9×9), diagonal on the acceleration block."""
    Q = np.zeros((STATE_DIM, STATE_DIM))
    Q[6, 6] = Q[7, 7] = Q[8, 8] = q
    return Q


def measurement_matrix() -> np.ndarray:
    H = np.zeros((MEAS_DIM, STATE_DIM))
    H[0, 0] = H[1, 1] = H[2, 2] = 1.0
    return H


def invert_3x3(A: np.ndarray) -> np.ndarray:
    """Closed-form cofactor inverse. Near-singular input returns I₃."""
    a, b, c = A[0]
    d, e, f = A[1]
    g, h, i = A[2]

    det = a * (e * i - f * h) - b * (d * i - f * g) + c * (d * h - e * g)
    if abs(det) < SINGULAR_EPS:
        return np.eye(3)

    adj = np.array([
        [e * i - f * h, c * h - b * i, b * f - c * e],
        [f * g - d * i, a * i - c * g, c * d - a * f],
        [d * h - e * g, b * g - a * h, a * e - b * d],
    ])
    return adj / det


def process_noise_for(category: Optional[ThreatCategory],
                      config: Optional[KalmanConfig] = None) -> float:
    """More maneuverable threats get more process noise."""
    cfg = config or KalmanConfig()
    if category is None:
        return cfg.default_process_noise
    return cfg.process_noise.get(ThreatCategory(category).value,
                                 cfg.default_process_noise)


# ===== FUNCTIONAL API =====

@dataclass(frozen=True)
class KalmanState:
    x: np.ndarray   # (9,)
    P: np.ndarray   # (9, 9)

    @property
    def position(self) -> np.ndarray:
        return self.x[:3].copy()

    @property
    def velocity(self) -> np.ndarray:
        return self.x[3:6].copy()

    @property
    def acceleration(self) -> np.ndarray:
        return self.x[6:9].copy()


def _symmetrize(P: np.ndarray) -> np.ndarray:
    return 0.5 * (P + P.T)


def initialize_kalman_state(position, velocity, acceleration=None,
                            initial_uncertainty: float = 100.0) -> KalmanState:
    """Fresh state with P = initial_uncertainty·I.

    Acceleration defaults to free fall (−GRAVITY on the up axis).
    """
    if acceleration is None:
        acceleration = np.zeros(3)
        acceleration[UP_AXIS] = -GRAVITY
    x = np.concatenate([as_vector(position), as_vector(velocity), as_vector(acceleration)])
    return KalmanState(x=x, P=np.eye(STATE_DIM) * initial_uncertainty)


def kalman_predict(state: KalmanState, dt: float,
                   process_noise: float = 1.0) -> KalmanState:
    F = make_ca_transition(dt)
    x = F @ state.x
    P = F @ state.P @ F.T + make_acceleration_noise(process_noise)
    return KalmanState(x=x, P=_symmetrize(P))


def kalman_update(state: KalmanState, measured_position,
                  measurement_noise: float = 5.0) -> KalmanState:
    H = measurement_matrix()
    R = np.eye(MEAS_DIM) * measurement_noise

    y = as_vector(measured_position) - H @ state.x
    S = H @ state.P @ H.T + R
    K = state.P @ H.T @ invert_3x3(S)

    x = state.x + K @ y
    P = (np.eye(STATE_DIM) - K @ H) @ state.P
    return KalmanState(x=x, P=_symmetrize(P))


def get_position_uncertainty(state: KalmanState) -> float:
    """RMS of the position variances."""
    return float(np.sqrt(np.trace(state.P[:3, :3]) / 3.0))


def predict_future_position(state: KalmanState,
                            future_time: float) -> Tuple[np.ndarray, float]:
    """(position, uncertainty) projected future_time seconds ahead.

    Covariance is propagated as F·P·Fᵀ without process noise.
    """
    F = make_ca_transition(future_time)
    position = (F @ state.x)[:3]
    P = F @ state.P @ F.T
    return position, float(np.sqrt(np.trace(P[:3, :3]) / 3.0))


# ===== STATEFUL FILTER =====

class KalmanFilterCA:
    """Constant-acceleration KF owned by a single track."""

    def __init__(self, config: Optional[KalmanConfig] = None):
        self.config = config or KalmanConfig()
        self.x = np.zeros(STATE_DIM)
        self.P = np.eye(STATE_DIM) * self.config.initial_uncertainty
        self.H = measurement_matrix()
        self.R = np.eye(MEAS_DIM) * self.config.measurement_noise
        self.Q = make_acceleration_noise(self.config.default_process_noise)

    def initialize_from_threat(self, position, velocity,
                               category: Optional[ThreatCategory] = None,
                               acceleration=None):
        """Seed from a first sighting.

        Ballistic threats start in free fall; drones and cruise missiles
        start with zero acceleration.
        """
        if acceleration is None:
            acceleration = np.zeros(3)
            if category is None or ThreatCategory(category).is_ballistic:
                acceleration[UP_AXIS] = -GRAVITY

        self.x = np.concatenate([as_vector(position), as_vector(velocity),
                                 as_vector(acceleration)])
        self.P = np.eye(STATE_DIM) * self.config.initial_uncertainty
        self.Q = make_acceleration_noise(process_noise_for(category, self.config))

    def predict(self, dt: float) -> Tuple[np.ndarray, np.ndarray]:
        """Predict step. Returns (position, velocity)."""
        F = make_ca_transition(dt)
        self.x = F @ self.x
        self.P = _symmetrize(F @ self.P @ F.T + self.Q)
        return self.x[:3].copy(), self.x[3:6].copy()

    def update(self, z) -> np.ndarray:
        """Update step. Returns the innovation."""
        y = as_vector(z) - self.H @ self.x
        S = self.H @ self.P @ self.H.T + self.R
        K = self.P @ self.H.T @ invert_3x3(S)

        self.x = self.x + K @ y
        self.P = _symmetrize((np.eye(STATE_DIM) - K @ self.H) @ self.P)
        return y

    @property
    def state(self) -> KalmanState:
        return KalmanState(x=self.x.copy(), P=self.P.copy())

    @property
    def position(self) -> np.ndarray:
        return self.x[:3].copy()

    @property
    def velocity(self) -> np.ndarray:
        return self.x[3:6].copy()

    @property
    def acceleration(self) -> np.ndarray:
        return self.x[6:9].copy()

    @property
    def position_uncertainty(self) -> float:
        return float(np.sqrt(np.trace(self.P[:3, :3]) / 3.0))
