"""
SkyShield Guidance Controller
=============================
Proportional navigation (PN) for mid-course and terminal correction.

    LOS      = (p_t − p_m) / |p_t − p_m|
    V_c      = −(v_t − v_m)·LOS                         closing velocity
    Ω        = ((v_t − v_m) − LOS·((v_t − v_m)·LOS)) / R   LOS rate
    a_cmd    = N · V_c · Ω, magnitude clamped to a_max

Range below the arrival epsilon returns a zero command.

References:
  - Zarchan (2012), "Tactical and Strategic Missile Guidance", Ch. 2
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from .ballistics import GRAVITY, UP_AXIS, as_vector
from .config import GuidanceConfig


def clamp_magnitude(v: np.ndarray, max_magnitude: float) -> np.ndarray:
    """Scale v down to max_magnitude, keeping its direction."""
    mag = np.linalg.norm(v)
    if mag > max_magnitude and mag > 0:
        return v / mag * max_magnitude
    return v


def proportional_navigation(interceptor_position, interceptor_velocity,
                            target_position, target_velocity,
                            navigation_constant: float = 3.0,
                            max_acceleration: float = 300.0,
                            arrival_epsilon: float = 0.1) -> np.ndarray:
    """True PN lateral acceleration command [m/s²]."""
    p_m = as_vector(interceptor_position)
    v_m = as_vector(interceptor_velocity)
    p_t = as_vector(target_position)
    v_t = as_vector(target_velocity)

    los = p_t - p_m
    rng = np.linalg.norm(los)
    if rng < arrival_epsilon:
        return np.zeros(3)

    los_unit = los / rng
    v_rel = v_t - v_m
    closing_velocity = -float(v_rel @ los_unit)

    perp = v_rel - los_unit * float(v_rel @ los_unit)
    los_rate = perp / rng

    accel = los_rate * (navigation_constant * closing_velocity)
    return clamp_magnitude(accel, max_acceleration)


# ===== STATEFUL NAVIGATOR =====

@dataclass(frozen=True)
class GuidanceCommand:
    """Per-frame guidance output."""
    acceleration: np.ndarray    # m/s²
    required_g: float
    time_to_go: float           # s


class ProportionalNavigator:
    """PN guidance with optional augmented LOS-rate measurement.

    In augmented mode the LOS rate is the measured change of the LOS unit
    vector since the previous call divided by dt; the first call (or
    dt <= 0) falls back to the kinematic LOS rate.
    """

    def __init__(self, config: Optional[GuidanceConfig] = None):
        self.config = config or GuidanceConfig()
        self._previous_los: Optional[np.ndarray] = None

    def reset(self):
        self._previous_los = None

    def command(self, interceptor_position, interceptor_velocity,
                target_position, target_velocity,
                dt: Optional[float] = None,
                augmented: bool = False) -> GuidanceCommand:
        cfg = self.config
        r = as_vector(target_position) - as_vector(interceptor_position)
        v_rel = as_vector(target_velocity) - as_vector(interceptor_velocity)

        rng = np.linalg.norm(r)
        if rng < cfg.arrival_epsilon:
            self._previous_los = None
            return GuidanceCommand(np.zeros(3), 0.0, 0.0)

        los = r / rng
        closing_velocity = -float(r @ v_rel) / rng
        time_to_go = rng / max(closing_velocity, cfg.min_closing_velocity)

        if augmented and self._previous_los is not None and dt is not None and dt > 0:
            omega = (los - self._previous_los) / dt
        else:
            omega = (v_rel - los * float(v_rel @ los)) / rng
        self._previous_los = los

        accel = clamp_magnitude(omega * (cfg.navigation_constant * closing_velocity),
                                cfg.max_acceleration)
        return GuidanceCommand(accel, float(np.linalg.norm(accel)) / GRAVITY,
                               float(time_to_go))

    def terminal_command(self, interceptor_position, interceptor_velocity,
                         target_position, target_velocity, target_acceleration,
                         dt: Optional[float] = None) -> GuidanceCommand:
        """Augmented PN with target acceleration compensation a_t·(t_go·N/2)."""
        base = self.command(interceptor_position, interceptor_velocity,
                            target_position, target_velocity, dt=dt, augmented=True)

        factor = base.time_to_go * self.config.navigation_constant / 2.0
        total = base.acceleration + as_vector(target_acceleration) * factor
        total = clamp_magnitude(total, self.config.max_acceleration)
        return GuidanceCommand(total, float(np.linalg.norm(total)) / GRAVITY,
                               base.time_to_go)


def terminal_guidance(interceptor_position, interceptor_velocity,
                      target_position, target_velocity, target_acceleration,
                      navigation_constant: float = 3.0,
                      max_acceleration: float = 300.0,
                      min_closing_velocity: float = 50.0) -> np.ndarray:
    """Stateless augmented PN for the end game."""
    base = proportional_navigation(interceptor_position, interceptor_velocity,
                                   target_position, target_velocity,
                                   navigation_constant, max_acceleration)

    r = as_vector(target_position) - as_vector(interceptor_position)
    v_rel = as_vector(target_velocity) - as_vector(interceptor_velocity)
    rng = np.linalg.norm(r)
    if rng == 0:
        return base

    closing_velocity = -float(r @ v_rel) / rng
    time_to_go = rng / max(closing_velocity, min_closing_velocity)
    total = base + as_vector(target_acceleration) * (time_to_go * navigation_constant / 2.0)
    return clamp_magnitude(total, max_acceleration)


# ===== ENGAGEMENT GEOMETRY =====

def predicted_miss_distance(interceptor_position, interceptor_velocity,
                            target_position, target_velocity,
                            interceptor_acceleration=None) -> float:
    """Zero-effort miss at closest approach.

    Returns the current range if closest approach is already past or the
    relative velocity is zero.
    """
    p_m = as_vector(interceptor_position)
    v_m = as_vector(interceptor_velocity)
    a_m = np.zeros(3) if interceptor_acceleration is None else as_vector(interceptor_acceleration)
    p_t = as_vector(target_position)
    v_t = as_vector(target_velocity)

    r = p_t - p_m
    v = v_t - v_m
    v2 = float(v @ v)
    if v2 == 0:
        return float(np.linalg.norm(r))

    t_go = -float(r @ v) / v2
    if t_go <= 0:
        return float(np.linalg.norm(r))

    m_final = p_m + v_m * t_go + 0.5 * a_m * t_go**2
    t_final = p_t + v_t * t_go
    return float(np.linalg.norm(t_final - m_final))


def optimal_launch_angle(launch_position, target_position, target_velocity,
                         interceptor_speed: float,
                         max_bias_deg: float = 15.0,
                         bias_range: float = 10000.0) -> Tuple[float, float]:
    """(azimuth, elevation) toward a first-order lead point, in radians.

    Elevation gets an energy-management bias that grows linearly with
    range up to max_bias_deg at bias_range.
    """
    launch = as_vector(launch_position)
    p_t = as_vector(target_position)

    rng = float(np.linalg.norm(p_t - launch))
    lead_time = rng / interceptor_speed if interceptor_speed > 0 else 0.0
    lead = p_t + as_vector(target_velocity) * lead_time

    direction = lead - launch
    norm = np.linalg.norm(direction)
    if norm == 0:
        return 0.0, 0.0
    direction = direction / norm

    azimuth = float(np.arctan2(direction[0], direction[2]))
    elevation = float(np.arcsin(np.clip(direction[UP_AXIS], -1.0, 1.0)))
    bias = np.radians(max_bias_deg) * min(rng / bias_range, 1.0)
    elevation = float(np.clip(elevation + bias, -np.pi / 2, np.pi / 2))
    return azimuth, elevation
