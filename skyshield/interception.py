"""
SkyShield Interception Solver
=============================
Rendezvous point/time for an interceptor launched at constant speed.

Two solvers:
  - Ballistic threats: coarse time search. Step t over [0, max_time],
    project the threat with the ballistic predictor, and accept the first
    t whose straight-line interceptor travel time matches within step/2.
    Precision is bounded by the step; no bisection refinement is done.
  - Constant-velocity threats (drones, cruise): exact closed form from
        |p_rel + v_t·t|² = (s·t)²
    i.e. (|v_t|² − s²)·t² + 2(p_rel·v_t)·t + |p_rel|² = 0

No solution is returned as None, never raised.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional

from .ballistics import UP_AXIS, as_vector, ballistic_position
from .config import SolverConfig
from .models import Battery, Threat


# ===== SOLUTION =====

@dataclass(frozen=True)
class InterceptionSolution:
    """Rendezvous solution."""
    intercept_point: np.ndarray
    time_to_intercept: float
    launch_velocity: np.ndarray
    probability: float          # 0.0–1.0


def interception_probability(distance: float, time_to_intercept: float,
                             target_speed: float, interceptor_speed: float,
                             reference_range: float = 5000.0,
                             reference_time: float = 30.0) -> float:
    """0.4·range + 0.3·time + 0.3·speed, each factor in [0, 1]."""
    range_factor = max(0.0, 1.0 - distance / reference_range)
    time_factor = max(0.0, 1.0 - time_to_intercept / reference_time)

    if target_speed > 0:
        speed_factor = min(1.0, (interceptor_speed / target_speed) / 3.0)
    else:
        speed_factor = 1.0

    prob = 0.4 * range_factor + 0.3 * time_factor + 0.3 * speed_factor
    return float(min(1.0, max(0.0, prob)))


def _launch_velocity(launch_position: np.ndarray, intercept_point: np.ndarray,
                     interceptor_speed: float) -> np.ndarray:
    direction = intercept_point - launch_position
    norm = np.linalg.norm(direction)
    if norm == 0:
        return np.zeros(3)
    return direction / norm * interceptor_speed


def _solution(intercept_point, t, launch_position, target_speed,
              interceptor_speed, config: SolverConfig) -> InterceptionSolution:
    distance = float(np.linalg.norm(intercept_point - launch_position))
    return InterceptionSolution(
        intercept_point=intercept_point,
        time_to_intercept=float(t),
        launch_velocity=_launch_velocity(launch_position, intercept_point, interceptor_speed),
        probability=interception_probability(
            distance, t, target_speed, interceptor_speed,
            config.reference_range, config.reference_time),
    )


# ===== SOLVERS =====

def ballistic_interception(threat_position, threat_velocity, launch_position,
                           interceptor_speed: float,
                           config: Optional[SolverConfig] = None
                           ) -> Optional[InterceptionSolution]:
    """Iterative rendezvous for a ballistic threat.

    Args:
        threat_position: Current threat position [m]
        threat_velocity: Current threat velocity [m/s]
        launch_position: Interceptor launch position [m]
        interceptor_speed: Interceptor mean speed [m/s]
        config: Step, horizon and gravity

    Returns:
        First matching InterceptionSolution, or None.
    """
    cfg = config or SolverConfig()
    p0 = as_vector(threat_position)
    v0 = as_vector(threat_velocity)
    launch = as_vector(launch_position)

    if interceptor_speed <= 0:
        return None

    step = cfg.time_step
    n_steps = int(np.floor(cfg.max_time / step + 1e-9))
    target_speed = float(np.linalg.norm(v0))

    for i in range(n_steps + 1):
        t = i * step
        future = ballistic_position(p0, v0, t, cfg.gravity)

        # Threat already on the ground
        if future[UP_AXIS] <= 0:
            break

        travel_time = np.linalg.norm(future - launch) / interceptor_speed
        if abs(t - travel_time) < step / 2:
            return _solution(future, t, launch, target_speed, interceptor_speed, cfg)

    return None


def constant_velocity_interception(target_position, target_velocity, launch_position,
                                   interceptor_speed: float,
                                   config: Optional[SolverConfig] = None
                                   ) -> Optional[InterceptionSolution]:
    """Closed-form rendezvous for a constant-velocity target."""
    cfg = config or SolverConfig()
    p_t = as_vector(target_position)
    v_t = as_vector(target_velocity)
    launch = as_vector(launch_position)

    rel = p_t - launch
    a = float(v_t @ v_t) - interceptor_speed**2
    b = 2.0 * float(rel @ v_t)
    c = float(rel @ rel)

    if abs(a) < 1e-12:
        # Equal speeds: linear b·t + c = 0
        candidates = [-c / b] if b != 0 else []
    else:
        disc = b * b - 4 * a * c
        if disc < 0:
            return None
        sqrt_disc = np.sqrt(disc)
        candidates = [(-b - sqrt_disc) / (2 * a), (-b + sqrt_disc) / (2 * a)]

    valid = [t for t in candidates if 0 < t <= cfg.max_time]
    if not valid:
        return None

    t = min(valid)
    intercept_point = p_t + v_t * t
    return _solution(intercept_point, t, launch, float(np.linalg.norm(v_t)),
                     interceptor_speed, cfg)


def solve_interception(threat: Threat, launch_position, interceptor_speed: float,
                       config: Optional[SolverConfig] = None
                       ) -> Optional[InterceptionSolution]:
    """Dispatch on threat category."""
    if threat.category.is_ballistic:
        return ballistic_interception(threat.position, threat.velocity,
                                      launch_position, interceptor_speed, config)
    return constant_velocity_interception(threat.position, threat.velocity,
                                          launch_position, interceptor_speed, config)


def can_intercept(battery: Battery, threat: Threat,
                  config: Optional[SolverConfig] = None) -> bool:
    """Battery is operational, stocked, in range, and a solution exists."""
    if not battery.operational or battery.interceptor_count <= 0:
        return False

    distance = battery.distance_to(threat.position)
    if distance > battery.max_range or distance < battery.min_range:
        return False

    return solve_interception(threat, battery.position,
                              battery.interceptor_speed, config) is not None
