"""
SkyShield Ballistic Predictor
=============================
Pure kinematic projection under constant gravity.

Conventions:
  - Right-handed frame, Y is up. Gravity acts on Y only.
  - SI units throughout (m, m/s, s).
  - GRAVITY is shared by the predictor, the interception solver and the
    Kalman estimator so all three agree on the same trajectory.

All functions are deterministic and side-effect free.
"""

import numpy as np
from typing import Iterator, Optional, Tuple


GRAVITY = 9.82          # m/s²
UP_AXIS = 1             # index of the vertical component


def as_vector(v) -> np.ndarray:
    """Coerce any 3-sequence to a float64 array of shape (3,)."""
    arr = np.asarray(v, dtype=float).reshape(3)
    return arr.copy()


def gravity_vector(gravity: float = GRAVITY) -> np.ndarray:
    g = np.zeros(3)
    g[UP_AXIS] = -gravity
    return g


# ===== PROJECTION =====

def ballistic_position(p0, v0, t: float, gravity: float = GRAVITY) -> np.ndarray:
    """p(t) = p0 + v0·t + ½·g·t²"""
    p0 = as_vector(p0)
    v0 = as_vector(v0)
    return p0 + v0 * t + 0.5 * gravity_vector(gravity) * t * t


def ballistic_velocity(v0, t: float, gravity: float = GRAVITY) -> np.ndarray:
    """v(t) = v0 + g·t"""
    return as_vector(v0) + gravity_vector(gravity) * t


def time_to_impact(p0, v0, gravity: float = GRAVITY) -> Optional[float]:
    """Time until the trajectory reaches ground level (y = 0).

    Solves 0 = y0 + vy·t − ½·g·t² and returns the smallest strictly
    positive root.

    Returns:
        Time in seconds, or None if the quadratic has no real root or no
        positive root.
    """
    p0 = as_vector(p0)
    v0 = as_vector(v0)

    a = -0.5 * gravity
    b = v0[UP_AXIS]
    c = p0[UP_AXIS]

    if a == 0.0:
        # No gravity: straight-line descent only
        if b >= 0.0:
            return None
        t = -c / b
        return float(t) if t > 0 else None

    disc = b * b - 4 * a * c
    if disc < 0:
        return None

    sqrt_disc = np.sqrt(disc)
    roots = [(-b + sqrt_disc) / (2 * a), (-b - sqrt_disc) / (2 * a)]
    positive = [t for t in roots if t > 0]
    if not positive:
        return None
    return float(min(positive))


def impact_point(p0, v0, gravity: float = GRAVITY) -> Optional[np.ndarray]:
    """Ground impact point. Y is defined as exactly 0."""
    t = time_to_impact(p0, v0, gravity)
    if t is None:
        return None
    point = ballistic_position(p0, v0, t, gravity)
    point[UP_AXIS] = 0.0
    return point


def trajectory_points(p0, v0, time_step: float = 0.1, max_time: float = 20.0,
                      gravity: float = GRAVITY) -> Iterator[np.ndarray]:
    """Yield trajectory samples at t = i·time_step until y < 0 or max_time.

    This is a generator: the sequence is finite and is consumed once.
    """
    p0 = as_vector(p0)
    v0 = as_vector(v0)
    n_steps = int(np.floor(max_time / time_step + 1e-9))
    for i in range(n_steps + 1):
        pos = ballistic_position(p0, v0, i * time_step, gravity)
        if pos[UP_AXIS] < 0:
            return
        yield pos


# ===== LAUNCH GEOMETRY =====

def launch_angles(horizontal_range: float, height_difference: float,
                  launch_speed: float,
                  gravity: float = GRAVITY) -> Optional[Tuple[float, float]]:
    """Elevation angles that hit a point at given range/height.

    Returns:
        (low_angle, high_angle) in radians, or None if out of reach.
    """
    v2 = launch_speed * launch_speed
    x = horizontal_range
    y = height_difference

    disc = v2 * v2 - gravity * (gravity * x * x + 2 * y * v2)
    if disc < 0 or x <= 0:
        return None

    sqrt_disc = np.sqrt(disc)
    a1 = float(np.arctan((v2 + sqrt_disc) / (gravity * x)))
    a2 = float(np.arctan((v2 - sqrt_disc) / (gravity * x)))
    return min(a1, a2), max(a1, a2)


def launch_velocity(speed: float, elevation: float, azimuth: float) -> np.ndarray:
    """Velocity vector from speed, elevation and azimuth (radians)."""
    horizontal = speed * np.cos(elevation)
    return np.array([
        horizontal * np.cos(azimuth),
        speed * np.sin(elevation),
        horizontal * np.sin(azimuth),
    ])


def drag_affected_velocity(velocity, drag_coefficient: float, air_density: float,
                           cross_section_area: float, mass: float,
                           dt: float) -> np.ndarray:
    """One explicit step of quadratic drag: F = ½·Cd·ρ·A·v²."""
    v = as_vector(velocity)
    speed = float(np.linalg.norm(v))
    if speed < 1e-3:
        return v

    drag_accel = 0.5 * drag_coefficient * air_density * cross_section_area * speed**2 / mass
    return v - (v / speed) * drag_accel * dt
