"""
SkyShield Proximity Fuse & Lethality Model
==========================================
Detonation decision for an interceptor in flight, and warhead kill
probability vs. miss distance.

Fuse states:
    UNARMED  → distance flown < arming_distance
    ARMED    → eligible to detonate
    DETONATED (terminal)

Detonation quality (piecewise linear):
    d ≤ r_opt          1.0 → 0.9
    r_opt < d ≤ r_det  0.9 → 0.5
    d > r_det          0 (no detonation)

Kill probability per warhead class (lethal, effective, max):
    d ≤ lethal         1.0  → 0.95
    lethal → effective 0.95 → 0.5
    effective → max    0.5  → 0
    d > max            0

Precondition (not validated): optimal_radius < detonation_radius.
"""

import logging
import numpy as np
from enum import Enum, auto
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from .ballistics import as_vector
from .config import FuseConfig
from .models import WarheadClass

logger = logging.getLogger(__name__)


# ===== LETHALITY CURVES =====

@dataclass(frozen=True)
class LethalityCurve:
    lethal: float      # m
    effective: float   # m
    max: float         # m


LETHALITY_CURVES: Dict[WarheadClass, LethalityCurve] = {
    WarheadClass.SMALL: LethalityCurve(lethal=3.0, effective=6.0, max=10.0),
    WarheadClass.MEDIUM: LethalityCurve(lethal=5.0, effective=8.0, max=15.0),
    WarheadClass.LARGE: LethalityCurve(lethal=8.0, effective=12.0, max=20.0),
}


def kill_probability(distance: float,
                     warhead: Union[WarheadClass, str] = WarheadClass.MEDIUM) -> float:
    """Kill probability for a detonation at the given miss distance.

    Raises:
        ValueError: unknown warhead class name.
    """
    curve = LETHALITY_CURVES[WarheadClass(warhead)]

    if distance <= curve.lethal:
        return 0.95 + (1.0 - distance / curve.lethal) * 0.05
    if distance <= curve.effective:
        frac = (distance - curve.lethal) / (curve.effective - curve.lethal)
        return 0.95 - frac * 0.45
    if distance <= curve.max:
        frac = (distance - curve.effective) / (curve.max - curve.effective)
        return 0.5 - frac * 0.5
    return 0.0


def detonation_quality(distance: float, optimal_radius: float,
                       detonation_radius: float) -> float:
    if distance <= optimal_radius:
        if optimal_radius <= 0:
            return 1.0
        return 0.9 + (1.0 - distance / optimal_radius) * 0.1
    if distance <= detonation_radius:
        frac = (distance - optimal_radius) / (detonation_radius - optimal_radius)
        return max(0.5, 0.9 - frac * 0.4)
    return 0.0


# ===== PURE FUSE CHECK =====

@dataclass(frozen=True)
class ProximityResult:
    should_detonate: bool
    quality: float          # 0 when not detonating
    distance: float         # m
    closing_rate: float = 0.0   # m/s, positive = closing


def _closing_rate(projectile_position, target_position,
                  projectile_velocity, target_velocity) -> float:
    to_target = target_position - projectile_position
    dist = np.linalg.norm(to_target)
    if dist == 0:
        return 0.0
    return float((projectile_velocity - target_velocity) @ (to_target / dist))


def check_proximity_detonation(projectile_position, target_position,
                               projectile_velocity, target_velocity,
                               arming_distance: float, detonation_radius: float,
                               optimal_radius: float,
                               distance_traveled: float) -> ProximityResult:
    """Stateless fuse decision for one frame.

    Inside the detonation radius the fuse fires; a non-positive closing
    rate (target receding) inside the radius also fires, so a fly-by
    always detonates at its closest in-radius sample.
    """
    p = as_vector(projectile_position)
    t = as_vector(target_position)
    distance = float(np.linalg.norm(p - t))

    if distance_traveled < arming_distance or distance > detonation_radius:
        return ProximityResult(False, 0.0, distance)

    closing = _closing_rate(p, t, as_vector(projectile_velocity), as_vector(target_velocity))
    quality = detonation_quality(distance, optimal_radius, detonation_radius)
    return ProximityResult(True, quality, distance, closing)


# ===== STATEFUL FUSE =====

class FuseState(Enum):
    UNARMED = auto()
    ARMED = auto()
    DETONATED = auto()


class ProximityFuse:
    """Per-interceptor fuse state machine.

    Usage:
        fuse = ProximityFuse(launch_position, FuseConfig(detonation_radius=10, optimal_radius=5))
        # each frame:
        result = fuse.update(interceptor_pos, target_pos, now)
        if result.should_detonate:
            ...
    """

    def __init__(self, start_position, config: Optional[FuseConfig] = None):
        self.config = config or FuseConfig()
        self.state = FuseState.UNARMED
        self.distance_traveled = 0.0
        self._last_position = as_vector(start_position)
        self._last_scan_time: Optional[float] = None

    @property
    def armed(self) -> bool:
        return self.state is FuseState.ARMED

    @property
    def detonated(self) -> bool:
        return self.state is FuseState.DETONATED

    def update(self, current_position, target_position, now: float,
               projectile_velocity=None, target_velocity=None) -> ProximityResult:
        cfg = self.config
        pos = as_vector(current_position)
        tgt = as_vector(target_position)

        self.distance_traveled += float(np.linalg.norm(pos - self._last_position))
        self._last_position = pos
        distance = float(np.linalg.norm(pos - tgt))

        if self.state is FuseState.UNARMED and self.distance_traveled >= cfg.arming_distance:
            self.state = FuseState.ARMED
            logger.debug(f"Fuse armed after {self.distance_traveled:.1f}m, "
                         f"target at {distance:.1f}m")

        if self.state is not FuseState.ARMED:
            return ProximityResult(False, 0.0, distance)

        if self._last_scan_time is not None and now - self._last_scan_time < cfg.scan_interval:
            return ProximityResult(False, 0.0, distance)
        self._last_scan_time = now

        if distance > cfg.detonation_radius:
            return ProximityResult(False, 0.0, distance)

        closing = 0.0
        if projectile_velocity is not None and target_velocity is not None:
            closing = _closing_rate(pos, tgt, as_vector(projectile_velocity),
                                    as_vector(target_velocity))

        self.state = FuseState.DETONATED
        quality = detonation_quality(distance, cfg.optimal_radius, cfg.detonation_radius)
        logger.info(f"Detonation at {distance:.1f}m, quality {quality:.0%}")
        return ProximityResult(True, quality, distance, closing)

    @staticmethod
    def check_approach(current_position, target_position,
                       velocity) -> Tuple[bool, float]:
        """(is_approaching, closest_approach_distance) on the current heading."""
        pos = as_vector(current_position)
        to_target = as_vector(target_position) - pos
        v = as_vector(velocity)

        approaching = float(v @ to_target) > 0
        speed = np.linalg.norm(v)
        if speed == 0:
            return approaching, float(np.linalg.norm(to_target))

        v_unit = v / speed
        closest = pos + v_unit * float(to_target @ v_unit)
        return approaching, float(np.linalg.norm(as_vector(target_position) - closest))
