"""
SkyShield Data Model
====================
Value types exchanged with the surrounding simulation each tick.

The simulation owns threat and battery lifecycles; this core only reads
them. Threat motion capability (ballistic vs. constant velocity) is fixed
by ThreatCategory at construction instead of being probed per call.
"""

import numpy as np
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional

from .ballistics import GRAVITY, UP_AXIS, as_vector, impact_point, time_to_impact


# ===== ENUMS =====

class ThreatCategory(Enum):
    """Threat motion model."""
    BALLISTIC = "ballistic"   # Rockets, mortars, ballistic missiles
    DRONE = "drone"           # Slow/fast UAVs, near-constant velocity
    CRUISE = "cruise"         # Maneuvering cruise missile, constant velocity between maneuvers

    @property
    def is_ballistic(self) -> bool:
        return self is ThreatCategory.BALLISTIC

    @property
    def is_constant_velocity(self) -> bool:
        return self is not ThreatCategory.BALLISTIC


class WarheadClass(Enum):
    """Interceptor warhead lethality class."""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


# ===== VALUE TYPES =====

@dataclass(frozen=True)
class KinematicState:
    """Position/velocity/(acceleration). Arrays are copied on construction."""
    position: np.ndarray
    velocity: np.ndarray
    acceleration: Optional[np.ndarray] = None

    def __post_init__(self):
        object.__setattr__(self, "position", as_vector(self.position))
        object.__setattr__(self, "velocity", as_vector(self.velocity))
        if self.acceleration is not None:
            object.__setattr__(self, "acceleration", as_vector(self.acceleration))

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.velocity))

    @property
    def altitude(self) -> float:
        return float(self.position[UP_AXIS])


@dataclass
class Threat:
    """Incoming aerial threat as supplied by the simulation."""
    threat_id: str
    category: ThreatCategory
    state: KinematicState
    aim_point: np.ndarray = field(default_factory=lambda: np.zeros(3))
    active: bool = True
    warhead_mass_kg: float = 10.0
    warhead_class: WarheadClass = WarheadClass.MEDIUM

    def __post_init__(self):
        self.aim_point = as_vector(self.aim_point)

    @property
    def position(self) -> np.ndarray:
        return self.state.position

    @property
    def velocity(self) -> np.ndarray:
        return self.state.velocity

    def time_to_impact(self, gravity: float = GRAVITY) -> Optional[float]:
        """Seconds until impact, or None if it cannot be estimated."""
        if self.category.is_ballistic:
            return time_to_impact(self.position, self.velocity, gravity)

        speed = self.state.speed
        if speed > 0:
            return float(np.linalg.norm(self.aim_point - self.position) / speed)
        return 30.0

    def impact_point(self, gravity: float = GRAVITY) -> Optional[np.ndarray]:
        if self.category.is_ballistic:
            return impact_point(self.position, self.velocity, gravity)
        return self.aim_point.copy()

    def is_high_value(self, warhead_mass_threshold: float = 500.0) -> bool:
        return (self.warhead_class is WarheadClass.LARGE
                or self.warhead_mass_kg > warhead_mass_threshold
                or self.category is ThreatCategory.DRONE)


@dataclass
class Battery:
    """Interceptor battery capability descriptor."""
    battery_id: str
    position: np.ndarray
    max_range: float = 2500.0
    interceptor_speed: float = 300.0
    launcher_count: int = 20
    interceptor_count: int = 20
    operational: bool = True
    min_range: float = 4.0

    def __post_init__(self):
        self.position = as_vector(self.position)

    def distance_to(self, point) -> float:
        return float(np.linalg.norm(as_vector(point) - self.position))
