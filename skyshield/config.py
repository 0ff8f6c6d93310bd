"""
SkyShield Configuration
=======================
Dataclass configuration for every component, aggregated by DefenseConfig.

Configs can be built in code, from nested dicts, or from a YAML file:

    cfg = load_config("defense.yaml")
    cfg = DefenseConfig.preset("counter_uas")

YAML layout mirrors the dataclass nesting:

    guidance:
      navigation_constant: 4.0
    fuse:
      detonation_radius: 10.0
      optimal_radius: 5.0

Note: optimal_radius < detonation_radius is a caller precondition and is
not validated here.
"""

import yaml
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, Optional

from .ballistics import GRAVITY


# ===== COMPONENT CONFIGS =====

@dataclass
class SolverConfig:
    """Interception solver parameters."""
    gravity: float = GRAVITY
    time_step: float = 0.1            # Coarse search step [s]
    max_time: float = 30.0            # Search horizon [s]
    reference_range: float = 5000.0   # Range at which range factor hits 0 [m]
    reference_time: float = 30.0      # Time at which time factor hits 0 [s]


@dataclass
class GuidanceConfig:
    """Proportional navigation parameters."""
    navigation_constant: float = 3.0
    max_acceleration: float = 300.0      # m/s² (~30 g)
    arrival_epsilon: float = 0.1         # Range below which command is zero [m]
    min_closing_velocity: float = 50.0   # Floor for time-to-go estimate [m/s]


@dataclass
class FuseConfig:
    """Proximity fuse geometry."""
    arming_distance: float = 20.0     # Flight distance before arming [m]
    detonation_radius: float = 12.0   # Max detonation distance [m]
    optimal_radius: float = 6.0       # Best detonation distance [m]
    scan_interval: float = 0.004      # Min time between proximity scans [s]


@dataclass
class KalmanConfig:
    """Constant-acceleration Kalman filter tuning."""
    measurement_noise: float = 5.0
    initial_uncertainty: float = 100.0
    process_noise: Dict[str, float] = field(default_factory=lambda: {
        "ballistic": 0.5,
        "cruise": 2.0,
        "drone": 5.0,
    })
    default_process_noise: float = 1.0


@dataclass
class TrackerConfig:
    """Track lifecycle parameters."""
    stale_after: float = 0.5          # Coast tracks not updated for this long [s]
    quality_decay: float = 0.9        # Multiplier per missed update
    max_missed_updates: int = 5       # Drop once exceeded
    trajectory_horizon: float = 10.0  # Predicted trajectory length [s]
    trajectory_step: float = 0.1      # Predicted trajectory resolution [s]


@dataclass
class CoordinatorConfig:
    """Battery/threat engagement scoring parameters."""
    base_score: float = 100.0
    assignment_max_age: float = 30.0      # Evict assignments older than this [s]
    launchers_per_engagement: int = 4     # Engagement capacity = ceil(launchers / this)
    min_load_factor: float = 0.1
    recent_fire_window: float = 0.2       # [s]
    recent_fire_penalty: float = 0.9
    self_defense_range: float = 400.0     # Threat must be this close to the battery [m]
    self_defense_max_multiplier: float = 3.0
    high_value_warhead_mass: float = 500.0  # kg
    high_value_interceptors: int = 2
    default_interceptors: int = 1


# ===== AGGREGATE =====

_SECTIONS = {
    "solver": SolverConfig,
    "guidance": GuidanceConfig,
    "fuse": FuseConfig,
    "kalman": KalmanConfig,
    "tracker": TrackerConfig,
    "coordinator": CoordinatorConfig,
}


@dataclass
class DefenseConfig:
    """Complete configuration for the defense core."""
    solver: SolverConfig = field(default_factory=SolverConfig)
    guidance: GuidanceConfig = field(default_factory=GuidanceConfig)
    fuse: FuseConfig = field(default_factory=FuseConfig)
    kalman: KalmanConfig = field(default_factory=KalmanConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    coordinator: CoordinatorConfig = field(default_factory=CoordinatorConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DefenseConfig":
        """Build from nested mappings. Unknown sections/keys raise ValueError."""
        data = data or {}
        kwargs = {}
        for section, values in data.items():
            if section not in _SECTIONS:
                raise ValueError(f"Unknown config section '{section}'")
            section_cls = _SECTIONS[section]
            known = {f.name for f in fields(section_cls)}
            values = values or {}
            unknown = set(values) - known
            if unknown:
                raise ValueError(
                    f"Unknown keys in '{section}': {', '.join(sorted(unknown))}")
            kwargs[section] = section_cls(**values)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def preset(cls, name: Optional[str]) -> "DefenseConfig":
        """Named tuning preset. Unknown names give the defaults."""
        return cls.from_dict(PRESETS.get(name, {}))


PRESETS: Dict[str, Dict[str, Any]] = {
    "iron_dome": {},
    # Slow, agile targets: trust measurements more, wider fuse
    "counter_uas": {
        "kalman": {"measurement_noise": 2.0,
                   "process_noise": {"ballistic": 0.5, "cruise": 3.0, "drone": 8.0}},
        "fuse": {"detonation_radius": 15.0, "optimal_radius": 8.0},
        "guidance": {"navigation_constant": 4.0},
    },
}


def load_config(path: str) -> DefenseConfig:
    """Load a DefenseConfig from a YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is not None and not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return DefenseConfig.from_dict(data)
