"""SkyShield: fire-control core for short-range air defense simulation.

Ballistic prediction, interception solving, proportional-navigation
guidance, proximity fusing, Kalman tracking and multi-battery engagement
coordination. Pure numpy, synchronous, one call per simulation tick.

Quick Start::

    from skyshield import EngagementCoordinator, ThreatTrackManager, Battery
    tracker = ThreatTrackManager()
    coord = EngagementCoordinator()
    coord.register_battery(Battery("alpha", position=[0, 0, 0]))
    for tick in simulation:
        for threat in tick.threats:
            tracker.update(threat, now=tick.time)
            battery = coord.find_optimal_battery(threat, now=tick.time)
"""

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Physics
# ---------------------------------------------------------------------------
from .ballistics import (
    GRAVITY,
    UP_AXIS,
    ballistic_position,
    ballistic_velocity,
    time_to_impact,
    impact_point,
    trajectory_points,
    launch_angles,
    launch_velocity,
    drag_affected_velocity,
)

# ---------------------------------------------------------------------------
# Data model & configuration
# ---------------------------------------------------------------------------
from .models import (
    ThreatCategory,
    WarheadClass,
    KinematicState,
    Threat,
    Battery,
)
from .config import (
    SolverConfig,
    GuidanceConfig,
    FuseConfig,
    KalmanConfig,
    TrackerConfig,
    CoordinatorConfig,
    DefenseConfig,
    PRESETS,
    load_config,
)

# ---------------------------------------------------------------------------
# Fire control
# ---------------------------------------------------------------------------
from .interception import (
    InterceptionSolution,
    interception_probability,
    ballistic_interception,
    constant_velocity_interception,
    solve_interception,
    can_intercept,
)
from .guidance import (
    GuidanceCommand,
    ProportionalNavigator,
    proportional_navigation,
    terminal_guidance,
    predicted_miss_distance,
    optimal_launch_angle,
)
from .fuse import (
    FuseState,
    ProximityFuse,
    ProximityResult,
    LETHALITY_CURVES,
    check_proximity_detonation,
    detonation_quality,
    kill_probability,
)

# ---------------------------------------------------------------------------
# Estimation & tracking
# ---------------------------------------------------------------------------
from .kalman import (
    KalmanState,
    KalmanFilterCA,
    initialize_kalman_state,
    kalman_predict,
    kalman_update,
    get_position_uncertainty,
    predict_future_position,
    process_noise_for,
)
from .tracking import Track, ThreatTrackManager

# ---------------------------------------------------------------------------
# Coordination
# ---------------------------------------------------------------------------
from .coordinator import (
    BatteryStatus,
    EngagementAssignment,
    EngagementCoordinator,
)

__all__ = [
    "GRAVITY", "UP_AXIS",
    "ballistic_position", "ballistic_velocity", "time_to_impact", "impact_point",
    "trajectory_points", "launch_angles", "launch_velocity", "drag_affected_velocity",
    "ThreatCategory", "WarheadClass", "KinematicState", "Threat", "Battery",
    "SolverConfig", "GuidanceConfig", "FuseConfig", "KalmanConfig", "TrackerConfig",
    "CoordinatorConfig", "DefenseConfig", "PRESETS", "load_config",
    "InterceptionSolution", "interception_probability", "ballistic_interception",
    "constant_velocity_interception", "solve_interception", "can_intercept",
    "GuidanceCommand", "ProportionalNavigator", "proportional_navigation",
    "terminal_guidance", "predicted_miss_distance", "optimal_launch_angle",
    "FuseState", "ProximityFuse", "ProximityResult", "LETHALITY_CURVES",
    "check_proximity_detonation", "detonation_quality", "kill_probability",
    "KalmanState", "KalmanFilterCA", "initialize_kalman_state", "kalman_predict",
    "kalman_update", "get_position_uncertainty", "predict_future_position",
    "process_noise_for",
    "Track", "ThreatTrackManager",
    "BatteryStatus", "EngagementAssignment", "EngagementCoordinator",
]
