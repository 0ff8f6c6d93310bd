"""
SkyShield Engagement Coordinator
================================
Battery selection, de-duplication of engagements, and interceptor
accounting across all registered batteries.

Engagement score for a (threat, battery) pair:

    score = 100
          × (1 − d / max_range)                          range
          × max(0.1, 1 − active / ceil(launchers / 4))   load
          × (0.5 + 0.5 · available / launchers)          stock
          × (2 − t_intercept / t_impact)                 urgency
          × 0.9 if fired within the last 0.2 s           recent fire
          × self-defense multiplier (1 … 3)              impact near battery

    t_intercept = d / interceptor_speed; t_intercept ≥ t_impact scores 0.

The coordinator owns the battery-status and assignment registries; it is
the only writer to either.

Batch planning (plan_engagements) solves the one-to-one threat/battery
assignment maximizing total score with scipy's linear_sum_assignment.
"""

import time
import logging
import numpy as np
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from scipy.optimize import linear_sum_assignment

from .config import CoordinatorConfig, SolverConfig
from .interception import can_intercept
from .models import Battery, Threat

logger = logging.getLogger(__name__)

# Impact distance to battery [m] → fraction of the extra self-defense weight
SELF_DEFENSE_DISTANCES = [50.0, 100.0, 200.0, 300.0]
SELF_DEFENSE_WEIGHTS = [1.0, 0.5, 0.25, 0.0]


@dataclass
class EngagementAssignment:
    threat_id: str
    battery_id: str
    interceptor_count: int
    time_assigned: float


@dataclass
class BatteryStatus:
    battery: Battery
    available_interceptors: int
    active_engagements: int = 0
    last_fired_time: Optional[float] = None


class EngagementCoordinator:
    """Chooses which battery engages which threat.

    Usage:
        coord = EngagementCoordinator()
        coord.register_battery(battery)
        chosen = coord.find_optimal_battery(threat, now=t)
        if chosen is not None:
            coord.assign_threat_to_battery(threat.threat_id, chosen.battery_id, 1, now=t)
    """

    def __init__(self, config: Optional[CoordinatorConfig] = None,
                 solver_config: Optional[SolverConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config or CoordinatorConfig()
        self.solver_config = solver_config or SolverConfig()
        self.coordination_enabled = True
        self._clock = clock
        self._batteries: Dict[str, BatteryStatus] = {}
        self._assignments: Dict[str, EngagementAssignment] = {}

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    # ===== BATTERY REGISTRY =====

    def register_battery(self, battery: Battery) -> BatteryStatus:
        status = BatteryStatus(battery=battery,
                               available_interceptors=battery.interceptor_count)
        self._batteries[battery.battery_id] = status
        logger.info(f"Registered battery {battery.battery_id} "
                    f"({battery.interceptor_count} interceptors)")
        return status

    def unregister_battery(self, battery_id: str):
        """Remove a battery and every assignment that points at it."""
        self._batteries.pop(battery_id, None)
        stale = [tid for tid, a in self._assignments.items() if a.battery_id == battery_id]
        for threat_id in stale:
            del self._assignments[threat_id]
        logger.info(f"Unregistered battery {battery_id}, "
                    f"dropped {len(stale)} assignment(s)")

    def update_battery_status(self, battery_id: str, available: Optional[int] = None):
        """Resync available stock, from the battery descriptor by default."""
        status = self._batteries.get(battery_id)
        if status is None:
            return
        if available is None:
            available = status.battery.interceptor_count
        status.available_interceptors = max(0, int(available))

    def battery_status(self, battery_id: str) -> Optional[BatteryStatus]:
        return self._batteries.get(battery_id)

    @property
    def batteries(self) -> List[Battery]:
        return [s.battery for s in self._batteries.values()]

    # ===== SCORING =====

    def _self_defense_multiplier(self, impact_distance: float) -> float:
        extra = self.config.self_defense_max_multiplier - 1.0
        weight = np.interp(impact_distance, SELF_DEFENSE_DISTANCES, SELF_DEFENSE_WEIGHTS)
        return 1.0 + extra * float(weight)

    def engagement_score(self, threat: Threat, status: BatteryStatus,
                         now: Optional[float] = None) -> float:
        """Score of one battery against one threat; 0 means never select."""
        cfg = self.config
        battery = status.battery
        distance = battery.distance_to(threat.position)

        if distance > battery.max_range or battery.max_range <= 0:
            return 0.0

        time_to_impact = threat.time_to_impact(self.solver_config.gravity)
        if time_to_impact is None or battery.interceptor_speed <= 0:
            return 0.0
        intercept_time = distance / battery.interceptor_speed
        if intercept_time >= time_to_impact:
            return 0.0

        score = cfg.base_score
        score *= 1.0 - distance / battery.max_range

        max_engagements = int(np.ceil(battery.launcher_count / cfg.launchers_per_engagement))
        if max_engagements > 0:
            score *= max(cfg.min_load_factor, 1.0 - status.active_engagements / max_engagements)
        else:
            score *= cfg.min_load_factor

        if battery.launcher_count > 0:
            available_ratio = status.available_interceptors / battery.launcher_count
        else:
            available_ratio = 0.0
        score *= 0.5 + 0.5 * available_ratio

        score *= 2.0 - intercept_time / time_to_impact

        now = self._now(now)
        if (status.last_fired_time is not None
                and now - status.last_fired_time < cfg.recent_fire_window):
            score *= cfg.recent_fire_penalty

        impact = threat.impact_point(self.solver_config.gravity)
        if impact is not None and distance < cfg.self_defense_range:
            score *= self._self_defense_multiplier(battery.distance_to(impact))

        return float(score)

    def _is_capable(self, status: BatteryStatus, threat: Threat) -> bool:
        return (status.available_interceptors > 0
                and can_intercept(status.battery, threat, self.solver_config))

    # ===== SELECTION =====

    def find_optimal_battery(self, threat: Threat, existing_interceptors: int = 0,
                             now: Optional[float] = None) -> Optional[Battery]:
        """Best battery to engage the threat, or None.

        None also means "already handled": the threat has a live assignment,
        interceptors in flight, and the assigned battery can still reach it.
        Equal scores go to the earliest registered battery.
        """
        if not self.coordination_enabled:
            return self._closest_capable_battery(threat)

        assignment = self._assignments.get(threat.threat_id)
        if assignment is not None and existing_interceptors > 0:
            assigned = self._batteries.get(assignment.battery_id)
            if assigned is not None and can_intercept(assigned.battery, threat, self.solver_config):
                logger.debug(f"Threat {threat.threat_id} already engaged by "
                             f"{assignment.battery_id} ({existing_interceptors} in flight)")
                return None

        now = self._now(now)
        best: Optional[BatteryStatus] = None
        best_score = 0.0
        for battery_id, status in self._batteries.items():
            if not self._is_capable(status, threat):
                continue
            score = self.engagement_score(threat, status, now)
            logger.debug(f"Score {battery_id} vs {threat.threat_id}: {score:.2f}")
            if score > best_score:
                best, best_score = status, score

        return best.battery if best is not None else None

    def _closest_capable_battery(self, threat: Threat) -> Optional[Battery]:
        """Uncoordinated fallback. Still refuses batteries that arrive too late."""
        time_to_impact = threat.time_to_impact(self.solver_config.gravity)
        if time_to_impact is None:
            return None

        closest, min_distance = None, np.inf
        for status in self._batteries.values():
            if not self._is_capable(status, threat) or status.battery.interceptor_speed <= 0:
                continue
            distance = status.battery.distance_to(threat.position)
            if distance / status.battery.interceptor_speed >= time_to_impact:
                continue
            if distance < min_distance:
                closest, min_distance = status.battery, distance
        return closest

    def plan_engagements(self, threats: Iterable[Threat],
                         now: Optional[float] = None) -> Dict[str, str]:
        """One battery per threat, one threat per battery, max total score.

        Returns {threat_id: battery_id}. Pairs scoring 0 are never planned.
        Does not record assignments.
        """
        now = self._now(now)
        threats = [t for t in threats if t.active]
        statuses = list(self._batteries.values())
        if not threats or not statuses:
            return {}

        scores = np.zeros((len(threats), len(statuses)))
        for i, threat in enumerate(threats):
            for j, status in enumerate(statuses):
                if self._is_capable(status, threat):
                    scores[i, j] = self.engagement_score(threat, status, now)

        rows, cols = linear_sum_assignment(-scores)
        plan = {}
        for i, j in zip(rows.tolist(), cols.tolist()):
            if scores[i, j] > 0:
                plan[threats[i].threat_id] = statuses[j].battery.battery_id
        logger.debug(f"Planned {len(plan)}/{len(threats)} engagements")
        return plan

    # ===== ASSIGNMENTS =====

    def assign_threat_to_battery(self, threat_id: str, battery_id: str,
                                 interceptor_count: int = 1,
                                 now: Optional[float] = None) -> EngagementAssignment:
        """Record a launch. Repeat launches at one threat add to its count."""
        now = self._now(now)
        assignment = self._assignments.get(threat_id)
        is_new = assignment is None

        if is_new:
            assignment = EngagementAssignment(threat_id, battery_id, interceptor_count, now)
            self._assignments[threat_id] = assignment
        else:
            assignment.interceptor_count += interceptor_count

        status = self._batteries.get(battery_id)
        if status is None:
            logger.warning(f"Assignment of {threat_id} to unregistered battery {battery_id}")
        else:
            if is_new:
                status.active_engagements += 1
            status.last_fired_time = now
            status.available_interceptors = max(0, status.available_interceptors - interceptor_count)

        logger.info(f"Battery {battery_id} → threat {threat_id}: "
                    f"{assignment.interceptor_count} interceptor(s) committed")
        return assignment

    def clear_threat_assignment(self, threat_id: str) -> bool:
        assignment = self._assignments.pop(threat_id, None)
        if assignment is None:
            return False
        status = self._batteries.get(assignment.battery_id)
        if status is not None:
            status.active_engagements = max(0, status.active_engagements - 1)
        return True

    def assignment(self, threat_id: str) -> Optional[EngagementAssignment]:
        return self._assignments.get(threat_id)

    def assigned_interceptor_count(self, threat_id: str) -> int:
        assignment = self._assignments.get(threat_id)
        return assignment.interceptor_count if assignment is not None else 0

    def needs_additional_interceptors(self, threat: Threat, current_interceptors: int) -> bool:
        if threat.threat_id not in self._assignments:
            return True
        cfg = self.config
        if threat.is_high_value(cfg.high_value_warhead_mass):
            desired = cfg.high_value_interceptors
        else:
            desired = cfg.default_interceptors
        return current_interceptors < desired

    def cleanup(self, now: Optional[float] = None) -> List[str]:
        """Evict assignments older than assignment_max_age. Returns evicted ids."""
        now = self._now(now)
        expired = [tid for tid, a in self._assignments.items()
                   if now - a.time_assigned > self.config.assignment_max_age]
        for threat_id in expired:
            self.clear_threat_assignment(threat_id)
        if expired:
            logger.debug(f"Evicted {len(expired)} stale assignment(s)")
        return expired

    def set_coordination_enabled(self, enabled: bool):
        self.coordination_enabled = enabled
        logger.info(f"Battery coordination {'enabled' if enabled else 'disabled'}")

    def stats(self) -> Dict[str, object]:
        return {
            "enabled": self.coordination_enabled,
            "total_batteries": len(self._batteries),
            "active_assignments": len(self._assignments),
            "total_active_engagements": sum(s.active_engagements
                                            for s in self._batteries.values()),
        }
