#!/usr/bin/env python3
"""SkyShield Quick Start: two batteries engage a rocket salvo and a drone.

Run:
    python examples/engagement_demo.py [config.yaml]

Each tick runs the fire-control stages in order:
    tracking update → battery selection / intercept solve → guidance → fuse

Output:
    Launches, detonations and kill probabilities, then coordinator stats.
"""
import sys
import logging
import numpy as np

from skyshield import (
    Battery, DefenseConfig, EngagementCoordinator, KinematicState,
    ProportionalNavigator, ProximityFuse, Threat, ThreatCategory,
    ThreatTrackManager, WarheadClass, ballistic_position, ballistic_velocity,
    kill_probability, load_config, solve_interception,
)

DT = 0.02


class Interceptor:
    """Point-mass interceptor flown by PN and armed with a proximity fuse."""

    def __init__(self, threat_id, battery, launch_velocity, cfg):
        self.threat_id = threat_id
        self.position = battery.position.copy()
        self.velocity = launch_velocity.copy()
        self.navigator = ProportionalNavigator(cfg.guidance)
        self.fuse = ProximityFuse(self.position, cfg.fuse)
        self.alive = True

    def step(self, target, now):
        cmd = self.navigator.command(self.position, self.velocity,
                                     target.position, target.velocity,
                                     dt=DT, augmented=True)
        self.velocity = self.velocity + cmd.acceleration * DT
        self.position = self.position + self.velocity * DT
        return self.fuse.update(self.position, target.position, now,
                                self.velocity, target.velocity)


def make_threats():
    return [
        Threat("rocket-1", ThreatCategory.BALLISTIC,
               KinematicState([2200.0, 600.0, 300.0], [-160.0, 40.0, -20.0])),
        Threat("rocket-2", ThreatCategory.BALLISTIC,
               KinematicState([2400.0, 450.0, -500.0], [-170.0, 55.0, 40.0])),
        Threat("drone-1", ThreatCategory.DRONE,
               KinematicState([1500.0, 150.0, 1200.0], [-30.0, 0.0, -35.0]),
               aim_point=[200.0, 0.0, 0.0], warhead_class=WarheadClass.SMALL),
    ]


def advance(threat, dt):
    """Move a threat one tick along its true motion."""
    p, v = threat.position, threat.velocity
    if threat.category.is_ballistic:
        p, v = ballistic_position(p, v, dt), ballistic_velocity(v, dt)
    else:
        p = p + v * dt
    threat.state = KinematicState(p, v)
    if p[1] <= 0:
        threat.active = False


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    cfg = load_config(sys.argv[1]) if len(sys.argv) > 1 else DefenseConfig()

    print("SkyShield Engagement Demo")
    print("=" * 50)

    tracker = ThreatTrackManager(cfg.tracker, cfg.kalman)
    coord = EngagementCoordinator(cfg.coordinator, cfg.solver)
    coord.register_battery(Battery("alpha", [0.0, 0.0, 0.0]))
    coord.register_battery(Battery("bravo", [300.0, 0.0, 800.0], interceptor_count=10))

    threats = make_threats()
    interceptors = []
    killed = set()
    rng = np.random.default_rng(7)

    for tick in range(int(30.0 / DT)):
        now = tick * DT
        live = [t for t in threats if t.active]
        if not live:
            break

        # 1. Tracking (noisy position reports)
        for threat in live:
            noisy = KinematicState(threat.position + rng.normal(0, 1.0, 3), threat.velocity)
            tracker.update(Threat(threat.threat_id, threat.category, noisy), now=now)
        tracker.maintain_tracks(now=now)

        # 2. Battery selection and intercept solve
        for threat in live:
            in_flight = sum(1 for i in interceptors if i.alive and i.threat_id == threat.threat_id)
            if not coord.needs_additional_interceptors(threat, in_flight):
                continue
            battery = coord.find_optimal_battery(threat, in_flight, now=now)
            if battery is None:
                continue
            solution = solve_interception(threat, battery.position,
                                          battery.interceptor_speed, cfg.solver)
            if solution is None:
                continue
            coord.assign_threat_to_battery(threat.threat_id, battery.battery_id, 1, now=now)
            interceptors.append(Interceptor(threat.threat_id, battery,
                                            solution.launch_velocity, cfg))
            print(f"[t={now:5.2f}s] {battery.battery_id} launches at {threat.threat_id} "
                  f"(intercept in {solution.time_to_intercept:.1f}s, "
                  f"P={solution.probability:.2f})")

        # 3-4. Guidance and fuse
        by_id = {t.threat_id: t for t in threats}
        for interceptor in interceptors:
            target = by_id[interceptor.threat_id]
            if not interceptor.alive or not target.active:
                continue
            result = interceptor.step(target, now)
            if result.should_detonate:
                interceptor.alive = False
                pk = kill_probability(result.distance, target.warhead_class)
                print(f"[t={now:5.2f}s] detonation {result.distance:5.1f}m from "
                      f"{target.threat_id}, Pk={pk:.2f}")
                if rng.random() < pk:
                    target.active = False
                    killed.add(target.threat_id)
                    tracker.stop_tracking(target.threat_id)
                    coord.clear_threat_assignment(target.threat_id)

        for threat in threats:
            if threat.active:
                advance(threat, DT)
        coord.cleanup(now=now)

    print("-" * 50)
    for threat in threats:
        outcome = "intercepted" if threat.threat_id in killed else "impacted"
        print(f"{threat.threat_id:10s} {outcome}")
    print(coord.stats())


if __name__ == "__main__":
    main()
