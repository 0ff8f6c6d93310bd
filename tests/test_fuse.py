#!/usr/bin/env python3
"""
SkyShield - Proximity Fuse & Lethality Tests
============================================

Run with: pytest tests/test_fuse.py -v
"""

import logging
import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from skyshield.config import FuseConfig
from skyshield.fuse import (
    check_proximity_detonation, detonation_quality, kill_probability,
    FuseState, ProximityFuse, LETHALITY_CURVES,
)
from skyshield.models import WarheadClass


def detonate_at(distance, traveled=50.0, target_velocity=(0.0, 0.0, 0.0)):
    """Stateless check with arming 20 m, detonation 10 m, optimal 5 m."""
    return check_proximity_detonation(
        [0.0, 0.0, 0.0], [distance, 0.0, 0.0], [300.0, 0.0, 0.0], target_velocity,
        arming_distance=20.0, detonation_radius=10.0, optimal_radius=5.0,
        distance_traveled=traveled)


class TestDetonationDecision:
    """Stateless fuse check."""

    def test_within_radius_detonates(self):
        result = detonate_at(8.0)
        assert result.should_detonate
        assert result.quality > 0.5
        assert result.quality == pytest.approx(0.66)
        assert result.distance == pytest.approx(8.0)

    def test_unarmed_never_detonates(self):
        result = detonate_at(2.0, traveled=10.0)
        assert not result.should_detonate
        assert result.quality == 0.0

    def test_outside_radius(self):
        result = detonate_at(10.5)
        assert not result.should_detonate
        assert result.quality == 0.0

    def test_receding_target_inside_radius_detonates(self):
        result = detonate_at(6.0, target_velocity=(1000.0, 0.0, 0.0))
        assert result.should_detonate
        assert result.closing_rate < 0

    def test_closing_rate_sign(self):
        assert detonate_at(6.0).closing_rate == pytest.approx(300.0)


class TestDetonationQuality:
    """Piecewise-linear quality curve."""

    def test_bounds(self):
        assert 0.9 <= detonation_quality(5.0, 5.0, 10.0) <= 1.0
        assert detonation_quality(10.0, 5.0, 10.0) == pytest.approx(0.5)
        assert detonation_quality(10.01, 5.0, 10.0) == 0.0

    def test_perfect_at_zero(self):
        assert detonation_quality(0.0, 5.0, 10.0) == pytest.approx(1.0)

    def test_non_increasing_with_distance(self):
        q = [detonation_quality(d, 6.0, 12.0) for d in np.linspace(0, 15, 151)]
        assert all(a >= b for a, b in zip(q, q[1:]))


class TestKillProbability:
    """Warhead lethality curves."""

    def test_medium_endpoints(self):
        assert kill_probability(0.0, "medium") >= 0.99
        assert kill_probability(20.0, "medium") == 0.0

    def test_breakpoints(self):
        assert kill_probability(5.0, WarheadClass.MEDIUM) == pytest.approx(0.95)
        assert kill_probability(8.0, WarheadClass.MEDIUM) == pytest.approx(0.5)
        assert kill_probability(15.0, WarheadClass.MEDIUM) == pytest.approx(0.0)

    def test_monotonic_in_warhead_class(self):
        for d in np.linspace(0.0, 25.0, 251):
            small = kill_probability(d, "small")
            medium = kill_probability(d, "medium")
            large = kill_probability(d, "large")
            assert small <= medium <= large

    def test_larger_warheads_reach_further(self):
        curves = [LETHALITY_CURVES[w] for w in (WarheadClass.SMALL, WarheadClass.MEDIUM,
                                                 WarheadClass.LARGE)]
        for a, b in zip(curves, curves[1:]):
            assert a.lethal < b.lethal and a.effective < b.effective and a.max < b.max

    def test_in_unit_interval(self):
        for w in WarheadClass:
            for d in np.linspace(0.0, 30.0, 61):
                assert 0.0 <= kill_probability(d, w) <= 1.0

    def test_unknown_warhead(self):
        with pytest.raises(ValueError):
            kill_probability(1.0, "nuclear")


class TestProximityFuse:
    """Stateful fuse: arming, scan rate, single detonation."""

    @pytest.fixture
    def cfg(self):
        return FuseConfig(arming_distance=20.0, detonation_radius=10.0,
                          optimal_radius=5.0, scan_interval=0.0)

    def test_lifecycle(self, cfg):
        fuse = ProximityFuse([0, 0, 0], cfg)
        assert fuse.state is FuseState.UNARMED

        early = fuse.update([10, 0, 0], [15, 0, 0], now=0.0)
        assert not early.should_detonate
        assert fuse.state is FuseState.UNARMED

        far = fuse.update([25, 0, 0], [100, 0, 0], now=0.1)
        assert not far.should_detonate
        assert fuse.armed
        assert fuse.distance_traveled == pytest.approx(25.0)

        hit = fuse.update([95, 0, 0], [100, 0, 0], now=0.2)
        assert hit.should_detonate
        assert hit.quality == pytest.approx(0.9)
        assert fuse.detonated

        again = fuse.update([99, 0, 0], [100, 0, 0], now=0.3)
        assert not again.should_detonate

    def test_scan_rate_limited(self, cfg):
        cfg.scan_interval = 1.0
        fuse = ProximityFuse([0, 0, 0], cfg)
        fuse.update([30, 0, 0], [500, 0, 0], now=0.0)
        assert not fuse.update([495, 0, 0], [500, 0, 0], now=0.5).should_detonate
        assert fuse.update([495, 0, 0], [500, 0, 0], now=1.0).should_detonate

    def test_detonation_logged(self, cfg, caplog):
        fuse = ProximityFuse([0, 0, 0], cfg)
        with caplog.at_level(logging.INFO, logger="skyshield.fuse"):
            fuse.update([50, 0, 0], [53, 0, 0], now=0.0)
        assert "Detonation" in caplog.text

    def test_check_approach(self):
        approaching, closest = ProximityFuse.check_approach([0, 0, 0], [100, 10, 0], [1, 0, 0])
        assert approaching
        assert closest == pytest.approx(10.0)

        receding, _ = ProximityFuse.check_approach([0, 0, 0], [100, 10, 0], [-1, 0, 0])
        assert not receding

    def test_check_approach_stationary(self):
        approaching, closest = ProximityFuse.check_approach([0, 0, 0], [3, 4, 0], [0, 0, 0])
        assert not approaching
        assert closest == pytest.approx(5.0)
