"""
SkyShield Threat Track Manager
==============================
One KalmanFilterCA per tracked threat.

Lifecycle:
  first sighting → track created (quality 1.0)
  update         → predict by elapsed time, correct with measured position,
                   quality = exp(−prediction_error / (uncertainty + 1))
  maintain       → tracks stale > stale_after coast (predict only),
                   quality ×= decay, missed += 1; dropped once
                   missed > max_missed_updates

The track map is written only by this manager. All time-dependent calls
accept an explicit `now`; otherwise the injected clock is read.
"""

import time
import logging
import numpy as np
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .ballistics import UP_AXIS
from .config import KalmanConfig, TrackerConfig
from .kalman import KalmanFilterCA, KalmanState, predict_future_position
from .models import Threat, ThreatCategory

logger = logging.getLogger(__name__)


@dataclass
class Track:
    """Per-threat tracking record."""
    threat_id: str
    category: ThreatCategory
    filter: KalmanFilterCA
    last_update_time: float
    quality: float = 1.0
    missed_updates: int = 0
    update_count: int = 0
    last_prediction_error: float = 0.0

    def __repr__(self):
        return (f"Track({self.threat_id}, {self.category.value}, "
                f"quality={self.quality:.3f}, missed={self.missed_updates})")


class ThreatTrackManager:
    """Owns the threat → Track map."""

    def __init__(self, config: Optional[TrackerConfig] = None,
                 kalman_config: Optional[KalmanConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config or TrackerConfig()
        self.kalman_config = kalman_config or KalmanConfig()
        self._clock = clock
        self._tracks: Dict[str, Track] = {}

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def __len__(self):
        return len(self._tracks)

    def __contains__(self, threat_id: str) -> bool:
        return threat_id in self._tracks

    # ===== LIFECYCLE =====

    def start_tracking(self, threat: Threat, now: Optional[float] = None) -> Track:
        """Create a track on first sighting. Existing tracks are returned as-is."""
        existing = self._tracks.get(threat.threat_id)
        if existing is not None:
            return existing

        kf = KalmanFilterCA(self.kalman_config)
        kf.initialize_from_threat(threat.position, threat.velocity, threat.category,
                                  acceleration=threat.state.acceleration)

        track = Track(threat_id=threat.threat_id, category=threat.category,
                      filter=kf, last_update_time=self._now(now))
        self._tracks[threat.threat_id] = track
        logger.info(f"Started tracking threat {threat.threat_id} "
                    f"({threat.category.value})")
        return track

    def stop_tracking(self, threat_id: str) -> bool:
        removed = self._tracks.pop(threat_id, None) is not None
        if removed:
            logger.info(f"Stopped tracking threat {threat_id}")
        return removed

    def update(self, threat: Threat, now: Optional[float] = None) -> Track:
        """Fold the threat's current position into its track."""
        track = self._tracks.get(threat.threat_id)
        if track is None:
            return self.start_tracking(threat, now)

        now = self._now(now)
        dt = max(0.0, now - track.last_update_time)

        predicted_position, _ = track.filter.predict(dt)
        measured = threat.position
        track.filter.update(measured)

        error = float(np.linalg.norm(predicted_position - measured))
        uncertainty = track.filter.position_uncertainty
        track.quality = float(np.exp(-error / (uncertainty + 1.0)))
        track.last_prediction_error = error
        track.last_update_time = now
        track.missed_updates = 0
        track.update_count += 1

        logger.debug(f"Track {threat.threat_id}: error={error:.2f}m "
                     f"quality={track.quality:.3f} uncertainty={uncertainty:.2f}m")
        return track

    def maintain_tracks(self, now: Optional[float] = None) -> List[str]:
        """Coast stale tracks and drop lost ones. Returns dropped ids."""
        cfg = self.config
        now = self._now(now)
        dropped = []

        for threat_id, track in self._tracks.items():
            since_update = now - track.last_update_time
            if since_update <= cfg.stale_after:
                continue

            track.filter.predict(since_update)
            track.last_update_time = now
            track.missed_updates += 1
            track.quality *= cfg.quality_decay

            if track.missed_updates > cfg.max_missed_updates:
                dropped.append(threat_id)

        for threat_id in dropped:
            del self._tracks[threat_id]
            logger.info(f"Dropped track {threat_id} after "
                        f"{cfg.max_missed_updates} missed updates")
        return dropped

    # ===== QUERIES =====

    def predicted_trajectory(self, threat_id: str) -> np.ndarray:
        """N×3 forward trajectory from the current estimate.

        Regenerated on every call. Sampled at k·step for k ≥ 1 over the
        horizon; the first sample at or below ground ends the sequence.
        Unknown threats give an empty (0, 3) array.
        """
        track = self._tracks.get(threat_id)
        if track is None:
            return np.zeros((0, 3))

        cfg = self.config
        p, v, a = track.filter.position, track.filter.velocity, track.filter.acceleration
        n_steps = int(np.ceil(cfg.trajectory_horizon / cfg.trajectory_step - 1e-9))

        points = []
        for k in range(1, n_steps + 1):
            t = k * cfg.trajectory_step
            pos = p + v * t + 0.5 * a * t * t
            points.append(pos)
            if pos[UP_AXIS] <= 0:
                break
        return np.array(points).reshape(-1, 3)

    def predict_position(self, threat_id: str, future_time: float,
                         now: Optional[float] = None) -> Optional[Tuple[np.ndarray, float]]:
        """(position, uncertainty) future_time seconds after now.

        Does not advance the filter.
        """
        track = self._tracks.get(threat_id)
        if track is None:
            return None
        horizon = max(0.0, self._now(now) - track.last_update_time) + future_time
        return predict_future_position(track.filter.state, horizon)

    def track_quality(self, threat_id: str) -> float:
        track = self._tracks.get(threat_id)
        return track.quality if track is not None else 0.0

    def tracked_state(self, threat_id: str) -> Optional[KalmanState]:
        track = self._tracks.get(threat_id)
        return track.filter.state if track is not None else None

    @property
    def tracks(self) -> Dict[str, Track]:
        """Shallow snapshot of the track map."""
        return dict(self._tracks)
