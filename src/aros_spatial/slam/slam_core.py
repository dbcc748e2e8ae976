"""
SLAM Engine

Grid-based SLAM: particle filter localization against an occupancy grid
that is built from the same LiDAR scans.

One update cycle:
1. Predict  - move particles with odometry
2. Correct  - reweight particles against the current map
3. Map      - ray-trace the scan from the current pose estimate
4. Resample - when the effective sample size drops below N/2
5. Estimate - weighted pose + confidence

The cycle runs to completion before any result is returned, so callers
always read a consistent {pose, map} pair.
"""

import time
import logging
import numpy as np
from typing import Optional, List, Any, Iterable
from dataclasses import dataclass, field

from ..core.config import config_from_dict, require_positive
from ..core.geometry import GaussianNoise
from ..core.types import Pose, Odometry, LidarReading
from .occupancy_grid import OccupancyGrid
from .particle_filter import ParticleFilter, ParticleFilterConfig, Particle


logger = logging.getLogger(__name__)


@dataclass
class SLAMConfig:
    """SLAM configuration parameters."""
    # Map parameters
    map_width: int = 200                # cells
    map_height: int = 200               # cells
    map_resolution: float = 0.1         # meters per cell
    log_odds_occupied: float = 0.9
    log_odds_free: float = -0.7

    # Particle filter
    num_particles: int = 100
    sigma_translation: float = 0.1      # meters
    sigma_rotation: float = 0.05        # radians
    sensor_noise: float = 0.1
    max_range: float = 10.0             # meters

    # Reset spread (set_pose)
    spread_xy: float = 0.5              # meters
    spread_theta: float = 0.3           # radians

    # Noise seed (None = nondeterministic)
    seed: Optional[int] = None

    def validate(self):
        require_positive("max_range", self.max_range)
        self.filter_config().validate()

    def filter_config(self) -> ParticleFilterConfig:
        return ParticleFilterConfig(
            num_particles=self.num_particles,
            sigma_translation=self.sigma_translation,
            sigma_rotation=self.sigma_rotation,
            sensor_noise=self.sensor_noise,
            max_range=self.max_range,
            spread_xy=self.spread_xy,
            spread_theta=self.spread_theta,
        )

    @classmethod
    def from_dict(cls, data) -> 'SLAMConfig':
        return config_from_dict(cls, data)


@dataclass
class SLAMResult:
    """Output of one SLAM cycle."""
    map: np.ndarray                     # (height, width) occupancy probabilities
    pose: Pose
    confidence: float
    particles: List[Particle] = field(default_factory=list)
    timestamp: float = 0.0


class SLAMEngine:
    """
    SLAM engine owning the occupancy grid and the particle set.

    Usage:
        slam = SLAMEngine(SLAMConfig(seed=7))

        # In loop:
        result = slam.update(odometry=Odometry(dx=0.1),
                             lidar_scan=[LidarReading(2.0, 0.0), ...])
        result.pose, result.map, result.confidence

        # Relocalize
        slam.set_pose(1.0, 2.0, 0.0)
    """

    def __init__(self, config: Optional[SLAMConfig] = None):
        self.config = config or SLAMConfig()
        self.config.validate()

        self.noise = GaussianNoise(self.config.seed)
        self._build()

        logger.info("[SLAM] Engine initialized: %dx%d cells @ %.2fm, %d particles",
                    self.config.map_width, self.config.map_height,
                    self.config.map_resolution, self.config.num_particles)

    def _build(self):
        self.grid = OccupancyGrid(
            width=self.config.map_width,
            height=self.config.map_height,
            resolution=self.config.map_resolution,
            log_odds_occupied=self.config.log_odds_occupied,
            log_odds_free=self.config.log_odds_free,
        )
        self.filter = ParticleFilter(self.config.filter_config(), noise=self.noise)

        self._pose = Pose(0.0, 0.0, 0.0)
        self.filter.initialize(self._pose)
        self._confidence = self.filter.confidence(self._pose)
        self._update_count = 0

    def update(self, odometry: Any = None, lidar_scan: Any = None) -> SLAMResult:
        """
        Run one full SLAM cycle.

        Args:
            odometry: Odometry, {dx, dy, dtheta} dict, or None
            lidar_scan: Sequence of LidarReading / {range, angle}, or None

        Returns:
            SLAMResult with probability map, pose and confidence
        """
        if odometry is not None:
            motion = self._parse_odometry(odometry)
            if motion is not None:
                self.filter.motion_update(motion)

        if lidar_scan is not None:
            scan = self._parse_scan(lidar_scan)

            self.filter.sensor_update(scan, self.grid)

            # Map from the current best estimate, not per particle
            rays = self.grid.update_from_scan(self._pose, scan, self.config.max_range)
            logger.debug("[SLAM] Integrated %d rays", rays)

            self.filter.resample_if_needed()

        self._pose = self.filter.estimate_pose()
        self._confidence = self.filter.confidence(self._pose)
        self._update_count += 1

        return self._result()

    def _parse_odometry(self, odometry: Any) -> Optional[Odometry]:
        """Coerce odometry; None when it is malformed or non-finite."""
        try:
            motion = Odometry.of(odometry)
        except (KeyError, IndexError, TypeError, ValueError):
            logger.debug("[SLAM] Skipping malformed odometry: %r", odometry)
            return None
        if not motion.is_valid():
            logger.debug("[SLAM] Skipping non-finite odometry: %r", motion)
            return None
        return motion

    def _parse_scan(self, lidar_scan: Iterable[Any]) -> List[LidarReading]:
        """Coerce readings, skipping malformed ones."""
        scan = []
        for raw in lidar_scan:
            try:
                scan.append(LidarReading.of(raw))
            except (KeyError, IndexError, TypeError, ValueError):
                logger.debug("[SLAM] Skipping malformed reading: %r", raw)
        return scan

    def _result(self) -> SLAMResult:
        return SLAMResult(
            map=self.grid.to_probability_grid(),
            pose=self._pose,
            confidence=self._confidence,
            particles=self.filter.get_particles(),
            timestamp=time.time(),
        )

    def set_pose(self, x: float, y: float, theta: float):
        """Reset the pose estimate and respread particles around it."""
        self._pose = Pose(float(x), float(y), float(theta))
        self.filter.initialize(self._pose)
        self._confidence = self.filter.confidence(self._pose)
        logger.info("[SLAM] Pose reset to (%.2f, %.2f, %.2f)", x, y, theta)

    def get_pose(self) -> Pose:
        """Get current pose estimate."""
        return self._pose

    def get_map(self) -> np.ndarray:
        """Get occupancy map as probability grid (a fresh copy)."""
        return self.grid.to_probability_grid()

    @property
    def confidence(self) -> float:
        return self._confidence

    @property
    def update_count(self) -> int:
        return self._update_count

    def reset(self):
        """Reset SLAM: empty map, particles around the origin."""
        self.noise.reseed(self.config.seed)
        self._build()
        logger.info("[SLAM] Reset")
