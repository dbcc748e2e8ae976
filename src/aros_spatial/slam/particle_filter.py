"""
Particle Filter Localization

Monte Carlo Localization (MCL) against the SLAM occupancy grid.

References:
- Probabilistic Robotics (Thrun, Burgard, Fox), chapters 4 and 8

Features:
- Motion model with Gaussian noise in each particle's heading frame
- Endpoint sensor model on the occupancy grid
- Effective-sample-size triggered low-variance resampling
- Weighted circular-mean pose estimate
"""

import math
import logging
import numpy as np
from typing import Optional, List, Iterable
from dataclasses import dataclass

from ..core.config import ConfigurationError, require_positive, require_non_negative
from ..core.geometry import GaussianNoise, normalize_angles
from ..core.types import Pose, Odometry, LidarReading
from .occupancy_grid import OccupancyGrid


logger = logging.getLogger(__name__)

WEIGHT_FLOOR = 1e-10


@dataclass
class ParticleFilterConfig:
    """Configuration for particle filter."""
    # Number of particles
    num_particles: int = 100

    # Motion model noise (standard deviations)
    sigma_translation: float = 0.1      # meters, applied to dx and dy
    sigma_rotation: float = 0.05        # radians

    # Sensor model parameters
    sensor_noise: float = 0.1           # std dev on occupancy probability
    expected_occupancy: float = 0.9     # a beam endpoint should hit this
    max_range: float = 10.0             # meters
    scan_samples: int = 20              # beams used per correction

    # Resampling
    resample_threshold: float = 0.5     # Effective particle ratio threshold

    # Initial spread around a pose (set_pose / initialize)
    spread_xy: float = 0.5              # meters
    spread_theta: float = 0.3           # radians

    def validate(self):
        if int(self.num_particles) != self.num_particles or self.num_particles <= 0:
            raise ConfigurationError(
                f"num_particles must be a positive integer, got {self.num_particles}")
        require_non_negative("sigma_translation", self.sigma_translation)
        require_non_negative("sigma_rotation", self.sigma_rotation)
        require_positive("sensor_noise", self.sensor_noise)
        require_positive("max_range", self.max_range)
        require_positive("scan_samples", self.scan_samples)


@dataclass
class Particle:
    """Single particle representing possible robot pose."""
    x: float
    y: float
    theta: float
    weight: float = 1.0


class ParticleFilter:
    """
    Particle filter for robot localization.

    Particles are held as an Nx3 array [x, y, theta] plus an N array of
    weights; every random draw comes from one GaussianNoise instance so a
    seeded filter is reproducible.

    Usage:
        pf = ParticleFilter(ParticleFilterConfig(num_particles=100),
                            noise=GaussianNoise(seed=1))
        pf.initialize(Pose(0, 0, 0))

        # In main loop:
        pf.motion_update(Odometry(dx=0.1))
        pf.sensor_update(scan, grid)
        pf.resample_if_needed()

        pose = pf.estimate_pose()
    """

    def __init__(self, config: Optional[ParticleFilterConfig] = None,
                 noise: Optional[GaussianNoise] = None):
        self.config = config or ParticleFilterConfig()
        self.config.validate()
        self.noise = noise or GaussianNoise()

        n = self.config.num_particles
        self.particles: np.ndarray = np.zeros((n, 3))
        self.weights: np.ndarray = np.ones(n) / n

        self._resample_count = 0

    @property
    def num_particles(self) -> int:
        return self.config.num_particles

    def initialize(self, pose: Pose, spread_xy: Optional[float] = None,
                   spread_theta: Optional[float] = None):
        """
        Replace all particles with a Gaussian cloud around a pose.

        Args:
            pose: Centre of the cloud
            spread_xy: Position spread (meters)
            spread_theta: Heading spread (radians)
        """
        n = self.num_particles
        spread_xy = self.config.spread_xy if spread_xy is None else spread_xy
        spread_theta = self.config.spread_theta if spread_theta is None else spread_theta

        particles = np.zeros((n, 3))
        particles[:, 0] = self.noise.sample_array(pose.x, spread_xy, n)
        particles[:, 1] = self.noise.sample_array(pose.y, spread_xy, n)
        particles[:, 2] = normalize_angles(
            self.noise.sample_array(pose.theta, spread_theta, n))

        self.particles = particles
        self.weights = np.ones(n) / n

    def motion_update(self, odometry: Odometry):
        """
        Move particles according to the motion model.

        Args:
            odometry: (dx, dy, dtheta) in the robot frame
        """
        n = self.num_particles

        # Add noise to motion
        noisy_dx = odometry.dx + self.noise.sample_array(0.0, self.config.sigma_translation, n)
        noisy_dy = odometry.dy + self.noise.sample_array(0.0, self.config.sigma_translation, n)
        noisy_dtheta = odometry.dtheta + self.noise.sample_array(0.0, self.config.sigma_rotation, n)

        # Apply motion (in each particle's frame)
        cos_theta = np.cos(self.particles[:, 2])
        sin_theta = np.sin(self.particles[:, 2])

        self.particles[:, 0] += noisy_dx * cos_theta - noisy_dy * sin_theta
        self.particles[:, 1] += noisy_dx * sin_theta + noisy_dy * cos_theta
        self.particles[:, 2] = normalize_angles(self.particles[:, 2] + noisy_dtheta)

    def _subsample(self, scan: List[LidarReading]) -> List[LidarReading]:
        """Evenly spaced subset of the scan, invalid readings dropped."""
        step = max(1, len(scan) // self.config.scan_samples)
        return [r for r in scan[::step] if r.is_valid(self.config.max_range)]

    def sensor_update(self, scan: Iterable[LidarReading], grid: OccupancyGrid):
        """
        Reweight particles by how well the scan endpoints land on
        occupied cells of the grid.

        Args:
            scan: Readings relative to robot heading
            grid: Current occupancy grid (read only)
        """
        readings = self._subsample(list(scan))
        if not readings:
            logger.debug("[SLAM] No valid beams in scan, weights unchanged")
            return

        ranges = np.array([r.range for r in readings])
        angles = np.array([r.angle for r in readings])

        # (N, M) beam endpoints in the world frame for every particle
        world_angles = self.particles[:, 2:3] + angles[np.newaxis, :]
        wx = self.particles[:, 0:1] + ranges * np.cos(world_angles)
        wy = self.particles[:, 1:2] + ranges * np.sin(world_angles)

        probs, inside = grid.lookup_probabilities(wx, wy)

        sigma = self.config.sensor_noise
        diff = probs - self.config.expected_occupancy
        likelihood = np.where(inside, np.exp(-diff * diff / (2.0 * sigma * sigma)), 1.0)

        weights = np.maximum(WEIGHT_FLOOR, self.weights * np.prod(likelihood, axis=1))
        self._normalize(weights)

    def _normalize(self, weights: np.ndarray):
        total = np.sum(weights)
        if total > 0 and np.isfinite(total):
            self.weights = weights / total
        else:
            logger.debug("[SLAM] Total particle weight is zero, keeping previous weights")

    @property
    def effective_sample_size(self) -> float:
        return float(1.0 / (np.sum(self.weights ** 2) + WEIGHT_FLOOR))

    def resample_if_needed(self) -> bool:
        """Resample particles if effective particle count is low."""
        n = self.num_particles
        n_eff = self.effective_sample_size

        if n_eff < self.config.resample_threshold * n:
            logger.debug("[SLAM] Resampling (n_eff=%.1f < %.1f)",
                         n_eff, self.config.resample_threshold * n)
            self.resample()
            return True
        return False

    def resample(self):
        """Low variance (systematic) resampling."""
        n = self.num_particles

        # Cumulative weights
        cumsum = np.cumsum(self.weights)

        # Random start, then evenly spaced pointers
        r = self.noise.uniform(0.0, 1.0 / n)
        targets = r + np.arange(n) / n

        indices = np.searchsorted(cumsum, targets, side='left')
        indices = np.minimum(indices, n - 1)

        self.particles = self.particles[indices].copy()
        self.weights = np.ones(n) / n
        self._resample_count += 1

    @property
    def resample_count(self) -> int:
        return self._resample_count

    def estimate_pose(self) -> Pose:
        """
        Get estimated pose.

        Returns:
            Weighted mean position with circular mean heading
        """
        x = float(np.sum(self.weights * self.particles[:, 0]))
        y = float(np.sum(self.weights * self.particles[:, 1]))

        sin_sum = np.sum(self.weights * np.sin(self.particles[:, 2]))
        cos_sum = np.sum(self.weights * np.cos(self.particles[:, 2]))
        theta = math.atan2(sin_sum, cos_sum)

        return Pose(x, y, theta)

    def confidence(self, pose: Optional[Pose] = None) -> float:
        """
        Localization confidence in [0, 1] from the positional spread
        of the particles around `pose` (default: the current estimate).
        """
        if pose is None:
            pose = self.estimate_pose()

        dx = self.particles[:, 0] - pose.x
        dy = self.particles[:, 1] - pose.y
        variance = float(np.sum(self.weights * (dx * dx + dy * dy)))

        return max(0.0, min(1.0, math.exp(-variance)))

    def get_particles(self) -> List[Particle]:
        """Snapshot of the particle set."""
        return [Particle(float(p[0]), float(p[1]), float(p[2]), float(w))
                for p, w in zip(self.particles, self.weights)]
