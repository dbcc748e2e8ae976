"""
Geometry and Noise Utilities

Shared by the SLAM engine and both planners:
- Euclidean distance
- Angle normalization
- Gaussian noise (Box-Muller) with explicit, reseedable state
"""

import math
from typing import Optional, Any

import numpy as np

from .types import Point2D


def distance(a: Any, b: Any) -> float:
    """Euclidean distance between two points (Point2D, Pose or (x, y))."""
    a = Point2D.of(a)
    b = Point2D.of(b)
    dx = a.x - b.x
    dy = a.y - b.y
    return math.sqrt(dx * dx + dy * dy)


def normalize_angle(angle: float) -> float:
    """Normalize angle to [-pi, pi]."""
    if abs(angle) > 4 * math.pi:
        angle = math.fmod(angle, 2 * math.pi)
    while angle > math.pi:
        angle -= 2 * math.pi
    while angle < -math.pi:
        angle += 2 * math.pi
    return angle


def normalize_angles(angles: np.ndarray) -> np.ndarray:
    """Vectorized normalize_angle, result in [-pi, pi)."""
    return np.mod(angles + np.pi, 2 * np.pi) - np.pi


def angle_difference(a: float, b: float) -> float:
    """Shortest signed angular difference from a to b."""
    return normalize_angle(b - a)


class GaussianNoise:
    """
    Gaussian sampler using the Box-Muller transform.

    Box-Muller produces samples in pairs; the second one is kept as a
    spare and returned by the next scalar call. Both the uniform source
    and the spare live on the instance, so reseeding gives an identical
    sequence.

    Usage:
        noise = GaussianNoise(seed=42)
        n = noise.sample(0.0, 0.1)
        arr = noise.sample_array(0.0, 0.1, 500)
    """

    EPSILON = 1e-10  # Avoid log(0)

    def __init__(self, seed: Optional[int] = None):
        self.reseed(seed)

    def reseed(self, seed: Optional[int] = None):
        """Reset the uniform source and drop any cached spare."""
        self.seed = seed
        self._rng = np.random.default_rng(seed)
        self._has_spare = False
        self._spare = 0.0

    def uniform(self, low: float = 0.0, high: float = 1.0) -> float:
        """Uniform sample in [low, high)."""
        return float(self._rng.uniform(low, high))

    def sample(self, mean: float = 0.0, stddev: float = 1.0) -> float:
        """Single Gaussian sample."""
        if self._has_spare:
            self._has_spare = False
            return mean + stddev * self._spare

        u = max(self.EPSILON, self._rng.random())
        v = self._rng.random()

        mag = math.sqrt(-2.0 * math.log(u))
        self._spare = mag * math.sin(2.0 * math.pi * v)
        self._has_spare = True

        return mean + stddev * mag * math.cos(2.0 * math.pi * v)

    def sample_array(self, mean: float, stddev: float, size: int) -> np.ndarray:
        """Vectorized Box-Muller for `size` independent samples."""
        if size <= 0:
            return np.zeros(0)

        pairs = (size + 1) // 2
        u = np.maximum(self.EPSILON, self._rng.random(pairs))
        v = self._rng.random(pairs)

        mag = np.sqrt(-2.0 * np.log(u))
        z = np.concatenate([mag * np.cos(2.0 * np.pi * v),
                            mag * np.sin(2.0 * np.pi * v)])[:size]

        return mean + stddev * z
