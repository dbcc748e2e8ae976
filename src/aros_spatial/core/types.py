"""
Value Types

Plain value objects passed between the SLAM engine, the global planner
and the local obstacle avoidance:
- Point2D: a waypoint or goal in the world frame
- Pose: robot position + heading
- Velocity: (linear, angular) command
- Obstacle: circular obstacle, optionally moving
- LidarReading / Odometry: per-tick sensor inputs

Conventions:
- X = forward, Y = left
- Angles are counter-clockwise from X axis, radians
"""

import math
from typing import Tuple, Optional, Any
from dataclasses import dataclass

import numpy as np


DEFAULT_OBSTACLE_RADIUS = 0.2   # meters


@dataclass(frozen=True)
class Point2D:
    """2D point in the world frame."""
    x: float
    y: float

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y])

    @staticmethod
    def of(value: Any) -> 'Point2D':
        """Coerce a Point2D, Pose, mapping or (x, y) sequence."""
        if isinstance(value, Point2D):
            return value
        if isinstance(value, Pose):
            return Point2D(value.x, value.y)
        if isinstance(value, dict):
            return Point2D(float(value['x']), float(value['y']))
        return Point2D(float(value[0]), float(value[1]))


@dataclass(frozen=True)
class Pose:
    """2D pose (position + orientation)."""
    x: float
    y: float
    theta: float  # Orientation in radians

    def to_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.theta)

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.theta])

    @property
    def position(self) -> Point2D:
        return Point2D(self.x, self.y)

    def distance_to(self, other: Any) -> float:
        """Euclidean distance to another pose or point."""
        other = Point2D.of(other)
        return math.sqrt((self.x - other.x)**2 + (self.y - other.y)**2)

    def bearing_to(self, other: Any) -> float:
        """World-frame angle from this pose to another pose or point."""
        other = Point2D.of(other)
        return math.atan2(other.y - self.y, other.x - self.x)

    @staticmethod
    def of(value: Any) -> 'Pose':
        """Coerce a Pose, mapping or (x, y, theta) sequence."""
        if isinstance(value, Pose):
            return value
        if isinstance(value, dict):
            return Pose(float(value['x']), float(value['y']),
                        float(value.get('theta', 0.0)))
        theta = float(value[2]) if len(value) > 2 else 0.0
        return Pose(float(value[0]), float(value[1]), theta)


@dataclass(frozen=True)
class Velocity:
    """Velocity command."""
    linear: float       # m/s
    angular: float      # rad/s

    def to_tuple(self) -> Tuple[float, float]:
        return (self.linear, self.angular)

    @property
    def is_stop(self) -> bool:
        return self.linear == 0.0 and self.angular == 0.0

    @staticmethod
    def stop() -> 'Velocity':
        return Velocity(0.0, 0.0)

    @staticmethod
    def of(value: Any) -> 'Velocity':
        if isinstance(value, Velocity):
            return value
        if isinstance(value, dict):
            return Velocity(float(value['linear']), float(value['angular']))
        return Velocity(float(value[0]), float(value[1]))


@dataclass(frozen=True)
class Obstacle:
    """Circular obstacle. Static when vx/vy are not given."""
    x: float
    y: float
    radius: float = DEFAULT_OBSTACLE_RADIUS
    vx: Optional[float] = None
    vy: Optional[float] = None

    @property
    def is_dynamic(self) -> bool:
        return self.vx is not None and self.vy is not None

    @staticmethod
    def of(value: Any) -> 'Obstacle':
        if isinstance(value, Obstacle):
            return value
        if isinstance(value, dict):
            radius = value.get('radius')
            vx = value.get('vx')
            vy = value.get('vy')
            return Obstacle(
                x=float(value['x']),
                y=float(value['y']),
                radius=DEFAULT_OBSTACLE_RADIUS if radius is None else float(radius),
                vx=None if vx is None else float(vx),
                vy=None if vy is None else float(vy),
            )
        return Obstacle(float(value[0]), float(value[1]),
                        float(value[2]) if len(value) > 2 else DEFAULT_OBSTACLE_RADIUS)


@dataclass(frozen=True)
class LidarReading:
    """One LiDAR return, angle relative to robot heading."""
    range: float        # meters
    angle: float        # radians

    def is_valid(self, max_range: float) -> bool:
        return (math.isfinite(self.range) and math.isfinite(self.angle)
                and 0.0 < self.range <= max_range)

    @staticmethod
    def of(value: Any) -> 'LidarReading':
        if isinstance(value, LidarReading):
            return value
        if isinstance(value, dict):
            return LidarReading(float(value['range']), float(value['angle']))
        return LidarReading(float(value[0]), float(value[1]))


@dataclass(frozen=True)
class Odometry:
    """Relative motion since the last tick, in the robot frame."""
    dx: float = 0.0
    dy: float = 0.0
    dtheta: float = 0.0

    def is_valid(self) -> bool:
        return (math.isfinite(self.dx) and math.isfinite(self.dy)
                and math.isfinite(self.dtheta))

    @staticmethod
    def of(value: Any) -> 'Odometry':
        if isinstance(value, Odometry):
            return value
        if isinstance(value, dict):
            return Odometry(float(value.get('dx', 0.0)),
                            float(value.get('dy', 0.0)),
                            float(value.get('dtheta', 0.0)))
        return Odometry(float(value[0]), float(value[1]), float(value[2]))
