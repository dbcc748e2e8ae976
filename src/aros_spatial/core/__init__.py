"""
Core infrastructure module.
- Value types (Pose, Velocity, Point2D, Obstacle, ...)
- Geometry and noise utilities
- Configuration helpers
- Emergency stop
"""

from .types import (
    Point2D,
    Pose,
    Velocity,
    Obstacle,
    LidarReading,
    Odometry,
    DEFAULT_OBSTACLE_RADIUS
)
from .geometry import (
    distance,
    normalize_angle,
    normalize_angles,
    angle_difference,
    GaussianNoise
)
from .config import ConfigurationError, config_from_dict, load_yaml
from .safety import EmergencyStop, SafetyLevel, SafetyAlert
