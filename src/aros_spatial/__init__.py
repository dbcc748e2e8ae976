"""
AROS spatial navigation core.

- slam: occupancy grid + particle filter localization
- navigation: global path planning and local obstacle avoidance
- pipeline: SLAM -> planner -> avoidance, one control tick at a time

Usage:
    from aros_spatial import NavigationPipeline, load_config

    pipeline = NavigationPipeline(load_config('config/navigation.yaml'))
    step = pipeline.tick(odometry=odom, lidar_scan=scan, goal=(5.0, 3.0))
"""

__version__ = "0.1.0"

from .core import (
    Point2D,
    Pose,
    Velocity,
    Obstacle,
    LidarReading,
    Odometry,
    ConfigurationError
)
from .slam import SLAMEngine, SLAMConfig, SLAMResult
from .navigation import (
    PathPlanner,
    PlannerConfig,
    PlanningMap,
    ObstacleAvoidance,
    AvoidanceConfig
)
from .pipeline import (
    NavigationPipeline,
    NavigationConfig,
    NavigationStatus,
    NavigationStep,
    load_config
)
