"""
Navigation Pipeline

Runs the three spatial components in order on every control tick:

1. SLAM        - odometry + LiDAR -> pose estimate + occupancy map
2. Global plan - A*/Dijkstra/RRT/RRT* on a snapshot of that map
3. Local plan  - obstacle avoidance toward the next waypoint

Data flow:
    LiDAR/odometry -> SLAMEngine -> probability grid copy -> PlanningMap
    PlanningMap + pose + goal -> PathPlanner -> waypoints
    waypoint + obstacles -> ObstacleAvoidance -> Velocity

Usage:
    pipeline = NavigationPipeline(load_config('navigation.yaml'))
    pipeline.set_goal((4.0, 1.5))

    # In control loop:
    step = pipeline.tick(odometry=odom, lidar_scan=scan, obstacles=obstacles)
    motor.send(step.velocity)
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
from dataclasses import dataclass, field

from .core.config import ConfigurationError, config_from_dict, load_yaml, require_positive
from .core.types import Point2D, Pose, Velocity
from .slam import SLAMEngine, SLAMConfig
from .navigation import (
    PathPlanner, PlannerConfig, PlanningMap, ObstacleAvoidance, AvoidanceConfig
)


logger = logging.getLogger(__name__)


@dataclass
class NavigationConfig:
    """Configuration of the whole pipeline."""
    slam: SLAMConfig = field(default_factory=SLAMConfig)
    planner: PlannerConfig = field(default_factory=PlannerConfig)
    avoidance: AvoidanceConfig = field(default_factory=AvoidanceConfig)

    # Tolerances
    waypoint_tolerance: float = 0.5          # meters
    goal_tolerance: float = 0.3              # meters

    # Replanning
    replan_every: int = 10                   # ticks

    # Map snapshot -> planning map
    occupied_threshold: float = 0.65

    def validate(self):
        self.slam.validate()
        self.planner.validate()
        self.avoidance.validate()
        require_positive("waypoint_tolerance", self.waypoint_tolerance)
        require_positive("goal_tolerance", self.goal_tolerance)
        if int(self.replan_every) != self.replan_every or self.replan_every <= 0:
            raise ConfigurationError(
                f"replan_every must be a positive integer, got {self.replan_every}")
        if not 0.0 < self.occupied_threshold < 1.0:
            raise ConfigurationError(
                f"occupied_threshold must be in (0, 1), got {self.occupied_threshold}")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'NavigationConfig':
        """
        Build from {slam?, planner?, avoidance?, navigation?} sections.

        `navigation` holds the pipeline's own options (tolerances,
        replan_every, occupied_threshold).
        """
        data = dict(data or {})
        unknown = sorted(set(data) - {'slam', 'planner', 'avoidance', 'navigation'})
        if unknown:
            raise ConfigurationError(f"Unknown config section(s): {', '.join(unknown)}")

        nav = dict(data.get('navigation') or {})
        for section in ('slam', 'planner', 'avoidance'):
            if section in nav:
                raise ConfigurationError(
                    f"'{section}' is a top-level section, not a navigation option")

        config = config_from_dict(cls, nav)
        config.slam = SLAMConfig.from_dict(data.get('slam'))
        config.planner = PlannerConfig.from_dict(data.get('planner'))
        config.avoidance = AvoidanceConfig.from_dict(data.get('avoidance'))
        return config


def load_config(path: str) -> NavigationConfig:
    """Load and validate a NavigationConfig from a YAML file."""
    config = NavigationConfig.from_dict(load_yaml(path))
    config.validate()
    logger.info("[NAV] Loaded configuration from %s", path)
    return config


class NavigationStatus(Enum):
    IDLE = 'idle'               # no goal
    NAVIGATING = 'navigating'
    NO_PATH = 'no_path'         # planner exhausted or start/goal blocked
    REACHED = 'reached'
    EMERGENCY = 'emergency'     # emergency stop overrode the command


@dataclass
class NavigationStep:
    """Output of one pipeline tick."""
    pose: Pose
    path: Optional[List[Point2D]]
    waypoint: Optional[Point2D]
    velocity: Velocity
    confidence: float
    status: NavigationStatus
    replanned: bool = False


class NavigationPipeline:
    """
    SLAM -> global planner -> obstacle avoidance, one tick at a time.

    The planner only ever sees a copy of the map taken after the SLAM
    cycle of the same tick.
    """

    def __init__(self, config: Optional[NavigationConfig] = None):
        self.config = config or NavigationConfig()
        self.config.validate()

        self.slam = SLAMEngine(self.config.slam)
        self.planner = PathPlanner(self.config.planner)
        self.avoidance = ObstacleAvoidance(self.config.avoidance)

        self._goal: Optional[Point2D] = None
        self._path: Optional[List[Point2D]] = None
        self._waypoint_index = 0
        self._ticks_since_plan = 0
        self._last_velocity = Velocity.stop()

        logger.info("[NAV] Pipeline ready: planner=%s, avoidance=%s",
                    self.planner.algorithm.value, self.avoidance.method.value)

    @property
    def goal(self) -> Optional[Point2D]:
        return self._goal

    @property
    def path(self) -> Optional[List[Point2D]]:
        return list(self._path) if self._path is not None else None

    def set_goal(self, goal: Any):
        """Set a new destination; forces a replan on the next tick."""
        goal = Point2D.of(goal)
        if goal != self._goal:
            logger.info("[NAV] New goal: (%.2f, %.2f)", goal.x, goal.y)
            self._goal = goal
            self._path = None

    def clear_goal(self):
        self._goal = None
        self._path = None

    def planning_map(self, prob_map) -> PlanningMap:
        return PlanningMap.from_probability_grid(
            prob_map, self.config.slam.map_resolution, self.config.occupied_threshold)

    def _replan(self, pose: Pose, prob_map):
        self._ticks_since_plan = 0
        self._path = self.planner.plan(pose.position, self._goal, self.planning_map(prob_map))
        # path[0] is the start, so head for the next one
        self._waypoint_index = 1 if self._path is not None and len(self._path) > 1 else 0

    def _advance_waypoint(self, pose: Pose) -> Point2D:
        while (self._waypoint_index < len(self._path) - 1 and
               pose.distance_to(self._path[self._waypoint_index]) < self.config.waypoint_tolerance):
            self._waypoint_index += 1
        return self._path[self._waypoint_index]

    def tick(
        self,
        odometry: Any = None,
        lidar_scan: Any = None,
        obstacles: Optional[Sequence[Any]] = None,
        goal: Any = None,
        current_velocity: Any = None
    ) -> NavigationStep:
        """
        Run one control tick.

        Args:
            odometry: Motion since the last tick (Odometry or {dx, dy, dtheta})
            lidar_scan: LiDAR readings for this tick
            obstacles: Obstacles in the world frame for local avoidance
            goal: New destination, or None to keep the current one
            current_velocity: Measured velocity; defaults to the last command

        Returns:
            NavigationStep
        """
        if goal is not None:
            self.set_goal(goal)

        result = self.slam.update(odometry=odometry, lidar_scan=lidar_scan)
        pose = result.pose
        prob_map = result.map

        def step(status, velocity=None, waypoint=None, replanned=False):
            velocity = velocity or Velocity.stop()
            self._last_velocity = velocity
            return NavigationStep(pose=pose, path=self.path, waypoint=waypoint,
                                  velocity=velocity, confidence=result.confidence,
                                  status=status, replanned=replanned)

        if self._goal is None:
            return step(NavigationStatus.IDLE)

        if pose.distance_to(self._goal) < self.config.goal_tolerance:
            logger.debug("[NAV] Goal reached at (%.2f, %.2f)", pose.x, pose.y)
            return step(NavigationStatus.REACHED)

        replanned = False
        self._ticks_since_plan += 1
        if self._path is None or self._ticks_since_plan >= self.config.replan_every:
            self._replan(pose, prob_map)
            replanned = True

        if self._path is None:
            return step(NavigationStatus.NO_PATH, replanned=replanned)

        waypoint = self._advance_waypoint(pose)

        if current_velocity is None:
            current_velocity = self._last_velocity

        velocity = self.avoidance.compute_safe_velocity(
            current_velocity, obstacles, goal=waypoint, robot_pose=pose)

        status = (NavigationStatus.EMERGENCY if self.avoidance.last_emergency
                  else NavigationStatus.NAVIGATING)
        return step(status, velocity, waypoint, replanned)

    def reset(self):
        """Reset SLAM and drop the current goal."""
        self.slam.reset()
        self.clear_goal()
        self._ticks_since_plan = 0
        self._last_velocity = Velocity.stop()
