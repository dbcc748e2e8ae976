"""
Local Obstacle Avoidance

Reactive velocity selection around nearby obstacles, run every control
tick after the global planner has picked the next waypoint.

Strategies:
- DWA: Dynamic Window Approach (simulate, reject collisions, score)
- VFH: Vector Field Histogram (polar obstacle density, steer into a valley)
- Velocity Obstacles: reject velocities on a collision course with
  moving obstacles

Every strategy is preceded by a hard emergency stop: an obstacle inside
emergency_distance returns (0, 0) whatever the strategy would say.

References:
- "The Dynamic Window Approach to Collision Avoidance" (Fox, Burgard, Thrun, 1997)
- "The Vector Field Histogram" (Borenstein, Koren, 1991)
- "Motion Planning in Dynamic Environments using Velocity Obstacles" (Fiorini, Shiller, 1998)
"""

import math
import logging
import numpy as np
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, List, Optional, Sequence
from dataclasses import dataclass

from ..core.config import (
    ConfigurationError, config_from_dict, require_positive, require_non_negative
)
from ..core.geometry import normalize_angle
from ..core.safety import EmergencyStop
from ..core.types import Point2D, Pose, Velocity, Obstacle


logger = logging.getLogger(__name__)


class AvoidanceMethod(Enum):
    """Local avoidance strategies."""
    DWA = 'dwa'
    VFH = 'vfh'
    VELOCITY_OBSTACLES = 'velocity_obstacles'

    @classmethod
    def parse(cls, value) -> 'AvoidanceMethod':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            names = ', '.join(m.value for m in cls)
            raise ConfigurationError(
                f"Unknown avoidance method '{value}' (expected one of: {names})") from None


@dataclass
class AvoidanceConfig:
    """Obstacle avoidance configuration."""
    method: str = 'dwa'

    # Robot / safety
    robot_radius: float = 0.3           # meters
    emergency_distance: float = 0.5     # meters - HARD STOP

    # Velocity limits
    max_linear_vel: float = 1.0         # m/s
    max_angular_vel: float = 1.0        # rad/s

    # Acceleration limits
    max_linear_accel: float = 0.5       # m/s²
    max_angular_accel: float = 1.0      # rad/s²

    # Simulation
    dt: float = 0.1                     # seconds per step / dynamic window
    time_horizon: float = 2.0           # seconds to simulate forward
    samples: int = 20                   # per axis of the velocity grid

    # DWA scoring weights
    heading_weight: float = 0.5
    clearance_weight: float = 0.3
    velocity_weight: float = 0.2
    clearance_cap: float = 2.0          # meters

    # VFH
    vfh_sectors: int = 72
    vfh_threshold: float = 0.5
    vfh_gain: float = 2.0
    vfh_min_speed_factor: float = 0.2

    # Velocity Obstacles
    vo_angular_penalty: float = 0.5

    def validate(self):
        AvoidanceMethod.parse(self.method)
        for name in ('robot_radius', 'emergency_distance'):
            require_non_negative(name, getattr(self, name))
        for name in ('max_linear_vel', 'max_angular_vel', 'max_linear_accel',
                     'max_angular_accel', 'dt', 'time_horizon', 'clearance_cap',
                     'vfh_threshold'):
            require_positive(name, getattr(self, name))
        if int(self.samples) != self.samples or self.samples <= 0:
            raise ConfigurationError(f"samples must be a positive integer, got {self.samples}")
        if int(self.vfh_sectors) != self.vfh_sectors or self.vfh_sectors <= 0:
            raise ConfigurationError(
                f"vfh_sectors must be a positive integer, got {self.vfh_sectors}")

    @classmethod
    def from_dict(cls, data) -> 'AvoidanceConfig':
        return config_from_dict(cls, data)


@dataclass
class DynamicWindow:
    """Velocities reachable within one timestep."""
    v_min: float
    v_max: float
    w_min: float
    w_max: float


@dataclass
class Trajectory:
    """A simulated trajectory."""
    velocity: Velocity
    poses: np.ndarray                   # (steps, 3) [x, y, theta]
    score: float = 0.0
    min_obstacle_dist: float = float('inf')

    @property
    def endpoint(self) -> Pose:
        x, y, theta = self.poses[-1]
        return Pose(float(x), float(y), float(theta))


class AvoidanceStrategy(ABC):
    """Common interface of every local avoidance strategy."""

    def __init__(self, config: Optional[AvoidanceConfig] = None):
        self.config = config or AvoidanceConfig()

    @abstractmethod
    def compute(self, current_vel: Velocity, obstacles: Sequence[Obstacle],
                goal: Optional[Point2D], robot_pose: Pose) -> Velocity:
        """Pick a velocity. Returns Velocity.stop() when nothing is safe."""

    def dynamic_window(self, current_vel: Velocity) -> DynamicWindow:
        """
        Calculate the dynamic window of achievable velocities.

        Based on current velocity and acceleration limits; no reverse.
        """
        c = self.config
        v, w = current_vel.linear, current_vel.angular

        return DynamicWindow(
            v_min=max(0.0, v - c.max_linear_accel * c.dt),
            v_max=min(c.max_linear_vel, v + c.max_linear_accel * c.dt),
            w_min=max(-c.max_angular_vel, w - c.max_angular_accel * c.dt),
            w_max=min(c.max_angular_vel, w + c.max_angular_accel * c.dt),
        )

    def sample_candidates(self, window: DynamicWindow) -> List[Velocity]:
        """Fixed samples x samples grid over the window, linear-major order."""
        n = self.config.samples
        candidates = []
        for i in range(n):
            v = window.v_min + (i / n) * (window.v_max - window.v_min)
            for j in range(n):
                w = window.w_min + (j / n) * (window.w_max - window.w_min)
                candidates.append(Velocity(v, w))
        return candidates

    def goal_direction(self, robot_pose: Pose, goal: Optional[Point2D]) -> float:
        """World-frame bearing to the goal (current heading without goal)."""
        if goal is None:
            return robot_pose.theta
        return robot_pose.bearing_to(goal)


def _obstacle_arrays(obstacles: Sequence[Obstacle]):
    if not obstacles:
        return np.empty((0, 2)), np.empty(0)
    centers = np.array([(o.x, o.y) for o in obstacles])
    radii = np.array([o.radius for o in obstacles])
    return centers, radii


class DWAStrategy(AvoidanceStrategy):
    """
    Dynamic Window Approach.

    Generates velocity commands that:
    - Respect kinematic constraints (acceleration limits)
    - Never follow a trajectory that hits a known obstacle
    - Trade off goal heading, clearance and speed
    """

    def simulate(self, pose: Pose, vel: Velocity) -> Trajectory:
        """Simulate trajectory for time_horizon seconds (differential drive)."""
        dt = self.config.dt
        steps = max(1, math.ceil(self.config.time_horizon / dt - 1e-9))

        x, y, theta = pose.x, pose.y, pose.theta
        poses = np.zeros((steps, 3))

        for i in range(steps):
            poses[i] = (x, y, theta)
            x += vel.linear * math.cos(theta) * dt
            y += vel.linear * math.sin(theta) * dt
            theta += vel.angular * dt

        return Trajectory(velocity=vel, poses=poses)

    def _distances(self, traj: Trajectory, centers: np.ndarray) -> np.ndarray:
        """(steps, obstacles) centre distances."""
        diff = traj.poses[:, np.newaxis, :2] - centers[np.newaxis, :, :]
        return np.hypot(diff[..., 0], diff[..., 1])

    def has_collision(self, traj: Trajectory, centers: np.ndarray,
                      radii: np.ndarray) -> bool:
        """Any pose closer than robot_radius + obstacle radius."""
        if len(centers) == 0:
            return False
        dists = self._distances(traj, centers)
        return bool(np.any(dists < self.config.robot_radius + radii[np.newaxis, :]))

    def evaluate(self, traj: Trajectory, goal: Optional[Point2D],
                 centers: np.ndarray) -> float:
        """
        Score a trajectory (higher = better).

        Combines:
        - Heading: alignment of the final pose with the goal direction
        - Clearance: minimum obstacle distance along the trajectory
        - Velocity: prefer faster trajectories
        """
        c = self.config
        final = traj.endpoint

        heading_score = 0.0
        if goal is not None:
            goal_angle = math.atan2(goal.y - final.y, goal.x - final.x)
            heading_diff = abs(normalize_angle(goal_angle - final.theta))
            heading_score = 1.0 - heading_diff / math.pi

        if len(centers) > 0:
            traj.min_obstacle_dist = float(np.min(self._distances(traj, centers)))
        clearance_score = min(1.0, traj.min_obstacle_dist / c.clearance_cap)

        velocity_score = traj.velocity.linear / c.max_linear_vel

        return (c.heading_weight * heading_score +
                c.clearance_weight * clearance_score +
                c.velocity_weight * velocity_score)

    def compute(self, current_vel: Velocity, obstacles: Sequence[Obstacle],
                goal: Optional[Point2D], robot_pose: Pose) -> Velocity:
        window = self.dynamic_window(current_vel)
        centers, radii = _obstacle_arrays(obstacles)

        best: Optional[Trajectory] = None
        best_score = -float('inf')

        for vel in self.sample_candidates(window):
            traj = self.simulate(robot_pose, vel)

            if self.has_collision(traj, centers, radii):
                continue

            traj.score = self.evaluate(traj, goal, centers)

            if traj.score > best_score:
                best_score = traj.score
                best = traj

        if best is None:
            logger.info("[Avoidance] DWA: no collision-free velocity, stopping")
            return Velocity.stop()

        return best.velocity


class VFHStrategy(AvoidanceStrategy):
    """Vector Field Histogram."""

    @property
    def sector_width(self) -> float:
        return 2 * math.pi / self.config.vfh_sectors

    def histogram(self, obstacles: Sequence[Obstacle], robot_pose: Pose) -> np.ndarray:
        """Polar obstacle density over [-pi, pi), closer = higher."""
        sectors = self.config.vfh_sectors
        hist = np.zeros(sectors)

        for obstacle in obstacles:
            dx = obstacle.x - robot_pose.x
            dy = obstacle.y - robot_pose.y

            angle = math.atan2(dy, dx)
            dist = math.sqrt(dx * dx + dy * dy)

            sector = int(math.floor((angle + math.pi) / (2 * math.pi) * sectors)) % sectors
            hist[sector] += 1.0 / max(0.1, dist)

        return hist

    def find_valleys(self, hist: np.ndarray) -> List[List[int]]:
        """
        Runs of consecutive sectors below the threshold.

        A run touching the last sector joins a run starting at sector 0,
        since the histogram wraps around.
        """
        free = hist < self.config.vfh_threshold
        valleys: List[List[int]] = []
        run: List[int] = []

        for i, is_free in enumerate(free):
            if is_free:
                run.append(i)
            elif run:
                valleys.append(run)
                run = []
        if run:
            if valleys and valleys[0][0] == 0:
                valleys[0] = run + valleys[0]
            else:
                valleys.append(run)

        return valleys

    def sector_angle(self, sector: float) -> float:
        """World angle of the middle of a (possibly fractional) sector."""
        return normalize_angle(-math.pi + (sector + 0.5) * self.sector_width)

    def valley_center(self, valley: List[int]) -> float:
        # Unwrap so a valley crossing the seam has increasing indices
        start = valley[0]
        end = start + len(valley) - 1
        return self.sector_angle((start + end) / 2.0)

    def select_direction(self, valleys: List[List[int]], target: float) -> float:
        """
        Pick the valley whose centre is closest to the target bearing.

        Steers straight at the target when it lies inside that valley,
        otherwise at the valley centre.
        """
        best = valleys[0]
        best_center = self.valley_center(best)
        min_diff = float('inf')
        for valley in valleys:
            center = self.valley_center(valley)
            diff = abs(normalize_angle(center - target))
            if diff < min_diff:
                min_diff = diff
                best, best_center = valley, center

        target_sector = int(math.floor((target + math.pi) / self.sector_width))
        if target_sector % self.config.vfh_sectors in best:
            return target
        return best_center

    def compute(self, current_vel: Velocity, obstacles: Sequence[Obstacle],
                goal: Optional[Point2D], robot_pose: Pose) -> Velocity:
        c = self.config
        hist = self.histogram(obstacles, robot_pose)
        valleys = self.find_valleys(hist)

        if not valleys:
            logger.info("[Avoidance] VFH: no free valley, stopping")
            return Velocity.stop()

        direction = self.select_direction(valleys, self.goal_direction(robot_pose, goal))

        # Proportional steering toward the chosen direction
        angle_diff = normalize_angle(direction - robot_pose.theta)
        angular = max(-c.max_angular_vel, min(c.max_angular_vel, c.vfh_gain * angle_diff))

        # Slow down with obstacle density
        safety_factor = max(c.vfh_min_speed_factor, 1.0 - float(np.min(hist)) / 2.0)
        linear = c.max_linear_vel * safety_factor

        return Velocity(linear, angular)


class VelocityObstacleStrategy(AvoidanceStrategy):
    """
    Velocity Obstacles.

    Only moving obstacles (with vx, vy) are checked here; static ones are
    left to the emergency stop.
    """

    def in_velocity_obstacle(self, vel: Velocity, obstacle: Obstacle,
                             robot_pose: Pose) -> bool:
        """True if following `vel` leads to a collision within the horizon."""
        if not obstacle.is_dynamic:
            return False

        # Relative velocity
        rel_vx = vel.linear * math.cos(robot_pose.theta) - obstacle.vx
        rel_vy = vel.linear * math.sin(robot_pose.theta) - obstacle.vy

        dx = obstacle.x - robot_pose.x
        dy = obstacle.y - robot_pose.y

        time_to_collision = (dx * rel_vx + dy * rel_vy) / (rel_vx**2 + rel_vy**2 + 0.001)

        if 0 < time_to_collision < self.config.time_horizon:
            miss_distance = math.sqrt((dx - rel_vx * time_to_collision)**2 +
                                      (dy - rel_vy * time_to_collision)**2)
            return miss_distance < self.config.robot_radius + obstacle.radius

        return False

    def select_toward_goal(self, velocities: List[Velocity], goal: Optional[Point2D],
                           robot_pose: Pose) -> Velocity:
        """Safe velocity that best approaches the goal (first one on ties)."""
        if goal is None:
            best = velocities[0]
            for vel in velocities[1:]:
                if vel.linear > best.linear:
                    best = vel
            return best

        heading_error = normalize_angle(self.goal_direction(robot_pose, goal) - robot_pose.theta)

        best = velocities[0]
        best_score = -float('inf')
        for vel in velocities:
            score = vel.linear - abs(vel.angular - heading_error) * self.config.vo_angular_penalty
            if score > best_score:
                best_score = score
                best = vel
        return best

    def compute(self, current_vel: Velocity, obstacles: Sequence[Obstacle],
                goal: Optional[Point2D], robot_pose: Pose) -> Velocity:
        window = self.dynamic_window(current_vel)
        dynamic = [o for o in obstacles if o.is_dynamic]

        safe = [vel for vel in self.sample_candidates(window)
                if not any(self.in_velocity_obstacle(vel, o, robot_pose) for o in dynamic)]

        if not safe:
            logger.info("[Avoidance] VO: every reachable velocity is on a collision course")
            return Velocity.stop()

        return self.select_toward_goal(safe, goal, robot_pose)


STRATEGIES = {
    AvoidanceMethod.DWA: DWAStrategy,
    AvoidanceMethod.VFH: VFHStrategy,
    AvoidanceMethod.VELOCITY_OBSTACLES: VelocityObstacleStrategy,
}


def create_strategy(method: Any,
                    config: Optional[AvoidanceConfig] = None) -> AvoidanceStrategy:
    """
    Factory function to create an avoidance strategy.

    Args:
        method: AvoidanceMethod or "dwa", "vfh", "velocity_obstacles"
        config: Avoidance configuration
    """
    return STRATEGIES[AvoidanceMethod.parse(method)](config)


class ObstacleAvoidance:
    """
    Local obstacle avoidance controller.

    Usage:
        avoidance = ObstacleAvoidance(AvoidanceConfig(method='dwa'))

        # In control loop:
        cmd = avoidance.compute_safe_velocity(
            current_vel=Velocity(0.5, 0.0),
            obstacles=[Obstacle(2.0, 0.5)],
            goal=next_waypoint,
            robot_pose=pose
        )
    """

    def __init__(self, config: Optional[AvoidanceConfig] = None):
        self.config = config or AvoidanceConfig()
        self.config.validate()

        self._method = AvoidanceMethod.parse(self.config.method)
        self._strategy = create_strategy(self._method, self.config)
        self.emergency_stop = EmergencyStop(self.config.emergency_distance)

    @property
    def method(self) -> AvoidanceMethod:
        return self._method

    @property
    def strategy(self) -> AvoidanceStrategy:
        return self._strategy

    @property
    def last_emergency(self) -> bool:
        """Whether the last call was overridden by the emergency stop."""
        return self.emergency_stop.triggered

    def set_method(self, method: Any):
        """Switch strategy; unknown names raise ConfigurationError."""
        self._method = AvoidanceMethod.parse(method)
        self.config.method = self._method.value
        self._strategy = create_strategy(self._method, self.config)

    def _parse_obstacles(self, obstacles: Optional[Sequence[Any]]) -> List[Obstacle]:
        parsed = []
        for raw in obstacles or ():
            try:
                parsed.append(Obstacle.of(raw))
            except (KeyError, IndexError, TypeError, ValueError):
                logger.debug("[Avoidance] Skipping malformed obstacle: %r", raw)
        return parsed

    def compute_safe_velocity(
        self,
        current_vel: Any,
        obstacles: Optional[Sequence[Any]] = None,
        goal: Any = None,
        robot_pose: Any = None
    ) -> Velocity:
        """
        Compute safe velocity considering obstacles.

        Args:
            current_vel: Current velocity (Velocity or (linear, angular))
            obstacles: Obstacles in the world frame
            goal: Optional local goal (next waypoint)
            robot_pose: Optional robot pose; the origin is assumed for
                simulation when missing, and the emergency check is skipped

        Returns:
            Velocity command, (0, 0) when no motion is safe
        """
        current_vel = Velocity.of(current_vel)
        parsed = self._parse_obstacles(obstacles)
        pose = Pose.of(robot_pose) if robot_pose is not None else None
        goal = Point2D.of(goal) if goal is not None else None

        # Check for emergency stop
        if self.emergency_stop.check(pose, parsed):
            return Velocity.stop()

        return self._strategy.compute(current_vel, parsed, goal,
                                      pose if pose is not None else Pose(0.0, 0.0, 0.0))
