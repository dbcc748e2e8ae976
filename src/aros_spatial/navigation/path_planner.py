"""
Path Planner

Front end of the global planning strategies: selects A*, Dijkstra, RRT
or RRT* from the configuration, validates the request, runs the search
and optionally smooths the result.

Usage:
    planner = PathPlanner(PlannerConfig(algorithm='astar'))

    path = planner.plan(start=(0, 0), goal=(5, 3), planning_map={
        'bounds': {'min_x': 0, 'max_x': 20, 'min_y': 0, 'max_y': 20},
        'obstacles': [(2, 1), (2, 2)],
    })
    # path = [Point2D(0, 0), ..., Point2D(5, 3)] or None
"""

import logging
import numpy as np
from typing import Any, List, Optional

from ..core.types import Point2D
from .global_planner import (
    PlannerConfig, PlanningAlgorithm, BasePlanner, AStarPlanner, DijkstraPlanner
)
from .rrt_planner import RRTPlanner, RRTStarPlanner
from .planning_map import PlanningMap, is_collision_free, path_length


logger = logging.getLogger(__name__)


PLANNERS = {
    PlanningAlgorithm.ASTAR: AStarPlanner,
    PlanningAlgorithm.DIJKSTRA: DijkstraPlanner,
    PlanningAlgorithm.RRT: RRTPlanner,
    PlanningAlgorithm.RRT_STAR: RRTStarPlanner,
}


def create_planner(algorithm: Any, config: Optional[PlannerConfig] = None,
                   rng: Optional[np.random.Generator] = None) -> BasePlanner:
    """
    Factory function to create a planning strategy.

    Args:
        algorithm: PlanningAlgorithm or its name ("astar", "dijkstra",
            "rrt", "rrt_star")
        config: Planner configuration
        rng: Random generator for the sampling planners

    Returns:
        Planner instance
    """
    return PLANNERS[PlanningAlgorithm.parse(algorithm)](config, rng)


def smooth_path(path: List[Point2D], pmap: PlanningMap,
                step: float = 0.5) -> List[Point2D]:
    """
    Shortcut smoothing ("string pulling").

    From each kept waypoint, jump to the farthest later waypoint that is
    reachable by a straight collision-free segment. Never adds waypoints
    and never makes the path longer.
    """
    if len(path) < 3:
        return list(path)

    smoothed = [path[0]]
    i = 0
    last = len(path) - 1

    while i < last:
        j = last
        while j > i + 1 and not is_collision_free(path[i], path[j], pmap, step):
            j -= 1
        smoothed.append(path[j])
        i = j

    return smoothed


class PathPlanner:
    """
    Global path planner.

    Usage:
        planner = PathPlanner(PlannerConfig(algorithm='rrt_star', seed=3))
        path = planner.plan(pose, goal, PlanningMap.from_probability_grid(prob, 0.1))

        if path is None:
            # search exhausted, retry with relaxed parameters
            ...
    """

    def __init__(self, config: Optional[PlannerConfig] = None):
        self.config = config or PlannerConfig()
        self.config.validate()

        self._rng = np.random.default_rng(self.config.seed)
        self._algorithm = PlanningAlgorithm.parse(self.config.algorithm)
        self._strategy = create_planner(self._algorithm, self.config, self._rng)

    @property
    def algorithm(self) -> PlanningAlgorithm:
        return self._algorithm

    @property
    def strategy(self) -> BasePlanner:
        return self._strategy

    def set_algorithm(self, algorithm: Any):
        """Switch strategy; unknown names raise ConfigurationError."""
        self._algorithm = PlanningAlgorithm.parse(algorithm)
        self.config.algorithm = self._algorithm.value
        self._strategy = create_planner(self._algorithm, self.config, self._rng)

    def set_smoothing(self, enabled: bool):
        """Enable/disable path smoothing."""
        self.config.smoothing = bool(enabled)

    def plan(self, start: Any, goal: Any,
             planning_map: Any = None) -> Optional[List[Point2D]]:
        """
        Plan path from start to goal in world coordinates.

        Args:
            start: Point2D, Pose or (x, y)
            goal: Point2D, Pose or (x, y)
            planning_map: PlanningMap or {bounds?, obstacles?, cost_map?}

        Returns:
            List of waypoints from start to goal, or None if no path found
        """
        start = Point2D.of(start)
        goal = Point2D.of(goal)
        pmap = PlanningMap.of(planning_map)

        logger.info("[Planner] Planning path using %s: (%.2f, %.2f) -> (%.2f, %.2f)",
                    self._algorithm.value, start.x, start.y, goal.x, goal.y)

        # Validate
        if not pmap.is_valid_position(start):
            logger.warning("[Planner] Start (%.2f, %.2f) is blocked or outside map",
                           start.x, start.y)
            return None
        if not pmap.is_valid_position(goal):
            logger.warning("[Planner] Goal (%.2f, %.2f) is blocked or outside map",
                           goal.x, goal.y)
            return None

        path = self._strategy.search(start, goal, pmap)

        if path is None:
            logger.warning("[Planner] No path found")
            return None

        # Smooth path
        if self.config.smoothing and len(path) > 2:
            path = smooth_path(path, pmap, self.config.collision_check_step)

        logger.info("[Planner] Path found with %d waypoints (%.2fm)",
                    len(path), path_length(path))
        return path

    def is_collision_free(self, a: Any, b: Any, planning_map: Any = None) -> bool:
        return is_collision_free(Point2D.of(a), Point2D.of(b),
                                 PlanningMap.of(planning_map),
                                 self.config.collision_check_step)

    @staticmethod
    def path_length(path: Optional[List[Point2D]]) -> float:
        """Calculate total length of path in meters."""
        return path_length(path)
