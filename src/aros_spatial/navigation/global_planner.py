"""
Global Path Planner - Graph Search

Finds a path from A to B on the planning map.

Algorithms:
- A* (Euclidean heuristic, 8-connected grid moves)
- Dijkstra (A* with the heuristic fixed to zero)

Sampling-based planners (RRT, RRT*) live in rrt_planner.py and share
the BasePlanner interface defined here.

References:
- Red Blob Games A* tutorial: https://www.redblobgames.com/pathfinding/a-star/
- Nav2 NavFn Planner (ROS2 uses this same approach)
"""

import heapq
import itertools
import logging
import numpy as np
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Tuple, Optional
from dataclasses import dataclass, field

from ..core.config import ConfigurationError, config_from_dict, require_positive
from ..core.geometry import distance
from ..core.types import Point2D
from .planning_map import PlanningMap, Bounds, is_collision_free, COLLISION_CHECK_STEP


logger = logging.getLogger(__name__)


class PlanningAlgorithm(Enum):
    """Global planning strategies."""
    ASTAR = 'astar'
    DIJKSTRA = 'dijkstra'
    RRT = 'rrt'
    RRT_STAR = 'rrt_star'

    @classmethod
    def parse(cls, value) -> 'PlanningAlgorithm':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            names = ', '.join(a.value for a in cls)
            raise ConfigurationError(
                f"Unknown planning algorithm '{value}' (expected one of: {names})") from None


@dataclass
class PlannerConfig:
    """Global planner configuration."""
    algorithm: str = 'astar'

    # Search limits
    max_iterations: int = 10000
    goal_threshold: float = 0.5         # meters

    # Graph search
    grid_step: Optional[float] = None   # None = the map's cell_size
    key_resolution: float = 0.01        # position quantization for dedup

    # Sampling-based search
    step_size: float = 1.0              # meters, max extension per iteration
    goal_bias: float = 0.1              # probability of sampling the goal
    default_bounds: Tuple[float, float, float, float] = (0.0, 100.0, 0.0, 100.0)
    seed: Optional[int] = None

    # Path smoothing
    smoothing: bool = True
    collision_check_step: float = COLLISION_CHECK_STEP

    def validate(self):
        PlanningAlgorithm.parse(self.algorithm)
        if int(self.max_iterations) != self.max_iterations or self.max_iterations <= 0:
            raise ConfigurationError(
                f"max_iterations must be a positive integer, got {self.max_iterations}")
        require_positive("goal_threshold", self.goal_threshold)
        require_positive("key_resolution", self.key_resolution)
        require_positive("step_size", self.step_size)
        require_positive("collision_check_step", self.collision_check_step)
        if self.grid_step is not None:
            require_positive("grid_step", self.grid_step)
        if not 0.0 <= self.goal_bias <= 1.0:
            raise ConfigurationError(f"goal_bias must be in [0, 1], got {self.goal_bias}")
        Bounds.of(self.default_bounds)

    @classmethod
    def from_dict(cls, data) -> 'PlannerConfig':
        config = config_from_dict(cls, data)
        config.default_bounds = tuple(config.default_bounds)
        return config


class BasePlanner(ABC):
    """Common interface of every global planning strategy."""

    def __init__(self, config: Optional[PlannerConfig] = None,
                 rng: Optional[np.random.Generator] = None):
        self.config = config or PlannerConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.last_iterations = 0

    @abstractmethod
    def search(self, start: Point2D, goal: Point2D,
               pmap: PlanningMap) -> Optional[List[Point2D]]:
        """
        Search a path.

        Returns:
            Waypoints from start to goal, or None when the search is
            exhausted without reaching the goal
        """

    def is_collision_free(self, a: Point2D, b: Point2D, pmap: PlanningMap) -> bool:
        return is_collision_free(a, b, pmap, self.config.collision_check_step)

    def _finish_at_goal(self, path: List[Point2D], goal: Point2D,
                        pmap: PlanningMap) -> List[Point2D]:
        """Close the path on the exact goal when it is in line of sight."""
        last = path[-1]
        if (last.x, last.y) != (goal.x, goal.y) and self.is_collision_free(last, goal, pmap):
            path.append(goal)
        return path


@dataclass(order=True)
class SearchNode:
    """A*/Dijkstra search node."""
    f_score: float                                      # g + h (for priority queue)
    order: int                                          # insertion counter, breaks ties
    g_score: float = field(compare=False)               # Cost from start
    position: Point2D = field(compare=False)
    parent: Optional['SearchNode'] = field(default=None, compare=False)


class AStarPlanner(BasePlanner):
    """
    A* search over an 8-connected lattice anchored at the start point.

    Positions are deduplicated by a quantized integer key
    (round(coord / key_resolution)), so two positions closer than
    key_resolution count as the same state.
    """

    # 8-directional moves (unit offsets, scaled by the grid step)
    DIRECTIONS_8 = [
        (1, 0), (-1, 0), (0, 1), (0, -1),      # Cardinal
        (1, 1), (1, -1), (-1, 1), (-1, -1)     # Diagonal
    ]

    def heuristic(self, a: Point2D, b: Point2D) -> float:
        """Heuristic function (Euclidean distance)."""
        return distance(a, b)

    def _key(self, p: Point2D) -> Tuple[int, int]:
        res = self.config.key_resolution
        return (round(p.x / res), round(p.y / res))

    def _neighbors(self, pos: Point2D, pmap: PlanningMap) -> List[Point2D]:
        step = self.config.grid_step or pmap.cell_size
        neighbors = []
        for dx, dy in self.DIRECTIONS_8:
            neighbor = Point2D(pos.x + dx * step, pos.y + dy * step)
            if not pmap.is_valid_position(neighbor):
                continue
            # No squeezing diagonally between two occupied cells
            if (dx and dy and pmap.is_obstacle(pos.x + dx * step, pos.y) and
                    pmap.is_obstacle(pos.x, pos.y + dy * step)):
                continue
            neighbors.append(neighbor)
        return neighbors

    def _cost(self, a: Point2D, b: Point2D, pmap: PlanningMap) -> float:
        """Cost of moving from a to b, weighted by the terrain of b."""
        return distance(a, b) * pmap.cost_multiplier(b)

    def search(self, start: Point2D, goal: Point2D,
               pmap: PlanningMap) -> Optional[List[Point2D]]:
        counter = itertools.count()

        start_node = SearchNode(
            f_score=self.heuristic(start, goal),
            order=next(counter),
            g_score=0.0,
            position=start,
        )

        open_set = [start_node]

        # Visited set
        closed = set()

        # Best g_score for each key
        g_scores = {self._key(start): 0.0}

        iterations = 0
        while open_set and iterations < self.config.max_iterations:
            iterations += 1

            # Get node with lowest f_score
            current = heapq.heappop(open_set)

            # Goal reached?
            if distance(current.position, goal) < self.config.goal_threshold:
                self.last_iterations = iterations
                path = self._reconstruct_path(current)
                return self._finish_at_goal(path, goal, pmap)

            # Skip if already visited
            current_key = self._key(current.position)
            if current_key in closed:
                continue
            closed.add(current_key)

            # Explore neighbors
            for neighbor in self._neighbors(current.position, pmap):
                neighbor_key = self._key(neighbor)
                if neighbor_key in closed:
                    continue

                new_g = current.g_score + self._cost(current.position, neighbor, pmap)

                # Skip if we already found a better path
                if neighbor_key in g_scores and new_g >= g_scores[neighbor_key]:
                    continue

                g_scores[neighbor_key] = new_g
                heapq.heappush(open_set, SearchNode(
                    f_score=new_g + self.heuristic(neighbor, goal),
                    order=next(counter),
                    g_score=new_g,
                    position=neighbor,
                    parent=current,
                ))

        self.last_iterations = iterations
        logger.info("[Planner] %s failed after %d iterations",
                    type(self).__name__, iterations)
        return None

    def _reconstruct_path(self, node: SearchNode) -> List[Point2D]:
        """Reconstruct path from goal node to start."""
        path = []
        current = node
        while current is not None:
            path.append(current.position)
            current = current.parent
        path.reverse()
        return path


class DijkstraPlanner(AStarPlanner):
    """Dijkstra's algorithm: A* with h(x) = 0."""

    def heuristic(self, a: Point2D, b: Point2D) -> float:
        return 0.0
