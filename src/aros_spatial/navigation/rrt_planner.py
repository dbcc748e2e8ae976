"""
Global Path Planner - Sampling Based

RRT and RRT* for continuous spaces where a lattice search is too coarse.

- RRT: grow a tree from the start toward random samples (goal biased)
- RRT*: same growth, plus choose-parent and local rewiring within
  2 * step_size of each new node

References:
- LaValle, "Rapidly-Exploring Random Trees: A New Tool for Path Planning" (1998)
- Karaman & Frazzoli, "Sampling-based Algorithms for Optimal Motion Planning" (2011)
"""

import logging
import numpy as np
from typing import List, Optional

from ..core.geometry import distance
from ..core.types import Point2D
from .global_planner import BasePlanner
from .planning_map import PlanningMap, Bounds


logger = logging.getLogger(__name__)


class TreeArena:
    """
    Tree nodes stored by index.

    Positions live in a growable (capacity, 2) array so nearest and
    radius queries are one vectorized distance computation.
    """

    def __init__(self, root: Point2D, capacity: int = 256):
        self._positions = np.zeros((capacity, 2))
        self.parents: List[Optional[int]] = []
        self.costs: List[float] = []
        self.add(root, None, 0.0)

    def __len__(self) -> int:
        return len(self.parents)

    def add(self, position: Point2D, parent: Optional[int], cost: float) -> int:
        n = len(self.parents)
        if n == len(self._positions):
            self._positions = np.vstack([self._positions, np.zeros_like(self._positions)])
        self._positions[n] = (position.x, position.y)
        self.parents.append(parent)
        self.costs.append(cost)
        return n

    def position(self, index: int) -> Point2D:
        x, y = self._positions[index]
        return Point2D(float(x), float(y))

    def _distances(self, point: Point2D) -> np.ndarray:
        active = self._positions[:len(self.parents)]
        return np.hypot(active[:, 0] - point.x, active[:, 1] - point.y)

    def nearest(self, point: Point2D) -> int:
        """Index of the node closest to point (first one on ties)."""
        return int(np.argmin(self._distances(point)))

    def near(self, point: Point2D, radius: float) -> List[int]:
        """Indices of nodes strictly within radius of point."""
        return [int(i) for i in np.nonzero(self._distances(point) < radius)[0]]

    def path_to(self, index: int) -> List[Point2D]:
        """Positions from the root to node `index`."""
        path = []
        current: Optional[int] = index
        # Parent links never form a cycle; the bound only guards the loop
        for _ in range(len(self.parents)):
            if current is None:
                break
            path.append(self.position(current))
            current = self.parents[current]
        path.reverse()
        return path


class RRTPlanner(BasePlanner):
    """Rapidly-exploring Random Tree."""

    def _sample(self, goal: Point2D, bounds: Bounds) -> Point2D:
        """Sample random point (with goal bias)."""
        if self.rng.random() < self.config.goal_bias:
            return goal
        x = bounds.min_x + self.rng.random() * (bounds.max_x - bounds.min_x)
        y = bounds.min_y + self.rng.random() * (bounds.max_y - bounds.min_y)
        return Point2D(float(x), float(y))

    def _steer(self, origin: Point2D, target: Point2D) -> Point2D:
        """Move from origin toward target by at most step_size."""
        dist = distance(origin, target)
        if dist <= self.config.step_size:
            return target
        ratio = self.config.step_size / dist
        return Point2D(origin.x + ratio * (target.x - origin.x),
                       origin.y + ratio * (target.y - origin.y))

    def _extend(self, tree: TreeArena, nearest: int, new_point: Point2D,
                pmap: PlanningMap) -> int:
        """Insert new_point under its parent and return its index."""
        cost = tree.costs[nearest] + distance(tree.position(nearest), new_point)
        return tree.add(new_point, nearest, cost)

    def search(self, start: Point2D, goal: Point2D,
               pmap: PlanningMap) -> Optional[List[Point2D]]:
        bounds = pmap.sampling_bounds(Bounds.of(self.config.default_bounds))
        tree = TreeArena(start)

        iterations = 0
        while iterations < self.config.max_iterations:
            iterations += 1

            sample = self._sample(goal, bounds)
            nearest = tree.nearest(sample)
            nearest_pos = tree.position(nearest)
            new_point = self._steer(nearest_pos, sample)

            # Check if path is collision-free
            if not self.is_collision_free(nearest_pos, new_point, pmap):
                continue

            new_index = self._extend(tree, nearest, new_point, pmap)

            # Check if goal reached
            if distance(new_point, goal) < self.config.goal_threshold:
                self.last_iterations = iterations
                logger.debug("[Planner] %s reached goal: %d nodes, %d iterations",
                             type(self).__name__, len(tree), iterations)
                return self._finish_at_goal(tree.path_to(new_index), goal, pmap)

        self.last_iterations = iterations
        logger.info("[Planner] %s failed after %d iterations (%d nodes)",
                    type(self).__name__, iterations, len(tree))
        return None


class RRTStarPlanner(RRTPlanner):
    """
    RRT* (optimal RRT).

    Each new node picks the cheapest collision-free parent among its
    neighbours, then neighbours are rewired through it when that is
    cheaper. Costs of the rewired nodes' descendants are not
    propagated.
    """

    @property
    def rewire_radius(self) -> float:
        return 2.0 * self.config.step_size

    def _extend(self, tree: TreeArena, nearest: int, new_point: Point2D,
                pmap: PlanningMap) -> int:
        near_nodes = tree.near(new_point, self.rewire_radius)

        # Choose best parent (lowest cost)
        best_parent = nearest
        best_cost = tree.costs[nearest] + distance(tree.position(nearest), new_point)

        for i in near_nodes:
            near_pos = tree.position(i)
            cost = tree.costs[i] + distance(near_pos, new_point)
            if cost < best_cost and self.is_collision_free(near_pos, new_point, pmap):
                best_parent = i
                best_cost = cost

        new_index = tree.add(new_point, best_parent, best_cost)

        # Rewire tree (update parents if new node provides shorter path)
        for i in near_nodes:
            near_pos = tree.position(i)
            new_cost = best_cost + distance(new_point, near_pos)
            if new_cost < tree.costs[i] and self.is_collision_free(new_point, near_pos, pmap):
                tree.parents[i] = new_index
                tree.costs[i] = new_cost

        return new_index
