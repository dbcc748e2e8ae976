"""
Planning Map

World representation shared by every global planning strategy:
- optional rectangular bounds
- obstacle cells on a regular grid (cell = floor(coord / cell_size))
- optional terrain cost multipliers per cell

Built from plain dicts, obstacle point lists, or a SLAM probability grid.
"""

import math
import numpy as np
from typing import Dict, Iterable, List, Optional, Set, Tuple, Any
from dataclasses import dataclass

from ..core.config import ConfigurationError
from ..core.geometry import distance
from ..core.types import Point2D


Cell = Tuple[int, int]

# Absorbs float drift when a coordinate is an exact multiple of cell_size
CELL_EPSILON = 1e-9

COLLISION_CHECK_STEP = 0.5  # meters between samples along a segment


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned planning area (inclusive)."""
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    def __post_init__(self):
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise ConfigurationError(f"Invalid bounds: {self}")

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    @staticmethod
    def of(value: Any) -> 'Bounds':
        if isinstance(value, Bounds):
            return value
        if isinstance(value, dict):
            return Bounds(float(value['min_x']), float(value['max_x']),
                          float(value['min_y']), float(value['max_y']))
        return Bounds(*(float(v) for v in value))


def _parse_point(key: Any) -> Tuple[float, float]:
    """Accept (x, y), {x, y} or an "x,y" string."""
    if isinstance(key, str):
        x, y = key.split(',')
        return float(x), float(y)
    p = Point2D.of(key)
    return p.x, p.y


class PlanningMap:
    """
    Read-only map for global planning.

    Usage:
        pmap = PlanningMap(bounds=Bounds(0, 20, 0, 20),
                           obstacles=[(5, 5), (5, 6)])
        pmap.is_valid_position(Point2D(5.5, 5.2))   # False

        pmap = PlanningMap.from_probability_grid(slam_result.map, 0.1)
    """

    def __init__(
        self,
        bounds: Optional[Bounds] = None,
        obstacles: Iterable[Any] = (),
        cost_map: Optional[Dict[Any, float]] = None,
        cell_size: float = 1.0
    ):
        if not cell_size > 0:
            raise ConfigurationError(f"cell_size must be > 0, got {cell_size}")

        self.bounds = Bounds.of(bounds) if bounds is not None else None
        self.cell_size = float(cell_size)

        self._obstacles: Set[Cell] = set()
        for point in obstacles:
            self.add_obstacle(*_parse_point(point))

        self._cost_map: Dict[Cell, float] = {}
        for key, multiplier in (cost_map or {}).items():
            if not multiplier > 0:
                raise ConfigurationError(f"Cost multiplier must be > 0, got {multiplier}")
            x, y = _parse_point(key)
            self._cost_map[self.cell_of(x, y)] = float(multiplier)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'PlanningMap':
        """Build from {bounds?, obstacles?, cost_map?, cell_size?}."""
        data = data or {}
        return cls(
            bounds=data.get('bounds'),
            obstacles=data.get('obstacles') or (),
            cost_map=data.get('cost_map'),
            cell_size=data.get('cell_size', 1.0),
        )

    @classmethod
    def of(cls, value: Any) -> 'PlanningMap':
        if isinstance(value, PlanningMap):
            return value
        return cls.from_dict(value)

    @classmethod
    def from_probability_grid(
        cls,
        prob: np.ndarray,
        resolution: float,
        occupied_threshold: float = 0.65
    ) -> 'PlanningMap':
        """
        Build from a SLAM probability grid (origin at the grid centre).

        Args:
            prob: (height, width) occupancy probabilities
            resolution: Meters per cell
            occupied_threshold: Cells above this are obstacles
        """
        height, width = prob.shape
        half_w, half_h = width // 2, height // 2

        bounds = Bounds(
            min_x=-half_w * resolution,
            max_x=(width - half_w) * resolution - CELL_EPSILON,
            min_y=-half_h * resolution,
            max_y=(height - half_h) * resolution - CELL_EPSILON,
        )

        pmap = cls(bounds=bounds, cell_size=resolution)
        rows, cols = np.nonzero(prob > occupied_threshold)
        pmap._obstacles = {(int(c) - half_w, int(r) - half_h) for r, c in zip(rows, cols)}
        return pmap

    def cell_of(self, x: float, y: float) -> Cell:
        """Obstacle/cost cell containing a world point."""
        return (math.floor(x / self.cell_size + CELL_EPSILON),
                math.floor(y / self.cell_size + CELL_EPSILON))

    def add_obstacle(self, x: float, y: float):
        self._obstacles.add(self.cell_of(x, y))

    @property
    def obstacle_cells(self) -> Set[Cell]:
        return set(self._obstacles)

    def is_obstacle(self, x: float, y: float) -> bool:
        return self.cell_of(x, y) in self._obstacles

    def is_valid_position(self, point: Point2D) -> bool:
        """Inside bounds (if any) and not on an obstacle cell."""
        if self.bounds is not None and not self.bounds.contains(point.x, point.y):
            return False
        return not self.is_obstacle(point.x, point.y)

    def cost_multiplier(self, point: Point2D) -> float:
        """Terrain multiplier for entering the cell of `point` (default 1.0)."""
        return self._cost_map.get(self.cell_of(point.x, point.y), 1.0)

    def sampling_bounds(self, default: Bounds) -> Bounds:
        return self.bounds if self.bounds is not None else default


def is_collision_free(a: Point2D, b: Point2D, pmap: PlanningMap,
                      step: float = COLLISION_CHECK_STEP) -> bool:
    """
    Line-of-sight check.

    Samples the segment every `step` units (endpoints included) and
    rejects it if any sample is out of bounds or on an obstacle cell.
    The step never exceeds half a cell, so a one-cell wall cannot fall
    between two samples.
    """
    step = min(step, pmap.cell_size / 2)
    steps = max(1, math.ceil(distance(a, b) / step))

    for i in range(steps + 1):
        t = i / steps
        point = Point2D(a.x + t * (b.x - a.x), a.y + t * (b.y - a.y))
        if not pmap.is_valid_position(point):
            return False

    return True


def path_length(path: Optional[List[Point2D]]) -> float:
    """Calculate total length of path in meters."""
    if not path or len(path) < 2:
        return 0.0
    return sum(distance(path[i - 1], path[i]) for i in range(1, len(path)))
