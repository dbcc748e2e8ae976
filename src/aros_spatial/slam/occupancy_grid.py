"""
Occupancy Grid Map

Fixed-size 2D occupancy grid used by the SLAM engine.

Features:
- Probabilistic updates (log-odds)
- Ray tracing (Bresenham)
- Log-odds <-> probability conversion
- Coordinate transformations (world frame centred on the grid)
"""

import math
import numpy as np
from typing import Tuple, Iterable

from ..core.config import ConfigurationError
from ..core.types import Pose, LidarReading


LOG_ODDS_MIN = -10.0
LOG_ODDS_MAX = 10.0
EPSILON = 1e-10


def log_odds_to_probability(log_odds):
    """Occupancy probability from log-odds (scalar or array)."""
    return 1.0 - 1.0 / (1.0 + np.exp(log_odds))


def probability_to_log_odds(prob):
    """Log-odds from occupancy probability (scalar or array)."""
    return np.log(prob / (1.0 - prob + EPSILON) + EPSILON)


class OccupancyGrid:
    """
    2D Occupancy Grid Map.

    Uses log-odds representation for efficient probabilistic updates,
    stored as a flat array indexed by row * width + col.

    Values (as probability):
    - 0.0 = definitely free
    - 0.5 = unknown
    - 1.0 = definitely occupied

    The world origin sits at the centre of the grid:
        col = floor(x / resolution) + width // 2
        row = floor(y / resolution) + height // 2

    Usage:
        grid = OccupancyGrid(width=200, height=200, resolution=0.1)

        # Update with one ray
        grid.update_ray((0.0, 0.0), (2.0, 1.0))

        # Query
        prob = grid.to_probability_grid()
    """

    def __init__(
        self,
        width: int = 200,
        height: int = 200,
        resolution: float = 0.1,
        log_odds_occupied: float = 0.9,
        log_odds_free: float = -0.7
    ):
        """
        Initialize occupancy grid.

        Args:
            width: Map width in cells
            height: Map height in cells
            resolution: Meters per cell
            log_odds_occupied: Evidence added to a ray endpoint
            log_odds_free: Evidence added to cells a ray passes through
        """
        if int(width) != width or width <= 0:
            raise ConfigurationError(f"map_width must be a positive integer, got {width}")
        if int(height) != height or height <= 0:
            raise ConfigurationError(f"map_height must be a positive integer, got {height}")
        if not resolution > 0:
            raise ConfigurationError(f"map_resolution must be > 0, got {resolution}")

        self.width = int(width)
        self.height = int(height)
        self.resolution = float(resolution)

        self._l_occ = log_odds_occupied
        self._l_free = log_odds_free

        # Log-odds representation (0 = unknown)
        self._log_odds = np.zeros(self.width * self.height, dtype=np.float64)

    def world_to_grid(self, x: float, y: float) -> Tuple[int, int]:
        """Convert world coordinates to (col, row) grid indices."""
        col = math.floor(x / self.resolution) + self.width // 2
        row = math.floor(y / self.resolution) + self.height // 2
        return col, row

    def grid_to_world(self, col: int, row: int) -> Tuple[float, float]:
        """World coordinates of a cell centre."""
        x = (col - self.width // 2 + 0.5) * self.resolution
        y = (row - self.height // 2 + 0.5) * self.resolution
        return x, y

    def in_bounds(self, col: int, row: int) -> bool:
        """Check if grid indices are in bounds."""
        return 0 <= col < self.width and 0 <= row < self.height

    def _index(self, col: int, row: int) -> int:
        return row * self.width + col

    def log_odds_at(self, col: int, row: int) -> float:
        """Raw log-odds of a cell (0 outside the grid)."""
        if not self.in_bounds(col, row):
            return 0.0
        return float(self._log_odds[self._index(col, row)])

    def get_probability(self, col: int, row: int) -> float:
        """Get occupancy probability at grid coordinates."""
        if not self.in_bounds(col, row):
            return 0.5  # Unknown outside bounds
        return float(log_odds_to_probability(self._log_odds[self._index(col, row)]))

    def probability_at(self, x: float, y: float) -> float:
        """Get occupancy probability at world coordinates."""
        col, row = self.world_to_grid(x, y)
        return self.get_probability(col, row)

    def _add(self, col: int, row: int, delta: float):
        """Accumulate evidence into a cell, clamped. Out of bounds is a no-op."""
        if self.in_bounds(col, row):
            i = self._index(col, row)
            self._log_odds[i] = min(LOG_ODDS_MAX, max(LOG_ODDS_MIN, self._log_odds[i] + delta))

    def update_ray(self, start: Tuple[float, float], end: Tuple[float, float]):
        """
        Update cells along a ray in world coordinates.

        Every traversed cell except the endpoint receives free evidence,
        the endpoint receives occupied evidence.
        """
        x0, y0 = self.world_to_grid(start[0], start[1])
        x1, y1 = self.world_to_grid(end[0], end[1])
        self._trace_ray(x0, y0, x1, y1)

    def _trace_ray(self, x0: int, y0: int, x1: int, y1: int):
        """Trace ray using Bresenham's algorithm."""
        dx = abs(x1 - x0)
        dy = abs(y1 - y0)
        sx = 1 if x0 < x1 else -1
        sy = 1 if y0 < y1 else -1
        err = dx - dy

        x, y = x0, y0

        while (x, y) != (x1, y1):
            self._add(x, y, self._l_free)

            e2 = 2 * err
            if e2 > -dy:
                err -= dy
                x += sx
            if e2 < dx:
                err += dx
                y += sy

        # End point - mark as occupied
        self._add(x1, y1, self._l_occ)

    def update_from_scan(self, pose: Pose, scan: Iterable[LidarReading],
                         max_range: float = 10.0) -> int:
        """
        Ray-trace a whole scan from a single sensor pose.

        Args:
            pose: Sensor pose in the world frame
            scan: Readings relative to the sensor heading
            max_range: Readings beyond this are skipped

        Returns:
            Number of rays integrated
        """
        rays = 0
        for reading in scan:
            if not reading.is_valid(max_range):
                continue

            world_angle = pose.theta + reading.angle
            end_x = pose.x + reading.range * math.cos(world_angle)
            end_y = pose.y + reading.range * math.sin(world_angle)

            self.update_ray((pose.x, pose.y), (end_x, end_y))
            rays += 1

        return rays

    def lookup_probabilities(self, xs: np.ndarray,
                             ys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Vectorized probability lookup at world coordinates.

        Returns:
            (probabilities, inside) arrays shaped like xs; cells outside
            the grid read as 0.5 and are False in `inside`
        """
        cols = np.floor(xs / self.resolution).astype(np.int64) + self.width // 2
        rows = np.floor(ys / self.resolution).astype(np.int64) + self.height // 2
        inside = (cols >= 0) & (cols < self.width) & (rows >= 0) & (rows < self.height)

        probs = np.full(np.shape(xs), 0.5)
        idx = rows[inside] * self.width + cols[inside]
        probs[inside] = log_odds_to_probability(self._log_odds[idx])
        return probs, inside

    def to_probability_grid(self) -> np.ndarray:
        """
        Get map as probability array.

        Returns:
            New (height, width) array with values 0.0 (free) to 1.0 (occupied)
        """
        return log_odds_to_probability(self._log_odds).reshape(self.height, self.width)

    def get_log_odds(self) -> np.ndarray:
        """Copy of the raw log-odds as a (height, width) array."""
        return self._log_odds.reshape(self.height, self.width).copy()

    def clear(self):
        """Forget all evidence."""
        self._log_odds.fill(0.0)

    @property
    def size_meters(self) -> Tuple[float, float]:
        return self.width * self.resolution, self.height * self.resolution
