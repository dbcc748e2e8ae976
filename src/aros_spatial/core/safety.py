"""
Safety Module

Hard emergency-stop check evaluated before any avoidance strategy.

Features:
- Emergency stop when an obstacle is inside the emergency radius
- Alert history for the last check
- Nearest obstacle distance reporting
"""

import math
import time
import logging
from typing import Optional, List, Sequence
from dataclasses import dataclass
from enum import IntEnum

from .types import Pose, Obstacle


logger = logging.getLogger(__name__)


class SafetyLevel(IntEnum):
    """Safety alert levels."""
    OK = 0
    WARNING = 1
    EMERGENCY = 2


@dataclass
class SafetyAlert:
    """A safety alert."""
    level: SafetyLevel
    source: str
    message: str
    timestamp: float
    value: float = 0.0


class EmergencyStop:
    """
    Emergency-stop monitor.

    Must be evaluated first on every control tick; a triggered stop
    overrides whatever the avoidance strategy would have returned.

    Usage:
        estop = EmergencyStop(emergency_distance=0.5)

        if estop.check(robot_pose, obstacles):
            return Velocity.stop()
    """

    def __init__(self, emergency_distance: float = 0.5,
                 warning_distance: Optional[float] = None):
        self.emergency_distance = emergency_distance
        self.warning_distance = (warning_distance if warning_distance is not None
                                 else 2.0 * emergency_distance)

        self._alerts: List[SafetyAlert] = []
        self._triggered = False
        self._nearest = float('inf')

    def check(self, robot_pose: Optional[Pose],
              obstacles: Sequence[Obstacle]) -> bool:
        """
        Check whether an emergency stop is required.

        Args:
            robot_pose: Current pose, or None when unknown
            obstacles: Obstacles in the world frame

        Returns:
            True if any obstacle centre is closer than emergency_distance
        """
        self._alerts.clear()
        self._triggered = False
        self._nearest = float('inf')

        # Without a pose there is nothing to measure against
        if robot_pose is None or not obstacles:
            return False

        for obstacle in obstacles:
            dist = math.sqrt((robot_pose.x - obstacle.x)**2 +
                             (robot_pose.y - obstacle.y)**2)
            self._nearest = min(self._nearest, dist)

        if self._nearest < self.emergency_distance:
            self._trigger_alert(SafetyLevel.EMERGENCY, "obstacle",
                                f"Object at {self._nearest:.2f}m - EMERGENCY STOP",
                                self._nearest)
            self._triggered = True
            logger.warning("[Safety] EMERGENCY STOP: obstacle at %.2fm", self._nearest)
        elif self._nearest < self.warning_distance:
            self._trigger_alert(SafetyLevel.WARNING, "obstacle",
                                f"Object at {self._nearest:.2f}m", self._nearest)

        return self._triggered

    def _trigger_alert(self, level: SafetyLevel, source: str,
                       message: str, value: float = 0.0):
        """Add a safety alert."""
        self._alerts.append(SafetyAlert(
            level=level, source=source, message=message,
            timestamp=time.time(), value=value
        ))

    @property
    def triggered(self) -> bool:
        return self._triggered

    @property
    def nearest_obstacle_distance(self) -> float:
        return self._nearest

    @property
    def alerts(self) -> List[SafetyAlert]:
        return self._alerts.copy()

    @property
    def highest_alert_level(self) -> SafetyLevel:
        if not self._alerts:
            return SafetyLevel.OK
        return max(a.level for a in self._alerts)

    def get_status(self) -> dict:
        """Get safety status."""
        return {
            "emergency": self._triggered,
            "level": self.highest_alert_level.name,
            "nearest_obstacle": self._nearest,
            "alerts": [f"[{a.level.name}] {a.source}: {a.message}" for a in self._alerts]
        }
