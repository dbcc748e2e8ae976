"""
Navigation module for path planning and obstacle avoidance.

Components:
- PathPlanner: global planning (A*, Dijkstra, RRT, RRT*) + path smoothing
- PlanningMap: bounds, obstacle cells and terrain costs for the planners
- ObstacleAvoidance: local velocity selection (DWA, VFH, Velocity Obstacles)
  behind a hard emergency stop
"""

from .planning_map import PlanningMap, Bounds, is_collision_free, path_length
from .global_planner import (
    PlannerConfig, PlanningAlgorithm, BasePlanner, AStarPlanner, DijkstraPlanner
)
from .rrt_planner import RRTPlanner, RRTStarPlanner, TreeArena
from .path_planner import PathPlanner, create_planner, smooth_path
from .local_planner import (
    ObstacleAvoidance,
    AvoidanceConfig,
    AvoidanceMethod,
    AvoidanceStrategy,
    DWAStrategy,
    VFHStrategy,
    VelocityObstacleStrategy,
    DynamicWindow,
    Trajectory,
    create_strategy
)
