#!/usr/bin/env python3
"""
Navigation Demo

Drives a simulated differential-drive robot through a field of circular
obstacles with the full pipeline:
- Grid SLAM from simulated LiDAR + odometry
- Global planning (A*, Dijkstra, RRT, RRT*)
- Local obstacle avoidance (DWA, VFH, Velocity Obstacles)

Usage:
    python scripts/demo_navigation.py
    python scripts/demo_navigation.py --algorithm rrt_star --method vfh
    python scripts/demo_navigation.py --config config/navigation.yaml --viz
"""

import math
import logging
import argparse
from typing import List

from aros_spatial import (
    NavigationPipeline, NavigationConfig, NavigationStatus, Obstacle, LidarReading,
    Odometry, load_config
)


logger = logging.getLogger("demo_navigation")


OBSTACLES = [
    Obstacle(2.5, 0.3, radius=0.4),
    Obstacle(4.0, 2.2, radius=0.5),
    Obstacle(1.5, 2.5, radius=0.3),
    Obstacle(5.5, 0.8, radius=0.3),
]

GOAL = (6.5, 3.0)


class SimRobot:
    """Simple simulated robot for demo."""

    def __init__(self, x=0.0, y=0.0, theta=0.0):
        self.x = x
        self.y = y
        self.theta = theta
        self.trail = [(x, y)]

    def update(self, linear: float, angular: float, dt: float) -> Odometry:
        """Integrate one step and return the matching robot-frame odometry."""
        self.x += linear * math.cos(self.theta) * dt
        self.y += linear * math.sin(self.theta) * dt
        self.theta += angular * dt
        self.trail.append((self.x, self.y))
        return Odometry(dx=linear * dt, dy=0.0, dtheta=angular * dt)

    def scan(self, obstacles: List[Obstacle], max_range: float,
             step_deg: int = 5) -> List[LidarReading]:
        """Ray-cast against circular obstacles (robot-relative angles)."""
        readings = []
        for deg in range(-180, 180, step_deg):
            angle = math.radians(deg)
            ux = math.cos(self.theta + angle)
            uy = math.sin(self.theta + angle)

            best = None
            for o in obstacles:
                # |p + t*u - c|^2 = r^2
                fx, fy = self.x - o.x, self.y - o.y
                b = fx * ux + fy * uy
                c = fx * fx + fy * fy - o.radius ** 2
                disc = b * b - c
                if disc < 0:
                    continue
                t = -b - math.sqrt(disc)
                if 0 < t <= max_range and (best is None or t < best):
                    best = t

            if best is not None:
                readings.append(LidarReading(best, angle))
        return readings


def run_demo(config: NavigationConfig, steps: int, viz: bool):
    pipeline = NavigationPipeline(config)
    robot = SimRobot()
    dt = config.avoidance.dt

    print("=" * 60)
    print("NAVIGATION DEMO")
    print(f"  planner:   {pipeline.planner.algorithm.value}")
    print(f"  avoidance: {pipeline.avoidance.method.value}")
    print("=" * 60)

    odometry = None
    step = None
    poses = []

    for i in range(steps):
        scan = robot.scan(OBSTACLES, config.slam.max_range)
        step = pipeline.tick(odometry=odometry, lidar_scan=scan,
                             obstacles=OBSTACLES, goal=GOAL)
        poses.append(step.pose)

        if step.status == NavigationStatus.REACHED:
            print(f"\nGoal reached at step {i}!")
            break
        if step.status == NavigationStatus.NO_PATH:
            logger.warning("[NAV] No path at step %d", i)

        odometry = robot.update(step.velocity.linear, step.velocity.angular, dt)

        if i % 20 == 0:
            dist = math.hypot(GOAL[0] - robot.x, GOAL[1] - robot.y)
            print(f"  Step {i:4d}: pos=({robot.x:5.2f}, {robot.y:5.2f}) "
                  f"slam=({step.pose.x:5.2f}, {step.pose.y:5.2f}) "
                  f"v={step.velocity.linear:.2f} w={step.velocity.angular:+.2f} "
                  f"conf={step.confidence:.2f} [{step.status.value}] "
                  f"dist_to_goal={dist:.2f}m")

    final_dist = math.hypot(GOAL[0] - robot.x, GOAL[1] - robot.y)
    print(f"\nFinal distance to goal: {final_dist:.3f}m")

    if viz:
        show_result(pipeline, robot, poses, step)


def show_result(pipeline: NavigationPipeline, robot: SimRobot, poses, step):
    """Plot map, obstacles, planned path and trails."""
    import matplotlib.pyplot as plt
    import matplotlib.patches as patches

    grid = pipeline.slam.grid
    half_w, half_h = grid.size_meters[0] / 2, grid.size_meters[1] / 2

    fig, ax = plt.subplots(figsize=(9, 9))
    fig.suptitle('AROS Navigation Demo', fontsize=14)

    ax.imshow(pipeline.slam.get_map(), cmap='gray_r', origin='lower',
              extent=[-half_w, half_w, -half_h, half_h], vmin=0.0, vmax=1.0)

    for o in OBSTACLES:
        ax.add_patch(patches.Circle((o.x, o.y), o.radius, color='r', alpha=0.4))

    if step is not None and step.path:
        ax.plot([p.x for p in step.path], [p.y for p in step.path],
                'g-', linewidth=2, label='Path')

    ax.plot([p[0] for p in robot.trail], [p[1] for p in robot.trail],
            'b-', linewidth=1, label='True trail')
    ax.plot([p.x for p in poses], [p.y for p in poses],
            'c--', linewidth=1, label='SLAM estimate')
    ax.plot([GOAL[0]], [GOAL[1]], 'r*', markersize=20, label='Goal')

    ax.set_xlim(-1, GOAL[0] + 2)
    ax.set_ylim(-2, GOAL[1] + 2)
    ax.set_xlabel('X (meters)')
    ax.set_ylabel('Y (meters)')
    ax.legend(loc='upper left')
    ax.grid(True, alpha=0.2)

    plt.tight_layout()
    plt.show()


def main():
    parser = argparse.ArgumentParser(description='Navigation Demo')
    parser.add_argument('--config', help='YAML configuration file')
    parser.add_argument('--algorithm', choices=['astar', 'dijkstra', 'rrt', 'rrt_star'])
    parser.add_argument('--method', choices=['dwa', 'vfh', 'velocity_obstacles'])
    parser.add_argument('--steps', type=int, default=400)
    parser.add_argument('--seed', type=int, default=42)
    parser.add_argument('--viz', action='store_true', help='Plot result (matplotlib)')
    parser.add_argument('-v', '--verbose', action='store_true')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    config = load_config(args.config) if args.config else NavigationConfig()
    if args.config is None:
        config.slam.seed = args.seed
        config.planner.seed = args.seed
    if args.algorithm:
        config.planner.algorithm = args.algorithm
    if args.method:
        config.avoidance.method = args.method

    run_demo(config, args.steps, args.viz)


if __name__ == '__main__':
    main()
