"""
Tests for the SLAM -> planner -> avoidance pipeline.
"""

import math
import unittest

from aros_spatial import (
    NavigationPipeline, NavigationConfig, NavigationStatus, Point2D, Velocity,
    LidarReading, Odometry, SLAMConfig, PlannerConfig
)


def make_config(**navigation) -> NavigationConfig:
    config = NavigationConfig(**navigation)
    config.slam = SLAMConfig(map_width=100, map_height=100, map_resolution=0.1,
                             num_particles=100, seed=21)
    config.planner = PlannerConfig(seed=21)
    return config


class TestNavigationPipeline(unittest.TestCase):
    """Tests for tick-level behaviour."""

    def setUp(self):
        self.pipeline = NavigationPipeline(make_config())

    def test_idle_without_goal(self):
        step = self.pipeline.tick()
        self.assertEqual(step.status, NavigationStatus.IDLE)
        self.assertEqual(step.velocity, Velocity(0.0, 0.0))
        self.assertIsNone(step.path)
        self.assertIsNone(step.waypoint)

    def test_navigating(self):
        step = self.pipeline.tick(goal=(3.0, 0.0))

        self.assertEqual(step.status, NavigationStatus.NAVIGATING)
        self.assertTrue(step.replanned)
        self.assertIsNotNone(step.path)
        self.assertEqual(step.path[-1], Point2D(3.0, 0.0))
        self.assertEqual(step.waypoint, Point2D(3.0, 0.0))
        self.assertGreater(step.velocity.linear, 0.0)
        self.assertGreaterEqual(step.confidence, 0.0)
        self.assertLessEqual(step.confidence, 1.0)

    def test_reached(self):
        step = self.pipeline.tick(goal=(0.0, 0.0))
        self.assertEqual(step.status, NavigationStatus.REACHED)
        self.assertEqual(step.velocity, Velocity(0.0, 0.0))

    def test_emergency(self):
        step = self.pipeline.tick(goal=(3.0, 0.0), obstacles=[(0.2, 0.0)])
        self.assertEqual(step.status, NavigationStatus.EMERGENCY)
        self.assertEqual(step.velocity, Velocity(0.0, 0.0))

    def test_no_path(self):
        step = self.pipeline.tick(goal=(50.0, 0.0))
        self.assertEqual(step.status, NavigationStatus.NO_PATH)
        self.assertIsNone(step.path)
        self.assertEqual(step.velocity, Velocity(0.0, 0.0))

    def test_replans_periodically(self):
        pipeline = NavigationPipeline(make_config(replan_every=3))
        pipeline.set_goal((3.0, 0.0))
        flags = [pipeline.tick().replanned for _ in range(4)]
        self.assertEqual(flags, [True, False, False, True])

    def test_replans_on_new_goal(self):
        self.assertTrue(self.pipeline.tick(goal=(3.0, 0.0)).replanned)
        self.assertFalse(self.pipeline.tick(goal=(3.0, 0.0)).replanned)
        step = self.pipeline.tick(goal=(0.0, 3.0))
        self.assertTrue(step.replanned)
        self.assertEqual(step.path[-1], Point2D(0.0, 3.0))

    def test_path_is_a_snapshot(self):
        step = self.pipeline.tick(goal=(3.0, 0.0))
        step.path.clear()
        self.assertTrue(len(self.pipeline.path) >= 2)

    def test_clear_goal(self):
        self.pipeline.tick(goal=(3.0, 0.0))
        self.pipeline.clear_goal()
        self.assertEqual(self.pipeline.tick().status, NavigationStatus.IDLE)

    def test_drives_with_sensor_input(self):
        scan = [LidarReading(4.0, math.radians(a)) for a in range(-60, 61, 10)]
        self.pipeline.set_goal((3.0, 0.0))
        odometry = None
        for _ in range(5):
            step = self.pipeline.tick(odometry=odometry, lidar_scan=scan)
            self.assertIn(step.status, (NavigationStatus.NAVIGATING, NavigationStatus.NO_PATH))
            odometry = Odometry(dx=step.velocity.linear * 0.1,
                                dtheta=step.velocity.angular * 0.1)
        self.assertEqual(self.pipeline.slam.update_count, 5)

    def test_uses_last_command_as_current_velocity(self):
        first = self.pipeline.tick(goal=(3.0, 0.0))
        second = self.pipeline.tick()
        # The dynamic window moves up from the previous command
        self.assertGreater(second.velocity.linear, first.velocity.linear)

    def test_reset(self):
        self.pipeline.tick(goal=(3.0, 0.0))
        self.pipeline.reset()
        self.assertIsNone(self.pipeline.goal)
        self.assertEqual(self.pipeline.slam.update_count, 0)


if __name__ == '__main__':
    unittest.main()
