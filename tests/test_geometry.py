"""
Tests for the core value types and geometry helpers:
- distance / angle normalization
- Box-Muller noise source
- value type coercion
"""

import math
import unittest
import numpy as np

from aros_spatial.core import (
    Point2D, Pose, Velocity, Obstacle, LidarReading, Odometry,
    distance, normalize_angle, normalize_angles, angle_difference, GaussianNoise,
    DEFAULT_OBSTACLE_RADIUS
)


class TestDistance(unittest.TestCase):
    """Tests for Euclidean distance."""

    def setUp(self):
        self.points = [Point2D(0, 0), Point2D(3, 4), Point2D(-2.5, 1.0), Point2D(7, -3)]

    def test_zero_on_identical_points(self):
        for p in self.points:
            self.assertEqual(distance(p, p), 0.0)

    def test_symmetric(self):
        for a in self.points:
            for b in self.points:
                self.assertAlmostEqual(distance(a, b), distance(b, a))

    def test_triangle_inequality(self):
        for a in self.points:
            for b in self.points:
                for c in self.points:
                    self.assertLessEqual(distance(a, c), distance(a, b) + distance(b, c) + 1e-12)

    def test_known_value(self):
        self.assertAlmostEqual(distance((0, 0), (3, 4)), 5.0)

    def test_accepts_poses(self):
        self.assertAlmostEqual(distance(Pose(1, 1, 2.0), Point2D(1, 3)), 2.0)


class TestAngles(unittest.TestCase):
    """Tests for angle normalization."""

    def test_normalize_in_range(self):
        for angle in [0.0, 1.0, -1.0, 3.5, -3.5, 7.0, -7.0, 100.5, -250.25]:
            result = normalize_angle(angle)
            self.assertGreaterEqual(result, -math.pi)
            self.assertLessEqual(result, math.pi)
            self.assertAlmostEqual(math.sin(result), math.sin(angle), places=9)
            self.assertAlmostEqual(math.cos(result), math.cos(angle), places=9)

    def test_normalize_wraps(self):
        self.assertAlmostEqual(normalize_angle(-1.5 * math.pi), 0.5 * math.pi)
        self.assertAlmostEqual(normalize_angle(2 * math.pi), 0.0)

    def test_normalize_angles_vectorized(self):
        angles = np.array([0.0, 3.5, -3.5, 10.0, -10.0])
        result = normalize_angles(angles)
        self.assertTrue(np.all(result >= -math.pi))
        self.assertTrue(np.all(result < math.pi))
        np.testing.assert_allclose(np.sin(result), np.sin(angles), atol=1e-9)

    def test_angle_difference_shortest(self):
        self.assertAlmostEqual(angle_difference(math.pi - 0.1, -math.pi + 0.1), 0.2)
        self.assertAlmostEqual(angle_difference(0.5, 0.2), -0.3)


class TestGaussianNoise(unittest.TestCase):
    """Tests for the Box-Muller noise source."""

    def test_seeded_is_reproducible(self):
        a = GaussianNoise(seed=42)
        b = GaussianNoise(seed=42)
        self.assertEqual([a.sample() for _ in range(7)], [b.sample() for _ in range(7)])

    def test_reseed_restarts_sequence(self):
        noise = GaussianNoise(seed=5)
        first = [noise.sample(1.0, 2.0) for _ in range(5)]
        noise.reseed(5)
        self.assertEqual(first, [noise.sample(1.0, 2.0) for _ in range(5)])

    def test_spare_is_used(self):
        """Two scalar samples consume a single uniform pair."""
        noise = GaussianNoise(seed=1)
        noise.sample()
        state_after_first = noise._rng.bit_generator.state
        noise.sample()
        self.assertEqual(state_after_first, noise._rng.bit_generator.state)

    def test_sample_array_statistics(self):
        noise = GaussianNoise(seed=3)
        samples = noise.sample_array(2.0, 0.5, 20000)
        self.assertEqual(samples.shape, (20000,))
        self.assertAlmostEqual(float(np.mean(samples)), 2.0, delta=0.02)
        self.assertAlmostEqual(float(np.std(samples)), 0.5, delta=0.02)

    def test_sample_array_odd_and_empty(self):
        noise = GaussianNoise(seed=3)
        self.assertEqual(len(noise.sample_array(0.0, 1.0, 5)), 5)
        self.assertEqual(len(noise.sample_array(0.0, 1.0, 0)), 0)

    def test_zero_stddev(self):
        noise = GaussianNoise(seed=3)
        np.testing.assert_array_equal(noise.sample_array(1.5, 0.0, 4), np.full(4, 1.5))

    def test_uniform_range(self):
        noise = GaussianNoise(seed=9)
        for _ in range(100):
            u = noise.uniform(0.0, 0.25)
            self.assertGreaterEqual(u, 0.0)
            self.assertLess(u, 0.25)


class TestValueTypes(unittest.TestCase):
    """Tests for value type coercion."""

    def test_point_of(self):
        self.assertEqual(Point2D.of({'x': 1, 'y': 2}), Point2D(1.0, 2.0))
        self.assertEqual(Point2D.of((3, 4)), Point2D(3.0, 4.0))
        self.assertEqual(Point2D.of(Pose(5, 6, 1.0)), Point2D(5.0, 6.0))

    def test_pose_of(self):
        self.assertEqual(Pose.of((1, 2)), Pose(1.0, 2.0, 0.0))
        self.assertEqual(Pose.of({'x': 1, 'y': 2, 'theta': 0.5}), Pose(1.0, 2.0, 0.5))

    def test_pose_bearing(self):
        self.assertAlmostEqual(Pose(0, 0, 0).bearing_to((0, 1)), math.pi / 2)
        self.assertAlmostEqual(Pose(1, 1, 0).distance_to((4, 5)), 5.0)

    def test_velocity(self):
        self.assertTrue(Velocity.stop().is_stop)
        self.assertEqual(Velocity.of((0.5, -0.2)), Velocity(0.5, -0.2))
        self.assertEqual(Velocity.of({'linear': 1, 'angular': 0}).to_tuple(), (1.0, 0.0))

    def test_obstacle_defaults(self):
        o = Obstacle.of({'x': 1, 'y': 2})
        self.assertEqual(o.radius, DEFAULT_OBSTACLE_RADIUS)
        self.assertFalse(o.is_dynamic)

        moving = Obstacle.of({'x': 1, 'y': 2, 'radius': 0.5, 'vx': -1.0, 'vy': 0.0})
        self.assertTrue(moving.is_dynamic)
        self.assertEqual(moving.radius, 0.5)

    def test_lidar_reading_validity(self):
        self.assertTrue(LidarReading(2.0, 0.1).is_valid(10.0))
        self.assertTrue(LidarReading(10.0, 0.1).is_valid(10.0))
        self.assertFalse(LidarReading(0.0, 0.1).is_valid(10.0))
        self.assertFalse(LidarReading(-1.0, 0.1).is_valid(10.0))
        self.assertFalse(LidarReading(10.5, 0.1).is_valid(10.0))
        self.assertFalse(LidarReading(float('nan'), 0.1).is_valid(10.0))
        self.assertFalse(LidarReading(2.0, float('inf')).is_valid(10.0))

    def test_odometry_of(self):
        self.assertEqual(Odometry.of({'dx': 0.1}), Odometry(0.1, 0.0, 0.0))
        self.assertEqual(Odometry.of((0.1, 0.2, 0.3)), Odometry(0.1, 0.2, 0.3))


if __name__ == '__main__':
    unittest.main()
