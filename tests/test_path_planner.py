"""
Tests for the planning map, graph search planners and path smoothing.
"""

import unittest
import numpy as np

from aros_spatial.core import ConfigurationError, Point2D
from aros_spatial.navigation import (
    PathPlanner, PlannerConfig, PlanningAlgorithm, PlanningMap, Bounds,
    AStarPlanner, DijkstraPlanner, is_collision_free, path_length, smooth_path
)


OPEN_20 = {'bounds': {'min_x': 0, 'max_x': 20, 'min_y': 0, 'max_y': 20}}


def sealed_goal_map() -> PlanningMap:
    """Cell (10, 10) is free but fully enclosed by obstacle cells."""
    ring = [(x + 0.5, y + 0.5) for x in (9, 10, 11) for y in (9, 10, 11) if (x, y) != (10, 10)]
    return PlanningMap(bounds=Bounds(0, 20, 0, 20), obstacles=ring)


class TestPlanningMap(unittest.TestCase):
    """Tests for map queries."""

    def test_obstacle_cells_floor(self):
        pmap = PlanningMap(obstacles=[(2.7, 3.2)])
        self.assertEqual(pmap.obstacle_cells, {(2, 3)})
        self.assertTrue(pmap.is_obstacle(2.0, 3.0))
        self.assertTrue(pmap.is_obstacle(2.99, 3.99))
        self.assertFalse(pmap.is_obstacle(3.0, 3.5))
        self.assertFalse(pmap.is_obstacle(1.99, 3.5))

    def test_bounds_inclusive(self):
        pmap = PlanningMap.from_dict(OPEN_20)
        self.assertTrue(pmap.is_valid_position(Point2D(0, 0)))
        self.assertTrue(pmap.is_valid_position(Point2D(20, 20)))
        self.assertFalse(pmap.is_valid_position(Point2D(-0.01, 5)))
        self.assertFalse(pmap.is_valid_position(Point2D(5, 20.01)))

    def test_unbounded(self):
        pmap = PlanningMap()
        self.assertTrue(pmap.is_valid_position(Point2D(-1000, 1e6)))

    def test_obstacle_formats(self):
        pmap = PlanningMap.from_dict({'obstacles': [(1, 1), {'x': 2, 'y': 2}, "3,3"]})
        self.assertEqual(pmap.obstacle_cells, {(1, 1), (2, 2), (3, 3)})

    def test_cost_map(self):
        pmap = PlanningMap.from_dict({'cost_map': {"4,5": 3.0, (1, 1): 2.0}})
        self.assertEqual(pmap.cost_multiplier(Point2D(4.5, 5.5)), 3.0)
        self.assertEqual(pmap.cost_multiplier(Point2D(1.2, 1.9)), 2.0)
        self.assertEqual(pmap.cost_multiplier(Point2D(0, 0)), 1.0)

    def test_invalid_inputs(self):
        with self.assertRaises(ConfigurationError):
            PlanningMap(bounds=Bounds(0, 10, 0, 10), cell_size=0)
        with self.assertRaises(ConfigurationError):
            PlanningMap(cost_map={(1, 1): 0.0})
        with self.assertRaises(ConfigurationError):
            Bounds(5, 1, 0, 1)

    def test_from_probability_grid(self):
        prob = np.full((20, 20), 0.5)
        prob[10, 15] = 0.9     # row 10 -> y cell 0, col 15 -> x cell 5
        pmap = PlanningMap.from_probability_grid(prob, resolution=0.5)

        self.assertEqual(pmap.cell_size, 0.5)
        self.assertTrue(pmap.is_obstacle(2.7, 0.2))
        self.assertFalse(pmap.is_obstacle(2.2, 0.2))
        self.assertTrue(pmap.is_valid_position(Point2D(0.0, 0.0)))
        self.assertTrue(pmap.is_valid_position(Point2D(-5.0, -5.0)))
        self.assertFalse(pmap.is_valid_position(Point2D(5.0, 0.0)))

    def test_probability_grid_not_mutated(self):
        prob = np.full((10, 10), 0.5)
        prob[2, 3] = 0.95
        before = prob.copy()
        PlanningMap.from_probability_grid(prob, resolution=0.1)
        np.testing.assert_array_equal(prob, before)

    def test_collision_check(self):
        pmap = PlanningMap(bounds=Bounds(0, 10, 0, 10), obstacles=[(5.5, 5.5)])
        self.assertTrue(is_collision_free(Point2D(1, 1), Point2D(9, 1), pmap))
        self.assertFalse(is_collision_free(Point2D(1, 5.5), Point2D(9, 5.5), pmap))
        self.assertFalse(is_collision_free(Point2D(1, 1), Point2D(11, 1), pmap))
        self.assertTrue(is_collision_free(Point2D(2, 2), Point2D(2, 2), pmap))

    def test_path_length(self):
        self.assertEqual(path_length(None), 0.0)
        self.assertEqual(path_length([Point2D(0, 0)]), 0.0)
        self.assertAlmostEqual(path_length([Point2D(0, 0), Point2D(3, 4), Point2D(3, 6)]), 7.0)


class TestAStar(unittest.TestCase):
    """Tests for A* and Dijkstra through the PathPlanner front end."""

    def test_straight_line(self):
        planner = PathPlanner(PlannerConfig(algorithm='astar'))
        path = planner.plan((0, 0), (5, 0), OPEN_20)

        self.assertIsNotNone(path)
        self.assertEqual(path[0], Point2D(0, 0))
        self.assertLess(path[-1].x - 5.0, planner.config.goal_threshold)
        self.assertAlmostEqual(planner.path_length(path), 5.0, delta=0.5)

    def test_without_smoothing_steps_on_lattice(self):
        planner = PathPlanner(PlannerConfig(smoothing=False))
        path = planner.plan((0, 0), (5, 0), OPEN_20)
        self.assertEqual(len(path), 6)
        for a, b in zip(path, path[1:]):
            self.assertAlmostEqual(b.x - a.x, 1.0)

    def test_exact_goal_appended(self):
        planner = PathPlanner(PlannerConfig(smoothing=False))
        path = planner.plan((0, 0), (5.2, 0.3), OPEN_20)
        self.assertEqual(path[-1], Point2D(5.2, 0.3))

    def test_dijkstra(self):
        planner = PathPlanner(PlannerConfig(algorithm='dijkstra'))
        self.assertIsInstance(planner.strategy, DijkstraPlanner)
        path = planner.plan((0, 0), (5, 0), OPEN_20)
        self.assertIsNotNone(path)
        self.assertAlmostEqual(planner.path_length(path), 5.0, delta=0.5)

    def test_dijkstra_explores_more(self):
        astar = PathPlanner(PlannerConfig(algorithm='astar'))
        dijkstra = PathPlanner(PlannerConfig(algorithm='dijkstra'))
        astar.plan((2, 2), (15, 12), OPEN_20)
        dijkstra.plan((2, 2), (15, 12), OPEN_20)
        self.assertLess(astar.strategy.last_iterations, dijkstra.strategy.last_iterations)

    def test_sealed_goal_returns_none(self):
        planner = PathPlanner(PlannerConfig(algorithm='astar'))
        self.assertIsNone(planner.plan((0, 0), (10.5, 10.5), sealed_goal_map()))

    def test_blocked_start_or_goal(self):
        planner = PathPlanner()
        pmap = PlanningMap(bounds=Bounds(0, 20, 0, 20), obstacles=[(3, 3)])
        self.assertIsNone(planner.plan((3.5, 3.5), (10, 10), pmap))
        self.assertIsNone(planner.plan((0, 0), (3.2, 3.2), pmap))
        self.assertIsNone(planner.plan((0, 0), (25, 5), pmap))

    def test_routes_around_wall(self):
        wall = [(5, y) for y in range(0, 16)]
        pmap = PlanningMap(bounds=Bounds(0, 20, 0, 20), obstacles=wall)
        planner = PathPlanner(PlannerConfig(smoothing=False))
        path = planner.plan((2, 2), (9, 2), pmap)

        self.assertIsNotNone(path)
        self.assertEqual(path[-1], Point2D(9, 2))
        for p in path:
            self.assertTrue(pmap.is_valid_position(p))
        self.assertGreater(max(p.y for p in path), 15.0)

    def test_cost_map_detour(self):
        cost_map = {(x, 5): 10.0 for x in range(1, 10)}
        pmap = PlanningMap(bounds=Bounds(0, 10, 0, 10), cost_map=cost_map)
        planner = PathPlanner(PlannerConfig(smoothing=False))
        path = planner.plan((0, 5), (10, 5), pmap)

        self.assertIsNotNone(path)
        for p in path[1:-1]:
            self.assertNotEqual(p.y, 5.0)

    def test_iteration_cap(self):
        planner = PathPlanner(PlannerConfig(max_iterations=3))
        self.assertIsNone(planner.plan((0, 0), (15, 15), OPEN_20))
        self.assertEqual(planner.strategy.last_iterations, 3)

    def test_grid_step(self):
        planner = PathPlanner(PlannerConfig(grid_step=0.5, smoothing=False))
        path = planner.plan((0, 0), (2, 0), OPEN_20)
        self.assertEqual(len(path), 5)

    def test_thin_wall_from_probability_grid(self):
        # One cell thick at 0.1 m/cell: x in [1.2, 1.3), y in [-2, 2)
        prob = np.full((100, 100), 0.5)
        prob[30:70, 62] = 0.95
        pmap = PlanningMap.from_probability_grid(prob, resolution=0.1)

        self.assertFalse(is_collision_free(Point2D(0, 0), Point2D(2, 0), pmap))

        path = PathPlanner().plan((0, 0), (2, 0), pmap)
        self.assertIsNotNone(path)
        self.assertEqual(path[-1], Point2D(2, 0))
        self.assertGreater(len(path), 2)
        self.assertGreaterEqual(max(abs(p.y) for p in path), 1.9)
        for a, b in zip(path, path[1:]):
            self.assertTrue(is_collision_free(a, b, pmap))

    def test_no_diagonal_squeeze_between_cells(self):
        # Cells (1, 0) and (0, 1) touch at a corner; the only way out of
        # (0, 0) is the diagonal between them
        pmap = PlanningMap(bounds=Bounds(0, 3, 0, 3), obstacles=[(1.5, 0.5), (0.5, 1.5)])
        planner = AStarPlanner(PlannerConfig())
        self.assertIsNone(planner.search(Point2D(0.5, 0.5), Point2D(1.5, 1.5), pmap))


class TestPlannerConfig(unittest.TestCase):
    """Tests for algorithm selection and validation."""

    def test_unknown_algorithm(self):
        with self.assertRaises(ConfigurationError):
            PathPlanner(PlannerConfig(algorithm='bfs'))
        with self.assertRaises(ConfigurationError):
            PathPlanner().set_algorithm('bogus')

    def test_parse(self):
        self.assertEqual(PlanningAlgorithm.parse('RRT_STAR'), PlanningAlgorithm.RRT_STAR)
        self.assertEqual(PlanningAlgorithm.parse(PlanningAlgorithm.RRT), PlanningAlgorithm.RRT)

    def test_set_algorithm(self):
        planner = PathPlanner()
        self.assertIsInstance(planner.strategy, AStarPlanner)
        planner.set_algorithm('dijkstra')
        self.assertEqual(planner.algorithm, PlanningAlgorithm.DIJKSTRA)
        self.assertEqual(planner.config.algorithm, 'dijkstra')

    def test_invalid_values(self):
        for kwargs in ({'max_iterations': 0}, {'goal_threshold': 0.0}, {'step_size': -1.0},
                       {'goal_bias': 1.5}, {'key_resolution': 0.0}, {'grid_step': 0.0}):
            with self.assertRaises(ConfigurationError):
                PathPlanner(PlannerConfig(**kwargs))

    def test_from_dict(self):
        config = PlannerConfig.from_dict({'algorithm': 'rrt', 'default_bounds': [0, 10, 0, 10]})
        self.assertEqual(config.default_bounds, (0, 10, 0, 10))
        with self.assertRaises(ConfigurationError):
            PlannerConfig.from_dict({'algo': 'rrt'})


class TestSmoothing(unittest.TestCase):
    """Tests for shortcut smoothing."""

    def test_zigzag_collapses(self):
        pmap = PlanningMap.from_dict(OPEN_20)
        path = [Point2D(0, 0), Point2D(1, 1), Point2D(2, 0), Point2D(3, 1), Point2D(4, 0)]
        smoothed = smooth_path(path, pmap)
        self.assertEqual(smoothed, [Point2D(0, 0), Point2D(4, 0)])

    def test_keeps_corner_around_obstacle(self):
        pmap = PlanningMap(bounds=Bounds(0, 10, 0, 10), obstacles=[(2.5, 0.5), (2.5, 1.5)])
        path = [Point2D(0.5, 0.5), Point2D(1.5, 2.5), Point2D(2.5, 2.5),
                Point2D(3.5, 2.5), Point2D(4.5, 0.5)]
        smoothed = smooth_path(path, pmap)

        self.assertLessEqual(len(smoothed), len(path))
        self.assertLessEqual(path_length(smoothed), path_length(path) + 1e-9)
        self.assertEqual(smoothed[0], path[0])
        self.assertEqual(smoothed[-1], path[-1])
        for a, b in zip(smoothed, smoothed[1:]):
            self.assertTrue(is_collision_free(a, b, pmap))

    def test_short_paths_unchanged(self):
        pmap = PlanningMap()
        path = [Point2D(0, 0), Point2D(1, 1)]
        self.assertEqual(smooth_path(path, pmap), path)
        self.assertEqual(smooth_path([], pmap), [])

    def test_smoothing_never_lengthens(self):
        wall = [(5, y) for y in range(0, 16)]
        pmap = PlanningMap(bounds=Bounds(0, 20, 0, 20), obstacles=wall)
        raw = PathPlanner(PlannerConfig(smoothing=False)).plan((2, 2), (9, 2), pmap)
        smoothed = smooth_path(raw, pmap)
        self.assertLessEqual(len(smoothed), len(raw))
        self.assertLessEqual(path_length(smoothed), path_length(raw) + 1e-9)


if __name__ == '__main__':
    unittest.main()
