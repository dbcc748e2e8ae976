"""
SLAM Module

Grid-based SLAM for the spatial core:
- SLAMEngine: per-cycle predict / correct / map / resample / estimate
- ParticleFilter: Monte Carlo localization
- OccupancyGrid: 2D log-odds occupancy grid

Usage:
    from aros_spatial.slam import SLAMEngine, SLAMConfig

    slam = SLAMEngine(SLAMConfig(map_width=200, map_height=200))

    # Update with odometry and a LiDAR scan
    result = slam.update(odometry={'dx': 0.1, 'dy': 0.0, 'dtheta': 0.0},
                         lidar_scan=[{'range': 2.0, 'angle': 0.0}])

    # Probability map
    prob = result.map
"""

from .slam_core import (
    SLAMEngine,
    SLAMConfig,
    SLAMResult
)

from .particle_filter import (
    ParticleFilter,
    ParticleFilterConfig,
    Particle
)

from .occupancy_grid import (
    OccupancyGrid,
    log_odds_to_probability,
    probability_to_log_odds
)

__all__ = [
    # Main interfaces
    'SLAMEngine',
    'ParticleFilter',
    'OccupancyGrid',

    # Configuration
    'SLAMConfig',
    'ParticleFilterConfig',

    # Data classes
    'SLAMResult',
    'Particle',

    # Helpers
    'log_odds_to_probability',
    'probability_to_log_odds',
]
