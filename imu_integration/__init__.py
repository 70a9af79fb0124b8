"""Strapdown inertial odometry.

This package dead-reckons a rigid body's pose and velocity by integrating
IMU samples (angular velocity, specific force) over time:
- coords: Quaternion and rotation-matrix utilities
- sensors: Sample types, bias/gravity compensation, strapdown integration,
  and pose-stream synchronization
- estimator: The integration engine (initialization and per-cycle update)
- io: Trajectory sinks, odometry publication, dataset loading and replay
- sim: Synthetic IMU generation from reference trajectories
- eval: Estimate-vs-reference error metrics
"""

__version__ = "0.1.0"
