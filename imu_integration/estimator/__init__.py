"""Integration engine: initialization, per-cycle update, and lifecycle."""

from imu_integration.estimator.engine import EngineState, InertialOdometryEngine

__all__ = ["EngineState", "InertialOdometryEngine"]
