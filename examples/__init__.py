"""
Runnable demonstrations of the inertial odometry engine.

Provides examples demonstrating:
    - Reference-seeded integration of a figure-8 with known sensor biases
    - Mid-value vs Euler drift as a function of IMU rate

Run from the repository root, e.g.:
    python -m examples.example_imu_integration
"""
