"""
IMU measurement compensation (bias and gravity removal).

This module provides the two corrections applied to raw IMU samples before
strapdown integration:
    - Gyroscope bias removal: ω = ω̃ - b_g
    - Accelerometer bias removal, rotation into the navigation frame and
      gravity compensation: a_N = R (f̃ - b_a) - g_N

Both functions are pure: they read the fixed CalibrationConstants of the
session and never modify their inputs.

Frame Conventions:
    - B: Body frame (sensor frame); raw measurements and biases live here
    - N: Navigation frame; gravity and the compensated force live here
    - R maps body vectors into the navigation frame: v_N = R @ v_B

Sign convention for gravity:
    g_N is subtracted from the rotated reading, so g_N is exactly what a
    stationary accelerometer reports once rotated into N. With the default
    g_N = [0, 0, -9.81] a level body at rest reads f̃ = [0, 0, -9.81], and
    R f̃ - g_N = 0: a stationary reading compensates to zero net force.
"""

import numpy as np

from imu_integration.sensors.types import CalibrationConstants


def unbiased_angular_velocity(
    angular_velocity: np.ndarray,
    calibration: CalibrationConstants,
) -> np.ndarray:
    """
    Remove the constant gyro bias from an angular velocity reading.

        ω = ω̃ - b_g

    Args:
        angular_velocity: Raw gyro measurement in body frame B.
                          Shape: (3,). Units: rad/s.
        calibration: Session calibration; ``angular_velocity_bias`` is used.

    Returns:
        Bias-corrected angular velocity in body frame B.
        Shape: (3,). Units: rad/s.

    Example:
        >>> calib = CalibrationConstants(angular_velocity_bias=np.array([0.01, 0.0, 0.0]))
        >>> unbiased_angular_velocity(np.array([0.01, 0.0, 0.0]), calib)
        array([0., 0., 0.])
    """
    return np.asarray(angular_velocity, dtype=np.float64) - calibration.angular_velocity_bias


def unbiased_specific_force(
    specific_force: np.ndarray,
    rotation: np.ndarray,
    calibration: CalibrationConstants,
) -> np.ndarray:
    """
    Compensate an accelerometer reading into navigation-frame acceleration.

        a_N = R (f̃ - b_a) - g_N

    where:
        f̃ (specific_force): raw accelerometer reading in body frame [m/s²]
        b_a: accelerometer bias in body frame [m/s²]
        R (rotation): body-to-navigation rotation applicable to the sample
        g_N: gravity vector in navigation frame [m/s²]

    Args:
        specific_force: Raw accelerometer measurement in body frame B.
                        Shape: (3,). Units: m/s².
        rotation: Body-to-navigation rotation matrix for this sample.
                  Shape: (3, 3).
        calibration: Session calibration; ``specific_force_bias`` and
                     ``gravity`` are used.

    Returns:
        Net acceleration in navigation frame N. Shape: (3,). Units: m/s².

    Notes:
        - When the raw reading equals the configured bias, the body-frame
          term is exactly zero and the result is -g_N.
        - The mid-value integrator calls this twice per cycle, once with the
          previous rotation and once with the freshly updated one.

    Example:
        >>> calib = CalibrationConstants()  # g_N = [0, 0, -9.81]
        >>> unbiased_specific_force(np.array([0.0, 0.0, -9.81]), np.eye(3), calib)
        array([0., 0., 0.])
    """
    f_body = np.asarray(specific_force, dtype=np.float64) - calibration.specific_force_bias

    return np.asarray(rotation, dtype=np.float64) @ f_body - calibration.gravity
