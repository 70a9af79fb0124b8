"""Generate a synthetic IMU + reference pose dataset for the integration engine.

Creates a closed-form trajectory and the matching sensor streams:
    - IMU samples at a fixed rate: specific force and body angular velocity
    - Reference pose stream (attitude, position, velocity), optionally at a
      lower rate and with a time offset so it must be interpolated
    - Configurable constant biases and white noise
    - Engine configuration with the bias values the engine should remove

Saves to: data/sim/imu_integration_<trajectory>/
    imu.npz          : t, gyro, accel
    ground_truth.npz : t, q (qw, qx, qy, qz), p, v
    config.json      : dataset description + engine parameters
"""

import argparse
import json
from pathlib import Path

import numpy as np

from imu_integration.config import EngineConfig
from imu_integration.io.datasets import save_inertial_samples, save_pose_samples
from imu_integration.sim import (
    TRAJECTORIES,
    build_inertial_samples,
    build_pose_samples,
    corrupt_imu,
    generate_imu_from_trajectory,
)


# ============================================================================
# PRESET CONFIGURATIONS
# ============================================================================

PRESETS = {
    'ideal': {
        'description': 'Noise-free, bias-free IMU (isolates integration error)',
        'gyro_noise_std': 0.0,
        'accel_noise_std': 0.0,
        'gyro_bias': [0.0, 0.0, 0.0],
        'accel_bias': [0.0, 0.0, 0.0],
    },
    'biased': {
        'description': 'Constant biases only, known to the engine (cancelled)',
        'gyro_noise_std': 0.0,
        'accel_noise_std': 0.0,
        'gyro_bias': [0.001, -0.002, 0.003],
        'accel_bias': [0.05, -0.03, 0.02],
    },
    'consumer': {
        'description': 'Consumer-grade IMU (white noise, small biases)',
        'gyro_noise_std': 0.005,
        'accel_noise_std': 0.05,
        'gyro_bias': [0.001, -0.002, 0.003],
        'accel_bias': [0.05, -0.03, 0.02],
    },
}


# ============================================================================
# DATASET GENERATION
# ============================================================================

def generate_imu_integration_dataset(
    output_dir: str = "data/sim/imu_integration_figure_eight",
    seed: int = 42,
    trajectory: str = "figure_eight",
    duration: float = 20.0,
    rate_hz: float = 100.0,
    aux_stride: int = 1,
    aux_time_offset: float = 0.0,
    gyro_noise_std: float = 0.0,
    accel_noise_std: float = 0.0,
    gyro_bias=(0.0, 0.0, 0.0),
    accel_bias=(0.0, 0.0, 0.0),
) -> Path:
    """Generate and save a dataset.

    Args:
        output_dir: Output directory path.
        seed: Random seed for the noise.
        trajectory: One of TRAJECTORIES.
        duration: Duration in seconds.
        rate_hz: IMU rate in Hz.
        aux_stride: Reference stream keeps every n-th sample.
        aux_time_offset: Shift of the reference timestamps (seconds).
        gyro_noise_std: Gyro white noise std (rad/s).
        accel_noise_std: Accelerometer white noise std (m/s²).
        gyro_bias: Constant gyro bias (rad/s), 3 values.
        accel_bias: Constant accelerometer bias (m/s²), 3 values.

    Returns:
        The output directory.
    """
    if trajectory not in TRAJECTORIES:
        raise ValueError(
            f"Unknown trajectory {trajectory!r}; expected one of {sorted(TRAJECTORIES)}"
        )

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    print(f"\n{'='*70}")
    print(f"Generating IMU Integration Dataset")
    print(f"{'='*70}")

    # 1. Trajectory
    print(f"\n1. Generating '{trajectory}' trajectory...")
    print(f"   Duration: {duration} s")
    print(f"   IMU rate: {rate_hz:.0f} Hz")
    traj = TRAJECTORIES[trajectory](duration=duration, rate_hz=rate_hz)
    print(f"   Generated {len(traj)} samples")

    # 2. IMU measurements
    print(f"\n2. Generating IMU measurements...")
    print(f"   Gyro noise: {gyro_noise_std} rad/s, bias: {list(gyro_bias)}")
    print(f"   Accel noise: {accel_noise_std} m/s², bias: {list(accel_bias)}")
    accel, gyro = generate_imu_from_trajectory(traj)
    gyro, accel = corrupt_imu(
        gyro,
        accel,
        gyro_bias=gyro_bias,
        accel_bias=accel_bias,
        gyro_noise_std=gyro_noise_std,
        accel_noise_std=accel_noise_std,
        seed=seed,
    )
    imu_samples = build_inertial_samples(traj.t, gyro, accel)
    save_inertial_samples(output_path / "imu.npz", imu_samples)
    print(f"   Saved: imu.npz")

    # 3. Reference poses
    print(f"\n3. Generating reference poses...")
    print(f"   Stride: {aux_stride}, time offset: {aux_time_offset} s")
    aux_samples = build_pose_samples(
        traj.t,
        traj.quaternion,
        traj.position,
        traj.velocity,
        stride=aux_stride,
        time_offset=aux_time_offset,
    )
    save_pose_samples(output_path / "ground_truth.npz", aux_samples)
    print(f"   Generated {len(aux_samples)} reference poses")
    print(f"   Saved: ground_truth.npz")

    # 4. Configuration
    print(f"\n4. Saving configuration...")
    engine_config = EngineConfig(
        angular_velocity_bias=np.asarray(gyro_bias, dtype=np.float64),
        specific_force_bias=np.asarray(accel_bias, dtype=np.float64),
    )
    config = {
        "dataset": "imu_integration",
        "trajectory": trajectory,
        "seed": seed,
        "duration_s": duration,
        "imu_rate_hz": rate_hz,
        "num_imu_samples": len(imu_samples),
        "num_reference_samples": len(aux_samples),
        "reference": {"stride": aux_stride, "time_offset_s": aux_time_offset},
        "noise": {"gyro_std": gyro_noise_std, "accel_std": accel_noise_std},
        "engine": engine_config.to_dict(),
    }
    with open(output_path / "config.json", "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)
    print(f"   Saved: config.json")

    print(f"\n{'='*70}")
    print(f"Dataset generation complete!")
    print(f"{'='*70}")
    print(f"Output directory: {output_path.absolute()}")
    print(f"\nFiles created:")
    print(f"  - imu.npz          : IMU measurements (t, gyro, accel)")
    print(f"  - ground_truth.npz : Reference poses (t, q, p, v)")
    print(f"  - config.json      : Dataset + engine configuration")
    print(f"\n")

    return output_path


# ============================================================================
# COMMAND-LINE INTERFACE
# ============================================================================

def main():
    """Main entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(
        description="Generate a synthetic dataset for the IMU integration engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Ideal figure-8 dataset
  python %(prog)s

  # Spinning body, biased sensor
  python %(prog)s --trajectory constant_rotation --preset biased

  # Reference stream at 1/10 of the IMU rate, shifted by 3 ms
  python %(prog)s --aux-stride 10 --aux-time-offset 0.003

Available presets: """ + ", ".join(PRESETS.keys())
    )

    parser.add_argument(
        '--preset',
        type=str,
        choices=PRESETS.keys(),
        help='Use preset sensor configuration (overrides individual parameters)'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output directory (default: data/sim/imu_integration_<trajectory>)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=42,
        help='Random seed for reproducibility (default: 42)'
    )

    traj_group = parser.add_argument_group('Trajectory Parameters')
    traj_group.add_argument(
        '--trajectory',
        type=str,
        choices=sorted(TRAJECTORIES),
        default='figure_eight',
        help='Trajectory shape (default: figure_eight)'
    )
    traj_group.add_argument(
        '--duration',
        type=float,
        default=20.0,
        help='Duration in seconds (default: 20.0)'
    )
    traj_group.add_argument(
        '--rate',
        type=float,
        default=100.0,
        dest='rate_hz',
        help='IMU rate in Hz (default: 100)'
    )
    traj_group.add_argument(
        '--aux-stride',
        type=int,
        default=1,
        help='Keep every n-th reference pose (default: 1)'
    )
    traj_group.add_argument(
        '--aux-time-offset',
        type=float,
        default=0.0,
        help='Reference timestamp offset in seconds (default: 0.0)'
    )

    imu_group = parser.add_argument_group('IMU Parameters')
    imu_group.add_argument(
        '--gyro-noise',
        type=float,
        default=0.0,
        dest='gyro_noise_std',
        help='Gyroscope noise std in rad/s (default: 0.0)'
    )
    imu_group.add_argument(
        '--accel-noise',
        type=float,
        default=0.0,
        dest='accel_noise_std',
        help='Accelerometer noise std in m/s² (default: 0.0)'
    )
    imu_group.add_argument(
        '--gyro-bias',
        type=float,
        nargs=3,
        default=[0.0, 0.0, 0.0],
        help='Gyroscope bias x y z in rad/s (default: 0 0 0)'
    )
    imu_group.add_argument(
        '--accel-bias',
        type=float,
        nargs=3,
        default=[0.0, 0.0, 0.0],
        help='Accelerometer bias x y z in m/s² (default: 0 0 0)'
    )

    args = parser.parse_args()

    if args.preset:
        preset_config = PRESETS[args.preset]
        print(f"\nUsing preset: '{args.preset}'")
        print(f"Description: {preset_config['description']}\n")

        for key, value in preset_config.items():
            if key != 'description' and hasattr(args, key):
                setattr(args, key, value)

    if args.duration <= 0:
        parser.error("Duration must be positive")
    if args.rate_hz <= 0:
        parser.error("Rate must be positive")
    if args.aux_stride < 1:
        parser.error("Reference stride must be >= 1")
    if args.gyro_noise_std < 0 or args.accel_noise_std < 0:
        parser.error("Noise parameters must be non-negative")

    output = args.output or f"data/sim/imu_integration_{args.trajectory}"

    generate_imu_integration_dataset(
        output_dir=output,
        seed=args.seed,
        trajectory=args.trajectory,
        duration=args.duration,
        rate_hz=args.rate_hz,
        aux_stride=args.aux_stride,
        aux_time_offset=args.aux_time_offset,
        gyro_noise_std=args.gyro_noise_std,
        accel_noise_std=args.accel_noise_std,
        gyro_bias=args.gyro_bias,
        accel_bias=args.accel_bias,
    )


if __name__ == "__main__":
    main()
