"""Command-line runner for the inertial odometry engine.

Usage:
    imu-integration run --dataset DIR [--config FILE] [--output DIR]
                        [--scheme {mid_value,euler}] [--formats kitti tum]
                        [--batch-size N] [--max-bracket-gap S]
                        [--reference-lead S] [--plot]

The dataset directory holds ``imu.npz`` and ``ground_truth.npz`` (see
io.datasets). Engine parameters come from ``--config``, else from the
``engine`` section of the dataset's ``config.json``, else defaults.
"""

import argparse
import dataclasses
import json
import sys
from pathlib import Path
from typing import List, Optional

import matplotlib.pyplot as plt
import numpy as np

from imu_integration.config import TRAJECTORY_FORMATS, EngineConfig, load_config, save_config
from imu_integration.estimator.engine import InertialOdometryEngine
from imu_integration.eval.metrics import associate_by_time, evaluate_trajectory
from imu_integration.eval.plots import plot_position_error_time, plot_trajectory_2d, save_figure
from imu_integration.io.datasets import load_inertial_samples, load_pose_samples, replay_streams
from imu_integration.io.trajectory import MemoryTrajectorySink, build_trajectory_writers
from imu_integration.sensors.types import IntegrationScheme


def _resolve_config(args: argparse.Namespace, dataset_dir: Path) -> EngineConfig:
    if args.config is not None:
        config = load_config(args.config)
    else:
        dataset_config = dataset_dir / "config.json"
        config = EngineConfig()
        if dataset_config.exists():
            with open(dataset_config, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict) and isinstance(data.get("engine"), dict):
                config = EngineConfig.from_dict(data["engine"])

    overrides = {}
    if args.scheme is not None:
        overrides["integration_scheme"] = args.scheme
    if args.output is not None:
        overrides["trajectory_dir"] = Path(args.output)
    if args.formats is not None:
        overrides["trajectory_formats"] = tuple(args.formats)
    if args.max_bracket_gap is not None:
        overrides["max_bracket_gap"] = args.max_bracket_gap

    return dataclasses.replace(config, **overrides) if overrides else config


def _print_stats(name: str, stats: dict, unit: str, scale: float = 1.0) -> None:
    print(f"   {name}:")
    for key in ("mean", "rmse", "p90", "max", "final"):
        print(f"     {key:<6}: {stats[key] * scale:.6f} {unit}")


def run(args: argparse.Namespace) -> int:
    dataset_dir = Path(args.dataset)
    config = _resolve_config(args, dataset_dir)

    print(f"\n{'='*70}")
    print(f"IMU Integration")
    print(f"{'='*70}")

    print(f"\n1. Loading dataset...")
    imu_samples = load_inertial_samples(dataset_dir / "imu.npz")
    aux_samples = load_pose_samples(dataset_dir / "ground_truth.npz")
    print(f"   IMU samples      : {len(imu_samples)}")
    print(f"   Reference poses  : {len(aux_samples)}")
    print(f"   Scheme           : {config.integration_scheme.value}")
    print(f"   Gravity          : {config.gravity}")

    memory = MemoryTrajectorySink()
    sinks = [memory]
    if config.trajectory_dir is not None:
        sinks.extend(
            build_trajectory_writers(config.trajectory_dir, config.trajectory_formats)
        )

    print(f"\n2. Integrating...")
    with InertialOdometryEngine(config, sinks=sinks) as engine:
        cycles = replay_streams(
            engine,
            imu_samples,
            aux_samples,
            batch_size=args.batch_size,
            progress=not args.quiet,
            reference_lead=args.reference_lead,
        )
        final = engine.navigation_state

    if not final.initialized:
        print(f"   Engine never initialized: no reference bracket for any IMU time")
        print(f"   (offset or sparse reference streams need --reference-lead)")
        return 1

    print(f"   Integration cycles: {cycles}")
    print(f"   Initialized at t = {final.init_time:.6f} s")
    print(f"   Final position    : {final.position}")
    print(f"   Final velocity    : {final.velocity}")

    print(f"\n3. Evaluating against reference...")
    estimate = memory.estimate_arrays()
    reference = {
        "t": np.array([s.timestamp - final.init_time for s in aux_samples]),
        "p": np.array([s.position for s in aux_samples]),
        "q": np.array([s.quaternion for s in aux_samples]),
        "v": np.array([s.velocity for s in aux_samples]),
    }
    try:
        results = evaluate_trajectory(
            estimate, reference, max_difference=args.match_tolerance
        )
    except ValueError as exc:
        print(f"   Skipped: {exc}")
        results = None

    if results is not None:
        print(f"   Matched samples: {int(results['count']['n'])}")
        _print_stats("Position error", results["position"], "m")
        _print_stats("Attitude error", results["rotation"], "deg", np.degrees(1.0))

    if config.trajectory_dir is not None:
        save_config(config, config.trajectory_dir / "config.json")
        if results is not None:
            with open(config.trajectory_dir / "metrics.json", "w", encoding="utf-8") as f:
                json.dump(results, f, indent=2)

        if args.plot:
            fig = plot_trajectory_2d(
                reference["p"], {config.integration_scheme.value: estimate["p"]}
            )
            save_figure(fig, config.trajectory_dir, "trajectory")
            plt.close(fig)
            if results is not None:
                idx_est, idx_ref = associate_by_time(
                    estimate["t"], reference["t"], args.match_tolerance
                )
                errors = estimate["p"][idx_est] - reference["p"][idx_ref]
                fig = plot_position_error_time(
                    estimate["t"][idx_est], {config.integration_scheme.value: errors}
                )
                save_figure(fig, config.trajectory_dir, "position_error")
                plt.close(fig)

        print(f"\n   Outputs written to: {config.trajectory_dir.absolute()}")

    print(f"\n{'='*70}")
    print(f"Done.")
    print(f"{'='*70}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imu-integration",
        description="Strapdown IMU integration seeded from a reference pose stream",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Integrate a recorded dataset")
    run_parser.add_argument(
        "--dataset", required=True, help="Directory with imu.npz and ground_truth.npz"
    )
    run_parser.add_argument("--config", default=None, help="Engine configuration (JSON)")
    run_parser.add_argument(
        "--output", default=None, help="Directory for trajectory files and metrics"
    )
    run_parser.add_argument(
        "--scheme",
        choices=[s.value for s in IntegrationScheme],
        default=None,
        help="Integration scheme (default: from config, else mid_value)",
    )
    run_parser.add_argument(
        "--formats",
        nargs="+",
        choices=TRAJECTORY_FORMATS,
        default=None,
        help="Trajectory file formats (default: from config, else tum)",
    )
    run_parser.add_argument(
        "--batch-size",
        type=int,
        default=1,
        help="IMU samples queued between drain calls (default: 1)",
    )
    run_parser.add_argument(
        "--max-bracket-gap",
        type=float,
        default=None,
        help="Reject reference brackets wider than this around the IMU time (s)",
    )
    run_parser.add_argument(
        "--reference-lead",
        type=float,
        default=0.0,
        help="Deliver reference poses this many seconds ahead of the IMU (default: 0)",
    )
    run_parser.add_argument(
        "--match-tolerance",
        type=float,
        default=1e-6,
        help="Max time difference when pairing estimate and reference (s)",
    )
    run_parser.add_argument(
        "--plot", action="store_true", help="Save trajectory/error figures to --output"
    )
    run_parser.add_argument("--quiet", action="store_true", help="Hide the progress bar")
    run_parser.set_defaults(func=run)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``imu-integration`` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "batch_size", 1) < 1:
        parser.error("--batch-size must be >= 1")
    if getattr(args, "reference_lead", 0.0) < 0:
        parser.error("--reference-lead must be >= 0")

    try:
        return args.func(args)
    except (FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
