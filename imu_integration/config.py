"""Engine configuration.

Configuration is a JSON document with the same nested layout as the IMU
integration node parameters:

    {
      "imu": {
        "topic_name": "/sim/sensor/imu",
        "gravity": {"x": 0.0, "y": 0.0, "z": -9.81},
        "bias": {
          "angular_velocity": {"x": 0.0, "y": 0.0, "z": 0.0},
          "linear_acceleration": {"x": 0.0, "y": 0.0, "z": 0.0}
        },
        "integration_scheme": "mid_value"
      },
      "pose": {
        "frame_id": "inertial",
        "topic_name": {"ground_truth": "/pose/ground_truth",
                       "estimation": "/pose/estimation"}
      },
      "sync": {"max_bracket_gap": null},
      "trajectory": {"output_dir": null, "formats": ["tum"]}
    }

Every key is optional. Invalid values raise ValueError naming the key.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from imu_integration.sensors.types import CalibrationConstants, IntegrationScheme

TRAJECTORY_FORMATS = ("kitti", "tum")

DEFAULT_GRAVITY = (0.0, 0.0, -9.81)


def _vec3_from_xyz(node: Any, key: str, default: Tuple[float, float, float]) -> np.ndarray:
    """Read an {"x", "y", "z"} mapping (or a 3-element list) into a vector."""
    if node is None:
        return np.array(default, dtype=np.float64)

    if isinstance(node, Mapping):
        unknown = set(node) - {"x", "y", "z"}
        if unknown:
            raise ValueError(f"{key}: unknown components {sorted(unknown)}")
        values = [node.get(axis, default[i]) for i, axis in enumerate("xyz")]
    else:
        values = list(node)

    try:
        vec = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key}: expected three numbers, got {node!r}") from exc

    if vec.shape != (3,):
        raise ValueError(f"{key}: expected three components, got {vec.shape[0]}")
    if not np.all(np.isfinite(vec)):
        raise ValueError(f"{key}: components must be finite, got {vec}")

    return vec


def _xyz(vec: np.ndarray) -> Dict[str, float]:
    return {"x": float(vec[0]), "y": float(vec[1]), "z": float(vec[2])}


@dataclass(frozen=True, eq=False)
class EngineConfig:
    """Immutable engine configuration.

    Attributes:
        gravity: Gravity in navigation frame (m/s²).
        angular_velocity_bias: Constant gyro bias (rad/s).
        specific_force_bias: Constant accelerometer bias (m/s²).
        integration_scheme: MID_VALUE (default) or EULER.
        frame_id: Frame id stamped on published odometry.
        imu_topic: Name of the IMU input stream.
        ground_truth_topic: Name of the auxiliary pose stream.
        estimation_topic: Name of the published estimate stream.
        max_bracket_gap: Optional synchronization gap limit (seconds).
        trajectory_dir: Directory for trajectory files, or None.
        trajectory_formats: Subset of ("kitti", "tum").
    """

    gravity: np.ndarray = field(default_factory=lambda: np.array(DEFAULT_GRAVITY))
    angular_velocity_bias: np.ndarray = field(default_factory=lambda: np.zeros(3))
    specific_force_bias: np.ndarray = field(default_factory=lambda: np.zeros(3))
    integration_scheme: IntegrationScheme = IntegrationScheme.MID_VALUE
    frame_id: str = "inertial"
    imu_topic: str = "/sim/sensor/imu"
    ground_truth_topic: str = "/pose/ground_truth"
    estimation_topic: str = "/pose/estimation"
    max_bracket_gap: Optional[float] = None
    trajectory_dir: Optional[Path] = None
    trajectory_formats: Tuple[str, ...] = ("tum",)

    def __post_init__(self) -> None:
        defaults = {
            "gravity": DEFAULT_GRAVITY,
            "angular_velocity_bias": (0.0, 0.0, 0.0),
            "specific_force_bias": (0.0, 0.0, 0.0),
        }
        for name, default in defaults.items():
            object.__setattr__(
                self, name, _vec3_from_xyz(getattr(self, name), name, default)
            )

        try:
            scheme = IntegrationScheme(self.integration_scheme)
        except ValueError as exc:
            choices = [s.value for s in IntegrationScheme]
            raise ValueError(
                f"integration_scheme must be one of {choices}, "
                f"got {self.integration_scheme!r}"
            ) from exc
        object.__setattr__(self, "integration_scheme", scheme)

        if self.max_bracket_gap is not None:
            gap = float(self.max_bracket_gap)
            if not gap >= 0.0:
                raise ValueError(
                    f"max_bracket_gap must be non-negative, got {self.max_bracket_gap}"
                )
            object.__setattr__(self, "max_bracket_gap", gap)

        formats = tuple(str(f).lower() for f in self.trajectory_formats)
        for fmt in formats:
            if fmt not in TRAJECTORY_FORMATS:
                raise ValueError(
                    f"trajectory format must be one of {list(TRAJECTORY_FORMATS)}, "
                    f"got {fmt!r}"
                )
        object.__setattr__(self, "trajectory_formats", formats)

        if self.trajectory_dir is not None:
            object.__setattr__(self, "trajectory_dir", Path(self.trajectory_dir))

    def calibration(self) -> CalibrationConstants:
        """Calibration constants for the session."""
        return CalibrationConstants(
            gravity=self.gravity,
            angular_velocity_bias=self.angular_velocity_bias,
            specific_force_bias=self.specific_force_bias,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """Build a config from the nested parameter layout."""
        imu = data.get("imu") or {}
        bias = imu.get("bias") or {}
        pose = data.get("pose") or {}
        pose_topics = pose.get("topic_name") or {}
        sync = data.get("sync") or {}
        trajectory = data.get("trajectory") or {}

        formats = trajectory.get("formats", ("tum",))
        if isinstance(formats, str):
            formats = (formats,)

        return cls(
            gravity=_vec3_from_xyz(imu.get("gravity"), "imu.gravity", DEFAULT_GRAVITY),
            angular_velocity_bias=_vec3_from_xyz(
                bias.get("angular_velocity"), "imu.bias.angular_velocity", (0.0, 0.0, 0.0)
            ),
            specific_force_bias=_vec3_from_xyz(
                bias.get("linear_acceleration"),
                "imu.bias.linear_acceleration",
                (0.0, 0.0, 0.0),
            ),
            integration_scheme=imu.get("integration_scheme", IntegrationScheme.MID_VALUE),
            frame_id=pose.get("frame_id", "inertial"),
            imu_topic=imu.get("topic_name", "/sim/sensor/imu"),
            ground_truth_topic=pose_topics.get("ground_truth", "/pose/ground_truth"),
            estimation_topic=pose_topics.get("estimation", "/pose/estimation"),
            max_bracket_gap=sync.get("max_bracket_gap"),
            trajectory_dir=trajectory.get("output_dir"),
            trajectory_formats=tuple(formats),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Nested parameter layout, suitable for json.dump."""
        return {
            "imu": {
                "topic_name": self.imu_topic,
                "gravity": _xyz(self.gravity),
                "bias": {
                    "angular_velocity": _xyz(self.angular_velocity_bias),
                    "linear_acceleration": _xyz(self.specific_force_bias),
                },
                "integration_scheme": self.integration_scheme.value,
            },
            "pose": {
                "frame_id": self.frame_id,
                "topic_name": {
                    "ground_truth": self.ground_truth_topic,
                    "estimation": self.estimation_topic,
                },
            },
            "sync": {"max_bracket_gap": self.max_bracket_gap},
            "trajectory": {
                "output_dir": (
                    str(self.trajectory_dir) if self.trajectory_dir is not None else None
                ),
                "formats": list(self.trajectory_formats),
            },
        }


def load_config(path: Union[str, Path]) -> EngineConfig:
    """Load an EngineConfig from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the JSON is malformed or a value is invalid.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path}: invalid JSON ({exc})") from exc

    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level JSON value must be an object")

    return EngineConfig.from_dict(data)


def save_config(config: EngineConfig, path: Union[str, Path]) -> None:
    """Write the effective configuration as indented JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
