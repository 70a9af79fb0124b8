"""
Unit tests for imu_integration/io/trajectory.py (line formats and sinks).
"""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from imu_integration.io.trajectory import (
    ESTIMATE_FILENAME,
    REFERENCE_FILENAME,
    KittiTrajectoryWriter,
    MemoryTrajectorySink,
    OdometrySnapshot,
    RecordingPublisher,
    TumTrajectoryWriter,
    build_trajectory_writers,
    format_kitti_line,
    format_tum_line,
)
from imu_integration.sensors.types import AuxiliaryPoseSample, NavigationState


def _state(init_time: float = 10.0) -> NavigationState:
    R = Rotation.from_rotvec([0.0, 0.0, np.pi / 2]).as_matrix()
    return NavigationState(
        rotation=R,
        position=np.array([1.0, 2.0, 3.0]),
        velocity=np.array([0.5, 0.0, 0.0]),
        init_time=init_time,
        initialized=True,
    )


def _reference(t: float = 10.5) -> AuxiliaryPoseSample:
    return AuxiliaryPoseSample(t, np.eye(3), np.array([4.0, 5.0, 6.0]), np.zeros(3))


class TestLineFormats:

    def test_kitti_identity(self) -> None:
        assert format_kitti_line(np.eye(4)) == "1 0 0 0 0 1 0 0 0 0 1 0"

    def test_kitti_row_major_with_translation(self) -> None:
        pose = np.eye(4)
        pose[:3, :3] = np.arange(9).reshape(3, 3)
        pose[:3, 3] = [10.0, 20.0, 30.0]

        values = [float(v) for v in format_kitti_line(pose).split()]

        assert values == [0, 1, 2, 10, 3, 4, 5, 20, 6, 7, 8, 30]

    def test_tum_quaternion_order(self) -> None:
        q = np.array([0.5, 0.5, 0.5, 0.5])  # [qw, qx, qy, qz]
        line = format_tum_line(1.25, np.array([1.0, 2.0, 3.0]), q)

        assert line == "1.25 1 2 3 0.5 0.5 0.5 0.5"

    def test_tum_scalar_last(self) -> None:
        q = np.array([0.8, 0.6, 0.0, 0.0])
        values = [float(v) for v in format_tum_line(0.0, np.zeros(3), q).split()]

        assert values[4:] == pytest.approx([0.6, 0.0, 0.0, 0.8])


class TestOdometrySnapshot:

    def test_from_state(self) -> None:
        state = _state()
        snapshot = OdometrySnapshot.from_state(state, 10.2)

        assert snapshot.frame_id == snapshot.child_frame_id == "inertial"
        assert snapshot.timestamp == pytest.approx(10.2)
        expected = Rotation.from_matrix(state.rotation).as_quat()  # [x, y, z, w]
        if expected[3] < 0:
            expected = -expected
        np.testing.assert_array_almost_equal(snapshot.orientation, expected)
        np.testing.assert_array_equal(snapshot.linear_velocity, [0.5, 0.0, 0.0])

    def test_snapshot_detached_from_state(self) -> None:
        state = _state()
        snapshot = OdometrySnapshot.from_state(state, 10.2)
        state.position[0] = -1.0

        assert snapshot.position[0] == 1.0

    def test_recording_publisher(self) -> None:
        publisher = RecordingPublisher()
        publisher.publish(OdometrySnapshot.from_state(_state(), 1.0, child_frame_id="imu"))

        assert len(publisher.snapshots) == 1
        assert publisher.snapshots[0].child_frame_id == "imu"


class TestFileWriters:

    def test_kitti_writer(self, tmp_path) -> None:
        writer = KittiTrajectoryWriter(tmp_path)
        writer.emit_estimate(10.2, _state())
        writer.emit_reference(_reference(), 10.0)
        writer.close()

        estimate = (tmp_path / ESTIMATE_FILENAME).read_text().splitlines()
        reference = (tmp_path / REFERENCE_FILENAME).read_text().splitlines()

        assert len(estimate) == 1
        assert len(estimate[0].split()) == 12
        assert reference == ["1 0 0 4 0 1 0 5 0 0 1 6"]

    def test_tum_writer_relative_time(self, tmp_path) -> None:
        with TumTrajectoryWriter(tmp_path) as writer:
            writer.emit_estimate(10.25, _state(init_time=10.0))
            writer.emit_reference(_reference(10.5), 10.0)

        estimate = (tmp_path / ESTIMATE_FILENAME).read_text().split()
        reference = (tmp_path / REFERENCE_FILENAME).read_text().split()

        assert float(estimate[0]) == pytest.approx(0.25)
        assert [float(v) for v in estimate[1:4]] == [1.0, 2.0, 3.0]
        assert reference == ["0.5", "4", "5", "6", "0", "0", "0", "1"]

    def test_files_opened_lazily(self, tmp_path) -> None:
        out = tmp_path / "traj"
        writer = TumTrajectoryWriter(out)

        assert not out.exists()

        writer.emit_estimate(10.0, _state())
        assert (out / ESTIMATE_FILENAME).exists()
        writer.close()

    def test_close_idempotent(self, tmp_path) -> None:
        writer = KittiTrajectoryWriter(tmp_path)
        writer.close()
        writer.emit_estimate(0.0, _state())
        writer.close()
        writer.close()

        assert len((tmp_path / ESTIMATE_FILENAME).read_text().splitlines()) == 1

    def test_appends_one_line_per_cycle(self, tmp_path) -> None:
        writer = TumTrajectoryWriter(tmp_path)
        for k in range(5):
            writer.emit_estimate(10.0 + 0.1 * k, _state())
        writer.close()

        assert len((tmp_path / ESTIMATE_FILENAME).read_text().splitlines()) == 5


class TestBuildTrajectoryWriters:

    def test_single_format_in_output_dir(self, tmp_path) -> None:
        (writer,) = build_trajectory_writers(tmp_path, ("kitti",))

        assert isinstance(writer, KittiTrajectoryWriter)
        assert writer.estimate_path == tmp_path / ESTIMATE_FILENAME

    def test_multiple_formats_in_subdirectories(self, tmp_path) -> None:
        kitti, tum = build_trajectory_writers(tmp_path, ["kitti", "tum"])

        assert kitti.output_dir == tmp_path / "kitti"
        assert tum.output_dir == tmp_path / "tum"

    def test_unknown_format(self, tmp_path) -> None:
        with pytest.raises(ValueError, match="Unknown trajectory format"):
            build_trajectory_writers(tmp_path, ("csv",))


class TestMemoryTrajectorySink:

    def test_arrays(self) -> None:
        sink = MemoryTrajectorySink()
        for k in range(3):
            sink.emit_estimate(10.0 + k, _state())
            sink.emit_reference(_reference(10.0 + k), 10.0)

        est = sink.estimate_arrays()
        ref = sink.reference_arrays()

        assert len(sink) == 3
        np.testing.assert_array_equal(est["t"], [0.0, 1.0, 2.0])
        assert est["p"].shape == (3, 3)
        assert est["q"].shape == (3, 4)
        np.testing.assert_array_equal(ref["p"][0], [4.0, 5.0, 6.0])

    def test_empty(self) -> None:
        est = MemoryTrajectorySink().estimate_arrays()

        assert est["t"].shape == (0,)
        assert est["p"].shape == (0, 3)
