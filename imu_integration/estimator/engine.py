"""Inertial odometry engine.

The engine owns the navigation state and drives it through three states:

    UNINITIALIZED ──(reference pose synchronized)──> INTEGRATING ──(shutdown)──> DONE

UNINITIALIZED:
    Each step interpolates the buffered auxiliary pose stream at the newest
    buffered IMU timestamp. On success the navigation state is seeded from
    the interpolated pose, older IMU samples are discarded and the newest one
    is kept as the "previous" endpoint of the first integration step.

INTEGRATING:
    Each step moves one pending IMU sample into a two-sample window
    [previous, current], runs the attitude and velocity/position integrators
    on it, publishes the result and keeps only the current sample.

DONE:
    Terminal. The last committed state remains readable.

Execution is single-threaded and pull-based: the caller pushes samples with
add_inertial_sample / add_auxiliary_sample, then calls process_available()
(or step() repeatedly). "Not enough data" returns immediately; nothing
blocks.
"""

import warnings
from collections import deque
from enum import Enum
from typing import Deque, Iterable, List, Optional

from imu_integration.config import EngineConfig
from imu_integration.io.trajectory import (
    OdometrySnapshot,
    PosePublisher,
    TrajectorySink,
    build_trajectory_writers,
)
from imu_integration.sensors.strapdown import integrate_step
from imu_integration.sensors.synchronization import PoseSynchronizer
from imu_integration.sensors.types import (
    AuxiliaryPoseSample,
    InertialSample,
    NavigationState,
)


class EngineState(str, Enum):
    """Lifecycle of an InertialOdometryEngine."""

    UNINITIALIZED = "uninitialized"
    INTEGRATING = "integrating"
    DONE = "done"


class InertialOdometryEngine:
    """Strapdown dead-reckoning engine.

    Args:
        config: Engine configuration (defaults to EngineConfig()).
        sinks: Trajectory sinks to feed after every integration cycle. If
               None and ``config.trajectory_dir`` is set, file writers for
               ``config.trajectory_formats`` are created.
        publishers: Receivers of OdometrySnapshot after every cycle.

    Example:
        >>> engine = InertialOdometryEngine()
        >>> for sample in aux_samples:
        ...     engine.add_auxiliary_sample(sample)
        >>> for sample in imu_samples:
        ...     engine.add_inertial_sample(sample)
        ...     engine.process_available()
        >>> engine.shutdown()
        >>> print(engine.navigation_state.position)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        sinks: Optional[Iterable[TrajectorySink]] = None,
        publishers: Optional[Iterable[PosePublisher]] = None,
    ) -> None:
        self.config = config if config is not None else EngineConfig()
        self.calibration = self.config.calibration()
        self.scheme = self.config.integration_scheme

        if sinks is None and self.config.trajectory_dir is not None:
            sinks = build_trajectory_writers(
                self.config.trajectory_dir, self.config.trajectory_formats
            )
        self._sinks: List[TrajectorySink] = list(sinks or [])
        self._publishers: List[PosePublisher] = list(publishers or [])

        self._nav = NavigationState()
        self._state = EngineState.UNINITIALIZED

        # Producer side: IMU samples waiting to be integrated, oldest first.
        self._pending: Deque[InertialSample] = deque()
        self._last_imu_time: Optional[float] = None

        # Consumer side: at most [previous, current].
        self._window: List[InertialSample] = []

        self._synchronizer = PoseSynchronizer(self.config.max_bracket_gap)
        self._reference: Optional[AuxiliaryPoseSample] = None

        self._cycles = 0

    # ------------------------------------------------------------------ #
    # Read-only views
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def initialized(self) -> bool:
        return self._nav.initialized

    @property
    def navigation_state(self) -> NavigationState:
        """Copy of the last committed navigation state."""
        return self._nav.copy()

    @property
    def reference(self) -> Optional[AuxiliaryPoseSample]:
        """Newest auxiliary sample retained after initialization."""
        return self._reference

    @property
    def cycles(self) -> int:
        """Number of successful integration cycles so far."""
        return self._cycles

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def buffered_reference_count(self) -> int:
        """Auxiliary samples held by the synchronizer (zero once initialized)."""
        return len(self._synchronizer)

    # ------------------------------------------------------------------ #
    # Ingestion
    # ------------------------------------------------------------------ #

    def add_inertial_sample(self, sample: InertialSample) -> bool:
        """Queue an IMU sample.

        Returns:
            False if the engine is done or the sample is not newer than the
            last accepted one (a RuntimeWarning is issued and it is dropped).
        """
        if self._state is EngineState.DONE:
            return False

        if self._last_imu_time is not None and sample.timestamp <= self._last_imu_time:
            warnings.warn(
                f"Dropping out-of-order IMU sample at t={sample.timestamp:.6f}s "
                f"(last accepted t={self._last_imu_time:.6f}s)",
                RuntimeWarning,
            )
            return False

        if self._state is EngineState.UNINITIALIZED:
            # Initialization only looks at the newest sample.
            self._pending.clear()
            self._synchronizer.discard_before(sample.timestamp)

        self._pending.append(sample)
        self._last_imu_time = sample.timestamp
        return True

    def add_auxiliary_sample(self, sample: AuxiliaryPoseSample) -> bool:
        """Queue a reference pose sample.

        Before initialization samples go to the synchronizer; afterwards only
        the newest one is kept, for reference-trajectory logging.
        """
        if self._state is EngineState.DONE:
            return False

        if self._state is EngineState.UNINITIALIZED:
            accepted = self._synchronizer.add(sample)
            if accepted and self._last_imu_time is not None:
                self._synchronizer.discard_before(self._last_imu_time)
            return accepted

        if self._reference is not None and sample.timestamp <= self._reference.timestamp:
            warnings.warn(
                f"Dropping out-of-order auxiliary pose sample at "
                f"t={sample.timestamp:.6f}s",
                RuntimeWarning,
            )
            return False

        self._reference = sample
        return True

    # ------------------------------------------------------------------ #
    # Cycle
    # ------------------------------------------------------------------ #

    def has_data(self) -> bool:
        """Whether enough data is buffered to attempt a cycle."""
        if self._state is EngineState.UNINITIALIZED:
            return bool(self._pending) and len(self._synchronizer) >= 2
        if self._state is EngineState.INTEGRATING:
            return bool(self._pending) and bool(self._window)
        return False

    def step(self) -> bool:
        """Run one cycle.

        Returns:
            True if the engine initialized or integrated one sample, False if
            the call made no progress (insufficient data, no valid bracket
            yet, a skipped sample, or the engine is done).
        """
        if self._state is EngineState.UNINITIALIZED:
            return self._initialize()
        if self._state is EngineState.INTEGRATING:
            return self._integrate()
        return False

    def process_available(self) -> int:
        """Run cycles until the buffered data is exhausted.

        Returns:
            Number of successful integration cycles in this call.
        """
        start = self._cycles
        while self.has_data():
            progressed = self.step()
            if not progressed and self._state is EngineState.UNINITIALIZED:
                # No bracket for the newest IMU time yet; wait for more data.
                break

        return self._cycles - start

    def shutdown(self) -> None:
        """Enter DONE and close all sinks. Idempotent."""
        if self._state is EngineState.DONE:
            return

        self._state = EngineState.DONE
        self._pending.clear()
        self._synchronizer.clear()
        for sink in self._sinks:
            sink.close()

    def __enter__(self) -> "InertialOdometryEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _initialize(self) -> bool:
        if not self._pending:
            return False

        newest = self._pending[-1]
        synced = self._synchronizer.sync(newest.timestamp)
        if synced is None:
            return False

        self._nav.initialize(synced)

        self._pending.clear()
        self._window = [newest]
        self._synchronizer.clear()
        self._reference = synced

        self._state = EngineState.INTEGRATING
        return True

    def _integrate(self) -> bool:
        if not self._pending or not self._window:
            return False

        self._window.append(self._pending.popleft())

        if not integrate_step(
            self._window,
            len(self._window) - 1,
            0,
            self._nav,
            self.calibration,
            self.scheme,
        ):
            # Unusable pair: drop the newcomer, keep the previous endpoint.
            self._window.pop()
            return False

        current = self._window[-1]
        self._window = [current]
        self._cycles += 1

        self._emit(current.timestamp)
        return True

    def _emit(self, timestamp: float) -> None:
        snapshot = OdometrySnapshot.from_state(
            self._nav, timestamp, frame_id=self.config.frame_id
        )
        for publisher in self._publishers:
            publisher.publish(snapshot)

        if not self._sinks:
            return

        view = self._nav.copy()
        for sink in self._sinks:
            sink.emit_estimate(timestamp, view)
            if self._reference is not None:
                sink.emit_reference(self._reference, view.init_time)
