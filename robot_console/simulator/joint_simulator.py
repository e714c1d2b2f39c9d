"""
Joint motion simulator.

Evolves the six joint angles toward their targets on a 20 Hz timer without
any hardware or network. Presets and the demo sequence only write targets;
the per-tick motion rule carries the arm there.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from robot_console.config import DEFAULT_JOINT_LIMITS, SimulatorConfig
from robot_console.models import (
    JointLimit, JointVector, NUM_JOINTS, RobotState, ZERO_JOINTS,
)
from robot_console.simulator.motion import (
    DEMO_SEQUENCE, PRESET_POSES, clamp_speed, clamp_targets, step_joints,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulatorState:
    """Snapshot of the simulator published once per tick."""
    joint_positions: JointVector
    target_positions: JointVector
    is_moving: bool
    speed_percent: float
    animate: bool
    running: bool
    active_preset: Optional[str] = None

    def to_robot_state(self) -> RobotState:
        """Express the snapshot in the shared RobotState shape."""
        return RobotState(
            joint_positions=self.joint_positions,
            target_positions=self.target_positions,
            is_homed=all(p == 0.0 for p in self.joint_positions),
            is_moving=self.is_moving,
            is_connected=False,
            status="Simulator: " + ("MOVING" if self.is_moving else "IDLE"),
        )


class JointSimulator(QObject):
    """
    Deterministic joint-space simulator for a 6-axis arm.

    Target writes are clamped to the joint limits and rejected while the
    demo sequence runs. Positions only change on tick().

    Signals:
        state_changed: SimulatorState after every tick or reset.
        preset_activated: Name of a preset whose targets were just applied.
        running_changed: Demo sequence running flag.
        demo_started: Demo sequence began.
        demo_finished: Demo sequence ended (completed or stopped).
    """

    state_changed = pyqtSignal(object)  # SimulatorState
    preset_activated = pyqtSignal(str)
    running_changed = pyqtSignal(bool)
    demo_started = pyqtSignal()
    demo_finished = pyqtSignal()

    def __init__(self, limits: Optional[Sequence[JointLimit]] = None,
                 config: Optional[SimulatorConfig] = None, parent=None):
        super().__init__(parent)
        self._config = config or SimulatorConfig()
        self._limits: List[JointLimit] = list(limits or DEFAULT_JOINT_LIMITS)
        if len(self._limits) != NUM_JOINTS:
            raise ValueError(f"Expected {NUM_JOINTS} joint limits, got {len(self._limits)}")

        self._positions: JointVector = clamp_targets(ZERO_JOINTS, self._limits)
        self._targets: JointVector = self._positions
        self._moving = False
        self._speed = clamp_speed(self._config.speed_percent)
        self._animate = self._config.animate
        self._active_preset: Optional[str] = None

        # Demo sequence
        self._running = False
        self._demo_queue: List[str] = []
        self._demo_hold_ms = self._config.demo_hold_ms

        self._tick_timer = QTimer(self)
        self._tick_timer.setInterval(self._config.tick_interval_ms)
        self._tick_timer.timeout.connect(self.tick)

        self._demo_timer = QTimer(self)
        self._demo_timer.setSingleShot(True)
        self._demo_timer.timeout.connect(self._advance_demo)

        self._snapshot = self._make_snapshot()

    # -- Properties ----------------------------------------------------------

    @property
    def snapshot(self) -> SimulatorState:
        """Last published state."""
        return self._snapshot

    @property
    def limits(self) -> List[JointLimit]:
        return list(self._limits)

    @property
    def running(self) -> bool:
        """True while the demo sequence plays; manual edits are rejected."""
        return self._running

    @property
    def speed_percent(self) -> float:
        return self._speed

    @property
    def animate(self) -> bool:
        return self._animate

    # -- Timer control -------------------------------------------------------

    def start(self):
        """Start ticking at the configured rate."""
        if not self._tick_timer.isActive():
            logger.debug("Simulator started (%d ms/tick)", self._tick_timer.interval())
            self._tick_timer.start()

    def stop(self):
        """Stop ticking and cancel any running demo."""
        self._tick_timer.stop()
        self.stop_demo()

    def is_active(self) -> bool:
        return self._tick_timer.isActive()

    def tick(self):
        """Advance one step and publish the new snapshot."""
        if self._animate:
            self._positions, self._moving = step_joints(
                self._positions, self._targets, self._speed)
        else:
            self._positions = self._targets
            self._moving = False
        self._publish()

    # -- Settings ------------------------------------------------------------

    def set_speed(self, speed_percent: float):
        """Set the motion speed (10-100 %)."""
        self._speed = clamp_speed(speed_percent)

    def set_animate(self, enabled: bool):
        """Animate motion, or jump straight to the targets on the next tick."""
        self._animate = bool(enabled)

    # -- Target writes -------------------------------------------------------

    def set_joint_target(self, index: int, degrees: float) -> bool:
        """
        Set the target of one joint, clamped to its limits.

        Other joints keep their targets and progress. Returns False (and does
        nothing) while the demo sequence is running.
        """
        if self._running:
            logger.debug("Joint %d edit rejected: demo running", index + 1)
            return False
        targets = list(self._targets)
        targets[index] = self._limits[index].clamp(float(degrees))
        self._targets = tuple(targets)
        self._active_preset = None
        return True

    def set_targets(self, degrees: Sequence[float]) -> bool:
        """Set all six targets at once, clamped. Rejected while the demo runs."""
        if self._running:
            logger.debug("Target edit rejected: demo running")
            return False
        self._targets = clamp_targets(degrees, self._limits)
        self._active_preset = None
        return True

    def apply_preset(self, name: str) -> bool:
        """
        Move toward a named preset pose. Rejected while the demo runs.

        Raises:
            KeyError: for an unknown preset name.
        """
        if name not in PRESET_POSES:
            raise KeyError(f"Unknown preset: {name}")
        if self._running:
            logger.debug("Preset %s rejected: demo running", name)
            return False
        self._activate_preset(name)
        return True

    def reset(self):
        """Put the arm back at zero immediately and cancel the demo."""
        self.stop_demo()
        self._positions = clamp_targets(ZERO_JOINTS, self._limits)
        self._targets = self._positions
        self._moving = False
        self._active_preset = None
        self._publish()

    # -- Demo sequence -------------------------------------------------------

    def run_demo(self, sequence: Sequence[str] = DEMO_SEQUENCE,
                 hold_ms: Optional[int] = None) -> bool:
        """
        Play presets in order, holding hold_ms at each.

        Returns False if a demo is already running.

        Raises:
            KeyError: if the sequence names an unknown preset.
        """
        if self._running:
            return False
        unknown = [name for name in sequence if name not in PRESET_POSES]
        if unknown:
            raise KeyError(f"Unknown preset(s) in demo sequence: {', '.join(unknown)}")

        self._demo_hold_ms = self._config.demo_hold_ms if hold_ms is None else hold_ms
        self._demo_queue = list(sequence)
        self._running = True
        logger.info("Demo sequence started: %s", ", ".join(self._demo_queue))
        self.running_changed.emit(True)
        self.demo_started.emit()
        self._advance_demo()
        return True

    def stop_demo(self):
        """Abort the demo sequence; targets stay where the last preset put them."""
        if not self._running:
            return
        self._demo_timer.stop()
        self._demo_queue = []
        logger.info("Demo sequence stopped")
        self._end_demo()

    def _advance_demo(self):
        if not self._running:
            return
        if not self._demo_queue:
            logger.info("Demo sequence finished")
            self._end_demo()
            return
        self._activate_preset(self._demo_queue.pop(0))
        self._demo_timer.start(self._demo_hold_ms)

    def _end_demo(self):
        self._running = False
        self._active_preset = None
        self.running_changed.emit(False)
        self.demo_finished.emit()

    # -- Internal helpers ----------------------------------------------------

    def _activate_preset(self, name: str):
        self._targets = clamp_targets(PRESET_POSES[name], self._limits)
        self._active_preset = name
        self.preset_activated.emit(name)

    def _make_snapshot(self) -> SimulatorState:
        return SimulatorState(
            joint_positions=self._positions,
            target_positions=self._targets,
            is_moving=self._moving,
            speed_percent=self._speed,
            animate=self._animate,
            running=self._running,
            active_preset=self._active_preset,
        )

    def _publish(self):
        self._snapshot = self._make_snapshot()
        self.state_changed.emit(self._snapshot)
