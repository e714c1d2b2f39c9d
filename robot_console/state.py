"""
Robot state store.

Single writer for the RobotState the console displays. Exactly one source is
bound at a time: the live hub channel or the joint simulator.
"""

import logging
from typing import Optional

from PyQt6.QtCore import QObject, pyqtSignal

from robot_console.hub.channel import RobotHubChannel
from robot_console.models import ConnectionState, RobotState
from robot_console.simulator.joint_simulator import JointSimulator, SimulatorState

logger = logging.getLogger(__name__)

OFFLINE_STATUS = "Offline"


class RobotStateStore(QObject):
    """
    Holds the latest RobotState snapshot and status line.

    Snapshots are replaced, never mutated. When the live channel drops out of
    CONNECTED an explicit offline snapshot is published so nothing downstream
    keeps showing a stale connected arm.

    Signals:
        snapshot_changed: New RobotState, once per accepted update.
        status_changed: New status line.
    """

    snapshot_changed = pyqtSignal(object)  # RobotState
    status_changed = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._snapshot = RobotState.initial()
        self._status = "Ready"
        self._channel: Optional[RobotHubChannel] = None
        self._simulator: Optional[JointSimulator] = None
        self._live = False

    # -- Properties ----------------------------------------------------------

    @property
    def snapshot(self) -> RobotState:
        return self._snapshot

    @property
    def status(self) -> str:
        return self._status

    @property
    def source(self) -> Optional[QObject]:
        """The bound channel or simulator, if any."""
        return self._channel or self._simulator

    # -- Binding -------------------------------------------------------------

    def bind_channel(self, channel: RobotHubChannel):
        """Mirror the live controller through the given channel."""
        self.unbind()
        self._channel = channel
        channel.state_updated.connect(self._on_channel_state)
        channel.status_message.connect(self._set_status)
        channel.error_occurred.connect(self._on_channel_error)
        channel.connection_state_changed.connect(self._on_connection_state)
        logger.debug("State store bound to hub channel")

        self._live = channel.is_connected()
        if self._live and channel.last_state is not None:
            self._publish(channel.last_state)
        elif not self._live:
            self._publish(self._offline_snapshot())

    def bind_simulator(self, simulator: JointSimulator):
        """Mirror the joint simulator instead of the controller."""
        self.unbind()
        self._simulator = simulator
        simulator.state_changed.connect(self._on_simulator_state)
        logger.debug("State store bound to simulator")
        self._publish(simulator.snapshot.to_robot_state())
        self._set_status("Simulator")

    def unbind(self):
        """Detach from the current source, keeping the last snapshot."""
        if self._channel is not None:
            self._channel.state_updated.disconnect(self._on_channel_state)
            self._channel.status_message.disconnect(self._set_status)
            self._channel.error_occurred.disconnect(self._on_channel_error)
            self._channel.connection_state_changed.disconnect(self._on_connection_state)
            self._channel = None
        if self._simulator is not None:
            self._simulator.state_changed.disconnect(self._on_simulator_state)
            self._simulator = None
        self._live = False

    # -- Source slots --------------------------------------------------------

    def _on_channel_state(self, state: RobotState):
        self._publish(state)

    def _on_simulator_state(self, state: SimulatorState):
        self._publish(state.to_robot_state())

    def _on_channel_error(self, error: dict):
        self._set_status(f"Error: {error.get('message', 'Unknown error')}")

    def _on_connection_state(self, state: ConnectionState):
        if state == ConnectionState.CONNECTED:
            self._live = True
            return
        if self._live:
            logger.info("Controller offline (%s)", state.value)
            self._live = False
            self._publish(self._offline_snapshot())

    # -- Internal helpers ----------------------------------------------------

    def _offline_snapshot(self) -> RobotState:
        return self._snapshot.evolve(is_connected=False, status=OFFLINE_STATUS)

    def _publish(self, state: RobotState):
        self._snapshot = state
        self.snapshot_changed.emit(state)

    def _set_status(self, message: str):
        self._status = message
        self.status_changed.emit(message)
