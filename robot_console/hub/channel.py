"""
Telemetry/command channel to the robot controller hub.

Keeps one logical connection to the controller, mirrors its pushed state
through Qt signals and correlates outbound commands with their results.
Everything runs on the Qt event loop; no call blocks.
"""

import functools
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from robot_console.config import ConsoleConfig
from robot_console.hub import protocol
from robot_console.hub.backoff import retry_delay_ms
from robot_console.hub.pending import PendingCall
from robot_console.hub.transport import HubTransport, WebSocketTransport
from robot_console.models import (
    CommandResult, ConnectionState, JogCommand, MoveCommand, RobotState,
)

logger = logging.getLogger(__name__)

ESTOP_UNREACHABLE_MESSAGE = "EMERGENCY STOP NOT DELIVERED: no connection to controller"


def _to_command_result(result: Any) -> Optional[CommandResult]:
    return None if result is None else CommandResult.from_dict(result)


def _to_robot_state(result: Any) -> Optional[RobotState]:
    return None if result is None else RobotState.from_dict(result)


def _to_bool(result: Any) -> Optional[bool]:
    return None if result is None else bool(result)


def _acknowledged(result: Any) -> bool:
    return True


class RobotHubChannel(QObject):
    """
    Auto-reconnecting connection to the controller hub.

    Inbound events are signals, so any number of listeners can attach and
    detach independently. Outbound operations return a PendingCall that
    resolves exactly once; None means the command never got a verdict.

    Signals:
        state_updated: RobotState pushed by the controller.
        status_message: Human-readable status line.
        error_occurred: dict with at least a 'message' key.
        connection_state_changed: New ConnectionState.
        reconnected: Connectivity restored after an unexpected loss.
    """

    state_updated = pyqtSignal(object)  # RobotState
    status_message = pyqtSignal(str)
    error_occurred = pyqtSignal(object)  # dict
    connection_state_changed = pyqtSignal(object)  # ConnectionState
    reconnected = pyqtSignal()

    def __init__(self, config: Optional[ConsoleConfig] = None,
                 transport: Optional[HubTransport] = None, parent=None):
        super().__init__(parent)
        self._config = config or ConsoleConfig()
        self._transport = transport if transport is not None else WebSocketTransport(self)

        self._state = ConnectionState.DISCONNECTED
        self._last_state: Optional[RobotState] = None
        self._opening = False
        self._handshake_done = False
        self._closing_intentionally = False
        self._reconnect_allowed = True
        self._failure_reason = ""
        self._connect_call: Optional[PendingCall] = None

        # invocationId -> (call, result converter)
        self._pending: Dict[str, Tuple[PendingCall, Callable[[Any], Any]]] = {}
        self._next_invocation_id = 0

        self._reconnect_attempt = 0
        self._reconnect_timer = QTimer(self)
        self._reconnect_timer.setSingleShot(True)
        self._reconnect_timer.timeout.connect(self._attempt_reconnect)

        self._keep_alive_timer = QTimer(self)
        self._keep_alive_timer.setInterval(self._config.keep_alive_interval_ms)
        self._keep_alive_timer.timeout.connect(self._send_ping)

        self._server_timeout_timer = QTimer(self)
        self._server_timeout_timer.setSingleShot(True)
        self._server_timeout_timer.setInterval(self._config.server_timeout_ms)
        self._server_timeout_timer.timeout.connect(self._on_server_timeout)

        self._transport.opened.connect(self._on_transport_opened)
        self._transport.closed.connect(self._on_transport_closed)
        self._transport.text_received.connect(self._on_text_received)

    # -- Properties ----------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Current connection state (read-only outside the channel)."""
        return self._state

    @property
    def last_state(self) -> Optional[RobotState]:
        """Most recent RobotState pushed by the controller."""
        return self._last_state

    @property
    def reconnect_attempt(self) -> int:
        """Index of the next reconnect attempt."""
        return self._reconnect_attempt

    @property
    def pending_reconnect_delay_ms(self) -> Optional[int]:
        """Delay of the scheduled reconnect, or None if none is scheduled."""
        if self._reconnect_timer.isActive():
            return self._reconnect_timer.interval()
        return None

    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    # -- Connection lifecycle ------------------------------------------------

    def connect(self) -> PendingCall:
        """
        Establish the hub connection.

        Idempotent: when already connected the returned call is resolved with
        True and no second connection is made; while a connect is in progress
        the same call is returned. Resolves False (and emits error_occurred)
        when the connection cannot be established.
        """
        if self._state == ConnectionState.CONNECTED:
            logger.debug("Already connected")
            return PendingCall.resolved('connect', True)

        if self._connect_call is not None:
            return self._connect_call

        self._reconnect_timer.stop()
        self._reconnect_allowed = True
        self._connect_call = PendingCall('connect')
        call = self._connect_call
        attempt_running = self._opening
        self._set_state(ConnectionState.CONNECTING)
        if not attempt_running:
            logger.info("Connecting to hub %s", self._config.hub_url)
            self._open_transport()
        return call

    def disconnect(self):
        """
        Tear the connection down.

        Cancels any scheduled reconnect, resolves in-flight calls with None
        and ends in DISCONNECTED. Safe to call when already disconnected.
        """
        if (self._state == ConnectionState.DISCONNECTED
                and not self._opening and not self._reconnect_timer.isActive()):
            return

        logger.info("Disconnecting from hub")
        self._reconnect_timer.stop()
        self._stop_link_timers()

        if self._handshake_done:
            self._transport.send_text(protocol.close())
        self._closing_intentionally = True
        try:
            self._transport.close()
        finally:
            self._closing_intentionally = False
        self._opening = False
        self._handshake_done = False

        self._fail_pending("disconnected")
        if self._connect_call is not None:
            call, self._connect_call = self._connect_call, None
            call.set_result(False)
        self._reconnect_attempt = 0
        self._set_state(ConnectionState.DISCONNECTED)

    # -- Outbound operations -------------------------------------------------

    def get_state(self) -> PendingCall:
        """Ask the controller for its current RobotState."""
        return self._invoke('GetState', [], _to_robot_state)

    def move(self, command: MoveCommand) -> PendingCall:
        # Sent as given: limits are enforced by the controller, not here
        return self._invoke('Move', [command.to_dict()], _to_command_result)

    def jog(self, command: JogCommand) -> PendingCall:
        return self._invoke('Jog', [command.to_dict()], _to_command_result)

    def home(self) -> PendingCall:
        return self._invoke('Home', [], _to_command_result)

    def stop(self) -> PendingCall:
        return self._invoke('Stop', [], _to_command_result)

    def emergency_stop(self) -> PendingCall:
        """
        Send the emergency stop.

        With no live connection this fails fast like every other command, but
        the unreachable E-stop is reported on status_message and
        error_occurred so the operator sees it.
        """
        if not self.is_connected():
            logger.critical("Emergency stop requested while %s", self._state.value)
            self.status_message.emit(ESTOP_UNREACHABLE_MESSAGE)
            self.error_occurred.emit({
                'message': ESTOP_UNREACHABLE_MESSAGE,
                'emergencyStop': True,
                'connectionState': self._state.value,
            })
            return PendingCall.resolved('EmergencyStop', None)
        return self._invoke('EmergencyStop', [], _to_command_result)

    def connect_robot(self, port_name: str) -> PendingCall:
        """Ask the controller to open the serial link to the arm."""
        return self._invoke('Connect', [port_name], _to_bool)

    def disconnect_robot(self) -> PendingCall:
        """Ask the controller to close the serial link. Resolves True when acknowledged."""
        return self._invoke('Disconnect', [], _acknowledged)

    def _invoke(self, target: str, arguments: list,
                convert: Callable[[Any], Any]) -> PendingCall:
        if not self.is_connected():
            logger.debug("%s dropped: not connected (%s)", target, self._state.value)
            return PendingCall.resolved(target, None)

        self._next_invocation_id += 1
        invocation_id = str(self._next_invocation_id)
        if not self._transport.send_text(protocol.invocation(target, arguments, invocation_id)):
            logger.error("Failed to send %s", target)
            return PendingCall.resolved(target, None)

        call = PendingCall(target)
        self._pending[invocation_id] = (call, convert)

        timer = QTimer(call)
        timer.setSingleShot(True)
        timer.timeout.connect(functools.partial(self._on_invocation_timeout, invocation_id))
        timer.start(self._config.invoke_timeout_ms)
        return call

    # -- Transport events ----------------------------------------------------

    def _open_transport(self):
        self._opening = True
        self._handshake_done = False
        self._failure_reason = ""
        self._transport.open(self._config.hub_url)

    def _on_transport_opened(self):
        logger.debug("Transport open, sending handshake")
        self._server_timeout_timer.start()
        self._transport.send_text(protocol.handshake_request())

    def _on_text_received(self, text: str):
        self._server_timeout_timer.start()
        try:
            messages = protocol.decode(text)
        except protocol.ProtocolError as e:
            logger.error("%s", e)
            self.error_occurred.emit({'message': str(e)})
            return

        for message in messages:
            if not self._handshake_done:
                self._on_handshake_response(message)
                if not self._handshake_done:
                    return
                continue
            self._dispatch(message)

    def _on_handshake_response(self, message: dict):
        error = protocol.handshake_error(message)
        if error:
            logger.error("Hub handshake rejected: %s", error)
            self._failure_reason = f"Handshake rejected: {error}"
            self._transport.close()
            return

        self._handshake_done = True
        self._opening = False
        was_reconnecting = self._state == ConnectionState.RECONNECTING
        self._reconnect_attempt = 0
        self._keep_alive_timer.start()
        self._set_state(ConnectionState.CONNECTED)
        logger.info("Connected to hub %s", self._config.hub_url)

        if self._connect_call is not None:
            call, self._connect_call = self._connect_call, None
            call.set_result(True)
        if was_reconnecting:
            self.status_message.emit("Connection to controller restored")
            self.reconnected.emit()

    def _on_transport_closed(self, reason: str):
        if self._closing_intentionally:
            return

        reason = self._failure_reason or reason
        self._failure_reason = ""
        was_opening = self._opening
        self._opening = False
        self._handshake_done = False
        self._stop_link_timers()
        self._fail_pending(reason)

        if self._connect_call is not None:
            # A connect() requested by the caller failed
            call, self._connect_call = self._connect_call, None
            logger.error("Connection failed: %s", reason)
            self._set_state(ConnectionState.ERRORED)
            self.error_occurred.emit({'message': f"Connection failed: {reason}"})
            call.set_result(False)
        elif self._state == ConnectionState.RECONNECTING and was_opening:
            logger.warning("Reconnect attempt %d failed: %s",
                           self._reconnect_attempt + 1, reason)
            self._reconnect_attempt += 1
            self._schedule_reconnect()
        elif self._state == ConnectionState.CONNECTED:
            if not self._reconnect_allowed:
                logger.warning("Hub closed the connection: %s", reason)
                self.status_message.emit("Connection closed by controller")
                self._set_state(ConnectionState.DISCONNECTED)
                return
            logger.warning("Connection lost: %s", reason)
            self._reconnect_attempt = 0
            self._schedule_reconnect()

    def _dispatch(self, message: dict):
        msg_type = message.get('type')
        if msg_type == protocol.MessageType.INVOCATION:
            self._handle_event(message.get('target', ''), message.get('arguments') or [])
        elif msg_type == protocol.MessageType.COMPLETION:
            self._handle_completion(message)
        elif msg_type == protocol.MessageType.PING:
            pass
        elif msg_type == protocol.MessageType.CLOSE:
            self._handle_close(message)
        else:
            logger.debug("Ignoring hub message type %s", msg_type)

    def _handle_event(self, target: str, arguments: list):
        name = target.lower()
        if name == 'stateupdate':
            try:
                state = RobotState.from_dict(arguments[0])
            except (IndexError, TypeError, ValueError) as e:
                logger.error("Malformed StateUpdate: %s", e)
                self.error_occurred.emit({'message': f"Malformed state update: {e}"})
                return
            self._last_state = state
            self.state_updated.emit(state)
        elif name == 'statusmessage':
            self.status_message.emit(str(arguments[0]) if arguments else "")
        elif name == 'error':
            payload = arguments[0] if arguments else {}
            if not isinstance(payload, dict):
                payload = {'message': str(payload)}
            elif 'message' not in payload:
                payload = dict(payload, message="Unknown error")
            logger.warning("Controller error: %s", payload['message'])
            self.error_occurred.emit(payload)
        else:
            logger.warning("Unhandled hub event: %s", target)

    def _handle_completion(self, message: dict):
        invocation_id = message.get('invocationId')
        entry = self._pending.pop(invocation_id, None)
        if entry is None:
            logger.debug("Completion for unknown invocation %s", invocation_id)
            return
        call, convert = entry

        if message.get('error'):
            logger.error("%s failed: %s", call.target, message['error'])
            call.set_result(None)
            return
        try:
            result = convert(message.get('result'))
        except (TypeError, ValueError) as e:
            logger.error("Malformed %s result: %s", call.target, e)
            result = None
        call.set_result(result)

    def _handle_close(self, message: dict):
        error = message.get('error')
        self._reconnect_allowed = bool(message.get('allowReconnect', False))
        if error:
            logger.error("Hub closed the connection: %s", error)
            self.error_occurred.emit({'message': f"Server closed connection: {error}"})
            self._failure_reason = str(error)
        self._transport.close()

    # -- Reconnect -----------------------------------------------------------

    def _schedule_reconnect(self):
        reconnect = self._config.reconnect
        delay = retry_delay_ms(self._reconnect_attempt, reconnect.base_delay_ms,
                               reconnect.max_delay_ms, reconnect.max_attempts)
        if delay is None:
            logger.error("Giving up after %d reconnect attempts", self._reconnect_attempt)
            self._reconnect_attempt = 0
            self._set_state(ConnectionState.DISCONNECTED)
            self.status_message.emit("Connection to controller lost")
            return

        self._set_state(ConnectionState.RECONNECTING)
        self.status_message.emit(
            f"Connection lost, reconnecting in {delay / 1000:g}s "
            f"(attempt {self._reconnect_attempt + 1}/{reconnect.max_attempts})")
        self._reconnect_timer.start(delay)

    def _attempt_reconnect(self):
        if self._state != ConnectionState.RECONNECTING:
            return
        logger.info("Reconnect attempt %d", self._reconnect_attempt + 1)
        self._open_transport()

    # -- Internal helpers ----------------------------------------------------

    def _set_state(self, state: ConnectionState):
        if state == self._state:
            return
        logger.debug("Connection state %s -> %s", self._state.value, state.value)
        self._state = state
        self.connection_state_changed.emit(state)

    def _stop_link_timers(self):
        self._keep_alive_timer.stop()
        self._server_timeout_timer.stop()

    def _fail_pending(self, reason: str):
        if not self._pending:
            return
        logger.warning("Dropping %d in-flight call(s): %s", len(self._pending), reason)
        pending, self._pending = self._pending, {}
        for call, _ in pending.values():
            call.set_result(None)

    def _send_ping(self):
        self._transport.send_text(protocol.ping())

    def _on_server_timeout(self):
        logger.warning("No message from hub for %d ms", self._config.server_timeout_ms)
        self._failure_reason = "Server timeout"
        self._transport.close()

    def _on_invocation_timeout(self, invocation_id: str):
        entry = self._pending.pop(invocation_id, None)
        if entry is None:
            return
        call, _ = entry
        logger.error("%s timed out after %d ms", call.target, self._config.invoke_timeout_ms)
        call.set_result(None)
