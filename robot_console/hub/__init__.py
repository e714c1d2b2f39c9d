"""
Telemetry/command channel to the robot controller hub.

This package provides:
- RobotHubChannel: auto-reconnecting hub connection with state/status/error signals
- PendingCall: async result handle for outbound commands
- HubTransport / WebSocketTransport: text transport seam and its QWebSocket implementation
- retry_delay_ms / retry_schedule: reconnect backoff schedule
"""

from .backoff import retry_delay_ms, retry_schedule
from .channel import RobotHubChannel
from .pending import PendingCall
from .transport import HubTransport, WebSocketTransport

__all__ = [
    'HubTransport',
    'PendingCall',
    'RobotHubChannel',
    'WebSocketTransport',
    'retry_delay_ms',
    'retry_schedule',
]
