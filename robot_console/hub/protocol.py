"""
JSON hub protocol framing.

The controller speaks the SignalR JSON hub protocol (version 1) over a
WebSocket. Each frame is a JSON object followed by the ASCII record
separator; one text message may carry several frames.
"""

import json
from enum import IntEnum
from typing import Any, Dict, List, Optional

RECORD_SEPARATOR = '\x1e'

PROTOCOL_NAME = "json"
PROTOCOL_VERSION = 1


class MessageType(IntEnum):
    """Hub message types used by the console."""
    INVOCATION = 1
    STREAM_ITEM = 2
    COMPLETION = 3
    STREAM_INVOCATION = 4
    CANCEL_INVOCATION = 5
    PING = 6
    CLOSE = 7


class ProtocolError(Exception):
    """Raised when a frame cannot be decoded."""


def encode(message: Dict[str, Any]) -> str:
    """Serialize one message into a framed string."""
    return json.dumps(message, separators=(',', ':')) + RECORD_SEPARATOR


def decode(text: str) -> List[Dict[str, Any]]:
    """
    Split a received text message into its frames.

    Raises:
        ProtocolError: if a frame is not a JSON object.
    """
    messages = []
    for frame in text.split(RECORD_SEPARATOR):
        if not frame.strip():
            continue
        try:
            message = json.loads(frame)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Invalid hub frame: {e}") from e
        if not isinstance(message, dict):
            raise ProtocolError(f"Hub frame is not an object: {frame[:80]!r}")
        messages.append(message)
    return messages


def handshake_request() -> str:
    return encode({'protocol': PROTOCOL_NAME, 'version': PROTOCOL_VERSION})


def handshake_error(message: Dict[str, Any]) -> Optional[str]:
    """Error text of a handshake response, or None when it was accepted."""
    error = message.get('error')
    return str(error) if error else None


def invocation(target: str, arguments: List[Any], invocation_id: Optional[str] = None) -> str:
    """Build an invocation frame; without an id the hub sends no completion."""
    message: Dict[str, Any] = {
        'type': MessageType.INVOCATION,
        'target': target,
        'arguments': arguments,
    }
    if invocation_id is not None:
        message['invocationId'] = invocation_id
    return encode(message)


def ping() -> str:
    return encode({'type': MessageType.PING})


def close() -> str:
    return encode({'type': MessageType.CLOSE})
