"""Shared fixtures: a Qt application and a scriptable in-memory transport."""

from typing import List

import pytest
from PyQt6.QtCore import QCoreApplication

from robot_console.config import ConsoleConfig
from robot_console.hub import protocol
from robot_console.hub.channel import RobotHubChannel
from robot_console.hub.transport import HubTransport


@pytest.fixture(scope='session', autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class FakeTransport(HubTransport):
    """
    Synchronous HubTransport driven by the test.

    open() only records the request; the test decides whether the link comes
    up (accept) or fails (drop).
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.sent: List[str] = []
        self.urls: List[str] = []
        self.open_count = 0
        self._open = False
        self._active = False

    def open(self, url: str):
        self.open_count += 1
        self.urls.append(url)
        self._active = True

    def close(self):
        self.drop("closed by client")

    def send_text(self, text: str) -> bool:
        if not self._open:
            return False
        self.sent.append(text)
        return True

    def is_open(self) -> bool:
        return self._open

    # -- Test controls --------------------------------------------------------

    def accept(self):
        self._open = True
        self.opened.emit()

    def drop(self, reason: str = "connection reset"):
        self._open = False
        if self._active:
            self._active = False
            self.closed.emit(reason)

    def handshake_ok(self):
        self.text_received.emit('{}' + protocol.RECORD_SEPARATOR)

    def push(self, message: dict):
        self.text_received.emit(protocol.encode(message))

    def sent_messages(self) -> List[dict]:
        messages = []
        for text in self.sent:
            messages.extend(protocol.decode(text))
        return messages

    def invocations(self) -> List[dict]:
        return [m for m in self.sent_messages() if m.get('type') == protocol.MessageType.INVOCATION]


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def channel(transport):
    return RobotHubChannel(ConsoleConfig(), transport=transport)


@pytest.fixture
def connected_channel(channel, transport):
    call = channel.connect()
    transport.accept()
    transport.handshake_ok()
    assert call.result() is True
    return channel
