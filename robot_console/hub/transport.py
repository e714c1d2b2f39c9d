"""
Transport layer for the hub channel.

HubTransport is the seam between RobotHubChannel and the network: the
channel only ever sees text frames and open/close notifications.
WebSocketTransport implements it on top of QWebSocket so everything runs on
the Qt event loop.
"""

import logging

from PyQt6.QtCore import QObject, QUrl, pyqtSignal
from PyQt6.QtNetwork import QAbstractSocket
from PyQt6.QtWebSockets import QWebSocket

logger = logging.getLogger(__name__)


def to_websocket_url(url: str) -> str:
    """Map an http(s) hub URL to its ws(s) equivalent."""
    if url.startswith('https://'):
        return 'wss://' + url[len('https://'):]
    if url.startswith('http://'):
        return 'ws://' + url[len('http://'):]
    return url


class HubTransport(QObject):
    """
    Abstract text transport.

    Signals:
        opened: The link is up and frames can be sent.
        closed: The link went down or failed to come up; carries a reason.
            Emitted exactly once per open().
        text_received: A text message arrived.
    """

    opened = pyqtSignal()
    closed = pyqtSignal(str)  # reason
    text_received = pyqtSignal(str)

    def open(self, url: str):
        raise NotImplementedError

    def close(self):
        raise NotImplementedError

    def send_text(self, text: str) -> bool:
        raise NotImplementedError

    def is_open(self) -> bool:
        raise NotImplementedError


class WebSocketTransport(HubTransport):
    """HubTransport backed by QWebSocket."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._socket = QWebSocket()
        self._socket.setParent(self)
        self._closing = False
        self._active = False
        self._error_text = ""

        self._socket.connected.connect(self._on_connected)
        self._socket.disconnected.connect(self._on_disconnected)
        self._socket.textMessageReceived.connect(self.text_received)
        self._socket.errorOccurred.connect(self._on_error)

    def open(self, url: str):
        """Start opening the socket; the outcome arrives as opened or closed."""
        ws_url = to_websocket_url(url)
        logger.debug("Opening WebSocket %s", ws_url)
        self._closing = False
        self._active = True
        self._error_text = ""
        self._socket.open(QUrl(ws_url))

    def close(self):
        """Drop the socket immediately; closed is emitted before this returns."""
        self._closing = True
        if self._socket.state() != QAbstractSocket.SocketState.UnconnectedState:
            self._socket.abort()
        self._finish("closed by client")

    def send_text(self, text: str) -> bool:
        if not self.is_open():
            return False
        return self._socket.sendTextMessage(text) > 0

    def is_open(self) -> bool:
        return self._socket.state() == QAbstractSocket.SocketState.ConnectedState

    def _finish(self, reason: str):
        if not self._active:
            return
        self._active = False
        logger.debug("WebSocket down: %s", reason)
        self.closed.emit(reason)

    def _on_connected(self):
        logger.debug("WebSocket connected")
        self.opened.emit()

    def _on_disconnected(self):
        if self._closing:
            self._finish("closed by client")
            return
        # disconnected can arrive before errorOccurred, so read the socket error here
        if not self._error_text and self._socket.error() != QAbstractSocket.SocketError.UnknownSocketError:
            self._error_text = self._socket.errorString()
        self._finish(self._error_text or self._socket.closeReason() or "connection closed")

    def _on_error(self, error):
        if self._closing:
            return
        self._error_text = self._socket.errorString()
        logger.debug("WebSocket error %s: %s", error, self._error_text)
        # Whichever of errorOccurred and disconnected comes first closes the link
        if self._socket.state() == QAbstractSocket.SocketState.UnconnectedState:
            self._finish(self._error_text)
