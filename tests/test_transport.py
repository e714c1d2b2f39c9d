import socket

from PyQt6.QtCore import QEventLoop, QTimer

from robot_console.hub.transport import WebSocketTransport


def unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        return sock.getsockname()[1]


def test_refused_connection_reports_socket_error():
    transport = WebSocketTransport()
    reasons = []
    loop = QEventLoop()
    guard = QTimer()
    guard.setSingleShot(True)
    guard.timeout.connect(loop.quit)
    transport.closed.connect(reasons.append)
    transport.closed.connect(loop.quit)

    transport.open(f"http://127.0.0.1:{unused_port()}/hubs/robot")
    if not reasons:
        guard.start(5000)
        loop.exec()
        guard.stop()

    assert len(reasons) == 1
    assert reasons[0]
    assert reasons[0] != "connection closed"


def test_close_by_client_emits_closed_once():
    transport = WebSocketTransport()
    reasons = []
    transport.closed.connect(reasons.append)

    transport.open(f"ws://127.0.0.1:{unused_port()}/hubs/robot")
    transport.close()
    transport.close()

    assert reasons == ["closed by client"]
    assert not transport.is_open()
