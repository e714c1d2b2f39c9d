"""
Async result handle for hub calls.

A PendingCall resolves exactly once. None as a result means the call never
reached a verdict (no connection, transport failure, timeout).
"""

from typing import Any, Callable, List

from PyQt6.QtCore import QObject, pyqtSignal


class PendingCall(QObject):
    """
    One outstanding request to the controller, in the spirit of QNetworkReply.

    Signals:
        finished: Emitted once with the result (None on failure).
    """

    finished = pyqtSignal(object)

    def __init__(self, target: str, parent=None):
        super().__init__(parent)
        self._target = target
        self._finished = False
        self._result: Any = None
        self._callbacks: List[Callable[[Any], None]] = []

    @classmethod
    def resolved(cls, target: str, result: Any) -> 'PendingCall':
        """A call that is already finished, used for fail-fast and idempotent paths."""
        call = cls(target)
        call.set_result(result)
        return call

    @property
    def target(self) -> str:
        """Hub method this call invoked."""
        return self._target

    def is_finished(self) -> bool:
        return self._finished

    def result(self) -> Any:
        """The result, or None while still pending."""
        return self._result

    def add_done_callback(self, callback: Callable[[Any], None]):
        """Call ``callback(result)`` when finished; immediately if already finished."""
        if self._finished:
            callback(self._result)
        else:
            self._callbacks.append(callback)

    def set_result(self, result: Any) -> bool:
        """Resolve the call. Returns False if it was already finished."""
        if self._finished:
            return False
        self._finished = True
        self._result = result
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(result)
        self.finished.emit(result)
        return True
