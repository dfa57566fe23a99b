"""Recurring timers driving the session countdown."""

from __future__ import annotations

from typing import Callable, Protocol

from PySide6.QtCore import QTimer

from quizzer.constants.quiz_constants import TICK_INTERVAL_MS


class RecurringTimer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...

    def is_active(self) -> bool: ...


TimerFactory = Callable[[Callable[[], None]], RecurringTimer]


class QtRecurringTimer:
    """Calls ``callback`` every ``interval_ms`` on the Qt event loop.

    Ticks run on the thread owning the event loop, so they never interleave
    with other work scheduled on it. A cancelled timer cannot be restarted.
    """

    def __init__(self, callback: Callable[[], None], interval_ms: int = TICK_INTERVAL_MS) -> None:
        self._callback = callback
        self._timer: QTimer | None = QTimer()
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._callback)

    def start(self) -> None:
        if self._timer is None:
            raise RuntimeError("Timer has been cancelled.")
        if not self._timer.isActive():
            self._timer.start()

    def cancel(self) -> None:
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.timeout.disconnect(self._callback)
        self._timer = None

    def is_active(self) -> bool:
        return self._timer is not None and self._timer.isActive()


def create_qt_timer(callback: Callable[[], None]) -> RecurringTimer:
    return QtRecurringTimer(callback)
