from __future__ import annotations
import logging
import threading

from PySide6 import QtCore

from .errors import SourceInitError
from .models import AlertEvent, Frame
from .monitor import Monitor

logger = logging.getLogger(__name__)


class QtRenderer(QtCore.QObject):
    """
    Renderer called on the monitor thread. Frames cross to the GUI thread
    as queued signals; while one frame is still unpainted, newer frames are
    dropped so a busy window never holds up sampling.
    """
    frame_ready     = QtCore.Signal(object)   # Frame
    alert_raised    = QtCore.Signal(object)   # AlertEvent
    status_ready    = QtCore.Signal(str)
    reset_requested = QtCore.Signal()

    def __init__(self):
        super().__init__()
        self._busy = threading.Event()
        self.dropped = 0

    def render(self, frame: Frame):
        if self._busy.is_set():
            self.dropped += 1
            return
        self._busy.set()
        self.frame_ready.emit(frame)

    @QtCore.Slot()
    def frame_consumed(self):
        """GUI side calls this once the frame is painted."""
        self._busy.clear()

    def reset(self):
        self._busy.clear()
        self.reset_requested.emit()

    def status(self, message: str):
        self.status_ready.emit(message)

    def on_alert(self, event: AlertEvent):
        self.alert_raised.emit(event)


class MonitorThread(QtCore.QThread):
    """Runs Monitor.run() so every aggregator stays on this one thread."""

    failed = QtCore.Signal(str)

    def __init__(self, monitor: Monitor):
        super().__init__()
        self.monitor = monitor
        self._stop = threading.Event()

    def run(self):
        try:
            self.monitor.run(self._stop)
        except SourceInitError as e:
            logger.error("Monitoring could not start: %s", e)
            self.failed.emit(str(e))

    def stop(self):
        """Graceful shutdown; returns once the loop has reached STOPPED."""
        self._stop.set()
        self.wait()
