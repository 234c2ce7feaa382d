"""
updater.py

SnapshotUpdater polls a SnapshotReader on two independent timers: telemetry at the
update frequency, the session document at a slower fixed interval. It emits
`telemetry_received` (TelemetrySnapshot), `session_received` (SessionDocument),
`connected`, `disconnected` and `error` (str).
"""
import logging
log = logging.getLogger(__name__)

from typing import Optional

from PyQt5 import QtCore

from simrace_core.reader import ReadError, SnapshotReader


class SnapshotUpdater(QtCore.QObject):
    """
    Usage:
      - create a reader and SnapshotUpdater(reader, update_hz, session_poll_ms)
      - connect signals, call start(); call stop() before tearing down
      - poll_once() drives one tick of both timers synchronously
    """
    telemetry_received = QtCore.pyqtSignal(object)  # TelemetrySnapshot
    session_received = QtCore.pyqtSignal(object)    # SessionDocument
    connected = QtCore.pyqtSignal()
    disconnected = QtCore.pyqtSignal()
    error = QtCore.pyqtSignal(str)

    def __init__(self, reader: SnapshotReader, update_hz: float = 10.0, session_poll_ms: int = 1000):
        super().__init__()
        self._reader = reader
        self._telemetry_ms = self._interval_from_hz(update_hz)
        self._session_ms = max(20, int(session_poll_ms))
        self._telemetry_timer: Optional[QtCore.QTimer] = None
        self._session_timer: Optional[QtCore.QTimer] = None
        self._running = False
        self._connected = False
        self._last_error_msg: Optional[str] = None

    @staticmethod
    def _interval_from_hz(hz: float) -> int:
        hz = float(hz)
        if hz <= 0:
            raise ValueError(f"update frequency must be positive, got {hz}")
        return max(1, int(round(1000.0 / hz)))

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def telemetry_interval_ms(self) -> int:
        return self._telemetry_ms

    @QtCore.pyqtSlot()
    def start(self):
        """Start both timers in the calling thread's event loop."""
        if self._running:
            return
        self._running = True
        self._last_error_msg = None
        log.info(f"[SnapshotUpdater] starting: telemetry every {self._telemetry_ms} ms, "
                 f"session every {self._session_ms} ms")

        self._telemetry_timer = QtCore.QTimer()
        self._telemetry_timer.setTimerType(QtCore.Qt.PreciseTimer)
        self._telemetry_timer.setInterval(self._telemetry_ms)
        self._telemetry_timer.timeout.connect(self._on_telemetry_tick)
        self._telemetry_timer.start()

        self._session_timer = QtCore.QTimer()
        self._session_timer.setInterval(self._session_ms)
        self._session_timer.timeout.connect(self._on_session_tick)
        self._session_timer.start()

    @QtCore.pyqtSlot()
    def stop(self):
        if not self._running and self._telemetry_timer is None:
            return
        self._running = False
        for timer in (self._telemetry_timer, self._session_timer):
            if timer is not None:
                timer.stop()
                timer.deleteLater()
        self._telemetry_timer = None
        self._session_timer = None
        log.info("[SnapshotUpdater] stopped")

    def set_update_frequency(self, hz: float) -> None:
        """Adjust the telemetry polling rate."""
        self._telemetry_ms = self._interval_from_hz(hz)
        if self._telemetry_timer is not None:
            self._telemetry_timer.setInterval(self._telemetry_ms)

    def poll_once(self) -> None:
        self._poll_telemetry()
        self._poll_session()

    def _on_telemetry_tick(self):
        if not self._running:
            return
        self._poll_telemetry()

    def _on_session_tick(self):
        if not self._running:
            return
        self._poll_session()

    def _poll_telemetry(self) -> None:
        try:
            telemetry = self._reader.read_telemetry()
        except ReadError as re:
            self._handle_read_error(re)
            return
        except Exception as e:
            # unexpected errors: report but keep polling
            self._emit_error_once(f"{type(e).__name__}: {e}")
            return

        if telemetry is None:
            return
        self._mark_connected()
        self.telemetry_received.emit(telemetry)

    def _poll_session(self) -> None:
        try:
            document = self._reader.read_session()
        except ReadError as re:
            self._handle_read_error(re)
            return
        except Exception as e:
            self._emit_error_once(f"{type(e).__name__}: {e}")
            return

        if document is None:
            return
        self._mark_connected()
        self.session_received.emit(document)

    # ------------------------------------------------------------------
    # Connection / error helpers
    # ------------------------------------------------------------------
    def _mark_connected(self) -> None:
        if self._last_error_msg is not None:
            log.info("[SnapshotUpdater] reads recovered")
            self._last_error_msg = None
        if not self._connected:
            self._connected = True
            self.connected.emit()

    def _emit_error_once(self, msg: str) -> None:
        if not msg:
            return
        if self._last_error_msg == msg:
            return
        self._last_error_msg = msg
        log.warning(f"[SnapshotUpdater] read failed: {msg}")
        self.error.emit(msg)

    def _handle_read_error(self, err: ReadError) -> None:
        self._emit_error_once(str(err))
        if err.disconnected and self._connected:
            self._connected = False
            self.disconnected.emit()
