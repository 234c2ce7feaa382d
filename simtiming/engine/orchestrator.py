"""
orchestrator.py

Orchestrator owns the race state derived from the two snapshot streams.

Telemetry snapshots drive session-number tracking, live positions, gaps and pit
phases. Session documents drive static session data, the roster and posted
results. Every domain event goes out through the single ordered `event_raised`
signal.
"""
import logging
log = logging.getLogger(__name__)

from typing import List, Optional

from PyQt5 import QtCore

from simrace_core.events import (
    ConnectedEvent,
    DisconnectedEvent,
    PitStopEvent,
    PitStopPhase,
    RaceEvent,
    SessionInfoUpdatedEvent,
    StaticInfoChangedEvent,
    TelemetryUpdatedEvent,
)
from simrace_core.model import Driver, SessionData, TelemetrySnapshot
from simrace_core.session_document import SessionDocument
from simtiming.analysis.gap_estimator import GapEstimator
from simtiming.analysis.gap_utils import update_deltas
from simtiming.analysis.ranking import compute_live_positions, leader_lap, running_order
from simtiming.core.config_store import ConfigModel
from simtiming.core.driver_registry import DriverRegistry
from simtiming.core.pit_tracker import PitStopTracker
from simtiming.core.result_resolver import ResultResolver


class Orchestrator(QtCore.QObject):
    """
    Usage:
      - Orchestrator(source, cfg) where source is a SnapshotUpdater (or anything with
        the same signals and start/stop/set_update_frequency)
      - connect `event_raised`; call start(hz) / stop()
      - on_telemetry_snapshot / on_session_snapshot may also be called directly
    """
    event_raised = QtCore.pyqtSignal(object)  # RaceEvent

    def __init__(self, source=None, cfg: Optional[ConfigModel] = None, parent=None):
        super().__init__(parent)
        self._cfg = cfg or ConfigModel()
        self._source = None

        self._telemetry: Optional[TelemetrySnapshot] = None
        self._previous_telemetry: Optional[TelemetrySnapshot] = None
        self._session_info: Optional[SessionDocument] = None
        self._previous_session_info: Optional[SessionDocument] = None
        self._current_session_number: Optional[int] = None

        self._must_update_session_data = True
        self._must_reload_drivers = False
        self._suspended = False

        self._session_data = SessionData()
        self._registry = DriverRegistry(self._cfg.max_slots)
        self._resolver = ResultResolver(self._registry, self._session_data)
        self._pit_tracker = PitStopTracker()
        self._gap_estimator: Optional[GapEstimator] = None
        self._lock = QtCore.QMutex()

        self._last_error: Optional[str] = None
        self._error_count = 0

        if source is not None:
            self.attach_source(source)

    # --- read accessors -------------------------------------------------

    @property
    def telemetry(self) -> Optional[TelemetrySnapshot]:
        return self._telemetry

    @property
    def previous_telemetry(self) -> Optional[TelemetrySnapshot]:
        return self._previous_telemetry

    @property
    def session_info(self) -> Optional[SessionDocument]:
        return self._session_info

    @property
    def previous_session_info(self) -> Optional[SessionDocument]:
        return self._previous_session_info

    @property
    def session_data(self) -> SessionData:
        return self._session_data

    @property
    def current_session_number(self) -> Optional[int]:
        return self._current_session_number

    @property
    def drivers(self) -> List[Driver]:
        return list(self._registry.drivers)

    @property
    def gap_estimator(self) -> Optional[GapEstimator]:
        return self._gap_estimator

    @property
    def best_laps(self):
        return self._resolver.best_laps

    @property
    def last_error(self) -> Optional[str]:
        """Most recent distinct processing failure, None until one happens."""
        return self._last_error

    @property
    def error_count(self) -> int:
        """Consecutive passes that failed with last_error."""
        return self._error_count

    def running_order(self) -> List[Driver]:
        return running_order(self._registry.drivers)

    # --- lifecycle --------------------------------------------------------

    def attach_source(self, source) -> None:
        self._source = source
        source.telemetry_received.connect(self.on_telemetry_snapshot)
        source.session_received.connect(self.on_session_snapshot)
        source.connected.connect(self.on_connected)
        source.disconnected.connect(self.on_disconnected)

    def start(self, update_frequency_hz: float = 10.0) -> None:
        if self._source is None:
            raise RuntimeError("Orchestrator has no snapshot source attached")
        log.info(f"[Orchestrator] starting at {update_frequency_hz} Hz")
        self._source.stop()
        self._source.set_update_frequency(update_frequency_hz)
        self._source.start()

    def stop(self) -> None:
        if self._source is not None:
            self._source.stop()

    # --- inbound ------------------------------------------------------------

    @QtCore.pyqtSlot()
    def on_connected(self) -> None:
        self._suspended = False
        log.info("[Orchestrator] source connected")
        self._raise(ConnectedEvent(session_time=self._session_time()))

    @QtCore.pyqtSlot()
    def on_disconnected(self) -> None:
        self._suspended = True
        log.info("[Orchestrator] source disconnected, suspending updates")
        self._raise(DisconnectedEvent(session_time=self._session_time()))

    @QtCore.pyqtSlot(object)
    def on_telemetry_snapshot(self, telemetry: TelemetrySnapshot) -> None:
        if self._suspended:
            return
        try:
            self._process_telemetry(telemetry)
        except Exception as e:
            self._handle_error("telemetry", e)

    @QtCore.pyqtSlot(object)
    def on_session_snapshot(self, document: SessionDocument) -> None:
        if self._suspended:
            return
        try:
            self._process_session(document)
        except Exception as e:
            self._handle_error("session", e)

    def notify_pitstop(self, phase: PitStopPhase, driver: Driver) -> None:
        """Raise a pit-stop event detected outside the orchestrator."""
        self._raise(PitStopEvent(session_time=self._session_time(), phase=phase, driver=driver))

    # --- telemetry pass -------------------------------------------------------

    def _process_telemetry(self, telemetry: TelemetrySnapshot) -> None:
        self._previous_telemetry = self._telemetry
        self._telemetry = telemetry

        if self._current_session_number != telemetry.session_number:
            log.info(
                f"[Orchestrator] session changed {self._current_session_number} -> "
                f"{telemetry.session_number}"
            )
            self._must_update_session_data = True
            self._reset_session()
        self._current_session_number = telemetry.session_number

        self._session_data.update_state(telemetry.session_state)

        pit_events = self._update_driver_telemetry(telemetry)

        self._session_data.update_telemetry(telemetry)

        for event in pit_events:
            self._raise(event)
        self._raise(TelemetryUpdatedEvent(session_time=telemetry.session_time, telemetry=telemetry))

    def _reset_session(self) -> None:
        self._must_reload_drivers = True
        self._pit_tracker.reset()

    def _update_driver_telemetry(self, telemetry: TelemetrySnapshot) -> List[PitStopEvent]:
        # losing a tick is harmless; never wait on a reconciliation pass
        if not self._lock.tryLock():
            log.debug("[Orchestrator] reconciliation in progress, skipping telemetry pass")
            return []
        try:
            if self._registry.reconciling:
                return []

            drivers = self._registry.drivers
            track_length_km = self._session_data.track_length_km
            for driver in drivers:
                driver.update_live_info(telemetry)
                driver.live.calculate_speed(self._previous_telemetry, telemetry, driver.slot, track_length_km)

            leader = compute_live_positions(drivers, self._session_data.event_type)
            lap = leader_lap(leader)
            if lap is not None:
                self._session_data.leader_lap = lap

            self._update_time_delta(telemetry)
            return self._pit_tracker.update(telemetry, drivers)
        finally:
            self._lock.unlock()

    def _update_time_delta(self, telemetry: TelemetrySnapshot) -> None:
        if self._gap_estimator is None:
            return
        self._gap_estimator.update(telemetry.session_time, telemetry.car_idx_lap_dist_pct)
        update_deltas(self._gap_estimator, running_order(self._registry.drivers), self._cfg.gap_decimals)

    # --- session document pass ----------------------------------------------

    def _process_session(self, document: SessionDocument) -> None:
        self._previous_session_info = self._session_info
        self._session_info = document

        if self._current_session_number is None:
            log.debug("[Orchestrator] no telemetry yet, session document cached only")
            return

        if self._must_update_session_data:
            self._session_data.update_static(document, self._current_session_number)
            self._gap_estimator = GapEstimator(
                self._session_data.track_length_m,
                sample_interval=self._cfg.gap_sample_interval,
                capacity=self._cfg.gap_history_capacity,
                max_slots=self._cfg.max_slots,
            )
            self._must_update_session_data = False
            log.info(
                f"[Orchestrator] static info: {self._session_data.event_type.value} at "
                f"{self._session_data.track_name or '?'} ({self._session_data.track_length_km:.3f} km)"
            )
            self._raise(StaticInfoChangedEvent(session_time=self._session_time()))

        for event in self._update_driver_list(document):
            self._raise(event)

        self._raise(SessionInfoUpdatedEvent(session_time=self._session_time(), session_info=document))

    def _update_driver_list(self, document: SessionDocument) -> List[RaceEvent]:
        session_time = self._session_time()
        self._lock.lock()
        try:
            events: List[RaceEvent] = list(
                self._registry.reconcile(document, session_time, reload=self._must_reload_drivers)
            )
            self._must_reload_drivers = False
            events.extend(self._resolver.resolve(document, self._current_session_number, session_time))
        finally:
            self._lock.unlock()
        return events

    # --- helpers ------------------------------------------------------------------

    def _session_time(self) -> Optional[float]:
        return self._telemetry.session_time if self._telemetry is not None else None

    def _raise(self, event: RaceEvent) -> None:
        self.event_raised.emit(event)

    def _handle_error(self, where: str, err: Exception) -> None:
        msg = f"{where}: {type(err).__name__}: {err}"
        if msg != self._last_error:
            log.exception(f"[Orchestrator] {where} snapshot processing failed")
            self._last_error = msg
            self._error_count = 1
        else:
            # same failure again, no log spam
            self._error_count += 1
