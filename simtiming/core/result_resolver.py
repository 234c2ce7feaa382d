"""
result_resolver.py

Reads posted qualifying and session standings from the session document and
applies them to the drivers in the registry.

Positions that are not posted yet are skipped and picked up on a later document.
Class positions are published 0-based by the simulator and stored 1-based here.
"""
import logging
log = logging.getLogger(__name__)

from typing import List, Optional

from simrace_core.events import FastestLapEvent, LeaderChangeEvent, RaceEvent
from simrace_core.model import SessionData, SessionResult
from simrace_core.session_document import SessionDocument
from simtiming.analysis.best_laps import BestLapTracker
from simtiming.core.driver_registry import DriverRegistry


def _positive_time(node: SessionDocument) -> Optional[float]:
    value = node.try_get_float()
    if value is None or value <= 0:
        return None
    return value


def _class_position(node: SessionDocument) -> Optional[int]:
    value = node.try_get_int()
    return value + 1 if value is not None and value >= 0 else None


def parse_qualifying_result(entry: SessionDocument, position: int) -> SessionResult:
    return SessionResult(
        position=position + 1,
        class_position=_class_position(entry["ClassPosition"]),
        fastest_time=_positive_time(entry["FastestTime"]),
        fastest_lap=entry["FastestLap"].try_get_int(),
    )


def parse_session_result(entry: SessionDocument, session_number: int, position: int) -> SessionResult:
    return SessionResult(
        session_number=session_number,
        position=position,
        class_position=_class_position(entry["ClassPosition"]),
        laps_complete=entry["LapsComplete"].try_get_int(),
        fastest_time=_positive_time(entry["FastestTime"]),
        last_time=_positive_time(entry["LastTime"]),
        fastest_lap=entry["FastestLap"].try_get_int(),
        incidents=entry["Incidents"].try_get_int(),
        reason_out=entry["ReasonOutStr"].try_get_value() or "",
    )


class ResultResolver:
    def __init__(
        self,
        registry: DriverRegistry,
        session_data: SessionData,
        best_laps: Optional[BestLapTracker] = None,
    ):
        self._registry = registry
        self._session_data = session_data
        self._best_laps = best_laps or BestLapTracker()

    @property
    def session_data(self) -> SessionData:
        return self._session_data

    @session_data.setter
    def session_data(self, value: SessionData) -> None:
        self._session_data = value

    @property
    def best_laps(self) -> BestLapTracker:
        return self._best_laps

    def resolve(
        self,
        document: SessionDocument,
        session_number: Optional[int],
        session_time: Optional[float],
    ) -> List[RaceEvent]:
        """
        Resolve qualifying and current-session standings.
        Does nothing without a session number or while the roster is being reconciled.
        """
        if self._registry.reconciling:
            log.debug("[ResultResolver] roster reconciliation in progress, skipping")
            return []
        if session_number is None:
            return []

        self.resolve_qualifying(document)
        return self.resolve_race(document, session_number, session_time)

    def resolve_qualifying(self, document: SessionDocument) -> int:
        """Apply QualifyResultsInfo; returns the number of drivers updated."""
        results = document["QualifyResultsInfo"]["Results"]
        updated = 0
        for position in range(len(self._registry)):
            entry = results["Position", position]
            slot = entry["CarIdx"].try_get_int()
            if slot is None:
                # not posted yet
                continue
            driver = self._registry.get(slot)
            if driver is None:
                continue
            driver.results.qualifying = parse_qualifying_result(entry, position)
            updated += 1
        return updated

    def resolve_race(
        self,
        document: SessionDocument,
        session_number: int,
        session_time: Optional[float],
    ) -> List[RaceEvent]:
        """
        Apply ResultsPositions of *session_number*. When *session_time* is known,
        returns leader-change and fastest-lap events in resolution order.
        """
        events: List[RaceEvent] = []
        results = document["SessionInfo"]["Sessions"]["SessionNum", session_number]["ResultsPositions"]

        for position in range(1, len(self._registry) + 1):
            entry = results["Position", position]
            slot = entry["CarIdx"].try_get_int()
            if slot is None:
                continue
            driver = self._registry.get(slot)
            if driver is None:
                continue

            previous_position = driver.results.current.class_position
            driver.results.update(session_number, parse_session_result(entry, session_number, position))
            self._best_laps.update(driver)

            if session_time is None:
                # no telemetry yet, nothing to stamp events with
                continue

            new_position = driver.results.current.class_position
            if previous_position is not None and previous_position > 1 and new_position == 1:
                log.info(f"[ResultResolver] new class leader: {driver.name} (slot {slot})")
                events.append(LeaderChangeEvent(session_time=session_time, driver=driver))

            best = self._session_data.update_fastest_lap(driver.results.current.fastest_time, driver)
            if best is not None:
                log.info(f"[ResultResolver] fastest lap {best.lap_time:.3f} by {driver.name}")
                events.append(FastestLapEvent(session_time=session_time, driver=driver, lap=best))

        return events
