"""
pit_tracker.py

Derives pit-stop phases from the per-slot pit-road / pit-stall flags of consecutive
telemetry snapshots. The first snapshot only establishes the baseline.
"""

from typing import Dict, List, Sequence, Tuple

from simrace_core.events import PitStopEvent, PitStopPhase
from simrace_core.model import Driver, TelemetrySnapshot


class PitStopTracker:
    def __init__(self):
        self._last: Dict[int, Tuple[bool, bool]] = {}  # slot -> (on_pit_road, in_pit_stall)

    def reset(self) -> None:
        self._last.clear()

    def update(self, telemetry: TelemetrySnapshot, drivers: Sequence[Driver]) -> List[PitStopEvent]:
        events: List[PitStopEvent] = []
        if telemetry.car_idx_on_pit_road is None and telemetry.car_idx_in_pit_stall is None:
            return events

        t = telemetry.session_time
        for driver in drivers:
            on_road = telemetry.on_pit_road(driver.slot)
            in_stall = telemetry.in_pit_stall(driver.slot)
            if on_road is None and in_stall is None:
                continue
            in_stall = bool(in_stall)
            # a car in its stall is on pit road even if the flag lags
            on_road = bool(on_road) or in_stall

            driver.live.on_pit_road = on_road
            driver.live.in_pit_stall = in_stall

            previous = self._last.get(driver.slot)
            self._last[driver.slot] = (on_road, in_stall)
            if previous is None:
                continue
            was_on_road, was_in_stall = previous

            phases = []
            if on_road and not was_on_road:
                phases.append(PitStopPhase.ENTER_PIT_LANE)
            if in_stall and not was_in_stall:
                phases.append(PitStopPhase.ENTER_PIT_STALL)
            if was_in_stall and not in_stall:
                phases.append(PitStopPhase.EXIT_PIT_STALL)
            if was_on_road and not on_road:
                phases.append(PitStopPhase.EXIT_PIT_LANE)

            for phase in phases:
                events.append(PitStopEvent(session_time=t, phase=phase, driver=driver))
        return events
