"""
events.py

Domain events raised by the orchestrator. Every event carries the session time at
which it was detected; consumers switch on ``kind``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from simrace_core.model import BestLap, Driver, TelemetrySnapshot
from simrace_core.session_document import SessionDocument


class EventKind(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    STATIC_INFO_CHANGED = "static_info_changed"
    SESSION_INFO_UPDATED = "session_info_updated"
    TELEMETRY_UPDATED = "telemetry_updated"
    DRIVER_SWAP = "driver_swap"
    PIT_STOP = "pit_stop"
    FASTEST_LAP = "fastest_lap"
    LEADER_CHANGE = "leader_change"


class PitStopPhase(str, Enum):
    ENTER_PIT_LANE = "enter_pit_lane"
    ENTER_PIT_STALL = "enter_pit_stall"
    EXIT_PIT_STALL = "exit_pit_stall"
    EXIT_PIT_LANE = "exit_pit_lane"


@dataclass(frozen=True)
class RaceEvent:
    session_time: Optional[float]

    kind = None  # overridden per subclass


@dataclass(frozen=True)
class ConnectedEvent(RaceEvent):
    kind = EventKind.CONNECTED


@dataclass(frozen=True)
class DisconnectedEvent(RaceEvent):
    kind = EventKind.DISCONNECTED


@dataclass(frozen=True)
class StaticInfoChangedEvent(RaceEvent):
    kind = EventKind.STATIC_INFO_CHANGED


@dataclass(frozen=True)
class SessionInfoUpdatedEvent(RaceEvent):
    session_info: SessionDocument
    kind = EventKind.SESSION_INFO_UPDATED


@dataclass(frozen=True)
class TelemetryUpdatedEvent(RaceEvent):
    telemetry: TelemetrySnapshot
    kind = EventKind.TELEMETRY_UPDATED


@dataclass(frozen=True)
class DriverSwapEvent(RaceEvent):
    previous_id: Optional[int]
    new_id: Optional[int]
    previous_name: str
    new_name: str
    slot: int
    driver: Driver
    kind = EventKind.DRIVER_SWAP


@dataclass(frozen=True)
class PitStopEvent(RaceEvent):
    phase: PitStopPhase
    driver: Driver
    kind = EventKind.PIT_STOP


@dataclass(frozen=True)
class FastestLapEvent(RaceEvent):
    driver: Driver
    lap: BestLap
    kind = EventKind.FASTEST_LAP


@dataclass(frozen=True)
class LeaderChangeEvent(RaceEvent):
    driver: Driver
    kind = EventKind.LEADER_CHANGE
