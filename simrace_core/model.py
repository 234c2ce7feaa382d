"""
model.py

Data models for drivers, telemetry snapshots and the per-session aggregate.

Telemetry snapshots are immutable; driver and session records are owned and
mutated by the orchestrator only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from simrace_core.session_document import SessionDocument


class SessionState(IntEnum):
    """Session state as reported by the simulator telemetry."""
    INVALID = 0
    GET_IN_CAR = 1
    WARMUP = 2
    PARADE_LAPS = 3
    RACING = 4
    CHECKERED = 5
    COOL_DOWN = 6

    @classmethod
    def parse(cls, value) -> "SessionState":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.INVALID


class EventType(str, Enum):
    UNKNOWN = "Unknown"
    PRACTICE = "Practice"
    QUALIFYING = "Qualifying"
    RACE = "Race"

    @classmethod
    def from_session_type(cls, session_type: Optional[str]) -> "EventType":
        """Map the simulator's free-form SessionType ("Lone Qualify", "Race", ...)."""
        if not session_type:
            return cls.UNKNOWN
        text = session_type.lower()
        if "race" in text:
            return cls.RACE
        if "qual" in text:
            return cls.QUALIFYING
        return cls.PRACTICE


@dataclass(frozen=True)
class TelemetrySnapshot:
    """
    Instantaneous telemetry for one polling instant.
    - session_time: seconds since session start (monotonic within a session)
    - session_number: index of the session inside the event weekend
    - car_idx_lap_dist_pct: lap fraction 0..1 per slot, negative when the car is not in the world
    - car_idx_lap: optional lap counter per slot
    - car_idx_on_pit_road / car_idx_in_pit_stall: optional pit flags per slot
    """
    session_time: float
    session_number: int
    session_state: SessionState
    car_idx_lap_dist_pct: Sequence[float]
    car_idx_lap: Optional[Sequence[int]] = None
    car_idx_on_pit_road: Optional[Sequence[bool]] = None
    car_idx_in_pit_stall: Optional[Sequence[bool]] = None
    session_time_remaining: Optional[float] = None

    def lap_dist_pct(self, slot: int) -> Optional[float]:
        """Lap fraction for *slot*, or None when unknown or off-world."""
        values = self.car_idx_lap_dist_pct
        if slot < 0 or slot >= len(values):
            return None
        try:
            value = float(values[slot])
        except (TypeError, ValueError):
            return None
        if value < 0 or value != value:
            return None
        return value

    def lap(self, slot: int) -> Optional[int]:
        values = self.car_idx_lap
        if values is None or slot < 0 or slot >= len(values):
            return None
        try:
            value = int(values[slot])
        except (TypeError, ValueError):
            return None
        return value if value >= 0 else None

    def on_pit_road(self, slot: int) -> Optional[bool]:
        values = self.car_idx_on_pit_road
        if values is None or slot < 0 or slot >= len(values):
            return None
        return bool(values[slot])

    def in_pit_stall(self, slot: int) -> Optional[bool]:
        values = self.car_idx_in_pit_stall
        if values is None or slot < 0 or slot >= len(values):
            return None
        return bool(values[slot])


@dataclass
class CarInfo:
    class_id: int = 0
    class_name: str = ""


@dataclass
class DriverLive:
    """
    Live values refreshed on every telemetry pass.
    delta_to_leader / delta_to_next: None when unavailable, "-" for the reference car.
    """
    lap: Optional[int] = None
    lap_distance: float = 0.0
    total_lap_distance: float = 0.0
    position: Optional[int] = None
    class_position: Optional[int] = None
    delta_to_leader: Optional[str] = None
    delta_to_next: Optional[str] = None
    speed_kph: Optional[float] = None
    on_pit_road: bool = False
    in_pit_stall: bool = False

    def calculate_speed(
        self,
        previous: Optional[TelemetrySnapshot],
        current: Optional[TelemetrySnapshot],
        slot: int,
        track_length_km: float,
    ) -> None:
        """Estimate speed from the lap fraction travelled between two snapshots."""
        if previous is None or current is None or track_length_km <= 0:
            self.speed_kph = None
            return

        dt = current.session_time - previous.session_time
        p0 = previous.lap_dist_pct(slot)
        p1 = current.lap_dist_pct(slot)
        if dt <= 0 or p0 is None or p1 is None:
            self.speed_kph = None
            return

        dp = p1 - p0
        # crossed the start/finish line
        if dp < -0.5:
            dp += 1.0
        if dp < 0:
            self.speed_kph = None
            return
        self.speed_kph = dp * track_length_km / (dt / 3600.0)


@dataclass
class SessionResult:
    """Posted standing of one driver in one session. Unknown values are None."""
    session_number: Optional[int] = None
    position: Optional[int] = None
    class_position: Optional[int] = None
    laps_complete: Optional[int] = None
    fastest_time: Optional[float] = None
    last_time: Optional[float] = None
    fastest_lap: Optional[int] = None
    incidents: Optional[int] = None
    reason_out: str = ""


@dataclass
class DriverResults:
    qualifying: Optional[SessionResult] = None
    sessions: Dict[int, SessionResult] = field(default_factory=dict)
    current: SessionResult = field(default_factory=SessionResult)

    def update(self, session_number: int, result: SessionResult) -> None:
        self.sessions[session_number] = result
        self.current = result


@dataclass(eq=False)
class Driver:
    """
    Single driver keyed by car slot.
    - slot: car index, stable for the session
    - customer_id: competitor identity bound to the slot (changes on a driver swap)
    """
    slot: int
    customer_id: Optional[int]
    name: str
    car_number: str = ""
    team_name: str = ""
    car: CarInfo = field(default_factory=CarInfo)
    live: DriverLive = field(default_factory=DriverLive)
    results: DriverResults = field(default_factory=DriverResults)

    def update_live_info(self, telemetry: TelemetrySnapshot) -> None:
        pct = telemetry.lap_dist_pct(self.slot)
        lap = telemetry.lap(self.slot)
        if lap is None:
            lap = self.results.current.laps_complete
        self.live.lap = lap
        if pct is not None:
            self.live.lap_distance = pct
        self.live.total_lap_distance = (lap or 0) + self.live.lap_distance

    def __repr__(self) -> str:
        return f"Driver(slot={self.slot}, customer_id={self.customer_id}, name={self.name!r})"


@dataclass(frozen=True)
class BestLap:
    driver: Driver
    lap_time: float


@dataclass
class SessionData:
    """
    Mutable per-session aggregate.
    - track_length_km / track_name / event_type: static, derived once per session
    - leader_lap: lap the current leader is on
    - fastest_lap: best lap seen so far in the session
    """
    track_length_km: float = 0.0
    track_name: str = ""
    event_type: EventType = EventType.UNKNOWN
    state: SessionState = SessionState.INVALID
    session_time: float = 0.0
    time_remaining: Optional[float] = None
    leader_lap: Optional[int] = None
    fastest_lap: Optional[BestLap] = None

    @property
    def track_length_m(self) -> float:
        return self.track_length_km * 1000.0

    def update_static(self, document: "SessionDocument", session_number: int) -> None:
        weekend = document["WeekendInfo"]
        length = weekend["TrackLength"].try_get_track_length_km()
        self.track_length_km = length if length is not None else 0.0
        self.track_name = weekend["TrackDisplayName"].try_get_value() or ""
        session = document["SessionInfo"]["Sessions"]["SessionNum", session_number]
        self.event_type = EventType.from_session_type(session["SessionType"].try_get_value())
        self.fastest_lap = None
        self.leader_lap = None

    def update_state(self, state: SessionState) -> None:
        self.state = state

    def update_telemetry(self, telemetry: TelemetrySnapshot) -> None:
        self.session_time = telemetry.session_time
        self.time_remaining = telemetry.session_time_remaining

    def update_fastest_lap(self, lap_time: Optional[float], driver: Driver) -> Optional[BestLap]:
        """Return the new BestLap if *lap_time* beats the session best, else None."""
        if lap_time is None or lap_time <= 0:
            return None
        if self.fastest_lap is not None and lap_time >= self.fastest_lap.lap_time:
            return None
        self.fastest_lap = BestLap(driver=driver, lap_time=lap_time)
        return self.fastest_lap
