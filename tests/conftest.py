from typing import Iterable, Optional, Sequence, Tuple

import pytest

from simrace_core.model import SessionState, TelemetrySnapshot
from simrace_core.session_document import SessionDocument

# (slot, user_id, name, class_id)
RosterEntry = Tuple[int, int, str, int]
# (position, slot, class_position_0_based, laps_complete, fastest_time)
ResultEntry = Tuple[int, int, int, int, float]


def build_session_data(
    roster: Iterable[RosterEntry],
    results: Optional[Iterable[ResultEntry]] = None,
    qualifying: Optional[Iterable[Tuple[int, int, float]]] = None,
    session_num: int = 0,
    session_type: str = "Race",
    track_length: str = "1.00 km",
) -> dict:
    drivers = [
        {
            "CarIdx": slot,
            "UserID": user_id,
            "UserName": name,
            "CarNumber": str(slot + 1),
            "TeamName": f"Team {slot}",
            "CarClassID": class_id,
            "CarClassShortName": f"C{class_id}",
        }
        for slot, user_id, name, class_id in roster
    ]
    positions = [
        {
            "Position": pos,
            "CarIdx": slot,
            "ClassPosition": cls,
            "LapsComplete": laps,
            "FastestTime": fastest,
            "LastTime": fastest,
            "Incidents": 0,
            "ReasonOutStr": "Running",
        }
        for pos, slot, cls, laps, fastest in (results or [])
    ]
    data = {
        "WeekendInfo": {"TrackLength": track_length, "TrackDisplayName": "Test Ring"},
        "DriverInfo": {"Drivers": drivers},
        "SessionInfo": {
            "Sessions": [
                {
                    "SessionNum": session_num,
                    "SessionType": session_type,
                    "ResultsPositions": positions or None,
                }
            ]
        },
    }
    if qualifying is not None:
        data["QualifyResultsInfo"] = {
            "Results": [
                {"Position": pos, "CarIdx": slot, "ClassPosition": pos, "FastestTime": t}
                for pos, slot, t in qualifying
            ]
        }
    return data


def build_document(*args, **kwargs) -> SessionDocument:
    return SessionDocument.from_mapping(build_session_data(*args, **kwargs))


def build_telemetry(
    session_time: float,
    positions: Sequence[float],
    session_number: int = 0,
    state: SessionState = SessionState.RACING,
    laps: Optional[Sequence[int]] = None,
    **kwargs,
) -> TelemetrySnapshot:
    return TelemetrySnapshot(
        session_time=session_time,
        session_number=session_number,
        session_state=state,
        car_idx_lap_dist_pct=tuple(positions),
        car_idx_lap=tuple(laps) if laps is not None else None,
        **kwargs,
    )


@pytest.fixture
def make_document():
    return build_document


@pytest.fixture
def make_telemetry():
    return build_telemetry


@pytest.fixture
def three_car_roster():
    return [(0, 100, "Alice", 1), (1, 200, "Bob", 1), (2, 300, "Carol", 2)]
