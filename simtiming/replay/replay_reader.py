"""
replay_reader.py

JSON-lines capture of snapshot streams, one object per line:

    {"type": "telemetry", "session_time": 12.0, "session_number": 0, "session_state": 4,
     "car_idx_lap_dist_pct": [0.1, 0.05], ...}
    {"type": "session", "data": {"DriverInfo": {...}, "SessionInfo": {...}}}

SnapshotRecorder writes captures from live snapshots; ReplayReader plays them back,
either in file order via iteration or through the SnapshotReader interface.
"""
import logging
log = logging.getLogger(__name__)

import json
import os
from collections import deque
from typing import Any, Deque, Dict, Iterator, Optional, TextIO, Union

from simrace_core.model import SessionState, TelemetrySnapshot
from simrace_core.reader import ReadError
from simrace_core.session_document import SessionDocument

Snapshot = Union[TelemetrySnapshot, SessionDocument]

_OPTIONAL_ARRAYS = ("car_idx_lap", "car_idx_on_pit_road", "car_idx_in_pit_stall")


def telemetry_from_dict(obj: Dict[str, Any]) -> TelemetrySnapshot:
    kwargs = {
        "session_time": float(obj["session_time"]),
        "session_number": int(obj["session_number"]),
        "session_state": SessionState.parse(obj.get("session_state", 0)),
        "car_idx_lap_dist_pct": tuple(float(v) for v in obj.get("car_idx_lap_dist_pct", ())),
    }
    for name in _OPTIONAL_ARRAYS:
        if obj.get(name) is not None:
            kwargs[name] = tuple(obj[name])
    if obj.get("session_time_remaining") is not None:
        kwargs["session_time_remaining"] = float(obj["session_time_remaining"])
    return TelemetrySnapshot(**kwargs)


def telemetry_to_dict(telemetry: TelemetrySnapshot) -> Dict[str, Any]:
    obj: Dict[str, Any] = {
        "type": "telemetry",
        "session_time": telemetry.session_time,
        "session_number": telemetry.session_number,
        "session_state": int(telemetry.session_state),
        "car_idx_lap_dist_pct": list(telemetry.car_idx_lap_dist_pct),
    }
    for name in _OPTIONAL_ARRAYS:
        values = getattr(telemetry, name)
        if values is not None:
            obj[name] = list(values)
    if telemetry.session_time_remaining is not None:
        obj["session_time_remaining"] = telemetry.session_time_remaining
    return obj


class ReplayReader:
    """Reads a capture file; malformed lines are logged and skipped."""

    def __init__(self, path: str):
        self.path = path
        self._iter: Optional[Iterator[Snapshot]] = None
        self._pending_sessions: Deque[SessionDocument] = deque()
        self._buffer: Deque[TelemetrySnapshot] = deque()
        self._exhausted = False
        self.skipped_lines = 0

    def __iter__(self) -> Iterator[Snapshot]:
        with open(self.path, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    snapshot = self._parse_line(line)
                except (ValueError, KeyError, TypeError) as e:
                    self.skipped_lines += 1
                    log.warning(f"[ReplayReader] {os.path.basename(self.path)}:{lineno} skipped: {e}")
                    continue
                yield snapshot

    def _parse_line(self, line: str) -> Snapshot:
        obj = json.loads(line)
        kind = obj.get("type")
        if kind == "telemetry":
            return telemetry_from_dict(obj)
        if kind == "session":
            data = obj["data"]
            if not isinstance(data, dict):
                raise TypeError("session data must be an object")
            return SessionDocument.from_mapping(data)
        raise ValueError(f"unknown snapshot type {kind!r}")

    # --- SnapshotReader interface ---------------------------------------

    def _advance(self) -> None:
        """Pull lines until a telemetry snapshot is buffered or the file ends."""
        if self._iter is None:
            self._iter = iter(self)
        while not self._buffer and not self._exhausted:
            snapshot = next(self._iter, None)
            if snapshot is None:
                self._exhausted = True
            elif isinstance(snapshot, SessionDocument):
                self._pending_sessions.append(snapshot)
            else:
                self._buffer.append(snapshot)

    def read_telemetry(self) -> Optional[TelemetrySnapshot]:
        self._advance()
        if self._buffer:
            return self._buffer.popleft()
        raise ReadError("end of replay", disconnected=True)

    def read_session(self) -> Optional[SessionDocument]:
        """Oldest document not yet handed out; consecutive documents are all kept."""
        if self._pending_sessions:
            return self._pending_sessions.popleft()
        return None


class SnapshotRecorder:
    """Appends snapshots to a capture file readable by ReplayReader."""

    def __init__(self, path: str):
        self.path = path
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        self._file: Optional[TextIO] = open(path, "w", encoding="utf-8")
        log.info(f"[SnapshotRecorder] recording to {path}")

    def record_telemetry(self, telemetry: TelemetrySnapshot) -> None:
        self._write(telemetry_to_dict(telemetry))

    def record_session(self, document: SessionDocument) -> None:
        self._write({"type": "session", "data": document.raw})

    def _write(self, obj: Dict[str, Any]) -> None:
        if self._file is None:
            return
        self._file.write(json.dumps(obj, separators=(",", ":")) + "\n")

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
