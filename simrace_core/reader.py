"""
reader.py

Interface of the acquisition collaborator. A reader hands out already-decoded
snapshots; connection handling and decoding of the simulator's native format live
behind it.
"""

from typing import Optional, Protocol

from simrace_core.model import TelemetrySnapshot
from simrace_core.session_document import SessionDocument


class ReadError(RuntimeError):
    """
    Raised when a snapshot cannot be read.
    disconnected=True means the simulator is gone, not merely a bad read.
    """

    def __init__(self, message: str, disconnected: bool = False):
        super().__init__(message)
        self.disconnected = disconnected


class SnapshotReader(Protocol):
    def read_telemetry(self) -> Optional[TelemetrySnapshot]:  # pragma: no cover - protocol only
        """Latest telemetry, or None when nothing new is available."""
        ...

    def read_session(self) -> Optional[SessionDocument]:  # pragma: no cover - protocol only
        """Latest session document if it changed since the last call, else None."""
        ...
