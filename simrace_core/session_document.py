"""
session_document.py

Read-only view over the hierarchical session document published by the simulator.

The document is the already-parsed YAML tree (nested dicts and lists). Lookups never
raise: a missing path yields a node whose ``exists`` is False, and every scalar
accessor on such a node returns None.

    doc["DriverInfo"]["Drivers"]["CarIdx", 3]["UserName"].try_get_value()
"""
from __future__ import annotations

import re
from typing import Any, Iterator, Mapping, Optional, Tuple, Union

_MISSING = object()
_LENGTH_RE = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)\s*(km|mi|m)?\s*$", re.IGNORECASE)

Key = Union[str, int, Tuple[str, Any]]


def _same_key(value: Any, wanted: Any) -> bool:
    if value == wanted:
        return True
    return str(value).strip() == str(wanted).strip()


class SessionDocument:
    """Immutable node in the session tree."""

    __slots__ = ("_data", "_path")

    def __init__(self, data: Any = _MISSING, path: str = ""):
        self._data = data
        self._path = path

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SessionDocument":
        return cls(data)

    @property
    def exists(self) -> bool:
        return self._data is not _MISSING and self._data is not None

    @property
    def path(self) -> str:
        return self._path

    @property
    def raw(self) -> Any:
        """Underlying parsed data (None when missing). Treat as read-only."""
        return None if self._data is _MISSING else self._data

    def __getitem__(self, key: Key) -> "SessionDocument":
        if isinstance(key, tuple):
            field_name, value = key
            return self.find(field_name, value)
        return self.child(key)

    def child(self, key: Union[str, int]) -> "SessionDocument":
        """Lookup by path segment: a mapping key or a list index."""
        path = f"{self._path}/{key}" if self._path else str(key)
        data = self._data
        if isinstance(data, Mapping):
            return SessionDocument(data.get(key, _MISSING), path)
        if isinstance(data, list) and isinstance(key, int) and 0 <= key < len(data):
            return SessionDocument(data[key], path)
        return SessionDocument(_MISSING, path)

    def find(self, field_name: str, value: Any) -> "SessionDocument":
        """Lookup by indexed key: the list element whose *field_name* equals *value*."""
        path = f"{self._path}[{field_name}={value}]"
        if value is None or not isinstance(self._data, list):
            return SessionDocument(_MISSING, path)
        for item in self._data:
            if isinstance(item, Mapping) and field_name in item and _same_key(item[field_name], value):
                return SessionDocument(item, path)
        return SessionDocument(_MISSING, path)

    def __iter__(self) -> Iterator["SessionDocument"]:
        if isinstance(self._data, list):
            for i in range(len(self._data)):
                yield self.child(i)

    def __len__(self) -> int:
        if isinstance(self._data, (list, Mapping)):
            return len(self._data)
        return 0

    # --- scalar access -------------------------------------------------

    def try_get_value(self) -> Optional[str]:
        """Scalar value as a stripped string, or None if missing or not a scalar."""
        data = self._data
        if data is _MISSING or data is None or isinstance(data, (Mapping, list)):
            return None
        return str(data).strip()

    def try_get_int(self) -> Optional[int]:
        text = self.try_get_value()
        if text is None:
            return None
        try:
            return int(text)
        except ValueError:
            try:
                f = float(text)
            except ValueError:
                return None
            return int(f) if f.is_integer() else None

    def try_get_float(self) -> Optional[float]:
        text = self.try_get_value()
        if text is None:
            return None
        try:
            return float(text)
        except ValueError:
            return None

    def try_get_track_length_km(self) -> Optional[float]:
        """Parse lengths such as "3.70 km", "2.5 mi" or "5891 m" into kilometres."""
        text = self.try_get_value()
        if text is None:
            return None
        m = _LENGTH_RE.match(text)
        if not m:
            return None
        value = float(m.group(1))
        unit = (m.group(2) or "km").lower()
        if unit == "mi":
            value *= 1.609344
        elif unit == "m":
            value /= 1000.0
        return value if value > 0 else None

    def __repr__(self) -> str:
        state = "" if self.exists else " (missing)"
        return f"SessionDocument({self._path or '<root>'}{state})"
