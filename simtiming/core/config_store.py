"""QObject-based singleton store for the engine settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Callable, Dict, Mapping, Optional, Tuple

from PyQt5 import QtCore

from simtiming.core.config_backend import (
    ENGINE_SECTION,
    GAPS_SECTION,
    LOGGING_SECTION,
    ConfigBackend,
)

log = logging.getLogger(__name__)


@dataclass
class ConfigModel:
    # Engine
    update_hz: float = 10.0
    session_poll_ms: int = 1000
    max_slots: int = 70

    # Gap estimator
    gap_sample_interval: float = 0.25
    gap_history_capacity: int = 2048
    gap_decimals: int = 3

    # Logging
    log_level: str = "INFO"


# model field -> (section, key, cast)
_OPTIONS: Dict[str, Tuple[str, str, Callable[[str], object]]] = {
    "update_hz": (ENGINE_SECTION, "update_hz", float),
    "session_poll_ms": (ENGINE_SECTION, "session_poll_ms", int),
    "max_slots": (ENGINE_SECTION, "max_slots", int),
    "gap_sample_interval": (GAPS_SECTION, "sample_interval", float),
    "gap_history_capacity": (GAPS_SECTION, "history_capacity", int),
    "gap_decimals": (GAPS_SECTION, "decimals", int),
    "log_level": (LOGGING_SECTION, "level", lambda v: v.strip().upper()),
}

# values that must be strictly positive
_POSITIVE = ("update_hz", "session_poll_ms", "max_slots", "gap_history_capacity")


class ConfigStore(QtCore.QObject):
    config_changed = QtCore.pyqtSignal(object)

    def __init__(self, backend: Optional[ConfigBackend] = None) -> None:
        super().__init__()
        self._backend = backend or ConfigBackend()
        self._config = ConfigModel()
        self.reload()

    @property
    def config(self) -> ConfigModel:
        return self._config

    @property
    def backend(self) -> ConfigBackend:
        return self._backend

    def reload(self) -> ConfigModel:
        data = self._backend.load()
        defaults = ConfigModel()
        cfg = ConfigModel()

        for name, (section, key, cast) in _OPTIONS.items():
            raw = self._backend.get_option(data, section, key)
            if raw is None:
                continue
            try:
                setattr(cfg, name, cast(raw))
            except ValueError:
                log.warning(f"[Config] invalid [{section}] {key} = {raw!r}; using {getattr(defaults, name)!r}")

        for name in _POSITIVE:
            if getattr(cfg, name) <= 0:
                log.warning(f"[Config] {name} must be positive, got {getattr(cfg, name)}; using default")
                setattr(cfg, name, getattr(defaults, name))

        self._config = cfg
        self.config_changed.emit(cfg)
        return cfg

    def save(self, section_updates: Mapping[str, Mapping[str, object]]) -> ConfigModel:
        self._backend.save(section_updates)
        return self.reload()

    def as_sections(self) -> Dict[str, Dict[str, str]]:
        """Current model in settings.ini layout, e.g. for writing a template file."""
        sections: Dict[str, Dict[str, str]] = {}
        for f in fields(ConfigModel):
            section, key, _ = _OPTIONS[f.name]
            sections.setdefault(section, {})[key] = str(getattr(self._config, f.name))
        return sections


_CONFIG_STORE: Optional[ConfigStore] = None


def get_config_store() -> ConfigStore:
    global _CONFIG_STORE
    if _CONFIG_STORE is None:
        _CONFIG_STORE = ConfigStore()
    return _CONFIG_STORE


__all__ = [
    "ConfigModel",
    "ConfigStore",
    "get_config_store",
]
