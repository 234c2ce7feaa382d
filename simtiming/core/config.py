"""
Entry points to the engine settings.

``Config()`` is the ConfigModel of the process-wide store. ``Config.load(path)``
reads one specific settings.ini into a private store and leaves the shared one alone.
"""

from __future__ import annotations

from typing import Callable, Mapping

from simtiming.core.config_backend import ConfigBackend
from simtiming.core.config_store import ConfigModel, ConfigStore, get_config_store


class Config:
    def __new__(cls):
        return cls.current()

    @staticmethod
    def current() -> ConfigModel:
        return get_config_store().config

    @staticmethod
    def store() -> ConfigStore:
        return get_config_store()

    @staticmethod
    def load(ini_path: str) -> ConfigModel:
        return ConfigStore(ConfigBackend(ini_path)).config

    @staticmethod
    def on_change(callback: Callable[[ConfigModel], None]) -> None:
        get_config_store().config_changed.connect(callback)

    @staticmethod
    def update(section_updates: Mapping[str, Mapping[str, object]]) -> ConfigModel:
        """Write *section_updates* to the shared settings file and reload."""
        return get_config_store().save(section_updates)

    @staticmethod
    def write_template(ini_path: str) -> None:
        """Write the default settings to *ini_path*."""
        ConfigBackend(ini_path).save(ConfigStore(ConfigBackend(ini_path)).as_sections())


__all__ = ["Config", "ConfigModel"]
