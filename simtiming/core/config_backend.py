"""INI persistence for the engine settings (settings.ini)."""

from __future__ import annotations

import configparser
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

log = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.ini"

ENGINE_SECTION = "engine"
GAPS_SECTION = "gaps"
LOGGING_SECTION = "logging"


def default_settings_path() -> Path:
    """settings.ini next to the launched script."""
    return Path(os.path.dirname(sys.argv[0])) / SETTINGS_FILENAME


class ConfigBackend:
    """Reads and merges sections of one settings.ini; values stay strings here."""

    def __init__(self, ini_path: Optional[str] = None) -> None:
        self._path = Path(ini_path) if ini_path else default_settings_path()

    @property
    def path(self) -> Path:
        return self._path

    @staticmethod
    def _parser() -> configparser.ConfigParser:
        return configparser.ConfigParser(inline_comment_prefixes=(";", "#"))

    def load(self) -> Dict[str, Dict[str, str]]:
        parser = self._parser()
        if not parser.read(self._path, encoding="utf-8"):
            log.debug(f"[Config] {self._path} not found, using defaults")
        return {section: dict(parser.items(section)) for section in parser.sections()}

    def save(self, section_updates: Mapping[str, Mapping[str, Any]]) -> None:
        """Merge *section_updates* into the file, creating it if needed."""
        if not section_updates:
            return
        parser = self._parser()
        parser.read(self._path, encoding="utf-8")
        for section, values in section_updates.items():
            if not parser.has_section(section):
                parser.add_section(section)
            for key, value in values.items():
                parser.set(section, key, str(value))

        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            parser.write(f)
        log.info(f"[Config] saved {', '.join(section_updates)} to {self._path}")

    @staticmethod
    def get_option(
        data: Mapping[str, Mapping[str, str]],
        section: str,
        option: str,
        fallback: Optional[str] = None,
    ) -> Optional[str]:
        return data.get(section, {}).get(option, fallback)
