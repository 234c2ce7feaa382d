import pytest

pytest.importorskip("PyQt5")

from simtiming.core import config as config_facade
from simtiming.core import config_store as store_mod
from simtiming.core.config_backend import ConfigBackend
from simtiming.core.config_store import ConfigModel, ConfigStore


def _create_store(tmp_path, text: str = "[engine]\nupdate_hz = 20\n") -> ConfigStore:
    ini_path = tmp_path / "settings.ini"
    ini_path.write_text(text, encoding="utf-8")
    backend = ConfigBackend(str(ini_path))
    return ConfigStore(backend=backend)


def test_config_facade_returns_shared_instance(tmp_path, monkeypatch):
    store = _create_store(tmp_path)
    monkeypatch.setattr(store_mod, "_CONFIG_STORE", store)

    first = config_facade.Config()
    second = config_facade.Config.current()

    assert first is second is store.config
    assert config_facade.Config.store() is store


def test_values_parsed_from_ini(tmp_path):
    store = _create_store(
        tmp_path,
        "[engine]\nupdate_hz = 20\nmax_slots = 64\n"
        "[gaps]\nsample_interval = 0.5\nhistory_capacity = 100\ndecimals = 1\n"
        "[logging]\nlevel = debug\n",
    )
    cfg = store.config

    assert cfg.update_hz == 20.0
    assert cfg.max_slots == 64
    assert cfg.session_poll_ms == ConfigModel.session_poll_ms
    assert cfg.gap_sample_interval == 0.5
    assert cfg.gap_history_capacity == 100
    assert cfg.gap_decimals == 1
    assert cfg.log_level == "DEBUG"


def test_invalid_values_fall_back_to_defaults(tmp_path):
    store = _create_store(tmp_path, "[engine]\nupdate_hz = fast\nmax_slots = 0\n[gaps]\ndecimals = x\n")
    cfg = store.config

    assert cfg.update_hz == ConfigModel.update_hz
    assert cfg.max_slots == ConfigModel.max_slots
    assert cfg.gap_decimals == ConfigModel.gap_decimals


def test_store_emits_signal_on_save(tmp_path, monkeypatch):
    store = _create_store(tmp_path)
    monkeypatch.setattr(store_mod, "_CONFIG_STORE", store)

    config_events = []
    config_facade.Config.on_change(lambda cfg: config_events.append(cfg))

    config_facade.Config.update({"gaps": {"decimals": 2}})

    assert len(config_events) == 1
    assert store.config.gap_decimals == 2
    assert store.config.update_hz == 20.0


def test_load_reads_private_store(tmp_path, monkeypatch):
    shared = _create_store(tmp_path)
    monkeypatch.setattr(store_mod, "_CONFIG_STORE", shared)

    other = tmp_path / "other.ini"
    other.write_text("[gaps]\ndecimals = 1\n", encoding="utf-8")
    cfg = config_facade.Config.load(str(other))

    assert cfg.gap_decimals == 1
    assert shared.config.gap_decimals == ConfigModel.gap_decimals


def test_write_template_round_trips(tmp_path):
    path = tmp_path / "fresh" / "settings.ini"
    config_facade.Config.write_template(str(path))

    data = ConfigBackend(str(path)).load()
    assert data["engine"]["max_slots"] == "70"
    assert data["gaps"]["sample_interval"] == "0.25"
    assert data["logging"]["level"] == "INFO"
    assert config_facade.Config.load(str(path)) == ConfigModel()
