import pytest

pytest.importorskip("PyQt5")

from PyQt5 import QtCore

from simrace_core.reader import ReadError
from simtiming.updater.updater import SnapshotUpdater


@pytest.fixture(scope="module")
def qapp():
    return QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])


class DummyReader:
    def __init__(self, telemetry=(), sessions=()):
        self.telemetry = list(telemetry)
        self.sessions = list(sessions)

    def read_telemetry(self):
        if not self.telemetry:
            return None
        item = self.telemetry.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def read_session(self):
        if not self.sessions:
            return None
        item = self.sessions.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _record(updater):
    seen = []
    updater.telemetry_received.connect(lambda t: seen.append(("telemetry", t)))
    updater.session_received.connect(lambda d: seen.append(("session", d)))
    updater.connected.connect(lambda: seen.append(("connected", None)))
    updater.disconnected.connect(lambda: seen.append(("disconnected", None)))
    updater.error.connect(lambda msg: seen.append(("error", msg)))
    return seen


def test_poll_once_emits_snapshots_and_connects_once(make_telemetry, make_document):
    t0 = make_telemetry(0.0, [0.1])
    t1 = make_telemetry(1.0, [0.2])
    doc = make_document([(0, 1, "A", 1)])
    updater = SnapshotUpdater(DummyReader([t0, t1], [doc]))
    seen = _record(updater)

    updater.poll_once()
    updater.poll_once()

    assert seen == [
        ("connected", None),
        ("telemetry", t0),
        ("session", doc),
        ("telemetry", t1),
    ]
    assert updater.is_connected


def test_nothing_new_emits_nothing():
    updater = SnapshotUpdater(DummyReader())
    seen = _record(updater)
    updater.poll_once()
    assert seen == []
    assert not updater.is_connected


def test_repeated_error_reported_once_until_recovery(make_telemetry):
    t0 = make_telemetry(0.0, [0.1])
    reader = DummyReader([ReadError("bad frame"), ReadError("bad frame"), t0, ReadError("bad frame")])
    updater = SnapshotUpdater(reader)
    seen = _record(updater)

    for _ in range(4):
        updater.poll_once()

    assert [kind for kind, _ in seen] == ["error", "connected", "telemetry", "error"]
    assert seen[0][1] == "bad frame"


def test_unexpected_exception_reported_as_error():
    updater = SnapshotUpdater(DummyReader(sessions=[KeyError("DriverInfo")]))
    seen = _record(updater)
    updater.poll_once()
    assert seen == [("error", "KeyError: 'DriverInfo'")]


def test_disconnect_after_connection(make_telemetry):
    reader = DummyReader([make_telemetry(0.0, [0.1]), ReadError("sim closed", disconnected=True)])
    updater = SnapshotUpdater(reader)
    seen = _record(updater)

    updater.poll_once()
    updater.poll_once()

    assert [kind for kind, _ in seen] == ["connected", "telemetry", "error", "disconnected"]
    assert not updater.is_connected


def test_update_frequency():
    updater = SnapshotUpdater(DummyReader(), update_hz=10)
    assert updater.telemetry_interval_ms == 100
    updater.set_update_frequency(60)
    assert updater.telemetry_interval_ms == 17

    with pytest.raises(ValueError):
        updater.set_update_frequency(0)
    with pytest.raises(ValueError):
        SnapshotUpdater(DummyReader(), update_hz=-1)


def test_start_and_stop(qapp):
    updater = SnapshotUpdater(DummyReader(), update_hz=50, session_poll_ms=200)
    updater.start()
    assert updater.is_running
    updater.set_update_frequency(25)
    assert updater.telemetry_interval_ms == 40
    updater.stop()
    assert not updater.is_running
