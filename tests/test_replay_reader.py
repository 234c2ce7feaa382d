import pytest

from simrace_core.model import SessionState, TelemetrySnapshot
from simrace_core.reader import ReadError
from simrace_core.session_document import SessionDocument
from simtiming.replay.replay_reader import ReplayReader, SnapshotRecorder, telemetry_from_dict


def test_recorded_capture_plays_back_in_order(tmp_path, make_telemetry, make_document):
    path = tmp_path / "capture.jsonl"
    t0 = make_telemetry(
        1.5, [0.25, -1.0], laps=[2, 0],
        car_idx_on_pit_road=(False, True), session_time_remaining=600.0,
    )
    doc = make_document([(0, 7, "Dana", 1)])

    with SnapshotRecorder(str(path)) as rec:
        rec.record_telemetry(t0)
        rec.record_session(doc)

    replayed = list(ReplayReader(str(path)))

    assert len(replayed) == 2
    telemetry, document = replayed
    assert telemetry == t0
    assert isinstance(document, SessionDocument)
    assert document["DriverInfo"]["Drivers"]["CarIdx", 0]["UserName"].try_get_value() == "Dana"


def test_malformed_lines_are_skipped(tmp_path):
    path = tmp_path / "capture.jsonl"
    path.write_text(
        "\n".join([
            '{"type": "telemetry", "session_time": 1, "session_number": 0, "car_idx_lap_dist_pct": [0.5]}',
            "not json",
            '{"type": "weather"}',
            '{"type": "telemetry", "session_number": 0}',
            '{"type": "session", "data": []}',
            "",
            '{"type": "session", "data": {"WeekendInfo": {}}}',
        ]),
        encoding="utf-8",
    )
    reader = ReplayReader(str(path))
    replayed = list(reader)

    assert [type(s) for s in replayed] == [TelemetrySnapshot, SessionDocument]
    assert replayed[0].session_state == SessionState.INVALID
    assert reader.skipped_lines == 4


def test_reader_interface_buffers_documents_until_eof(tmp_path, make_telemetry, make_document):
    path = tmp_path / "capture.jsonl"
    with SnapshotRecorder(str(path)) as rec:
        rec.record_telemetry(make_telemetry(0.0, [0.1]))
        rec.record_session(make_document([(0, 1, "A", 1)]))
        rec.record_telemetry(make_telemetry(1.0, [0.2]))

    reader = ReplayReader(str(path))
    assert reader.read_session() is None
    assert reader.read_telemetry().session_time == 0.0
    assert reader.read_session() is None
    assert reader.read_telemetry().session_time == 1.0
    assert reader.read_session() is not None
    assert reader.read_session() is None

    with pytest.raises(ReadError) as excinfo:
        reader.read_telemetry()
    assert excinfo.value.disconnected


def test_telemetry_from_dict_optional_fields():
    snapshot = telemetry_from_dict({
        "session_time": "3.0",
        "session_number": 2,
        "session_state": 5,
        "car_idx_lap_dist_pct": [0.1],
    })
    assert snapshot.session_time == 3.0
    assert snapshot.session_state == SessionState.CHECKERED
    assert snapshot.car_idx_lap is None
    assert snapshot.session_time_remaining is None


def test_back_to_back_documents_are_all_delivered(tmp_path, make_telemetry, make_document):
    path = tmp_path / "capture.jsonl"
    with SnapshotRecorder(str(path)) as rec:
        rec.record_telemetry(make_telemetry(0.0, [0.1]))
        rec.record_session(make_document([(0, 1, "A", 1)]))
        rec.record_session(make_document([(0, 2, "B", 1)]))
        rec.record_session(make_document([(0, 3, "C", 1)]))
        rec.record_telemetry(make_telemetry(1.0, [0.2]))

    reader = ReplayReader(str(path))
    reader.read_telemetry()
    reader.read_telemetry()

    names = []
    document = reader.read_session()
    while document is not None:
        names.append(document["DriverInfo"]["Drivers"]["CarIdx", 0]["UserName"].try_get_value())
        document = reader.read_session()
    assert names == ["A", "B", "C"]
