from simrace_core.model import Driver, SessionData, SessionResult
from simtiming.analysis.best_laps import BEST_PERSONAL, BEST_SESSION, BestLapTracker, format_lap_time


def _driver(slot, customer_id, name):
    return Driver(slot=slot, customer_id=customer_id, name=name)


def test_format_lap_time():
    assert format_lap_time(61.5) == "1:01.500"
    assert format_lap_time(9.25) == "0:09.250"
    assert format_lap_time(None) == ""
    assert format_lap_time(0) == ""


def test_personal_best_spans_sessions_and_qualifying():
    d = _driver(0, 7, "A")
    d.results.qualifying = SessionResult(fastest_time=60.9)
    d.results.update(0, SessionResult(session_number=0, fastest_time=61.4))
    d.results.update(1, SessionResult(session_number=1, fastest_time=61.2))

    tracker = BestLapTracker()
    tracker.update(d)
    assert tracker.get_personal_best(d) == 60.9


def test_personal_best_follows_competitor_not_slot():
    tracker = BestLapTracker()
    first = _driver(3, 1, "A")
    first.results.update(0, SessionResult(fastest_time=70.0))
    tracker.update(first)

    replacement = _driver(3, 2, "B")
    assert tracker.get_personal_best(replacement) is None


def test_classify_markers():
    session = SessionData()
    a = _driver(0, 1, "A")
    b = _driver(1, 2, "B")
    c = _driver(2, 3, "C")
    a.results.update(0, SessionResult(fastest_time=60.0))
    b.results.update(0, SessionResult(fastest_time=61.0))
    c.results.qualifying = SessionResult(fastest_time=59.0)
    c.results.update(0, SessionResult(fastest_time=62.0))

    tracker = BestLapTracker()
    for d in (a, b, c):
        tracker.update(d)
        session.update_fastest_lap(d.results.current.fastest_time, d)

    assert tracker.classify(a, session) == ("1:00.000", BEST_SESSION)
    assert tracker.classify(b, session) == ("1:01.000", BEST_PERSONAL)
    assert tracker.classify(c, session) == ("1:02.000", None)
    assert tracker.classify(_driver(3, 4, "D"), session) == ("", None)
