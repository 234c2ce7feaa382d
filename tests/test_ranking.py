from simrace_core.model import Driver, EventType, SessionResult, CarInfo
from simtiming.analysis.ranking import compute_live_positions, leader_lap, running_order


def _driver(slot, total, class_id=1, laps=None):
    d = Driver(slot=slot, customer_id=slot, name=f"D{slot}", car=CarInfo(class_id=class_id))
    d.live.total_lap_distance = total
    if laps is not None:
        d.results.current = SessionResult(laps_complete=laps)
    return d


def test_race_rank_by_descending_distance():
    drivers = [_driver(0, 2.1), _driver(1, 5.3), _driver(2, 3.9), _driver(3, 0.4)]
    leader = compute_live_positions(drivers, EventType.RACE)

    assert leader is drivers[1]
    assert [d.live.position for d in drivers] == [3, 1, 2, 4]


def test_race_ties_keep_roster_order():
    drivers = [_driver(0, 1.5), _driver(1, 1.5), _driver(2, 1.5)]
    compute_live_positions(drivers, EventType.RACE)
    assert [d.live.position for d in drivers] == [1, 2, 3]


def test_class_positions_are_consistent_per_class():
    drivers = [
        _driver(0, 9.0, class_id=10),
        _driver(1, 8.0, class_id=20),
        _driver(2, 7.0, class_id=10),
        _driver(3, 6.0, class_id=20),
        _driver(4, 5.0, class_id=20),
    ]
    compute_live_positions(drivers, EventType.RACE)

    by_class = {}
    for d in drivers:
        by_class.setdefault(d.car.class_id, []).append(d)
    for members in by_class.values():
        ordered = sorted(members, key=lambda d: d.live.position)
        assert [d.live.class_position for d in ordered] == list(range(1, len(members) + 1))
    assert drivers[1].live.class_position == 1
    assert drivers[4].live.class_position == 3


def test_practice_copies_posted_results():
    a, b, c = _driver(0, 9.0), _driver(1, 1.0), _driver(2, 5.0)
    a.results.current = SessionResult(position=3, class_position=2)
    b.results.current = SessionResult(position=1, class_position=1)

    leader = compute_live_positions([a, b, c], EventType.QUALIFYING)

    assert leader is b
    assert (a.live.position, a.live.class_position) == (3, 2)
    assert (b.live.position, b.live.class_position) == (1, 1)
    assert c.live.position is None
    assert running_order([a, b, c]) == [b, a, c]


def test_leader_lap_from_laps_complete():
    assert leader_lap(_driver(0, 4.5, laps=4)) == 5
    assert leader_lap(_driver(0, 4.5)) is None
    assert leader_lap(None) is None
