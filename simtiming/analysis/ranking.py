"""
ranking.py

Live overall and in-class positions.

In a race the running order comes from distance travelled (laps + lap fraction).
In practice and qualifying the posted result order is used as-is, since distance
says nothing about who is fastest.
"""

from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

from simrace_core.model import Driver, EventType


def _result_sort_key(driver: Driver):
    pos = driver.results.current.position
    return (pos is None, pos if pos is not None else 0)


def _live_sort_key(driver: Driver):
    pos = driver.live.position
    return (pos is None, pos if pos is not None else 0)


def running_order(drivers: Sequence[Driver]) -> List[Driver]:
    """Drivers sorted by live position; drivers without one go last, stable."""
    return sorted(drivers, key=_live_sort_key)


def compute_live_positions(
    drivers: Sequence[Driver],
    event_type: EventType,
) -> Optional[Driver]:
    """Assign ``live.position`` / ``live.class_position`` and return the leader."""
    leader: Optional[Driver] = None

    if event_type == EventType.RACE:
        # sorted() is stable: ties keep roster order
        ordered = sorted(drivers, key=lambda d: d.live.total_lap_distance, reverse=True)
        for pos, driver in enumerate(ordered, start=1):
            if pos == 1:
                leader = driver
            driver.live.position = pos

        classes: Dict[int, List[Driver]] = OrderedDict()
        for driver in drivers:
            classes.setdefault(driver.car.class_id, []).append(driver)

        for members in classes.values():
            for pos, driver in enumerate(running_order(members), start=1):
                driver.live.class_position = pos
    else:
        for driver in sorted(drivers, key=_result_sort_key):
            if leader is None and driver.results.current.position is not None:
                leader = driver
            driver.live.position = driver.results.current.position
            driver.live.class_position = driver.results.current.class_position

    return leader


def leader_lap(leader: Optional[Driver]) -> Optional[int]:
    """Lap the leader is currently on, from its posted laps completed."""
    if leader is None:
        return None
    laps = leader.results.current.laps_complete
    if laps is None:
        return None
    return laps + 1
