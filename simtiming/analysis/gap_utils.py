"""
gap_utils.py

Helpers for computing gap-to-leader / gap-to-next display strings.

Strings follow three conventions:
- "-" for the reference car (leader, or first car of a chain)
- "N L" when the cars are one or more laps apart
- the interpolated time gap with a fixed number of decimals otherwise
An unavailable gap is None, never "0.000".
"""

import math
from typing import List, Optional, Sequence

from simrace_core.model import Driver
from simtiming.analysis.gap_estimator import GapEstimator

NO_GAP = "-"


def format_delta(delta: Optional[float], decimals: int = 3) -> Optional[str]:
    if delta is None or math.isnan(delta):
        return None
    return f"{delta:.{decimals}f}"


def lap_gap_text(lap_diff: float) -> Optional[str]:
    """Whole-lap text for a positional gap of at least one lap, else None."""
    lap_diff = abs(lap_diff)
    if lap_diff < 1.0:
        return None
    return f"{int(math.floor(lap_diff))} L"


def gap_text(
    estimator: Optional[GapEstimator],
    behind: Driver,
    ahead: Driver,
    decimals: int = 3,
) -> Optional[str]:
    lapped = lap_gap_text(ahead.live.total_lap_distance - behind.live.total_lap_distance)
    if lapped is not None:
        return lapped
    if estimator is None:
        return None
    return format_delta(estimator.get_delta(behind.slot, ahead.slot), decimals)


def update_deltas(
    estimator: Optional[GapEstimator],
    ordered: Sequence[Driver],
    decimals: int = 3,
) -> None:
    """
    Fill ``live.delta_to_leader`` / ``live.delta_to_next`` for drivers in running order.
    ``ordered[0]`` is the reference car.
    """
    drivers: List[Driver] = list(ordered)
    if not drivers:
        return

    leader = drivers[0]
    leader.live.delta_to_leader = NO_GAP
    leader.live.delta_to_next = NO_GAP

    for i in range(1, len(drivers)):
        behind = drivers[i]
        ahead = drivers[i - 1]
        behind.live.delta_to_leader = gap_text(estimator, behind, leader, decimals)
        behind.live.delta_to_next = gap_text(estimator, behind, ahead, decimals)
