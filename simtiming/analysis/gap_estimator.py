"""
gap_estimator.py

Estimates time gaps between cars from their track-position history.

Each slot keeps a ring buffer of (session_time, lap_fraction) samples taken at a fixed
cadence. The gap from car B to car A is "how long ago was A where B is now": the
two consecutive points of A (its samples plus its live position) that straddle B's
current position are linearly interpolated and the result subtracted from the
current session time.
"""
import logging
log = logging.getLogger(__name__)

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np


class GapEstimator:
    """
    Per-session position history for every car slot.
    - track_length_m: track length in metres (0 disables estimation)
    - sample_interval: minimum seconds between two samples of one slot
    - capacity: samples kept per slot; oldest are evicted first
    """

    def __init__(
        self,
        track_length_m: float,
        sample_interval: float = 0.25,
        capacity: int = 2048,
        max_slots: int = 70,
    ):
        if capacity < 2:
            raise ValueError(f"capacity must be >= 2, got {capacity}")
        self.track_length_m = float(track_length_m)
        self.sample_interval = max(0.0, float(sample_interval))
        self.capacity = int(capacity)
        self.max_slots = int(max_slots)

        self._times = np.zeros((self.max_slots, self.capacity), dtype=np.float64)
        self._positions = np.zeros((self.max_slots, self.capacity), dtype=np.float64)
        self._head = np.zeros(self.max_slots, dtype=np.int64)   # next write index
        self._count = np.zeros(self.max_slots, dtype=np.int64)
        self._current = np.full(self.max_slots, np.nan)
        self._now: Optional[float] = None

        log.debug(
            f"[GapEstimator] track={self.track_length_m:.0f}m interval={self.sample_interval}s "
            f"capacity={self.capacity} slots={self.max_slots}"
        )

    @property
    def session_time(self) -> Optional[float]:
        return self._now

    def sample_count(self, slot: int) -> int:
        if not 0 <= slot < self.max_slots:
            return 0
        return int(self._count[slot])

    def reset(self) -> None:
        self._head[:] = 0
        self._count[:] = 0
        self._current[:] = np.nan
        self._now = None

    def update(self, session_time: float, positions: Sequence[float]) -> None:
        """Record current positions and sample every slot whose cadence has elapsed."""
        now = float(session_time)
        self._now = now

        n = min(len(positions), self.max_slots)
        for slot in range(n):
            try:
                pos = float(positions[slot])
            except (TypeError, ValueError):
                pos = -1.0
            if pos < 0 or math.isnan(pos):
                # car not in world
                self._current[slot] = np.nan
                continue

            pos = pos % 1.0 if pos >= 1.0 else pos
            self._current[slot] = pos

            count = self._count[slot]
            if count:
                last_idx = (self._head[slot] - 1) % self.capacity
                last_time = self._times[slot, last_idx]
                if now < last_time:
                    # clock went backwards, history no longer comparable
                    self._head[slot] = 0
                    self._count[slot] = 0
                elif now - last_time < self.sample_interval or now == last_time:
                    continue

            head = self._head[slot]
            self._times[slot, head] = now
            self._positions[slot, head] = pos
            self._head[slot] = (head + 1) % self.capacity
            if self._count[slot] < self.capacity:
                self._count[slot] += 1

        for slot in range(n, self.max_slots):
            self._current[slot] = np.nan

    def _history(self, slot: int) -> Tuple[np.ndarray, np.ndarray]:
        """Samples of *slot* in chronological order."""
        count = int(self._count[slot])
        head = int(self._head[slot])
        idx = (np.arange(head - count, head)) % self.capacity
        return self._times[slot, idx], self._positions[slot, idx]

    def get_delta(self, slot_behind: int, slot_ahead: int) -> Optional[float]:
        """
        Seconds since *slot_ahead* was at *slot_behind*'s current position.
        The ahead car's live position counts as its newest point, so cars closer than
        one sample interval still get a gap. Returns None when no pair of points
        straddles that position.
        """
        if self._now is None or self.track_length_m <= 0:
            return None
        if not (0 <= slot_behind < self.max_slots and 0 <= slot_ahead < self.max_slots):
            return None
        if slot_behind == slot_ahead:
            return 0.0

        target = self._current[slot_behind]
        if math.isnan(target):
            return None

        times, positions = self._history(slot_ahead)
        live = self._current[slot_ahead]
        if not math.isnan(live) and (len(times) == 0 or times[-1] < self._now):
            times = np.append(times, self._now)
            positions = np.append(positions, live)
        if len(times) < 2:
            return None

        t0, t1 = times[:-1], times[1:]
        p0, p1 = positions[:-1], positions[1:]
        # a big drop is a start/finish crossing; a small one is the car going backwards
        wrapped = p0 - p1 >= 0.5
        usable = (p1 >= p0) | wrapped
        p1 = np.where(wrapped, p1 + 1.0, p1)

        at_target = usable & (p0 <= target) & (target <= p1)
        at_next_lap = usable & (p0 <= target + 1.0) & (target + 1.0 <= p1)
        hits = np.flatnonzero(at_target | at_next_lap)
        if hits.size == 0:
            return None

        k = hits[-1]  # newest segment wins
        candidate = target if at_target[k] else target + 1.0
        span = p1[k] - p0[k]
        if span == 0:
            t = t1[k]
        else:
            t = t0[k] + (candidate - p0[k]) / span * (t1[k] - t0[k])
        return max(0.0, float(self._now - t))

    def get_deltas(self, pairs: Sequence[Tuple[int, int]]) -> List[Optional[float]]:
        return [self.get_delta(behind, ahead) for behind, ahead in pairs]
