"""
best_laps.py

Tracks weekend personal bests per competitor and formats lap times for display.
The session-wide best lap lives in SessionData; this tracker only decides how a
driver's fastest time should be highlighted.
"""

from typing import Dict, Hashable, Optional, Tuple

from simrace_core.model import Driver, SessionData

BEST_SESSION = "session"
BEST_PERSONAL = "personal"


def format_lap_time(seconds: Optional[float]) -> str:
    """Format seconds as M:SS.sss ("" for unknown)."""
    if seconds is None or seconds <= 0:
        return ""
    minutes = int(seconds // 60)
    rest = seconds - minutes * 60
    return f"{minutes}:{rest:06.3f}"


def _identity(driver: Driver) -> Hashable:
    if driver.customer_id is not None:
        return ("id", driver.customer_id)
    return ("slot", driver.slot)


class BestLapTracker:
    """Best lap of each competitor over every session seen, including qualifying."""

    def __init__(self):
        self.personal_bests: Dict[Hashable, float] = {}

    def reset(self):
        self.personal_bests.clear()

    def update(self, driver: Driver) -> None:
        results = driver.results
        times = [r.fastest_time for r in results.sessions.values()]
        times.append(results.current.fastest_time)
        if results.qualifying is not None:
            times.append(results.qualifying.fastest_time)

        key = _identity(driver)
        for t in times:
            if t is None or t <= 0:
                continue
            prev = self.personal_bests.get(key)
            if prev is None or t < prev:
                self.personal_bests[key] = t

    def get_personal_best(self, driver: Driver) -> Optional[float]:
        return self.personal_bests.get(_identity(driver))

    def classify(self, driver: Driver, session: SessionData) -> Tuple[str, Optional[str]]:
        """
        Return (text, marker) for the driver's fastest lap of the current session.
        marker is BEST_SESSION for the session best, BEST_PERSONAL when it matches the
        competitor's best of the weekend, None otherwise.
        """
        t = driver.results.current.fastest_time
        txt = format_lap_time(t)
        if not txt:
            return "", None
        best = session.fastest_lap
        if best is not None and best.driver is driver and t == best.lap_time:
            return txt, BEST_SESSION
        if self.get_personal_best(driver) == t:
            return txt, BEST_PERSONAL
        return txt, None
