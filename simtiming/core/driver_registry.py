"""
driver_registry.py

Keeps the slot -> Driver mapping in step with the roster section of the session
document and detects driver swaps (a new competitor bound to an existing slot).
"""
import logging
log = logging.getLogger(__name__)

from typing import Dict, List, Optional

from simrace_core.events import DriverSwapEvent
from simrace_core.model import CarInfo, Driver
from simrace_core.session_document import SessionDocument

DEFAULT_MAX_SLOTS = 70


def roster_entry(document: SessionDocument, slot: int) -> SessionDocument:
    return document["DriverInfo"]["Drivers"]["CarIdx", slot]


def parse_dynamic_info(driver: Driver, entry: SessionDocument) -> None:
    """Re-read the identity fields that may change during a session."""
    driver.customer_id = entry["UserID"].try_get_int()
    driver.name = entry["UserName"].try_get_value() or ""
    driver.car_number = entry["CarNumber"].try_get_value() or driver.car_number
    driver.team_name = entry["TeamName"].try_get_value() or ""


def driver_from_session_info(document: SessionDocument, slot: int) -> Optional[Driver]:
    """Build a Driver for *slot*, or None if the roster has no entry for it."""
    entry = roster_entry(document, slot)
    if not entry.exists:
        return None

    driver = Driver(slot=slot, customer_id=None, name="")
    parse_dynamic_info(driver, entry)
    driver.car = CarInfo(
        class_id=entry["CarClassID"].try_get_int() or 0,
        class_name=entry["CarClassShortName"].try_get_value() or "",
    )
    return driver


class DriverRegistry:
    """
    Ordered list of drivers, one per occupied slot.

    ``reconciling`` is True while ``reconcile`` mutates the list; readers must not
    walk the list while it is set.
    """

    def __init__(self, max_slots: int = DEFAULT_MAX_SLOTS):
        self.max_slots = int(max_slots)
        self._drivers: List[Driver] = []
        self._by_slot: Dict[int, Driver] = {}
        self.reconciling = False

    @property
    def drivers(self) -> List[Driver]:
        return self._drivers

    def __len__(self) -> int:
        return len(self._drivers)

    def get(self, slot: int) -> Optional[Driver]:
        return self._by_slot.get(slot)

    def clear(self) -> None:
        self._drivers.clear()
        self._by_slot.clear()

    def reconcile(
        self,
        document: SessionDocument,
        session_time: Optional[float],
        reload: bool = False,
    ) -> List[DriverSwapEvent]:
        """
        Scan slots from 0 until the first one without a roster entry.
        Returns one DriverSwapEvent per slot whose competitor changed.
        """
        events: List[DriverSwapEvent] = []
        self.reconciling = True
        try:
            if reload:
                log.info(f"[DriverRegistry] reloading roster ({len(self._drivers)} drivers dropped)")
                self.clear()

            for slot in range(self.max_slots):
                driver = self._by_slot.get(slot)
                if driver is None:
                    driver = driver_from_session_info(document, slot)
                    if driver is None:
                        # end of roster
                        break
                    self._drivers.append(driver)
                    self._by_slot[slot] = driver
                    log.debug(f"[DriverRegistry] new driver {driver}")
                    continue

                entry = roster_entry(document, slot)
                if not entry.exists:
                    break

                old_id = driver.customer_id
                old_name = driver.name
                parse_dynamic_info(driver, entry)

                if old_id != driver.customer_id:
                    log.info(
                        f"[DriverRegistry] driver swap in slot {slot}: "
                        f"{old_name} ({old_id}) -> {driver.name} ({driver.customer_id})"
                    )
                    events.append(DriverSwapEvent(
                        session_time=session_time,
                        previous_id=old_id,
                        new_id=driver.customer_id,
                        previous_name=old_name,
                        new_name=driver.name,
                        slot=slot,
                        driver=driver,
                    ))
        finally:
            self.reconciling = False
        return events
