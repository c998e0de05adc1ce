import asyncio
import logging
from typing import Callable, Iterable
from taxitao.schemas.schemas import Driver

logger = logging.getLogger(__name__)

AUTOPLAY_SECONDS = 5


def _first_vehicle(driver: Driver) -> dict:
    return (driver.vehicles or [{}])[0] or {}


def filter_live_drivers(drivers: Iterable[Driver], vehicle_type: str | None = None) -> list[Driver]:
    """Available drivers with an active subscription and a car photo, best rated first."""
    live = []
    for driver in drivers:
        if driver.status != "available" or driver.subscription_status != "active":
            continue
        vehicle = _first_vehicle(driver)
        if not (vehicle.get("images") or [None])[0]:
            continue
        if vehicle_type and vehicle.get("type") != vehicle_type:
            continue
        live.append(driver)

    live.sort(key=lambda d: d.average_rating or 0, reverse=True)
    return live


class DriverCarousel:

    def __init__(self, size: int, index: int = 0):
        self.size = max(size, 0)
        self.index = 0
        if self.size:
            self.index = index % self.size

    def next(self) -> int:
        if self.size:
            self.index = (self.index + 1) % self.size
        return self.index

    def prev(self) -> int:
        if self.size:
            self.index = (self.index - 1 + self.size) % self.size
        return self.index

    def tick(self) -> int:
        return self.next()

    def resize(self, size: int) -> int:
        self.size = max(size, 0)
        if not self.size:
            self.index = 0
        elif self.index >= self.size:
            self.index = self.size - 1
        return self.index

    def peek(self) -> dict:
        if not self.size:
            return {"index": 0, "next": 0, "prev": 0}
        return {
            "index": self.index,
            "next": (self.index + 1) % self.size,
            "prev": (self.index - 1 + self.size) % self.size,
        }

    async def autoplay(self, on_tick: Callable[[int], None], interval: float = AUTOPLAY_SECONDS):
        """Advance every ``interval`` seconds until cancelled. Does nothing while empty."""
        while True:
            await asyncio.sleep(interval)
            if self.size:
                on_tick(self.tick())
