import logging
import math
from datetime import datetime
from sqlmodel import Session
from taxitao.schemas.schemas import DriverPricing
from taxitao.services.utils import Utils

logger = logging.getLogger(__name__)
utils = Utils()

PRICING_SECTIONS = (
    "route_pricing",
    "special_zones",
    "packages",
    "modifiers",
    "auto_accept_rules",
    "visibility",
)


def create_route_key(origin: str, destination: str) -> str:
    return f"{origin.strip().lower()}-{destination.strip().lower()}"


def empty_pricing(driver_id: str) -> DriverPricing:
    return DriverPricing(driver_id=driver_id, last_updated=utils.now_utc())


def get_driver_pricing(db: Session, driver_id: str) -> DriverPricing:
    """Stored pricing, or the empty structure when the driver has none yet."""
    return db.get(DriverPricing, driver_id) or empty_pricing(driver_id)


def update_pricing(db: Session, driver_id: str, changes: dict) -> DriverPricing:
    pricing = db.get(DriverPricing, driver_id) or empty_pricing(driver_id)

    # Top-level sections merge; JSON columns need a fresh object to be flushed
    for section in PRICING_SECTIONS:
        if section in changes and changes[section] is not None:
            setattr(pricing, section, {**(getattr(pricing, section) or {}), **changes[section]})

    pricing.last_updated = utils.now_utc()
    db.add(pricing)
    db.commit()
    db.refresh(pricing)
    logger.info("Pricing updated for driver %s", driver_id)
    return pricing


def _hour(value: str) -> float:
    return float(value.split(":")[0])


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_fare(pricing: DriverPricing | dict | None, origin: str, destination: str, at: datetime) -> int:
    """
    Fare in KES for a route, looked up in both directions.

    Zone surcharges apply first (percent, else flat), then the night
    shift, holiday and peak-hour multipliers for the time ``at``.
    """
    if pricing is None:
        return 0
    if isinstance(pricing, DriverPricing):
        routes = pricing.route_pricing or {}
        zones = pricing.special_zones or {}
        modifiers = pricing.modifiers or {}
    else:
        routes = pricing.get("route_pricing") or pricing.get("routePricing") or {}
        zones = pricing.get("special_zones") or pricing.get("specialZones") or {}
        modifiers = pricing.get("modifiers") or {}

    route = routes.get(create_route_key(origin, destination)) or routes.get(create_route_key(destination, origin))
    base = (route or {}).get("price") or 0
    if not base:
        return 0

    fare = float(base)

    for zone in zones.values():
        if zone.get("surchargePercent"):
            fare += fare * zone["surchargePercent"] / 100
        elif zone.get("flatSurcharge"):
            fare += zone["flatSurcharge"]

    time = at.hour + at.minute / 60

    night = modifiers.get("nightShift") or {}
    if night.get("enabled"):
        start, end = _hour(night["startTime"]), _hour(night["endTime"])
        if start <= time or time <= end:
            fare *= night["multiplier"]

    holiday = modifiers.get("holiday") or {}
    if holiday.get("enabled"):
        fare *= holiday["multiplier"]

    peak = modifiers.get("peakHours") or {}
    if peak.get("enabled"):
        for slot in peak.get("timeSlots") or []:
            if _hour(slot["start"]) <= time <= _hour(slot["end"]):
                fare *= slot["multiplier"]

    return _round_half_up(fare)
