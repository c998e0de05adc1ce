"""
Ride lifecycle: the single status table shared by every view and the
transition rules enforced on every write.

    pending -> confirmed -> en_route -> arrived -> in_progress -> completed

Any non-terminal status may also move to ``cancelled``. ``completed`` and
``cancelled`` are terminal.
"""
import enum
from typing import NamedTuple
from fastapi import HTTPException, status


class RideStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    EN_ROUTE = "en_route"
    ARRIVED = "arrived"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StatusBadge(NamedTuple):
    label: str
    color: str
    icon: str


STATUS_BADGES: dict[RideStatus, StatusBadge] = {
    RideStatus.PENDING: StatusBadge("Pending", "bg-gray-100 text-gray-800", "clock"),
    RideStatus.CONFIRMED: StatusBadge("Confirmed", "bg-blue-100 text-blue-800", "check-check"),
    RideStatus.EN_ROUTE: StatusBadge("Driver En Route", "bg-blue-500 text-white", "navigation"),
    RideStatus.ARRIVED: StatusBadge("Driver Arrived", "bg-purple-500 text-white", "map-pinned"),
    RideStatus.IN_PROGRESS: StatusBadge("Trip In Progress", "bg-green-500 text-white", "play"),
    RideStatus.COMPLETED: StatusBadge("Completed", "bg-gray-500 text-white", "check-check"),
    RideStatus.CANCELLED: StatusBadge("Cancelled", "bg-red-100 text-red-800", "clock"),
}

DEFAULT_BADGE = STATUS_BADGES[RideStatus.PENDING]

RIDE_SEQUENCE = [
    RideStatus.PENDING,
    RideStatus.CONFIRMED,
    RideStatus.EN_ROUTE,
    RideStatus.ARRIVED,
    RideStatus.IN_PROGRESS,
    RideStatus.COMPLETED,
]

TERMINAL = {RideStatus.COMPLETED, RideStatus.CANCELLED}

TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    current: {nxt, RideStatus.CANCELLED}
    for current, nxt in zip(RIDE_SEQUENCE, RIDE_SEQUENCE[1:])
}
TRANSITIONS[RideStatus.COMPLETED] = set()
TRANSITIONS[RideStatus.CANCELLED] = set()

STATUS_TIMESTAMPS: dict[RideStatus, str] = {
    RideStatus.CONFIRMED: "confirmed_at",
    RideStatus.EN_ROUTE: "en_route_at",
    RideStatus.ARRIVED: "arrived_at",
    RideStatus.IN_PROGRESS: "started_at",
    RideStatus.COMPLETED: "completed_at",
    RideStatus.CANCELLED: "cancelled_at",
}

STATUS_NOTIFICATIONS: dict[RideStatus, str] = {
    RideStatus.CONFIRMED: "ride_confirmed",
    RideStatus.EN_ROUTE: "driver_enroute",
    RideStatus.ARRIVED: "driver_arrived",
    RideStatus.IN_PROGRESS: "trip_started",
    RideStatus.COMPLETED: "trip_completed",
}


def parse_status(value) -> RideStatus | None:
    if isinstance(value, RideStatus):
        return value
    try:
        return RideStatus(value)
    except ValueError:
        return None


def status_badge(value) -> StatusBadge:
    """Display record for a ride status; unknown or empty values fall back to pending."""
    parsed = parse_status(value) if value else None
    if parsed is None:
        return DEFAULT_BADGE
    return STATUS_BADGES[parsed]


def can_transition(current, new) -> bool:
    cur = parse_status(current or RideStatus.PENDING)
    nxt = parse_status(new)
    if cur is None or nxt is None:
        return False
    return nxt in TRANSITIONS[cur]


def ensure_transition(current, new) -> RideStatus:
    nxt = parse_status(new)
    if nxt is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown ride status: {new!r}")
    if not can_transition(current, nxt):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot move ride from {current or 'pending'} to {nxt.value}"
        )
    return nxt


def ride_progress(booking) -> dict:
    badge = status_badge(booking.ride_status)
    progress = {
        "booking_id": booking.id,
        "ride_status": booking.ride_status or RideStatus.PENDING.value,
        "badge": badge._asdict(),
        "driver": None,
        "driver_location": booking.driver_location,
        "eta": None,
    }
    if booking.accepted_by:
        progress["driver"] = {
            "id": booking.accepted_by,
            "name": booking.driver_name,
            "phone": booking.driver_phone,
        }
    if booking.eta:
        progress["eta"] = {
            "minutes": booking.eta.get("minutes"),
            "distance": booking.eta.get("distance"),
        }
    return progress
