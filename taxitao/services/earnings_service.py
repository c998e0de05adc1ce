from datetime import datetime, timezone
from sqlmodel import Session, select, func
from taxitao.schemas.schemas import BookingRequest
from taxitao.services.utils import Utils

utils = Utils()


def _completed_earnings(db: Session, driver_id: str, start: datetime, end: datetime | None = None) -> float:
    stmt = select(func.coalesce(func.sum(BookingRequest.earnings), 0)).where(
        BookingRequest.accepted_by == driver_id,
        BookingRequest.status == "completed",
        BookingRequest.completed_at >= start,
    )
    if end is not None:
        stmt = stmt.where(BookingRequest.completed_at < end)
    return float(db.exec(stmt).one())


def _month_start(year: int, month: int) -> datetime:
    # Normalise month overflow in both directions
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1, tzinfo=timezone.utc)


def get_today_earnings(db: Session, driver_id: str, now: datetime | None = None) -> float:
    now = now or utils.now_utc()
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return _completed_earnings(db, driver_id, start)


def get_monthly_earnings(db: Session, driver_id: str, now: datetime | None = None) -> float:
    now = now or utils.now_utc()
    return _completed_earnings(db, driver_id, _month_start(now.year, now.month))


def get_earnings_history(db: Session, driver_id: str, months: int = 6, now: datetime | None = None) -> list[dict]:
    now = now or utils.now_utc()
    history = []
    for i in range(months - 1, -1, -1):
        start = _month_start(now.year, now.month - i)
        end = _month_start(now.year, now.month - i + 1)
        history.append({
            "month": start.strftime("%b"),
            "earnings": _completed_earnings(db, driver_id, start, end),
        })
    return history


def get_new_requests_count(db: Session, location: str) -> int:
    stmt = select(func.count(BookingRequest.id)).where(
        BookingRequest.status == "pending",
        BookingRequest.pickup_location == location,
    )
    return db.exec(stmt).one()


def get_active_trips_count(db: Session, driver_id: str) -> int:
    stmt = select(func.count(BookingRequest.id)).where(
        BookingRequest.accepted_by == driver_id,
        BookingRequest.status == "accepted",
    )
    return db.exec(stmt).one()


def driver_dashboard(db: Session, driver) -> dict:
    return {
        "today": get_today_earnings(db, driver.id),
        "this_month": get_monthly_earnings(db, driver.id),
        "history": get_earnings_history(db, driver.id),
        "new_requests": get_new_requests_count(db, driver.current_location) if driver.current_location else 0,
        "active_trips": get_active_trips_count(db, driver.id),
        "total_rides": driver.total_rides,
        "average_rating": driver.average_rating,
    }
