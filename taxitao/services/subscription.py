import logging
from datetime import datetime, timedelta, timezone
from sqlmodel import Session
from taxitao.schemas.schemas import Driver
from taxitao.services.utils import Utils

logger = logging.getLogger(__name__)
utils = Utils()

DUE_SOON_DAYS = 3
PAYMENT_DAY = 5


def _now(now: datetime | None) -> datetime:
    return utils.as_utc(now) if now else utils.now_utc()


def is_subscription_expired(next_payment_due: datetime | None, now: datetime | None = None) -> bool:
    if not next_payment_due:
        return True
    return _now(now) > utils.as_utc(next_payment_due)


def is_payment_due_soon(next_payment_due: datetime | None, now: datetime | None = None) -> bool:
    if not next_payment_due:
        return True
    return utils.as_utc(next_payment_due) <= _now(now) + timedelta(days=DUE_SOON_DAYS)


def next_payment_due_date(now: datetime | None = None) -> datetime:
    """5th of the month after ``now``."""
    current = _now(now)
    year, month = (current.year + 1, 1) if current.month == 12 else (current.year, current.month + 1)
    return datetime(year, month, PAYMENT_DAY, tzinfo=timezone.utc)


def format_period_covered(value: datetime | None = None) -> str:
    value = value or utils.now_utc()
    return f"{value.year}-{value.month:02d}"


def subscription_status(next_payment_due: datetime | None, now: datetime | None = None) -> str:
    if is_subscription_expired(next_payment_due, now):
        return "expired"
    if is_payment_due_soon(next_payment_due, now):
        return "pending"
    return "active"


def should_be_visible_to_public(status: str, active: bool) -> bool:
    return bool(active) and status == "active"


def record_payment(
    db: Session,
    driver: Driver,
    amount: float,
    reference: str | None = None,
    now: datetime | None = None
) -> Driver:
    paid_at = _now(now)
    driver.last_payment_date = paid_at
    driver.next_payment_due = next_payment_due_date(paid_at)
    driver.subscription_status = subscription_status(driver.next_payment_due, paid_at)
    driver.is_visible_to_public = should_be_visible_to_public(driver.subscription_status, driver.active)
    driver.payment_history = [
        *(driver.payment_history or []),
        {
            "amount": amount,
            "reference": reference,
            "periodCovered": format_period_covered(paid_at),
            "paidAt": paid_at.isoformat(),
        },
    ]
    db.add(driver)
    db.commit()
    db.refresh(driver)
    logger.info("Subscription payment recorded for driver %s", driver.id)
    return driver
