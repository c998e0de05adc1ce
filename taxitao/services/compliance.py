import math
from datetime import date, datetime, timezone
from taxitao.schemas.schemas import Driver

# (type, attribute, title, alert window, critical within, warning within) in days
CHECKS = [
    ("insurance", "insurance_expiry", "Insurance Expiry", 30, 7, 14),
    ("license", "license_expiry", "License Renewal", 60, 14, 30),
    ("inspection", "vehicle_inspection_due", "Vehicle Inspection", 30, 7, 14),
]


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def days_until_expiry(expiry: date | datetime, today: date | datetime | None = None) -> int:
    """Whole days left, 0 when due today and negative once overdue."""
    now = _as_datetime(today) if today is not None else datetime.now(timezone.utc)
    diff = _as_datetime(expiry) - now
    return math.ceil(diff.total_seconds() / 86400)


def format_days(n: int) -> str:
    if n < 0:
        overdue = abs(n)
        return f"{overdue} day overdue" if overdue == 1 else f"{overdue} days overdue"
    return "1 day" if n == 1 else f"{n} days"


def format_date(value: date | datetime) -> str:
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def describe_expiry(days: int, expiry: date | datetime) -> str:
    date_str = format_date(expiry)
    if days < 0:
        return f"Expired on {date_str}"
    if days == 0:
        return "Expires today!"
    if days == 1:
        return f"Expires tomorrow ({date_str})"
    return f"Expires in {format_days(days)} ({date_str})"


def compliance_alerts(driver: Driver, today: date | datetime | None = None) -> list[dict]:
    alerts = []
    for kind, attr, title, window, critical, warning in CHECKS:
        expiry = getattr(driver, attr)
        if not expiry:
            continue

        days = days_until_expiry(expiry, today)
        if days > window:
            continue

        if days <= critical:
            severity = "critical"
        elif days <= warning:
            severity = "warning"
        else:
            severity = "info"

        alerts.append({
            "type": kind,
            "title": title,
            "message": describe_expiry(days, expiry),
            "expiry_date": expiry.isoformat(),
            "days": days,
            "severity": severity,
        })
    return alerts
