from datetime import date
from taxitao.schemas.schemas import Driver
from taxitao.services.compliance import (
    days_until_expiry, format_days, format_date, describe_expiry, compliance_alerts
)

TODAY = date(2026, 3, 1)


def test_days_until_expiry():
    assert days_until_expiry(date(2026, 3, 1), TODAY) == 0
    assert days_until_expiry(date(2026, 3, 11), TODAY) == 10
    assert days_until_expiry(date(2026, 2, 26), TODAY) == -3


def test_format_days():
    assert format_days(1) == "1 day"
    assert format_days(5) == "5 days"
    assert format_days(-1) == "1 day overdue"
    assert format_days(-3) == "3 days overdue"


def test_describe_expiry():
    expiry = date(2026, 3, 2)
    assert format_date(expiry) == "Mar 2, 2026"
    assert describe_expiry(0, expiry) == "Expires today!"
    assert describe_expiry(1, expiry) == "Expires tomorrow (Mar 2, 2026)"
    assert describe_expiry(12, expiry) == "Expires in 12 days (Mar 2, 2026)"
    assert describe_expiry(-2, expiry) == "Expired on Mar 2, 2026"


def test_compliance_alert_severities():
    driver = Driver(
        user_id="u1",
        name="John",
        slug="john",
        phone="+254711000000",
        email="john@example.com",
        insurance_expiry=date(2026, 3, 6),
        license_expiry=date(2026, 3, 21),
        vehicle_inspection_due=date(2026, 6, 1),
    )
    alerts = {a["type"]: a for a in compliance_alerts(driver, TODAY)}

    assert alerts["insurance"]["severity"] == "critical"
    assert alerts["insurance"]["days"] == 5
    assert alerts["license"]["severity"] == "warning"
    assert "inspection" not in alerts


def test_overdue_is_critical():
    driver = Driver(
        user_id="u1",
        name="John",
        slug="john",
        phone="+254711000000",
        email="john@example.com",
        license_expiry=date(2026, 1, 1),
    )
    [alert] = compliance_alerts(driver, TODAY)
    assert alert["severity"] == "critical"
    assert alert["message"] == "Expired on Jan 1, 2026"
