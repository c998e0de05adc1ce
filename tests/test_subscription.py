from datetime import datetime, timezone
from taxitao.services import subscription

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def test_next_payment_due_is_fifth_of_next_month():
    assert subscription.next_payment_due_date(NOW) == datetime(2026, 4, 5, tzinfo=timezone.utc)
    december = datetime(2026, 12, 20, tzinfo=timezone.utc)
    assert subscription.next_payment_due_date(december) == datetime(2027, 1, 5, tzinfo=timezone.utc)


def test_status():
    assert subscription.subscription_status(None, NOW) == "expired"
    assert subscription.subscription_status(datetime(2026, 3, 9, tzinfo=timezone.utc), NOW) == "expired"
    assert subscription.subscription_status(datetime(2026, 3, 12, tzinfo=timezone.utc), NOW) == "pending"
    assert subscription.subscription_status(datetime(2026, 4, 5, tzinfo=timezone.utc), NOW) == "active"


def test_visibility():
    assert subscription.should_be_visible_to_public("active", True)
    assert not subscription.should_be_visible_to_public("active", False)
    assert not subscription.should_be_visible_to_public("pending", True)


def test_record_payment(db, make_driver):
    driver = make_driver(subscription_status="expired")
    driver = subscription.record_payment(db, driver, 1500, "QWE123XYZ", now=NOW)

    assert driver.subscription_status == "active"
    assert driver.is_visible_to_public
    assert driver.payment_history == [{
        "amount": 1500,
        "reference": "QWE123XYZ",
        "periodCovered": "2026-03",
        "paidAt": NOW.isoformat(),
    }]
