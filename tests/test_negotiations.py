from datetime import timedelta
import pytest
from fastapi import HTTPException
from sqlmodel import select
from taxitao.schemas.schemas import BookingRequest, DriverNotification, Negotiation, Notification
from taxitao.services import negotiation_service
from taxitao.services.utils import Utils
from conftest import headers_for

utils = Utils()


@pytest.fixture
def customer(make_user):
    return make_user(phone="+254712345678")


@pytest.fixture
def driver(make_driver):
    return make_driver()


@pytest.fixture
def negotiation(client, customer, driver):
    res = client.post(
        "/v1/bookings",
        json={
            "customer_name": "Jane Mwende",
            "customer_phone": "0712345678",
            "pickup_location": "Machakos Town",
            "destination": "Masii",
            "pickup_date": "2026-03-02",
            "pickup_time": "10:30",
            "estimated_price": 3000,
        },
        headers=headers_for(customer),
    )
    res = client.post(
        "/v1/negotiations",
        json={"booking_id": res.json()["id"], "driver_id": driver.id, "proposed_price": 2500},
        headers=headers_for(customer),
    )
    assert res.status_code == 201
    return res.json()


def test_open_negotiation(negotiation):
    assert negotiation["status"] == "pending"
    assert negotiation["initial_price"] == 3000
    assert negotiation["current_offer"] == 2500
    assert negotiation["messages"][0]["message"] == "Customer offered KES 2500"


def test_driver_counter_then_customer_accepts(client, db, negotiation, customer, driver, driver_headers):
    res = client.post(
        f"/v1/negotiations/{negotiation['id']}/counter",
        json={"price": 2800},
        headers=driver_headers(driver),
    )
    assert res.status_code == 200
    assert res.json()["status"] == "counter_offered"
    assert res.json()["current_offer"] == 2800
    assert res.json()["messages"][-1]["sender"] == "driver"

    fare_change = db.exec(select(Notification).where(Notification.type == "fare_change")).all()
    assert [n.recipient_id for n in fare_change] == [customer.id]

    res = client.post(f"/v1/negotiations/{negotiation['id']}/accept", headers=headers_for(customer))
    assert res.status_code == 200
    assert res.json()["status"] == "accepted"

    booking = db.get(BookingRequest, negotiation["booking_request_id"])
    assert booking.estimated_price == 2800

    accepted = db.exec(select(DriverNotification).where(DriverNotification.type == "fare_accepted")).all()
    assert [n.driver_id for n in accepted] == [driver.id]

    res = client.post(f"/v1/negotiations/{negotiation['id']}/decline", json={}, headers=headers_for(customer))
    assert res.status_code == 409


def test_driver_declines(client, negotiation, driver, driver_headers):
    res = client.post(
        f"/v1/negotiations/{negotiation['id']}/decline",
        json={"reason": "Too low"},
        headers=driver_headers(driver),
    )
    assert res.status_code == 200
    assert res.json()["status"] == "declined"
    assert res.json()["messages"][-1]["message"] == "Too low"


def test_outsider_is_refused(client, negotiation, make_driver, driver_headers):
    res = client.post(f"/v1/negotiations/{negotiation['id']}/accept", headers=driver_headers(make_driver()))
    assert res.status_code == 403


def test_expired_negotiation(client, db, negotiation, customer, driver, driver_headers):
    stored = db.get(Negotiation, negotiation["id"])
    stored.expires_at = utils.now_utc() - timedelta(minutes=1)
    db.add(stored)
    db.commit()

    assert client.get("/v1/negotiations/driver", headers=driver_headers(driver)).json() == []

    res = client.get(f"/v1/negotiations/{negotiation['id']}", headers=headers_for(customer))
    assert res.json()["status"] == "expired"

    res = client.post(f"/v1/negotiations/{negotiation['id']}/accept", headers=headers_for(customer))
    assert res.status_code == 409


def test_counter_offer_must_be_positive(db, negotiation):
    stored = db.get(Negotiation, negotiation["id"])
    with pytest.raises(HTTPException) as exc:
        negotiation_service.counter_offer(db, stored, "driver", 0)
    assert exc.value.status_code == 400
