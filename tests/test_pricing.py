from datetime import datetime
import pytest
from taxitao.schemas.schemas import DriverPricing
from taxitao.services.pricing_service import calculate_fare, create_route_key
from taxitao.services.matching_service import calculate_match_score, get_recommendations, get_all_drivers_for_route
from conftest import headers_for

NOON = datetime(2026, 3, 2, 12, 0)

BASE = {"routePricing": {"machakos-masii": {"price": 3000}}}


def test_route_key_is_lower_case():
    assert create_route_key(" Machakos ", "Masii") == "machakos-masii"


def test_base_fare_both_directions():
    assert calculate_fare(BASE, "Machakos", "Masii", NOON) == 3000
    assert calculate_fare(BASE, "Masii", "Machakos", NOON) == 3000


def test_unknown_route_is_zero():
    assert calculate_fare(BASE, "Unknown", "Route", NOON) == 0
    assert calculate_fare(None, "Machakos", "Masii", NOON) == 0
    assert calculate_fare({"routePricing": {"machakos-masii": {"price": 0}}}, "Machakos", "Masii", NOON) == 0


def test_zone_surcharges():
    pricing = {
        **BASE,
        "specialZones": {
            "Airport": {"type": "airport", "surchargePercent": 20},
            "Estate": {"type": "estate", "flatSurcharge": 200},
        },
    }
    assert calculate_fare(pricing, "Machakos", "Masii", NOON) == 3800


@pytest.mark.parametrize("hour,minute,expected", [(22, 0, 4500), (5, 30, 4500), (12, 0, 3000)])
def test_night_shift_wraps_midnight(hour, minute, expected):
    pricing = {
        **BASE,
        "modifiers": {"nightShift": {"enabled": True, "startTime": "20:00", "endTime": "06:00", "multiplier": 1.5}},
    }
    at = datetime(2026, 3, 2, hour, minute)
    assert calculate_fare(pricing, "Machakos", "Masii", at) == expected


def test_holiday_and_peak_hours():
    pricing = {
        **BASE,
        "modifiers": {
            "holiday": {"enabled": True, "multiplier": 2.0},
            "peakHours": {"enabled": True, "timeSlots": [{"start": "07:00", "end": "09:00", "multiplier": 1.2}]},
        },
    }
    assert calculate_fare(pricing, "Machakos", "Masii", datetime(2026, 3, 2, 8, 0)) == 7200
    assert calculate_fare(pricing, "Machakos", "Masii", NOON) == 6000


def test_disabled_modifiers_are_ignored():
    pricing = {**BASE, "modifiers": {"holiday": {"enabled": False, "multiplier": 2.0}}}
    assert calculate_fare(pricing, "Machakos", "Masii", NOON) == 3000


def test_fare_rounds_half_up():
    pricing = {
        "route_pricing": {"a-b": {"price": 1001}},
        "modifiers": {"holiday": {"enabled": True, "multiplier": 1.5}},
    }
    assert calculate_fare(pricing, "A", "B", NOON) == 1502


def test_match_score_formula():
    match = {"price": 100, "rating": 5, "totalRides": 200, "matchType": "exact"}
    assert calculate_match_score(match, 100) == pytest.approx(60)
    assert calculate_match_score(match, 0) == pytest.approx(80)
    assert calculate_match_score({**match, "matchType": "nearby"}, 100) == pytest.approx(54)


def _priced(db, driver, routes):
    db.add(DriverPricing(driver_id=driver.id, route_pricing=routes))
    db.commit()


def test_recommendations(db, make_driver):
    cheap = make_driver(average_rating=4.0, total_rides=10)
    rated = make_driver(average_rating=4.8, total_rides=100)
    hub = make_driver(average_rating=5.0, total_rides=50)
    retired = make_driver(average_rating=5.0, active=False)

    _priced(db, cheap, {"nairobi-masii": {"price": 2000}})
    _priced(db, rated, {"nairobi-masii": {"price": 3000}})
    _priced(db, hub, {"nairobi-machakos town": {"price": 1500}})
    _priced(db, retired, {"nairobi-masii": {"price": 100}})

    result = get_recommendations(db, "Nairobi", "Masii")

    assert result["bestValue"]["driverId"] == rated.id
    assert result["bestValue"]["category"] == "best_value"
    assert result["lowestPrice"]["driverId"] == hub.id
    assert result["lowestPrice"]["matchType"] == "nearby"
    assert result["lowestPrice"]["viaLocation"] == "Machakos Town"
    assert result["bestRated"]["driverId"] == hub.id

    ranked = get_all_drivers_for_route(db, "Nairobi", "Masii")
    assert [m["driverId"] for m in ranked] == [rated.id, hub.id, cheap.id]


def test_no_matches(db):
    assert get_recommendations(db, "Nairobi", "Masii") == {"bestValue": None, "lowestPrice": None, "bestRated": None}


def test_driver_updates_pricing_and_gets_quote(client, make_driver, make_user, driver_headers):
    driver = make_driver()
    headers = driver_headers(driver)

    res = client.put(
        "/v1/pricing/me",
        json={"route_pricing": {"Machakos-Masii": {"price": 3000}}},
        headers=headers,
    )
    assert res.status_code == 200
    assert res.json()["route_pricing"] == {"machakos-masii": {"price": 3000.0}}

    customer = make_user()
    res = client.get(
        "/v1/pricing/quote",
        params={"driver_id": driver.id, "from": "Masii", "to": "Machakos"},
        headers=headers_for(customer),
    )
    assert res.status_code == 200
    assert res.json()["fare"] == 3000

    res = client.get("/v1/pricing/routes", params={"from": "Machakos", "to": "Masii"})
    assert res.status_code == 200
    assert res.json()[0]["driverId"] == driver.id

