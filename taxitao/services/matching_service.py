import logging
from sqlmodel import Session, select
from taxitao.schemas.schemas import Driver, DriverPricing
from taxitao.services.locations import get_nearby_hub
from taxitao.services.pricing_service import create_route_key

logger = logging.getLogger(__name__)

DEFAULT_RATING = 4.5
NEARBY_PENALTY = 0.9


def _vehicle_summary(driver: Driver) -> dict | None:
    if not driver.vehicles:
        return None
    vehicle = driver.vehicles[0]
    return {
        "make": vehicle.get("make"),
        "model": vehicle.get("model"),
        "type": vehicle.get("type"),
        "color": vehicle.get("color"),
        "carPhotoUrl": (vehicle.get("images") or [None])[0],
    }


def find_drivers_for_route(db: Session, origin: str, destination: str) -> list[dict]:
    """
    Active drivers with a priced route. An exact route wins; otherwise a
    route to the destination's hub counts as a ``nearby`` match.
    """
    exact_key = create_route_key(origin, destination)
    hub = get_nearby_hub(destination)
    hub_key = create_route_key(origin, hub) if hub else None

    rows = db.exec(
        select(Driver, DriverPricing)
        .join(DriverPricing, DriverPricing.driver_id == Driver.id)
        .where(Driver.active == True)  # noqa: E712
    ).all()

    matches = []
    for driver, pricing in rows:
        routes = pricing.route_pricing or {}
        route = routes.get(exact_key)
        match_type = "exact"
        via = None

        if not (route or {}).get("price") and hub_key:
            hub_route = routes.get(hub_key)
            if (hub_route or {}).get("price"):
                route = hub_route
                match_type = "nearby"
                via = hub

        if not (route or {}).get("price"):
            continue

        matches.append({
            "driverId": driver.id,
            "driverName": driver.name or "Unknown Driver",
            "rating": driver.average_rating or driver.rating or DEFAULT_RATING,
            "totalRides": driver.total_rides or 0,
            "price": route["price"],
            "matchScore": 0,
            "matchType": match_type,
            "viaLocation": via,
            "phone": driver.phone,
            "whatsapp": driver.whatsapp,
            "profilePhotoUrl": driver.profile_photo_url,
            "bio": driver.bio,
            "vehicle": _vehicle_summary(driver),
        })
    return matches


def calculate_match_score(match: dict, avg_price: float) -> float:
    """price 40%, rating 40%, experience 20%; nearby matches lose 10%."""
    price_score = max(0, 100 - (match["price"] / avg_price) * 100) if avg_price > 0 else 50
    rating_score = (match["rating"] / 5) * 100
    experience_score = min(100, match["totalRides"])

    score = price_score * 0.4 + rating_score * 0.4 + experience_score * 0.2
    if match["matchType"] == "nearby":
        score *= NEARBY_PENALTY
    return score


def _score(matches: list[dict]) -> list[dict]:
    if not matches:
        return matches
    avg_price = sum(m["price"] for m in matches) / len(matches)
    for m in matches:
        m["matchScore"] = calculate_match_score(m, avg_price)
    return matches


def get_recommendations(db: Session, origin: str, destination: str) -> dict:
    matches = _score(find_drivers_for_route(db, origin, destination))
    if not matches:
        return {"bestValue": None, "lowestPrice": None, "bestRated": None}

    best_value = dict(max(matches, key=lambda m: m["matchScore"]), category="best_value")
    lowest_price = dict(min(matches, key=lambda m: m["price"]), category="lowest_price")
    best_rated = dict(
        sorted(matches, key=lambda m: (-m["rating"], m["price"]))[0],
        category="best_rated",
    )

    return {"bestValue": best_value, "lowestPrice": lowest_price, "bestRated": best_rated}


def get_all_drivers_for_route(db: Session, origin: str, destination: str) -> list[dict]:
    matches = _score(find_drivers_for_route(db, origin, destination))
    return sorted(matches, key=lambda m: m["matchScore"], reverse=True)
