import logging
import math
import httpx
from taxitao.core.config import Settings

logger = logging.getLogger(__name__)
settings = Settings()

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"

EARTH_RADIUS_KM = 6371


def calculate_distance(origin: dict, destination: dict) -> float:
    """Haversine distance in km, rounded to one decimal."""
    d_lat = math.radians(destination["lat"] - origin["lat"])
    d_lng = math.radians(destination["lng"] - origin["lng"])

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(origin["lat"]))
        * math.cos(math.radians(destination["lat"]))
        * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return round(EARTH_RADIUS_KM * c, 1)


def format_distance(km: float) -> str:
    if km < 1:
        return f"{round(km * 1000)} m"
    return f"{km:.1f} km"


def format_eta(minutes: int) -> str:
    if minutes < 1:
        return "Arriving now"
    if minutes == 1:
        return "1 min"
    if minutes < 60:
        return f"{minutes} mins"
    hours, mins = divmod(minutes, 60)
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


async def calculate_eta(
    origin: dict,
    destination: dict | str,
    transport: httpx.AsyncBaseTransport | None = None
) -> dict | None:
    """
    Driving ETA from the Distance Matrix API.

    ``destination`` may be coordinates or a free-text address. Returns
    ``{"minutes", "distance"}`` or None when the provider can't answer.
    """
    if not settings.GOOGLE_MAPS_API_KEY:
        logger.warning("GOOGLE_MAPS_API_KEY not configured, skipping ETA")
        return None

    if isinstance(destination, dict):
        dest = f"{destination['lat']},{destination['lng']}"
    else:
        dest = destination

    params = {
        "origins": f"{origin['lat']},{origin['lng']}",
        "destinations": dest,
        "mode": "driving",
        "key": settings.GOOGLE_MAPS_API_KEY,
    }

    try:
        async with httpx.AsyncClient(timeout=5.0, transport=transport) as client:
            resp = await client.get(DISTANCE_MATRIX_URL, params=params)
        body = resp.json()
    except httpx.HTTPError as e:
        logger.error(f"Distance Matrix request failed: {e}")
        return None
    except ValueError:
        logger.error("Distance Matrix returned invalid JSON")
        return None

    if body.get("status") != "OK":
        logger.error(f"Distance Matrix API error: {body.get('status')}")
        return None

    try:
        element = body["rows"][0]["elements"][0]
    except (KeyError, IndexError):
        return None

    if element.get("status") != "OK":
        return None

    return {
        "minutes": math.ceil(element["duration"]["value"] / 60),
        "distance": element["distance"]["text"],
    }
