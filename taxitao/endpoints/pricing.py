from fastapi import APIRouter, Depends, Query
from taxitao.core.db_session import SessionDep
from taxitao.models.pricing import UpdatePricing, PricingResponse, FareQuote
from taxitao.services.utils import AuthHelpers, Utils
from taxitao.services.driver_service import get_driver_for_user, get_driver_or_404
from taxitao.services import pricing_service, matching_service

auth = AuthHelpers()
utils = Utils()
router = APIRouter(prefix="/v1/pricing", tags=["Pricing"])


@router.get("/me", response_model=PricingResponse)
async def my_pricing(db: SessionDep, user_data: dict = Depends(auth.verify_role(["driver"]))):
    driver = get_driver_for_user(db, user_data["sub"])
    return pricing_service.get_driver_pricing(db, driver.id)


@router.put("/me", response_model=PricingResponse)
async def update_my_pricing(
    data: UpdatePricing,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["driver"]))
):
    driver = get_driver_for_user(db, user_data["sub"])
    changes = data.model_dump(exclude_unset=True)
    if changes.get("route_pricing"):
        # Lookups go through create_route_key, which lower-cases
        changes["route_pricing"] = {
            key.strip().lower(): value for key, value in changes["route_pricing"].items()
        }
    return pricing_service.update_pricing(db, driver.id, changes)


@router.get("/quote", response_model=FareQuote)
async def quote_fare(
    db: SessionDep,
    driver_id: str,
    origin: str = Query(alias="from"),
    destination: str = Query(alias="to"),
):
    get_driver_or_404(db, driver_id)
    pricing = pricing_service.get_driver_pricing(db, driver_id)
    now = utils.now_utc()
    return FareQuote(
        driver_id=driver_id,
        origin=origin,
        destination=destination,
        fare=pricing_service.calculate_fare(pricing, origin, destination, now),
        quoted_at=now,
    )


@router.get("/recommendations")
async def recommendations(
    db: SessionDep,
    origin: str = Query(alias="from"),
    destination: str = Query(alias="to"),
) -> dict:
    return matching_service.get_recommendations(db, origin, destination)


@router.get("/routes")
async def drivers_for_route(
    db: SessionDep,
    origin: str = Query(alias="from"),
    destination: str = Query(alias="to"),
) -> list[dict]:
    return matching_service.get_all_drivers_for_route(db, origin, destination)
