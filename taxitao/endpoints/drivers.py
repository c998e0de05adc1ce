import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlmodel import select
from taxitao.core.db_session import SessionDep
from taxitao.core.http_client import TransportDep
from taxitao.models.driver import CreateDriver, UpdateDriver, DriverStatusUpdate, MpesaSettings, SubscriptionPayment, DriverResponse
from taxitao.schemas.schemas import Driver
from taxitao.services.utils import AuthHelpers
from taxitao.services import driver_service, subscription
from taxitao.services.carousel import DriverCarousel, filter_live_drivers, AUTOPLAY_SECONDS
from taxitao.services.compliance import compliance_alerts
from taxitao.services.mpesa import can_submit, build_mpesa_details
from taxitao.services.earnings_service import driver_dashboard
from taxitao.services.email_service import send_driver_email

logger = logging.getLogger(__name__)

auth = AuthHelpers()
router = APIRouter(prefix="/v1/drivers", tags=["Drivers"])


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=DriverResponse)
async def register_driver(
    db: SessionDep,
    driver_info: CreateDriver,
    user_data: dict = Depends(auth.verify_role(["customer", "driver"]))
):
    user = auth.get_current_user(db, user_data["sub"])
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return driver_service.register_driver(db, user, driver_info.model_dump())


@router.get("/public")
async def list_public_drivers(db: SessionDep, location: str | None = None) -> list[dict]:
    return [driver_service.public_profile(d) for d in driver_service.list_public_drivers(db, location)]


@router.get("/public/{driver_id}")
async def get_public_driver(driver_id: str, db: SessionDep) -> dict:
    driver = driver_service.get_driver_or_404(db, driver_id)
    if not driver.active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Driver not found")
    return driver_service.public_profile(driver)


@router.get("/live")
async def live_drivers(
    db: SessionDep,
    vehicle_type: str | None = None,
    index: int = Query(default=0, ge=0)
) -> dict:
    candidates = db.exec(
        select(Driver).where(Driver.status == "available", Driver.subscription_status == "active")
    ).all()
    drivers = filter_live_drivers(candidates, vehicle_type)

    carousel = DriverCarousel(len(drivers), index)
    position = carousel.peek()

    return {
        "drivers": [driver_service.public_profile(d) for d in drivers],
        "current": driver_service.public_profile(drivers[position["index"]]) if drivers else None,
        "autoplay_seconds": AUTOPLAY_SECONDS,
        **position,
    }


@router.get("/me", response_model=DriverResponse)
async def get_my_profile(db: SessionDep, user_data: dict = Depends(auth.verify_role(["driver"]))):
    return driver_service.get_driver_for_user(db, user_data["sub"])


@router.put("/me", response_model=DriverResponse)
async def update_my_profile(
    data: UpdateDriver,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["driver"]))
):
    driver = driver_service.get_driver_for_user(db, user_data["sub"])
    return driver_service.update_driver(db, driver, data.model_dump(exclude_unset=True))


@router.put("/me/status", response_model=DriverResponse)
async def set_my_status(
    data: DriverStatusUpdate,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["driver"]))
):
    driver = driver_service.get_driver_for_user(db, user_data["sub"])
    return driver_service.set_status(db, driver, data.status, data.current_location)


@router.put("/me/mpesa")
async def update_mpesa(
    data: MpesaSettings,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["driver"]))
) -> dict:
    fields = data.model_dump(exclude={"type"})
    if not can_submit(data.type, fields):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Fill in the required details for the selected payment type"
        )

    driver = driver_service.get_driver_for_user(db, user_data["sub"])
    driver.mpesa_details = build_mpesa_details(data.type, fields)
    db.add(driver)
    db.commit()
    db.refresh(driver)
    return {"mpesa_details": driver.mpesa_details}


@router.get("/me/dashboard")
async def my_dashboard(db: SessionDep, user_data: dict = Depends(auth.verify_role(["driver"]))) -> dict:
    driver = driver_service.get_driver_for_user(db, user_data["sub"])
    return {
        **driver_dashboard(db, driver),
        "subscription": {
            "status": driver.subscription_status,
            "next_payment_due": driver.next_payment_due,
            "due_soon": subscription.is_payment_due_soon(driver.next_payment_due),
        },
        "compliance": compliance_alerts(driver),
    }


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(driver_id: str, db: SessionDep):
    return driver_service.get_driver_or_404(db, driver_id)


@router.get("/{driver_id}/compliance")
async def driver_compliance(driver_id: str, db: SessionDep, request: Request) -> list[dict]:
    driver = driver_service.get_driver_or_404(db, driver_id)
    user = request.state.user
    role = (user.get("metadata") or {}).get("role")
    if role != "admin" and driver.user_id != user["sub"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not Authorized")
    return compliance_alerts(driver)


@router.post("/{driver_id}/subscription/payment", response_model=DriverResponse)
async def verify_subscription_payment(
    driver_id: str,
    payment: SubscriptionPayment,
    transport: TransportDep,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["admin"]))
):
    driver = driver_service.get_driver_or_404(db, driver_id)
    driver = subscription.record_payment(db, driver, payment.amount, payment.reference)

    await send_driver_email(
        "payment_verified",
        driver.email,
        driver.name,
        transport=transport,
        expiry_date=driver.next_payment_due,
    )
    return driver


@router.put("/{driver_id}/active", response_model=DriverResponse)
async def set_driver_active(
    driver_id: str,
    active: bool,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["admin"]))
):
    driver = driver_service.get_driver_or_404(db, driver_id)
    driver.active = active
    if not active:
        driver.status = "offline"
    return driver_service.refresh_visibility(db, driver)
