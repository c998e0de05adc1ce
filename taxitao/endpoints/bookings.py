import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect, status

from taxitao.core.db_session import SessionDep, session_scope
from taxitao.core.http_client import TransportDep
from taxitao.models.booking import (
    CreateBooking,
    RideStatusUpdate,
    CompleteRide,
    RateRide,
    CancelBooking,
    LocationUpdate,
    EtaRequest,
    BookingResponse,
)
from taxitao.schemas.schemas import BookingRequest, Driver
from taxitao.services.utils import AuthHelpers
from taxitao.services.auth_errors import AuthError, auth_http_error
from taxitao.services import booking_service
from taxitao.services.driver_service import get_driver_for_user
from taxitao.services.live_query import LiveQuery
from taxitao.services.ride_status import ride_progress

logger = logging.getLogger(__name__)

auth = AuthHelpers()
router = APIRouter(prefix="/v1/bookings", tags=["Bookings"])

LIVE_POLL_SECONDS = 1.0
LIVE_MAX_FAILURES = 5


def _role(user: dict) -> str | None:
    return (user.get("metadata") or {}).get("role")


def _active_driver(db, user: dict) -> Driver:
    driver = get_driver_for_user(db, user["sub"])
    if driver.subscription_status != "active":
        raise auth_http_error(AuthError("permission-denied", "inactive subscription"))
    return driver


def _can_view(db, booking: BookingRequest, user: dict) -> bool:
    if _role(user) == "admin" or booking.customer_id == user["sub"]:
        return True
    if booking.accepted_by:
        driver = db.get(Driver, booking.accepted_by)
        return driver is not None and driver.user_id == user["sub"]
    return _role(user) == "driver"


def _get_visible_booking(db, booking_id: str, user: dict) -> BookingRequest:
    booking = booking_service.get_booking_or_404(db, booking_id)
    if not _can_view(db, booking, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not Authorized")
    return booking


@router.post("", status_code=status.HTTP_201_CREATED, response_model=BookingResponse)
async def create_booking(
    data: CreateBooking,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["customer", "admin"]))
):
    return booking_service.create_booking(db, data.model_dump(), user_data["sub"])


@router.get("/available", response_model=list[BookingResponse])
async def available_bookings(
    db: SessionDep,
    location: str | None = None,
    user_data: dict = Depends(auth.verify_role(["driver"]))
):
    driver = _active_driver(db, user_data)
    location = location or driver.current_location
    if not location:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Set your current location first")
    return booking_service.get_available_bookings(db, location)


@router.get("/mine", response_model=list[BookingResponse])
async def my_bookings(db: SessionDep, user_data: dict = Depends(auth.verify_role(["customer", "admin"]))):
    phone = (user_data.get("metadata") or {}).get("phone")
    return booking_service.get_customer_bookings(db, user_data["sub"], phone)


@router.get("/driver/active", response_model=list[BookingResponse])
async def driver_active(db: SessionDep, user_data: dict = Depends(auth.verify_role(["driver"]))):
    driver = get_driver_for_user(db, user_data["sub"])
    return booking_service.get_driver_active_bookings(db, driver.id)


@router.get("/driver/history", response_model=list[BookingResponse])
async def driver_history(db: SessionDep, user_data: dict = Depends(auth.verify_role(["driver"]))):
    driver = get_driver_for_user(db, user_data["sub"])
    return booking_service.get_driver_ride_history(db, driver.id)


@router.post("/expire")
async def expire_bookings(db: SessionDep, user_data: dict = Depends(auth.verify_role(["admin"]))) -> dict:
    return {"expired": booking_service.expire_stale_bookings(db)}


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: str, db: SessionDep, request: Request):
    return _get_visible_booking(db, booking_id, request.state.user)


@router.get("/{booking_id}/progress")
async def booking_progress(booking_id: str, db: SessionDep, request: Request) -> dict:
    return ride_progress(_get_visible_booking(db, booking_id, request.state.user))


@router.post("/{booking_id}/accept", response_model=BookingResponse)
async def accept_booking(booking_id: str, db: SessionDep, user_data: dict = Depends(auth.verify_role(["driver"]))):
    driver = _active_driver(db, user_data)
    return booking_service.accept_booking(db, booking_id, driver)


@router.put("/{booking_id}/status", response_model=BookingResponse)
async def update_status(
    booking_id: str,
    data: RideStatusUpdate,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["driver"]))
):
    driver = get_driver_for_user(db, user_data["sub"])
    return booking_service.update_ride_status(db, booking_id, driver, data.ride_status, data.fare)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_ride(
    booking_id: str,
    data: CompleteRide,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["driver"]))
):
    driver = get_driver_for_user(db, user_data["sub"])
    return booking_service.complete_ride(db, booking_id, driver, data.fare)


@router.post("/{booking_id}/rate", response_model=BookingResponse)
async def rate_ride(
    booking_id: str,
    data: RateRide,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["customer"]))
):
    return booking_service.rate_ride(db, booking_id, user_data["sub"], data.rating, data.review)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    data: CancelBooking,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["customer", "admin"]))
):
    return booking_service.cancel_booking(
        db, booking_id, user_data["sub"], data.reason, is_admin=_role(user_data) == "admin"
    )


@router.post("/{booking_id}/driver-cancel", response_model=BookingResponse)
async def driver_cancel_booking(
    booking_id: str,
    data: CancelBooking,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["driver"]))
):
    driver = get_driver_for_user(db, user_data["sub"])
    return booking_service.cancel_booking_by_driver(db, booking_id, driver, data.reason)


@router.put("/{booking_id}/location", response_model=BookingResponse)
async def update_location(
    booking_id: str,
    data: LocationUpdate,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["driver"]))
):
    driver = get_driver_for_user(db, user_data["sub"])
    destination = data.destination.model_dump() if data.destination else None
    return booking_service.update_driver_location(db, booking_id, driver, data.lat, data.lng, destination)


@router.post("/{booking_id}/eta", response_model=BookingResponse)
async def refresh_eta(booking_id: str, data: EtaRequest, db: SessionDep, request: Request, transport: TransportDep):
    _get_visible_booking(db, booking_id, request.state.user)
    destination = data.destination.model_dump() if data.destination else None
    return await booking_service.refresh_eta(db, booking_id, destination, transport=transport)


async def _drain(websocket: WebSocket):
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass


@router.websocket("/{booking_id}/live")
async def booking_live(websocket: WebSocket, booking_id: str, token: str):
    # The auth middleware only sees HTTP requests, so the socket checks its own token
    try:
        user = auth.decode_raw_token(token)
        with session_scope() as db:
            _get_visible_booking(db, booking_id, user)
    except HTTPException as e:
        logger.info("Live listener refused for booking %s: %s", booking_id, e.detail)
        await websocket.close(code=1008)
        return

    await websocket.accept()

    def snapshot():
        with session_scope() as db:
            booking = db.get(BookingRequest, booking_id)
            return booking_service.booking_snapshot(booking) if booking else None

    listener = LiveQuery(
        lambda: asyncio.to_thread(snapshot),
        websocket.send_json,
        interval=LIVE_POLL_SECONDS,
        max_failures=LIVE_MAX_FAILURES
    ).subscribe()
    receiver = asyncio.create_task(_drain(websocket))
    watcher = asyncio.create_task(listener.wait())
    try:
        done, _ = await asyncio.wait({receiver, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        listener.unsubscribe()
        receiver.cancel()
        watcher.cancel()

    if watcher in done and receiver not in done:
        logger.warning("Live updates for booking %s stopped, closing socket", booking_id)
        await websocket.close(code=1011)
