import logging
from datetime import timedelta
from fastapi import HTTPException, status
from sqlmodel import Session, select
from taxitao.core.config import Settings
from taxitao.schemas.schemas import BookingRequest, Negotiation
from taxitao.services.utils import Utils
from taxitao.services.notification_service import create_notification, create_driver_notification

logger = logging.getLogger(__name__)
settings = Settings()
utils = Utils()

OPEN_STATUSES = ("pending", "counter_offered")


def _message(sender: str, type: str, message: str, price: float | None = None) -> dict:
    msg = {
        "sender": sender,
        "type": type,
        "message": message,
        "timestamp": utils.now_utc().isoformat(),
    }
    if price is not None:
        msg["price"] = price
    return msg


def _who(sender: str) -> str:
    return "Driver" if sender == "driver" else "Customer"


def get_negotiation_or_404(db: Session, negotiation_id: str) -> Negotiation:
    negotiation = db.get(Negotiation, negotiation_id)
    if not negotiation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Negotiation not found")
    return negotiation


def actor_for(negotiation: Negotiation, user_id: str, driver_id: str | None) -> str:
    if driver_id and negotiation.driver_id == driver_id:
        return "driver"
    if negotiation.customer_id and negotiation.customer_id == user_id:
        return "customer"
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not part of this negotiation")


def create_negotiation(
    db: Session,
    booking_id: str,
    customer_id: str | None,
    driver_id: str,
    proposed_price: float
) -> Negotiation:
    booking = db.get(BookingRequest, booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    if customer_id and booking.customer_id and booking.customer_id != customer_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only negotiate your own bookings")
    if proposed_price <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Offer must be greater than 0")

    now = utils.now_utc()
    negotiation = Negotiation(
        booking_request_id=booking.id,
        customer_id=customer_id,
        customer_name=booking.customer_name,
        customer_phone=booking.customer_phone,
        driver_id=driver_id,
        initial_price=booking.estimated_price,
        proposed_price=proposed_price,
        current_offer=proposed_price,
        status="pending",
        messages=[_message("customer", "offer", f"Customer offered KES {proposed_price:g}", proposed_price)],
        created_at=now,
        expires_at=now + timedelta(minutes=settings.NEGOTIATION_EXPIRY_MINUTES),
    )
    db.add(negotiation)
    db.commit()
    db.refresh(negotiation)
    logger.info("Negotiation %s opened on booking %s", negotiation.id, booking.id)
    return negotiation


def get_driver_negotiations(db: Session, driver_id: str) -> list[Negotiation]:
    rows = db.exec(
        select(Negotiation).where(Negotiation.driver_id == driver_id, Negotiation.status == "pending")
    ).all()
    return [n for n in rows if not check_expiration(db, n)]


def check_expiration(db: Session, negotiation: Negotiation) -> bool:
    """Marks an open negotiation past its expiry as expired. True when expired."""
    if negotiation.status == "expired":
        return True
    if negotiation.status not in OPEN_STATUSES:
        return False
    if utils.now_utc() <= utils.as_utc(negotiation.expires_at):
        return False

    negotiation.status = "expired"
    negotiation.resolved_at = utils.now_utc()
    db.add(negotiation)
    db.commit()
    db.refresh(negotiation)
    return True


def _ensure_open(db: Session, negotiation: Negotiation):
    if check_expiration(db, negotiation):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This negotiation has expired")
    if negotiation.status not in OPEN_STATUSES:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Negotiation already {negotiation.status}")


def accept_offer(db: Session, negotiation: Negotiation, accepted_by: str) -> Negotiation:
    _ensure_open(db, negotiation)

    negotiation.status = "accepted"
    negotiation.resolved_at = utils.now_utc()
    negotiation.messages = [
        *negotiation.messages,
        _message(accepted_by, "accept", f"{_who(accepted_by)} accepted the offer", negotiation.current_offer),
    ]
    db.add(negotiation)

    booking = db.get(BookingRequest, negotiation.booking_request_id)
    if booking:
        booking.estimated_price = negotiation.current_offer
        db.add(booking)

    if accepted_by == "customer":
        create_driver_notification(
            db,
            driver_id=negotiation.driver_id,
            type="fare_accepted",
            title="Fare Accepted",
            message=f"{negotiation.customer_name} accepted KES {negotiation.current_offer:g}",
            booking_id=negotiation.booking_request_id,
            commit=False,
        )

    db.commit()
    db.refresh(negotiation)
    return negotiation


def decline_offer(db: Session, negotiation: Negotiation, declined_by: str, reason: str | None = None) -> Negotiation:
    _ensure_open(db, negotiation)

    negotiation.status = "declined"
    negotiation.resolved_at = utils.now_utc()
    negotiation.messages = [
        *negotiation.messages,
        _message(declined_by, "decline", reason or f"{_who(declined_by)} declined the offer"),
    ]
    db.add(negotiation)
    db.commit()
    db.refresh(negotiation)
    return negotiation


def counter_offer(
    db: Session,
    negotiation: Negotiation,
    counter_by: str,
    new_price: float,
    message: str | None = None
) -> Negotiation:
    _ensure_open(db, negotiation)
    if new_price <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Offer must be greater than 0")

    negotiation.status = "counter_offered"
    negotiation.current_offer = new_price
    negotiation.messages = [
        *negotiation.messages,
        _message(
            counter_by,
            "counter",
            message or f"{_who(counter_by)} counter-offered KES {new_price:g}",
            new_price,
        ),
    ]
    db.add(negotiation)

    if counter_by == "driver" and negotiation.customer_id:
        create_notification(
            db,
            negotiation.customer_id,
            negotiation.booking_request_id,
            "fare_change",
            f"Your driver proposed KES {new_price:g} for this ride.",
            {"negotiationId": negotiation.id, "action": "view_negotiation"},
            commit=False,
        )

    db.commit()
    db.refresh(negotiation)
    return negotiation
