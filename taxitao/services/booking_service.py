import logging
from datetime import timedelta
from fastapi import HTTPException, status
from sqlalchemy import update, or_
from sqlmodel import Session, select
from taxitao.core.config import Settings
from taxitao.schemas.schemas import BookingRequest, Driver
from taxitao.services.utils import Utils
from taxitao.services import maps
from taxitao.services.notification_service import (
    create_notification,
    create_driver_notification,
    notify_drivers_of_new_booking,
    notification_message,
)
from taxitao.services.ride_status import (
    RideStatus,
    STATUS_NOTIFICATIONS,
    STATUS_TIMESTAMPS,
    ensure_transition,
    ride_progress,
)

logger = logging.getLogger(__name__)
settings = Settings()
utils = Utils()

# Distance under which an in-progress ride completes on its own
AUTO_COMPLETE_KM = 0.1
# Distance Matrix calls are billed; cap them per trip
ETA_MAX_CALCULATIONS = 3

ACTIVE_STATUSES = ("accepted", "assigned")


def get_booking_or_404(db: Session, booking_id: str) -> BookingRequest:
    booking = db.get(BookingRequest, booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking


def is_expired(booking: BookingRequest) -> bool:
    expires_at = utils.as_utc(booking.expires_at)
    return expires_at is not None and expires_at <= utils.now_utc()


def _vehicle_details(driver: Driver) -> str | None:
    if not driver.vehicles:
        return None
    vehicle = driver.vehicles[0]
    details = " ".join(p for p in (vehicle.get("color"), vehicle.get("make"), vehicle.get("model")) if p)
    if vehicle.get("plate"):
        details = f"{details} ({vehicle['plate']})"
    return details or None


def create_booking(db: Session, data: dict, customer_id: str | None) -> BookingRequest:
    preferred_id = data.get("preferred_driver_id")
    preferred = db.get(Driver, preferred_id) if preferred_id else None
    if preferred_id and not preferred:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Preferred driver not found")

    now = utils.now_utc()
    booking = BookingRequest(
        **data,
        customer_id=customer_id,
        status="assigned" if preferred else "pending",
        ride_status=RideStatus.PENDING.value,
        accepted_by=preferred.id if preferred else None,
        driver_name=preferred.name if preferred else None,
        driver_phone=preferred.phone if preferred else None,
        created_at=now,
        expires_at=now + timedelta(minutes=settings.BOOKING_EXPIRY_MINUTES),
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)

    if customer_id:
        try:
            create_notification(
                db,
                customer_id,
                booking.id,
                "booking_created",
                notification_message("booking_created"),
                {"action": "view_booking"},
            )
        except Exception as e:
            db.rollback()
            logger.error(f"Customer notification error: {e}")

    try:
        if preferred:
            create_driver_notification(
                db,
                driver_id=preferred.id,
                type="new_booking",
                title="Direct Booking Request!",
                message=f"Pickup: {booking.pickup_location}\nDropoff: {booking.destination}",
                booking_id=booking.id,
                pickup_location=booking.pickup_location,
                destination=booking.destination,
                pickup_date=booking.pickup_date,
                pickup_time=booking.pickup_time,
            )
            notified = [preferred.id]
        else:
            driver_ids = db.exec(
                select(Driver.id).where(
                    Driver.status == "available",
                    Driver.subscription_status == "active",
                    Driver.current_location == booking.pickup_location,
                )
            ).all()
            notified = list(driver_ids)
            if notified:
                notify_drivers_of_new_booking(
                    db,
                    notified,
                    booking.id,
                    booking.pickup_location,
                    booking.destination,
                    booking.pickup_date,
                    booking.pickup_time,
                )
        booking.notified_drivers = notified
        db.add(booking)
        db.commit()
        db.refresh(booking)
    except Exception as e:
        db.rollback()
        logger.error(f"Driver notification error: {e}")

    return booking


def accept_booking(db: Session, booking_id: str, driver: Driver) -> BookingRequest:
    booking = get_booking_or_404(db, booking_id)

    if booking.status != "pending":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This ride has already been taken.")

    if is_expired(booking):
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="This request has expired.")

    now = utils.now_utc()
    # Conditional write: only one driver can flip a pending booking
    result = db.execute(
        update(BookingRequest)
        .where(BookingRequest.id == booking_id, BookingRequest.status == "pending")
        .values(
            status="accepted",
            accepted_by=driver.id,
            accepted_at=now,
            driver_name=driver.name,
            driver_phone=driver.phone,
            ride_status=RideStatus.CONFIRMED.value,
            confirmed_at=now,
        )
    )
    if result.rowcount != 1:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This ride has already been taken.")
    db.commit()
    db.refresh(booking)

    if booking.customer_id:
        try:
            create_notification(
                db,
                booking.customer_id,
                booking.id,
                "ride_confirmed",
                f"{driver.name} has accepted your ride.",
                {
                    "driverId": driver.id,
                    "driverName": driver.name,
                    "bookingId": booking.id,
                    "action": "view_booking",
                },
            )
        except Exception as e:
            db.rollback()
            logger.error(f"Customer acceptance notification error: {e}")

    return booking


def get_available_bookings(db: Session, location: str) -> list[BookingRequest]:
    rows = db.exec(
        select(BookingRequest).where(
            BookingRequest.status == "pending",
            BookingRequest.pickup_location == location,
        )
    ).all()
    return [b for b in rows if not is_expired(b)]


def expire_stale_bookings(db: Session) -> int:
    rows = db.exec(select(BookingRequest).where(BookingRequest.status == "pending")).all()
    expired = [b for b in rows if is_expired(b)]
    for booking in expired:
        booking.status = "expired"
        db.add(booking)
    db.commit()
    if expired:
        logger.info("Expired %d stale bookings", len(expired))
    return len(expired)


def _require_assigned_driver(booking: BookingRequest, driver: Driver):
    if booking.accepted_by != driver.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not the assigned driver for this booking.")


def _apply_status(
    db: Session,
    booking: BookingRequest,
    driver: Driver,
    new_status: RideStatus,
    fare: float | None = None
) -> BookingRequest:
    now = utils.now_utc()
    booking.ride_status = new_status.value
    setattr(booking, STATUS_TIMESTAMPS[new_status], now)

    if new_status == RideStatus.COMPLETED:
        booking.status = "completed"
        if fare is not None:
            booking.fare = fare
            booking.earnings = fare
        driver.total_rides = (driver.total_rides or 0) + 1
        db.add(driver)

    db.add(booking)

    if booking.customer_id and new_status in STATUS_NOTIFICATIONS:
        create_notification(
            db,
            booking.customer_id,
            booking.id,
            STATUS_NOTIFICATIONS[new_status],
            notification_message(
                new_status.value,
                driver.name,
                _vehicle_details(driver),
                booking.pickup_location,
            ),
            {"bookingId": booking.id, "driverId": driver.id, "action": "view_booking"},
            commit=False,
        )

    db.commit()
    db.refresh(booking)
    return booking


def update_ride_status(
    db: Session,
    booking_id: str,
    driver: Driver,
    new_status: str,
    fare: float | None = None
) -> BookingRequest:
    booking = get_booking_or_404(db, booking_id)
    _require_assigned_driver(booking, driver)

    if new_status == RideStatus.CANCELLED.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Use the cancel endpoint to cancel a ride"
        )
    if booking.status not in ACTIVE_STATUSES:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Booking is {booking.status}")

    nxt = ensure_transition(booking.ride_status, new_status)
    return _apply_status(db, booking, driver, nxt, fare)


def complete_ride(db: Session, booking_id: str, driver: Driver, fare: float) -> BookingRequest:
    booking = get_booking_or_404(db, booking_id)

    if booking.status not in ACTIVE_STATUSES:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Only accepted rides can be completed.")
    if booking.accepted_by != driver.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized completion.")

    nxt = ensure_transition(booking.ride_status, RideStatus.COMPLETED)
    return _apply_status(db, booking, driver, nxt, fare)


def rate_ride(
    db: Session,
    booking_id: str,
    customer_id: str,
    rating: int,
    review: str | None = None
) -> BookingRequest:
    if rating < 1 or rating > 5:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rating must be 1-5")

    booking = get_booking_or_404(db, booking_id)
    if booking.customer_id != customer_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only rate your own rides")
    if booking.status != "completed":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Only completed rides can be rated")
    if booking.rating:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This ride is already rated")
    if not booking.accepted_by:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No driver assigned")

    booking.rating = rating
    booking.review = review or None
    booking.rated_at = utils.now_utc()
    db.add(booking)

    driver = db.get(Driver, booking.accepted_by)
    if driver:
        total = driver.total_ratings or 0
        avg = driver.average_rating or 0
        new_total = total + 1
        value = round(((avg * total) + rating) / new_total, 1)
        driver.total_ratings = new_total
        driver.average_rating = value
        driver.rating = value
        db.add(driver)

    db.commit()
    db.refresh(booking)
    return booking


def cancel_booking(
    db: Session,
    booking_id: str,
    user_id: str,
    reason: str,
    is_admin: bool = False
) -> BookingRequest:
    booking = get_booking_or_404(db, booking_id)

    if not is_admin and booking.customer_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only cancel your own bookings")
    if booking.status in ("completed", "cancelled", "expired"):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Booking is already {booking.status}")

    ensure_transition(booking.ride_status, RideStatus.CANCELLED)

    booking.status = "cancelled"
    booking.ride_status = RideStatus.CANCELLED.value
    booking.cancellation_reason = reason
    booking.cancelled_at = utils.now_utc()
    db.add(booking)

    if booking.accepted_by:
        create_driver_notification(
            db,
            driver_id=booking.accepted_by,
            type="booking_cancelled",
            title="Booking Cancelled",
            message=(
                f"The booking from {booking.pickup_location} has been cancelled "
                f"by the customer. Reason: {reason}"
            ),
            booking_id=booking.id,
            commit=False,
        )

    db.commit()
    db.refresh(booking)
    logger.info("Booking %s cancelled by customer", booking.id)
    return booking


def cancel_booking_by_driver(db: Session, booking_id: str, driver: Driver, reason: str) -> BookingRequest:
    booking = get_booking_or_404(db, booking_id)
    _require_assigned_driver(booking, driver)

    if booking.status not in ACTIVE_STATUSES:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Booking is {booking.status}")
    if booking.ride_status == RideStatus.IN_PROGRESS.value:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A trip in progress cannot be handed back")

    # Re-queue: the lifecycle starts over for the next driver
    booking.status = "pending"
    booking.accepted_by = None
    booking.accepted_at = None
    booking.driver_name = None
    booking.driver_phone = None
    booking.driver_location = None
    booking.eta = None
    booking.ride_status = RideStatus.PENDING.value
    for field in ("confirmed_at", "en_route_at", "arrived_at"):
        setattr(booking, field, None)
    booking.expires_at = utils.now_utc() + timedelta(minutes=settings.BOOKING_EXPIRY_MINUTES)
    db.add(booking)

    if booking.customer_id:
        create_notification(
            db,
            booking.customer_id,
            booking.id,
            "driver_cancelled",
            f"Driver cancelled: {reason}. We are looking for another driver near you...",
            {"action": "view_booking"},
            commit=False,
        )

    db.commit()
    db.refresh(booking)
    logger.info("Booking %s re-queued after driver cancellation", booking.id)
    return booking


def update_driver_location(
    db: Session,
    booking_id: str,
    driver: Driver,
    lat: float,
    lng: float,
    destination: dict | None = None
) -> BookingRequest:
    booking = get_booking_or_404(db, booking_id)
    _require_assigned_driver(booking, driver)

    booking.driver_location = {
        "lat": lat,
        "lng": lng,
        "lastUpdated": utils.now_utc().isoformat(),
    }
    db.add(booking)
    db.commit()
    db.refresh(booking)

    if destination and booking.ride_status == RideStatus.IN_PROGRESS.value:
        distance_km = maps.calculate_distance({"lat": lat, "lng": lng}, destination)
        if distance_km < AUTO_COMPLETE_KM:
            logger.info(
                "Driver is near destination (%dm), auto-completing booking %s",
                round(distance_km * 1000),
                booking.id,
            )
            booking = _apply_status(db, booking, driver, RideStatus.COMPLETED, booking.estimated_price or None)

    return booking


async def refresh_eta(db: Session, booking_id: str, destination: dict | None = None, transport=None) -> BookingRequest:
    booking = get_booking_or_404(db, booking_id)

    if not booking.driver_location:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Driver location not available yet")

    calculations = (booking.eta or {}).get("calculations", 0)
    if calculations >= ETA_MAX_CALCULATIONS:
        return booking

    origin = {"lat": booking.driver_location["lat"], "lng": booking.driver_location["lng"]}
    eta = await maps.calculate_eta(origin, destination or booking.destination, transport=transport)
    if not eta:
        return booking

    booking.eta = {
        "minutes": eta["minutes"],
        "distance": eta["distance"],
        "lastCalculated": utils.now_utc().isoformat(),
        "calculations": calculations + 1,
    }
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def get_driver_ride_history(db: Session, driver_id: str) -> list[BookingRequest]:
    return db.exec(
        select(BookingRequest)
        .where(BookingRequest.accepted_by == driver_id, BookingRequest.status == "completed")
        .order_by(BookingRequest.completed_at.desc())
    ).all()


def get_driver_active_bookings(db: Session, driver_id: str) -> list[BookingRequest]:
    return db.exec(
        select(BookingRequest)
        .where(BookingRequest.accepted_by == driver_id, BookingRequest.status.in_(ACTIVE_STATUSES))
        .order_by(BookingRequest.created_at.desc())
    ).all()


def get_customer_bookings(db: Session, customer_id: str, customer_phone: str | None = None) -> list[BookingRequest]:
    conds = [BookingRequest.customer_id == customer_id]
    if customer_phone:
        conds.append(BookingRequest.customer_phone == customer_phone)
    return db.exec(
        select(BookingRequest).where(or_(*conds)).order_by(BookingRequest.created_at.desc())
    ).all()


def booking_snapshot(booking: BookingRequest) -> dict:
    return {
        "booking": booking.model_dump(mode="json"),
        "progress": ride_progress(booking),
    }
