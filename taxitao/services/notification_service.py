import logging
from sqlmodel import Session, select, func
from taxitao.schemas.schemas import Notification, DriverNotification

logger = logging.getLogger(__name__)

CUSTOMER_TYPES = {
    "ride_confirmed",
    "driver_enroute",
    "driver_arrived",
    "trip_started",
    "trip_completed",
    "booking_created",
    "driver_cancelled",
    "fare_change",
    "ride_request",
}

DRIVER_TYPES = {"new_booking", "booking_cancelled", "fare_accepted", "system"}


def notification_message(
    status: str,
    driver_name: str | None = None,
    vehicle_details: str | None = None,
    pickup_location: str | None = None
) -> str:
    driver = driver_name or "Your driver"
    vehicle = f" with {vehicle_details}" if vehicle_details else ""

    match status:
        case "confirmed" | "ride_confirmed":
            return f"{driver} confirmed your ride! They're getting ready."
        case "en_route" | "driver_enroute":
            return f"{driver} is on the way{vehicle}. Click maps to view location of driver."
        case "arrived" | "driver_arrived":
            return f"{driver} has arrived at {pickup_location or 'pickup location'}."
        case "in_progress" | "trip_started":
            return "Trip started; safe travels!"
        case "completed" | "trip_completed":
            return "Arrived safely. Click here to pay driver."
        case "booking_created":
            return "Booking received! We are looking for a driver near you."
        case "driver_cancelled":
            return "Driver cancelled. We are looking for another driver near you..."
        case "fare_change":
            return "A fare negotiation has been initiated for your ride."
        case _:
            return "You have a new notification about your ride."


def create_notification(
    db: Session,
    recipient_id: str,
    booking_id: str | None,
    type: str,
    message: str,
    metadata: dict | None = None,
    commit: bool = True
) -> Notification:
    if type not in CUSTOMER_TYPES:
        raise ValueError(f"Unknown notification type: {type}")

    notification = Notification(
        recipient_id=recipient_id,
        booking_id=booking_id,
        type=type,
        message=message,
        extra=metadata,
    )
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    return notification


def create_driver_notification(
    db: Session,
    driver_id: str,
    type: str,
    title: str,
    message: str,
    booking_id: str | None = None,
    pickup_location: str | None = None,
    destination: str | None = None,
    pickup_date: str | None = None,
    pickup_time: str | None = None,
    commit: bool = True
) -> DriverNotification:
    if type not in DRIVER_TYPES:
        raise ValueError(f"Unknown driver notification type: {type}")

    notification = DriverNotification(
        driver_id=driver_id,
        type=type,
        title=title,
        message=message,
        booking_id=booking_id,
        pickup_location=pickup_location,
        destination=destination,
        pickup_date=pickup_date,
        pickup_time=pickup_time,
    )
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    logger.info("Driver notification %s created for driver %s", type, driver_id)
    return notification


def notify_drivers_of_new_booking(
    db: Session,
    driver_ids: list[str],
    booking_id: str,
    pickup_location: str,
    destination: str,
    pickup_date: str,
    pickup_time: str
) -> int:
    for driver_id in driver_ids:
        create_driver_notification(
            db,
            driver_id=driver_id,
            type="new_booking",
            title="New Ride Request",
            message=f"New ride from {pickup_location} to {destination}",
            booking_id=booking_id,
            pickup_location=pickup_location,
            destination=destination,
            pickup_date=pickup_date,
            pickup_time=pickup_time,
            commit=False,
        )
    db.commit()
    logger.info("Notified %d drivers of new booking %s", len(driver_ids), booking_id)
    return len(driver_ids)


def list_notifications(db: Session, recipient_id: str, unread_only: bool = False) -> list[Notification]:
    stmt = select(Notification).where(Notification.recipient_id == recipient_id)
    if unread_only:
        stmt = stmt.where(Notification.read == False)  # noqa: E712
    return db.exec(stmt.order_by(Notification.created_at.desc())).all()


def list_driver_notifications(db: Session, driver_id: str, unread_only: bool = False) -> list[DriverNotification]:
    stmt = select(DriverNotification).where(DriverNotification.driver_id == driver_id)
    if unread_only:
        stmt = stmt.where(DriverNotification.read == False)  # noqa: E712
    return db.exec(stmt.order_by(DriverNotification.created_at.desc())).all()


def unread_count(db: Session, recipient_id: str) -> int:
    stmt = select(func.count(Notification.id)).where(
        Notification.recipient_id == recipient_id,
        Notification.read == False,  # noqa: E712
    )
    return db.exec(stmt).one()


def driver_unread_count(db: Session, driver_id: str) -> int:
    stmt = select(func.count(DriverNotification.id)).where(
        DriverNotification.driver_id == driver_id,
        DriverNotification.read == False,  # noqa: E712
    )
    return db.exec(stmt).one()


def mark_all_read(db: Session, model, owner_field: str, owner_id: str) -> int:
    rows = db.exec(
        select(model).where(getattr(model, owner_field) == owner_id, model.read == False)  # noqa: E712
    ).all()
    for row in rows:
        row.read = True
        db.add(row)
    db.commit()
    return len(rows)
