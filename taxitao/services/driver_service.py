import logging
import re
from fastapi import HTTPException, status
from sqlmodel import Session, select
from taxitao.schemas.schemas import Driver, Users
from taxitao.services.contact import contact_links
from taxitao.services.subscription import should_be_visible_to_public

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return slug or "driver"


def _unique_slug(db: Session, name: str) -> str:
    base = slugify(name)
    slug, n = base, 1
    while db.exec(select(Driver.id).where(Driver.slug == slug)).first():
        n += 1
        slug = f"{base}-{n}"
    return slug


def get_driver_or_404(db: Session, driver_id: str) -> Driver:
    driver = db.get(Driver, driver_id)
    if not driver:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Driver not found")
    return driver


def get_driver_for_user(db: Session, user_id: str) -> Driver:
    driver = db.exec(select(Driver).where(Driver.user_id == user_id)).first()
    if not driver:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Driver profile required")
    return driver


def register_driver(db: Session, user: Users, data: dict) -> Driver:
    if db.exec(select(Driver.id).where(Driver.user_id == user.id)).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Driver profile already exists")

    data = dict(data)
    email = data.pop("email", None) or user.email
    driver = Driver(
        **data,
        user_id=user.id,
        email=email,
        slug=_unique_slug(db, data["name"]),
        status="offline",
        subscription_status="pending",
    )
    if not driver.whatsapp:
        driver.whatsapp = driver.phone
    db.add(driver)
    db.flush()

    user.role = "driver"
    user.driver_id = driver.id
    db.add(user)
    db.commit()
    db.refresh(driver)
    logger.info("Driver profile %s registered for user %s", driver.id, user.id)
    return driver


def update_driver(db: Session, driver: Driver, changes: dict) -> Driver:
    for key, value in changes.items():
        setattr(driver, key, value)
    db.add(driver)
    db.commit()
    db.refresh(driver)
    return driver


def set_status(db: Session, driver: Driver, new_status: str, location: str | None = None) -> Driver:
    if new_status == "available" and driver.subscription_status != "active":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You need an active subscription to go online."
        )
    driver.status = new_status
    if location:
        driver.current_location = location
    db.add(driver)
    db.commit()
    db.refresh(driver)
    return driver


def list_public_drivers(db: Session, location: str | None = None) -> list[Driver]:
    stmt = select(Driver).where(Driver.active == True, Driver.is_visible_to_public == True)  # noqa: E712
    if location:
        stmt = stmt.where(Driver.current_location == location)
    return db.exec(stmt.order_by(Driver.average_rating.desc())).all()


def refresh_visibility(db: Session, driver: Driver) -> Driver:
    driver.is_visible_to_public = should_be_visible_to_public(driver.subscription_status, driver.active)
    db.add(driver)
    db.commit()
    db.refresh(driver)
    return driver


def public_profile(driver: Driver) -> dict:
    return {
        "id": driver.id,
        "name": driver.name,
        "slug": driver.slug,
        "bio": driver.bio,
        "average_rating": driver.average_rating,
        "total_rides": driver.total_rides,
        "profile_photo_url": driver.profile_photo_url,
        "current_location": driver.current_location,
        "vehicles": driver.vehicles or [],
        "contact": contact_links(
            driver.phone,
            driver.whatsapp,
            f"Hi {driver.name}, I found you on TaxiTao and would like to book a ride.",
        ),
    }
