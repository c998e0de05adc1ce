import uuid
from datetime import date, datetime, timezone
from typing import Optional
from sqlalchemy import JSON, Column
from sqlmodel import Field, Relationship, SQLModel


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _uid() -> str:
    return uuid.uuid4().hex


class Users(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=_uid, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    full_name: str | None = None
    phone: str | None = Field(default=None, index=True)
    role: str = Field(default="customer")
    driver_id: str | None = None
    saved_drivers: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    email_verified_at: datetime | None = None
    password_reset_nonce: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime | None = None

    refresh_tokens: list["RefreshToken"] = Relationship(back_populates="user")


class RefreshToken(SQLModel, table=True):
    __tablename__ = "refresh_tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    token_hash: str = Field(index=True)
    expires_at: datetime
    revoked: bool = False
    created_at: datetime = Field(default_factory=_now)

    user: Optional[Users] = Relationship(back_populates="refresh_tokens")


class Driver(SQLModel, table=True):
    __tablename__ = "drivers"

    id: str = Field(default_factory=_uid, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True, unique=True)
    name: str
    slug: str = Field(index=True)
    bio: str = ""
    phone: str
    whatsapp: str | None = None
    email: str
    active: bool = True
    status: str = Field(default="offline", index=True)
    subscription_status: str = Field(default="pending", index=True)
    last_payment_date: datetime | None = None
    next_payment_due: datetime | None = None
    payment_history: list[dict] = Field(default_factory=list, sa_column=Column(JSON))
    is_visible_to_public: bool = False
    rating: float = 0
    average_rating: float = 0
    total_ratings: int = 0
    total_rides: int = 0
    profile_photo_url: str | None = None
    current_location: str | None = Field(default=None, index=True)
    business_location: str | None = None
    experience_years: int | None = None
    insurance_expiry: date | None = None
    license_expiry: date | None = None
    vehicle_inspection_due: date | None = None
    mpesa_details: dict | None = Field(default=None, sa_column=Column(JSON))
    vehicles: list[dict] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_now)


class BookingRequest(SQLModel, table=True):
    __tablename__ = "bookingRequests"

    id: str = Field(default_factory=_uid, primary_key=True)
    customer_id: str | None = Field(default=None, index=True)
    customer_name: str
    customer_phone: str = Field(index=True)
    pickup_location: str = Field(index=True)
    destination: str
    pickup_date: str
    pickup_time: str
    status: str = Field(default="pending", index=True)
    ride_status: str = Field(default="pending")
    accepted_by: str | None = Field(default=None, index=True)
    accepted_at: datetime | None = None
    driver_name: str | None = None
    driver_phone: str | None = None
    estimated_price: float = 0
    notes: str | None = None
    vehicle_type: str | None = None
    preferred_driver_id: str | None = None
    notified_drivers: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    driver_location: dict | None = Field(default=None, sa_column=Column(JSON))
    eta: dict | None = Field(default=None, sa_column=Column(JSON))
    confirmed_at: datetime | None = None
    en_route_at: datetime | None = None
    arrived_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    fare: float | None = None
    earnings: float | None = None
    rating: int | None = None
    review: str | None = None
    rated_at: datetime | None = None
    created_at: datetime = Field(default_factory=_now)
    expires_at: datetime | None = None


class DriverNotification(SQLModel, table=True):
    __tablename__ = "driverNotifications"

    id: str = Field(default_factory=_uid, primary_key=True)
    driver_id: str = Field(index=True)
    type: str
    title: str
    message: str
    booking_id: str | None = None
    pickup_location: str | None = None
    destination: str | None = None
    pickup_date: str | None = None
    pickup_time: str | None = None
    read: bool = False
    created_at: datetime = Field(default_factory=_now)


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: str = Field(default_factory=_uid, primary_key=True)
    recipient_id: str = Field(index=True)
    booking_id: str | None = None
    type: str
    message: str
    read: bool = False
    # "metadata" is reserved on declarative models
    extra: dict | None = Field(default=None, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=_now)


class DriverPricing(SQLModel, table=True):
    __tablename__ = "driverPricing"

    driver_id: str = Field(primary_key=True)
    route_pricing: dict = Field(default_factory=dict, sa_column=Column(JSON))
    special_zones: dict = Field(default_factory=dict, sa_column=Column(JSON))
    packages: dict = Field(default_factory=dict, sa_column=Column(JSON))
    modifiers: dict = Field(default_factory=dict, sa_column=Column(JSON))
    auto_accept_rules: dict = Field(default_factory=dict, sa_column=Column(JSON))
    visibility: dict = Field(default_factory=dict, sa_column=Column(JSON))
    last_updated: datetime = Field(default_factory=_now)


class Negotiation(SQLModel, table=True):
    __tablename__ = "negotiations"

    id: str = Field(default_factory=_uid, primary_key=True)
    booking_request_id: str = Field(index=True)
    customer_id: str | None = None
    customer_name: str
    customer_phone: str
    driver_id: str = Field(index=True)
    initial_price: float
    proposed_price: float
    current_offer: float
    status: str = Field(default="pending", index=True)
    messages: list[dict] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_now)
    expires_at: datetime
    resolved_at: datetime | None = None


class Issue(SQLModel, table=True):
    __tablename__ = "issues"

    id: str = Field(default_factory=_uid, primary_key=True)
    user_id: str = Field(index=True)
    user_email: str | None = None
    user_type: str = "customer"
    booking_id: str | None = None
    driver_id: str | None = None
    subject: str
    description: str
    status: str = Field(default="pending", index=True)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime | None = None
