from datetime import date, datetime
from typing import Literal
from pydantic import BaseModel, EmailStr, Field, field_validator
from taxitao.services.utils import Utils

utils = Utils()

VehicleType = Literal["sedan", "suv", "van", "bike", "tuk-tuk"]
DriverStatus = Literal["available", "offline", "busy"]


class Vehicle(BaseModel):
    make: str
    model: str
    year: int | None = None
    plate: str
    images: list[str] = []
    seats: int | None = None
    type: VehicleType = "sedan"
    color: str | None = None
    baseFare: float | None = None


class CreateDriver(BaseModel):
    name: str = Field(min_length=2)
    phone: str
    whatsapp: str | None = None
    email: EmailStr | None = None
    bio: str = ""
    business_location: str | None = None
    current_location: str | None = None
    experience_years: int | None = Field(default=None, ge=0)
    profile_photo_url: str | None = None
    vehicles: list[Vehicle] = []

    @field_validator("phone", "whatsapp")
    def validate_phone(cls, v):
        if v is not None:
            return utils.validate_ke_phone(v)


class UpdateDriver(BaseModel):
    name: str | None = None
    phone: str | None = None
    whatsapp: str | None = None
    bio: str | None = None
    business_location: str | None = None
    current_location: str | None = None
    experience_years: int | None = Field(default=None, ge=0)
    profile_photo_url: str | None = None
    insurance_expiry: date | None = None
    license_expiry: date | None = None
    vehicle_inspection_due: date | None = None
    vehicles: list[Vehicle] | None = None

    @field_validator("phone", "whatsapp")
    def validate_phone(cls, v):
        if v is not None:
            return utils.validate_ke_phone(v)


class DriverStatusUpdate(BaseModel):
    status: DriverStatus
    current_location: str | None = None


class MpesaSettings(BaseModel):
    type: Literal["till", "paybill", "send_money"]
    tillNumber: str | None = None
    paybillNumber: str | None = None
    accountNumber: str | None = None
    accountName: str | None = None
    phoneNumber: str | None = None


class SubscriptionPayment(BaseModel):
    amount: float = Field(gt=0)
    reference: str | None = None


class DriverResponse(BaseModel):
    id: str
    name: str
    slug: str
    bio: str
    phone: str
    whatsapp: str | None = None
    email: str
    active: bool
    status: str
    subscription_status: str
    next_payment_due: datetime | None = None
    is_visible_to_public: bool
    average_rating: float
    total_ratings: int
    total_rides: int
    profile_photo_url: str | None = None
    current_location: str | None = None
    business_location: str | None = None
    experience_years: int | None = None
    vehicles: list[dict] = []


class PublicDriver(BaseModel):
    id: str
    name: str
    slug: str
    bio: str
    average_rating: float
    total_rides: int
    profile_photo_url: str | None = None
    current_location: str | None = None
    vehicles: list[dict] = []
    contact: dict = {}
