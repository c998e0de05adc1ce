from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from taxitao.services.utils import Utils

utils = Utils()


class CreateBooking(BaseModel):
    customer_name: str = Field(min_length=1)
    customer_phone: str
    pickup_location: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    pickup_date: str
    pickup_time: str
    estimated_price: float = Field(default=0, ge=0)
    notes: str | None = None
    vehicle_type: str | None = None
    preferred_driver_id: str | None = None

    @field_validator("customer_phone")
    def validate_phone(cls, v):
        return utils.validate_ke_phone(v)

    @field_validator("pickup_location", "destination")
    def strip_place(cls, v):
        return v.strip()


class RideStatusUpdate(BaseModel):
    ride_status: str
    fare: float | None = Field(default=None, ge=0)


class CompleteRide(BaseModel):
    fare: float = Field(ge=0)


class RateRide(BaseModel):
    rating: int
    review: str | None = None


class CancelBooking(BaseModel):
    reason: str = Field(min_length=1)


class Coordinates(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class LocationUpdate(Coordinates):
    destination: Coordinates | None = None


class EtaRequest(BaseModel):
    destination: Coordinates | None = None


class BookingResponse(BaseModel):
    id: str
    customer_id: str | None = None
    customer_name: str
    customer_phone: str
    pickup_location: str
    destination: str
    pickup_date: str
    pickup_time: str
    status: str
    ride_status: str
    accepted_by: str | None = None
    accepted_at: datetime | None = None
    driver_name: str | None = None
    driver_phone: str | None = None
    estimated_price: float
    notes: str | None = None
    vehicle_type: str | None = None
    driver_location: dict | None = None
    eta: dict | None = None
    fare: float | None = None
    rating: int | None = None
    review: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime
    expires_at: datetime | None = None
    completed_at: datetime | None = None
