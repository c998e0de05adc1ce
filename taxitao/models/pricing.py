from datetime import datetime
from pydantic import BaseModel, Field


class RoutePrice(BaseModel):
    price: float = Field(ge=0)


class UpdatePricing(BaseModel):
    route_pricing: dict[str, RoutePrice] | None = None
    special_zones: dict | None = None
    packages: dict | None = None
    modifiers: dict | None = None
    auto_accept_rules: dict | None = None
    visibility: dict | None = None


class PricingResponse(BaseModel):
    driver_id: str
    route_pricing: dict = {}
    special_zones: dict = {}
    packages: dict = {}
    modifiers: dict = {}
    auto_accept_rules: dict = {}
    visibility: dict = {}
    last_updated: datetime


class FareQuote(BaseModel):
    driver_id: str
    origin: str
    destination: str
    fare: int
    quoted_at: datetime
