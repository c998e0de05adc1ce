from pydantic import BaseModel, Field


class CreateNegotiation(BaseModel):
    booking_id: str
    driver_id: str
    proposed_price: float = Field(gt=0)


class CounterOffer(BaseModel):
    price: float = Field(gt=0)
    message: str | None = None


class DeclineOffer(BaseModel):
    reason: str | None = None
