from typing import Literal
from pydantic import BaseModel, Field

IssueStatus = Literal["pending", "investigating", "resolved", "dismissed"]


class CreateIssue(BaseModel):
    subject: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10)
    booking_id: str | None = None
    driver_id: str | None = None
    user_type: Literal["customer", "driver"] = "customer"


class IssueStatusUpdate(BaseModel):
    status: IssueStatus
