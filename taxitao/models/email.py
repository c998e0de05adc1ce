from pydantic import BaseModel


class SendEmail(BaseModel):
    # Fields are optional so missing ones get the route's own 400 payload
    to: str | list[str] | None = None
    subject: str | None = None
    html: str | None = None
