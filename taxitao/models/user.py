from pydantic import BaseModel, EmailStr, Field, field_validator
from taxitao.services.utils import Utils
import enum
from datetime import datetime


utils = Utils()

class UserRole(str, enum.Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"
    DRIVER = "driver"


class CreateUser(BaseModel):
    email: EmailStr
    password: str
    full_name: str | None = None
    phone: str | None = None
    role: UserRole = Field(default=UserRole.CUSTOMER)

    @field_validator("phone")
    def validate_phone(cls, v):
        if v is not None:
            return utils.validate_ke_phone(v)

    @field_validator("role")
    def no_self_admin(cls, v):
        if v == UserRole.ADMIN:
            raise ValueError("Admin accounts can't be self-registered")
        return v


class UpdateUser(BaseModel):
    full_name: str | None = None
    phone: str | None = None

    @field_validator("phone")
    def validate_phone(cls, v):
        if v is not None:
            return utils.validate_ke_phone(v)


class EmailPasswordRequestForm(BaseModel):
    email: EmailStr
    password: str


class PasswordUpdate(BaseModel):
    old_password: str
    new_password: str


class ResetPassword(BaseModel):
    token: str
    new_password: str


class UserResponse(BaseModel):
    id: str
    full_name: str | None = None
    email: EmailStr
    phone: str | None = None
    role: UserRole
    driver_id: str | None = None
    saved_drivers: list[str] = []
    email_verified_at: datetime | None = None
