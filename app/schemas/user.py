import re
from pydantic import EmailStr, Field, field_validator, model_validator
from datetime import datetime
from typing import Optional, List

from app.models.user import UserRole
from app.models.orders import OrderStatus
from app.schemas.common import APIModel


def _check_strong_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", value):
        raise ValueError("Password must contain at least one number")
    return value


class UserRegister(APIModel):
    email: EmailStr
    password: str
    confirm_password: str
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None

    @field_validator("password")
    @classmethod
    def strong_password(cls, value):
        return _check_strong_password(value)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class UserLogin(APIModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserCreate(APIModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    role: UserRole = UserRole.USER


class UserUpdate(APIModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    role: Optional[UserRole] = None

    @model_validator(mode="after")
    def not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class ChangePassword(APIModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class UserOut(APIModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    role: UserRole
    created_at: datetime
    updated_at: datetime


class OrderSummary(APIModel):
    id: int
    total: float
    status: OrderStatus
    created_at: datetime


class UserWithOrders(UserOut):
    orders: List[OrderSummary] = []


class UserSummary(APIModel):
    id: int
    first_name: str
    last_name: str
    email: EmailStr


class AuthOut(APIModel):
    user: UserOut
    token: str


class UserCreatedOut(APIModel):
    message: str
    user: UserOut


class TokenData(APIModel):
    id: int
    email: str
    role: UserRole
