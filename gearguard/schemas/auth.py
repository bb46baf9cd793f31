from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class UserRole(str, Enum):
    user = "user"
    technician = "technician"
    manager = "manager"
    admin = "admin"


class SignupRequest(BaseModel):
    name: str
    email: EmailStr
    password: str
    re_enter_password: str = Field(alias="reEnterPassword")

    class Config:
        populate_by_name = True


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(alias="newPassword")
    confirm_password: str = Field(alias="confirmPassword")

    class Config:
        populate_by_name = True


class PasswordStrengthRequest(BaseModel):
    password: str = ""


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    avatar_url: Optional[str] = None
    is_active: bool = True

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[UserRole] = None
    avatar_url: Optional[str] = None
    is_active: Optional[bool] = None
