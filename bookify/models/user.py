from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID


PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72
# bcrypt refuses passwords longer than 72 bytes once encoded
PASSWORD_MAX_BYTES = 72


def check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
    return value


# Auth requests

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)


class RegisterData(BaseModel):
    """Validated registration form"""
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.\-]+$")
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)
    name: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)

    @field_validator('password')
    @classmethod
    def fits_bcrypt(cls, v):
        return check_password_bytes(v)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)

    @field_validator('new_password')
    @classmethod
    def fits_bcrypt(cls, v):
        return check_password_bytes(v)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)

    @field_validator('new_password')
    @classmethod
    def fits_bcrypt(cls, v):
        return check_password_bytes(v)


class ConfirmEmailRequest(BaseModel):
    user_id: str
    token: str = Field(..., min_length=1)


class ResendConfirmationRequest(BaseModel):
    email: EmailStr


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile"""
    username: Optional[str] = Field(None, min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.\-]+$")
    name: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)


# Responses

class UserProfile(BaseModel):
    id: str
    username: str
    email: str
    name: Optional[str] = None
    address: Optional[str] = None
    profile_picture: Optional[str] = None
    loyalty_points: int = 0
    email_confirmed: bool = False
    roles: List[str] = []

    @field_validator('id', mode='before')
    @classmethod
    def convert_uuid(cls, v):
        if isinstance(v, UUID):
            return str(v)
        return v

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserProfile


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    user_id: str
    email_confirmation_required: bool


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# Admin user management

class AdminUserSummary(BaseModel):
    id: str
    username: str
    email: str
    name: Optional[str] = None
    loyalty_points: int = 0
    is_banned: bool = False
    email_confirmed: bool = False
    roles: List[str] = []
    created_on: Optional[datetime] = None

    @field_validator('id', mode='before')
    @classmethod
    def convert_uuid(cls, v):
        if isinstance(v, UUID):
            return str(v)
        return v


class AdminUserDetail(AdminUserSummary):
    address: Optional[str] = None
    profile_picture: Optional[str] = None
    orders_count: int = 0
    reviews_count: int = 0
    redemptions_count: int = 0


class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    username: Optional[str] = Field(None, min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.\-]+$")
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=500)
    loyalty_points: Optional[int] = Field(None, ge=0)


class UserStatistics(BaseModel):
    total_users: int
    active_users: int
    banned_users: int
    admins: int
    organizers: int
    regular_users: int


# Roles

class RoleSummary(BaseModel):
    name: str
    users_count: int


class RoleAssignment(BaseModel):
    user_id: str
    role: str = Field(..., min_length=1, max_length=50)
