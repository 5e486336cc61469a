"""User-related Pydantic schemas for request/response validation."""

from typing import Optional
from uuid import UUID

from pydantic import ConfigDict, EmailStr, Field, field_validator

from .base import BaseModelSchema, BaseSchema


class UserLoginRequest(BaseSchema):
    """Schema for user login request."""

    token: str = Field(..., description="Identity provider JWT")

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Validate that the token is not empty."""
        if not v or not v.strip():
            raise ValueError("Token cannot be empty")
        return v.strip()


class UserResponse(BaseModelSchema):
    """Schema for user response data."""

    auth_subject: str
    email: Optional[str]
    username: Optional[str]
    is_active: bool


class AuthResponse(BaseSchema):
    """Schema for authentication response."""

    user: UserResponse
    message: str = "Authentication successful"


class LogoutResponse(BaseSchema):
    """Schema for logout response."""

    message: str = "Logout successful"


class UserUpdateRequest(BaseSchema):
    """Schema for updating user information."""

    username: Optional[str] = Field(None, max_length=100, description="Username to update")
    email: Optional[EmailStr] = Field(None, description="Email to update")


class AuthContext(BaseSchema):
    """The authenticated caller, resolved once per request and passed to handlers."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    user_id: UUID
    subject: str
