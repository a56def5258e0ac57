"""Authentication schemas."""

from pydantic import BaseModel, Field, EmailStr
from typing import List, Optional


class LoginRequest(BaseModel):
    """User login request."""

    email: EmailStr = Field(description="User email address")
    password: str = Field(min_length=1, description="User password")


class RegisterRequest(BaseModel):
    """User registration request."""

    email: EmailStr = Field(description="User email address")
    password: str = Field(min_length=8, max_length=128, description="User password (min 8 characters)")
    name: Optional[str] = Field(default=None, max_length=100, description="Display name")
    as_seller: bool = Field(default=False, description="Also register as a developer (seller)")


class RefreshRequest(BaseModel):
    """Token refresh request."""

    refresh_token: str = Field(description="Refresh token to exchange for new access token")


class UserResponse(BaseModel):
    """User information response."""

    id: str = Field(description="User ID")
    email: str = Field(description="User email address")
    name: Optional[str] = Field(default=None, description="Display name")
    roles: List[str] = Field(default=[], description="User roles")
    is_active: bool = Field(default=True, description="Whether user account is active")

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """Token pair plus the signed-in user."""

    access_token: str = Field(description="JWT access token")
    refresh_token: str = Field(description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    user: UserResponse
