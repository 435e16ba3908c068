"""Pydantic schemas for user data validation."""

from datetime import date
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class UserRole(str, Enum):
    AGENT = "agent"
    ADMIN = "admin"


class UserBase(BaseModel):
    """Base user schema."""
    login: str = Field(..., min_length=3, max_length=50)
    full_name: Optional[str] = None


class UserCreate(UserBase):
    """Schema for user registration."""
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.AGENT


class User(UserBase):
    """Schema for user response."""
    id: int
    role: UserRole
    registration_date: date

    class Config:
        from_attributes = True


class UserWithToken(User):
    """User response with a freshly issued access token."""
    access_token: str
    token_type: str = "bearer"
