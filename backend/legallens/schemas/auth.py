"""
Authentication Pydantic Schemas
Request/response models for auth endpoints.
"""

from pydantic import BaseModel, EmailStr, Field

from legallens.schemas.domain import User


class LoginRequest(BaseModel):
    """Request model for the (unverified) login."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str | None = Field(default=None, max_length=100)


class UpdateProfileRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class TokenResponse(BaseModel):
    """Response model for authentication token."""
    success: bool = True
    token: str
    user: User


class ProfileStatsResponse(BaseModel):
    total: int = 0
    high_risk: int = 0
    last_upload: int | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
