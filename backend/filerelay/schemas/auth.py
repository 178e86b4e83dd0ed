"""
Pydantic schemas for auth endpoints.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class CredentialsRequest(BaseModel):
    """Username/password body for signup and login."""
    username: str = Field(..., description="3-30 letters, numbers or underscores")
    password: str = Field(..., description="At least 6 characters")
    
    model_config = ConfigDict(
        json_schema_extra={
            "example": {"username": "alice", "password": "secret1"}
        }
    )


class UserResponse(BaseModel):
    id: str
    username: str
    email: Optional[str] = None


class SessionResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    token_type: str = "bearer"


class AuthResponse(BaseModel):
    """Response schema for signup and login."""
    message: str
    user: UserResponse
    session: Optional[SessionResponse] = None


class VerifyResponse(BaseModel):
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
