"""Auth request/response schemas."""

from typing import Optional
from pydantic import BaseModel

from unilearn.schemas.common import APIModel


class RegisterRequest(APIModel):
    email: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = "student"  # student | instructor


class LoginRequest(APIModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(APIModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    created_at: str
