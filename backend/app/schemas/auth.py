"""
DevDoc Backend — Auth Request/Response Schemas
================================================

What:  Pydantic contracts for /api/auth endpoints.
How:   Missing fields, malformed emails and short passwords fail request
       validation, which main.py reports as 400 with an {error} body.
"""

import uuid

from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    """Body of POST /api/auth/register."""

    email: EmailStr = Field(max_length=255, description="Login email (stored lowercase)")
    password: str = Field(min_length=6, max_length=128, description="Plaintext password, hashed on arrival")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginRequest(BaseModel):
    """Body of POST /api/auth/login."""

    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserResponse(BaseModel):
    """Public projection of a user: never includes the password hash."""

    id: uuid.UUID
    email: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """
    Returned by register (201) and login (200).

    token: signed bearer token, valid for JWT_EXPIRATION_DAYS (default 7)
    """

    token: str = Field(description="Bearer token for the Authorization header")
    user: UserResponse
