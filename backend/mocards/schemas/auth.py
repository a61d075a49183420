"""Authentication schemas."""
from pydantic import BaseModel


class AdminLogin(BaseModel):
    """Admin login request."""

    username: str
    password: str


class ClinicLogin(BaseModel):
    """Clinic login request."""

    clinic_code: str
    password: str


class Token(BaseModel):
    """Token response (refresh token travels in an HttpOnly cookie)."""

    access_token: str
    token_type: str = "bearer"


class ActorResponse(BaseModel):
    """Authenticated actor."""

    actor_type: str
    actor_id: str
    name: str


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
