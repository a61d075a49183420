"""Perk template schemas."""
from typing import Any

from pydantic import BaseModel, Field, field_validator


class PerkTemplateCreate(BaseModel):
    """Request to add a perk template."""

    perk_type: str
    perk_name: str = Field(..., min_length=1, max_length=100)
    perk_value: float = Field(0.0, ge=0)
    description: str | None = None
    sort_order: int = 0


class PerkTemplateUpdate(BaseModel):
    """Request to update a perk template."""

    perk_name: str | None = Field(None, min_length=1, max_length=100)
    perk_value: float | None = Field(None, ge=0)
    description: str | None = None
    sort_order: int | None = None
    is_active: bool | None = None


class PerkTemplateResponse(BaseModel):
    """Perk template."""

    id: str
    perk_type: str
    perk_name: str
    perk_value: float
    description: str | None
    sort_order: int
    is_active: bool

    @field_validator("is_active", mode="before")
    @classmethod
    def int_to_bool(cls, v: Any) -> bool:
        if isinstance(v, int):
            return bool(v)
        return v

    class Config:
        from_attributes = True
