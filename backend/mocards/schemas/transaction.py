"""Card transaction schemas."""
import json
from typing import Any

from pydantic import BaseModel, field_validator


class CardTransactionResponse(BaseModel):
    """Audit log entry."""

    id: str
    card_id: str
    transaction_type: str
    performed_by: str
    performed_by_id: str | None
    details: dict
    created_at: str

    @field_validator("details", mode="before")
    @classmethod
    def parse_details(cls, v: Any) -> dict:
        if isinstance(v, str):
            return json.loads(v or "{}")
        return v or {}

    class Config:
        from_attributes = True
