"""Card schemas."""
import json
from typing import Any

from pydantic import BaseModel, Field, field_validator

from mocards.services.numbering import is_incomplete_passcode


class BatchCreate(BaseModel):
    """Request to generate a batch of cards."""

    total_cards: int = Field(..., ge=1, le=10000)
    distribution_label: str | None = Field(None, max_length=100)
    idempotency_key: str | None = Field(
        None,
        max_length=100,
        description="Repeat the same key to safely retry a generation request",
    )


class BatchResponse(BaseModel):
    """Card batch summary."""

    id: str
    batch_number: str
    total_cards: int
    cards_generated: int
    created_by: str
    batch_status: str
    distribution_label: str | None
    created_at: str

    class Config:
        from_attributes = True


class GeneratedCardResponse(BaseModel):
    """Batch card for printing; passcode is only shown while still incomplete."""

    id: str
    control_number: str
    passcode: str | None = None
    location_code: str
    status: str

    @field_validator("passcode", mode="before")
    @classmethod
    def hide_complete_passcode(cls, v: Any) -> str | None:
        return v if is_incomplete_passcode(v) else None

    class Config:
        from_attributes = True


class BatchGenerateResponse(BaseModel):
    """Batch plus every card it produced."""

    batch: BatchResponse
    cards: list[GeneratedCardResponse]


class BatchStatsResponse(BaseModel):
    """Card counts per status for a batch."""

    batch_id: str
    batch_number: str
    total: int
    location_pending: int
    unactivated: int
    activated: int
    suspended: int
    expired: int


class PerkResponse(BaseModel):
    """Perk on a card."""

    id: str
    perk_type: str
    perk_name: str
    perk_value: float
    claimed: bool
    claimed_at: str | None
    claimed_by_clinic: str | None

    @field_validator("claimed", mode="before")
    @classmethod
    def int_to_bool(cls, v: Any) -> bool:
        if isinstance(v, int):
            return bool(v)
        return v

    class Config:
        from_attributes = True


class CardResponse(BaseModel):
    """Card state without its passcode."""

    id: str
    batch_id: str
    control_number: str
    location_code: str
    status: str
    assigned_clinic_id: str | None
    location_assigned_at: str | None
    activated_at: str | None
    expires_at: str | None
    card_metadata: dict = Field(default_factory=dict)
    created_at: str

    @field_validator("card_metadata", mode="before")
    @classmethod
    def parse_metadata(cls, v: Any) -> dict:
        if isinstance(v, str):
            return json.loads(v or "{}")
        return v or {}

    class Config:
        from_attributes = True


class LocationAssignRequest(BaseModel):
    """Clinic assigns a 3-letter location code to a card."""

    location_code: str = Field(..., min_length=3, max_length=3)


class LocationAssignResponse(BaseModel):
    """Card with its now-complete passcode."""

    card: CardResponse
    complete_passcode: str


class ActivationRequest(BaseModel):
    """Activate a card with its control number and complete passcode."""

    control_number: str
    passcode: str = Field(..., min_length=7, max_length=10)
    sale_amount: float | None = Field(None, ge=0)
    payment_method: str = "cash"
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None


class SaleResponse(BaseModel):
    """Sale recorded at activation."""

    id: str
    sale_amount: float
    commission_amount: float
    payment_method: str | None
    status: str
    created_at: str

    class Config:
        from_attributes = True


class ActivationResponse(BaseModel):
    """Activated card and the optional sale."""

    card: CardResponse
    sale: SaleResponse | None = None


class RedemptionRequest(BaseModel):
    """Clinic redeems a perk."""

    service_description: str = Field(..., min_length=1, max_length=255)
    service_value: float | None = Field(None, ge=0)
    notes: str | None = None


class RedemptionResponse(BaseModel):
    """Claimed perk plus redemption record id."""

    perk: PerkResponse
    redemption_id: str
    service_provided: str
    service_value: float | None


class CardLookupRequest(BaseModel):
    """Patient lookup credentials."""

    control_number: str = Field(..., min_length=1)
    passcode: str = Field(..., min_length=4, max_length=10)


class CardLookupResponse(BaseModel):
    """Card status, clinic and perks as a patient sees them."""

    control_number: str
    status: str
    location_code: str
    clinic_name: str | None
    activated_at: str | None
    expires_at: str | None
    perks: list[PerkResponse]


class SuspendRequest(BaseModel):
    """Admin suspends an activated card."""

    reason: str | None = Field(None, max_length=255)


class ExpireResponse(BaseModel):
    """Result of an expiry sweep."""

    expired: int
