"""Cards API endpoints."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mocards.api.deps import Actor, get_db, require_admin, require_clinic
from mocards.models.card import Card
from mocards.schemas.card import (
    ActivationRequest,
    ActivationResponse,
    CardLookupRequest,
    CardLookupResponse,
    CardResponse,
    ExpireResponse,
    LocationAssignRequest,
    LocationAssignResponse,
    PerkResponse,
    RedemptionRequest,
    RedemptionResponse,
    SaleResponse,
    SuspendRequest,
)
from mocards.schemas.transaction import CardTransactionResponse
from mocards.services import card_lifecycle
from mocards.services.audit import list_card_transactions

router = APIRouter(prefix="/cards", tags=["cards"])


def _lookup_response(card: Card) -> CardLookupResponse:
    return CardLookupResponse(
        control_number=card.control_number,
        status=card_lifecycle.effective_status(card),
        location_code=card.location_code,
        clinic_name=card.clinic.clinic_name if card.clinic else None,
        activated_at=card.activated_at,
        expires_at=card.expires_at,
        perks=[PerkResponse.model_validate(p) for p in card.perks],
    )


# Patient

@router.post("/lookup", response_model=CardLookupResponse)
def lookup_card(request: CardLookupRequest, db: Session = Depends(get_db)):
    """Look up a card with its control number and complete passcode (no auth required)."""
    card = card_lifecycle.lookup_card(db, request.control_number, request.passcode)
    return _lookup_response(card)


# Clinic

@router.get("/pending", response_model=list[CardResponse])
def get_pending_cards(
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    clinic: Actor = Depends(require_clinic),
):
    """Cards still waiting for a location code."""
    return card_lifecycle.list_pending_cards(db, limit=limit)


@router.post("/{card_id}/location", response_model=LocationAssignResponse)
def assign_location(
    card_id: str,
    assignment: LocationAssignRequest,
    db: Session = Depends(get_db),
    clinic: Actor = Depends(require_clinic),
):
    """Assign a location code, completing the card's passcode."""
    card = card_lifecycle.assign_location(
        db,
        card_id,
        assignment.location_code,
        performed_by="clinic",
        performed_by_id=clinic.actor_id,
    )
    return LocationAssignResponse(
        card=CardResponse.model_validate(card),
        complete_passcode=card.passcode,
    )


@router.post("/activate", response_model=ActivationResponse)
def activate_card(
    activation: ActivationRequest,
    db: Session = Depends(get_db),
    clinic: Actor = Depends(require_clinic),
):
    """Activate a card for a patient."""
    card, sale = card_lifecycle.activate_card(
        db,
        activation.control_number,
        activation.passcode,
        clinic.actor_id,
        sale_amount=activation.sale_amount,
        payment_method=activation.payment_method,
        customer_name=activation.customer_name,
        customer_phone=activation.customer_phone,
        customer_email=activation.customer_email,
    )
    return ActivationResponse(
        card=CardResponse.model_validate(card),
        sale=SaleResponse.model_validate(sale) if sale else None,
    )


@router.post("/{card_id}/perks/{perk_id}/redeem", response_model=RedemptionResponse)
def redeem_perk(
    card_id: str,
    perk_id: str,
    redemption_data: RedemptionRequest,
    db: Session = Depends(get_db),
    clinic: Actor = Depends(require_clinic),
):
    """Redeem a perk on an activated card."""
    perk, redemption = card_lifecycle.redeem_perk(
        db,
        card_id,
        perk_id,
        clinic.actor_id,
        redemption_data.service_description,
        service_value=redemption_data.service_value,
        notes=redemption_data.notes,
    )
    return RedemptionResponse(
        perk=PerkResponse.model_validate(perk),
        redemption_id=redemption.id,
        service_provided=redemption.service_provided,
        service_value=redemption.service_value,
    )


# Admin

@router.get("/admin/{control_number}", response_model=CardLookupResponse)
def admin_get_card(
    control_number: str,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Look up any card by control number."""
    card = card_lifecycle.get_card_by_control_number(db, control_number)
    return _lookup_response(card)


@router.post("/expire", response_model=ExpireResponse)
def expire_cards(
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Run the expiry sweep now."""
    return ExpireResponse(expired=card_lifecycle.expire_cards(db))


@router.post("/{card_id}/suspend", response_model=CardResponse)
def suspend_card(
    card_id: str,
    suspension: SuspendRequest,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Suspend an activated card."""
    return card_lifecycle.suspend_card(db, card_id, admin.actor_id, reason=suspension.reason)


@router.get("/{card_id}/transactions", response_model=list[CardTransactionResponse])
def get_card_transactions(
    card_id: str,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Audit history of a card."""
    return list_card_transactions(db, card_id)
