"""Card lifecycle: batch generation, passcode completion, activation, perk redemption.

State machine::

    unactivated --(activate)--> activated --(suspend)--> suspended
                                    |                        |
                                    +------(expire)----------+--> expired

Every operation runs in a single database transaction and appends exactly
one audit transaction per card it changes. Conditional updates guard the
transitions that two callers could race on (activation, perk claim).
"""
import json
import logging
import uuid
from datetime import datetime

from dateutil.relativedelta import relativedelta
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from mocards.config import get_settings
from mocards.errors import ConflictError, NotFoundError, ValidationError
from mocards.models.actor import AdminUser, Clinic
from mocards.models.card import Card, CardBatch, CardPerk
from mocards.models.sale import ClinicSale, PerkRedemption
from mocards.services import numbering
from mocards.services.audit import record_transaction
from mocards.services.perk_templates import get_active_templates
from mocards.services.retry import with_store_retry

logger = logging.getLogger(__name__)

CARD_STATUSES = ("unactivated", "activated", "suspended", "expired")
ALLOWED_TRANSITIONS = {
    "unactivated": {"activated"},
    "activated": {"suspended", "expired"},
    "suspended": {"expired"},
    "expired": set(),
}

BATCH_NUMBER_ATTEMPTS = 5


def _utcnow() -> datetime:
    return datetime.utcnow()


def ensure_transition(current: str, target: str) -> None:
    """Raise ConflictError unless ``current -> target`` is a forward transition."""
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ConflictError(f"Card cannot move from '{current}' to '{target}'")


def effective_status(card: Card, now: datetime | None = None) -> str:
    """Status as a patient should see it: past-expiry cards read as expired."""
    if card.status in ("activated", "suspended") and card.expires_at:
        now = now or _utcnow()
        if card.expires_at <= now.isoformat():
            return "expired"
    return card.status


def compute_expiry(activated_at: datetime, years: int | None = None) -> datetime:
    """Calendar-year validity (Feb 29 rolls back to Feb 28)."""
    if years is None:
        years = get_settings().card_validity_years
    return activated_at + relativedelta(years=years)


# Batch generation

def _unused_batch_number(db: Session, prefix: str) -> str:
    for _ in range(BATCH_NUMBER_ATTEMPTS):
        candidate = numbering.generate_batch_number(prefix)
        if not db.query(CardBatch.id).filter(CardBatch.batch_number == candidate).first():
            return candidate
        logger.warning(f"Batch number collision on {candidate}, regenerating")
    raise ConflictError("Could not allocate a unique batch number")


def _batch_for_key(db: Session, idempotency_key: str) -> CardBatch | None:
    return db.query(CardBatch).filter(CardBatch.idempotency_key == idempotency_key).first()


def _replay_batch(existing: CardBatch, admin_id: str, total_cards: int) -> tuple[CardBatch, list[Card]]:
    """Return the batch an idempotency key already produced, if the request matches it."""
    if existing.created_by != admin_id:
        raise ConflictError("Idempotency key already used by another administrator")
    if existing.total_cards != total_cards:
        raise ConflictError(
            f"Idempotency key already used for a batch of {existing.total_cards} cards"
        )
    logger.info(f"Batch {existing.batch_number} already generated for key {existing.idempotency_key}")
    return existing, list(existing.cards)


@with_store_retry
def generate_batch(
    db: Session,
    admin_id: str,
    total_cards: int,
    distribution_label: str | None = None,
    idempotency_key: str | None = None,
) -> tuple[CardBatch, list[Card]]:
    """Create a batch of unactivated cards with their perks.

    A repeated call with the same ``idempotency_key`` returns the batch the
    first call created instead of generating a new one.
    """
    settings = get_settings()

    if idempotency_key:
        existing = _batch_for_key(db, idempotency_key)
        if existing:
            return _replay_batch(existing, admin_id, total_cards)

    admin = db.query(AdminUser).filter(AdminUser.id == admin_id).first()
    if not admin:
        raise NotFoundError("Admin user not found")

    if isinstance(total_cards, bool) or not isinstance(total_cards, int):
        raise ValidationError("Total cards must be an integer")
    if total_cards < 1 or total_cards > settings.max_batch_size:
        raise ValidationError(f"Total cards must be between 1 and {settings.max_batch_size}")

    templates = get_active_templates(db)
    if not templates:
        raise ValidationError("No active perk templates configured")

    now_iso = _utcnow().isoformat()
    batch_number = _unused_batch_number(db, settings.batch_number_prefix)
    batch = CardBatch(
        id=str(uuid.uuid4()),
        batch_number=batch_number,
        total_cards=total_cards,
        cards_generated=0,
        created_by=admin.id,
        batch_status="generating",
        distribution_label=distribution_label or "general",
        idempotency_key=idempotency_key,
    )
    db.add(batch)

    perk_types = [t.perk_type for t in templates]
    cards = []
    for position in range(1, total_cards + 1):
        card = Card(
            id=str(uuid.uuid4()),
            batch_id=batch.id,
            control_number=numbering.control_number_for(
                settings.control_number_prefix, batch_number, position
            ),
            passcode=numbering.generate_incomplete_passcode(),
            location_code=settings.default_location_code,
            status="unactivated",
            card_metadata=json.dumps({
                "batch_creation_date": now_iso,
                "card_position_in_batch": position,
                "total_perks_count": len(perk_types),
                "initial_perks": perk_types,
                "validity_period_months": settings.card_validity_years * 12,
            }),
        )
        for template in templates:
            card.perks.append(CardPerk(
                perk_type=template.perk_type,
                perk_name=template.perk_name,
                perk_value=template.perk_value,
                sort_order=template.sort_order,
            ))
        db.add(card)
        record_transaction(
            db,
            card.id,
            "created",
            "admin",
            admin.id,
            {"batch_number": batch_number, "card_position": position},
        )
        cards.append(card)

    batch.cards_generated = len(cards)
    batch.batch_status = "completed"
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # A concurrent request with the same key committed first
        winner = _batch_for_key(db, idempotency_key) if idempotency_key else None
        if winner is None:
            raise
        return _replay_batch(winner, admin_id, total_cards)

    logger.info(f"Generated batch {batch_number} with {total_cards} cards for admin {admin_id}")
    return batch, cards


@with_store_retry
def get_batch(db: Session, batch_id: str) -> CardBatch:
    batch = db.query(CardBatch).filter(CardBatch.id == batch_id).first()
    if not batch:
        raise NotFoundError("Batch not found")
    return batch


@with_store_retry
def list_batches(db: Session, limit: int = 50, offset: int = 0) -> list[CardBatch]:
    return (
        db.query(CardBatch)
        .order_by(CardBatch.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


@with_store_retry
def get_batch_statistics(db: Session, batch_id: str) -> dict:
    """Card counts per status for a batch."""
    batch = db.query(CardBatch).filter(CardBatch.id == batch_id).first()
    if not batch:
        raise NotFoundError("Batch not found")

    counts = dict(
        db.query(Card.status, func.count(Card.id))
        .filter(Card.batch_id == batch_id)
        .group_by(Card.status)
        .all()
    )
    location_pending = (
        db.query(func.count(Card.id))
        .filter(
            Card.batch_id == batch_id,
            Card.status == "unactivated",
            Card.location_assigned_at.is_(None),
        )
        .scalar()
    )

    stats = {status: counts.get(status, 0) for status in CARD_STATUSES}
    stats.update({
        "batch_id": batch.id,
        "batch_number": batch.batch_number,
        "total": sum(counts.values()),
        "location_pending": location_pending or 0,
    })
    return stats


# Passcode completion

@with_store_retry
def assign_location(
    db: Session,
    card_id: str,
    location_code: str,
    performed_by: str = "clinic",
    performed_by_id: str | None = None,
) -> Card:
    """Complete a card's passcode by prefixing its location code.

    Only an unactivated card with an incomplete 4-digit passcode qualifies;
    a second assignment is rejected instead of re-prefixing.
    """
    code = numbering.normalize_location_code(location_code)
    if not code:
        raise ValidationError("Location code must be exactly 3 letters (e.g. CAV, MNL, CEB)")

    card = db.query(Card).filter(Card.id == card_id).first()
    if not card:
        raise NotFoundError("Card not found")
    if card.status != "unactivated":
        raise ConflictError("Card is no longer unactivated")
    if card.location_assigned_at or not numbering.is_incomplete_passcode(card.passcode):
        raise ConflictError("Location code already assigned to this card")

    now_iso = _utcnow().isoformat()
    new_passcode = numbering.complete_passcode(code, card.passcode)
    updated = (
        db.query(Card)
        .filter(
            Card.id == card.id,
            Card.status == "unactivated",
            Card.location_assigned_at.is_(None),
        )
        .update(
            {
                "passcode": new_passcode,
                "location_code": code,
                "location_assigned_at": now_iso,
                "updated_at": now_iso,
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        raise ConflictError("Location code already assigned to this card")

    record_transaction(
        db,
        card.id,
        "location_assigned",
        performed_by,
        performed_by_id,
        {"location_code": code},
    )
    db.commit()

    logger.info(f"Assigned location {code} to card {card_id}")
    return card


@with_store_retry
def list_pending_cards(db: Session, limit: int = 50) -> list[Card]:
    """Unactivated cards still waiting for a location code, oldest first."""
    return (
        db.query(Card)
        .options(joinedload(Card.batch))
        .filter(Card.status == "unactivated", Card.location_assigned_at.is_(None))
        .order_by(Card.created_at.asc(), Card.control_number.asc())
        .limit(limit)
        .all()
    )


# Activation

def _activations_this_month(db: Session, clinic_id: str, now: datetime) -> int:
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0).isoformat()
    return (
        db.query(func.count(Card.id))
        .filter(Card.assigned_clinic_id == clinic_id, Card.activated_at >= month_start)
        .scalar()
    ) or 0


@with_store_retry
def activate_card(
    db: Session,
    control_number: str,
    passcode: str,
    clinic_id: str,
    sale_amount: float | None = None,
    payment_method: str = "cash",
    customer_name: str | None = None,
    customer_phone: str | None = None,
    customer_email: str | None = None,
) -> tuple[Card, ClinicSale | None]:
    """Activate an unactivated card for a patient at a clinic.

    Unknown control numbers, wrong passcodes and cards in any other state
    all fail the same way so callers cannot probe card state.
    """
    clinic = db.query(Clinic).filter(Clinic.id == clinic_id, Clinic.is_active == 1).first()
    if not clinic:
        raise NotFoundError("Clinic not found")

    control_number = (control_number or "").strip()
    passcode = (passcode or "").strip().upper()
    if sale_amount is not None and sale_amount < 0:
        raise ValidationError("Sale amount must not be negative")

    card = (
        db.query(Card)
        .filter(
            Card.control_number == control_number,
            Card.passcode == passcode,
            Card.status == "unactivated",
        )
        .first()
    )
    if not card or not numbering.is_complete_passcode(card.passcode):
        raise NotFoundError("Card not found or passcode incorrect")

    now = _utcnow()
    if clinic.monthly_card_limit is not None:
        if _activations_this_month(db, clinic.id, now) >= clinic.monthly_card_limit:
            raise ValidationError("Monthly card activation limit reached")

    ensure_transition(card.status, "activated")
    activated_at = now.isoformat()
    expires_at = compute_expiry(now).isoformat()
    updated = (
        db.query(Card)
        .filter(Card.id == card.id, Card.status == "unactivated")
        .update(
            {
                "status": "activated",
                "assigned_clinic_id": clinic.id,
                "activated_at": activated_at,
                "expires_at": expires_at,
                "updated_at": activated_at,
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        raise ConflictError("Card was activated by another request")

    sale = None
    if sale_amount:
        commission_rate = clinic.commission_rate if clinic.commission_rate is not None else 10.0
        sale = ClinicSale(
            clinic_id=clinic.id,
            card_id=card.id,
            sale_amount=sale_amount,
            commission_amount=round(sale_amount * commission_rate / 100, 2),
            payment_method=payment_method,
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_email=customer_email,
            status="completed",
        )
        db.add(sale)

    record_transaction(
        db,
        card.id,
        "activated",
        "clinic",
        clinic.id,
        {
            "location_code": card.location_code,
            "customer_name": customer_name,
            "sale_amount": sale_amount,
            "expires_at": expires_at,
        },
    )
    db.commit()

    logger.info(f"Card {control_number} activated by clinic {clinic_id}")
    return card, sale


# Perk redemption

@with_store_retry
def redeem_perk(
    db: Session,
    card_id: str,
    perk_id: str,
    clinic_id: str,
    service_description: str,
    service_value: float | None = None,
    notes: str | None = None,
) -> tuple[CardPerk, PerkRedemption]:
    """Claim one perk of an active card; a perk can be claimed only once."""
    if not service_description or not service_description.strip():
        raise ValidationError("Service description is required")
    if service_value is not None and service_value < 0:
        raise ValidationError("Service value must not be negative")

    clinic = db.query(Clinic).filter(Clinic.id == clinic_id, Clinic.is_active == 1).first()
    if not clinic:
        raise NotFoundError("Clinic not found")

    perk = (
        db.query(CardPerk)
        .options(joinedload(CardPerk.card))
        .filter(CardPerk.id == perk_id, CardPerk.card_id == card_id)
        .first()
    )
    if not perk:
        raise NotFoundError("Perk not found on this card")

    card = perk.card
    now = _utcnow()
    if card.status != "activated":
        raise ValidationError("Card is not active")
    if effective_status(card, now) == "expired":
        raise ValidationError("Card has expired")
    if card.assigned_clinic_id != clinic.id:
        raise ValidationError("Card is not assigned to this clinic")
    if perk.claimed:
        raise ConflictError("Perk already claimed")

    claimed_at = now.isoformat()
    updated = (
        db.query(CardPerk)
        .filter(CardPerk.id == perk.id, CardPerk.claimed == 0)
        .update(
            {"claimed": 1, "claimed_at": claimed_at, "claimed_by_clinic": clinic.id},
            synchronize_session=False,
        )
    )
    if updated != 1:
        raise ConflictError("Perk already claimed")

    redemption = PerkRedemption(
        clinic_id=clinic.id,
        card_id=card.id,
        perk_id=perk.id,
        service_provided=service_description.strip(),
        service_value=service_value,
        notes=notes,
    )
    db.add(redemption)
    record_transaction(
        db,
        card.id,
        "perk_claimed",
        "clinic",
        clinic.id,
        {
            "perk_id": perk.id,
            "perk_type": perk.perk_type,
            "service_provided": redemption.service_provided,
            "service_value": service_value,
        },
    )
    db.commit()

    logger.info(f"Perk {perk_id} on card {card_id} redeemed by clinic {clinic_id}")
    return perk, redemption


# Lookup

def _card_with_details(db: Session):
    return db.query(Card).options(
        joinedload(Card.clinic),
        selectinload(Card.perks),
        joinedload(Card.batch),
    )


@with_store_retry
def lookup_card(db: Session, control_number: str, passcode: str) -> Card:
    """Patient lookup: requires the exact (control number, passcode) pair."""
    control_number = (control_number or "").strip()
    passcode = (passcode or "").strip().upper()
    if not control_number or not passcode:
        raise ValidationError("Control number and passcode are required")

    card = (
        _card_with_details(db)
        .filter(Card.control_number == control_number, Card.passcode == passcode)
        .first()
    )
    if not card:
        raise NotFoundError("Card not found or passcode incorrect")
    return card


@with_store_retry
def get_card_by_control_number(db: Session, control_number: str) -> Card:
    """Administrative lookup without passcode."""
    card = (
        _card_with_details(db)
        .filter(Card.control_number == (control_number or "").strip())
        .first()
    )
    if not card:
        raise NotFoundError("Card not found")
    return card


# Suspension and expiry

@with_store_retry
def suspend_card(db: Session, card_id: str, admin_id: str, reason: str | None = None) -> Card:
    admin = db.query(AdminUser).filter(AdminUser.id == admin_id).first()
    if not admin:
        raise NotFoundError("Admin user not found")

    card = db.query(Card).filter(Card.id == card_id).first()
    if not card:
        raise NotFoundError("Card not found")

    current = card.status
    ensure_transition(current, "suspended")
    now_iso = _utcnow().isoformat()
    updated = (
        db.query(Card)
        .filter(Card.id == card.id, Card.status == current)
        .update({"status": "suspended", "updated_at": now_iso}, synchronize_session=False)
    )
    if updated != 1:
        raise ConflictError("Card status changed concurrently")

    record_transaction(db, card.id, "suspended", "admin", admin.id, {"reason": reason})
    db.commit()

    logger.info(f"Card {card_id} suspended by admin {admin_id}")
    return card


@with_store_retry
def expire_cards(db: Session, now: datetime | None = None) -> int:
    """Move activated/suspended cards past their expiry date to expired.

    Returns the number of cards expired.
    """
    now = now or _utcnow()
    now_iso = now.isoformat()
    candidates = (
        db.query(Card)
        .filter(
            Card.status.in_(("activated", "suspended")),
            Card.expires_at.isnot(None),
            Card.expires_at <= now_iso,
        )
        .all()
    )

    expired = 0
    for card in candidates:
        previous = card.status
        updated = (
            db.query(Card)
            .filter(Card.id == card.id, Card.status == previous)
            .update({"status": "expired", "updated_at": now_iso}, synchronize_session=False)
        )
        if updated != 1:
            continue
        record_transaction(
            db,
            card.id,
            "expired",
            "system",
            None,
            {"previous_status": previous, "expires_at": card.expires_at},
        )
        expired += 1

    db.commit()
    if expired:
        logger.info(f"Expired {expired} cards")
    return expired
