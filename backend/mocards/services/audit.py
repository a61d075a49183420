"""Append-only card transaction log."""
import json

from sqlalchemy.orm import Session

from mocards.errors import NotFoundError
from mocards.models.card import Card
from mocards.models.transaction import CardTransaction

TRANSACTION_TYPES = {
    "created",
    "location_assigned",
    "activated",
    "perk_claimed",
    "suspended",
    "expired",
}
ACTOR_KINDS = {"admin", "clinic", "system"}


def record_transaction(
    db: Session,
    card_id: str,
    transaction_type: str,
    performed_by: str,
    performed_by_id: str | None = None,
    details: dict | None = None,
) -> CardTransaction:
    """Add a transaction to the session; the caller commits with its state change."""
    if transaction_type not in TRANSACTION_TYPES:
        raise ValueError(f"Unknown transaction type: {transaction_type}")
    if performed_by not in ACTOR_KINDS:
        raise ValueError(f"Unknown actor kind: {performed_by}")

    transaction = CardTransaction(
        card_id=card_id,
        transaction_type=transaction_type,
        performed_by=performed_by,
        performed_by_id=performed_by_id,
        details=json.dumps(details or {}, default=str),
    )
    db.add(transaction)
    return transaction


def list_card_transactions(db: Session, card_id: str) -> list[CardTransaction]:
    """Audit history of a card, oldest first."""
    if not db.query(Card.id).filter(Card.id == card_id).first():
        raise NotFoundError("Card not found")
    return (
        db.query(CardTransaction)
        .filter(CardTransaction.card_id == card_id)
        .order_by(CardTransaction.created_at.asc(), CardTransaction.id.asc())
        .all()
    )
