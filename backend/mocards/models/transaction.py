"""Card transaction (audit log) model."""
import uuid
from datetime import datetime

from sqlalchemy import Column, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from mocards.database import Base


class CardTransaction(Base):
    """Append-only record of a state-changing card or perk operation."""

    __tablename__ = "card_transactions"
    __table_args__ = (
        Index("ix_card_transactions_card_created", "card_id", "created_at"),
        Index("ix_card_transactions_type", "transaction_type"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    card_id = Column(String(36), ForeignKey("cards.id", ondelete="CASCADE"), nullable=False)

    # created, location_assigned, activated, perk_claimed, suspended, expired
    transaction_type = Column(String(30), nullable=False)
    performed_by = Column(String(10), nullable=False)  # admin, clinic, system
    performed_by_id = Column(String(36))
    details = Column(Text, default="{}")  # JSON

    created_at = Column(String(26), default=lambda: datetime.utcnow().isoformat())

    # Relationships
    card = relationship("Card", back_populates="transactions")
