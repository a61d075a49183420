"""Card-related models."""
import uuid
from datetime import datetime

from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from mocards.database import Base


class CardBatch(Base):
    """A batch of cards generated together by an administrator."""

    __tablename__ = "card_batches"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    batch_number = Column(String(50), unique=True, nullable=False, index=True)
    total_cards = Column(Integer, nullable=False)
    cards_generated = Column(Integer, default=0)
    created_by = Column(String(36), ForeignKey("admin_users.id"), nullable=False)
    batch_status = Column(String(20), default="generating")  # generating, completed
    distribution_label = Column(String(100), default="general")
    idempotency_key = Column(String(100), unique=True)
    created_at = Column(String(26), default=lambda: datetime.utcnow().isoformat())

    # Relationships
    creator = relationship("AdminUser", back_populates="batches")
    cards = relationship("Card", back_populates="batch", order_by="Card.control_number")


class Card(Base):
    """A physical/digital loyalty card."""

    __tablename__ = "cards"
    __table_args__ = (
        Index("ix_cards_lookup", "control_number", "passcode"),
        Index("ix_cards_status_expiry", "status", "expires_at"),
        Index("ix_cards_clinic_activated", "assigned_clinic_id", "activated_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    batch_id = Column(String(36), ForeignKey("card_batches.id"), nullable=False, index=True)
    control_number = Column(String(50), unique=True, nullable=False)
    passcode = Column(String(10), nullable=False)  # 4 digits, or location code + 4 digits
    location_code = Column(String(3), nullable=False)
    location_assigned_at = Column(String(26))

    # Lifecycle: unactivated -> activated -> suspended | expired
    status = Column(String(20), nullable=False, default="unactivated")
    assigned_clinic_id = Column(String(36), ForeignKey("clinics.id"))
    activated_at = Column(String(26))
    expires_at = Column(String(26))

    card_metadata = Column(Text, default="{}")  # JSON
    created_at = Column(String(26), default=lambda: datetime.utcnow().isoformat())
    updated_at = Column(String(26), default=lambda: datetime.utcnow().isoformat(), onupdate=lambda: datetime.utcnow().isoformat())

    # Relationships
    batch = relationship("CardBatch", back_populates="cards")
    clinic = relationship("Clinic", back_populates="cards")
    perks = relationship("CardPerk", back_populates="card", order_by="CardPerk.sort_order", cascade="all, delete-orphan")
    transactions = relationship("CardTransaction", back_populates="card", order_by="CardTransaction.created_at")


class CardPerk(Base):
    """A single perk issued with a card; claimable once."""

    __tablename__ = "card_perks"
    __table_args__ = (
        UniqueConstraint("card_id", "perk_type", name="uq_card_perk_type"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    card_id = Column(String(36), ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    perk_type = Column(String(30), nullable=False)
    perk_name = Column(String(100), nullable=False)
    perk_value = Column(Float, default=0.0)
    sort_order = Column(Integer, default=0)

    claimed = Column(Integer, default=0)  # SQLite boolean, one-way
    claimed_at = Column(String(26))
    claimed_by_clinic = Column(String(36), ForeignKey("clinics.id"))

    # Relationships
    card = relationship("Card", back_populates="perks")


class PerkTemplate(Base):
    """Perk issued to every newly generated card (seeded from YAML files)."""

    __tablename__ = "perk_templates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    perk_type = Column(String(30), unique=True, nullable=False, index=True)
    perk_name = Column(String(100), nullable=False)
    perk_value = Column(Float, default=0.0)
    description = Column(Text)
    sort_order = Column(Integer, default=0)
    is_active = Column(Integer, default=1)  # SQLite boolean
    created_at = Column(String(26), default=lambda: datetime.utcnow().isoformat())
    updated_at = Column(String(26), default=lambda: datetime.utcnow().isoformat(), onupdate=lambda: datetime.utcnow().isoformat())
