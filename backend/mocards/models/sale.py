"""Clinic commerce bookkeeping: sales at activation, perk redemptions."""
import uuid
from datetime import datetime

from sqlalchemy import Column, Float, ForeignKey, Index, String, Text

from mocards.database import Base


class ClinicSale(Base):
    """Sale recorded when a clinic activates a card for a patient."""

    __tablename__ = "clinic_sales"
    __table_args__ = (
        Index("ix_clinic_sales_clinic_created", "clinic_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=False)
    card_id = Column(String(36), ForeignKey("cards.id"), nullable=False, index=True)
    sale_amount = Column(Float, nullable=False)
    commission_amount = Column(Float, nullable=False)
    payment_method = Column(String(30), default="cash")
    customer_name = Column(String(255))
    customer_phone = Column(String(50))
    customer_email = Column(String(255))
    status = Column(String(20), default="completed")
    created_at = Column(String(26), default=lambda: datetime.utcnow().isoformat())


class PerkRedemption(Base):
    """Service a clinic provided when redeeming a card perk."""

    __tablename__ = "perk_redemptions"
    __table_args__ = (
        Index("ix_perk_redemptions_clinic_created", "clinic_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=False)
    card_id = Column(String(36), ForeignKey("cards.id"), nullable=False, index=True)
    perk_id = Column(String(36), ForeignKey("card_perks.id"), nullable=False, unique=True)
    service_provided = Column(String(255), nullable=False)
    service_value = Column(Float)
    notes = Column(Text)
    created_at = Column(String(26), default=lambda: datetime.utcnow().isoformat())
