"""Actor models: administrators and clinics."""
import uuid
from datetime import datetime

from sqlalchemy import Column, Float, Integer, String
from sqlalchemy.orm import relationship

from mocards.database import Base


class AdminUser(Base):
    """Administrator who generates card batches and manages perk templates."""

    __tablename__ = "admin_users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(String(26), default=lambda: datetime.utcnow().isoformat())

    # Relationships
    batches = relationship("CardBatch", back_populates="creator")


class Clinic(Base):
    """Dental clinic that activates cards and redeems perks."""

    __tablename__ = "clinics"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    clinic_code = Column(String(20), unique=True, nullable=False, index=True)
    clinic_name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    commission_rate = Column(Float, default=10.0)  # Percent of sale amount
    monthly_card_limit = Column(Integer)  # NULL = unlimited
    is_active = Column(Integer, default=1)  # SQLite boolean
    created_at = Column(String(26), default=lambda: datetime.utcnow().isoformat())

    # Relationships
    cards = relationship("Card", back_populates="clinic")
