"""SQLAlchemy models package."""
from mocards.models.actor import AdminUser, Clinic
from mocards.models.card import Card, CardBatch, CardPerk, PerkTemplate
from mocards.models.transaction import CardTransaction
from mocards.models.sale import ClinicSale, PerkRedemption
from mocards.models.auth import RefreshSession

__all__ = [
    "AdminUser",
    "Clinic",
    "CardBatch",
    "Card",
    "CardPerk",
    "PerkTemplate",
    "CardTransaction",
    "ClinicSale",
    "PerkRedemption",
    "RefreshSession",
]
