"""card lifecycle schema

Revision ID: 3c1e7b9a4d20
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c1e7b9a4d20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "admin_users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.String(length=26), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_admin_users_username"), "admin_users", ["username"], unique=True)

    op.create_table(
        "clinics",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("clinic_code", sa.String(length=20), nullable=False),
        sa.Column("clinic_name", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("commission_rate", sa.Float(), nullable=True),
        sa.Column("monthly_card_limit", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.String(length=26), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_clinics_clinic_code"), "clinics", ["clinic_code"], unique=True)

    op.create_table(
        "perk_templates",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("perk_type", sa.String(length=30), nullable=False),
        sa.Column("perk_name", sa.String(length=100), nullable=False),
        sa.Column("perk_value", sa.Float(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.String(length=26), nullable=True),
        sa.Column("updated_at", sa.String(length=26), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_perk_templates_perk_type"), "perk_templates", ["perk_type"], unique=True)

    op.create_table(
        "card_batches",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("batch_number", sa.String(length=50), nullable=False),
        sa.Column("total_cards", sa.Integer(), nullable=False),
        sa.Column("cards_generated", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.String(length=36), nullable=False),
        sa.Column("batch_status", sa.String(length=20), nullable=True),
        sa.Column("distribution_label", sa.String(length=100), nullable=True),
        sa.Column("idempotency_key", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.String(length=26), nullable=True),
        sa.ForeignKeyConstraint(["created_by"], ["admin_users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("idempotency_key"),
    )
    op.create_index(op.f("ix_card_batches_batch_number"), "card_batches", ["batch_number"], unique=True)

    op.create_table(
        "cards",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("batch_id", sa.String(length=36), nullable=False),
        sa.Column("control_number", sa.String(length=50), nullable=False),
        sa.Column("passcode", sa.String(length=10), nullable=False),
        sa.Column("location_code", sa.String(length=3), nullable=False),
        sa.Column("location_assigned_at", sa.String(length=26), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("assigned_clinic_id", sa.String(length=36), nullable=True),
        sa.Column("activated_at", sa.String(length=26), nullable=True),
        sa.Column("expires_at", sa.String(length=26), nullable=True),
        sa.Column("card_metadata", sa.Text(), nullable=True),
        sa.Column("created_at", sa.String(length=26), nullable=True),
        sa.Column("updated_at", sa.String(length=26), nullable=True),
        sa.ForeignKeyConstraint(["assigned_clinic_id"], ["clinics.id"]),
        sa.ForeignKeyConstraint(["batch_id"], ["card_batches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("control_number"),
    )
    with op.batch_alter_table("cards", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_cards_batch_id"), ["batch_id"], unique=False)
        batch_op.create_index("ix_cards_lookup", ["control_number", "passcode"], unique=False)
        batch_op.create_index("ix_cards_status_expiry", ["status", "expires_at"], unique=False)
        batch_op.create_index("ix_cards_clinic_activated", ["assigned_clinic_id", "activated_at"], unique=False)

    op.create_table(
        "card_perks",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("card_id", sa.String(length=36), nullable=False),
        sa.Column("perk_type", sa.String(length=30), nullable=False),
        sa.Column("perk_name", sa.String(length=100), nullable=False),
        sa.Column("perk_value", sa.Float(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=True),
        sa.Column("claimed", sa.Integer(), nullable=True),
        sa.Column("claimed_at", sa.String(length=26), nullable=True),
        sa.Column("claimed_by_clinic", sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(["card_id"], ["cards.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["claimed_by_clinic"], ["clinics.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("card_id", "perk_type", name="uq_card_perk_type"),
    )
    op.create_index(op.f("ix_card_perks_card_id"), "card_perks", ["card_id"], unique=False)

    op.create_table(
        "card_transactions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("card_id", sa.String(length=36), nullable=False),
        sa.Column("transaction_type", sa.String(length=30), nullable=False),
        sa.Column("performed_by", sa.String(length=10), nullable=False),
        sa.Column("performed_by_id", sa.String(length=36), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.String(length=26), nullable=True),
        sa.ForeignKeyConstraint(["card_id"], ["cards.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("card_transactions", schema=None) as batch_op:
        batch_op.create_index("ix_card_transactions_card_created", ["card_id", "created_at"], unique=False)
        batch_op.create_index("ix_card_transactions_type", ["transaction_type"], unique=False)

    op.create_table(
        "clinic_sales",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("clinic_id", sa.String(length=36), nullable=False),
        sa.Column("card_id", sa.String(length=36), nullable=False),
        sa.Column("sale_amount", sa.Float(), nullable=False),
        sa.Column("commission_amount", sa.Float(), nullable=False),
        sa.Column("payment_method", sa.String(length=30), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("customer_phone", sa.String(length=50), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.String(length=26), nullable=True),
        sa.ForeignKeyConstraint(["card_id"], ["cards.id"]),
        sa.ForeignKeyConstraint(["clinic_id"], ["clinics.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("clinic_sales", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_clinic_sales_card_id"), ["card_id"], unique=False)
        batch_op.create_index("ix_clinic_sales_clinic_created", ["clinic_id", "created_at"], unique=False)

    op.create_table(
        "perk_redemptions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("clinic_id", sa.String(length=36), nullable=False),
        sa.Column("card_id", sa.String(length=36), nullable=False),
        sa.Column("perk_id", sa.String(length=36), nullable=False),
        sa.Column("service_provided", sa.String(length=255), nullable=False),
        sa.Column("service_value", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.String(length=26), nullable=True),
        sa.ForeignKeyConstraint(["card_id"], ["cards.id"]),
        sa.ForeignKeyConstraint(["clinic_id"], ["clinics.id"]),
        sa.ForeignKeyConstraint(["perk_id"], ["card_perks.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("perk_id"),
    )
    with op.batch_alter_table("perk_redemptions", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_perk_redemptions_card_id"), ["card_id"], unique=False)
        batch_op.create_index("ix_perk_redemptions_clinic_created", ["clinic_id", "created_at"], unique=False)

    op.create_table(
        "refresh_sessions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("actor_type", sa.String(length=10), nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=False),
        sa.Column("jti_hash", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.String(length=26), nullable=True),
        sa.Column("expires_at", sa.String(length=26), nullable=False),
        sa.Column("revoked_at", sa.String(length=26), nullable=True),
        sa.Column("last_used_at", sa.String(length=26), nullable=True),
        sa.Column("rotated_from_id", sa.String(length=36), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(["rotated_from_id"], ["refresh_sessions.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("refresh_sessions", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_refresh_sessions_actor_id"), ["actor_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_refresh_sessions_jti_hash"), ["jti_hash"], unique=True)
        batch_op.create_index("ix_refresh_sessions_actor_active", ["actor_type", "actor_id", "revoked_at"], unique=False)
        batch_op.create_index("ix_refresh_sessions_expires_at", ["expires_at"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("refresh_sessions")
    op.drop_table("perk_redemptions")
    op.drop_table("clinic_sales")
    op.drop_table("card_transactions")
    op.drop_table("card_perks")
    op.drop_table("cards")
    op.drop_table("card_batches")
    op.drop_table("perk_templates")
    op.drop_table("clinics")
    op.drop_table("admin_users")
