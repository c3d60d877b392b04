"""add payment_intents y payment_transactions (cobro manual)

Revision ID: 20260124_0002
Revises: 20260110_0001
Create Date: 2026-01-24

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "20260124_0002"
down_revision = "20260110_0001"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    if "payment_intents" not in tables:
        op.create_table(
            "payment_intents",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("patient_id", sa.Integer(), nullable=True),
            sa.Column("tutor_id", sa.Integer(), nullable=True),
            sa.Column("consultation_id", sa.Integer(), nullable=True),
            sa.Column("currency", sa.String(length=3), nullable=False, server_default="CLP"),
            sa.Column("amount_total", sa.BigInteger(), nullable=False),
            sa.Column("amount_paid", sa.BigInteger(), nullable=False, server_default="0"),
            sa.Column("amount_refunded", sa.BigInteger(), nullable=False, server_default="0"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
            sa.Column("provider", sa.String(length=30), nullable=False, server_default="manual"),
            sa.Column("title", sa.String(length=255), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("meta", sa.JSON(), nullable=True),
            sa.Column("created_by", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["tutor_id"], ["tutors.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["consultation_id"], ["consultations.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        )
        op.create_index("ix_payment_intents_patient_id", "payment_intents", ["patient_id"], unique=False)
        op.create_index("ix_payment_intents_tutor_id", "payment_intents", ["tutor_id"], unique=False)
        op.create_index("ix_payment_intents_consultation_id", "payment_intents", ["consultation_id"], unique=False)
        op.create_index("ix_payment_intents_status", "payment_intents", ["status"], unique=False)
        op.create_index("ix_payment_intents_provider", "payment_intents", ["provider"], unique=False)

    if "payment_transactions" not in tables:
        op.create_table(
            "payment_transactions",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("payment_intent_id", sa.Integer(), nullable=False),
            sa.Column("provider", sa.String(length=30), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="initiated"),
            sa.Column("amount", sa.BigInteger(), nullable=False),
            sa.Column("currency", sa.String(length=3), nullable=False, server_default="CLP"),
            sa.Column("external_id", sa.String(length=120), nullable=True),
            sa.Column("request_payload", sa.JSON(), nullable=True),
            sa.Column("response_payload", sa.JSON(), nullable=True),
            sa.Column("created_by", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["payment_intent_id"], ["payment_intents.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        )
        op.create_index("ix_payment_transactions_payment_intent_id", "payment_transactions", ["payment_intent_id"], unique=False)
        op.create_index("ix_payment_transactions_provider", "payment_transactions", ["provider"], unique=False)
        op.create_index("ix_payment_transactions_status", "payment_transactions", ["status"], unique=False)
        op.create_index("ix_payment_transactions_external_id", "payment_transactions", ["external_id"], unique=False)


def downgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    if "payment_transactions" in tables:
        op.drop_table("payment_transactions")
    if "payment_intents" in tables:
        op.drop_table("payment_intents")
