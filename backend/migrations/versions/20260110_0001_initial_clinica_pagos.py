"""initial: usuarios, tutores, pacientes, origen clínico y pagos

Revision ID: 20260110_0001
Revises:
Create Date: 2026-01-10

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "20260110_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    if "users" not in tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("role", sa.String(length=30), nullable=False, server_default="tutor"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
            sa.Column("phone", sa.String(length=30), nullable=True),
            sa.Column("last_login_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        )

    if "tutors" not in tables:
        op.create_table(
            "tutors",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("nombres", sa.String(length=120), nullable=False),
            sa.Column("apellidos", sa.String(length=120), nullable=True),
            sa.Column("rut", sa.String(length=20), nullable=True, unique=True),
            sa.Column("email", sa.String(length=255), nullable=True, unique=True),
            sa.Column("telefono_movil", sa.String(length=30), nullable=True),
            sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )

    if "patients" not in tables:
        op.create_table(
            "patients",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("tutor_id", sa.Integer(), nullable=True),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("species", sa.String(length=60), nullable=True),
            sa.Column("breed", sa.String(length=120), nullable=True),
            sa.Column("sex", sa.String(length=10), nullable=True),
            sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["tutor_id"], ["tutors.id"], ondelete="SET NULL"),
        )

    if "consultations" not in tables:
        op.create_table(
            "consultations",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("patient_id", sa.Integer(), nullable=True),
            sa.Column("date", sa.DateTime(), nullable=True),
            sa.Column("reason", sa.String(length=255), nullable=True),
            sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        )

    if "vaccine_applications" not in tables:
        op.create_table(
            "vaccine_applications",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("patient_id", sa.Integer(), nullable=False),
            sa.Column("vaccine_name", sa.String(length=120), nullable=False),
            sa.Column("applied_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        )

    if "hospitalizations" not in tables:
        op.create_table(
            "hospitalizations",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("patient_id", sa.Integer(), nullable=False),
            sa.Column("admitted_at", sa.DateTime(), nullable=False),
            sa.Column("discharged_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        )

    if "payments" not in tables:
        op.create_table(
            "payments",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("patient_id", sa.Integer(), nullable=False),
            sa.Column("tutor_id", sa.Integer(), nullable=True),
            sa.Column("consultation_id", sa.Integer(), nullable=True),
            sa.Column("vaccine_application_id", sa.Integer(), nullable=True),
            sa.Column("hospitalization_id", sa.Integer(), nullable=True),
            sa.Column("concept", sa.String(length=255), nullable=False),
            sa.Column("amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("method", sa.String(length=30), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("paid_at", sa.DateTime(), nullable=True),
            sa.Column("cancelled_at", sa.DateTime(), nullable=True),
            sa.Column("cancelled_reason", sa.String(length=255), nullable=True),
            sa.Column("created_by", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="RESTRICT"),
            sa.ForeignKeyConstraint(["tutor_id"], ["tutors.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["consultation_id"], ["consultations.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["vaccine_application_id"], ["vaccine_applications.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["hospitalization_id"], ["hospitalizations.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        )
        op.create_index("ix_payments_status", "payments", ["status"], unique=False)
        op.create_index("ix_payments_patient_id", "payments", ["patient_id"], unique=False)
        op.create_index("ix_payments_created_at", "payments", ["created_at"], unique=False)


def downgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    if "payments" in tables:
        for ix in ("ix_payments_created_at", "ix_payments_patient_id", "ix_payments_status"):
            try:
                op.drop_index(ix, table_name="payments")
            except Exception:
                pass
        op.drop_table("payments")

    for table in ("hospitalizations", "vaccine_applications", "consultations", "patients", "tutors", "users"):
        if table in tables:
            op.drop_table(table)
