from datetime import datetime
from enum import Enum

from connyvet.extensions import db


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    EFECTIVO = "efectivo"
    DEBITO = "debito"
    CREDITO = "credito"
    TRANSFERENCIA = "transferencia"


PAYMENT_STATUSES = [s.value for s in PaymentStatus]
PAYMENT_METHODS = [m.value for m in PaymentMethod]


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    patient_id = db.Column(
        db.Integer,
        db.ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
    )
    tutor_id = db.Column(
        db.Integer,
        db.ForeignKey("tutors.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Origen del cobro (no excluyentes, todos opcionales)
    consultation_id = db.Column(
        db.Integer,
        db.ForeignKey("consultations.id", ondelete="SET NULL"),
        nullable=True,
    )
    vaccine_application_id = db.Column(
        db.Integer,
        db.ForeignKey("vaccine_applications.id", ondelete="SET NULL"),
        nullable=True,
    )
    hospitalization_id = db.Column(
        db.Integer,
        db.ForeignKey("hospitalizations.id", ondelete="SET NULL"),
        nullable=True,
    )

    concept = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    # pending -> paid, pending|paid -> cancelled; nunca hacia atrás
    status = db.Column(
        db.String(20),
        nullable=False,
        default=PaymentStatus.PENDING.value,
        index=True,
    )
    method = db.Column(db.String(30), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    paid_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancelled_reason = db.Column(db.String(255), nullable=True)

    created_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = db.Column(
        db.DateTime,
        nullable=True,
        default=datetime.utcnow,
    )
    updated_at = db.Column(
        db.DateTime,
        nullable=True,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    patient = db.relationship("Patient", lazy="joined")
    tutor = db.relationship("Tutor", lazy="joined")
    creator = db.relationship("User", foreign_keys=[created_by])

    def __repr__(self) -> str:
        return f"<Payment id={self.id} patient={self.patient_id} status={self.status}>"
