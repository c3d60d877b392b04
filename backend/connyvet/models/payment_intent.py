from datetime import datetime
from enum import Enum

from connyvet.extensions import db


class IntentStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    FAILED = "failed"
    REFUNDED = "refunded"


class IntentProvider(str, Enum):
    MANUAL = "manual"


INTENT_STATUSES = [s.value for s in IntentStatus]
INTENT_PROVIDERS = [p.value for p in IntentProvider]


class PaymentIntent(db.Model):
    """
    Intención de cobro: monto total en pesos (sin decimales) que se va
    cubriendo con transacciones hasta quedar pagada.
    """

    __tablename__ = "payment_intents"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    patient_id = db.Column(
        db.Integer,
        db.ForeignKey("patients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    tutor_id = db.Column(
        db.Integer,
        db.ForeignKey("tutors.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    consultation_id = db.Column(
        db.Integer,
        db.ForeignKey("consultations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    currency = db.Column(db.String(3), nullable=False, default="CLP")
    amount_total = db.Column(db.BigInteger, nullable=False)
    amount_paid = db.Column(db.BigInteger, nullable=False, default=0)
    amount_refunded = db.Column(db.BigInteger, nullable=False, default=0)

    # draft -> pending -> paid; draft|pending -> cancelled
    status = db.Column(
        db.String(20),
        nullable=False,
        default=IntentStatus.DRAFT.value,
        index=True,
    )
    provider = db.Column(
        db.String(30),
        nullable=False,
        default=IntentProvider.MANUAL.value,
        index=True,
    )

    title = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    meta = db.Column(db.JSON, nullable=True)

    created_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = db.Column(db.DateTime, nullable=True, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=True,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    transactions = db.relationship(
        "PaymentTransaction",
        back_populates="intent",
        order_by="PaymentTransaction.id",
        cascade="all, delete-orphan",
    )

    @property
    def amount_due(self) -> int:
        return max(int(self.amount_total or 0) - int(self.amount_paid or 0), 0)

    def __repr__(self) -> str:
        return f"<PaymentIntent id={self.id} status={self.status} total={self.amount_total}>"
