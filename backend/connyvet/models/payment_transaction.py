from datetime import datetime
from enum import Enum

from connyvet.extensions import db


class TransactionStatus(str, Enum):
    INITIATED = "initiated"
    AUTHORIZED = "authorized"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentTransaction(db.Model):
    __tablename__ = "payment_transactions"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    payment_intent_id = db.Column(
        db.Integer,
        db.ForeignKey("payment_intents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    provider = db.Column(db.String(30), nullable=False, index=True)
    status = db.Column(
        db.String(20),
        nullable=False,
        default=TransactionStatus.INITIATED.value,
        index=True,
    )

    amount = db.Column(db.BigInteger, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="CLP")

    # nro de transferencia, boleta, etc.
    external_id = db.Column(db.String(120), nullable=True, index=True)

    request_payload = db.Column(db.JSON, nullable=True)
    response_payload = db.Column(db.JSON, nullable=True)

    created_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(db.DateTime, nullable=True, default=datetime.utcnow)

    intent = db.relationship("PaymentIntent", back_populates="transactions")

    def __repr__(self) -> str:
        return f"<PaymentTransaction id={self.id} intent={self.payment_intent_id} status={self.status}>"
