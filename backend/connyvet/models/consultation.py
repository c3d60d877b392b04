from datetime import datetime

from connyvet.extensions import db


class Consultation(db.Model):
    __tablename__ = "consultations"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    patient_id = db.Column(
        db.Integer,
        db.ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=True,
    )

    date = db.Column(db.DateTime, nullable=True, default=datetime.utcnow)
    reason = db.Column(db.String(255), nullable=True)

    patient = db.relationship("Patient")
