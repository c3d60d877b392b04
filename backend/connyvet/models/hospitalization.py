from datetime import datetime

from connyvet.extensions import db


class Hospitalization(db.Model):
    __tablename__ = "hospitalizations"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    patient_id = db.Column(
        db.Integer,
        db.ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
    )

    admitted_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    discharged_at = db.Column(db.DateTime, nullable=True)

    patient = db.relationship("Patient")
