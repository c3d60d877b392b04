from datetime import datetime

from connyvet.extensions import db


class VaccineApplication(db.Model):
    __tablename__ = "vaccine_applications"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    patient_id = db.Column(
        db.Integer,
        db.ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
    )

    vaccine_name = db.Column(db.String(120), nullable=False)
    applied_at = db.Column(db.DateTime, nullable=True, default=datetime.utcnow)

    patient = db.relationship("Patient")
