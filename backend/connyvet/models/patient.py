from datetime import datetime

from connyvet.extensions import db


class Patient(db.Model):
    __tablename__ = "patients"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    tutor_id = db.Column(
        db.Integer,
        db.ForeignKey("tutors.id", ondelete="SET NULL"),
        nullable=True,
    )

    name = db.Column(db.String(120), nullable=False)
    species = db.Column(db.String(60), nullable=True)
    breed = db.Column(db.String(120), nullable=True)
    sex = db.Column(db.String(10), nullable=True)

    active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=True, default=datetime.utcnow)

    tutor = db.relationship("Tutor", back_populates="patients")

    def __repr__(self) -> str:
        return f"<Patient id={self.id} name={self.name}>"
