from datetime import datetime

from connyvet.extensions import db


class Tutor(db.Model):
    __tablename__ = "tutors"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    nombres = db.Column(db.String(120), nullable=False)
    apellidos = db.Column(db.String(120), nullable=True)
    rut = db.Column(db.String(20), unique=True, nullable=True)
    email = db.Column(db.String(255), unique=True, nullable=True)
    telefono_movil = db.Column(db.String(30), nullable=True)

    active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=True, default=datetime.utcnow)

    patients = db.relationship("Patient", back_populates="tutor")

    def nombre_completo(self) -> str:
        return f"{self.nombres} {self.apellidos or ''}".strip()
