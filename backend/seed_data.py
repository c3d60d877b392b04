# backend/seed_data.py
import os

from connyvet import create_app
from connyvet.extensions import db, bcrypt
from connyvet.models.user import User
from connyvet.models.tutor import Tutor
from connyvet.models.patient import Patient

app = create_app()

STAFF = [
    ("admin@connyvet.test", "Admin ConnyVet", "admin"),
    ("recepcion@connyvet.test", "Recepción Demo", "recepcion"),
    ("vet@connyvet.test", "Veterinaria Demo", "vet"),
    ("doctor@connyvet.test", "Doctor Demo", "doctor"),
    ("asistente@connyvet.test", "Asistente Demo", "asistente"),
]

with app.app_context():
    password = os.getenv("SEED_PASSWORD", "password")
    password_hash = bcrypt.generate_password_hash(password).decode("utf-8")

    for email, name, role in STAFF:
        if User.query.filter_by(email=email).first():
            continue
        db.session.add(User(name=name, email=email, password_hash=password_hash, role=role, is_active=True))

    tutor = Tutor.query.filter_by(email="tutor.demo@connyvet.test").first()
    if not tutor:
        tutor = Tutor(nombres="Constanza", apellidos="Demo", email="tutor.demo@connyvet.test")
        db.session.add(tutor)
        db.session.flush()  # para tener id

    if not Patient.query.filter_by(name="Firulais", tutor_id=tutor.id).first():
        db.session.add(Patient(name="Firulais", species="perro", breed="Mestizo", sex="M", tutor_id=tutor.id))

    db.session.commit()

    print("✅ Usuarios del staff y paciente de ejemplo creados.")
