from sqlalchemy import func

from connyvet.extensions import db


ROLE_ADMIN = "admin"
ROLE_DOCTOR = "doctor"
ROLE_ASISTENTE = "asistente"
ROLE_RECEPCION = "recepcion"
ROLE_VET = "vet"
ROLE_TUTOR = "tutor"

ROLES = (ROLE_ADMIN, ROLE_DOCTOR, ROLE_ASISTENTE, ROLE_RECEPCION, ROLE_VET, ROLE_TUTOR)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    # Un solo rol por usuario (columna simple, igual que en la BD de la clínica)
    role = db.Column(db.String(30), nullable=False, default=ROLE_TUTOR)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    phone = db.Column(db.String(30))

    last_login_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.TIMESTAMP,
        server_default=func.current_timestamp()
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"
