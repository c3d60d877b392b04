from datetime import datetime

from flask import current_app
from flask_jwt_extended import create_access_token

from connyvet.extensions import bcrypt, db
from connyvet.models.user import User
from connyvet.utils.errors import ApiError, AuthorizationDenied


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "phone": user.phone,
        "is_active": bool(user.is_active),
        "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
    }


def autenticar(email: str, password: str) -> dict:
    correo = email.lower().strip()
    user = User.query.filter_by(email=correo).first()

    if not user:
        raise ApiError("Credenciales inválidas", 401)

    try:
        password_ok = bcrypt.check_password_hash(user.password_hash or "", password)
    except (ValueError, TypeError):
        # Hash corrupto o en texto plano: credenciales inválidas, no 500.
        raise ApiError("Credenciales inválidas", 401)

    if not password_ok:
        current_app.logger.info("[auth] login fallido para %s", correo)
        raise ApiError("Credenciales inválidas", 401)

    if not user.is_active:
        raise AuthorizationDenied(
            "Usuario inactivo. Contacta al administrador.",
            payload={"code": "USER_INACTIVE"},
        )

    user.last_login_at = datetime.utcnow()
    db.session.commit()

    # El rol va en el token solo como dato para el front; la API lo relee desde BD.
    access_token = create_access_token(
        identity=str(user.id),
        additional_claims={"role": user.role},
    )

    current_app.logger.info("[auth] login de usuario %s (rol=%s)", user.id, user.role)
    return {
        "access_token": access_token,
        "user": user_to_dict(user),
    }
