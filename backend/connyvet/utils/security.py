from flask_jwt_extended import get_jwt_identity

from connyvet.extensions import db
from connyvet.models.user import User
from connyvet.utils.errors import ApiError, AuthorizationDenied


def require_current_user() -> User:
	"""Usuario del token, recargado desde BD (el rol vigente manda, no el del token)."""

	identity = get_jwt_identity()
	try:
		user_id = int(identity)
	except (TypeError, ValueError):
		raise ApiError("Token inválido", 401)

	user: User | None = db.session.get(User, user_id)
	if not user:
		raise ApiError("Usuario no encontrado", 401)

	if not user.is_active:
		raise AuthorizationDenied(
			"Usuario inactivo. Contacta al administrador.",
			payload={"code": "USER_INACTIVE", "user_id": user.id},
		)

	return user
