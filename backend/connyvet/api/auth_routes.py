from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from connyvet.schemas.auth_schemas import LoginSchema
from connyvet.services import auth_service
from connyvet.utils.responses import success_response
from connyvet.utils.security import require_current_user

bp = Blueprint("auth", __name__)


@bp.post("/login")
def login():
    data = LoginSchema().load(request.get_json(silent=True) or {})
    result = auth_service.autenticar(data["email"], data["password"])
    return success_response(data=result, message="Login correcto")


@bp.get("/me")
@jwt_required()
def me():
    user = require_current_user()
    return success_response(
        data=auth_service.user_to_dict(user),
        message="Perfil del usuario"
    )
