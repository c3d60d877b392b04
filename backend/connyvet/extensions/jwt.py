from flask import jsonify
from flask_jwt_extended import JWTManager

jwt = JWTManager()


def _jwt_error(message: str):
    return jsonify({"success": False, "message": message}), 401


@jwt.unauthorized_loader
def _token_ausente(reason: str):
    return _jwt_error("Token requerido")


@jwt.invalid_token_loader
def _token_invalido(reason: str):
    return _jwt_error("Token inválido")


@jwt.expired_token_loader
def _token_expirado(jwt_header, jwt_payload):
    return _jwt_error("La sesión expiró. Inicia sesión nuevamente.")
