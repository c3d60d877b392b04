from flask import jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError


class ApiError(Exception):
    """
    Excepción genérica para errores de negocio.
    """
    status_code = 400
    code = None

    def __init__(self, message, status_code=None, errors=None, payload=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors or {}
        self.payload = payload or {}
        if self.code and "code" not in self.payload:
            self.payload["code"] = self.code


class NotFound(ApiError):
    status_code = 404
    code = "NOT_FOUND"


class AuthorizationDenied(ApiError):
    """El rol del usuario no permite la operación."""

    status_code = 403
    code = "FORBIDDEN"


class PreconditionFailed(ApiError):
    """El estado actual del registro no admite la transición pedida."""

    status_code = 409
    code = "PRECONDITION_FAILED"


def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        if isinstance(err, (AuthorizationDenied, PreconditionFailed)):
            contexto = {k: v for k, v in err.payload.items() if k != "code"}
            app.logger.warning(
                "[api] %s: %s usuario=%s operacion=%s contexto=%s",
                type(err).__name__,
                err.message,
                contexto.pop("user_id", None),
                contexto.pop("operation", None),
                contexto,
            )

        response = {
            "success": False,
            "message": err.message,
        }
        if err.errors:
            response["errors"] = err.errors
        if getattr(err, "payload", None):
            response["payload"] = err.payload

        return jsonify(response), err.status_code

    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err: ValidationError):
        response = {
            "success": False,
            "message": "Datos inválidos",
            "errors": err.messages if hasattr(err, "messages") else str(err),
        }
        return jsonify(response), 422

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        response = {
            "success": False,
            "message": err.description or "Error HTTP",
        }
        return jsonify(response), err.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        app.logger.exception(err)

        response = {
            "success": False,
            "message": "Error interno del servidor",
        }
        return jsonify(response), 500
