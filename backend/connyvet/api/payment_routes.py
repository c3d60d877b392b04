from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from connyvet.schemas.payment_schemas import (
    PaymentCancelSchema,
    PaymentCreateSchema,
    PaymentListQuerySchema,
    PaymentMarkPaidSchema,
    PaymentUpdateSchema,
)
from connyvet.services import payment_service
from connyvet.utils.responses import success_response
from connyvet.utils.security import require_current_user

bp = Blueprint("payments", __name__)

payment_create_schema = PaymentCreateSchema()
payment_update_schema = PaymentUpdateSchema()
payment_mark_paid_schema = PaymentMarkPaidSchema()
payment_cancel_schema = PaymentCancelSchema()
payment_list_query_schema = PaymentListQuerySchema()


@bp.get("")
@jwt_required()
def listar_pagos():
    """
    Lista pagos, más recientes primero.
    Query params opcionales: patient_id, tutor_id, status (pending|paid|cancelled|all),
    from, to (YYYY-MM-DD sobre created_at), page, per_page.
    """
    filtros = payment_list_query_schema.load(request.args)
    user = require_current_user()

    data = payment_service.list_payments(user, filtros)
    return success_response(data=data["items"], meta=data["meta"], message="OK")


@bp.get("/summary")
@jwt_required()
def resumen_pagos():
    filtros = payment_list_query_schema.load(request.args)
    user = require_current_user()

    data = payment_service.payments_summary(
        user,
        date_from=filtros.get("date_from"),
        date_to=filtros.get("date_to"),
    )
    return success_response(data=data, message="OK")


@bp.post("")
@jwt_required()
def crear_pago():
    """
    Body JSON:
    {
      "patient_id": 1,
      "concept": "Consulta",
      "amount": 15000,
      "method": "efectivo",      (opcional)
      "notes": "...",            (opcional)
      "tutor_id": 3              (opcional)
    }
    """
    data = payment_create_schema.load(request.get_json(silent=True) or {})
    user = require_current_user()

    payment = payment_service.create_payment(user, data)
    return success_response(
        data=payment,
        message="Pago registrado correctamente",
        status_code=201,
    )


@bp.get("/<int:payment_id>")
@jwt_required()
def obtener_pago(payment_id: int):
    user = require_current_user()
    payment = payment_service.get_payment(user, payment_id)
    return success_response(data=payment, message="OK")


@bp.route("/<int:payment_id>", methods=["PUT", "PATCH"])
@jwt_required()
def actualizar_pago(payment_id: int):
    data = payment_update_schema.load(
        request.get_json(silent=True) or {},
        partial=request.method == "PATCH",
    )
    user = require_current_user()

    payment = payment_service.update_payment(user, payment_id, data)
    return success_response(data=payment, message="Pago actualizado")


@bp.post("/<int:payment_id>/mark-paid")
@jwt_required()
def marcar_pagado(payment_id: int):
    data = payment_mark_paid_schema.load(request.get_json(silent=True) or {})
    user = require_current_user()

    payment = payment_service.mark_paid(user, payment_id, data)
    return success_response(data=payment, message="Pago registrado como pagado")


@bp.post("/<int:payment_id>/cancel")
@jwt_required()
def anular_pago(payment_id: int):
    data = payment_cancel_schema.load(request.get_json(silent=True) or {})
    user = require_current_user()

    payment = payment_service.cancel_payment(user, payment_id, data.get("reason"))
    return success_response(data=payment, message="Pago anulado")


@bp.delete("/<int:payment_id>")
@jwt_required()
def eliminar_pago(payment_id: int):
    user = require_current_user()
    payment_service.delete_payment(user, payment_id)
    return success_response(message="deleted")
