from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from connyvet.schemas.payment_intent_schemas import (
    MarkManualPaidSchema,
    PaymentIntentCancelSchema,
    PaymentIntentCreateSchema,
    PaymentIntentListQuerySchema,
    PaymentIntentStartSchema,
)
from connyvet.services import payment_intent_service
from connyvet.utils.responses import success_response
from connyvet.utils.security import require_current_user

bp = Blueprint("payment_intents", __name__)

intent_create_schema = PaymentIntentCreateSchema()
intent_start_schema = PaymentIntentStartSchema()
mark_manual_paid_schema = MarkManualPaidSchema()
intent_cancel_schema = PaymentIntentCancelSchema()
intent_list_query_schema = PaymentIntentListQuerySchema()


@bp.get("")
@jwt_required()
def listar_intenciones():
    """
    Query params opcionales: patient_id, tutor_id, consultation_id, status, page, per_page.
    """
    filtros = intent_list_query_schema.load(request.args)
    user = require_current_user()

    data = payment_intent_service.list_intents(user, filtros)
    return success_response(data=data["items"], meta=data["meta"], message="OK")


@bp.post("")
@jwt_required()
def crear_intencion():
    """
    Body JSON:
    {
      "patient_id": 1,          (opcional)
      "amount_total": 25000,
      "currency": "CLP",        (opcional)
      "provider": "manual",     (opcional)
      "title": "Hospitalización 3 días"
    }
    """
    data = intent_create_schema.load(request.get_json(silent=True) or {})
    user = require_current_user()

    intent = payment_intent_service.create_intent(user, data)
    return success_response(data=intent, message="Intención de pago creada", status_code=201)


@bp.get("/<int:intent_id>")
@jwt_required()
def obtener_intencion(intent_id: int):
    user = require_current_user()
    intent = payment_intent_service.get_intent(user, intent_id)
    return success_response(data=intent, message="OK")


@bp.post("/<int:intent_id>/start")
@jwt_required()
def iniciar_intencion(intent_id: int):
    data = intent_start_schema.load(request.get_json(silent=True) or {})
    user = require_current_user()

    intent = payment_intent_service.start_intent(user, intent_id, data)
    return success_response(data=intent, message="Cobro iniciado")


@bp.post("/<int:intent_id>/mark-manual-paid")
@jwt_required()
def marcar_pago_manual(intent_id: int):
    data = mark_manual_paid_schema.load(request.get_json(silent=True) or {})
    user = require_current_user()

    intent = payment_intent_service.mark_manual_paid(user, intent_id, data)
    return success_response(data=intent, message="Pago manual registrado")


@bp.post("/<int:intent_id>/cancel")
@jwt_required()
def cancelar_intencion(intent_id: int):
    data = intent_cancel_schema.load(request.get_json(silent=True) or {})
    user = require_current_user()

    intent = payment_intent_service.cancel_intent(user, intent_id, data.get("note"))
    return success_response(data=intent, message="Intención de pago cancelada")
