from datetime import datetime
from math import ceil

from flask import current_app
from marshmallow import ValidationError
from sqlalchemy import func, update
from sqlalchemy.orm import lazyload

from connyvet.extensions.db import db
from connyvet.models.consultation import Consultation
from connyvet.models.patient import Patient
from connyvet.models.payment_intent import IntentStatus, PaymentIntent
from connyvet.models.payment_transaction import PaymentTransaction
from connyvet.models.tutor import Tutor
from connyvet.models.user import User
from connyvet.policies import payment_intent_policy
from connyvet.policies.payment_intent_policy import IntentOperation
from connyvet.services.payment_providers import get_provider
from connyvet.utils.errors import ApiError, NotFound, PreconditionFailed
from connyvet.utils.responses import parse_page_args


DRAFT = IntentStatus.DRAFT.value
PENDING = IntentStatus.PENDING.value
PAID = IntentStatus.PAID.value
CANCELLED = IntentStatus.CANCELLED.value

_REFERENCIAS = {
    "patient_id": Patient,
    "tutor_id": Tutor,
    "consultation_id": Consultation,
}


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def transaction_to_dict(tx: PaymentTransaction) -> dict:
    return {
        "id": tx.id,
        "payment_intent_id": tx.payment_intent_id,
        "provider": tx.provider,
        "status": tx.status,
        "amount": int(tx.amount),
        "currency": tx.currency,
        "external_id": tx.external_id,
        "request_payload": tx.request_payload,
        "response_payload": tx.response_payload,
        "created_by": tx.created_by,
        "created_at": _iso(tx.created_at),
    }


def intent_to_dict(intent: PaymentIntent, with_transactions: bool = False) -> dict:
    data = {
        "id": intent.id,
        "patient_id": intent.patient_id,
        "tutor_id": intent.tutor_id,
        "consultation_id": intent.consultation_id,
        "currency": intent.currency,
        "amount_total": int(intent.amount_total),
        "amount_paid": int(intent.amount_paid or 0),
        "amount_refunded": int(intent.amount_refunded or 0),
        "amount_due": intent.amount_due,
        "status": intent.status,
        "provider": intent.provider,
        "title": intent.title,
        "description": intent.description,
        "meta": intent.meta,
        "created_by": intent.created_by,
        "created_at": _iso(intent.created_at),
        "updated_at": _iso(intent.updated_at),
    }
    if with_transactions:
        data["transactions"] = [transaction_to_dict(tx) for tx in intent.transactions]
    return data


def _get_intent_or_404(intent_id: int) -> PaymentIntent:
    intent: PaymentIntent | None = db.session.get(PaymentIntent, intent_id)
    if not intent:
        raise NotFound("Intención de pago no encontrada.")
    return intent


def _lock_intent(intent_id: int) -> PaymentIntent:
    intent = (
        db.session.query(PaymentIntent)
        .options(lazyload("*"))
        .filter(PaymentIntent.id == intent_id)
        .populate_existing()
        .with_for_update()
        .one_or_none()
    )
    if not intent:
        db.session.rollback()
        raise NotFound("Intención de pago no encontrada.")
    return intent


def _authorize_locked(user: User, intent: PaymentIntent, operation: IntentOperation) -> None:
    try:
        payment_intent_policy.authorize(user, intent, operation)
    except ApiError:
        db.session.rollback()
        raise


def _compare_and_set(intent_id: int, expected_status: str, expected_paid: int, values: dict) -> bool:
    # amount_paid también se compara: un abono parcial deja el estado igual
    result = db.session.execute(
        update(PaymentIntent)
        .where(
            PaymentIntent.id == intent_id,
            PaymentIntent.status == expected_status,
            PaymentIntent.amount_paid == expected_paid,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _apply_transition(
    user: User,
    intent: PaymentIntent,
    operation: IntentOperation,
    values: dict,
    transaction: PaymentTransaction | None = None,
) -> PaymentIntent:
    """Escribe ``values`` (y la transacción) solo si nadie tocó la intención."""

    intent_id = intent.id
    expected_status = intent.status
    expected_paid = int(intent.amount_paid or 0)

    if not _compare_and_set(intent_id, expected_status, expected_paid, values):
        db.session.rollback()
        current_app.logger.warning(
            "[cobros] %s perdida para intención %s (estado esperado=%s)",
            operation.value,
            intent_id,
            expected_status,
        )
        raise PreconditionFailed(
            "La intención de pago cambió mientras se procesaba la solicitud.",
            payload={
                "operation": operation.value,
                "user_id": user.id,
                "intent_id": intent_id,
                "status": expected_status,
            },
        )

    if transaction is not None:
        db.session.add(transaction)
    db.session.commit()
    return _get_intent_or_404(intent_id)


def _merge_meta(intent: PaymentIntent, extra: dict) -> dict | None:
    extra = {k: v for k, v in extra.items() if v is not None}
    if not extra:
        return intent.meta
    return {**(intent.meta or {}), **extra}


def _validar_referencias(data: dict) -> None:
    errors = {}
    for campo, modelo in _REFERENCIAS.items():
        valor = data.get(campo)
        if valor is not None and db.session.get(modelo, valor) is None:
            errors[campo] = ["El registro seleccionado no existe."]
    if errors:
        raise ValidationError(errors)


def list_intents(user: User, filtros: dict) -> dict:
    payment_intent_policy.authorize(user, None, IntentOperation.VIEW_ANY)

    page, per_page = parse_page_args(
        filtros.get("page"),
        filtros.get("per_page"),
        default_per_page=int(current_app.config.get("PAYMENTS_PER_PAGE_DEFAULT", 20)),
        max_per_page=int(current_app.config.get("PAYMENTS_PER_PAGE_MAX", 100)),
    )

    query = PaymentIntent.query
    for campo in ("patient_id", "tutor_id", "consultation_id"):
        if filtros.get(campo) is not None:
            query = query.filter(getattr(PaymentIntent, campo) == filtros[campo])
    if filtros.get("status"):
        query = query.filter(PaymentIntent.status == filtros["status"])

    total = int(query.order_by(None).with_entities(func.count(PaymentIntent.id)).scalar() or 0)
    items = (
        query.order_by(PaymentIntent.created_at.desc(), PaymentIntent.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    return {
        "items": [intent_to_dict(i) for i in items],
        "meta": {
            "current_page": page,
            "per_page": per_page,
            "total": total,
            "last_page": max(ceil(total / per_page), 1),
        },
    }


def get_intent(user: User, intent_id: int) -> dict:
    intent = _get_intent_or_404(intent_id)
    payment_intent_policy.authorize(user, intent, IntentOperation.VIEW)
    return intent_to_dict(intent, with_transactions=True)


def create_intent(user: User, data: dict) -> dict:
    payment_intent_policy.authorize(user, None, IntentOperation.CREATE)
    _validar_referencias(data)

    intent = PaymentIntent(
        patient_id=data.get("patient_id"),
        tutor_id=data.get("tutor_id"),
        consultation_id=data.get("consultation_id"),
        currency=data["currency"].upper(),
        amount_total=data["amount_total"],
        amount_paid=0,
        amount_refunded=0,
        status=DRAFT,
        provider=data["provider"],
        title=data.get("title"),
        description=data.get("description"),
        meta=data.get("meta"),
        created_by=user.id,
    )
    db.session.add(intent)
    db.session.commit()

    current_app.logger.info("[cobros] intención %s creada por usuario %s", intent.id, user.id)
    return intent_to_dict(intent, with_transactions=True)


def start_intent(user: User, intent_id: int, data: dict) -> dict:
    intent = _lock_intent(intent_id)
    _authorize_locked(user, intent, IntentOperation.START)

    provider_name = data.get("provider") or intent.provider
    provider = get_provider(provider_name)
    context = {
        k: data.get(k) for k in ("return_url", "redirect_url", "origin") if data.get(k) is not None
    }
    tx = provider.start(intent, context, user_id=user.id)

    iniciada = _apply_transition(
        user,
        intent,
        IntentOperation.START,
        {"provider": provider_name, "status": PENDING},
        transaction=tx,
    )
    current_app.logger.info(
        "[cobros] intención %s iniciada con %s por usuario %s", intent_id, provider_name, user.id
    )
    return intent_to_dict(iniciada, with_transactions=True)


def mark_manual_paid(user: User, intent_id: int, data: dict) -> dict:
    intent = _lock_intent(intent_id)
    _authorize_locked(user, intent, IntentOperation.MARK_MANUAL_PAID)

    amount = int(data["amount"])
    saldo = intent.amount_due
    if amount > saldo:
        db.session.rollback()
        raise ValidationError({"amount": [f"El monto supera el saldo pendiente ({saldo})."]})

    pagado = int(intent.amount_paid or 0) + amount
    provider = get_provider("manual")
    tx = provider.record_payment(
        intent,
        amount,
        reference=data.get("reference"),
        note=data.get("note"),
        user_id=user.id,
    )
    values = {
        "provider": provider.name,
        "amount_paid": pagado,
        "status": PAID if pagado >= int(intent.amount_total) else PENDING,
        "meta": _merge_meta(intent, {"manual_paid_at": datetime.utcnow().isoformat()}),
    }

    actualizada = _apply_transition(
        user, intent, IntentOperation.MARK_MANUAL_PAID, values, transaction=tx
    )
    current_app.logger.info(
        "[cobros] intención %s abonada %s por usuario %s (estado=%s)",
        intent_id,
        amount,
        user.id,
        actualizada.status,
    )
    return intent_to_dict(actualizada, with_transactions=True)


def cancel_intent(user: User, intent_id: int, note: str | None) -> dict:
    intent = _lock_intent(intent_id)
    _authorize_locked(user, intent, IntentOperation.CANCEL)

    values = {
        "status": CANCELLED,
        "meta": _merge_meta(intent, {"cancel_note": (note or "").strip() or None}),
    }
    anulada = _apply_transition(user, intent, IntentOperation.CANCEL, values)
    current_app.logger.info("[cobros] intención %s cancelada por usuario %s", intent_id, user.id)
    return intent_to_dict(anulada, with_transactions=True)
