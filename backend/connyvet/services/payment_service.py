from datetime import datetime, time, timedelta
from math import ceil

from flask import current_app
from marshmallow import ValidationError
from sqlalchemy import delete, func, update
from sqlalchemy.orm import lazyload

from connyvet.extensions.db import db
from connyvet.models.consultation import Consultation
from connyvet.models.hospitalization import Hospitalization
from connyvet.models.patient import Patient
from connyvet.models.payment import Payment, PaymentStatus
from connyvet.models.tutor import Tutor
from connyvet.models.user import User
from connyvet.models.vaccine_application import VaccineApplication
from connyvet.policies import payment_policy
from connyvet.policies.payment_policy import Operation
from connyvet.utils.errors import ApiError, NotFound, PreconditionFailed
from connyvet.utils.responses import parse_page_args


PENDING = PaymentStatus.PENDING.value
PAID = PaymentStatus.PAID.value
CANCELLED = PaymentStatus.CANCELLED.value

# Referencias opcionales: campo del payload -> modelo
_REFERENCIAS = {
    "tutor_id": Tutor,
    "consultation_id": Consultation,
    "vaccine_application_id": VaccineApplication,
    "hospitalization_id": Hospitalization,
}


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def payment_to_dict(payment: Payment) -> dict:
    patient = payment.patient
    tutor = payment.tutor
    return {
        "id": payment.id,
        "patient_id": payment.patient_id,
        "tutor_id": payment.tutor_id,
        "consultation_id": payment.consultation_id,
        "vaccine_application_id": payment.vaccine_application_id,
        "hospitalization_id": payment.hospitalization_id,
        "concept": payment.concept,
        "amount": float(payment.amount) if payment.amount is not None else None,
        "status": payment.status,
        "method": payment.method,
        "notes": payment.notes,
        "paid_at": _iso(payment.paid_at),
        "cancelled_at": _iso(payment.cancelled_at),
        "cancelled_reason": payment.cancelled_reason,
        "created_by": payment.created_by,
        "created_at": _iso(payment.created_at),
        "updated_at": _iso(payment.updated_at),
        "patient": {
            "id": patient.id,
            "name": patient.name,
            "species": patient.species,
        }
        if patient
        else None,
        "tutor": {
            "id": tutor.id,
            "nombres": tutor.nombres,
            "apellidos": tutor.apellidos,
            "email": tutor.email,
        }
        if tutor
        else None,
    }


def _get_payment_or_404(payment_id: int) -> Payment:
    payment: Payment | None = db.session.get(Payment, payment_id)
    if not payment:
        raise NotFound("Pago no encontrado.")
    return payment


def _lock_payment(payment_id: int) -> Payment:
    """Relee la fila desde BD con bloqueo (SELECT ... FOR UPDATE).

    Las precondiciones se evalúan siempre contra este estado, nunca contra
    una copia que el llamador tenga en memoria.
    """

    payment = (
        db.session.query(Payment)
        .options(lazyload("*"))
        .filter(Payment.id == payment_id)
        .populate_existing()
        .with_for_update()
        .one_or_none()
    )
    if not payment:
        db.session.rollback()
        raise NotFound("Pago no encontrado.")
    return payment


def _authorize_locked(user: User, payment: Payment, operation: Operation) -> None:
    # libera el bloqueo si la política rechaza
    try:
        payment_policy.authorize(user, payment, operation)
    except ApiError:
        db.session.rollback()
        raise


def _compare_and_set(payment_id: int, expected_status: str, values: dict) -> bool:
    result = db.session.execute(
        update(Payment)
        .where(Payment.id == payment_id, Payment.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _apply_transition(user: User, payment_id: int, expected: str, operation: Operation, values: dict) -> Payment:
    """Aplica ``values`` solo si el estado sigue siendo el que se autorizó."""

    if not _compare_and_set(payment_id, expected, values):
        db.session.rollback()
        current_app.logger.warning(
            "[pagos] transición %s perdida para pago %s (estado esperado=%s)",
            operation.value,
            payment_id,
            expected,
        )
        raise PreconditionFailed(
            payment_policy.PRECONDITION_MESSAGES.get(operation, "El pago cambió de estado."),
            payload={
                "operation": operation.value,
                "user_id": user.id,
                "payment_id": payment_id,
                "status": expected,
            },
        )

    db.session.commit()
    return _get_payment_or_404(payment_id)


def _validar_referencias(data: dict) -> None:
    errors: dict[str, list[str]] = {}

    if db.session.get(Patient, data["patient_id"]) is None:
        errors["patient_id"] = ["El paciente seleccionado no existe."]

    for campo, modelo in _REFERENCIAS.items():
        valor = data.get(campo)
        if valor is not None and db.session.get(modelo, valor) is None:
            errors[campo] = ["El registro seleccionado no existe."]

    if errors:
        raise ValidationError(errors)


def _date_bounds(date_from, date_to) -> tuple[datetime | None, datetime | None]:
    desde = datetime.combine(date_from, time.min) if date_from else None
    hasta = datetime.combine(date_to + timedelta(days=1), time.min) if date_to else None
    return desde, hasta


def _filtrar_fechas(query, date_from, date_to):
    desde, hasta = _date_bounds(date_from, date_to)
    if desde is not None:
        query = query.filter(Payment.created_at >= desde)
    if hasta is not None:
        query = query.filter(Payment.created_at < hasta)
    return query


def list_payments(user: User, filtros: dict) -> dict:
    payment_policy.authorize(user, None, Operation.VIEW_ANY)

    page, per_page = parse_page_args(
        filtros.get("page"),
        filtros.get("per_page"),
        default_per_page=int(current_app.config.get("PAYMENTS_PER_PAGE_DEFAULT", 20)),
        max_per_page=int(current_app.config.get("PAYMENTS_PER_PAGE_MAX", 100)),
    )

    query = Payment.query
    if filtros.get("patient_id") is not None:
        query = query.filter(Payment.patient_id == filtros["patient_id"])
    if filtros.get("tutor_id") is not None:
        query = query.filter(Payment.tutor_id == filtros["tutor_id"])

    status = filtros.get("status")
    if status and status != "all":
        query = query.filter(Payment.status == status)

    query = _filtrar_fechas(query, filtros.get("date_from"), filtros.get("date_to"))

    total = int(query.order_by(None).with_entities(func.count(Payment.id)).scalar() or 0)
    items = (
        query.order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    return {
        "items": [payment_to_dict(p) for p in items],
        "meta": {
            "current_page": page,
            "per_page": per_page,
            "total": total,
            "last_page": max(ceil(total / per_page), 1),
        },
    }


def payments_summary(user: User, date_from=None, date_to=None) -> dict:
    payment_policy.authorize(user, None, Operation.VIEW_ANY)

    base = _filtrar_fechas(db.session.query(Payment), date_from, date_to)

    por_estado = dict(
        base.with_entities(Payment.status, func.count(Payment.id))
        .group_by(Payment.status)
        .all()
    )
    sumas = dict(
        base.with_entities(Payment.status, func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.status.in_([PENDING, PAID]))
        .group_by(Payment.status)
        .all()
    )
    por_metodo = (
        base.with_entities(Payment.method, func.count(Payment.id), func.sum(Payment.amount))
        .filter(Payment.status == PAID)
        .group_by(Payment.method)
        .all()
    )

    return {
        "total_count": int(sum(por_estado.values())),
        "pending_count": int(por_estado.get(PENDING, 0)),
        "paid_count": int(por_estado.get(PAID, 0)),
        "cancelled_count": int(por_estado.get(CANCELLED, 0)),
        "paid_sum": float(sumas.get(PAID, 0) or 0),
        "pending_sum": float(sumas.get(PENDING, 0) or 0),
        "by_method": [
            {"method": method, "qty": int(qty), "total": float(total or 0)}
            for method, qty, total in por_metodo
        ],
    }


def get_payment(user: User, payment_id: int) -> dict:
    payment = _get_payment_or_404(payment_id)
    payment_policy.authorize(user, payment, Operation.VIEW)
    return payment_to_dict(payment)


def create_payment(user: User, data: dict) -> dict:
    payment_policy.authorize(user, None, Operation.CREATE)
    _validar_referencias(data)

    payment = Payment(
        patient_id=data["patient_id"],
        tutor_id=data.get("tutor_id"),
        consultation_id=data.get("consultation_id"),
        vaccine_application_id=data.get("vaccine_application_id"),
        hospitalization_id=data.get("hospitalization_id"),
        concept=data["concept"].strip(),
        amount=data["amount"],
        status=PENDING,
        method=data.get("method"),
        notes=data.get("notes"),
        created_by=user.id,
    )
    db.session.add(payment)
    db.session.commit()

    current_app.logger.info("[pagos] pago %s creado por usuario %s", payment.id, user.id)
    return payment_to_dict(payment)


def update_payment(user: User, payment_id: int, data: dict) -> dict:
    payment = _lock_payment(payment_id)
    _authorize_locked(user, payment, Operation.UPDATE)
    estado_actual = payment.status

    values = {k: data[k] for k in ("concept", "amount", "method", "notes") if k in data}
    if "concept" in values:
        values["concept"] = values["concept"].strip()

    nuevo = data.get("status")
    if nuevo and nuevo != estado_actual:
        # Cambiar el estado por esta vía exige el mismo permiso que la operación dedicada
        ahora = datetime.utcnow()
        if nuevo == PAID:
            _authorize_locked(user, payment, Operation.MARK_PAID)
            values["paid_at"] = ahora
        elif nuevo == CANCELLED:
            _authorize_locked(user, payment, Operation.CANCEL)
            values["cancelled_at"] = ahora
            values["cancelled_reason"] = data.get("reason")
        values["status"] = nuevo

    if not values:
        db.session.rollback()
        return payment_to_dict(_get_payment_or_404(payment_id))

    actualizado = _apply_transition(user, payment_id, estado_actual, Operation.UPDATE, values)
    current_app.logger.info("[pagos] pago %s editado por usuario %s", payment_id, user.id)
    return payment_to_dict(actualizado)


def mark_paid(user: User, payment_id: int, data: dict) -> dict:
    payment = _lock_payment(payment_id)
    _authorize_locked(user, payment, Operation.MARK_PAID)
    estado_actual = payment.status

    values = {"status": PAID, "paid_at": datetime.utcnow()}
    # method/notes solo se reemplazan si vienen en la llamada
    if data.get("method") is not None:
        values["method"] = data["method"]
    if data.get("notes") is not None:
        values["notes"] = data["notes"]

    pagado = _apply_transition(user, payment_id, estado_actual, Operation.MARK_PAID, values)
    current_app.logger.info("[pagos] pago %s marcado pagado por usuario %s", payment_id, user.id)
    return payment_to_dict(pagado)


def cancel_payment(user: User, payment_id: int, reason: str | None) -> dict:
    payment = _lock_payment(payment_id)
    _authorize_locked(user, payment, Operation.CANCEL)
    estado_actual = payment.status

    motivo = (reason or "").strip() or None
    values = {
        "status": CANCELLED,
        "cancelled_at": datetime.utcnow(),
        "cancelled_reason": motivo,
    }

    anulado = _apply_transition(user, payment_id, estado_actual, Operation.CANCEL, values)
    current_app.logger.info(
        "[pagos] pago %s anulado por usuario %s (rol=%s)", payment_id, user.id, user.role
    )
    return payment_to_dict(anulado)


def delete_payment(user: User, payment_id: int) -> None:
    payment = _lock_payment(payment_id)
    _authorize_locked(user, payment, Operation.DELETE)

    result = db.session.execute(
        delete(Payment)
        .where(Payment.id == payment_id, Payment.status == PENDING)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        raise PreconditionFailed(
            payment_policy.PRECONDITION_MESSAGES[Operation.DELETE],
            payload={"operation": Operation.DELETE.value, "user_id": user.id, "payment_id": payment_id},
        )

    db.session.expunge(payment)
    db.session.commit()
    current_app.logger.info("[pagos] pago %s eliminado por usuario %s", payment_id, user.id)
