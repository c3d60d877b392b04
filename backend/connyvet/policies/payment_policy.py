"""
Reglas de autorización para pagos.

La decisión es una función pura sobre (rol, operación, estado actual del
pago). Se separa en dos predicados que se pueden probar por separado:

- ``role_permits``: ¿el rol del usuario puede hacer esto?
- ``precondition_holds``: ¿el estado actual del pago admite esta operación?

``authorize`` combina ambos y levanta ``AuthorizationDenied`` (403) o
``PreconditionFailed`` (409) según cuál falle.
"""

from enum import Enum

from connyvet.models.payment import PaymentStatus
from connyvet.models.user import ROLE_ADMIN, ROLE_RECEPCION, ROLE_VET
from connyvet.utils.errors import AuthorizationDenied, PreconditionFailed


class Operation(str, Enum):
    VIEW_ANY = "view_any"
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    MARK_PAID = "mark_paid"
    CANCEL = "cancel"
    DELETE = "delete"


CASHIER_ROLES = frozenset({ROLE_ADMIN, ROLE_RECEPCION, ROLE_VET})

PENDING = PaymentStatus.PENDING.value
PAID = PaymentStatus.PAID.value
CANCELLED = PaymentStatus.CANCELLED.value

# Estados desde los que cada operación es válida. None = no depende del pago.
ALLOWED_STATUSES: dict[Operation, frozenset | None] = {
    Operation.VIEW_ANY: None,
    Operation.VIEW: None,
    Operation.CREATE: None,
    Operation.UPDATE: frozenset({PENDING}),
    Operation.MARK_PAID: frozenset({PENDING}),
    Operation.CANCEL: frozenset({PENDING, PAID}),
    Operation.DELETE: frozenset({PENDING}),
}

# Combinaciones (operación, estado) que exigen un subconjunto de CASHIER_ROLES
ROLE_OVERRIDES: dict[tuple[Operation, str], frozenset] = {
    (Operation.CANCEL, PAID): frozenset({ROLE_ADMIN}),
}

PRECONDITION_MESSAGES = {
    Operation.UPDATE: "No se puede editar un pago pagado o anulado.",
    Operation.MARK_PAID: "El pago no está pendiente.",
    Operation.CANCEL: "El pago ya está anulado.",
    Operation.DELETE: "Solo se pueden eliminar pagos pendientes.",
}


def _status_value(status) -> str | None:
    if status is None:
        return None
    if isinstance(status, Enum):
        return status.value
    return str(status)


def _payment_status(payment) -> str | None:
    if payment is None:
        return None
    return _status_value(getattr(payment, "status", None))


def is_cashier(user) -> bool:
    return getattr(user, "role", None) in CASHIER_ROLES


def role_permits(role: str | None, operation, status=None) -> bool:
    op = Operation(operation)
    if role not in CASHIER_ROLES:
        return False
    override = ROLE_OVERRIDES.get((op, _status_value(status)))
    if override is not None:
        return role in override
    return True


def precondition_holds(operation, status=None) -> bool:
    op = Operation(operation)
    estados = ALLOWED_STATUSES[op]
    if estados is None:
        return True
    return _status_value(status) in estados


def allowed(user, payment, operation) -> bool:
    op = Operation(operation)
    if ALLOWED_STATUSES[op] is not None and payment is None:
        return False
    status = _payment_status(payment)
    role = getattr(user, "role", None)
    return role_permits(role, op, status) and precondition_holds(op, status)


def _contexto(user, payment, op: Operation, status) -> dict:
    return {
        "operation": op.value,
        "user_id": getattr(user, "id", None),
        "payment_id": getattr(payment, "id", None),
        "status": status,
    }


def authorize(user, payment, operation) -> None:
    """Levanta la excepción que corresponda si ``allowed`` sería False.

    El payload de la excepción lleva usuario, pago y operación para el log.
    """

    op = Operation(operation)
    status = _payment_status(payment)
    contexto = _contexto(user, payment, op, status)

    if not is_cashier(user):
        raise AuthorizationDenied("No autorizado para gestionar pagos", payload=contexto)

    if ALLOWED_STATUSES[op] is not None and payment is None:
        raise PreconditionFailed(PRECONDITION_MESSAGES[op], payload=contexto)
    if not precondition_holds(op, status):
        raise PreconditionFailed(PRECONDITION_MESSAGES[op], payload=contexto)

    if not role_permits(user.role, op, status):
        raise AuthorizationDenied(
            "Solo un administrador puede anular un pago ya pagado.",
            payload=contexto,
        )
