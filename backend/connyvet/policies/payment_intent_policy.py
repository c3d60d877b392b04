"""
Reglas para intenciones de pago (cobro por proveedor).

Mismos roles de caja que los pagos; no hay excepciones por rol, solo
precondiciones sobre el estado de la intención.
"""

from enum import Enum

from connyvet.models.payment_intent import IntentStatus
from connyvet.policies.payment_policy import is_cashier
from connyvet.utils.errors import AuthorizationDenied, PreconditionFailed


class IntentOperation(str, Enum):
    VIEW_ANY = "view_any"
    VIEW = "view"
    CREATE = "create"
    START = "start"
    MARK_MANUAL_PAID = "mark_manual_paid"
    CANCEL = "cancel"


DRAFT = IntentStatus.DRAFT.value
PENDING = IntentStatus.PENDING.value
PAID = IntentStatus.PAID.value
FAILED = IntentStatus.FAILED.value

# Estados abiertos: todavía se puede cobrar o desistir
_ABIERTOS = frozenset({DRAFT, PENDING, FAILED})

ALLOWED_STATUSES: dict[IntentOperation, frozenset | None] = {
    IntentOperation.VIEW_ANY: None,
    IntentOperation.VIEW: None,
    IntentOperation.CREATE: None,
    IntentOperation.START: _ABIERTOS,
    IntentOperation.MARK_MANUAL_PAID: _ABIERTOS,
    IntentOperation.CANCEL: _ABIERTOS,
}


def precondition_message(operation, status) -> str:
    op = IntentOperation(operation)
    if status == PAID:
        if op == IntentOperation.CANCEL:
            return "No se puede cancelar un pago pagado."
        return "Este pago ya está pagado."
    return f"La intención de pago está en estado '{status}' y no admite esta operación."


def precondition_holds(operation, status=None) -> bool:
    estados = ALLOWED_STATUSES[IntentOperation(operation)]
    if estados is None:
        return True
    return status in estados


def allowed(user, intent, operation) -> bool:
    op = IntentOperation(operation)
    if ALLOWED_STATUSES[op] is not None and intent is None:
        return False
    status = getattr(intent, "status", None)
    return is_cashier(user) and precondition_holds(op, status)


def authorize(user, intent, operation) -> None:
    op = IntentOperation(operation)
    status = getattr(intent, "status", None)
    contexto = {
        "operation": op.value,
        "user_id": getattr(user, "id", None),
        "intent_id": getattr(intent, "id", None),
        "status": status,
    }

    if not is_cashier(user):
        raise AuthorizationDenied("No autorizado para gestionar cobros", payload=contexto)

    if ALLOWED_STATUSES[op] is not None and intent is None:
        raise PreconditionFailed("Intención de pago requerida.", payload=contexto)
    if not precondition_holds(op, status):
        raise PreconditionFailed(precondition_message(op, status), payload=contexto)
