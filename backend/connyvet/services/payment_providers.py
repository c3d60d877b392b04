"""
Proveedores de cobro para intenciones de pago.

Por ahora solo existe el proveedor manual (caja: efectivo, transferencia,
POS externo). Los proveedores devuelven transacciones sin persistir; el
servicio las agrega en la misma transacción que cambia el estado.
"""

from connyvet.models.payment_intent import IntentProvider, PaymentIntent
from connyvet.models.payment_transaction import PaymentTransaction, TransactionStatus
from connyvet.utils.errors import ApiError


class ManualPaymentProvider:
    name = IntentProvider.MANUAL.value

    def start(self, intent: PaymentIntent, context: dict, user_id: int | None = None) -> PaymentTransaction:
        # sin redirección: solo deja registro de que el cobro se inició
        return PaymentTransaction(
            payment_intent_id=intent.id,
            provider=self.name,
            status=TransactionStatus.INITIATED.value,
            amount=intent.amount_due,
            currency=intent.currency,
            request_payload=context or None,
            created_by=user_id,
        )

    def record_payment(
        self,
        intent: PaymentIntent,
        amount: int,
        reference: str | None = None,
        note: str | None = None,
        user_id: int | None = None,
    ) -> PaymentTransaction:
        return PaymentTransaction(
            payment_intent_id=intent.id,
            provider=self.name,
            status=TransactionStatus.PAID.value,
            amount=amount,
            currency=intent.currency,
            external_id=reference,
            response_payload={"note": note, "reference": reference},
            created_by=user_id,
        )


PROVIDERS = {
    ManualPaymentProvider.name: ManualPaymentProvider,
}


def get_provider(name: str):
    provider_cls = PROVIDERS.get(name)
    if provider_cls is None:
        raise ApiError(f"Proveedor de pago no soportado: {name}", 422)
    return provider_cls()
