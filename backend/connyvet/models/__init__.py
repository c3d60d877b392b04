from .user import User
from .tutor import Tutor
from .patient import Patient
from .consultation import Consultation
from .vaccine_application import VaccineApplication
from .hospitalization import Hospitalization
from .payment import Payment, PaymentStatus, PaymentMethod
from .payment_intent import PaymentIntent, IntentStatus, IntentProvider
from .payment_transaction import PaymentTransaction, TransactionStatus

__all__ = [
    "User",
    "Tutor",
    "Patient",
    "Consultation",
    "VaccineApplication",
    "Hospitalization",
    "Payment",
    "PaymentStatus",
    "PaymentMethod",
    "PaymentIntent",
    "IntentStatus",
    "IntentProvider",
    "PaymentTransaction",
    "TransactionStatus",
]
