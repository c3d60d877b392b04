from .auth_routes import bp as auth_bp
from .payment_routes import bp as payments_bp
from .payment_intent_routes import bp as payment_intents_bp

__all__ = [
    "auth_bp",
    "payments_bp",
    "payment_intents_bp",
]
