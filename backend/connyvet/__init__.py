import pymysql
pymysql.install_as_MySQLdb()
from flask import Flask
from flask_cors import CORS

from .config import DevConfig
from .extensions import db, migrate, jwt, ma, bcrypt
from .utils.errors import register_error_handlers
from .api import auth_routes, payment_intent_routes, payment_routes


def create_app(config_class=DevConfig) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    app.json.sort_keys = False

    # CORS solo para la API; el front vive en otro origen
    origins = [o.strip() for o in str(app.config.get("CORS_ORIGINS") or "").split(",") if o.strip()]
    CORS(
        app,
        resources={r"/api/*": {"origins": origins or "*"}},
        supports_credentials=True,
    )

    # Inicializar extensiones
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    bcrypt.init_app(app)

    # Registrar modelos en los metadatos (create_all / migraciones)
    from . import models  # noqa: F401

    # Registrar blueprints
    app.register_blueprint(auth_routes.bp, url_prefix="/api/auth")
    app.register_blueprint(payment_routes.bp, url_prefix="/api/v1/payments")
    app.register_blueprint(payment_intent_routes.bp, url_prefix="/api/v1/payment-intents")

    # Manejadores de errores
    register_error_handlers(app)

    @app.get("/api/health")
    def health_check():
        return {"status": "ok", "service": "connyvet-api"}

    return app
