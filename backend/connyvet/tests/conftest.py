import pytest

from sqlalchemy.pool import StaticPool
from flask_jwt_extended import create_access_token

from connyvet import create_app
from connyvet.config import TestConfig as BaseTestConfig
from connyvet.extensions import db, bcrypt

# Importar modelos para que SQLAlchemy registre mappers/tablas
import connyvet.models  # noqa: F401
from connyvet.models.user import User
from connyvet.models.tutor import Tutor
from connyvet.models.patient import Patient
from connyvet.models.payment import Payment
from connyvet.models.payment_intent import PaymentIntent


class PytestConfig(BaseTestConfig):
	SQLALCHEMY_DATABASE_URI = "sqlite://"
	SQLALCHEMY_ENGINE_OPTIONS = {
		"connect_args": {"check_same_thread": False},
		"poolclass": StaticPool,
	}
	JWT_SECRET_KEY = "test-secret-with-enough-length-for-hs256"
	LOG_LEVEL = "WARNING"


@pytest.fixture(scope="session")
def app():
	app = create_app(PytestConfig)
	with app.app_context():
		db.create_all()
		yield app
		db.session.remove()
		db.drop_all()


@pytest.fixture()
def client(app):
	return app.test_client()


@pytest.fixture()
def db_session(app):
	with app.app_context():
		yield db.session
		db.session.rollback()


@pytest.fixture()
def make_user(db_session):
	def _make_user(
		email: str,
		role: str = "recepcion",
		name: str = "Test User",
		password: str = "Passw0rd!",
		is_active: bool = True,
	):
		u = User(
			name=name,
			email=email,
			password_hash=bcrypt.generate_password_hash(password).decode("utf-8"),
			role=role,
			is_active=is_active,
		)
		db_session.add(u)
		db_session.commit()
		return u

	return _make_user


@pytest.fixture()
def make_token(app):
	def _make_token(user_id: int) -> str:
		with app.app_context():
			return create_access_token(identity=str(user_id))

	return _make_token


@pytest.fixture()
def auth_header(make_token):
	def _auth_header(user_id: int) -> dict:
		token = make_token(user_id)
		return {"Authorization": f"Bearer {token}"}

	return _auth_header


@pytest.fixture()
def make_tutor(db_session):
	def _make_tutor(nombres: str = "Constanza", email: str | None = None):
		t = Tutor(nombres=nombres, apellidos="Tutor", email=email)
		db_session.add(t)
		db_session.commit()
		return t

	return _make_tutor


@pytest.fixture()
def make_patient(db_session):
	def _make_patient(name: str = "Firulais", tutor_id: int | None = None):
		p = Patient(name=name, species="perro", tutor_id=tutor_id)
		db_session.add(p)
		db_session.commit()
		return p

	return _make_patient


@pytest.fixture()
def make_payment(db_session):
	def _make_payment(patient_id: int, status: str = "pending", amount: int = 15000, **kwargs):
		p = Payment(
			patient_id=patient_id,
			concept=kwargs.pop("concept", "Consulta"),
			amount=amount,
			status=status,
			**kwargs,
		)
		db_session.add(p)
		db_session.commit()
		return p

	return _make_payment


@pytest.fixture()
def make_intent(db_session):
	def _make_intent(amount_total: int = 25000, status: str = "draft", **kwargs):
		i = PaymentIntent(
			amount_total=amount_total,
			amount_paid=kwargs.pop("amount_paid", 0),
			status=status,
			currency=kwargs.pop("currency", "CLP"),
			provider=kwargs.pop("provider", "manual"),
			**kwargs,
		)
		db_session.add(i)
		db_session.commit()
		return i

	return _make_intent
