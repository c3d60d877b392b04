import logging
from datetime import datetime, timedelta

import pytest
from sqlalchemy import update

from connyvet.models.payment import Payment
from connyvet.services import payment_service
from connyvet.utils.errors import PreconditionFailed


URL = "/api/v1/payments"


def test_flujo_completo_de_un_pago(client, make_user, auth_header, make_patient):
	recepcion = make_user("recepcion_flujo@test.com", role="recepcion")
	admin = make_user("admin_flujo@test.com", role="admin")
	paciente = make_patient()

	r = client.post(
		URL,
		json={"patient_id": paciente.id, "concept": "Consulta", "amount": 15000, "status": "pending"},
		headers=auth_header(recepcion.id),
	)
	assert r.status_code == 201
	pago = r.get_json()["data"]
	assert pago["status"] == "pending"
	assert pago["amount"] == 15000
	assert pago["created_by"] == recepcion.id
	assert pago["patient"]["name"] == paciente.name
	id_pago = pago["id"]

	paid = client.post(f"{URL}/{id_pago}/mark-paid", json={"method": "efectivo"}, headers=auth_header(recepcion.id))
	assert paid.status_code == 200
	body = paid.get_json()["data"]
	assert body["status"] == "paid"
	assert body["paid_at"] is not None
	assert body["method"] == "efectivo"
	primer_paid_at = body["paid_at"]

	again = client.post(f"{URL}/{id_pago}/mark-paid", json={}, headers=auth_header(recepcion.id))
	assert again.status_code == 409
	assert again.get_json()["payload"]["code"] == "PRECONDITION_FAILED"

	cancel_rec = client.post(f"{URL}/{id_pago}/cancel", json={"reason": "error"}, headers=auth_header(recepcion.id))
	assert cancel_rec.status_code == 403
	assert cancel_rec.get_json()["payload"]["code"] == "FORBIDDEN"

	cancel_admin = client.post(
		f"{URL}/{id_pago}/cancel",
		json={"reason": "Cobro duplicado"},
		headers=auth_header(admin.id),
	)
	assert cancel_admin.status_code == 200
	anulado = cancel_admin.get_json()["data"]
	assert anulado["status"] == "cancelled"
	assert anulado["cancelled_at"] is not None
	assert anulado["cancelled_reason"] == "Cobro duplicado"
	assert anulado["paid_at"] == primer_paid_at


def test_roles_clinicos_no_gestionan_pagos(client, make_user, auth_header, make_patient, make_payment):
	doctor = make_user("doctor_pagos@test.com", role="doctor")
	tutor = make_user("tutor_pagos@test.com", role="tutor")
	paciente = make_patient()
	pago = make_payment(paciente.id)

	for u in (doctor, tutor):
		headers = auth_header(u.id)
		assert client.get(URL, headers=headers).status_code == 403
		assert client.get(f"{URL}/{pago.id}", headers=headers).status_code == 403
		assert client.post(f"{URL}/{pago.id}/mark-paid", json={}, headers=headers).status_code == 403
		assert client.delete(f"{URL}/{pago.id}", headers=headers).status_code == 403
		resp = client.post(
			URL,
			json={"patient_id": paciente.id, "concept": "Vacuna", "amount": 8000},
			headers=headers,
		)
		assert resp.status_code == 403


def test_sin_token_devuelve_401(client):
	assert client.get(URL).status_code == 401


def test_usuario_inactivo_rechazado(client, make_user, auth_header):
	u = make_user("inactivo_pagos@test.com", role="admin", is_active=False)
	resp = client.get(URL, headers=auth_header(u.id))
	assert resp.status_code == 403
	assert resp.get_json()["payload"]["code"] == "USER_INACTIVE"


def test_crear_valida_payload(client, make_user, auth_header, make_patient):
	vet = make_user("vet_valida@test.com", role="vet")
	paciente = make_patient()
	headers = auth_header(vet.id)

	negativo = client.post(URL, json={"patient_id": paciente.id, "concept": "X", "amount": -1}, headers=headers)
	assert negativo.status_code == 422
	assert "amount" in negativo.get_json()["errors"]

	metodo = client.post(
		URL,
		json={"patient_id": paciente.id, "concept": "X", "amount": 10, "method": "bitcoin"},
		headers=headers,
	)
	assert metodo.status_code == 422
	assert "method" in metodo.get_json()["errors"]

	faltan = client.post(URL, json={"amount": 10}, headers=headers)
	assert faltan.status_code == 422
	errores = faltan.get_json()["errors"]
	assert "patient_id" in errores and "concept" in errores

	pagado = client.post(
		URL,
		json={"patient_id": paciente.id, "concept": "X", "amount": 10, "status": "paid"},
		headers=headers,
	)
	assert pagado.status_code == 422


def test_crear_valida_referencias_existentes(client, make_user, auth_header, make_patient):
	vet = make_user("vet_refs@test.com", role="vet")
	paciente = make_patient()

	resp = client.post(
		URL,
		json={"patient_id": 999999, "concept": "X", "amount": 10, "consultation_id": 888888},
		headers=auth_header(vet.id),
	)
	assert resp.status_code == 422
	errores = resp.get_json()["errors"]
	assert "patient_id" in errores
	assert "consultation_id" in errores

	ok = client.post(
		URL,
		json={"patient_id": paciente.id, "concept": "X", "amount": 10},
		headers=auth_header(vet.id),
	)
	assert ok.status_code == 201


def test_concepto_en_blanco_se_rechaza(client, make_user, auth_header, make_patient, make_payment):
	vet = make_user("vet_blanco@test.com", role="vet")
	paciente = make_patient()
	headers = auth_header(vet.id)

	creado = client.post(URL, json={"patient_id": paciente.id, "concept": "   ", "amount": 10}, headers=headers)
	assert creado.status_code == 422
	assert "concept" in creado.get_json()["errors"]

	pago = make_payment(paciente.id, concept="Control")
	editado = client.patch(f"{URL}/{pago.id}", json={"concept": " \t "}, headers=headers)
	assert editado.status_code == 422
	assert "concept" in editado.get_json()["errors"]
	assert client.get(f"{URL}/{pago.id}", headers=headers).get_json()["data"]["concept"] == "Control"


def test_monto_no_supera_la_precision_de_la_columna(client, make_user, auth_header, make_patient, make_payment):
	vet = make_user("vet_tope@test.com", role="vet")
	paciente = make_patient()
	headers = auth_header(vet.id)

	enorme = client.post(
		URL,
		json={"patient_id": paciente.id, "concept": "Cirugía", "amount": 123456789012},
		headers=headers,
	)
	assert enorme.status_code == 422
	assert "amount" in enorme.get_json()["errors"]

	tope = client.post(
		URL,
		json={"patient_id": paciente.id, "concept": "Cirugía", "amount": "99999999.99"},
		headers=headers,
	)
	assert tope.status_code == 201
	assert tope.get_json()["data"]["amount"] == 99999999.99

	pago = make_payment(paciente.id)
	editado = client.patch(f"{URL}/{pago.id}", json={"amount": 100000000}, headers=headers)
	assert editado.status_code == 422
	assert "amount" in editado.get_json()["errors"]


def test_pago_inexistente_404(client, make_user, auth_header):
	admin = make_user("admin_404@test.com", role="admin")
	headers = auth_header(admin.id)

	assert client.get(f"{URL}/987654", headers=headers).status_code == 404
	assert client.post(f"{URL}/987654/mark-paid", json={}, headers=headers).status_code == 404
	assert client.post(f"{URL}/987654/cancel", json={}, headers=headers).status_code == 404
	assert client.delete(f"{URL}/987654", headers=headers).status_code == 404


def test_editar_pendiente_y_bloquear_pagado(client, make_user, auth_header, make_patient, make_payment):
	recepcion = make_user("recepcion_edit@test.com", role="recepcion")
	pago = make_payment(make_patient().id)
	headers = auth_header(recepcion.id)

	r = client.patch(f"{URL}/{pago.id}", json={"amount": 20000, "notes": "con descuento"}, headers=headers)
	assert r.status_code == 200
	data = r.get_json()["data"]
	assert data["amount"] == 20000
	assert data["notes"] == "con descuento"
	assert data["concept"] == "Consulta"
	assert data["status"] == "pending"

	incompleto = client.put(f"{URL}/{pago.id}", json={"amount": 1}, headers=headers)
	assert incompleto.status_code == 422

	client.post(f"{URL}/{pago.id}/mark-paid", json={}, headers=headers)

	bloqueado = client.patch(f"{URL}/{pago.id}", json={"concept": "Otro"}, headers=headers)
	assert bloqueado.status_code == 409


def test_editar_con_cambio_de_estado_aplica_la_transicion(client, make_user, auth_header, make_patient, make_payment):
	vet = make_user("vet_edit_estado@test.com", role="vet")
	pago = make_payment(make_patient().id)

	r = client.put(
		f"{URL}/{pago.id}",
		json={"concept": "Cirugía", "amount": 90000, "status": "paid", "method": "debito"},
		headers=auth_header(vet.id),
	)
	assert r.status_code == 200
	data = r.get_json()["data"]
	assert data["status"] == "paid"
	assert data["paid_at"] is not None
	assert data["method"] == "debito"


def test_mark_paid_conserva_metodo_y_notas_si_no_vienen(client, make_user, auth_header, make_patient, make_payment):
	vet = make_user("vet_merge@test.com", role="vet")
	pago = make_payment(make_patient().id, method="transferencia", notes="abono previo")

	r = client.post(f"{URL}/{pago.id}/mark-paid", json={}, headers=auth_header(vet.id))
	assert r.status_code == 200
	data = r.get_json()["data"]
	assert data["method"] == "transferencia"
	assert data["notes"] == "abono previo"


def test_eliminar_solo_pendientes(client, make_user, auth_header, make_patient, make_payment):
	admin = make_user("admin_delete@test.com", role="admin")
	paciente = make_patient()
	pendiente = make_payment(paciente.id)
	pagado = make_payment(paciente.id, status="paid", paid_at=datetime.utcnow())
	anulado = make_payment(paciente.id, status="cancelled", cancelled_at=datetime.utcnow())
	headers = auth_header(admin.id)

	assert client.delete(f"{URL}/{pagado.id}", headers=headers).status_code == 409
	assert client.delete(f"{URL}/{anulado.id}", headers=headers).status_code == 409

	id_pendiente = pendiente.id
	assert client.delete(f"{URL}/{id_pendiente}", headers=headers).status_code == 200
	assert client.get(f"{URL}/{id_pendiente}", headers=headers).status_code == 404


def test_anular_anulado_devuelve_409(client, make_user, auth_header, make_patient, make_payment):
	admin = make_user("admin_reanular@test.com", role="admin")
	pago = make_payment(make_patient().id, status="cancelled", cancelled_at=datetime.utcnow())

	resp = client.post(f"{URL}/{pago.id}/cancel", json={}, headers=auth_header(admin.id))
	assert resp.status_code == 409


def test_mark_paid_concurrente_no_reestampa(app, db_session, make_user, make_patient, make_payment, monkeypatch):
	cajero = make_user("cajero_carrera@test.com", role="recepcion")
	pago = make_payment(make_patient().id)
	id_pago = pago.id
	primero = datetime(2026, 1, 10, 12, 0, 0)

	cas_real = payment_service._compare_and_set

	def _cas_con_competidor(payment_id, expected_status, values):
		# Otra petición gana entre la verificación de la política y la escritura
		db_session.execute(
			update(Payment).where(Payment.id == payment_id).values(status="paid", paid_at=primero)
		)
		db_session.commit()
		return cas_real(payment_id, expected_status, values)

	monkeypatch.setattr(payment_service, "_compare_and_set", _cas_con_competidor)

	with pytest.raises(PreconditionFailed):
		payment_service.mark_paid(cajero, id_pago, {})

	monkeypatch.undo()
	db_session.expire_all()
	persistido = db_session.get(Payment, id_pago)
	assert persistido.status == "paid"
	assert persistido.paid_at == primero


def test_listado_con_filtros_y_paginacion(client, make_user, auth_header, make_patient, make_payment, make_tutor):
	vet = make_user("vet_listado@test.com", role="vet")
	tutor = make_tutor(nombres="Listado", email="tutor_listado@test.com")
	paciente = make_patient(name="Michi", tutor_id=tutor.id)
	otro = make_patient(name="Otro")
	for i in range(3):
		make_payment(paciente.id, tutor_id=tutor.id, concept=f"Control {i}")
	make_payment(paciente.id, status="paid", paid_at=datetime.utcnow(), tutor_id=tutor.id)
	make_payment(otro.id)
	headers = auth_header(vet.id)

	r = client.get(f"{URL}?patient_id={paciente.id}&status=pending&per_page=2&page=1", headers=headers)
	assert r.status_code == 200
	body = r.get_json()
	assert len(body["data"]) == 2
	assert body["meta"] == {"current_page": 1, "per_page": 2, "total": 3, "last_page": 2}
	assert all(p["status"] == "pending" and p["patient_id"] == paciente.id for p in body["data"])

	todos = client.get(f"{URL}?tutor_id={tutor.id}&status=all", headers=headers).get_json()
	assert todos["meta"]["total"] == 4
	assert todos["meta"]["per_page"] == 20

	excesivo = client.get(f"{URL}?patient_id={paciente.id}&per_page=500", headers=headers).get_json()
	assert excesivo["meta"]["per_page"] == 20

	manana = (datetime.utcnow() + timedelta(days=1)).date().isoformat()
	futuro = client.get(f"{URL}?patient_id={paciente.id}&from={manana}", headers=headers).get_json()
	assert futuro["meta"]["total"] == 0

	malo = client.get(f"{URL}?status=reembolsado", headers=headers)
	assert malo.status_code == 422


def test_resumen_por_estado_y_metodo(client, make_user, auth_header, make_patient, make_payment):
	admin = make_user("admin_resumen@test.com", role="admin")
	paciente = make_patient()
	headers = auth_header(admin.id)

	antes = client.get(f"{URL}/summary", headers=headers).get_json()["data"]

	make_payment(paciente.id, amount=1000)
	make_payment(paciente.id, status="paid", amount=2000, method="efectivo", paid_at=datetime.utcnow())
	make_payment(paciente.id, status="paid", amount=3000, method="efectivo", paid_at=datetime.utcnow())
	make_payment(paciente.id, status="cancelled", amount=500, cancelled_at=datetime.utcnow())

	despues = client.get(f"{URL}/summary", headers=headers).get_json()["data"]
	assert despues["total_count"] - antes["total_count"] == 4
	assert despues["pending_count"] - antes["pending_count"] == 1
	assert despues["paid_count"] - antes["paid_count"] == 2
	assert despues["cancelled_count"] - antes["cancelled_count"] == 1
	assert despues["paid_sum"] - antes["paid_sum"] == 5000
	assert despues["pending_sum"] - antes["pending_sum"] == 1000

	efectivo = next(m for m in despues["by_method"] if m["method"] == "efectivo")
	efectivo_antes = next((m for m in antes["by_method"] if m["method"] == "efectivo"), {"qty": 0})
	assert efectivo["qty"] - efectivo_antes["qty"] == 2

	tutor = make_user("tutor_resumen@test.com", role="tutor")
	assert client.get(f"{URL}/summary", headers=auth_header(tutor.id)).status_code == 403


def test_rechazo_registra_usuario_pago_y_operacion(app, client, make_user, auth_header, make_patient, make_payment, caplog):
	recepcion = make_user("recepcion_log@test.com", role="recepcion")
	pago = make_payment(make_patient().id, status="paid", paid_at=datetime.utcnow())

	with caplog.at_level(logging.WARNING, logger=app.logger.name):
		resp = client.post(f"{URL}/{pago.id}/cancel", json={}, headers=auth_header(recepcion.id))

	assert resp.status_code == 403
	payload = resp.get_json()["payload"]
	assert payload["code"] == "FORBIDDEN"
	assert payload["user_id"] == recepcion.id
	assert payload["payment_id"] == pago.id
	assert payload["operation"] == "cancel"

	mensajes = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
	registro = next(m for m in mensajes if "AuthorizationDenied" in m)
	assert f"usuario={recepcion.id}" in registro
	assert "operacion=cancel" in registro
	assert f"'payment_id': {pago.id}" in registro
