def test_login_correcto_devuelve_token_y_rol(client, make_user):
	make_user("login_ok@test.com", role="recepcion", password="Secreta123")

	resp = client.post("/api/auth/login", json={"email": "Login_OK@test.com", "password": "Secreta123"})
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert data["access_token"]
	assert data["user"]["role"] == "recepcion"
	assert data["user"]["last_login_at"] is not None

	me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
	assert me.status_code == 200
	assert me.get_json()["data"]["email"] == "login_ok@test.com"


def test_login_credenciales_invalidas(client, make_user):
	make_user("login_mal@test.com", password="Secreta123")

	resp = client.post("/api/auth/login", json={"email": "login_mal@test.com", "password": "otra"})
	assert resp.status_code == 401

	nadie = client.post("/api/auth/login", json={"email": "nadie@test.com", "password": "otra"})
	assert nadie.status_code == 401


def test_login_usuario_inactivo(client, make_user):
	make_user("login_inactivo@test.com", password="Secreta123", is_active=False)

	resp = client.post("/api/auth/login", json={"email": "login_inactivo@test.com", "password": "Secreta123"})
	assert resp.status_code == 403


def test_login_payload_invalido(client):
	resp = client.post("/api/auth/login", json={"email": "no-es-correo"})
	assert resp.status_code == 422
	errores = resp.get_json()["errors"]
	assert "email" in errores and "password" in errores


def test_rol_se_relee_desde_bd(client, make_user, auth_header, db_session):
	u = make_user("degradado@test.com", role="admin")
	headers = auth_header(u.id)
	assert client.get("/api/v1/payments", headers=headers).status_code == 200

	u.role = "doctor"
	db_session.commit()
	assert client.get("/api/v1/payments", headers=headers).status_code == 403


def test_health(client):
	resp = client.get("/api/health")
	assert resp.status_code == 200
	assert resp.get_json()["status"] == "ok"
