from security import hash_password, verify_password


def test_password_hash_roundtrip():
    stored = hash_password("s3nha-forte")

    assert stored.startswith("$2b$")
    assert verify_password("s3nha-forte", stored)
    assert not verify_password("outra", stored)
    assert not verify_password("s3nha-forte", "garbage")


def test_register_then_me(client):
    response = client.post("/auth/register", json={
        "email": "Novo@Hypex.test",
        "password": "secret123",
        "full_name": "Novo Cliente"
    })

    assert response.status_code == 201
    token = response.json()["token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "novo@hypex.test"
    assert me.json()["is_admin"] is False


def test_register_duplicate_email_conflicts(client, customer):
    response = client.post("/auth/register", json={
        "email": "cliente@hypex.test",
        "password": "secret123",
        "full_name": "Outra Pessoa"
    })

    assert response.status_code == 409


def test_register_validates_fields(client):
    response = client.post("/auth/register", json={
        "email": "not-an-email",
        "password": "123",
        "full_name": ""
    })

    assert response.status_code == 422
    fields = {error["loc"][-1] for error in response.json()["detail"]}
    assert fields == {"email", "password", "full_name"}


def test_login_with_valid_and_invalid_credentials(client, customer):
    ok = client.post("/auth/login", json={"email": "cliente@hypex.test", "password": "secret123"})
    assert ok.status_code == 200
    assert ok.json()["user_id"] == customer["id"]

    bad = client.post("/auth/login", json={"email": "cliente@hypex.test", "password": "wrong"})
    assert bad.status_code == 401


def test_login_redirects_when_already_signed_in(client, customer):
    response = client.post(
        "/auth/login",
        json={"email": "cliente@hypex.test", "password": "secret123"},
        headers=customer["headers"],
        follow_redirects=False
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/"


def test_logout_invalidates_token(client, customer):
    assert client.post("/auth/logout", headers=customer["headers"]).status_code == 204

    assert client.get("/auth/me", headers=customer["headers"]).status_code == 401


def test_malformed_authorization_header(client):
    response = client.get("/auth/me", headers={"Authorization": "Token abc"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid authorization header format"
