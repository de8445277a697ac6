from __future__ import annotations
import pytest

from app import create_app
from extensions import db
from models import User

@pytest.fixture()
def client_app():
    app = create_app("test")
    app.config.update(AUTH_RL_MAX=3, AUTH_RL_WINDOW=60)  # агрессивный лимит для теста
    with app.app_context():
        yield app

@pytest.fixture()
def client(client_app):
    return client_app.test_client()

def _get_csrf(client):
    r = client.get("/api/v1/csrf")
    assert r.status_code == 200
    return r.get_json()["csrf"]

def _login(client, email, password):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password},
                       headers={"X-CSRF-Token": _get_csrf(client)})

def test_unauthorized_401(client):
    r = client.get("/api/v1/auth/ping-admin")
    assert r.status_code == 401
    assert r.get_json()["error"] == "unauthorized"

def test_admin_api_requires_login(client):
    assert client.get("/api/v1/admin/orders").status_code == 401
    assert client.delete("/api/v1/admin/orders/1").status_code == 401

def test_forbidden_403_for_staff(client):
    r = _login(client, "staff@example.com", "staffpass")
    assert r.status_code == 200
    r2 = client.get("/api/v1/auth/ping-admin")
    assert r2.status_code == 403
    assert r2.get_json()["error"] == "forbidden"
    assert client.get("/api/v1/admin/debug").status_code == 403

def test_login_success_and_ping_admin(client):
    r = _login(client, "admin@example.com", "adminpass")
    assert r.status_code == 200
    js = r.get_json()
    assert js["ok"] is True and js["user"]["role"] == "ADMIN"

    r2 = client.get("/api/v1/auth/ping-admin")
    assert r2.status_code == 200
    assert r2.get_json()["role"] == "ADMIN"

def test_missing_credentials_400(client):
    r = client.post("/api/v1/auth/login", json={"email": "admin@example.com"})
    assert r.status_code == 400
    assert r.get_json()["error"] == "missing_credentials"

def test_wrong_password_401(client):
    r = _login(client, "admin@example.com", "nope")
    assert r.status_code == 401
    assert r.get_json()["error"] == "invalid_credentials"

def test_inactive_user_403(client):
    u = User.query.filter_by(email="staff@example.com").first()
    u.is_active_flag = False
    db.session.commit()
    r = _login(client, "staff@example.com", "staffpass")
    assert r.status_code == 403
    assert r.get_json()["error"] == "inactive"

def test_rate_limit_login(client):
    for _ in range(3):  # AUTH_RL_MAX
        r = _login(client, "x@example.com", "wrong")
        assert r.status_code == 401
    r2 = _login(client, "x@example.com", "wrong")
    assert r2.status_code == 429

def test_rate_limit_is_per_app():
    # счётчик попыток живёт в app.extensions, второе приложение начинает с нуля
    first = create_app("test")
    first.config.update(AUTH_RL_MAX=1)
    with first.app_context():
        c = first.test_client()
        _login(c, "x@example.com", "wrong")
        assert _login(c, "x@example.com", "wrong").status_code == 429

    second = create_app("test")
    second.config.update(AUTH_RL_MAX=1)
    with second.app_context():
        c = second.test_client()
        assert _login(c, "x@example.com", "wrong").status_code == 401

def test_logout(client):
    r = _login(client, "admin@example.com", "adminpass")
    assert r.status_code == 200
    r2 = client.post("/api/v1/auth/logout", headers={"X-CSRF-Token": _get_csrf(client)})
    assert r2.status_code == 200
    assert client.get("/api/v1/auth/ping-admin").status_code == 401

def test_csrf_enforced_when_enabled(client_app, client):
    client_app.config["WTF_CSRF_ENABLED"] = True

    r = client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "adminpass"})
    assert r.status_code == 400

    r2 = _login(client, "admin@example.com", "adminpass")
    assert r2.status_code == 200

def test_csrf_guards_order_endpoints(client_app, client):
    client_app.config["WTF_CSRF_ENABLED"] = True
    body = {"item": "Cookies", "quantity": 1, "customerName": "Ann", "customerEmail": "ann@example.com"}

    assert client.post("/pre-order", json=body).status_code == 400
    r = client.post("/pre-order", json=body, headers={"X-CSRF-Token": _get_csrf(client)})
    assert r.status_code == 200
