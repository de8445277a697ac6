from __future__ import annotations
import pytest

from app import create_app
from blueprints.ordering.stores import MenuItem

def _csrf(client):
    r = client.get("/api/v1/csrf")
    return (r.get_json() or {}).get("csrf", "")

def _login_admin(client):
    token = _csrf(client)
    r = client.post("/api/v1/auth/login",
                    json={"email": "admin@example.com", "password": "adminpass"},
                    headers={"X-CSRF-Token": token})
    assert r.status_code == 200, r.get_json()
    return token

def _place(client, slot, item="Cookies", quantity=1, email="ann@example.com"):
    r = client.post("/pre-order", json={
        "item": item, "quantity": quantity, "customerName": "Ann", "customerEmail": email,
    })
    assert r.status_code == 200, r.get_json()
    r = client.post("/confirm-order", json={"timeSlot": slot})
    assert r.status_code == 201, r.get_json()
    return r.get_json()["order"]

@pytest.fixture()
def app():
    app = create_app("test")
    app.config.update(ORDER_LIMIT=100)
    app.extensions["stall"].settings.order_limit = 100
    with app.app_context():
        yield app

@pytest.fixture()
def stall(app):
    return app.extensions["stall"]

@pytest.fixture()
def admin(app):
    c = app.test_client()
    _login_admin(c)
    return c

@pytest.fixture()
def customer(app):
    return app.test_client()

def test_dashboard_stats(admin, customer):
    a = _place(customer, "12:30", quantity=2)
    b = _place(customer, "12:35", quantity=4)
    _place(customer, "12:40")
    admin.post(f"/api/v1/admin/orders/{a['id']}/status", json={"status": "confirmed"})
    admin.post(f"/api/v1/admin/orders/{b['id']}/cancel")

    r = admin.get("/api/v1/admin/orders")
    assert r.status_code == 200
    js = r.get_json()
    assert js["stats"]["total_orders"] == 3
    assert js["stats"]["pending_orders"] == 1
    assert js["stats"]["confirmed_orders"] == 1
    assert js["stats"]["cancelled_orders"] == 1
    assert js["stats"]["total_revenue"] == 7.5
    assert [o["id"] for o in js["items"]] == [1, 2, 3]

def test_order_detail(admin, customer):
    o = _place(customer, "12:30")
    r = admin.get(f"/api/v1/admin/orders/{o['id']}")
    assert r.status_code == 200
    assert r.get_json()["order"]["customer_email"] == "ann@example.com"
    assert admin.get("/api/v1/admin/orders/999").status_code == 404

def test_status_lifecycle(admin, customer):
    o = _place(customer, "12:30")
    url = f"/api/v1/admin/orders/{o['id']}/status"

    r = admin.post(url, json={"status": "CONFIRMED"})
    assert r.status_code == 200
    assert r.get_json()["order"]["status"] == "confirmed"

    r = admin.post(url, json={"status": "completed"})
    assert r.get_json()["order"]["status"] == "completed"

    r = admin.post(url, json={"status": "pending"})
    assert r.status_code == 409
    assert r.get_json()["error"] == "invalid_status_transition"

def test_status_same_value_is_noop(admin, customer):
    o = _place(customer, "12:30")
    url = f"/api/v1/admin/orders/{o['id']}/status"
    assert admin.post(url, json={"status": "confirmed"}).status_code == 200
    r = admin.post(url, json={"status": "confirmed"})
    assert r.status_code == 200
    assert r.get_json()["order"]["status"] == "confirmed"

def test_status_form_payload(admin, customer):
    o = _place(customer, "12:30")
    r = admin.post(f"/api/v1/admin/orders/{o['id']}/status", data={"status": "confirmed"})
    assert r.status_code == 200
    assert r.get_json()["order"]["status"] == "confirmed"

def test_status_invalid_value_422(admin, customer):
    o = _place(customer, "12:30")
    r = admin.post(f"/api/v1/admin/orders/{o['id']}/status", json={"status": "shipped"})
    assert r.status_code == 422
    assert r.get_json()["error"] == "validation_error"

def test_status_unknown_order_ignored(admin):
    r = admin.post("/api/v1/admin/orders/999/status", json={"status": "confirmed"})
    assert r.status_code == 200
    assert r.get_json() == {"ok": True, "order": None}
    r2 = admin.post("/api/v1/admin/orders/999/cancel")
    assert r2.status_code == 200 and r2.get_json()["order"] is None

# ---------- сценарий D: отмена освобождает слот, удаление возвращает остаток ----------
def test_cancel_then_delete(admin, customer, stall):
    stall.menu.put(MenuItem("Cookies", "2.50", 5))
    o = _place(customer, "12:30", quantity=3)
    assert stall.menu.get("Cookies").stock == 2

    r = admin.post(f"/api/v1/admin/orders/{o['id']}/cancel")
    assert r.status_code == 200
    assert r.get_json()["order"]["status"] == "cancelled"
    slots = customer.get("/api/time-slots").get_json()
    assert "12:30" in slots["availableSlots"]
    assert stall.menu.get("Cookies").stock == 2

    r = admin.delete(f"/api/v1/admin/orders/{o['id']}")
    assert r.status_code == 200
    assert r.get_json() == {"ok": True, "deleted": o["id"]}
    assert stall.menu.get("Cookies").stock == 5
    assert admin.get(f"/api/v1/admin/orders/{o['id']}").status_code == 404

def test_cancelled_slot_can_be_rebooked(admin, customer):
    o = _place(customer, "12:30")
    admin.post(f"/api/v1/admin/orders/{o['id']}/cancel")
    other = _place(customer, "12:30", email="bob@example.com")
    assert other["time_slot"] == "12:30"

def test_delete_unknown_order_404(admin):
    r = admin.delete("/api/v1/admin/orders/999")
    assert r.status_code == 404
    assert r.get_json()["error"] == "order_not_found"

def test_deleted_id_not_reused(admin, customer):
    _place(customer, "12:30")
    second = _place(customer, "12:35")
    assert admin.delete(f"/api/v1/admin/orders/{second['id']}").status_code == 200
    third = _place(customer, "12:40")
    assert third["id"] == second["id"] + 1

def test_debug_info(admin, customer):
    _place(customer, "12:30")
    r = admin.get("/api/v1/admin/debug")
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["orders"]["total_orders"] == 1
    assert data["time_slots"]["bookedSlots"] == ["12:30"]
    assert data["time_slots"]["totalAvailable"] == 9
    assert data["next_order_id"] == 2
    assert {m["name"] for m in data["menu"]} == {"Cookies", "Brownies", "Lemonade", "Gambling"}
    assert data["config"]["allow_overbooking"] is False

# ---------- журнал ----------
def test_logs_require_admin(app):
    assert app.test_client().get("/api/v1/admin/logs").status_code == 401

def test_logs_newest_first(admin, customer):
    o = _place(customer, "12:30")
    r = admin.get("/api/v1/admin/logs")
    assert r.status_code == 200
    logs = r.get_json()["logs"]
    assert 0 < len(logs) <= 50
    events = [e.get("event") for e in logs]
    committed = events.index("order_committed")
    staged = events.index("order_staged")
    assert committed < staged
    assert logs[committed]["order_id"] == o["id"]
    assert logs[committed]["slot"] == "12:30"

def test_logs_limit(admin, customer):
    for _ in range(120):
        customer.get("/menu")
    assert len(admin.get("/api/v1/admin/logs").get_json()["logs"]) == 50
    assert len(admin.get("/api/v1/admin/logs?limit=5").get_json()["logs"]) == 5
    assert len(admin.get("/api/v1/admin/logs?limit=1000").get_json()["logs"]) == 100

def test_debug_includes_recent_logs(admin, customer):
    for _ in range(60):
        customer.get("/menu")
    _place(customer, "12:30")
    logs = admin.get("/api/v1/admin/debug").get_json()["data"]["logs"]
    assert len(logs) == 50
    assert "order_committed" in [e.get("event") for e in logs[:5]]
