# blueprints/ordering/routes.py
from __future__ import annotations
import logging

from flask import current_app, jsonify, request, session
from pydantic import ValidationError

from . import bp
from .errors import NoPendingOrder, OrderingError, StaleOrderExpired
from .schemas import ConfirmOrderIn, PreOrderIn
from .services import Stall
from .stores import PendingOrder

log = logging.getLogger(__name__)

PENDING_KEY = "pending_order"
ORDER_COUNT_COOKIE = "order_count"
ORDER_COUNT_MAX_AGE = 60 * 60 * 24  # сутки

# ---------- helpers ----------
def get_stall() -> Stall:
    return current_app.extensions["stall"]

def _payload() -> dict:
    return request.get_json(silent=True) or request.form.to_dict() or {}

def pydantic_errors_safe(ve: ValidationError):
    errs = ve.errors(include_url=False)
    for e in errs:
        if "ctx" in e and isinstance(e["ctx"], dict):
            e["ctx"] = {k: str(v) for k, v in e["ctx"].items()}
    return errs

def validation_error(ve: ValidationError):
    return jsonify({"error": "validation_error", "detail": pydantic_errors_safe(ve)}), 422

def _order_count() -> int:
    raw = request.cookies.get(ORDER_COUNT_COOKIE, "0")
    try:
        return max(int(raw), 0)
    except (TypeError, ValueError):
        return 0

def _pending_from_session() -> PendingOrder:
    raw = session.get(PENDING_KEY)
    if not raw:
        raise NoPendingOrder("No pending order found")
    try:
        return PendingOrder.from_dict(raw)
    except (KeyError, TypeError, ValueError):
        session.pop(PENDING_KEY, None)
        raise NoPendingOrder("No pending order found")

# ---------- ошибки ----------
@bp.app_errorhandler(OrderingError)
def _ordering_error(e: OrderingError):
    if isinstance(e, StaleOrderExpired):
        session.pop(PENDING_KEY, None)
    log.info("order request rejected: %s", e.code,
             extra={"event": "order_rejected", "path": request.path, "status": e.http_status})
    return jsonify(e.to_dict()), e.http_status

# ---------- menu ----------
@bp.get("/menu")
def menu():
    return jsonify({"ok": True, "items": get_stall().visible_menu()})

@bp.get("/api/time-slots")
def time_slots():
    return jsonify(get_stall().slot_view())

# ---------- stage ----------
@bp.post("/pre-order")
def pre_order():
    try:
        data = PreOrderIn.model_validate(_payload())
    except ValidationError as ve:
        return validation_error(ve)

    stall = get_stall()
    pending = stall.placement.stage(
        item=data.item,
        quantity=data.quantity,
        customer_name=data.customer_name,
        customer_email=data.customer_email,
        order_count=_order_count(),
    )
    session[PENDING_KEY] = pending.to_dict()
    return jsonify({
        "ok": True,
        "pending_order": pending.to_dict(),
        "expires_at": pending.expires_at(stall.settings.pending_ttl).isoformat(),
    })

@bp.get("/select-time")
def select_time():
    pending = _pending_from_session()
    return jsonify({"ok": True, **get_stall().placement.selection(pending)})

# ---------- commit ----------
@bp.post("/confirm-order")
def confirm_order():
    pending = _pending_from_session()
    try:
        data = ConfirmOrderIn.model_validate(_payload())
    except ValidationError as ve:
        return validation_error(ve)

    order = get_stall().placement.commit(pending, data.time_slot)

    session.pop(PENDING_KEY, None)
    resp = jsonify({"ok": True, "order": order.to_dict()})
    resp.status_code = 201
    resp.set_cookie(ORDER_COUNT_COOKIE, str(_order_count() + 1),
                    max_age=ORDER_COUNT_MAX_AGE, samesite="Lax", path="/")
    return resp

@bp.post("/confirm-order/<int:order_id>")
def customer_confirm(order_id: int):
    order = get_stall().admin.confirm(order_id)
    return jsonify({"ok": True, "order": order.to_dict()})

# ---------- read-only ----------
@bp.get("/orders")
def orders_list():
    return jsonify({"ok": True, "items": [o.to_dict() for o in get_stall().admin.list_orders()]})

@bp.get("/orders/<int:order_id>")
def order_detail(order_id: int):
    return jsonify({"ok": True, "order": get_stall().admin.get_order(order_id).to_dict()})
