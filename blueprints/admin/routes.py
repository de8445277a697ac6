from __future__ import annotations
import logging
from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from blueprints.auth.routes import admin_required
from blueprints.core.routes import recent_logs
from blueprints.ordering.routes import get_stall, validation_error
from blueprints.ordering.schemas import StatusIn

log = logging.getLogger(__name__)

api_bp = Blueprint("admin_api", __name__)

# ---------- API (дашборд) ----------
@api_bp.get("/admin/orders")
@admin_required
def orders_dashboard():
    admin = get_stall().admin
    return jsonify({
        "ok": True,
        "stats": admin.stats(),
        "items": [o.to_dict() for o in admin.list_orders()],
    })

@api_bp.get("/admin/orders/<int:order_id>")
@admin_required
def order_detail(order_id: int):
    return jsonify({"ok": True, "order": get_stall().admin.get_order(order_id).to_dict()})

@api_bp.post("/admin/orders/<int:order_id>/status")
@admin_required
def order_status(order_id: int):
    try:
        data = StatusIn.model_validate(request.get_json(silent=True) or request.form.to_dict())
    except ValidationError as ve:
        return validation_error(ve)
    order = get_stall().admin.update_status(order_id, data.status)
    # неизвестный id молча игнорируем
    return jsonify({"ok": True, "order": order.to_dict() if order else None})

@api_bp.post("/admin/orders/<int:order_id>/cancel")
@admin_required
def order_cancel(order_id: int):
    order = get_stall().admin.cancel(order_id)
    return jsonify({"ok": True, "order": order.to_dict() if order else None})

@api_bp.delete("/admin/orders/<int:order_id>")
@admin_required
def order_delete(order_id: int):
    order = get_stall().admin.delete(order_id)
    return jsonify({"ok": True, "deleted": order.id})

@api_bp.get("/admin/debug")
@admin_required
def debug_info():
    log.warning("debug info accessed", extra={"event": "debug_accessed"})
    return jsonify({"ok": True, "data": get_stall().admin.debug_snapshot(logs=recent_logs(50))})

@api_bp.get("/admin/logs")
@admin_required
def logs_view():
    limit = request.args.get("limit", default=50, type=int)
    # новые записи первыми
    return jsonify({"ok": True, "logs": recent_logs(max(1, min(limit, 100)))})
