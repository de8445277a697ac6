# blueprints/auth/routes.py
from __future__ import annotations
import logging
import time
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, request, jsonify, abort, current_app
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf

from extensions import db, csrf, login_manager
from models import User, Role

log = logging.getLogger(__name__)

api_bp = Blueprint("auth_api", __name__)

# ---- безопасные значения по умолчанию
DEFAULT_RL_MAX = 5
DEFAULT_RL_WIN = 300  # 5 минут

@login_manager.user_loader
def load_user(uid: str) -> Optional[User]:
    try:
        return db.session.get(User, int(uid))
    except (TypeError, ValueError):
        return None

# ---------- rate limit ----------
def _rl_key(email: str) -> str:
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "0.0.0.0").split(",")[0].strip()
    return f"{ip}|{(email or '').lower()}"

def _rl_check_and_hit(email: str) -> bool:
    now = time.time()
    win = current_app.config.get("AUTH_RL_WINDOW", DEFAULT_RL_WIN)
    mx = current_app.config.get("AUTH_RL_MAX", DEFAULT_RL_MAX)
    # ключ: ip|email -> [timestamps], отдельно на каждое приложение
    attempts = current_app.extensions.setdefault("login_attempts", {})
    bucket = attempts.setdefault(_rl_key(email), [])
    # purge старых
    cutoff = now - win
    while bucket and bucket[0] < cutoff:
        bucket.pop(0)
    if len(bucket) >= mx:
        return False
    bucket.append(now)
    return True

# ---------- проверка админа ----------
def is_admin_authenticated() -> bool:
    return bool(current_user.is_authenticated and getattr(current_user, "role", None) == Role.ADMIN.value)

def admin_required(fn: Callable):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if not is_admin_authenticated():
            abort(403)
        return fn(*args, **kwargs)
    return wrapper

# ---------- обработчики 401/403 ----------
@login_manager.unauthorized_handler
def _unauth():
    return jsonify({"error": "unauthorized"}), 401

@api_bp.app_errorhandler(403)
def _forbidden(e):
    return jsonify({"error": "forbidden"}), 403

# ---------- API ----------
@api_bp.get("/csrf")
@csrf.exempt
def api_csrf():
    token = generate_csrf()
    resp = jsonify({"csrf": token})
    resp.set_cookie("csrf_token", token, samesite="Lax", httponly=False, path="/")
    return resp

@api_bp.post("/auth/login")
def api_login():
    payload = request.get_json(silent=True) or request.form or {}
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return jsonify({"error": "missing_credentials"}), 400

    # rate limit
    if not _rl_check_and_hit(email):
        log.warning("login rate limited", extra={"event": "login_rate_limited"})
        return jsonify({"error": "too_many_attempts"}), 429

    user: Optional[User] = User.query.filter_by(email=email).first()
    if not user or not user.password_hash or not user.check_password(password):
        log.info("login failed", extra={"event": "login_failed"})
        return jsonify({"error": "invalid_credentials"}), 401

    if not user.is_active:
        return jsonify({"error": "inactive"}), 403

    login_user(user, remember=False)
    log.info("login ok", extra={"event": "login_ok"})
    return jsonify({"ok": True, "user": {"id": user.id, "email": user.email, "role": user.role}})

@api_bp.post("/auth/logout")
@login_required
def api_logout():
    logout_user()
    return jsonify({"ok": True})

@api_bp.get("/auth/ping-admin")
@admin_required
def ping_admin():
    return jsonify(ok=True, role=current_user.role)
