from __future__ import annotations
import logging
import os
from flask import Flask
from config import config_map
from extensions import db, migrate, login_manager, csrf
from werkzeug.security import generate_password_hash
from sqlalchemy import inspect

log = logging.getLogger("blueprints.app")

def _seed_from_config(app):
    if not app.config.get("SEED_TEST_DATA"):
        return
    # таблица users может ещё не быть создана (alembic upgrade и т.п.)
    if not inspect(db.engine).has_table("users"):
        return

    from models import User  # локальный импорт, чтобы избежать циклов
    created = 0
    for u in app.config.get("DEFAULT_USERS", []):
        if User.query.filter_by(email=u["email"]).first():
            continue
        db.session.add(User(
            email=u["email"],
            password_hash=generate_password_hash(u["password"]),
            role=u["role"],
            is_active_flag=True,
        ))
        created += 1
    if created:
        db.session.commit()

def _init_stall(app):
    from blueprints.ordering.persistence import SqlPersistence
    from blueprints.ordering.services import create_stall

    stall = create_stall(app.config, persistence=SqlPersistence(db))
    app.extensions["stall"] = stall
    stall.log_stock_levels()
    log.info("stall ready: %d menu items, %d orders, %d/%d slots booked",
             len(stall.menu), len(stall.orders),
             len(stall.bookings.booked()), len(stall.slots),
             extra={"event": "stall_ready"})

def register_blueprints(app: Flask) -> None:
    from blueprints.core import bp as core_bp
    from blueprints.ordering import bp as ordering_bp
    from blueprints.auth.routes import api_bp as auth_api_bp
    from blueprints.admin.routes import api_bp as admin_api_bp

    # core и ordering без префикса → '/health', '/pre-order', '/api/time-slots' в корне
    app.register_blueprint(core_bp)
    app.register_blueprint(ordering_bp)
    app.register_blueprint(auth_api_bp, url_prefix="/api/v1")
    app.register_blueprint(admin_api_bp, url_prefix="/api/v1")

def create_app(config_name: str | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    # --- ВАЖНО: изоляция БД в тестах ---
    # pytest всегда выставляет переменную окружения PYTEST_CURRENT_TEST.
    # Делаем БД в памяти, чтобы никакие изменения из одного теста не протекали в другой.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    register_blueprints(app)

    with app.app_context():
        if app.config.get("AUTO_CREATE_TABLES"):
            db.create_all()
        _seed_from_config(app)
        _init_stall(app)
    return app
