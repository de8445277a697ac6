"""
Idempotent seed-скрипт.
Запуск:
  python seed.py --reset         # дропнуть и пересоздать БД + меню из конфига + admin
  python seed.py --ensure-admin  # создать только пользователя-админа (без меню)
  python seed.py                 # мягкое наполнение недостающих данных (idempotent)
"""
import argparse
import os

from app import create_app
from extensions import db
from models import User, Role, MenuItemRecord
from blueprints.ordering.stores import MenuItem

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin")

def ensure_admin() -> bool:
    if User.query.filter_by(email=ADMIN_EMAIL).first():
        return False
    u = User(email=ADMIN_EMAIL, role=Role.ADMIN.value, is_active_flag=True)
    u.set_password(ADMIN_PASSWORD)
    db.session.add(u)
    db.session.commit()
    return True

def seed_menu(app) -> int:
    """Добавляет недостающие позиции DEFAULT_MENU, существующие не трогает."""
    added = 0
    start = db.session.query(MenuItemRecord).count()
    for i, raw in enumerate(app.config.get("DEFAULT_MENU") or []):
        item = MenuItem.from_dict(raw)
        if db.session.get(MenuItemRecord, item.name):
            continue
        db.session.add(MenuItemRecord(
            name=item.name, price=item.price, stock=item.stock,
            visible=item.visible, custom=item.custom, position=start + i,
        ))
        added += 1
    db.session.commit()
    return added

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--reset", action="store_true", help="drop & create all tables")
    ap.add_argument("--ensure-admin", action="store_true", help="only create admin user")
    args = ap.parse_args()

    app = create_app(os.getenv("FLASK_CONFIG", "dev"))
    with app.app_context():
        if args.reset:
            db.drop_all()
            db.create_all()
        if args.ensure_admin:
            created = ensure_admin()
            print(f"admin {'created' if created else 'already exists'}: {ADMIN_EMAIL}")
            return
        added = seed_menu(app)
        created = ensure_admin()
        print(f"menu items added: {added}; admin {'created' if created else 'exists'}")

if __name__ == "__main__":
    main()
