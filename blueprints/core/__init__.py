from flask import Blueprint

bp = Blueprint("core", __name__)
# Критично: импортируем функции, чтобы регистрировались маршруты
from . import routes  # noqa: E402,F401
