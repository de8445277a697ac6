from flask import Blueprint

# без url_prefix: /pre-order, /confirm-order, /api/time-slots и т.д. в корне
bp = Blueprint("ordering", __name__)

from . import routes  # noqa: E402,F401
