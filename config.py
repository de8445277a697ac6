from __future__ import annotations
import os
from datetime import timedelta
from pathlib import Path

# слоты выдачи: 12:30 .. 1:15 с шагом 5 минут
DEFAULT_TIME_SLOTS = [
    "12:30", "12:35", "12:40", "12:45", "12:50",
    "12:55", "1:00", "1:05", "1:10", "1:15",
]

DEFAULT_MENU = [
    {"name": "Cookies", "price": "2.50", "stock": 75, "visible": True},
    {"name": "Brownies", "price": "2.00", "stock": 25, "visible": True,
     "custom": {
         "mnms": 25, "oreos": 25, "sprinkles": 25, "marshmallows": 25,
         "sauces": {"choco": 50, "caramel": 50, "strawberry": 50},
     }},
    {"name": "Lemonade", "price": "1.50", "stock": 40, "visible": True},
    # stock=None -> без ограничения
    {"name": "Gambling", "price": "2.00", "stock": None, "visible": False},
]

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'stall.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    AUTO_CREATE_TABLES = True

    WTF_CSRF_HEADERS = ["X-CSRF-Token", "X-CSRFToken"]
    WTF_CSRF_TIME_LIMIT = None

    TIME_SLOTS = DEFAULT_TIME_SLOTS
    ORDER_LIMIT = 2
    PENDING_ORDER_TTL = timedelta(minutes=15)
    # False -> повторная бронь занятого слота отклоняется (409)
    ALLOW_SLOT_OVERBOOKING = False
    LOW_STOCK_THRESHOLD = 10
    # сколько последних записей логов держать для /api/v1/admin/logs
    LOG_BUFFER_SIZE = 100
    DEFAULT_MENU = DEFAULT_MENU

    AUTH_RL_MAX = 5
    AUTH_RL_WINDOW = 300

class DevConfig(BaseConfig):
    DEBUG = True
    SEED_TEST_DATA = True
    DEFAULT_USERS = [
        {"email": "admin@example.com", "password": os.getenv("ADMIN_PASSWORD", "pass"), "role": "ADMIN"},
    ]

class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    SEED_TEST_DATA = True
    DEFAULT_USERS = [
        {"email": "admin@example.com", "password": "adminpass", "role": "ADMIN"},
        {"email": "staff@example.com", "password": "staffpass", "role": "STAFF"},
    ]

class ProdConfig(BaseConfig):
    DEBUG = False
    JSON_SORT_KEYS = False
    SEED_TEST_DATA = False
    AUTO_CREATE_TABLES = False
    DEFAULT_USERS = []

config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
