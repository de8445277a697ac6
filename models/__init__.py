from extensions import db

from .user import User, Role
from .menu_item import MenuItemRecord
from .order import OrderRecord
from .booking import SlotBooking, LedgerCounter

__all__ = [
    "db",
    "User", "Role",
    "MenuItemRecord",
    "OrderRecord",
    "SlotBooking", "LedgerCounter",
]
