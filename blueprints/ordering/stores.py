# blueprints/ordering/stores.py
"""In-memory stores: menu, time slots, bookings and orders.

The stores hold no locks themselves; ``Stall`` in services.py serializes
every operation that touches more than one of them.
"""
from __future__ import annotations
import copy
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional

from .errors import InvalidTimeSlot, ItemUnavailable

SLOT_LABEL_RE = re.compile(r"^\d{1,2}:\d{2}$")
CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS)


def as_utc(value: datetime) -> datetime:
    # SQLite отдаёт naive datetime
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# completed и cancelled терминальные
TRANSITIONS: Dict[OrderStatus, frozenset] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


# ===== DTO =====
@dataclass
class MenuItem:
    name: str
    price: Decimal
    stock: Optional[int] = None  # None = без ограничения
    visible: bool = True
    custom: Optional[dict] = None

    def __post_init__(self):
        self.price = to_money(self.price)
        if self.price <= 0:
            raise ValueError(f"price must be positive: {self.name}")
        if self.stock is not None and self.stock < 0:
            raise ValueError(f"stock must be >= 0: {self.name}")

    @property
    def unlimited(self) -> bool:
        return self.stock is None

    def has_stock(self, quantity: int) -> bool:
        return self.unlimited or self.stock >= quantity

    def is_low(self, threshold: int) -> bool:
        return not self.unlimited and self.stock <= threshold

    def to_dict(self, low_stock_threshold: Optional[int] = None) -> dict:
        out = {
            "name": self.name,
            "price": float(self.price),
            "stock": self.stock,
            "unlimited": self.unlimited,
            "visible": self.visible,
            "custom": copy.deepcopy(self.custom),
        }
        if low_stock_threshold is not None:
            out["low_stock"] = self.is_low(low_stock_threshold)
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "MenuItem":
        return cls(
            name=data["name"],
            price=data["price"],
            stock=data.get("stock"),
            visible=bool(data.get("visible", True)),
            custom=copy.deepcopy(data.get("custom")),
        )


@dataclass
class PendingOrder:
    """Staged order held by the client session until a slot is chosen."""
    item: str
    quantity: int
    customer_name: str
    customer_email: str
    price: Decimal
    total: Decimal
    staged_at: datetime

    def expires_at(self, ttl: timedelta) -> datetime:
        return self.staged_at + ttl

    def is_expired(self, ttl: timedelta, now: datetime) -> bool:
        return now > self.expires_at(ttl)

    def to_dict(self) -> dict:
        return {
            "item": self.item,
            "quantity": self.quantity,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "price": str(self.price),
            "total": str(self.total),
            "staged_at": self.staged_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PendingOrder":
        return cls(
            item=data["item"],
            quantity=int(data["quantity"]),
            customer_name=data["customer_name"],
            customer_email=data["customer_email"],
            price=to_money(data["price"]),
            total=to_money(data["total"]),
            staged_at=as_utc(datetime.fromisoformat(data["staged_at"])),
        )


@dataclass
class Order:
    id: int
    item: str
    quantity: int
    customer_name: str
    customer_email: str
    price: Decimal
    total: Decimal
    time_slot: Optional[str]
    created_at: datetime
    status: OrderStatus = OrderStatus.PENDING

    def __post_init__(self):
        self.status = OrderStatus(self.status)
        if self.quantity <= 0:
            raise ValueError("quantity must be positive")
        if self.total != self.price * self.quantity:
            raise ValueError("total must equal price * quantity")

    @property
    def is_open(self) -> bool:
        return self.status in (OrderStatus.PENDING, OrderStatus.CONFIRMED)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item": self.item,
            "quantity": self.quantity,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "price": float(self.price),
            "total": float(self.total),
            "time_slot": self.time_slot,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
        }


# ===== stores =====
class MenuStore:
    def __init__(self, items: Iterable[MenuItem] = ()):
        self._items: Dict[str, MenuItem] = {}
        for it in items:
            self.put(it)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, name: str) -> Optional[MenuItem]:
        return self._items.get(name)

    def put(self, item: MenuItem) -> None:
        self._items[item.name] = item

    def all(self) -> List[MenuItem]:
        return list(self._items.values())

    def visible(self) -> List[MenuItem]:
        return [it for it in self._items.values() if it.visible]

    def decrement(self, name: str, quantity: int) -> MenuItem:
        item = self._items.get(name)
        if item is None or not item.has_stock(quantity):
            raise ItemUnavailable("Item no longer available", item=name)
        if not item.unlimited:
            item.stock -= quantity
        return item

    def restore(self, name: str, quantity: int) -> Optional[MenuItem]:
        item = self._items.get(name)
        if item is not None and not item.unlimited:
            item.stock += quantity
        return item


class SlotRegistry:
    """Fixed, ordered set of pickup slot labels."""

    def __init__(self, labels: Iterable[str]):
        labels = [str(s) for s in labels]
        bad = [s for s in labels if not SLOT_LABEL_RE.match(s)]
        if bad:
            raise ValueError(f"bad time slot labels: {bad}")
        if len(set(labels)) != len(labels):
            raise ValueError("duplicate time slot labels")
        self._labels = tuple(labels)

    def __contains__(self, slot) -> bool:
        return slot in self._labels

    def __iter__(self) -> Iterator[str]:
        return iter(self._labels)

    def __len__(self) -> int:
        return len(self._labels)

    def all(self) -> List[str]:
        return list(self._labels)


class BookingLedger:
    """slot -> id заказа, который его занял."""

    def __init__(self, registry: SlotRegistry):
        self.registry = registry
        self._owners: Dict[str, int] = {}

    def is_booked(self, slot: str) -> bool:
        return slot in self._owners

    def owner(self, slot: str) -> Optional[int]:
        return self._owners.get(slot)

    def book(self, slot: str, order_id: int) -> None:
        if slot not in self.registry:
            raise InvalidTimeSlot("Invalid time slot", slot=slot)
        self._owners[slot] = order_id

    def release(self, slot: str, order_id: int) -> bool:
        # чужую бронь не снимаем
        if self._owners.get(slot) != order_id:
            return False
        del self._owners[slot]
        return True

    def booked(self) -> List[str]:
        return [s for s in self.registry if s in self._owners]

    def available(self) -> List[str]:
        return [s for s in self.registry if s not in self._owners]

    def snapshot(self) -> Dict[str, Optional[int]]:
        return {s: self._owners.get(s) for s in self.registry}

    def load(self, owners: Dict[str, Optional[int]]) -> List[str]:
        """Replace bookings; returns labels dropped as unknown."""
        self._owners.clear()
        dropped = []
        for slot, order_id in owners.items():
            if order_id is None:
                continue
            if slot not in self.registry:
                dropped.append(slot)
                continue
            self._owners[slot] = order_id
        return dropped


class OrderLedger:
    def __init__(self, orders: Iterable[Order] = (), next_id: int = 1):
        self._orders: Dict[int, Order] = {}
        # счётчик только растёт: id удалённых заказов не переиспользуются
        self._next_id = max(next_id, 1)
        for o in orders:
            self.append(o)

    def __len__(self) -> int:
        return len(self._orders)

    @property
    def next_id(self) -> int:
        return self._next_id

    def allocate_id(self) -> int:
        oid = self._next_id
        self._next_id += 1
        return oid

    def append(self, order: Order) -> None:
        if order.id in self._orders:
            raise ValueError(f"duplicate order id {order.id}")
        self._orders[order.id] = order
        if order.id >= self._next_id:
            self._next_id = order.id + 1

    def get(self, order_id: int) -> Optional[Order]:
        return self._orders.get(order_id)

    def remove(self, order_id: int) -> Optional[Order]:
        return self._orders.pop(order_id, None)

    def all(self) -> List[Order]:
        return [self._orders[k] for k in sorted(self._orders)]

    def find_booked_by_email(self, email: str) -> Optional[Order]:
        email = (email or "").lower()
        for o in self.all():
            if o.customer_email.lower() == email and o.time_slot and o.is_open:
                return o
        return None

    def count_by_status(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in OrderStatus}
        for o in self._orders.values():
            counts[o.status.value] += 1
        return counts
