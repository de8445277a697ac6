# blueprints/ordering/services.py
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Protocol

from .errors import (
    InsufficientStock, InvalidStatusTransition, InvalidTimeSlot, ItemNotFound,
    ItemUnavailable, OrderLimitExceeded, OrderNotFound, SlotAlreadyBooked,
    StaleOrderExpired,
)
from .stores import (
    TRANSITIONS, BookingLedger, MenuItem, MenuStore, Order, OrderLedger,
    OrderStatus, PendingOrder, SlotRegistry,
)

log = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===== persistence contract =====
@dataclass
class StallSnapshot:
    menu: List[MenuItem] = field(default_factory=list)
    orders: List[Order] = field(default_factory=list)
    bookings: Dict[str, Optional[int]] = field(default_factory=dict)
    next_order_id: int = 1


class Persistence(Protocol):
    def load(self) -> StallSnapshot:
        ...

    def save(self, *, menu: Optional[MenuStore] = None, orders: Optional[OrderLedger] = None,
             bookings: Optional[BookingLedger] = None) -> None:
        ...


class NullPersistence:
    """Keeps nothing; state lives only in memory."""

    def load(self) -> StallSnapshot:
        return StallSnapshot()

    def save(self, *, menu=None, orders=None, bookings=None) -> None:
        return None


@dataclass
class StallSettings:
    order_limit: int = 2
    pending_ttl: timedelta = timedelta(minutes=15)
    allow_overbooking: bool = False
    low_stock_threshold: int = 10

    @classmethod
    def from_config(cls, config) -> "StallSettings":
        ttl = config.get("PENDING_ORDER_TTL", timedelta(minutes=15))
        if not isinstance(ttl, timedelta):
            ttl = timedelta(seconds=int(ttl))
        return cls(
            order_limit=int(config.get("ORDER_LIMIT", 2)),
            pending_ttl=ttl,
            allow_overbooking=bool(config.get("ALLOW_SLOT_OVERBOOKING", False)),
            low_stock_threshold=int(config.get("LOW_STOCK_THRESHOLD", 10)),
        )


# ===== контейнер состояния =====
class Stall:
    """Owns the menu, slot, booking and order stores of one process.

    All reads and writes that must see a consistent picture go through
    ``self.lock``; ``placement`` and ``admin`` are the only mutators.
    """

    def __init__(self, *, menu: MenuStore, slots: SlotRegistry, bookings: BookingLedger,
                 orders: OrderLedger, settings: Optional[StallSettings] = None,
                 persistence: Optional[Persistence] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.menu = menu
        self.slots = slots
        self.bookings = bookings
        self.orders = orders
        self.settings = settings or StallSettings()
        self.persistence = persistence or NullPersistence()
        self.clock = clock
        self.lock = threading.RLock()
        self.placement = OrderPlacement(self)
        self.admin = OrderAdmin(self)

    def persist(self, *, menu: bool = False, orders: bool = False, bookings: bool = False) -> None:
        # запись best-effort: память остаётся источником истины
        try:
            self.persistence.save(
                menu=self.menu if menu else None,
                orders=self.orders if orders else None,
                bookings=self.bookings if bookings else None,
            )
        except Exception:
            log.exception("persistence write failed", extra={"event": "persistence_failed"})

    def slot_view(self) -> Dict[str, List[str]]:
        with self.lock:
            return {
                "allSlots": self.slots.all(),
                "availableSlots": self.bookings.available(),
                "bookedSlots": self.bookings.booked(),
            }

    def visible_menu(self) -> List[dict]:
        th = self.settings.low_stock_threshold
        with self.lock:
            return [it.to_dict(low_stock_threshold=th) for it in self.menu.visible()]

    def log_stock_levels(self) -> None:
        th = self.settings.low_stock_threshold
        for it in self.menu.all():
            extra = {"event": "stock_level", "item": it.name, "stock": it.stock}
            if it.is_low(th):
                log.warning("item %r has only %s in stock", it.name, it.stock, extra=extra)
            else:
                log.info("item %r has %s in stock", it.name,
                         "unlimited" if it.unlimited else it.stock, extra=extra)


def create_stall(config, persistence: Optional[Persistence] = None,
                 clock: Callable[[], datetime] = utcnow) -> Stall:
    """Build a Stall from app config and whatever the persistence layer holds.

    An empty persisted menu is seeded from ``DEFAULT_MENU`` and written back.
    """
    persistence = persistence or NullPersistence()
    settings = StallSettings.from_config(config)
    registry = SlotRegistry(config.get("TIME_SLOTS") or [])

    snap = persistence.load()
    seeded = not snap.menu
    items = snap.menu or [MenuItem.from_dict(d) for d in config.get("DEFAULT_MENU") or []]

    bookings = BookingLedger(registry)
    dropped = bookings.load(snap.bookings)
    if dropped:
        log.warning("dropping bookings for unknown slots: %s", dropped,
                    extra={"event": "bookings_dropped"})

    stall = Stall(
        menu=MenuStore(items),
        slots=registry,
        bookings=bookings,
        orders=OrderLedger(snap.orders, next_id=snap.next_order_id),
        settings=settings,
        persistence=persistence,
        clock=clock,
    )
    if seeded and len(stall.menu):
        stall.persist(menu=True, bookings=True)
    return stall


# ===== оформление заказа: stage -> commit =====
class OrderPlacement:
    def __init__(self, stall: Stall):
        self.stall = stall

    def stage(self, *, item: str, quantity: int, customer_name: str, customer_email: str,
              order_count: int = 0) -> PendingOrder:
        """Validate an order intent and return it as a PendingOrder.

        Nothing in the menu or the booking ledger changes here; the customer
        may walk away without leaving a trace.
        """
        if quantity < 1:
            raise ValueError("quantity must be positive")
        st = self.stall
        with st.lock:
            menu_item = st.menu.get(item)
            # скрытые позиции для покупателя не существуют
            if menu_item is None or not menu_item.visible:
                raise ItemNotFound("Invalid menu item", item=item)
            if order_count >= st.settings.order_limit:
                raise OrderLimitExceeded("Order limit reached", limit=st.settings.order_limit)
            if not menu_item.has_stock(quantity):
                raise InsufficientStock("Not enough stock", item=item,
                                        requested=quantity, available=menu_item.stock)
            pending = PendingOrder(
                item=menu_item.name,
                quantity=quantity,
                customer_name=customer_name,
                customer_email=customer_email,
                price=menu_item.price,
                total=menu_item.price * quantity,
                staged_at=st.clock(),
            )
        log.info("order staged", extra={"event": "order_staged", "item": item, "quantity": quantity})
        return pending

    def _check_fresh(self, pending: PendingOrder, now: datetime) -> None:
        if pending.is_expired(self.stall.settings.pending_ttl, now):
            raise StaleOrderExpired("Pending order expired, please order again",
                                    staged_at=pending.staged_at.isoformat())

    def selection(self, pending: PendingOrder, *, now: Optional[datetime] = None) -> Dict[str, Any]:
        st = self.stall
        with st.lock:
            now = now or st.clock()
            self._check_fresh(pending, now)
            mine = st.orders.find_booked_by_email(pending.customer_email)
            view = st.slot_view()
        return {
            "pending_order": pending.to_dict(),
            "expires_at": pending.expires_at(st.settings.pending_ttl).isoformat(),
            "user_booked_slot": mine.time_slot if mine else None,
            **view,
        }

    def commit(self, pending: PendingOrder, time_slot: str, *, now: Optional[datetime] = None) -> Order:
        """Turn a staged order into a real one for ``time_slot``.

        Runs under the stall lock: re-checks stock (it may have been sold
        since staging), books the slot, decrements stock and appends the
        order. Price and total come from the live menu item, not from the
        staged copy.
        """
        st = self.stall
        with st.lock:
            now = now or st.clock()
            self._check_fresh(pending, now)
            if time_slot not in st.slots:
                raise InvalidTimeSlot("Invalid time slot", slot=time_slot)

            menu_item = st.menu.get(pending.item)
            if menu_item is None or not menu_item.has_stock(pending.quantity):
                raise ItemUnavailable("Item no longer available", item=pending.item)

            if st.bookings.is_booked(time_slot):
                if not st.settings.allow_overbooking:
                    raise SlotAlreadyBooked("Time slot already booked", slot=time_slot)
                log.warning("slot %s booked twice", time_slot,
                            extra={"event": "slot_overbooked", "slot": time_slot})

            price: Decimal = menu_item.price
            order = Order(
                id=st.orders.allocate_id(),
                item=menu_item.name,
                quantity=pending.quantity,
                customer_name=pending.customer_name,
                customer_email=pending.customer_email,
                price=price,
                total=price * pending.quantity,
                time_slot=time_slot,
                created_at=now,
                status=OrderStatus.PENDING,
            )
            st.menu.decrement(menu_item.name, order.quantity)
            st.bookings.book(time_slot, order.id)
            st.orders.append(order)
            st.persist(menu=True, orders=True, bookings=True)

        log.info("order committed", extra={
            "event": "order_committed", "order_id": order.id,
            "item": order.item, "quantity": order.quantity, "slot": time_slot,
        })
        return order


# ===== жизненный цикл и админка =====
class OrderAdmin:
    def __init__(self, stall: Stall):
        self.stall = stall

    def list_orders(self) -> List[Order]:
        with self.stall.lock:
            return self.stall.orders.all()

    def get_order(self, order_id: int) -> Order:
        with self.stall.lock:
            order = self.stall.orders.get(order_id)
        if order is None:
            raise OrderNotFound("Order not found", order_id=order_id)
        return order

    def _transition(self, order: Order, status: OrderStatus) -> bool:
        # повторная установка того же статуса ничего не меняет
        if order.status == status:
            return False
        if status not in TRANSITIONS[order.status]:
            raise InvalidStatusTransition(
                f"Cannot move order from {order.status.value} to {status.value}",
                order_id=order.id, current=order.status.value, requested=status.value,
            )
        st = self.stall
        previous = order.status
        order.status = status
        released = False
        if status is OrderStatus.CANCELLED and order.time_slot:
            released = st.bookings.release(order.time_slot, order.id)
        st.persist(orders=True, bookings=released)
        log.info("order status changed", extra={
            "event": "order_cancelled" if status is OrderStatus.CANCELLED else "status_changed",
            "order_id": order.id, "from": previous.value, "to": status.value,
        })
        return True

    def update_status(self, order_id: int, status) -> Optional[Order]:
        """Set a new status. Unknown ids are ignored and yield None."""
        status = OrderStatus(status)
        with self.stall.lock:
            order = self.stall.orders.get(order_id)
            if order is None:
                log.info("status update for unknown order ignored",
                         extra={"event": "status_ignored", "order_id": order_id})
                return None
            self._transition(order, status)
            return order

    def confirm(self, order_id: int) -> Order:
        with self.stall.lock:
            order = self.get_order(order_id)
            self._transition(order, OrderStatus.CONFIRMED)
            return order

    def cancel(self, order_id: int) -> Optional[Order]:
        return self.update_status(order_id, OrderStatus.CANCELLED)

    def delete(self, order_id: int) -> Order:
        """Remove an order for good: frees its slot and gives the stock back."""
        st = self.stall
        with st.lock:
            order = st.orders.remove(order_id)
            if order is None:
                raise OrderNotFound("Order not found", order_id=order_id)
            if order.time_slot:
                st.bookings.release(order.time_slot, order.id)
            st.menu.restore(order.item, order.quantity)
            st.persist(menu=True, orders=True, bookings=True)
        log.info("order deleted", extra={
            "event": "order_deleted", "order_id": order.id,
            "item": order.item, "quantity": order.quantity,
        })
        return order

    def stats(self) -> Dict[str, Any]:
        with self.stall.lock:
            orders = self.stall.orders.all()
            counts = self.stall.orders.count_by_status()
        revenue = sum((o.total for o in orders if o.status is not OrderStatus.CANCELLED), Decimal("0"))
        return {
            "total_orders": len(orders),
            "pending_orders": counts["pending"],
            "confirmed_orders": counts["confirmed"],
            "completed_orders": counts["completed"],
            "cancelled_orders": counts["cancelled"],
            "total_revenue": float(revenue),
        }

    def debug_snapshot(self, logs: Optional[List[dict]] = None) -> Dict[str, Any]:
        """State dump for the admin debug view; ``logs`` is passed through newest first."""
        st = self.stall
        th = st.settings.low_stock_threshold
        with st.lock:
            view = st.slot_view()
            menu = [{"name": it.name, "stock": it.stock, "visible": it.visible,
                     "low_stock": it.is_low(th)} for it in st.menu.all()]
            next_id = st.orders.next_id
        return {
            "ts": st.clock().isoformat(),
            "orders": self.stats(),
            "time_slots": {
                **view,
                "totalBooked": len(view["bookedSlots"]),
                "totalAvailable": len(view["availableSlots"]),
            },
            "menu": menu,
            "next_order_id": next_id,
            "logs": list(logs or []),
            "config": {
                "order_limit": st.settings.order_limit,
                "pending_ttl_seconds": int(st.settings.pending_ttl.total_seconds()),
                "allow_overbooking": st.settings.allow_overbooking,
                "low_stock_threshold": th,
            },
        }
