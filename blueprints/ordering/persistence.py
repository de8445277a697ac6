# blueprints/ordering/persistence.py
"""SQL write-through copy of the stall state, used for restart recovery."""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import LedgerCounter, MenuItemRecord, OrderRecord, SlotBooking
from .services import StallSnapshot
from .stores import (
    BookingLedger, MenuItem, MenuStore, Order, OrderLedger, as_utc, to_money,
)

log = logging.getLogger(__name__)

NEXT_ORDER_ID = "next_order_id"


def _menu_row(item: MenuItem, position: int) -> Dict[str, Any]:
    return {
        "name": item.name, "price": item.price, "stock": item.stock,
        "visible": item.visible, "custom": item.custom, "position": position,
    }


def _order_row(o: Order) -> Dict[str, Any]:
    return {
        "id": o.id, "item": o.item, "quantity": o.quantity,
        "customer_name": o.customer_name, "customer_email": o.customer_email,
        "price": o.price, "total": o.total, "time_slot": o.time_slot,
        # в БД храним naive UTC
        "created_at": as_utc(o.created_at).replace(tzinfo=None),
        "status": o.status.value,
    }


class SqlPersistence:
    def __init__(self, database=db):
        self.db = database

    def _tables_ready(self) -> bool:
        # таблиц может ещё не быть (alembic upgrade не запускали)
        insp = inspect(self.db.engine)
        return all(insp.has_table(m.__tablename__)
                   for m in (MenuItemRecord, OrderRecord, SlotBooking, LedgerCounter))

    def load(self) -> StallSnapshot:
        if not self._tables_ready():
            log.warning("stall tables missing, starting from an empty state",
                        extra={"event": "persistence_empty"})
            return StallSnapshot()

        menu = [
            MenuItem(name=r.name, price=to_money(r.price), stock=r.stock,
                     visible=bool(r.visible), custom=r.custom)
            for r in MenuItemRecord.query.order_by(MenuItemRecord.position.asc(),
                                                   MenuItemRecord.name.asc()).all()
        ]
        orders = [
            Order(id=r.id, item=r.item, quantity=r.quantity,
                  customer_name=r.customer_name, customer_email=r.customer_email,
                  price=to_money(r.price), total=to_money(r.total), time_slot=r.time_slot,
                  created_at=as_utc(r.created_at), status=r.status)
            for r in OrderRecord.query.order_by(OrderRecord.id.asc()).all()
        ]
        bookings = {b.slot: b.order_id for b in SlotBooking.query.filter_by(booked=True).all()}
        counter: Optional[LedgerCounter] = self.db.session.get(LedgerCounter, NEXT_ORDER_ID)
        return StallSnapshot(
            menu=menu, orders=orders, bookings=bookings,
            next_order_id=(counter.value if counter else 1),
        )

    def save(self, *, menu: Optional[MenuStore] = None, orders: Optional[OrderLedger] = None,
             bookings: Optional[BookingLedger] = None) -> None:
        """Overwrite the given documents in one transaction; raises on failure."""
        session = self.db.session
        try:
            if menu is not None:
                self._sync(MenuItemRecord, "name",
                           (_menu_row(it, i) for i, it in enumerate(menu.all())))
            if orders is not None:
                self._sync(OrderRecord, "id", (_order_row(o) for o in orders.all()))
                counter = session.get(LedgerCounter, NEXT_ORDER_ID)
                if counter is None:
                    session.add(LedgerCounter(name=NEXT_ORDER_ID, value=orders.next_id))
                else:
                    counter.value = orders.next_id
            if bookings is not None:
                self._sync(SlotBooking, "slot", (
                    {"slot": slot, "booked": owner is not None, "order_id": owner}
                    for slot, owner in bookings.snapshot().items()
                ))
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise

    def _sync(self, model, key: str, rows: Iterable[Dict[str, Any]]) -> None:
        session = self.db.session
        existing = {getattr(r, key): r for r in model.query.all()}
        for data in rows:
            rec = existing.pop(data[key], None)
            if rec is None:
                session.add(model(**data))
                continue
            for k, v in data.items():
                setattr(rec, k, v)
        for stale in existing.values():
            session.delete(stale)
