# blueprints/ordering/errors.py
from __future__ import annotations


class OrderingError(Exception):
    """Базовая ошибка заказа: код для клиента + HTTP-статус."""
    code = "ordering_error"
    http_status = 400

    def __init__(self, detail: str | None = None, **context):
        super().__init__(detail or self.code)
        self.detail = detail or self.code
        self.context = context

    def to_dict(self) -> dict:
        body = {"error": self.code, "detail": self.detail}
        if self.context:
            body["context"] = self.context
        return body


class ItemNotFound(OrderingError):
    code = "item_not_found"


class OrderLimitExceeded(OrderingError):
    code = "order_limit_exceeded"


class InsufficientStock(OrderingError):
    code = "insufficient_stock"


class InvalidTimeSlot(OrderingError):
    code = "invalid_time_slot"


class NoPendingOrder(OrderingError):
    code = "no_pending_order"


class ItemUnavailable(OrderingError):
    code = "item_unavailable"


class StaleOrderExpired(OrderingError):
    code = "stale_order_expired"


class OrderNotFound(OrderingError):
    code = "order_not_found"
    http_status = 404


class SlotAlreadyBooked(OrderingError):
    code = "slot_already_booked"
    http_status = 409


class InvalidStatusTransition(OrderingError):
    code = "invalid_status_transition"
    http_status = 409
