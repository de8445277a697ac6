from __future__ import annotations
import json, logging
from collections import deque
from typing import List
from datetime import datetime, timezone

from flask import current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.wrappers.response import Response

from . import bp

log = logging.getLogger(__name__)

LOG_EXTRA_KEYS = (
    "event", "path", "method", "status", "duration_ms",
    "order_id", "item", "quantity", "stock", "slot", "from", "to",
)

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": _utcnow().isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in LOG_EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)

class LogBuffer(logging.Handler):
    """Keeps the last ``capacity`` records as JSON dicts for the admin log view."""

    def __init__(self, capacity: int = 100):
        super().__init__(level=logging.INFO)
        self.records = deque(maxlen=capacity)
        self.setFormatter(JSONFormatter())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.records.append(json.loads(self.format(record)))
        except Exception:
            self.handleError(record)

    def recent(self, limit: int = 50) -> List[dict]:
        """Newest first."""
        with self.lock:
            items = list(self.records)
        items.reverse()
        return items[:max(limit, 0)]

def setup_structured_logging(app):
    # app.logger + логгеры blueprints.* пишут в один JSON-поток
    targets = [app.logger, logging.getLogger("blueprints")]
    buffer = LogBuffer(int(app.config.get("LOG_BUFFER_SIZE", 100)))
    for logger in targets:
        has_json = any(
            isinstance(h, logging.StreamHandler)
            and isinstance(getattr(h, "formatter", None), JSONFormatter)
            for h in logger.handlers
        )
        if not has_json:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)
            logger.setLevel(logging.INFO)
        # логгеры общие на процесс: буфер последнего созданного приложения
        for old in [h for h in logger.handlers if isinstance(h, LogBuffer)]:
            logger.removeHandler(old)
        logger.addHandler(buffer)
    app.extensions["log_buffer"] = buffer

def recent_logs(limit: int = 50) -> List[dict]:
    buffer = current_app.extensions.get("log_buffer")
    return buffer.recent(limit) if buffer else []

@bp.before_app_request
def _start_timer():
    g._req_start = _utcnow()

@bp.after_app_request
def _log_request(response: Response):
    try:
        duration_ms = int((_utcnow() - g._req_start).total_seconds() * 1000)
    except AttributeError:
        duration_ms = None
    extra = {
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
    }
    logging.getLogger("blueprints.http").info("request handled", extra=extra)
    return response

@bp.app_errorhandler(Exception)
def _unhandled(e: Exception):
    # HTTP-ошибки (404, 405, ...) отдаём как есть, но в JSON
    if isinstance(e, HTTPException):
        return jsonify({"error": e.name.lower().replace(" ", "_"), "detail": e.description}), e.code
    log.exception("unhandled error", extra={"event": "unhandled_error", "path": request.path})
    return jsonify({"error": "internal_error"}), 500

@bp.record_once
def _on_register(state):
    setup_structured_logging(state.app)

@bp.get("/health")
def health():
    return jsonify({
        "status": "ok",
        "ts": _utcnow().isoformat(timespec="seconds").replace("+00:00", "Z"),
    })
