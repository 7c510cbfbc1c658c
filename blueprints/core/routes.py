from __future__ import annotations
import json, logging
from datetime import datetime

from flask import g, jsonify, request
from pydantic import ValidationError as SchemaError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.wrappers.response import Response

from flask_wtf.csrf import CSRFError, generate_csrf
from errors import ServiceError, ValidationError as InvalidInput
from extensions import csrf, db

from . import bp, api_bp

log = logging.getLogger(__name__)

_EXTRA_KEYS = (
    "event", "path", "method", "status", "duration_ms",
    "elective_subject_id", "created_count", "failed_count", "error_code",
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.utcnow().isoformat(timespec="milliseconds") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _setup_structured_logging(app):
    # root logger, so module loggers (logging.getLogger(__name__)) share the handler
    logger = logging.getLogger()
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logger.setLevel(level)
    if not app.config.get("LOG_JSON", True):
        return
    has_json = any(
        isinstance(h, logging.StreamHandler)
        and isinstance(getattr(h, "formatter", None), JSONFormatter)
        for h in logger.handlers
    )
    if not has_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)


def pydantic_errors(ve: SchemaError):
    errs = ve.errors()
    for e in errs:
        if "ctx" in e and isinstance(e["ctx"], dict):
            e["ctx"] = {k: str(v) for k, v in e["ctx"].items()}
    return errs


def query_int(name: str, *aliases: str) -> int | None:
    """Integer query argument; absent is None, malformed is a 400."""
    for key in (name, *aliases):
        raw = request.args.get(key)
        if raw in (None, ""):
            continue
        try:
            return int(raw)
        except ValueError:
            raise InvalidInput(f"{key} must be an integer", code="INVALID_FILTER",
                               details={"field": key, "value": raw}) from None
    return None


# ---------- error handlers ----------
@bp.app_errorhandler(ServiceError)
def _service_error(e: ServiceError):
    log.warning(e.message, extra={"event": "service_error", "error_code": e.code,
                                  "path": request.path, "status": e.http_status})
    return jsonify(e.to_dict()), e.http_status


@bp.app_errorhandler(SchemaError)
def _schema_error(e: SchemaError):
    return jsonify({"error": "validation_error", "detail": pydantic_errors(e)}), 422


@bp.app_errorhandler(SQLAlchemyError)
def _db_error(e: SQLAlchemyError):
    db.session.rollback()
    log.exception("database error", extra={"event": "database_error", "path": request.path})
    return jsonify({"error": "database_error"}), 500


@bp.app_errorhandler(CSRFError)
def _csrf_error(e: CSRFError):
    return jsonify({"error": "csrf_failed", "detail": e.description}), 400


# ---------- request log ----------
@bp.before_app_request
def _start_timer():
    g._req_start = datetime.utcnow()


@bp.after_app_request
def _log_request(response: Response):
    start = getattr(g, "_req_start", None)
    duration_ms = int((datetime.utcnow() - start).total_seconds() * 1000) if start else None
    extra = {
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
    }
    log.info("request handled", extra=extra)
    return response


@bp.record_once
def _on_register(state):
    _setup_structured_logging(state.app)


# ---------- endpoints ----------
@api_bp.get("/csrf")
@csrf.exempt
def get_csrf():
    token = generate_csrf()
    resp = jsonify({"csrf": token})
    resp.set_cookie("csrf_token", token, samesite="Lax")
    return resp


@bp.get("/health")
def health():
    db_ok = True
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        db.session.rollback()
        db_ok = False
    return jsonify({
        "status": "ok" if db_ok else "degraded",
        "database": "ok" if db_ok else "unavailable",
        "ts": datetime.utcnow().isoformat(timespec="seconds") + "Z",
    }), (200 if db_ok else 503)
