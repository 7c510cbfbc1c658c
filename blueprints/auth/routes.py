# blueprints/auth/routes.py
from __future__ import annotations
import logging
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, request, jsonify, abort
from flask_login import login_user, logout_user, login_required, current_user
from werkzeug.security import check_password_hash

from extensions import db, login_manager
from models import User, UserRole

api_bp = Blueprint("auth_api", __name__)
log = logging.getLogger(__name__)


@login_manager.user_loader
def load_user(uid: str) -> Optional[User]:
    try:
        return db.session.get(User, int(uid))
    except (TypeError, ValueError):
        return None


# ---------- role decorators ----------
def admin_required(fn: Callable):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if getattr(current_user, "role", None) != UserRole.ADMIN.value:
            abort(403)
        return fn(*args, **kwargs)
    return wrapper


# ---------- 401/403 ----------
@login_manager.unauthorized_handler
def _unauth():
    return jsonify({"error": "unauthorized"}), 401


@api_bp.app_errorhandler(403)
def _forbidden(e):
    return jsonify({"error": "forbidden"}), 403


# ---------- API ----------
@api_bp.post("/auth/login")
def api_login():
    payload = request.get_json(silent=True) or request.form or {}
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return jsonify({"error": "missing_credentials"}), 400

    user: Optional[User] = User.query.filter_by(email=email).first()
    if not user or not user.password_hash or not check_password_hash(user.password_hash, password):
        log.info("login failed", extra={"event": "auth_login_failed"})
        return jsonify({"error": "invalid_credentials"}), 401

    if not user.is_active:
        return jsonify({"error": "inactive"}), 403

    login_user(user, remember=True)
    return jsonify({"ok": True, "user": {"id": user.id, "email": user.email, "role": user.role}})


@api_bp.post("/auth/logout")
@login_required
def api_logout():
    logout_user()
    return jsonify({"ok": True})
