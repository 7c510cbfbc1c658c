# blueprints/assignments/routes.py
from __future__ import annotations
from typing import Optional

from flask import Blueprint, jsonify, request
from flask_login import current_user
from pydantic import BaseModel, Field, ValidationError

from blueprints.auth.routes import admin_required
from blueprints.core.routes import pydantic_errors, query_int
from . import services as svc
from .guard import validate_teacher_assignment

api_bp = Blueprint("assignments_api", __name__)


class DeleteIn(BaseModel):
    comment: Optional[str] = Field(default=None, max_length=2000)


@api_bp.get("/teacher-assignments")
@admin_required
def list_assignments():
    items = svc.list_assignments(
        academic_year_id=query_int("academic_year_id"),
        class_id=query_int("class_id"),
        teacher_id=query_int("teacher_id"),
    )
    return jsonify({"ok": True, "data": items})


@api_bp.post("/teacher-assignments/validate")
@admin_required
def validate():
    result = validate_teacher_assignment(request.get_json(silent=True) or {})
    return jsonify(result.to_dict()), result.http_status


@api_bp.post("/teacher-assignments")
@admin_required
def create():
    out = svc.create_assignment(request.get_json(silent=True) or {})
    return jsonify({"ok": True, "data": out, "message": "Teacher assignment created successfully"}), 201


@api_bp.put("/teacher-assignments/<int:assignment_id>")
@admin_required
def update(assignment_id: int):
    out = svc.update_assignment(assignment_id, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "data": out, "message": "Teacher assignment updated successfully"})


@api_bp.delete("/teacher-assignments/<int:assignment_id>")
@admin_required
def delete(assignment_id: int):
    try:
        data = DeleteIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as ve:
        return jsonify({"error": "validation_error", "detail": pydantic_errors(ve)}), 422
    return jsonify(svc.delete_assignment(assignment_id, data.comment, actor_id=current_user.id))
