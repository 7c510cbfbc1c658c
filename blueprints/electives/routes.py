# blueprints/electives/routes.py
from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user
from pydantic import ValidationError

from blueprints.auth.routes import admin_required
from blueprints.core.routes import pydantic_errors, query_int
from . import catalogue, services as svc
from .conflicts import check_batch
from .schemas import (
    StudentIdsIn, ElectiveGroupIn, ElectiveGroupUpdate, ElectiveSubjectsIn, ElectiveSubjectUpdate,
)
from .slots import occupied_slots

api_bp = Blueprint("electives_api", __name__)


def _validation_error(ve: ValidationError):
    return jsonify({"error": "validation_error", "detail": pydantic_errors(ve)}), 422


# ---------- elective groups ----------

@api_bp.get("/elective-groups")
@admin_required
def list_groups():
    items = catalogue.list_groups(
        branch_id=query_int("branch_id", "branchId"),
        academic_year_id=query_int("academic_year_id", "academicYearId"),
    )
    return jsonify({"ok": True, "data": items})


@api_bp.post("/elective-groups")
@admin_required
def create_group():
    try:
        data = ElectiveGroupIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as ve:
        return _validation_error(ve)
    out = catalogue.create_group(data.name, data.branch_id, data.academic_year_id, data.description)
    return jsonify({"ok": True, "data": out, "message": "Elective group created successfully"}), 201


@api_bp.get("/elective-groups/<int:group_id>")
@admin_required
def get_group(group_id: int):
    g = catalogue.get_group(group_id)
    out = catalogue.group_out(g)
    out["subjects"] = catalogue.list_group_subjects(group_id)
    return jsonify({"ok": True, "data": out})


@api_bp.put("/elective-groups/<int:group_id>")
@admin_required
def update_group(group_id: int):
    try:
        data = ElectiveGroupUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as ve:
        return _validation_error(ve)
    out = catalogue.update_group(group_id, data.model_dump(exclude_unset=True))
    return jsonify({"ok": True, "data": out, "message": "Elective group updated successfully"})


@api_bp.delete("/elective-groups/<int:group_id>")
@admin_required
def delete_group(group_id: int):
    return jsonify(catalogue.delete_group(group_id))


@api_bp.get("/elective-groups/<int:group_id>/subjects")
@admin_required
def list_group_subjects(group_id: int):
    return jsonify({"ok": True, "data": catalogue.list_group_subjects(group_id)})


@api_bp.post("/elective-groups/<int:group_id>/subjects")
@admin_required
def add_group_subjects(group_id: int):
    try:
        data = ElectiveSubjectsIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as ve:
        return _validation_error(ve)
    out = catalogue.add_subjects_to_group(
        group_id, data.subject_ids,
        max_students=data.max_students, description=data.description,
        day_of_week=data.day_of_week, start_time=data.start_time, end_time=data.end_time,
    )
    n_ok, n_err = len(out["created"]), len(out["errors"])
    msg = f"{n_ok} subject(s) assigned successfully" + (f" with {n_err} error(s)" if n_err else "")
    return jsonify({"ok": True, "data": out, "message": msg}), 201


# ---------- elective subjects ----------

@api_bp.patch("/electives/subjects/<int:elective_subject_id>")
@admin_required
def update_elective_subject(elective_subject_id: int):
    try:
        data = ElectiveSubjectUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as ve:
        return _validation_error(ve)
    out = catalogue.update_elective_subject(elective_subject_id, data.model_dump(exclude_unset=True))
    return jsonify({"ok": True, "data": out})


@api_bp.delete("/electives/subjects/<int:elective_subject_id>")
@admin_required
def delete_elective_subject(elective_subject_id: int):
    return jsonify(catalogue.delete_elective_subject(elective_subject_id))


@api_bp.get("/electives/subjects/<int:elective_subject_id>/students")
@admin_required
def list_students(elective_subject_id: int):
    return jsonify({"ok": True, "data": svc.list_assignments(elective_subject_id)})


@api_bp.post("/electives/subjects/<int:elective_subject_id>/students")
@admin_required
def add_students(elective_subject_id: int):
    try:
        data = StudentIdsIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as ve:
        return _validation_error(ve)

    result = svc.add_students(elective_subject_id, data.student_ids, actor_id=current_user.id)
    body = result.to_dict()
    if result.only_conflicts:
        return jsonify({
            "ok": False,
            "error": "CONFLICT",
            "message": "Student assignment conflicts detected",
            "details": body,
        }), 409

    n_ok, n_err = len(result.created), len(result.errors)
    msg = f"{n_ok} student(s) assigned successfully" + (f" with {n_err} error(s)" if n_err else "")
    return jsonify({"ok": True, "data": body, "message": msg}), 201


@api_bp.delete("/electives/subjects/<int:elective_subject_id>/students")
@admin_required
def remove_student(elective_subject_id: int):
    raw = request.args.get("studentId") or request.args.get("student_id")
    student_id = None
    if raw:
        try:
            student_id = int(raw)
        except ValueError:
            return jsonify({"ok": False, "error": "MISSING_STUDENT_ID",
                            "message": "Student ID must be an integer", "details": {}}), 400
    return jsonify(svc.remove_student(elective_subject_id, student_id))


@api_bp.post("/electives/subjects/<int:elective_subject_id>/conflicts")
@admin_required
def check_conflicts(elective_subject_id: int):
    try:
        data = StudentIdsIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as ve:
        return _validation_error(ve)
    es = svc.get_elective_subject(elective_subject_id)
    return jsonify({"ok": True, "data": check_batch(data.student_ids, es)})


@api_bp.post("/electives/reconcile")
@admin_required
def reconcile():
    payload = request.get_json(silent=True) or {}
    es_id = payload.get("elective_subject_id")
    if es_id is not None and (isinstance(es_id, bool) or not isinstance(es_id, int)):
        return jsonify({"ok": False, "error": "MISSING_FIELD",
                        "message": "elective_subject_id must be an integer",
                        "details": {"field": "elective_subject_id"}}), 400
    drifted = svc.reconcile_status(es_id)
    return jsonify({"ok": True, "data": {"repaired": drifted}})


# ---------- slot index ----------

@api_bp.get("/students/<int:student_id>/slots")
@admin_required
def student_slots(student_id: int):
    year_id = query_int("academic_year_id", "academicYearId")
    if year_id is None:
        return jsonify({"ok": False, "error": "MISSING_FIELD",
                        "message": "academic_year_id is required",
                        "details": {"field": "academic_year_id"}}), 400
    slots = occupied_slots(student_id, year_id)
    return jsonify({"ok": True, "data": [s.to_dict() for s in slots]})
