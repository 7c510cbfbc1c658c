# blueprints/electives/catalogue.py
"""Elective groups and the subjects offered in them."""
from __future__ import annotations
import logging
from datetime import time
from typing import Any, Optional, Sequence

from sqlalchemy import func

from errors import ValidationError, NotFoundError, ConflictError
from models import (
    db, Branch, AcademicYear, Subject, ElectiveGroup, ElectiveSubject,
    ElectiveStudentAssignment, RecordStatus, ElectiveStatus,
)
from .services import active_count, derive_status, get_elective_subject
from .slots import fmt_time

log = logging.getLogger(__name__)

_SLOT_FIELDS = ("day_of_week", "start_time", "end_time")


def group_out(g: ElectiveGroup, subjects_count: int | None = None) -> dict:
    return {
        "id": g.id,
        "name": g.name,
        "description": g.description,
        "branch_id": g.branch_id,
        "academic_year_id": g.academic_year_id,
        "status": g.status,
        "subjects_count": subjects_count if subjects_count is not None else len(g.subjects),
        "created_at": g.created_at.isoformat() if g.created_at else None,
    }


def elective_subject_out(es: ElectiveSubject, enrolled: int | None = None) -> dict:
    return {
        "id": es.id,
        "elective_group_id": es.elective_group_id,
        "subject_id": es.subject_id,
        "subject": es.subject.name if es.subject else None,
        "description": es.description,
        "max_students": es.max_students,
        "status": es.status,
        "enrolled": enrolled if enrolled is not None else active_count(es.id),
        "slot": {
            "day_of_week": es.day_of_week,
            "start": fmt_time(es.start_time),
            "end": fmt_time(es.end_time),
        } if es.has_slot else None,
    }


def get_group(group_id: int) -> ElectiveGroup:
    g = db.session.get(ElectiveGroup, group_id)
    if g is None:
        raise NotFoundError("Elective group not found", code="ELECTIVE_GROUP_NOT_FOUND",
                            details={"elective_group_id": group_id})
    return g


def _ensure_unique_name(name: str, branch_id: int, academic_year_id: int, exclude_id: int | None = None):
    q = ElectiveGroup.query.filter_by(name=name, branch_id=branch_id, academic_year_id=academic_year_id)
    if exclude_id is not None:
        q = q.filter(ElectiveGroup.id != exclude_id)
    if q.first():
        raise ConflictError(
            "An elective group with this name already exists for this branch and academic year",
            code="DUPLICATE_GROUP",
        )


# ---------- groups ----------

def list_groups(branch_id: Optional[int] = None, academic_year_id: Optional[int] = None) -> list[dict]:
    counts = (db.session.query(ElectiveSubject.elective_group_id, func.count(ElectiveSubject.id))
              .group_by(ElectiveSubject.elective_group_id).all())
    by_group = dict(counts)
    q = ElectiveGroup.query
    if branch_id is not None:
        q = q.filter(ElectiveGroup.branch_id == branch_id)
    if academic_year_id is not None:
        q = q.filter(ElectiveGroup.academic_year_id == academic_year_id)
    return [group_out(g, by_group.get(g.id, 0)) for g in q.order_by(ElectiveGroup.name).all()]


def create_group(name: str, branch_id: int, academic_year_id: int, description: str | None = None) -> dict:
    if db.session.get(Branch, branch_id) is None:
        raise NotFoundError("Branch not found", code="BRANCH_NOT_FOUND")
    if db.session.get(AcademicYear, academic_year_id) is None:
        raise NotFoundError("Academic year not found", code="ACADEMIC_YEAR_NOT_FOUND")
    _ensure_unique_name(name, branch_id, academic_year_id)

    g = ElectiveGroup(name=name, description=description, branch_id=branch_id,
                      academic_year_id=academic_year_id, status=RecordStatus.ACTIVE.value)
    db.session.add(g)
    db.session.commit()
    log.info("elective group created", extra={"event": "elective_group_create"})
    return group_out(g, 0)


def update_group(group_id: int, changes: dict[str, Any]) -> dict:
    g = get_group(group_id)
    name = changes.get("name") or g.name
    if name != g.name:
        _ensure_unique_name(name, g.branch_id, g.academic_year_id, exclude_id=g.id)
    g.name = name
    if "description" in changes:
        g.description = changes["description"]
    if changes.get("status"):
        g.status = changes["status"]
    db.session.commit()
    return group_out(g)


def delete_group(group_id: int) -> dict:
    g = get_group(group_id)
    if g.subjects:
        raise ValidationError(
            "Cannot delete elective group with assigned subjects. Please remove all subjects first.",
            code="GROUP_NOT_EMPTY", details={"subjects": len(g.subjects)},
        )
    db.session.delete(g)
    db.session.commit()
    return {"success": True}


# ---------- elective subjects ----------

def list_group_subjects(group_id: int) -> list[dict]:
    get_group(group_id)
    counts = dict(
        db.session.query(ElectiveStudentAssignment.elective_subject_id, func.count(ElectiveStudentAssignment.id))
        .join(ElectiveSubject, ElectiveSubject.id == ElectiveStudentAssignment.elective_subject_id)
        .filter(ElectiveSubject.elective_group_id == group_id,
                ElectiveStudentAssignment.status == RecordStatus.ACTIVE.value)
        .group_by(ElectiveStudentAssignment.elective_subject_id)
        .all()
    )
    rows = (ElectiveSubject.query.filter_by(elective_group_id=group_id)
            .join(Subject, Subject.id == ElectiveSubject.subject_id)
            .order_by(Subject.name).all())
    return [elective_subject_out(es, counts.get(es.id, 0)) for es in rows]


def add_subjects_to_group(group_id: int, subject_ids: Sequence[int], *,
                          max_students: Optional[int] = None,
                          description: Optional[str] = None,
                          day_of_week: Optional[int] = None,
                          start_time: Optional[time] = None,
                          end_time: Optional[time] = None) -> dict:
    if not subject_ids:
        raise ValidationError("At least one subject ID is required", code="EMPTY_SUBJECT_LIST")
    g = get_group(group_id)

    created: list[dict] = []
    errors: list[dict] = []
    for sid in subject_ids:
        subj = db.session.get(Subject, sid)
        if subj is None:
            errors.append({"subject_id": sid, "code": "SUBJECT_NOT_FOUND",
                           "message": f"Subject ID {sid} not found"})
            continue
        if ElectiveSubject.query.filter_by(elective_group_id=g.id, subject_id=sid).first():
            errors.append({"subject_id": sid, "code": "SUBJECT_ALREADY_IN_GROUP",
                           "message": f"Subject ID {sid} is already assigned to this elective group"})
            continue
        es = ElectiveSubject(
            elective_group_id=g.id, subject_id=sid, description=description,
            max_students=max_students, status=ElectiveStatus.ACTIVE.value, enrolled_count=0,
            day_of_week=day_of_week, start_time=start_time, end_time=end_time,
        )
        db.session.add(es)
        db.session.commit()
        created.append(elective_subject_out(es, 0))

    return {"created": created, "errors": errors}


def update_elective_subject(elective_subject_id: int, changes: dict[str, Any]) -> dict:
    es = get_elective_subject(elective_subject_id)
    count = active_count(es.id)

    if "max_students" in changes:
        new_max = changes["max_students"]
        if new_max is not None and new_max < count:
            raise ValidationError(
                f"Capacity {new_max} is below the {count} student(s) already assigned",
                code="CAPACITY_BELOW_ENROLLED", details={"max_students": new_max, "enrolled": count},
            )
        es.max_students = new_max
    if "description" in changes:
        es.description = changes["description"]
    if any(f in changes for f in _SLOT_FIELDS):
        for f in _SLOT_FIELDS:
            setattr(es, f, changes.get(f))

    es.enrolled_count = count
    es.status = derive_status(es.max_students, count)
    db.session.commit()
    return elective_subject_out(es, count)


def delete_elective_subject(elective_subject_id: int) -> dict:
    es = get_elective_subject(elective_subject_id)
    n = ElectiveStudentAssignment.query.filter_by(elective_subject_id=es.id).count()
    if n:
        raise ValidationError(
            f"Cannot remove subject with {n} student assignment(s). Please remove students first.",
            code="SUBJECT_HAS_STUDENTS", details={"assignments": n},
        )
    db.session.delete(es)
    db.session.commit()
    return {"success": True}
