# blueprints/assignments/services.py
from __future__ import annotations
import logging
from typing import Any, Mapping, Optional

from sqlalchemy.exc import IntegrityError

from errors import NotFoundError, UniquenessError
from models import (
    db, Teacher, SchoolClass, Subject, AcademicYear, Branch,
    TeacherAssignment, ArchiveComment, RecordStatus,
)
from .guard import Candidate, validate_teacher_assignment

log = logging.getLogger(__name__)

DELETE_ASSIGNMENT = "DELETE_ASSIGNMENT"


def assignment_out(a: TeacherAssignment) -> dict:
    return {
        "id": a.id,
        "teacher_id": a.teacher_id,
        "teacher": a.teacher.full_name if a.teacher else None,
        "class_id": a.class_id,
        "class_name": a.school_class.name if a.school_class else None,
        "subject_id": a.subject_id,
        "subject": a.subject.name if a.subject else None,
        "academic_year_id": a.academic_year_id,
        "branch_id": a.branch_id,
        "role": a.role,
        "status": a.status,
        "assigned_at": a.assigned_at.isoformat() if a.assigned_at else None,
    }


def get_assignment(assignment_id: int) -> TeacherAssignment:
    a = db.session.get(TeacherAssignment, assignment_id)
    if a is None:
        raise NotFoundError("Teacher assignment not found", code="ASSIGNMENT_NOT_FOUND",
                            details={"assignment_id": assignment_id})
    return a


def _ensure_refs(c: Candidate) -> None:
    refs = [
        (Teacher, c.teacher_id, "Teacher"),
        (SchoolClass, c.class_id, "Class"),
        (AcademicYear, c.academic_year_id, "Academic year"),
        (Branch, c.branch_id, "Branch"),
    ]
    if c.subject_id is not None:
        refs.append((Subject, c.subject_id, "Subject"))
    for model, pk, label in refs:
        if db.session.get(model, pk) is None:
            raise NotFoundError(f"{label} not found",
                                code=f"{label.upper().replace(' ', '_')}_NOT_FOUND",
                                details={"id": pk})


def _commit_unique():
    try:
        db.session.commit()
    except IntegrityError:
        # concurrent writer got past the guard; the unique index caught it
        db.session.rollback()
        raise UniquenessError("This teacher assignment already exists")


def list_assignments(academic_year_id: Optional[int] = None, class_id: Optional[int] = None,
                     teacher_id: Optional[int] = None) -> list[dict]:
    q = TeacherAssignment.query
    if academic_year_id is not None:
        q = q.filter(TeacherAssignment.academic_year_id == academic_year_id)
    if class_id is not None:
        q = q.filter(TeacherAssignment.class_id == class_id)
    if teacher_id is not None:
        q = q.filter(TeacherAssignment.teacher_id == teacher_id)
    rows = q.order_by(TeacherAssignment.assigned_at.desc(), TeacherAssignment.id.desc()).all()
    return [assignment_out(a) for a in rows]


def create_assignment(data: Mapping[str, Any]) -> dict:
    cand = validate_teacher_assignment(data).raise_if_rejected()
    _ensure_refs(cand)

    a = TeacherAssignment(
        teacher_id=cand.teacher_id,
        class_id=cand.class_id,
        subject_id=cand.subject_id,
        academic_year_id=cand.academic_year_id,
        branch_id=cand.branch_id,
        role=cand.role,
        status=RecordStatus.ACTIVE.value,
    )
    db.session.add(a)
    _commit_unique()
    log.info("teacher assignment created", extra={"event": "teacher_assignment_create"})
    return assignment_out(a)


def update_assignment(assignment_id: int, data: Mapping[str, Any]) -> dict:
    a = get_assignment(assignment_id)
    cand = validate_teacher_assignment(data, exclude_id=a.id).raise_if_rejected()
    _ensure_refs(cand)

    a.teacher_id = cand.teacher_id
    a.class_id = cand.class_id
    a.subject_id = cand.subject_id
    a.academic_year_id = cand.academic_year_id
    a.branch_id = cand.branch_id
    a.role = cand.role
    _commit_unique()
    return assignment_out(a)


def delete_assignment(assignment_id: int, comment: Optional[str] = None,
                      actor_id: Optional[int] = None) -> dict:
    """Hard delete; a non-empty comment is archived in the same transaction."""
    a = get_assignment(assignment_id)
    comment = (comment or "").strip()
    if comment:
        db.session.add(ArchiveComment(
            teacher_id=a.teacher_id,
            comment=comment,
            action=DELETE_ASSIGNMENT,
            created_by=actor_id,
        ))
    db.session.delete(a)
    db.session.commit()
    log.info("teacher assignment deleted", extra={"event": "teacher_assignment_delete"})
    return {"success": True}
