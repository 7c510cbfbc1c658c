# blueprints/assignments/guard.py
"""Uniqueness rules checked before a teacher assignment is written.

Checks run in a fixed order and stop at the first failure:
required fields, duplicate (teacher, class, year, subject) tuple, then the
supervisor rules (one class per supervisor per year, one supervisor per class
per year).
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum as PyEnum
from typing import Any, ClassVar, Mapping, Optional, Union

from errors import ValidationError, UniquenessError
from models import TeacherAssignment, AssignmentRole, RecordStatus


class RejectReason(str, PyEnum):
    MISSING_FIELD = "MISSING_FIELD"
    MISSING_SUBJECT = "MISSING_SUBJECT"
    DUPLICATE_ASSIGNMENT = "DUPLICATE_ASSIGNMENT"
    ALREADY_SUPERVISING = "ALREADY_SUPERVISING"
    CLASS_HAS_SUPERVISOR = "CLASS_HAS_SUPERVISOR"


_FIELD_REASONS = {RejectReason.MISSING_FIELD, RejectReason.MISSING_SUBJECT}

REQUIRED_FIELDS = ("teacher_id", "class_id", "academic_year_id", "branch_id")


@dataclass(frozen=True)
class SubjectTeacher:
    teacher_id: int
    class_id: int
    academic_year_id: int
    branch_id: int
    subject_id: int
    role: ClassVar[str] = AssignmentRole.TEACHER.value


@dataclass(frozen=True)
class Supervisor:
    teacher_id: int
    class_id: int
    academic_year_id: int
    branch_id: int
    subject_id: Optional[int] = None
    role: ClassVar[str] = AssignmentRole.SUPERVISOR.value


Candidate = Union[SubjectTeacher, Supervisor]


@dataclass
class GuardResult:
    accepted: bool
    candidate: Optional[Candidate] = None
    reason: Optional[RejectReason] = None
    message: str = ""
    details: dict = field(default_factory=dict)

    def raise_if_rejected(self) -> Candidate:
        if self.accepted:
            return self.candidate
        exc = ValidationError if self.reason in _FIELD_REASONS else UniquenessError
        raise exc(self.message, code=self.reason.value, details=self.details)

    def to_dict(self) -> dict:
        if self.accepted:
            return {"ok": True, "accepted": True, "role": self.candidate.role}
        return {"ok": False, "accepted": False, "error": self.reason.value,
                "message": self.message, "details": self.details}

    @property
    def http_status(self) -> int:
        if self.accepted:
            return 200
        return 400 if self.reason in _FIELD_REASONS else 409


def _reject(reason: RejectReason, message: str, **details) -> GuardResult:
    return GuardResult(False, reason=reason, message=message, details=details)


def _as_id(value: Any) -> Optional[int]:
    """Positive integer ids; numeric strings from form posts are accepted."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            return None
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def build_candidate(data: Mapping[str, Any]) -> Union[Candidate, GuardResult]:
    ids = {}
    for name in REQUIRED_FIELDS:
        ids[name] = _as_id(data.get(name))
        if ids[name] is None:
            return _reject(RejectReason.MISSING_FIELD,
                           "Teacher, branch, class and academic year are required", field=name)

    role = str(data.get("role") or "").strip().upper()
    if role not in (AssignmentRole.TEACHER.value, AssignmentRole.SUPERVISOR.value):
        return _reject(RejectReason.MISSING_FIELD,
                       "Please select either Supervisor or Subject Teacher role", field="role")

    raw_subject = data.get("subject_id")
    subject_id = _as_id(raw_subject)
    if raw_subject not in (None, "") and subject_id is None:
        return _reject(RejectReason.MISSING_FIELD, "Subject ID is malformed", field="subject_id")

    if role == AssignmentRole.TEACHER.value:
        if subject_id is None:
            return _reject(RejectReason.MISSING_SUBJECT, "Subject is required for subject teachers",
                           field="subject_id")
        return SubjectTeacher(subject_id=subject_id, **ids)
    return Supervisor(subject_id=subject_id, **ids)


def _scoped(q, exclude_id: Optional[int]):
    if exclude_id is not None:
        q = q.filter(TeacherAssignment.id != exclude_id)
    return q


def validate_teacher_assignment(data: Mapping[str, Any], exclude_id: Optional[int] = None) -> GuardResult:
    cand = build_candidate(data)
    if isinstance(cand, GuardResult):
        return cand

    # NULL-aware: a subject-less row only collides with another subject-less row
    q = TeacherAssignment.query.filter(
        TeacherAssignment.teacher_id == cand.teacher_id,
        TeacherAssignment.class_id == cand.class_id,
        TeacherAssignment.academic_year_id == cand.academic_year_id,
    )
    if cand.subject_id is None:
        q = q.filter(TeacherAssignment.subject_id.is_(None))
    else:
        q = q.filter(TeacherAssignment.subject_id == cand.subject_id)
    dup = _scoped(q, exclude_id).first()
    if dup:
        return _reject(RejectReason.DUPLICATE_ASSIGNMENT, "This teacher assignment already exists",
                       assignment_id=dup.id)

    if isinstance(cand, Supervisor):
        supervising = _scoped(TeacherAssignment.query.filter(
            TeacherAssignment.teacher_id == cand.teacher_id,
            TeacherAssignment.academic_year_id == cand.academic_year_id,
            TeacherAssignment.role == AssignmentRole.SUPERVISOR.value,
            TeacherAssignment.status == RecordStatus.ACTIVE.value,
        ), exclude_id).first()
        if supervising:
            return _reject(
                RejectReason.ALREADY_SUPERVISING,
                "This teacher already supervises a class in the selected academic year. "
                "One teacher can only supervise one class per academic year.",
                assignment_id=supervising.id, class_id=supervising.class_id,
            )

        taken = _scoped(TeacherAssignment.query.filter(
            TeacherAssignment.class_id == cand.class_id,
            TeacherAssignment.academic_year_id == cand.academic_year_id,
            TeacherAssignment.role == AssignmentRole.SUPERVISOR.value,
            TeacherAssignment.status == RecordStatus.ACTIVE.value,
        ), exclude_id).first()
        if taken:
            return _reject(
                RejectReason.CLASS_HAS_SUPERVISOR,
                "This class already has a supervisor assigned. "
                "Only one supervisor is allowed per class per academic year.",
                assignment_id=taken.id, teacher_id=taken.teacher_id,
            )

    return GuardResult(True, candidate=cand)
