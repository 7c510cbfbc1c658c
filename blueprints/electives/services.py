# blueprints/electives/services.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field, asdict
from typing import Optional, Sequence

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import ServiceError, ValidationError, NotFoundError, CapacityError, ConflictError
from models import (
    db, Student, SchoolClass, ElectiveSubject, ElectiveStudentAssignment,
    ElectiveStatus, RecordStatus,
)
from .conflicts import check_elective_conflict, conflict_message

log = logging.getLogger(__name__)

ALREADY_ASSIGNED = "ALREADY_ASSIGNED"
ELECTIVE_FULL = "ELECTIVE_FULL"

# codes that make an all-failed batch a 409 instead of a 201
CONFLICT_CODES = {ALREADY_ASSIGNED, "DUPLICATE_SUBJECT", "TIME_OVERLAP", "GROUP_ALREADY_CHOSEN"}


@dataclass
class StudentError:
    student_id: int
    code: str
    message: str
    details: dict = field(default_factory=dict)


@dataclass
class AddResult:
    created: list[dict]
    errors: list[StudentError]

    @property
    def only_conflicts(self) -> bool:
        return (not self.created and bool(self.errors)
                and all(e.code in CONFLICT_CODES for e in self.errors))

    def to_dict(self) -> dict:
        return {"created": self.created, "errors": [asdict(e) for e in self.errors]}


# ---------- helpers ----------

def derive_status(max_students: Optional[int], count: int) -> str:
    if max_students is not None and count >= max_students:
        return ElectiveStatus.FULL.value
    return ElectiveStatus.ACTIVE.value


def _status_expr(count_expr):
    return case(
        (and_(ElectiveSubject.max_students.is_not(None), count_expr >= ElectiveSubject.max_students),
         ElectiveStatus.FULL.value),
        else_=ElectiveStatus.ACTIVE.value,
    )


def _active_count_query(elective_subject_id: int):
    return (select(func.count(ElectiveStudentAssignment.id))
            .where(ElectiveStudentAssignment.elective_subject_id == elective_subject_id,
                   ElectiveStudentAssignment.status == RecordStatus.ACTIVE.value))


def active_count(elective_subject_id: int) -> int:
    return db.session.execute(_active_count_query(elective_subject_id)).scalar_one()


def get_elective_subject(elective_subject_id: int) -> ElectiveSubject:
    es = db.session.get(ElectiveSubject, elective_subject_id)
    if es is None:
        raise NotFoundError("Elective subject not found", code="ELECTIVE_SUBJECT_NOT_FOUND",
                            details={"elective_subject_id": elective_subject_id})
    return es


def assignment_out(a: ElectiveStudentAssignment, student: Student | None = None,
                   school_class: SchoolClass | None = None) -> dict:
    student = student or a.student
    if school_class is None and student is not None:
        school_class = student.school_class
    return {
        "id": a.id,
        "elective_subject_id": a.elective_subject_id,
        "student_id": a.student_id,
        "status": a.status,
        "assigned_at": a.assigned_at.isoformat() if a.assigned_at else None,
        "assigned_by": a.assigned_by,
        "student": {
            "id": student.id,
            "student_code": student.student_code,
            "first_name": student.first_name,
            "last_name": student.last_name,
            "status": student.status,
            "class_name": school_class.name if school_class else None,
        } if student else None,
    }


# ---------- seat ledger ----------

def _claim_seat(elective_subject_id: int) -> bool:
    """Compare-and-set on the ledger: +1 only while under max_students."""
    res = db.session.execute(
        update(ElectiveSubject)
        .where(ElectiveSubject.id == elective_subject_id,
               or_(ElectiveSubject.max_students.is_(None),
                   ElectiveSubject.enrolled_count < ElectiveSubject.max_students))
        .values(enrolled_count=ElectiveSubject.enrolled_count + 1)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


def _release_seat(elective_subject_id: int) -> None:
    db.session.execute(
        update(ElectiveSubject)
        .where(ElectiveSubject.id == elective_subject_id, ElectiveSubject.enrolled_count > 0)
        .values(enrolled_count=ElectiveSubject.enrolled_count - 1)
        .execution_options(synchronize_session=False)
    )


def _refresh_status(elective_subject_id: int) -> None:
    """Status follows the ACTIVE assignment count, never the ledger."""
    fresh = _active_count_query(elective_subject_id).scalar_subquery()
    db.session.execute(
        update(ElectiveSubject)
        .where(ElectiveSubject.id == elective_subject_id)
        .values(status=_status_expr(fresh))
        .execution_options(synchronize_session=False)
    )
    db.session.commit()


def _bookkeeping(fn, elective_subject_id: int) -> None:
    # a failed status update never undoes the enrollment; reconcile_status heals it
    try:
        fn(elective_subject_id)
    except SQLAlchemyError:
        db.session.rollback()
        log.warning("elective status recompute failed", exc_info=True,
                    extra={"event": "elective_status_drift", "elective_subject_id": elective_subject_id})


# ---------- operations ----------

def list_assignments(elective_subject_id: int) -> list[dict]:
    get_elective_subject(elective_subject_id)
    rows = (db.session.query(ElectiveStudentAssignment, Student, SchoolClass)
            .join(Student, Student.id == ElectiveStudentAssignment.student_id)
            .outerjoin(SchoolClass, SchoolClass.id == Student.class_id)
            .filter(ElectiveStudentAssignment.elective_subject_id == elective_subject_id)
            .order_by(ElectiveStudentAssignment.assigned_at.desc(), ElectiveStudentAssignment.id.desc())
            .all())
    return [assignment_out(a, st, cls) for a, st, cls in rows]


def _enroll_one(es: ElectiveSubject, student_id: int, actor_id: int) -> ElectiveStudentAssignment:
    student: Student | None = db.session.get(Student, student_id)
    if student is None:
        raise NotFoundError(f"Student ID {student_id} not found", code="STUDENT_NOT_FOUND")
    if student.status != RecordStatus.ACTIVE.value:
        raise ValidationError(f"Student ID {student_id} is not active", code="STUDENT_INACTIVE")

    exists = ElectiveStudentAssignment.query.filter_by(
        elective_subject_id=es.id, student_id=student_id
    ).first()
    if exists:
        raise ConflictError(f"Student ID {student_id} is already assigned to this elective",
                            code=ALREADY_ASSIGNED)

    result = check_elective_conflict(student_id, es)
    if result.has_conflict:
        raise ConflictError(f"Student ID {student_id}: {conflict_message(result)}",
                            code=result.kind, details=result.to_dict())

    if not _claim_seat(es.id):
        raise CapacityError(f"Student ID {student_id}: elective subject is full",
                            code=ELECTIVE_FULL, details={"max_students": es.max_students})

    a = ElectiveStudentAssignment(
        elective_subject_id=es.id,
        student_id=student_id,
        status=RecordStatus.ACTIVE.value,
        assigned_by=actor_id,
    )
    db.session.add(a)
    db.session.flush()
    return a


def add_students(elective_subject_id: int, student_ids: Sequence[int], actor_id: Optional[int]) -> AddResult:
    """Enroll students one by one against the elective's capacity.

    The capacity pre-check rejects the whole batch up front. After that each
    student is its own unit of work: seat claim and insert commit together or
    roll back together, and failures are collected instead of raised.
    """
    if not student_ids:
        raise ValidationError("At least one student ID is required", code="EMPTY_STUDENT_LIST")
    if actor_id is None:
        raise ValidationError("Acting user is required", code="MISSING_ACTOR")

    es = get_elective_subject(elective_subject_id)
    max_students = es.max_students
    current = active_count(es.id)
    requested = len(student_ids)
    if max_students is not None and current + requested > max_students:
        overflow = current + requested - max_students
        raise CapacityError(
            f"Cannot assign {requested} student(s). Maximum capacity is {max_students}, "
            f"currently {current} assigned.",
            details={"overflow": overflow, "max_students": max_students,
                     "current": current, "requested": requested},
        )

    created: list[dict] = []
    errors: list[StudentError] = []
    for sid in student_ids:
        try:
            a = _enroll_one(es, sid, actor_id)
            db.session.commit()
        except ServiceError as e:
            db.session.rollback()
            errors.append(StudentError(sid, e.code, e.message, e.details))
            continue
        except IntegrityError:
            # concurrent insert of the same pair
            db.session.rollback()
            errors.append(StudentError(sid, ALREADY_ASSIGNED,
                                       f"Student ID {sid} is already assigned to this elective"))
            continue
        created.append(assignment_out(a))

    _bookkeeping(_refresh_status, es.id)
    log.info("elective students added", extra={
        "event": "elective_add", "elective_subject_id": es.id,
        "created_count": len(created), "failed_count": len(errors),
    })
    return AddResult(created=created, errors=errors)


def remove_student(elective_subject_id: int, student_id: Optional[int]) -> dict:
    if student_id is None:
        raise ValidationError("Student ID is required", code="MISSING_STUDENT_ID")

    deleted = (ElectiveStudentAssignment.query
               .filter_by(elective_subject_id=elective_subject_id, student_id=student_id)
               .delete(synchronize_session=False))
    if not deleted:
        db.session.rollback()
        raise NotFoundError("Student assignment not found", code="ASSIGNMENT_NOT_FOUND",
                            details={"elective_subject_id": elective_subject_id, "student_id": student_id})
    # seat goes back in the same transaction as the delete
    _release_seat(elective_subject_id)
    db.session.commit()

    _bookkeeping(_refresh_status, elective_subject_id)
    log.info("elective student removed", extra={
        "event": "elective_remove", "elective_subject_id": elective_subject_id,
    })
    return {"success": True}


def reconcile_status(elective_subject_id: Optional[int] = None) -> list[dict]:
    """Recompute ledger and status from fresh counts; returns the rows that drifted."""
    q = ElectiveSubject.query.order_by(ElectiveSubject.id)
    if elective_subject_id is not None:
        get_elective_subject(elective_subject_id)
        q = q.filter(ElectiveSubject.id == elective_subject_id)

    drifted: list[dict] = []
    for es in q.all():
        count = active_count(es.id)
        status = derive_status(es.max_students, count)
        if es.enrolled_count != count or es.status != status:
            drifted.append({
                "elective_subject_id": es.id,
                "enrolled_count": {"was": es.enrolled_count, "now": count},
                "status": {"was": es.status, "now": status},
            })
            es.enrolled_count = count
            es.status = status
    db.session.commit()

    if drifted:
        log.warning("elective status drift repaired", extra={
            "event": "elective_reconcile", "failed_count": len(drifted),
        })
    return drifted
