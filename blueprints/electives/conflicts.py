# blueprints/electives/conflicts.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Optional

from flask import current_app

from errors import NotFoundError
from models import db, ElectiveSubject, ElectiveStudentAssignment, Subject, RecordStatus, SlotSource
from .slots import OccupiedSlot, SlotWindow, occupied_slots

DUPLICATE_SUBJECT = "DUPLICATE_SUBJECT"
TIME_OVERLAP = "TIME_OVERLAP"
GROUP_ALREADY_CHOSEN = "GROUP_ALREADY_CHOSEN"

_SOURCE_LABELS = {
    SlotSource.REGULAR_CLASS.value: "regular class",
    SlotSource.ELECTIVE.value: "elective",
}


@dataclass
class ConflictResult:
    has_conflict: bool
    kind: Optional[str] = None
    slot: Optional[OccupiedSlot] = None
    candidate: Optional[SlotWindow] = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        out = {"has_conflict": self.has_conflict, "kind": self.kind}
        if self.slot is not None:
            out["slot"] = self.slot.to_dict()
        if self.candidate is not None:
            out["candidate"] = self.candidate.label()
        out.update(self.details)
        return out


NO_CONFLICT = ConflictResult(has_conflict=False)


def windows_overlap(a: SlotWindow, b: SlotWindow) -> bool:
    return a.overlaps(b)


def check_student_subject_conflict(student_id: int, subject_id: int, academic_year_id: int,
                                   window: Optional[SlotWindow] = None) -> ConflictResult:
    """Subject-level check: same subject anywhere, or a colliding time window.

    Raises NotFoundError when the student or their class for the year is missing.
    """
    slots = occupied_slots(student_id, academic_year_id)

    for s in slots:
        if s.subject_id == subject_id:
            return ConflictResult(True, DUPLICATE_SUBJECT, slot=s, candidate=window)

    if window is not None:
        for s in slots:
            existing = s.window
            if existing is not None and existing.overlaps(window):
                return ConflictResult(True, TIME_OVERLAP, slot=s, candidate=window)

    return NO_CONFLICT


def _other_choice_in_group(student_id: int, es: ElectiveSubject) -> Optional[tuple[ElectiveSubject, Subject]]:
    return (db.session.query(ElectiveSubject, Subject)
            .join(ElectiveStudentAssignment, ElectiveStudentAssignment.elective_subject_id == ElectiveSubject.id)
            .join(Subject, Subject.id == ElectiveSubject.subject_id)
            .filter(ElectiveStudentAssignment.student_id == student_id,
                    ElectiveStudentAssignment.status == RecordStatus.ACTIVE.value,
                    ElectiveSubject.elective_group_id == es.elective_group_id,
                    ElectiveSubject.id != es.id)
            .first())


def check_elective_conflict(student_id: int, es: ElectiveSubject,
                            one_per_group: Optional[bool] = None) -> ConflictResult:
    window = SlotWindow(es.day_of_week, es.start_time, es.end_time) if es.has_slot else None
    result = check_student_subject_conflict(
        student_id, es.subject_id, es.elective_group.academic_year_id, window
    )
    if result.has_conflict:
        return result

    if one_per_group is None:
        one_per_group = current_app.config.get("ELECTIVE_ONE_PER_GROUP", False)
    if one_per_group:
        other = _other_choice_in_group(student_id, es)
        if other:
            other_es, other_subject = other
            return ConflictResult(True, GROUP_ALREADY_CHOSEN, details={
                "elective_subject_id": other_es.id,
                "subject": other_subject.name,
            })
    return NO_CONFLICT


def conflict_message(result: ConflictResult) -> str:
    if not result.has_conflict:
        return ""
    s = result.slot
    if result.kind == DUPLICATE_SUBJECT and s is not None:
        return f"already takes {s.subject_name} ({_SOURCE_LABELS.get(s.source, s.source)})"
    if result.kind == TIME_OVERLAP and s is not None:
        return (f"time overlaps with {s.subject_name} "
                f"({_SOURCE_LABELS.get(s.source, s.source)}, {s.window.label()})")
    if result.kind == GROUP_ALREADY_CHOSEN:
        return f"already enrolled in {result.details.get('subject')} from the same elective group"
    return "schedule conflict"


def check_batch(student_ids: Iterable[int], es: ElectiveSubject) -> list[dict]:
    """Dry run over a list of students. One student's failure never stops the others."""
    out: list[dict] = []
    for sid in student_ids:
        try:
            res = check_elective_conflict(sid, es)
        except NotFoundError as e:
            out.append({"student_id": sid, "has_conflict": None,
                        "error": e.code, "message": e.message})
            continue
        row = {"student_id": sid, **res.to_dict()}
        if res.has_conflict:
            row["message"] = conflict_message(res)
        out.append(row)
    return out
