# blueprints/electives/slots.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import time
from typing import List, Optional

from extensions import db
from errors import NotFoundError
from models import (
    Student, SchoolClass, Subject, TimetableEntry,
    ElectiveGroup, ElectiveSubject, ElectiveStudentAssignment,
    RecordStatus, SlotSource, WEEKDAYS,
)


@dataclass(frozen=True)
class SlotWindow:
    day_of_week: int
    start: time
    end: time

    def overlaps(self, other: "SlotWindow") -> bool:
        # half-open: 09:00-09:45 and 09:45-10:30 do not collide
        return (self.day_of_week == other.day_of_week
                and self.start < other.end and other.start < self.end)

    def label(self) -> str:
        return f"{WEEKDAYS[self.day_of_week % 7]} {fmt_time(self.start)}-{fmt_time(self.end)}"


@dataclass(frozen=True)
class OccupiedSlot:
    subject_id: int
    subject_name: str
    source: str
    day_of_week: Optional[int]
    start_time: Optional[time]
    end_time: Optional[time]
    elective_subject_id: Optional[int] = None

    @property
    def window(self) -> Optional[SlotWindow]:
        if self.day_of_week is None or self.start_time is None or self.end_time is None:
            return None
        return SlotWindow(self.day_of_week, self.start_time, self.end_time)

    def to_dict(self) -> dict:
        return {
            "subject_id": self.subject_id,
            "subject": self.subject_name,
            "source": self.source,
            "elective_subject_id": self.elective_subject_id,
            "day_of_week": self.day_of_week,
            "day": (WEEKDAYS[self.day_of_week % 7] if self.day_of_week is not None else None),
            "start": (fmt_time(self.start_time) if self.start_time else None),
            "end": (fmt_time(self.end_time) if self.end_time else None),
        }


def fmt_time(t: time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def _sort_key(s: OccupiedSlot):
    # slots without a time go last
    return (
        s.day_of_week is None,
        s.day_of_week if s.day_of_week is not None else 0,
        s.start_time or time.min,
        s.source,
        s.subject_name,
    )


def class_for_year(student: Student, academic_year_id: int) -> SchoolClass:
    school_class: SchoolClass | None = student.school_class
    if school_class is None or school_class.academic_year_id != academic_year_id:
        raise NotFoundError(
            f"Student ID {student.id} has no class assigned for academic year {academic_year_id}",
            code="CLASS_NOT_ASSIGNED",
            details={"student_id": student.id, "academic_year_id": academic_year_id},
        )
    return school_class


def occupied_slots(student_id: int, academic_year_id: int) -> List[OccupiedSlot]:
    """Slots the student already holds in the academic year.

    Union of the class timetable and one slot per ACTIVE elective assignment
    in that year. Electives without their own slot still appear (no time),
    so subject-level duplicates can be detected.
    """
    student: Student | None = db.session.get(Student, student_id)
    if student is None:
        raise NotFoundError(f"Student ID {student_id} not found", code="STUDENT_NOT_FOUND",
                            details={"student_id": student_id})
    school_class = class_for_year(student, academic_year_id)

    regular = (db.session.query(TimetableEntry, Subject)
               .join(Subject, Subject.id == TimetableEntry.subject_id)
               .filter(TimetableEntry.class_id == school_class.id)
               .all())

    electives = (db.session.query(ElectiveSubject, Subject)
                 .join(ElectiveStudentAssignment, ElectiveStudentAssignment.elective_subject_id == ElectiveSubject.id)
                 .join(ElectiveGroup, ElectiveGroup.id == ElectiveSubject.elective_group_id)
                 .join(Subject, Subject.id == ElectiveSubject.subject_id)
                 .filter(ElectiveStudentAssignment.student_id == student_id,
                         ElectiveStudentAssignment.status == RecordStatus.ACTIVE.value,
                         ElectiveGroup.academic_year_id == academic_year_id)
                 .all())

    seen: set[OccupiedSlot] = set()
    for entry, subj in regular:
        seen.add(OccupiedSlot(
            subject_id=subj.id, subject_name=subj.name, source=SlotSource.REGULAR_CLASS.value,
            day_of_week=entry.day_of_week, start_time=entry.start_time, end_time=entry.end_time,
        ))
    for es, subj in electives:
        seen.add(OccupiedSlot(
            subject_id=subj.id, subject_name=subj.name, source=SlotSource.ELECTIVE.value,
            day_of_week=es.day_of_week, start_time=es.start_time, end_time=es.end_time,
            elective_subject_id=es.id,
        ))
    return sorted(seen, key=_sort_key)
