from __future__ import annotations
from datetime import time

import pytest

from errors import NotFoundError
from extensions import db
from models import ElectiveStudentAssignment, SlotSource
from blueprints.electives.slots import SlotWindow, occupied_slots


def _enroll(es_id, student_id, status="ACTIVE"):
    db.session.add(ElectiveStudentAssignment(elective_subject_id=es_id, student_id=student_id, status=status))
    db.session.commit()


def test_regular_class_slots_in_day_order(school):
    slots = occupied_slots(school["student_s1"], school["year"])
    assert [(s.subject_name, s.source, s.day_of_week) for s in slots] == [
        ("Physics", SlotSource.REGULAR_CLASS.value, 0),
        ("Math", SlotSource.REGULAR_CLASS.value, 1),
    ]
    assert slots[0].window == SlotWindow(0, time(9, 0), time(9, 45))


def test_active_electives_are_included_untimed_last(school):
    _enroll(school["es_art"], school["student_s1"])
    _enroll(school["es_bio"], school["student_s1"])
    slots = occupied_slots(school["student_s1"], school["year"])

    assert [s.subject_name for s in slots] == ["Physics", "Math", "Art", "Biology"]
    art, bio = slots[2], slots[3]
    assert art.source == SlotSource.ELECTIVE.value
    assert art.elective_subject_id == school["es_art"]
    assert art.day_of_week == 2
    # elective without its own slot still counts, but has no window
    assert bio.window is None
    assert bio.to_dict()["start"] is None


def test_inactive_elective_assignment_is_ignored(school):
    _enroll(school["es_art"], school["student_s1"], status="INACTIVE")
    names = [s.subject_name for s in occupied_slots(school["student_s1"], school["year"])]
    assert "Art" not in names


def test_other_students_electives_do_not_leak(school):
    _enroll(school["es_art"], school["student_s2"])
    names = [s.subject_name for s in occupied_slots(school["student_s1"], school["year"])]
    assert names == ["Physics", "Math"]


def test_student_without_class_is_not_found(school):
    with pytest.raises(NotFoundError) as ei:
        occupied_slots(school["student_noclass"], school["year"])
    assert ei.value.code == "CLASS_NOT_ASSIGNED"


def test_class_from_another_year_is_not_found(school):
    with pytest.raises(NotFoundError):
        occupied_slots(school["student_old"], school["year"])


def test_unknown_student(school):
    with pytest.raises(NotFoundError) as ei:
        occupied_slots(99999, school["year"])
    assert ei.value.code == "STUDENT_NOT_FOUND"


def test_half_open_windows():
    a = SlotWindow(0, time(9, 0), time(9, 45))
    assert not a.overlaps(SlotWindow(0, time(9, 45), time(10, 30)))
    assert a.overlaps(SlotWindow(0, time(9, 15), time(10, 0)))
    assert not a.overlaps(SlotWindow(1, time(9, 15), time(10, 0)))
    assert a.label() == "Mon 09:00-09:45"
