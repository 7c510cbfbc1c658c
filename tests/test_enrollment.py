from __future__ import annotations
from datetime import datetime, time

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from errors import CapacityError, NotFoundError, ValidationError
from extensions import db
from models import ElectiveSubject, ElectiveStudentAssignment, SchoolClass, Student, TimetableEntry
from blueprints.electives import services as svc


def _es(school, key) -> ElectiveSubject:
    es = db.session.get(ElectiveSubject, school[f"es_{key}"])
    db.session.refresh(es)
    return es


def _count(es_id) -> int:
    return ElectiveStudentAssignment.query.filter_by(elective_subject_id=es_id, status="ACTIVE").count()


def test_capacity_example_scenario(school):
    art = school["es_art"]
    a, b, c = school["student_s1"], school["student_s2"], school["student_s3"]

    with pytest.raises(CapacityError) as ei:
        svc.add_students(art, [a, b, c], actor_id=school["admin"])
    assert ei.value.details["overflow"] == 1
    assert "Maximum capacity is 2" in ei.value.message
    assert _count(art) == 0

    res = svc.add_students(art, [a, b], actor_id=school["admin"])
    assert len(res.created) == 2 and res.errors == []
    es = _es(school, "art")
    assert es.status == "FULL"
    assert es.enrolled_count == 2

    assert svc.remove_student(art, a) == {"success": True}
    es = _es(school, "art")
    assert _count(art) == 1
    assert es.enrolled_count == 1
    assert es.status == "ACTIVE"


def test_partial_success_reports_the_conflicting_student(school):
    # S3 moves to a class that already has Biology as a regular lesson
    c9c = SchoolClass(name="9C", branch_id=school["branch"], academic_year_id=school["year"])
    db.session.add(c9c); db.session.commit()
    db.session.add(TimetableEntry(class_id=c9c.id, subject_id=school["subj_biology"], day_of_week=3,
                                  start_time=time(8, 0), end_time=time(8, 45)))
    db.session.get(Student, school["student_s3"]).class_id = c9c.id
    db.session.commit()

    ids = [school["student_s1"], school["student_s2"], school["student_s3"]]
    res = svc.add_students(school["es_bio"], ids, actor_id=school["admin"])

    assert [row["student_id"] for row in res.created] == ids[:2]
    assert len(res.errors) == 1
    err = res.errors[0]
    assert err.student_id == school["student_s3"]
    assert err.code == "DUPLICATE_SUBJECT"
    assert f"Student ID {school['student_s3']}" in err.message
    assert not res.only_conflicts


def test_per_student_failures_do_not_abort_batch(school):
    ids = [school["student_s1"], 99999, school["student_inactive"], school["student_s1"]]
    res = svc.add_students(school["es_bio"], ids, actor_id=school["admin"])

    assert len(res.created) == 1
    assert [e.code for e in res.errors] == ["STUDENT_NOT_FOUND", "STUDENT_INACTIVE", "ALREADY_ASSIGNED"]
    assert res.errors[0].message == "Student ID 99999 not found"
    assert _es(school, "bio").enrolled_count == 1


def test_all_conflicts_flag(school):
    ids = [school["student_s1"], school["student_s2"]]
    res = svc.add_students(school["es_chem_club"], ids, actor_id=school["admin"])
    assert res.created == []
    assert {e.code for e in res.errors} == {"TIME_OVERLAP"}
    assert res.only_conflicts
    assert _es(school, "chem_club").enrolled_count == 0


def test_unbounded_elective_never_full(school):
    ids = [school["student_s1"], school["student_s2"], school["student_s3"], school["student_s4"]]
    res = svc.add_students(school["es_bio"], ids, actor_id=school["admin"])
    assert len(res.created) == 4
    assert _es(school, "bio").status == "ACTIVE"


def test_assigned_by_and_listing_newest_first(school):
    svc.add_students(school["es_bio"], [school["student_s1"]], actor_id=school["admin"])
    svc.add_students(school["es_bio"], [school["student_s2"]], actor_id=school["admin"])

    rows = svc.list_assignments(school["es_bio"])
    assert [r["student_id"] for r in rows] == [school["student_s2"], school["student_s1"]]
    assert rows[0]["assigned_by"] == school["admin"]
    assert rows[0]["student"]["class_name"] == "9A"
    assert rows[0]["status"] == "ACTIVE"


def test_input_validation(school):
    with pytest.raises(ValidationError) as ei:
        svc.add_students(school["es_bio"], [], actor_id=school["admin"])
    assert ei.value.code == "EMPTY_STUDENT_LIST"

    with pytest.raises(ValidationError) as ei:
        svc.add_students(school["es_bio"], [school["student_s1"]], actor_id=None)
    assert ei.value.code == "MISSING_ACTOR"

    with pytest.raises(NotFoundError):
        svc.add_students(424242, [school["student_s1"]], actor_id=school["admin"])

    with pytest.raises(NotFoundError):
        svc.list_assignments(424242)


def test_remove_twice_is_not_found_and_readd_is_fresh(school):
    art, s1 = school["es_art"], school["student_s1"]
    first = svc.add_students(art, [s1], actor_id=school["admin"]).created[0]
    db.session.execute(update(ElectiveStudentAssignment)
                       .where(ElectiveStudentAssignment.id == first["id"])
                       .values(assigned_at=datetime(2020, 1, 1)))
    db.session.commit()

    svc.remove_student(art, s1)
    with pytest.raises(NotFoundError) as ei:
        svc.remove_student(art, s1)
    assert ei.value.code == "ASSIGNMENT_NOT_FOUND"

    again = svc.add_students(art, [s1], actor_id=school["admin"]).created[0]
    assert again["id"] != first["id"]
    assert again["assigned_at"] > datetime(2020, 1, 1).isoformat()
    assert _count(art) == 1
    assert _es(school, "art").enrolled_count == 1


def test_remove_requires_student_id(school):
    with pytest.raises(ValidationError):
        svc.remove_student(school["es_art"], None)


def test_stale_precheck_cannot_overfill(school, monkeypatch):
    art = school["es_art"]
    svc.add_students(art, [school["student_s1"], school["student_s2"]], actor_id=school["admin"])

    # another batch computed its count before the first one landed
    monkeypatch.setattr(svc, "active_count", lambda _id: 0)
    res = svc.add_students(art, [school["student_s3"], school["student_s4"]], actor_id=school["admin"])

    assert res.created == []
    assert [e.code for e in res.errors] == ["ELECTIVE_FULL", "ELECTIVE_FULL"]
    assert _count(art) == 2
    es = _es(school, "art")
    assert es.enrolled_count == 2
    assert es.status == "FULL"


def test_status_failure_keeps_enrollment_and_reconcile_heals(school, monkeypatch):
    def broken(_id):
        raise OperationalError("UPDATE elective_subjects", {}, Exception("locked"))

    monkeypatch.setattr(svc, "_refresh_status", broken)
    art = school["es_art"]
    res = svc.add_students(art, [school["student_s1"], school["student_s2"]], actor_id=school["admin"])
    assert len(res.created) == 2
    assert _es(school, "art").status == "ACTIVE"  # drifted

    monkeypatch.undo()
    drifted = svc.reconcile_status()
    assert [d["elective_subject_id"] for d in drifted] == [art]
    assert drifted[0]["status"] == {"was": "ACTIVE", "now": "FULL"}
    assert _es(school, "art").status == "FULL"
    assert svc.reconcile_status() == []


def test_failed_status_step_on_remove_keeps_seat_free(school, monkeypatch):
    art = school["es_art"]
    svc.add_students(art, [school["student_s1"], school["student_s2"]], actor_id=school["admin"])

    def broken(_id):
        raise OperationalError("UPDATE elective_subjects", {}, Exception("locked"))

    monkeypatch.setattr(svc, "_refresh_status", broken)
    svc.remove_student(art, school["student_s1"])
    es = _es(school, "art")
    assert es.enrolled_count == 1
    assert es.status == "FULL"  # drifted, seat is still released

    monkeypatch.undo()
    res = svc.add_students(art, [school["student_s3"]], actor_id=school["admin"])
    assert [r["student_id"] for r in res.created] == [school["student_s3"]]
    assert res.errors == []
    es = _es(school, "art")
    assert (es.enrolled_count, es.status) == (2, "FULL")
    assert _count(art) == 2


def test_status_follows_active_count_not_ledger(school):
    art = school["es_art"]
    svc.add_students(art, [school["student_s1"]], actor_id=school["admin"])
    db.session.execute(update(ElectiveSubject).where(ElectiveSubject.id == art).values(enrolled_count=0))
    db.session.commit()

    svc.add_students(art, [school["student_s2"]], actor_id=school["admin"])
    es = _es(school, "art")
    assert es.enrolled_count == 1
    assert es.status == "FULL"


def test_reconcile_single_subject_fixes_ledger(school):
    es = _es(school, "bio")
    es.enrolled_count = 5
    es.status = "FULL"
    db.session.commit()

    drifted = svc.reconcile_status(school["es_bio"])
    assert drifted[0]["enrolled_count"] == {"was": 5, "now": 0}
    es = _es(school, "bio")
    assert (es.enrolled_count, es.status) == (0, "ACTIVE")

    with pytest.raises(NotFoundError):
        svc.reconcile_status(424242)


def test_derive_status():
    assert svc.derive_status(None, 1000) == "ACTIVE"
    assert svc.derive_status(2, 1) == "ACTIVE"
    assert svc.derive_status(2, 2) == "FULL"
    assert svc.derive_status(2, 3) == "FULL"


def test_reconcile_cli(school, app_ctx):
    es = _es(school, "bio")
    es.status = "FULL"
    db.session.commit()

    runner = app_ctx.test_cli_runner()
    result = runner.invoke(args=["electives", "reconcile", "--id", str(school["es_bio"])])
    assert result.exit_code == 0, result.output
    assert "status FULL -> ACTIVE" in result.output

    result = runner.invoke(args=["electives", "reconcile"])
    assert "No drift found." in result.output
