from __future__ import annotations
from datetime import time

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from extensions import db
from models import (
    User, Branch, AcademicYear, Subject, Teacher, SchoolClass, Student, TimetableEntry,
    ElectiveGroup, ElectiveSubject,
)


@pytest.fixture()
def app_ctx():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def school(app_ctx):
    """Class 9A (Physics Mon 09:00-09:45, Math Tue 10:00-10:45) and one elective group."""
    year = AcademicYear(name="2025/2026", is_current=True)
    old_year = AcademicYear(name="2024/2025")
    branch = Branch(short_name="Main")
    db.session.add_all([year, old_year, branch]); db.session.commit()

    names = ["Physics", "Chemistry", "Art", "Biology", "Math", "Music"]
    subj = {n: Subject(name=n) for n in names}
    db.session.add_all(subj.values()); db.session.commit()

    c9a = SchoolClass(name="9A", branch_id=branch.id, academic_year_id=year.id)
    c8b = SchoolClass(name="8B", branch_id=branch.id, academic_year_id=old_year.id)
    db.session.add_all([c9a, c8b]); db.session.commit()

    db.session.add_all([
        TimetableEntry(class_id=c9a.id, subject_id=subj["Physics"].id, day_of_week=0,
                       start_time=time(9, 0), end_time=time(9, 45)),
        TimetableEntry(class_id=c9a.id, subject_id=subj["Math"].id, day_of_week=1,
                       start_time=time(10, 0), end_time=time(10, 45)),
    ])

    students = {}
    for code in ("S1", "S2", "S3", "S4"):
        students[code] = Student(student_code=code, first_name=code, last_name="Pupil", class_id=c9a.id)
    students["INACTIVE"] = Student(student_code="S5", first_name="Gone", last_name="Pupil",
                                   class_id=c9a.id, status="INACTIVE")
    students["NOCLASS"] = Student(student_code="S6", first_name="New", last_name="Pupil")
    students["OLD"] = Student(student_code="S7", first_name="Old", last_name="Pupil", class_id=c8b.id)
    db.session.add_all(students.values())

    admin = User(email="admin@example.com", password_hash=generate_password_hash("pass"), role="ADMIN")
    staff = User(email="teacher@example.com", password_hash=generate_password_hash("pass"), role="TEACHER")
    t1 = Teacher(teacher_code="T1", first_name="Ada", last_name="Lovelace")
    t2 = Teacher(teacher_code="T2", first_name="Alan", last_name="Turing")
    db.session.add_all([admin, staff, t1, t2])

    group = ElectiveGroup(name="Sciences", branch_id=branch.id, academic_year_id=year.id)
    db.session.add(group); db.session.commit()

    electives = {
        # same underlying subject as the regular Physics lesson
        "astronomy": ElectiveSubject(elective_group_id=group.id, subject_id=subj["Physics"].id),
        "chem_club": ElectiveSubject(elective_group_id=group.id, subject_id=subj["Chemistry"].id,
                                     day_of_week=0, start_time=time(9, 15), end_time=time(10, 0)),
        "art": ElectiveSubject(elective_group_id=group.id, subject_id=subj["Art"].id, max_students=2,
                               day_of_week=2, start_time=time(12, 0), end_time=time(12, 45)),
        "bio": ElectiveSubject(elective_group_id=group.id, subject_id=subj["Biology"].id),
        "music": ElectiveSubject(elective_group_id=group.id, subject_id=subj["Music"].id, max_students=3,
                                 day_of_week=0, start_time=time(9, 45), end_time=time(10, 30)),
    }
    db.session.add_all(electives.values()); db.session.commit()

    ids = {
        "year": year.id, "old_year": old_year.id, "branch": branch.id,
        "class_9a": c9a.id, "class_8b": c8b.id, "group": group.id,
        "admin": admin.id, "staff": staff.id, "t1": t1.id, "t2": t2.id,
    }
    ids.update({f"subj_{n.lower()}": s.id for n, s in subj.items()})
    ids.update({f"student_{k.lower()}": s.id for k, s in students.items()})
    ids.update({f"es_{k}": es.id for k, es in electives.items()})
    return ids


@pytest.fixture()
def client(app_ctx):
    return app_ctx.test_client()


@pytest.fixture()
def admin_client(client, school):
    r = client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "pass"})
    assert r.status_code == 200
    return client
