from datetime import datetime, time
from enum import Enum as PyEnum

from flask_login import UserMixin
from sqlalchemy import (
    CheckConstraint, ForeignKey, UniqueConstraint, Index, Boolean, DateTime, Time,
    Integer, String, Text, text
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from extensions import db

# ---------- Enums ----------
# stored as plain strings so the schema does not depend on native DB enums
class UserRole(str, PyEnum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"

class RecordStatus(str, PyEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"

class ElectiveStatus(str, PyEnum):
    ACTIVE = "ACTIVE"
    FULL = "FULL"

class AssignmentRole(str, PyEnum):
    TEACHER = "TEACHER"
    SUPERVISOR = "SUPERVISOR"

class SlotSource(str, PyEnum):
    REGULAR_CLASS = "REGULAR_CLASS"
    ELECTIVE = "ELECTIVE"

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


# ---------- Accounts ----------
class User(UserMixin, db.Model):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=UserRole.ADMIN.value, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.email}>"


# ---------- School structure ----------
class Branch(db.Model):
    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(primary_key=True)
    short_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    legal_name: Mapped[str | None] = mapped_column(String(255))


class AcademicYear(db.Model):
    __tablename__ = "academic_years"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    is_current: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<AcademicYear {self.name}>"


class Subject(db.Model):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RecordStatus.ACTIVE.value)

    def __repr__(self):
        return f"<Subject {self.name}>"


class Teacher(db.Model):
    __tablename__ = "teachers"

    id: Mapped[int] = mapped_column(primary_key=True)
    teacher_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RecordStatus.ACTIVE.value)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Teacher {self.teacher_code}>"


class SchoolClass(db.Model):
    __tablename__ = "classes"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False, index=True)
    academic_year_id: Mapped[int] = mapped_column(ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False, index=True)

    branch = relationship("Branch")
    academic_year = relationship("AcademicYear")
    timetable = relationship("TimetableEntry", back_populates="school_class", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("name", "branch_id", "academic_year_id", name="uq_class_name_branch_year"),
    )

    def __repr__(self):
        return f"<SchoolClass {self.name}>"


class Student(db.Model):
    __tablename__ = "students"

    id: Mapped[int] = mapped_column(primary_key=True)
    student_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    class_id: Mapped[int | None] = mapped_column(ForeignKey("classes.id", ondelete="SET NULL"), index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RecordStatus.ACTIVE.value)

    school_class = relationship("SchoolClass")

    def __repr__(self):
        return f"<Student {self.student_code}>"


class TimetableEntry(db.Model):
    """One weekly lesson of a class. Supplied from outside, read-only here."""
    __tablename__ = "timetable_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Mon .. 6=Sun
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    school_class = relationship("SchoolClass", back_populates="timetable")
    subject = relationship("Subject")

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_timetable_day"),
        CheckConstraint("end_time > start_time", name="ck_timetable_range"),
        Index("ix_timetable_class_day", "class_id", "day_of_week"),
    )


# ---------- Electives ----------
class ElectiveGroup(db.Model):
    __tablename__ = "elective_groups"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False)
    academic_year_id: Mapped[int] = mapped_column(ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RecordStatus.ACTIVE.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    branch = relationship("Branch")
    academic_year = relationship("AcademicYear")
    subjects = relationship("ElectiveSubject", back_populates="elective_group")

    __table_args__ = (
        UniqueConstraint("name", "branch_id", "academic_year_id", name="uq_elective_group_name_branch_year"),
    )

    def __repr__(self):
        return f"<ElectiveGroup {self.name}>"


class ElectiveSubject(db.Model):
    __tablename__ = "elective_subjects"

    id: Mapped[int] = mapped_column(primary_key=True)
    elective_group_id: Mapped[int] = mapped_column(ForeignKey("elective_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    max_students: Mapped[int | None] = mapped_column(Integer)  # None = unbounded
    # derived from enrolled_count vs max_students, rewritten on every enroll/remove
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ElectiveStatus.ACTIVE.value)
    # seat ledger: ACTIVE assignments, maintained with conditional UPDATEs
    enrolled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # the elective's own weekly slot; all three set or all three empty
    day_of_week: Mapped[int | None] = mapped_column(Integer)
    start_time: Mapped[time | None] = mapped_column(Time)
    end_time: Mapped[time | None] = mapped_column(Time)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    elective_group = relationship("ElectiveGroup", back_populates="subjects")
    subject = relationship("Subject")
    student_assignments = relationship("ElectiveStudentAssignment", back_populates="elective_subject")

    __table_args__ = (
        UniqueConstraint("elective_group_id", "subject_id", name="uq_elective_subject_group_subject"),
        CheckConstraint("max_students IS NULL OR max_students >= 1", name="ck_elective_subject_max"),
        CheckConstraint("enrolled_count >= 0", name="ck_elective_subject_enrolled"),
    )

    @property
    def has_slot(self) -> bool:
        return self.day_of_week is not None and self.start_time is not None and self.end_time is not None

    def __repr__(self):
        return f"<ElectiveSubject {self.id} group={self.elective_group_id} subject={self.subject_id}>"


class ElectiveStudentAssignment(db.Model):
    __tablename__ = "elective_student_assignments"

    id: Mapped[int] = mapped_column(primary_key=True)
    elective_subject_id: Mapped[int] = mapped_column(ForeignKey("elective_subjects.id", ondelete="CASCADE"), nullable=False)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RecordStatus.ACTIVE.value)
    assigned_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    assigned_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))

    elective_subject = relationship("ElectiveSubject", back_populates="student_assignments")
    student = relationship("Student")

    __table_args__ = (
        UniqueConstraint("elective_subject_id", "student_id", name="uq_elective_assignment_subject_student"),
        {"sqlite_autoincrement": True},
    )


# ---------- Teacher assignments ----------
class TeacherAssignment(db.Model):
    __tablename__ = "teacher_assignments"

    id: Mapped[int] = mapped_column(primary_key=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    subject_id: Mapped[int | None] = mapped_column(ForeignKey("subjects.id", ondelete="CASCADE"))
    academic_year_id: Mapped[int] = mapped_column(ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=AssignmentRole.TEACHER.value)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RecordStatus.ACTIVE.value)
    assigned_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    teacher = relationship("Teacher")
    school_class = relationship("SchoolClass")
    subject = relationship("Subject")

    __table_args__ = (
        UniqueConstraint("teacher_id", "class_id", "academic_year_id", "subject_id", name="uq_teacher_assignment_tuple"),
        # NULL never equals NULL in a unique constraint; cover subject-less rows separately
        Index(
            "uq_teacher_assignment_no_subject", "teacher_id", "class_id", "academic_year_id",
            unique=True,
            sqlite_where=text("subject_id IS NULL"),
            postgresql_where=text("subject_id IS NULL"),
        ),
        Index("ix_teacher_assignment_year_role", "academic_year_id", "role"),
    )


class ArchiveComment(db.Model):
    __tablename__ = "archive_comments"

    id: Mapped[int] = mapped_column(primary_key=True)
    teacher_id: Mapped[int | None] = mapped_column(ForeignKey("teachers.id", ondelete="SET NULL"), index=True)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
