"""initial tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table('branches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('short_name', sa.String(100), nullable=False, unique=True),
        sa.Column('legal_name', sa.String(255), nullable=True),
    )

    op.create_table('academic_years',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
        sa.Column('is_current', sa.Boolean(), nullable=False, server_default=sa.text('0')),
    )

    op.create_table('subjects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='ACTIVE'),
    )

    op.create_table('teachers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('teacher_code', sa.String(50), nullable=False, unique=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='ACTIVE'),
    )

    op.create_table('classes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('academic_year_id', sa.Integer(), sa.ForeignKey('academic_years.id', ondelete='RESTRICT'), nullable=False),
        sa.UniqueConstraint('name', 'branch_id', 'academic_year_id', name='uq_class_name_branch_year'),
    )
    op.create_index('ix_classes_branch_id', 'classes', ['branch_id'])
    op.create_index('ix_classes_academic_year_id', 'classes', ['academic_year_id'])

    op.create_table('students',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_code', sa.String(50), nullable=False, unique=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='ACTIVE'),
    )
    op.create_index('ix_students_class_id', 'students', ['class_id'])

    op.create_table('timetable_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject_id', sa.Integer(), sa.ForeignKey('subjects.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='ck_timetable_day'),
        sa.CheckConstraint('end_time > start_time', name='ck_timetable_range'),
    )
    op.create_index('ix_timetable_class_day', 'timetable_entries', ['class_id', 'day_of_week'])

    op.create_table('elective_groups',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('academic_year_id', sa.Integer(), sa.ForeignKey('academic_years.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='ACTIVE'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('name', 'branch_id', 'academic_year_id', name='uq_elective_group_name_branch_year'),
    )

    op.create_table('elective_subjects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('elective_group_id', sa.Integer(), sa.ForeignKey('elective_groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject_id', sa.Integer(), sa.ForeignKey('subjects.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('max_students', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='ACTIVE'),
        sa.Column('enrolled_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('day_of_week', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('elective_group_id', 'subject_id', name='uq_elective_subject_group_subject'),
        sa.CheckConstraint('max_students IS NULL OR max_students >= 1', name='ck_elective_subject_max'),
        sa.CheckConstraint('enrolled_count >= 0', name='ck_elective_subject_enrolled'),
    )
    op.create_index('ix_elective_subjects_elective_group_id', 'elective_subjects', ['elective_group_id'])

    op.create_table('elective_student_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('elective_subject_id', sa.Integer(), sa.ForeignKey('elective_subjects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='ACTIVE'),
        sa.Column('assigned_at', sa.DateTime(), nullable=False),
        sa.Column('assigned_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.UniqueConstraint('elective_subject_id', 'student_id', name='uq_elective_assignment_subject_student'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_elective_student_assignments_student_id', 'elective_student_assignments', ['student_id'])

    op.create_table('teacher_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject_id', sa.Integer(), sa.ForeignKey('subjects.id', ondelete='CASCADE'), nullable=True),
        sa.Column('academic_year_id', sa.Integer(), sa.ForeignKey('academic_years.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('role', sa.String(16), nullable=False, server_default='TEACHER'),
        sa.Column('status', sa.String(16), nullable=False, server_default='ACTIVE'),
        sa.Column('assigned_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('teacher_id', 'class_id', 'academic_year_id', 'subject_id', name='uq_teacher_assignment_tuple'),
    )
    op.create_index('ix_teacher_assignments_teacher_id', 'teacher_assignments', ['teacher_id'])
    op.create_index('ix_teacher_assignment_year_role', 'teacher_assignments', ['academic_year_id', 'role'])
    # NULL never equals NULL in the tuple constraint above
    op.create_index(
        'uq_teacher_assignment_no_subject', 'teacher_assignments',
        ['teacher_id', 'class_id', 'academic_year_id'],
        unique=True,
        sqlite_where=sa.text('subject_id IS NULL'),
        postgresql_where=sa.text('subject_id IS NULL'),
    )

    op.create_table('archive_comments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('teachers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_archive_comments_teacher_id', 'archive_comments', ['teacher_id'])


def downgrade():
    op.drop_index('ix_archive_comments_teacher_id', table_name='archive_comments')
    op.drop_table('archive_comments')
    op.drop_index('uq_teacher_assignment_no_subject', table_name='teacher_assignments')
    op.drop_index('ix_teacher_assignment_year_role', table_name='teacher_assignments')
    op.drop_index('ix_teacher_assignments_teacher_id', table_name='teacher_assignments')
    op.drop_table('teacher_assignments')
    op.drop_index('ix_elective_student_assignments_student_id', table_name='elective_student_assignments')
    op.drop_table('elective_student_assignments')
    op.drop_index('ix_elective_subjects_elective_group_id', table_name='elective_subjects')
    op.drop_table('elective_subjects')
    op.drop_table('elective_groups')
    op.drop_index('ix_timetable_class_day', table_name='timetable_entries')
    op.drop_table('timetable_entries')
    op.drop_index('ix_students_class_id', table_name='students')
    op.drop_table('students')
    op.drop_index('ix_classes_academic_year_id', table_name='classes')
    op.drop_index('ix_classes_branch_id', table_name='classes')
    op.drop_table('classes')
    op.drop_table('teachers')
    op.drop_table('subjects')
    op.drop_table('academic_years')
    op.drop_table('branches')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
