# blueprints/electives/schemas.py
from __future__ import annotations
from datetime import time
from typing import List, Optional

from pydantic import BaseModel, Field, AliasChoices, field_validator, model_validator


class StudentIdsIn(BaseModel):
    # an empty list is a domain error (400), not a schema error
    student_ids: List[int] = Field(default_factory=list,
                                   validation_alias=AliasChoices("student_ids", "studentIds"))


class SlotMixin(BaseModel):
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @model_validator(mode="after")
    def _all_or_nothing(self):
        parts = (self.day_of_week, self.start_time, self.end_time)
        given = [p is not None for p in parts]
        if any(given) and not all(given):
            raise ValueError("slot_incomplete")
        if all(given) and self.end_time <= self.start_time:
            raise ValueError("end_before_start")
        return self


class ElectiveGroupIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    branch_id: int
    academic_year_id: int

    @field_validator("name")
    @classmethod
    def _strip(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("name_required")
        return v


class ElectiveGroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    status: Optional[str] = Field(default=None, pattern="^(ACTIVE|INACTIVE)$")

    @field_validator("name")
    @classmethod
    def _strip(cls, v: Optional[str]):
        return v.strip() if v else v


class ElectiveSubjectsIn(SlotMixin):
    subject_ids: List[int] = Field(default_factory=list,
                                   validation_alias=AliasChoices("subject_ids", "subjectIds"))
    max_students: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None


class ElectiveSubjectUpdate(SlotMixin):
    max_students: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None
