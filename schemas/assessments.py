# schemas/assessments.py
from __future__ import annotations

from datetime import UTC, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from schemas.forms import FormField


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return None
    return v.replace(tzinfo=UTC) if v.tzinfo is None else v.astimezone(UTC)


# ---------- Authoring ----------


class QuestionIn(BaseModel):
    prompt: str = Field(min_length=1)
    options: List[str] = Field(min_length=2)
    correct_index: int = Field(ge=0)
    marks: int = Field(default=1, ge=1)
    explanation: str = ""
    subject: Optional[str] = None

    @model_validator(mode="after")
    def correct_in_range(self):
        if self.correct_index >= len(self.options):
            raise ValueError("correct_index must point at one of the options")
        return self


class RewardTier(BaseModel):
    rank: int = Field(ge=1)
    title: str
    prize: str
    description: Optional[str] = None


class AssessmentCreate(BaseModel):
    kind: Literal["test", "contest"]
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    cohorts: List[str] = Field(min_length=1)
    is_paid: bool = False
    live_at: datetime
    expires_at: datetime
    syllabus: List[str] = []
    instructions: Optional[str] = None
    rewards: List[RewardTier] = []

    # tests
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    questions: List[QuestionIn] = []

    # contests
    submission_deadline: Optional[datetime] = None
    form_schema: List[FormField] = []
    contest_type: Optional[Literal["coding", "english_speech", "english_essay", "custom"]] = None
    max_points: Optional[int] = Field(default=None, ge=1)
    evaluation_criteria: List[str] = []

    @field_validator("live_at", "expires_at", "submission_deadline")
    @classmethod
    def normalize_tz(cls, v):
        return _as_utc(v)

    @model_validator(mode="after")
    def check_shape(self):
        if self.live_at >= self.expires_at:
            raise ValueError("live_at must be before expires_at")

        if self.kind == "test":
            if self.duration_minutes is None:
                raise ValueError("tests need duration_minutes")
            if not self.questions:
                raise ValueError("tests need at least one question")
            return self

        if not self.form_schema:
            raise ValueError("contests need a form_schema")
        ids = [f.id for f in self.form_schema]
        if len(ids) != len(set(ids)):
            raise ValueError("form_schema field ids must be unique")
        if self.submission_deadline is None:
            self.submission_deadline = self.expires_at
        if not (self.live_at < self.submission_deadline <= self.expires_at):
            raise ValueError("submission_deadline must fall inside (live_at, expires_at]")
        return self


# ---------- Reading ----------


class QuestionOut(BaseModel):
    """Question as shown to participants: no answer key."""

    prompt: str
    options: List[str]
    marks: int
    subject: Optional[str] = None


class AssessmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: str
    title: str
    description: str
    cohorts: List[str]
    is_paid: bool
    live_at: datetime
    expires_at: datetime
    state: str
    syllabus: List[str] = []
    instructions: Optional[str] = None
    rewards: List[RewardTier] = []
    results_published: bool

    duration_minutes: Optional[int] = None
    total_marks: Optional[int] = None
    question_count: Optional[int] = None
    questions: List[QuestionOut] = []

    submission_deadline: Optional[datetime] = None
    form_schema: List[FormField] = []
    contest_type: Optional[str] = None
    max_points: Optional[int] = None
    evaluation_criteria: List[str] = []


class AssessmentAdminOut(AssessmentOut):
    """Admin view keeps the answer key."""

    questions: List[QuestionIn] = []
    results_published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AssessmentListItem(BaseModel):
    id: str
    kind: str
    title: str
    description: str
    is_paid: bool
    live_at: datetime
    expires_at: datetime
    submission_deadline: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    state: str
    locked: bool
    lock_reason: Optional[str] = None
    results_published: bool
    rewards: List[RewardTier] = []


class AssessmentBuckets(BaseModel):
    ok: bool = True
    scheduled: List[AssessmentListItem] = []
    open: List[AssessmentListItem] = []
    closed: List[AssessmentListItem] = []
    finalized: List[AssessmentListItem] = []
