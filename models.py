from __future__ import annotations

import enum
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db import Base, UTCDateTime, utcnow


class AssessmentKind(str, enum.Enum):
    TEST = "test"
    CONTEST = "contest"


class SubmissionStatus(str, enum.Enum):
    SUBMITTED = "submitted"  # finalized by the participant
    AUTO_SUBMITTED = "auto_submitted"  # sweep finalized last synced answers
    EXPIRED = "expired"  # sweep found no answers at all


class Assessment(Base):
    """A scheduled Test or Contest. Immutable apart from the results flag."""

    __tablename__ = "assessments"
    __table_args__ = (sa.CheckConstraint("live_at < expires_at", name="window"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), index=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text, default="")

    # eligibility
    cohorts: Mapped[list] = mapped_column(JSON)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False)

    # window
    live_at: Mapped[datetime] = mapped_column(UTCDateTime(), index=True)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), index=True)

    # tests
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    questions: Mapped[list] = mapped_column(JSON, default=list)

    # contests
    submission_deadline: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    form_schema: Mapped[list] = mapped_column(JSON, default=list)
    contest_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    max_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    evaluation_criteria: Mapped[list] = mapped_column(JSON, default=list)

    # presentation extras
    syllabus: Mapped[list] = mapped_column(JSON, default=list)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    rewards: Mapped[list] = mapped_column(JSON, default=list)

    results_published: Mapped[bool] = mapped_column(Boolean, default=False)
    results_published_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)

    @property
    def is_test(self) -> bool:
        return self.kind == AssessmentKind.TEST.value

    @property
    def total_marks(self) -> int:
        return sum(int(q.get("marks", 0)) for q in self.questions or [])


class Attempt(Base):
    """In-progress test session; the server-side deadline lives here."""

    __tablename__ = "attempts"
    __table_args__ = (UniqueConstraint("assessment_id", "participant_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assessment_id: Mapped[str] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), index=True
    )
    participant_id: Mapped[str] = mapped_column(String(64), index=True)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime())
    deadline: Mapped[datetime] = mapped_column(UTCDateTime(), index=True)
    # last answers synced by the client; the sweep finalizes these
    answers: Mapped[list | None] = mapped_column(JSON, nullable=True)
    synced_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)


class Submission(Base):
    """Finalized, immutable record. At most one per (assessment, participant)."""

    __tablename__ = "submissions"
    __table_args__ = (UniqueConstraint("assessment_id", "participant_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assessment_id: Mapped[str] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), index=True
    )
    participant_id: Mapped[str] = mapped_column(String(64), index=True)
    kind: Mapped[str] = mapped_column(String(16))
    status: Mapped[str] = mapped_column(String(20), default=SubmissionStatus.SUBMITTED.value)
    finalized_by: Mapped[str] = mapped_column(String(20), default="participant")
    submitted_at: Mapped[datetime] = mapped_column(UTCDateTime(), index=True)
    time_taken_seconds: Mapped[int] = mapped_column(Integer, default=0)

    # tests
    answers: Mapped[list | None] = mapped_column(JSON, nullable=True)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_marks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    percentage: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # contests
    form_responses: Mapped[list | None] = mapped_column(JSON, nullable=True)

    evaluation: Mapped["ContestEvaluation | None"] = relationship(
        "ContestEvaluation", back_populates="submission", uselist=False, lazy="selectin"
    )


class ContestEvaluation(Base):
    """Admin marks for a contest entry, kept apart so submissions stay immutable."""

    __tablename__ = "contest_evaluations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[int] = mapped_column(
        ForeignKey("submissions.id", ondelete="CASCADE"), unique=True
    )
    marks: Mapped[int] = mapped_column(Integer)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    evaluated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    evaluated_at: Mapped[datetime] = mapped_column(UTCDateTime())

    submission: Mapped[Submission] = relationship("Submission", back_populates="evaluation")
