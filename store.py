"""
Attempt and Submission persistence.

Exactly-once submission rests on the UNIQUE(assessment_id, participant_id)
constraint of the submissions table: every writer INSERTs and a losing
racer gets IntegrityError, which is turned into AlreadyExists(existing).
There is no check-then-insert anywhere on this path.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import Assessment, AssessmentKind, Attempt, ContestEvaluation, Submission, SubmissionStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateOnce:
    created: bool
    submission: Submission


# ---------- attempts ----------


def get_active_attempt(db: Session, assessment_id: str, participant_id: str) -> Optional[Attempt]:
    return db.execute(
        select(Attempt).where(
            Attempt.assessment_id == assessment_id,
            Attempt.participant_id == participant_id,
        )
    ).scalar_one_or_none()


def try_create_attempt(
    db: Session, assessment_id: str, participant_id: str, started_at: datetime, deadline: datetime
) -> tuple[Attempt, bool]:
    """Returns (attempt, created). A concurrent start yields the winner's attempt."""
    attempt = Attempt(
        assessment_id=assessment_id,
        participant_id=participant_id,
        started_at=started_at,
        deadline=deadline,
    )
    db.add(attempt)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = get_active_attempt(db, assessment_id, participant_id)
        if existing is None:
            raise
        return existing, False
    db.refresh(attempt)
    return attempt, True


def save_attempt_answers(db: Session, attempt: Attempt, answers: List[Optional[int]], now: datetime) -> Attempt:
    attempt.answers = list(answers)
    attempt.synced_at = now
    db.commit()
    db.refresh(attempt)
    return attempt


def list_overdue_attempts(db: Session, cutoff: datetime, limit: int = 500) -> List[Attempt]:
    """Attempts whose deadline lies before `cutoff`, oldest first."""
    return list(
        db.execute(
            select(Attempt).where(Attempt.deadline < cutoff).order_by(Attempt.deadline.asc()).limit(limit)
        )
        .scalars()
        .all()
    )


def delete_attempt(db: Session, assessment_id: str, participant_id: str) -> int:
    result = db.execute(
        delete(Attempt).where(
            Attempt.assessment_id == assessment_id,
            Attempt.participant_id == participant_id,
        )
    )
    db.commit()
    return result.rowcount or 0


# ---------- submissions ----------


def get_submission(db: Session, assessment_id: str, participant_id: str) -> Optional[Submission]:
    return db.execute(
        select(Submission).where(
            Submission.assessment_id == assessment_id,
            Submission.participant_id == participant_id,
        )
    ).scalar_one_or_none()


def try_create_submission_once(
    db: Session, submission: Submission, consume_attempt: Optional[Attempt] = None
) -> CreateOnce:
    """
    INSERT the submission (and delete `consume_attempt` in the same
    transaction). On a uniqueness clash the stored submission is returned
    untouched and any leftover attempt is purged.
    """
    assessment_id = submission.assessment_id
    participant_id = submission.participant_id

    db.add(submission)
    if consume_attempt is not None:
        db.delete(consume_attempt)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = get_submission(db, assessment_id, participant_id)
        if existing is None:
            raise
        logger.warning(
            "duplicate submission refused assessment=%s participant=%s",
            assessment_id,
            participant_id,
        )
        if consume_attempt is not None:
            delete_attempt(db, assessment_id, participant_id)
        return CreateOnce(created=False, submission=existing)

    db.refresh(submission)
    return CreateOnce(created=True, submission=submission)


def list_submissions(db: Session, assessment_id: str, newest_first: bool = False) -> List[Submission]:
    order = Submission.submitted_at.desc() if newest_first else Submission.submitted_at.asc()
    return list(
        db.execute(select(Submission).where(Submission.assessment_id == assessment_id).order_by(order))
        .scalars()
        .all()
    )


def list_participant_submissions(db: Session, participant_id: str) -> List[Submission]:
    return list(
        db.execute(
            select(Submission)
            .where(Submission.participant_id == participant_id)
            .order_by(Submission.submitted_at.desc())
        )
        .scalars()
        .all()
    )


def list_published_test_submissions(db: Session, start: datetime, end: datetime) -> List[Submission]:
    """Finalized test submissions in [start, end) whose results are public."""
    return list(
        db.execute(
            select(Submission)
            .join(Assessment, Assessment.id == Submission.assessment_id)
            .where(
                Assessment.kind == AssessmentKind.TEST.value,
                Assessment.results_published.is_(True),
                Submission.status != SubmissionStatus.EXPIRED.value,
                Submission.submitted_at >= start,
                Submission.submitted_at < end,
            )
            .order_by(Submission.submitted_at.asc())
        )
        .scalars()
        .all()
    )


def upsert_evaluation(
    db: Session,
    submission: Submission,
    marks: int,
    feedback: Optional[str],
    evaluated_by: Optional[str],
    now: datetime,
) -> ContestEvaluation:
    ev = submission.evaluation
    if ev is None:
        ev = ContestEvaluation(submission_id=submission.id, marks=marks, evaluated_at=now)
        db.add(ev)
    ev.marks = marks
    ev.feedback = feedback
    ev.evaluated_by = evaluated_by
    ev.evaluated_at = now
    db.commit()
    db.refresh(ev)
    return ev
