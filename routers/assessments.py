# routers/assessments.py
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from admission import Participant
from clock import Clock
from db import get_db
from deps.auth import get_participant, require_client
from deps.engine import get_clock, get_controller
from lifecycle import LifecycleController, ListedAssessment
import repository
from models import Attempt, Submission
from outcomes import Outcome
from routers.common import assessment_out, envelope, submission_out
from schemas.assessments import AssessmentBuckets, AssessmentListItem
from schemas.attempts import AnswersIn, AttemptOut
from schemas.leaderboard import LeaderboardEntryOut, LeaderboardOut, MonthlyEntryOut, MonthlyLeaderboardOut
from schemas.submissions import SubmitContestRequest, SubmitTestRequest

router = APIRouter(tags=["assessments"], dependencies=[Depends(require_client)])

DB = Annotated[Session, Depends(get_db)]
Me = Annotated[Participant, Depends(get_participant)]
Now = Annotated[Clock, Depends(get_clock)]
Engine = Annotated[LifecycleController, Depends(get_controller)]


def _list_item(item: ListedAssessment) -> AssessmentListItem:
    a = item.assessment
    return AssessmentListItem(
        id=a.id,
        kind=a.kind,
        title=a.title,
        description=a.description or "",
        is_paid=a.is_paid,
        live_at=a.live_at,
        expires_at=a.expires_at,
        submission_deadline=a.submission_deadline,
        duration_minutes=a.duration_minutes,
        state=item.state.value,
        locked=item.locked,
        lock_reason=item.lock_reason,
        results_published=bool(a.results_published),
        rewards=list(a.rewards or []),
    )


@router.get("/assessments", response_model=AssessmentBuckets)
def list_assessments(db: DB, me: Me, clock: Now, engine: Engine):
    b = engine.list_for_participant(db, me, clock.now())
    return AssessmentBuckets(
        scheduled=[_list_item(i) for i in b.scheduled],
        open=[_list_item(i) for i in b.open],
        closed=[_list_item(i) for i in b.closed],
        finalized=[_list_item(i) for i in b.finalized],
    )


@router.get("/assessments/{assessment_id}")
def get_assessment(assessment_id: str, db: DB, clock: Now, engine: Engine):
    res = engine.get_assessment(db, assessment_id)
    if not res.ok:
        return envelope(res)
    return envelope(res, assessment=assessment_out(res.value, clock.now()))


def _attempt_payload(res: Outcome):
    if isinstance(res.value, Attempt):
        return AttemptOut.model_validate(res.value).model_dump(mode="json")
    return None


def _published(db: Session, assessment_id: str) -> bool:
    a = repository.get_assessment(db, assessment_id)
    return bool(a and a.results_published)


@router.post("/assessments/{assessment_id}/attempt")
def start_attempt(assessment_id: str, db: DB, me: Me, clock: Now, engine: Engine):
    res = engine.start_attempt(db, assessment_id, me, clock.now())
    # ALREADY_SUBMITTED carries the submission, not an attempt
    if isinstance(res.value, Submission):
        return envelope(res, submission=submission_out(res.value, _published(db, assessment_id)))
    return envelope(res, attempt=_attempt_payload(res))


@router.put("/assessments/{assessment_id}/attempt/answers")
def save_progress(assessment_id: str, body: AnswersIn, db: DB, me: Me, clock: Now, engine: Engine):
    res = engine.save_progress(db, assessment_id, me, body.answers, clock.now())
    return envelope(res, attempt=_attempt_payload(res))


@router.post("/assessments/{assessment_id}/submit-test")
def submit_test(assessment_id: str, body: SubmitTestRequest, db: DB, me: Me, clock: Now, engine: Engine):
    res = engine.submit_test(db, assessment_id, me, body.answers, clock.now())
    return envelope(res, submission=submission_out(res.value, _published(db, assessment_id)))


@router.post("/assessments/{assessment_id}/submit-contest")
def submit_contest(assessment_id: str, body: SubmitContestRequest, db: DB, me: Me, clock: Now, engine: Engine):
    res = engine.submit_contest(db, assessment_id, me, body.form_responses, clock.now())
    return envelope(res, submission=submission_out(res.value, _published(db, assessment_id)))


@router.get("/assessments/{assessment_id}/my-submission")
def my_submission(assessment_id: str, db: DB, me: Me, engine: Engine):
    res = engine.get_my_submission(db, assessment_id, me.id)
    if not res.ok:
        return envelope(res)
    view = res.value
    return envelope(res, submission=submission_out(view.submission, view.results_published))


@router.get("/submissions/mine")
def my_submissions(db: DB, me: Me, engine: Engine):
    views = engine.list_my_submissions(db, me.id)
    items = [submission_out(v.submission, v.results_published) for v in views]
    return {"ok": True, "items": items, "count": len(items)}


@router.get("/assessments/{assessment_id}/leaderboard")
def get_leaderboard(
    assessment_id: str,
    db: DB,
    engine: Engine,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
):
    res = engine.get_leaderboard(db, assessment_id, limit)
    if not res.ok:
        return envelope(res)

    board = res.value
    rewards = {r["rank"]: r for r in board.assessment.rewards or []}
    entries = [
        LeaderboardEntryOut(
            rank=e.rank,
            participant_id=e.standing.participant_id,
            score=e.standing.score,
            total_marks=e.standing.total_marks,
            percentage=e.standing.percentage,
            time_taken_seconds=e.standing.time_taken_seconds,
            submitted_at=e.standing.submitted_at,
            reward=rewards.get(e.rank),
        )
        for e in board.entries
    ]
    return LeaderboardOut(
        assessment_id=board.assessment.id,
        kind=board.assessment.kind,
        tie_break=board.tie_break,
        entries=entries,
    )


@router.get("/leaderboards/monthly")
def monthly_leaderboard(
    db: DB,
    clock: Now,
    engine: Engine,
    month: Optional[str] = Query(default=None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
):
    res = engine.monthly_leaderboard(db, month, clock.now())
    if not res.ok:
        return envelope(res)

    board = res.value
    return MonthlyLeaderboardOut(
        month=board.month,
        entries=[
            MonthlyEntryOut(
                rank=e.rank,
                participant_id=e.standing.participant_id,
                total_score=e.standing.total_score,
                total_marks=e.standing.total_marks,
                tests_taken=e.standing.tests_taken,
                average_percentage=e.standing.average_percentage,
                best_percentage=e.standing.best_percentage,
            )
            for e in board.entries
        ],
    )
