# routers/common.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from lifecycle import state_of
from models import Assessment, Submission
from outcomes import ErrorCode, Outcome
from schemas.assessments import AssessmentAdminOut, AssessmentOut, QuestionOut
from schemas.submissions import SubmissionOut

STATUS_BY_ERROR = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.NOT_YET_LIVE: 409,
    ErrorCode.CLOSED: 409,
    ErrorCode.ADMISSION_DENIED: 403,
    ErrorCode.NO_ACTIVE_ATTEMPT: 409,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.NOT_YET_PUBLISHED: 409,
    ErrorCode.INVALID_STATE: 409,
    ErrorCode.WRONG_KIND: 409,
    ErrorCode.ADMIN_ONLY: 401,
    ErrorCode.INTERNAL_ERROR: 503,
}


def envelope(outcome: Outcome, **payload: Any) -> JSONResponse:
    """Render an engine Outcome as {"ok", "error", "reason", "detail", ...payload}."""
    body: Dict[str, Any] = {
        "ok": outcome.ok,
        "error": outcome.error.value if outcome.error else None,
        "reason": outcome.reason,
        "detail": outcome.detail,
    }
    body.update(payload)
    # idempotent replays carry the prior record and are not client errors
    if outcome.ok or outcome.is_idempotent_replay:
        status = 200
    else:
        status = STATUS_BY_ERROR.get(outcome.error, 400)
    return JSONResponse(status_code=status, content=jsonable_encoder(body))


def assessment_out(a: Assessment, now: datetime, admin: bool = False) -> Dict[str, Any]:
    fields = dict(
        id=a.id,
        kind=a.kind,
        title=a.title,
        description=a.description or "",
        cohorts=list(a.cohorts or []),
        is_paid=a.is_paid,
        live_at=a.live_at,
        expires_at=a.expires_at,
        state=state_of(a, now).value,
        syllabus=list(a.syllabus or []),
        instructions=a.instructions,
        rewards=list(a.rewards or []),
        results_published=bool(a.results_published),
        submission_deadline=a.submission_deadline,
        form_schema=list(a.form_schema or []),
        contest_type=a.contest_type,
        max_points=a.max_points,
        evaluation_criteria=list(a.evaluation_criteria or []),
    )
    if a.is_test:
        fields.update(
            duration_minutes=a.duration_minutes,
            total_marks=a.total_marks,
            question_count=len(a.questions or []),
        )

    if admin:
        return AssessmentAdminOut(
            **fields,
            questions=list(a.questions or []),
            results_published_at=a.results_published_at,
            created_at=a.created_at,
        ).model_dump(mode="json")

    # never ship the answer key to participants
    questions = [QuestionOut(**{k: q.get(k) for k in ("prompt", "options", "marks", "subject")}) for q in a.questions or []]
    return AssessmentOut(**fields, questions=questions).model_dump(mode="json")


def submission_out(
    s: Optional[Submission], results_published: bool = True, hide_results: Optional[bool] = None
) -> Optional[Dict[str, Any]]:
    """Scores, marks and feedback stay hidden until results are published."""
    if hide_results is None:
        hide_results = not results_published
    if s is None:
        return None
    out = SubmissionOut.model_validate(s)
    out.results_published = results_published
    if hide_results:
        out.score = None
        out.total_marks = None
        out.percentage = None
        out.evaluation = None
    return out.model_dump(mode="json")
