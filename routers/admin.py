from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import repository
from clock import Clock
from db import get_db
from deps.auth import require_admin
from deps.engine import get_clock, get_controller
from lifecycle import LifecycleController
from routers.common import assessment_out, envelope, submission_out
from schemas.assessments import AssessmentCreate
from schemas.submissions import EvaluateRequest
from sweep import sweep_expired_attempts

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

DB = Annotated[Session, Depends(get_db)]
Now = Annotated[Clock, Depends(get_clock)]
Engine = Annotated[LifecycleController, Depends(get_controller)]


@router.post("/assessments", status_code=201)
def create_assessment(body: AssessmentCreate, db: DB, clock: Now, engine: Engine):
    res = engine.create_assessment(db, body, clock.now())
    resp = envelope(res, assessment=assessment_out(res.value, clock.now(), admin=True))
    resp.status_code = 201
    return resp


@router.get("/assessments")
def list_assessments(db: DB, clock: Now, kind: Optional[str] = Query(default=None, pattern="^(test|contest)$")):
    now = clock.now()
    items = [assessment_out(a, now, admin=True) for a in repository.list_assessments(db, kind)]
    return {"ok": True, "items": items, "count": len(items)}


@router.get("/assessments/{assessment_id}")
def get_assessment(assessment_id: str, db: DB, clock: Now, engine: Engine):
    res = engine.get_assessment(db, assessment_id)
    if not res.ok:
        return envelope(res)
    return envelope(res, assessment=assessment_out(res.value, clock.now(), admin=True))


@router.post("/assessments/{assessment_id}/publish")
def publish_results(assessment_id: str, db: DB, clock: Now, engine: Engine):
    res = engine.publish_results(db, assessment_id, clock.now())
    if not res.ok:
        return envelope(res)
    return envelope(res, assessment=assessment_out(res.value, clock.now(), admin=True))


@router.get("/assessments/{assessment_id}/submissions")
def list_submissions(assessment_id: str, db: DB, engine: Engine):
    res = engine.list_submissions(db, assessment_id)
    if not res.ok:
        return envelope(res)
    items = [submission_out(s) for s in res.value]
    return envelope(res, items=items, count=len(items))


@router.post("/assessments/{assessment_id}/submissions/{participant_id}/evaluate")
def evaluate_submission(
    assessment_id: str, participant_id: str, body: EvaluateRequest, db: DB, clock: Now, engine: Engine
):
    res = engine.evaluate_submission(
        db, assessment_id, participant_id, body.marks, body.feedback, body.evaluated_by, clock.now()
    )
    return envelope(res, submission=submission_out(res.value))


@router.post("/sweep")
def run_sweep(db: DB, clock: Now, engine: Engine):
    report = sweep_expired_attempts(db, engine, clock)
    return {"ok": True, **report.as_dict()}
