"""Assessment records: create, read, and time-window queries."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from models import Assessment
from schemas.assessments import AssessmentCreate


def create_assessment(db: Session, payload: AssessmentCreate, now: datetime) -> Assessment:
    data = payload.model_dump(mode="json")
    a = Assessment(
        id=uuid.uuid4().hex,
        kind=payload.kind,
        title=payload.title,
        description=payload.description,
        cohorts=sorted(set(payload.cohorts)),
        is_paid=payload.is_paid,
        live_at=payload.live_at,
        expires_at=payload.expires_at,
        syllabus=payload.syllabus,
        instructions=payload.instructions,
        rewards=sorted(data["rewards"], key=lambda r: r["rank"]),
        results_published=False,
        created_at=now,
    )
    if payload.kind == "test":
        a.duration_minutes = payload.duration_minutes
        a.questions = data["questions"]
        a.form_schema = []
    else:
        a.questions = []
        a.submission_deadline = payload.submission_deadline
        a.form_schema = data["form_schema"]
        a.contest_type = payload.contest_type
        a.max_points = payload.max_points
        a.evaluation_criteria = payload.evaluation_criteria
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


def get_assessment(db: Session, assessment_id: str) -> Optional[Assessment]:
    return db.get(Assessment, assessment_id)


def list_assessments(db: Session, kind: Optional[str] = None) -> List[Assessment]:
    stmt = select(Assessment).order_by(Assessment.live_at.desc())
    if kind:
        stmt = stmt.where(Assessment.kind == kind)
    return list(db.execute(stmt).scalars().all())


# ---------- time-window queries ----------


def list_scheduled(db: Session, now: datetime) -> List[Assessment]:
    stmt = select(Assessment).where(Assessment.live_at > now).order_by(Assessment.live_at.asc())
    return list(db.execute(stmt).scalars().all())


def list_open(db: Session, now: datetime) -> List[Assessment]:
    stmt = (
        select(Assessment)
        .where(and_(Assessment.live_at <= now, Assessment.expires_at > now))
        .order_by(Assessment.live_at.desc())
    )
    return list(db.execute(stmt).scalars().all())


def list_ended(db: Session, now: datetime, published: Optional[bool] = None) -> List[Assessment]:
    """Assessments past expires_at; `published` narrows to Closed or Finalized."""
    stmt = select(Assessment).where(Assessment.expires_at <= now)
    if published is not None:
        stmt = stmt.where(Assessment.results_published == published)
    stmt = stmt.order_by(Assessment.expires_at.desc())
    return list(db.execute(stmt).scalars().all())


def mark_results_published(db: Session, assessment: Assessment, now: datetime) -> Assessment:
    assessment.results_published = True
    assessment.results_published_at = now
    db.commit()
    db.refresh(assessment)
    return assessment
