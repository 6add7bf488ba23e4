"""
Assessment lifecycle: start, sync, submit, sweep, evaluate, publish.

An assessment's state is a pure function of `now` and its window:

    Scheduled (now < live_at)
      -> Open (live_at <= now < expires_at)
      -> Closed (now >= expires_at)
      -> Finalized (results_published; only by explicit admin command)

Every operation takes `now` from the caller's Clock and answers with an
Outcome. Submission creation always goes through
store.try_create_submission_once.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

import repository
import scoring
import store
from admission import DenyReason, Participant, evaluate_assessment
from config import LEADERBOARD_LIMIT, LEADERBOARD_TIE_BREAK, MONTHLY_LEADERBOARD_LIMIT, SUBMIT_GRACE_SECONDS
from forms import validate_responses
from leaderboard import (
    LeaderboardEntry,
    MonthlyEntry,
    Standing,
    build_leaderboard,
    build_monthly_leaderboard,
    resolve_tie_break,
)
from models import Assessment, AssessmentKind, Attempt, Submission, SubmissionStatus
from outcomes import ErrorCode, Outcome
from schemas.assessments import AssessmentCreate
from schemas.forms import FormResponse

logger = logging.getLogger(__name__)


class AssessmentState(str, enum.Enum):
    SCHEDULED = "scheduled"
    OPEN = "open"
    CLOSED = "closed"
    FINALIZED = "finalized"


def state_of(assessment: Assessment, now: datetime) -> AssessmentState:
    if now < assessment.live_at:
        return AssessmentState.SCHEDULED
    if now < assessment.expires_at:
        return AssessmentState.OPEN
    if assessment.results_published:
        return AssessmentState.FINALIZED
    return AssessmentState.CLOSED


@dataclass(frozen=True)
class ListedAssessment:
    assessment: Assessment
    state: AssessmentState
    locked: bool
    lock_reason: Optional[str] = None


@dataclass
class Buckets:
    scheduled: List[ListedAssessment] = field(default_factory=list)
    open: List[ListedAssessment] = field(default_factory=list)
    closed: List[ListedAssessment] = field(default_factory=list)
    finalized: List[ListedAssessment] = field(default_factory=list)


@dataclass(frozen=True)
class SubmissionView:
    submission: Submission
    results_published: bool


@dataclass(frozen=True)
class Leaderboard:
    assessment: Assessment
    tie_break: str
    entries: List[LeaderboardEntry]


@dataclass(frozen=True)
class MonthlyLeaderboard:
    month: str
    entries: List[MonthlyEntry]


def _month_bounds(month: str) -> tuple[datetime, datetime]:
    """Bounds of "2026-03" as [2026-03-01, 2026-04-01) in UTC. Raises ValueError."""
    start = datetime.strptime(month, "%Y-%m").replace(tzinfo=UTC)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def _window_error(state: AssessmentState) -> Optional[Outcome]:
    if state is AssessmentState.SCHEDULED:
        return Outcome.failure(ErrorCode.NOT_YET_LIVE, "Assessment is not live yet.")
    if state in (AssessmentState.CLOSED, AssessmentState.FINALIZED):
        return Outcome.failure(ErrorCode.CLOSED, "Assessment has ended.")
    return None


def _elapsed_seconds(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds()))


class LifecycleController:
    def __init__(
        self,
        grace_seconds: int = SUBMIT_GRACE_SECONDS,
        tie_break: str = LEADERBOARD_TIE_BREAK,
        leaderboard_limit: int = LEADERBOARD_LIMIT,
        monthly_limit: int = MONTHLY_LEADERBOARD_LIMIT,
    ):
        self.grace = timedelta(seconds=max(0, grace_seconds))
        self.tie_break = resolve_tie_break(tie_break)
        self.leaderboard_limit = leaderboard_limit or None
        self.monthly_limit = monthly_limit or None

    # ---------- lookups ----------

    def _load(self, db: Session, assessment_id: str, kind: Optional[AssessmentKind] = None):
        a = repository.get_assessment(db, assessment_id)
        if a is None:
            return None, Outcome.failure(ErrorCode.NOT_FOUND, "Assessment not found.")
        if kind is not None and a.kind != kind.value:
            return None, Outcome.failure(ErrorCode.WRONG_KIND, f"Assessment is not a {kind.value}.")
        return a, None

    def _admit(self, assessment: Assessment, participant: Participant, now: datetime) -> Optional[Outcome]:
        decision = evaluate_assessment(assessment, participant, now)
        if decision.allowed:
            return None
        return Outcome.failure(
            ErrorCode.ADMISSION_DENIED,
            "Participant may not take this assessment.",
            reason=decision.reason.value,
        )

    def get_assessment(self, db: Session, assessment_id: str) -> Outcome[Assessment]:
        a, err = self._load(db, assessment_id)
        return err or Outcome.success(a)

    def create_assessment(self, db: Session, payload: AssessmentCreate, now: datetime) -> Outcome[Assessment]:
        a = repository.create_assessment(db, payload, now)
        logger.info("assessment created id=%s kind=%s", a.id, a.kind)
        return Outcome.success(a)

    # ---------- listing ----------

    def list_for_participant(self, db: Session, participant: Participant, now: datetime) -> Buckets:
        """
        Bucket assessments by state. Other cohorts' assessments are left
        out; paid ones the participant cannot enter are listed as locked.
        """
        buckets = Buckets()
        windows = (
            (buckets.scheduled, AssessmentState.SCHEDULED, repository.list_scheduled(db, now)),
            (buckets.open, AssessmentState.OPEN, repository.list_open(db, now)),
            (buckets.closed, AssessmentState.CLOSED, repository.list_ended(db, now, published=False)),
            (buckets.finalized, AssessmentState.FINALIZED, repository.list_ended(db, now, published=True)),
        )
        for bucket, state, assessments in windows:
            for a in assessments:
                decision = evaluate_assessment(a, participant, now)
                if not decision.allowed and decision.reason is DenyReason.COHORT_MISMATCH:
                    continue
                bucket.append(
                    ListedAssessment(
                        assessment=a,
                        state=state,
                        locked=not decision.allowed,
                        lock_reason=None if decision.allowed else decision.reason.value,
                    )
                )
        return buckets

    # ---------- tests ----------

    def start_attempt(self, db: Session, assessment_id: str, participant: Participant, now: datetime) -> Outcome[Attempt]:
        a, err = self._load(db, assessment_id, AssessmentKind.TEST)
        if err:
            return err
        err = _window_error(state_of(a, now)) or self._admit(a, participant, now)
        if err:
            return err

        existing = store.get_submission(db, a.id, participant.id)
        if existing is not None:
            return Outcome.failure(ErrorCode.ALREADY_SUBMITTED, "Already submitted.", value=existing)

        deadline = min(now + timedelta(minutes=a.duration_minutes or 0), a.expires_at)
        attempt, created = store.try_create_attempt(db, a.id, participant.id, now, deadline)
        if not created:
            return Outcome.failure(ErrorCode.ATTEMPT_IN_PROGRESS, "Attempt already in progress.", value=attempt)

        logger.info(
            "attempt started assessment=%s participant=%s deadline=%s",
            a.id,
            participant.id,
            attempt.deadline.isoformat(),
        )
        return Outcome.success(attempt)

    def _past_deadline(self, attempt: Attempt, now: datetime) -> bool:
        return now > attempt.deadline + self.grace

    def save_progress(
        self, db: Session, assessment_id: str, participant: Participant, answers: Sequence, now: datetime
    ) -> Outcome[Attempt]:
        a, err = self._load(db, assessment_id, AssessmentKind.TEST)
        if err:
            return err
        attempt = store.get_active_attempt(db, a.id, participant.id)
        if attempt is None:
            return Outcome.failure(ErrorCode.NO_ACTIVE_ATTEMPT, "No attempt in progress.")
        err = self._admit(a, participant, now)
        if err:
            return err
        if self._past_deadline(attempt, now):
            return Outcome.failure(ErrorCode.CLOSED, "Attempt deadline has passed.")
        attempt = store.save_attempt_answers(db, attempt, scoring.normalize_answers(a.questions, answers), now)
        return Outcome.success(attempt)

    def submit_test(
        self, db: Session, assessment_id: str, participant: Participant, answers: Sequence, now: datetime
    ) -> Outcome[Submission]:
        a, err = self._load(db, assessment_id, AssessmentKind.TEST)
        if err:
            return err

        existing = store.get_submission(db, a.id, participant.id)
        if existing is not None:
            return Outcome.failure(ErrorCode.ALREADY_SUBMITTED, "Already submitted.", value=existing)

        attempt = store.get_active_attempt(db, a.id, participant.id)
        if attempt is None:
            return Outcome.failure(ErrorCode.NO_ACTIVE_ATTEMPT, "Start the test before submitting.")

        err = self._admit(a, participant, now)
        if err:
            return err

        if self._past_deadline(attempt, now):
            logger.warning(
                "late submission refused assessment=%s participant=%s deadline=%s",
                a.id,
                participant.id,
                attempt.deadline.isoformat(),
            )
            return Outcome.failure(ErrorCode.CLOSED, "Attempt deadline has passed.")

        cleaned = scoring.normalize_answers(a.questions, answers)
        result = scoring.score(a.questions, cleaned)
        submission = Submission(
            assessment_id=a.id,
            participant_id=participant.id,
            kind=a.kind,
            status=SubmissionStatus.SUBMITTED.value,
            finalized_by="participant",
            submitted_at=now,
            time_taken_seconds=_elapsed_seconds(attempt.started_at, min(now, attempt.deadline)),
            answers=cleaned,
            score=result.score,
            total_marks=result.total_marks,
            percentage=result.percentage,
        )
        once = store.try_create_submission_once(db, submission, consume_attempt=attempt)
        if not once.created:
            return Outcome.failure(ErrorCode.ALREADY_SUBMITTED, "Already submitted.", value=once.submission)

        logger.info("test submitted assessment=%s participant=%s", a.id, participant.id)
        return Outcome.success(once.submission)

    def finalize_overdue(self, db: Session, attempt: Attempt, now: datetime) -> Optional[str]:
        """
        Sweep step for one overdue attempt. Returns the resulting submission
        status, or None when the attempt was only purged.
        """
        if not self._past_deadline(attempt, now):
            return None

        a = repository.get_assessment(db, attempt.assessment_id)
        if a is None:
            store.delete_attempt(db, attempt.assessment_id, attempt.participant_id)
            return None

        if attempt.answers is None:
            status = SubmissionStatus.EXPIRED
            cleaned = [None] * len(a.questions or [])
        else:
            status = SubmissionStatus.AUTO_SUBMITTED
            cleaned = scoring.normalize_answers(a.questions, attempt.answers)
        result = scoring.score(a.questions, cleaned)

        submission = Submission(
            assessment_id=a.id,
            participant_id=attempt.participant_id,
            kind=a.kind,
            status=status.value,
            finalized_by="sweep",
            submitted_at=attempt.deadline,
            time_taken_seconds=_elapsed_seconds(attempt.started_at, attempt.deadline),
            answers=cleaned,
            score=result.score,
            total_marks=result.total_marks,
            percentage=result.percentage,
        )
        once = store.try_create_submission_once(db, submission, consume_attempt=attempt)
        if not once.created:
            return None
        return status.value

    # ---------- contests ----------

    def submit_contest(
        self,
        db: Session,
        assessment_id: str,
        participant: Participant,
        responses: Sequence[FormResponse],
        now: datetime,
    ) -> Outcome[Submission]:
        a, err = self._load(db, assessment_id, AssessmentKind.CONTEST)
        if err:
            return err

        # retries get the stored entry back even once the window has shut
        existing = store.get_submission(db, a.id, participant.id)
        if existing is not None:
            return Outcome.failure(ErrorCode.ALREADY_SUBMITTED, "Already submitted.", value=existing)

        err = _window_error(state_of(a, now)) or self._admit(a, participant, now)
        if err:
            return err

        deadline = a.submission_deadline or a.expires_at
        if now > deadline:
            return Outcome.failure(ErrorCode.CLOSED, "Submission deadline has passed.")

        cleaned, field_error = validate_responses(a.form_schema, responses)
        if field_error:
            return Outcome.failure(ErrorCode.VALIDATION_ERROR, field_error.message, reason=field_error.field)

        submission = Submission(
            assessment_id=a.id,
            participant_id=participant.id,
            kind=a.kind,
            status=SubmissionStatus.SUBMITTED.value,
            finalized_by="participant",
            submitted_at=now,
            time_taken_seconds=0,
            form_responses=cleaned,
        )
        once = store.try_create_submission_once(db, submission)
        if not once.created:
            return Outcome.failure(ErrorCode.ALREADY_SUBMITTED, "Already submitted.", value=once.submission)

        logger.info("contest entry submitted assessment=%s participant=%s", a.id, participant.id)
        return Outcome.success(once.submission)

    def evaluate_submission(
        self,
        db: Session,
        assessment_id: str,
        participant_id: str,
        marks: int,
        feedback: Optional[str],
        evaluated_by: Optional[str],
        now: datetime,
    ) -> Outcome[Submission]:
        a, err = self._load(db, assessment_id, AssessmentKind.CONTEST)
        if err:
            return err
        state = state_of(a, now)
        if state is not AssessmentState.CLOSED:
            return Outcome.failure(
                ErrorCode.INVALID_STATE, f"Entries can only be evaluated once closed (state: {state.value})."
            )
        if a.max_points is not None and marks > a.max_points:
            return Outcome.failure(ErrorCode.VALIDATION_ERROR, f"marks exceed {a.max_points}.", reason="marks")

        submission = store.get_submission(db, a.id, participant_id)
        if submission is None:
            return Outcome.failure(ErrorCode.NOT_FOUND, "Submission not found.")

        store.upsert_evaluation(db, submission, marks, feedback, evaluated_by, now)
        db.refresh(submission)
        logger.info("contest entry evaluated assessment=%s participant=%s", a.id, participant_id)
        return Outcome.success(submission)

    # ---------- results ----------

    def publish_results(self, db: Session, assessment_id: str, now: datetime) -> Outcome[Assessment]:
        a, err = self._load(db, assessment_id)
        if err:
            return err
        state = state_of(a, now)
        if state is not AssessmentState.CLOSED:
            return Outcome.failure(
                ErrorCode.INVALID_STATE, f"Results can only be published once closed (state: {state.value})."
            )
        a = repository.mark_results_published(db, a, now)
        logger.info("results published assessment=%s", a.id)
        return Outcome.success(a)

    def get_my_submission(self, db: Session, assessment_id: str, participant_id: str) -> Outcome[SubmissionView]:
        a, err = self._load(db, assessment_id)
        if err:
            return err
        submission = store.get_submission(db, a.id, participant_id)
        if submission is None:
            return Outcome.failure(ErrorCode.NOT_FOUND, "No submission yet.")
        return Outcome.success(SubmissionView(submission, bool(a.results_published)))

    def list_my_submissions(self, db: Session, participant_id: str) -> List[SubmissionView]:
        views = []
        for s in store.list_participant_submissions(db, participant_id):
            a = repository.get_assessment(db, s.assessment_id)
            views.append(SubmissionView(s, bool(a and a.results_published)))
        return views

    def list_submissions(self, db: Session, assessment_id: str) -> Outcome[List[Submission]]:
        a, err = self._load(db, assessment_id)
        if err:
            return err
        return Outcome.success(store.list_submissions(db, a.id, newest_first=True))

    def get_leaderboard(self, db: Session, assessment_id: str, limit: Optional[int] = None) -> Outcome[Leaderboard]:
        a, err = self._load(db, assessment_id)
        if err:
            return err
        if not a.results_published:
            return Outcome.failure(ErrorCode.NOT_YET_PUBLISHED, "Results have not been published.")

        standings = []
        for s in store.list_submissions(db, a.id):
            if a.is_test:
                if s.status == SubmissionStatus.EXPIRED.value:
                    continue
                standings.append(
                    Standing(
                        participant_id=s.participant_id,
                        score=s.score or 0,
                        submitted_at=s.submitted_at,
                        time_taken_seconds=s.time_taken_seconds,
                        total_marks=s.total_marks,
                        percentage=s.percentage,
                    )
                )
            elif s.evaluation is not None:
                standings.append(
                    Standing(
                        participant_id=s.participant_id,
                        score=s.evaluation.marks,
                        submitted_at=s.submitted_at,
                        time_taken_seconds=s.time_taken_seconds,
                        total_marks=a.max_points,
                    )
                )

        entries = build_leaderboard(standings, self.tie_break, limit or self.leaderboard_limit)
        return Outcome.success(Leaderboard(assessment=a, tie_break=self.tie_break, entries=entries))

    def monthly_leaderboard(self, db: Session, month: Optional[str], now: datetime) -> Outcome[MonthlyLeaderboard]:
        """
        Per-participant totals over every published test submitted in
        `month` ("YYYY-MM", defaults to the month of `now`).
        """
        month = month or now.strftime("%Y-%m")
        try:
            start, end = _month_bounds(month)
        except ValueError:
            return Outcome.failure(ErrorCode.VALIDATION_ERROR, "month must look like YYYY-MM.", reason="month")

        standings = [
            Standing(
                participant_id=s.participant_id,
                score=s.score or 0,
                submitted_at=s.submitted_at,
                time_taken_seconds=s.time_taken_seconds,
                total_marks=s.total_marks,
                percentage=s.percentage,
            )
            for s in store.list_published_test_submissions(db, start, end)
        ]
        entries = build_monthly_leaderboard(standings, limit=self.monthly_limit)
        return Outcome.success(MonthlyLeaderboard(month=month, entries=entries))
