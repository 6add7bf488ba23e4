from datetime import UTC, datetime, timedelta

from lifecycle import AssessmentState, state_of
from models import Assessment

LIVE = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _a(published=False):
    return Assessment(
        id="a1",
        kind="test",
        title="t",
        cohorts=["junior"],
        live_at=LIVE,
        expires_at=LIVE + timedelta(hours=24),
        results_published=published,
    )


def test_window_boundaries():
    a = _a()
    assert state_of(a, LIVE - timedelta(seconds=1)) is AssessmentState.SCHEDULED
    assert state_of(a, LIVE) is AssessmentState.OPEN
    assert state_of(a, LIVE + timedelta(hours=24) - timedelta(microseconds=1)) is AssessmentState.OPEN
    assert state_of(a, LIVE + timedelta(hours=24)) is AssessmentState.CLOSED


def test_finalized_only_after_close():
    a = _a(published=True)
    assert state_of(a, LIVE + timedelta(hours=1)) is AssessmentState.OPEN
    assert state_of(a, LIVE + timedelta(hours=25)) is AssessmentState.FINALIZED
