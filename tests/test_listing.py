from datetime import timedelta

from conftest import ADMIN, T0, contest_payload, exam_payload, participant


def _ids(bucket):
    return {a["id"] for a in bucket}


def _setup(make_assessment):
    free = make_assessment(exam_payload(title="Free test"))
    paid = make_assessment(exam_payload(title="Paid test", is_paid=True))
    senior = make_assessment(exam_payload(title="Senior test", cohorts=["senior"]))
    contest = make_assessment(contest_payload())
    return free, paid, senior, contest


def test_buckets_follow_the_clock(client, clock, make_assessment):
    free, paid, senior, contest = _setup(make_assessment)

    b = client.get("/assessments", headers=participant()).json()
    assert _ids(b["scheduled"]) == {free, paid, contest}
    assert b["open"] == [] and b["closed"] == [] and b["finalized"] == []

    clock.set(T0 + timedelta(hours=1))
    b = client.get("/assessments", headers=participant()).json()
    assert _ids(b["open"]) == {free, paid, contest}

    clock.set(T0 + timedelta(hours=25))
    client.post(f"/admin/assessments/{free}/publish", headers=ADMIN)
    b = client.get("/assessments", headers=participant()).json()
    assert _ids(b["open"]) == {contest}
    assert _ids(b["closed"]) == {paid}
    assert _ids(b["finalized"]) == {free}


def test_other_cohorts_hidden_paid_locked(client, clock, make_assessment):
    free, paid, senior, contest = _setup(make_assessment)
    clock.set(T0 + timedelta(hours=1))

    items = {a["id"]: a for a in client.get("/assessments", headers=participant()).json()["open"]}
    assert senior not in items
    assert items[paid]["locked"] is True and items[paid]["lock_reason"] == "paid_tier_required"
    assert items[free]["locked"] is False and items[free]["lock_reason"] is None

    items = {a["id"]: a for a in client.get("/assessments", headers=participant(tier="paid")).json()["open"]}
    assert items[paid]["locked"] is False

    items = {a["id"]: a for a in client.get("/assessments", headers=participant(cohort="senior")).json()["open"]}
    assert set(items) == {senior, contest}


def test_participant_view_hides_answer_key(client, clock, make_assessment):
    free = make_assessment(exam_payload())
    r = client.get(f"/assessments/{free}", headers=participant())
    a = r.json()["assessment"]
    assert a["question_count"] == 3 and a["total_marks"] == 6
    assert all("correct_index" not in q for q in a["questions"])
    assert all("explanation" not in q for q in a["questions"])
