from datetime import datetime, timedelta

from conftest import T0, contest_payload, exam_payload, participant


def _ts(s):
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def test_start_before_live_is_refused(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 - timedelta(seconds=1))
    r = client.post(f"/assessments/{aid}/attempt", headers=participant())
    assert r.status_code == 409 and r.json()["error"] == "not_yet_live"


def test_start_sets_deadline_from_duration(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=1))
    r = client.post(f"/assessments/{aid}/attempt", headers=participant())
    assert r.status_code == 200
    b = r.json()
    assert b["ok"] is True
    assert _ts(b["attempt"]["started_at"]) == T0 + timedelta(hours=1)
    assert _ts(b["attempt"]["deadline"]) == T0 + timedelta(hours=1, minutes=30)
    assert b["attempt"]["answers"] is None


def test_deadline_capped_at_expiry(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=23, minutes=50))
    r = client.post(f"/assessments/{aid}/attempt", headers=participant())
    assert _ts(r.json()["attempt"]["deadline"]) == T0 + timedelta(hours=24)


def test_start_at_live_instant_is_open(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0)
    r = client.post(f"/assessments/{aid}/attempt", headers=participant())
    assert r.status_code == 200 and r.json()["ok"] is True


def test_start_after_expiry_is_closed(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=24))
    r = client.post(f"/assessments/{aid}/attempt", headers=participant())
    assert r.status_code == 409 and r.json()["error"] == "closed"


def test_second_start_returns_existing_attempt(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=1))
    first = client.post(f"/assessments/{aid}/attempt", headers=participant()).json()

    clock.advance(minutes=5)
    r = client.post(f"/assessments/{aid}/attempt", headers=participant())
    b = r.json()
    assert r.status_code == 200
    assert b["ok"] is False and b["error"] == "attempt_in_progress"
    # deadline is not reset by a second start
    assert b["attempt"]["deadline"] == first["attempt"]["deadline"]


def test_cohort_mismatch_denied(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=1))
    r = client.post(f"/assessments/{aid}/attempt", headers=participant(cohort="senior"))
    assert r.status_code == 403
    assert r.json()["error"] == "admission_denied" and r.json()["reason"] == "cohort_mismatch"


def test_paid_test_requires_active_tier(client, clock, make_assessment):
    aid = make_assessment(exam_payload(is_paid=True))
    clock.set(T0 + timedelta(hours=1))

    r = client.post(f"/assessments/{aid}/attempt", headers=participant(tier="free"))
    assert r.status_code == 403
    assert r.json()["error"] == "admission_denied" and r.json()["reason"] == "paid_tier_required"

    lapsed = (T0 - timedelta(days=1)).isoformat()
    r = client.post(f"/assessments/{aid}/attempt", headers=participant(tier="paid", paid_until=lapsed))
    assert r.status_code == 403

    r = client.post(f"/assessments/{aid}/attempt", headers=participant(tier="paid"))
    assert r.status_code == 200 and r.json()["ok"] is True


def test_contest_has_no_attempts(client, clock, make_assessment):
    aid = make_assessment(contest_payload())
    clock.set(T0 + timedelta(hours=1))
    r = client.post(f"/assessments/{aid}/attempt", headers=participant())
    assert r.status_code == 409 and r.json()["error"] == "wrong_kind"


def test_unknown_assessment(client, clock):
    r = client.post("/assessments/nope/attempt", headers=participant())
    assert r.status_code == 404 and r.json()["error"] == "not_found"


def test_participant_headers_required(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    r = client.post(f"/assessments/{aid}/attempt", headers={"x-api-key": "client-key"})
    assert r.status_code == 400

    r = client.post(f"/assessments/{aid}/attempt", headers={"x-participant-id": "p1"})
    assert r.status_code == 401


def test_save_progress_round_trip(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=1))

    r = client.put(f"/assessments/{aid}/attempt/answers", json={"answers": [1]}, headers=participant())
    assert r.status_code == 409 and r.json()["error"] == "no_active_attempt"

    client.post(f"/assessments/{aid}/attempt", headers=participant())
    clock.advance(minutes=3)
    r = client.put(f"/assessments/{aid}/attempt/answers", json={"answers": [1, None, 9]}, headers=participant())
    b = r.json()
    assert r.status_code == 200 and b["ok"] is True
    # out-of-range choices are stored as unanswered
    assert b["attempt"]["answers"] == [1, None, None]
    assert _ts(b["attempt"]["synced_at"]) == T0 + timedelta(hours=1, minutes=3)


def test_save_progress_after_grace_is_closed(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=1))
    client.post(f"/assessments/{aid}/attempt", headers=participant())

    clock.advance(minutes=30, seconds=31)
    r = client.put(f"/assessments/{aid}/attempt/answers", json={"answers": [1]}, headers=participant())
    assert r.status_code == 409 and r.json()["error"] == "closed"


def test_save_progress_after_tier_lapse_denied(client, clock, make_assessment):
    aid = make_assessment(exam_payload(is_paid=True))
    clock.set(T0 + timedelta(hours=1))
    headers = participant(tier="paid", paid_until=(T0 + timedelta(hours=1, minutes=5)).isoformat())
    client.post(f"/assessments/{aid}/attempt", headers=headers)

    clock.advance(minutes=2)
    r = client.put(f"/assessments/{aid}/attempt/answers", json={"answers": [1]}, headers=headers)
    assert r.json()["ok"] is True

    clock.advance(minutes=10)
    r = client.put(f"/assessments/{aid}/attempt/answers", json={"answers": [1, 0]}, headers=headers)
    b = r.json()
    assert r.status_code == 403 and b["reason"] == "paid_tier_required"
