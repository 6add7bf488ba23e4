from datetime import timedelta

from conftest import ADMIN, T0, contest_payload, exam_payload, participant


def _take(client, aid, who, answers):
    client.post(f"/assessments/{aid}/attempt", headers=participant(who))
    r = client.post(f"/assessments/{aid}/submit-test", json={"answers": answers}, headers=participant(who))
    assert r.json()["ok"] is True, r.text


def _run_exam(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=1))
    for who in ("p1", "p2", "p3"):
        client.post(f"/assessments/{aid}/attempt", headers=participant(who))

    clock.advance(minutes=5)
    client.post(f"/assessments/{aid}/submit-test", json={"answers": [1, 0, 0]}, headers=participant("p2"))
    clock.advance(minutes=5)
    client.post(f"/assessments/{aid}/submit-test", json={"answers": [1, 0, 0]}, headers=participant("p1"))
    client.post(f"/assessments/{aid}/submit-test", json={"answers": [1, 1, 1]}, headers=participant("p3"))
    return aid


def test_publish_while_open_is_refused(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=2))
    r = client.post(f"/admin/assessments/{aid}/publish", headers=ADMIN)
    assert r.status_code == 409 and r.json()["error"] == "invalid_state"

    r = client.get(f"/admin/assessments/{aid}", headers=ADMIN)
    assert r.json()["assessment"]["results_published"] is False


def test_leaderboard_hidden_until_published(client, clock, make_assessment):
    aid = _run_exam(client, clock, make_assessment)
    clock.set(T0 + timedelta(hours=25))
    r = client.get(f"/assessments/{aid}/leaderboard", headers=participant())
    assert r.status_code == 409 and r.json()["error"] == "not_yet_published"


def test_publish_then_leaderboard(client, clock, make_assessment):
    aid = _run_exam(client, clock, make_assessment)
    clock.set(T0 + timedelta(hours=25))

    r = client.post(f"/admin/assessments/{aid}/publish", headers=ADMIN)
    assert r.status_code == 200
    a = r.json()["assessment"]
    assert a["results_published"] is True and a["state"] == "finalized"

    r = client.get(f"/assessments/{aid}/leaderboard", headers=participant())
    assert r.status_code == 200
    b = r.json()
    assert b["tie_break"] == "earliest_submission"
    rows = [(e["rank"], e["participant_id"], e["score"]) for e in b["entries"]]
    # equal scores fall back to who submitted first
    assert rows == [(1, "p2", 6), (2, "p1", 6), (3, "p3", 2)]
    assert b["entries"][0]["reward"]["title"] == "1st Place"
    assert b["entries"][1]["reward"]["prize"] == "Book"
    assert b["entries"][2]["reward"] is None
    assert b["entries"][2]["percentage"] == 33


def test_leaderboard_limit(client, clock, make_assessment):
    aid = _run_exam(client, clock, make_assessment)
    clock.set(T0 + timedelta(hours=25))
    client.post(f"/admin/assessments/{aid}/publish", headers=ADMIN)

    r = client.get(f"/assessments/{aid}/leaderboard?limit=1", headers=participant())
    assert [e["participant_id"] for e in r.json()["entries"]] == ["p2"]


def test_publish_twice_is_refused(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=25))
    assert client.post(f"/admin/assessments/{aid}/publish", headers=ADMIN).status_code == 200
    r = client.post(f"/admin/assessments/{aid}/publish", headers=ADMIN)
    assert r.status_code == 409 and r.json()["error"] == "invalid_state"


def test_my_submission_redacted_until_published(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=1))
    _take(client, aid, "p1", [1, 0, 0])

    r = client.get(f"/assessments/{aid}/my-submission", headers=participant())
    s = r.json()["submission"]
    assert s["results_published"] is False
    assert s["score"] is None and s["percentage"] is None
    assert s["answers"] == [1, 0, 0]

    clock.set(T0 + timedelta(hours=25))
    client.post(f"/admin/assessments/{aid}/publish", headers=ADMIN)
    s = client.get(f"/assessments/{aid}/my-submission", headers=participant()).json()["submission"]
    assert s["results_published"] is True and s["score"] == 6


def test_my_submission_missing(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    r = client.get(f"/assessments/{aid}/my-submission", headers=participant())
    assert r.status_code == 404


def test_history_lists_own_submissions(client, clock, make_assessment):
    exam = make_assessment(exam_payload())
    contest = make_assessment(contest_payload())
    clock.set(T0 + timedelta(hours=1))
    _take(client, exam, "p1", [1, 0, 0])
    _take(client, exam, "p2", [0, 0, 0])
    clock.advance(minutes=1)
    body = {"form_responses": [{"field_id": "url", "value": "https://example.com"}]}
    client.post(f"/assessments/{contest}/submit-contest", json=body, headers=participant("p1"))

    r = client.get("/submissions/mine", headers=participant("p1"))
    b = r.json()
    assert b["count"] == 2
    assert [s["assessment_id"] for s in b["items"]] == [contest, exam]
    assert all(s["score"] is None for s in b["items"])


def test_admin_lists_all_submissions(client, clock, make_assessment):
    aid = _run_exam(client, clock, make_assessment)
    r = client.get(f"/admin/assessments/{aid}/submissions", headers=ADMIN)
    b = r.json()
    assert b["count"] == 3
    # admins always see scores
    assert {s["participant_id"]: s["score"] for s in b["items"]} == {"p1": 6, "p2": 6, "p3": 2}


# ---------- contests ----------


def _enter(client, aid, who):
    body = {"form_responses": [{"field_id": "url", "value": f"https://example.com/{who}"}]}
    r = client.post(f"/assessments/{aid}/submit-contest", json=body, headers=participant(who))
    assert r.json()["ok"] is True, r.text


def _evaluate(client, aid, who, marks, feedback=None):
    return client.post(
        f"/admin/assessments/{aid}/submissions/{who}/evaluate",
        json={"marks": marks, "feedback": feedback, "evaluated_by": "judge"},
        headers=ADMIN,
    )


def test_contest_evaluation_flow(client, clock, make_assessment):
    aid = make_assessment(contest_payload())
    clock.set(T0 + timedelta(days=1))
    for who in ("p1", "p2", "p3"):
        _enter(client, aid, who)

    r = _evaluate(client, aid, "p1", 80)
    assert r.status_code == 409 and r.json()["error"] == "invalid_state"

    clock.set(T0 + timedelta(days=7))
    r = _evaluate(client, aid, "p1", 80, "Clear structure")
    assert r.status_code == 200
    ev = r.json()["submission"]["evaluation"]
    assert ev["marks"] == 80 and ev["feedback"] == "Clear structure" and ev["evaluated_by"] == "judge"

    assert _evaluate(client, aid, "p2", 95).status_code == 200
    r = _evaluate(client, aid, "p2", 101)
    assert r.status_code == 422 and r.json()["reason"] == "marks"
    assert _evaluate(client, aid, "ghost", 10).status_code == 404

    # re-evaluation replaces the marks
    assert _evaluate(client, aid, "p1", 85).json()["submission"]["evaluation"]["marks"] == 85

    s = client.get(f"/assessments/{aid}/my-submission", headers=participant("p1")).json()["submission"]
    assert s["evaluation"] is None

    assert client.post(f"/admin/assessments/{aid}/publish", headers=ADMIN).status_code == 200
    r = _evaluate(client, aid, "p3", 50)
    assert r.status_code == 409

    b = client.get(f"/assessments/{aid}/leaderboard", headers=participant()).json()
    assert b["kind"] == "contest"
    # unevaluated entries stay off the board
    assert [(e["participant_id"], e["score"], e["total_marks"]) for e in b["entries"]] == [
        ("p2", 95, 100),
        ("p1", 85, 100),
    ]

    s = client.get(f"/assessments/{aid}/my-submission", headers=participant("p1")).json()["submission"]
    assert s["evaluation"]["marks"] == 85 and s["evaluation"]["feedback"] is None


def test_evaluate_test_is_wrong_kind(client, clock, make_assessment):
    aid = make_assessment(exam_payload())
    clock.set(T0 + timedelta(hours=25))
    r = _evaluate(client, aid, "p1", 5)
    assert r.status_code == 409 and r.json()["error"] == "wrong_kind"
