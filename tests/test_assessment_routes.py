"""
End-to-end tests for taking an assessment through the web routes
"""
from conftest import RecordingScorer, get_user, seed_communication

from models import Skill, db
from modules.assessment.routes import FLOW_SESSION_KEY
from modules.assessment.snapshots import SnapshotStore
from modules.common.errors import RemoteCallError


def _answers(question_ids, letter="A"):
    return {f"answer_{qid}": letter for qid in question_ids}


def test_assessment_requires_login(client):
    resp = client.get("/assessment")
    assert resp.status_code == 302
    assert "/login" in resp.headers["Location"]


def test_communication_disc_lite_end_to_end(app, logged_in, user_id, scorer):
    ids = seed_communication(app)

    resp = logged_in.post("/assessment/select", data={"skill_id": ids["skill_id"]})
    assert resp.status_code == 302

    page = logged_in.get("/assessment")
    assert page.status_code == 200
    assert b"DISC-lite" in page.data
    assert b"How do you run meetings?" in page.data

    resp = logged_in.post("/assessment/submit", data=_answers(ids["question_ids"]))
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/results")

    payload = scorer.payloads[0]
    assert payload["skill_name"] == "Communication"
    assert payload["framework_name"] == "DISC-lite"
    assert [r["question_order"] for r in payload["responses"]] == [1, 2, 3]

    user = get_user(app, user_id)
    assert user.current_phase == 2
    assert user.completed_phases == [1]

    with app.app_context():
        snap = SnapshotStore(user_id).get()
    assert snap["framework_name"] == "DISC-lite"
    assert snap["results"]["summary"] == "You communicate directly and decisively."
    assert snap["timestamp"]

    with logged_in.session_transaction() as sess:
        assert FLOW_SESSION_KEY not in sess

    results = logged_in.get("/results")
    assert results.status_code == 200
    assert b"You communicate directly and decisively." in results.data


def test_partial_answers_are_rejected(app, logged_in, user_id, scorer):
    ids = seed_communication(app)
    logged_in.post("/assessment/select", data={"skill_id": ids["skill_id"]})

    resp = logged_in.post(
        "/assessment/submit",
        data=_answers(ids["question_ids"][:2]),
        follow_redirects=True,
    )
    assert b"Please answer all questions before submitting." in resp.data
    assert scorer.payloads == []
    assert get_user(app, user_id).current_phase == 1


def test_skill_without_questionnaire_shows_not_found(app, logged_in):
    with app.app_context():
        skill = Skill(skill_name="Negotiation")
        db.session.add(skill)
        db.session.commit()
        skill_id = skill.id

    logged_in.post("/assessment/select", data={"skill_id": skill_id})
    page = logged_in.get("/assessment")
    assert b"No questionnaire was found for this skill." in page.data
    assert b"Submit Assessment" not in page.data

    with logged_in.session_transaction() as sess:
        flow = sess[FLOW_SESSION_KEY]
    assert flow["state"] == "error"
    assert flow["error"]["kind"] == "not_found"


def test_scorer_failure_keeps_answers_and_allows_retry(app, logged_in, user_id):
    ids = seed_communication(app)
    app.extensions["mentor_scorer"] = RecordingScorer(fail=True)
    logged_in.post("/assessment/select", data={"skill_id": ids["skill_id"]})

    resp = logged_in.post("/assessment/submit", data=_answers(ids["question_ids"]), follow_redirects=True)
    assert b"Failed to submit assessment. Please try again." in resp.data

    with logged_in.session_transaction() as sess:
        flow = sess[FLOW_SESSION_KEY]
    assert flow["state"] == "answering_complete"
    assert len(flow["answers"]) == 3

    good = RecordingScorer()
    app.extensions["mentor_scorer"] = good
    resp = logged_in.post("/assessment/submit", data={})
    assert resp.headers["Location"].endswith("/results")
    assert len(good.payloads) == 1
    assert get_user(app, user_id).current_phase == 2


def test_failed_snapshot_write_leaves_phase_untouched(app, logged_in, user_id, scorer, monkeypatch):
    ids = seed_communication(app)
    logged_in.post("/assessment/select", data={"skill_id": ids["skill_id"]})

    def broken_put(self, payload, key=None):
        raise RemoteCallError("Could not save your assessment results.")

    monkeypatch.setattr(SnapshotStore, "put", broken_put)
    resp = logged_in.post("/assessment/submit", data=_answers(ids["question_ids"]), follow_redirects=True)
    assert b"Failed to submit assessment. Please try again." in resp.data

    user = get_user(app, user_id)
    assert user.current_phase == 1
    assert user.completed_phases == []
    with app.app_context():
        assert SnapshotStore(user_id).get() is None
    with logged_in.session_transaction() as sess:
        assert sess[FLOW_SESSION_KEY]["state"] == "answering_complete"


def test_changing_skill_discards_answers(app, logged_in):
    ids = seed_communication(app)
    logged_in.post("/assessment/select", data={"skill_id": ids["skill_id"]})
    logged_in.post("/assessment/answer", data={"question_id": ids["question_ids"][0], "option": "b"})

    with logged_in.session_transaction() as sess:
        assert list(sess[FLOW_SESSION_KEY]["answers"].values()) == ["B"]

    logged_in.post("/assessment/select", data={"skill_id": ""})
    with logged_in.session_transaction() as sess:
        assert sess[FLOW_SESSION_KEY]["answers"] == {}
        assert sess[FLOW_SESSION_KEY]["state"] == "idle"


def test_results_without_snapshot_redirects_to_assessment(logged_in):
    resp = logged_in.get("/results")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/assessment")
