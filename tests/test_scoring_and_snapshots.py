"""
Tests for the mock scorer and the keyed snapshot slot
"""
from models import AssessmentSnapshot
from modules.assessment.scoring import get_scorer, score_assessment
from modules.assessment.snapshots import ASSESSMENT_KEY, SnapshotStore

PAYLOAD = {
    "skill_id": "s1",
    "skill_name": "Communication",
    "framework_name": "DISC-lite",
    "responses": [
        {"question_text": "Q1", "selected_answer": "A", "question_order": 1},
        {"question_text": "Q2", "selected_answer": "A", "question_order": 2},
        {"question_text": "Q3", "selected_answer": "C", "question_order": 3},
    ],
}


def test_mock_scorer_is_deterministic(app):
    with app.app_context():
        first = score_assessment(PAYLOAD)
        second = score_assessment(PAYLOAD)

    for key in ("summary", "profile_type", "strengths", "growth_areas", "recommendations", "learning_path"):
        assert first[key] == second[key]
    assert first["profile_type"] == "Style A"
    assert first["meta"]["live_ai"] is False
    assert first["meta"]["inputs_digest"] == second["meta"]["inputs_digest"]
    assert all({"title", "description", "duration_weeks"} <= set(step) for step in first["learning_path"])


def test_get_scorer_prefers_registered_scorer(app, scorer):
    with app.app_context():
        assert get_scorer() is scorer
        app.extensions.pop("mentor_scorer")
        assert get_scorer() is score_assessment


def test_snapshot_put_overwrites(app, user_id):
    with app.app_context():
        store = SnapshotStore(user_id)
        assert store.get() is None

        store.put({"results": {"summary": "first"}})
        store.put({"results": {"summary": "second"}})

        assert store.get()["results"]["summary"] == "second"
        assert AssessmentSnapshot.query.filter_by(user_id=user_id, key=ASSESSMENT_KEY).count() == 1


def test_snapshot_clear(app, user_id):
    with app.app_context():
        store = SnapshotStore(user_id)
        store.put({"results": {}})
        store.clear()
        assert store.get() is None
