"""
Tests for the /admin content managers
"""
from conftest import login, make_user, seed_communication

from models import Question, Questionnaire, QuestionOption, Skill, db


def _count(app, model):
    with app.app_context():
        return model.query.count()


def test_admin_requires_login(client):
    resp = client.get("/admin/")
    assert resp.status_code == 302
    assert "/login" in resp.headers["Location"]


def test_non_admin_is_forbidden(logged_in):
    assert logged_in.get("/admin/skills").status_code == 403


def test_admin_emails_grants_access(app, client):
    app.config["ADMIN_EMAILS"] = "Boss@Example.com, other@example.com"
    make_user(app, email="boss@example.com")
    login(client, email="boss@example.com")
    assert client.get("/admin/").status_code == 200


def test_unknown_panel_is_404(admin_client):
    assert admin_client.get("/admin/widgets").status_code == 404


def test_create_skill_trims_name(app, admin_client):
    resp = admin_client.post("/admin/skills", data={"skill_name": "  Leadership  "}, follow_redirects=True)
    assert b"Skill created successfully" in resp.data
    with app.app_context():
        assert [s.skill_name for s in Skill.query.all()] == ["Leadership"]


def test_blank_skill_name_is_rejected_without_insert(app, admin_client):
    resp = admin_client.post("/admin/skills", data={"skill_name": "   "}, follow_redirects=True)
    assert b"Please enter a skill name" in resp.data
    assert _count(app, Skill) == 0


def test_skills_listed_by_name(app, admin_client):
    for name in ("Writing", "Coaching", "Negotiation"):
        admin_client.post("/admin/skills", data={"skill_name": name})
    page = admin_client.get("/admin/skills").data
    assert page.index(b"Coaching") < page.index(b"Negotiation") < page.index(b"Writing")


def test_questionnaire_requires_fields_and_known_skill(app, admin_client):
    resp = admin_client.post(
        "/admin/questionnaires",
        data={"skill_id": "", "framework_name": "DISC-lite"},
        follow_redirects=True,
    )
    assert b"Please fill in all required fields" in resp.data

    resp = admin_client.post(
        "/admin/questionnaires",
        data={"skill_id": "missing", "framework_name": "DISC-lite"},
        follow_redirects=True,
    )
    assert b"Please choose an existing skill" in resp.data
    assert _count(app, Questionnaire) == 0


def test_questionnaire_empty_description_stored_as_null(app, admin_client):
    admin_client.post("/admin/skills", data={"skill_name": "Communication"})
    with app.app_context():
        skill_id = Skill.query.one().id

    admin_client.post(
        "/admin/questionnaires",
        data={"skill_id": skill_id, "framework_name": " DISC-lite ", "description": "   "},
    )
    with app.app_context():
        qn = Questionnaire.query.one()
        assert qn.framework_name == "DISC-lite"
        assert qn.description is None


def test_question_order_coerced_to_int(app, admin_client):
    ids = seed_communication(app)
    admin_client.post(
        "/admin/questions",
        data={"questionnaire_id": ids["questionnaire_id"], "question_text": "New one", "question_order": "abc"},
    )
    admin_client.post(
        "/admin/questions",
        data={"questionnaire_id": ids["questionnaire_id"], "question_text": "Later one", "question_order": " 7 "},
    )
    with app.app_context():
        assert Question.query.filter_by(question_text="New one").one().question_order == 1
        assert Question.query.filter_by(question_text="Later one").one().question_order == 7


def test_option_letter_is_uppercased(app, admin_client):
    ids = seed_communication(app)
    qid = ids["question_ids"][0]
    admin_client.post("/admin/options", data={"question_id": qid, "option_letter": " e ", "option_text": "Other"})
    with app.app_context():
        opt = QuestionOption.query.filter_by(option_text="Other").one()
        assert opt.option_letter == "E"


def test_option_letter_longer_than_two_is_rejected(app, admin_client):
    ids = seed_communication(app)
    before = _count(app, QuestionOption)
    resp = admin_client.post(
        "/admin/options",
        data={"question_id": ids["question_ids"][0], "option_letter": "abc", "option_text": "Too long"},
        follow_redirects=True,
    )
    assert b"Option letter must be at most 2 characters" in resp.data
    assert _count(app, QuestionOption) == before


def test_edit_in_place(app, admin_client):
    admin_client.post("/admin/skills", data={"skill_name": "Writting"})
    with app.app_context():
        skill_id = Skill.query.one().id

    page = admin_client.get(f"/admin/skills?edit={skill_id}")
    assert f"/admin/skills/{skill_id}/edit".encode() in page.data

    resp = admin_client.post(f"/admin/skills/{skill_id}/edit", data={"skill_name": "Writing"}, follow_redirects=True)
    assert b"Skill updated successfully" in resp.data
    with app.app_context():
        assert db.session.get(Skill, skill_id).skill_name == "Writing"


def test_edit_validates_like_create(app, admin_client):
    admin_client.post("/admin/skills", data={"skill_name": "Writing"})
    with app.app_context():
        skill_id = Skill.query.one().id

    resp = admin_client.post(f"/admin/skills/{skill_id}/edit", data={"skill_name": " "})
    assert f"edit={skill_id}" in resp.headers["Location"]
    with app.app_context():
        assert db.session.get(Skill, skill_id).skill_name == "Writing"


def test_delete_needs_explicit_confirmation(app, admin_client):
    admin_client.post("/admin/skills", data={"skill_name": "Writing"})
    with app.app_context():
        skill_id = Skill.query.one().id

    confirm = admin_client.get(f"/admin/skills/{skill_id}/delete")
    assert confirm.status_code == 200
    assert b"Are you sure you want to delete this skill?" in confirm.data
    assert _count(app, Skill) == 1

    resp = admin_client.post(f"/admin/skills/{skill_id}/delete", data={"confirm": "no"}, follow_redirects=True)
    assert b"Delete canceled." in resp.data
    assert _count(app, Skill) == 1

    admin_client.post(f"/admin/skills/{skill_id}/delete", data={})
    assert _count(app, Skill) == 1

    resp = admin_client.post(f"/admin/skills/{skill_id}/delete", data={"confirm": "yes"}, follow_redirects=True)
    assert b"Skill deleted successfully" in resp.data
    assert _count(app, Skill) == 0


def test_delete_with_children_is_refused(app, admin_client):
    ids = seed_communication(app)

    resp = admin_client.post(
        f"/admin/skills/{ids['skill_id']}/delete",
        data={"confirm": "yes"},
        follow_redirects=True,
    )
    assert b"it still has 1 questionnaire." in resp.data
    assert _count(app, Skill) == 1

    resp = admin_client.post(
        f"/admin/questions/{ids['question_ids'][0]}/delete",
        data={"confirm": "yes"},
        follow_redirects=True,
    )
    assert b"it still has 4 options." in resp.data
    assert _count(app, Question) == 3


def test_option_delete_has_no_restriction(app, admin_client):
    ids = seed_communication(app)
    with app.app_context():
        opt_id = QuestionOption.query.filter_by(question_id=ids["question_ids"][0]).first().id

    admin_client.post(f"/admin/options/{opt_id}/delete", data={"confirm": "yes"})
    with app.app_context():
        assert db.session.get(QuestionOption, opt_id) is None


def test_index_shows_counts(app, admin_client):
    seed_communication(app)
    resp = admin_client.get("/admin/")
    assert resp.status_code == 200
    assert b"Question Options" in resp.data
