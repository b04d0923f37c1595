"""
Tests for signup / login / logout, email verification and the session context
"""
from conftest import get_user, login

from models import User, db
from modules.auth.email_utils import make_verification_token
from modules.auth.session_context import SIGNED_IN, SIGNED_OUT, on_session_change


def _signup(client, **overrides):
    data = {"name": "New Person", "email": "New@Example.com", "password": "secret123"}
    data.update(overrides)
    return client.post("/signup", data=data)


def test_signup_creates_user_and_logs_in(app, client):
    resp = _signup(client)
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")

    with app.app_context():
        u = User.query.filter_by(email="new@example.com").one()
        assert u.verified is False
        assert u.current_phase == 1
        assert u.completed_phases == []

    assert client.get("/dashboard").status_code == 200


def test_signup_validation(client, user_id):
    resp = _signup(client, name="")
    assert resp.status_code == 400
    assert b"All fields are required." in resp.data

    resp = _signup(client, password="123")
    assert resp.status_code == 400
    assert b"Password should be at least 6 characters." in resp.data

    resp = _signup(client, email="learner@example.com")
    assert resp.status_code == 400
    assert b"Email already registered." in resp.data


def test_login_rejects_bad_password(client, user_id):
    resp = login(client, password="wrong")
    assert resp.status_code == 401
    assert b"Invalid login credentials" in resp.data


def test_login_redirects_to_dashboard(client, user_id):
    resp = login(client)
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")


def test_login_honours_local_next_only(client, user_id):
    resp = client.post("/login?next=/assessment", data={"email": "learner@example.com", "password": "secret123"})
    assert resp.headers["Location"].endswith("/assessment")
    client.get("/logout")

    resp = client.post(
        "/login?next=https://evil.example.com/",
        data={"email": "learner@example.com", "password": "secret123"},
    )
    assert "evil.example.com" not in resp.headers["Location"]


def test_logout_returns_to_landing(logged_in):
    resp = logged_in.post("/logout")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/")
    assert logged_in.get("/dashboard").status_code == 302


def test_landing_redirects_signed_in_users(client, logged_in):
    assert logged_in.get("/").headers["Location"].endswith("/dashboard")


def test_verify_email_marks_user_verified(app, client, user_id):
    with app.test_request_context():
        token = make_verification_token("learner@example.com")
    resp = client.get(f"/verify/{token}")
    assert resp.status_code == 302
    assert get_user(app, user_id).verified is True


def test_verify_email_rejects_garbage(app, client, user_id):
    resp = client.get("/verify/not-a-token", follow_redirects=True)
    assert b"invalid or has expired" in resp.data
    assert get_user(app, user_id).verified is False


def test_unconfigured_social_provider(client):
    resp = client.get("/oauth/google", follow_redirects=True)
    assert b"Google login is not configured yet." in resp.data


def test_session_listeners_see_sign_in_and_out(app, client, user_id):
    events = []
    on_session_change(app, lambda event, ctx: events.append((event, ctx.email)))

    login(client)
    client.get("/logout")
    assert events == [(SIGNED_IN, "learner@example.com"), (SIGNED_OUT, "learner@example.com")]


def test_failing_listener_does_not_break_login(app, client, user_id):
    def boom(event, ctx):
        raise RuntimeError("listener bug")

    on_session_change(app, boom)
    assert login(client).status_code == 302


def test_user_loader_ignores_deleted_accounts(app, logged_in, user_id):
    with app.app_context():
        db.session.delete(db.session.get(User, user_id))
        db.session.commit()
    assert logged_in.get("/dashboard").status_code == 302
