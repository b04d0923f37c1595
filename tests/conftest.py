"""
Pytest configuration and fixtures
"""
import pytest

from app import create_app
from models import Question, Questionnaire, QuestionOption, Skill, User, db

PASSWORD = "secret123"


class FakeBilling:
    """Stands in for StripeBilling; records what the app asked for."""

    def __init__(self, customer_id=None, subscription=None, configured=True):
        self.customer_id = customer_id
        self.subscription = subscription
        self._configured = configured
        self.checkout_calls = []
        self.portal_calls = []
        self.lookups = 0

    @property
    def configured(self):
        return self._configured

    def find_customer(self, email):
        self.lookups += 1
        return self.customer_id

    def active_subscription(self, customer_id):
        return self.subscription

    def create_checkout_session(self, **params):
        self.checkout_calls.append(params)
        return "https://checkout.test/session/cs_test_1"

    def create_portal_session(self, customer_id, return_url):
        self.portal_calls.append((customer_id, return_url))
        return "https://billing.test/portal/bps_1"


class RecordingScorer:
    def __init__(self, fail=False):
        self.fail = fail
        self.payloads = []

    def __call__(self, payload):
        self.payloads.append(payload)
        if self.fail:
            raise RuntimeError("scoring backend unavailable")
        return {
            "summary": "You communicate directly and decisively.",
            "profile_type": "Style A",
            "strengths": ["Clarity"],
            "growth_areas": ["Listening"],
            "recommendations": ["Pause before replying."],
            "learning_path": [
                {"title": "Active listening", "description": "Practice reflecting back.", "duration_weeks": 2},
            ],
            "meta": {"live_ai": False},
        }


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "MOCK": True,
            "AUTO_MIGRATE": False,
            "ADMIN_EMAILS": "",
            "STRIPE_SECRET_KEY": None,
        }
    )
    app.extensions["mentor_billing"] = FakeBilling(configured=False)
    app.extensions["mentor_scorer"] = RecordingScorer()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def scorer(app):
    return app.extensions["mentor_scorer"]


def make_user(app, email="learner@example.com", name="Lee Learner", **fields):
    with app.app_context():
        u = User(email=email, name=name, **fields)
        u.set_password(PASSWORD)
        db.session.add(u)
        db.session.commit()
        return u.id


def login(client, email="learner@example.com", password=PASSWORD):
    return client.post("/login", data={"email": email, "password": password})


@pytest.fixture
def user_id(app):
    return make_user(app)


@pytest.fixture
def logged_in(client, user_id):
    login(client)
    return client


@pytest.fixture
def admin_client(app, client):
    make_user(app, email="admin@example.com", name="Ada Admin", is_admin=True)
    login(client, email="admin@example.com")
    return client


def get_user(app, user_id):
    with app.app_context():
        u = db.session.get(User, user_id)
        db.session.expunge(u)
        return u


def seed_communication(app):
    """Communication skill with a three-question DISC-lite questionnaire."""
    with app.app_context():
        skill = Skill(skill_name="Communication")
        db.session.add(skill)
        db.session.flush()
        qn = Questionnaire(skill_id=skill.id, framework_name="DISC-lite", description=None)
        db.session.add(qn)
        db.session.flush()

        question_ids = []
        # inserted out of order on purpose
        for order, text in ((2, "How do you give feedback?"), (1, "How do you run meetings?"), (3, "Under pressure you...")):
            q = Question(questionnaire_id=qn.id, question_text=text, question_order=order)
            db.session.add(q)
            db.session.flush()
            for letter in ("A", "B", "C", "D"):
                db.session.add(QuestionOption(question_id=q.id, option_letter=letter, option_text=f"Option {letter}"))
            question_ids.append(q.id)
        db.session.commit()
        return {"skill_id": skill.id, "questionnaire_id": qn.id, "question_ids": question_ids}
