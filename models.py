import uuid
from datetime import datetime

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import UniqueConstraint
from werkzeug.security import check_password_hash, generate_password_hash

db = SQLAlchemy()

PHASES = (1, 2, 3)


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------
# Users / profiles
# ---------------------------------------------------------------------
class User(UserMixin, db.Model):
    __tablename__ = "user"

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=True)
    avatar_url = db.Column(db.String(512), nullable=True)

    # Auth
    password_hash = db.Column(db.String(255), nullable=False)
    verified = db.Column(db.Boolean, default=False, nullable=False)

    # Flags
    is_premium = db.Column(db.Boolean, default=False, nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)

    # Journey: current phase (1..3) + completed phase numbers (set semantics)
    current_phase = db.Column(db.Integer, default=1, nullable=False)
    completed_phases = db.Column(db.JSON, default=list, nullable=False)

    # Billing
    stripe_customer_id = db.Column(db.String(120), index=True, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # helpers
    def set_password(self, pw: str):
        self.password_hash = generate_password_hash(pw)

    def check_password(self, pw: str) -> bool:
        return check_password_hash(self.password_hash, pw)

    @property
    def display_name(self) -> str:
        return self.name or (self.email or "").split("@")[0]

    @property
    def completed_set(self) -> set:
        return {int(p) for p in (self.completed_phases or [])}

    def __repr__(self):
        return f"<User {self.id} {self.email}>"


# ---------------------------------------------------------------------
# Assessment content (managed from /admin)
# ---------------------------------------------------------------------
class Skill(db.Model):
    __tablename__ = "skills"

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    skill_name = db.Column(db.String(200), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    questionnaires = db.relationship("Questionnaire", backref="skill", lazy=True)

    def __repr__(self):
        return f"<Skill {self.id} {self.skill_name}>"


class Questionnaire(db.Model):
    __tablename__ = "questionnaires"

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    skill_id = db.Column(
        db.String(32),
        db.ForeignKey("skills.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    framework_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    questions = db.relationship("Question", backref="questionnaire", lazy=True)

    def __repr__(self):
        return f"<Questionnaire {self.id} {self.framework_name}>"


class Question(db.Model):
    __tablename__ = "questions"

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    questionnaire_id = db.Column(
        db.String(32),
        db.ForeignKey("questionnaires.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    question_text = db.Column(db.Text, nullable=False)
    # Sort key only; duplicates are allowed
    question_order = db.Column(db.Integer, default=1, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    options = db.relationship(
        "QuestionOption",
        backref="question",
        lazy=True,
        order_by="QuestionOption.option_letter",
    )

    def __repr__(self):
        return f"<Question {self.id} order={self.question_order}>"


class QuestionOption(db.Model):
    __tablename__ = "question_options"

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    question_id = db.Column(
        db.String(32),
        db.ForeignKey("questions.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    option_letter = db.Column(db.String(2), nullable=False)
    option_text = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<QuestionOption {self.id} {self.option_letter}>"


# ---------------------------------------------------------------------
# Keyed snapshot slot (latest assessment submission + result per user)
# ---------------------------------------------------------------------
class AssessmentSnapshot(db.Model):
    __tablename__ = "assessment_snapshot"
    __table_args__ = (UniqueConstraint("user_id", "key", name="uq_snapshot_user_key"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.String(32),
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    key = db.Column(db.String(64), nullable=False)
    payload = db.Column(db.JSON, nullable=False, default=dict)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self):
        return f"<AssessmentSnapshot user={self.user_id} key={self.key}>"
