from app import create_app
from models import Question, Questionnaire, QuestionOption, Skill, User, db

# Demo content: one skill with a short DISC-style questionnaire
DEMO_QUESTIONS = [
    (
        "In a meeting that is running long, you usually...",
        [
            ("A", "Push the group to a decision"),
            ("B", "Lighten the mood and keep people engaged"),
            ("C", "Check that everyone has been heard"),
            ("D", "Bring the discussion back to the facts"),
        ],
    ),
    (
        "When you give feedback, you focus on...",
        [
            ("A", "The result that needs to change"),
            ("B", "Encouragement and energy"),
            ("C", "How the person is feeling"),
            ("D", "Specific, accurate detail"),
        ],
    ),
    (
        "Under pressure, your messages tend to be...",
        [
            ("A", "Short and direct"),
            ("B", "Enthusiastic"),
            ("C", "Calm and supportive"),
            ("D", "Structured and precise"),
        ],
    ),
]

app = create_app()

with app.app_context():
    db.create_all()

    if not User.query.filter_by(email="demo@mentorai.app").first():
        u = User(name="Demo User", email="demo@mentorai.app", verified=True)
        u.set_password("demo123")
        db.session.add(u)

    if not User.query.filter_by(email="admin@mentorai.app").first():
        a = User(name="Demo Admin", email="admin@mentorai.app", verified=True, is_admin=True)
        a.set_password("admin123")
        db.session.add(a)

    if not Skill.query.filter_by(skill_name="Communication").first():
        skill = Skill(skill_name="Communication")
        db.session.add(skill)
        db.session.flush()

        qn = Questionnaire(
            skill_id=skill.id,
            framework_name="DISC-lite",
            description="A quick look at how you communicate at work.",
        )
        db.session.add(qn)
        db.session.flush()

        for order, (text, options) in enumerate(DEMO_QUESTIONS, start=1):
            q = Question(questionnaire_id=qn.id, question_text=text, question_order=order)
            db.session.add(q)
            db.session.flush()
            for letter, option_text in options:
                db.session.add(QuestionOption(question_id=q.id, option_letter=letter, option_text=option_text))

    db.session.commit()
    print("Seed complete.")
