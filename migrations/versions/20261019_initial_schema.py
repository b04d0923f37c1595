"""initial schema: users, assessment content, snapshots

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # "user" is a reserved word; Alembic/PG will auto-quote it when needed.
    op.create_table(
        "user",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=True),
        sa.Column("avatar_url", sa.String(length=512), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("current_phase", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("completed_phases", sa.JSON(), nullable=False),
        sa.Column("stripe_customer_id", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)
    op.create_index("ix_user_stripe_customer_id", "user", ["stripe_customer_id"])

    op.create_table(
        "skills",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("skill_name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_skills_skill_name", "skills", ["skill_name"])

    op.create_table(
        "questionnaires",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column(
            "skill_id",
            sa.String(length=32),
            sa.ForeignKey("skills.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("framework_name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_questionnaires_skill_id", "questionnaires", ["skill_id"])

    op.create_table(
        "questions",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column(
            "questionnaire_id",
            sa.String(length=32),
            sa.ForeignKey("questionnaires.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_order", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_questions_questionnaire_id", "questions", ["questionnaire_id"])

    op.create_table(
        "question_options",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column(
            "question_id",
            sa.String(length=32),
            sa.ForeignKey("questions.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("option_letter", sa.String(length=2), nullable=False),
        sa.Column("option_text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_question_options_question_id", "question_options", ["question_id"])

    op.create_table(
        "assessment_snapshot",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=32),
            sa.ForeignKey("user.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "key", name="uq_snapshot_user_key"),
    )
    op.create_index("ix_assessment_snapshot_user_id", "assessment_snapshot", ["user_id"])


def downgrade():
    op.drop_table("assessment_snapshot")
    op.drop_table("question_options")
    op.drop_table("questions")
    op.drop_table("questionnaires")
    op.drop_table("skills")
    op.drop_index("ix_user_stripe_customer_id", table_name="user")
    op.drop_index("ix_user_email", table_name="user")
    op.drop_table("user")
