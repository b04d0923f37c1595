# modules/assessment/content.py
"""
Read side of the content store for the assessment flow.

Returns plain dicts so the flow (and the session) never hold ORM objects.
"""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

from sqlalchemy.exc import SQLAlchemyError

from models import Question, Questionnaire, Skill, db
from modules.common.errors import NotFoundError, RemoteCallError


def _questionnaire_dict(qn: Questionnaire) -> Dict[str, Any]:
    return {
        "id": qn.id,
        "skill_id": qn.skill_id,
        "framework_name": qn.framework_name,
        "description": qn.description,
    }


def _question_dict(q: Question) -> Dict[str, Any]:
    return {
        "id": q.id,
        "question_text": q.question_text,
        "question_order": q.question_order,
        "options": [
            {"id": o.id, "option_letter": o.option_letter, "option_text": o.option_text}
            for o in (q.options or [])
        ],
    }


def list_skills() -> List[Dict[str, str]]:
    try:
        rows = Skill.query.order_by(Skill.skill_name).all()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise RemoteCallError("Failed to load skills") from e
    return [{"id": s.id, "skill_name": s.skill_name} for s in rows]


def get_skill(skill_id: str) -> Dict[str, str] | None:
    try:
        s = db.session.get(Skill, skill_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        raise RemoteCallError("Failed to load skills") from e
    return {"id": s.id, "skill_name": s.skill_name} if s else None


def load_questions(questionnaire_id: str) -> List[Dict[str, Any]]:
    try:
        rows = (
            Question.query.filter_by(questionnaire_id=questionnaire_id)
            .order_by(Question.question_order, Question.created_at)
            .all()
        )
        return [_question_dict(q) for q in rows]
    except SQLAlchemyError as e:
        db.session.rollback()
        raise RemoteCallError("Failed to load assessment questions") from e


def load_questionnaire(questionnaire_id: str) -> Dict[str, Any] | None:
    try:
        qn = db.session.get(Questionnaire, questionnaire_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        raise RemoteCallError("Failed to load assessment questions") from e
    return _questionnaire_dict(qn) if qn else None


def load_assessment(skill_id: str) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """
    Questionnaire + ordered questions (with options) for one skill.

    Raises NotFoundError when the skill has no questionnaire. If an admin
    attached several, the oldest one wins.
    """
    try:
        qn = (
            Questionnaire.query.filter_by(skill_id=skill_id)
            .order_by(Questionnaire.created_at)
            .first()
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        raise RemoteCallError("Failed to load assessment questions") from e

    if qn is None:
        raise NotFoundError("No questionnaire was found for this skill.")

    return _questionnaire_dict(qn), load_questions(qn.id)
