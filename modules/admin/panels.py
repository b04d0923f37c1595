# modules/admin/panels.py
"""
CRUD managers behind /admin.

Each panel knows its model, how to order and label its rows, how to turn a
submitted form into clean column values, and which child table blocks a
delete. Validation always runs before the database is touched.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from models import Question, Questionnaire, QuestionOption, Skill, db
from modules.common.errors import NotFoundError, RemoteCallError, ValidationError

log = logging.getLogger(__name__)

MSG_REQUIRED = "Please fill in all required fields"
MAX_OPTION_LETTER = 2


def _text(form, name: str) -> str:
    return (form.get(name) or "").strip()


def _order(raw: Any) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return 1


class Panel:
    """Base manager; subclasses fill in the model-specific bits."""

    key: str = ""
    label: str = ""
    label_plural: str = ""
    model = None
    parent_model = None
    parent_field: Optional[str] = None
    child_model = None
    child_field: Optional[str] = None
    child_label: str = ""

    # ---- reads ----
    def query(self):
        raise NotImplementedError

    def rows(self) -> List[Dict[str, Any]]:
        try:
            objs = self.query().all()
        except SQLAlchemyError as e:
            db.session.rollback()
            log.exception("Admin list failed panel=%s", self.key)
            raise RemoteCallError(f"Failed to fetch {self.label_plural.lower()}") from e
        return [self.row(o) for o in objs]

    def row(self, obj) -> Dict[str, Any]:
        raise NotImplementedError

    def display(self, obj) -> str:
        raise NotImplementedError

    def parent_choices(self) -> List[Tuple[str, str]]:
        if self.parent_model is None:
            return []
        parent = PANELS_BY_MODEL[self.parent_model]
        try:
            return [(p.id, parent.display(p)) for p in parent.query().all()]
        except SQLAlchemyError as e:
            db.session.rollback()
            raise RemoteCallError(f"Failed to fetch {parent.label_plural.lower()}") from e

    def get(self, obj_id: str):
        obj = db.session.get(self.model, obj_id)
        if obj is None:
            raise NotFoundError(f"{self.label} not found")
        return obj

    # ---- writes ----
    def clean(self, form) -> Dict[str, Any]:
        """Form -> column values; raises ValidationError."""
        raise NotImplementedError

    def _check_parent(self, values: Dict[str, Any]) -> None:
        if self.parent_model is None:
            return
        if db.session.get(self.parent_model, values[self.parent_field]) is None:
            parent = PANELS_BY_MODEL[self.parent_model]
            raise ValidationError(f"Please choose an existing {parent.label.lower()}")

    def create(self, form):
        values = self.clean(form)
        self._check_parent(values)
        obj = self.model(**values)
        try:
            db.session.add(obj)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            log.exception("Admin create failed panel=%s", self.key)
            raise RemoteCallError(f"Failed to create {self.label.lower()}") from e
        return obj

    def update(self, obj_id: str, form):
        values = self.clean(form)
        obj = self.get(obj_id)
        self._check_parent(values)
        try:
            for k, v in values.items():
                setattr(obj, k, v)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            log.exception("Admin update failed panel=%s id=%s", self.key, obj_id)
            raise RemoteCallError(f"Failed to update {self.label.lower()}") from e
        return obj

    def child_count(self, obj_id: str) -> int:
        if self.child_model is None:
            return 0
        return self.child_model.query.filter(
            getattr(self.child_model, self.child_field) == obj_id
        ).count()

    def delete(self, obj_id: str) -> None:
        obj = self.get(obj_id)
        children = self.child_count(obj_id)
        if children:
            noun = self.child_label if children == 1 else f"{self.child_label}s"
            raise ValidationError(
                f"Cannot delete this {self.label.lower()}: it still has {children} {noun}. "
                f"Delete those first."
            )
        try:
            db.session.delete(obj)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            log.exception("Admin delete failed panel=%s id=%s", self.key, obj_id)
            raise RemoteCallError(f"Failed to delete {self.label.lower()}") from e


class SkillPanel(Panel):
    key = "skills"
    label = "Skill"
    label_plural = "Skills"
    model = Skill
    child_model = Questionnaire
    child_field = "skill_id"
    child_label = "questionnaire"

    def query(self):
        return Skill.query.order_by(Skill.skill_name)

    def display(self, obj) -> str:
        return obj.skill_name

    def row(self, obj):
        return {"id": obj.id, "skill_name": obj.skill_name, "created_at": obj.created_at}

    def clean(self, form):
        name = _text(form, "skill_name")
        if not name:
            raise ValidationError("Please enter a skill name")
        return {"skill_name": name}


class QuestionnairePanel(Panel):
    key = "questionnaires"
    label = "Questionnaire"
    label_plural = "Questionnaires"
    model = Questionnaire
    parent_model = Skill
    parent_field = "skill_id"
    child_model = Question
    child_field = "questionnaire_id"
    child_label = "question"

    def query(self):
        return Questionnaire.query.order_by(Questionnaire.framework_name)

    def display(self, obj) -> str:
        skill = obj.skill.skill_name if obj.skill else "?"
        return f"{obj.framework_name} ({skill})"

    def row(self, obj):
        return {
            "id": obj.id,
            "skill_id": obj.skill_id,
            "parent_label": obj.skill.skill_name if obj.skill else "",
            "framework_name": obj.framework_name,
            "description": obj.description,
        }

    def clean(self, form):
        skill_id = _text(form, "skill_id")
        framework = _text(form, "framework_name")
        if not skill_id or not framework:
            raise ValidationError(MSG_REQUIRED)
        return {
            "skill_id": skill_id,
            "framework_name": framework,
            "description": _text(form, "description") or None,
        }


class QuestionPanel(Panel):
    key = "questions"
    label = "Question"
    label_plural = "Questions"
    model = Question
    parent_model = Questionnaire
    parent_field = "questionnaire_id"
    child_model = QuestionOption
    child_field = "question_id"
    child_label = "option"

    def query(self):
        return Question.query.order_by(Question.questionnaire_id, Question.question_order)

    def display(self, obj) -> str:
        text = obj.question_text or ""
        short = text if len(text) <= 60 else text[:57] + "..."
        return f"{obj.question_order}. {short}"

    def row(self, obj):
        qn = obj.questionnaire
        return {
            "id": obj.id,
            "questionnaire_id": obj.questionnaire_id,
            "parent_label": qn.framework_name if qn else "",
            "question_text": obj.question_text,
            "question_order": obj.question_order,
        }

    def clean(self, form):
        questionnaire_id = _text(form, "questionnaire_id")
        text = _text(form, "question_text")
        if not questionnaire_id or not text:
            raise ValidationError(MSG_REQUIRED)
        return {
            "questionnaire_id": questionnaire_id,
            "question_text": text,
            "question_order": _order(form.get("question_order")),
        }


class OptionPanel(Panel):
    key = "options"
    label = "Option"
    label_plural = "Question Options"
    model = QuestionOption
    parent_model = Question
    parent_field = "question_id"

    def query(self):
        return QuestionOption.query.order_by(QuestionOption.question_id, QuestionOption.option_letter)

    def display(self, obj) -> str:
        return f"{obj.option_letter}) {obj.option_text}"

    def row(self, obj):
        q = obj.question
        return {
            "id": obj.id,
            "question_id": obj.question_id,
            "parent_label": q.question_text if q else "",
            "option_letter": obj.option_letter,
            "option_text": obj.option_text,
        }

    def clean(self, form):
        question_id = _text(form, "question_id")
        letter = _text(form, "option_letter").upper()
        text = _text(form, "option_text")
        if not question_id or not letter or not text:
            raise ValidationError(MSG_REQUIRED)
        if len(letter) > MAX_OPTION_LETTER:
            raise ValidationError(f"Option letter must be at most {MAX_OPTION_LETTER} characters")
        return {"question_id": question_id, "option_letter": letter, "option_text": text}


PANELS: List[Panel] = [SkillPanel(), QuestionnairePanel(), QuestionPanel(), OptionPanel()]
PANELS_BY_KEY: Dict[str, Panel] = {p.key: p for p in PANELS}
PANELS_BY_MODEL = {p.model: p for p in PANELS}


def get_panel(key: str) -> Panel:
    panel = PANELS_BY_KEY.get(key)
    if panel is None:
        raise NotFoundError("Unknown admin panel")
    return panel
