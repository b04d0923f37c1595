# modules/assessment/flow.py
"""
Assessment-taking state machine.

Pure Python (no Flask), so the routes own persistence and the tests can
drive it directly:

    idle ──select──▶ questions_loading ──finish_load──▶ answering_incomplete
      ▲                 │                                  │  ▲
      │ select("")      └─fail_load─▶ error ─retry─┐       ▼  │ record_answer
      │                                  ▲         │  answering_complete
      │                                  │         │       │
      └──────────────────────────────────┴─────────┘   submit
                                                           ▼
                                    submitted ◀──────── submitting
                                                  (failure → answering_complete)

Every skill selection issues a new load token. A load result is applied only
when it carries the current token, so a superseded fetch can never overwrite
the newer selection.
"""
from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, List, Optional

from modules.common.errors import (
    MentorError,
    NotFoundError,
    RemoteCallError,
    ValidationError,
)

IDLE = "idle"
QUESTIONS_LOADING = "questions_loading"
ANSWERING_INCOMPLETE = "answering_incomplete"
ANSWERING_COMPLETE = "answering_complete"
SUBMITTING = "submitting"
SUBMITTED = "submitted"
ERROR = "error"

STATES = (
    IDLE,
    QUESTIONS_LOADING,
    ANSWERING_INCOMPLETE,
    ANSWERING_COMPLETE,
    SUBMITTING,
    SUBMITTED,
    ERROR,
)

# error kinds
NOT_FOUND = "not_found"
LOAD_FAILED = "load_failed"
SUBMIT_FAILED = "submit_failed"

MSG_SELECT_SKILL = "Please select a skill to assess."
MSG_ANSWER_ALL = "Please answer all questions before submitting."
MSG_LOAD_FAILED = "Failed to load assessment questions"
MSG_NOT_FOUND = "No questionnaire was found for this skill."
MSG_SUBMIT_FAILED = "Failed to submit assessment. Please try again."


def _new_token() -> str:
    return uuid.uuid4().hex


def _sorted_questions(questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # stable: equal orders keep their fetch order
    return sorted(questions or [], key=lambda q: int(q.get("question_order") or 0))


class AssessmentFlow:
    def __init__(self):
        self.state: str = IDLE
        self.skill_id: Optional[str] = None
        self.skill_name: Optional[str] = None
        self.questionnaire: Optional[Dict[str, Any]] = None
        self.questions: List[Dict[str, Any]] = []
        self.answers: Dict[str, str] = {}
        self.load_token: Optional[str] = None
        self.error: Optional[Dict[str, str]] = None

    # ------------------------------------------------------------------
    # Skill selection / loading
    # ------------------------------------------------------------------
    def select_skill(self, skill_id: str | None, skill_name: str | None = None) -> Optional[str]:
        """
        Pick a skill (or clear the selection with an empty id).

        Always discards in-progress answers. Returns the load token the caller
        must hand back to finish_load / fail_load, or None when cleared.
        """
        if self.state == SUBMITTING:
            return None

        self.answers = {}
        self.questions = []
        self.questionnaire = None
        self.error = None

        skill_id = (skill_id or "").strip()
        if not skill_id:
            self.skill_id = None
            self.skill_name = None
            self.load_token = None
            self.state = IDLE
            return None

        self.skill_id = skill_id
        self.skill_name = skill_name
        self.load_token = _new_token()
        self.state = QUESTIONS_LOADING
        return self.load_token

    def finish_load(
        self,
        token: str,
        questionnaire: Dict[str, Any],
        questions: List[Dict[str, Any]],
    ) -> bool:
        if token != self.load_token or self.state != QUESTIONS_LOADING:
            return False
        self.questionnaire = dict(questionnaire)
        self.questions = _sorted_questions(questions)
        self.answers = {}
        self.error = None
        self._refresh_answering_state()
        return True

    def fail_load(self, token: str, exc: MentorError | Exception) -> bool:
        if token != self.load_token or self.state != QUESTIONS_LOADING:
            return False
        if isinstance(exc, NotFoundError):
            self.error = {"kind": NOT_FOUND, "message": exc.message or MSG_NOT_FOUND}
        else:
            self.error = {"kind": LOAD_FAILED, "message": MSG_LOAD_FAILED}
        self.questions = []
        self.questionnaire = None
        self.state = ERROR
        return True

    def retry(self) -> Optional[str]:
        """Re-enter questions_loading for the same skill after a load error."""
        if self.state != ERROR or not self.skill_id:
            return None
        self.error = None
        self.load_token = _new_token()
        self.state = QUESTIONS_LOADING
        return self.load_token

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------
    def _question(self, question_id: str) -> Optional[Dict[str, Any]]:
        for q in self.questions:
            if q.get("id") == question_id:
                return q
        return None

    def record_answer(self, question_id: str, option_code: str | None) -> None:
        if self.state not in (ANSWERING_INCOMPLETE, ANSWERING_COMPLETE):
            raise ValidationError(MSG_SELECT_SKILL)

        q = self._question(question_id)
        if q is None:
            raise ValidationError("Unknown question.")

        code = (option_code or "").strip().upper()
        if not code:
            raise ValidationError(MSG_ANSWER_ALL)

        letters = {(o.get("option_letter") or "").upper() for o in q.get("options") or []}
        if letters and code not in letters:
            raise ValidationError("Please choose one of the listed options.")

        self.answers[question_id] = code
        self._refresh_answering_state()

    def missing_answers(self) -> List[Dict[str, Any]]:
        return [q for q in self.questions if not self.answers.get(q.get("id"))]

    @property
    def is_complete(self) -> bool:
        if not self.questions:
            return False
        ids = {q.get("id") for q in self.questions}
        if set(self.answers.keys()) != ids:
            return False
        return all(self.answers.get(i) for i in ids)

    @property
    def can_submit(self) -> bool:
        return self.state == ANSWERING_COMPLETE

    def _refresh_answering_state(self) -> None:
        self.state = ANSWERING_COMPLETE if self.is_complete else ANSWERING_INCOMPLETE

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    def build_payload(self) -> Dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "skill_name": self.skill_name,
            "framework_name": (self.questionnaire or {}).get("framework_name"),
            "responses": [
                {
                    "question_text": q.get("question_text"),
                    "selected_answer": self.answers.get(q.get("id")),
                    "question_order": q.get("question_order"),
                }
                for q in self.questions
            ],
        }

    def begin_submit(self) -> Optional[Dict[str, Any]]:
        """
        Validate and enter `submitting`. Returns the payload, or None when a
        submission is already in flight (the second attempt is suppressed).
        """
        if self.state == SUBMITTING:
            return None
        if not self.skill_id or not self.questionnaire:
            raise ValidationError(MSG_SELECT_SKILL)
        if not self.is_complete:
            raise ValidationError(MSG_ANSWER_ALL)

        self.error = None
        self.state = SUBMITTING
        return self.build_payload()

    def submit(self, scorer: Callable[[Dict[str, Any]], Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """
        Validate, enter `submitting` and hand the payload to `scorer`.

        Returns the scorer's result (None if a submission is already in
        flight). The flow stays in `submitting` so the caller can persist the
        result before calling finish_submit. A scorer failure moves the flow
        back to answering_complete and raises RemoteCallError.
        """
        payload = self.begin_submit()
        if payload is None:
            return None
        try:
            return scorer(payload)
        except Exception as e:
            self.fail_submit()
            raise RemoteCallError(MSG_SUBMIT_FAILED) from e

    def finish_submit(self) -> None:
        if self.state == SUBMITTING:
            self.state = SUBMITTED

    def fail_submit(self) -> None:
        if self.state != SUBMITTING:
            return
        self.error = {"kind": SUBMIT_FAILED, "message": MSG_SUBMIT_FAILED}
        self.state = ANSWERING_COMPLETE

    # ------------------------------------------------------------------
    # Persistence between requests
    # ------------------------------------------------------------------
    def to_state(self) -> Dict[str, Any]:
        """Small, cookie-friendly dict; question sets are re-hydrated."""
        return {
            "state": self.state,
            "skill_id": self.skill_id,
            "skill_name": self.skill_name,
            "questionnaire_id": (self.questionnaire or {}).get("id"),
            "answers": dict(self.answers),
            "load_token": self.load_token,
            "error": self.error,
        }

    @classmethod
    def from_state(cls, data: Dict[str, Any] | None) -> "AssessmentFlow":
        flow = cls()
        data = data or {}
        state = data.get("state")
        flow.state = state if state in STATES else IDLE
        flow.skill_id = data.get("skill_id")
        flow.skill_name = data.get("skill_name")
        flow.answers = dict(data.get("answers") or {})
        flow.load_token = data.get("load_token")
        flow.error = data.get("error")
        # a request that died mid-submit must not leave the flow locked
        if flow.state == SUBMITTING:
            flow.state = ANSWERING_COMPLETE
        return flow

    def hydrate(self, questionnaire: Dict[str, Any], questions: List[Dict[str, Any]]) -> None:
        """Re-attach the question set after from_state; drops stale answers."""
        self.questionnaire = dict(questionnaire)
        self.questions = _sorted_questions(questions)
        letters = {
            q.get("id"): {(o.get("option_letter") or "").upper() for o in q.get("options") or []}
            for q in self.questions
        }
        # same rule as record_answer: a question without options accepts any code
        self.answers = {
            k: v
            for k, v in self.answers.items()
            if k in letters and v and (not letters[k] or v in letters[k])
        }
        if self.state in (ANSWERING_INCOMPLETE, ANSWERING_COMPLETE):
            self._refresh_answering_state()
