# modules/journey/phases.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError

from models import PHASES, User, db
from modules.common.errors import RemoteCallError, ValidationError

log = logging.getLogger(__name__)

# Phase table shown on the dashboard (id, title, description, premium, endpoint)
PHASE_TABLE: List[Dict[str, Any]] = [
    {
        "id": 1,
        "title": "AI-Powered Assessment",
        "description": "Take our comprehensive assessment to identify your unique strengths and growth areas.",
        "is_premium": False,
        "endpoint": "assessment.index",
    },
    {
        "id": 2,
        "title": "Assessment Results",
        "description": "Review your personalized results and insights from the AI analysis.",
        "is_premium": False,
        "endpoint": "journey.results",
    },
    {
        "id": 3,
        "title": "Personalized Learning Path",
        "description": "Get your customized learning journey tailored to your specific needs and goals.",
        "is_premium": True,
        "endpoint": "journey.learning_path",
    },
]

COMPLETED = "completed"
ACTIVE = "active"
LOCKED = "locked"


def next_completed(completed: List[int] | None, phase: int) -> List[int]:
    """
    Completed set after advancing to `phase`: adds phase - 1 once, keeps only
    positive known phase numbers. Order of first appearance is preserved.
    """
    out: List[int] = []
    for p in list(completed or []) + [phase - 1]:
        try:
            p = int(p)
        except (TypeError, ValueError):
            continue
        if p > 0 and p in PHASES and p not in out:
            out.append(p)
    return out


def advance_phase(user: User, phase: int, commit: bool = True) -> User:
    """
    Move `user` to `phase` and mark `phase - 1` completed.

    Monotonic: the current phase never moves backwards (re-taking the
    assessment from phase 3 keeps phase 3). Idempotent on the completed set.
    Raises ValidationError when `phase` would skip a phase.
    """
    phase = max(min(int(phase), max(PHASES)), min(PHASES))
    current = int(user.current_phase or 1)
    if phase > current + 1:
        raise ValidationError("Please complete the previous phase first.")

    user.completed_phases = next_completed(user.completed_phases, phase)
    user.current_phase = max(current, phase)
    user.updated_at = datetime.utcnow()

    if commit:
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            log.exception("Phase update failed for user=%s", user.id)
            raise RemoteCallError("Could not update your progress.") from e
    return user


def phase_status(user: User, phase_id: int) -> str:
    completed = user.completed_set
    if phase_id in completed:
        return COMPLETED
    current = int(user.current_phase or 1)
    if phase_id == current and (phase_id == 1 or (phase_id - 1) in completed):
        return ACTIVE
    return LOCKED


def journey_cards(user: User, is_premium: bool) -> List[Dict[str, Any]]:
    cards = []
    for p in PHASE_TABLE:
        status = phase_status(user, p["id"])
        cards.append(
            dict(
                p,
                status=status,
                needs_premium=bool(p["is_premium"] and not is_premium),
            )
        )
    return cards


def progress_overview(user: User) -> Dict[str, int]:
    done = len(user.completed_set)
    return {
        "completed": done,
        "current_phase": int(user.current_phase or 1),
        "percent": round(done / len(PHASES) * 100),
    }
