# modules/assessment/scoring.py
"""
External scoring function: turns a submitted questionnaire into an analysis.

The result is opaque to the rest of the app; it is cached verbatim in the
snapshot store and rendered by /results and /learning-path. Live runs go
through the OpenAI chat completions API (JSON mode). In MOCK mode, or when
no OPENAI_API_KEY is set, a deterministic local result is returned instead.
"""
from __future__ import annotations

import hashlib
import json
import os
import textwrap
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from flask import current_app

OPENAI_MODEL_FAST = os.getenv("OPENAI_MODEL_FAST", "gpt-4o-mini")
MENTOR_AI_VERSION = os.getenv("MENTOR_AI_VERSION", "2025-Q4")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _inputs_digest(obj: Any) -> str:
    s = json.dumps(obj, sort_keys=True)[:5000]
    return "sha256:" + hashlib.sha256(s.encode("utf-8")).hexdigest()


def _use_mock() -> bool:
    if current_app.config.get("MOCK", False):
        return True
    return not (current_app.config.get("OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY"))


def _sys() -> str:
    return (
        "You are MentorAI, a professional development coach. You receive one "
        "completed self-assessment questionnaire (skill, framework, and the "
        "letter the user picked for each question). Output JSON ONLY with keys: "
        "`summary` (2-3 sentences), `profile_type` (short label), `strengths` "
        "(3 items), `growth_areas` (3 items), `recommendations` (3-5 items), "
        "`learning_path` (4-6 items, each {title, description, duration_weeks})."
    )


def _user(payload: Dict[str, Any]) -> str:
    lines = [
        f"{r.get('question_order')}. {r.get('question_text')} -> {r.get('selected_answer')}"
        for r in payload.get("responses") or []
    ]
    return textwrap.dedent(
        f"""
        Skill: {payload.get('skill_name')}
        Framework: {payload.get('framework_name')}
        Responses:
        """
    ) + "\n".join(lines)


def _coerce_str_list(val: Any, limit: int) -> List[str]:
    out: List[str] = []
    if isinstance(val, list):
        for v in val:
            if isinstance(v, str) and v.strip():
                out.append(v.strip())
            if len(out) >= limit:
                break
    return out


def _light_validate(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        data = {}
    steps = []
    for item in data.get("learning_path") or []:
        if not isinstance(item, dict) or not (item.get("title") or "").strip():
            continue
        try:
            weeks = int(item.get("duration_weeks") or 1)
        except (TypeError, ValueError):
            weeks = 1
        steps.append(
            {
                "title": item["title"].strip(),
                "description": (item.get("description") or "").strip(),
                "duration_weeks": max(1, min(weeks, 52)),
            }
        )
    return {
        "summary": (data.get("summary") or "").strip(),
        "profile_type": (data.get("profile_type") or "").strip(),
        "strengths": _coerce_str_list(data.get("strengths"), 5),
        "growth_areas": _coerce_str_list(data.get("growth_areas"), 5),
        "recommendations": _coerce_str_list(data.get("recommendations"), 6),
        "learning_path": steps[:8],
        "meta": data.get("meta") or {},
    }


def _mock_result(payload: Dict[str, Any]) -> Dict[str, Any]:
    responses = payload.get("responses") or []
    counts = Counter((r.get("selected_answer") or "?") for r in responses)
    dominant = counts.most_common(1)[0][0] if counts else "?"
    skill = payload.get("skill_name") or "your skill"
    framework = payload.get("framework_name") or "the assessment"
    return {
        "summary": (
            f"Based on {len(responses)} answers to {framework}, your {skill} "
            f"profile leans towards style {dominant}."
        ),
        "profile_type": f"Style {dominant}",
        "strengths": [f"Consistent {skill} habits", "Self-awareness", "Willingness to grow"],
        "growth_areas": [f"Stretching beyond style {dominant}", "Seeking feedback", "Deliberate practice"],
        "recommendations": [
            f"Pick one {skill} situation per week and try a different approach.",
            "Ask a peer for feedback after each attempt.",
            "Keep a short reflection log.",
        ],
        "learning_path": [
            {"title": f"{skill} foundations", "description": f"Core ideas behind {framework}.", "duration_weeks": 2},
            {"title": "Practice in context", "description": "Apply one technique at work each week.", "duration_weeks": 3},
            {"title": "Feedback loop", "description": "Collect and act on structured feedback.", "duration_weeks": 2},
            {"title": "Consolidate", "description": "Re-take the assessment and compare.", "duration_weeks": 1},
        ],
        "meta": {},
    }


def score_assessment(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Score one submission. Raises on provider / parse failure; the caller
    (the assessment flow) turns that into a retryable submit error.
    """
    if _use_mock():
        data = _light_validate(_mock_result(payload))
        used_live_ai = False
    else:
        from openai import OpenAI

        client = OpenAI(api_key=current_app.config.get("OPENAI_API_KEY") or None)
        resp = client.chat.completions.create(
            model=current_app.config.get("OPENAI_MODEL_FAST", OPENAI_MODEL_FAST),
            messages=[
                {"role": "system", "content": _sys()},
                {"role": "user", "content": _user(payload)},
            ],
            temperature=0.4,
            max_tokens=1200,
            response_format={"type": "json_object"},
        )
        raw = (resp.choices[0].message.content or "").strip()
        data = _light_validate(json.loads(raw) if raw else {})
        used_live_ai = True

    meta = data["meta"]
    meta.setdefault("generated_at_utc", _utc_now_iso())
    meta.setdefault("inputs_digest", _inputs_digest(payload))
    meta.setdefault("version", MENTOR_AI_VERSION)
    meta["live_ai"] = used_live_ai
    return data


def get_scorer() -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    """The scorer registered on the app (tests swap it), else the default."""
    return current_app.extensions.get("mentor_scorer") or score_assessment
