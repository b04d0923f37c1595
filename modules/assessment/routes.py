# modules/assessment/routes.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import (
    current_app,
    flash,
    redirect,
    render_template,
    request,
    session,
    url_for,
)
from flask_login import login_required

from models import db
from modules.auth.session_context import current_session
from modules.common.errors import MentorError, NotFoundError, RemoteCallError, ValidationError
from modules.journey.phases import advance_phase

from . import bp, content
from .flow import (
    ANSWERING_COMPLETE,
    ANSWERING_INCOMPLETE,
    ERROR,
    MSG_SUBMIT_FAILED,
    QUESTIONS_LOADING,
    SUBMITTED,
    AssessmentFlow,
)
from .scoring import get_scorer
from .snapshots import SnapshotStore

log = logging.getLogger(__name__)

FLOW_SESSION_KEY = "assessment_flow"


# ---------------------- helpers ----------------------


def _save_flow(flow: AssessmentFlow) -> None:
    session[FLOW_SESSION_KEY] = flow.to_state()
    session.modified = True


def _run_load(flow: AssessmentFlow, token: str | None) -> None:
    """Fetch questionnaire + questions for the selected skill under `token`."""
    if not token:
        return
    try:
        skill = content.get_skill(flow.skill_id)
        if skill is None:
            raise NotFoundError("That skill no longer exists.")
        flow.skill_name = skill["skill_name"]
        questionnaire, questions = content.load_assessment(flow.skill_id)
    except MentorError as e:
        log.warning("Assessment load failed skill=%s: %s", flow.skill_id, e.message)
        flow.fail_load(token, e)
        return
    if not flow.finish_load(token, questionnaire, questions):
        log.info("Discarded superseded load for skill=%s", flow.skill_id)


def _load_flow() -> AssessmentFlow:
    """
    Restore the flow from the session and re-attach its question set.

    If the questionnaire disappeared in the meantime (admin delete), the flow
    falls back to idle.
    """
    data = session.get(FLOW_SESSION_KEY) or {}
    flow = AssessmentFlow.from_state(data)

    if flow.state == QUESTIONS_LOADING:
        _run_load(flow, flow.load_token)
        return flow

    questionnaire_id = data.get("questionnaire_id")
    if flow.state in (ANSWERING_INCOMPLETE, ANSWERING_COMPLETE) and questionnaire_id:
        try:
            questionnaire = content.load_questionnaire(questionnaire_id)
            questions = content.load_questions(questionnaire_id) if questionnaire else []
        except RemoteCallError as e:
            current_app.logger.exception("Could not re-hydrate assessment flow")
            flash(e.message, "error")
            return flow
        if questionnaire is None:
            flash("This questionnaire is no longer available.", "warning")
            flow.select_skill("")
        else:
            flow.hydrate(questionnaire, questions)
    return flow


# ---------------------- pages ----------------------


@bp.route("", methods=["GET"], endpoint="index")
@login_required
def index():
    """
    Phase 1: pick one skill, answer its questionnaire, submit for analysis.
    """
    flow = _load_flow()
    try:
        skills = content.list_skills()
    except RemoteCallError as e:
        current_app.logger.exception("Error fetching skills")
        flash(e.message, "error")
        skills = []

    _save_flow(flow)
    return render_template(
        "assessment.html",
        skills=skills,
        flow=flow,
        not_found=(flow.state == ERROR and (flow.error or {}).get("kind") == "not_found"),
    )


@bp.route("/select", methods=["POST"], endpoint="select")
@login_required
def select():
    """
    Select (or clear) the skill. Any in-progress answers are discarded.
    """
    flow = _load_flow()
    token = flow.select_skill(request.form.get("skill_id"))
    _run_load(flow, token)
    _save_flow(flow)
    return redirect(url_for("assessment.index"))


@bp.route("/answer", methods=["POST"], endpoint="answer")
@login_required
def answer():
    flow = _load_flow()
    try:
        flow.record_answer(request.form.get("question_id") or "", request.form.get("option"))
    except ValidationError as e:
        flash(e.message, "error")
    _save_flow(flow)
    return redirect(url_for("assessment.index"))


@bp.route("/retry", methods=["POST"], endpoint="retry")
@login_required
def retry():
    flow = _load_flow()
    _run_load(flow, flow.retry())
    _save_flow(flow)
    return redirect(url_for("assessment.index"))


@bp.route("/submit", methods=["POST"], endpoint="submit")
@login_required
def submit():
    """
    Record the posted answers, then submit.

    On success: cache payload + results + timestamp in the snapshot slot,
    advance the profile to phase 2 and go to /results. On failure the flow
    stays answerable and the same button retries.
    """
    flow = _load_flow()

    for q in flow.questions:
        code = request.form.get(f"answer_{q['id']}")
        if not code:
            continue
        try:
            flow.record_answer(q["id"], code)
        except ValidationError as e:
            flash(e.message, "error")

    user = current_session().user
    try:
        results = flow.submit(get_scorer())
    except ValidationError as e:
        flash(e.message, "error")
        _save_flow(flow)
        return redirect(url_for("assessment.index"))
    except RemoteCallError as e:
        current_app.logger.exception("Error submitting assessment")
        flash(e.message, "error")
        _save_flow(flow)
        return redirect(url_for("assessment.index"))

    if results is None:
        flash("Your assessment is already being analyzed.", "info")
        return redirect(url_for("assessment.index"))

    payload = flow.build_payload()
    try:
        # phase and snapshot land in the same commit
        advance_phase(user, 2, commit=False)
        SnapshotStore(user.id).put(
            dict(
                payload,
                results=results,
                timestamp=datetime.now(timezone.utc).isoformat(),
            )
        )
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error submitting assessment")
        flow.fail_submit()
        flash(MSG_SUBMIT_FAILED, "error")
        _save_flow(flow)
        return redirect(url_for("assessment.index"))

    flow.finish_submit()
    if flow.state == SUBMITTED:
        session.pop(FLOW_SESSION_KEY, None)
    flash("Assessment completed! Analyzing your responses...", "success")
    return redirect(url_for("journey.results"))
