# modules/journey/routes.py

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError

from models import db
from modules.assessment.snapshots import ASSESSMENT_KEY, SnapshotStore
from modules.auth.session_context import current_session
from modules.billing.service import effective_status, safe_check_subscription
from modules.common.errors import RemoteCallError, ValidationError

from .phases import advance_phase, journey_cards, progress_overview

journey_bp = Blueprint("journey", __name__, template_folder="../../templates")


def _status_for(user):
    """Provider status (fetched once per render) merged with the local flag."""
    status = safe_check_subscription(user)
    return status, effective_status(user, status)


def _snapshot(user):
    try:
        return SnapshotStore(user.id).get(ASSESSMENT_KEY)
    except RemoteCallError as e:
        current_app.logger.exception("Snapshot read failed")
        flash(e.message, "error")
        return None


# ---------------------------
# Dashboard
# ---------------------------
@journey_bp.route("/dashboard", methods=["GET"], endpoint="dashboard")
@login_required
def dashboard():
    if request.args.get("success"):
        flash("Subscription successful! Welcome to your new plan.", "success")
    elif request.args.get("canceled"):
        flash("Checkout was canceled. You can subscribe anytime.", "info")

    user = current_session().user
    status, effective = _status_for(user)
    return render_template(
        "dashboard.html",
        status=status,
        effective=effective,
        phases=journey_cards(user, effective["is_premium"]),
        progress=progress_overview(user),
    )


# ---------------------------
# Phase 2: results
# ---------------------------
@journey_bp.route("/results", methods=["GET"], endpoint="results")
@login_required
def results():
    user = current_session().user
    snapshot = _snapshot(user)
    if not snapshot:
        flash("No assessment found. Please complete the assessment first.", "info")
        return redirect(url_for("assessment.index"))

    _, effective = _status_for(user)
    return render_template(
        "results.html",
        snapshot=snapshot,
        results=snapshot.get("results") or {},
        effective=effective,
    )


@journey_bp.route("/results/continue", methods=["POST"], endpoint="results_continue")
@login_required
def results_continue():
    user = current_session().user
    if int(user.current_phase or 1) < 2 or not _snapshot(user):
        flash("No assessment found. Please complete the assessment first.", "info")
        return redirect(url_for("assessment.index"))

    try:
        advance_phase(user, 3)
    except ValidationError as e:
        flash(e.message, "error")
        return redirect(url_for("journey.dashboard"))
    except RemoteCallError as e:
        current_app.logger.exception("Could not advance to learning path")
        flash(e.message, "error")
        return redirect(url_for("journey.results"))
    return redirect(url_for("journey.learning_path"))


# ---------------------------
# Phase 3: learning path (premium)
# ---------------------------
@journey_bp.route("/learning-path", methods=["GET"], endpoint="learning_path")
@login_required
def learning_path():
    user = current_session().user
    _, effective = _status_for(user)
    if not effective["is_premium"]:
        flash("The personalized learning path is a premium feature.", "info")
        return redirect(url_for("billing.index"))

    snapshot = _snapshot(user)
    if not snapshot:
        flash("No assessment found. Please complete the assessment first.", "info")
        return redirect(url_for("assessment.index"))

    results_ = snapshot.get("results") or {}
    return render_template(
        "learning_path.html",
        snapshot=snapshot,
        items=results_.get("learning_path") or [],
        effective=effective,
    )


# ---------------------------
# Account
# ---------------------------
@journey_bp.route("/account", methods=["GET", "POST"], endpoint="account")
@login_required
def account():
    user = current_session().user

    if request.method == "POST":
        name = (request.form.get("name") or "").strip()
        if not name:
            flash("Please enter a display name.", "error")
            return redirect(url_for("journey.account"))
        try:
            user.name = name[:120]
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Profile update failed for user=%s", user.id)
            flash("Could not update your profile. Please try again.", "error")
            return redirect(url_for("journey.account"))
        flash("Profile updated.", "success")
        return redirect(url_for("journey.account"))

    status, effective = _status_for(user)
    return render_template(
        "account.html",
        status=status,
        effective=effective,
        progress=progress_overview(user),
    )
