# modules/billing/routes.py

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user, login_required

from modules.auth.session_context import current_session
from modules.common.errors import MentorError
from .config import TIERS
from .service import (
    check_subscription,
    create_checkout,
    customer_portal,
    effective_status,
    safe_check_subscription,
)

billing_bp = Blueprint("billing", __name__, template_folder="../../templates")


def _back(default_endpoint: str = "billing.index"):
    nxt = request.form.get("next") or ""
    if nxt.startswith("/") and not nxt.startswith("//"):
        return redirect(nxt)
    return redirect(url_for(default_endpoint))


# ------------------------------------------
# Plans page
# ------------------------------------------


@billing_bp.route("", methods=["GET"], endpoint="index")
@login_required
def index():
    """
    Subscription plans + current status. Status is fetched once per render.
    """
    user = current_session().user
    status = safe_check_subscription(user)
    return render_template(
        "subscription.html",
        tiers=[t.as_dict() for t in TIERS],
        status=status,
        effective=effective_status(user, status),
    )


@billing_bp.route("/refresh", methods=["POST"], endpoint="refresh")
@login_required
def refresh():
    try:
        status = check_subscription(current_user)
    except MentorError as e:
        current_app.logger.exception("Subscription refresh failed")
        flash(e.message, "error")
        return _back()

    if status.get("subscribed"):
        flash(f"You're subscribed to {status.get('subscription_tier')}.", "success")
    else:
        flash("No active subscription found.", "info")
    return _back()


# ------------------------------------------
# Checkout / Portal (redirects to Stripe)
# ------------------------------------------


@billing_bp.route("/checkout", methods=["POST"], endpoint="checkout")
@login_required
def checkout():
    tier = request.form.get("tier") or "Premium"
    try:
        url = create_checkout(
            current_user,
            tier,
            success_url=url_for("journey.dashboard", success="true", _external=True),
            cancel_url=url_for("journey.dashboard", canceled="true", _external=True),
        )
    except MentorError as e:
        current_app.logger.warning("Checkout not started for user=%s: %s", current_user.id, e.message)
        flash(e.message, "error")
        return _back()
    return redirect(url, code=303)


@billing_bp.route("/portal", methods=["POST"], endpoint="portal")
@login_required
def portal():
    try:
        url = customer_portal(current_user, return_url=url_for("journey.dashboard", _external=True))
    except MentorError as e:
        current_app.logger.warning("Portal not opened for user=%s: %s", current_user.id, e.message)
        flash(e.message, "error")
        return _back()
    return redirect(url, code=303)
