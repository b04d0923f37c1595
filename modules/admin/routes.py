# modules/admin/routes.py
from __future__ import annotations

from flask import (
    Blueprint,
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user

from modules.auth.guards import require_admin
from modules.common.errors import MentorError, NotFoundError, RemoteCallError, ValidationError

from .panels import PANELS, Panel, get_panel

admin_bp = Blueprint("admin", __name__, template_folder="../../templates/admin")


def _panel_or_404(key: str) -> Panel:
    try:
        return get_panel(key)
    except NotFoundError:
        abort(404)


def _back(panel: Panel):
    return redirect(url_for("admin.panel", key=panel.key))


# ---------------------------------------------------------------------
# Overview
# ---------------------------------------------------------------------
@admin_bp.route("/", methods=["GET"], endpoint="index")
@require_admin
def index():
    counts = {}
    for p in PANELS:
        try:
            counts[p.key] = p.query().count()
        except Exception:
            current_app.logger.exception("Admin count failed panel=%s", p.key)
            counts[p.key] = None
    return render_template("admin/index.html", panels=PANELS, counts=counts)


# ---------------------------------------------------------------------
# Panel: list + create (+ ?edit=<id> for in-place editing)
# ---------------------------------------------------------------------
@admin_bp.route("/<key>", methods=["GET"], endpoint="panel")
@require_admin
def panel(key: str):
    p = _panel_or_404(key)
    rows, choices = [], []
    try:
        rows = p.rows()
        choices = p.parent_choices()
    except RemoteCallError as e:
        current_app.logger.exception("Admin panel load failed panel=%s", key)
        flash(e.message, "error")

    return render_template(
        "admin/panel.html",
        panels=PANELS,
        panel=p,
        rows=rows,
        choices=choices,
        editing=request.args.get("edit") or None,
    )


@admin_bp.route("/<key>", methods=["POST"], endpoint="create")
@require_admin
def create(key: str):
    p = _panel_or_404(key)
    try:
        obj = p.create(request.form)
    except ValidationError as e:
        flash(e.message, "error")
        return _back(p)
    except RemoteCallError as e:
        current_app.logger.exception("Admin create failed panel=%s", key)
        flash(e.message, "error")
        return _back(p)

    current_app.logger.info("Admin %s created %s %s", current_user.email, p.label, obj.id)
    flash(f"{p.label} created successfully", "success")
    return _back(p)


@admin_bp.route("/<key>/<obj_id>/edit", methods=["POST"], endpoint="update")
@require_admin
def update(key: str, obj_id: str):
    p = _panel_or_404(key)
    try:
        p.update(obj_id, request.form)
    except ValidationError as e:
        flash(e.message, "error")
        return redirect(url_for("admin.panel", key=p.key, edit=obj_id))
    except NotFoundError as e:
        flash(e.message, "error")
        return _back(p)
    except RemoteCallError as e:
        current_app.logger.exception("Admin update failed panel=%s id=%s", key, obj_id)
        flash(e.message, "error")
        return redirect(url_for("admin.panel", key=p.key, edit=obj_id))

    current_app.logger.info("Admin %s updated %s %s", current_user.email, p.label, obj_id)
    flash(f"{p.label} updated successfully", "success")
    return _back(p)


# ---------------------------------------------------------------------
# Delete: GET asks, POST confirm=yes deletes
# ---------------------------------------------------------------------
@admin_bp.route("/<key>/<obj_id>/delete", methods=["GET"], endpoint="confirm_delete")
@require_admin
def confirm_delete(key: str, obj_id: str):
    p = _panel_or_404(key)
    try:
        obj = p.get(obj_id)
    except NotFoundError as e:
        flash(e.message, "error")
        return _back(p)
    return render_template(
        "admin/confirm_delete.html",
        panel=p,
        obj_id=obj_id,
        label=p.display(obj),
        children=p.child_count(obj_id),
    )


@admin_bp.route("/<key>/<obj_id>/delete", methods=["POST"], endpoint="delete")
@require_admin
def delete(key: str, obj_id: str):
    p = _panel_or_404(key)
    if (request.form.get("confirm") or "").strip().lower() != "yes":
        flash("Delete canceled.", "info")
        return _back(p)

    try:
        p.delete(obj_id)
    except MentorError as e:
        if isinstance(e, RemoteCallError):
            current_app.logger.exception("Admin delete failed panel=%s id=%s", key, obj_id)
        flash(e.message, "error")
        return _back(p)

    current_app.logger.info("Admin %s deleted %s %s", current_user.email, p.label, obj_id)
    flash(f"{p.label} deleted successfully", "success")
    return _back(p)
