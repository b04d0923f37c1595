# modules/auth/guards.py

from functools import wraps
from flask import abort, flash, redirect, request, url_for

from .session_context import current_session


def require_admin(view_func):
    """
    Ensures the user is logged in AND is an admin (is_admin flag or listed
    in ADMIN_EMAILS).

    Usage:
        @bp.route("/")
        @require_admin
        def index():
            ...
    """
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        ctx = current_session()
        if not ctx.is_authenticated:
            flash("Please log in to continue.", "error")
            return redirect(url_for("auth.login", next=request.path))

        if not ctx.is_admin:
            abort(403)

        return view_func(*args, **kwargs)

    return wrapper
