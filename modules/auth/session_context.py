# modules/auth/session_context.py
"""
Explicit, read-only view of "who is signed in" for the current request.

Views read `current_session()` instead of poking at globals. Anything that
needs to react to sign-in / sign-out registers a listener with
`on_session_change`; listeners receive (event, SessionContext) where event is
"SIGNED_IN" or "SIGNED_OUT".
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, List, Optional

from flask import Flask, current_app, g
from flask_login import current_user, user_logged_in, user_logged_out

from models import User

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

Listener = Callable[[str, "SessionContext"], None]


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _email_in_env_list(env_key: str, email: str) -> bool:
    raw = current_app.config.get(env_key) or os.getenv(env_key, "") or ""
    if not raw:
        return False
    allowed = {e.strip().lower() for e in raw.split(",") if e.strip()}
    return _normalize_email(email) in allowed


@dataclass(frozen=True)
class SessionContext:
    user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None

    @property
    def email(self) -> Optional[str]:
        return self.user.email if self.user else None

    @property
    def is_admin(self) -> bool:
        if self.user is None:
            return False
        if _email_in_env_list("ADMIN_EMAILS", self.user.email):
            return True
        return bool(self.user.is_admin)

    @property
    def is_premium(self) -> bool:
        return bool(self.user and self.user.is_premium)

    @classmethod
    def from_current_user(cls) -> "SessionContext":
        if getattr(current_user, "is_authenticated", False):
            return cls(user=current_user._get_current_object())
        return cls()


def current_session() -> SessionContext:
    ctx = getattr(g, "session_ctx", None)
    if ctx is None:
        ctx = SessionContext.from_current_user()
        g.session_ctx = ctx
    return ctx


def on_session_change(app: Flask, listener: Listener) -> None:
    app.extensions.setdefault("session_listeners", []).append(listener)


def _notify(app: Flask, event: str, ctx: SessionContext) -> None:
    listeners: List[Listener] = app.extensions.get("session_listeners", [])
    for fn in listeners:
        try:
            fn(event, ctx)
        except Exception:
            app.logger.exception("Session listener failed (%s)", event)


def init_session_context(app: Flask) -> None:
    @app.before_request
    def _attach_session_context():
        g.session_ctx = None

    def _on_login(sender, user, **extra):
        ctx = SessionContext(user=user)
        g.session_ctx = ctx
        _notify(sender, SIGNED_IN, ctx)

    def _on_logout(sender, user, **extra):
        g.session_ctx = SessionContext()
        _notify(sender, SIGNED_OUT, SessionContext(user=user))

    user_logged_in.connect(_on_login, app, weak=False)
    user_logged_out.connect(_on_logout, app, weak=False)

    on_session_change(
        app,
        lambda event, ctx: app.logger.info("Auth state changed: %s %s", event, ctx.email),
    )
