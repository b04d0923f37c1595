from flask import (
    Blueprint,
    flash,
    redirect,
    render_template,
    request,
    url_for,
    current_app,
)
from flask_login import (
    LoginManager,
    login_required,
    login_user,
    logout_user,
    current_user,
)
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import gen_salt

from models import User, db
from .email_utils import read_verification_token, send_verification_email
from .oauth import PROVIDERS, fetch_userinfo, oauth

auth_bp = Blueprint("auth", __name__, template_folder="../../templates/auth")
login_manager = LoginManager()
login_manager.login_view = "auth.login"
login_manager.login_message = "Please log in to continue."
login_manager.login_message_category = "error"

MIN_PASSWORD_LENGTH = 6


@login_manager.user_loader
def load_user(user_id):
    try:
        return db.session.get(User, str(user_id))
    except SQLAlchemyError:
        db.session.rollback()
        return None


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _safe_next(default_endpoint: str = "journey.dashboard") -> str:
    nxt = request.args.get("next") or request.form.get("next") or ""
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return url_for(default_endpoint)


# ---------------------------
# Password-based Sign up / Login
# ---------------------------

@auth_bp.route("/signup", methods=["GET", "POST"])
def signup():
    if current_user.is_authenticated:
        return redirect(url_for("journey.dashboard"))

    if request.method == "POST":
        name = (request.form.get("name") or "").strip()
        email = _normalize_email(request.form.get("email"))
        pw = request.form.get("password") or ""

        if not (name and email and pw):
            flash("All fields are required.", "error")
            return render_template("auth/signup.html", name=name, email=email), 400

        if len(pw) < MIN_PASSWORD_LENGTH:
            flash(f"Password should be at least {MIN_PASSWORD_LENGTH} characters.", "error")
            return render_template("auth/signup.html", name=name, email=email), 400

        if User.query.filter_by(email=email).first():
            flash("Email already registered.", "error")
            return render_template("auth/signup.html", name=name, email=email), 400

        u = User(name=name, email=email, verified=False)
        u.set_password(pw)
        try:
            db.session.add(u)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Signup failed for %s", email)
            flash("An unexpected error occurred", "error")
            return render_template("auth/signup.html", name=name, email=email), 500

        try:
            send_verification_email(u.email)
        except Exception:
            current_app.logger.exception("Failed to send verification email to %s", u.email)

        login_user(u)
        flash("Account created. Check your inbox to verify your email.", "info")
        return redirect(url_for("journey.dashboard"))
    return render_template("auth/signup.html")


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    """
    Email+password login, with buttons for the configured social providers.
    """
    if current_user.is_authenticated:
        return redirect(url_for("journey.dashboard"))

    if request.method == "POST":
        email = _normalize_email(request.form.get("email"))
        pw = request.form.get("password") or ""

        u = User.query.filter_by(email=email).first()
        if not u or not u.check_password(pw):
            flash("Invalid login credentials", "error")
            return render_template("auth/login.html", email=email), 401

        login_user(u)
        flash("Logged in.", "success")
        return redirect(_safe_next())
    return render_template("auth/login.html")


@auth_bp.route("/verify/<token>", endpoint="verify_email")
def verify_email(token: str):
    email = read_verification_token(token)
    if not email:
        flash("That verification link is invalid or has expired.", "error")
        return redirect(url_for("auth.login"))

    user = User.query.filter_by(email=_normalize_email(email)).first()
    if not user:
        flash("That verification link is invalid or has expired.", "error")
        return redirect(url_for("auth.login"))

    user.verified = True
    db.session.commit()
    flash("Email verified. Welcome!", "success")
    return redirect(url_for("journey.dashboard"))


# ---------------------------
# Social (OAuth) Login
# ---------------------------

@auth_bp.route("/oauth/<provider>", methods=["GET"], endpoint="social_login")
def social_login(provider: str):
    """
    Start an OAuth flow with Google or GitHub.
    """
    client = oauth.create_client(provider) if provider in PROVIDERS else None
    if not client:
        flash(f"{provider.title()} login is not configured yet.", "error")
        return redirect(url_for("auth.login"))

    redirect_uri = url_for("auth.social_callback", provider=provider, _external=True)
    return client.authorize_redirect(redirect_uri)


@auth_bp.route("/oauth/<provider>/callback", methods=["GET"], endpoint="social_callback")
def social_callback(provider: str):
    """
    Handle the OAuth callback:
    - Fetch user info
    - Create or update local User
    - Mark as verified
    - Log in
    """
    client = oauth.create_client(provider) if provider in PROVIDERS else None
    if not client:
        flash(f"{provider.title()} login is not configured.", "error")
        return redirect(url_for("auth.login"))

    try:
        token = client.authorize_access_token()
        info = fetch_userinfo(provider, client, token)
    except Exception as e:
        current_app.logger.exception("%s OAuth callback failed: %s", provider, e)
        flash("Could not complete social login. Please try again.", "error")
        return redirect(url_for("auth.login"))

    email = _normalize_email(info.get("email"))
    full_name = (info.get("name") or "").strip()

    if not email:
        flash("Your account did not return an email address.", "error")
        return redirect(url_for("auth.login"))

    user = User.query.filter_by(email=email).first()
    created = False
    if not user:
        user = User(
            name=full_name or email.split("@")[0].title(),
            email=email,
            avatar_url=info.get("avatar_url"),
            verified=True,  # provider verified the email
        )
        user.set_password(gen_salt(24))  # random; they sign in via OAuth
        db.session.add(user)
        created = True
    else:
        user.verified = True
        if not user.avatar_url:
            user.avatar_url = info.get("avatar_url")

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Failed to commit user after %s login: %s", provider, e)
        flash("Could not store your account. Please try again.", "error")
        return redirect(url_for("auth.login"))

    login_user(user)
    if created:
        flash(f"Account created via {provider.title()}. Welcome!", "success")
    else:
        flash(f"Logged in with {provider.title()}.", "success")

    return redirect(url_for("journey.dashboard"))


@auth_bp.route("/logout", methods=["GET", "POST"])
@login_required
def logout():
    logout_user()
    flash("Logged out.", "success")
    return redirect(url_for("landing"))
