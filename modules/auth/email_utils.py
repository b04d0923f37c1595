# modules/auth/email_utils.py

import smtplib
from email.mime.text import MIMEText

from flask import current_app, url_for
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

VERIFY_SALT = "mentorai-email-verify"
VERIFY_MAX_AGE_SECONDS = 60 * 60 * 24


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = int(current_app.config.get("SMTP_PORT") or 587)
    user = current_app.config.get("SMTP_USER")
    password = current_app.config.get("SMTP_PASSWORD")
    sender = current_app.config.get("SMTP_FROM") or user or "MentorAI <no-reply@mentorai.app>"

    # Dev fallback → log only
    if not host or not user or not password:
        current_app.logger.warning(
            f"[DEV EMAIL] To: {to_email}\nSubject: {subject}\n{body}"
        )
        return

    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to_email

    with smtplib.SMTP(host, port) as smtp:
        smtp.starttls()
        smtp.login(user, password)
        smtp.sendmail(sender, [to_email], msg.as_string())


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=VERIFY_SALT)


def make_verification_token(email: str) -> str:
    return _serializer().dumps(email)


def read_verification_token(token: str) -> str | None:
    try:
        return _serializer().loads(token, max_age=VERIFY_MAX_AGE_SECONDS)
    except (SignatureExpired, BadSignature):
        return None


def send_verification_email(to_email: str):
    link = url_for("auth.verify_email", token=make_verification_token(to_email), _external=True)
    subject = "Verify your email address - MentorAI"
    body = (
        "Welcome to MentorAI!\n\n"
        f"Confirm your email address by opening this link:\n{link}\n\n"
        "The link expires in 24 hours. If you didn't sign up, ignore this email."
    )
    send_email(to_email, subject, body)
