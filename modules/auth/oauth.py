# modules/auth/oauth.py

from authlib.integrations.flask_client import OAuth
from flask import Flask

oauth = OAuth()

# provider name -> registration kwargs (client id/secret come from app.config)
PROVIDERS = {
    "google": {
        "server_metadata_url": "https://accounts.google.com/.well-known/openid-configuration",
        "client_kwargs": {"scope": "openid email profile"},
    },
    "github": {
        "access_token_url": "https://github.com/login/oauth/access_token",
        "authorize_url": "https://github.com/login/oauth/authorize",
        "api_base_url": "https://api.github.com/",
        "client_kwargs": {"scope": "read:user user:email"},
    },
}


def init_oauth(app: Flask):
    """
    Initialize Authlib OAuth client and register every social provider that
    has a client id + secret configured (GOOGLE_CLIENT_ID, GITHUB_CLIENT_ID, ...).
    """
    oauth.init_app(app)

    for name, kwargs in PROVIDERS.items():
        client_id = app.config.get(f"{name.upper()}_CLIENT_ID")
        client_secret = app.config.get(f"{name.upper()}_CLIENT_SECRET")

        if not client_id or not client_secret:
            app.logger.warning("%s OAuth not configured (missing client id/secret).", name.title())
            continue

        oauth.register(
            name=name,
            client_id=client_id,
            client_secret=client_secret,
            **kwargs,
        )


def fetch_userinfo(provider: str, client, token) -> dict:
    """Normalize the provider's profile into {"email", "name", "avatar_url"}."""
    if provider == "google":
        info = client.get("https://openidconnect.googleapis.com/v1/userinfo", token=token).json()
        return {
            "email": info.get("email"),
            "name": info.get("name"),
            "avatar_url": info.get("picture"),
        }

    # github
    info = client.get("user", token=token).json()
    email = info.get("email")
    if not email:
        emails = client.get("user/emails", token=token).json() or []
        primary = [e for e in emails if e.get("primary") and e.get("verified")]
        email = (primary[0] if primary else (emails[0] if emails else {})).get("email")
    return {
        "email": email,
        "name": info.get("name") or info.get("login"),
        "avatar_url": info.get("avatar_url"),
    }
