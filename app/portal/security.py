import hmac
import secrets

from flask import Request, session

# Endpoints reachable before a user is signed in; they carry no identity to abuse.
CSRF_EXEMPT_ENDPOINTS = ("auth.login_post", "auth.signup_post")


def ensure_csrf_token() -> str:
    """Ensure a CSRF token exists in flask's session cookie and return it."""
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def validate_csrf(req: Request) -> bool:
    """Validate the CSRF token sent as a form field or X-CSRF-Token header."""
    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")
    expected = session.get("csrf_token")
    if not token or not expected:
        return False
    return hmac.compare_digest(str(token), str(expected))


def csrf_exempt(req: Request) -> bool:
    return (req.endpoint or "") in CSRF_EXEMPT_ENDPOINTS
