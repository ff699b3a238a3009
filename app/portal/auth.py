from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, flash, g, make_response, redirect, render_template, request, url_for

from app.portal.audit import record_event
from app.portal.db import db_session
from app.portal.modules.users.service import authenticate, session_for, signup_user
from app.portal.session import clear_session_cookie, set_session_cookie
from app.portal.utils import form_payload

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def assign_request_id() -> None:
    """Per-request id for audit/log correlation."""
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex


@bp.get("/login")
def login_get():
    return render_template("auth/login.html")


@bp.post("/login")
def login_post():
    payload = form_payload(request.form, "email", "password")
    email = (payload.get("email") or "").strip().lower()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("auth.login_get"))

    _record_attempt(ip)

    try:
        s = db_session()
        user, error = authenticate(s, payload)
        if error:
            record_event(
                s,
                actor=None,
                action="auth.login_failed",
                entity_type="User",
                entity_id=email or None,
                reason=error,
            )
            s.commit()
            current_app.logger.info("Login failed (email=%s request_id=%s)", email, g.get("request_id"))
            flash(error, "danger")
            return redirect(url_for("auth.login_get"))

        user_session = session_for(user)
        _login_attempts[ip].clear()
        record_event(s, actor=user_session, action="auth.login", entity_type="User", entity_id=user.id)
        s.commit()
    except Exception:
        current_app.logger.exception("Login POST crashed (email=%s request_id=%s)", email, g.get("request_id"))
        raise

    codec = current_app.extensions["session_codec"]
    resp = make_response(redirect(url_for("routes.dashboard")))
    set_session_cookie(resp, codec.encode(user_session), current_app.config)
    return resp


@bp.get("/signup")
def signup_get():
    return render_template("auth/signup.html")


@bp.post("/signup")
def signup_post():
    s = db_session()
    result = signup_user(s, form_payload(request.form, "name", "email", "password"))
    flash(result.message, result.flash_category)
    if not result.success:
        return redirect(url_for("auth.signup_get"))
    return redirect(url_for("auth.login_get"))


@bp.post("/logout")
def logout():
    user_session = g.get("user_session")
    if user_session:
        s = db_session()
        record_event(s, actor=user_session, action="auth.logout", entity_type="User", entity_id=user_session.user_id)
        s.commit()
    resp = make_response(redirect(url_for("auth.login_get")))
    clear_session_cookie(resp, current_app.config)
    return resp
