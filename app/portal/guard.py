"""
Request-level gate.

Runs before any database access, so it can only judge the identity cookie's
shape and signature. Role and ownership checks happen per view (app.portal.rbac).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import Flask, Response, current_app, g, redirect, request

from app.portal.constants import DASHBOARD_PATH, LOGIN_PATH, PUBLIC_PATH_PREFIXES, UNGUARDED_PATH_PREFIXES
from app.portal.session import SessionCodec, UserSession, clear_session_cookie, read_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardDecision:
    redirect_to: str | None = None
    clear_cookie: bool = False
    session: UserSession | None = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None


def is_public_path(path: str) -> bool:
    return path.startswith(PUBLIC_PATH_PREFIXES)


def is_guarded_path(path: str) -> bool:
    if path == "/":
        return False
    return not path.startswith(UNGUARDED_PATH_PREFIXES)


def evaluate(path: str, cookie_value: str | None, codec: SessionCodec) -> GuardDecision:
    session = codec.decode(cookie_value)
    has_cookie = bool(cookie_value)

    if is_public_path(path):
        if session is not None:
            return GuardDecision(redirect_to=DASHBOARD_PATH, session=session)
        # stale or forged cookie on the login page: let them in, drop the cookie
        return GuardDecision(clear_cookie=has_cookie)

    if not has_cookie:
        return GuardDecision(redirect_to=LOGIN_PATH)
    if session is None:
        return GuardDecision(redirect_to=LOGIN_PATH, clear_cookie=True)
    return GuardDecision(session=session)


def init_route_guard(app: Flask, codec: SessionCodec) -> None:
    cookie_name = app.config["APP_SESSION_COOKIE_NAME"]
    app.extensions["session_codec"] = codec

    @app.before_request
    def _route_guard():
        path = request.path
        cookie_value = request.cookies.get(cookie_name)

        if not is_guarded_path(path) and not is_public_path(path):
            # API and static routes do their own checks; still expose the session to templates
            g.user_session = read_session(request, codec, cookie_name)
            return None

        decision = evaluate(path, cookie_value, codec)
        g.user_session = decision.session
        g.clear_session_cookie = decision.clear_cookie
        if decision.allowed:
            return None

        logger.debug("Route guard: %s -> %s (clear_cookie=%s)", path, decision.redirect_to, decision.clear_cookie)
        return redirect(decision.redirect_to)

    @app.after_request
    def _route_guard_cookie(response: Response) -> Response:
        if not g.pop("clear_session_cookie", False):
            return response
        # a view that issued a fresh cookie (login) wins over the stale-cookie cleanup
        if any(h.startswith(f"{cookie_name}=") for h in response.headers.getlist("Set-Cookie")):
            return response
        clear_session_cookie(response, current_app.config)
        return response
