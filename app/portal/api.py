from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from app.portal.db import db_session
from app.portal.models import User
from app.portal.session import clear_session_cookie

bp = Blueprint("api", __name__)
logger = logging.getLogger(__name__)


def _unauthorized(message: str, *, clear_cookie: bool):
    resp = jsonify({"message": message})
    resp.status_code = 401
    if clear_cookie:
        clear_session_cookie(resp, current_app.config)
    return resp


@bp.get("/user/me")
def user_me():
    """
    Current user's profile. API routes sit outside the route guard, so the
    cookie is checked here.
    """
    try:
        cookie_value = request.cookies.get(current_app.config["APP_SESSION_COOKIE_NAME"])
        if not cookie_value:
            return _unauthorized("Unauthorized", clear_cookie=False)

        user_session = current_app.extensions["session_codec"].decode(cookie_value)
        if user_session is None:
            logger.info("/api/user/me: invalid session cookie")
            return _unauthorized("Invalid session", clear_cookie=True)

        user = db_session().get(User, user_session.user_id)
        if user is None:
            logger.warning("/api/user/me: session user %s not found; clearing cookie", user_session.user_id)
            return _unauthorized("Unauthorized: User not found", clear_cookie=True)

        return jsonify({"id": user.id, "name": user.name, "email": user.email, "role": user.role}), 200
    except Exception:
        logger.exception("/api/user/me: internal error")
        return jsonify({"message": "Internal Server Error"}), 500
