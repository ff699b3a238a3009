"""
Identity cookie handling.

The ``app_session`` cookie carries ``{"userId", "role", "name"}``. The value is
signed with the application's SECRET_KEY (itsdangerous) so a client cannot
forge or edit it. It expires after the number of seconds in the
SESSION_MAX_AGE_SECONDS environment variable (7 days by default).
Nothing is stored server-side; logging out deletes the cookie.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from flask import Request, Response
from itsdangerous import BadData, URLSafeTimedSerializer

from app.portal.constants import ROLES

logger = logging.getLogger(__name__)

_SALT = "app-session"


@dataclass(frozen=True)
class UserSession:
    user_id: str
    role: str
    name: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {"userId": self.user_id, "role": self.role, "name": self.name}


def session_from_payload(data: Any) -> UserSession | None:
    """Structural check of a decoded payload. Returns None when the shape is wrong."""
    if not isinstance(data, Mapping):
        return None
    user_id = data.get("userId")
    role = data.get("role")
    if not user_id or not isinstance(user_id, str):
        return None
    if not role or role not in ROLES:
        return None
    name = data.get("name")
    if not isinstance(name, str) or not name:
        name = None
    return UserSession(user_id=user_id, role=role, name=name)


class SessionCodec:
    def __init__(self, secret_key: str, max_age: int | None = None) -> None:
        self._serializer = URLSafeTimedSerializer(secret_key, salt=_SALT)
        self.max_age = max_age

    def encode(self, session: UserSession) -> str:
        return self._serializer.dumps(session.to_payload())

    def decode(self, value: str | None) -> UserSession | None:
        if not value:
            return None
        try:
            data = self._serializer.loads(value, max_age=self.max_age)
        except BadData as e:
            # bad signature, expired, or a payload that is not JSON
            logger.debug("Rejected session cookie: %s", e.__class__.__name__)
            return None
        return session_from_payload(data)


def codec_from_config(config: Mapping[str, Any]) -> SessionCodec:
    return SessionCodec(config["SECRET_KEY"], max_age=config.get("APP_SESSION_MAX_AGE"))


def read_session(request: Request, codec: SessionCodec, cookie_name: str) -> UserSession | None:
    """
    Decode the current request's identity cookie. No database access.
    """
    return codec.decode(request.cookies.get(cookie_name))


def set_session_cookie(response: Response, value: str, config: Mapping[str, Any]) -> None:
    response.set_cookie(
        config["APP_SESSION_COOKIE_NAME"],
        value,
        max_age=config.get("APP_SESSION_MAX_AGE"),
        path="/",
        httponly=True,
        secure=bool(config.get("APP_SESSION_COOKIE_SECURE")),
        samesite="Lax",
    )


def clear_session_cookie(response: Response, config: Mapping[str, Any]) -> None:
    response.delete_cookie(
        config["APP_SESSION_COOKIE_NAME"],
        path="/",
        httponly=True,
        secure=bool(config.get("APP_SESSION_COOKIE_SECURE")),
        samesite="Lax",
    )
