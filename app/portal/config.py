import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    session_cookie_name: str
    session_max_age_seconds: int

    cache_type: str
    cache_default_timeout: int
    cache_redis_url: str
    web_concurrency: int


# Backends that live inside one worker process.
PROCESS_LOCAL_CACHES = ("SimpleCache", "simple")


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _is_production(env: str) -> bool:
    return env.lower() in ("prod", "production")


def _default_cache_type(env: str, redis_url: str) -> str:
    if redis_url:
        return "RedisCache"
    # Without a shared store, production workers cannot invalidate each other's cache.
    return "NullCache" if _is_production(env) else "SimpleCache"


def load_settings() -> Settings:
    env = _getenv("ENV", "development")
    redis_url = _getenv("REDIS_URL")
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=env,
        database_url=_getenv("DATABASE_URL", "sqlite:///portal.db"),
        session_cookie_name=_getenv("SESSION_COOKIE_NAME", "app_session"),
        session_max_age_seconds=_getenv_int("SESSION_MAX_AGE_SECONDS", 60 * 60 * 24 * 7),
        cache_type=_getenv("CACHE_TYPE", _default_cache_type(env, redis_url)),
        cache_default_timeout=_getenv_int("CACHE_DEFAULT_TIMEOUT", 60),
        cache_redis_url=redis_url,
        web_concurrency=_getenv_int("WEB_CONCURRENCY", 2),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = _is_production(s.env)
    config = {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        # identity cookie (signed, see app.portal.session)
        "APP_SESSION_COOKIE_NAME": s.session_cookie_name,
        "APP_SESSION_MAX_AGE": s.session_max_age_seconds,
        "APP_SESSION_COOKIE_SECURE": is_production,
        # flask's own cookie only carries the CSRF token and flashes
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,
        "CACHE_TYPE": s.cache_type,
        "CACHE_DEFAULT_TIMEOUT": s.cache_default_timeout,
        "WEB_CONCURRENCY": s.web_concurrency,
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }
    if s.cache_redis_url:
        config["CACHE_REDIS_URL"] = s.cache_redis_url
    return config


def check_cache_backend(config: dict) -> None:
    """Refuse a per-process cache when several production workers share the database."""
    if not _is_production(str(config.get("ENV") or "")):
        return
    cache_type = str(config.get("CACHE_TYPE") or "")
    if cache_type in PROCESS_LOCAL_CACHES and int(config.get("WEB_CONCURRENCY") or 1) > 1:
        raise RuntimeError(
            f"CACHE_TYPE={cache_type} is per-process and cannot be invalidated across "
            f"{config['WEB_CONCURRENCY']} workers. Set REDIS_URL, use NullCache, or run one worker."
        )
    if cache_type in ("RedisCache", "redis") and not config.get("CACHE_REDIS_URL"):
        raise RuntimeError("CACHE_TYPE=RedisCache requires REDIS_URL.")
