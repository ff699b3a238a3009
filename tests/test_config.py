import pytest

from app.portal import create_app
from app.portal.config import check_cache_backend, load_config
from app.portal.db import db_session
from app.portal.modules.claims.service import approve_claim, center_claim_rows, create_claim

from tests.conftest import SESSIONS, teaching_payload


def _clear_cache_env(monkeypatch):
    for name in ("CACHE_TYPE", "REDIS_URL", "WEB_CONCURRENCY"):
        monkeypatch.delenv(name, raising=False)


def test_development_defaults_to_simple_cache(monkeypatch):
    _clear_cache_env(monkeypatch)
    monkeypatch.setenv("ENV", "development")
    config = load_config()
    assert config["CACHE_TYPE"] == "SimpleCache"
    assert "CACHE_REDIS_URL" not in config


def test_production_without_redis_disables_cache(monkeypatch):
    _clear_cache_env(monkeypatch)
    monkeypatch.setenv("ENV", "production")
    config = load_config()
    assert config["CACHE_TYPE"] == "NullCache"
    check_cache_backend(config)


def test_redis_url_selects_shared_cache(monkeypatch):
    _clear_cache_env(monkeypatch)
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/0")
    config = load_config()
    assert config["CACHE_TYPE"] == "RedisCache"
    assert config["CACHE_REDIS_URL"] == "redis://cache:6379/0"
    check_cache_backend(config)


def test_production_refuses_process_local_cache_with_many_workers(monkeypatch):
    _clear_cache_env(monkeypatch)
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("CACHE_TYPE", "SimpleCache")
    monkeypatch.setenv("WEB_CONCURRENCY", "4")
    with pytest.raises(RuntimeError, match="per-process"):
        check_cache_backend(load_config())

    monkeypatch.setenv("WEB_CONCURRENCY", "1")
    check_cache_backend(load_config())


def test_redis_cache_needs_url(monkeypatch):
    _clear_cache_env(monkeypatch)
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("CACHE_TYPE", "RedisCache")
    with pytest.raises(RuntimeError, match="REDIS_URL"):
        check_cache_backend(load_config())


def test_workers_without_shared_cache_see_each_others_writes(app, monkeypatch):
    # Two app instances over the seeded database stand in for two gunicorn workers.
    monkeypatch.setenv("CACHE_TYPE", "NullCache")
    worker_a = create_app()
    worker_b = create_app()

    with worker_b.app_context():
        assert center_claim_rows(db_session(), "c1") == []

    with worker_a.app_context():
        s = db_session()
        result = create_claim(s, SESSIONS["lect1"], teaching_payload())
        claim_id = result.claim_id
        assert approve_claim(
            s, SESSIONS["coord1"], {"claim_id": claim_id, "center_id": "c1", "coordinator_id": "coord1"}
        ).success

    with worker_b.app_context():
        rows = center_claim_rows(db_session(), "c1")
        assert [(r["id"], r["status"]) for r in rows] == [(claim_id, "APPROVED")]


def test_session_max_age_comes_from_environment(monkeypatch):
    monkeypatch.setenv("SESSION_MAX_AGE_SECONDS", "3600")
    assert load_config()["APP_SESSION_MAX_AGE"] == 3600
    monkeypatch.setenv("SESSION_MAX_AGE_SECONDS", "soon")
    assert load_config()["APP_SESSION_MAX_AGE"] == 60 * 60 * 24 * 7
