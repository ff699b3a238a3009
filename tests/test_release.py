import pytest
from alembic import command

from scripts import init_db
from scripts.release import run_release


@pytest.fixture()
def calls(monkeypatch):
    recorded = []
    monkeypatch.setattr(command, "upgrade", lambda cfg, rev: recorded.append(("upgrade", rev)))
    monkeypatch.setattr(init_db, "seed_only", lambda *, database_url: recorded.append(("seed", database_url)))
    return recorded


def test_release_migrates_then_seeds_configured_database(monkeypatch, calls):
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///release.db")
    run_release()
    assert calls == [("upgrade", "head"), ("seed", "sqlite:///release.db")]


def test_release_falls_back_to_default_database_outside_production(monkeypatch, calls):
    monkeypatch.setenv("ENV", "development")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    run_release()
    assert calls[-1] == ("seed", "sqlite:///portal.db")


def test_production_release_refuses_sqlite(monkeypatch, calls):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError, match="Postgres"):
        run_release()
    assert calls == []
