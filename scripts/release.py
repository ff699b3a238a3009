"""
Release phase: migrate the schema, then make sure the Registry account exists.

Both steps read DATABASE_URL through app.portal.config, the same as the app.
Production refuses the sqlite fallback.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _alembic_config():
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    return cfg


def run_release() -> None:
    from alembic import command

    from app.portal.config import load_settings
    from scripts import init_db

    settings = load_settings()
    if settings.env.lower() in ("prod", "production") and settings.database_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must point at Postgres for a production release.")

    print(f"Release ({settings.env}): upgrading schema to head", flush=True)
    command.upgrade(_alembic_config(), "head")

    print("Release: seeding registry account", flush=True)
    init_db.seed_only(database_url=settings.database_url)
    print("Release done.", flush=True)


if __name__ == "__main__":
    run_release()
