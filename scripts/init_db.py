import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from contextlib import contextmanager

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.portal.constants import ROLE_REGISTRY
from app.portal.models import User


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the Registry account in an idempotent way.
    Does NOT overwrite an existing user's password or role.
    """
    registry_email = (os.environ.get("SEED_REGISTRY_EMAIL") or "").strip().lower()
    registry_password = os.environ.get("SEED_REGISTRY_PASSWORD") or ""
    if not registry_email or not registry_password:
        raise RuntimeError("SEED_REGISTRY_EMAIL and SEED_REGISTRY_PASSWORD must be set.")

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///portal.db").strip()

    # Use direct engine/session so this can run in release without importing app.wsgi (avoids recursion).
    with _session_scope(db_url) as s:
        user = s.query(User).filter(User.email == registry_email).one_or_none()
        if user:
            print(f"Registry user {registry_email} already exists; skipping.")
            return
        user = User(
            email=registry_email,
            name="Registry Admin",
            password_hash=generate_password_hash(registry_password),
            role=ROLE_REGISTRY,
            is_active=True,
        )
        s.add(user)

    print("Initialized database (seed_only).")
    print(f"Registry email: {registry_email}")
    print("Registry password: (from SEED_REGISTRY_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
