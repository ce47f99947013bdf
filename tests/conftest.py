from datetime import datetime
from pathlib import Path

import pytest

from app import create_app
from auth import register_user
from tasks import create_task


@pytest.fixture()
def app(tmp_path: Path):
    """
    App wired to a throwaway SQLite file.

    PBKDF2 with a low iteration count keeps hashing fast; the scrypt
    default is exercised separately in test_auth.py.
    """
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'tasks.db'}",
            "PASSWORD_HASH_METHOD": "pbkdf2:sha256:1000",
        }
    )
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def ctx(app):
    """Push an app context for tests that call the core functions directly."""
    with app.app_context():
        yield app


@pytest.fixture()
def alice(ctx) -> dict:
    return register_user("alice@example.com", "secret1")


@pytest.fixture()
def bob(ctx) -> dict:
    return register_user("bob@example.com", "secret2")


@pytest.fixture()
def make_task(alice):
    """Factory for tasks owned by alice unless another owner is given."""

    def _make(owner_id=None, **fields):
        values = {
            "title": "Write report",
            "description": "Quarterly numbers",
            "due_date": datetime(2025, 1, 1, 9, 0),
        }
        values.update(fields)
        return create_task(owner_id or alice["id"], **values)

    return _make
