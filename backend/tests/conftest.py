from pathlib import Path
import os
import tempfile
import pytest

# Point the app at a throwaway SQLite file before `quizmatics` is imported.
_DB_DIR = Path(tempfile.mkdtemp(prefix="quizmatics-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ.setdefault("ENV", "dev")


@pytest.fixture(autouse=True)
def reset_db():
    """Give every test empty tables."""
    from quizmatics.database import create_db_and_tables, drop_db_and_tables
    drop_db_and_tables()
    create_db_and_tables()
    yield


@pytest.fixture
def session():
    from sqlmodel import Session
    from quizmatics.database import engine
    with Session(engine) as s:
        yield s


@pytest.fixture
def auth_headers():
    """Bearer headers for a freshly registered user."""
    from fastapi.testclient import TestClient
    from quizmatics.main import app
    client = TestClient(app)
    client.post('/auth/register', json={'username': 'editor', 'password': 'pw123'})
    r = client.post('/auth/login', json={'username': 'editor', 'password': 'pw123'})
    assert r.status_code == 200
    return {'Authorization': f"Bearer {r.json()['access_token']}"}
