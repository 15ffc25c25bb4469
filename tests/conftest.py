import os
import sys
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


# Ensure `import backend.app...` works regardless of where pytest is run from.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Must be set before backend.app.config is imported so a developer's .env can't leak in.
os.environ["DISABLE_DOTENV"] = "1"

PDF_BYTES = b"%PDF-1.4\n%Fake\n"

ADMIN_USERNAME = "hr_admin"
ADMIN_PASSWORD = "Adminpass123!"

APPLICATION_FORM = {
    "full_name": "Amira Ben Salah",
    "email": "a@b.com",
    "gender": "Female",
    "phone": "12-34-56-78",
    "university": "INSAT",
    "field_of_study": "Computer Science",
    "degree_level": "Engineering",
    "internship_duration": "6 months",
    "preferred_working_method": "Hybrid",
    "application_type": "Solo",
}


@pytest.fixture()
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture()
def app(tmp_path: Path, upload_dir: Path) -> FastAPI:
    """
    Create a FastAPI app wired to a temporary SQLite DB and upload directory.
    """
    from backend.app.config import Settings
    from backend.app.main import create_app

    settings = Settings(
        database_url=f"sqlite+pysqlite:///{(tmp_path / 'test.sqlite3').as_posix()}",
        upload_dir=str(upload_dir),
        secret_key="test-secret",
        log_level="WARNING",
    )
    return create_app(settings)


@pytest.fixture()
def client(app: FastAPI):
    # Context manager runs the lifespan handler, which creates the tables.
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db_session(client: TestClient, app: FastAPI):
    """
    Direct SQLAlchemy session bound to the same temporary SQLite DB used by the test app.
    """
    db = app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def admin_account(db_session):
    from backend.app.services.accounts import create_user

    return create_user(
        db_session,
        username=ADMIN_USERNAME,
        email="hr@example.com",
        password=ADMIN_PASSWORD,
        role="admin",
    )


@pytest.fixture()
def admin_client(client: TestClient, admin_account) -> TestClient:
    r = client.post("/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.text
    return client


@pytest.fixture()
def subjects(db_session) -> dict:
    from backend.app.models.subject import Subject

    rows = [Subject(name=n) for n in ("Data Science", "Web Development", "Cyber Security")]
    db_session.add_all(rows)
    db_session.commit()
    return {s.name: s.id for s in rows}


def submit_application(client: TestClient, *, subjects=("Data Science",), cv=None, motivation=None, **overrides):
    data = {**APPLICATION_FORM, **overrides}
    if subjects:
        data["subjects"] = list(subjects)
    files = {}
    if cv is not False:
        files["cv"] = cv or ("cv.pdf", PDF_BYTES, "application/pdf")
    if motivation is not None:
        files["motivation"] = motivation
    return client.post("/apply", data=data, files=files or None)


@pytest.fixture()
def submit(client: TestClient):
    def _submit(**kwargs):
        return submit_application(client, **kwargs)
    return _submit
