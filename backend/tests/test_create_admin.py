from backend import create_admin
from backend.app.database import build_engine, build_session_factory
from backend.app.models.user import User
from backend.app.utils.security import verify_password


def test_create_admin_provisions_admin_account(tmp_path, monkeypatch, capsys):
    db_url = f"sqlite:///{(tmp_path / 'admin.sqlite3').as_posix()}"
    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.setenv("ADMIN_PASSWORD", "Adminpass123!")

    assert create_admin.main(["hr_lead", "HR@Example.com"]) == 0
    assert "✓" in capsys.readouterr().out

    engine = build_engine(db_url)
    db = build_session_factory(engine)()
    try:
        user = db.query(User).filter(User.username == "hr_lead").one()
        assert user.role == "admin"
        assert user.email == "hr@example.com"
        assert verify_password("Adminpass123!", user.password_hash)
    finally:
        db.close()
        engine.dispose()

    # Second run reports the clash instead of crashing.
    assert create_admin.main(["hr_lead", "hr@example.com"]) == 1
    assert "already exists" in capsys.readouterr().out


def test_create_admin_rejects_bad_email(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{(tmp_path / 'admin.sqlite3').as_posix()}")
    monkeypatch.setenv("ADMIN_PASSWORD", "Adminpass123!")

    assert create_admin.main(["hr_lead", "not-an-email"]) == 1
    assert "✗" in capsys.readouterr().out
