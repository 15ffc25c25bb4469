import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

# Override=True so changes in backend/.env take effect on process reload (and not get
# stuck on old environment variables).
#
# For automated tests (SQLite), we need to prevent backend/.env from overriding the
# test DATABASE_URL. Set DISABLE_DOTENV=1 to skip loading .env.
if os.getenv("DISABLE_DOTENV") != "1":
    load_dotenv(override=True)

_BACKEND_DIR = Path(__file__).resolve().parent.parent

_TRUTHY = {"1", "true", "True", "yes", "YES"}


def _env_flag(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or default).strip() in _TRUTHY


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


class Settings(BaseModel):
    # Default to a local SQLite DB for dev so the backend can start out-of-the-box.
    database_url: str = f"sqlite:///{(_BACKEND_DIR / 'dev.db').as_posix()}"
    upload_dir: str = (_BACKEND_DIR / "uploads").as_posix()

    # NOTE: keep a default for local dev so the server can boot even if SECRET_KEY isn't set.
    secret_key: str = "dev_secret_change_me"
    session_max_age_s: int = 60 * 60 * 24
    session_cookie_name: str = "auth"
    session_cookie_secure: bool = False

    # Admin accounts are provisioned with backend/create_admin.py unless this is on.
    allow_admin_signup: bool = False

    max_upload_bytes: int = 10 * 1024 * 1024
    frontend_origins: list[str] = []
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        origins = [
            origin.strip()
            for origin in os.getenv("FRONTEND_ORIGINS", "").split(",")
            if origin.strip()
        ]
        return cls(
            database_url=(os.getenv("DATABASE_URL") or "").strip() or defaults.database_url,
            upload_dir=os.getenv("UPLOAD_DIR") or defaults.upload_dir,
            secret_key=os.getenv("SECRET_KEY", defaults.secret_key),
            session_max_age_s=_env_int("SESSION_MAX_AGE_S", defaults.session_max_age_s),
            session_cookie_name=os.getenv("SESSION_COOKIE_NAME") or defaults.session_cookie_name,
            session_cookie_secure=_env_flag("SESSION_COOKIE_SECURE"),
            allow_admin_signup=_env_flag("ALLOW_ADMIN_SIGNUP"),
            max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", defaults.max_upload_bytes),
            frontend_origins=origins,
            log_level=(os.getenv("LOG_LEVEL") or defaults.log_level).upper(),
        )


def get_settings() -> Settings:
    return Settings.from_env()
