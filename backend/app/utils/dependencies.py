from fastapi import Depends, HTTPException, Request

from ..config import Settings
from ..services.session_store import SessionData, SessionStore
from .error_handlers import get_error_message
from .jwt import decode_session_token


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_session_id(request: Request, settings: Settings = Depends(get_settings)) -> str | None:
    token = request.cookies.get(settings.session_cookie_name)
    return decode_session_token(token, secret_key=settings.secret_key)


def get_optional_user(
    session_id: str | None = Depends(get_session_id),
    store: SessionStore = Depends(get_session_store),
) -> SessionData | None:
    return store.get(session_id)


def get_current_user(user: SessionData | None = Depends(get_optional_user)) -> SessionData:
    if user is None:
        raise HTTPException(status_code=401, detail=get_error_message("unauthorized"))
    return user
