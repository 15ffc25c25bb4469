import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings
from ..database import get_db
from ..services.accounts import UserExistsError, authenticate, create_user, public_user
from ..services.session_store import SessionData, SessionStore
from ..utils.dependencies import get_optional_user, get_session_id, get_session_store, get_settings
from ..utils.error_handlers import get_error_message, handle_database_error
from ..utils.jwt import create_session_token
from ..utils.validation import validate_account_email, validate_role, validate_string_field

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


class SignupRequest(BaseModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None  # user / admin


class LoginRequest(BaseModel):
    username: str | None = None
    password: str | None = None


@router.post("/signup", status_code=201)
def signup(
    payload: SignupRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    caller: SessionData | None = Depends(get_optional_user),
):
    if not payload.username or not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Missing required fields")

    username = validate_string_field(payload.username, "Username", max_length=100)
    email = validate_account_email(payload.email)
    role = validate_role(payload.role)

    # Public signup never grants admin; an existing admin (or an explicit deployment flag) must.
    if role == "admin" and not settings.allow_admin_signup:
        if caller is None or caller.role != "admin":
            raise HTTPException(status_code=403, detail=get_error_message("admin_signup_forbidden"))

    try:
        user = create_user(db, username=username, email=email, password=payload.password, role=role)
    except UserExistsError:
        raise HTTPException(status_code=409, detail=get_error_message("user_exists"))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_database_error(e, "creating user", conflict_key="user_exists")

    return {"success": True, "user": public_user(user)}


@router.post("/login")
def login(
    payload: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
    previous_session_id: str | None = Depends(get_session_id),
):
    if not payload.username or not payload.password:
        raise HTTPException(status_code=400, detail=get_error_message("missing_credentials"))

    try:
        user = authenticate(db, username=payload.username.strip(), password=payload.password)
    except SQLAlchemyError as e:
        raise handle_database_error(e, "login")

    if user is None:
        raise HTTPException(status_code=401, detail=get_error_message("invalid_credentials"))

    # Logging in again replaces whatever session the browser was holding.
    store.revoke(previous_session_id)
    session = store.issue(user_id=user.id, role=user.role, username=user.username)
    token = create_session_token(
        session.session_id,
        secret_key=settings.secret_key,
        expires_at=session.expires_at,
    )
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_s,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    logger.info("User %r logged in", user.username)
    return {"success": True}


@router.post("/logout")
def logout(
    response: Response,
    session_id: str | None = Depends(get_session_id),
    settings: Settings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
):
    store.revoke(session_id)
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    return {"success": True}


@router.get("/me")
def me(user: SessionData | None = Depends(get_optional_user)):
    if user is None:
        return {"loggedIn": False}
    return {"loggedIn": True, "role": user.role, "username": user.username}
