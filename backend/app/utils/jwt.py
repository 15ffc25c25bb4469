from datetime import datetime, timezone

from jose import JWTError, jwt

ALGORITHM = "HS256"


def create_session_token(session_id: str, *, secret_key: str, expires_at: float) -> str:
    """Sign the server-side session id so the cookie can't be forged or tampered with."""
    payload = {
        "sid": session_id,
        "exp": datetime.fromtimestamp(expires_at, tz=timezone.utc),
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def decode_session_token(token: str | None, *, secret_key: str) -> str | None:
    """Return the session id carried by a cookie token, or None if it's invalid or expired."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    sid = payload.get("sid")
    return sid if isinstance(sid, str) and sid else None
