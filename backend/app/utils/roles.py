from fastapi import Depends, HTTPException

from ..services.session_store import SessionData
from .dependencies import get_current_user
from .error_handlers import get_error_message


def _role_required(required_role: str):
    def check_role(user: SessionData = Depends(get_current_user)) -> SessionData:
        # Exact match: an admin does not implicitly satisfy a "user" route.
        if user.role != required_role:
            raise HTTPException(status_code=403, detail=get_error_message("forbidden"))
        return user
    return check_role


admin_only = _role_required("admin")
