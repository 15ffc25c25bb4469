"""
Centralized error handling and user-friendly error messages.
"""
import logging

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError

logger = logging.getLogger(__name__)


# User-friendly error messages
ERROR_MESSAGES = {
    # Authentication
    "invalid_credentials": "Invalid username or password.",
    "missing_credentials": "Username and password are required.",
    "user_exists": "A user with this username or email already exists.",
    "admin_signup_forbidden": "Admin accounts can only be created by an administrator.",

    # File uploads
    "file_too_large": "File is too large.",
    "cv_required": "A CV file is required.",
    "cv_not_pdf": "CV must be a PDF file.",
    "motivation_not_pdf": "Motivation letter must be a PDF file.",
    "file_save_failed": "Failed to save uploaded file. Please try again.",
    "invalid_file_path": "Invalid file path.",

    # Applications
    "email_used": "Email already used.",
    "no_subjects": "Please select at least one subject.",
    "application_failed": "Failed to create application. Please try again.",

    # Subjects
    "subject_exists": "Subject already exists.",
    "subject_not_found": "Subject not found.",
    "no_subjects_selected": "No subjects selected.",
    "subject_in_use": "Subject is referenced by an application.",

    # General
    "unauthorized": "Please login to access this feature.",
    "forbidden": "You don't have permission to access this resource.",
    "not_found": "The requested resource was not found.",
    "server_error": "Something went wrong on our end. Please try again later.",
    "database_error": "Database connection issue. Please try again later.",
    "validation_error": "Please check your input and try again.",
}


def get_error_message(error_key: str, default: str | None = None) -> str:
    """Get a user-friendly error message."""
    return ERROR_MESSAGES.get(error_key, default or ERROR_MESSAGES["server_error"])


def handle_file_upload_error(error: Exception, filename: str = "") -> HTTPException:
    """Handle file upload errors with user-friendly messages."""
    logger.error(f"File upload error for {filename}: {error}")

    if isinstance(error, HTTPException):
        return error

    return HTTPException(
        status_code=500,
        detail=get_error_message("file_save_failed")
    )


def handle_database_error(
    error: Exception,
    operation: str = "",
    conflict_key: str | None = None,
) -> HTTPException:
    """Handle database errors with user-friendly messages."""
    logger.error(f"Database error during {operation}: {error}")

    if isinstance(error, IntegrityError):
        error_str = str(getattr(error, "orig", error)).lower()
        if "duplicate" in error_str or "unique" in error_str:
            return HTTPException(
                status_code=409,
                detail=get_error_message(conflict_key or "", "This record already exists. Please check your input."),
            )
        if "foreign key" in error_str:
            return HTTPException(
                status_code=409,
                detail="Invalid reference. The related record is in use or has been deleted.",
            )

    if isinstance(error, OperationalError):
        return HTTPException(
            status_code=503,
            detail=get_error_message("database_error")
        )

    return HTTPException(
        status_code=500,
        detail=get_error_message("server_error")
    )


def create_error_response(status_code: int, message, headers: dict | None = None) -> JSONResponse:
    """Create a standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": message,
            "status_code": status_code,
        },
        headers=headers,
    )
