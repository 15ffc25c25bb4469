import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from ..services.file_storage import UploadStore
from ..utils.error_handlers import get_error_message
from .applications import get_upload_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Uploads"])


@router.get("/uploads/{file_path:path}")
def serve_upload(file_path: str, uploads: UploadStore = Depends(get_upload_store)):
    abs_path = uploads.resolve_request_path(file_path)
    if not abs_path.is_file():
        logger.warning(f"Upload not found on server: {abs_path}")
        raise HTTPException(status_code=404, detail=get_error_message("not_found"))

    # FileResponse handles streaming efficiently
    return FileResponse(abs_path)
