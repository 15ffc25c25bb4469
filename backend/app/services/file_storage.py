"""
Upload storage for applicant documents.

Files live flat under the upload root as `<unix-nanoseconds>_<original name>`
and are referenced from the database as `uploads/<stored name>`, which is
also the public URL path they are served from.
"""
import logging
import time
from contextlib import contextmanager
from pathlib import Path, PurePosixPath

from fastapi import HTTPException, UploadFile

from ..utils.error_handlers import get_error_message, handle_file_upload_error
from ..utils.validation import sanitize_filename

logger = logging.getLogger(__name__)

URL_PREFIX = "uploads"
CHUNK_SIZE = 1024 * 1024  # 1MB


class UploadStore:
    def __init__(self, root: str | Path, *, max_bytes: int):
        self.root = Path(root).resolve()
        self.max_bytes = int(max_bytes)

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def absolute_path(self, stored_path: str) -> Path:
        """Map a stored `uploads/<name>` path back onto the filesystem."""
        rel = PurePosixPath(stored_path)
        if rel.parts and rel.parts[0] == URL_PREFIX:
            rel = PurePosixPath(*rel.parts[1:])
        return self.root.joinpath(*rel.parts)

    def resolve_request_path(self, requested: str) -> Path:
        """
        Resolve a path requested below /uploads/ to a file inside the upload root.

        Rejects empty paths, hidden/relative first segments, absolute paths and
        anything that resolves outside the root.
        """
        requested = (requested or "").replace("\\", "/")
        if not requested or requested.startswith(".") or requested.startswith("/") or "\x00" in requested:
            raise HTTPException(status_code=400, detail=get_error_message("invalid_file_path"))

        candidate = (self.root / requested).resolve()
        if self.root not in candidate.parents:
            raise HTTPException(status_code=400, detail=get_error_message("invalid_file_path"))
        return candidate

    def _write(self, upload: UploadFile) -> tuple[Path, int]:
        original = sanitize_filename(Path(upload.filename or "").name)
        self.ensure_root()

        while True:
            dest = self.root / f"{time.time_ns()}_{original}"
            try:
                out = open(dest, "xb")
            except FileExistsError:
                continue
            break

        size = 0
        try:
            with out:
                upload.file.seek(0)
                while True:
                    chunk = upload.file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise HTTPException(status_code=413, detail=get_error_message("file_too_large"))
                    out.write(chunk)
        except Exception:
            _remove_quietly(dest)
            raise
        return dest, size

    @contextmanager
    def tracked(self):
        """
        Scope for saving several uploads that belong to one database write.

        Everything saved inside the block is removed again if the block raises,
        so a failed insert never leaves orphaned files behind.
        """
        batch = UploadBatch(self)
        try:
            yield batch
        except BaseException:
            batch.discard()
            raise


class UploadBatch:
    def __init__(self, store: UploadStore):
        self._store = store
        self.paths: list[Path] = []

    def save(self, upload: UploadFile) -> str:
        try:
            dest, size = self._store._write(upload)
        except HTTPException:
            raise
        except Exception as e:
            raise handle_file_upload_error(e, upload.filename or "") from e
        self.paths.append(dest)
        logger.debug("Stored upload %s (%d bytes)", dest.name, size)
        return f"{URL_PREFIX}/{dest.name}"

    def discard(self) -> None:
        for path in self.paths:
            _remove_quietly(path)
        self.paths.clear()


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove upload %s: %s", path, e)
