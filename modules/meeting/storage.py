# modules/meeting/storage.py
from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from fastapi import HTTPException, UploadFile

from config.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class PendingUpload:
    original_name: str
    ext: str
    data: bytes


# ----------------------------- validation -----------------------------
def validate_uploads(
    files: Optional[Sequence[UploadFile]],
    allowed_extensions: Optional[Iterable[str]] = None,
    max_files: Optional[int] = None,
    max_bytes: Optional[int] = None,
) -> List[PendingUpload]:
    """
    Read and check a whole batch before anything is written.
    Any violation rejects the batch with 400.
    """
    allowed = {e.lower() for e in (allowed_extensions or settings.ALLOWED_UPLOAD_EXTENSIONS)}
    max_files = max_files or settings.MAX_UPLOAD_FILES
    max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES

    files = [f for f in (files or []) if f is not None and (f.filename or "")]
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded.")
    if len(files) > max_files:
        raise HTTPException(status_code=400, detail=f"You can upload a maximum of {max_files} files.")

    pending: List[PendingUpload] = []
    for f in files:
        name = os.path.basename(f.filename)
        ext = os.path.splitext(name)[1].lower()
        if ext not in allowed:
            raise HTTPException(status_code=400, detail=f"File type {ext or '(none)'} is not allowed.")
        data = f.file.read()
        if len(data) > max_bytes:
            raise HTTPException(status_code=400, detail=f"File {name} exceeds the size limit of {max_bytes} bytes.")
        pending.append(PendingUpload(original_name=name, ext=ext, data=data))
    return pending


# ------------------------------- storage -------------------------------
class FileStorage:
    """Files on local disk under one root; callers deal in relative paths like 'meetings/3/ab12.pdf'."""

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def absolute(self, rel_path: str) -> str:
        full = os.path.abspath(os.path.join(self.root, rel_path))
        if os.path.commonpath([full, self.root]) != self.root:
            raise HTTPException(status_code=400, detail="Invalid file path.")
        return full

    def exists(self, rel_path: str) -> bool:
        return os.path.isfile(self.absolute(rel_path))

    def save(self, folder: str, upload: PendingUpload) -> str:
        rel_path = f"{folder.strip('/')}/{uuid.uuid4().hex}{upload.ext}"
        full = self.absolute(rel_path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "wb") as fh:
            fh.write(upload.data)
        return rel_path

    def delete(self, rel_path: Optional[str]) -> None:
        if not rel_path:
            return
        try:
            os.remove(self.absolute(rel_path))
        except FileNotFoundError:
            pass
        except OSError as e:
            # a stale file on disk is not worth failing the request for
            logger.warning("Could not delete %s: %s", rel_path, e)

    def delete_many(self, rel_paths: Iterable[str]) -> None:
        for p in rel_paths:
            self.delete(p)


def get_storage() -> FileStorage:
    return FileStorage(settings.UPLOAD_DIR)
