# modules/meeting/files_routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from database.connection import get_db
from modules.meeting import services
from modules.meeting.storage import FileStorage, get_storage
from modules.security.deps import Principal, get_current_principal

router = APIRouter(prefix="/files", tags=["Files"])

PUBLIC_IMAGE_FOLDERS = ("rooms", "profiles")


@router.get("/meetings/{meeting_id}/{file_name}")
def get_meeting_file(
    meeting_id: int,
    file_name: str,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    me: Principal = Depends(get_current_principal),
):
    path, original_name = services.resolve_meeting_file(db, me, storage, meeting_id, file_name)
    return FileResponse(path, filename=original_name)


@router.get("/action-items/{item_id}/{side}/{file_name}")
def get_action_item_file(
    item_id: int,
    side: str,
    file_name: str,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    me: Principal = Depends(get_current_principal),
):
    # side: assignment | submission
    path, original_name = services.resolve_action_item_file(db, me, storage, item_id, side, file_name)
    return FileResponse(path, filename=original_name)


# room images and profile pictures are readable by any signed-in user
@router.get("/{folder}/{file_name}")
def get_public_image(
    folder: str,
    file_name: str,
    storage: FileStorage = Depends(get_storage),
    me: Principal = Depends(get_current_principal),
):
    if folder not in PUBLIC_IMAGE_FOLDERS:
        raise HTTPException(status_code=404, detail="File not found.")
    rel_path = f"{folder}/{file_name}"
    if not storage.exists(rel_path):
        raise HTTPException(status_code=404, detail="File not found.")
    return FileResponse(storage.absolute(rel_path))
