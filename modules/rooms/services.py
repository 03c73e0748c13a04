# modules/rooms/services.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from fastapi import HTTPException, UploadFile
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from modules.meeting.storage import FileStorage, validate_uploads
from modules.rooms import models, schemas

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png", ".gif", ".webp"]
FILES_URL_PREFIX = "/files/"


# ----------------------------- helpers -----------------------------
def get_room_or_404(db: Session, room_id: int) -> models.Room:
    room = db.get(models.Room, room_id)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found.")
    return room


def get_feature_or_404(db: Session, feature_id: int) -> models.Feature:
    feature = db.get(models.Feature, feature_id)
    if not feature:
        raise HTTPException(status_code=404, detail="Feature not found.")
    return feature


def _assert_unique_room_name(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    q = db.query(models.Room.id).filter(func.lower(models.Room.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(models.Room.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=409, detail="A room with this name already exists.")


def _assert_unique_feature_name(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    q = db.query(models.Feature.id).filter(func.lower(models.Feature.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(models.Feature.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=409, detail="A feature with this name already exists.")


def _load_features(db: Session, feature_ids: Iterable[int]) -> List[models.Feature]:
    ids = list(dict.fromkeys(feature_ids))
    if not ids:
        return []
    rows = db.query(models.Feature).filter(models.Feature.id.in_(ids)).all()
    found = {f.id for f in rows}
    missing = [i for i in ids if i not in found]
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown feature ids: {missing}")
    return rows


def _set_features(room: models.Room, features: List[models.Feature]) -> None:
    # keep links that stay so the (room, feature) unique key never sees a re-insert
    wanted = {f.id: f for f in features}
    for rf in list(room.room_features):
        if rf.feature_id not in wanted:
            room.room_features.remove(rf)
    present = {rf.feature_id for rf in room.room_features}
    for fid, feature in wanted.items():
        if fid not in present:
            room.room_features.append(models.RoomFeature(feature=feature))


# ----------------------------- rooms -----------------------------
def list_rooms(db: Session) -> List[models.Room]:
    return db.query(models.Room).order_by(models.Room.name.asc()).all()


def create_room(db: Session, payload: schemas.RoomCreate) -> models.Room:
    _assert_unique_room_name(db, payload.name)
    features = _load_features(db, payload.feature_ids)

    room = models.Room(name=payload.name, capacity=payload.capacity, location=payload.location)
    _set_features(room, features)
    db.add(room)
    db.commit()
    db.refresh(room)
    logger.info("Room %s (%s) created", room.id, room.name)
    return room


def update_room(db: Session, room_id: int, payload: schemas.RoomUpdate) -> models.Room:
    room = get_room_or_404(db, room_id)
    data = payload.model_dump(exclude_unset=True)
    feature_ids = data.pop("feature_ids", None)

    for key in ("name", "capacity"):
        if key in data and data[key] is None:
            data.pop(key)
    if "name" in data:
        _assert_unique_room_name(db, data["name"], exclude_id=room.id)
    if feature_ids is not None:
        _set_features(room, _load_features(db, feature_ids))

    for k, v in data.items():
        setattr(room, k, v)
    db.commit()
    db.refresh(room)
    return room


def delete_room(db: Session, storage: FileStorage, room_id: int) -> None:
    room = get_room_or_404(db, room_id)
    image_url = room.image_url
    # meetings keep their history; the ORM nulls their room_id
    db.delete(room)
    db.commit()
    _delete_image(storage, image_url)
    logger.info("Room %s deleted", room_id)


def add_feature_to_room(db: Session, room_id: int, feature_id: int) -> models.Room:
    room = get_room_or_404(db, room_id)
    feature = get_feature_or_404(db, feature_id)
    if any(rf.feature_id == feature.id for rf in room.room_features):
        raise HTTPException(status_code=409, detail="The room already has this feature.")

    room.room_features.append(models.RoomFeature(feature=feature))
    db.commit()
    db.refresh(room)
    return room


def remove_feature_from_room(db: Session, room_id: int, feature_id: int) -> models.Room:
    room = get_room_or_404(db, room_id)
    link = next((rf for rf in room.room_features if rf.feature_id == feature_id), None)
    if link is None:
        raise HTTPException(status_code=404, detail="The room does not have this feature.")

    room.room_features.remove(link)
    db.commit()
    db.refresh(room)
    return room


def _delete_image(storage: FileStorage, image_url: Optional[str]) -> None:
    if image_url and image_url.startswith(FILES_URL_PREFIX):
        storage.delete(image_url[len(FILES_URL_PREFIX):])


def upload_room_image(db: Session, storage: FileStorage, room_id: int, file: UploadFile) -> models.Room:
    room = get_room_or_404(db, room_id)
    (upload,) = validate_uploads([file], allowed_extensions=IMAGE_EXTENSIONS, max_files=1)

    old_url = room.image_url
    path = storage.save("rooms", upload)
    try:
        room.image_url = FILES_URL_PREFIX + path
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        storage.delete(path)
        raise
    db.refresh(room)
    _delete_image(storage, old_url)
    return room


# ----------------------------- features -----------------------------
def list_features(db: Session) -> List[models.Feature]:
    return db.query(models.Feature).order_by(models.Feature.name.asc()).all()


def create_feature(db: Session, payload: schemas.FeatureCreate) -> models.Feature:
    _assert_unique_feature_name(db, payload.name)
    feature = models.Feature(name=payload.name)
    db.add(feature)
    db.commit()
    db.refresh(feature)
    return feature


def update_feature(db: Session, feature_id: int, payload: schemas.FeatureUpdate) -> models.Feature:
    feature = get_feature_or_404(db, feature_id)
    _assert_unique_feature_name(db, payload.name, exclude_id=feature.id)
    feature.name = payload.name
    db.commit()
    db.refresh(feature)
    return feature


def delete_feature(db: Session, feature_id: int) -> None:
    feature = get_feature_or_404(db, feature_id)
    db.delete(feature)
    db.commit()
