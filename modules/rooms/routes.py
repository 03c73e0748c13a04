# modules/rooms/routes.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from database.connection import get_db
from modules.meeting.storage import FileStorage, get_storage
from modules.rooms import services
from modules.rooms.schemas import (
    FeatureCreate,
    FeatureOut,
    FeatureUpdate,
    RoomCreate,
    RoomOut,
    RoomUpdate,
)
from modules.security.deps import get_current_principal, require_admin

rooms = APIRouter(prefix="/rooms", tags=["Rooms"], dependencies=[Depends(get_current_principal)])
features = APIRouter(prefix="/features", tags=["Features"], dependencies=[Depends(get_current_principal)])


# ---------- Rooms ----------
@rooms.get("", response_model=List[RoomOut])
def list_rooms(db: Session = Depends(get_db)):
    return services.list_rooms(db)


@rooms.get("/{room_id}", response_model=RoomOut)
def get_room(room_id: int, db: Session = Depends(get_db)):
    return services.get_room_or_404(db, room_id)


@rooms.post("", response_model=RoomOut, status_code=201, dependencies=[Depends(require_admin)])
def create_room(payload: RoomCreate, db: Session = Depends(get_db)):
    return services.create_room(db, payload)


@rooms.put("/{room_id}", response_model=RoomOut, dependencies=[Depends(require_admin)])
def update_room(room_id: int, payload: RoomUpdate, db: Session = Depends(get_db)):
    return services.update_room(db, room_id, payload)


@rooms.delete("/{room_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_room(room_id: int, db: Session = Depends(get_db), storage: FileStorage = Depends(get_storage)):
    services.delete_room(db, storage, room_id)
    return None


@rooms.post("/{room_id}/features/{feature_id}", response_model=RoomOut, dependencies=[Depends(require_admin)])
def add_room_feature(room_id: int, feature_id: int, db: Session = Depends(get_db)):
    return services.add_feature_to_room(db, room_id, feature_id)


@rooms.delete("/{room_id}/features/{feature_id}", response_model=RoomOut, dependencies=[Depends(require_admin)])
def remove_room_feature(room_id: int, feature_id: int, db: Session = Depends(get_db)):
    return services.remove_feature_from_room(db, room_id, feature_id)


@rooms.post("/{room_id}/upload-image", response_model=RoomOut, dependencies=[Depends(require_admin)])
def upload_room_image(
    room_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    return services.upload_room_image(db, storage, room_id, file)


# ---------- Features ----------
@features.get("", response_model=List[FeatureOut])
def list_features(db: Session = Depends(get_db)):
    return services.list_features(db)


@features.get("/{feature_id}", response_model=FeatureOut)
def get_feature(feature_id: int, db: Session = Depends(get_db)):
    return services.get_feature_or_404(db, feature_id)


@features.post("", response_model=FeatureOut, status_code=201, dependencies=[Depends(require_admin)])
def create_feature(payload: FeatureCreate, db: Session = Depends(get_db)):
    return services.create_feature(db, payload)


@features.put("/{feature_id}", response_model=FeatureOut, dependencies=[Depends(require_admin)])
def update_feature(feature_id: int, payload: FeatureUpdate, db: Session = Depends(get_db)):
    return services.update_feature(db, feature_id, payload)


@features.delete("/{feature_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_feature(feature_id: int, db: Session = Depends(get_db)):
    services.delete_feature(db, feature_id)
    return None
