# modules/rooms/schemas.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _clean_name(v):
    if v is None:
        return v
    v = str(v).strip()
    if not v:
        raise ValueError("name must not be blank")
    return v


# ---------- Features ----------
class FeatureBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        return _clean_name(v)


class FeatureCreate(FeatureBase):
    pass


class FeatureUpdate(FeatureBase):
    pass


class FeatureOut(BaseModel):
    id: int
    name: str
    model_config = ConfigDict(from_attributes=True)


# ---------- Rooms ----------
class RoomBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    capacity: int = Field(..., ge=1)
    location: Optional[str] = Field(default=None, max_length=200)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        return _clean_name(v)


class RoomCreate(RoomBase):
    feature_ids: List[int] = []


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    capacity: Optional[int] = Field(default=None, ge=1)
    location: Optional[str] = Field(default=None, max_length=200)
    # when given, replaces the room's feature set
    feature_ids: Optional[List[int]] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v):
        return _clean_name(v)


class RoomOut(RoomBase):
    id: int
    image_url: Optional[str] = None
    features: List[FeatureOut] = []
    model_config = ConfigDict(from_attributes=True)
