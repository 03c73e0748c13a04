# modules/rooms/models.py
from __future__ import annotations

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database.base import Base


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    capacity = Column(Integer, nullable=False)
    location = Column(String(200), nullable=True)
    image_url = Column(String(300), nullable=True)

    room_features = relationship(
        "RoomFeature",
        back_populates="room",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    # no delete cascade: meetings outlive the room with room_id set to NULL
    meetings = relationship("Meeting", back_populates="room")

    @property
    def features(self):
        return [rf.feature for rf in self.room_features]


class Feature(Base):
    __tablename__ = "features"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True)

    room_features = relationship("RoomFeature", back_populates="feature", cascade="all, delete-orphan")


class RoomFeature(Base):
    __tablename__ = "room_features"

    id = Column(Integer, primary_key=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    feature_id = Column(Integer, ForeignKey("features.id", ondelete="CASCADE"), nullable=False, index=True)

    room = relationship("Room", back_populates="room_features")
    feature = relationship("Feature", back_populates="room_features", lazy="joined")

    __table_args__ = (UniqueConstraint("room_id", "feature_id", name="uq_room_feature"),)
