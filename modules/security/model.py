from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database.base import Base


class UserRole(str, Enum):
    ADMIN = "Admin"
    EMPLOYEE = "Employee"
    GUEST = "Guest"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(200), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)
    profile_picture_url = Column(String(300), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # storage allows several roles per user; the API keeps exactly one
    role_assignments = relationship(
        "UserRoleAssignment",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    # rows are created with plain foreign keys, so no delete-orphan on this side
    organized_meetings = relationship("Meeting", back_populates="organizer", cascade="all")
    invitations = relationship("Invitee", back_populates="user", cascade="all", passive_deletes=True)
    notifications = relationship("Notification", back_populates="user", cascade="all", passive_deletes=True)

    @property
    def roles(self) -> list[str]:
        return sorted(ra.role for ra in self.role_assignments)

    @property
    def full_name(self) -> str:
        return f"{(self.first_name or '').strip()} {(self.last_name or '').strip()}".strip()


class UserRoleAssignment(Base):
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)

    user = relationship("User", back_populates="role_assignments")

    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_role"),)
