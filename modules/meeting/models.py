# modules/meeting/models.py
from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    ForeignKey,
    Text,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database.base import Base


# statuses are stored as plain strings; the enums name the values the API writes
class MeetingStatus(str, Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class RecurrencePattern(str, Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class InviteStatus(str, Enum):
    PENDING = "Pending"
    ANSWERED = "Answered"


class Attendance(str, Enum):
    ACCEPTED = "Accepted"
    DECLINED = "Declined"


class ActionItemStatus(str, Enum):
    PENDING = "Pending"
    SUBMITTED = "Submitted"


class Judgment(str, Enum):
    UNJUDGED = "Unjudged"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class AttachmentKind(str, Enum):
    MEETING = "meeting"
    ASSIGNMENT = "assignment"
    SUBMISSION = "submission"


class RecurringBooking(Base):
    __tablename__ = "recurring_bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recurrence_pattern = Column(String(50), nullable=False)
    recurrence_end_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    meetings = relationship("Meeting", back_populates="recurring_booking")


class Meeting(Base):
    __tablename__ = "meetings"

    id = Column(Integer, primary_key=True, index=True)

    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True)
    organizer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    recurring_booking_id = Column(
        Integer,
        ForeignKey("recurring_bookings.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    title = Column(String(200), nullable=False)
    agenda = Column(Text, nullable=True)
    online_link = Column(String(500), nullable=True)

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), default=MeetingStatus.SCHEDULED.value, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    room = relationship("Room", back_populates="meetings")
    organizer = relationship("User", back_populates="organized_meetings")
    recurring_booking = relationship("RecurringBooking", back_populates="meetings")

    invitees = relationship(
        "Invitee",
        back_populates="meeting",
        cascade="all, delete-orphan",
        order_by="Invitee.id",
    )
    notes = relationship(
        "Note",
        back_populates="meeting",
        cascade="all, delete-orphan",
        order_by="Note.id",
    )
    action_items = relationship(
        "ActionItem",
        back_populates="meeting",
        cascade="all, delete-orphan",
        order_by="ActionItem.id",
    )
    # every stored file of the meeting, action item files included
    all_attachments = relationship(
        "Attachment",
        back_populates="meeting",
        cascade="all",
        order_by="Attachment.id",
    )

    __table_args__ = (
        Index("ix_meetings_room_time", "room_id", "start_time", "end_time"),
    )

    @property
    def attachments(self):
        return [a for a in self.all_attachments if a.kind == AttachmentKind.MEETING.value]

    @property
    def is_cancelled(self) -> bool:
        return self.status == MeetingStatus.CANCELLED.value


class Invitee(Base):
    __tablename__ = "invitees"

    id = Column(Integer, primary_key=True, index=True)
    meeting_id = Column(Integer, ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # copied from the user when the invite is created
    email = Column(String(200), nullable=True)

    status = Column(String(20), default=InviteStatus.PENDING.value, nullable=False)
    attendance = Column(String(20), default=Attendance.DECLINED.value, nullable=False)

    meeting = relationship("Meeting", back_populates="invitees")
    user = relationship("User", back_populates="invitations")

    __table_args__ = (UniqueConstraint("meeting_id", "user_id", name="uq_invitee_meeting_user"),)

    @property
    def is_accepted(self) -> bool:
        return self.status == InviteStatus.ANSWERED.value and self.attendance == Attendance.ACCEPTED.value


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    meeting_id = Column(Integer, ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    meeting = relationship("Meeting", back_populates="notes")
    created_by = relationship("User")


class ActionItem(Base):
    __tablename__ = "action_items"

    id = Column(Integer, primary_key=True, index=True)
    meeting_id = Column(Integer, ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_to_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    description = Column(Text, nullable=False)
    type = Column(String(20), nullable=True)  # Decision, Task, Issue
    deadline = Column(DateTime, nullable=True)

    status = Column(String(20), default=ActionItemStatus.PENDING.value, nullable=False)
    judgment = Column(String(20), default=Judgment.UNJUDGED.value, nullable=False)

    meeting = relationship("Meeting", back_populates="action_items")
    assigned_to = relationship("User")
    attachments = relationship(
        "Attachment",
        back_populates="action_item",
        cascade="all",
        order_by="Attachment.id",
    )

    @property
    def assignment_attachments(self):
        return [a for a in self.attachments if a.kind == AttachmentKind.ASSIGNMENT.value]

    @property
    def submission_attachments(self):
        return [a for a in self.attachments if a.kind == AttachmentKind.SUBMISSION.value]


class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(Integer, primary_key=True, index=True)
    meeting_id = Column(Integer, ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False, index=True)
    action_item_id = Column(
        Integer,
        ForeignKey("action_items.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    kind = Column(String(20), nullable=False, default=AttachmentKind.MEETING.value)

    # path relative to the upload root, e.g. meetings/3/3f2a...c1.pdf
    path = Column(String(500), nullable=False, unique=True)
    original_name = Column(String(255), nullable=False)
    uploaded_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    meeting = relationship("Meeting", back_populates="all_attachments")
    action_item = relationship("ActionItem", back_populates="attachments")

    @property
    def url(self) -> str:
        return f"/files/{self.path}"

    @property
    def file_name(self) -> str:
        return self.path.rsplit("/", 1)[-1]
