# modules/meeting/schemas.py
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from modules.meeting.models import (
    ActionItemStatus,
    Attendance,
    InviteStatus,
    Judgment,
    MeetingStatus,
)


def _strip_or_none(v):
    if v is None:
        return v
    s = str(v).strip()
    return s or None


def _naive_utc(v):
    # stored times are naive UTC
    if isinstance(v, datetime) and v.tzinfo is not None:
        return v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


# ---------- Shared ----------
class UserBrief(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    model_config = ConfigDict(from_attributes=True)


class RoomBrief(BaseModel):
    id: int
    name: str
    capacity: int
    location: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class AttachmentOut(BaseModel):
    id: int
    kind: str
    original_name: str
    url: str
    uploaded_by_id: Optional[int] = None
    uploaded_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ---------- Meetings ----------
class MeetingBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    agenda: Optional[str] = None
    room_id: Optional[int] = None
    online_link: Optional[str] = Field(default=None, max_length=500)
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_naive_utc(cls, v: datetime) -> datetime:
        return _naive_utc(v)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("online_link", mode="before")
    @classmethod
    def _blank_link(cls, v):
        return _strip_or_none(v)


class MeetingCreate(MeetingBase):
    pass


class MeetingUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    agenda: Optional[str] = None
    room_id: Optional[int] = None
    online_link: Optional[str] = Field(default=None, max_length=500)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[MeetingStatus] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_naive_utc(cls, v):
        return _naive_utc(v)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, v):
        if v is None or isinstance(v, MeetingStatus):
            return v
        s = str(v).strip()
        for st in MeetingStatus:
            if st.value.lower() == s.lower():
                return st
        return s  # let the enum reject it

    @field_validator("online_link", mode="before")
    @classmethod
    def _blank_link(cls, v):
        return _strip_or_none(v)


class RecurringMeetingCreate(MeetingBase):
    # validated by the service so a bad value is a 400, not a schema error
    recurrence_pattern: str
    recurrence_end_date: date


class MeetingBriefOut(BaseModel):
    id: int
    title: str
    room_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    status: str
    model_config = ConfigDict(from_attributes=True)


class RecurringMeetingOut(BaseModel):
    id: int
    title: str
    recurrence_pattern: str
    recurrence_end_date: date
    total_meetings: int
    meetings: List[MeetingBriefOut] = []


class InviteeOut(BaseModel):
    id: int
    meeting_id: int
    user_id: int
    email: Optional[str] = None
    status: InviteStatus
    attendance: Attendance
    user: Optional[UserBrief] = None
    model_config = ConfigDict(from_attributes=True)


class NoteOut(BaseModel):
    id: int
    meeting_id: int
    content: str
    created_by_id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ActionItemOut(BaseModel):
    id: int
    meeting_id: int
    description: str
    type: Optional[str] = None
    deadline: Optional[datetime] = None
    status: ActionItemStatus
    judgment: Judgment
    assigned_to_id: int
    assigned_to: Optional[UserBrief] = None
    assignment_attachments: List[AttachmentOut] = []
    submission_attachments: List[AttachmentOut] = []
    model_config = ConfigDict(from_attributes=True)


class MeetingOut(BaseModel):
    id: int
    title: str
    agenda: Optional[str] = None
    online_link: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: str
    room_id: Optional[int] = None
    room: Optional[RoomBrief] = None
    organizer_id: Optional[int] = None
    organizer: Optional[UserBrief] = None
    recurring_booking_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    invitees: List[InviteeOut] = []
    notes: List[NoteOut] = []
    action_items: List[ActionItemOut] = []
    attachments: List[AttachmentOut] = []
    model_config = ConfigDict(from_attributes=True)


class MeetingCountOut(BaseModel):
    count: int


class TopRoomOut(BaseModel):
    room_id: int
    room_name: str
    meeting_count: int


# ---------- Notes ----------
class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1)


class NoteUpdate(NoteCreate):
    pass


# ---------- Action items ----------
class ActionItemCreate(BaseModel):
    description: str = Field(..., min_length=1)
    type: Optional[str] = Field(default=None, max_length=20)  # Decision / Task / Issue
    deadline: Optional[datetime] = None
    assigned_to_id: int

    @field_validator("deadline")
    @classmethod
    def _deadline_utc(cls, v):
        return _naive_utc(v)


class ActionItemUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1)
    type: Optional[str] = Field(default=None, max_length=20)
    deadline: Optional[datetime] = None
    assigned_to_id: Optional[int] = None

    @field_validator("deadline")
    @classmethod
    def _deadline_utc(cls, v):
        return _naive_utc(v)


# ---------- Invitees ----------
class InviteeCreate(BaseModel):
    """Invite by user id or by e-mail address."""
    user_id: Optional[int] = None
    email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def _need_one(self):
        if self.user_id is None and self.email is None:
            raise ValueError("user_id or email is required")
        return self
