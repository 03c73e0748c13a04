# modules/users/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from modules.meeting.schemas import RoomBrief


class UserOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    profile_picture_url: Optional[str] = None
    created_at: datetime
    roles: List[str] = []
    model_config = ConfigDict(from_attributes=True)


class CountOut(BaseModel):
    count: int


# ---------- Meeting projections ----------
class MeetingListItem(BaseModel):
    id: int
    title: str
    agenda: Optional[str] = None
    online_link: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: str
    organizer_id: Optional[int] = None
    room_id: Optional[int] = None
    room: Optional[RoomBrief] = None
    recurring_booking_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


class MeetingWithInviteOut(BaseModel):
    invite_id: int
    meeting: MeetingListItem


class TaggedMeetingOut(BaseModel):
    type: str  # organized | invited
    meeting: MeetingListItem


class ProfilePictureOut(BaseModel):
    user_id: int
    image_url: str
