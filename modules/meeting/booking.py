# modules/meeting/booking.py
"""
Room conflict detection and recurring-meeting expansion.

A room is booked for [start, end) when any other non-cancelled meeting in the
same room satisfies ``existing.start < end and existing.end > start``.
Recurring meetings advance both bounds by a fixed interval; a month is 30 days.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Tuple, Union

from fastapi import HTTPException
from sqlalchemy.orm import Session

from modules.meeting import models

RECURRENCE_INTERVALS = {
    models.RecurrencePattern.DAILY: timedelta(days=1),
    models.RecurrencePattern.WEEKLY: timedelta(days=7),
    models.RecurrencePattern.MONTHLY: timedelta(days=30),
}


# -------------------------- overlap guard --------------------------
def is_booked(
    db: Session,
    room_id: Optional[int],
    exclude_meeting_id: Optional[int],
    start_time: datetime,
    end_time: datetime,
) -> bool:
    # meetings without a room never conflict
    if room_id is None:
        return False

    q = (
        db.query(models.Meeting.id)
        .filter(models.Meeting.room_id == room_id)
        .filter(models.Meeting.status != models.MeetingStatus.CANCELLED.value)
        .filter(models.Meeting.start_time < end_time)
        .filter(models.Meeting.end_time > start_time)
    )
    if exclude_meeting_id is not None:
        q = q.filter(models.Meeting.id != exclude_meeting_id)
    return q.first() is not None


def assert_room_available(
    db: Session,
    room_id: Optional[int],
    start_time: datetime,
    end_time: datetime,
    exclude_meeting_id: Optional[int] = None,
) -> None:
    if is_booked(db, room_id, exclude_meeting_id, start_time, end_time):
        raise HTTPException(status_code=409, detail="The room is already booked for the selected time.")


def assert_valid_window(start_time: datetime, end_time: datetime) -> None:
    if start_time >= end_time:
        raise HTTPException(status_code=400, detail="Start time must be before end time.")


# ----------------------------- recurrence -----------------------------
def parse_pattern(value) -> models.RecurrencePattern:
    if isinstance(value, models.RecurrencePattern):
        return value
    s = str(value or "").strip().lower()
    for p in models.RecurrencePattern:
        if p.value.lower() == s:
            return p
    raise HTTPException(status_code=400, detail="Invalid recurrence pattern.")


def iter_occurrences(
    first_start: datetime,
    first_end: datetime,
    pattern,
    until: Union[date, datetime],
) -> Iterator[Tuple[datetime, datetime]]:
    """Yield (start, end) pairs while the occurrence start is on or before ``until``.

    A plain date bound is inclusive of the whole day.
    """
    step = RECURRENCE_INTERVALS[parse_pattern(pattern)]
    cur_start, cur_end = first_start, first_end

    # datetime is a subclass of date, so it has to be checked first
    if isinstance(until, datetime):
        def in_range(dt: datetime) -> bool:
            return dt <= until
    else:
        def in_range(dt: datetime) -> bool:
            return dt.date() <= until

    while in_range(cur_start):
        yield cur_start, cur_end
        cur_start += step
        cur_end += step


def expand(
    db: Session,
    room_id: Optional[int],
    first_start: datetime,
    first_end: datetime,
    pattern,
    until: Union[date, datetime],
) -> Iterator[Tuple[datetime, datetime]]:
    """
    Conflict-free occurrences of a recurring meeting.
    Lazy: the caller flushes each accepted occurrence before asking for the next,
    so later occurrences are checked against earlier ones of the same batch.
    """
    for start, end in iter_occurrences(first_start, first_end, pattern, until):
        if is_booked(db, room_id, None, start, end):
            continue
        yield start, end
