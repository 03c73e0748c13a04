# modules/users/services.py
from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException, UploadFile
from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from modules.meeting.models import Attendance, Invitee, InviteStatus, Meeting
from modules.meeting.storage import FileStorage, validate_uploads
from modules.security.model import User
from modules.users import schemas

logger = logging.getLogger(__name__)

PROFILE_IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png"]
FILES_URL_PREFIX = "/files/"


def _page(q, page: int, page_size: int):
    return q.offset((page - 1) * page_size).limit(page_size)


def _accepted_by(user_id: int):
    return and_(
        Invitee.user_id == user_id,
        Invitee.status == InviteStatus.ANSWERED.value,
        Invitee.attendance == Attendance.ACCEPTED.value,
    )


def _one_year_before(d: date) -> date:
    try:
        return d.replace(year=d.year - 1)
    except ValueError:
        # 29 February
        return d.replace(year=d.year - 1, day=28)


# ----------------------------- users -----------------------------
def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.id.asc()).all()


def count_users(db: Session) -> int:
    return db.query(func.count(User.id)).scalar() or 0


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")
    return user


def get_user_by_email_or_404(db: Session, email: str) -> User:
    user = db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")
    return user


# ------------------------ meeting projections ------------------------
def organized_upcoming(db: Session, user_id: int, page: int, page_size: int) -> List[Meeting]:
    now = datetime.utcnow()
    q = (
        db.query(Meeting)
        .filter(Meeting.organizer_id == user_id, Meeting.end_time > now)
        .order_by(Meeting.start_time.asc())
    )
    return _page(q, page, page_size).all()


def invited_upcoming(db: Session, user_id: int, page: int, page_size: int) -> List[Meeting]:
    now = datetime.utcnow()
    q = (
        db.query(Meeting)
        .filter(Meeting.invitees.any(_accepted_by(user_id)), Meeting.start_time > now)
        .order_by(Meeting.start_time.asc())
    )
    return _page(q, page, page_size).all()


def _invites(db: Session, user_id: int, condition, page: int, page_size: int) -> List[schemas.MeetingWithInviteOut]:
    now = datetime.utcnow()
    q = (
        db.query(Invitee)
        .join(Meeting, Invitee.meeting_id == Meeting.id)
        .filter(Invitee.user_id == user_id, condition, Meeting.end_time > now)
        .order_by(Meeting.start_time.asc())
    )
    return [
        schemas.MeetingWithInviteOut(
            invite_id=inv.id,
            meeting=schemas.MeetingListItem.model_validate(inv.meeting),
        )
        for inv in _page(q, page, page_size).all()
    ]


def pending_invites(db: Session, user_id: int, page: int, page_size: int) -> List[schemas.MeetingWithInviteOut]:
    return _invites(db, user_id, Invitee.status == InviteStatus.PENDING.value, page, page_size)


def accepted_invites(db: Session, user_id: int, page: int, page_size: int) -> List[schemas.MeetingWithInviteOut]:
    cond = and_(
        Invitee.status == InviteStatus.ANSWERED.value,
        Invitee.attendance == Attendance.ACCEPTED.value,
    )
    return _invites(db, user_id, cond, page, page_size)


def _tagged_meetings(db: Session, user_id: int, ended_before: Optional[datetime] = None) -> List[schemas.TaggedMeetingOut]:
    organized = db.query(Meeting).filter(Meeting.organizer_id == user_id)
    invited = db.query(Meeting).filter(
        Meeting.invitees.any(_accepted_by(user_id)),
        Meeting.organizer_id != user_id,
    )
    if ended_before is not None:
        organized = organized.filter(Meeting.end_time < ended_before)
        invited = invited.filter(Meeting.end_time < ended_before)

    rows = [("organized", m) for m in organized.all()] + [("invited", m) for m in invited.all()]
    rows.sort(key=lambda r: r[1].start_time, reverse=True)
    return [
        schemas.TaggedMeetingOut(type=kind, meeting=schemas.MeetingListItem.model_validate(m))
        for kind, m in rows
    ]


def all_meetings(db: Session, user_id: int) -> List[schemas.TaggedMeetingOut]:
    return _tagged_meetings(db, user_id)


def previous_meetings(db: Session, user_id: int, page: int, page_size: int) -> List[schemas.TaggedMeetingOut]:
    rows = _tagged_meetings(db, user_id, ended_before=datetime.utcnow())
    start = (page - 1) * page_size
    return rows[start:start + page_size]


def daily_count(db: Session, user_id: int) -> int:
    today = datetime.combine(datetime.utcnow().date(), time.min)
    return (
        db.query(func.count(Meeting.id))
        .filter(
            Meeting.organizer_id == user_id,
            Meeting.start_time >= today,
            Meeting.start_time < today + timedelta(days=1),
        )
        .scalar()
        or 0
    )


def heatmap(db: Session, user_id: int) -> Dict[str, int]:
    """Meetings per day (organized or accepted) over the last year, every day present."""
    today = datetime.utcnow().date()
    first_day = _one_year_before(today)

    starts = (
        db.query(Meeting.start_time)
        .filter(Meeting.start_time >= datetime.combine(first_day, time.min))
        .filter((Meeting.organizer_id == user_id) | Meeting.invitees.any(_accepted_by(user_id)))
        .all()
    )
    per_day = Counter(row[0].date() for row in starts)

    counts: Dict[str, int] = {}
    d = first_day
    while d <= today:
        counts[d.isoformat()] = per_day.get(d, 0)
        d += timedelta(days=1)
    return counts


# ----------------------------- profile -----------------------------
def upload_profile_picture(db: Session, storage: FileStorage, user: User, file: UploadFile) -> schemas.ProfilePictureOut:
    (upload,) = validate_uploads([file], allowed_extensions=PROFILE_IMAGE_EXTENSIONS, max_files=1)

    old_url = user.profile_picture_url
    path = storage.save("profiles", upload)
    user.profile_picture_url = FILES_URL_PREFIX + path
    db.commit()
    db.refresh(user)

    if old_url and old_url.startswith(FILES_URL_PREFIX):
        storage.delete(old_url[len(FILES_URL_PREFIX):])
    logger.info("User %s uploaded a profile picture", user.id)
    return schemas.ProfilePictureOut(user_id=user.id, image_url=user.profile_picture_url)
