# modules/meeting/services.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from fastapi import HTTPException, UploadFile
from sqlalchemy import and_, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import email_settings
from modules.common.email_service import EmailService, meeting_invitation
from modules.meeting import models, schemas
from modules.meeting.booking import (
    assert_room_available,
    assert_valid_window,
    expand,
    parse_pattern,
)
from modules.meeting.locks import booking_lock, keyed_lock
from modules.meeting.policies import MeetingAction, ensure
from modules.meeting.storage import FileStorage, validate_uploads
from modules.rooms.models import Room
from modules.security.deps import Principal
from modules.security.model import User

logger = logging.getLogger(__name__)

email_svc = EmailService(email_settings)

ACTION_ITEM_FILE_SIDES = (models.AttachmentKind.ASSIGNMENT.value, models.AttachmentKind.SUBMISSION.value)


# ----------------------------- helpers -----------------------------
def get_meeting_or_404(db: Session, meeting_id: int) -> models.Meeting:
    m = db.get(models.Meeting, meeting_id)
    if not m:
        raise HTTPException(status_code=404, detail="Meeting not found.")
    return m


def _get_child_or_404(db: Session, model, child_id: int, meeting_id: int, label: str):
    row = db.get(model, child_id)
    if not row or row.meeting_id != meeting_id:
        raise HTTPException(status_code=404, detail=f"{label} not found.")
    return row


def _get_room_or_404(db: Session, room_id: Optional[int]) -> Optional[Room]:
    if room_id is None:
        return None
    room = db.get(Room, room_id)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found.")
    return room


def _accepted_invitee_count(db: Session, meeting_id: int) -> int:
    return (
        db.query(func.count(models.Invitee.id))
        .filter(
            models.Invitee.meeting_id == meeting_id,
            models.Invitee.status == models.InviteStatus.ANSWERED.value,
            models.Invitee.attendance == models.Attendance.ACCEPTED.value,
        )
        .scalar()
        or 0
    )


def _assert_capacity(db: Session, meeting: models.Meeting) -> None:
    # only accepted invitees take a seat; cancelled or room-less meetings have no limit
    if meeting.room is None or meeting.is_cancelled:
        return
    if _accepted_invitee_count(db, meeting.id) >= meeting.room.capacity:
        raise HTTPException(status_code=400, detail="The room is at full capacity.")


def _assert_assignable(meeting: models.Meeting, user_id: int) -> None:
    if user_id == meeting.organizer_id:
        return
    if any(i.user_id == user_id and i.is_accepted for i in meeting.invitees):
        return
    raise HTTPException(
        status_code=400,
        detail="Action items can only be assigned to the organizer or an accepted invitee.",
    )


def visible_meetings_query(db: Session, principal: Principal):
    """Admins see every meeting; everyone else sees what they organize or accepted."""
    q = db.query(models.Meeting)
    if principal.is_admin:
        return q
    accepted = models.Meeting.invitees.any(
        and_(
            models.Invitee.user_id == principal.user_id,
            models.Invitee.status == models.InviteStatus.ANSWERED.value,
            models.Invitee.attendance == models.Attendance.ACCEPTED.value,
        )
    )
    return q.filter(or_(models.Meeting.organizer_id == principal.user_id, accepted))


# ----------------------------- meetings -----------------------------
def list_meetings(db: Session, principal: Principal) -> List[models.Meeting]:
    return visible_meetings_query(db, principal).order_by(models.Meeting.start_time.asc()).all()


def get_meeting(db: Session, principal: Principal, meeting_id: int) -> models.Meeting:
    m = get_meeting_or_404(db, meeting_id)
    ensure(principal, MeetingAction.VIEW, m)
    return m


def create_meeting(db: Session, principal: Principal, payload: schemas.MeetingCreate) -> models.Meeting:
    assert_valid_window(payload.start_time, payload.end_time)
    _get_room_or_404(db, payload.room_id)

    now = datetime.utcnow()
    with booking_lock(db, payload.room_id):
        assert_room_available(db, payload.room_id, payload.start_time, payload.end_time)
        m = models.Meeting(
            title=payload.title,
            agenda=payload.agenda,
            room_id=payload.room_id,
            online_link=payload.online_link,
            start_time=payload.start_time,
            end_time=payload.end_time,
            organizer_id=principal.user_id,
            status=models.MeetingStatus.SCHEDULED.value,
            created_at=now,
            updated_at=now,
        )
        db.add(m)
        db.commit()
    db.refresh(m)
    logger.info("Meeting %s created by user %s (room=%s)", m.id, principal.user_id, m.room_id)
    return m


def update_meeting(
    db: Session, principal: Principal, meeting_id: int, payload: schemas.MeetingUpdate
) -> models.Meeting:
    m = get_meeting_or_404(db, meeting_id)
    ensure(principal, MeetingAction.UPDATE, m)

    data = payload.model_dump(exclude_unset=True)
    # columns that cannot be cleared
    for key in ("title", "start_time", "end_time", "status"):
        if key in data and data[key] is None:
            data.pop(key)
    if "status" in data:
        data["status"] = models.MeetingStatus(data["status"]).value

    room_id = data.get("room_id", m.room_id)
    start_time = data.get("start_time", m.start_time)
    end_time = data.get("end_time", m.end_time)
    status = data.get("status", m.status)

    assert_valid_window(start_time, end_time)
    if "room_id" in data:
        new_room = _get_room_or_404(db, room_id)
        # accepted invitees keep their seats when the meeting moves
        if (
            new_room is not None
            and status != models.MeetingStatus.CANCELLED.value
            and _accepted_invitee_count(db, m.id) > new_room.capacity
        ):
            raise HTTPException(status_code=400, detail="The new room is too small for the accepted invitees.")

    with booking_lock(db, room_id):
        if status != models.MeetingStatus.CANCELLED.value:
            assert_room_available(db, room_id, start_time, end_time, exclude_meeting_id=m.id)
        for k, v in data.items():
            setattr(m, k, v)
        m.updated_at = datetime.utcnow()
        db.commit()
    db.refresh(m)
    logger.info("Meeting %s updated by user %s", m.id, principal.user_id)
    return m


def delete_meeting(db: Session, principal: Principal, storage: FileStorage, meeting_id: int) -> None:
    m = get_meeting_or_404(db, meeting_id)
    ensure(principal, MeetingAction.DELETE, m)

    paths = [a.path for a in m.all_attachments]
    db.delete(m)
    db.commit()
    storage.delete_many(paths)
    logger.info("Meeting %s deleted by user %s (%d files removed)", meeting_id, principal.user_id, len(paths))


def create_recurring_meetings(
    db: Session, principal: Principal, payload: schemas.RecurringMeetingCreate
) -> schemas.RecurringMeetingOut:
    pattern = parse_pattern(payload.recurrence_pattern)
    assert_valid_window(payload.start_time, payload.end_time)
    if payload.recurrence_end_date < payload.start_time.date():
        raise HTTPException(status_code=400, detail="Recurrence end date must not be before the first meeting.")
    _get_room_or_404(db, payload.room_id)

    now = datetime.utcnow()
    with booking_lock(db, payload.room_id):
        try:
            rb = models.RecurringBooking(
                user_id=principal.user_id,
                recurrence_pattern=pattern.value,
                recurrence_end_date=payload.recurrence_end_date,
                created_at=now,
                updated_at=now,
            )
            db.add(rb)
            db.flush()

            created: List[models.Meeting] = []
            for start, end in expand(
                db, payload.room_id, payload.start_time, payload.end_time, pattern, payload.recurrence_end_date
            ):
                m = models.Meeting(
                    title=payload.title,
                    agenda=payload.agenda,
                    room_id=payload.room_id,
                    online_link=payload.online_link,
                    start_time=start,
                    end_time=end,
                    organizer_id=principal.user_id,
                    recurring_booking_id=rb.id,
                    status=models.MeetingStatus.SCHEDULED.value,
                    created_at=now,
                    updated_at=now,
                )
                db.add(m)
                # visible to the conflict check of the next occurrence
                db.flush()
                created.append(m)

            if not created:
                db.rollback()
                raise HTTPException(
                    status_code=409,
                    detail="Every occurrence conflicts with an existing booking.",
                )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

    logger.info(
        "Recurring booking %s (%s) created by user %s: %d meetings",
        rb.id, pattern.value, principal.user_id, len(created),
    )
    return schemas.RecurringMeetingOut(
        id=rb.id,
        title=payload.title,
        recurrence_pattern=pattern.value,
        recurrence_end_date=payload.recurrence_end_date,
        total_meetings=len(created),
        meetings=[schemas.MeetingBriefOut.model_validate(m) for m in created],
    )


# ------------------------------ stats ------------------------------
def count_meetings(db: Session, principal: Principal) -> int:
    return visible_meetings_query(db, principal).count()


def top_rooms(db: Session, limit: int = 3) -> List[schemas.TopRoomOut]:
    rows = (
        db.query(Room.id, Room.name, func.count(models.Meeting.id).label("cnt"))
        .join(models.Meeting, models.Meeting.room_id == Room.id)
        .filter(models.Meeting.status != models.MeetingStatus.CANCELLED.value)
        .group_by(Room.id, Room.name)
        .order_by(func.count(models.Meeting.id).desc(), Room.name.asc())
        .limit(limit)
        .all()
    )
    return [schemas.TopRoomOut(room_id=r[0], room_name=r[1], meeting_count=r[2]) for r in rows]


# ------------------------------ notes ------------------------------
def add_note(db: Session, principal: Principal, meeting_id: int, payload: schemas.NoteCreate) -> models.Note:
    m = get_meeting_or_404(db, meeting_id)
    ensure(principal, MeetingAction.ADD_NOTE, m)

    note = models.Note(
        meeting=m,
        content=payload.content,
        created_by_id=principal.user_id,
        created_at=datetime.utcnow(),
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def update_note(
    db: Session, principal: Principal, meeting_id: int, note_id: int, payload: schemas.NoteUpdate
) -> models.Note:
    m = get_meeting_or_404(db, meeting_id)
    note = _get_child_or_404(db, models.Note, note_id, m.id, "Note")
    ensure(principal, MeetingAction.EDIT_NOTE, m, note)

    note.content = payload.content
    db.commit()
    db.refresh(note)
    return note


def delete_note(db: Session, principal: Principal, meeting_id: int, note_id: int) -> None:
    m = get_meeting_or_404(db, meeting_id)
    note = _get_child_or_404(db, models.Note, note_id, m.id, "Note")
    ensure(principal, MeetingAction.DELETE_NOTE, m, note)

    db.delete(note)
    db.commit()


# --------------------------- action items ---------------------------
def add_action_item(
    db: Session, principal: Principal, meeting_id: int, payload: schemas.ActionItemCreate
) -> models.ActionItem:
    m = get_meeting_or_404(db, meeting_id)
    ensure(principal, MeetingAction.ADD_ACTION_ITEM, m)
    _assert_assignable(m, payload.assigned_to_id)

    item = models.ActionItem(
        meeting=m,
        description=payload.description,
        type=payload.type,
        deadline=payload.deadline,
        assigned_to_id=payload.assigned_to_id,
        status=models.ActionItemStatus.PENDING.value,
        judgment=models.Judgment.UNJUDGED.value,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("Action item %s added to meeting %s (assignee=%s)", item.id, m.id, item.assigned_to_id)
    return item


def update_action_item(
    db: Session, principal: Principal, meeting_id: int, item_id: int, payload: schemas.ActionItemUpdate
) -> models.ActionItem:
    m = get_meeting_or_404(db, meeting_id)
    item = _get_child_or_404(db, models.ActionItem, item_id, m.id, "Action item")
    ensure(principal, MeetingAction.EDIT_ACTION_ITEM, m, item)

    data = payload.model_dump(exclude_unset=True)
    for key in ("description", "assigned_to_id"):
        if key in data and data[key] is None:
            data.pop(key)
    if "assigned_to_id" in data:
        _assert_assignable(m, data["assigned_to_id"])

    for k, v in data.items():
        setattr(item, k, v)
    db.commit()
    db.refresh(item)
    return item


def toggle_action_item_status(db: Session, principal: Principal, meeting_id: int, item_id: int) -> models.ActionItem:
    m = get_meeting_or_404(db, meeting_id)
    item = _get_child_or_404(db, models.ActionItem, item_id, m.id, "Action item")
    ensure(principal, MeetingAction.TOGGLE_ACTION_ITEM, m, item)

    if item.status == models.ActionItemStatus.SUBMITTED.value:
        item.status = models.ActionItemStatus.PENDING.value
    else:
        item.status = models.ActionItemStatus.SUBMITTED.value
    db.commit()
    db.refresh(item)
    return item


def judge_action_item(
    db: Session, principal: Principal, meeting_id: int, item_id: int, judgment: models.Judgment
) -> models.ActionItem:
    m = get_meeting_or_404(db, meeting_id)
    item = _get_child_or_404(db, models.ActionItem, item_id, m.id, "Action item")
    # a pending item cannot be judged, whoever asks
    if item.status != models.ActionItemStatus.SUBMITTED.value:
        raise HTTPException(status_code=400, detail="Only submitted action items can be judged.")
    ensure(principal, MeetingAction.JUDGE_ACTION_ITEM, m, item)

    item.judgment = judgment.value
    db.commit()
    db.refresh(item)
    return item


def delete_action_item(
    db: Session, principal: Principal, storage: FileStorage, meeting_id: int, item_id: int
) -> None:
    m = get_meeting_or_404(db, meeting_id)
    item = _get_child_or_404(db, models.ActionItem, item_id, m.id, "Action item")
    ensure(principal, MeetingAction.DELETE_ACTION_ITEM, m, item)

    paths = [a.path for a in item.attachments]
    db.delete(item)
    db.commit()
    storage.delete_many(paths)


# ----------------------------- invitees -----------------------------
def _send_invitation_email(meeting: models.Meeting, user: User) -> None:
    email_svc.deliver(meeting_invitation(
        title=meeting.title,
        room=meeting.room.name if meeting.room else None,
        start=meeting.start_time,
        end=meeting.end_time,
        online_link=meeting.online_link,
        organizer=meeting.organizer.full_name if meeting.organizer else None,
        to=user.email,
    ))


def add_invitee(
    db: Session, principal: Principal, meeting_id: int, payload: schemas.InviteeCreate
) -> models.Invitee:
    m = get_meeting_or_404(db, meeting_id)
    ensure(principal, MeetingAction.ADD_INVITEE, m)

    if payload.user_id is not None:
        user = db.get(User, payload.user_id)
    else:
        user = db.query(User).filter(func.lower(User.email) == str(payload.email).lower()).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")

    if user.id == m.organizer_id:
        raise HTTPException(status_code=400, detail="The organizer cannot be invited to their own meeting.")
    if m.is_cancelled:
        raise HTTPException(status_code=400, detail="Cannot invite to a cancelled meeting.")

    with keyed_lock(("meeting", m.id)):
        if any(i.user_id == user.id for i in m.invitees):
            raise HTTPException(status_code=400, detail="User is already invited.")
        _assert_capacity(db, m)

        inv = models.Invitee(
            meeting=m,
            user=user,
            email=user.email,
            status=models.InviteStatus.PENDING.value,
            attendance=models.Attendance.DECLINED.value,
        )
        db.add(inv)
        db.commit()
    db.refresh(inv)

    _send_invitation_email(m, user)
    logger.info("User %s invited to meeting %s", user.id, m.id)
    return inv


def respond_to_invite(
    db: Session, principal: Principal, meeting_id: int, invite_id: int, accept: bool
) -> models.Invitee:
    m = get_meeting_or_404(db, meeting_id)
    inv = _get_child_or_404(db, models.Invitee, invite_id, m.id, "Invitation")
    ensure(principal, MeetingAction.RESPOND_INVITE, m, inv)

    with keyed_lock(("meeting", m.id)):
        db.refresh(inv)
        if inv.status == models.InviteStatus.ANSWERED.value:
            raise HTTPException(status_code=400, detail="You have already responded to this invitation.")
        if accept:
            if m.is_cancelled:
                raise HTTPException(status_code=400, detail="The meeting has been cancelled.")
            _assert_capacity(db, m)

        inv.status = models.InviteStatus.ANSWERED.value
        inv.attendance = (models.Attendance.ACCEPTED if accept else models.Attendance.DECLINED).value
        db.commit()
    db.refresh(inv)
    logger.info("Invitation %s answered: %s", inv.id, inv.attendance)
    return inv


def delete_invitee(db: Session, principal: Principal, meeting_id: int, invite_id: int) -> None:
    m = get_meeting_or_404(db, meeting_id)
    inv = _get_child_or_404(db, models.Invitee, invite_id, m.id, "Invitation")
    ensure(principal, MeetingAction.DELETE_INVITEE, m, inv)

    db.delete(inv)
    db.commit()


# ---------------------------- attachments ----------------------------
def add_meeting_attachments(
    db: Session,
    principal: Principal,
    storage: FileStorage,
    meeting_id: int,
    files: Sequence[UploadFile],
) -> List[models.Attachment]:
    m = get_meeting_or_404(db, meeting_id)
    ensure(principal, MeetingAction.ADD_MEETING_ATTACHMENT, m)
    pending = validate_uploads(files)

    new_paths: List[str] = []
    now = datetime.utcnow()
    try:
        for up in pending:
            path = storage.save(f"meetings/{m.id}", up)
            new_paths.append(path)
            db.add(models.Attachment(
                meeting=m,
                kind=models.AttachmentKind.MEETING.value,
                path=path,
                original_name=up.original_name,
                uploaded_by_id=principal.user_id,
                uploaded_at=now,
            ))
        db.commit()
    except (SQLAlchemyError, OSError):
        db.rollback()
        storage.delete_many(new_paths)
        raise

    db.refresh(m)
    return m.attachments


def replace_action_item_attachments(
    db: Session,
    principal: Principal,
    storage: FileStorage,
    meeting_id: int,
    item_id: int,
    kind: models.AttachmentKind,
    files: Sequence[UploadFile],
) -> models.ActionItem:
    """
    Replace the assignment or submission files of an action item.
    New files are written and committed first; the superseded ones are removed afterwards.
    """
    m = get_meeting_or_404(db, meeting_id)
    item = _get_child_or_404(db, models.ActionItem, item_id, m.id, "Action item")
    action = (
        MeetingAction.ADD_ASSIGNMENT_ATTACHMENT
        if kind == models.AttachmentKind.ASSIGNMENT
        else MeetingAction.ADD_SUBMISSION_ATTACHMENT
    )
    ensure(principal, action, m, item)
    pending = validate_uploads(files)

    with keyed_lock(("action-item", item.id)):
        db.expire(item, ["attachments"])
        old = [a for a in item.attachments if a.kind == kind.value]
        old_paths = [a.path for a in old]

        new_paths: List[str] = []
        now = datetime.utcnow()
        try:
            for up in pending:
                path = storage.save(f"action-items/{item.id}/{kind.value}", up)
                new_paths.append(path)
                db.add(models.Attachment(
                    meeting=m,
                    action_item=item,
                    kind=kind.value,
                    path=path,
                    original_name=up.original_name,
                    uploaded_by_id=principal.user_id,
                    uploaded_at=now,
                ))
            for a in old:
                db.delete(a)
            db.commit()
        except (SQLAlchemyError, OSError):
            db.rollback()
            storage.delete_many(new_paths)
            raise

        storage.delete_many(old_paths)

    db.refresh(item)
    logger.info("Action item %s %s files replaced (%d new)", item.id, kind.value, len(new_paths))
    return item


def delete_attachment(
    db: Session, principal: Principal, storage: FileStorage, meeting_id: int, attachment_id: int
) -> None:
    m = get_meeting_or_404(db, meeting_id)
    att = _get_child_or_404(db, models.Attachment, attachment_id, m.id, "Attachment")
    ensure(principal, MeetingAction.DELETE_ATTACHMENT, m, att)

    path = att.path
    db.delete(att)
    db.commit()
    storage.delete(path)


# ------------------------------ files ------------------------------
def resolve_meeting_file(
    db: Session, principal: Principal, storage: FileStorage, meeting_id: int, file_name: str
) -> Tuple[str, str]:
    """Absolute path and download name of a meeting-level file the caller may read."""
    m = get_meeting_or_404(db, meeting_id)
    ensure(principal, MeetingAction.READ_MEETING_FILE, m)
    return _resolve_file(db, storage, f"meetings/{m.id}/{file_name}")


def resolve_action_item_file(
    db: Session, principal: Principal, storage: FileStorage, item_id: int, side: str, file_name: str
) -> Tuple[str, str]:
    if side not in ACTION_ITEM_FILE_SIDES:
        raise HTTPException(status_code=404, detail="File not found.")
    item = db.get(models.ActionItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Action item not found.")
    ensure(principal, MeetingAction.READ_ACTION_ITEM_FILE, item.meeting, item)
    return _resolve_file(db, storage, f"action-items/{item.id}/{side}/{file_name}")


def _resolve_file(db: Session, storage: FileStorage, rel_path: str) -> Tuple[str, str]:
    att = db.query(models.Attachment).filter(models.Attachment.path == rel_path).first()
    if not att or not storage.exists(rel_path):
        raise HTTPException(status_code=404, detail="File not found.")
    return storage.absolute(rel_path), att.original_name
