# modules/meeting/routes.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from database.connection import get_db
from modules.meeting import models, services
from modules.meeting.schemas import (
    ActionItemCreate,
    ActionItemOut,
    ActionItemUpdate,
    AttachmentOut,
    InviteeCreate,
    InviteeOut,
    MeetingCountOut,
    MeetingCreate,
    MeetingOut,
    MeetingUpdate,
    NoteCreate,
    NoteOut,
    NoteUpdate,
    RecurringMeetingCreate,
    RecurringMeetingOut,
    TopRoomOut,
)
from modules.meeting.storage import FileStorage, get_storage
from modules.security.deps import Principal, get_current_principal

router = APIRouter(prefix="/meetings", tags=["Meetings"])


# ---------- Meetings ----------
@router.get("", response_model=List[MeetingOut])
def list_meetings(db: Session = Depends(get_db), me: Principal = Depends(get_current_principal)):
    return services.list_meetings(db, me)


@router.get("/count", response_model=MeetingCountOut)
def count_meetings(db: Session = Depends(get_db), me: Principal = Depends(get_current_principal)):
    return {"count": services.count_meetings(db, me)}


@router.get("/top-rooms", response_model=List[TopRoomOut])
def top_rooms(db: Session = Depends(get_db), me: Principal = Depends(get_current_principal)):
    return services.top_rooms(db)


@router.get("/{meeting_id}", response_model=MeetingOut)
def get_meeting(meeting_id: int, db: Session = Depends(get_db), me: Principal = Depends(get_current_principal)):
    return services.get_meeting(db, me, meeting_id)


@router.post("", response_model=MeetingOut, status_code=201)
def create_meeting(
    payload: MeetingCreate,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.create_meeting(db, me, payload)


@router.post("/recurring", response_model=RecurringMeetingOut, status_code=201)
def create_recurring_meetings(
    payload: RecurringMeetingCreate,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.create_recurring_meetings(db, me, payload)


@router.put("/{meeting_id}", response_model=MeetingOut)
def update_meeting(
    meeting_id: int,
    payload: MeetingUpdate,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.update_meeting(db, me, meeting_id, payload)


@router.delete("/{meeting_id}", status_code=204)
def delete_meeting(
    meeting_id: int,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    me: Principal = Depends(get_current_principal),
):
    services.delete_meeting(db, me, storage, meeting_id)
    return None


# ---------- Notes ----------
@router.post("/{meeting_id}/notes", response_model=NoteOut, status_code=201)
def add_note(
    meeting_id: int,
    payload: NoteCreate,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.add_note(db, me, meeting_id, payload)


@router.put("/{meeting_id}/notes/{note_id}", response_model=NoteOut)
def update_note(
    meeting_id: int,
    note_id: int,
    payload: NoteUpdate,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.update_note(db, me, meeting_id, note_id, payload)


@router.delete("/{meeting_id}/notes/{note_id}", status_code=204)
def delete_note(
    meeting_id: int,
    note_id: int,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    services.delete_note(db, me, meeting_id, note_id)
    return None


# ---------- Action items ----------
@router.post("/{meeting_id}/action-items", response_model=ActionItemOut, status_code=201)
def add_action_item(
    meeting_id: int,
    payload: ActionItemCreate,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.add_action_item(db, me, meeting_id, payload)


@router.put("/{meeting_id}/action-items/{item_id}", response_model=ActionItemOut)
def update_action_item(
    meeting_id: int,
    item_id: int,
    payload: ActionItemUpdate,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.update_action_item(db, me, meeting_id, item_id, payload)


@router.delete("/{meeting_id}/action-items/{item_id}", status_code=204)
def delete_action_item(
    meeting_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    me: Principal = Depends(get_current_principal),
):
    services.delete_action_item(db, me, storage, meeting_id, item_id)
    return None


@router.put("/{meeting_id}/action-items/{item_id}/toggle-status", response_model=ActionItemOut)
def toggle_action_item_status(
    meeting_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.toggle_action_item_status(db, me, meeting_id, item_id)


@router.put("/{meeting_id}/action-items/{item_id}/accept", response_model=ActionItemOut)
def accept_action_item(
    meeting_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.judge_action_item(db, me, meeting_id, item_id, models.Judgment.ACCEPTED)


@router.put("/{meeting_id}/action-items/{item_id}/reject", response_model=ActionItemOut)
def reject_action_item(
    meeting_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.judge_action_item(db, me, meeting_id, item_id, models.Judgment.REJECTED)


@router.post("/{meeting_id}/action-items/{item_id}/assignment-attachments", response_model=ActionItemOut)
def upload_assignment_attachments(
    meeting_id: int,
    item_id: int,
    files: Optional[List[UploadFile]] = File(default=None),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    me: Principal = Depends(get_current_principal),
):
    return services.replace_action_item_attachments(
        db, me, storage, meeting_id, item_id, models.AttachmentKind.ASSIGNMENT, files
    )


@router.post("/{meeting_id}/action-items/{item_id}/submission-attachments", response_model=ActionItemOut)
def upload_submission_attachments(
    meeting_id: int,
    item_id: int,
    files: Optional[List[UploadFile]] = File(default=None),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    me: Principal = Depends(get_current_principal),
):
    return services.replace_action_item_attachments(
        db, me, storage, meeting_id, item_id, models.AttachmentKind.SUBMISSION, files
    )


# ---------- Invitees ----------
@router.post("/{meeting_id}/invitees", response_model=InviteeOut, status_code=201)
def add_invitee(
    meeting_id: int,
    payload: InviteeCreate,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.add_invitee(db, me, meeting_id, payload)


@router.put("/{meeting_id}/invitees/{invite_id}/accept", response_model=InviteeOut)
def accept_invite(
    meeting_id: int,
    invite_id: int,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.respond_to_invite(db, me, meeting_id, invite_id, accept=True)


@router.put("/{meeting_id}/invitees/{invite_id}/decline", response_model=InviteeOut)
def decline_invite(
    meeting_id: int,
    invite_id: int,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.respond_to_invite(db, me, meeting_id, invite_id, accept=False)


@router.delete("/{meeting_id}/invitees/{invite_id}", status_code=204)
def delete_invitee(
    meeting_id: int,
    invite_id: int,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    services.delete_invitee(db, me, meeting_id, invite_id)
    return None


# ---------- Attachments ----------
@router.post("/{meeting_id}/attachments", response_model=List[AttachmentOut], status_code=201)
def upload_meeting_attachments(
    meeting_id: int,
    files: Optional[List[UploadFile]] = File(default=None),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    me: Principal = Depends(get_current_principal),
):
    return services.add_meeting_attachments(db, me, storage, meeting_id, files)


@router.delete("/{meeting_id}/attachments/{attachment_id}", status_code=204)
def delete_attachment(
    meeting_id: int,
    attachment_id: int,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    me: Principal = Depends(get_current_principal),
):
    services.delete_attachment(db, me, storage, meeting_id, attachment_id)
    return None
