# modules/users/routes.py
from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from database.connection import get_db
from modules.meeting.storage import FileStorage, get_storage
from modules.security.deps import get_current_user, require_admin
from modules.security.model import User
from modules.users import services
from modules.users.schemas import (
    CountOut,
    MeetingListItem,
    MeetingWithInviteOut,
    ProfilePictureOut,
    TaggedMeetingOut,
    UserOut,
)

router = APIRouter(prefix="/users", tags=["Users"])

PAGE = Query(1, ge=1)
PAGE_SIZE = Query(3, ge=1, le=100)


@router.get("", response_model=List[UserOut])
def list_users(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return services.list_users(db)


@router.get("/count", response_model=CountOut)
def count_users(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return {"count": services.count_users(db)}


# ---------- Me ----------
@router.get("/me", response_model=UserOut)
def get_me(me: User = Depends(get_current_user)):
    return me


@router.get("/me/meetings/organized", response_model=List[MeetingListItem])
def my_organized_meetings(
    page: int = PAGE,
    page_size: int = PAGE_SIZE,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return services.organized_upcoming(db, me.id, page, page_size)


@router.get("/me/meetings/invited", response_model=List[MeetingListItem])
def my_invited_meetings(
    page: int = PAGE,
    page_size: int = PAGE_SIZE,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return services.invited_upcoming(db, me.id, page, page_size)


@router.get("/me/invites/pending", response_model=List[MeetingWithInviteOut])
def my_pending_invites(
    page: int = PAGE,
    page_size: int = PAGE_SIZE,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return services.pending_invites(db, me.id, page, page_size)


@router.get("/me/invites/accepted", response_model=List[MeetingWithInviteOut])
def my_accepted_invites(
    page: int = PAGE,
    page_size: int = PAGE_SIZE,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return services.accepted_invites(db, me.id, page, page_size)


@router.get("/me/meetings/all", response_model=List[TaggedMeetingOut])
def my_meetings(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return services.all_meetings(db, me.id)


@router.get("/me/meetings/previous/all", response_model=List[TaggedMeetingOut])
def my_previous_meetings(
    page: int = PAGE,
    page_size: int = PAGE_SIZE,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return services.previous_meetings(db, me.id, page, page_size)


@router.get("/me/meetings/dailycount", response_model=CountOut)
def my_daily_count(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return {"count": services.daily_count(db, me.id)}


@router.get("/me/meetings/heatmap", response_model=Dict[str, int])
def my_heatmap(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return services.heatmap(db, me.id)


@router.post("/me/upload-profile", response_model=ProfilePictureOut)
def upload_profile(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    me: User = Depends(get_current_user),
):
    return services.upload_profile_picture(db, storage, me, file)


# ---------- Admin lookups ----------
@router.get("/email/{email}", response_model=UserOut, dependencies=[Depends(require_admin)])
def get_user_by_email(email: str, db: Session = Depends(get_db)):
    return services.get_user_by_email_or_404(db, email)


@router.get("/{user_id}", response_model=UserOut, dependencies=[Depends(require_admin)])
def get_user(user_id: int, db: Session = Depends(get_db)):
    return services.get_user_or_404(db, user_id)
