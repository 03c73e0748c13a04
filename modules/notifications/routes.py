# modules/notifications/routes.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.connection import get_db
from modules.notifications import services
from modules.notifications.schemas import NotificationCreate, NotificationOut
from modules.security.deps import Principal, get_current_principal, require_admin

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationOut])
def my_notifications(db: Session = Depends(get_db), me: Principal = Depends(get_current_principal)):
    return services.list_my_notifications(db, me)


@router.post("", response_model=NotificationOut, status_code=201, dependencies=[Depends(require_admin)])
def create_notification(payload: NotificationCreate, db: Session = Depends(get_db)):
    return services.create_notification(db, payload)


@router.put("/mark-as-read/{notification_id}", response_model=NotificationOut)
def mark_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    return services.mark_as_read(db, me, notification_id)


@router.delete("/{notification_id}", status_code=204)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    me: Principal = Depends(get_current_principal),
):
    services.delete_notification(db, me, notification_id)
    return None
