# modules/notifications/services.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List

from fastapi import HTTPException
from sqlalchemy.orm import Session

from modules.notifications import models, schemas
from modules.security.deps import Principal
from modules.security.model import User

logger = logging.getLogger(__name__)


def _get_owned_or_404(db: Session, principal: Principal, notification_id: int) -> models.Notification:
    n = db.get(models.Notification, notification_id)
    if not n:
        raise HTTPException(status_code=404, detail="Notification not found.")
    if n.user_id != principal.user_id and not principal.is_admin:
        raise HTTPException(status_code=403, detail="You are not allowed to modify this notification.")
    return n


def list_my_notifications(db: Session, principal: Principal) -> List[models.Notification]:
    return (
        db.query(models.Notification)
        .filter(models.Notification.user_id == principal.user_id)
        .order_by(models.Notification.date.desc(), models.Notification.id.desc())
        .all()
    )


def create_notification(db: Session, payload: schemas.NotificationCreate) -> models.Notification:
    if not db.get(User, payload.user_id):
        raise HTTPException(status_code=404, detail="User not found.")
    n = models.Notification(
        subject=payload.subject,
        body=payload.body,
        user_id=payload.user_id,
        date=datetime.utcnow(),
        is_read=False,
    )
    db.add(n)
    db.commit()
    db.refresh(n)
    logger.info("Notification %s sent to user %s", n.id, n.user_id)
    return n


def mark_as_read(db: Session, principal: Principal, notification_id: int) -> models.Notification:
    n = _get_owned_or_404(db, principal, notification_id)
    n.is_read = True
    db.commit()
    db.refresh(n)
    return n


def delete_notification(db: Session, principal: Principal, notification_id: int) -> None:
    n = _get_owned_or_404(db, principal, notification_id)
    db.delete(n)
    db.commit()
