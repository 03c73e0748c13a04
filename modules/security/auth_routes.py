# modules/security/auth_routes.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from database.connection import get_db
from modules.meeting.storage import FileStorage, get_storage
from modules.security.deps import Principal, get_current_user, require_admin
from modules.security.model import User, UserRoleAssignment
from modules.security.passwords import hash_password, needs_rehash, verify_password
from modules.security.schemas import ChangePasswordIn, LoginIn, RegisterIn, RoleUpdate, TokenOut
from modules.security.tokens import create_access_token
from modules.users.schemas import UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _find_by_email(db: Session, email: str):
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


@router.post("/register", response_model=UserOut, status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db), admin: Principal = Depends(require_admin)):
    if _find_by_email(db, payload.email):
        raise HTTPException(status_code=409, detail="Email is already registered.")

    user = User(
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        email=payload.email.strip().lower(),
        password_hash=hash_password(payload.password),
    )
    user.role_assignments.append(UserRoleAssignment(role=payload.role.value))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s registered as %s by admin %s", user.id, payload.role.value, admin.user_id)
    return user


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = _find_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password.")

    # legacy hash format -> PBKDF2
    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(payload.password)
        db.commit()

    roles = user.roles
    return TokenOut(access_token=create_access_token(user.id, roles), user_id=user.id, roles=roles)


@router.put("/role/{user_id}", response_model=UserOut, dependencies=[Depends(require_admin)])
def change_role(user_id: int, payload: RoleUpdate, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")
    if payload.role.value in user.roles:
        raise HTTPException(status_code=400, detail="User already has this role.")

    # roles are exclusive: drop the old one before adding the new one
    user.role_assignments.clear()
    db.flush()
    user.role_assignments.append(UserRoleAssignment(role=payload.role.value))
    db.commit()
    db.refresh(user)
    logger.info("User %s role changed to %s", user.id, payload.role.value)
    return user


@router.post("/change-password")
def change_password(payload: ChangePasswordIn, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    if payload.new_password != payload.confirm_password:
        raise HTTPException(status_code=400, detail="New password and confirmation do not match.")
    if not verify_password(payload.current_password, me.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect.")

    me.password_hash = hash_password(payload.new_password)
    db.commit()
    return {"ok": True}


@router.delete("/{user_id}", status_code=204)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    admin: Principal = Depends(require_admin),
):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")
    if user.id == admin.user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account.")

    # files of meetings this user organized go with them
    paths = [a.path for m in user.organized_meetings for a in m.all_attachments]
    db.delete(user)
    db.commit()
    storage.delete_many(paths)
    logger.info("User %s deleted by admin %s", user_id, admin.user_id)
    return None
