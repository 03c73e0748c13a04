# modules/security/deps.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from database.connection import get_db
from modules.security.model import User, UserRole
from modules.security.tokens import decode_access_token

bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Authenticated actor as seen by the booking engine: a user id and a role set."""
    user_id: int
    roles: frozenset = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return UserRole.ADMIN.value in self.roles


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


# ------------------------------------------------------------
# Current user dependencies
# ------------------------------------------------------------
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise _unauthorized()

    payload = decode_access_token(credentials.credentials)
    if not payload or not str(payload.get("sub") or "").isdigit():
        raise _unauthorized()

    # roles are always re-read from the database, token claims are informational only
    user = db.get(User, int(payload["sub"]))
    if not user:
        raise _unauthorized()
    return user


def get_current_principal(user: User = Depends(get_current_user)) -> Principal:
    return Principal(user_id=user.id, roles=frozenset(user.roles))


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """
    FastAPI dependency for admin-only endpoints:
      @router.post(..., dependencies=[Depends(require_admin)])
    """
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator required")
    return principal
