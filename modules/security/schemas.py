# modules/security/schemas.py
from __future__ import annotations

from typing import List

from pydantic import BaseModel, EmailStr, Field, field_validator

from modules.security.model import UserRole


class RegisterIn(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.EMPLOYEE

    @field_validator("role")
    @classmethod
    def _no_admin_signup(cls, v: UserRole) -> UserRole:
        # admins are promoted through PUT /auth/role/{id}
        if v == UserRole.ADMIN:
            raise ValueError("role must be Employee or Guest")
        return v


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    roles: List[str]


class RoleUpdate(BaseModel):
    role: UserRole


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)
    confirm_password: str
