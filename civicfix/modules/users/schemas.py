from __future__ import annotations

from pydantic import BaseModel

from civicfix.db.models.user import User

MIN_PASSWORD_LENGTH = 6


class SignupRequest(BaseModel):
    full_name: str = ""
    username: str = ""
    email: str = ""
    password: str = ""


class UserCreate(SignupRequest):
    role: str = ""


class UserUpdate(BaseModel):
    full_name: str | None = None
    email: str | None = None
    role: str | None = None
    is_active: bool | None = None
    new_password: str | None = None


def serialize_user(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "name": u.display_name,
        "email": u.email,
        "role": u.role.value,
        "roleLabel": u.role_label,
        "isActive": bool(u.is_active),
    }
