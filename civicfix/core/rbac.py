from __future__ import annotations

from fastapi import HTTPException

from civicfix.db.models.user import User, Role


def require(condition: bool, msg: str = "Permission denied", status_code: int = 403) -> None:
    """Small helper used across routers.

    Defaults to 403 (permission denied). For validation errors or not-found cases,
    pass `status_code=400/404`.
    """
    if not condition:
        raise HTTPException(status_code=status_code, detail=msg)


def can_create_report(user: User) -> bool:
    # Staff may file issues they spot in the field, too.
    return bool(user.is_active)


def can_manage_users(user: User) -> bool:
    return user.role == Role.ADMIN
