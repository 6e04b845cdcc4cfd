from __future__ import annotations

from fastapi import APIRouter, Depends, Form
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from civicfix.core.config import settings
from civicfix.core.security import verify_password, password_needs_rehash, hash_password, issue_session
from civicfix.auth.deps import SESSION_COOKIE, get_current_user
from civicfix.db.models.user import User, Role
from civicfix.db.session import get_db
from civicfix.modules.users.router import validate_new_user
from civicfix.modules.users.schemas import SignupRequest

router = APIRouter(tags=["auth"])


def _user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "name": user.display_name,
        "role": user.role.value,
        "roleLabel": user.role_label,
    }


@router.post("/login")
def login(
    username: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.username == username.strip()).first()
    if not user or not verify_password(password, user.password_hash):
        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid username or password."},
        )

    if not user.is_active:
        return JSONResponse(
            status_code=403,
            content={"detail": "This account is disabled."},
        )

    if password_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        db.commit()

    sid = issue_session(user.id)
    resp = JSONResponse(content=_user_payload(user))
    resp.set_cookie(
        SESSION_COOKIE,
        sid,
        httponly=True,
        samesite=settings.COOKIE_SAMESITE,
        secure=settings.COOKIE_SECURE,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
    )
    return resp


@router.post("/logout")
def logout():
    resp = JSONResponse(content={"status": "ok"})
    resp.delete_cookie(SESSION_COOKIE)
    return resp


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return _user_payload(user)


@router.post("/signup", status_code=201)
def signup(body: SignupRequest, db: Session = Depends(get_db)):
    """Self-registration. Always creates a citizen; staff accounts come from an admin."""
    validate_new_user(db, body)
    user = User(
        full_name=body.full_name.strip(),
        username=body.username.strip(),
        email=body.email.strip(),
        password_hash=hash_password(body.password),
        role=Role.CITIZEN,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _user_payload(user)
