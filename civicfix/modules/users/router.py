import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from civicfix.db.session import get_db
from civicfix.auth.deps import get_current_user
from civicfix.core.rbac import require, can_manage_users
from civicfix.core.security import hash_password
from civicfix.db.models.user import User, Role
from civicfix.modules.users.schemas import (
    MIN_PASSWORD_LENGTH,
    SignupRequest,
    UserCreate,
    UserUpdate,
    serialize_user,
)

logger = logging.getLogger("civicfix.users")

router = APIRouter(prefix="/users", tags=["users"])


def validate_new_user(db: Session, body: SignupRequest) -> None:
    """Field and uniqueness checks shared by signup and admin creation (400 on failure)."""
    require(bool(body.full_name.strip()), "Name is required", 400)
    require(bool(body.username.strip()), "Username is required", 400)
    require(
        len(body.password) >= MIN_PASSWORD_LENGTH,
        f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        400,
    )
    email = body.email.strip()
    require(not email or "@" in email, "Invalid email address", 400)

    require(
        db.query(User).filter(User.username == body.username.strip()).first() is None,
        "This username is already taken",
        400,
    )
    if email:
        require(
            db.query(User).filter(User.email == email).first() is None,
            "A user with this email already exists",
            400,
        )


def _parse_role(raw: str | None) -> Role:
    try:
        return Role((raw or "").strip().lower())
    except ValueError:
        require(False, "Invalid role", 400)


@router.get("")
def list_users(
    role: str | None = Query(None),
    active: bool | None = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    require(can_manage_users(user))
    q = db.query(User)
    if role:
        q = q.filter(User.role == _parse_role(role))
    if active is not None:
        q = q.filter(User.is_active == active)
    return [serialize_user(u) for u in q.order_by(User.id.desc()).all()]


@router.post("", status_code=201)
def create(body: UserCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    require(can_manage_users(user))
    role = _parse_role(body.role)
    validate_new_user(db, body)

    u = User(
        full_name=body.full_name.strip(),
        username=body.username.strip(),
        email=body.email.strip(),
        password_hash=hash_password(body.password),
        role=role,
        is_active=True,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    logger.info("User %s (%s) created by admin %s", u.username, u.role.value, user.id)
    return serialize_user(u)


@router.patch("/{user_id}")
def update(user_id: int, body: UserUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    require(can_manage_users(user))
    u = db.get(User, user_id)
    require(u is not None, "User not found", 404)

    if body.full_name is not None:
        require(bool(body.full_name.strip()), "Name is required", 400)
        u.full_name = body.full_name.strip()
    if body.email is not None:
        email = body.email.strip()
        require(not email or "@" in email, "Invalid email address", 400)
        if email and email != u.email:
            require(
                db.query(User).filter(User.email == email, User.id != u.id).first() is None,
                "A user with this email already exists",
                400,
            )
        u.email = email
    if body.role is not None:
        role = _parse_role(body.role)
        require(u.id != user.id or role == Role.ADMIN, "Admins cannot demote themselves", 400)
        u.role = role
    if body.is_active is not None:
        require(u.id != user.id or body.is_active, "Admins cannot deactivate themselves", 400)
        u.is_active = body.is_active
    if body.new_password:
        require(
            len(body.new_password) >= MIN_PASSWORD_LENGTH,
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            400,
        )
        u.password_hash = hash_password(body.new_password)

    db.commit()
    db.refresh(u)
    return serialize_user(u)


@router.delete("/{user_id}")
def deactivate(user_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Accounts are deactivated, never deleted: approval history points at them."""
    require(can_manage_users(user))
    u = db.get(User, user_id)
    require(u is not None, "User not found", 404)
    require(u.id != user.id, "Admins cannot deactivate themselves", 400)
    u.is_active = False
    db.commit()
    logger.info("User %s deactivated by admin %s", u.username, user.id)
    return {"status": "ok", "id": u.id, "isActive": False}
