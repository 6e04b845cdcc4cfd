from __future__ import annotations

import json

from sqlalchemy.orm import Session

from civicfix.core.config import settings
from civicfix.core.security import hash_password, verify_password
from civicfix.db.models.report import Report, ReportPriority, ReportStage, ReportStatus
from civicfix.db.models.user import User, Role


SAMPLE_USERS: tuple[tuple[str, str, Role], ...] = (
    ("citizen", "Sample Citizen", Role.CITIZEN),
    ("city_manager", "Sample City Manager", Role.CITY_MANAGER),
    ("infra_manager", "Sample Infra Manager", Role.INFRA_MANAGER),
    ("issue_resolver", "Sample Issue Resolver", Role.ISSUE_RESOLVER),
    ("contractor", "Sample Contractor", Role.CONTRACTOR),
)


def _upsert_user(
    db: Session,
    *,
    username: str,
    full_name: str,
    role: Role,
    password: str,
) -> User:
    u = db.query(User).filter(User.username == username).first()
    if not u:
        u = User(
            username=username,
            full_name=full_name,
            role=role,
            password_hash=hash_password(password),
            is_active=True,
        )
        db.add(u)
        db.flush()
        return u

    # keep it idempotent and also enforce requested sample values
    u.full_name = full_name
    u.role = role
    u.is_active = True
    if not verify_password(password, u.password_hash):
        u.password_hash = hash_password(password)

    db.flush()
    return u


def _get_or_create_report(db: Session, *, reporter: User, title: str, category: str, lng: float, lat: float) -> Report:
    r = db.query(Report).filter(Report.title == title, Report.reported_by_id == reporter.id).first()
    if not r:
        r = Report(
            title=title,
            description=f"{category} reported near {title.lower()}.",
            category=category,
            priority=ReportPriority.MEDIUM,
            longitude=lng,
            latitude=lat,
            address="MG Road, Bangalore, Karnataka",
            area="MG Road",
            images_json=json.dumps([]),
            reported_by_id=reporter.id,
            current_stage=ReportStage.PENDING_CITY_MANAGER,
            status=ReportStatus.SUBMITTED,
        )
        db.add(r)
        db.flush()
    return r


def seed_sample(db: Session) -> None:
    """Idempotently seed one user per role and a few open reports."""

    pwd = settings.SAMPLE_SEED_PASSWORD or "123"

    users = {
        role: _upsert_user(db, username=username, full_name=full_name, role=role, password=pwd)
        for username, full_name, role in SAMPLE_USERS
    }

    citizen = users[Role.CITIZEN]
    _get_or_create_report(db, reporter=citizen, title="Pothole at MG Road junction", category="Potholes", lng=77.6033, lat=12.9756)
    _get_or_create_report(db, reporter=citizen, title="Blocked storm drain", category="Drainage", lng=77.6090, lat=12.9718)
    _get_or_create_report(db, reporter=citizen, title="Street light out", category="Street Lights", lng=77.5990, lat=12.9780)


def ensure_default_admin(db: Session) -> User | None:
    """Create the configured admin account if no user holds that username yet."""
    if not settings.AUTO_CREATE_ADMIN:
        return None
    admin = db.query(User).filter(User.username == settings.DEFAULT_ADMIN_USERNAME).first()
    if admin:
        return admin
    admin = User(
        full_name=settings.DEFAULT_ADMIN_FULL_NAME,
        username=settings.DEFAULT_ADMIN_USERNAME,
        password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
        role=Role.ADMIN,
        is_active=True,
    )
    db.add(admin)
    db.flush()
    return admin


def bootstrap(db: Session) -> None:
    """Startup data applied by the migrate script: admin account, then optional samples."""
    ensure_default_admin(db)
    if settings.AUTO_SEED_SAMPLE:
        seed_sample(db)


def main() -> int:
    # Allow manual execution:
    #   python -m civicfix.scripts.seed_sample
    from civicfix.db.session import SessionLocal

    db = SessionLocal()
    try:
        seed_sample(db)
        db.commit()
        print("Sample seed applied successfully.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
