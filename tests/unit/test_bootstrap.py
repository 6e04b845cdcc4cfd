"""Startup helpers: schema action selection and bootstrap data."""

import pytest

from civicfix.core.config import settings
from civicfix.core.security import verify_password
from civicfix.db.models.user import Role, User
from civicfix.scripts.migrate import schema_action
from civicfix.scripts.seed_sample import SAMPLE_USERS, bootstrap, ensure_default_admin


@pytest.mark.parametrize(
    "tables, expected",
    [
        (set(), "upgrade"),
        ({"reports", "users"}, "stamp"),
        ({"reports", "users", "alembic_version"}, "upgrade"),
    ],
)
def test_schema_action(tables, expected) -> None:
    assert schema_action(tables) == expected


class TestDefaultAdmin:
    def test_created_once(self, db) -> None:
        first = ensure_default_admin(db)
        db.commit()
        second = ensure_default_admin(db)

        assert first.id == second.id
        assert first.role == Role.ADMIN
        assert verify_password(settings.DEFAULT_ADMIN_PASSWORD, first.password_hash)
        assert db.query(User).filter(User.username == settings.DEFAULT_ADMIN_USERNAME).count() == 1

    def test_disabled(self, db, monkeypatch) -> None:
        monkeypatch.setattr(settings, "AUTO_CREATE_ADMIN", False)
        assert ensure_default_admin(db) is None
        assert db.query(User).count() == 0


class TestBootstrap:
    def test_admin_only_by_default(self, db, monkeypatch) -> None:
        monkeypatch.setattr(settings, "AUTO_SEED_SAMPLE", False)
        bootstrap(db)
        db.commit()
        assert [u.username for u in db.query(User).all()] == [settings.DEFAULT_ADMIN_USERNAME]

    def test_sample_data_is_idempotent(self, db, monkeypatch) -> None:
        monkeypatch.setattr(settings, "AUTO_SEED_SAMPLE", True)
        bootstrap(db)
        db.commit()
        bootstrap(db)
        db.commit()

        usernames = {u.username for u in db.query(User).all()}
        assert usernames == {settings.DEFAULT_ADMIN_USERNAME} | {name for name, _, _ in SAMPLE_USERS}
