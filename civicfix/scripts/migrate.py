"""Bring the CivicFix schema to head and apply bootstrap data.

Run before the API starts (docker-compose entrypoint or by hand):

    civicfix-migrate
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from civicfix.core.config import settings

logger = logging.getLogger("civicfix.migrate")

ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"


def wait_for_db(engine: Engine, timeout_s: int = 60) -> None:
    """Poll with backoff until the database accepts connections."""
    deadline = time.monotonic() + timeout_s
    delay = 1.0
    while True:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return
        except OperationalError:
            if time.monotonic() > deadline:
                raise
            logger.info("database not ready, retrying in %.1fs", delay)
            time.sleep(delay)
            delay = min(delay * 1.5, 5.0)


def schema_action(table_names: set[str]) -> str:
    """``stamp`` for a schema created outside Alembic, else ``upgrade``."""
    if "alembic_version" not in table_names and "reports" in table_names:
        return "stamp"
    return "upgrade"


def alembic_config(dsn: str) -> Config:
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    cfg.set_main_option("sqlalchemy.url", dsn)
    return cfg


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    dsn = os.getenv("DATABASE_URL") or settings.DATABASE_URL
    engine = create_engine(dsn, pool_pre_ping=True)
    wait_for_db(engine, timeout_s=int(os.getenv("DB_WAIT_TIMEOUT", "90")))

    action = schema_action(set(inspect(engine).get_table_names()))
    engine.dispose()
    cfg = alembic_config(dsn)
    logger.info("alembic %s head", action)
    if action == "stamp":
        command.stamp(cfg, "head")
    else:
        command.upgrade(cfg, "head")

    from civicfix.db.session import SessionLocal
    from civicfix.scripts.seed_sample import bootstrap

    db = SessionLocal()
    try:
        bootstrap(db)
        db.commit()
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
