import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from civicfix.core.config import settings

POOL_SIZE = int(os.environ.get('DB_POOL_SIZE','10'))
MAX_OVERFLOW = int(os.environ.get('DB_MAX_OVERFLOW','20'))


def build_engine(url: str):
    # SQLite (dev/tests) has no server-side pool to tune.
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=30,
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
