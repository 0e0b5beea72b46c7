"""
Database engine, session management, and base model.

Every model inherits from Base. Every request gets a session
from get_db().
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from atm_controller.config import get_settings

settings = get_settings()

# SQLite connections are bound to their creating thread unless told
# otherwise; FastAPI runs sync endpoints in a threadpool.
connect_args = (
    {"check_same_thread": False}
    if settings.DATABASE_URL.startswith("sqlite")
    else {}
)

# --- Engine ---
# pool_pre_ping=True tests connections before using them, which
# handles a restarted database or a stale connection.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)

# --- Session Factory ---
# autocommit=False: the API layer decides when a request's work is
# committed or rolled back.
# autoflush=False: SQL is only sent on an explicit flush or commit.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


# --- Dependency for FastAPI ---
def get_db():
    """
    Provide a database session for a single request.

    The try/finally guarantees the session is closed even if the
    endpoint raises, so connections are never leaked from the pool.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
