# catalog_api/database.py
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from catalog_api.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Connection setup
#
# Postgres (production):
#   - sslmode=require   : enforce SSL when running in the cloud
#   - pool_pre_ping=True: validate connections before using them
#
# SQLite (local dev / tests):
#   - check_same_thread=False : sync endpoints run on the threadpool
#   - foreign keys ON, and we emit BEGIN ourselves so that SAVEPOINTs
#     (used for per-image gallery inserts) behave under pysqlite.
# ---------------------------------------------------------


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(db_url: str) -> Engine:
    if _is_sqlite(db_url):
        engine = create_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            # disable pysqlite's own transaction handling
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN")

        return engine

    if db_url.startswith("postgres") and "sslmode=" not in db_url:
        db_url = db_url + ("&" if "?" in db_url else "?") + "sslmode=require"

    return create_engine(
        db_url,
        echo=False,        # set to True if you want to debug SQL queries
        pool_pre_ping=True,
    )


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    The session is closed on every exit path, which also rolls back any
    transaction a failed request left open.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session
