from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker


def _engine_options(db_url: str) -> dict[str, object]:
    options: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        # Hosted Postgres closes idle connections after 30 minutes.
        options.update(pool_recycle=1800, pool_size=5, max_overflow=10, pool_timeout=30)
    return options


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # Needed for ON DELETE CASCADE on the about page gallery.
    cur = dbapi_connection.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


def init_db(app: Flask) -> None:
    db_url = app.config["DATABASE_URL"]
    engine = create_engine(db_url, **_engine_options(db_url))
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
    )
    app.logger.debug("Database engine ready (%s)", engine.url.get_backend_name())


def db_session() -> Session:
    """The request's session; opened on first use, closed by teardown_db_session."""
    s = getattr(g, "db_session", None)
    if s is None:
        s = current_app.extensions["sqlalchemy_sessionmaker"]()
        g.db_session = s
    return s


def teardown_db_session(exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is None:
        return
    try:
        if exc is not None:
            s.rollback()
    finally:
        s.close()


def ping(s: Session) -> str | None:
    """None when the database answers, else the error text."""
    try:
        s.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        s.rollback()
        return str(e)
    return None


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """Session outside a request (tests, shell): commit on success, roll back on error."""
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
