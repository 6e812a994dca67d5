"""Engine and session factories for a catalog file.

Each catalog gets two engines over the same SQLite file. The writer engine
opens every transaction with ``BEGIN IMMEDIATE`` so it holds the database
write lock for the whole unit of work; the reader engine uses a deferred
``BEGIN``. With WAL journaling, readers never wait on the writer and never
see uncommitted rows.
"""

import logging
from pathlib import Path
from typing import Any, Union

from sqlalchemy import event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, create_engine

from ..core.errors import ConstraintViolation
from ..models.base import TimestampMixin, touch
from ..models.edit import EditHistoryEntry

logger = logging.getLogger(__name__)


def create_catalog_engine(
    path: Union[str, Path],
    writer: bool = False,
    echo: bool = False,
    busy_timeout_ms: int = 5000,
) -> Engine:
    """Create an engine for the catalog file at ``path``.

    Args:
        path: Catalog database file
        writer: Start transactions with BEGIN IMMEDIATE
        echo: Log emitted SQL
        busy_timeout_ms: How long to wait on a locked database

    Returns:
        Configured SQLAlchemy engine
    """
    engine = create_engine(
        f"sqlite:///{path}",
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": busy_timeout_ms / 1000},
    )
    begin_statement = "BEGIN IMMEDIATE" if writer else "BEGIN"

    @event.listens_for(engine, "connect")
    def _configure_connection(dbapi_connection: Any, connection_record: Any) -> None:
        # Let SQLAlchemy's "begin" hook issue BEGIN instead of pysqlite
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn: Any) -> None:
        conn.exec_driver_sql(begin_statement)

    return engine


def touch_modified_rows(session: Session, flush_context: Any, instances: Any) -> None:
    """Stamp updated_at on timestamped rows changed outside a repository update."""
    for obj in session.dirty:
        if not isinstance(obj, TimestampMixin) or not session.is_modified(
            obj, include_collections=False
        ):
            continue
        if not inspect(obj).attrs.updated_at.history.has_changes():
            touch(obj)


def guard_edit_history(session: Session, flush_context: Any, instances: Any) -> None:
    """Reject in-place changes to, or deletion of, edit history entries."""
    for obj in session.dirty:
        if isinstance(obj, EditHistoryEntry) and session.is_modified(obj):
            raise ConstraintViolation(
                "edit history entries are append-only",
                entity="edit_history",
                details={"id": obj.id, "operation": "update"},
            )
    for obj in session.deleted:
        if isinstance(obj, EditHistoryEntry):
            raise ConstraintViolation(
                "edit history entries are append-only",
                entity="edit_history",
                details={"id": obj.id, "operation": "delete"},
            )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Build a session factory with the catalog's flush hooks installed.

    Sessions keep loaded attributes after commit so callers can use returned
    rows once the transaction has closed.
    """
    factory = sessionmaker(bind=engine, class_=Session, expire_on_commit=False)
    event.listen(factory, "before_flush", guard_edit_history)
    event.listen(factory, "before_flush", touch_modified_rows)
    return factory
