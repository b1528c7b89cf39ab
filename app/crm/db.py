from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from flask import Flask, current_app
from sqlalchemy import bindparam, create_engine, delete, event, func, insert, select, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import TypeEngine, Unicode

from app.crm.errors import DatabaseUnavailableError, ProcedureNotSupportedError
from app.crm.models import customer_table, customer_user_table, order_record_table

LOGIN_PROCEDURE = "sp_check_worker_user_to_login"
SEARCH_PROCEDURE = "sp_search_customer_for_mangment"

Row = dict[str, Any]


@dataclass(frozen=True)
class ProcParam:
    name: str
    value: Any
    type_: TypeEngine | None = None


def procedure_sql(dialect_name: str, procedure: str, params: Sequence[ProcParam]) -> str:
    """
    Statement text that calls a stored procedure with named bind parameters.
    Only bind placeholders are generated; values never enter the SQL string.

    On SQL Server, NOCOUNT is switched on for the batch (and the procedures it
    calls) so "rows affected" messages do not arrive ahead of the result set;
    pyodbc would otherwise report a statement without rows.
    """
    if dialect_name == "mssql":
        args = ", ".join(f"@{p.name} = :{p.name}" for p in params)
        return f"SET NOCOUNT ON; EXEC {procedure} {args}".rstrip()
    if dialect_name == "postgresql":
        args = ", ".join(f":{p.name}" for p in params)
        return f"SELECT * FROM {procedure}({args})"
    raise ProcedureNotSupportedError(f"Stored procedures are not supported on dialect {dialect_name!r}.")


class CustomerDatabase:
    """
    Database interface used by the request handlers.

    Every method checks a connection out of the shared pool for a single
    statement and commits it on success. Nothing spans more than one call.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def call_procedure(self, procedure: str, params: Sequence[ProcParam]) -> list[Row]:
        stmt = text(procedure_sql(self.engine.dialect.name, procedure, params)).bindparams(
            *[bindparam(p.name, value=p.value, type_=p.type_) for p in params]
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
            if not result.returns_rows:
                return []
            return [dict(r) for r in result.mappings()]

    # --- stored procedures -------------------------------------------------

    def check_login(self, username: str | None, password: str | None) -> list[Row]:
        return self.call_procedure(
            LOGIN_PROCEDURE,
            [
                ProcParam("user_name", username, Unicode(1000)),
                ProcParam("password", password, Unicode(1000)),
            ],
        )

    def search_customers(self, search: str) -> list[Row]:
        return self.call_procedure(SEARCH_PROCEDURE, [ProcParam("txt_search", search, Unicode())])

    # --- customer table ------------------------------------------------------

    def fetch_customer(self, row: Any) -> Row | None:
        stmt = select(customer_table).where(customer_table.c.row == row)
        with self.engine.begin() as conn:
            found = conn.execute(stmt).mappings().first()
        return dict(found) if found is not None else None

    def insert_customer(self, values: Mapping[str, Any]) -> Row:
        stmt = insert(customer_table).values(**values).returning(*customer_table.c)
        with self.engine.begin() as conn:
            created = conn.execute(stmt).mappings().one()
        return dict(created)

    def update_customer(self, row: Any, values: Mapping[str, Any]) -> Row | None:
        stmt = (
            update(customer_table)
            .where(customer_table.c.row == row)
            .values(**values)
            .returning(*customer_table.c)
        )
        with self.engine.begin() as conn:
            updated = conn.execute(stmt).mappings().first()
        return dict(updated) if updated is not None else None

    def customer_id_for_row(self, row: Any) -> Any | None:
        """Business id of the customer at ``row``; None when there is no such row."""
        stmt = select(customer_table.c.id).where(customer_table.c.row == row)
        with self.engine.begin() as conn:
            found = conn.execute(stmt).first()
        return found[0] if found is not None else None

    def count_customer_users(self, row: Any) -> int:
        stmt = select(func.count()).select_from(customer_user_table).where(customer_user_table.c.customer_row == row)
        with self.engine.begin() as conn:
            return int(conn.execute(stmt).scalar_one())

    def count_customer_orders(self, customer_id: Any) -> int:
        stmt = select(func.count()).select_from(order_record_table).where(order_record_table.c.customer_id == customer_id)
        with self.engine.begin() as conn:
            return int(conn.execute(stmt).scalar_one())

    def delete_customer(self, row: Any) -> int:
        """Returns the number of rows removed."""
        stmt = delete(customer_table).where(customer_table.c.row == row)
        with self.engine.begin() as conn:
            return conn.execute(stmt).rowcount


def init_db(app: Flask) -> Engine:
    db_url = app.config["DATABASE_URL"]
    backend = str(db_url).split(":", 1)[0]
    engine_kwargs: dict[str, object] = {
        "pool_pre_ping": True,
    }
    if not backend.startswith("sqlite"):
        engine_kwargs.update(
            {
                "pool_recycle": 1800,
                "pool_size": app.config.get("DB_POOL_SIZE", 5),
                "max_overflow": app.config.get("DB_MAX_OVERFLOW", 10),
                "pool_timeout": app.config.get("DB_POOL_TIMEOUT", 30),
            }
        )
    engine = create_engine(db_url, **engine_kwargs)
    if backend.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):  # type: ignore[no-redef]
            cur = dbapi_connection.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()
    if app.config.get("ENV") != "production":
        @event.listens_for(engine, "checkout")
        def _receive_checkout(dbapi_connection, connection_record, connection_proxy):  # type: ignore[no-redef]
            app.logger.debug("DB connection checkout from pool")
    app.extensions["sqlalchemy_engine"] = engine
    return engine


def verify_connection(engine: Engine) -> None:
    """Round-trip a trivial query; startup cannot continue without the database."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise DatabaseUnavailableError(f"Database connection failed: {e}") from e


def get_database() -> CustomerDatabase:
    """The database interface bound to the current application."""
    return current_app.extensions["customer_database"]
