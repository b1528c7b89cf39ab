from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest
from sqlalchemy import event, text

from app.crm import create_app
from app.crm.db import LOGIN_PROCEDURE, SEARCH_PROCEDURE, CustomerDatabase, ProcParam
from app.crm.models import Base

# SQLite has no stored procedures; these queries stand in for the two the API calls.
_PROCEDURE_QUERIES = {
    LOGIN_PROCEDURE: (
        "SELECT user_name FROM worker_user "
        "WHERE user_name = :user_name AND password = :password"
    ),
    SEARCH_PROCEDURE: (
        'SELECT * FROM customer WHERE :txt_search = \'\' '
        "OR name LIKE '%' || :txt_search || '%' "
        "OR id LIKE '%' || :txt_search || '%' "
        "OR e_mail LIKE '%' || :txt_search || '%' "
        "OR company_name LIKE '%' || :txt_search || '%' "
        'ORDER BY "row"'
    ),
}


class SqliteCustomerDatabase(CustomerDatabase):
    def call_procedure(self, procedure: str, params: Sequence[ProcParam]) -> list[dict[str, Any]]:
        bound = {p.name: p.value for p in params}
        with self.engine.begin() as conn:
            return [dict(r) for r in conn.execute(text(_PROCEDURE_QUERIES[procedure]), bound).mappings()]


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    for k in ("DB_SERVER", "DB_DATABASE", "DB_USER", "DB_PASSWORD", "CORS_ORIGINS"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE worker_user (user_name VARCHAR(1000) PRIMARY KEY, password VARCHAR(1000))"))
        conn.execute(text("INSERT INTO worker_user (user_name, password) VALUES ('admin', 'pw')"))

    app.extensions["customer_database"] = SqliteCustomerDatabase(engine)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def statements(app):
    """SQL statements sent to the database after the fixture is requested."""
    seen: list[str] = []
    engine = app.extensions["sqlalchemy_engine"]

    def _record(conn, cursor, statement, parameters, context, executemany):
        seen.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    yield seen
    event.remove(engine, "before_cursor_execute", _record)


@pytest.fixture()
def make_customer(client):
    def _make(**fields) -> dict:
        r = client.post("/api/customers", json=fields)
        assert r.status_code == 201, r.json
        return r.json

    return _make
