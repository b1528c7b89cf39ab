import pytest
from sqlalchemy import Unicode

from app.crm.db import LOGIN_PROCEDURE, SEARCH_PROCEDURE, CustomerDatabase, ProcParam, procedure_sql
from app.crm.errors import ProcedureNotSupportedError

LOGIN_PARAMS = [ProcParam("user_name", "admin", Unicode(1000)), ProcParam("password", "pw", Unicode(1000))]


def test_mssql_procedure_call():
    assert procedure_sql("mssql", LOGIN_PROCEDURE, LOGIN_PARAMS) == (
        "SET NOCOUNT ON; EXEC sp_check_worker_user_to_login @user_name = :user_name, @password = :password"
    )


def test_mssql_call_suppresses_row_count_messages():
    sql = procedure_sql("mssql", SEARCH_PROCEDURE, [ProcParam("txt_search", "")])
    assert sql.startswith("SET NOCOUNT ON;")
    assert sql.endswith("EXEC sp_search_customer_for_mangment @txt_search = :txt_search")


def test_postgresql_procedure_call():
    assert procedure_sql("postgresql", SEARCH_PROCEDURE, [ProcParam("txt_search", "")]) == (
        "SELECT * FROM sp_search_customer_for_mangment(:txt_search)"
    )


def test_values_never_enter_the_statement():
    params = [ProcParam("user_name", "x'; DROP TABLE customer; --"), ProcParam("password", "pw")]
    sql = procedure_sql("mssql", LOGIN_PROCEDURE, params)
    assert "DROP" not in sql


def test_other_dialects_cannot_call_procedures():
    with pytest.raises(ProcedureNotSupportedError):
        procedure_sql("sqlite", LOGIN_PROCEDURE, LOGIN_PARAMS)


def test_customer_database_round_trip(app):
    db = CustomerDatabase(app.extensions["sqlalchemy_engine"])
    created = db.insert_customer({"id": "C1", "name": "Acme", "phone": None, "e_mail": None, "company_name": None})
    assert db.fetch_customer(created["row"]) == created
    assert db.customer_id_for_row(created["row"]) == "C1"
    assert db.count_customer_users(created["row"]) == 0
    assert db.count_customer_orders("C1") == 0
    assert db.delete_customer(created["row"]) == 1
    assert db.fetch_customer(created["row"]) is None
    assert db.customer_id_for_row(created["row"]) is None
    assert db.delete_customer(created["row"]) == 0


def test_update_missing_row_returns_none(app):
    db = CustomerDatabase(app.extensions["sqlalchemy_engine"])
    assert db.update_customer(12345, {"id": "C1", "name": "Acme"}) is None
