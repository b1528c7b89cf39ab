from __future__ import annotations

import re
from enum import Enum

from sqlalchemy.exc import DBAPIError

# SQL Server error numbers
MSSQL_UNIQUE_CONSTRAINT = 2627
MSSQL_UNIQUE_INDEX = 2601
MSSQL_FOREIGN_KEY = 547

# PostgreSQL SQLSTATE codes
PG_UNIQUE_VIOLATION = "23505"
PG_FOREIGN_KEY_VIOLATION = "23503"

_MSSQL_NUMBER_RE = re.compile(r"\((\d{3,5})\)")
_MSSQL_NATIVE_NUMBER_RE = re.compile(r"\((\d+)\)\s*\(SQL\w+\)")

# Where drivers name the violated constraint or column (never the duplicated value):
# SQL Server "constraint 'UQ_customer_e_mail'" / "unique index 'IX_customer_id'",
# PostgreSQL 'constraint "customer_id_key"' and "Key (id)=", SQLite "failed: customer.e_mail".
_CONSTRAINT_NAME_RES = (
    re.compile(r"constraint '([^']+)'"),
    re.compile(r"unique index '([^']+)'"),
    re.compile(r"constraint \"([^\"]+)\""),
    re.compile(r"key \(([^)]+)\)="),
    re.compile(r"constraint failed: ([\w.]+(?:, [\w.]+)*)"),
)


class DatabaseUnavailableError(RuntimeError):
    """The database could not be reached while starting the application."""


class ProcedureNotSupportedError(RuntimeError):
    """Stored procedures are not callable on this database dialect."""


class IntegrityKind(str, Enum):
    UNIQUE = "unique"
    FOREIGN_KEY = "foreign_key"
    OTHER = "other"


def _message(orig: BaseException) -> str:
    parts = []
    for a in getattr(orig, "args", ()) or ():
        if isinstance(a, bytes):
            parts.append(a.decode("utf-8", errors="replace"))
        else:
            parts.append(str(a))
    return " ".join(parts) or str(orig)


def mssql_error_number(orig: BaseException) -> int | None:
    """
    pymssql puts the error number first in args; pyodbc only has it inside the
    message text, right before the ODBC call name, e.g.
    "... The duplicate key value is (547). (2627) (SQLExecDirectW)".
    Parenthesized numbers earlier in the message are key values, not error numbers.
    """
    args = getattr(orig, "args", ()) or ()
    if args and isinstance(args[0], int):
        return args[0]
    text = _message(orig)
    native = _MSSQL_NATIVE_NUMBER_RE.findall(text)
    if native:
        return int(native[-1])
    known = [
        int(n) for n in _MSSQL_NUMBER_RE.findall(text)
        if int(n) in (MSSQL_UNIQUE_CONSTRAINT, MSSQL_UNIQUE_INDEX, MSSQL_FOREIGN_KEY)
    ]
    return known[-1] if known else None


def classify_integrity_error(exc: DBAPIError) -> IntegrityKind:
    orig = exc.orig if exc.orig is not None else exc

    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode == PG_UNIQUE_VIOLATION:
        return IntegrityKind.UNIQUE
    if pgcode == PG_FOREIGN_KEY_VIOLATION:
        return IntegrityKind.FOREIGN_KEY

    number = mssql_error_number(orig)
    if number in (MSSQL_UNIQUE_CONSTRAINT, MSSQL_UNIQUE_INDEX):
        return IntegrityKind.UNIQUE
    if number == MSSQL_FOREIGN_KEY:
        return IntegrityKind.FOREIGN_KEY

    text = _message(orig).upper()
    if "UNIQUE CONSTRAINT FAILED" in text:
        return IntegrityKind.UNIQUE
    if "FOREIGN KEY CONSTRAINT FAILED" in text:
        return IntegrityKind.FOREIGN_KEY
    return IntegrityKind.OTHER


def duplicate_field(exc: DBAPIError) -> str | None:
    """Best-effort name of the customer field behind a unique violation: "email", "id" or None."""
    orig = exc.orig if exc.orig is not None else exc
    text = _message(orig).lower()
    names = " ".join(m for rx in _CONSTRAINT_NAME_RES for m in rx.findall(text))
    if "mail" in names:
        return "email"
    # "customer.id" (SQLite), "id" (PostgreSQL key), "uq_customer_id" (constraint names)
    if re.search(r"(\.id\b|_id\b|\bid\b)", names):
        return "id"
    return None


def duplicate_customer_message(exc: DBAPIError) -> str:
    field = duplicate_field(exc)
    if field == "email":
        return "A customer with this email already exists."
    if field == "id":
        return "A customer with this ID already exists."
    return "A customer with this ID or email already exists."
