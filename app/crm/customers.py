from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, g, request
from sqlalchemy.exc import IntegrityError

from app.crm.db import get_database
from app.crm.errors import IntegrityKind, classify_integrity_error, duplicate_customer_message
from app.crm.utils import request_payload

bp = Blueprint("customers", __name__)

NOT_FOUND = {"message": "Customer not found."}
REQUIRED_FIELDS = {"message": "ID and name are required."}


def _log_failure(what: str) -> None:
    current_app.logger.exception("%s failed (request_id=%s)", what, getattr(g, "request_id", None))


def _customer_values(payload: dict[str, Any]) -> dict[str, Any] | None:
    """
    Column values for an insert or a full replace. Optional fields that are
    absent become NULL. Returns None when id or name is missing.
    """
    if not payload.get("id") or not payload.get("name"):
        return None
    return {
        "id": payload.get("id"),
        "name": payload.get("name"),
        "phone": payload.get("phone"),
        "e_mail": payload.get("email"),
        "company_name": payload.get("companyName"),
    }


@bp.get("/customers")
def customers_list():
    search = request.args.get("search") or ""
    try:
        rows = get_database().search_customers(search)
    except Exception:
        _log_failure("GET /api/customers")
        return {"message": "Error executing stored procedure."}, 500
    return rows, 200


@bp.get("/customers/<row>")
def customer_detail(row: str):
    try:
        customer = get_database().fetch_customer(row)
    except Exception:
        _log_failure(f"GET /api/customers/{row}")
        return {"message": "Error fetching customer from database."}, 500
    if customer is None:
        return NOT_FOUND, 404
    return customer


@bp.post("/customers")
def customer_create():
    values = _customer_values(request_payload())
    if values is None:
        return REQUIRED_FIELDS, 400

    try:
        customer = get_database().insert_customer(values)
    except IntegrityError as e:
        if classify_integrity_error(e) is IntegrityKind.UNIQUE:
            current_app.logger.info("Duplicate customer rejected: %s", e.orig)
            return {"message": duplicate_customer_message(e)}, 409
        _log_failure("POST /api/customers")
        return {"message": "Error adding customer to database."}, 500
    except Exception:
        _log_failure("POST /api/customers")
        return {"message": "Error adding customer to database."}, 500
    return customer, 201


@bp.put("/customers/<row>")
def customer_update(row: str):
    values = _customer_values(request_payload())
    if values is None:
        return REQUIRED_FIELDS, 400

    try:
        customer = get_database().update_customer(row, values)
    except IntegrityError as e:
        if classify_integrity_error(e) is IntegrityKind.UNIQUE:
            current_app.logger.info("Duplicate customer rejected on update of row=%s: %s", row, e.orig)
            return {"message": duplicate_customer_message(e)}, 409
        _log_failure(f"PUT /api/customers/{row}")
        return {"message": "Error updating customer in database."}, 500
    except Exception:
        _log_failure(f"PUT /api/customers/{row}")
        return {"message": "Error updating customer in database."}, 500
    if customer is None:
        return NOT_FOUND, 404
    return customer


@bp.delete("/customers/<row>")
def customer_delete(row: str):
    """
    Dependency checks run in a fixed order and stop at the first hit:
    resolve id, linked users (by row), linked orders (by id), then delete.
    They are separate statements; a dependent row inserted in between surfaces
    as a foreign-key violation and is answered with 409.
    """
    db = get_database()
    try:
        customer_id = db.customer_id_for_row(row)
        if customer_id is None:
            return NOT_FOUND, 404

        if db.count_customer_users(row) > 0:
            return {"message": "Cannot delete this customer because linked users exist."}, 409

        if db.count_customer_orders(customer_id) > 0:
            return {"message": "Cannot delete this customer because linked orders exist."}, 409

        if db.delete_customer(row) == 0:
            return NOT_FOUND, 404
    except IntegrityError as e:
        if classify_integrity_error(e) is IntegrityKind.FOREIGN_KEY:
            current_app.logger.warning("Delete of customer row=%s blocked by foreign key: %s", row, e.orig)
            return {"message": "Cannot delete this customer because it is referenced by other records."}, 409
        _log_failure(f"DELETE /api/customers/{row}")
        return {"message": "Error deleting customer from database."}, 500
    except Exception:
        _log_failure(f"DELETE /api/customers/{row}")
        return {"message": "Error deleting customer from database."}, 500

    current_app.logger.info("Deleted customer row=%s id=%s", row, customer_id)
    return {"message": "Customer deleted successfully."}, 200
