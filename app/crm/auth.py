from __future__ import annotations

from flask import Blueprint, current_app, g

from app.crm.db import get_database
from app.crm.utils import request_payload

bp = Blueprint("auth", __name__)


@bp.post("/login")
def login_post():
    """
    Stateless credential check. The stored procedure decides; nothing is
    hashed or compared here and no session is created.
    """
    payload = request_payload()
    username = payload.get("username")
    password = payload.get("password")

    try:
        rows = get_database().check_login(username, password)
    except Exception:
        current_app.logger.exception("Login check failed (request_id=%s)", getattr(g, "request_id", None))
        return {"success": False, "message": "Database error"}, 500

    if rows:
        return {"success": True}
    return {"success": False, "message": "Invalid username or password"}, 401
