from flask import Blueprint, current_app

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    return current_app.send_static_file("index.html")


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container probes. No DB access, minimal overhead.
    """
    return "ok", 200
