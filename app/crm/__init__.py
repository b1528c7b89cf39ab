import logging
import os
import uuid

from dotenv import load_dotenv
from flask import Flask, g, request
from flask_cors import CORS

from app.crm.config import load_config
from app.crm.db import CustomerDatabase, init_db, verify_connection
from app.crm.routes import bp as routes_bp
from app.crm.auth import bp as auth_bp
from app.crm.customers import bp as customers_bp

logger = logging.getLogger(__name__)


def create_app(database: CustomerDatabase | None = None) -> Flask:
    """
    Application factory.

    ``database`` replaces the interface built from configuration; tests use it
    to inject a substitute. The engine is still created and verified so that a
    substitute can reuse ``app.extensions["sqlalchemy_engine"]``.
    """
    load_dotenv()
    # Static assets (index.html, manifest, service worker) are served from the site root.
    app = Flask(__name__, static_folder="static", static_url_path="")
    app.config.from_mapping(load_config())
    app.logger.setLevel(app.config["LOG_LEVEL"])
    # keep column order of result rows in responses
    app.json.sort_keys = False

    if not app.config.get("DATABASE_URL"):
        raise RuntimeError("Database is not configured: set DATABASE_URL or DB_SERVER/DB_DATABASE/DB_USER/DB_PASSWORD.")

    CORS(app, origins=app.config["CORS_ORIGINS"])

    engine = init_db(app)
    verify_connection(engine)
    app.logger.info("Connected to database (%s).", engine.dialect.name)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine.dispose(close=False)
                app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.extensions["customer_database"] = database if database is not None else CustomerDatabase(engine)

    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    @app.after_request
    def _echo_request_id(response):
        rid = getattr(g, "request_id", None)
        if rid:
            response.headers["X-Request-ID"] = rid
        return response

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(customers_bp, url_prefix="/api")

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        if request.path.startswith("/api/"):
            return {"message": "Not found."}, 404
        return e.get_response()

    @app.errorhandler(405)
    def _err_405(e):  # type: ignore[no-redef]
        return {"message": "Method not allowed."}, 405

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return {"message": "Internal server error."}, 500

    logger.info("create_app() complete; app ready to serve")

    return app
