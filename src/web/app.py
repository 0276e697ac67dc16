"""Flask app factory for the icao-consensus JSON API.

Creates app with:
- REST API routes under /api/ (lookup, classify, gaps, mismatch log)
- Read-only tables held in app config, replaced wholesale by swap_tables()
- CORS headers for local development
"""

from __future__ import annotations

from flask import Flask

from ..reports import MismatchLog
from ..tables import Tables, load_tables
from .routes import register_routes


def create_app(tables: Tables | None = None, reports_path: str | None = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    app.config["TABLES"] = tables or load_tables()
    app.config["REPORTS_PATH"] = reports_path

    @app.teardown_appcontext
    def _close_log(exc):
        from flask import g
        log = g.pop("mismatch_log", None)
        if log:
            log.close()

    # CORS for local dev
    @app.after_request
    def _cors(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    register_routes(app)
    return app


def swap_tables(app: Flask, tables: Tables) -> None:
    """Replace the tables in one assignment; in-flight requests keep the old ones."""
    app.config["TABLES"] = tables


def open_log(app: Flask) -> MismatchLog | None:
    path = app.config.get("REPORTS_PATH")
    return MismatchLog(path) if path else None
