#!/usr/bin/env python3
"""
Production startup script.

Validates PORT and replaces this process with gunicorn (os.execvp), so that
gunicorn is PID 1 and receives signals directly.

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys


def gunicorn_argv(port: str, workers: str = "2") -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
        "--timeout", "60",
        # app is created (and the database verified) once, before forking workers
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def resolve_port(raw: str | None) -> str:
    port = (raw or "").strip()
    if not port:
        print("WARNING: PORT not set, using default 3000", flush=True)
        return "3000"
    try:
        port_int = int(port)
        if port_int < 1 or port_int > 65535:
            raise ValueError("Port out of range")
    except ValueError:
        print(f"ERROR: Invalid PORT value '{port}'. Must be integer 1-65535.", flush=True)
        sys.exit(1)
    return port


def main() -> None:
    port = resolve_port(os.environ.get("PORT"))
    print(f"PORT={port} validated", flush=True)

    workers = (os.environ.get("WEB_CONCURRENCY") or "2").strip()
    print(f"=== Starting gunicorn on 0.0.0.0:{port} ({workers} workers) ===", flush=True)
    os.execvp("gunicorn", gunicorn_argv(port, workers))


if __name__ == "__main__":
    main()
