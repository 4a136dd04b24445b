#!/usr/bin/env python3
"""
Container entry point: run the release step, then exec gunicorn on app.wsgi:app.

Reads PORT (default 8080) and WEB_CONCURRENCY (default 2).
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scripts.release import run_release  # noqa: E402


def _port() -> str:
    raw = (os.environ.get("PORT") or "").strip()
    if not raw:
        return "8080"
    if not raw.isdigit() or not 1 <= int(raw) <= 65535:
        sys.exit(f"Invalid PORT {raw!r}: expected an integer between 1 and 65535.")
    return raw


def gunicorn_argv(port: str, workers: str) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
        "--timeout", "60",
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    port = _port()
    try:
        run_release()
    except Exception as e:
        sys.exit(f"Release failed: {e}")

    workers = (os.environ.get("WEB_CONCURRENCY") or "2").strip()
    print(f"Starting gunicorn on port {port} with {workers} workers", flush=True)
    # gunicorn replaces this process so it receives the container's signals
    os.execvp("gunicorn", gunicorn_argv(port, workers))


if __name__ == "__main__":
    main()
