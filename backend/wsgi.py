#!/usr/bin/env python3
# Overview: WSGI entry point and HTTPS server launcher.

"""
Bank portal server entry point.

    FLASK_APP=wsgi.py python -m flask ...   # CLI
    python wsgi.py                          # HTTPS dev server on HTTPS_PORT

Startup is all-or-nothing: missing TLS material or an unreachable database
exits with status 1 instead of serving in a degraded state.
"""

import logging
import os
import signal
import sys

from sqlalchemy import text

from bankportal import create_app
from bankportal.extensions import db

app = create_app()


def _shutdown(signum, frame):
    app.logger.info("%s received: closing DB connections", signal.Signals(signum).name)
    with app.app_context():
        db.engine.dispose()
    sys.exit(0)


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cert_file = app.config["TLS_CERT_FILE"]
    key_file = app.config["TLS_KEY_FILE"]
    if not os.path.exists(cert_file) or not os.path.exists(key_file):
        app.logger.error("SSL certificate or key missing (%s, %s)", cert_file, key_file)
        return 1

    try:
        with app.app_context():
            db.session.execute(text("SELECT 1"))
            db.create_all()
    except Exception:
        app.logger.exception("Server startup error: database unavailable")
        return 1
    app.logger.info("Connected to database")

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    port = app.config["HTTPS_PORT"]
    app.logger.info("HTTPS server listening on https://localhost:%s", port)
    app.run(host="0.0.0.0", port=port, ssl_context=(cert_file, key_file))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
