"""
Waitress WSGI entry point for production deployment.

Usage::

    python wsgi.py

Or register as a Windows Service via NSSM::

    nssm install TechInventory "C:\\path\\to\\venv\\Scripts\\python.exe" "C:\\path\\to\\wsgi.py"

Run ``flask db upgrade`` and ``flask create-admin`` once before the
first start.
"""

import logging
import os

from waitress import serve

from tech_inventory import create_app

# Force production config when running via this entry point.
app = create_app(os.environ.get("FLASK_ENV", "production"))

if __name__ == "__main__":
    host = os.environ.get("WAITRESS_HOST", "127.0.0.1")
    port = int(os.environ.get("WAITRESS_PORT", "8080"))
    threads = int(os.environ.get("WAITRESS_THREADS", "4"))
    logging.getLogger(__name__).info("Starting Waitress on %s:%d", host, port)
    serve(app, host=host, port=port, threads=threads)
