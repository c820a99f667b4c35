"""
Flask application factory for the Mesh Architect web API.

SECURITY: serve() binds to localhost by default; pass host='0.0.0.0'
explicitly to expose the planner to the network.
"""

import logging
import secrets
from pathlib import Path
from typing import Optional, Union

from flask import Flask

from core.session import MeshSession
from web.blueprints import register_blueprints

logger = logging.getLogger(__name__)


def add_security_headers(response):
    """Add security headers to all responses"""
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'SAMEORIGIN'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    response.headers['Content-Security-Policy'] = "default-src 'self'"
    return response


def create_app(session: Optional[MeshSession] = None,
               state_file: Optional[Union[str, Path]] = None) -> Flask:
    """
    Build the Flask app around one planning session.

    Args:
        session: Session to serve (a fresh one when None)
        state_file: Save the session here after every change
    """
    app = Flask(__name__)
    app.secret_key = secrets.token_hex(32)
    app.config['MESH_SESSION'] = session if session is not None else MeshSession()
    app.config['MESH_STATE_FILE'] = str(state_file) if state_file else None
    app.after_request(add_security_headers)
    register_blueprints(app)
    return app


def serve(app: Flask, host: str = '127.0.0.1', port: int = 8090, debug: bool = False):
    if host not in ('127.0.0.1', 'localhost'):
        logger.warning("Planner API exposed on %s:%d without authentication", host, port)
    logger.info("Serving Mesh Architect API on http://%s:%d/api/mesh", host, port)
    app.run(host=host, port=port, debug=debug)
