"""
Flask Blueprints for the Mesh Architect Web API

Modular routing for the web API, organized by domain.
"""

from .planner import planner_bp

__all__ = [
    'planner_bp',
]


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(planner_bp, url_prefix='/api')
