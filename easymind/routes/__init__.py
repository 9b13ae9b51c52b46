"""
EasyMind API Routes
===================

All API route blueprints for the EasyMind console backend.

Usage:
    from easymind.routes import register_routes
    register_routes(app)
"""
from .auth_routes import auth_bp
from .admin_routes import admin_bp
from .teacher_routes import teacher_bp
from .content_routes import content_bp


def register_routes(app):
    """Register all route blueprints with the Flask app."""
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(teacher_bp)
    app.register_blueprint(content_bp)


__all__ = [
    'register_routes',
    'auth_bp',
    'admin_bp',
    'teacher_bp',
    'content_bp',
]
