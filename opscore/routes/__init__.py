"""
Routes package
Centralizes all route blueprints
"""
from .jobs import jobs_bp
from .operations import operations_bp
from .health import health_bp

__all__ = [
    'jobs_bp',
    'operations_bp',
    'health_bp',
]
