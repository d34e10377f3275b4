"""
Health Check Endpoints
Liveness and readiness probes for the API and the job workers.
"""
from flask import Blueprint, jsonify
from datetime import datetime, timezone
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from opscore.extensions import db

health_bp = Blueprint('health', __name__, url_prefix='/health')


def _timestamp():
    return datetime.now(timezone.utc).isoformat()


@health_bp.route('/ping', methods=['GET'])
def ping():
    """
    Simple ping endpoint for basic connectivity checks.
    Returns: 200 OK with pong message
    """
    return jsonify({
        'status': 'ok',
        'message': 'pong',
        'timestamp': _timestamp()
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness():
    """
    Readiness probe - checks the database the jobs write to.

    Returns:
        200: Application is ready
        503: Application is not ready
    """
    checks = {'database': False}
    errors = []

    try:
        db.session.execute(text('SELECT 1'))
        checks['database'] = True
    except SQLAlchemyError as e:
        db.session.rollback()
        errors.append(f"Database: {str(e)}")

    all_checks_passed = all(checks.values())
    response = {
        'status': 'ready' if all_checks_passed else 'not_ready',
        'checks': checks,
        'timestamp': _timestamp()
    }
    if errors:
        response['errors'] = errors

    return jsonify(response), 200 if all_checks_passed else 503
