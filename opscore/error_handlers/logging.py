"""
Error handling and logging utilities
Provides centralized logging setup, JSON error handlers and the job logger
used by batch runs to report per-item failures.
"""
import logging
import traceback
from datetime import datetime, timezone
from flask import jsonify, request
import os


def _utc_now():
    return datetime.now(timezone.utc)


def setup_logging(app):
    """Configure application logging"""
    log_level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO').upper())
    log_file = app.config.get('LOG_FILE', 'opscore.log')

    if not os.path.isabs(log_file):
        basedir = os.path.abspath(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
        log_file = os.path.join(basedir, log_file)

    log_dir = os.path.dirname(log_file)
    os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    )

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    app.logger.setLevel(log_level)
    app.logger.addHandler(file_handler)
    app.logger.addHandler(console_handler)

    # Service and job loggers live under the package namespace
    package_logger = logging.getLogger('opscore')
    package_logger.setLevel(log_level)
    if not package_logger.handlers:
        package_logger.addHandler(file_handler)
        package_logger.addHandler(console_handler)

    return app.logger


def register_error_handlers(app):
    """Register global JSON error handlers for the Flask app"""

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(f"Bad request from {request.remote_addr}: {request.url}")
        return jsonify({
            'error': 'Bad Request',
            'message': 'The request could not be understood by the server',
            'status_code': 400
        }), 400

    @app.errorhandler(404)
    def not_found_error(error):
        app.logger.info(f"404 Not Found: {request.url} from {request.remote_addr}")
        return jsonify({
            'error': 'Not Found',
            'message': 'The requested resource was not found',
            'status_code': 404
        }), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        app.logger.warning(f"Method not allowed: {request.method} {request.url} from {request.remote_addr}")
        return jsonify({
            'error': 'Method Not Allowed',
            'message': f'The {request.method} method is not allowed for this endpoint',
            'status_code': 405
        }), 405

    @app.errorhandler(429)
    def rate_limited_error(error):
        app.logger.warning(f"Rate limit hit from {request.remote_addr}: {request.url}")
        return jsonify({
            'error': 'Too Many Requests',
            'message': 'Job trigger rate limit exceeded',
            'status_code': 429
        }), 429

    @app.errorhandler(500)
    def internal_error(error):
        error_id = _utc_now().strftime('%Y%m%d_%H%M%S_%f')
        app.logger.error(f"Internal Server Error [{error_id}]: {str(error)}")
        app.logger.error(f"Traceback [{error_id}]: {traceback.format_exc()}")
        app.logger.error(f"Request details [{error_id}]: {request.method} {request.url}")

        return jsonify({
            'error': 'Internal Server Error',
            'message': 'An unexpected error occurred',
            'error_id': error_id,
            'status_code': 500
        }), 500


def handle_job_item_error(job, item_id, error, context=None):
    """Log a single failed batch item and return its failure record"""
    logger = logging.getLogger('opscore.jobs')
    error_id = _utc_now().strftime('%Y%m%d_%H%M%S_%f')

    log_message = f"JOB ERROR [{error_id}] in {job} for item {item_id}: {str(error)}"
    if context:
        log_message += f" | Context: {context}"

    logger.error(log_message)
    logger.debug(f"JOB ERROR TRACEBACK [{error_id}]: {traceback.format_exc()}")

    return {
        'error_id': error_id,
        'job': job,
        'item_id': item_id,
        'error_type': type(error).__name__,
        'error_message': str(error),
        'timestamp': _utc_now().isoformat()
    }


class JobLogger:
    """Specialized logger for batch job runs"""

    def __init__(self, name='opscore.jobs'):
        self.logger = logging.getLogger(name)

    def job_started(self, job, details=None):
        """Log job run start"""
        message = f"Started: {job}"
        if details:
            message += f" | {details}"
        self.logger.info(message)

    def job_completed(self, job, stats=None):
        """Log job run completion"""
        message = f"Completed: {job}"
        if stats:
            message += f" | Stats: {stats}"
        self.logger.info(message)

    def item_failed(self, job, item_id, error, context=None):
        """Log a per-item failure, returning the failure record"""
        return handle_job_item_error(job, item_id, error, context)

    def job_warning(self, job, message):
        """Log job warnings"""
        self.logger.warning(f"{job}: {message}")


# Global job logger instance
job_logger = JobLogger()
